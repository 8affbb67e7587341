import unittest
from builders import auto_property, build_owner, field, method
from constant_resolver import ConstantValue
from declarations import Marker, MarkerArgument
from decoration import Decoration
from markers import BindingMode, MarkerConfidence, ReadWriteMode
from property_record import (
    ChangedHandlerShape,
    PropertySource,
    classify_changed_handler,
    contradicts_type,
    is_unreadable_property,
    non_nullable_type_name,
)
from toolkit import ToolkitKind


class PropertyHelpersTestCase(unittest.TestCase):
    def test_changed_handler_shapes(self):
        self.assertEqual(ChangedHandlerShape.NO_ARGS, classify_changed_handler(method("OnXChanged"), "int"))
        self.assertEqual(ChangedHandlerShape.NEW_VALUE_ONLY,
                         classify_changed_handler(method("OnXChanged", ["int"]), "int"))
        self.assertEqual(ChangedHandlerShape.OLD_AND_NEW_VALUE,
                         classify_changed_handler(method("OnXChanged", ["List< int >", "List<int>"]), "List<int>"))
        self.assertEqual(ChangedHandlerShape.EVENT_ARGS,
                         classify_changed_handler(method("OnXChanged", ["AvaloniaPropertyChangedEventArgs<int>"]), "int"))
        self.assertEqual(ChangedHandlerShape.UNSUPPORTED,
                         classify_changed_handler(method("OnXChanged", ["int", "string"]), "int"))
        self.assertEqual(ChangedHandlerShape.UNSUPPORTED,
                         classify_changed_handler(method("OnXChanged", ["int", "int", "int"]), "int"))

    def test_unreadable_properties(self):
        self.assertFalse(is_unreadable_property(auto_property("X")))
        self.assertTrue(is_unreadable_property(auto_property("X", modifiers=["partial"])))
        self.assertTrue(is_unreadable_property(auto_property("X", modifiers=["private", "partial"])))
        self.assertTrue(is_unreadable_property(auto_property("X", accessors=["set"])))
        hidden_getter = auto_property("X")
        hidden_getter.accessors[0].modifiers = ["private"]
        self.assertTrue(is_unreadable_property(hidden_getter))

    def test_non_nullable_type_name(self):
        self.assertEqual("string", non_nullable_type_name("string?"))
        self.assertEqual("int?", non_nullable_type_name("int?"))
        self.assertEqual("Brush", non_nullable_type_name("Brush"))

    def test_contradicting_defaults(self):
        self.assertTrue(contradicts_type("bool", ConstantValue(True, 1)))
        self.assertTrue(contradicts_type("int", ConstantValue(True, None)))
        self.assertTrue(contradicts_type("string", ConstantValue(True, 3)))
        self.assertFalse(contradicts_type("int?", ConstantValue(True, None)))
        self.assertFalse(contradicts_type("double", ConstantValue(True, 1)))
        self.assertFalse(contradicts_type("Brush", ConstantValue(True, "red")))
        self.assertFalse(contradicts_type("int", ConstantValue(False)))


class OwnerModelBuilderTestCase(unittest.TestCase):
    def test_owner_facts(self):
        owner = build_owner()
        self.assertEqual("Demo.Widget", owner.full_name)
        self.assertTrue(owner.is_partial)
        self.assertTrue(owner.is_class)
        self.assertFalse(owner.is_nested)
        self.assertEqual(ToolkitKind.WPF, owner.toolkit)
        self.assertTrue(owner.is_framework_element)
        self.assertTrue(owner.is_ui_element)
        self.assertEqual(Decoration("On", "Changed"), owner.changed_handler_decoration)
        self.assertEqual([], owner.properties)

    def test_auto_property_with_fragments(self):
        owner = build_owner([
            field("defaultForCount"),
            auto_property("Count"),
            method("CoerceCount", ["int"], return_type="int"),
            method("ValidateCount", ["int"], modifiers=["private", "static"], return_type="bool"),
            method("OnCountChanged", ["int", "int"]),
        ])
        self.assertEqual(1, len(owner.properties))
        prop = owner.properties[0]
        self.assertEqual("Count", prop.name)
        self.assertEqual(PropertySource.AUTO_PROPERTY, prop.source)
        self.assertEqual(MarkerConfidence.EXACT, prop.marker_confidence)
        self.assertTrue(prop.has_default_value)
        self.assertFalse(prop.is_default_value_writable)
        self.assertEqual("defaultForCount", prop.default_value_member)
        self.assertTrue(prop.has_coerce_callback)
        self.assertFalse(prop.coerce_callback_is_static)
        self.assertTrue(prop.has_validate_callback)
        self.assertTrue(prop.validate_callback_is_static)
        self.assertEqual(ChangedHandlerShape.OLD_AND_NEW_VALUE, prop.changed_handler_shape)
        self.assertFalse(prop.is_read_only)
        self.assertTrue(prop.has_setter)
        self.assertEqual([], owner.orphans)

    def test_read_write_mode(self):
        getter_only = build_owner([auto_property("A", accessors=["get"])]).properties[0]
        self.assertTrue(getter_only.is_read_only)
        self.assertFalse(getter_only.has_setter)

        init_only = build_owner([auto_property("A", accessors=["get", "init"])]).properties[0]
        self.assertFalse(init_only.is_read_only)
        self.assertEqual("init", init_only.setter_kind)

        forced = build_owner([auto_property("A", markers=[Marker("DependencyProperty", [
            MarkerArgument("ReadWriteMode.ReadOnly", name="ReadWriteMode", separator="=")])])]).properties[0]
        self.assertTrue(forced.is_read_only)
        self.assertEqual(ReadWriteMode.READ_ONLY, forced.read_write_mode)

    def test_attached_property_field(self):
        owner = build_owner([
            field("defaultForSpacing", "double", "4.0", modifiers=["private", "static", "readonly"],
                  markers=[Marker("AttachedProperty", [MarkerArgument("true", name="Inherits", separator="=")])]),
            method("OnSpacingChanged", ["double"], modifiers=["private", "static"]),
        ])
        prop = owner.properties[0]
        self.assertEqual("Spacing", prop.name)
        self.assertTrue(prop.is_attached)
        self.assertTrue(prop.inherits)
        self.assertEqual(PropertySource.DEFAULT_VALUE_FIELD, prop.source)
        self.assertEqual("defaultForSpacing", prop.default_value_member)
        self.assertEqual(ChangedHandlerShape.NEW_VALUE_ONLY, prop.changed_handler_shape)

    def test_class_marker(self):
        marker = Marker("WithAttachedProperty", [
            MarkerArgument('"Flag"'),
            MarkerArgument("false"),
            MarkerArgument("true", name="ReadOnly", separator="="),
            MarkerArgument("BindingMode.TwoWay", name="BindingMode", separator="="),
        ], type_arguments=["bool"])
        prop = build_owner(markers=[marker]).properties[0]
        self.assertEqual("Flag", prop.name)
        self.assertEqual("bool", prop.type_name)
        self.assertTrue(prop.is_read_only)
        self.assertEqual(BindingMode.TWO_WAY, prop.binding_mode)
        self.assertEqual("false", prop.default_value_expression)
        self.assertEqual([], prop.argument_problems)

    def test_class_marker_problems(self):
        missing_type = Marker("WithAttachedProperty", [MarkerArgument('"Flag"'), MarkerArgument("false")])
        self.assertEqual(1, len(build_owner(markers=[missing_type]).properties[0].argument_problems))

        wrong_default = Marker("WithAttachedProperty", [MarkerArgument('"Flag"'), MarkerArgument('"yes"')],
                               type_arguments=["bool"])
        self.assertEqual(1, len(build_owner(markers=[wrong_default]).properties[0].argument_problems))

    def test_first_record_wins_and_later_ones_mark_it_duplicate(self):
        marker = Marker("WithAttachedProperty", [MarkerArgument('"Count"'), MarkerArgument("1")], type_arguments=["int"])
        owner = build_owner([auto_property("Count")], markers=[marker])
        self.assertEqual(1, len(owner.properties))
        self.assertEqual(PropertySource.CLASS_MARKER, owner.properties[0].source)
        self.assertTrue(owner.properties[0].has_multiple_markers)

    def test_two_markers_on_one_property(self):
        owner = build_owner([auto_property("Count", markers=[Marker("DependencyProperty"), Marker("DependencyProperty")])])
        self.assertEqual(1, len(owner.properties))
        self.assertTrue(owner.properties[0].has_multiple_markers)

    def test_class_marker_default_beats_field(self):
        marker = Marker("WithAttachedProperty", [MarkerArgument('"Size"'), MarkerArgument("3")], type_arguments=["int"])
        owner = build_owner([field("defaultForSize", initializer="7")], markers=[marker])
        prop = owner.properties[0]
        self.assertEqual("3", prop.default_value_expression)
        self.assertIsNone(prop.default_value_member)

    def test_unsupported_handler_is_replaced_by_a_later_supported_one(self):
        owner = build_owner([
            auto_property("Count"),
            method("OnCountChanged", ["string", "string", "string"]),
            method("OnCountChanged", ["int"]),
        ])
        prop = owner.properties[0]
        self.assertEqual(ChangedHandlerShape.NEW_VALUE_ONLY, prop.changed_handler_shape)
        self.assertTrue(prop.has_changed_handler)

    def test_unsupported_handler(self):
        prop = build_owner([auto_property("Count"), method("OnCountChanged", ["int", "int", "int"])]).properties[0]
        self.assertEqual(ChangedHandlerShape.UNSUPPORTED, prop.changed_handler_shape)
        self.assertFalse(prop.has_changed_handler)
        self.assertIsNotNone(prop.unsupported_handler_location)

    def test_orphans(self):
        owner = build_owner([auto_property("Count"), method("CoerceWidth", ["double"]), field("defaultForHeight")])
        self.assertEqual(["defaultForHeight", "CoerceWidth"], [f.member_name for f in owner.orphans])

    def test_custom_decoration(self):
        marker = Marker("CoerceCallbackNameDecoration", [MarkerArgument('"Adjust"')])
        owner = build_owner([auto_property("Count"), method("AdjustCount", ["int"])], markers=[marker])
        self.assertEqual("AdjustCount", owner.properties[0].coerce_callback_name)
        self.assertTrue(owner.properties[0].has_coerce_callback)

    def test_unknown_toolkit(self):
        self.assertEqual(ToolkitKind.UNKNOWN, build_owner(base=None).toolkit)
        self.assertEqual(ToolkitKind.UNKNOWN, build_owner(base="INotifyPropertyChanged").toolkit)


if __name__ == "__main__":
    unittest.main()
