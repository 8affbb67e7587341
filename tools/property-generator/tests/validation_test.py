import unittest
from builders import (
    AVALONIA_CONTROL,
    UWP_FRAMEWORK_ELEMENT,
    WINUI_FRAMEWORK_ELEMENT,
    WPF_DEPENDENCY_OBJECT,
    auto_property,
    build_owner,
    field,
    method,
)
from declarations import Marker, MarkerArgument
from validation import validate_owner


def codes(verdict):
    return sorted(d.code for d in verdict.all_diagnostics)


def inheritable(name="Count"):
    return auto_property(name, markers=[Marker("DependencyProperty", [MarkerArgument("true", name="Inherits", separator="=")])])


def two_way(name="Count", mode="TwoWay"):
    return auto_property(name, markers=[
        Marker("DependencyProperty", [MarkerArgument(f"BindingMode.{mode}", name="BindingMode", separator="=")])])


class PropertyRulesTestCase(unittest.TestCase):
    def test_clean_owner(self):
        verdict = validate_owner(build_owner([auto_property("Count"), method("CoerceCount", ["int"], return_type="int")]))
        self.assertEqual([], codes(verdict))
        self.assertTrue(verdict.should_emit)
        self.assertEqual(["Count"], [p.name for p in verdict.accepted_properties])

    def test_non_partial_property(self):
        verdict = validate_owner(build_owner([auto_property("Count", modifiers=["public"])]))
        self.assertEqual(["DR0001"], codes(verdict))
        self.assertFalse(verdict.should_emit)

    def test_property_with_accessor_bodies(self):
        prop = auto_property("Count")
        prop.accessors[0].has_body = True
        self.assertEqual(["DR0001"], codes(validate_owner(build_owner([prop]))))

    def test_unreadable_property(self):
        verdict = validate_owner(build_owner([auto_property("Count", accessors=["set"])]))
        self.assertEqual(["DR0003"], codes(verdict))

    def test_duplicate_markers_reported_once(self):
        prop = auto_property("Count", markers=[Marker("DependencyProperty"), Marker("DependencyProperty")])
        verdict = validate_owner(build_owner([prop]))
        self.assertEqual(["DR0007"], codes(verdict))
        self.assertFalse(verdict.should_emit)

    def test_inheritance_on_uwp_and_winui(self):
        for base in [UWP_FRAMEWORK_ELEMENT, WINUI_FRAMEWORK_ELEMENT]:
            verdict = validate_owner(build_owner([inheritable()], base=base))
            self.assertEqual(["DR0006", "DR0008"], codes(verdict))
            self.assertFalse(verdict.should_emit)

    def test_inheritance_on_wpf_requires_framework_element(self):
        verdict = validate_owner(build_owner([inheritable()], base=WPF_DEPENDENCY_OBJECT))
        self.assertEqual(["DR0008", "DR0011"], codes(verdict))

    def test_inheritance_on_avalonia_and_wpf_framework_element(self):
        for base in [AVALONIA_CONTROL, None]:
            kwargs = {"base": base} if base else {}
            verdict = validate_owner(build_owner([inheritable()], **kwargs))
            self.assertEqual(["DR0008"], codes(verdict))
            self.assertTrue(verdict.should_emit)

    def test_attached_inheritable_property_has_no_warning(self):
        spacing = field("defaultForSpacing", "double", "4.0", modifiers=["private", "static", "readonly"],
                        markers=[Marker("AttachedProperty", [MarkerArgument("true", name="Inherits", separator="=")])])
        self.assertEqual([], codes(validate_owner(build_owner([spacing]))))

    def test_writable_default_value(self):
        verdict = validate_owner(build_owner([auto_property("Count"), field("defaultForCount", modifiers=["static"])]))
        self.assertEqual(["DR0005"], codes(verdict))
        self.assertTrue(verdict.should_emit)

    def test_unsupported_callbacks(self):
        members = [auto_property("Count"), method("CoerceCount", ["int"]),
                   method("ValidateCount", ["int"], modifiers=["private", "static"])]
        self.assertEqual(["DR0009", "DR0010"], codes(validate_owner(build_owner(members, base=UWP_FRAMEWORK_ELEMENT))))
        self.assertEqual(["DR0009"], codes(validate_owner(build_owner(members, base=AVALONIA_CONTROL))))
        self.assertEqual([], codes(validate_owner(build_owner(members))))

    def test_instance_validate_callback(self):
        members = [auto_property("Count"), method("ValidateCount", ["int"], return_type="bool")]
        verdict = validate_owner(build_owner(members))
        self.assertEqual(["DR0018"], codes(verdict))
        self.assertIn("ValidateCount", verdict.all_diagnostics[0].message)
        self.assertTrue(verdict.should_emit)
        # validation is already reported as unsupported there
        self.assertEqual(["DR0009"], codes(validate_owner(build_owner(members, base=AVALONIA_CONTROL))))

    def test_instance_default_value_field(self):
        verdict = validate_owner(build_owner([auto_property("Count"),
                                              field("defaultForCount", modifiers=["private", "readonly"])]))
        self.assertEqual(["DR0018"], codes(verdict))
        self.assertIn("defaultForCount", verdict.all_diagnostics[0].message)
        self.assertTrue(verdict.should_emit)

    def test_unsupported_changed_handler(self):
        verdict = validate_owner(build_owner([auto_property("Count"), method("OnCountChanged", ["int", "int", "int"])]))
        self.assertEqual(["DR0012"], codes(verdict))
        self.assertIn("OnCountChanged", verdict.all_diagnostics[0].message)
        self.assertTrue(verdict.should_emit)

    def test_invalid_marker_arguments(self):
        prop = auto_property("Count", markers=[Marker("DependencyProperty", [MarkerArgument("Compute()")])])
        self.assertEqual(["DR0013"], codes(validate_owner(build_owner([prop]))))

    def test_unrecognized_marker_argument(self):
        prop = auto_property("Count", markers=[Marker("DependencyProperty", [MarkerArgument("1", name="Color", separator="=")])])
        verdict = validate_owner(build_owner([prop]))
        self.assertEqual(["DR0014"], codes(verdict))
        self.assertTrue(verdict.should_emit)

    def test_binding_modes(self):
        self.assertEqual([], codes(validate_owner(build_owner([two_way()]))))
        self.assertEqual([], codes(validate_owner(build_owner([two_way(mode="OneTime")], base=AVALONIA_CONTROL))))
        self.assertEqual(["DR0016"], codes(validate_owner(build_owner([two_way(mode="OneTime")]))))
        self.assertEqual(["DR0016"], codes(validate_owner(build_owner([two_way()], base=WPF_DEPENDENCY_OBJECT))))
        self.assertEqual(["DR0016"], codes(validate_owner(build_owner([two_way()], base=UWP_FRAMEWORK_ELEMENT))))

    def test_every_rule_runs(self):
        prop = auto_property("Count", modifiers=["partial"], accessors=["set"], markers=[
            Marker("DependencyProperty", [MarkerArgument("true", name="Inherits", separator="=")])])
        verdict = validate_owner(build_owner([prop], base=UWP_FRAMEWORK_ELEMENT))
        self.assertEqual(["DR0003", "DR0006", "DR0008"], codes(verdict))


class OwnerRulesTestCase(unittest.TestCase):
    def test_owner_without_properties_is_not_validated(self):
        verdict = validate_owner(build_owner([method("CoerceWidth", ["int"])], modifiers=["public"], base=None))
        self.assertEqual([], codes(verdict))
        self.assertFalse(verdict.should_emit)

    def test_non_partial_owner(self):
        verdict = validate_owner(build_owner([auto_property("Count")], modifiers=["public"]))
        self.assertEqual(["DR0002"], codes(verdict))
        self.assertTrue(verdict.has_owner_errors)
        self.assertFalse(verdict.should_emit)

    def test_unknown_toolkit_skips_capability_rules(self):
        verdict = validate_owner(build_owner([inheritable(), method("ValidateCount", ["int"])], base=None))
        self.assertEqual(["DR0004", "DR0008"], codes(verdict))
        self.assertFalse(verdict.should_emit)

    def test_invalid_name_decoration(self):
        marker = Marker("CoerceCallbackNameDecoration", [MarkerArgument('""'), MarkerArgument('""')])
        verdict = validate_owner(build_owner([auto_property("Count")], markers=[marker]))
        self.assertEqual(["DR0015"], codes(verdict))
        self.assertFalse(verdict.should_emit)

    def test_orphans_are_reported_on_request(self):
        owner = build_owner([auto_property("Count"), method("CoerceWidth", ["int"])])
        self.assertEqual([], codes(validate_owner(owner)))
        verdict = validate_owner(owner, report_orphans=True)
        self.assertEqual(["DR0017"], codes(verdict))
        self.assertIn("CoerceWidth", verdict.all_diagnostics[0].message)
        self.assertTrue(verdict.should_emit)


class EmissionGateTestCase(unittest.TestCase):
    def setUp(self):
        self.owner = build_owner([auto_property("Count"), auto_property("Size", modifiers=["public"])])

    def test_all_or_nothing_by_default(self):
        verdict = validate_owner(self.owner)
        self.assertEqual(["Count"], [p.name for p in verdict.accepted_properties])
        self.assertFalse(verdict.should_emit)

    def test_partial_owners_on_request(self):
        verdict = validate_owner(self.owner, emit_partial_owners=True)
        self.assertTrue(verdict.should_emit)
        self.assertEqual(["Count"], [p.name for p in verdict.accepted_properties])


if __name__ == "__main__":
    unittest.main()
