"""
Tests for the tree-sitter C# front end.

Tests cover:
- Using directives (plain, alias, static, global) and namespaces
- Type declarations with modifiers, base lists and nesting
- Fields, auto properties, accessors and methods
- Markers on types, members and assemblies, with their arguments
"""

import unittest
import sys
import os

# Add property-generator directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../../../tools/property-generator'))

from csharp_parser import CSharpParser, parse_using_directive
from declarations import FieldDeclaration, MethodDeclaration, PropertyDeclaration
from errors import SourceParseError

WIDGET_SOURCE = """
using System.Windows;
using DepRos;
using Ctl = System.Windows.Controls;

[assembly: CoerceCallbackNameDecoration("Adjust")]

namespace Demo.Controls
{
    [WithAttachedProperty<bool>("Flag", false, ReadOnly = true)]
    public partial class Widget : FrameworkElement, IDisposable
    {
        private const int defaultForCount = 5, defaultForSize = 7;

        [DependencyProperty(inherits: true)]
        public partial int Count { get; private set; }

        public string Title => "widget";

        private int AdjustCount(int value) => value < 0 ? 0 : value;

        private static void OnCountChanged(int oldValue, int newValue)
        {
        }

        public void Dispose() { }

        public partial class Nested : Ctl.Control
        {
        }
    }
}
"""


class CSharpParserTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.parser = CSharpParser()

    def setUp(self):
        self.unit = self.parser.parse_source(WIDGET_SOURCE, "Widget.cs")
        self.widget = self.unit.types[0]

    def test_usings(self):
        self.assertEqual(["System.Windows", "DepRos", "System.Windows.Controls"],
                         [u.namespace for u in self.unit.usings])
        self.assertEqual("Ctl", self.unit.usings[2].alias)
        self.assertEqual(self.unit.usings, self.widget.usings)

    def test_assembly_markers(self):
        self.assertEqual(1, len(self.unit.markers))
        marker = self.unit.markers[0]
        self.assertEqual("CoerceCallbackNameDecoration", marker.name)
        self.assertEqual("assembly", marker.target)
        self.assertEqual(['"Adjust"'], [a.expression for a in marker.arguments])

    def test_type_declaration(self):
        self.assertFalse(self.unit.has_errors)
        self.assertEqual("class", self.widget.kind)
        self.assertEqual("Widget", self.widget.name)
        self.assertEqual("Demo.Controls", self.widget.namespace)
        self.assertEqual("Demo.Controls.Widget", self.widget.qualified_name)
        self.assertEqual(["public", "partial"], self.widget.modifiers)
        self.assertEqual(["FrameworkElement", "IDisposable"], self.widget.base_types)
        self.assertEqual(11, self.widget.identifier_location.line)

    def test_class_marker(self):
        marker = self.widget.markers[0]
        self.assertEqual(["bool"], marker.type_arguments)
        self.assertEqual(['"Flag"', "false", "true"], [a.expression for a in marker.arguments])
        self.assertEqual([None, None, "ReadOnly"], [a.name for a in marker.arguments])
        self.assertEqual("=", marker.arguments[2].separator)

    def test_fields(self):
        fields = [m for m in self.widget.members if isinstance(m, FieldDeclaration)]
        self.assertEqual(1, len(fields))
        self.assertEqual("int", fields[0].type_name)
        self.assertEqual(["private", "const"], fields[0].modifiers)
        self.assertEqual([("defaultForCount", "5"), ("defaultForSize", "7")],
                         [(d.name, d.initializer) for d in fields[0].declarators])

    def test_properties(self):
        count, title = [m for m in self.widget.members if isinstance(m, PropertyDeclaration)]
        self.assertEqual("Count", count.name)
        self.assertEqual("int", count.type_name)
        self.assertEqual(["public", "partial"], count.modifiers)
        self.assertEqual(["get", "set"], [a.kind for a in count.accessors])
        self.assertEqual(["private"], count.accessor("set").modifiers)
        self.assertFalse(any(a.has_body for a in count.accessors))
        self.assertEqual("inherits", count.markers[0].arguments[0].name)
        self.assertEqual(":", count.markers[0].arguments[0].separator)

        self.assertIsNone(title.accessors)
        self.assertTrue(title.has_expression_body)

    def test_methods(self):
        methods = {m.name: m for m in self.widget.members if isinstance(m, MethodDeclaration)}
        self.assertEqual(["AdjustCount", "OnCountChanged", "Dispose"], list(methods))
        self.assertEqual("int", methods["AdjustCount"].return_type)
        self.assertEqual(["int", "int"], [p.type_name for p in methods["OnCountChanged"].parameters])
        self.assertIn("static", methods["OnCountChanged"].modifiers)
        self.assertEqual([], methods["Dispose"].parameters)

    def test_nested_types(self):
        nested = self.widget.nested_types[0]
        self.assertEqual("Nested", nested.name)
        self.assertIs(self.widget, nested.parent)
        self.assertTrue(nested.is_nested)
        self.assertEqual("Demo.Controls.Widget.Nested", nested.qualified_name)
        self.assertEqual(["Ctl.Control"], nested.base_types)
        self.assertEqual(["Widget", "Nested"], [t.name for t in self.unit.all_types()])

    def test_type_parameters(self):
        self.assertEqual([], self.widget.type_parameters)
        unit = self.parser.parse_source(
            "public partial class Box<TKey, TValue> : FrameworkElement where TValue : class { }\n", "Box.cs")
        self.assertEqual(["TKey", "TValue"], unit.types[0].type_parameters)
        self.assertEqual(["FrameworkElement"], unit.types[0].base_types)

    def test_file_scoped_namespace(self):
        unit = self.parser.parse_source(
            "namespace Demo.Scoped;\n\npublic partial class Panel : Avalonia.Controls.Control { }\n", "Panel.cs")
        self.assertEqual("Demo.Scoped", unit.types[0].namespace)

    def test_syntax_errors_do_not_stop_the_walk(self):
        unit = self.parser.parse_source("public partial class Broken { int x = ; }\npublic class Fine { }\n", "Broken.cs")
        self.assertTrue(unit.has_errors)
        self.assertIn("Fine", [t.name for t in unit.all_types()])

    def test_unreadable_file(self):
        with self.assertRaises(SourceParseError):
            self.parser.parse_file(os.path.join(os.path.dirname(__file__), "missing.cs"))


class UsingDirectiveTestCase(unittest.TestCase):
    def test_forms(self):
        plain = parse_using_directive("using System.Windows;")
        self.assertEqual(("System.Windows", None, False, False),
                         (plain.namespace, plain.alias, plain.is_static, plain.is_global))
        alias = parse_using_directive("using Ctl = System.Windows.Controls;")
        self.assertEqual(("System.Windows.Controls", "Ctl"), (alias.namespace, alias.alias))
        static = parse_using_directive("using static System.Math;")
        self.assertTrue(static.is_static)
        global_using = parse_using_directive("global using global::DepRos;")
        self.assertTrue(global_using.is_global)
        self.assertEqual("DepRos", global_using.namespace)

    def test_not_a_using(self):
        self.assertIsNone(parse_using_directive("namespace Demo;"))


if __name__ == "__main__":
    unittest.main()
