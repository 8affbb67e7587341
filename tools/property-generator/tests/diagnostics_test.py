import unittest
import diagnostics as dr
from declarations import Location, NO_LOCATION
from diagnostics import ALL_DESCRIPTORS, DiagnosticSink, Severity, diagnostic


class DescriptorTestCase(unittest.TestCase):
    def test_codes_are_unique_and_sequential(self):
        codes = [d.code for d in ALL_DESCRIPTORS]
        self.assertEqual([f"DR{i:04d}" for i in range(1, 19)], codes)

    def test_only_errors_exclude_properties(self):
        for descriptor in ALL_DESCRIPTORS:
            if descriptor.excludes:
                self.assertEqual(Severity.ERROR, descriptor.severity, descriptor.code)

    def test_owner_errors_do_not_exclude_single_properties(self):
        for descriptor in [dr.INVALID_OWNER, dr.UNKNOWN_TOOLKIT, dr.INVALID_NAME_DECORATION]:
            self.assertEqual(Severity.ERROR, descriptor.severity)
            self.assertFalse(descriptor.excludes)


class DiagnosticTestCase(unittest.TestCase):
    def test_msbuild_rendering(self):
        item = diagnostic(dr.INVALID_OWNER, Location("Widget.cs", 3, 22), "Demo.Widget")
        self.assertEqual(
            "Widget.cs(3,22): error DR0002: Dependency properties are declared in Demo.Widget, "
            "which is not a partial top-level class",
            str(item))

    def test_missing_location(self):
        self.assertEqual(NO_LOCATION, diagnostic(dr.INVALID_OWNER, None, "Widget").location)

    def test_to_dict(self):
        item = diagnostic(dr.DEFAULT_VALUE_IS_WRITABLE, Location("Widget.cs", 5, 9), "defaultForCount", "Widget")
        self.assertEqual({
            "code": "DR0005",
            "severity": "warning",
            "message": item.message,
            "path": "Widget.cs",
            "line": 5,
            "column": 9,
        }, item.to_dict())
        self.assertIn("defaultForCount", item.message)

    def test_sink(self):
        sink = DiagnosticSink()
        sink.report(diagnostic(dr.INVALID_OWNER, NO_LOCATION, "Widget"))
        sink.extend([diagnostic(dr.NON_ATTACHED_BUT_INHERITABLE, NO_LOCATION, "Count", "Widget")])
        self.assertEqual(2, len(sink))
        self.assertTrue(sink.has_errors)
        self.assertEqual(["DR0002"], [d.code for d in sink.errors])
        self.assertEqual(["DR0008"], [d.code for d in sink.warnings])
        self.assertEqual(1, len(sink.with_code("DR0008")))


if __name__ == "__main__":
    unittest.main()
