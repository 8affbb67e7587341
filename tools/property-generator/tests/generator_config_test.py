import os
import tempfile
import unittest
from errors import ConfigError
from generator_config import GeneratorConfig, config_from_dict, load_config


class GeneratorConfigTestCase(unittest.TestCase):
    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.directory.cleanup()

    def write(self, text):
        path = os.path.join(self.directory.name, "depprop.yaml")
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_defaults_without_a_file(self):
        config = load_config(None)
        self.assertEqual("DepRos", config.marker_namespace)
        self.assertEqual("DependencyProperties", config.file_prefix)
        self.assertFalse(config.emit_partial_owners)
        self.assertFalse(config.report_orphans)
        self.assertEqual({}, config.known_types)

    def test_empty_file(self):
        self.assertEqual(GeneratorConfig(), load_config(self.write("")))

    def test_values(self):
        config = load_config(self.write(
            "marker_namespace: MyCompany.Markers\n"
            "file_prefix: Props\n"
            "report_orphans: true\n"
            "output_directory: obj/generated\n"
            "known_types:\n"
            "  Vendor.FancyBase: System.Windows.Controls.Control\n"
        ))
        self.assertEqual("MyCompany.Markers", config.marker_namespace)
        self.assertEqual("Props", config.file_prefix)
        self.assertTrue(config.report_orphans)
        self.assertEqual("obj/generated", config.output_directory)
        self.assertEqual({"Vendor.FancyBase": "System.Windows.Controls.Control"}, config.known_types)

    def test_unknown_key(self):
        with self.assertRaises(ConfigError):
            load_config(self.write("marker_namespaces: DepRos\n"))

    def test_wrong_type(self):
        with self.assertRaises(ConfigError):
            load_config(self.write("report_orphans: sometimes\n"))

    def test_empty_prefix(self):
        with self.assertRaises(ConfigError):
            config_from_dict({"file_prefix": "  "})

    def test_bad_known_types(self):
        with self.assertRaises(ConfigError):
            config_from_dict({"known_types": {"Vendor.FancyBase": 3}})

    def test_not_a_mapping(self):
        with self.assertRaises(ConfigError):
            load_config(self.write("- DepRos\n"))

    def test_invalid_yaml(self):
        with self.assertRaises(ConfigError):
            load_config(self.write("marker_namespace: [unclosed\n"))

    def test_missing_file(self):
        with self.assertRaises(ConfigError):
            load_config(os.path.join(self.directory.name, "missing.yaml"))

    def test_overrides_skip_none(self):
        config = GeneratorConfig(report_orphans=True, output_directory="out")
        overridden = config.with_overrides(report_orphans=None, output_directory="gen", emit_partial_owners=True)
        self.assertTrue(overridden.report_orphans)
        self.assertTrue(overridden.emit_partial_owners)
        self.assertEqual("gen", overridden.output_directory)
        self.assertEqual("out", config.output_directory)


if __name__ == "__main__":
    unittest.main()
