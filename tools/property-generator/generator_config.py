#!/usr/bin/env python3
"""
YAML configuration for the dependency property generator.

Example ``depprop.yaml``:

    marker_namespace: DepRos
    file_prefix: DependencyProperties
    emit_partial_owners: false
    report_orphans: false
    output_directory: obj/generated
    debug_output_directory: null
    known_types:
      MyCompany.Controls.FancyBase: System.Windows.Controls.Control

Every key is optional. ``known_types`` maps framework types from referenced
assemblies to their base types, extending the built-in table used to detect
an owner's toolkit. Command line flags override file values.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Dict, Optional

try:
    import yaml
except ImportError:
    raise ImportError("Missing required dependency 'PyYAML': install with pip install pyyaml")

from errors import ConfigError
from markers import DEFAULT_MARKER_NAMESPACE
from emitters import DEFAULT_FILE_PREFIX

logger = logging.getLogger(__name__)


@dataclass
class GeneratorConfig:
    marker_namespace: str = DEFAULT_MARKER_NAMESPACE
    file_prefix: str = DEFAULT_FILE_PREFIX
    emit_partial_owners: bool = False
    report_orphans: bool = False
    output_directory: Optional[str] = None
    debug_output_directory: Optional[str] = None
    known_types: Dict[str, Optional[str]] = field(default_factory=dict)

    def with_overrides(self, **overrides) -> "GeneratorConfig":
        """Copy of this config with every non-None override applied."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return GeneratorConfig(**values)


EXPECTED_TYPES = {
    "marker_namespace": (str,),
    "file_prefix": (str,),
    "emit_partial_owners": (bool,),
    "report_orphans": (bool,),
    "output_directory": (str, type(None)),
    "debug_output_directory": (str, type(None)),
    "known_types": (dict, type(None)),
}


def _fail(message):
    logger.error(message)
    raise ConfigError(message)


def config_from_dict(data: Optional[dict], source: str = "<config>") -> GeneratorConfig:
    if data is None:
        return GeneratorConfig()
    if not isinstance(data, dict):
        _fail(f"{source}: expected a mapping at the top level, got {type(data).__name__}")

    for key, value in data.items():
        if key not in EXPECTED_TYPES:
            _fail(f"{source}: unknown configuration key '{key}'")
        if not isinstance(value, EXPECTED_TYPES[key]):
            expected = " or ".join("null" if t is type(None) else t.__name__ for t in EXPECTED_TYPES[key])
            _fail(f"{source}: '{key}' must be {expected}, got {type(value).__name__}")

    for key in ("marker_namespace", "file_prefix"):
        if key in data and not data[key].strip():
            _fail(f"{source}: '{key}' must not be empty")

    known_types = data.get("known_types") or {}
    for name, base in known_types.items():
        if not isinstance(name, str) or not (base is None or isinstance(base, str)):
            _fail(f"{source}: known_types entries must map a type name to a base type name or null")

    values = dict(data)
    values["known_types"] = dict(known_types)
    return GeneratorConfig(**values)


def load_config(path: Optional[str]) -> GeneratorConfig:
    """
    Load the configuration file at ``path``; defaults when ``path`` is None.

    Raises:
        ConfigError: when the file cannot be read or parsed, or holds unknown
            keys or values of the wrong type.
    """
    if path is None:
        return GeneratorConfig()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        _fail(f"Cannot read configuration file {path}: {e}")
    except yaml.YAMLError as e:
        _fail(f"Invalid YAML in configuration file {path}: {e}")

    config = config_from_dict(data, path)
    logger.debug(f"Loaded configuration from {path}: {config}")
    return config
