#!/usr/bin/env python3
"""
Dependency property generator driver and command line interface.

Pipeline
========

1. Collect ``.cs`` files under ``--path`` (recursively with ``--recursive``)
   and parse them with tree-sitter into one Compilation.
2. Build an OwnerRecord for every type declaration of the compilation.
3. Validate each owner against its toolkit; owners without dependency
   properties produce neither diagnostics nor output.
4. Emit one ``<prefix>-<namespace>-<Name>.g.cs`` unit per accepted owner,
   using the emitter of the owner's toolkit.

The core steps (2-4) do no I/O; files are read and written here only.

Outputs
=======

- ``--output DIR``: generated units are written to DIR; without it they are
  printed to stdout.
- ``--debug-output DIR``: every generated unit is mirrored into DIR.
- ``--model-output FILE``: JSON dump of the owner and property records,
  grouped by namespace, with the diagnostics of each owner.

Diagnostics are printed to stderr in the MSBuild shape
``path(line,col): error DR0001: message``. The exit status is 1 when an
error diagnostic was reported or the run failed.
"""

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from csharp_parser import CSharpParser
from constant_resolver import ConstantResolver
from declarations import Compilation
from diagnostics import Diagnostic, DiagnosticSink
from emitters import emit_owner, generated_file_name
from errors import GeneratorError
from generator_config import GeneratorConfig, load_config
from markers import MarkerRecognizer
from owner_record import OwnerModelBuilder, OwnerRecord
from property_bag import PropertyBag
from toolkit import LineageResolver
from validation import OwnerVerdict, validate_owner

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".cs"


@dataclass
class GeneratedUnit:
    file_name: str
    text: str
    owner: OwnerRecord


@dataclass
class GenerationResult:
    units: List[GeneratedUnit] = field(default_factory=list)
    verdicts: List[OwnerVerdict] = field(default_factory=list)
    diagnostics: DiagnosticSink = field(default_factory=DiagnosticSink)

    @property
    def has_errors(self) -> bool:
        return self.diagnostics.has_errors

    def unit(self, file_name: str) -> Optional[GeneratedUnit]:
        for unit in self.units:
            if unit.file_name == file_name:
                return unit
        return None

    def model(self) -> PropertyBag:
        """Owners with dependency properties, keyed by namespace then name."""
        model = PropertyBag()
        for verdict in self.verdicts:
            owner = verdict.owner
            if not owner.properties:
                continue
            entry = owner.to_dict()
            entry["emitted"] = any(u.owner is owner for u in self.units)
            entry["diagnostics"] = [d.to_dict() for d in verdict.all_diagnostics]
            declarations = model[owner.namespace or "<global>"][owner.name]
            declarations.setdefault("declarations", []).append(entry)
        return model


def collect_source_files(path, recursive: bool = False) -> List[Path]:
    path = Path(path)
    if path.is_file():
        return [path.resolve()]
    file_iter = path.rglob(f"*{SOURCE_SUFFIX}") if recursive else path.glob(f"*{SOURCE_SUFFIX}")
    return sorted(p.resolve() for p in file_iter if p.is_file())


def parse_sources(paths: Iterable, parser: Optional[CSharpParser] = None) -> Compilation:
    parser = parser or CSharpParser()
    compilation = Compilation()
    for path in paths:
        compilation.add_unit(parser.parse_file(path))
    return compilation


def _unique_file_name(file_name: str, taken: Dict[str, int]) -> str:
    count = taken.get(file_name, 0) + 1
    taken[file_name] = count
    if count == 1:
        return file_name
    stem = file_name[:-len(".g.cs")]
    return f"{stem}-{count}.g.cs"


def generate(compilation: Compilation, config: Optional[GeneratorConfig] = None) -> GenerationResult:
    """
    Build, validate and emit every owner of ``compilation``.

    Identical diagnostics reported by several declarations of the same
    partial type are kept once.
    """
    config = config or GeneratorConfig()
    builder = OwnerModelBuilder(
        compilation,
        recognizer=MarkerRecognizer(config.marker_namespace),
        resolver=ConstantResolver(compilation),
        lineage_resolver=LineageResolver(compilation, config.known_types),
    )

    result = GenerationResult()
    seen = set()
    taken_names: Dict[str, int] = {}

    for declaration in compilation.all_types():
        owner = builder.build(declaration)
        verdict = validate_owner(owner, config.emit_partial_owners, config.report_orphans)
        result.verdicts.append(verdict)

        for item in verdict.all_diagnostics:
            key = (item.code, str(item.location), item.message)
            if key in seen:
                continue
            seen.add(key)
            result.diagnostics.report(item)

        if not verdict.should_emit:
            if owner.properties:
                logger.debug(f"Skipping {owner.full_name}: owner or properties rejected")
            continue

        file_name = _unique_file_name(generated_file_name(owner, config.file_prefix), taken_names)
        text = emit_owner(owner, verdict.accepted_properties)
        result.units.append(GeneratedUnit(file_name, text, owner))

    logger.info(f"Generated {len(result.units)} units, {len(result.diagnostics.errors)} errors, "
                f"{len(result.diagnostics.warnings)} warnings")
    return result


def write_units(units: Iterable[GeneratedUnit], directory) -> List[Path]:
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    written = []
    for unit in units:
        target = directory / unit.file_name
        with open(target, "w", encoding="utf-8") as f:
            f.write(unit.text)
        logger.debug(f"Wrote {target}")
        written.append(target)
    return written


def write_model(result: GenerationResult, path):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(result.model(), f, indent=4, sort_keys=True)


def report_diagnostics(diagnostics: Iterable[Diagnostic], stream=None):
    stream = stream or sys.stderr
    for item in diagnostics:
        print(str(item), file=stream)


def generate_options():
    """
    Create the argument parser of the generator CLI.

    - --path (required): a ``.cs`` file or a directory of them.
    - --recursive: scan the directory recursively.
    - --output: directory receiving the generated units (stdout if omitted).
    - --config: YAML configuration file.
    - --model-output: JSON file receiving the owner and property records.
    - --debug-output: directory receiving a copy of every generated unit.
    - --emit-partial-owners: emit accepted properties of owners with rejected ones.
    - --report-orphans: warn about naming convention members without a property.
    - -v / --verbose: DEBUG-level logging.
    """
    import argparse

    arg_parser = argparse.ArgumentParser(
        description="Generate dependency property boilerplate for Avalonia, UWP, WinUI and WPF classes"
    )
    arg_parser.add_argument("--path", type=str, required=True, help="C# source file or directory")
    arg_parser.add_argument("--recursive", action="store_true", help="Scan path recursively")

    arg_parser.add_argument("--output", type=str, help="Directory for generated files")
    arg_parser.add_argument("--config", type=str, help="YAML configuration file")
    arg_parser.add_argument("--model-output", type=str, help="JSON dump of the owner and property model")
    arg_parser.add_argument("--debug-output", type=str, help="Directory mirroring every generated file")

    arg_parser.add_argument("--emit-partial-owners", action="store_true", default=None,
                            help="Emit the accepted properties of owners with rejected properties")
    arg_parser.add_argument("--report-orphans", action="store_true", default=None,
                            help="Warn about naming convention members matching no property")
    arg_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return arg_parser


def run(options) -> int:
    if not os.path.exists(options.path):
        logger.error(f'Path does not exist: "{options.path}".')
        return 1

    config = load_config(options.config).with_overrides(
        output_directory=options.output,
        debug_output_directory=options.debug_output,
        emit_partial_owners=options.emit_partial_owners,
        report_orphans=options.report_orphans,
    )

    files = collect_source_files(options.path, options.recursive)
    if not files:
        logger.warning(f"No {SOURCE_SUFFIX} files found under {options.path}")
        return 0

    result = generate(parse_sources(files), config)
    report_diagnostics(result.diagnostics)

    if config.output_directory:
        write_units(result.units, config.output_directory)
        print(f"Generated {len(result.units)} files in {config.output_directory}")
    else:
        for unit in result.units:
            print(f"// {unit.file_name}")
            print(unit.text)

    if config.debug_output_directory:
        write_units(result.units, config.debug_output_directory)

    if options.model_output:
        write_model(result, options.model_output)
        print(f"Model JSON generated at {options.model_output}")

    return 1 if result.has_errors else 0


def main(argv=None):
    options = generate_options().parse_args(argv)

    if options.verbose:
        logging.basicConfig(level="DEBUG")
    else:
        logging.basicConfig(level="WARNING")

    try:
        status = run(options)
    except GeneratorError as e:
        logging.error(f"Generation failed: {e}")
        sys.exit(1)
    except OSError as e:
        logging.error(f"Failed to write output: {e}")
        sys.exit(1)
    sys.exit(status)


if __name__ == "__main__":
    main()
