"""
Diagnostic descriptors and the sink collecting reported diagnostics.

The core only decides which (descriptor, location, arguments) triples to
report; rendering them is left to the caller. ``str(diagnostic)`` gives the
MSBuild-style line ``path(line,col): error DR0001: message``.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Tuple

from declarations import Location, NO_LOCATION

logger = logging.getLogger(__name__)


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class DiagnosticDescriptor:
    code: str
    title: str
    message_format: str
    severity: Severity
    excludes: bool = False

    def format(self, *arguments) -> str:
        return self.message_format.format(*arguments)


INVALID_PROPERTY = DiagnosticDescriptor(
    "DR0001",
    "[DependencyProperty] marker must be applied to partial auto properties only",
    "The {0} property in {1} is marked with [DependencyProperty], but it is not a partial auto property",
    Severity.ERROR, excludes=True)

INVALID_OWNER = DiagnosticDescriptor(
    "DR0002",
    "Dependency property owner must be a top-level partial class",
    "Dependency properties are declared in {0}, which is not a partial top-level class",
    Severity.ERROR)

UNREADABLE_PROPERTY = DiagnosticDescriptor(
    "DR0003",
    "Missing accessible getter for the property marked with [DependencyProperty]",
    "The {0} property in {1} has no accessible getter, required by the [DependencyProperty] marker",
    Severity.ERROR, excludes=True)

UNKNOWN_TOOLKIT = DiagnosticDescriptor(
    "DR0004",
    "Dependency properties are supported for Avalonia, UWP, WinUI and WPF objects only",
    "The {0} class owning dependency properties does not derive from a known Avalonia, UWP, WinUI or WPF "
    "dependency object",
    Severity.ERROR)

DEFAULT_VALUE_IS_WRITABLE = DiagnosticDescriptor(
    "DR0005",
    "Default property value can be modified",
    "The {0} field in {1} is neither const nor readonly, this could result in unexpected behaviour; "
    "consider adding the readonly modifier",
    Severity.WARNING)

INHERITANCE_IS_UNSUPPORTED = DiagnosticDescriptor(
    "DR0006",
    "Dependency property inheritance is supported by Avalonia and WPF only",
    "The {0} property in {1} cannot be inheritable, since inheritance is supported only by Avalonia and WPF",
    Severity.ERROR, excludes=True)

TOO_MANY_MARKERS = DiagnosticDescriptor(
    "DR0007",
    "Too many DependencyProperty and/or AttachedProperty markers",
    "The {0} property in {1} must be declared by exactly one DependencyProperty or AttachedProperty marker",
    Severity.ERROR, excludes=True)

NON_ATTACHED_BUT_INHERITABLE = DiagnosticDescriptor(
    "DR0008",
    "Inheritable properties should be attached",
    "The {0} property in {1} is inheritable but not attached, this could cause run-time issues",
    Severity.WARNING)

VALIDATION_IS_UNSUPPORTED = DiagnosticDescriptor(
    "DR0009",
    "Dependency property validation callback is supported by WPF only",
    "The validation callback of the {0} property in {1} is ignored, since validation is supported only by WPF; "
    "use a coerce callback instead",
    Severity.WARNING)

COERCION_IS_UNSUPPORTED = DiagnosticDescriptor(
    "DR0010",
    "Dependency property value coercion is supported by Avalonia and WPF only",
    "The coerce value callback of the {0} property in {1} is ignored, since value coercion is supported only "
    "by Avalonia and WPF",
    Severity.WARNING)

INHERITANCE_REQUIRES_FRAMEWORK_ELEMENT = DiagnosticDescriptor(
    "DR0011",
    "Inheritable properties require a FrameworkElement owner",
    "The {0} property is inheritable, but {1} does not derive from FrameworkElement",
    Severity.ERROR, excludes=True)

UNSUPPORTED_CHANGED_HANDLER = DiagnosticDescriptor(
    "DR0012",
    "Ignoring unsupported property changed handler prototype",
    "The {0} method in {1} must accept no parameters, a single {2} parameter, two such parameters, "
    "or a property changed event args object",
    Severity.WARNING)

INVALID_MARKER_ARGUMENTS = DiagnosticDescriptor(
    "DR0013",
    "Invalid dependency property marker arguments",
    "The {0} marker of the {1} property in {2} has invalid arguments: {3}",
    Severity.ERROR, excludes=True)

UNRECOGNIZED_MARKER_ARGUMENT = DiagnosticDescriptor(
    "DR0014",
    "Ignoring unrecognized marker argument",
    "The {0} marker of the {1} property in {2} has an argument matching no parameter; it is ignored",
    Severity.WARNING)

INVALID_NAME_DECORATION = DiagnosticDescriptor(
    "DR0015",
    "Invalid naming convention marker",
    "The {0} marker applying to {1} is invalid: {2}",
    Severity.ERROR)

BINDING_MODE_IS_UNSUPPORTED = DiagnosticDescriptor(
    "DR0016",
    "Default binding mode cannot be expressed for the toolkit",
    "The {0} default binding mode of the {1} property in {2} cannot be expressed for {3}; it is ignored",
    Severity.WARNING)

ORPHAN_CONVENTION_MEMBER = DiagnosticDescriptor(
    "DR0017",
    "Naming convention member without a dependency property",
    "The {0} member in {1} follows the {2} naming convention, but there is no {3} dependency property",
    Severity.WARNING)

INSTANCE_MEMBER_IS_IGNORED = DiagnosticDescriptor(
    "DR0018",
    "Default value field and validation callback must be static",
    "The {0} member in {1} is not static and cannot be the {2} of the {3} property; it is ignored",
    Severity.WARNING)

ALL_DESCRIPTORS = (
    INVALID_PROPERTY,
    INVALID_OWNER,
    UNREADABLE_PROPERTY,
    UNKNOWN_TOOLKIT,
    DEFAULT_VALUE_IS_WRITABLE,
    INHERITANCE_IS_UNSUPPORTED,
    TOO_MANY_MARKERS,
    NON_ATTACHED_BUT_INHERITABLE,
    VALIDATION_IS_UNSUPPORTED,
    COERCION_IS_UNSUPPORTED,
    INHERITANCE_REQUIRES_FRAMEWORK_ELEMENT,
    UNSUPPORTED_CHANGED_HANDLER,
    INVALID_MARKER_ARGUMENTS,
    UNRECOGNIZED_MARKER_ARGUMENT,
    INVALID_NAME_DECORATION,
    BINDING_MODE_IS_UNSUPPORTED,
    ORPHAN_CONVENTION_MEMBER,
    INSTANCE_MEMBER_IS_IGNORED,
)


@dataclass(frozen=True)
class Diagnostic:
    descriptor: DiagnosticDescriptor
    location: Location = NO_LOCATION
    arguments: Tuple = ()

    @property
    def code(self) -> str:
        return self.descriptor.code

    @property
    def severity(self) -> Severity:
        return self.descriptor.severity

    @property
    def is_error(self) -> bool:
        return self.descriptor.severity is Severity.ERROR

    @property
    def message(self) -> str:
        return self.descriptor.format(*self.arguments)

    def to_dict(self):
        return {
            "code": self.code,
            "severity": self.severity.value,
            "message": self.message,
            "path": self.location.path,
            "line": self.location.line,
            "column": self.location.column,
        }

    def __str__(self) -> str:
        return f"{self.location}: {self.severity.value} {self.code}: {self.message}"


def diagnostic(descriptor: DiagnosticDescriptor, location: Location, *arguments) -> Diagnostic:
    return Diagnostic(descriptor, location or NO_LOCATION, tuple(arguments))


class DiagnosticSink:
    """List-backed collector of reported diagnostics."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []

    def report(self, item: Diagnostic):
        logger.debug(f"Reported {item}")
        self.diagnostics.append(item)

    def extend(self, items: Iterable[Diagnostic]):
        for item in items:
            self.report(item)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.diagnostics)

    def __len__(self) -> int:
        return len(self.diagnostics)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if not d.is_error]

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    def with_code(self, code: str) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.code == code]
