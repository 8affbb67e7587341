"""
Recognized markers (C# attributes) and their argument schemas.

MARKER RECOGNITION
==================

The generator understands a closed set of markers declared in the marker
namespace (``DepRos`` unless configured otherwise):

- ``[DependencyProperty]``            on partial auto properties
- ``[AttachedProperty]``              on ``defaultFor*`` fields
- ``[WithAttachedProperty<T>(...)]``  on classes
- ``[*NameDecoration(...)]``          on classes, modules and assemblies

A marker written with a qualified name (``DepRos.DependencyProperty``, or
through a ``using`` alias) is matched exactly. A simple name is matched
exactly when the marker namespace is imported or encloses the declaration;
otherwise it is still accepted by suffix-normalized text comparison, at
TEXTUAL confidence, since the referenced assemblies are not available.

ARGUMENT BINDING
================

Unnamed arguments bind in constructor-parameter order. Named arguments,
``inherits: true`` or ``Inherits = true``, bind by their name normalized to
PascalCase. The first argument that fits no slot is remembered as the extra
argument; later ones are not tracked.
"""

import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from constant_resolver import ConstantResolver, EnumMember
from declarations import Compilation, Location, Marker, MarkerArgument, TypeDeclaration, UsingDirective
from decoration import Decoration, DecorationKind
from errors import DecorationError

logger = logging.getLogger(__name__)

DEFAULT_MARKER_NAMESPACE = "DepRos"

GENERIC_SUFFIX_PATTERN = re.compile(r"<.*>$")


class BindingMode(Enum):
    """Portable default binding mode; ordinals follow the marker library's enum."""

    ONE_WAY = ("OneWay", 0)
    ONE_TIME = ("OneTime", 1)
    TWO_WAY = ("TwoWay", 2)

    def __init__(self, member_name, ordinal):
        self.member_name = member_name
        self.ordinal = ordinal

    @classmethod
    def parse(cls, value) -> Optional["BindingMode"]:
        if isinstance(value, EnumMember):
            value = value.member
        for mode in cls:
            if value == mode.member_name or (isinstance(value, int) and not isinstance(value, bool)
                                             and value == mode.ordinal):
                return mode
        return None


class ReadWriteMode(Enum):
    AUTO = "Auto"
    READ_ONLY = "ReadOnly"
    READ_WRITE = "ReadWrite"

    @classmethod
    def parse(cls, value) -> Optional["ReadWriteMode"]:
        if isinstance(value, EnumMember):
            value = value.member
        if isinstance(value, int) and not isinstance(value, bool):
            members = list(cls)
            return members[value] if 0 <= value < len(members) else None
        for mode in cls:
            if value == mode.value:
                return mode
        return None


class MarkerKind(Enum):
    DEPENDENCY_PROPERTY = "DependencyProperty"
    ATTACHED_PROPERTY = "AttachedProperty"
    WITH_ATTACHED_PROPERTY = "WithAttachedProperty"
    DEFAULT_VALUE_NAME_DECORATION = "DefaultValueNameDecoration"
    COERCE_CALLBACK_NAME_DECORATION = "CoerceCallbackNameDecoration"
    VALIDATE_CALLBACK_NAME_DECORATION = "ValidateCallbackNameDecoration"
    PROPERTY_CHANGED_HANDLER_NAME_DECORATION = "PropertyChangedHandlerNameDecoration"

    @property
    def attribute_name(self) -> str:
        return f"{self.value}Attribute"

    @classmethod
    def for_decoration(cls, kind: DecorationKind) -> "MarkerKind":
        return cls(kind.marker_name)


class MarkerConfidence(Enum):
    EXACT = "exact"
    TEXTUAL = "textual"


@dataclass
class MarkerMatch:
    kind: MarkerKind
    marker: Marker
    confidence: MarkerConfidence


def _attribute_name(name):
    return name if name.endswith("Attribute") else f"{name}Attribute"


class MarkerRecognizer:
    def __init__(self, namespace: str = DEFAULT_MARKER_NAMESPACE):
        self.namespace = namespace
        self._kinds = {kind.attribute_name: kind for kind in MarkerKind}

    def recognize(self, marker: Marker, usings: Iterable[UsingDirective] = (),
                  namespace: str = "") -> Optional[MarkerMatch]:
        usings = list(usings)
        name = GENERIC_SUFFIX_PATTERN.sub("", marker.name.strip())
        if name.startswith("global::"):
            name = name[len("global::"):]

        qualifier, _, simple = name.rpartition(".")
        if not qualifier:
            alias = self._alias_target(simple, usings)
            if alias is not None:
                qualifier, _, simple = alias.rpartition(".")
        else:
            head, _, rest = qualifier.partition(".")
            alias = self._alias_target(head, usings)
            if alias is not None:
                qualifier = f"{alias}.{rest}" if rest else alias

        kind = self._kinds.get(_attribute_name(simple))
        if kind is None:
            return None

        if qualifier:
            if qualifier != self.namespace:
                return None
            return MarkerMatch(kind, marker, MarkerConfidence.EXACT)

        if self._is_imported(usings, namespace):
            return MarkerMatch(kind, marker, MarkerConfidence.EXACT)

        logger.debug(f"Marker '{marker.name}' at {marker.location} matched by name only")
        return MarkerMatch(kind, marker, MarkerConfidence.TEXTUAL)

    def find(self, markers: Iterable[Marker], kind: MarkerKind, usings: Iterable[UsingDirective] = (),
             namespace: str = "") -> List[MarkerMatch]:
        usings = list(usings)
        found = []
        for marker in markers:
            match = self.recognize(marker, usings, namespace)
            if match is not None and match.kind is kind:
                found.append(match)
        return found

    def find_for(self, declaration: TypeDeclaration, markers: Iterable[Marker], kind: MarkerKind) -> List[MarkerMatch]:
        """Markers of ``kind`` among ``markers``, recognized in the context of ``declaration``."""
        return self.find(markers, kind, declaration.usings, declaration.namespace)

    def _alias_target(self, name, usings):
        for using in usings:
            if using.alias == name:
                return using.namespace
        return None

    def _is_imported(self, usings, namespace):
        if namespace == self.namespace or namespace.startswith(f"{self.namespace}."):
            return True
        return any(u.namespace == self.namespace and u.alias is None and not u.is_static for u in usings)


@dataclass(frozen=True)
class MarkerParameter:
    name: str
    kind: str
    required: bool = False
    default: Any = None


INHERITS = MarkerParameter("Inherits", "bool", default=False)
READ_ONLY = MarkerParameter("ReadOnly", "bool", default=False)
BINDING_MODE = MarkerParameter("BindingMode", "binding_mode", default=BindingMode.ONE_WAY)
READ_WRITE_MODE = MarkerParameter("ReadWriteMode", "read_write_mode", default=ReadWriteMode.AUTO)

MARKER_SCHEMAS: Dict[MarkerKind, Tuple[MarkerParameter, ...]] = {
    MarkerKind.DEPENDENCY_PROPERTY: (INHERITS, BINDING_MODE, READ_WRITE_MODE),
    MarkerKind.ATTACHED_PROPERTY: (INHERITS, READ_ONLY, BINDING_MODE),
    MarkerKind.WITH_ATTACHED_PROPERTY: (
        MarkerParameter("Name", "string", required=True),
        MarkerParameter("DefaultValue", "value", required=True),
        INHERITS,
        BINDING_MODE,
        READ_ONLY,
    ),
}


def to_pascal_case(name: str) -> str:
    name = name.lstrip("@")
    return name[:1].upper() + name[1:]


@dataclass
class BoundArguments:
    """Result of binding one marker's arguments to its schema."""
    values: Dict[str, Any] = field(default_factory=dict)
    arguments: Dict[str, MarkerArgument] = field(default_factory=dict)
    problems: List[str] = field(default_factory=list)
    extra_argument: Optional[MarkerArgument] = None
    has_invalid_binding_mode: bool = False

    def get(self, name: str, default=None):
        return self.values.get(name, default)

    @property
    def extra_argument_location(self) -> Optional[Location]:
        return self.extra_argument.location if self.extra_argument is not None else None


# Markers with an alternative constructor taking only the binding mode.
BINDING_MODE_CONSTRUCTORS = (MarkerKind.DEPENDENCY_PROPERTY, MarkerKind.ATTACHED_PROPERTY)


def _looks_like_binding_mode(constant):
    return isinstance(constant.value, EnumMember) and constant.value.type_name.split(".")[-1] == "BindingMode"


def bind_arguments(kind: MarkerKind, marker: Marker, resolver: ConstantResolver,
                   scope: Optional[TypeDeclaration] = None) -> BoundArguments:
    """
    Bind ``marker``'s arguments to the schema of ``kind``, evaluating each
    through ``resolver`` in the context of ``scope``.
    """
    schema = MARKER_SCHEMAS[kind]
    by_name = {p.name: p for p in schema}
    bound = BoundArguments()
    position = 0

    for argument in marker.arguments:
        constant = resolver.resolve(argument.expression, scope)
        if argument.is_named:
            parameter = by_name.get(to_pascal_case(argument.name))
        else:
            parameter = schema[position] if position < len(schema) else None
            if kind in BINDING_MODE_CONSTRUCTORS and position == 0 and _looks_like_binding_mode(constant):
                parameter = BINDING_MODE
            position += 1

        if parameter is None:
            if bound.extra_argument is None:
                bound.extra_argument = argument
            continue
        if parameter.name in bound.arguments:
            bound.problems.append(f"'{parameter.name}' is specified more than once")
            continue
        bound.arguments[parameter.name] = argument
        _convert_argument(parameter, argument, constant, bound)

    for parameter in schema:
        if parameter.name in bound.values or parameter.name in bound.arguments:
            continue
        if parameter.required:
            bound.problems.append(f"required argument '{parameter.name}' is missing")
        else:
            bound.values[parameter.name] = parameter.default

    return bound


def _convert_argument(parameter, argument, constant, bound):
    value = constant.value
    if parameter.kind == "bool":
        if constant.has_value and isinstance(value, bool):
            bound.values[parameter.name] = value
        else:
            bound.problems.append(f"'{parameter.name}' must be a constant boolean, got '{argument.expression}'")
    elif parameter.kind == "string":
        if constant.has_value and isinstance(value, str) and value:
            bound.values[parameter.name] = value
        else:
            bound.problems.append(f"'{parameter.name}' must be a non-empty constant string, got '{argument.expression}'")
    elif parameter.kind == "binding_mode":
        mode = BindingMode.parse(value) if constant.has_value else None
        if mode is None:
            bound.has_invalid_binding_mode = True
            bound.problems.append(f"'{argument.expression}' is not a valid binding mode")
        else:
            bound.values[parameter.name] = mode
    elif parameter.kind == "read_write_mode":
        mode = ReadWriteMode.parse(value) if constant.has_value else None
        if mode is None:
            bound.problems.append(f"'{argument.expression}' is not a valid read/write mode")
        else:
            bound.values[parameter.name] = mode
    else:
        bound.values[parameter.name] = constant


@dataclass
class DecorationProblem:
    kind: DecorationKind
    location: Location
    message: str


def decode_decoration(kind: DecorationKind, marker: Marker, resolver: ConstantResolver,
                      scope: Optional[TypeDeclaration] = None) -> Decoration:
    """
    Build the Decoration described by a ``*NameDecoration`` marker.

    ``prefix:``/``suffix:`` name constructor parameters (case-insensitive),
    ``Prefix =``/``Suffix =`` name properties (exact); unnamed arguments are
    the prefix then the suffix. An unset side keeps the kind's default.

    Raises:
        DecorationError: when an argument is not a constant string, names
            neither side, or both sides end up empty.
    """
    affixes = {}
    unnamed = 0
    for argument in marker.arguments:
        if argument.separator == ":":
            slot = argument.name.lower() if argument.name.lower() in ("prefix", "suffix") else None
        elif argument.separator == "=":
            slot = argument.name.lower() if argument.name in ("Prefix", "Suffix") else None
        else:
            slot = ("prefix", "suffix")[unnamed] if unnamed < 2 else None
            unnamed += 1
        if slot is None:
            raise DecorationError(f"unexpected argument '{argument.name or argument.expression}'")

        constant = resolver.resolve(argument.expression, scope)
        if not constant.has_value or not isinstance(constant.value, str):
            raise DecorationError(f"argument '{argument.expression}' is not a constant string")
        affixes[slot] = constant.value

    try:
        return Decoration(affixes.get("prefix", kind.default_prefix), affixes.get("suffix", kind.default_suffix))
    except ValueError as e:
        raise DecorationError(str(e)) from e


def resolve_decoration(kind: DecorationKind, declaration: TypeDeclaration, recognizer: MarkerRecognizer,
                       resolver: ConstantResolver,
                       compilation: Optional[Compilation] = None) -> Tuple[Decoration, Optional[DecorationProblem]]:
    """
    Find the decoration in effect for ``declaration``.

    Scopes are searched nearest first: the type itself, its containing types,
    the assembly/module markers of its own file, then those of every other
    file of the compilation. Without a marker the built-in default applies.
    A malformed marker yields the default plus a DecorationProblem.
    """
    marker_kind = MarkerKind.for_decoration(kind)

    scopes = [(t.markers, t) for t in declaration.enclosing_types()]
    if declaration.unit is not None:
        scopes.append((declaration.unit.markers, None))
    if compilation is not None:
        for unit in compilation.units:
            if unit is not declaration.unit:
                scopes.append((unit.markers, None))

    for markers, scope in scopes:
        matches = recognizer.find_for(declaration, markers, marker_kind)
        if not matches:
            continue
        marker = matches[0].marker
        try:
            return decode_decoration(kind, marker, resolver, scope or declaration), None
        except DecorationError as e:
            logger.debug(f"Invalid {marker_kind.value} marker at {marker.location}: {e}")
            return kind.default, DecorationProblem(kind, marker.location, str(e))

    return kind.default, None
