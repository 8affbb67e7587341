"""
Canonical dependency property records.

A PropertyRecord is built from exactly one syntactic source:

- an auto property carrying ``[DependencyProperty]``     (instance property)
- a ``defaultFor*`` field carrying ``[AttachedProperty]`` (attached property)
- a class-level ``[WithAttachedProperty<T>(...)]``        (attached property)

Default values and callbacks declared next to it are attached later by the
owner builder (see owner_record.py); the presence of a location is the only
signal that a feature is present.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from constant_resolver import ConstantResolver, ConstantValue, EnumMember
from declarations import (
    FieldDeclaration,
    Location,
    MethodDeclaration,
    NO_LOCATION,
    PropertyDeclaration,
    VariableDeclarator,
    normalize_type_name,
)
from decoration import DecorationKind
from markers import BindingMode, MarkerConfidence, MarkerKind, MarkerMatch, ReadWriteMode, bind_arguments

if TYPE_CHECKING:
    from owner_record import OwnerRecord

logger = logging.getLogger(__name__)

# C# keywords naming value types; ``T?`` of these is a distinct runtime type.
VALUE_TYPE_KEYWORDS = {
    "bool", "byte", "sbyte", "char", "decimal", "double", "float", "int", "uint",
    "nint", "nuint", "long", "ulong", "short", "ushort",
}
NUMERIC_TYPE_KEYWORDS = VALUE_TYPE_KEYWORDS - {"bool", "char"}


class ChangedHandlerShape(Enum):
    UNSUPPORTED = "unsupported"
    NO_ARGS = "no-args"                        # OnXChanged()
    NEW_VALUE_ONLY = "new-value-only"          # OnXChanged(T value)
    OLD_AND_NEW_VALUE = "old-and-new-value"    # OnXChanged(T oldValue, T newValue)
    EVENT_ARGS = "event-args"                  # OnXChanged(PropertyChangedEventArgs<T> e)


class PropertySource(Enum):
    AUTO_PROPERTY = "auto-property"
    DEFAULT_VALUE_FIELD = "default-value-field"
    CLASS_MARKER = "class-marker"


def access_modifiers(modifiers: List[str]) -> str:
    """Accessibility keywords of ``modifiers``; empty, or ending with a space."""
    if "public" in modifiers:
        return "public "
    if "private" in modifiers:
        return "private protected " if "protected" in modifiers else "private "
    if "protected" in modifiers:
        return "protected internal " if "internal" in modifiers else "protected "
    if "internal" in modifiers:
        return "internal "
    return ""


def method_modifiers(modifiers: List[str]) -> str:
    return "".join(f"{m} " for m in ("new", "override", "sealed", "virtual") if m in modifiers)


def is_auto_property(prop: PropertyDeclaration) -> bool:
    if prop.has_expression_body:
        return False
    if prop.accessors is None:
        return True
    return all(not accessor.has_body for accessor in prop.accessors)


def is_unreadable_property(prop: PropertyDeclaration) -> bool:
    """
    True when the property offers no getter to outside code, such as
    ``int Foo { get; set; }`` (no accessibility), ``private int Foo { get; }``
    or ``public int Foo { private get; set; }``.
    """
    if prop.has_modifier("private"):
        return True
    if not any(prop.has_modifier(m) for m in ("public", "protected", "internal")):
        return True
    if prop.accessors is None:
        return not prop.has_expression_body
    getter = prop.accessor("get")
    if getter is None:
        return True
    return any(getter.has_modifier(m) for m in ("private", "protected", "internal"))


def classify_changed_handler(method: MethodDeclaration, type_name: str) -> ChangedHandlerShape:
    """Calling shape of a changed handler for a property of ``type_name``."""
    type_name = normalize_type_name(type_name)
    parameter_types = [normalize_type_name(p.type_name) for p in method.parameters]
    if len(parameter_types) == 0:
        return ChangedHandlerShape.NO_ARGS
    if len(parameter_types) == 1:
        if parameter_types[0] == type_name:
            return ChangedHandlerShape.NEW_VALUE_ONLY
        return ChangedHandlerShape.EVENT_ARGS
    if len(parameter_types) == 2 and all(t == type_name for t in parameter_types):
        return ChangedHandlerShape.OLD_AND_NEW_VALUE
    return ChangedHandlerShape.UNSUPPORTED


def non_nullable_type_name(type_name: str) -> str:
    """The type to pass to ``typeof``: ``string?`` becomes ``string``, ``int?`` stays."""
    if type_name.endswith("?") and type_name[:-1] not in VALUE_TYPE_KEYWORDS:
        return type_name[:-1]
    return type_name


def contradicts_type(type_name: str, constant: ConstantValue) -> bool:
    """
    True when a constant default value can never be a value of the
    predefined type ``type_name``. Unknown types and values are accepted.
    """
    if not constant.has_value or isinstance(constant.value, EnumMember):
        return False
    value = constant.value
    nullable = type_name.endswith("?")
    base = type_name.rstrip("?")
    if value is None:
        return base in VALUE_TYPE_KEYWORDS and not nullable
    if base == "bool":
        return not isinstance(value, bool)
    if base == "string":
        return not isinstance(value, str)
    if base == "char":
        return not (isinstance(value, str) and len(value) == 1)
    if base in NUMERIC_TYPE_KEYWORDS:
        return isinstance(value, (bool, str))
    return False


@dataclass
class PropertyRecord:
    owner: "OwnerRecord" = field(repr=False, compare=False)
    name: str
    type_name: str
    source: PropertySource
    location: Location = NO_LOCATION
    marker_kind: MarkerKind = MarkerKind.DEPENDENCY_PROPERTY
    marker_confidence: MarkerConfidence = MarkerConfidence.EXACT

    is_attached: bool = False
    is_read_only: bool = False
    inherits: bool = False
    binding_mode: BindingMode = BindingMode.ONE_WAY
    read_write_mode: ReadWriteMode = ReadWriteMode.AUTO

    is_static: bool = False
    is_partial: bool = False
    is_auto: bool = False
    is_unreadable: bool = False
    has_setter: bool = False
    setter_kind: str = "set"
    access_modifiers: str = ""
    method_modifiers: str = ""
    setter_access_modifiers: str = ""

    has_multiple_markers: bool = False
    has_invalid_binding_mode: bool = False
    argument_problems: List[str] = field(default_factory=list)
    extra_argument_location: Optional[Location] = None

    default_value_location: Optional[Location] = None
    default_value_member: Optional[str] = None
    default_value_expression: Optional[str] = None
    is_default_value_writable: bool = False
    is_default_value_static: bool = True
    coerce_callback_location: Optional[Location] = None
    coerce_callback_is_static: bool = False
    validate_callback_location: Optional[Location] = None
    validate_callback_is_static: bool = False
    changed_handler_location: Optional[Location] = None
    changed_handler_is_static: bool = False
    changed_handler_shape: Optional[ChangedHandlerShape] = None
    unsupported_handler_location: Optional[Location] = None

    @property
    def has_default_value(self) -> bool:
        return self.default_value_location is not None

    @property
    def uses_default_value_member(self) -> bool:
        """A ``defaultFor*`` field that a static registration can reference."""
        return self.has_default_value and self.default_value_expression is None and self.is_default_value_static

    @property
    def has_coerce_callback(self) -> bool:
        return self.coerce_callback_location is not None

    @property
    def has_validate_callback(self) -> bool:
        return self.validate_callback_location is not None

    @property
    def uses_validate_callback(self) -> bool:
        return self.has_validate_callback and self.validate_callback_is_static

    @property
    def has_changed_handler(self) -> bool:
        return self.changed_handler_location is not None

    @property
    def has_argument_problems(self) -> bool:
        return bool(self.argument_problems) or self.has_invalid_binding_mode

    @property
    def non_nullable_type_name(self) -> str:
        return non_nullable_type_name(self.type_name)

    @property
    def default_value_name(self) -> str:
        return self.owner.default_value_decoration.apply(self.name)

    @property
    def coerce_callback_name(self) -> str:
        return self.owner.coerce_callback_decoration.apply(self.name)

    @property
    def validate_callback_name(self) -> str:
        return self.owner.validate_callback_decoration.apply(self.name)

    @property
    def changed_handler_name(self) -> str:
        return self.owner.changed_handler_decoration.apply(self.name)

    def mark_duplicate(self):
        self.has_multiple_markers = True

    def mark_default_value(self, location: Location, member_name: str, is_writable: bool, is_static: bool = True):
        self.default_value_location = location
        self.default_value_member = member_name
        self.is_default_value_writable = is_writable
        self.is_default_value_static = is_static

    def mark_coerce_callback(self, method: MethodDeclaration):
        self.coerce_callback_location = method.location
        self.coerce_callback_is_static = method.has_modifier("static")

    def mark_validate_callback(self, method: MethodDeclaration):
        self.validate_callback_location = method.location
        self.validate_callback_is_static = method.has_modifier("static")

    def mark_changed_handler(self, method: MethodDeclaration):
        shape = classify_changed_handler(method, self.type_name)
        self.changed_handler_shape = shape
        if shape is ChangedHandlerShape.UNSUPPORTED:
            self.changed_handler_location = None
            self.unsupported_handler_location = method.location
            logger.debug(f"Unsupported changed handler prototype {method.name} for {self.name}")
        else:
            self.changed_handler_location = method.location
            self.changed_handler_is_static = method.has_modifier("static")

    def to_dict(self):
        return {
            "name": self.name,
            "type": self.type_name,
            "source": self.source.value,
            "marker": self.marker_kind.value,
            "marker_confidence": self.marker_confidence.value,
            "attached": self.is_attached,
            "read_only": self.is_read_only,
            "inherits": self.inherits,
            "binding_mode": self.binding_mode.member_name,
            "static": self.is_static,
            "access_modifiers": self.access_modifiers.strip(),
            "has_setter": self.has_setter,
            "default_value": self.default_value_expression or self.default_value_member,
            "default_value_writable": self.is_default_value_writable,
            "coerce_callback": self.coerce_callback_name if self.has_coerce_callback else None,
            "validate_callback": self.validate_callback_name if self.has_validate_callback else None,
            "changed_handler": self.changed_handler_name if self.changed_handler_shape else None,
            "changed_handler_shape": self.changed_handler_shape.value if self.changed_handler_shape else None,
            "argument_problems": list(self.argument_problems),
            "location": str(self.location),
        }


def build_from_auto_property(owner: "OwnerRecord", prop: PropertyDeclaration, matches: List[MarkerMatch],
                             resolver: ConstantResolver) -> PropertyRecord:
    """Instance property declared by ``[DependencyProperty]`` on ``prop``."""
    match = matches[0]
    bound = bind_arguments(MarkerKind.DEPENDENCY_PROPERTY, match.marker, resolver, owner.declaration)
    setter = prop.accessor("set") or prop.accessor("init")
    read_write_mode = bound.get("ReadWriteMode", ReadWriteMode.AUTO)

    if read_write_mode is ReadWriteMode.READ_ONLY:
        is_read_only = True
    elif read_write_mode is ReadWriteMode.READ_WRITE:
        is_read_only = False
    else:
        is_read_only = setter is None

    return PropertyRecord(
        owner=owner,
        name=prop.name,
        type_name=normalize_type_name(prop.type_name),
        source=PropertySource.AUTO_PROPERTY,
        location=prop.location,
        marker_kind=MarkerKind.DEPENDENCY_PROPERTY,
        marker_confidence=match.confidence,
        is_read_only=is_read_only,
        inherits=bound.get("Inherits", False),
        binding_mode=bound.get("BindingMode", BindingMode.ONE_WAY),
        read_write_mode=read_write_mode,
        is_static=prop.has_modifier("static"),
        is_partial=prop.has_modifier("partial"),
        is_auto=is_auto_property(prop),
        is_unreadable=is_unreadable_property(prop),
        has_setter=setter is not None,
        setter_kind=setter.kind if setter is not None else "set",
        access_modifiers=access_modifiers(prop.modifiers),
        method_modifiers=method_modifiers(prop.modifiers),
        setter_access_modifiers=access_modifiers(setter.modifiers) if setter is not None else "",
        has_multiple_markers=len(matches) > 1,
        has_invalid_binding_mode=bound.has_invalid_binding_mode,
        argument_problems=bound.problems,
        extra_argument_location=bound.extra_argument_location,
    )


def build_from_default_value_field(owner: "OwnerRecord", field_declaration: FieldDeclaration,
                                   declarator: VariableDeclarator, matches: List[MarkerMatch],
                                   resolver: ConstantResolver) -> PropertyRecord:
    """Attached property declared by ``[AttachedProperty]`` on a ``defaultFor*`` field."""
    match = matches[0]
    bound = bind_arguments(MarkerKind.ATTACHED_PROPERTY, match.marker, resolver, owner.declaration)
    name = owner.default_value_decoration.strip(declarator.name) or ""

    return PropertyRecord(
        owner=owner,
        name=name,
        type_name=normalize_type_name(field_declaration.type_name),
        source=PropertySource.DEFAULT_VALUE_FIELD,
        location=declarator.location,
        marker_kind=MarkerKind.ATTACHED_PROPERTY,
        marker_confidence=match.confidence,
        is_attached=True,
        is_read_only=bound.get("ReadOnly", False),
        inherits=bound.get("Inherits", False),
        binding_mode=bound.get("BindingMode", BindingMode.ONE_WAY),
        is_static=True,
        is_auto=True,
        has_multiple_markers=len(matches) > 1,
        has_invalid_binding_mode=bound.has_invalid_binding_mode,
        argument_problems=bound.problems,
        extra_argument_location=bound.extra_argument_location,
    )


def build_from_class_marker(owner: "OwnerRecord", match: MarkerMatch, resolver: ConstantResolver) -> PropertyRecord:
    """Attached property declared by a class-level ``[WithAttachedProperty<T>]``."""
    marker = match.marker
    bound = bind_arguments(MarkerKind.WITH_ATTACHED_PROPERTY, marker, resolver, owner.declaration)
    problems = list(bound.problems)

    type_name = normalize_type_name(marker.type_arguments[0]) if marker.type_arguments else ""
    if not type_name:
        problems.append("the property type argument T is missing")

    default_argument = bound.arguments.get("DefaultValue")
    default_value = bound.get("DefaultValue")
    if type_name and default_value is not None and contradicts_type(type_name, default_value):
        problems.append(f"default value '{default_argument.expression}' is not a valid {type_name}")

    record = PropertyRecord(
        owner=owner,
        name=bound.get("Name") or "",
        type_name=type_name,
        source=PropertySource.CLASS_MARKER,
        location=marker.location,
        marker_kind=MarkerKind.WITH_ATTACHED_PROPERTY,
        marker_confidence=match.confidence,
        is_attached=True,
        is_read_only=bound.get("ReadOnly", False),
        inherits=bound.get("Inherits", False),
        binding_mode=bound.get("BindingMode", BindingMode.ONE_WAY),
        is_static=True,
        is_auto=True,
        has_invalid_binding_mode=bound.has_invalid_binding_mode,
        argument_problems=problems,
        extra_argument_location=bound.extra_argument_location,
    )
    if default_argument is not None:
        record.default_value_location = default_argument.location
        record.default_value_expression = default_argument.expression
    return record


def decoration_kind_label(kind: DecorationKind) -> str:
    return {
        DecorationKind.DEFAULT_VALUE: "default value",
        DecorationKind.COERCE_CALLBACK: "coerce callback",
        DecorationKind.VALIDATE_CALLBACK: "validate callback",
        DecorationKind.CHANGED_HANDLER: "property changed handler",
    }[kind]
