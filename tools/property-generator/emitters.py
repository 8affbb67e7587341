"""
Toolkit emitters: render validated owner and property records as C#.

One emitter exists per toolkit. Each one completes the owner's partial class
with, per property:

- the static registration of the property (Avalonia ``StyledProperty`` or
  ``AttachedProperty``, Microsoft ``DependencyProperty``);
- for instance properties, the implementing part of the partial property,
  delegating to ``GetValue``/``SetValue``;
- for attached properties, static ``Get<Name>``/``Set<Name>`` helpers, the
  setter omitted for read-only properties.

Coercion and validation hookups follow the toolkit capabilities: a callback
the toolkit cannot call is dropped (validation has already warned about it).
"""

import logging
from typing import Dict, List, Optional

from errors import UnsupportedToolkitError
from markers import BindingMode
from owner_record import OwnerRecord
from property_record import ChangedHandlerShape, PropertyRecord
from toolkit import ToolkitCapabilities, ToolkitKind, capabilities_for

logger = logging.getLogger(__name__)

INDENT = "    "
DEFAULT_FILE_PREFIX = "DependencyProperties"


def using_text(using) -> str:
    if using.text:
        return using.text.strip()
    if using.alias:
        return f"using {using.alias} = {using.namespace};"
    return f"using {'static ' if using.is_static else ''}{using.namespace};"


def changed_handler_arguments(shape: ChangedHandlerShape, old_value: str, new_value: str) -> str:
    if shape is ChangedHandlerShape.NO_ARGS:
        return ""
    if shape is ChangedHandlerShape.NEW_VALUE_ONLY:
        return new_value
    if shape is ChangedHandlerShape.OLD_AND_NEW_VALUE:
        return f"{old_value}, {new_value}"
    if shape is ChangedHandlerShape.EVENT_ARGS:
        return f"new({old_value}, {new_value})"
    raise ValueError(f"No call arguments for changed handler shape {shape}")


class Emitter:
    """Base emitter: the file layout shared by every toolkit."""

    kind: ToolkitKind = ToolkitKind.UNKNOWN

    @property
    def capabilities(self) -> ToolkitCapabilities:
        return capabilities_for(self.kind)

    def emit(self, owner: OwnerRecord, properties: List[PropertyRecord]) -> str:
        lines = ["// <auto-generated/>", "#nullable enable"]
        lines.extend(using_text(u) for u in owner.usings)
        lines.append("")

        depth = 0
        if owner.namespace:
            lines.append(f"namespace {owner.namespace}")
            lines.append("{")
            depth = 1
        lines.append(f"{INDENT * depth}partial class {owner.type_name}")
        lines.append(f"{INDENT * depth}{{")

        for index, prop in enumerate(properties):
            if index > 0:
                lines.append("")
            for line in self.emit_property(owner, prop):
                lines.append(f"{INDENT * (depth + 1)}{line}" if line else "")

        lines.append(f"{INDENT * depth}}}")
        if owner.namespace:
            lines.append("}")
        lines.append("#nullable restore")
        return "\n".join(lines) + "\n"

    def emit_property(self, owner: OwnerRecord, prop: PropertyRecord) -> List[str]:
        raise NotImplementedError

    def handler_target(self, owner: OwnerRecord, prop: PropertyRecord, instance: str, is_static: bool) -> str:
        """Receiver of a callback call: the owner type, or the cast instance."""
        if prop.is_attached or is_static:
            return owner.type_name
        return f"(({owner.type_name}){instance})"

    def instance_property(self, prop: PropertyRecord, getter: str, setter: Optional[str]) -> List[str]:
        modifiers = f"{prop.access_modifiers}{'static ' if prop.is_static else ''}{prop.method_modifiers}"
        lines = [f"{modifiers}partial {prop.type_name} {prop.name}", "{", f"{INDENT}get {{ {getter} }}"]
        if setter is not None:
            lines.append(f"{INDENT}{prop.setter_access_modifiers}{prop.setter_kind} {{ {setter} }}")
        lines.append("}")
        return lines


class AvaloniaEmitter(Emitter):
    kind = ToolkitKind.AVALONIA

    def emit_property(self, owner, prop):
        name = prop.name
        type_name = prop.type_name
        arguments = [f'"{name}"' if prop.is_attached else f"nameof({name})"]

        if prop.default_value_expression is not None:
            arguments.append(f"defaultValue: {prop.default_value_expression}")
        elif prop.uses_default_value_member:
            arguments.append(f"defaultValue: {prop.default_value_name}")
        if prop.inherits:
            arguments.append("inherits: true")
        if prop.binding_mode is not BindingMode.ONE_WAY:
            arguments.append(f"defaultBindingMode: Avalonia.Data.BindingMode.{prop.binding_mode.member_name}")
        if prop.has_coerce_callback:
            target = self.handler_target(owner, prop, "o", prop.coerce_callback_is_static)
            arguments.append(f"coerce: (o, v) => {target}.{prop.coerce_callback_name}(v)")

        if prop.is_attached:
            lines = [
                f"public static readonly Avalonia.AttachedProperty<{type_name}> {name}Property =",
                f"{INDENT}Avalonia.AvaloniaProperty.RegisterAttached<{owner.type_name}, Avalonia.AvaloniaObject, "
                f"{type_name}>({', '.join(arguments)});",
            ]
        else:
            lines = [
                f"public static readonly Avalonia.StyledProperty<{type_name}> {name}Property =",
                f"{INDENT}Avalonia.AvaloniaProperty.Register<{owner.type_name}, {type_name}>({', '.join(arguments)});",
            ]

        if prop.has_changed_handler:
            host = "Avalonia.AvaloniaObject" if prop.is_attached else owner.type_name
            target = "o" if not (prop.is_attached or prop.changed_handler_is_static) else owner.type_name
            call_arguments = changed_handler_arguments(
                prop.changed_handler_shape, f"({type_name})e.OldValue!", f"({type_name})e.NewValue!")
            lines.extend([
                f"private static readonly System.IDisposable {name}ChangedSubscription =",
                f"{INDENT}{name}Property.Changed.AddClassHandler<{host}>("
                f"(o, e) => {target}.{prop.changed_handler_name}({call_arguments}));",
            ])

        if prop.is_attached:
            lines.extend(self.attached_accessors(prop))
        else:
            setter = f"SetValue({name}Property, value);" if prop.has_setter else None
            lines.extend(self.instance_property(prop, f"return GetValue({name}Property);", setter))
        return lines

    def attached_accessors(self, prop):
        name = prop.name
        lines = [
            f"public static {prop.type_name} Get{name}(Avalonia.AvaloniaObject obj)",
            "{",
            f"{INDENT}return obj.GetValue({name}Property);",
            "}",
        ]
        if not prop.is_read_only:
            lines.extend([
                f"public static void Set{name}(Avalonia.AvaloniaObject obj, {prop.type_name} value)",
                "{",
                f"{INDENT}obj.SetValue({name}Property, value);",
                "}",
            ])
        return lines


class MicrosoftEmitter(Emitter):
    """
    Shared emitter of the DependencyProperty toolkits (UWP, WinUI, WPF); they
    differ in namespace, metadata classes and supported callbacks.
    """

    @property
    def namespace(self) -> str:
        return self.capabilities.namespace

    def uses_key(self, prop: PropertyRecord) -> bool:
        return self.capabilities.uses_read_only_key and prop.is_read_only

    def default_value(self, prop: PropertyRecord) -> str:
        if prop.default_value_expression is not None:
            return f"({prop.type_name})({prop.default_value_expression})"
        if prop.uses_default_value_member:
            return prop.default_value_name
        return f"default({prop.type_name})"

    def changed_callback(self, owner: OwnerRecord, prop: PropertyRecord) -> str:
        if not prop.has_changed_handler:
            return "null"
        target = self.handler_target(owner, prop, "d", prop.changed_handler_is_static)
        arguments = changed_handler_arguments(
            prop.changed_handler_shape, f"({prop.type_name})e.OldValue", f"({prop.type_name})e.NewValue")
        return f"(d, e) => {target}.{prop.changed_handler_name}({arguments})"

    def coerce_callback(self, owner: OwnerRecord, prop: PropertyRecord) -> Optional[str]:
        if not (prop.has_coerce_callback and self.capabilities.supports_coercion):
            return None
        target = self.handler_target(owner, prop, "d", prop.coerce_callback_is_static)
        return f"(d, v) => {target}.{prop.coerce_callback_name}(({prop.type_name})v)"

    def validate_callback(self, owner: OwnerRecord, prop: PropertyRecord) -> Optional[str]:
        if not (prop.uses_validate_callback and self.capabilities.supports_validation):
            return None
        return f"v => {owner.type_name}.{prop.validate_callback_name}(({prop.type_name})v)"

    def metadata(self, owner: OwnerRecord, prop: PropertyRecord) -> str:
        ns = self.namespace
        return (f"new {ns}.PropertyMetadata(defaultValue: {self.default_value(prop)}, "
                f"propertyChangedCallback: {self.changed_callback(owner, prop)})")

    def emit_property(self, owner, prop):
        ns = self.namespace
        name = prop.name
        attached = "Attached" if prop.is_attached else ""
        arguments = [
            f'"{name}"' if prop.is_attached else f"nameof({name})",
            f"typeof({prop.non_nullable_type_name})",
            f"typeof({owner.type_name})",
            self.metadata(owner, prop),
        ]
        validate = self.validate_callback(owner, prop)
        if validate is not None:
            arguments.append(validate)

        if self.uses_key(prop):
            lines = [
                f"private static readonly {ns}.DependencyPropertyKey {name}PropertyKey = "
                f"{ns}.DependencyProperty.Register{attached}ReadOnly(",
                f"{INDENT}{', '.join(arguments)});",
                f"public static readonly {ns}.DependencyProperty {name}Property = {name}PropertyKey.DependencyProperty;",
            ]
        else:
            lines = [
                f"public static readonly {ns}.DependencyProperty {name}Property = "
                f"{ns}.DependencyProperty.Register{attached}(",
                f"{INDENT}{', '.join(arguments)});",
            ]

        store = f"{name}PropertyKey" if self.uses_key(prop) else f"{name}Property"
        if prop.is_attached:
            lines.extend([
                f"public static {prop.type_name} Get{name}({ns}.DependencyObject obj)",
                "{",
                f"{INDENT}return ({prop.type_name})obj.GetValue({name}Property);",
                "}",
            ])
            if not prop.is_read_only:
                lines.extend([
                    f"public static void Set{name}({ns}.DependencyObject obj, {prop.type_name} value)",
                    "{",
                    f"{INDENT}obj.SetValue({store}, value);",
                    "}",
                ])
        else:
            setter = f"SetValue({store}, value);" if prop.has_setter else None
            lines.extend(self.instance_property(
                prop, f"return ({prop.type_name})GetValue({name}Property);", setter))
        return lines


class UwpEmitter(MicrosoftEmitter):
    kind = ToolkitKind.UWP


class WinUIEmitter(MicrosoftEmitter):
    kind = ToolkitKind.WINUI


class WpfEmitter(MicrosoftEmitter):
    """
    WPF picks the metadata class from the owner's lineage:
    FrameworkPropertyMetadata for framework elements (the only one carrying
    flags), UIPropertyMetadata for other UI elements, PropertyMetadata
    otherwise. All three take a coerce callback.
    """

    kind = ToolkitKind.WPF

    def flags(self, prop: PropertyRecord) -> str:
        options = f"{self.namespace}.FrameworkPropertyMetadataOptions"
        flags = []
        if prop.inherits:
            flags.append(f"{options}.Inherits")
        if prop.binding_mode is BindingMode.TWO_WAY:
            flags.append(f"{options}.BindsTwoWayByDefault")
        return " | ".join(flags) or f"{options}.None"

    def metadata(self, owner, prop):
        ns = self.namespace
        coerce = self.coerce_callback(owner, prop) or "null"
        changed = self.changed_callback(owner, prop)
        default = self.default_value(prop)
        if owner.is_framework_element:
            return (f"new {ns}.FrameworkPropertyMetadata(defaultValue: {default}, flags: {self.flags(prop)}, "
                    f"propertyChangedCallback: {changed}, coerceValueCallback: {coerce})")
        if owner.is_ui_element:
            return (f"new {ns}.UIPropertyMetadata(defaultValue: {default}, "
                    f"propertyChangedCallback: {changed}, coerceValueCallback: {coerce})")
        return (f"new {ns}.PropertyMetadata(defaultValue: {default}, "
                f"propertyChangedCallback: {changed}, coerceValueCallback: {coerce})")


EMITTERS: Dict[ToolkitKind, Emitter] = {
    emitter.kind: emitter for emitter in (AvaloniaEmitter(), UwpEmitter(), WinUIEmitter(), WpfEmitter())
}


def get_emitter(kind: ToolkitKind) -> Emitter:
    try:
        return EMITTERS[kind]
    except KeyError:
        raise UnsupportedToolkitError(f"No emitter for toolkit {kind.value}") from None


def emit_owner(owner: OwnerRecord, properties: List[PropertyRecord]) -> str:
    emitter = get_emitter(owner.toolkit)
    logger.debug(f"Emitting {len(properties)} properties of {owner.full_name} with {type(emitter).__name__}")
    return emitter.emit(owner, properties)


def generated_file_name(owner: OwnerRecord, prefix: str = DEFAULT_FILE_PREFIX) -> str:
    """``<prefix>-<namespace>-<Name>.g.cs``; the namespace part is left out for the global namespace."""
    return "-".join(part for part in (prefix, owner.namespace, owner.name) if part) + ".g.cs"
