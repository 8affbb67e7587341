"""
Target toolkits and base-type lineage.

An owner's toolkit is found by walking its base types towards the root and
looking every ancestor up in LINEAGE_MARKERS. The walk crosses declarations
of the current compilation (partial declarations in any file), ``using``
directives and aliases, and KNOWN_TYPES, the table of framework types that
live in referenced assemblies and are therefore never parsed.
"""

import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from declarations import Compilation, TypeDeclaration
from markers import BindingMode

logger = logging.getLogger(__name__)

GENERIC_ARGUMENTS_PATTERN = re.compile(r"<.*>")
INTERFACE_NAME_PATTERN = re.compile(r"^I[A-Z]")


class ToolkitKind(Enum):
    UNKNOWN = "Unknown"
    AVALONIA = "Avalonia"
    UWP = "Uwp"
    WINUI = "WinUI"
    WPF = "Wpf"


class Capability(Enum):
    UI_ELEMENT = "UIElement"
    FRAMEWORK_ELEMENT = "FrameworkElement"


# Qualified ancestor name -> toolkit root or capability flag. The nearest
# toolkit root wins; capability flags are collected independently.
LINEAGE_MARKERS: Dict[str, Union[ToolkitKind, Capability]] = {
    "System.Windows.DependencyObject": ToolkitKind.WPF,
    "System.Windows.UIElement": Capability.UI_ELEMENT,
    "System.Windows.FrameworkElement": Capability.FRAMEWORK_ELEMENT,
    "Windows.UI.Xaml.DependencyObject": ToolkitKind.UWP,
    "Windows.UI.Xaml.UIElement": Capability.UI_ELEMENT,
    "Windows.UI.Xaml.FrameworkElement": Capability.FRAMEWORK_ELEMENT,
    "Microsoft.UI.Xaml.DependencyObject": ToolkitKind.WINUI,
    "Microsoft.UI.Xaml.UIElement": Capability.UI_ELEMENT,
    "Microsoft.UI.Xaml.FrameworkElement": Capability.FRAMEWORK_ELEMENT,
    "Avalonia.AvaloniaObject": ToolkitKind.AVALONIA,
}


@dataclass(frozen=True)
class ToolkitCapabilities:
    kind: ToolkitKind
    namespace: str = ""
    supports_inheritance: bool = False
    inheritance_requires_framework_element: bool = False
    supports_coercion: bool = False
    supports_validation: bool = False
    uses_read_only_key: bool = False
    supports_default_binding_mode: bool = False

    def can_express_binding_mode(self, mode: BindingMode, is_framework_element: bool = False) -> bool:
        """
        Whether a default binding mode survives emission. OneWay is everyone's
        default; WPF can only flag TwoWay, and only through framework metadata.
        """
        if mode is BindingMode.ONE_WAY or self.supports_default_binding_mode:
            return True
        return self.kind is ToolkitKind.WPF and is_framework_element and mode is BindingMode.TWO_WAY


TOOLKIT_CAPABILITIES: Dict[ToolkitKind, ToolkitCapabilities] = {
    ToolkitKind.UNKNOWN: ToolkitCapabilities(ToolkitKind.UNKNOWN),
    ToolkitKind.AVALONIA: ToolkitCapabilities(
        ToolkitKind.AVALONIA,
        namespace="Avalonia",
        supports_inheritance=True,
        supports_coercion=True,
        supports_default_binding_mode=True,
    ),
    ToolkitKind.UWP: ToolkitCapabilities(ToolkitKind.UWP, namespace="Windows.UI.Xaml"),
    ToolkitKind.WINUI: ToolkitCapabilities(ToolkitKind.WINUI, namespace="Microsoft.UI.Xaml"),
    ToolkitKind.WPF: ToolkitCapabilities(
        ToolkitKind.WPF,
        namespace="System.Windows",
        supports_inheritance=True,
        inheritance_requires_framework_element=True,
        supports_coercion=True,
        supports_validation=True,
        uses_read_only_key=True,
    ),
}


def capabilities_for(kind: ToolkitKind) -> ToolkitCapabilities:
    return TOOLKIT_CAPABILITIES[kind]


def _xaml_types(ns):
    controls = f"{ns}.Controls"
    return {
        f"{ns}.DependencyObject": None,
        f"{ns}.UIElement": f"{ns}.DependencyObject",
        f"{ns}.FrameworkElement": f"{ns}.UIElement",
        f"{controls}.Control": f"{ns}.FrameworkElement",
        f"{controls}.ContentControl": f"{controls}.Control",
        f"{controls}.UserControl": f"{controls}.Control",
        f"{controls}.Page": f"{controls}.UserControl",
        f"{controls}.ItemsControl": f"{controls}.Control",
        f"{controls}.Panel": f"{ns}.FrameworkElement",
        f"{controls}.Grid": f"{controls}.Panel",
        f"{controls}.StackPanel": f"{controls}.Panel",
        f"{controls}.Canvas": f"{controls}.Panel",
        f"{controls}.Border": f"{ns}.FrameworkElement",
        f"{controls}.TextBlock": f"{ns}.FrameworkElement",
        f"{controls}.Primitives.ButtonBase": f"{controls}.ContentControl",
        f"{controls}.Button": f"{controls}.Primitives.ButtonBase",
    }


WPF_TYPES = {
    "System.Windows.Threading.DispatcherObject": None,
    "System.Windows.DependencyObject": "System.Windows.Threading.DispatcherObject",
    "System.Windows.Freezable": "System.Windows.DependencyObject",
    "System.Windows.ContentElement": "System.Windows.DependencyObject",
    "System.Windows.FrameworkContentElement": "System.Windows.ContentElement",
    "System.Windows.Media.Visual": "System.Windows.DependencyObject",
    "System.Windows.UIElement": "System.Windows.Media.Visual",
    "System.Windows.FrameworkElement": "System.Windows.UIElement",
    "System.Windows.Controls.Control": "System.Windows.FrameworkElement",
    "System.Windows.Controls.ContentControl": "System.Windows.Controls.Control",
    "System.Windows.Controls.UserControl": "System.Windows.Controls.ContentControl",
    "System.Windows.Window": "System.Windows.Controls.ContentControl",
    "System.Windows.Controls.Page": "System.Windows.FrameworkElement",
    "System.Windows.Controls.ItemsControl": "System.Windows.Controls.Control",
    "System.Windows.Controls.Panel": "System.Windows.FrameworkElement",
    "System.Windows.Controls.Grid": "System.Windows.Controls.Panel",
    "System.Windows.Controls.StackPanel": "System.Windows.Controls.Panel",
    "System.Windows.Controls.Canvas": "System.Windows.Controls.Panel",
    "System.Windows.Controls.Decorator": "System.Windows.FrameworkElement",
    "System.Windows.Controls.Border": "System.Windows.Controls.Decorator",
    "System.Windows.Controls.TextBlock": "System.Windows.FrameworkElement",
    "System.Windows.Controls.Primitives.ButtonBase": "System.Windows.Controls.ContentControl",
    "System.Windows.Controls.Button": "System.Windows.Controls.Primitives.ButtonBase",
}

AVALONIA_TYPES = {
    "Avalonia.AvaloniaObject": None,
    "Avalonia.Animation.Animatable": "Avalonia.AvaloniaObject",
    "Avalonia.StyledElement": "Avalonia.Animation.Animatable",
    "Avalonia.Visual": "Avalonia.StyledElement",
    "Avalonia.Layout.Layoutable": "Avalonia.Visual",
    "Avalonia.Interactivity.Interactive": "Avalonia.Layout.Layoutable",
    "Avalonia.Input.InputElement": "Avalonia.Interactivity.Interactive",
    "Avalonia.Controls.Control": "Avalonia.Input.InputElement",
    "Avalonia.Controls.Primitives.TemplatedControl": "Avalonia.Controls.Control",
    "Avalonia.Controls.ContentControl": "Avalonia.Controls.Primitives.TemplatedControl",
    "Avalonia.Controls.UserControl": "Avalonia.Controls.ContentControl",
    "Avalonia.Controls.Button": "Avalonia.Controls.ContentControl",
    "Avalonia.Controls.TopLevel": "Avalonia.Controls.ContentControl",
    "Avalonia.Controls.WindowBase": "Avalonia.Controls.TopLevel",
    "Avalonia.Controls.Window": "Avalonia.Controls.WindowBase",
    "Avalonia.Controls.Panel": "Avalonia.Controls.Control",
    "Avalonia.Controls.Grid": "Avalonia.Controls.Panel",
    "Avalonia.Controls.StackPanel": "Avalonia.Controls.Panel",
    "Avalonia.Controls.Canvas": "Avalonia.Controls.Panel",
    "Avalonia.Controls.Decorator": "Avalonia.Controls.Control",
    "Avalonia.Controls.Border": "Avalonia.Controls.Decorator",
    "Avalonia.Controls.TextBlock": "Avalonia.Controls.Control",
}

# Framework types from referenced assemblies: qualified name -> qualified base name.
KNOWN_TYPES: Dict[str, Optional[str]] = {
    **WPF_TYPES,
    **_xaml_types("Windows.UI.Xaml"),
    **_xaml_types("Microsoft.UI.Xaml"),
    **AVALONIA_TYPES,
}


@dataclass
class Lineage:
    kind: ToolkitKind = ToolkitKind.UNKNOWN
    is_ui_element: bool = False
    is_framework_element: bool = False
    ancestors: List[str] = field(default_factory=list)


class LineageResolver:
    def __init__(self, compilation: Optional[Compilation] = None,
                 known_types: Optional[Dict[str, Optional[str]]] = None):
        """
        Args:
            compilation: Declarations whose base lists are followed.
            known_types: Extra framework types (qualified name -> qualified
                base name) added to, or overriding, KNOWN_TYPES.
        """
        self.compilation = compilation or Compilation()
        self.known_types = dict(KNOWN_TYPES)
        if known_types:
            self.known_types.update(known_types)
        self._global_usings = [u for unit in self.compilation.units for u in unit.usings if u.is_global]

    def resolve(self, declaration: TypeDeclaration) -> Lineage:
        lineage = Lineage()
        visited = {declaration.qualified_name}
        base = self.base_type_of(declaration)

        while base is not None and base not in visited:
            visited.add(base)
            lineage.ancestors.append(base)
            marker = LINEAGE_MARKERS.get(base)
            if isinstance(marker, ToolkitKind) and lineage.kind is ToolkitKind.UNKNOWN:
                lineage.kind = marker
            elif marker is Capability.UI_ELEMENT:
                lineage.is_ui_element = True
            elif marker is Capability.FRAMEWORK_ELEMENT:
                lineage.is_framework_element = True
            base = self._base_of_name(base)

        logger.debug(f"Lineage of {declaration.qualified_name}: {' -> '.join(lineage.ancestors) or '(none)'}"
                     f" [{lineage.kind.value}]")
        return lineage

    def base_type_of(self, declaration: TypeDeclaration) -> Optional[str]:
        """
        Qualified name of the base class of ``declaration``, or None. The
        first base-list entry is the base class unless it is an interface.
        """
        if declaration.kind not in ("class", "record"):
            return None
        for part in self.compilation.find_types(declaration.qualified_name) or [declaration]:
            if part.base_types:
                first = part.base_types[0]
                qualified = self.resolve_type_name(first, part)
                if self._is_interface(first, qualified):
                    return None
                return qualified
        return None

    def resolve_type_name(self, type_name: str, context: TypeDeclaration) -> str:
        """
        Resolve ``type_name`` as written inside ``context`` to a qualified
        name. Returns the written name, without generic arguments, when no
        candidate is known.
        """
        name = GENERIC_ARGUMENTS_PATTERN.sub("", type_name).strip()
        if name.startswith("global::"):
            return name[len("global::"):]

        usings = list(context.usings) + self._global_usings
        head, _, rest = name.partition(".")
        for using in usings:
            if using.alias == head:
                return f"{using.namespace}.{rest}" if rest else using.namespace

        candidates = [f"{t.qualified_name}.{name}" for t in context.enclosing_types()]
        namespace = context.namespace
        while namespace:
            candidates.append(f"{namespace}.{name}")
            namespace = namespace.rpartition(".")[0]
        candidates.extend(f"{u.namespace}.{name}" for u in usings if u.alias is None and not u.is_static)
        candidates.append(name)

        for candidate in candidates:
            if self._is_known(candidate):
                return candidate
        return name

    def _is_known(self, qualified_name):
        return self.compilation.has_type(qualified_name) or qualified_name in self.known_types

    def _is_interface(self, written_name, qualified_name):
        declarations = self.compilation.find_types(qualified_name)
        if declarations:
            return declarations[0].kind == "interface"
        if qualified_name in self.known_types:
            return False
        simple = GENERIC_ARGUMENTS_PATTERN.sub("", written_name).rpartition(".")[2]
        return bool(INTERFACE_NAME_PATTERN.match(simple))

    def _base_of_name(self, qualified_name):
        declarations = self.compilation.find_types(qualified_name)
        if declarations:
            return self.base_type_of(declarations[0])
        return self.known_types.get(qualified_name)
