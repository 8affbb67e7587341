"""
Owner model builder.

Builds one OwnerRecord per type declaration:

1. class-level ``[WithAttachedProperty<T>]`` markers, one record each;
2. a single pass over the members, producing records for marked auto
   properties and ``[AttachedProperty]`` fields, and fragments for every
   field or method whose name strips under one of the naming conventions;
3. merge passes, in order: default values, coerce callbacks, validate
   callbacks, changed handlers.

All record sources share one name map, so the first record of a name wins
and every later one only flags it as duplicate. Fragments naming no record
are kept on the owner as orphans.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from constant_resolver import ConstantResolver
from declarations import (
    Compilation,
    FieldDeclaration,
    Location,
    Member,
    MethodDeclaration,
    PropertyDeclaration,
    TypeDeclaration,
    UsingDirective,
)
from decoration import CALLBACK_KINDS, Decoration, DecorationKind
from markers import DecorationProblem, MarkerKind, MarkerRecognizer, resolve_decoration
from property_record import (
    PropertyRecord,
    build_from_auto_property,
    build_from_class_marker,
    build_from_default_value_field,
)
from toolkit import Lineage, LineageResolver, ToolkitCapabilities, ToolkitKind, capabilities_for

logger = logging.getLogger(__name__)


@dataclass
class Fragment:
    """A default value field or callback method waiting for its property."""
    kind: DecorationKind
    name: str
    member_name: str
    member: Member
    location: Location
    is_writable: bool = False
    is_static: bool = True


@dataclass
class OwnerRecord:
    declaration: TypeDeclaration
    namespace: str
    name: str
    full_name: str
    is_partial: bool
    is_class: bool
    is_nested: bool
    lineage: Lineage
    default_value_decoration: Decoration
    coerce_callback_decoration: Decoration
    validate_callback_decoration: Decoration
    changed_handler_decoration: Decoration
    type_parameters: List[str] = field(default_factory=list)
    usings: List[UsingDirective] = field(default_factory=list)
    properties: List[PropertyRecord] = field(default_factory=list)
    decoration_problems: List[DecorationProblem] = field(default_factory=list)
    orphans: List[Fragment] = field(default_factory=list)

    @property
    def type_name(self) -> str:
        """The name as written in a declaration: ``Widget`` or ``Widget<T>``."""
        if not self.type_parameters:
            return self.name
        return f"{self.name}<{', '.join(self.type_parameters)}>"

    @property
    def toolkit(self) -> ToolkitKind:
        return self.lineage.kind

    @property
    def capabilities(self) -> ToolkitCapabilities:
        return capabilities_for(self.lineage.kind)

    @property
    def is_ui_element(self) -> bool:
        return self.lineage.is_ui_element

    @property
    def is_framework_element(self) -> bool:
        return self.lineage.is_framework_element

    @property
    def location(self) -> Location:
        return self.declaration.identifier_location

    def decoration(self, kind: DecorationKind) -> Decoration:
        return {
            DecorationKind.DEFAULT_VALUE: self.default_value_decoration,
            DecorationKind.COERCE_CALLBACK: self.coerce_callback_decoration,
            DecorationKind.VALIDATE_CALLBACK: self.validate_callback_decoration,
            DecorationKind.CHANGED_HANDLER: self.changed_handler_decoration,
        }[kind]

    def to_dict(self):
        return {
            "name": self.name,
            "type_parameters": list(self.type_parameters),
            "namespace": self.namespace,
            "full_name": self.full_name,
            "toolkit": self.toolkit.value,
            "partial": self.is_partial,
            "class": self.is_class,
            "nested": self.is_nested,
            "ui_element": self.is_ui_element,
            "framework_element": self.is_framework_element,
            "ancestors": list(self.lineage.ancestors),
            "decorations": {
                kind.marker_name: {"prefix": self.decoration(kind).prefix, "suffix": self.decoration(kind).suffix}
                for kind in DecorationKind
            },
            "properties": [p.to_dict() for p in self.properties],
            "orphans": [f.member_name for f in self.orphans],
            "location": str(self.location),
        }


class OwnerModelBuilder:
    def __init__(self, compilation: Compilation, recognizer: Optional[MarkerRecognizer] = None,
                 resolver: Optional[ConstantResolver] = None, lineage_resolver: Optional[LineageResolver] = None):
        self.compilation = compilation
        self.recognizer = recognizer or MarkerRecognizer()
        self.resolver = resolver or ConstantResolver(compilation)
        self.lineage_resolver = lineage_resolver or LineageResolver(compilation)

    def build(self, declaration: TypeDeclaration) -> OwnerRecord:
        namespace = declaration.namespace
        decorations = {}
        problems = []
        for kind in DecorationKind:
            decorations[kind], problem = resolve_decoration(
                kind, declaration, self.recognizer, self.resolver, self.compilation)
            if problem is not None:
                problems.append(problem)

        owner = OwnerRecord(
            declaration=declaration,
            namespace=namespace,
            name=declaration.name,
            full_name=f"{namespace}.{declaration.name}" if namespace else declaration.name,
            is_partial=declaration.has_modifier("partial"),
            is_class=declaration.kind == "class",
            is_nested=declaration.is_nested,
            lineage=self.lineage_resolver.resolve(declaration),
            default_value_decoration=decorations[DecorationKind.DEFAULT_VALUE],
            coerce_callback_decoration=decorations[DecorationKind.COERCE_CALLBACK],
            validate_callback_decoration=decorations[DecorationKind.VALIDATE_CALLBACK],
            changed_handler_decoration=decorations[DecorationKind.CHANGED_HANDLER],
            type_parameters=list(declaration.type_parameters),
            usings=[u for u in declaration.usings if not u.is_global],
            decoration_problems=problems,
        )
        self._analyze_properties(owner)
        return owner

    def _analyze_properties(self, owner: OwnerRecord):
        declaration = owner.declaration
        by_name: Dict[str, PropertyRecord] = {}
        fragments: Dict[DecorationKind, List[Fragment]] = {kind: [] for kind in DecorationKind}

        def register(record):
            if not record.name:
                owner.properties.append(record)
            elif record.name in by_name:
                by_name[record.name].mark_duplicate()
            else:
                by_name[record.name] = record
                owner.properties.append(record)

        for match in self.recognizer.find_for(declaration, declaration.markers, MarkerKind.WITH_ATTACHED_PROPERTY):
            register(build_from_class_marker(owner, match, self.resolver))

        for member in declaration.members:
            if isinstance(member, PropertyDeclaration):
                matches = self.recognizer.find_for(declaration, member.markers, MarkerKind.DEPENDENCY_PROPERTY)
                if matches:
                    register(build_from_auto_property(owner, member, matches, self.resolver))

            elif isinstance(member, FieldDeclaration):
                matches = self.recognizer.find_for(declaration, member.markers, MarkerKind.ATTACHED_PROPERTY)
                writable = not member.has_modifier("const") and not member.has_modifier("readonly")
                static = member.has_modifier("const") or member.has_modifier("static")
                for declarator in member.declarators:
                    name = owner.default_value_decoration.strip(declarator.name)
                    if name is None:
                        if matches:
                            logger.debug(f"Ignoring [AttachedProperty] on {declarator.name}: "
                                         f"name does not follow the default value convention")
                        continue
                    fragments[DecorationKind.DEFAULT_VALUE].append(Fragment(
                        DecorationKind.DEFAULT_VALUE, name, declarator.name, member, declarator.location, writable, static))
                    if matches:
                        register(build_from_default_value_field(owner, member, declarator, matches, self.resolver))

            elif isinstance(member, MethodDeclaration):
                for kind in CALLBACK_KINDS:
                    name = owner.decoration(kind).strip(member.name)
                    if name is not None:
                        fragments[kind].append(Fragment(kind, name, member.name, member, member.location))
                        break

        for kind in DecorationKind:
            for fragment in fragments[kind]:
                record = by_name.get(fragment.name)
                if record is None:
                    logger.debug(f"Dropping {fragment.member_name} in {owner.full_name}: no {fragment.name} property")
                    owner.orphans.append(fragment)
                    continue
                self._merge(record, fragment)

    def _merge(self, record: PropertyRecord, fragment: Fragment):
        kind = fragment.kind
        if kind is DecorationKind.DEFAULT_VALUE:
            if record.has_default_value:
                logger.debug(f"Keeping the first default value of {record.name}, ignoring {fragment.member_name}")
                return
            record.mark_default_value(fragment.location, fragment.member_name, fragment.is_writable, fragment.is_static)
        elif kind is DecorationKind.COERCE_CALLBACK:
            if not record.has_coerce_callback:
                record.mark_coerce_callback(fragment.member)
        elif kind is DecorationKind.VALIDATE_CALLBACK:
            if not record.has_validate_callback:
                record.mark_validate_callback(fragment.member)
        elif record.changed_handler_shape is None or not record.has_changed_handler:
            record.mark_changed_handler(fragment.member)

