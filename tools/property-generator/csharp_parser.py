"""
Tree-sitter front end turning C# sources into the declaration model.

Only what the generator asks about is extracted: using directives, namespaces,
type declarations (with modifiers, markers, base list and nesting), and their
fields, properties and methods. Method bodies and expressions are kept as
source text. Syntax errors do not stop the walk; tree-sitter recovers and the
unit is flagged with ``has_errors``.
"""

import re
import logging
from typing import List, Optional, Union

import tree_sitter_c_sharp
from tree_sitter import Language, Parser

from declarations import (
    AccessorDeclaration,
    CompilationUnit,
    FieldDeclaration,
    Location,
    Marker,
    MarkerArgument,
    MethodDeclaration,
    Parameter,
    PropertyDeclaration,
    TypeDeclaration,
    UsingDirective,
    VariableDeclarator,
    normalize_type_name,
)
from errors import SourceParseError

logger = logging.getLogger(__name__)

USING_PATTERN = re.compile(
    r"^(?P<global>global\s+)?using\s+(?P<static>static\s+)?(?:(?P<alias>@?\w+)\s*=\s*)?(?P<name>[^;]+?)\s*;$",
    re.DOTALL,
)

TYPE_DECLARATION_KINDS = {
    "class_declaration": "class",
    "struct_declaration": "struct",
    "interface_declaration": "interface",
    "record_declaration": "record",
    "record_struct_declaration": "record struct",
}

# Attribute targets accepted on each declaration; anything else (``[field: X]``
# on a property, ``[return: X]`` on a method) applies to another symbol.
MEMBER_TARGETS = {
    "type": {None, "type"},
    "property": {None, "property"},
    "field": {None, "field"},
    "method": {None, "method"},
}

PREPROCESSOR_CONTAINERS = ("preproc_if", "preproc_ifdef", "preproc_elif", "preproc_else", "preproc_region")


def get_treesitter_csharp_parser_and_language():
    csharp = Language(tree_sitter_c_sharp.language())
    parser = Parser(csharp)
    return parser, csharp


def get_file_contents(path):
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise SourceParseError(f"Cannot read {path}: {e}") from e


def _text(node) -> str:
    return node.text.decode("utf-8", errors="replace") if node is not None else ""


def _location(path, node) -> Location:
    row, column = node.start_point
    return Location(path, row + 1, column + 1)


def _modifiers(node) -> List[str]:
    return [_text(child) for child in node.children if child.type == "modifier"]


def _either(node, fallback):
    return node if node is not None else fallback


def _join_namespace(outer, inner):
    return f"{outer}.{inner}" if outer else inner


def parse_using_directive(text: str) -> Optional[UsingDirective]:
    match = USING_PATTERN.match(" ".join(text.split()))
    if match is None:
        return None
    return UsingDirective(
        namespace=normalize_type_name(match.group("name")).replace("global::", ""),
        alias=match.group("alias").lstrip("@") if match.group("alias") else None,
        is_static=bool(match.group("static")),
        is_global=bool(match.group("global")),
        text=text.strip(),
    )


class CSharpParser:
    def __init__(self, treesitter_parser: Optional[Parser] = None):
        if treesitter_parser is None:
            treesitter_parser, _ = get_treesitter_csharp_parser_and_language()
        self.treesitter_parser = treesitter_parser

    def parse_file(self, path) -> CompilationUnit:
        return self.parse_source(get_file_contents(path), str(path))

    def parse_source(self, source: Union[str, bytes], path: str = "<source>") -> CompilationUnit:
        if isinstance(source, str):
            source = source.encode("utf-8")
        tree = self.treesitter_parser.parse(source)
        unit = CompilationUnit(path=path, has_errors=tree.root_node.has_error)
        if unit.has_errors:
            logger.warning(f"Syntax errors in {path}; declarations may be incomplete")
        _UnitWalker(source, unit).walk(tree.root_node)
        logger.debug(f"Parsed {path}: {sum(1 for _ in unit.all_types())} type declarations")
        return unit


class _UnitWalker:
    def __init__(self, source: bytes, unit: CompilationUnit):
        self.source = source
        self.unit = unit
        self.path = unit.path

    def walk(self, root):
        self._walk_container(root, "", [], top_level=True)

    def _slice(self, start_node, end_node) -> str:
        return self.source[start_node.start_byte:end_node.end_byte].decode("utf-8", errors="replace")

    def _walk_container(self, node, namespace, usings, top_level=False):
        """Walk a compilation unit, namespace body or preprocessor block."""
        usings = list(usings)
        for child in node.named_children:
            if child.type == "using_directive":
                using = parse_using_directive(_text(child))
                if using is not None:
                    usings.append(using)
                    if top_level:
                        self.unit.usings.append(using)
            elif child.type == "namespace_declaration":
                name = _text(child.child_by_field_name("name"))
                body = child.child_by_field_name("body")
                if body is not None:
                    self._walk_container(body, _join_namespace(namespace, name), usings)
            elif child.type == "file_scoped_namespace_declaration":
                # later siblings belong to the namespace too
                namespace = _join_namespace(namespace, _text(child.child_by_field_name("name")))
                self._walk_container(child, namespace, usings)
            elif child.type in TYPE_DECLARATION_KINDS:
                self.unit.types.append(self._type_declaration(child, namespace, usings, None))
            elif child.type in ("global_attribute", "attribute_list"):
                self.unit.markers.extend(self._markers_of_list(child))
            elif child.type.startswith(PREPROCESSOR_CONTAINERS):
                self._walk_container(child, namespace, usings)

    def _type_declaration(self, node, namespace, usings, parent) -> TypeDeclaration:
        kind = TYPE_DECLARATION_KINDS[node.type]
        if kind == "record" and any(child.type == "struct" for child in node.children):
            kind = "record struct"
        name_node = node.child_by_field_name("name")

        declaration = TypeDeclaration(
            kind=kind,
            name=_text(name_node),
            namespace=namespace,
            modifiers=_modifiers(node),
            markers=self._markers(node, MEMBER_TARGETS["type"]),
            base_types=self._base_types(node),
            type_parameters=self._type_parameters(node),
            usings=list(usings),
            location=_location(self.path, node),
            identifier_location=_location(self.path, _either(name_node, node)),
            parent=parent,
        )

        body = node.child_by_field_name("body")
        if body is None:
            body = next((c for c in node.named_children if c.type == "declaration_list"), None)
        if body is not None:
            for member in body.named_children:
                self._member(member, declaration, namespace, usings)
        return declaration

    def _member(self, node, declaration, namespace, usings):
        if node.type == "field_declaration":
            declaration.members.append(self._field(node))
        elif node.type == "property_declaration":
            declaration.members.append(self._property(node))
        elif node.type == "method_declaration":
            declaration.members.append(self._method(node))
        elif node.type in TYPE_DECLARATION_KINDS:
            declaration.nested_types.append(self._type_declaration(node, namespace, usings, declaration))
        elif node.type.startswith(PREPROCESSOR_CONTAINERS):
            for child in node.named_children:
                self._member(child, declaration, namespace, usings)

    def _type_parameters(self, node) -> List[str]:
        parameter_list = _either(node.child_by_field_name("type_parameters"),
                                 next((c for c in node.named_children if c.type == "type_parameter_list"), None))
        if parameter_list is None:
            return []
        names = []
        for child in parameter_list.named_children:
            if child.type != "type_parameter":
                continue
            name_node = child.child_by_field_name("name")
            if name_node is None:
                name_node = next((c for c in reversed(child.named_children) if c.type == "identifier"), None)
            names.append(_text(name_node))
        return names

    def _base_types(self, node) -> List[str]:
        base_list = next((c for c in node.named_children if c.type == "base_list"), None)
        if base_list is None:
            return []
        base_types = []
        for child in base_list.named_children:
            if child.type == "primary_constructor_base_type":
                child = child.named_children[0] if child.named_children else child
            elif child.type == "argument_list":
                continue
            base_types.append(normalize_type_name(_text(child)))
        return base_types

    def _field(self, node) -> FieldDeclaration:
        declaration = next((c for c in node.named_children if c.type == "variable_declaration"), None)
        type_name = ""
        declarators = []
        if declaration is not None:
            type_name = normalize_type_name(_text(declaration.child_by_field_name("type")))
            for declarator in declaration.named_children:
                if declarator.type == "variable_declarator":
                    declarators.append(self._declarator(declarator))
        return FieldDeclaration(
            name=declarators[0].name if declarators else "",
            modifiers=_modifiers(node),
            markers=self._markers(node, MEMBER_TARGETS["field"]),
            location=_location(self.path, node),
            type_name=type_name,
            declarators=declarators,
        )

    def _declarator(self, node) -> VariableDeclarator:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            name_node = next((c for c in node.named_children if c.type == "identifier"), None)

        initializer = None
        children = node.children
        for i, child in enumerate(children):
            if child.type == "equals_value_clause" and child.named_children:
                initializer = self._slice(child.named_children[0], child.named_children[-1])
                break
            if child.type == "=" and i + 1 < len(children):
                initializer = self._slice(children[i + 1], children[-1])
                break
        return VariableDeclarator(
            name=_text(name_node),
            initializer=initializer,
            location=_location(self.path, _either(name_node, node)),
        )

    def _property(self, node) -> PropertyDeclaration:
        name_node = node.child_by_field_name("name")
        accessor_list = node.child_by_field_name("accessors")
        if accessor_list is None:
            accessor_list = next((c for c in node.named_children if c.type == "accessor_list"), None)

        accessors = None
        if accessor_list is not None:
            accessors = [self._accessor(a) for a in accessor_list.named_children if a.type == "accessor_declaration"]

        return PropertyDeclaration(
            name=_text(name_node),
            modifiers=_modifiers(node),
            markers=self._markers(node, MEMBER_TARGETS["property"]),
            location=_location(self.path, _either(name_node, node)),
            type_name=normalize_type_name(_text(node.child_by_field_name("type"))),
            accessors=accessors,
            has_expression_body=accessor_list is None and any(
                c.type == "arrow_expression_clause" for c in node.named_children),
        )

    def _accessor(self, node) -> AccessorDeclaration:
        kind = next((c.type for c in node.children if c.type in ("get", "set", "init", "add", "remove")), None)
        if kind is None:
            # some grammar versions expose the keyword as a named node
            keyword = next((c for c in node.named_children if c.type in ("identifier", "accessor_keyword")), None)
            kind = _text(keyword)
        has_body = node.child_by_field_name("body") is not None or any(
            c.type in ("block", "arrow_expression_clause") for c in node.named_children)
        return AccessorDeclaration(
            kind=kind,
            modifiers=_modifiers(node),
            has_body=has_body,
            location=_location(self.path, node),
        )

    def _method(self, node) -> MethodDeclaration:
        name_node = node.child_by_field_name("name")
        parameter_list = node.child_by_field_name("parameters")
        parameters = []
        if parameter_list is not None:
            for parameter in parameter_list.named_children:
                if parameter.type == "parameter":
                    parameters.append(Parameter(
                        name=_text(parameter.child_by_field_name("name")),
                        type_name=normalize_type_name(_text(parameter.child_by_field_name("type"))),
                        modifiers=_modifiers(parameter),
                    ))
        return MethodDeclaration(
            name=_text(name_node),
            modifiers=_modifiers(node),
            markers=self._markers(node, MEMBER_TARGETS["method"]),
            location=_location(self.path, _either(name_node, node)),
            return_type=normalize_type_name(_text(node.child_by_field_name("returns"))) or "void",
            parameters=parameters,
        )

    def _markers(self, node, targets) -> List[Marker]:
        markers = []
        for attribute_list in node.named_children:
            if attribute_list.type != "attribute_list":
                continue
            for marker in self._markers_of_list(attribute_list):
                if marker.target in targets:
                    markers.append(marker)
        return markers

    def _markers_of_list(self, node) -> List[Marker]:
        target = None
        specifier = next((c for c in node.children if c.type == "attribute_target_specifier"), None)
        if specifier is not None:
            target = _text(specifier).rstrip(":").strip()
        elif node.type == "global_attribute":
            keyword = next((c for c in node.children if c.type in ("assembly", "module")), None)
            target = keyword.type if keyword is not None else "assembly"
        return [self._marker(a, target) for a in node.named_children if a.type == "attribute"]

    def _marker(self, node, target) -> Marker:
        name_node = _either(node.child_by_field_name("name"), node.named_children[0])
        type_arguments = []
        if name_node.type == "generic_name":
            argument_list = next((c for c in name_node.named_children if c.type == "type_argument_list"), None)
            if argument_list is not None:
                type_arguments = [normalize_type_name(_text(t)) for t in argument_list.named_children]

        arguments = []
        argument_list = next((c for c in node.named_children if c.type == "attribute_argument_list"), None)
        if argument_list is not None:
            arguments = [self._marker_argument(a) for a in argument_list.named_children
                         if a.type == "attribute_argument"]

        return Marker(
            name=normalize_type_name(_text(name_node)),
            arguments=arguments,
            location=_location(self.path, node),
            target=target,
            type_arguments=type_arguments,
        )

    def _marker_argument(self, node) -> MarkerArgument:
        name = None
        separator = None
        children = node.children
        start = 0

        if children and children[0].type in ("name_equals", "name_colon"):
            name_node = next((c for c in children[0].named_children if c.type == "identifier"), children[0])
            name = _text(name_node)
            separator = "=" if children[0].type == "name_equals" else ":"
            start = 1
        elif len(children) > 2 and children[0].type == "identifier" and children[1].type in ("=", ":"):
            name = _text(children[0])
            separator = children[1].type
            start = 2
        elif len(children) == 1 and children[0].type == "assignment_expression":
            left = children[0].child_by_field_name("left")
            right = children[0].child_by_field_name("right")
            operator = children[0].child_by_field_name("operator")
            if left is not None and right is not None and left.type == "identifier" and _text(operator) in ("=", ""):
                name = _text(left)
                separator = "="
                children = [right]

        expression = self._slice(children[start], children[-1]) if start < len(children) else _text(node)
        return MarkerArgument(
            expression=expression.strip(),
            name=name.lstrip("@") if name is not None else None,
            separator=separator,
            location=_location(self.path, node),
        )
