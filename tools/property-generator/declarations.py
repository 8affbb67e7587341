"""
Neutral declaration model consumed by the dependency property generator.

The generator core never touches parser nodes. Whatever front end reads the
C# sources (see csharp_parser.py) produces these plain records, and the core
asks them the questions a compiler host would answer: which members does a
type declare, which markers sit on a declaration, what is a declaration's
namespace and base list, where is it located for diagnostics.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

WHITESPACE_PATTERN = re.compile(r"\s+")
TYPE_PUNCTUATION_PATTERN = re.compile(r"\s*([<>\[\]?.:])\s*")
COMMA_PATTERN = re.compile(r"\s*,\s*")


def normalize_type_name(type_name):
    """
    Canonical spelling of a type as written in source.

    Type names are compared textually (for example a changed handler's
    parameter against the property type), so insignificant whitespace is
    removed: ``List< int >`` and ``List<int>`` compare equal, and
    ``Dictionary<string,int>`` becomes ``Dictionary<string, int>``.
    """
    if type_name is None:
        return None
    text = WHITESPACE_PATTERN.sub(" ", type_name).strip()
    text = TYPE_PUNCTUATION_PATTERN.sub(r"\1", text)
    return COMMA_PATTERN.sub(", ", text)


@dataclass(frozen=True)
class Location:
    path: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.path}({self.line},{self.column})"


NO_LOCATION = Location("<unknown>", 0, 0)


@dataclass
class MarkerArgument:
    """
    One argument of a marker (C# attribute) application.

    ``separator`` tells how the argument was named: ``":"`` for constructor
    parameter syntax (``inherits: true``), ``"="`` for property syntax
    (``Inherits = true``), ``None`` for positional arguments.
    """
    expression: str
    name: Optional[str] = None
    separator: Optional[str] = None
    location: Location = NO_LOCATION

    @property
    def is_named(self) -> bool:
        return self.name is not None


@dataclass
class Marker:
    name: str
    arguments: List[MarkerArgument] = field(default_factory=list)
    location: Location = NO_LOCATION
    target: Optional[str] = None
    type_arguments: List[str] = field(default_factory=list)


@dataclass
class Member:
    name: str
    modifiers: List[str] = field(default_factory=list)
    markers: List[Marker] = field(default_factory=list)
    location: Location = NO_LOCATION

    def has_modifier(self, modifier: str) -> bool:
        return modifier in self.modifiers


@dataclass
class AccessorDeclaration:
    kind: str
    modifiers: List[str] = field(default_factory=list)
    has_body: bool = False
    location: Location = NO_LOCATION

    def has_modifier(self, modifier: str) -> bool:
        return modifier in self.modifiers


@dataclass
class PropertyDeclaration(Member):
    type_name: str = ""
    accessors: Optional[List[AccessorDeclaration]] = None
    has_expression_body: bool = False

    def accessor(self, kind: str) -> Optional[AccessorDeclaration]:
        for accessor in self.accessors or []:
            if accessor.kind == kind:
                return accessor
        return None


@dataclass
class VariableDeclarator:
    name: str
    initializer: Optional[str] = None
    location: Location = NO_LOCATION


@dataclass
class FieldDeclaration(Member):
    """
    A field declaration statement; ``name`` is the first declarator's name.
    Markers and modifiers are shared by every declarator.
    """
    type_name: str = ""
    declarators: List[VariableDeclarator] = field(default_factory=list)


@dataclass
class Parameter:
    name: str
    type_name: str
    modifiers: List[str] = field(default_factory=list)


@dataclass
class MethodDeclaration(Member):
    return_type: str = "void"
    parameters: List[Parameter] = field(default_factory=list)


@dataclass
class UsingDirective:
    namespace: str
    alias: Optional[str] = None
    is_static: bool = False
    is_global: bool = False
    text: str = ""


@dataclass
class TypeDeclaration:
    kind: str
    name: str
    namespace: str = ""
    modifiers: List[str] = field(default_factory=list)
    markers: List[Marker] = field(default_factory=list)
    base_types: List[str] = field(default_factory=list)
    members: List[Member] = field(default_factory=list)
    nested_types: List["TypeDeclaration"] = field(default_factory=list)
    type_parameters: List[str] = field(default_factory=list)
    usings: List[UsingDirective] = field(default_factory=list)
    location: Location = NO_LOCATION
    identifier_location: Location = NO_LOCATION
    parent: Optional["TypeDeclaration"] = field(default=None, repr=False, compare=False)
    unit: Optional["CompilationUnit"] = field(default=None, repr=False, compare=False)

    def has_modifier(self, modifier: str) -> bool:
        return modifier in self.modifiers

    @property
    def is_nested(self) -> bool:
        return self.parent is not None

    @property
    def qualified_name(self) -> str:
        """Namespace, containing types and name, joined with dots."""
        names = []
        current = self
        while current is not None:
            names.append(current.name)
            current = current.parent
        names.append(self.namespace)
        return ".".join(n for n in reversed(names) if n)

    def enclosing_types(self) -> Iterator["TypeDeclaration"]:
        """This declaration followed by its containing type declarations."""
        current = self
        while current is not None:
            yield current
            current = current.parent

    def fields(self) -> List[FieldDeclaration]:
        return [m for m in self.members if isinstance(m, FieldDeclaration)]


@dataclass
class CompilationUnit:
    path: str
    usings: List[UsingDirective] = field(default_factory=list)
    markers: List[Marker] = field(default_factory=list)
    types: List[TypeDeclaration] = field(default_factory=list)
    has_errors: bool = False

    def all_types(self) -> Iterator[TypeDeclaration]:
        """Every type declaration of the unit, outer types before nested ones."""
        pending = list(self.types)
        while pending:
            declaration = pending.pop(0)
            yield declaration
            pending.extend(declaration.nested_types)


class Compilation:
    """
    The set of compilation units processed in one generation run, with an
    index of type declarations by qualified name. A partial type declared in
    several files maps to all of its declarations.
    """

    def __init__(self, units: Optional[List[CompilationUnit]] = None):
        self.units: List[CompilationUnit] = []
        self._types: Dict[str, List[TypeDeclaration]] = {}
        for unit in units or []:
            self.add_unit(unit)

    def add_unit(self, unit: CompilationUnit):
        self.units.append(unit)
        for declaration in unit.all_types():
            declaration.unit = unit
            self._types.setdefault(declaration.qualified_name, []).append(declaration)

    def all_types(self) -> Iterator[TypeDeclaration]:
        for unit in self.units:
            yield from unit.all_types()

    def find_types(self, qualified_name: str) -> List[TypeDeclaration]:
        return self._types.get(qualified_name, [])

    def has_type(self, qualified_name: str) -> bool:
        return qualified_name in self._types
