#!/usr/bin/env python3
"""
Resolves C# constant expressions to their values.

Marker arguments (``inherits: true``, ``Name = "Flag"``, ``BindingMode.TwoWay``)
and naming decorations (``[CoerceCallbackNameDecoration("Adjust")]``) arrive as
source text. This module evaluates that text the way the compiler's constant
folding would for the subset of C# the generator needs: literals, unary minus,
parentheses, casts, string concatenation, ``nameof``, enum members and
references to ``const`` fields.
"""

import re
import logging
from dataclasses import dataclass
from typing import Any, Dict, NamedTuple, Optional, Tuple

from declarations import Compilation, TypeDeclaration

logger = logging.getLogger(__name__)

INTEGER_PATTERN = re.compile(r"^(0[xX][0-9a-fA-F_]+|0[bB][01_]+|[0-9][0-9_]*)([uUlL]{0,2})$")
REAL_PATTERN = re.compile(r"^([0-9][0-9_]*)?(\.[0-9][0-9_]*)?([eE][+-]?[0-9]+)?([fFdDmM]?)$")
CHAR_PATTERN = re.compile(r"^'(\\.[^']*|[^'\\])'$")
NAMEOF_PATTERN = re.compile(r"^nameof\s*\((.+)\)$", re.DOTALL)
CAST_PATTERN = re.compile(r"^\(\s*([A-Za-z_][\w.]*\??)\s*\)\s*(\S.*)$", re.DOTALL)
IDENTIFIER_PATTERN = re.compile(r"^@?[A-Za-z_]\w*(\s*\.\s*@?[A-Za-z_]\w*)*$")
ESCAPE_PATTERN = re.compile(r"\\(u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|x[0-9a-fA-F]{1,4}|.)")

SIMPLE_ESCAPES = {
    "'": "'", '"': '"', "\\": "\\", "0": "\0", "a": "\a", "b": "\b",
    "f": "\f", "n": "\n", "r": "\r", "t": "\t", "v": "\v",
}

INTEGRAL_TYPES = {
    "sbyte", "byte", "short", "ushort", "int", "uint", "long", "ulong", "nint", "nuint", "char",
}
FLOATING_TYPES = {"float", "double", "decimal"}

MAX_RESOLUTION_DEPTH = 16


class ConstantValue(NamedTuple):
    """Mirror of a compiler's optional constant: ``has_value`` separates ``null`` from unknown."""
    has_value: bool
    value: Any = None


NO_VALUE = ConstantValue(False)


@dataclass(frozen=True)
class EnumMember:
    """
    A member access that is not a known constant, such as ``BindingMode.TwoWay``.

    Enum declarations usually live in referenced assemblies, so the resolver
    cannot check them; it keeps the written type and member names.
    """
    type_name: str
    member: str

    def __str__(self) -> str:
        return self.member


def _unescape(text):
    def replace(match):
        escape = match.group(1)
        if escape[0] in "uUx" and len(escape) > 1:
            return chr(int(escape[1:], 16))
        return SIMPLE_ESCAPES.get(escape, escape)

    return ESCAPE_PATTERN.sub(replace, text)


def parse_string_literal(text):
    """
    Decode a C# string literal (regular, verbatim or raw). Returns None for
    anything else, including interpolated strings, which are not constants.
    """
    text = text.strip()
    if text.startswith("$"):
        return None
    if text.startswith('"""'):
        quotes = len(text) - len(text.lstrip('"'))
        body = text[quotes:-quotes]
        if "\n" not in body:
            return body
        lines = body.split("\n")
        indent = lines[-1]
        return "\n".join(line[len(indent):] if line.startswith(indent) else line
                         for line in lines[1:-1])
    if text.startswith('@"') and text.endswith('"') and len(text) >= 3:
        return text[2:-1].replace('""', '"')
    if text.startswith('"') and text.endswith('"') and len(text) >= 2:
        return _unescape(text[1:-1])
    return None


def _split_top_level(expression, operator):
    """Split on ``operator`` where it is not nested in parentheses, strings or chars."""
    parts = []
    depth = 0
    start = 0
    i = 0
    quote = None
    verbatim = False
    while i < len(expression):
        c = expression[i]
        if quote:
            if c == "\\" and not verbatim:
                i += 2
                continue
            if c == quote:
                if verbatim and expression[i + 1:i + 2] == '"':
                    i += 2
                    continue
                quote = None
            i += 1
            continue
        if c in "\"'":
            quote = c
            verbatim = i > 0 and expression[i - 1] == "@"
        elif c in "([{":
            depth += 1
        elif c in ")]}":
            depth -= 1
        elif c == operator and depth == 0:
            previous = expression[start:i].rstrip()
            # unary sign, or exponent of a real literal
            is_binary = previous and previous[-1] not in "+-*/(,"
            if is_binary and previous[-1] in "eE" and len(previous) > 1 and previous[-2].isdigit():
                is_binary = False
            if is_binary:
                parts.append(expression[start:i])
                start = i + 1
        i += 1
    parts.append(expression[start:])
    return parts


def _strip_parentheses(expression):
    while expression.startswith("(") and expression.endswith(")"):
        depth = 0
        for i, c in enumerate(expression):
            if c == "(":
                depth += 1
            elif c == ")":
                depth -= 1
                if depth == 0 and i != len(expression) - 1:
                    return expression
        expression = expression[1:-1].strip()
    return expression


def _parse_number(text):
    match = INTEGER_PATTERN.match(text)
    if match:
        digits = match.group(1).replace("_", "")
        if digits[:2] in ("0x", "0X"):
            return int(digits[2:], 16)
        if digits[:2] in ("0b", "0B"):
            return int(digits[2:], 2)
        return int(digits)
    match = REAL_PATTERN.match(text)
    if match and (match.group(1) or match.group(2)) and (match.group(2) or match.group(3) or match.group(4)):
        return float(text.rstrip("fFdDmM").replace("_", ""))
    return None


class ConstantResolver:
    def __init__(self, compilation: Optional[Compilation] = None):
        """
        Initialize the resolver.

        Args:
            compilation: Compilation used to look up ``const`` fields declared
                in other types; may be None when only literals matter.
        """
        self.compilation = compilation
        self._constant_cache: Dict[Tuple[str, str], ConstantValue] = {}

    def resolve(self, expression: str, scope: Optional[TypeDeclaration] = None) -> ConstantValue:
        """
        Evaluate ``expression`` in the context of the ``scope`` type declaration.

        Returns:
            ConstantValue with ``has_value`` False when the expression is not a
            compile-time constant the resolver understands.
        """
        if expression is None:
            return NO_VALUE
        key = (scope.qualified_name if scope is not None else "", expression)
        if key in self._constant_cache:
            return self._constant_cache[key]

        value = self._evaluate(expression.strip(), scope, 0)
        self._constant_cache[key] = value
        if not value.has_value:
            logger.debug(f"Could not resolve constant expression: {expression}")
        return value

    def _evaluate(self, expression, scope, depth):
        if depth > MAX_RESOLUTION_DEPTH or not expression:
            return NO_VALUE
        expression = _strip_parentheses(expression)

        terms = _split_top_level(expression, "+")
        if len(terms) > 1:
            return self._evaluate_sum(terms, scope, depth)

        if expression.startswith("-") and not expression.startswith("--"):
            operand = self._evaluate(expression[1:].strip(), scope, depth + 1)
            if operand.has_value and isinstance(operand.value, (int, float)) and not isinstance(operand.value, bool):
                return ConstantValue(True, -operand.value)
            return NO_VALUE
        if expression.startswith("+"):
            return self._evaluate(expression[1:].strip(), scope, depth + 1)

        if expression == "true":
            return ConstantValue(True, True)
        if expression == "false":
            return ConstantValue(True, False)
        if expression == "null":
            return ConstantValue(True, None)

        string_value = parse_string_literal(expression)
        if string_value is not None:
            return ConstantValue(True, string_value)

        if CHAR_PATTERN.match(expression):
            return ConstantValue(True, _unescape(expression[1:-1]))

        number = _parse_number(expression)
        if number is not None:
            return ConstantValue(True, number)

        match = NAMEOF_PATTERN.match(expression)
        if match:
            target = re.sub(r"<.*>", "", match.group(1)).strip()
            return ConstantValue(True, target.split(".")[-1].lstrip("@"))

        match = CAST_PATTERN.match(expression)
        if match:
            return self._evaluate_cast(match.group(1), match.group(2), scope, depth)

        if expression.startswith("global::"):
            expression = expression[len("global::"):]
        if IDENTIFIER_PATTERN.match(expression):
            return self._evaluate_name(re.sub(r"\s+", "", expression), scope, depth)

        return NO_VALUE

    def _evaluate_sum(self, terms, scope, depth):
        values = []
        for term in terms:
            constant = self._evaluate(term.strip(), scope, depth + 1)
            if not constant.has_value:
                return NO_VALUE
            values.append(constant.value)
        if any(isinstance(v, str) for v in values):
            return ConstantValue(True, "".join("" if v is None else str(v) for v in values))
        if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
            return ConstantValue(True, sum(values))
        return NO_VALUE

    def _evaluate_cast(self, type_name, operand, scope, depth):
        constant = self._evaluate(operand, scope, depth + 1)
        if not constant.has_value:
            return NO_VALUE
        value = constant.value
        base_type = type_name.rstrip("?")
        if base_type in INTEGRAL_TYPES and isinstance(value, (int, float)) and not isinstance(value, bool):
            return ConstantValue(True, int(value))
        if base_type in FLOATING_TYPES and isinstance(value, (int, float)) and not isinstance(value, bool):
            return ConstantValue(True, float(value))
        return constant

    def _evaluate_name(self, name, scope, depth):
        parts = [p.lstrip("@") for p in name.split(".")]

        if scope is not None:
            if len(parts) == 1:
                constant = self._lookup_const_field(scope, parts[0], depth)
                if constant is not None:
                    return constant
                return NO_VALUE
            for declaration in self._find_type(".".join(parts[:-1]), scope):
                constant = self._lookup_const_field(declaration, parts[-1], depth)
                if constant is not None:
                    return constant

        if len(parts) > 1:
            return ConstantValue(True, EnumMember(".".join(parts[:-1]), parts[-1]))
        return NO_VALUE

    def _find_type(self, type_name, scope):
        for declaration in scope.enclosing_types():
            if declaration.name == type_name:
                return [declaration]
        if self.compilation is None:
            return []
        candidates = [type_name]
        namespace = scope.namespace
        while namespace:
            candidates.append(f"{namespace}.{type_name}")
            namespace = namespace.rpartition(".")[0]
        for candidate in candidates:
            found = self.compilation.find_types(candidate)
            if found:
                return found
        return []

    def _lookup_const_field(self, declaration, name, depth):
        for current in declaration.enclosing_types():
            for field in current.fields():
                if not field.has_modifier("const"):
                    continue
                for declarator in field.declarators:
                    if declarator.name == name and declarator.initializer is not None:
                        return self._evaluate(declarator.initializer.strip(), current, depth + 1)
        return None
