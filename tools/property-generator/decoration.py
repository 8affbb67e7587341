"""
Naming conventions tying members to dependency properties.

A Decoration is a prefix/suffix pair. With the default conventions the field
``defaultForWidth`` holds the default value of the ``Width`` property, and the
methods ``CoerceWidth``, ``ValidateWidth`` and ``OnWidthChanged`` are its
coercion, validation and change callbacks.
"""

from enum import Enum
from typing import Optional


class Decoration:
    __slots__ = ("_prefix", "_suffix")

    def __init__(self, prefix: str, suffix: str = ""):
        if prefix is None or suffix is None:
            raise TypeError("Decoration prefix and suffix must not be None")
        if not prefix and not suffix:
            raise ValueError("Both prefix and suffix cannot be empty")
        self._prefix = prefix
        self._suffix = suffix

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def suffix(self) -> str:
        return self._suffix

    def matches(self, name: Optional[str]) -> bool:
        return self.strip(name) is not None

    def strip(self, name: Optional[str]) -> Optional[str]:
        """
        Remove the decoration from ``name``.

        Returns the inner name, or None when ``name`` does not start with the
        prefix and end with the suffix, or when nothing would remain.
        """
        if not name or len(name) <= len(self._prefix) + len(self._suffix):
            return None
        if not name.startswith(self._prefix) or not name.endswith(self._suffix):
            return None
        return name[len(self._prefix):len(name) - len(self._suffix)]

    def apply(self, name: str) -> str:
        return f"{self._prefix}{name}{self._suffix}"

    def __eq__(self, other):
        if not isinstance(other, Decoration):
            return NotImplemented
        return (self._prefix, self._suffix) == (other._prefix, other._suffix)

    def __hash__(self):
        return hash((self._prefix, self._suffix))

    def __repr__(self):
        return f"Decoration(prefix={self._prefix!r}, suffix={self._suffix!r})"


class DecorationKind(Enum):
    """The four conventions, each configurable through its own marker."""

    DEFAULT_VALUE = ("DefaultValueNameDecoration", "defaultFor", "")
    COERCE_CALLBACK = ("CoerceCallbackNameDecoration", "Coerce", "")
    VALIDATE_CALLBACK = ("ValidateCallbackNameDecoration", "Validate", "")
    CHANGED_HANDLER = ("PropertyChangedHandlerNameDecoration", "On", "Changed")

    def __init__(self, marker_name, default_prefix, default_suffix):
        self.marker_name = marker_name
        self.default_prefix = default_prefix
        self.default_suffix = default_suffix

    @property
    def default(self) -> Decoration:
        return Decoration(self.default_prefix, self.default_suffix)


# Order in which a method name is tried against the callback conventions.
CALLBACK_KINDS = (
    DecorationKind.COERCE_CALLBACK,
    DecorationKind.VALIDATE_CALLBACK,
    DecorationKind.CHANGED_HANDLER,
)
