"""Exceptions raised by the generator for tool failures (not for user-code problems)."""


class GeneratorError(Exception):
    """Base exception for dependency property generator failures."""
    pass


class ConfigError(GeneratorError):
    """Raised when the YAML configuration cannot be loaded or has invalid values."""
    pass


class SourceParseError(GeneratorError):
    """Raised when an input source file cannot be read."""
    pass


class DecorationError(GeneratorError):
    """Raised when a naming decoration marker has arguments that do not form a decoration."""
    pass


class UnsupportedToolkitError(GeneratorError):
    """Raised when no emitter exists for an owner's toolkit."""
    pass
