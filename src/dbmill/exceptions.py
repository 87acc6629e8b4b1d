"""Exception classes for dbmill."""

from dbmill.types import ObjectKind

__all__ = [
    "DbmillError",
    "ConfigError",
    "FilterError",
    "ConnectionUrlError",
    "MetadataLoadError",
    "EnumerationError",
    "RenderError",
    "KindMismatchError",
    "MissingMetadataError",
    "EmitError",
]


class DbmillError(Exception):
    """Base exception for dbmill."""


class ConfigError(DbmillError):
    """Error in configuration."""


class FilterError(ConfigError):
    """Malformed include or exclude pattern."""

    def __init__(self, pattern: str, message: str):
        self.pattern = pattern
        super().__init__(f"{pattern}: {message}")


class ConnectionUrlError(ConfigError):
    """Connection URL cannot be parsed."""


class MetadataLoadError(DbmillError):
    """Error reading catalog metadata."""


class EnumerationError(DbmillError):
    """Error streaming the object list."""


class RenderError(DbmillError):
    """Error rendering the definition of a single object."""


class KindMismatchError(RenderError):
    """Renderer invoked for an object of another kind."""

    def __init__(self, name: str, expected: ObjectKind, actual: ObjectKind):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"object {name} is not a {expected.value} (got {actual.value})"
        )


class MissingMetadataError(RenderError):
    """Metadata the definition depends on is missing."""


class EmitError(DbmillError):
    """Error persisting a rendered definition."""
