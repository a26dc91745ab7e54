"""Resource identifiers: a numeric ID or a namespaced path."""

from dataclasses import dataclass
from typing import Any, Union
from urllib.parse import quote

from .exceptions import InvalidArgumentError


@dataclass(frozen=True)
class ByID:
    """Numeric resource ID, e.g. ``ByID(42)``."""

    id: int

    def __post_init__(self):
        if isinstance(self.id, bool) or not isinstance(self.id, int):
            raise InvalidArgumentError(
                f"invalid ID type {type(self.id).__name__!r}, the ID must be an int"
            )

    def __str__(self) -> str:
        return str(self.id)


@dataclass(frozen=True)
class ByPath:
    """Namespaced resource path, e.g. ``ByPath("group/sub-group")``."""

    path: str

    def __post_init__(self):
        if not isinstance(self.path, str):
            raise InvalidArgumentError(
                f"invalid path type {type(self.path).__name__!r}, the path must be a string"
            )
        if not self.path:
            raise InvalidArgumentError("the path must not be empty")

    def __str__(self) -> str:
        return self.path


Identifier = Union[ByID, ByPath]


def to_identifier(value: Any) -> Identifier:
    """Normalize an int, a string, or an existing identifier."""
    if isinstance(value, (ByID, ByPath)):
        return value
    # bool is an int subclass; reject it before the int branch
    if isinstance(value, bool):
        raise InvalidArgumentError(
            "invalid ID type 'bool', the ID must be an int or a string",
            value=value,
        )
    if isinstance(value, int):
        return ByID(value)
    if isinstance(value, str):
        return ByPath(value)
    raise InvalidArgumentError(
        f"invalid ID type {type(value).__name__!r}, the ID must be an int or a string",
        value=value,
    )


def parse_id(value: Any) -> str:
    """Return the canonical, unescaped string form of an identifier."""
    return str(to_identifier(value))


def path_escape(value: str) -> str:
    """Escape ``value`` so the server sees exactly one path segment."""
    return quote(value, safe="").replace(".", "%2E")


def escape_id(value: Any) -> str:
    return path_escape(parse_id(value))
