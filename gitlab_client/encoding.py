"""Encode option values as query parameters or JSON bodies.

Option values are pydantic models or plain mappings. Fields set to ``None``
are omitted, so an options object with nothing set encodes to an empty query
string or an empty JSON object.
"""

import json
from collections.abc import Mapping
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError, to_jsonable_python

from .exceptions import InvalidArgumentError


def to_wire_dict(value: Any) -> Dict[str, Any]:
    """Return the JSON-compatible field mapping of an options value."""
    if value is None:
        return {}
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, Mapping):
        wire = {}
        for key, item in value.items():
            if item is None:
                continue
            try:
                wire[str(key)] = to_jsonable_python(item, exclude_none=True, by_alias=True)
            except PydanticSerializationError as e:
                raise InvalidArgumentError(
                    f"cannot encode option {key!r}: {e}", original_exception=e
                ) from e
        return wire
    raise InvalidArgumentError(
        f"cannot encode options of type {type(value).__name__!r}; "
        "use a pydantic model or a mapping",
        value_type=type(value).__name__,
    )


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"))


def _flatten(name: str, value: Any, pairs: List[Tuple[str, str]]) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            _flatten(f"{name}[{key}]", item, pairs)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _flatten(f"{name}[]", item, pairs)
    else:
        pairs.append((name, _format_scalar(value)))


def encode_query(value: Any) -> List[Tuple[str, str]]:
    """Encode an options value as ordered query pairs."""
    pairs: List[Tuple[str, str]] = []
    for name, item in to_wire_dict(value).items():
        _flatten(name, item, pairs)
    return pairs


def encode_json(value: Any) -> bytes:
    """Encode a request body value as compact JSON."""
    if isinstance(value, (list, tuple)):
        try:
            payload: Any = to_jsonable_python(value, exclude_none=True, by_alias=True)
        except PydanticSerializationError as e:
            raise InvalidArgumentError(f"cannot encode body as JSON: {e}", original_exception=e) from e
    else:
        payload = to_wire_dict(value)
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
