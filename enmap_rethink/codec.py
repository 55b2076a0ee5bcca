from __future__ import annotations

import json
import math
from typing import Any

from .errors import DecodeError, EncodeError

_PRIMITIVES = (str, int, float, bool, type(None))
_COMPOSITE_PREFIXES = ("[", "{")


def _looks_composite(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(_COMPOSITE_PREFIXES)


def encode_value(value: Any) -> Any:
    """
    Turn a map value into a storable payload.

    Primitives pass through unchanged; dicts, lists and tuples become JSON text.
    Anything decode_value would not read back (bracket-led strings that are not
    JSON, NaN/infinity) raises EncodeError instead.
    """
    if isinstance(value, float) and not math.isfinite(value):
        raise EncodeError("non-finite numbers cannot be stored", {"value": value})
    if _looks_composite(value):
        try:
            json.loads(value)
        except json.JSONDecodeError as e:
            raise EncodeError(
                "strings starting with '[' or '{' must be valid JSON",
                {"payload": value[:40], "pos": e.pos},
            ) from e
        return value
    if isinstance(value, _PRIMITIVES):
        return value
    try:
        return json.dumps(value, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise EncodeError(
            "value is not JSON-serializable",
            {"type": type(value).__name__},
        ) from e


def decode_value(stored: Any, *, key: Any = None) -> Any:
    """
    Reverse of encode_value.

    Only strings that start with "[" or "{" are parsed as JSON; anything else is
    returned as stored. Malformed JSON raises DecodeError.
    """
    if not _looks_composite(stored):
        return stored
    try:
        return json.loads(stored)
    except json.JSONDecodeError as e:
        raise DecodeError(
            "stored payload looks like JSON but does not parse",
            {"key": key, "payload": stored[:40], "pos": e.pos},
        ) from e
