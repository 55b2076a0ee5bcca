from __future__ import annotations

import math
import re
from typing import Any, Union

from .errors import InvalidKeyType

Key = Union[str, int, float]

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9]")


def validate_key(key: Any) -> Key:
    """
    Accept only non-empty strings and finite numbers.

    bool is rejected even though it subclasses int.
    """
    if key is None:
        raise InvalidKeyType("key is required")
    if isinstance(key, bool) or not isinstance(key, (str, int, float)):
        raise InvalidKeyType(
            "keys must be strings or numbers",
            {"type": type(key).__name__},
        )
    if isinstance(key, str) and key == "":
        raise InvalidKeyType("key must not be empty")
    if isinstance(key, float) and not math.isfinite(key):
        raise InvalidKeyType("numeric keys must be finite", {"key": key})
    return key


def sanitize_name(name: str) -> str:
    # "My Test!!" -> "my_test__"
    return _UNSAFE_NAME_CHARS.sub("_", name).lower()
