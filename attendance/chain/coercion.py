"""Argument coercion for contract calls.

Callers hand ids to the contract layer in whatever shape they happen to hold:
Python ints, floats decoded from JSON numbers, numeric strings, or a call-data
mapping of the form ``{"args": [id, ...]}``. These helpers turn such values
into unsigned integers with a fixed precedence and raise InvalidArgsError for
anything else.

Precedence for ``coerce_uint``:
    1. bool          rejected (True is not an id)
    2. int           must be >= 0
    3. float         must be finite and >= 0, truncated toward zero

``coerce_call_id`` tries ``coerce_uint`` first, then
    4. str           decimal digits, optionally surrounded by whitespace
    5. Mapping       first element of its ``args`` list, via ``coerce_uint``
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from attendance.core.errors import InvalidArgsError

U64_MAX = 2**64 - 1


def coerce_uint(value: Any) -> int:
    """Convert an integer-like value to an unsigned 64-bit integer."""
    if isinstance(value, bool):
        raise InvalidArgsError(f"invalid id type: {type(value).__name__}")
    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        if not math.isfinite(value) or value < 0:
            raise InvalidArgsError(f"invalid id: {value!r}")
        result = int(value)
    else:
        raise InvalidArgsError(f"invalid id type: {type(value).__name__}")

    if result < 0 or result > U64_MAX:
        raise InvalidArgsError(f"id out of range: {value!r}")
    return result


def coerce_call_id(value: Any) -> int:
    """Like coerce_uint, but also accepts numeric strings and call-data mappings."""
    if isinstance(value, (bool, int, float)):
        return coerce_uint(value)

    if isinstance(value, str):
        text = value.strip()
        if not text.isdigit():
            raise InvalidArgsError(f"invalid id: {value!r}")
        return coerce_uint(int(text))

    if isinstance(value, Mapping):
        args = value.get("args")
        if not isinstance(args, Sequence) or isinstance(args, (str, bytes)) or not args:
            raise InvalidArgsError("invalid call data format")
        return coerce_uint(args[0])

    raise InvalidArgsError(f"invalid id type: {type(value).__name__}")


def require_str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise InvalidArgsError(f"invalid {what} type: {type(value).__name__}")
    return value
