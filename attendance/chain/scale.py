"""Minimal SCALE encoding for contract calls and extrinsics.

Covers compact integers, fixed-width unsigned integers, booleans, strings,
byte vectors and account ids. That is enough for the attendance contract's
messages; composite argument types (structs, enums, Option, Vec<T> for T other
than u8) are not encoded and raise EncodingError, which sends the call to the
simulated ledger.
"""

from __future__ import annotations

from typing import Any

from attendance.chain.address import decode_address
from attendance.chain.coercion import coerce_uint
from attendance.chain.metadata import MethodDescriptor
from attendance.core.errors import AddressDecodeError, EncodingError, InvalidArgsError

_UINT_WIDTHS = {"u8": 1, "u16": 2, "u32": 4, "u64": 8, "u128": 16}


def encode_compact(value: int) -> bytes:
    """SCALE compact encoding of a non-negative integer."""
    if value < 0:
        raise EncodingError(f"compact integers are unsigned: {value}")
    if value < 1 << 6:
        return bytes([value << 2])
    if value < 1 << 14:
        return ((value << 2) | 0b01).to_bytes(2, "little")
    if value < 1 << 30:
        return ((value << 2) | 0b10).to_bytes(4, "little")

    length = max(4, (value.bit_length() + 7) // 8)
    if length > 67:
        raise EncodingError(f"integer too large for compact encoding: {value}")
    return bytes([((length - 4) << 2) | 0b11]) + value.to_bytes(length, "little")


def encode_uint(value: int, width: int) -> bytes:
    try:
        return value.to_bytes(width, "little")
    except OverflowError as exc:
        raise EncodingError(f"{value} does not fit in {width * 8} bits") from exc


def encode_bytes(data: bytes) -> bytes:
    """Vec<u8>: compact length prefix followed by the raw bytes."""
    return encode_compact(len(data)) + data


def encode_str(value: str) -> bytes:
    return encode_bytes(value.encode("utf-8"))


def _infer_type(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "u64"
    if isinstance(value, str):
        return "String"
    if isinstance(value, (bytes, bytearray)):
        return "Vec"
    raise EncodingError(f"cannot infer SCALE type for {type(value).__name__}")


def encode_value(type_name: str, value: Any) -> bytes:
    """Encode ``value`` as the contract type named ``type_name``."""
    type_name = type_name or _infer_type(value)

    if type_name in _UINT_WIDTHS:
        try:
            number = coerce_uint(value)
        except InvalidArgsError as exc:
            raise EncodingError(f"cannot encode {value!r} as {type_name}: {exc.message}") from exc
        return encode_uint(number, _UINT_WIDTHS[type_name])
    if type_name == "bool":
        if not isinstance(value, bool):
            raise EncodingError(f"cannot encode {value!r} as bool")
        return b"\x01" if value else b"\x00"
    if type_name in ("String", "str"):
        if not isinstance(value, str):
            raise EncodingError(f"cannot encode {value!r} as String")
        return encode_str(value)
    if type_name == "AccountId":
        if not isinstance(value, str):
            raise EncodingError(f"cannot encode {value!r} as AccountId")
        try:
            return decode_address(value)
        except AddressDecodeError as exc:
            raise EncodingError(f"cannot encode {value!r} as AccountId: {exc.message}") from exc
    if type_name == "Vec" and isinstance(value, (bytes, bytearray)):
        return encode_bytes(bytes(value))

    raise EncodingError(f"SCALE encoding for {type_name} is not implemented")


def selector_bytes(selector: str) -> bytes:
    """Decode a ``0x``-prefixed (or bare) hex selector."""
    text = selector[2:] if selector.startswith(("0x", "0X")) else selector
    try:
        return bytes.fromhex(text)
    except ValueError as exc:
        raise EncodingError(f"invalid selector format {selector!r}: {exc}") from exc


def encode_call_data(method: MethodDescriptor, args: tuple[Any, ...]) -> bytes:
    """Build contract input data: the selector followed by each encoded argument.

    Argument types come from the metadata display names where the message
    declares them, and are inferred from the Python values otherwise.
    """
    if method.args and len(args) != len(method.args):
        raise EncodingError(
            f"{method.label} takes {len(method.args)} arguments, got {len(args)}"
        )

    data = selector_bytes(method.selector)
    for index, value in enumerate(args):
        type_name = method.args[index].type.display if method.args else ""
        data += encode_value(type_name, value)
    return data
