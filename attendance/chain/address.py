"""Account address decoding and encoding.

Contract addresses arrive either as hex (``0x`` followed by 64 hex digits) or
in the chain-native SS58 form (``5GrwvaEF...``). Both decode to the 32-byte
account id used in extrinsics.
"""

from __future__ import annotations

import hashlib

import base58

from attendance.core.errors import AddressDecodeError

ACCOUNT_ID_LENGTH = 32
_SS58_PREFIX = b"SS58PRE"


def _ss58_checksum(payload: bytes) -> bytes:
    return hashlib.blake2b(_SS58_PREFIX + payload, digest_size=64).digest()[:2]


def ss58_decode(address: str) -> tuple[int, bytes]:
    """Decode an SS58 address into ``(network_format, account_id)``."""
    try:
        raw = base58.b58decode(address)
    except ValueError as exc:
        raise AddressDecodeError(f"invalid SS58 address {address!r}: {exc}") from exc

    if len(raw) < 3:
        raise AddressDecodeError(f"invalid SS58 address {address!r}: too short")

    if raw[0] & 0b0100_0000:
        prefix_len = 2
        network = ((raw[0] & 0b0011_1111) << 2) | (raw[1] >> 6) | ((raw[1] & 0b0011_1111) << 8)
    else:
        prefix_len = 1
        network = raw[0]

    body = raw[prefix_len:-2]
    if len(body) != ACCOUNT_ID_LENGTH:
        raise AddressDecodeError(
            f"invalid SS58 address {address!r}: expected {ACCOUNT_ID_LENGTH}-byte account, got {len(body)}"
        )
    if _ss58_checksum(raw[:-2]) != raw[-2:]:
        raise AddressDecodeError(f"invalid SS58 address {address!r}: checksum mismatch")
    return network, body


def ss58_encode(account_id: bytes, network: int = 42) -> str:
    """Encode a 32-byte account id as an SS58 address for ``network``."""
    if len(account_id) != ACCOUNT_ID_LENGTH:
        raise AddressDecodeError(f"account id must be {ACCOUNT_ID_LENGTH} bytes, got {len(account_id)}")
    if not 0 <= network < 16384:
        raise AddressDecodeError(f"unsupported SS58 network format: {network}")

    if network < 64:
        prefix = bytes([network])
    else:
        prefix = bytes([
            ((network & 0b1111_1100) >> 2) | 0b0100_0000,
            (network >> 8) | ((network & 0b0000_0011) << 6),
        ])
    payload = prefix + account_id
    return base58.b58encode(payload + _ss58_checksum(payload)).decode()


def decode_address(address: str) -> bytes:
    """Decode a hex or SS58 address into a 32-byte account id.

    Raises:
        AddressDecodeError: neither format applies or the length is wrong.
    """
    address = address.strip()
    if not address:
        raise AddressDecodeError("empty address")

    if address.startswith(("0x", "0X")):
        try:
            account_id = bytes.fromhex(address[2:])
        except ValueError as exc:
            raise AddressDecodeError(f"invalid hex address {address!r}: {exc}") from exc
        if len(account_id) != ACCOUNT_ID_LENGTH:
            raise AddressDecodeError(
                f"invalid hex address {address!r}: expected {ACCOUNT_ID_LENGTH} bytes, got {len(account_id)}"
            )
        return account_id

    _, account_id = ss58_decode(address)
    return account_id
