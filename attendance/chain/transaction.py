"""Contract call construction and extrinsic signing.

Extrinsics are signed with ed25519 (``MultiSignature::Ed25519``) using an
immortal era and zero tip. The signed-extension set is the classic one
(era, nonce, tip / spec version, transaction version, genesis, block hash);
runtimes that require additional extensions will reject the extrinsic, which
the contract caller treats like any other submission failure.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from attendance.chain.address import ss58_encode
from attendance.chain.scale import encode_bytes, encode_compact, encode_uint
from attendance.core.errors import EncodingError, SigningError

EXTRINSIC_VERSION_SIGNED = 0x84
MULTIADDRESS_ID = 0x00
MULTISIGNATURE_ED25519 = 0x00
IMMORTAL_ERA = b"\x00"


@dataclass(frozen=True)
class RuntimeInfo:
    """Chain facts every signature commits to."""

    spec_version: int
    transaction_version: int
    genesis_hash: bytes

    @classmethod
    def from_rpc(cls, version: dict[str, Any], genesis_hash: str) -> RuntimeInfo:
        try:
            return cls(
                spec_version=int(version["specVersion"]),
                transaction_version=int(version["transactionVersion"]),
                genesis_hash=bytes.fromhex(genesis_hash.removeprefix("0x")),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SigningError(f"unusable runtime version: {exc}") from exc


class Signer:
    """An ed25519 keypair used to sign extrinsics."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self.public_key = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    @classmethod
    def from_seed(cls, seed: str) -> Signer:
        """Build a signer from a 32-byte hex seed (``0x`` prefix optional)."""
        try:
            raw = bytes.fromhex(seed.removeprefix("0x"))
            return cls(Ed25519PrivateKey.from_private_bytes(raw))
        except ValueError as exc:
            raise SigningError(f"invalid signer seed: {exc}") from exc

    def address(self, network: int = 42) -> str:
        return ss58_encode(self.public_key, network)

    def sign(self, payload: bytes) -> bytes:
        return self._private_key.sign(payload)


def parse_call_index(call_index: str) -> bytes:
    """Decode the two-byte pallet/call index of Contracts.call."""
    try:
        raw = bytes.fromhex(call_index.removeprefix("0x"))
    except ValueError as exc:
        raise EncodingError(f"invalid call index {call_index!r}: {exc}") from exc
    if len(raw) != 2:
        raise EncodingError(f"call index must be 2 bytes, got {len(raw)}")
    return raw


def build_contract_call(
    call_index: bytes,
    dest: bytes,
    data: bytes,
    gas_ref_time: int,
    gas_proof_size: int,
    value: int = 0,
) -> bytes:
    """Encode ``Contracts.call(dest, value, gas_limit, storage_deposit_limit, data)``."""
    return (
        call_index
        + bytes([MULTIADDRESS_ID]) + dest
        + encode_compact(value)
        + encode_compact(gas_ref_time)
        + encode_compact(gas_proof_size)
        + b"\x00"  # storage_deposit_limit: None
        + encode_bytes(data)
    )


def signing_payload(call: bytes, nonce: int, runtime: RuntimeInfo) -> tuple[bytes, bytes]:
    """Return ``(payload_to_sign, extra)`` for ``call``."""
    extra = IMMORTAL_ERA + encode_compact(nonce) + encode_compact(0)
    additional = (
        encode_uint(runtime.spec_version, 4)
        + encode_uint(runtime.transaction_version, 4)
        + runtime.genesis_hash
        + runtime.genesis_hash  # immortal era: checkpoint is genesis
    )
    payload = call + extra + additional
    if len(payload) > 256:
        payload = hashlib.blake2b(payload, digest_size=32).digest()
    return payload, extra


def build_signed_extrinsic(call: bytes, signer: Signer, nonce: int, runtime: RuntimeInfo) -> bytes:
    """Sign ``call`` and wrap it as a length-prefixed extrinsic."""
    payload, extra = signing_payload(call, nonce, runtime)
    try:
        signature = signer.sign(payload)
    except Exception as exc:
        raise SigningError(f"failed to sign extrinsic: {exc}") from exc

    body = (
        bytes([EXTRINSIC_VERSION_SIGNED])
        + bytes([MULTIADDRESS_ID]) + signer.public_key
        + bytes([MULTISIGNATURE_ED25519]) + signature
        + extra
        + call
    )
    return encode_compact(len(body)) + body
