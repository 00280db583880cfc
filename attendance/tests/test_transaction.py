"""Tests for attendance.chain.transaction — contract calls and extrinsic signing."""

from __future__ import annotations

import pytest
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from attendance.chain.address import ss58_decode
from attendance.chain.scale import encode_bytes, encode_compact
from attendance.chain.transaction import (
    EXTRINSIC_VERSION_SIGNED,
    RuntimeInfo,
    Signer,
    build_contract_call,
    build_signed_extrinsic,
    parse_call_index,
    signing_payload,
)
from attendance.core.config import DEV_SIGNER_SEED
from attendance.core.errors import EncodingError, SigningError

DEST = bytes(range(32))
GENESIS = "0x" + "11" * 32


@pytest.fixture
def signer() -> Signer:
    return Signer.from_seed(DEV_SIGNER_SEED)


@pytest.fixture
def runtime() -> RuntimeInfo:
    return RuntimeInfo.from_rpc({"specVersion": 100, "transactionVersion": 2}, GENESIS)


def _strip_length_prefix(extrinsic: bytes) -> bytes:
    # Bodies under test are between 64 and 16383 bytes: two-byte compact prefix.
    assert extrinsic[0] & 0b11 == 0b01
    length = int.from_bytes(extrinsic[:2], "little") >> 2
    body = extrinsic[2:]
    assert len(body) == length
    return body


class TestRuntimeInfo:
    def test_from_rpc(self, runtime: RuntimeInfo):
        assert runtime.spec_version == 100
        assert runtime.transaction_version == 2
        assert runtime.genesis_hash == bytes.fromhex("11" * 32)

    def test_missing_fields(self):
        with pytest.raises(SigningError):
            RuntimeInfo.from_rpc({"specVersion": 1}, GENESIS)

    def test_bad_genesis(self):
        with pytest.raises(SigningError):
            RuntimeInfo.from_rpc({"specVersion": 1, "transactionVersion": 1}, "0xnothex")


class TestSigner:
    def test_from_seed(self, signer: Signer):
        assert len(signer.public_key) == 32

    def test_seed_without_prefix(self, signer: Signer):
        assert Signer.from_seed(DEV_SIGNER_SEED[2:]).public_key == signer.public_key

    @pytest.mark.parametrize("seed", ["", "0x1234", "0x" + "zz" * 32])
    def test_invalid_seed(self, seed):
        with pytest.raises(SigningError):
            Signer.from_seed(seed)

    def test_address_round_trip(self, signer: Signer):
        network, account_id = ss58_decode(signer.address(42))
        assert network == 42
        assert account_id == signer.public_key

    def test_sign_verifies(self, signer: Signer):
        signature = signer.sign(b"payload")
        Ed25519PublicKey.from_public_bytes(signer.public_key).verify(signature, b"payload")


class TestContractCall:
    def test_call_index(self):
        assert parse_call_index("0x0706") == b"\x07\x06"
        assert parse_call_index("1206") == b"\x12\x06"

    @pytest.mark.parametrize("value", ["0x07", "0x070600", "0xzz06"])
    def test_bad_call_index(self, value):
        with pytest.raises(EncodingError):
            parse_call_index(value)

    def test_layout(self):
        data = b"\x1a\x2b\x3c\x4d"
        call = build_contract_call(b"\x07\x06", DEST, data, gas_ref_time=1_000, gas_proof_size=64)
        expected = (
            b"\x07\x06"
            + b"\x00" + DEST
            + encode_compact(0)
            + encode_compact(1_000)
            + encode_compact(64)
            + b"\x00"
            + encode_bytes(data)
        )
        assert call == expected


class TestSigning:
    def test_short_payload_is_signed_raw(self, runtime: RuntimeInfo):
        call = b"\x07\x06" + b"\x00" * 10
        payload, extra = signing_payload(call, nonce=3, runtime=runtime)
        assert extra == b"\x00" + encode_compact(3) + encode_compact(0)
        assert payload.startswith(call + extra)
        assert payload.endswith(runtime.genesis_hash + runtime.genesis_hash)

    def test_long_payload_is_hashed(self, runtime: RuntimeInfo):
        payload, _ = signing_payload(b"\x00" * 300, nonce=0, runtime=runtime)
        assert len(payload) == 32

    def test_signed_extrinsic_layout(self, signer: Signer, runtime: RuntimeInfo):
        call = build_contract_call(b"\x07\x06", DEST, b"\x01\x02\x03\x04", 1_000, 64)
        extrinsic = build_signed_extrinsic(call, signer, nonce=5, runtime=runtime)
        body = _strip_length_prefix(extrinsic)

        assert body[0] == EXTRINSIC_VERSION_SIGNED
        assert body[1] == 0x00
        assert body[2:34] == signer.public_key
        assert body[34] == 0x00
        signature = body[35:99]

        payload, extra = signing_payload(call, 5, runtime)
        assert body[99:99 + len(extra)] == extra
        assert body[99 + len(extra):] == call
        Ed25519PublicKey.from_public_bytes(signer.public_key).verify(signature, payload)

    def test_signature_commits_to_runtime(self, signer: Signer, runtime: RuntimeInfo):
        call = b"\x07\x06\x00"
        extrinsic = build_signed_extrinsic(call, signer, nonce=0, runtime=runtime)
        signature = _strip_length_prefix(extrinsic)[35:99]

        other = RuntimeInfo(spec_version=101, transaction_version=2, genesis_hash=runtime.genesis_hash)
        payload, _ = signing_payload(call, 0, other)
        with pytest.raises(InvalidSignature):
            Ed25519PublicKey.from_public_bytes(signer.public_key).verify(signature, payload)
