"""Shared fixtures for the attendance test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from attendance.chain.ledger import SimulatedLedger
from attendance.chain.metadata import get_metadata_cache
from attendance.core.config import Settings, get_settings
from attendance.core.types import PLACEHOLDER_ORGANIZER

ALICE = PLACEHOLDER_ORGANIZER


# ── Global state ─────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _reset_caches():
    """Each test starts with no cached metadata and freshly read settings."""
    get_metadata_cache().clear()
    get_settings.cache_clear()
    yield
    get_metadata_cache().clear()
    get_settings.cache_clear()


# ── Contract metadata ────────────────────────────────────────────────────────


def _type(name: str, index: int) -> dict[str, Any]:
    return {"displayName": [name], "type": index}


def _arg(label: str, type_name: str, index: int) -> dict[str, Any]:
    return {"label": label, "type": _type(type_name, index)}


@pytest.fixture
def sample_metadata() -> dict[str, Any]:
    """ink! 4 metadata for the attendance contract."""
    return {
        "source": {
            "hash": "0x" + "ab" * 32,
            "language": "ink! 4.2.0",
            "compiler": "rustc 1.70.0",
        },
        "contract": {
            "name": "attendance_nft",
            "version": "0.1.0",
            "authors": ["Attendance Team <team@example.com>"],
            "description": "Proof-of-attendance NFTs",
        },
        "spec": {
            "constructors": [
                {"label": "new", "selector": "0x9bae9d5e", "args": [], "payable": False, "docs": []},
            ],
            "messages": [
                {
                    "label": "create_event",
                    "selector": "0x1a2b3c4d",
                    "mutates": True,
                    "payable": False,
                    "args": [_arg("name", "String", 0), _arg("date", "String", 0), _arg("location", "String", 0)],
                    "returnType": _type("u64", 1),
                    "docs": ["Create a new event."],
                },
                {
                    "label": "get_event",
                    "selector": "0x2b3c4d5e",
                    "mutates": False,
                    "args": [_arg("event_id", "u64", 1)],
                    "returnType": _type("Option", 5),
                },
                {
                    "label": "mint_nft",
                    "selector": "0x3c4d5e6f",
                    "mutates": True,
                    "args": [
                        _arg("event_id", "u64", 1),
                        _arg("recipient", "AccountId", 2),
                        _arg("metadata", "String", 0),
                    ],
                    "returnType": _type("bool", 3),
                },
                {
                    "label": "get_nft",
                    "selector": "0x4d5e6f70",
                    "mutates": False,
                    "args": [_arg("nft_id", "u64", 1)],
                    "returnType": _type("Option", 6),
                },
                {"label": "get_event_count", "selector": "0x5e6f7081", "mutates": False, "args": [], "returnType": _type("u64", 1)},
                {"label": "get_nft_count", "selector": "0x6f708192", "mutates": False, "args": [], "returnType": _type("u64", 1)},
                {
                    "label": "get_owned_nfts",
                    "selector": "0x708192a3",
                    "mutates": False,
                    "args": [_arg("owner", "AccountId", 2)],
                    "returnType": _type("Vec", 7),
                },
            ],
            "events": [
                {
                    "label": "EventCreated",
                    "args": [{**_arg("event_id", "u64", 1), "indexed": True, "docs": []}],
                    "docs": [],
                },
            ],
            "docs": [],
        },
        "version": "4",
    }


@pytest.fixture
def legacy_metadata() -> dict[str, Any]:
    """Pre-ink! 4 ``V1`` metadata, entries keyed by ``name``."""
    return {
        "metadataVersion": "0.1.0",
        "source": {"hash": "0x" + "cd" * 32, "language": "ink! 3.0.0", "compiler": "rustc 1.56.0"},
        "contract": {"name": "attendance_nft", "version": "0.0.1", "authors": []},
        "V1": {
            "spec": {
                "constructors": [{"name": ["new"], "selector": "0x9bae9d5e", "args": []}],
                "messages": [
                    {
                        "name": ["create_event"],
                        "selector": "0x1a2b3c4d",
                        "mutates": True,
                        "args": [{"name": "name", "type": {"displayName": ["String"], "type": 0}}],
                        "returnType": {"displayName": ["u64"], "type": 1},
                    },
                    {"name": ["get_event_count"], "selector": "0x5e6f7081", "mutates": False, "args": []},
                ],
                "events": [],
            },
        },
    }


@pytest.fixture
def metadata_file(tmp_path: Path, sample_metadata: dict[str, Any]) -> Path:
    path = tmp_path / "attendance_nft.json"
    path.write_text(json.dumps(sample_metadata))
    return path


# ── Ledger ───────────────────────────────────────────────────────────────────


@pytest.fixture
def ledger() -> SimulatedLedger:
    """A freshly seeded ledger: event 1 exists, no NFTs."""
    return SimulatedLedger()


# ── Mock Substrate node ──────────────────────────────────────────────────────


def block_hash_for(number: int) -> str:
    return "0x" + f"{number:064x}"


class MockNode:
    """In-process Substrate node speaking JSON-RPC over httpx.MockTransport.

    ``submission_mode`` decides what happens to a submitted extrinsic:
    "include" puts it in a new block at once, "drop" discards it, and "stall"
    leaves it in the pool forever.
    """

    def __init__(self, chain: str = "Development") -> None:
        self.chain = chain
        self.submission_mode = "include"
        self.reject_submissions = False
        self.failing_methods: set[str] = set()
        self.calls: list[str] = []
        self.submitted: list[str] = []
        self.pool: list[str] = []
        self.blocks: list[dict[str, Any]] = [self._block(0, [])]

    def _block(self, number: int, extrinsics: list[str]) -> dict[str, Any]:
        parent = block_hash_for(number - 1) if number else "0x" + "00" * 32
        return {
            "header": {"number": hex(number), "parentHash": parent},
            "extrinsics": extrinsics,
        }

    def add_block(self, extrinsics: list[str] | None = None) -> str:
        self.blocks.append(self._block(self.best + 1, extrinsics or []))
        return block_hash_for(self.best)

    @property
    def best(self) -> int:
        return len(self.blocks) - 1

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body.get("params", [])
        self.calls.append(method)

        if method in self.failing_methods:
            return self._error(body, -32601, f"Method not found: {method}")

        if method == "system_chain":
            result: Any = self.chain
        elif method == "system_name":
            result = "substrate-contracts-node"
        elif method == "chain_getBlockHash":
            number = params[0] if params else self.best
            result = block_hash_for(number) if number <= self.best else None
        elif method == "chain_getHeader":
            result = self.blocks[self.best]["header"]
        elif method == "chain_getBlock":
            number = int(params[0], 16)
            result = {"block": self.blocks[number]} if number <= self.best else None
        elif method == "state_getRuntimeVersion":
            result = {"specName": "node", "specVersion": 100, "transactionVersion": 1}
        elif method == "system_accountNextIndex":
            result = 0
        elif method == "author_submitExtrinsic":
            if self.reject_submissions:
                return self._error(body, 1010, "Invalid Transaction")
            self.submitted.append(params[0])
            if self.submission_mode == "include":
                self.add_block([params[0]])
            elif self.submission_mode == "stall":
                self.pool.append(params[0])
            result = "0x" + "ee" * 32
        elif method == "author_pendingExtrinsics":
            result = list(self.pool)
        else:
            return self._error(body, -32601, f"Method not found: {method}")

        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    @staticmethod
    def _error(body: dict[str, Any], code: int, message: str) -> httpx.Response:
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": code, "message": message}},
        )


@pytest.fixture
def mock_node() -> MockNode:
    return MockNode()


@pytest.fixture
def node_transport(mock_node: MockNode) -> httpx.MockTransport:
    return httpx.MockTransport(mock_node.handle)


@pytest.fixture
def unreachable_transport() -> httpx.MockTransport:
    """Transport whose every request fails to connect."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


# ── Settings ─────────────────────────────────────────────────────────────────


@pytest.fixture
def chain_settings(metadata_file: Path) -> Settings:
    """Settings pointing at the mock node with a deployed contract."""
    return Settings(
        polkadot_rpc="ws://mock-node:9944",
        contract_address=ALICE,
        contract_metadata_file=str(metadata_file),
        inclusion_timeout_seconds=1.0,
        inclusion_poll_interval_seconds=0.0,
    )
