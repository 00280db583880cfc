"""In-memory simulated ledger for the attendance contract.

Implements every contract message the backend uses directly against Python
dicts so the application keeps working when no chain, contract, or metadata
is available. Results are JSON bytes, the same shape the façade decodes for
real contract results. An empty byte string means "not found".

One instance is meant to be shared by every caller in the process; the
composition root constructs it and passes it down.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable

from attendance.chain.coercion import coerce_call_id, coerce_uint, require_str
from attendance.core.errors import InvalidArgsError, UnknownMethodError
from attendance.core.types import NFT, PLACEHOLDER_ORGANIZER, Event

logger = logging.getLogger(__name__)

# Placeholder result for get_owned_nfts until owner indexing exists.
PLACEHOLDER_OWNED_NFTS = [1, 2, 3]


def _encode(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":")).encode()


def _reject_constant(literal: str) -> Any:
    raise InvalidArgsError(f"invalid metadata JSON: {literal} is not a JSON number")


def _require_args(method: str, args: tuple[Any, ...], count: int) -> None:
    if len(args) < count:
        noun = "argument" if count == 1 else "arguments"
        raise InvalidArgsError(f"{method} requires {count} {noun}")


class SimulatedLedger:
    """Thread-safe stand-in for on-chain contract state.

    Every call holds the ledger lock for its whole body, reads included.
    Nothing inside the lock performs I/O; log lines are written after the
    lock is released.
    """

    def __init__(self, seed: bool = True) -> None:
        self._lock = threading.Lock()
        self._events: dict[int, Event] = {}
        self._nfts: dict[int, NFT] = {}
        self._event_count = 0
        self._nft_count = 0

        if seed:
            self._events[1] = Event(
                id=1,
                name="Polkadot Meetup",
                date="2023-06-01",
                location="Berlin",
                organizer=PLACEHOLDER_ORGANIZER,
            )
            self._event_count = 1

        self._handlers: dict[str, Callable[[tuple[Any, ...]], tuple[bytes, str | None]]] = {
            "create_event": self._create_event,
            "get_event": self._get_event,
            "mint_nft": self._mint_nft,
            "get_nft": self._get_nft,
            "get_event_count": self._get_event_count,
            "get_nft_count": self._get_nft_count,
            "get_owned_nfts": self._get_owned_nfts,
        }

    @property
    def methods(self) -> frozenset[str]:
        return frozenset(self._handlers)

    def invoke(self, method: str, *args: Any) -> bytes:
        """Execute a contract message against the in-memory state.

        Raises:
            UnknownMethodError: the method name is not a contract message.
            InvalidArgsError: wrong argument count, types, or metadata JSON.
        """
        handler = self._handlers.get(method)
        if handler is None:
            raise UnknownMethodError(f"unknown method: {method}")

        with self._lock:
            result, note = handler(args)

        logger.debug(
            "Simulated %s with %d args",
            method,
            len(args),
            extra={"contract_method": method, "backend": "simulated"},
        )
        if note:
            logger.info(note, extra={"contract_method": method, "backend": "simulated"})
        return result

    def snapshot(self) -> dict[str, int]:
        """Return the current counters as one consistent read."""
        with self._lock:
            return {"event_count": self._event_count, "nft_count": self._nft_count}

    # ── Handlers (called with the lock held) ─────────────────────────────

    def _create_event(self, args: tuple[Any, ...]) -> tuple[bytes, str | None]:
        _require_args("create_event", args, 3)
        name, date, location = args[0], args[1], args[2]
        if not all(isinstance(a, str) for a in (name, date, location)):
            raise InvalidArgsError("invalid argument types")

        self._event_count += 1
        event_id = self._event_count
        self._events[event_id] = Event(
            id=event_id,
            name=name,
            date=date,
            location=location,
            organizer=PLACEHOLDER_ORGANIZER,
        )
        return _encode(event_id), f"Created simulated event {event_id}: {name}"

    def _get_event(self, args: tuple[Any, ...]) -> tuple[bytes, str | None]:
        _require_args("get_event", args, 1)
        event_id = coerce_call_id(args[0])
        event = self._events.get(event_id)
        if event is None:
            return b"", f"Event {event_id} not found in simulated ledger"
        return event.model_dump_json().encode(), None

    def _mint_nft(self, args: tuple[Any, ...]) -> tuple[bytes, str | None]:
        _require_args("mint_nft", args, 3)
        event_id = coerce_uint(args[0])
        recipient = require_str(args[1], "recipient")
        metadata_json = require_str(args[2], "metadata")

        if event_id not in self._events:
            return _encode(False), f"Cannot mint NFT: event {event_id} not found"

        try:
            metadata = json.loads(metadata_json, parse_constant=_reject_constant)
        except json.JSONDecodeError as exc:
            raise InvalidArgsError(f"invalid metadata JSON: {exc}") from exc
        if not isinstance(metadata, dict):
            raise InvalidArgsError("invalid metadata JSON: expected an object")

        self._nft_count += 1
        nft_id = self._nft_count
        self._nfts[nft_id] = NFT(id=nft_id, event_id=event_id, owner=recipient, metadata=metadata)
        return _encode(True), f"Minted NFT {nft_id} for event {event_id}, recipient {recipient}"

    def _get_nft(self, args: tuple[Any, ...]) -> tuple[bytes, str | None]:
        _require_args("get_nft", args, 1)
        nft_id = coerce_call_id(args[0])
        nft = self._nfts.get(nft_id)
        if nft is None:
            return b"", None
        return nft.model_dump_json().encode(), None

    def _get_event_count(self, args: tuple[Any, ...]) -> tuple[bytes, str | None]:
        return _encode(self._event_count), None

    def _get_nft_count(self, args: tuple[Any, ...]) -> tuple[bytes, str | None]:
        return _encode(self._nft_count), None

    def _get_owned_nfts(self, args: tuple[Any, ...]) -> tuple[bytes, str | None]:
        _require_args("get_owned_nfts", args, 1)
        # Owner is not consulted; the simulation has no ownership index.
        if isinstance(args[0], str):
            return _encode(PLACEHOLDER_OWNED_NFTS), None
        return _encode([]), None
