"""Typed façade over the contract caller.

Application code uses BlockchainClient and never sees whether answers came
from a deployed contract or from the simulated ledger; the logs say which.
"""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from attendance.chain.address import decode_address
from attendance.chain.caller import ContractCaller, SimulatedCaller, invoke, new_contract_caller
from attendance.chain.ledger import SimulatedLedger
from attendance.chain.rpc import SubstrateRPC
from attendance.core.config import Settings, get_settings
from attendance.core.errors import ContractError, InvalidArgsError, ResultDecodeError, RPCError
from attendance.core.types import NFT, CallerKind, Event, demo_nft

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _decode(result: bytes, what: str) -> Any:
    try:
        return json.loads(result)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ResultDecodeError(f"failed to parse {what}: {exc}") from exc


def _decode_model(result: bytes, model: type[M], what: str) -> M | None:
    if not result:
        return None
    try:
        return model.model_validate_json(result)
    except ValidationError as exc:
        raise ResultDecodeError(f"failed to parse {what}: {exc}") from exc


def _decode_count(result: bytes, what: str) -> int:
    count = _decode(result, what)
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise ResultDecodeError(f"failed to parse {what}: {count!r}")
    return count


class BlockchainClient:
    """Events and attendance NFTs on the contract, or on the simulated ledger."""

    def __init__(
        self,
        caller: ContractCaller,
        chain_name: str = "Mock",
        rpc: SubstrateRPC | None = None,
    ) -> None:
        self.caller = caller
        self.chain_name = chain_name
        self._rpc = rpc

    @classmethod
    def connect(
        cls,
        settings: Settings | None = None,
        ledger: SimulatedLedger | None = None,
        transport: httpx.BaseTransport | None = None,
        metadata_base_dir: str | None = None,
    ) -> BlockchainClient:
        """Connect to the configured node and contract.

        Never fails for connectivity or configuration reasons: an unreachable
        node, a missing or undecodable contract address, or a missing signer
        all produce a client backed by ``ledger``.
        """
        settings = settings or get_settings()
        ledger = ledger if ledger is not None else SimulatedLedger()

        logger.info("Connecting to %s...", settings.polkadot_rpc)
        rpc = SubstrateRPC(settings.polkadot_rpc, timeout=settings.rpc_timeout_seconds, transport=transport)
        try:
            chain_name = rpc.chain_name()
        except RPCError as exc:
            logger.warning(
                "Failed to connect to Polkadot node: %s; using simulated ledger",
                exc.message,
                extra={"backend": "simulated", "fallback_reason": "node unreachable"},
            )
            rpc.close()
            return cls(SimulatedCaller(ledger), chain_name="Mock")

        logger.info("Connected to chain: %s", chain_name, extra={"chain": chain_name})

        if not settings.contract_address:
            logger.info("No contract address provided, using simulated ledger", extra={"backend": "simulated"})
            return cls(SimulatedCaller(ledger), chain_name=chain_name, rpc=rpc)

        try:
            contract_address = decode_address(settings.contract_address)
        except ContractError as exc:
            logger.warning(
                "Address conversion failed (%s), using simulated ledger",
                exc.message,
                extra={"backend": "simulated", "fallback_reason": "invalid contract address"},
            )
            return cls(SimulatedCaller(ledger), chain_name=chain_name, rpc=rpc)

        caller = new_contract_caller(rpc, contract_address, ledger, settings, metadata_base_dir)
        if caller.kind is CallerKind.REAL:
            logger.info("Using contract at address: %s", settings.contract_address, extra={"backend": "real"})
        else:
            logger.info("Using simulated contract implementation", extra={"backend": "simulated"})
        return cls(caller, chain_name=chain_name, rpc=rpc)

    @property
    def use_simulation(self) -> bool:
        return self.caller.kind is CallerKind.SIMULATED

    def close(self) -> None:
        if self._rpc is not None:
            self._rpc.close()
            self._rpc = None

    # ── Events ───────────────────────────────────────────────────────

    def create_event(self, name: str, date: str, location: str) -> int:
        """Create an event and return its id."""
        if not name or not date or not location:
            raise InvalidArgsError("name, date, and location are required")

        event_id = _decode(invoke(self.caller, "create_event", name, date, location), "event ID")
        if isinstance(event_id, bool) or not isinstance(event_id, int):
            raise ResultDecodeError(f"failed to parse event ID: {event_id!r}")
        logger.info("Event created with ID: %d", event_id)
        return event_id

    def get_event(self, event_id: int) -> Event | None:
        """Return the event, or None if there is no event with that id."""
        event = _decode_model(invoke(self.caller, "get_event", event_id), Event, "event")
        if event is None:
            logger.debug("Event %s not found", event_id)
        return event

    def event_count(self) -> int:
        return _decode_count(invoke(self.caller, "get_event_count"), "event count")

    def list_events(self) -> list[Event]:
        """Return every event, skipping any id that cannot be read."""
        count = self.event_count()
        events: list[Event] = []
        for event_id in range(1, count + 1):
            try:
                event = self.get_event(event_id)
            except ContractError as exc:
                logger.warning("Failed to get event %d: %s", event_id, exc.message)
                continue
            if event is not None:
                events.append(event)
        return events

    # ── NFTs ─────────────────────────────────────────────────────────

    def mint_nft(self, event_id: int, recipient: str, metadata: dict[str, Any]) -> bool:
        """Mint an attendance NFT; False when the event does not exist."""
        if not recipient:
            raise InvalidArgsError("recipient address is required")
        if event_id == 0:
            raise InvalidArgsError("invalid event ID")

        try:
            metadata_json = json.dumps(metadata, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise InvalidArgsError(f"failed to marshal metadata: {exc}") from exc

        success = _decode(invoke(self.caller, "mint_nft", event_id, recipient, metadata_json), "mint result")
        if not isinstance(success, bool):
            raise ResultDecodeError(f"failed to parse mint result: {success!r}")
        if success:
            logger.info("NFT minted for event %d to %s", event_id, recipient)
        else:
            logger.info("NFT minting failed for event %d", event_id)
        return success

    def get_nft(self, nft_id: int) -> NFT | None:
        return _decode_model(invoke(self.caller, "get_nft", nft_id), NFT, "NFT")

    def nft_count(self) -> int:
        return _decode_count(invoke(self.caller, "get_nft_count"), "NFT count")

    def list_nfts(self) -> list[NFT]:
        """Return every NFT.

        With the simulated ledger and nothing minted yet, returns a single
        demonstration NFT so empty installations have something to show.
        """
        count = self.nft_count()
        if self.use_simulation and count == 0:
            logger.info("Using demo NFT data", extra={"backend": "simulated"})
            return [demo_nft()]

        nfts: list[NFT] = []
        for nft_id in range(1, count + 1):
            try:
                nft = self.get_nft(nft_id)
            except ContractError as exc:
                logger.warning("Failed to get NFT %d: %s", nft_id, exc.message)
                continue
            if nft is not None:
                nfts.append(nft)
        return nfts
