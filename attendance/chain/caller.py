"""Contract invocation with total fallback to the simulated ledger.

A contract caller is one of two variants:

    RealCaller       talks to a deployed contract through a Substrate node
    SimulatedCaller  answers from the in-memory SimulatedLedger

and ``invoke(caller, method, *args)`` is the single entry point for both.

The real path is: resolve the method in the contract metadata, then either
query contract state (read-only messages) or encode, sign, submit and wait for
a transaction (mutating messages). Any failure along that path, including the
parts that are not implemented yet, is logged and the call is answered by the
ledger instead. Callers therefore only ever see the ledger's own errors:
InvalidArgsError and UnknownMethodError.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from attendance.chain.ledger import SimulatedLedger
from attendance.chain.metadata import (
    ContractMetadata,
    MethodDescriptor,
    load_contract_metadata_cached,
    resolve_method,
)
from attendance.chain.rpc import SubstrateRPC
from attendance.chain.scale import encode_call_data
from attendance.chain.transaction import (
    RuntimeInfo,
    Signer,
    build_contract_call,
    build_signed_extrinsic,
    parse_call_index,
)
from attendance.core.config import Settings, get_settings
from attendance.core.errors import ContractError, NotFoundError, QueryNotSupportedError, RPCError
from attendance.core.types import CallerKind

logger = logging.getLogger(__name__)

READ_ONLY_METHODS = frozenset({
    "get_event",
    "get_nft",
    "get_event_count",
    "get_nft_count",
    "get_owned_nfts",
})

# Returned for create_event until the id is read from the EventCreated event.
PLACEHOLDER_EVENT_ID = 1


# ── Variants ─────────────────────────────────────────────────────────────────


@dataclass
class SimulatedCaller:
    ledger: SimulatedLedger
    kind: Literal[CallerKind.SIMULATED] = field(default=CallerKind.SIMULATED, init=False)


@dataclass
class RealCaller:
    rpc: SubstrateRPC
    contract_address: bytes
    signer: Signer
    ledger: SimulatedLedger
    metadata: ContractMetadata | None = None
    settings: Settings = field(default_factory=get_settings)
    kind: Literal[CallerKind.REAL] = field(default=CallerKind.REAL, init=False)


ContractCaller = Union[RealCaller, SimulatedCaller]


# ── Dispatch ─────────────────────────────────────────────────────────────────


def invoke(caller: ContractCaller, method: str, *args: Any) -> bytes:
    """Call contract message ``method`` and return its JSON-encoded result.

    An empty result means "not found" for lookups.

    Raises:
        InvalidArgsError: arguments the ledger cannot accept.
        UnknownMethodError: ``method`` is not a contract message.
    """
    if caller.kind is CallerKind.SIMULATED:
        return caller.ledger.invoke(method, *args)
    return _invoke_real(caller, method, args)


def _fall_back(caller: RealCaller, method: str, args: tuple[Any, ...], reason: str) -> bytes:
    logger.warning(
        "Falling back to simulated ledger for %s: %s",
        method,
        reason,
        extra={"contract_method": method, "backend": "simulated", "fallback_reason": reason},
    )
    return caller.ledger.invoke(method, *args)


def _invoke_real(caller: RealCaller, method: str, args: tuple[Any, ...]) -> bytes:
    logger.info("Calling contract method: %s", method, extra={"contract_method": method, "backend": "real"})

    if caller.metadata is None:
        return _fall_back(caller, method, args, "no contract metadata available")

    try:
        descriptor = resolve_method(caller.metadata, method)
    except NotFoundError as exc:
        return _fall_back(caller, method, args, exc.message)

    if descriptor.label.casefold() in READ_ONLY_METHODS:
        try:
            return query_contract_state(caller, descriptor, args)
        except Exception as exc:
            return _fall_back(caller, method, args, f"query failed: {exc}")

    start = time.perf_counter()
    try:
        block_hash = submit_contract_call(caller, descriptor, args)
    except Exception as exc:
        return _fall_back(caller, method, args, f"transaction failed: {exc}")

    logger.info(
        "Transaction for %s included in block %s",
        method,
        block_hash,
        extra={
            "contract_method": method,
            "backend": "real",
            "duration_ms": round((time.perf_counter() - start) * 1000, 1),
        },
    )
    return synthesize_result(method)


def synthesize_result(method: str) -> bytes:
    """Result for a successful transaction whose return value is not decoded."""
    if method == "create_event":
        return json.dumps(PLACEHOLDER_EVENT_ID).encode()
    return json.dumps(True).encode()


# ── Real path steps ──────────────────────────────────────────────────────────


def query_contract_state(caller: RealCaller, method: MethodDescriptor, args: tuple[Any, ...]) -> bytes:
    """Read-only contract query.

    Builds the call data for ``ContractsApi_call`` but stops short of the RPC:
    decoding ``ContractExecResult`` is not implemented, so every query ends in
    QueryNotSupportedError.
    """
    input_data = encode_call_data(method, args)
    raise QueryNotSupportedError(
        f"decoding {method.label} results is not implemented ({len(input_data)} bytes of call data prepared)"
    )


def submit_contract_call(caller: RealCaller, method: MethodDescriptor, args: tuple[Any, ...]) -> str:
    """Encode, sign and submit a mutating call; return the including block hash."""
    settings = caller.settings
    rpc = caller.rpc

    data = encode_call_data(method, args)
    call = build_contract_call(
        parse_call_index(settings.contracts_call_index),
        caller.contract_address,
        data,
        settings.gas_limit_ref_time,
        settings.gas_limit_proof_size,
    )

    runtime = RuntimeInfo.from_rpc(rpc.runtime_version(), rpc.block_hash(0))
    try:
        nonce = rpc.account_next_index(caller.signer.address(settings.ss58_format))
    except (RPCError, TypeError, ValueError):
        nonce = 0
        logger.debug("Account nonce unavailable, assuming 0")

    extrinsic = build_signed_extrinsic(call, caller.signer, nonce, runtime)
    since = rpc.best_block_number()

    logger.info("Submitting extrinsic for method: %s", method.label, extra={"contract_method": method.name, "backend": "real"})
    rpc.submit_extrinsic(extrinsic)
    return rpc.wait_for_inclusion(
        extrinsic,
        since_block=since,
        timeout=settings.inclusion_timeout_seconds,
        poll_interval=settings.inclusion_poll_interval_seconds,
    )


# ── Construction ─────────────────────────────────────────────────────────────


def new_contract_caller(
    rpc: SubstrateRPC | None,
    contract_address: bytes | None,
    ledger: SimulatedLedger,
    settings: Settings | None = None,
    metadata_base_dir: str | None = None,
) -> ContractCaller:
    """Build a RealCaller when a node and contract are available.

    Falls back to a SimulatedCaller when either is missing or the signer
    cannot be created. Missing metadata still yields a RealCaller, which then
    answers every call from the ledger.
    """
    settings = settings or get_settings()

    if rpc is None or not contract_address:
        return SimulatedCaller(ledger)

    try:
        signer = Signer.from_seed(settings.signer_seed)
    except ContractError as exc:
        logger.warning("Failed to create signer: %s; using simulated ledger", exc.message, extra={"backend": "simulated"})
        return SimulatedCaller(ledger)

    metadata: ContractMetadata | None = None
    try:
        metadata = load_contract_metadata_cached(settings.contract_metadata_file, metadata_base_dir)
    except ContractError as exc:
        logger.warning(
            "Failed to load contract metadata: %s; calls will use the simulated ledger",
            exc.message,
            extra={"backend": "simulated"},
        )
    else:
        logger.info("Loaded contract metadata; available methods:")
        for message in metadata.spec.messages:
            logger.info("  - %s (selector: %s)", message.label, message.selector)

    return RealCaller(
        rpc=rpc,
        contract_address=contract_address,
        signer=signer,
        ledger=ledger,
        metadata=metadata,
        settings=settings,
    )
