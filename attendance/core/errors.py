"""Error taxonomy for the contract invocation layer.

Two families matter to callers:

    surfaced   InvalidArgsError, UnknownMethodError, ResultDecodeError
    absorbed   NotFoundError, MetadataParseError, TransportError and subclasses

Absorbed errors never reach the application: the contract caller catches them
and answers from the simulated ledger instead.
"""

from __future__ import annotations

from enum import Enum


# ── Error Codes ──────────────────────────────────────────────────────────────


class ErrorCode(str, Enum):
    """Stable error codes carried by every ContractError."""

    NOT_FOUND = "NOT_FOUND"
    METADATA_NOT_FOUND = "METADATA_NOT_FOUND"
    METADATA_INVALID = "METADATA_INVALID"
    METHOD_NOT_FOUND = "METHOD_NOT_FOUND"
    INVALID_ARGS = "INVALID_ARGS"
    UNKNOWN_METHOD = "UNKNOWN_METHOD"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    ADDRESS_INVALID = "ADDRESS_INVALID"
    RPC_ERROR = "RPC_ERROR"
    ENCODING_ERROR = "ENCODING_ERROR"
    SIGNING_ERROR = "SIGNING_ERROR"
    INCLUSION_FAILED = "INCLUSION_FAILED"
    QUERY_UNSUPPORTED = "QUERY_UNSUPPORTED"
    RESULT_INVALID = "RESULT_INVALID"


# ── Base ─────────────────────────────────────────────────────────────────────


class ContractError(Exception):
    """Base class for contract-layer errors with a structured code."""

    code: ErrorCode = ErrorCode.TRANSPORT_ERROR

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(message)


# ── Resolution ───────────────────────────────────────────────────────────────


class NotFoundError(ContractError):
    """Something the real path needs could not be located."""

    code = ErrorCode.NOT_FOUND


class MetadataNotFoundError(NotFoundError):
    code = ErrorCode.METADATA_NOT_FOUND


class MethodNotFoundError(NotFoundError):
    code = ErrorCode.METHOD_NOT_FOUND


class MetadataParseError(ContractError):
    """Metadata file is not JSON or does not match the ink! schema."""

    code = ErrorCode.METADATA_INVALID


# ── Surfaced to callers ──────────────────────────────────────────────────────


class InvalidArgsError(ContractError):
    code = ErrorCode.INVALID_ARGS


class UnknownMethodError(ContractError):
    code = ErrorCode.UNKNOWN_METHOD


class ResultDecodeError(ContractError):
    """A contract result could not be parsed into the expected type."""

    code = ErrorCode.RESULT_INVALID


# ── Transport ────────────────────────────────────────────────────────────────


class TransportError(ContractError):
    """Any failure talking to, or preparing data for, the real chain."""

    code = ErrorCode.TRANSPORT_ERROR


class AddressDecodeError(TransportError):
    code = ErrorCode.ADDRESS_INVALID


class RPCError(TransportError):
    """JSON-RPC request failed or the node returned an error object."""

    code = ErrorCode.RPC_ERROR

    def __init__(self, message: str, rpc_code: int | None = None) -> None:
        super().__init__(message)
        self.rpc_code = rpc_code


class EncodingError(TransportError):
    code = ErrorCode.ENCODING_ERROR


class SigningError(TransportError):
    code = ErrorCode.SIGNING_ERROR


class InclusionError(TransportError):
    """Extrinsic was dropped, invalid, usurped, or not included in time."""

    code = ErrorCode.INCLUSION_FAILED


class QueryNotSupportedError(TransportError):
    code = ErrorCode.QUERY_UNSUPPORTED
