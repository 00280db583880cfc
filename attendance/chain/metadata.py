"""ink! contract metadata loading and method resolution.

Metadata is the JSON file cargo-contract writes next to the compiled contract
(``target/ink/<name>.json``). Both the current layout (``spec`` at the top
level, entries keyed by ``label``) and the legacy ``V1`` layout (entries keyed
by ``name``) are accepted.

The parsed metadata is cached once per process: a contract's on-chain shape
does not change while the backend is running.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, model_validator

from attendance.core.errors import MetadataNotFoundError, MetadataParseError, MethodNotFoundError

logger = logging.getLogger(__name__)

# Directories searched, relative to the base directory, when the requested
# path cannot be read.
FALLBACK_DIRS = (
    Path("..") / "contracts" / "target" / "ink",
    Path("..") / ".." / "contracts" / "target" / "ink",
)


# ── Schema ───────────────────────────────────────────────────────────────────


def _label(value: Any) -> Any:
    # Legacy metadata stores names as path segments, e.g. ["create_event"].
    if isinstance(value, list):
        return "::".join(str(v) for v in value)
    return value


Label = Annotated[str, BeforeValidator(_label)]


class _Spec(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TypeSpec(_Spec):
    """Display name and type-registry index of an argument or return value."""

    display_name: list[str] = Field(default_factory=list, alias="displayName")
    type: int = 0

    @property
    def display(self) -> str:
        return self.display_name[-1] if self.display_name else ""


class ArgSpec(_Spec):
    label: Label = Field(validation_alias=AliasChoices("label", "name"))
    type: TypeSpec = Field(default_factory=TypeSpec)


class EventArgSpec(ArgSpec):
    indexed: bool = False
    docs: list[str] = Field(default_factory=list)


class ConstructorSpec(_Spec):
    label: Label = Field(validation_alias=AliasChoices("label", "name"))
    selector: str
    args: list[ArgSpec] = Field(default_factory=list)
    payable: bool = False
    docs: list[str] = Field(default_factory=list)


class MessageSpec(_Spec):
    label: Label = Field(validation_alias=AliasChoices("label", "name"))
    selector: str
    args: list[ArgSpec] = Field(default_factory=list)
    mutates: bool = False
    payable: bool = False
    return_type: TypeSpec | None = Field(default=None, alias="returnType")
    docs: list[str] = Field(default_factory=list)


class EventSpec(_Spec):
    label: Label = Field(validation_alias=AliasChoices("label", "name"))
    args: list[EventArgSpec] = Field(default_factory=list)
    docs: list[str] = Field(default_factory=list)


class ContractSpec(_Spec):
    constructors: list[ConstructorSpec] = Field(default_factory=list)
    messages: list[MessageSpec] = Field(default_factory=list)
    events: list[EventSpec] = Field(default_factory=list)
    docs: list[str] = Field(default_factory=list)


class SourceInfo(_Spec):
    hash: str = ""
    language: str = ""
    compiler: str = ""


class ContractInfo(_Spec):
    name: str = ""
    version: str = ""
    authors: list[str] = Field(default_factory=list)
    description: str = ""


class ContractMetadata(_Spec):
    """Parsed ink! contract metadata."""

    source: SourceInfo = Field(default_factory=SourceInfo)
    contract: ContractInfo = Field(default_factory=ContractInfo)
    spec: ContractSpec

    @model_validator(mode="before")
    @classmethod
    def lift_legacy_spec(cls, data: Any) -> Any:
        if isinstance(data, dict) and "spec" not in data:
            legacy = data.get("V1") or data.get("V2") or data.get("V3")
            if isinstance(legacy, dict) and "spec" in legacy:
                data = {**data, "spec": legacy["spec"]}
        return data


# ── Method descriptor ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MethodDescriptor:
    """A callable contract message resolved from metadata."""

    name: str
    label: str
    selector: str
    mutates: bool
    args: tuple[ArgSpec, ...] = ()
    return_type: str = ""


def resolve_method(metadata: ContractMetadata, name: str) -> MethodDescriptor:
    """Find a message by label, ignoring case.

    Constructors and events are not callable and never match.

    Raises:
        MethodNotFoundError: no message carries that label.
    """
    wanted = name.casefold()
    for message in metadata.spec.messages:
        if message.label.casefold() == wanted:
            return MethodDescriptor(
                name=name,
                label=message.label,
                selector=message.selector,
                mutates=message.mutates,
                args=tuple(message.args),
                return_type=message.return_type.display if message.return_type else "",
            )
    raise MethodNotFoundError(f"method not found in contract metadata: {name}")


# ── Loading ──────────────────────────────────────────────────────────────────


def candidate_paths(path: str | Path, base_dir: str | Path | None = None) -> list[Path]:
    """Return the paths tried for ``path``, in order.

    Globbed candidates are included as they exist at call time.
    """
    base = Path(base_dir) if base_dir is not None else Path.cwd()
    requested = Path(path)
    first = requested if requested.is_absolute() else base / requested

    candidates = [first]
    candidates.extend(base / d / requested.name for d in FALLBACK_DIRS)
    for d in FALLBACK_DIRS:
        matches = sorted((base / d).glob("*.json"))
        if matches:
            candidates.append(matches[0])
    return candidates


def parse_contract_metadata(data: bytes | str) -> ContractMetadata:
    """Parse raw metadata JSON.

    Raises:
        MetadataParseError: not JSON, or not shaped like ink! metadata.
    """
    try:
        raw = json.loads(data)
    except json.JSONDecodeError as exc:
        raise MetadataParseError(f"failed to parse contract metadata: {exc}") from exc
    if not isinstance(raw, dict):
        raise MetadataParseError("failed to parse contract metadata: expected a JSON object")
    try:
        return ContractMetadata.model_validate(raw)
    except ValidationError as exc:
        raise MetadataParseError(f"contract metadata does not match the ink! schema: {exc}") from exc


def load_contract_metadata(path: str | Path, base_dir: str | Path | None = None) -> ContractMetadata:
    """Read and parse contract metadata, trying the fallback locations.

    Raises:
        MetadataNotFoundError: no candidate path could be read.
        MetadataParseError: the file found is not valid metadata.
    """
    for candidate in candidate_paths(path, base_dir):
        try:
            data = candidate.read_bytes()
        except OSError:
            continue
        logger.info("Loaded contract metadata from: %s", candidate)
        return parse_contract_metadata(data)

    raise MetadataNotFoundError(f"contract metadata file not found: {path}")


class MetadataCache:
    """Process-wide, load-once holder for contract metadata.

    The first successful load wins; later calls return it without touching
    the filesystem, whatever path they pass. Failed loads are not cached.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._metadata: ContractMetadata | None = None

    def get_or_load(self, path: str | Path, base_dir: str | Path | None = None) -> ContractMetadata:
        metadata = self._metadata
        if metadata is not None:
            return metadata
        with self._lock:
            if self._metadata is None:
                self._metadata = load_contract_metadata(path, base_dir)
            return self._metadata

    def clear(self) -> None:
        with self._lock:
            self._metadata = None


_metadata_cache = MetadataCache()


def get_metadata_cache() -> MetadataCache:
    """Get the global MetadataCache singleton."""
    return _metadata_cache


def load_contract_metadata_cached(path: str | Path, base_dir: str | Path | None = None) -> ContractMetadata:
    return _metadata_cache.get_or_load(path, base_dir)
