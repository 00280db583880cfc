"""Core configuration for the attendance NFT backend."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Fixed development seed. Production deployments must set ATTENDANCE_SIGNER_SEED.
DEV_SIGNER_SEED = "0x" + "e5be9a5092b81bca64be81d212e7f2f9eba183bb7a90954f7b76361f6edb5c0a"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ATTENDANCE_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "Attendance NFT Backend"
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # ── Chain ────────────────────────────────────────────────────────────
    polkadot_rpc: str = "wss://westend-rpc.polkadot.io"
    contract_address: str = ""
    contract_metadata_file: str = "attendance_nft.json"
    ss58_format: int = 42
    rpc_timeout_seconds: float = 10.0

    # ── Signing ──────────────────────────────────────────────────────────
    signer_seed: str = Field(default=DEV_SIGNER_SEED)

    # ── Transactions ─────────────────────────────────────────────────────
    # Pallet and call index of Contracts.call; runtime specific.
    contracts_call_index: str = "0x0706"
    gas_limit_ref_time: int = 1_000_000_000
    gas_limit_proof_size: int = 1_000_000
    inclusion_timeout_seconds: float = 60.0
    inclusion_poll_interval_seconds: float = 2.0


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
