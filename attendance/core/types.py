"""Shared enums and types used across the backend."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, Field

# Organizer recorded for events the simulated ledger creates.
PLACEHOLDER_ORGANIZER = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"


# ── Enums ────────────────────────────────────────────────────────────────────


class CallerKind(str, enum.Enum):
    """Which backend a contract caller talks to."""

    REAL = "real"
    SIMULATED = "simulated"


# ── Shared Schemas ───────────────────────────────────────────────────────────


class Event(BaseModel):
    """An event registered in the attendance contract."""

    id: int = Field(ge=1)
    name: str
    date: str
    location: str
    organizer: str = ""


class NFT(BaseModel):
    """An attendance NFT minted for an event."""

    id: int = Field(ge=1)
    event_id: int = Field(ge=1)
    owner: str
    metadata: dict[str, Any] = Field(default_factory=dict)


def demo_nft() -> NFT:
    """Demonstration record shown when the simulated ledger has no NFTs yet."""
    return NFT(
        id=1,
        event_id=1,
        owner=PLACEHOLDER_ORGANIZER,
        metadata={
            "name": "Attendance: Polkadot Meetup",
            "description": "Proof of attendance for Polkadot Meetup",
            "event_name": "Polkadot Meetup",
            "event_date": "2023-06-01",
            "location": "Berlin",
            "attendee": "John Doe",
        },
    )
