"""Event journal entry model (append-only, hash-chained).

One entry per published marketplace event.  ``collection``, ``asset_id``
and ``actor`` are copied out of the event payload so the journal can be
searched without decoding payloads.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from closelake.models.events import EVENT_TYPE_MAP, EventKind, MarketEvent


class JournalEntry(BaseModel):
    """A single sealed entry in the event journal."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_id: str
    event_kind: EventKind
    collection: str = ""
    asset_id: int | None = None
    actor: str = ""
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    payload: dict[str, Any] = {}
    payload_hash: str = ""  # SHA-256 of the canonical event payload
    previous_entry_hash: str = ""
    entry_hash: str = ""  # computed on append, seals this entry

    @property
    def event(self) -> MarketEvent:
        """Decode the payload back into its typed event."""
        return EVENT_TYPE_MAP[self.event_kind].model_validate(self.payload)


class JournalQuery(BaseModel):
    """Filters for querying the event journal."""

    model_config = ConfigDict(frozen=True)

    collection: str | None = None
    asset_id: int | None = None
    actor: str | None = None
    event_kind: EventKind | None = None
    limit: int = 100
    offset: int = 0
