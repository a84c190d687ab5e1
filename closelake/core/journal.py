"""Append-only, hash-chained event journal backed by SQLite.

The journal records every committed marketplace event.  It is the audit
trail of the ledger: replaying it reproduces listings and proceeds (see
``closelake.monitor.projection``).

Design:
- Append-only: only `append()` writes; no update, no delete.
- Hash-chained: each entry includes SHA-256 of the previous entry.
- Indexed by collection/asset and by acting account.
- WAL journal mode for concurrent readers.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from closelake.core.hasher import compute_entry_hash, compute_payload_hash
from closelake.models.events import EventKind, MarketEvent
from closelake.models.journal import JournalEntry, JournalQuery

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_JOURNAL = """
CREATE TABLE IF NOT EXISTS market_journal (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id              TEXT NOT NULL UNIQUE,
    event_id              TEXT NOT NULL UNIQUE,
    event_kind            TEXT NOT NULL,
    collection            TEXT NOT NULL DEFAULT '',
    asset_id              INTEGER,
    actor                 TEXT NOT NULL DEFAULT '',
    timestamp_utc         TEXT NOT NULL,
    payload_json          TEXT NOT NULL,
    payload_hash          TEXT NOT NULL,
    previous_entry_hash   TEXT NOT NULL DEFAULT '',
    entry_hash            TEXT NOT NULL UNIQUE
);
"""

_CREATE_IDX_ASSET = """
CREATE INDEX IF NOT EXISTS idx_journal_asset ON market_journal(collection, asset_id, id);
"""

_CREATE_IDX_ACTOR = """
CREATE INDEX IF NOT EXISTS idx_journal_actor ON market_journal(actor, id);
"""

_COLUMNS = (
    "id, entry_id, event_id, event_kind, collection, asset_id, actor, "
    "timestamp_utc, payload_json, payload_hash, previous_entry_hash, entry_hash"
)


class JournalIntegrityError(RuntimeError):
    """Raised when the hash chain is broken."""


class EventJournal:
    """Append-only, hash-chained event journal.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file, created if it does not exist.
        ``None`` keeps the journal in memory for the life of the object.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = Path(db_path) if db_path is not None else None
        self._memory_conn: sqlite3.Connection | None = None
        self._write_lock = threading.Lock()
        if self._db_path is None:
            self._memory_conn = sqlite3.connect(":memory:", check_same_thread=False)
        else:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def db_path(self) -> Path | None:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        if self._memory_conn is not None:
            return self._memory_conn
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_JOURNAL)
            conn.execute(_CREATE_IDX_ASSET)
            conn.execute(_CREATE_IDX_ACTOR)
            conn.commit()

    def attach(self, bus) -> EventJournal:
        """Register this journal on *bus* for every event kind."""
        bus.register_all(self.append)
        return self

    # ------------------------------------------------------------------
    # Core: append-only write
    # ------------------------------------------------------------------

    def append(self, event: MarketEvent) -> JournalEntry:
        """Seal *event* into a new entry linked to the previous one.

        This is the ONLY write method. There is no update or delete.
        """
        payload = event.model_dump(mode="json")
        with self._write_lock:
            entry = JournalEntry(
                event_id=event.event_id,
                event_kind=event.event_kind,
                collection=event.collection,
                asset_id=event.asset_id,
                actor=event.actor,
                timestamp_utc=event.timestamp_utc,
                payload=payload,
                payload_hash=compute_payload_hash(payload),
                previous_entry_hash=self._get_latest_hash(),
            )
            sealed = entry.model_copy(
                update={"entry_hash": compute_entry_hash(entry.model_dump(mode="json"))}
            )
            self._insert(sealed)
        logger.debug(
            "Journaled %s %s (%s).",
            sealed.event_kind.value,
            sealed.event_id,
            sealed.entry_hash[:12],
        )
        return sealed

    def _insert(self, entry: JournalEntry) -> None:
        with self._connect() as conn:
            conn.execute(
                f"""
                INSERT INTO market_journal ({_COLUMNS.split(", ", 1)[1]})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.entry_id,
                    entry.event_id,
                    entry.event_kind.value,
                    entry.collection,
                    entry.asset_id,
                    entry.actor,
                    entry.timestamp_utc.isoformat()
                    if isinstance(entry.timestamp_utc, datetime)
                    else entry.timestamp_utc,
                    json.dumps(entry.payload, sort_keys=True),
                    entry.payload_hash,
                    entry.previous_entry_hash,
                    entry.entry_hash,
                ),
            )
            conn.commit()

    def _get_latest_hash(self) -> str:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT entry_hash FROM market_journal ORDER BY id DESC LIMIT 1"
            ).fetchone()
        return row[0] if row else ""

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def count(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM market_journal").fetchone()
        return n

    def get_latest(self) -> JournalEntry | None:
        """Return the most recent entry, or None."""
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM market_journal ORDER BY id DESC LIMIT 1"
            ).fetchone()
        return self._row_to_entry(row) if row else None

    def get_entries(self, query: JournalQuery | None = None) -> list[JournalEntry]:
        """Return entries matching *query*, oldest first.

        Without a query every entry is returned.
        """
        sql = f"SELECT {_COLUMNS} FROM market_journal"
        clauses: list[str] = []
        params: list[object] = []
        if query is not None:
            if query.collection is not None:
                clauses.append("collection = ?")
                params.append(query.collection)
            if query.asset_id is not None:
                clauses.append("asset_id = ?")
                params.append(query.asset_id)
            if query.actor is not None:
                clauses.append("actor = ?")
                params.append(query.actor)
            if query.event_kind is not None:
                clauses.append("event_kind = ?")
                params.append(query.event_kind.value)
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY id ASC"
        if query is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([query.limit, query.offset])

        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def get_asset_history(self, collection: str, asset_id: int) -> list[JournalEntry]:
        """Return every entry for one asset, oldest first."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM market_journal "
                "WHERE collection = ? AND asset_id = ? ORDER BY id ASC",
                (collection, asset_id),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def events(self) -> list[MarketEvent]:
        """Return every journaled event, decoded, oldest first."""
        return [entry.event for entry in self.get_entries()]

    # ------------------------------------------------------------------
    # Chain verification
    # ------------------------------------------------------------------

    def verify_chain(self) -> bool:
        """Verify the hash chain integrity of the whole journal.

        Walks all entries in order, recomputes each payload_hash and
        entry_hash, and verifies that previous_entry_hash links match.

        Returns True if the chain is valid, raises JournalIntegrityError otherwise.
        """
        prev_hash = ""
        for entry in self.get_entries():
            if entry.previous_entry_hash != prev_hash:
                raise JournalIntegrityError(
                    f"Chain broken at entry {entry.entry_id}: "
                    f"expected previous_hash={prev_hash!r}, "
                    f"got {entry.previous_entry_hash!r}"
                )

            if compute_payload_hash(entry.payload) != entry.payload_hash:
                raise JournalIntegrityError(
                    f"Tampered payload in entry {entry.entry_id}"
                )

            expected_hash = compute_entry_hash(entry.model_dump(mode="json"))
            if entry.entry_hash != expected_hash:
                raise JournalIntegrityError(
                    f"Tampered entry {entry.entry_id}: "
                    f"expected hash={expected_hash!r}, "
                    f"got {entry.entry_hash!r}"
                )

            prev_hash = entry.entry_hash

        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_entry(row: tuple) -> JournalEntry:
        (
            _id,
            entry_id,
            event_id,
            event_kind,
            collection,
            asset_id,
            actor,
            timestamp_utc,
            payload_json,
            payload_hash,
            previous_entry_hash,
            entry_hash,
        ) = row
        return JournalEntry(
            entry_id=entry_id,
            event_id=event_id,
            event_kind=EventKind(event_kind),
            collection=collection,
            asset_id=asset_id,
            actor=actor,
            timestamp_utc=timestamp_utc,
            payload=json.loads(payload_json),
            payload_hash=payload_hash,
            previous_entry_hash=previous_entry_hash,
            entry_hash=entry_hash,
        )
