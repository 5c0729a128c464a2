"""OverrideLog — append-only, hash-chained record of gate overrides in SQLite."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from mechgate.params.hasher import Hasher

logger = logging.getLogger(__name__)

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS override_log (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp   TEXT    NOT NULL,
    user        TEXT    NOT NULL,
    check_id    TEXT    NOT NULL,
    reason      TEXT    NOT NULL,
    assembly    TEXT    NOT NULL DEFAULT '',
    parameter_fingerprint TEXT NOT NULL DEFAULT '',
    measured    TEXT    NOT NULL DEFAULT '',
    entry_hash  TEXT    NOT NULL,
    prev_entry_hash TEXT NOT NULL DEFAULT ''
);
"""

_COLUMNS = (
    "id, timestamp, user, check_id, reason, assembly, "
    "parameter_fingerprint, measured, entry_hash, prev_entry_hash"
)


class OverrideEntry(BaseModel):
    """Single immutable override record."""

    id: int = 0
    timestamp: str = ""
    user: str = ""
    check_id: str = ""
    reason: str = ""
    assembly: str = ""
    parameter_fingerprint: str = ""
    measured: str = ""
    entry_hash: str = ""
    prev_entry_hash: str = ""


def _entry_hash(
    ts: str, user: str, check_id: str, reason: str, assembly: str, fingerprint: str, measured: str, prev: str
) -> str:
    return Hasher.hash_string(f"{ts}{user}{check_id}{reason}{assembly}{fingerprint}{measured}{prev}")


class OverrideLog:
    """Append-only, hash-chained override log stored in SQLite.

    Parameters
    ----------
    db_path:
        Path to the SQLite file.  Defaults to ``':memory:'``.
    """

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self._db_path = str(db_path)
        self._conn = sqlite3.connect(self._db_path)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def record(
        self,
        user: str,
        check_id: str,
        reason: str,
        assembly: str = "",
        parameter_fingerprint: str = "",
        measured: float | None = None,
    ) -> OverrideEntry:
        """Append an override and return the created entry."""
        ts = datetime.now(timezone.utc).isoformat()
        meas = "" if measured is None else repr(float(measured))
        prev = self._last_hash()
        entry_hash = _entry_hash(ts, user, check_id, reason, assembly, parameter_fingerprint, meas, prev)

        cur = self._conn.execute(
            "INSERT INTO override_log "
            "(timestamp, user, check_id, reason, assembly, parameter_fingerprint, "
            "measured, entry_hash, prev_entry_hash) VALUES (?,?,?,?,?,?,?,?,?)",
            (ts, user, check_id, reason, assembly, parameter_fingerprint, meas, entry_hash, prev),
        )
        self._conn.commit()
        logger.info("Recorded override of %s by %s", check_id, user)

        return OverrideEntry(
            id=cur.lastrowid or 0,
            timestamp=ts,
            user=user,
            check_id=check_id,
            reason=reason,
            assembly=assembly,
            parameter_fingerprint=parameter_fingerprint,
            measured=meas,
            entry_hash=entry_hash,
            prev_entry_hash=prev,
        )

    def verify_chain(self) -> bool:
        """Validate the entire hash chain.  Returns False if tampered."""
        rows = self._conn.execute(f"SELECT {_COLUMNS} FROM override_log ORDER BY id").fetchall()

        prev_hash = ""
        for row in rows:
            _id, ts, user, check_id, reason, assembly, fp, meas, stored_hash, stored_prev = row
            if stored_prev != prev_hash:
                return False
            if _entry_hash(ts, user, check_id, reason, assembly, fp, meas, prev_hash) != stored_hash:
                return False
            prev_hash = stored_hash

        return True

    def get_log(
        self,
        check_id: str | None = None,
        user: str | None = None,
        assembly: str | None = None,
    ) -> list[OverrideEntry]:
        """Query the override log with optional filters."""
        clauses: list[str] = []
        params: list[Any] = []
        if check_id is not None:
            clauses.append("check_id = ?")
            params.append(check_id)
        if user is not None:
            clauses.append("user = ?")
            params.append(user)
        if assembly is not None:
            clauses.append("assembly = ?")
            params.append(assembly)

        where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM override_log{where} ORDER BY id", params
        ).fetchall()
        return [
            OverrideEntry(
                id=r[0], timestamp=r[1], user=r[2], check_id=r[3], reason=r[4],
                assembly=r[5], parameter_fingerprint=r[6], measured=r[7],
                entry_hash=r[8], prev_entry_hash=r[9],
            )
            for r in rows
        ]

    def export_log(self) -> str:
        """Export the full override trail as JSON."""
        return json.dumps([e.model_dump() for e in self.get_log()], indent=2)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _last_hash(self) -> str:
        row = self._conn.execute(
            "SELECT entry_hash FROM override_log ORDER BY id DESC LIMIT 1"
        ).fetchone()
        return row[0] if row else ""

    def close(self) -> None:
        self._conn.close()
