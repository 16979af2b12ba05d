"""SQLite storage for the durable checkpoint and cycle history."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Mapping


class SQLiteManager:
    """Own a single SQLite connection with basic schema guarantees."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._conn: sqlite3.Connection | None = None
        self._lock = Lock()

    def connect(self) -> sqlite3.Connection:
        with self._lock:
            if self._conn is None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self.path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                self._ensure_schema(conn)
                self._conn = conn
            return self._conn

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS checkpoints (
                name TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS cycle_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                started_at TEXT NOT NULL,
                mode TEXT NOT NULL,
                fetched INTEGER NOT NULL,
                fresh INTEGER NOT NULL,
                outcome TEXT NOT NULL,
                sink_failures TEXT NOT NULL DEFAULT '{}'
            )
            """
        )
        conn.commit()

    # ------------------------------------------------------------------
    # Checkpoint
    # ------------------------------------------------------------------
    def load_checkpoint(self, name: str) -> datetime | None:
        conn = self.connect()
        with self._lock:
            row = conn.execute("SELECT value FROM checkpoints WHERE name = ?", (name,)).fetchone()
        if row is None:
            return None
        value = datetime.fromisoformat(row["value"])
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def save_checkpoint(self, name: str, value: datetime) -> None:
        conn = self.connect()
        with self._lock:
            conn.execute(
                "INSERT INTO checkpoints (name, value) VALUES (?, ?) "
                "ON CONFLICT(name) DO UPDATE SET value = excluded.value",
                (name, value.isoformat()),
            )
            conn.commit()

    # ------------------------------------------------------------------
    # Cycle history
    # ------------------------------------------------------------------
    def record_cycle(
        self,
        started_at: datetime,
        mode: str,
        fetched: int,
        fresh: int,
        outcome: str,
        sink_failures: Mapping[str, str] | None = None,
    ) -> None:
        conn = self.connect()
        with self._lock:
            conn.execute(
                "INSERT INTO cycle_runs (started_at, mode, fetched, fresh, outcome, sink_failures) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    started_at.isoformat(),
                    mode,
                    fetched,
                    fresh,
                    outcome,
                    json.dumps(dict(sink_failures or {}), ensure_ascii=False),
                ),
            )
            conn.commit()

    def recent_cycles(self, limit: int = 20) -> list[dict]:
        conn = self.connect()
        with self._lock:
            rows = conn.execute(
                "SELECT started_at, mode, fetched, fresh, outcome, sink_failures "
                "FROM cycle_runs ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        history = []
        for row in rows:
            entry = dict(row)
            entry["sink_failures"] = json.loads(entry["sink_failures"] or "{}")
            history.append(entry)
        return history

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


__all__ = ["SQLiteManager"]
