# src/heyzo/runtime/sqlite_db.py
from __future__ import annotations

import os
import json
import sqlite3
import time
import random
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator

Json = Dict[str, Any]

_SYNC_LEVELS = {"OFF", "NORMAL", "FULL", "EXTRA"}
_TRUTHY = {"1", "true", "yes", "on"}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    # No default=str: a non-JSON value in the snapshot is a bug and must raise.
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    raw = str(os.environ.get(name, "")).strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


class SqliteDB:
    """One SQLite file holding the distributor snapshot.

    Connections are opened per call and never shared across threads. Writers
    serialize on BEGIN IMMEDIATE; contention is retried until
    HEYZO_SQLITE_WRITE_DEADLINE_MS, then the last error is raised.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str, mode: str = "prod") -> None:
        self.path = str(path)
        self.mode = str(mode or "prod").strip().lower()

    def synchronous_level(self) -> str:
        """FULL in prod, NORMAL elsewhere; HEYZO_SQLITE_SYNCHRONOUS overrides."""
        default = "FULL" if self.mode == "prod" else "NORMAL"
        want = (os.environ.get("HEYZO_SQLITE_SYNCHRONOUS") or default).strip().upper()
        return want if want in _SYNC_LEVELS else default

    def _connect(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        timeout_ms = _env_int("HEYZO_SQLITE_CONNECT_TIMEOUT_MS", 30_000)
        con = sqlite3.connect(
            self.path,
            timeout=timeout_ms / 1000.0,
            isolation_level=None,  # explicit BEGIN/COMMIT
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        journal = str(con.execute("PRAGMA journal_mode=WAL;").fetchone()[0]).strip().lower()
        allow_other = (os.environ.get("HEYZO_SQLITE_ALLOW_NON_WAL") or "").strip().lower() in _TRUTHY
        if journal != "wal" and not allow_other:
            con.close()
            raise RuntimeError(f"sqlite journal_mode is {journal!r}, expected 'wal'")

        busy_ms = max(0, _env_int("HEYZO_SQLITE_BUSY_TIMEOUT_MS", timeout_ms))
        for pragma in (
            f"synchronous={self.synchronous_level()}",
            "foreign_keys=ON",
            "temp_store=MEMORY",
            f"busy_timeout={busy_ms}",
        ):
            con.execute(f"PRAGMA {pragma};")
        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute("CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value TEXT NOT NULL);")
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS engine_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  seq INTEGER NOT NULL,
                  state_json TEXT NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )

            row = con.execute("SELECT value FROM meta WHERE key='schema_version';").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
                return
            have = str(row["value"]).strip()
            if have != str(self.SCHEMA_VERSION):
                raise RuntimeError(
                    f"sqlite schema_version mismatch: have={have} want={self.SCHEMA_VERSION}. Refuse to start."
                )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _is_busy(e: sqlite3.OperationalError) -> bool:
        msg = str(e).lower()
        return "database is locked" in msg or "database is busy" in msg

    def _begin_immediate(self, con: sqlite3.Connection) -> None:
        deadline = _now_ms() + max(250, _env_int("HEYZO_SQLITE_WRITE_DEADLINE_MS", 30_000))
        base_s = max(0.001, _env_int("HEYZO_SQLITE_WRITE_BACKOFF_BASE_MS", 5) / 1000.0)
        cap_s = max(base_s, _env_int("HEYZO_SQLITE_WRITE_BACKOFF_MAX_MS", 250) / 1000.0)

        attempt = 0
        while True:
            try:
                con.execute("BEGIN IMMEDIATE;")
                return
            except sqlite3.OperationalError as e:
                if not self._is_busy(e) or _now_ms() >= deadline:
                    raise
            # Exponential backoff, jittered to [0.5x, 1.5x].
            delay = min(cap_s, base_s * (2.0 ** min(attempt, 8)))
            time.sleep(delay * (0.5 + random.random()))
            attempt += 1

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        with self.connection() as con:
            self._begin_immediate(con)
            try:
                yield con
            except Exception:
                con.execute("ROLLBACK;")
                raise
            con.execute("COMMIT;")


class SqliteStateStore:
    """Single-row store for the engine snapshot: {"ledger": ..., "holdings": ...}."""

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM engine_state WHERE id=1;").fetchone() is not None

    def read(self) -> Json:
        with self._db.connection() as con:
            row = con.execute("SELECT state_json FROM engine_state WHERE id=1;").fetchone()
        if row is None:
            raise FileNotFoundError("sqlite engine_state is missing")
        snap = json.loads(str(row["state_json"]))
        if not isinstance(snap, dict):
            raise ValueError("engine_state is not a JSON object")
        return snap

    @staticmethod
    def _seq_of(snap: Json) -> int:
        ledger = snap.get("ledger") if isinstance(snap.get("ledger"), dict) else {}
        stats = ledger.get("stats") if isinstance(ledger.get("stats"), dict) else {}
        seq = stats.get("seq", 0)
        return int(seq) if isinstance(seq, int) and not isinstance(seq, bool) else 0

    def write(self, snap: Json) -> None:
        if not isinstance(snap, dict):
            raise ValueError("state write expects dict")
        payload = _canon_json(snap)
        with self._db.write_tx() as con:
            con.execute(
                """
                INSERT INTO engine_state(id, seq, state_json, updated_ts_ms)
                VALUES(1, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  seq=excluded.seq,
                  state_json=excluded.state_json,
                  updated_ts_ms=excluded.updated_ts_ms;
                """,
                (self._seq_of(snap), payload, _now_ms()),
            )


__all__ = ["SqliteDB", "SqliteStateStore"]
