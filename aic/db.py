from __future__ import annotations

import json
import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from .settings import settings

if TYPE_CHECKING:
    from .runtime import TickResult

logger = logging.getLogger("aic")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts TEXT NOT NULL,
  level TEXT NOT NULL,
  instance_id TEXT,
  message TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS ticks (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  tick INTEGER NOT NULL,
  ts TEXT NOT NULL,
  ok INTEGER NOT NULL,
  instances INTEGER NOT NULL,
  evicted TEXT NOT NULL,      -- json list of instance ids
  mutations TEXT NOT NULL,    -- json list of instance ids
  dns_changes TEXT NOT NULL,  -- json object name -> addresses
  errors TEXT NOT NULL,       -- json list of messages
  error TEXT,                 -- tick-level failure, if any
  duration_ms REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
CREATE INDEX IF NOT EXISTS idx_ticks_tick ON ticks(tick);
"""

# Database files whose schema has been created by this process.
_initialized: set[str] = set()


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    A bind-mounted path that did not exist on the host shows up as a
    directory; in that case the DB file is placed inside it.
    """
    if settings.db_path == ":memory:":
        return settings.db_path

    p = os.path.abspath(settings.db_path)
    if os.path.isdir(p):
        p = os.path.join(p, "aic.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    path = _resolve_db_path()
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    if path not in _initialized:
        conn.executescript(_SCHEMA)
        _initialized.add(path)
    return conn


def init_db() -> None:
    """Create tables if they do not exist."""
    path = _resolve_db_path()
    _initialized.discard(path)
    conn = connect()
    conn.close()


def _level_no(level: str) -> int:
    no = logging.getLevelName(level)
    return no if isinstance(no, int) else logging.INFO


def log_event(level: str, message: str, instance_id: str | None = None) -> None:
    level = level.upper()
    if settings.log_to_stderr:
        logger.log(_level_no(level), "%s%s", f"[{instance_id}] " if instance_id else "", message)
    # DEBUG chatter stays out of the journal.
    if level == "DEBUG":
        return
    with connect() as conn:
        conn.execute(
            "INSERT INTO events (ts, level, instance_id, message) VALUES (?, ?, ?, ?)",
            (utc_now(), level, instance_id, message),
        )


def record_tick(result: TickResult, error: str | None = None) -> None:
    with connect() as conn:
        conn.execute(
            """
            INSERT INTO ticks (tick, ts, ok, instances, evicted, mutations, dns_changes, errors, error, duration_ms)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                result.tick,
                utc_now(),
                0 if error else 1,
                result.instances,
                json.dumps(result.evicted),
                json.dumps(result.mutations),
                json.dumps(result.dns_changes, sort_keys=True),
                json.dumps(result.errors),
                error,
                result.duration_ms,
            ),
        )


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]


def latest_ticks(limit: int = 20) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM ticks ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
    out: list[dict[str, Any]] = []
    for r in rows:
        d = dict(r)
        d["ok"] = bool(d["ok"])
        for key in ("evicted", "mutations", "dns_changes", "errors"):
            d[key] = json.loads(d[key])
        out.append(d)
    return out
