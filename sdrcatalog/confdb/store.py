"""Configuration persistence: SQLite user store and read-only JSON seed files."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Union

from sdrcatalog.util.logging import get_logger

logger = get_logger(__name__)


def utc_now_str() -> str:
    """Return the current UTC timestamp as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class ConfigStore:
    """User-scope context storage.

    Each context is an ordered list of JSON payloads addressed by slot index.
    A row in ``contexts`` marks that the user has a saved copy of the context,
    even when that copy is empty.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        self.con = sqlite3.connect(self.path, timeout=30.0)
        try:
            self.con.execute("PRAGMA journal_mode=WAL")
        except sqlite3.OperationalError:
            pass
        self.con.execute("PRAGMA busy_timeout=5000")
        self._init()

    def _init(self) -> None:
        cur = self.con.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS contexts (
                name TEXT PRIMARY KEY,
                saved_utc TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS context_entries (
                context TEXT NOT NULL,
                slot INTEGER NOT NULL,
                payload TEXT NOT NULL,
                PRIMARY KEY (context, slot)
            )
            """
        )
        self.con.commit()

    def has_context(self, name: str) -> bool:
        cur = self.con.cursor()
        cur.execute("SELECT 1 FROM contexts WHERE name = ?", (name,))
        return cur.fetchone() is not None

    def load_context(self, name: str) -> List[str]:
        """Return the stored payloads of ``name`` in slot order."""
        cur = self.con.cursor()
        cur.execute(
            "SELECT payload FROM context_entries WHERE context = ? ORDER BY slot ASC",
            (name,),
        )
        return [row[0] for row in cur.fetchall()]

    def save_context(self, name: str, payloads: List[str]) -> None:
        """Replace the stored copy of ``name`` with ``payloads`` atomically."""
        try:
            self.con.execute("BEGIN")
            self.con.execute("DELETE FROM context_entries WHERE context = ?", (name,))
            self.con.executemany(
                "INSERT INTO context_entries (context, slot, payload) VALUES (?, ?, ?)",
                [(name, slot, payload) for slot, payload in enumerate(payloads)],
            )
            self.con.execute(
                """
                INSERT INTO contexts (name, saved_utc) VALUES (?, ?)
                ON CONFLICT(name) DO UPDATE SET saved_utc = excluded.saved_utc
                """,
                (name, utc_now_str()),
            )
            self.con.commit()
        except sqlite3.Error:
            self.con.rollback()
            raise

    def context_names(self) -> List[str]:
        cur = self.con.cursor()
        cur.execute("SELECT name FROM contexts ORDER BY name")
        return [row[0] for row in cur.fetchall()]

    def close(self) -> None:
        try:
            self.con.close()
        except sqlite3.Error:
            pass


def load_seed(system_dir: Optional[Path], name: str) -> List[Any]:
    """Read the system-scope seed list ``<system_dir>/<name>.json``.

    A missing directory or file yields an empty list; a file that is not a
    JSON array is logged and ignored.
    """
    if system_dir is None:
        return []
    path = Path(system_dir) / f"{name}.json"
    if not path.is_file():
        return []
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable seed file %s: %s", path, exc, extra={"context": name})
        return []
    if not isinstance(data, list):
        logger.warning("Ignoring seed file %s: top level is not a list", path, extra={"context": name})
        return []
    return data
