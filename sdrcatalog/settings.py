"""
Configuration and environment parsing for sdrcatalog.

All SDRCATALOG_* environment variables are parsed here. The registry, CLI and
HTTP API receive a Settings instance rather than reading os.environ directly.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DATA_DIR = Path(__file__).resolve().parent / "data"
"""Seed files shipped with the package (system scope)."""

DEFAULT_RECENT_LIMIT = 20
"""Maximum number of recently used profile names kept."""


def _int_env(name: str, default: int) -> int:
    """Parse an integer from environment, returning default on missing/invalid."""
    val = os.getenv(name)
    if not val:
        return default
    try:
        return max(1, int(float(val)))
    except ValueError:
        return default


def _path_env(name: str, default: Optional[Path]) -> Optional[Path]:
    """Parse a path from environment; "none"/"off" explicitly disables it."""
    val = os.getenv(name)
    if val is None:
        return default
    val = val.strip()
    if not val or val.lower() in ("none", "off", "disabled"):
        return None
    return Path(val).expanduser()


@dataclass
class Settings:
    user_dir: Path
    system_dir: Optional[Path] = DATA_DIR
    db_path: Optional[Path] = None
    tle_dir: Optional[Path] = None
    recent_limit: int = DEFAULT_RECENT_LIMIT
    api_token: str = ""

    def __post_init__(self) -> None:
        if self.db_path is None:
            self.db_path = self.user_dir / "config.db"

    @classmethod
    def from_env(cls) -> "Settings":
        user_dir = _path_env("SDRCATALOG_HOME", None) or Path("~/.sdrcatalog").expanduser()
        return cls(
            user_dir=user_dir,
            system_dir=_path_env("SDRCATALOG_SYSTEM_DIR", DATA_DIR),
            db_path=_path_env("SDRCATALOG_DB", user_dir / "config.db"),
            tle_dir=_path_env("SDRCATALOG_TLE_DIR", user_dir / "tle"),
            recent_limit=_int_env("SDRCATALOG_RECENT_LIMIT", DEFAULT_RECENT_LIMIT),
            api_token=os.getenv("SDRCATALOG_TOKEN", ""),
        )

    def resolve_tle_dir(self) -> Optional[Path]:
        """Return a writable user TLE directory, or None when unavailable."""
        if self.tle_dir is None:
            return None
        try:
            self.tle_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            return None
        return self.tle_dir if self.tle_dir.is_dir() else None
