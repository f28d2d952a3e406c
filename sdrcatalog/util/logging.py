"""Logging setup shared by the registry, the CLI and the HTTP API.

All loggers live under the ``sdrcatalog`` namespace. Console output goes to
stderr; ``configure_logging(json_file=...)`` additionally appends one JSON
object per record, which keeps catalog fields (context, scope, entry...)
machine-readable:

    from sdrcatalog.util.logging import context_logger, get_logger

    logger = get_logger(__name__)
    log = context_logger(logger, "bookmarks", scope="user")
    log.warning("Dropping malformed bookmark", extra={"entry": 4})

Environment: ``SDRCATALOG_LOG_LEVEL`` picks the default level and
``SDRCATALOG_DEBUG=1`` forces DEBUG.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, MutableMapping, Optional, Tuple

ROOT = "sdrcatalog"

# Record attributes understood by both formatters.
CATALOG_FIELDS = ("context", "scope", "entry", "count", "error_type", "duration_ms")

_configured = False


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def _catalog_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: getattr(record, key) for key in CATALOG_FIELDS if getattr(record, key, None) is not None}


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        out: Dict[str, Any] = {
            "ts": _record_time(record).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        out.update(_catalog_fields(record))
        if record.exc_info:
            out["traceback"] = "".join(traceback.format_exception(*record.exc_info))
        return json.dumps(out, default=str)


class ConsoleFormatter(logging.Formatter):
    """``[time] LEVEL [module] message {context/scope#entry}`` with optional color."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color and sys.stderr.isatty()

    @staticmethod
    def where(record: logging.LogRecord) -> str:
        ctx = getattr(record, "context", None)
        if not ctx:
            return ""
        tag = str(ctx)
        scope = getattr(record, "scope", None)
        if scope:
            tag += f"/{scope}"
        entry = getattr(record, "entry", None)
        if entry is not None:
            tag += f"#{entry}"
        return " {" + tag + "}"

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"
        module = record.name[len(ROOT) + 1:] if record.name.startswith(ROOT + ".") else record.name
        line = f"[{_record_time(record):%Y-%m-%d %H:%M:%S}] {level} [{module}] {record.getMessage()}{self.where(record)}"
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return line


def level_from_env() -> str:
    if os.environ.get("SDRCATALOG_DEBUG", "").strip().lower() in ("1", "true", "yes"):
        return "DEBUG"
    return os.environ.get("SDRCATALOG_LOG_LEVEL", "INFO").strip().upper() or "INFO"


def configure_logging(
    *,
    level: Optional[str] = None,
    json_file: Optional[str] = None,
    use_color: bool = True,
) -> None:
    """Install the console handler (and optionally a JSON-lines file handler).

    Replaces any handlers installed by an earlier call. ``level`` defaults to
    ``level_from_env()``.
    """
    global _configured

    numeric = getattr(logging, (level or level_from_env()).upper(), logging.INFO)
    root = logging.getLogger(ROOT)
    root.setLevel(numeric)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ConsoleFormatter(use_color=use_color))
    root.addHandler(console)

    if json_file:
        try:
            sink = logging.FileHandler(json_file, mode="a", encoding="utf-8")
        except OSError as exc:
            root.warning("Cannot open JSON log %s: %s", json_file, exc)
        else:
            sink.setFormatter(JSONFormatter())
            root.addHandler(sink)

    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return ``sdrcatalog.<name>``, configuring defaults on first use."""
    if not _configured:
        configure_logging()
    if name == "__main__":
        name = "cli"
    if name != ROOT and not name.startswith(ROOT + "."):
        name = f"{ROOT}.{name}"
    return logging.getLogger(name)


class CatalogAdapter(logging.LoggerAdapter):
    """Adds fixed catalog fields to every record; per-call ``extra`` wins."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def context_logger(logger: logging.Logger, context: str, scope: Optional[str] = None) -> CatalogAdapter:
    fields: Dict[str, Any] = {"context": context}
    if scope:
        fields["scope"] = scope
    return CatalogAdapter(logger, fields)


def log_exception(logger: Any, message: str, *, error_type: Optional[str] = None, **extra: Any) -> None:
    """Log the exception being handled, tagged with ``error_type``."""
    if error_type:
        extra["error_type"] = error_type
    logger.exception(message, extra=extra)
