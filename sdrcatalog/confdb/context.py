"""Named config contexts layered over the system seeds and the user store."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

from sdrcatalog.confdb.object import Object, ObjectType
from sdrcatalog.confdb.store import ConfigStore, load_seed
from sdrcatalog.errors import ObjectError
from sdrcatalog.util.logging import context_logger, get_logger

logger = get_logger(__name__)


class ConfigContext:
    """Handle onto one persistent list of Objects.

    ``savable`` controls whether the list is written back when the owning
    ConfigDB is flushed. The list is shared: every call to ``list_object``
    returns the same live set Object.
    """

    def __init__(self, name: str, items: Object, *, savable: bool = True, scope: str = "user") -> None:
        if items.kind is not ObjectType.SET:
            raise ObjectError(f"context '{name}' must be backed by a set Object")
        self.name = name
        self.savable = savable
        self.scope = scope
        self._list = items

    def set_save(self, savable: bool) -> None:
        self.savable = savable

    def list_object(self) -> Object:
        return self._list

    def __len__(self) -> int:
        return len(self._list)

    def __repr__(self) -> str:
        return f"ConfigContext({self.name!r}, scope={self.scope}, savable={self.savable}, len={len(self._list)})"


class ConfigDB:
    """Resolves context names to ConfigContext handles.

    A context is read from the user store when a user copy was ever saved,
    otherwise from the system seed directory. Each context is loaded once
    and cached for the lifetime of the ConfigDB.
    """

    def __init__(self, store: ConfigStore, system_dir: Optional[Path] = None) -> None:
        self.store = store
        self.system_dir = Path(system_dir) if system_dir is not None else None
        self._contexts: Dict[str, ConfigContext] = {}

    def context(self, name: str) -> ConfigContext:
        ctx = self._contexts.get(name)
        if ctx is None:
            ctx = self._load(name)
            self._contexts[name] = ctx
        return ctx

    def _load(self, name: str) -> ConfigContext:
        scope = "user" if self.store.has_context(name) else "system"
        log = context_logger(logger, name, scope)
        if scope == "user":
            raw: List = []
            for payload in self.store.load_context(name):
                try:
                    raw.append(json.loads(payload))
                except json.JSONDecodeError as exc:
                    log.warning("Dropping undecodable stored entry: %s", exc)
        else:
            raw = load_seed(self.system_dir, name)

        items = Object.make_set()
        for idx, data in enumerate(raw):
            try:
                items.append(Object.from_json(data))
            except ObjectError as exc:
                log.warning("Skipping malformed entry %d: %s", idx, exc, extra={"entry": idx})
        log.debug("Loaded %d entries", len(items), extra={"count": len(items)})
        return ConfigContext(name, items, scope=scope)

    def flush(self) -> int:
        """Write every loaded savable context to the user store; return how many were written."""
        written = 0
        for name, ctx in self._contexts.items():
            if not ctx.savable:
                continue
            payloads = [json.dumps(item.to_json(), sort_keys=True) for item in ctx.list_object()]
            self.store.save_context(name, payloads)
            ctx.scope = "user"
            written += 1
        logger.debug("Flushed %d contexts", written, extra={"count": written})
        return written

    def close(self) -> None:
        self.store.close()
