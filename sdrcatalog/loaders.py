"""Collection loaders: populate in-memory catalogs from context lists.

Two-scope collections are loaded system first, then user, into the same
keyed map, so a user entry silently replaces a system entry with the same
key. Dedup-only catalogs keep the first entry seen for each ``name``.
Malformed entries are skipped one by one; a bad entry never aborts a load.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from sdrcatalog.confdb.object import Object, ObjectType
from sdrcatalog.models.bookmark import Bookmark
from sdrcatalog.models.location import LOCATION_CLASS, Location
from sdrcatalog.models.spectrum import SpectrumUnit
from sdrcatalog.models.tle import TLE_SUFFIX, Orbit, TLESource, load_orbit_file
from sdrcatalog.util.logging import context_logger, get_logger
from sdrcatalog.util.sortedmap import SortedMap

logger = get_logger(__name__)


def has_named(entries: List[Object], name: str) -> bool:
    for entry in entries:
        if entry.field_value("name") == name:
            return True
    return False


def load_named_unique(items: Object, target: List[Object], *, context: str = "") -> int:
    """Append entries whose ``name`` is not already in ``target``; return how many were added."""
    added = 0
    for idx, entry in enumerate(items):
        name = entry.field_value("name")
        if name is None:
            logger.debug("Skipping entry without name", extra={"context": context, "entry": idx})
            continue
        if has_named(target, name):
            continue
        target.append(entry)
        added += 1
    return added


def load_bookmarks(items: Object, target: SortedMap) -> int:
    """Key bookmarks by frequency; each keeps its list position as storage slot."""
    loaded = 0
    for idx, entry in enumerate(items):
        bm = Bookmark.deserialize(entry, idx)
        if bm is None:
            logger.debug("Dropping malformed bookmark", extra={"context": "bookmarks", "entry": idx})
            continue
        target[bm.frequency] = bm
        loaded += 1
    return loaded


def load_locations(items: Object, target: SortedMap, *, user: bool) -> int:
    log = context_logger(logger, "locations", "user" if user else "system")
    loaded = 0
    for idx, entry in enumerate(items):
        loc = Location.deserialize(entry, user=user)
        if loc is None:
            log.debug("Dropping malformed location", extra={"entry": idx})
            continue
        target[loc.location_name] = loc
        loaded += 1
    return loaded


def load_qth(items: Object) -> Optional[Location]:
    """The QTH is the first entry of its context, when it is a Location object."""
    if len(items) == 0:
        return None
    first = items[0]
    if first.kind is not ObjectType.OBJECT or first.class_name != LOCATION_CLASS:
        return None
    return Location.deserialize(first, user=True)


def load_tle_sources(items: Object, target: SortedMap, *, user: bool) -> int:
    log = context_logger(logger, "tle", "user" if user else "system")
    loaded = 0
    for idx, entry in enumerate(items):
        src = TLESource.deserialize(entry, user=user)
        if src is None:
            log.debug("Dropping malformed TLE source", extra={"entry": idx})
            continue
        target[src.name] = src
        loaded += 1
    return loaded


def load_spectrum_units(items: Object, target: SortedMap) -> int:
    loaded = 0
    for idx, entry in enumerate(items):
        unit = SpectrumUnit.deserialize(entry, user=True)
        if unit is None:
            logger.debug("Dropping malformed spectrum unit", extra={"context": "spectrum_units", "entry": idx})
            continue
        target[unit.name] = unit
        loaded += 1
    return loaded


def load_ui_config(items: Object, target: List[Object]) -> int:
    for entry in items:
        target.append(entry)
    return len(items)


def load_recent(items: Object, target: List[str], *, limit: int) -> int:
    loaded = 0
    for entry in items:
        if entry.kind is not ObjectType.FIELD:
            continue
        if len(target) >= limit:
            break
        target.append(entry.value)
        loaded += 1
    return loaded


def load_orbits(tle_dir: Optional[Path], target: SortedMap) -> int:
    """Load every ``*.tle`` file in ``tle_dir``; files that fail to parse are skipped."""
    if tle_dir is None or not tle_dir.is_dir():
        return 0
    loaded = 0
    for path in sorted(tle_dir.iterdir()):
        if not path.is_file() or path.suffix.lower() != TLE_SUFFIX:
            continue
        orbit: Optional[Orbit] = load_orbit_file(path)
        if orbit is None:
            logger.warning("Skipping unparsable TLE file %s", path.name, extra={"error_type": "tle_parse"})
            continue
        target[orbit.name] = orbit
        loaded += 1
    return loaded
