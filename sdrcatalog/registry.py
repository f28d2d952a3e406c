"""Process-wide configuration and catalog registry.

The Registry owns every in-memory collection (profiles, devices, bookmarks,
locations, TLE sources, orbits, spectrum units, UI blobs, recent profiles and
the dedup-only catalogs), the lazy-init flags of the four expensive
subsystems, and the load-at-startup / sync-at-checkpoint cycle against a
ConfigDB.

It is single-threaded: no operation locks, and iterators handed out by the
accessors are only valid until the next mutating call.
"""

from __future__ import annotations

import atexit
import dataclasses
import sqlite3
import time
from importlib import metadata
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import numpy as np

from sdrcatalog import __version__
from sdrcatalog.confdb.context import ConfigDB
from sdrcatalog.confdb.object import Object
from sdrcatalog.confdb.store import ConfigStore
from sdrcatalog.discovery.base import DiscoveryBridge, SourceEnumerator
from sdrcatalog.discovery.soapy import SOURCES_CONTEXT, SoapyEnumerator, soapy_versions
from sdrcatalog.errors import FatalInitError, ObjectError, TLEParseError
from sdrcatalog.loaders import (
    load_bookmarks,
    load_locations,
    load_named_unique,
    load_orbits,
    load_qth,
    load_recent,
    load_spectrum_units,
    load_tle_sources,
    load_ui_config,
)
from sdrcatalog.models.allocation import FrequencyAllocationTable
from sdrcatalog.models.bookmark import Bookmark, BookmarkInfo
from sdrcatalog.models.location import Location
from sdrcatalog.models.source import NULL_PROFILE_LABEL, Device, SourceConfig
from sdrcatalog.models.spectrum import SpectrumUnit, builtin_spectrum_units
from sdrcatalog.models.tle import TLE_SUFFIX, Orbit, TLESource, normalize_tle_name, parse_tle
from sdrcatalog.settings import DEFAULT_RECENT_LIMIT, Settings
from sdrcatalog.util.logging import get_logger, log_exception
from sdrcatalog.util.sortedmap import SortedMap

logger = get_logger(__name__)

SUBSYSTEMS = ("sources", "estimators", "spectrum_sources", "inspectors")

Initializer = Callable[[], bool]


class Registry:
    """Owner of all catalogs and of their persistence cycle.

    ``initializers`` maps subsystem names (see ``SUBSYSTEMS``) to callables
    returning True on success. Missing entries default to a no-op, except
    ``sources`` which defaults to ``enumerator.initialize``.
    ``task_controller`` is any object with a ``shutdown()`` method; it is
    stopped when the registry is closed.
    """

    def __init__(
        self,
        config: ConfigDB,
        enumerator: Optional[SourceEnumerator] = None,
        settings: Optional[Settings] = None,
        *,
        initializers: Optional[Dict[str, Initializer]] = None,
        task_controller: Any = None,
    ) -> None:
        self.config = config
        self.enumerator = enumerator if enumerator is not None else SourceEnumerator()
        self.settings = settings
        self.task_controller = task_controller
        self.bridge = DiscoveryBridge(self)

        self._initializers: Dict[str, Initializer] = {name: (lambda: True) for name in SUBSYSTEMS}
        self._initializers["sources"] = self.enumerator.initialize
        if initializers:
            self._initializers.update(initializers)
        self._initd: Dict[str, bool] = {name: False for name in SUBSYSTEMS}
        self._failed: Dict[str, str] = {}
        self._loaded: Dict[str, bool] = {}

        self.profiles: SortedMap[str, SourceConfig] = SortedMap()
        self.network_profiles: Dict[str, SourceConfig] = {}
        self.devices: List[Device] = []
        self.palettes: List[Object] = []
        self.autogains: List[Object] = []
        self.fats: List[Object] = []
        self.ui_config: List[Object] = []
        self.recent: List[str] = []
        self.bookmarks: SortedMap[int, Bookmark] = SortedMap()
        self.locations: SortedMap[str, Location] = SortedMap()
        self.qth: Optional[Location] = None
        self.satellites: SortedMap[str, Orbit] = SortedMap()
        self.tle_sources: SortedMap[str, TLESource] = SortedMap()
        self.spectrum_units: SortedMap[str, SpectrumUnit] = SortedMap()

        for unit in builtin_spectrum_units():
            self.spectrum_units[unit.name] = unit

    @property
    def recent_limit(self) -> int:
        return self.settings.recent_limit if self.settings is not None else DEFAULT_RECENT_LIMIT

    # ------------------------------------------------------------------
    # Subsystem initialization
    # ------------------------------------------------------------------

    def is_initialized(self, subsystem: str) -> bool:
        return self._initd.get(subsystem, False)

    def _init_subsystem(self, subsystem: str) -> bool:
        """Run the initializer of ``subsystem`` once.

        Returns True when this call performed the initialization, False when
        it had already been done. Raises FatalInitError on failure, and again
        on every later call without re-running the initializer.
        """
        if self._initd[subsystem]:
            return False
        if subsystem in self._failed:
            raise FatalInitError(f"{subsystem} initialization previously failed: {self._failed[subsystem]}")
        started = time.perf_counter()
        try:
            ok = self._initializers[subsystem]()
        except Exception as exc:
            self._failed[subsystem] = str(exc)
            log_exception(logger, f"Failed to initialize {subsystem}", error_type="init_failed")
            raise FatalInitError(f"failed to initialize {subsystem}: {exc}") from exc
        if ok is False:
            self._failed[subsystem] = "initializer returned failure"
            logger.error("Failed to initialize %s", subsystem, extra={"error_type": "init_failed"})
            raise FatalInitError(f"failed to initialize {subsystem}")
        duration_ms = (time.perf_counter() - started) * 1000.0
        logger.debug("Initialized %s", subsystem, extra={"duration_ms": round(duration_ms, 3)})
        return True

    def init_sources(self) -> None:
        if self._init_subsystem("sources"):
            self.bridge.walk_configs(self.enumerator)
            self.bridge.walk_devices(self.enumerator)
            self._initd["sources"] = True
            logger.info("Sources ready: %d profiles, %d devices", len(self.profiles), len(self.devices))

    def init_estimators(self) -> None:
        if self._init_subsystem("estimators"):
            self._initd["estimators"] = True

    def init_spectrum_sources(self) -> None:
        if self._init_subsystem("spectrum_sources"):
            self._initd["spectrum_sources"] = True

    def init_inspectors(self) -> None:
        if self._init_subsystem("inspectors"):
            self._initd["inspectors"] = True

    # ------------------------------------------------------------------
    # Collection loaders (each runs once)
    # ------------------------------------------------------------------

    def _once(self, collection: str) -> bool:
        if self._loaded.get(collection):
            return False
        self._loaded[collection] = True
        return True

    def is_loaded(self, collection: str) -> bool:
        return self._loaded.get(collection, False)

    def _system_list(self, name: str) -> Object:
        ctx = self.config.context(name)
        ctx.set_save(False)
        return ctx.list_object()

    def _user_list(self, name: str) -> Object:
        ctx = self.config.context(name)
        ctx.set_save(True)
        return ctx.list_object()

    def init_palettes(self) -> None:
        if self._once("palettes"):
            load_named_unique(self._system_list("palettes"), self.palettes, context="palettes")

    def init_autogains(self) -> None:
        if self._once("autogains"):
            load_named_unique(self._system_list("autogains"), self.autogains, context="autogains")

    def init_fats(self) -> None:
        if self._once("fats"):
            load_named_unique(self._system_list("frequency_allocations"), self.fats, context="frequency_allocations")

    def init_bookmarks(self) -> None:
        if self._once("bookmarks"):
            count = load_bookmarks(self._user_list("bookmarks"), self.bookmarks)
            logger.debug("Loaded %d bookmarks", count, extra={"context": "bookmarks", "count": count})

    def init_locations(self) -> None:
        if self._once("locations"):
            load_locations(self._system_list("locations"), self.locations, user=False)
            load_locations(self._user_list("user_locations"), self.locations, user=True)
            self.qth = load_qth(self._user_list("qth"))

    def init_tle_sources(self) -> None:
        if self._once("tle_sources"):
            load_tle_sources(self._system_list("tle"), self.tle_sources, user=False)
            load_tle_sources(self._user_list("user_tle"), self.tle_sources, user=True)

    def init_tle(self) -> None:
        if self._once("tle"):
            tle_dir = self.settings.resolve_tle_dir() if self.settings is not None else None
            if tle_dir is None:
                logger.info("No user TLE directory available; satellite catalog left empty")
                return
            count = load_orbits(tle_dir, self.satellites)
            logger.debug("Loaded %d orbits from %s", count, tle_dir, extra={"count": count})

    def init_ui_config(self) -> None:
        if self._once("uiconfig"):
            load_ui_config(self._user_list("uiconfig"), self.ui_config)

    def init_recent_list(self) -> None:
        if self._once("recent"):
            load_recent(self._user_list("recent"), self.recent, limit=self.recent_limit)

    def init_spectrum_units(self) -> None:
        if self._once("spectrum_units"):
            load_spectrum_units(self._user_list("spectrum_units"), self.spectrum_units)

    def startup(self) -> None:
        """Bring up every subsystem and load every collection."""
        self.init_sources()
        self.init_estimators()
        self.init_spectrum_sources()
        self.init_inspectors()
        self.init_palettes()
        self.init_autogains()
        self.init_fats()
        self.init_bookmarks()
        self.init_locations()
        self.init_tle_sources()
        self.init_tle()
        self.init_ui_config()
        self.init_recent_list()
        self.init_spectrum_units()

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def register_source_config(self, config: SourceConfig) -> None:
        label = config.label or NULL_PROFILE_LABEL
        self.profiles[label] = config

    def register_source_device(self, device: Device) -> None:
        self.devices.append(device)

    def register_network_profile(self, config: SourceConfig) -> None:
        self.network_profiles[config.label] = config.clone()

    def refresh_devices(self) -> None:
        self.devices.clear()
        self.bridge.walk_devices(self.enumerator)

    def refresh_network_profiles(self) -> None:
        self.network_profiles.clear()
        self.bridge.walk_remote_devices(self.enumerator)

    def detect_devices(self) -> None:
        self.enumerator.detect()
        self.refresh_devices()

    def get_device_at(self, index: int) -> Optional[Device]:
        if 0 <= index < len(self.devices):
            return self.devices[index]
        return None

    def get_network_profile(self, label: str) -> Optional[SourceConfig]:
        return self.network_profiles.get(label)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def get_profile(self, name: str) -> Optional[SourceConfig]:
        return self.profiles.get(name)

    def save_profile(self, profile: SourceConfig) -> None:
        """Store ``profile`` in memory and in the ``sources`` context, replacing any with the same label."""
        saved = profile.clone()
        self.profiles[saved.label] = saved
        items = self._user_list(SOURCES_CONTEXT)
        for idx, entry in enumerate(items):
            if entry.field_value("label") == saved.label:
                items.put(saved.serialize(), idx)
                return
        items.append(saved.serialize())

    # ------------------------------------------------------------------
    # Dedup-only catalogs
    # ------------------------------------------------------------------

    def get_fat(self, name: str) -> Optional[FrequencyAllocationTable]:
        for entry in self.fats:
            if entry.field_value("name") == name:
                return FrequencyAllocationTable.from_object(entry)
        return None

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    def register_bookmark(self, info: BookmarkInfo) -> bool:
        self.init_bookmarks()
        if info.frequency in self.bookmarks:
            return False
        self.bookmarks[info.frequency] = Bookmark(info=info)
        return True

    def replace_bookmark(self, info: BookmarkInfo) -> None:
        self.remove_bookmark(info.frequency)
        self.bookmarks[info.frequency] = Bookmark(info=info)

    def remove_bookmark(self, frequency: int) -> bool:
        """Drop the bookmark at ``frequency``.

        A bookmark that was loaded from storage also loses its slot right
        away, and every later slot moves down by one.
        """
        self.init_bookmarks()
        bm = self.bookmarks.pop(frequency)
        if bm is None:
            return False
        if not bm.is_new:
            try:
                self._user_list("bookmarks").remove(bm.entry)
            except ObjectError as exc:
                logger.warning("Stored bookmark slot vanished: %s", exc, extra={"context": "bookmarks", "entry": bm.entry})
                return True
            for other in self.bookmarks.values():
                if other.entry > bm.entry:
                    other.entry -= 1
        return True

    def get_bookmark(self, frequency: int) -> Optional[Bookmark]:
        return self.bookmarks.get(frequency)

    def bookmarks_from(self, frequency: int) -> Iterator[Tuple[int, Bookmark]]:
        return self.bookmarks.lower_bound(frequency)

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def register_location(self, location: Location) -> bool:
        self.init_locations()
        if location.location_name in self.locations:
            return False
        added = dataclasses.replace(location, user_location=True)
        self.locations[added.location_name] = added
        return True

    def have_qth(self) -> bool:
        return self.qth is not None

    def get_qth(self) -> Optional[Location]:
        return self.qth

    def set_qth(self, location: Location) -> None:
        self.init_locations()
        self.qth = location

    # ------------------------------------------------------------------
    # TLE sources and orbits
    # ------------------------------------------------------------------

    def register_tle_source(self, source: TLESource) -> bool:
        self.init_tle_sources()
        if source.name in self.tle_sources:
            return False
        self.tle_sources[source.name] = dataclasses.replace(source, user=True)
        return True

    def remove_tle_source(self, name: str) -> bool:
        self.init_tle_sources()
        source = self.tle_sources.get(name)
        if source is None or not source.user:
            return False
        del self.tle_sources[name]
        return True

    def register_tle(self, text: str) -> bool:
        """Parse ``text``, save it to the user TLE directory and add the orbit.

        The satellite catalog is only updated once the file is written.
        """
        try:
            orbit = parse_tle(text)
        except TLEParseError as exc:
            logger.warning("Rejected TLE: %s", exc, extra={"error_type": "tle_parse"})
            return False
        tle_dir = self.settings.resolve_tle_dir() if self.settings is not None else None
        if tle_dir is None:
            logger.warning("Cannot save TLE for %s: no user TLE directory", orbit.name, extra={"error_type": "tle_dir"})
            return False
        path = Path(tle_dir) / (normalize_tle_name(orbit.name) + TLE_SUFFIX)
        try:
            path.write_text(text, encoding="utf-8")
        except OSError:
            log_exception(logger, f"Failed to write {path}", error_type="tle_write")
            return False
        self.satellites[orbit.name] = orbit
        return True

    def get_satellite(self, name: str) -> Optional[Orbit]:
        return self.satellites.get(name)

    # ------------------------------------------------------------------
    # Spectrum units
    # ------------------------------------------------------------------

    def register_spectrum_unit(self, name: str, db_per_unit: float, zero_point: float) -> bool:
        self.init_spectrum_units()
        if name in self.spectrum_units:
            return False
        self.spectrum_units[name] = SpectrumUnit(name, float(db_per_unit), float(zero_point), user=True)
        return True

    def replace_spectrum_unit(self, name: str, db_per_unit: float, zero_point: float) -> None:
        self.init_spectrum_units()
        self.remove_spectrum_unit(name)
        self.spectrum_units[name] = SpectrumUnit(name, float(db_per_unit), float(zero_point), user=True)

    def remove_spectrum_unit(self, name: str) -> None:
        self.init_spectrum_units()
        self.spectrum_units.pop(name)

    def get_spectrum_unit(self, name: str) -> Optional[SpectrumUnit]:
        return self.spectrum_units.get(name)

    def spectrum_units_from(self, name: str) -> Iterator[Tuple[str, SpectrumUnit]]:
        return self.spectrum_units.lower_bound(name)

    # ------------------------------------------------------------------
    # UI config
    # ------------------------------------------------------------------

    def put_ui_config(self, pos: int, obj: Object) -> None:
        """Store ``obj`` at ``pos``, growing the list with empty entries as needed."""
        self.init_ui_config()
        if pos < 0:
            raise IndexError(f"negative UI config position {pos}")
        while len(self.ui_config) <= pos:
            self.ui_config.append(Object.make_object())
        self.ui_config[pos] = obj.copy() if obj.is_borrowed else obj

    def get_ui_config(self, pos: int) -> Optional[Object]:
        if 0 <= pos < len(self.ui_config):
            return self.ui_config[pos]
        return None

    # ------------------------------------------------------------------
    # Recent profiles
    # ------------------------------------------------------------------

    def notify_recent(self, name: str) -> bool:
        """Move ``name`` to the front; return True if it was already listed."""
        self.init_recent_list()
        found = self.remove_recent(name)
        self.recent.insert(0, name)
        del self.recent[self.recent_limit :]
        return found

    def remove_recent(self, name: str) -> bool:
        self.init_recent_list()
        before = len(self.recent)
        self.recent[:] = [entry for entry in self.recent if entry != name]
        return len(self.recent) != before

    def clear_recent(self) -> None:
        self.init_recent_list()
        self.recent.clear()

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def sync_recent(self) -> None:
        if not self.is_loaded("recent"):
            return
        items = self._user_list("recent")
        items.clear()
        for name in self.recent:
            items.append(Object.make_field(name))

    def sync_ui(self) -> None:
        if not self.is_loaded("uiconfig"):
            return
        items = self._user_list("uiconfig")
        for idx, obj in enumerate(self.ui_config):
            if obj.is_borrowed:
                continue
            try:
                items.put(obj, idx)
            except ObjectError:
                items.append(obj)

    def sync_bookmarks(self) -> None:
        if not self.is_loaded("bookmarks"):
            return
        items = self._user_list("bookmarks")
        for bm in self.bookmarks.values():
            if bm.is_new:
                bm.entry = items.append(bm.serialize())

    def sync_locations(self) -> None:
        if not self.is_loaded("locations"):
            return
        items = self._user_list("user_locations")
        items.clear()
        for loc in self.locations.values():
            if loc.user_location:
                items.append(loc.serialize())
        if self.qth is not None:
            qth = self._user_list("qth")
            qth.clear()
            qth.append(self.qth.serialize())

    def sync_tle_sources(self) -> None:
        if not self.is_loaded("tle_sources"):
            return
        items = self._user_list("user_tle")
        items.clear()
        for source in self.tle_sources.values():
            if source.user:
                items.append(source.serialize())

    def sync_spectrum_units(self) -> None:
        if not self.is_loaded("spectrum_units"):
            return
        items = self._user_list("spectrum_units")
        items.clear()
        for unit in self.spectrum_units.values():
            if unit.user:
                items.append(unit.serialize())

    def sync(self) -> int:
        """Write modified collections back and flush savable contexts; return the flush count."""
        self.sync_recent()
        self.sync_ui()
        self.sync_bookmarks()
        self.sync_locations()
        self.sync_tle_sources()
        self.sync_spectrum_units()
        return self.config.flush()

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def versions(self) -> Dict[str, str]:
        versions = {"sdrcatalog": __version__, "numpy": np.__version__}
        try:
            versions["flask"] = metadata.version("flask")
        except metadata.PackageNotFoundError:
            pass
        versions.update(soapy_versions())
        return versions

    def close(self) -> None:
        """Sync, stop the task controller and close the store."""
        try:
            self.sync()
        finally:
            if self.task_controller is not None:
                self.task_controller.shutdown()
                self.task_controller = None
            self.config.close()


_instance: Optional[Registry] = None


def get_instance(settings: Optional[Settings] = None) -> Registry:
    """Return the process-wide registry, building it on first use."""
    global _instance
    if _instance is None:
        settings = settings or Settings.from_env()
        try:
            settings.user_dir.mkdir(parents=True, exist_ok=True)
            store = ConfigStore(settings.db_path)
            config = ConfigDB(store, settings.system_dir)
            _instance = Registry(config, SoapyEnumerator(config), settings)
        except (MemoryError, OSError, sqlite3.Error) as exc:
            raise FatalInitError(f"failed to build the registry: {exc}") from exc
        logger.debug("Registry created", extra={"context": str(settings.db_path)})
    return _instance


def release_instance() -> None:
    """Tear down the process-wide registry, if one was built."""
    global _instance
    registry, _instance = _instance, None
    if registry is not None:
        registry.close()


atexit.register(release_instance)
