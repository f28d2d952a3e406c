"""
JSON HTTP API over a Registry.

Every route requires ``Authorization: Bearer <token>`` when a token is
configured. The registry is single-threaded, so the app must be served by a
single-threaded server (``app.run(threaded=False)``).
"""
from __future__ import annotations

import dataclasses
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from sdrcatalog.models.bookmark import BookmarkInfo
from sdrcatalog.models.location import Location, Site
from sdrcatalog.models.tle import TLESource
from sdrcatalog.registry import Registry
from sdrcatalog.util.logging import get_logger

logger = get_logger(__name__)


def _bookmark_dict(bm) -> Dict[str, Any]:
    data = bm.info.to_dict()
    data["entry"] = bm.entry
    return data


def _error(message: str, status: int, **detail: Any):
    payload: Dict[str, Any] = {"error": message}
    payload.update(detail)
    return (jsonify(payload), status)


def _float_arg(payload: Dict[str, Any], key: str, default: Optional[float] = None) -> float:
    value = payload.get(key, default)
    if value is None:
        raise ValueError(f"{key} is required")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be a number")


def create_app(registry: Registry, token: Optional[str] = None) -> Flask:
    """Create the Flask app serving ``registry``."""
    app = Flask(__name__)
    app.config["REGISTRY"] = registry

    def _auth_ok() -> bool:
        if not token:
            return True
        hdr = request.headers.get("Authorization", "")
        parts = hdr.split()
        return len(parts) == 2 and parts[0].lower() == "bearer" and parts[1] == token

    @app.before_request
    def check_auth():
        if not _auth_ok():
            return _error("unauthorized", 401)

    # ------------------------------------------------------------------
    # Devices and profiles
    # ------------------------------------------------------------------

    @app.get("/devices")
    def devices():
        return jsonify([d.to_dict() for d in registry.devices])

    @app.post("/devices/refresh")
    def devices_refresh():
        registry.detect_devices()
        return jsonify([d.to_dict() for d in registry.devices])

    @app.get("/profiles")
    def profiles():
        return jsonify([p.to_dict() for p in registry.profiles.values()])

    @app.get("/network-profiles")
    def network_profiles():
        return jsonify([p.to_dict() for _, p in sorted(registry.network_profiles.items())])

    @app.post("/network-profiles/refresh")
    def network_profiles_refresh():
        registry.refresh_network_profiles()
        return jsonify([p.to_dict() for _, p in sorted(registry.network_profiles.items())])

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    @app.get("/bookmarks")
    def bookmarks():
        start = request.args.get("from", type=int)
        if start is None:
            items = registry.bookmarks.values()
        else:
            items = (bm for _, bm in registry.bookmarks_from(start))
        return jsonify([_bookmark_dict(bm) for bm in items])

    @app.post("/bookmarks")
    def bookmark_add():
        payload = request.get_json(force=True, silent=True) or {}
        name = str(payload.get("name") or "").strip()
        if not name:
            return _error("name is required", 400)
        try:
            info = BookmarkInfo(
                name=name,
                frequency=int(_float_arg(payload, "frequency")),
                color=str(payload.get("color") or "#000000"),
                low_freq_cut=int(_float_arg(payload, "low_freq_cut", 0)),
                high_freq_cut=int(_float_arg(payload, "high_freq_cut", 0)),
                modulation=str(payload.get("modulation") or ""),
            )
        except (ValueError, OverflowError) as exc:
            return _error(str(exc), 400)
        if payload.get("replace"):
            registry.replace_bookmark(info)
        elif not registry.register_bookmark(info):
            return _error("bookmark already exists", 409, frequency=info.frequency)
        return (jsonify(_bookmark_dict(registry.bookmarks[info.frequency])), 201)

    @app.delete("/bookmarks/<int:frequency>")
    def bookmark_delete(frequency: int):
        if not registry.remove_bookmark(frequency):
            return _error("no bookmark at that frequency", 404, frequency=frequency)
        return jsonify({"removed": frequency})

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def _location_from(payload: Dict[str, Any]) -> Location:
        name = str(payload.get("name") or "").strip()
        if not name:
            raise ValueError("name is required")
        return Location(
            name=name,
            country=str(payload.get("country") or ""),
            site=Site(
                lat=_float_arg(payload, "lat"),
                lon=_float_arg(payload, "lon"),
                height_m=_float_arg(payload, "height_m", 0.0),
            ),
        )

    @app.get("/locations")
    def locations():
        return jsonify([loc.to_dict() for loc in registry.locations.values()])

    @app.post("/locations")
    def location_add():
        try:
            loc = _location_from(request.get_json(force=True, silent=True) or {})
        except ValueError as exc:
            return _error(str(exc), 400)
        if not registry.register_location(loc):
            return _error("location already exists", 409, name=loc.location_name)
        return (jsonify(registry.locations[loc.location_name].to_dict()), 201)

    @app.get("/qth")
    def qth():
        loc = registry.get_qth()
        if loc is None:
            return _error("no QTH set", 404)
        return jsonify(loc.to_dict())

    @app.put("/qth")
    def qth_set():
        try:
            loc = _location_from(request.get_json(force=True, silent=True) or {})
        except ValueError as exc:
            return _error(str(exc), 400)
        registry.set_qth(loc)
        return jsonify(loc.to_dict())

    # ------------------------------------------------------------------
    # TLE sources and satellites
    # ------------------------------------------------------------------

    @app.get("/tle-sources")
    def tle_sources():
        return jsonify([src.to_dict() for src in registry.tle_sources.values()])

    @app.post("/tle-sources")
    def tle_source_add():
        payload = request.get_json(force=True, silent=True) or {}
        name = str(payload.get("name") or "").strip()
        url = str(payload.get("url") or "").strip()
        if not name or not url:
            return _error("name and url are required", 400)
        if not registry.register_tle_source(TLESource(name=name, url=url)):
            return _error("TLE source already exists", 409, name=name)
        return (jsonify(registry.tle_sources[name].to_dict()), 201)

    @app.delete("/tle-sources/<path:name>")
    def tle_source_delete(name: str):
        source = registry.tle_sources.get(name)
        if source is None:
            return _error("no such TLE source", 404, name=name)
        if not registry.remove_tle_source(name):
            return _error("system TLE sources cannot be removed", 403, name=name)
        return jsonify({"removed": name})

    @app.get("/satellites")
    def satellites():
        return jsonify([orbit.to_dict() for orbit in registry.satellites.values()])

    @app.post("/satellites")
    def satellite_add():
        if request.is_json:
            text = str((request.get_json(silent=True) or {}).get("tle") or "")
        else:
            text = request.get_data(as_text=True)
        if not text.strip():
            return _error("TLE text is required", 400)
        if not registry.register_tle(text):
            return _error("TLE rejected or could not be saved", 422)
        return (jsonify({"count": len(registry.satellites)}), 201)

    # ------------------------------------------------------------------
    # Spectrum units
    # ------------------------------------------------------------------

    @app.get("/spectrum-units")
    def spectrum_units():
        return jsonify([unit.to_dict() for unit in registry.spectrum_units.values()])

    @app.post("/spectrum-units")
    def spectrum_unit_add():
        payload = request.get_json(force=True, silent=True) or {}
        name = str(payload.get("name") or "").strip()
        if not name:
            return _error("name is required", 400)
        try:
            slope = _float_arg(payload, "db_per_unit")
            zero = _float_arg(payload, "zero_point", 0.0)
        except ValueError as exc:
            return _error(str(exc), 400)
        if payload.get("replace"):
            registry.replace_spectrum_unit(name, slope, zero)
        elif not registry.register_spectrum_unit(name, slope, zero):
            return _error("spectrum unit already exists", 409, name=name)
        return (jsonify(registry.spectrum_units[name].to_dict()), 201)

    @app.delete("/spectrum-units/<path:name>")
    def spectrum_unit_delete(name: str):
        if registry.get_spectrum_unit(name) is None:
            return _error("no such spectrum unit", 404, name=name)
        registry.remove_spectrum_unit(name)
        return jsonify({"removed": name})

    # ------------------------------------------------------------------
    # Read-only catalogs
    # ------------------------------------------------------------------

    @app.get("/palettes")
    def palettes():
        return jsonify([obj.to_json() for obj in registry.palettes])

    @app.get("/autogains")
    def autogains():
        return jsonify([obj.to_json() for obj in registry.autogains])

    @app.get("/allocations")
    def allocations():
        return jsonify([obj.field_value("name") for obj in registry.fats])

    @app.get("/allocations/<path:name>")
    def allocation_lookup(name: str):
        table = registry.get_fat(name)
        if table is None:
            return _error("no such allocation table", 404, name=name)
        freq = request.args.get("f", type=float)
        if freq is None:
            return jsonify([dataclasses.asdict(b) for b in table.bands])
        service, region, notes = table.lookup(int(freq))
        return jsonify({"frequency": int(freq), "service": service, "region": region, "notes": notes})

    # ------------------------------------------------------------------
    # Recent profiles, sync, versions
    # ------------------------------------------------------------------

    @app.get("/recent")
    def recent():
        return jsonify(list(registry.recent))

    @app.post("/recent")
    def recent_add():
        payload = request.get_json(force=True, silent=True) or {}
        name = str(payload.get("name") or "").strip()
        if not name:
            return _error("name is required", 400)
        registry.notify_recent(name)
        return jsonify(list(registry.recent))

    @app.delete("/recent")
    def recent_clear():
        registry.clear_recent()
        return jsonify([])

    @app.post("/sync")
    def sync():
        try:
            flushed = registry.sync()
        except Exception as exc:
            logger.exception("Sync failed", extra={"error_type": "sync_failed"})
            return _error("sync_failed", 500, detail=str(exc))
        return jsonify({"flushed": flushed})

    @app.get("/versions")
    def versions():
        return jsonify(registry.versions())

    return app
