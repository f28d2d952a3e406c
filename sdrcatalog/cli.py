#!/usr/bin/env python3
"""sdrcatalog command line: inspect and edit the catalogs, or serve them over HTTP."""

from __future__ import annotations

import argparse
import json
import sqlite3
import sys
from pathlib import Path
from typing import Any, List, Optional

from sdrcatalog.errors import FatalInitError
from sdrcatalog.models.bookmark import BookmarkInfo
from sdrcatalog.models.location import Location, Site
from sdrcatalog.models.tle import TLESource, split_tle_bundle
from sdrcatalog.registry import Registry, get_instance, release_instance
from sdrcatalog.settings import Settings
from sdrcatalog.util.exit_codes import ExitCode
from sdrcatalog.util.logging import configure_logging, get_logger

logger = get_logger(__name__)


def _emit(data: Any, as_json: bool, lines: List[str]) -> None:
    if as_json:
        print(json.dumps(data, indent=2))
        return
    for line in lines:
        print(line)


def _scope(user: bool) -> str:
    return "user" if user else "system"


# ---------- read-only commands ----------

def cmd_devices(reg: Registry, args: argparse.Namespace) -> int:
    if args.detect:
        reg.detect_devices()
    devs = list(reg.devices)
    if not devs and not args.json:
        print("No devices found.")
        return ExitCode.NOT_FOUND
    _emit([d.to_dict() for d in devs], args.json, [f"{d.index}\t{d.driver}\t{d.desc}" for d in devs])
    return ExitCode.SUCCESS


def cmd_profiles(reg: Registry, args: argparse.Namespace) -> int:
    if args.network:
        reg.refresh_network_profiles()
        profiles = [p for _, p in sorted(reg.network_profiles.items())]
    else:
        profiles = list(reg.profiles.values())
    _emit(
        [p.to_dict() for p in profiles],
        args.json,
        [f"{p.label}\t{p.driver}\t{p.frequency / 1e6:.3f} MHz\t{p.samp_rate / 1e6:.3f} Msps" for p in profiles],
    )
    return ExitCode.SUCCESS


def cmd_bookmarks(reg: Registry, args: argparse.Namespace) -> int:
    if args.start is not None:
        items = [bm for _, bm in reg.bookmarks_from(int(args.start))]
    else:
        items = list(reg.bookmarks.values())
    _emit(
        [dict(bm.info.to_dict(), entry=bm.entry) for bm in items],
        args.json,
        [f"{bm.frequency}\t{bm.info.color}\t{bm.info.name}" for bm in items],
    )
    return ExitCode.SUCCESS


def cmd_locations(reg: Registry, args: argparse.Namespace) -> int:
    locs = list(reg.locations.values())
    _emit(
        [loc.to_dict() for loc in locs],
        args.json,
        [f"{loc.location_name}\t{loc.site.lat:.4f}\t{loc.site.lon:.4f}\t{_scope(loc.user_location)}" for loc in locs],
    )
    return ExitCode.SUCCESS


def cmd_tle_sources(reg: Registry, args: argparse.Namespace) -> int:
    srcs = list(reg.tle_sources.values())
    _emit(
        [s.to_dict() for s in srcs],
        args.json,
        [f"{s.name}\t{s.url}\t{_scope(s.user)}" for s in srcs],
    )
    return ExitCode.SUCCESS


def cmd_satellites(reg: Registry, args: argparse.Namespace) -> int:
    orbits = list(reg.satellites.values())
    _emit(
        [o.to_dict() for o in orbits],
        args.json,
        [f"{o.catalog_number}\t{o.name}\t{o.period_minutes:.1f} min" for o in orbits],
    )
    return ExitCode.SUCCESS


def cmd_units(reg: Registry, args: argparse.Namespace) -> int:
    units = list(reg.spectrum_units.values())
    _emit(
        [u.to_dict() for u in units],
        args.json,
        [f"{u.name}\t{u.db_per_unit:g}\t{u.zero_point:g}" for u in units],
    )
    return ExitCode.SUCCESS


def cmd_recent(reg: Registry, args: argparse.Namespace) -> int:
    if args.clear:
        reg.clear_recent()
        return ExitCode.SUCCESS
    if args.add:
        reg.notify_recent(args.add)
    _emit(list(reg.recent), args.json, list(reg.recent))
    return ExitCode.SUCCESS


# ---------- mutating commands ----------

def cmd_bookmark_add(reg: Registry, args: argparse.Namespace) -> int:
    try:
        info = BookmarkInfo(
            name=args.name,
            frequency=int(args.frequency),
            color=args.color,
            low_freq_cut=int(args.low_cut),
            high_freq_cut=int(args.high_cut),
            modulation=args.modulation,
        )
    except (ValueError, OverflowError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return ExitCode.INVALID_ARGS
    if args.replace:
        reg.replace_bookmark(info)
    elif not reg.register_bookmark(info):
        print(f"bookmark already exists at {info.frequency} Hz", file=sys.stderr)
        return ExitCode.GENERAL_ERROR
    return ExitCode.SUCCESS


def cmd_bookmark_rm(reg: Registry, args: argparse.Namespace) -> int:
    if not reg.remove_bookmark(int(args.frequency)):
        print(f"no bookmark at {int(args.frequency)} Hz", file=sys.stderr)
        return ExitCode.NOT_FOUND
    return ExitCode.SUCCESS


def cmd_qth(reg: Registry, args: argparse.Namespace) -> int:
    if args.name is not None:
        if args.lat is None or args.lon is None:
            print("--lat and --lon are required to set the QTH", file=sys.stderr)
            return ExitCode.INVALID_ARGS
        reg.set_qth(Location(args.name, args.country, Site(args.lat, args.lon, args.height)))
    qth = reg.get_qth()
    if qth is None:
        print("No QTH set.", file=sys.stderr)
        return ExitCode.NOT_FOUND
    _emit(qth.to_dict(), args.json, [f"{qth.location_name}\t{qth.site.lat:.4f}\t{qth.site.lon:.4f}\t{qth.site.height_m:g} m"])
    return ExitCode.SUCCESS


def cmd_tle_source_add(reg: Registry, args: argparse.Namespace) -> int:
    if not reg.register_tle_source(TLESource(name=args.name, url=args.url)):
        print(f"TLE source '{args.name}' already exists", file=sys.stderr)
        return ExitCode.GENERAL_ERROR
    return ExitCode.SUCCESS


def cmd_tle_source_rm(reg: Registry, args: argparse.Namespace) -> int:
    if args.name not in reg.tle_sources:
        print(f"no TLE source named '{args.name}'", file=sys.stderr)
        return ExitCode.NOT_FOUND
    if not reg.remove_tle_source(args.name):
        print(f"TLE source '{args.name}' is a system source and cannot be removed", file=sys.stderr)
        return ExitCode.GENERAL_ERROR
    return ExitCode.SUCCESS


def cmd_tle_add(reg: Registry, args: argparse.Namespace) -> int:
    try:
        text = sys.stdin.read() if args.file == "-" else Path(args.file).read_text(encoding="utf-8")
    except OSError as exc:
        print(f"cannot read {args.file}: {exc}", file=sys.stderr)
        return ExitCode.INVALID_ARGS
    chunks = split_tle_bundle(text)
    if not chunks:
        print("no element sets found", file=sys.stderr)
        return ExitCode.INVALID_ARGS
    added = sum(1 for chunk in chunks if reg.register_tle(chunk))
    print(f"registered {added}/{len(chunks)} element sets")
    return ExitCode.SUCCESS if added == len(chunks) else ExitCode.GENERAL_ERROR


def cmd_unit_add(reg: Registry, args: argparse.Namespace) -> int:
    if args.replace:
        reg.replace_spectrum_unit(args.name, args.db_per_unit, args.zero_point)
    elif not reg.register_spectrum_unit(args.name, args.db_per_unit, args.zero_point):
        print(f"spectrum unit '{args.name}' already exists", file=sys.stderr)
        return ExitCode.GENERAL_ERROR
    return ExitCode.SUCCESS


def cmd_sync(reg: Registry, args: argparse.Namespace) -> int:
    flushed = reg.sync()
    print(f"flushed {flushed} contexts")
    return ExitCode.SUCCESS


def cmd_serve(reg: Registry, args: argparse.Namespace) -> int:
    from sdrcatalog.api import create_app

    token = args.token or (reg.settings.api_token if reg.settings is not None else "")
    app = create_app(reg, token=token or None)
    app.run(host=args.host, port=args.port, debug=False, threaded=False)
    return ExitCode.SUCCESS


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="sdrcatalog", description="SDR configuration and catalog registry")
    p.add_argument("--home", type=Path, default=None, help="User data directory (default $SDRCATALOG_HOME or ~/.sdrcatalog)")
    p.add_argument("--db", type=Path, default=None, help="Path to the user SQLite store")
    p.add_argument("--tle-dir", type=Path, default=None, help="Directory holding user .tle files")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    p.add_argument("--log-json", default=None, help="Append JSON-formatted logs to this file")
    p.add_argument("--no-color", action="store_true", help="Disable colored console logs")
    sub = p.add_subparsers(dest="cmd", required=True)

    def add(name: str, func, help_text: str, *, json_out: bool = True) -> argparse.ArgumentParser:
        s = sub.add_parser(name, help=help_text)
        if json_out:
            s.add_argument("--json", action="store_true", help="Print JSON instead of text")
        s.set_defaults(func=func)
        return s

    s = add("devices", cmd_devices, "List detected devices")
    s.add_argument("--detect", action="store_true", help="Rescan hardware first")

    s = add("profiles", cmd_profiles, "List source profiles")
    s.add_argument("--network", action="store_true", help="List profiles discovered on the network instead")

    s = add("bookmarks", cmd_bookmarks, "List frequency bookmarks")
    s.add_argument("--from", dest="start", type=float, default=None, help="Only bookmarks at or above this frequency (Hz)")

    s = add("bookmark-add", cmd_bookmark_add, "Add a bookmark", json_out=False)
    s.add_argument("frequency", type=float, help="Frequency in Hz (e.g., 145.8e6)")
    s.add_argument("name")
    s.add_argument("--color", default="#000000")
    s.add_argument("--low-cut", type=float, default=0)
    s.add_argument("--high-cut", type=float, default=0)
    s.add_argument("--modulation", default="")
    s.add_argument("--replace", action="store_true", help="Overwrite an existing bookmark at that frequency")

    s = add("bookmark-rm", cmd_bookmark_rm, "Remove the bookmark at a frequency", json_out=False)
    s.add_argument("frequency", type=float)

    add("locations", cmd_locations, "List known locations")

    s = add("qth", cmd_qth, "Show or set the home site")
    s.add_argument("--name", default=None)
    s.add_argument("--country", default="")
    s.add_argument("--lat", type=float, default=None)
    s.add_argument("--lon", type=float, default=None)
    s.add_argument("--height", type=float, default=0.0, help="Height above sea level in meters")

    add("tle-sources", cmd_tle_sources, "List TLE sources")

    s = add("tle-source-add", cmd_tle_source_add, "Add a user TLE source", json_out=False)
    s.add_argument("name")
    s.add_argument("url")

    s = add("tle-source-rm", cmd_tle_source_rm, "Remove a user TLE source", json_out=False)
    s.add_argument("name")

    s = add("tle-add", cmd_tle_add, "Register element sets from a TLE file ('-' for stdin)", json_out=False)
    s.add_argument("file")

    add("satellites", cmd_satellites, "List loaded satellite orbits")
    add("units", cmd_units, "List spectrum units")

    s = add("unit-add", cmd_unit_add, "Add a spectrum unit", json_out=False)
    s.add_argument("name")
    s.add_argument("db_per_unit", type=float)
    s.add_argument("zero_point", type=float)
    s.add_argument("--replace", action="store_true")

    s = add("recent", cmd_recent, "Show or edit recently used profiles")
    s.add_argument("--add", default=None, help="Mark a profile as just used")
    s.add_argument("--clear", action="store_true")

    add("sync", cmd_sync, "Write pending changes to the user store", json_out=False)

    s = add("serve", cmd_serve, "Run the JSON API", json_out=False)
    s.add_argument("--host", default="127.0.0.1")
    s.add_argument("--port", type=int, default=8766)
    s.add_argument("--token", default=None, help="Bearer token for Authorization header")

    return p


def _settings_from(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if args.home is not None:
        settings.user_dir = args.home.expanduser()
        settings.db_path = settings.user_dir / "config.db"
        settings.tle_dir = settings.user_dir / "tle"
    if args.db is not None:
        settings.db_path = args.db.expanduser()
    if args.tle_dir is not None:
        settings.tle_dir = args.tle_dir.expanduser()
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_arg_parser()
    try:
        args = ap.parse_args(argv)
    except SystemExit as exc:
        return ExitCode.SUCCESS if exc.code == 0 else ExitCode.INVALID_ARGS
    configure_logging(level=args.log_level, json_file=args.log_json, use_color=not args.no_color)

    try:
        reg = get_instance(_settings_from(args))
        reg.startup()
    except FatalInitError as exc:
        print(f"error: {ExitCode.message(ExitCode.INIT_FAILED)}: {exc}", file=sys.stderr)
        release_instance()
        return ExitCode.INIT_FAILED

    try:
        return args.func(reg, args)
    except sqlite3.Error as exc:
        logger.error("Configuration store error: %s", exc, extra={"error_type": "store"})
        return ExitCode.STORE_ERROR
    finally:
        try:
            release_instance()
        except sqlite3.Error as exc:
            logger.error("Failed to save configuration: %s", exc, extra={"error_type": "store"})


if __name__ == "__main__":
    sys.exit(main())
