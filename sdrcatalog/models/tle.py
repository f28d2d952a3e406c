"""TLE sources and parsed two-line element sets."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from sdrcatalog.confdb.object import Object, ObjectType
from sdrcatalog.errors import TLEParseError

TLE_SOURCE_CLASS = "tle_source"
TLE_SUFFIX = ".tle"
TLE_LINE_LENGTH = 69

_UNSAFE_NAME_CHARS = re.compile(r"[^-a-zA-Z0-9()]")


@dataclass
class TLESource:
    name: str
    url: str
    user: bool = False

    def serialize(self) -> Object:
        return Object.make_object(TLE_SOURCE_CLASS, name=self.name, url=self.url)

    @classmethod
    def deserialize(cls, obj: Object, *, user: bool = False) -> Optional["TLESource"]:
        if obj.kind is not ObjectType.OBJECT:
            return None
        name = obj.field_value("name")
        url = obj.field_value("url")
        if not name or url is None:
            return None
        return cls(name=name, url=url, user=user)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "url": self.url, "user": self.user}


def normalize_tle_name(name: str) -> str:
    """File-system safe form of a satellite name."""
    return _UNSAFE_NAME_CHARS.sub("_", name.strip())


@dataclass
class Orbit:
    name: str
    catalog_number: int
    classification: str
    intl_designator: str
    epoch: datetime
    mean_motion_dot: float
    inclination_deg: float
    raan_deg: float
    eccentricity: float
    arg_perigee_deg: float
    mean_anomaly_deg: float
    mean_motion_rev_per_day: float
    rev_number: int
    line1: str
    line2: str

    @property
    def period_minutes(self) -> float:
        return 1440.0 / self.mean_motion_rev_per_day if self.mean_motion_rev_per_day else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "catalog_number": self.catalog_number,
            "epoch": self.epoch.isoformat(),
            "inclination_deg": self.inclination_deg,
            "raan_deg": self.raan_deg,
            "eccentricity": self.eccentricity,
            "arg_perigee_deg": self.arg_perigee_deg,
            "mean_anomaly_deg": self.mean_anomaly_deg,
            "mean_motion_rev_per_day": self.mean_motion_rev_per_day,
            "period_minutes": self.period_minutes,
        }


def tle_checksum(line: str) -> int:
    """Modulo-10 checksum over the first 68 columns ('-' counts as 1)."""
    total = 0
    for ch in line[: TLE_LINE_LENGTH - 1]:
        if ch.isdigit():
            total += int(ch)
        elif ch == "-":
            total += 1
    return total % 10


def _check_line(line: str, number: str) -> None:
    if len(line) != TLE_LINE_LENGTH:
        raise TLEParseError(f"line {number} must be {TLE_LINE_LENGTH} characters, got {len(line)}")
    if not line.startswith(f"{number} "):
        raise TLEParseError(f"line {number} does not start with '{number} '")
    if not line[-1].isdigit() or int(line[-1]) != tle_checksum(line):
        raise TLEParseError(f"line {number} checksum mismatch")


def _epoch(field_text: str) -> datetime:
    year = int(field_text[:2])
    year += 2000 if year < 57 else 1900
    day = float(field_text[2:])
    return datetime(year, 1, 1, tzinfo=timezone.utc) + timedelta(days=day - 1.0)


def _split_lines(text: str) -> Tuple[Optional[str], str, str]:
    lines = [ln.rstrip() for ln in text.replace("\r\n", "\n").split("\n") if ln.strip()]
    if len(lines) == 2:
        return None, lines[0], lines[1]
    if len(lines) == 3:
        name = lines[0].strip()
        if name.startswith("0 "):
            name = name[2:].strip()
        return name, lines[1], lines[2]
    raise TLEParseError(f"expected 2 or 3 non-empty lines, got {len(lines)}")


def parse_tle(text: str) -> Orbit:
    """Parse one TLE (optional title line plus lines 1 and 2).

    Raises TLEParseError on any structural, checksum or numeric problem.
    """
    name, line1, line2 = _split_lines(text)
    _check_line(line1, "1")
    _check_line(line2, "2")
    if line1[2:7] != line2[2:7]:
        raise TLEParseError("catalog numbers of line 1 and line 2 differ")
    try:
        catalog_number = int(line1[2:7])
        orbit = Orbit(
            name=name or str(catalog_number),
            catalog_number=catalog_number,
            classification=line1[7],
            intl_designator=line1[9:17].strip(),
            epoch=_epoch(line1[18:32].strip()),
            mean_motion_dot=float(line1[33:43]),
            inclination_deg=float(line2[8:16]),
            raan_deg=float(line2[17:25]),
            eccentricity=float("0." + line2[26:33].strip()),
            arg_perigee_deg=float(line2[34:42]),
            mean_anomaly_deg=float(line2[43:51]),
            mean_motion_rev_per_day=float(line2[52:63]),
            rev_number=int(line2[63:68].strip() or 0),
            line1=line1,
            line2=line2,
        )
    except ValueError as exc:
        raise TLEParseError(f"invalid numeric field: {exc}") from exc
    return orbit


def load_orbit_file(path: Union[str, Path]) -> Optional[Orbit]:
    """Parse the first element set in a .tle file; None if unreadable or invalid."""
    try:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    lines = [ln for ln in text.splitlines() if ln.strip()]
    for count in (3, 2):
        try:
            return parse_tle("\n".join(lines[:count]))
        except TLEParseError:
            continue
    return None


def split_tle_bundle(text: str) -> List[str]:
    """Split a multi-satellite TLE listing into single element-set texts."""
    lines = [ln.rstrip() for ln in text.splitlines() if ln.strip()]
    chunks: List[str] = []
    i = 0
    while i < len(lines):
        if lines[i].startswith("1 ") and i + 1 < len(lines) and lines[i + 1].startswith("2 "):
            chunks.append("\n".join(lines[i : i + 2]))
            i += 2
        elif i + 2 < len(lines) and lines[i + 1].startswith("1 ") and lines[i + 2].startswith("2 "):
            chunks.append("\n".join(lines[i : i + 3]))
            i += 3
        else:
            i += 1
    return chunks
