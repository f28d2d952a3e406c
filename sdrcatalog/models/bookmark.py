"""Frequency bookmark model and its config Object form."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sdrcatalog.confdb.object import Object

NEW_ENTRY = -1

# Bookmarks are keyed by a signed 64-bit frequency in Hz.
FREQ_MIN = -(2 ** 63)
FREQ_MAX = 2 ** 63 - 1
DEFAULT_COLOR = "#000000"

_HEX_COLOR = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def normalize_color(text: str) -> str:
    """Return ``text`` as a lowercase ``#rrggbb`` string; invalid colors become black."""
    text = (text or "").strip()
    if not _HEX_COLOR.match(text):
        return DEFAULT_COLOR
    digits = text[1:].lower()
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits}"


def _parse_int(text: str) -> int:
    try:
        return int(float(text.strip()))
    except (ValueError, OverflowError):
        return 0


@dataclass
class BookmarkInfo:
    name: str
    frequency: int
    color: str = DEFAULT_COLOR
    low_freq_cut: int = 0
    high_freq_cut: int = 0
    modulation: str = ""

    def __post_init__(self) -> None:
        self.frequency = int(self.frequency)
        if not FREQ_MIN <= self.frequency <= FREQ_MAX:
            raise ValueError(f"frequency {self.frequency} out of range")
        self.color = normalize_color(self.color)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "frequency": self.frequency,
            "color": self.color,
            "low_freq_cut": self.low_freq_cut,
            "high_freq_cut": self.high_freq_cut,
            "modulation": self.modulation,
        }


@dataclass
class Bookmark:
    """A bookmark plus the storage slot it was loaded from (NEW_ENTRY if unsaved)."""

    info: BookmarkInfo
    entry: int = field(default=NEW_ENTRY)

    @property
    def frequency(self) -> int:
        return self.info.frequency

    @property
    def is_new(self) -> bool:
        return self.entry == NEW_ENTRY

    def serialize(self) -> Object:
        obj = Object.make_object()
        obj.set("name", self.info.name)
        obj.set("frequency", float(self.info.frequency))
        obj.set("color", self.info.color)
        obj.set("low_freq_cut", int(self.info.low_freq_cut))
        obj.set("high_freq_cut", int(self.info.high_freq_cut))
        obj.set("modulation", self.info.modulation)
        return obj

    @classmethod
    def deserialize(cls, obj: Object, entry: int) -> Optional["Bookmark"]:
        """Build the bookmark stored at slot ``entry``.

        Returns None when name, color or frequency is missing, the name is
        empty, or the frequency does not parse. The cut-off/modulation
        extension is applied only when all three of its fields are present.
        """
        name = obj.field_value("name")
        color = obj.field_value("color")
        frequency = obj.field_value("frequency")
        if name is None or color is None or frequency is None:
            return None
        try:
            freq = int(float(frequency))
        except (ValueError, OverflowError):
            return None
        if not name or not FREQ_MIN <= freq <= FREQ_MAX:
            return None

        info = BookmarkInfo(name=name, frequency=freq, color=color)
        low = obj.field_value("low_freq_cut")
        high = obj.field_value("high_freq_cut")
        modulation = obj.field_value("modulation")
        if low is not None and high is not None and modulation is not None:
            info.modulation = modulation
            info.low_freq_cut = _parse_int(low)
            info.high_freq_cut = _parse_int(high)
        return cls(info=info, entry=entry)
