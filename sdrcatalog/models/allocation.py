"""Frequency allocation tables built from catalog Objects or CSV files."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from sdrcatalog.confdb.object import Object, ObjectType


@dataclass
class Band:
    low_hz: int
    high_hz: int
    service: str
    region: str = ""
    notes: str = ""
    color: str = ""


class FrequencyAllocationTable:
    def __init__(self, name: str, bands: Optional[List[Band]] = None):
        self.name = name
        self.bands: List[Band] = sorted(bands or [], key=lambda b: (b.low_hz, b.high_hz))

    @classmethod
    def from_object(cls, obj: Object) -> Optional["FrequencyAllocationTable"]:
        """Build a table from a catalog entry with ``name`` and a ``bands`` set.

        Band entries missing limits or with unparsable limits are skipped.
        """
        name = obj.field_value("name")
        if not name:
            return None
        bands: List[Band] = []
        items = obj.get_field("bands")
        if items is not None and items.kind is ObjectType.SET:
            for item in items:
                low = item.get("low_hz", -1.0)
                high = item.get("high_hz", -1.0)
                if low < 0 or high < low:
                    continue
                bands.append(
                    Band(
                        int(low),
                        int(high),
                        item.get("service", "").strip(),
                        item.get("region", "").strip(),
                        item.get("notes", "").strip(),
                        item.get("color", "").strip(),
                    )
                )
        return cls(name, bands)

    @classmethod
    def from_csv(cls, name: str, path: Union[str, Path]) -> "FrequencyAllocationTable":
        bands: List[Band] = []
        with open(path, newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for row in reader:
                low = row.get("low_hz") or row.get("f_low_hz")
                high = row.get("high_hz") or row.get("f_high_hz")
                if low is None or high is None:
                    continue
                try:
                    bands.append(
                        Band(
                            int(float(low)),
                            int(float(high)),
                            (row.get("service") or "").strip(),
                            (row.get("region") or "").strip(),
                            (row.get("notes") or "").strip(),
                        )
                    )
                except ValueError:
                    continue
        return cls(name, bands)

    def to_object(self) -> Object:
        obj = Object.make_object("frequency_allocation_table", name=self.name)
        items = Object.make_set()
        for band in self.bands:
            items.append(
                Object.make_object(
                    low_hz=band.low_hz,
                    high_hz=band.high_hz,
                    service=band.service,
                    region=band.region,
                    notes=band.notes,
                    color=band.color,
                )
            )
        obj.set("bands", items)
        return obj

    def lookup(self, f_hz: int) -> Tuple[str, str, str]:
        for band in self.bands:
            if band.low_hz <= f_hz <= band.high_hz:
                return band.service, band.region, band.notes
        return "", "", ""

    def bands_in(self, low_hz: int, high_hz: int) -> List[Band]:
        """Bands overlapping ``[low_hz, high_hz]``."""
        return [b for b in self.bands if b.high_hz >= low_hz and b.low_hz <= high_hz]
