"""Spectrum display units and their linear relation to dB."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import numpy as np

from sdrcatalog.confdb.object import Object, ObjectType

SPECTRUM_UNIT_CLASS = "spectrum_unit"

ArrayLike = Union[float, np.ndarray, List[float]]


def _as_output(result: np.ndarray) -> Union[float, np.ndarray]:
    if np.ndim(result) == 0:
        return float(result)
    return result


@dataclass
class SpectrumUnit:
    """``dB = db_per_unit * value + zero_point``."""

    name: str
    db_per_unit: float
    zero_point: float
    user: bool = False

    def to_db(self, value: ArrayLike) -> Union[float, np.ndarray]:
        values = np.asarray(value, dtype=np.float64)
        return _as_output(self.db_per_unit * values + self.zero_point)

    def from_db(self, db: ArrayLike) -> Union[float, np.ndarray]:
        if self.db_per_unit == 0:
            raise ZeroDivisionError(f"spectrum unit '{self.name}' has a zero dB slope")
        values = np.asarray(db, dtype=np.float64)
        return _as_output((values - self.zero_point) / self.db_per_unit)

    def serialize(self) -> Object:
        return Object.make_object(
            SPECTRUM_UNIT_CLASS,
            name=self.name,
            db_per_unit=float(self.db_per_unit),
            zero_point=float(self.zero_point),
        )

    @classmethod
    def deserialize(cls, obj: Object, *, user: bool = True) -> Optional["SpectrumUnit"]:
        if obj.kind is not ObjectType.OBJECT:
            return None
        name = obj.field_value("name")
        slope = obj.get("db_per_unit", float("nan"))
        zero = obj.get("zero_point", float("nan"))
        if not name or math.isnan(slope) or math.isnan(zero):
            return None
        return cls(name=name, db_per_unit=slope, zero_point=zero, user=user)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "db_per_unit": self.db_per_unit,
            "zero_point": self.zero_point,
            "user": self.user,
        }


def builtin_spectrum_units() -> List[SpectrumUnit]:
    # AB magnitude zero point sits at 3631 Jy, i.e. 35.6 dB above the dBJy
    # zero. With 1 mag = -4 dB that is -2.5 * log10(3631) ~= -8.9 mag.
    return [
        SpectrumUnit("dBFS", 1.0, 0.0),
        SpectrumUnit("dBK", 1.0, -228.60),
        SpectrumUnit("dBW/Hz", 1.0, 0.0),
        SpectrumUnit("dBm/Hz", 1.0, -30.0),
        SpectrumUnit("dBJy", 1.0, 0.0),
        SpectrumUnit("mag (AB)", -4.0, -2.5 * math.log10(3631.0)),
    ]
