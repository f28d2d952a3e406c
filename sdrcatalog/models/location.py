"""Geographic locations and the home site (QTH)."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sdrcatalog.confdb.object import Object, ObjectType

LOCATION_CLASS = "Location"


@dataclass
class Site:
    lat: float = 0.0
    lon: float = 0.0
    height_m: float = 0.0


@dataclass
class Location:
    name: str
    country: str = ""
    site: Site = field(default_factory=Site)
    user_location: bool = False

    @property
    def location_name(self) -> str:
        """Map key: the name, qualified with the country when one is set."""
        if self.country:
            return f"{self.name}, {self.country}"
        return self.name

    def serialize(self) -> Object:
        obj = Object.make_object(LOCATION_CLASS)
        obj.set("name", self.name)
        obj.set("country", self.country)
        obj.set("lat", float(self.site.lat))
        obj.set("lon", float(self.site.lon))
        obj.set("alt", float(self.site.height_m))
        return obj

    @classmethod
    def deserialize(cls, obj: Object, *, user: bool = False) -> Optional["Location"]:
        """Return the Location in ``obj``, or None if it lacks a name or coordinates."""
        if obj.kind is not ObjectType.OBJECT:
            return None
        name = obj.field_value("name")
        if not name:
            return None
        lat = obj.get("lat", float("nan"))
        lon = obj.get("lon", float("nan"))
        if math.isnan(lat) or math.isnan(lon):
            return None
        return cls(
            name=name,
            country=obj.get("country", ""),
            site=Site(lat=lat, lon=lon, height_m=obj.get("alt", 0.0)),
            user_location=user,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "country": self.country,
            "lat": self.site.lat,
            "lon": self.site.lon,
            "height_m": self.site.height_m,
            "user": self.user_location,
        }
