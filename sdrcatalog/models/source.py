"""Source profile and device dataclasses and helpers."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sdrcatalog.confdb.object import Object, ObjectType

NULL_PROFILE_LABEL = "(Null profile)"


@dataclass(frozen=True)
class Device:
    """Enumerable hardware source. Identity is (desc, driver, remote)."""

    desc: str
    driver: str
    remote: bool = False
    index: int = field(default=0, compare=False)
    args: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "desc": self.desc,
            "driver": self.driver,
            "remote": self.remote,
            "index": self.index,
            "args": dict(self.args),
        }


@dataclass
class SourceConfig:
    label: Optional[str]
    driver: str = "rtlsdr"
    device_args: Dict[str, str] = field(default_factory=dict)
    frequency: float = 100e6
    samp_rate: float = 2.4e6
    bandwidth: Optional[float] = None
    gain: Optional[float] = None
    antenna: Optional[str] = None
    ppm: float = 0.0

    def clone(self) -> "SourceConfig":
        return copy.deepcopy(self)

    def serialize(self) -> Object:
        obj = Object.make_object("source_config")
        obj.set("label", self.label or NULL_PROFILE_LABEL)
        obj.set("driver", self.driver)
        obj.set("frequency", float(self.frequency))
        obj.set("samp_rate", float(self.samp_rate))
        obj.set("ppm", float(self.ppm))
        if self.bandwidth is not None:
            obj.set("bandwidth", float(self.bandwidth))
        if self.gain is not None:
            obj.set("gain", float(self.gain))
        if self.antenna:
            obj.set("antenna", self.antenna)
        if self.device_args:
            args = Object.make_object()
            for key, value in sorted(self.device_args.items()):
                args.set(str(key), str(value))
            obj.set("device_args", args)
        return obj

    @classmethod
    def deserialize(cls, obj: Object) -> Optional["SourceConfig"]:
        """Build a profile from ``obj``; None when the label is missing."""
        label = obj.field_value("label")
        if not label:
            return None
        device_args: Dict[str, str] = {}
        args = obj.get_field("device_args")
        if args is not None and args.kind is ObjectType.OBJECT:
            for key in args.field_names():
                value = args.field_value(key)
                if value is not None:
                    device_args[key] = value
        gain = obj.field_value("gain")
        bandwidth = obj.field_value("bandwidth")
        return cls(
            label=label,
            driver=obj.get("driver", "rtlsdr"),
            device_args=device_args,
            frequency=obj.get("frequency", 100e6),
            samp_rate=obj.get("samp_rate", 2.4e6),
            bandwidth=obj.get("bandwidth", 0.0) if bandwidth is not None else None,
            gain=obj.get("gain", 0.0) if gain is not None else None,
            antenna=obj.field_value("antenna"),
            ppm=obj.get("ppm", 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "driver": self.driver,
            "device_args": dict(self.device_args),
            "frequency": self.frequency,
            "samp_rate": self.samp_rate,
            "bandwidth": self.bandwidth,
            "gain": self.gain,
            "antenna": self.antenna,
            "ppm": self.ppm,
        }


def default_profiles() -> List[SourceConfig]:
    return [
        SourceConfig(label="RTL-SDR FM broadcast", driver="rtlsdr", frequency=98e6, samp_rate=2.4e6, gain=20.0),
        SourceConfig(label="RTL-SDR airband", driver="rtlsdr", frequency=127.85e6, samp_rate=2.4e6, gain=30.0),
        SourceConfig(label="HackRF 2.4 GHz ISM", driver="hackrf", frequency=2.44e9, samp_rate=20e6, gain=24.0),
    ]
