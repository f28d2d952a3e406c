"""SoapySDR-backed enumerator with a native librtlsdr fallback."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sdrcatalog.confdb.context import ConfigDB
from sdrcatalog.discovery.base import ConfigCallback, DeviceCallback, RemoteCallback, SourceEnumerator
from sdrcatalog.models.source import Device, SourceConfig, default_profiles
from sdrcatalog.util.logging import get_logger

try:  # pragma: no cover - optional dependency
    import SoapySDR  # type: ignore

    HAVE_SOAPY = True
except Exception:  # pragma: no cover - optional dependency
    HAVE_SOAPY = False
    SoapySDR = None  # type: ignore

try:  # pragma: no cover - optional dependency
    from rtlsdr import RtlSdr  # type: ignore

    HAVE_RTLSDR = True
except Exception:  # pragma: no cover - optional dependency
    HAVE_RTLSDR = False
    RtlSdr = None  # type: ignore

logger = get_logger(__name__)

SOURCES_CONTEXT = "sources"


def _kwargs_to_dict(kwargs: Any) -> Dict[str, str]:
    return {str(k): str(v) for k, v in dict(kwargs).items()}


def _describe(args: Dict[str, str], fallback: str) -> str:
    label = args.get("label") or fallback
    serial = args.get("serial")
    if serial and serial not in label:
        label += f" (SN {serial})"
    return label


class SoapyEnumerator(SourceEnumerator):
    """Enumerate profiles from the config DB and devices through SoapySDR.

    Profiles come from the built-in defaults followed by the ``sources``
    context. Local devices come from ``SoapySDR.Device.enumerate()``; when
    SoapySDR is not installed, RTL-SDR dongles are listed through pyrtlsdr.
    Remote devices are those reported by the SoapyRemote module.
    """

    def __init__(self, config: Optional[ConfigDB] = None, *, include_defaults: bool = True) -> None:
        self.config = config
        self.include_defaults = include_defaults
        self._devices: Optional[List[Device]] = None

    def initialize(self) -> bool:
        if not HAVE_SOAPY and not HAVE_RTLSDR:
            logger.warning("Neither SoapySDR nor pyrtlsdr is available; no local devices will be listed")
        return True

    def detect(self) -> None:
        self._devices = self._scan_local()

    def walk_configs(self, callback: ConfigCallback) -> bool:
        configs: List[SourceConfig] = list(default_profiles()) if self.include_defaults else []
        if self.config is not None:
            for idx, obj in enumerate(self.config.context(SOURCES_CONTEXT).list_object()):
                profile = SourceConfig.deserialize(obj)
                if profile is None:
                    logger.debug("Skipping profile without label", extra={"context": SOURCES_CONTEXT, "entry": idx})
                    continue
                configs.append(profile)
        for profile in configs:
            if not callback(profile):
                break
        return True

    def walk_devices(self, callback: DeviceCallback) -> bool:
        if self._devices is None:
            self._devices = self._scan_local()
        for idx, device in enumerate(self._devices):
            if not callback(device, idx):
                break
        return True

    def walk_remote_devices(self, callback: RemoteCallback) -> bool:
        if not HAVE_SOAPY:
            return True
        try:
            found = SoapySDR.Device.enumerate(dict(driver="remote"))
        except Exception as exc:  # SoapyRemote missing or discovery failed
            logger.warning("Remote device discovery failed: %s", exc, extra={"error_type": "remote_enumerate"})
            return False
        for idx, entry in enumerate(found):
            device, profile = self._remote_entry(_kwargs_to_dict(entry), idx)
            if not callback(device, profile):
                break
        return True

    @staticmethod
    def _remote_entry(args: Dict[str, str], idx: int) -> Tuple[Device, SourceConfig]:
        driver = args.get("remote:driver") or args.get("driver", "remote")
        host = args.get("remote", "")
        desc = _describe(args, f"{driver} #{idx}")
        label = f"{desc} @ {host}" if host else desc
        device = Device(desc=desc, driver=driver, remote=True, index=idx, args=args)
        return device, SourceConfig(label=label, driver="remote", device_args=args)

    def _scan_local(self) -> List[Device]:
        devices: List[Device] = []
        if HAVE_SOAPY:
            try:
                for idx, entry in enumerate(SoapySDR.Device.enumerate()):
                    args = _kwargs_to_dict(entry)
                    if "remote" in args:
                        continue
                    driver = args.get("driver", "unknown")
                    devices.append(
                        Device(desc=_describe(args, f"{driver} #{idx}"), driver=driver, index=idx, args=args)
                    )
            except Exception as exc:
                logger.warning("SoapySDR enumeration failed: %s", exc, extra={"error_type": "soapy_enumerate"})
            if devices:
                return devices
        if HAVE_RTLSDR:
            try:
                serials = RtlSdr.get_device_serial_addresses()
            except Exception as exc:
                logger.warning("librtlsdr enumeration failed: %s", exc, extra={"error_type": "rtlsdr_enumerate"})
                return devices
            for idx, serial in enumerate(serials):
                args = {"driver": "rtlsdr", "serial": str(serial), "index": str(idx)}
                devices.append(Device(desc=_describe(args, f"RTL-SDR #{idx}"), driver="rtlsdr", index=idx, args=args))
        return devices


def soapy_versions() -> Dict[str, str]:
    if not HAVE_SOAPY:
        return {}
    versions: Dict[str, str] = {}
    for key, getter in (("soapy_api", "getAPIVersion"), ("soapy_lib", "getLibVersion"), ("soapy_abi", "getABIVersion")):
        fn = getattr(SoapySDR, getter, None)
        if fn is not None:
            try:
                versions[key] = str(fn())
            except Exception:
                continue
    return versions
