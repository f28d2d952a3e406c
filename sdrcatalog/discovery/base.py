"""Enumerator interface and the callback bridge into the registry."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Iterable, List, Tuple

from sdrcatalog.models.source import Device, SourceConfig

if TYPE_CHECKING:  # pragma: no cover
    from sdrcatalog.registry import Registry

ConfigCallback = Callable[[SourceConfig], bool]
DeviceCallback = Callable[[Device, int], bool]
RemoteCallback = Callable[[Device, SourceConfig], bool]


class SourceEnumerator:
    """Walks configured profiles, local devices and remote (network) sources.

    Each walker invokes its callback once per item, in no particular order,
    and stops early when the callback returns False. Walkers return False
    when enumeration itself failed.
    """

    def initialize(self) -> bool:
        return True

    def detect(self) -> None:
        """Rescan hardware; the next walk_devices reflects the result."""

    def walk_configs(self, callback: ConfigCallback) -> bool:
        return True

    def walk_devices(self, callback: DeviceCallback) -> bool:
        return True

    def walk_remote_devices(self, callback: RemoteCallback) -> bool:
        return True


class StaticEnumerator(SourceEnumerator):
    """Enumerator over fixed in-memory lists."""

    def __init__(
        self,
        configs: Iterable[SourceConfig] = (),
        devices: Iterable[Device] = (),
        remote: Iterable[Tuple[Device, SourceConfig]] = (),
    ) -> None:
        self.configs: List[SourceConfig] = list(configs)
        self.devices: List[Device] = list(devices)
        self.remote: List[Tuple[Device, SourceConfig]] = list(remote)
        self.detect_calls = 0

    def detect(self) -> None:
        self.detect_calls += 1

    def walk_configs(self, callback: ConfigCallback) -> bool:
        for config in self.configs:
            if not callback(config):
                break
        return True

    def walk_devices(self, callback: DeviceCallback) -> bool:
        for idx, device in enumerate(self.devices):
            if not callback(device, idx):
                break
        return True

    def walk_remote_devices(self, callback: RemoteCallback) -> bool:
        for device, config in self.remote:
            if not callback(device, config):
                break
        return True


class DiscoveryBridge:
    """Turns enumerator callbacks into single registry inserts.

    No deduplication happens here; callers clear the target collection
    before re-enumerating.
    """

    def __init__(self, registry: "Registry") -> None:
        self.registry = registry

    def on_source_config(self, config: SourceConfig) -> bool:
        self.registry.register_source_config(config)
        return True

    def on_device(self, device: Device, index: int) -> bool:
        self.registry.register_source_device(device)
        return True

    def on_remote_device(self, device: Device, config: SourceConfig) -> bool:
        self.registry.register_network_profile(config)
        return True

    def walk_configs(self, enumerator: SourceEnumerator) -> bool:
        return enumerator.walk_configs(self.on_source_config)

    def walk_devices(self, enumerator: SourceEnumerator) -> bool:
        return enumerator.walk_devices(self.on_device)

    def walk_remote_devices(self, enumerator: SourceEnumerator) -> bool:
        return enumerator.walk_remote_devices(self.on_remote_device)

