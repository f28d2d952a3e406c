import json
from pathlib import Path
from typing import Any, List

import pytest

from sdrcatalog import registry as registry_module
from sdrcatalog.confdb.context import ConfigDB
from sdrcatalog.confdb.store import ConfigStore
from sdrcatalog.discovery.base import StaticEnumerator
from sdrcatalog.models.source import Device, SourceConfig
from sdrcatalog.registry import Registry
from sdrcatalog.settings import Settings

ISS_TLE = (
    "ISS (ZARYA)\n"
    "1 25544U 98067A   08264.51782528 -.00002182  00000-0 -11606-4 0  2927\n"
    "2 25544  51.6416 247.4627 0006703 130.5360 325.0288 15.72125391563537\n"
)

NOAA_TLE = (
    "NOAA 19\n"
    "1 33591U 09005A   24001.50000000  .00000100  00000-0  80000-4 0  9990\n"
    "2 33591  99.1000 100.0000 0014000 200.0000 160.0000 14.12000000770009\n"
)


def write_seed(system_dir: Path, name: str, entries: List[Any]) -> None:
    system_dir.mkdir(parents=True, exist_ok=True)
    (system_dir / f"{name}.json").write_text(json.dumps(entries), encoding="utf-8")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    home = tmp_path / "home"
    return Settings(user_dir=home, system_dir=tmp_path / "seeds", tle_dir=home / "tle")


@pytest.fixture
def seeds(settings: Settings) -> Path:
    settings.system_dir.mkdir(parents=True, exist_ok=True)
    return settings.system_dir


def open_config(settings: Settings) -> ConfigDB:
    return ConfigDB(ConfigStore(settings.db_path), settings.system_dir)


@pytest.fixture
def config_db(settings: Settings):
    db = open_config(settings)
    yield db
    db.close()


@pytest.fixture
def enumerator() -> StaticEnumerator:
    return StaticEnumerator(
        configs=[
            SourceConfig(label="Airband", frequency=127.85e6),
            SourceConfig(label=None, driver="hackrf"),
        ],
        devices=[
            Device(desc="Generic RTL2832U OEM", driver="rtlsdr", index=0, args={"serial": "00000001"}),
            Device(desc="HackRF One", driver="hackrf", index=1),
        ],
        remote=[
            (
                Device(desc="RTL-SDR", driver="rtlsdr", remote=True),
                SourceConfig(label="RTL-SDR @ 192.168.1.20", driver="remote", device_args={"remote": "192.168.1.20"}),
            ),
        ],
    )


@pytest.fixture
def registry(config_db: ConfigDB, enumerator: StaticEnumerator, settings: Settings):
    reg = Registry(config_db, enumerator, settings)
    yield reg


@pytest.fixture
def reopen(settings: Settings, enumerator: StaticEnumerator):
    """Build a fresh registry over the same user store, as a new process would."""
    opened: List[Registry] = []

    def _reopen() -> Registry:
        reg = Registry(open_config(settings), enumerator, settings)
        opened.append(reg)
        return reg

    yield _reopen
    for reg in opened:
        reg.config.close()


@pytest.fixture(autouse=True)
def _no_process_registry():
    yield
    registry_module._instance = None
