import pytest
from conftest import write_seed

from sdrcatalog import registry as registry_module
from sdrcatalog.confdb.object import Object
from sdrcatalog.errors import FatalInitError
from sdrcatalog.models.source import NULL_PROFILE_LABEL, SourceConfig
from sdrcatalog.registry import Registry, get_instance, release_instance


class CountingInit:
    def __init__(self, result=True, exc=None):
        self.calls = 0
        self.result = result
        self.exc = exc

    def __call__(self) -> bool:
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return self.result


class FakeTaskController:
    def __init__(self):
        self.stopped = False

    def shutdown(self) -> None:
        self.stopped = True


# ---------- singleton ----------

def test_get_instance_returns_same_registry_until_released(settings) -> None:
    first = get_instance(settings)
    assert get_instance() is first
    release_instance()
    assert registry_module._instance is None
    second = get_instance(settings)
    assert second is not first
    release_instance()


def test_get_instance_wraps_store_failure(settings, tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    settings.user_dir = blocker / "home"
    settings.db_path = settings.user_dir / "config.db"
    with pytest.raises(FatalInitError):
        get_instance(settings)
    assert registry_module._instance is None


# ---------- subsystem init ----------

def test_each_subsystem_initializer_runs_once(config_db, enumerator, settings) -> None:
    inits = {name: CountingInit() for name in registry_module.SUBSYSTEMS}
    reg = Registry(config_db, enumerator, settings, initializers=inits)
    for _ in range(3):
        reg.init_sources()
        reg.init_estimators()
        reg.init_spectrum_sources()
        reg.init_inspectors()
    assert all(init.calls == 1 for init in inits.values())
    assert all(reg.is_initialized(name) for name in registry_module.SUBSYSTEMS)
    assert len(reg.devices) == 2


@pytest.mark.parametrize("init", [CountingInit(result=False), CountingInit(exc=RuntimeError("no driver"))])
def test_failing_initializer_is_fatal_and_not_retried(config_db, enumerator, settings, init) -> None:
    reg = Registry(config_db, enumerator, settings, initializers={"estimators": init})
    with pytest.raises(FatalInitError):
        reg.init_estimators()
    with pytest.raises(FatalInitError):
        reg.init_estimators()
    assert init.calls == 1
    assert not reg.is_initialized("estimators")


def test_init_sources_walks_profiles_and_devices(registry) -> None:
    registry.init_sources()
    assert list(registry.profiles) == sorted(["Airband", NULL_PROFILE_LABEL])
    assert registry.get_profile("Airband").frequency == 127.85e6
    assert registry.get_profile("missing") is None
    assert registry.get_device_at(1).desc == "HackRF One"
    assert registry.get_device_at(2) is None


def test_startup_loads_every_collection_once(registry, seeds) -> None:
    write_seed(seeds, "palettes", [{"name": "Suscan"}])
    registry.startup()
    registry.startup()
    assert len(registry.palettes) == 1
    for name in ("palettes", "autogains", "fats", "bookmarks", "locations", "tle_sources", "tle", "uiconfig", "recent", "spectrum_units"):
        assert registry.is_loaded(name)


# ---------- discovery refresh ----------

def test_refresh_devices_replaces_previous_contents(registry, enumerator) -> None:
    registry.init_sources()
    registry.refresh_devices()
    assert len(registry.devices) == 2
    enumerator.devices.pop()
    registry.detect_devices()
    assert enumerator.detect_calls == 1
    assert [d.desc for d in registry.devices] == ["Generic RTL2832U OEM"]


def test_refresh_network_profiles_clones_configs(registry, enumerator) -> None:
    registry.refresh_network_profiles()
    registry.refresh_network_profiles()
    assert list(registry.network_profiles) == ["RTL-SDR @ 192.168.1.20"]
    stored = registry.get_network_profile("RTL-SDR @ 192.168.1.20")
    assert stored is not enumerator.remote[0][1]
    assert stored == enumerator.remote[0][1]


def test_save_profile_updates_memory_and_sources_context(registry) -> None:
    profile = SourceConfig(label="Mine", frequency=433.92e6)
    registry.save_profile(profile)
    profile.frequency = 1.0
    assert registry.get_profile("Mine").frequency == 433.92e6
    registry.save_profile(SourceConfig(label="Mine", frequency=868e6))
    stored = registry.config.context("sources").list_object()
    assert len(stored) == 1
    assert stored[0].get("frequency", 0.0) == 868e6


# ---------- dedup-only catalogs ----------

def test_palettes_autogains_and_fats_drop_duplicate_names(registry, seeds) -> None:
    write_seed(seeds, "palettes", [{"name": "A", "v": "1"}, {"name": "B"}, {"name": "A", "v": "2"}, {"nameless": "x"}])
    write_seed(seeds, "autogains", [{"name": "g"}, {"name": "g"}])
    write_seed(
        seeds,
        "frequency_allocations",
        [{"name": "T", "bands": [{"low_hz": "1", "high_hz": "10", "service": "S"}]}, {"name": "T", "bands": []}],
    )
    registry.init_palettes()
    registry.init_autogains()
    registry.init_fats()
    assert [p.field_value("name") for p in registry.palettes] == ["A", "B"]
    assert registry.palettes[0].field_value("v") == "1"
    assert len(registry.autogains) == 1
    assert len(registry.fats) == 1
    assert registry.get_fat("T").lookup(5) == ("S", "", "")
    assert registry.get_fat("missing") is None
    registry.sync()
    assert not registry.config.store.has_context("palettes")


# ---------- recent list ----------

def test_notify_recent_moves_to_front_without_duplicates(registry) -> None:
    assert not registry.notify_recent("a")
    registry.notify_recent("b")
    assert registry.notify_recent("a")
    assert registry.recent == ["a", "b"]
    assert registry.remove_recent("b")
    assert not registry.remove_recent("b")
    registry.clear_recent()
    assert registry.recent == []


def test_recent_list_is_bounded(registry, settings) -> None:
    settings.recent_limit = 3
    for name in "abcde":
        registry.notify_recent(name)
    assert registry.recent == ["e", "d", "c"]


def test_recent_list_persists_fields_only(registry, seeds, reopen) -> None:
    write_seed(seeds, "recent", ["x", {"not": "a field"}, "y"])
    registry.init_recent_list()
    assert registry.recent == ["x", "y"]
    registry.notify_recent("z")
    registry.sync()
    again = reopen()
    again.init_recent_list()
    assert again.recent == ["z", "x", "y"]


def test_sync_skips_collections_never_loaded(registry, seeds) -> None:
    write_seed(seeds, "recent", ["x"])
    registry.sync()
    assert not registry.config.store.has_context("recent")


# ---------- UI config ----------

def test_ui_sync_rewrites_only_modified_entries(registry, seeds) -> None:
    write_seed(seeds, "uiconfig", [{"name": "main", "w": "800"}, {"name": "fft", "size": "4096"}])
    registry.init_ui_config()
    assert all(obj.is_borrowed for obj in registry.ui_config)
    stored = registry.config.context("uiconfig").list_object()
    original_first = stored[0]

    registry.put_ui_config(1, Object.make_object(name="fft", size="8192"))
    registry.put_ui_config(3, Object.make_object(name="waterfall"))
    assert len(registry.ui_config) == 4
    registry.sync_ui()

    assert stored[0] is original_first
    assert stored[1].field_value("size") == "8192"
    assert stored[3].field_value("name") == "waterfall"
    assert len(stored) == 4
    assert all(obj.is_borrowed for obj in registry.ui_config)

    registry.sync_ui()
    assert len(stored) == 4


def test_put_ui_config_copies_borrowed_objects(registry) -> None:
    holder = Object.make_set([Object.make_object(name="shared")])
    registry.put_ui_config(0, holder[0])
    assert registry.get_ui_config(0) is not holder[0]
    assert not registry.get_ui_config(0).is_borrowed
    assert registry.get_ui_config(5) is None


# ---------- lifecycle ----------

def test_close_syncs_and_stops_task_controller(config_db, enumerator, settings, reopen) -> None:
    controller = FakeTaskController()
    reg = Registry(config_db, enumerator, settings, task_controller=controller)
    reg.notify_recent("profile-1")
    reg.close()
    assert controller.stopped
    again = reopen()
    again.init_recent_list()
    assert again.recent == ["profile-1"]


def test_versions_reports_package_and_numpy(registry) -> None:
    versions = registry.versions()
    assert versions["sdrcatalog"]
    assert versions["numpy"]
