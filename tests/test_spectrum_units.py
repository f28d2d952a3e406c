import math

import numpy as np
import pytest
from conftest import write_seed

from sdrcatalog.models.spectrum import SpectrumUnit, builtin_spectrum_units


def test_builtin_units_are_seeded_at_construction(registry) -> None:
    names = list(registry.spectrum_units)
    assert names == sorted(["dBFS", "dBK", "dBW/Hz", "dBm/Hz", "dBJy", "mag (AB)"])
    assert registry.get_spectrum_unit("dBK").zero_point == pytest.approx(-228.6)
    ab = registry.get_spectrum_unit("mag (AB)")
    assert ab.db_per_unit == -4.0
    assert ab.zero_point == pytest.approx(-2.5 * math.log10(3631.0))


def test_register_then_lookup_and_duplicate_fails(registry) -> None:
    assert registry.register_spectrum_unit("X", 2.0, -10.0)
    unit = registry.get_spectrum_unit("X")
    assert (unit.db_per_unit, unit.zero_point) == (2.0, -10.0)
    assert not registry.register_spectrum_unit("X", 5.0, 5.0)
    unit = registry.get_spectrum_unit("X")
    assert (unit.db_per_unit, unit.zero_point) == (2.0, -10.0)


def test_replace_overwrites_builtin_and_remove_is_noop_when_absent(registry) -> None:
    registry.replace_spectrum_unit("dBFS", 1.0, 3.0)
    assert registry.get_spectrum_unit("dBFS").zero_point == 3.0
    assert registry.get_spectrum_unit("dBFS").user
    registry.remove_spectrum_unit("nope")
    registry.remove_spectrum_unit("dBFS")
    assert registry.get_spectrum_unit("dBFS") is None


def test_spectrum_units_from_name(registry) -> None:
    names = [name for name, _ in registry.spectrum_units_from("dBW")]
    assert names[0] == "dBW/Hz"
    assert "dBFS" not in names


def test_conversions_accept_scalars_and_arrays() -> None:
    unit = SpectrumUnit("X", 2.0, -10.0)
    assert unit.to_db(5.0) == pytest.approx(0.0)
    assert isinstance(unit.to_db(5.0), float)
    assert unit.from_db(0.0) == pytest.approx(5.0)
    values = np.array([0.0, 5.0, 10.0])
    np.testing.assert_allclose(unit.to_db(values), [-10.0, 0.0, 10.0])
    np.testing.assert_allclose(unit.from_db(unit.to_db(values)), values)
    with pytest.raises(ZeroDivisionError):
        SpectrumUnit("flat", 0.0, 1.0).from_db(1.0)


def test_ab_magnitude_zero_point() -> None:
    units = {u.name: u for u in builtin_spectrum_units()}
    assert units["mag (AB)"].to_db(0.0) == pytest.approx(-8.9, abs=0.01)
    assert units["mag (AB)"].to_db(1.0) - units["mag (AB)"].to_db(0.0) == pytest.approx(-4.0)


def test_user_units_persist_and_replace_builtins(registry, reopen) -> None:
    registry.init_spectrum_units()
    registry.register_spectrum_unit("dBuV", 1.0, -107.0)
    registry.replace_spectrum_unit("dBm/Hz", 1.0, -31.0)
    registry.sync()
    stored = registry.config.context("spectrum_units").list_object()
    assert sorted(o.field_value("name") for o in stored) == ["dBm/Hz", "dBuV"]

    again = reopen()
    again.init_spectrum_units()
    assert again.get_spectrum_unit("dBuV").zero_point == -107.0
    assert again.get_spectrum_unit("dBm/Hz").zero_point == -31.0
    assert not again.get_spectrum_unit("dBFS").user


def test_malformed_stored_units_are_skipped(registry, seeds) -> None:
    write_seed(seeds, "spectrum_units", [{"name": "ok", "db_per_unit": "1", "zero_point": "2"}, {"name": "bad", "db_per_unit": "x"}])
    registry.init_spectrum_units()
    assert registry.get_spectrum_unit("ok") is not None
    assert registry.get_spectrum_unit("bad") is None


def test_unit_registered_before_load_survives_sync(registry, reopen) -> None:
    assert registry.register_spectrum_unit("dBuV", 1.0, -107.0)
    registry.sync()
    again = reopen()
    again.init_spectrum_units()
    assert again.get_spectrum_unit("dBuV").zero_point == -107.0


def test_replace_before_load_is_not_overwritten_by_stored_value(registry, reopen) -> None:
    registry.replace_spectrum_unit("dBm/Hz", 1.0, -31.0)
    registry.sync()

    again = reopen()
    again.replace_spectrum_unit("dBm/Hz", 1.0, -40.0)
    again.init_spectrum_units()
    assert again.get_spectrum_unit("dBm/Hz").zero_point == -40.0
    again.remove_spectrum_unit("dBm/Hz")
    again.sync()
    third = reopen()
    third.init_spectrum_units()
    assert third.get_spectrum_unit("dBm/Hz").zero_point == -30.0
    assert not third.get_spectrum_unit("dBm/Hz").user
