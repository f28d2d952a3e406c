import json

import pytest
from conftest import ISS_TLE, NOAA_TLE

from sdrcatalog import registry as registry_module
from sdrcatalog.cli import main
from sdrcatalog.util.exit_codes import ExitCode


@pytest.fixture
def run(tmp_path, monkeypatch, capsys):
    for var in ("SDRCATALOG_HOME", "SDRCATALOG_DB", "SDRCATALOG_TLE_DIR", "SDRCATALOG_SYSTEM_DIR", "SDRCATALOG_TOKEN"):
        monkeypatch.delenv(var, raising=False)
    home = tmp_path / "home"

    def _run(*argv):
        capsys.readouterr()
        code = main(["--home", str(home), "--log-level", "ERROR", "--no-color", *argv])
        return code, capsys.readouterr().out

    return _run


def test_units_lists_builtins_as_json(run) -> None:
    code, out = run("units", "--json")
    assert code == ExitCode.SUCCESS
    assert "mag (AB)" in [u["name"] for u in json.loads(out)]
    assert registry_module._instance is None


def test_bookmarks_persist_between_invocations(run) -> None:
    assert run("bookmark-add", "145.8e6", "ISS", "--color", "#f00")[0] == ExitCode.SUCCESS
    assert run("bookmark-add", "145.8e6", "Other")[0] == ExitCode.GENERAL_ERROR
    code, out = run("bookmarks", "--json")
    assert code == ExitCode.SUCCESS
    rows = json.loads(out)
    assert rows == [dict(rows[0], name="ISS", frequency=145800000, color="#ff0000", entry=0)]
    assert run("bookmark-rm", "145800000")[0] == ExitCode.SUCCESS
    assert run("bookmark-rm", "145800000")[0] == ExitCode.NOT_FOUND
    assert json.loads(run("bookmarks", "--json")[1]) == []


def test_packaged_seeds_and_user_tle_sources(run) -> None:
    code, out = run("locations", "--json")
    assert code == ExitCode.SUCCESS
    assert "Madrid" in [loc["name"] for loc in json.loads(out)]
    assert run("tle-source-add", "Mine", "https://example.org/mine.txt")[0] == ExitCode.SUCCESS
    assert run("tle-source-rm", "Weather")[0] == ExitCode.GENERAL_ERROR
    assert run("tle-source-rm", "Nope")[0] == ExitCode.NOT_FOUND
    sources = {s["name"]: s for s in json.loads(run("tle-sources", "--json")[1])}
    assert sources["Mine"]["user"] is True
    assert sources["Weather"]["user"] is False


def test_tle_add_and_satellites(run, tmp_path) -> None:
    path = tmp_path / "bundle.txt"
    path.write_text(ISS_TLE + NOAA_TLE, encoding="utf-8")
    code, out = run("tle-add", str(path))
    assert code == ExitCode.SUCCESS
    assert "registered 2/2" in out
    names = [s["name"] for s in json.loads(run("satellites", "--json")[1])]
    assert names == ["ISS (ZARYA)", "NOAA 19"]
    assert run("tle-add", str(tmp_path / "missing.txt"))[0] == ExitCode.INVALID_ARGS


def test_qth_recent_and_units(run) -> None:
    assert run("qth")[0] == ExitCode.NOT_FOUND
    assert run("qth", "--name", "Home")[0] == ExitCode.INVALID_ARGS
    assert run("qth", "--name", "Home", "--lat", "40.4", "--lon", "-3.7", "--height", "650")[0] == ExitCode.SUCCESS
    assert json.loads(run("qth", "--json")[1])["height_m"] == 650.0

    run("recent", "--add", "a")
    run("recent", "--add", "b")
    assert json.loads(run("recent", "--json")[1]) == ["b", "a"]

    assert run("unit-add", "dBuV", "1", "-107")[0] == ExitCode.SUCCESS
    assert run("unit-add", "dBuV", "1", "-100")[0] == ExitCode.GENERAL_ERROR
    assert run("unit-add", "dBuV", "1", "-100", "--replace")[0] == ExitCode.SUCCESS
    units = {u["name"]: u for u in json.loads(run("units", "--json")[1])}
    assert units["dBuV"]["zero_point"] == -100.0


def test_invalid_arguments(run) -> None:
    assert run("no-such-command")[0] == ExitCode.INVALID_ARGS
    assert run("sync")[0] == ExitCode.SUCCESS


def test_exit_code_messages() -> None:
    assert ExitCode.message(ExitCode.NOT_FOUND) == "no such entry"
    assert ExitCode.message(42) == "exit status 42"
