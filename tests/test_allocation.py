import json

from sdrcatalog.confdb.object import Object
from sdrcatalog.models.allocation import Band, FrequencyAllocationTable
from sdrcatalog.settings import DATA_DIR


def test_lookup_and_bands_in() -> None:
    table = FrequencyAllocationTable(
        "t",
        [
            Band(144_000_000, 146_000_000, "Amateur", "ITU-R1", "2 m"),
            Band(88_000_000, 108_000_000, "FM Broadcast", "Global", "88-108 MHz Radio"),
        ],
    )
    assert table.bands[0].service == "FM Broadcast"
    assert table.lookup(100_000_000) == ("FM Broadcast", "Global", "88-108 MHz Radio")
    assert table.lookup(50_000_000) == ("", "", "")
    assert [b.service for b in table.bands_in(100_000_000, 145_000_000)] == ["FM Broadcast", "Amateur"]


def test_object_form_round_trip_skips_bad_bands() -> None:
    table = FrequencyAllocationTable("t", [Band(1, 10, "S", "R", "N", "#fff")])
    obj = Object.from_json(table.to_object().to_json())
    bands = obj.get_field("bands")
    bands.append(Object.make_object(low_hz="oops", high_hz="5"))
    bands.append(Object.make_object(low_hz="20", high_hz="10"))
    back = FrequencyAllocationTable.from_object(obj)
    assert back.name == "t"
    assert back.bands == [Band(1, 10, "S", "R", "N", "#fff")]
    assert FrequencyAllocationTable.from_object(Object.make_object()) is None


def test_from_csv(tmp_path) -> None:
    path = tmp_path / "bandplan.csv"
    path.write_text(
        "low_hz,high_hz,service,region,notes\n"
        "433050000,434790000,ISM/SRD,ITU-R1 (EU),Short-range devices\n"
        "bad,row,x,y,z\n"
        "2400000000,2483500000,ISM,Global,2.4 GHz ISM\n",
        encoding="utf-8",
    )
    table = FrequencyAllocationTable.from_csv("csv", path)
    assert len(table.bands) == 2
    assert table.lookup(2_450_000_000)[0] == "ISM"


def test_packaged_seed_tables_parse() -> None:
    entries = json.loads((DATA_DIR / "frequency_allocations.json").read_text(encoding="utf-8"))
    tables = [FrequencyAllocationTable.from_object(Object.from_json(e)) for e in entries]
    assert all(t is not None and t.bands for t in tables)
    assert tables[0].lookup(137_500_000)[0] == "Meteorological satellite"
