import json
import logging

from sdrcatalog.util.logging import ConsoleFormatter, configure_logging, context_logger, get_logger


def test_json_sink_carries_catalog_fields(tmp_path) -> None:
    sink = tmp_path / "catalog.jsonl"
    configure_logging(level="DEBUG", json_file=str(sink), use_color=False)
    try:
        log = context_logger(get_logger("tests.logging"), "bookmarks", scope="user")
        log.warning("Dropping malformed bookmark", extra={"entry": 4})
    finally:
        for handler in logging.getLogger("sdrcatalog").handlers:
            handler.flush()
        configure_logging(level="ERROR", use_color=False)

    record = json.loads(sink.read_text(encoding="utf-8").splitlines()[-1])
    assert record["logger"] == "sdrcatalog.tests.logging"
    assert record["context"] == "bookmarks"
    assert record["scope"] == "user"
    assert record["entry"] == 4
    assert "count" not in record


def test_console_tag_shows_context_scope_and_entry() -> None:
    record = logging.LogRecord("sdrcatalog.loaders", logging.DEBUG, __file__, 1, "Dropping location", None, None)
    record.context = "locations"
    record.scope = "system"
    record.entry = 0
    line = ConsoleFormatter(use_color=False).format(record)
    assert line.endswith("[loaders] Dropping location {locations/system#0}")
