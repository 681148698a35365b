import json
from datetime import datetime, timedelta, timezone

import pytest

from opskit.logdemo.logger import (
    ConsoleFormatter,
    JsonFormatter,
    Level,
    Logger,
    format_level,
    parse_level,
)

FIXED = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def make(level=Level.INFO, fields=None):
    records = []
    logger = Logger(lambda *record: records.append(record), level, fields, lambda: FIXED)
    return logger, records


def test_parse_level_accepts_names_in_any_case():
    assert parse_level("WARN") is Level.WARN
    assert parse_level("trace") is Level.TRACE
    assert parse_level("Error") is Level.ERROR


def test_parse_level_rejects_unknown_names():
    with pytest.raises(ValueError):
        parse_level("verbose")


def test_events_below_level_are_dropped():
    logger, records = make(Level.WARN)
    logger.trace("t")
    logger.debug("d")
    logger.info("i")
    logger.warn("w")
    logger.error("e")
    assert [record[1] for record in records] == [Level.WARN, Level.ERROR]
    assert [record[2] for record in records] == ["w", "e"]


def test_disabled_level_suppresses_everything():
    logger, records = make(Level.DISABLED)
    logger.error("e")
    logger.log(Level.PANIC, "p")
    assert records == []


def test_bind_adds_fields_without_changing_parent():
    parent, records = make(fields={"a": 1})
    child = parent.bind(b=2)
    child.info("m", c=3)
    parent.info("p")
    assert records[0][3] == {"a": 1, "b": 2, "c": 3}
    assert records[1][3] == {"a": 1}
    assert child.level is parent.level


def test_values_are_converted_to_plain_data():
    logger, records = make()
    logger.info(
        "x",
        took=timedelta(milliseconds=150),
        error=ConnectionError("connection timeout"),
        at=FIXED,
        params=(123,),
    )
    fields = records[0][3]
    assert fields["took"] == 150
    assert fields["error"] == "connection timeout"
    assert fields["at"] == "2024-01-02T03:04:05Z"
    assert fields["params"] == [123]
    assert records[0][0] == FIXED


def test_json_formatter_round_trip_and_order():
    line = JsonFormatter().format(FIXED, Level.INFO, "hello", {"app": "zerolog-demo"})
    document = json.loads(line)
    assert list(document) == ["level", "app", "time", "message"]
    assert document["level"] == "info"
    assert document["app"] == "zerolog-demo"
    assert document["message"] == "hello"
    assert document["time"] == "2024-01-02T03:04:05Z"


def test_json_formatter_omits_empty_message():
    document = json.loads(JsonFormatter().format(FIXED, Level.WARN, "", {}))
    assert "message" not in document
    assert document["level"] == "warn"


def test_console_formatter_sorts_fields_with_error_first():
    line = ConsoleFormatter().format(FIXED, Level.INFO, "hello", {"b": 1, "a": "x y", "error": "boom"})
    assert line == '03:04:05 INF hello error=boom a="x y" b=1'


def test_console_formatter_renders_lists_and_booleans_as_json():
    line = ConsoleFormatter().format(FIXED, Level.INFO, "m", {"roles": ["user", "admin"], "hit": False})
    assert line.endswith('hit=false roles=["user","admin"]')


def test_format_level_colors_match_the_demo_palette():
    assert format_level(Level.ERROR, True) == "\033[31mERROR\033[0m"
    assert format_level(Level.INFO, True) == "\033[32mINFO \033[0m"
    assert format_level(Level.TRACE, True) == "\033[90mTRACE\033[0m"


def test_colored_console_output_uses_colored_level():
    line = ConsoleFormatter(colored=True).format(FIXED, Level.WARN, "careful", {})
    assert "\033[33mWARN \033[0m" in line
    assert line.endswith("careful")