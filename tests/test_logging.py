from __future__ import annotations

import json
import logging

import pytest

from canlog.logging import (
    TRACE_LEVEL,
    JsonFormatter,
    PrettyFormatter,
    get_source,
    parse_log_level,
    setup_logging,
    source_context,
)


def _record(msg: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("canlog.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_source_context_nests_and_resets():
    assert get_source() is None
    with source_context("a.trc"):
        assert get_source() == "a.trc"
        with source_context("b.log"):
            assert get_source() == "b.log"
        assert get_source() == "a.trc"
    assert get_source() is None


def test_json_formatter_includes_extras():
    line = JsonFormatter().format(_record("Log parsed", frame_count=4, source="a.trc"))
    payload = json.loads(line)
    assert payload["msg"] == "Log parsed"
    assert payload["level"] == "info"
    assert payload["frame_count"] == 4
    assert payload["source"] == "a.trc"


def test_pretty_formatter_puts_source_first():
    line = PrettyFormatter(use_color=False).format(_record("Log parsed", path="x", source="a.trc"))
    assert line.endswith("INFO canlog.test Log parsed source=a.trc path=x")


def test_parse_log_level():
    assert parse_log_level(None) == logging.INFO
    assert parse_log_level("TRACE") == TRACE_LEVEL
    with pytest.raises(ValueError):
        parse_log_level("loud")


def test_setup_logging_quiets_python_can_and_stamps_source(capsys: pytest.CaptureFixture[str]):
    setup_logging(level=logging.INFO, log_format="json")
    assert logging.getLogger("can").level == logging.WARNING

    with source_context("bus.log"):
        logging.getLogger("canlog.test").info("Hello", extra={"n": 1})
    payload = json.loads(capsys.readouterr().err.strip())
    assert payload["source"] == "bus.log"
    assert payload["n"] == 1

    setup_logging(level=TRACE_LEVEL)
    assert logging.getLogger("can").level == logging.DEBUG
