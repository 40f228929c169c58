import json
import logging
from datetime import datetime

import pytest

from gpuid.logger import (
    JsonFormatter,
    LoggerConfig,
    first_non_empty,
    new_production_logger,
    parse_level,
    set_default,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("debug", logging.DEBUG),
        ("DEBUG", logging.DEBUG),
        (" info ", logging.INFO),
        ("", logging.INFO),
        ("warn", logging.WARNING),
        ("warning", logging.WARNING),
        ("error", logging.ERROR),
        ("bogus", logging.INFO),
    ],
)
def test_parse_level(value, expected):
    assert parse_level(value) == expected


def test_first_non_empty_picks_first_non_blank():
    assert first_non_empty("", "   ", "x", "y") == "x"


def test_first_non_empty_keeps_value_untrimmed():
    assert first_non_empty(" a ") == " a "


def test_first_non_empty_all_blank():
    assert first_non_empty("", "  ") == ""
    assert first_non_empty() == ""


def _record(level=logging.INFO, msg="hi %s", args=("there",)):
    return logging.LogRecord("t", level, "/x.py", 7, msg, args, None)


def test_formatter_basic_fields():
    out = json.loads(JsonFormatter(base={"service": "svc"}).format(_record()))
    assert out["msg"] == "hi there"
    assert out["level"] == "INFO"
    assert out["service"] == "svc"
    assert "source" not in out
    assert datetime.fromisoformat(out["time"]).tzinfo is not None


def test_formatter_warning_name():
    out = json.loads(JsonFormatter().format(_record(level=logging.WARNING)))
    assert out["level"] == "WARN"


def test_formatter_source():
    out = json.loads(JsonFormatter(add_source=True).format(_record()))
    assert out["source"]["line"] == 7
    assert out["source"]["file"] == "/x.py"


def test_formatter_extra_attributes():
    record = _record()
    record.pod = "p1"
    out = json.loads(JsonFormatter().format(record))
    assert out["pod"] == "p1"


def test_production_logger_writes_json_to_stderr(capsys, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    logger = new_production_logger(
        LoggerConfig(service="gpuid", version="1.0", env="dev", level="debug")
    )
    logger.debug("hello", extra={"pod": "p1"})
    line = capsys.readouterr().err.strip().splitlines()[-1]
    out = json.loads(line)
    assert out["msg"] == "hello"
    assert out["service"] == "gpuid"
    assert out["version"] == "1.0"
    assert out["env"] == "dev"
    assert out["pod"] == "p1"


def test_production_logger_filters_below_level(capsys, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    logger = new_production_logger(LoggerConfig(level="warn"))
    logger.info("quiet")
    assert capsys.readouterr().err == ""


def test_level_from_environment(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "error")
    assert new_production_logger(LoggerConfig()).level == logging.ERROR


def test_config_level_overrides_environment(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "error")
    assert new_production_logger(LoggerConfig(level="debug")).level == logging.DEBUG


def test_default_level_is_info(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    assert new_production_logger().level == logging.INFO


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_set_default_configures_root(restore_root, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    logger = set_default(LoggerConfig(level="debug"))
    assert restore_root.level == logging.DEBUG
    assert restore_root.handlers == logger.handlers
    assert isinstance(restore_root.handlers[0].formatter, JsonFormatter)