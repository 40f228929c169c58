"""Structured JSON logging for the service."""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
}

# Attributes every LogRecord carries; anything else was passed through ``extra``.
_RESERVED = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


@dataclass
class LoggerConfig:
    """Optional settings for the production logger."""

    service: str = ""
    version: str = ""
    env: str = ""
    level: str = ""
    add_source: bool = False


def parse_level(value):
    """Map a level name to a logging level; unknown names give INFO."""
    return _LEVELS.get((value or "").strip().lower(), logging.INFO)


def first_non_empty(*args):
    """Return the first argument that is not blank, or an empty string."""
    for value in args:
        if value and value.strip():
            return value
    return ""


class JsonFormatter(logging.Formatter):
    """Formats each record as one JSON object per line."""

    def __init__(self, base=None, add_source=False):
        super().__init__()
        self.base = dict(base or {})
        self.add_source = add_source

    def format(self, record):
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).astimezone()
        payload = {
            "time": timestamp.isoformat(),
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname),
        }
        if self.add_source:
            payload["source"] = {
                "function": record.funcName,
                "file": record.pathname,
                "line": record.lineno,
            }
        payload["msg"] = record.getMessage()
        payload.update(self.base)
        for key, value in vars(record).items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def new_production_logger(config=None):
    """Return a JSON logger writing to stderr.

    The level comes from the config, then ``$LOG_LEVEL``, then INFO.
    """
    config = config or LoggerConfig()
    level = parse_level(
        first_non_empty(config.level, os.environ.get("LOG_LEVEL", ""), "info")
    )

    base = {}
    if config.service:
        base["service"] = config.service
    if config.version:
        base["version"] = config.version
    if config.env:
        base["env"] = config.env

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter(base=base, add_source=config.add_source))

    logger = logging.Logger(config.service or "gpuid", level)
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def set_default(config=None):
    """Install a production logger's output on the root logger and return it."""
    logger = new_production_logger(config)
    root = logging.getLogger()
    root.handlers[:] = list(logger.handlers)
    root.setLevel(logger.level)
    return logger