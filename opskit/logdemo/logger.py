"""A small leveled, structured logger with console and JSON output."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Any

ERROR_FIELD = "error"

_RESET = "\033[0m"
_COLORS = {
    "TRACE": "\033[90m",
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARN": "\033[33m",
    "ERROR": "\033[31m",
}
_SHORT = {"TRACE": "TRC", "DEBUG": "DBG", "INFO": "INF", "WARN": "WRN", "ERROR": "ERR",
          "FATAL": "FTL", "PANIC": "PNC"}


class Level(IntEnum):
    """Severity of a log event; higher is more severe."""

    TRACE = -1
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    FATAL = 4
    PANIC = 5
    DISABLED = 7

    @property
    def label(self) -> str:
        return self.name.lower()


def parse_level(text: str) -> Level:
    """Turn a level name (any case) or its number into a Level."""
    try:
        return Level[text.strip().upper()]
    except KeyError:
        pass
    try:
        return Level(int(text))
    except ValueError:
        raise ValueError(f"Unknown Level String: '{text}'") from None


def format_level(level: Level, colored: bool = False) -> str:
    """Render a level for console output, optionally with ANSI colours."""
    name = level.name
    if not colored:
        return _SHORT.get(name, level.label)
    color = _COLORS.get(name)
    return f"{color}{name:<5}{_RESET}" if color else f"{level.label:<5}"


def _rfc3339(moment: datetime) -> str:
    stamp = (moment if moment.tzinfo else moment.astimezone()).isoformat(timespec="seconds")
    return stamp[:-6] + "Z" if stamp.endswith("+00:00") else stamp


def _convert(value: Any) -> Any:
    if isinstance(value, datetime):
        return _rfc3339(value)
    if isinstance(value, timedelta):
        millis = value / timedelta(milliseconds=1)
        return int(millis) if millis.is_integer() else millis
    if isinstance(value, BaseException):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_convert(item) for item in value]
    return value


class Logger:
    """Emits events at or above its level to a sink, with bound context fields."""

    def __init__(
        self,
        sink: Callable[[datetime, Level, str, dict[str, Any]], None],
        level: Level = Level.INFO,
        fields: Mapping[str, Any] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.sink = sink
        self.level = Level(level)
        self.fields = {key: _convert(value) for key, value in (fields or {}).items()}
        self.clock = clock or (lambda: datetime.now().astimezone())

    def bind(self, **kwargs: Any) -> Logger:
        """Return a child logger that adds these fields to every event."""
        return Logger(self.sink, self.level, {**self.fields, **kwargs}, self.clock)

    def log(self, level: Level, message: str, **kwargs: Any) -> None:
        level = Level(level)
        if Level.DISABLED in (self.level, level) or level < self.level:
            return
        fields = {**self.fields, **{key: _convert(value) for key, value in kwargs.items()}}
        self.sink(self.clock(), level, message, fields)

    def trace(self, message: str, **kwargs: Any) -> None:
        self.log(Level.TRACE, message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log(Level.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log(Level.INFO, message, **kwargs)

    def warn(self, message: str, **kwargs: Any) -> None:
        self.log(Level.WARN, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log(Level.ERROR, message, **kwargs)


def _console_value(value: Any) -> str:
    if isinstance(value, str):
        plain = value and all(" " < ch <= "~" and ch not in '\\"' for ch in value)
        return value if plain else json.dumps(value, ensure_ascii=False)
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


class ConsoleFormatter:
    """Human-readable lines: time, level, message, then sorted key=value fields."""

    def __init__(self, time_format: str = "%H:%M:%S", colored: bool = False) -> None:
        self.time_format = time_format
        self.colored = colored

    def format(self, timestamp: datetime, level: Level, message: str, fields: Mapping[str, Any]) -> str:
        parts = [timestamp.strftime(self.time_format), format_level(level, self.colored)]
        if message:
            parts.append(message)
        names = sorted(fields, key=lambda name: (name != ERROR_FIELD, name))
        parts.extend(f"{name}={_console_value(fields[name])}" for name in names)
        return " ".join(parts)


class JsonFormatter:
    """One compact JSON object per event."""

    def format(self, timestamp: datetime, level: Level, message: str, fields: Mapping[str, Any]) -> str:
        document: dict[str, Any] = {"level": level.label, **fields, "time": _rfc3339(timestamp)}
        if message:
            document["message"] = message
        return json.dumps(document, ensure_ascii=False, separators=(",", ":"))