"""Handlers to read and change a process log level at runtime.

Levels are integers on a scale where debug is -4, info 0, warn 4 and error 8;
values in between are allowed and are named by the range they fall in.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Optional

from zkit.http import Handler, Request, Response
from zkit.ops.common import Format, _respond, format_from_request

DEBUG = -4
INFO = 0
WARN = 4
ERROR = 8

_LEVELS = {"debug": DEBUG, "info": INFO, "warn": WARN, "error": ERROR}
_ALIASES = {"warning": "warn", "err": "error"}
_INVALID_LEVEL = "invalid level (want one of: debug, info, warn, error)"


class LevelVar:
    """A thread-safe, mutable log level; starts at info."""

    def __init__(self, level: int = INFO) -> None:
        self._lock = threading.Lock()
        self._level = int(level)

    @property
    def level(self) -> int:
        """The current numeric level."""
        with self._lock:
            return self._level

    @level.setter
    def level(self, value: int) -> None:
        with self._lock:
            self._level = int(value)


@dataclass(frozen=True)
class LogLevelSnapshot:
    """A point-in-time view of a level: its bucket name and raw value."""

    level: str = ""
    level_value: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form."""
        return {"level": self.level, "level_value": self.level_value}


def level_name(level: int) -> str:
    """Name the range ``level`` falls in: debug, info, warn or error."""
    if level < INFO:
        return "debug"
    if level < WARN:
        return "info"
    if level < ERROR:
        return "warn"
    return "error"


def normalize_level(value: str) -> str:
    """Return the canonical level name for ``value``.

    Case and surrounding whitespace are ignored; "warning" and "err" are
    accepted as aliases. Raises ValueError for anything else.
    """
    name = value.strip().lower()
    name = _ALIASES.get(name, name)
    if name not in _LEVELS:
        raise ValueError(_INVALID_LEVEL)
    return name


def log_level(level_var: Optional[LevelVar]) -> LogLevelSnapshot:
    """Snapshot ``level_var``; an empty snapshot when it is None."""
    if level_var is None:
        return LogLevelSnapshot()
    value = level_var.level
    return LogLevelSnapshot(level=level_name(value), level_value=value)


def _get_text(snapshot: LogLevelSnapshot) -> str:
    return f"log\tlevel\t{snapshot.level}\nlog\tlevel_value\t{snapshot.level_value}\n"


def _set_text(old: Optional[LogLevelSnapshot], new: LogLevelSnapshot) -> str:
    out = ""
    if old is not None and old.level:
        out += f"log\told_level\t{old.level}\nlog\told_level_value\t{old.level_value}\n"
    out += f"log\tnew_level\t{new.level}\nlog\tnew_level_value\t{new.level_value}\n"
    return out


def _error_text(error: str) -> str:
    return f"{error}\n" if error else "error\n"


def _require(level_var: Optional[LevelVar]) -> LevelVar:
    if level_var is None:
        raise TypeError("level_var must not be None")
    return level_var


def log_level_get_handler(level_var: LevelVar, default_format: Format = Format.TEXT) -> Handler:
    """Return a handler that reports the current level (GET/HEAD only)."""
    level_var = _require(level_var)

    def handler(request: Request) -> Response:
        fmt = format_from_request(request, default_format)
        if request.method not in ("GET", "HEAD"):
            error = "method not allowed"
            return _respond(
                request, fmt, 405, {"ok": False, "error": error}, _error_text(error), allow="GET, HEAD"
            )
        snapshot = log_level(level_var)
        payload = {"ok": True, "log": snapshot.to_dict()}
        text = _get_text(snapshot) if snapshot.level else "error\n"
        return _respond(request, fmt, 200, payload, text)

    return handler


def log_level_set_handler(level_var: LevelVar, default_format: Format = Format.TEXT) -> Handler:
    """Return a handler that sets the level from ``?level=`` (POST only)."""
    level_var = _require(level_var)

    def handler(request: Request) -> Response:
        fmt = format_from_request(request, default_format)
        if request.method != "POST":
            error = "method not allowed"
            return _respond(
                request,
                fmt,
                405,
                {"ok": False, "error": error},
                _error_text(error),
                allow="POST",
                body_on_head=True,
            )
        try:
            name = normalize_level(request.query_value("level"))
        except ValueError as exc:
            error = str(exc)
            return _respond(
                request, fmt, 400, {"ok": False, "error": error}, _error_text(error), body_on_head=True
            )
        old = log_level(level_var)
        level_var.level = _LEVELS[name]
        new = log_level(level_var)
        payload = {"ok": True, "old": old.to_dict(), "new": new.to_dict()}
        text = _set_text(old, new) if new.level else "error\n"
        return _respond(request, fmt, 200, payload, text, body_on_head=True)

    return handler