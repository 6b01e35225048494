"""Levelled diagnostic lines for the watcher, rendered with rich.

Level comes from ``--log-level`` or ``GIT_EFFECTS_LOG_LEVEL`` (default
``info``). Warnings and errors go to stderr, everything else to stdout.
"""

from __future__ import annotations

import os
import sys
from enum import IntEnum

from rich.console import Console
from rich.text import Text

LEVEL_ENV = "GIT_EFFECTS_LOG_LEVEL"


class LogLevel(IntEnum):
    TRACE = 10
    DEBUG = 20
    INFO = 30
    WARNING = 40
    ERROR = 50


_ALIASES = {"warn": LogLevel.WARNING}
_STYLES = {
    LogLevel.TRACE: "dim",
    LogLevel.DEBUG: "cyan",
    LogLevel.WARNING: "yellow",
    LogLevel.ERROR: "bold red",
}
_DEFAULT_LEVEL = LogLevel.INFO
_configured_level: LogLevel | None = None
_no_color: bool | None = None


def _normalize_level(value: str | None) -> LogLevel:
    """Map a level name to ``LogLevel``; unknown or blank names mean ``info``.

    Example:
        >>> _normalize_level(" Warn "), _normalize_level("loud")
        (<LogLevel.WARNING: 40>, <LogLevel.INFO: 30>)
    """
    name = (value or "").strip().lower()
    if name in _ALIASES:
        return _ALIASES[name]
    try:
        return LogLevel[name.upper()]
    except KeyError:
        return _DEFAULT_LEVEL


def configured_level() -> LogLevel:
    global _configured_level
    if _configured_level is None:
        _configured_level = _normalize_level(os.environ.get(LEVEL_ENV))
    return _configured_level


def set_level(value: str | None) -> None:
    global _configured_level
    _configured_level = _normalize_level(value)


def set_no_color(value: bool) -> None:
    """Force colour off (``True``) or defer to ``NO_COLOR`` (``False``)."""
    global _no_color
    _no_color = True if value else None


def _color_disabled() -> bool:
    if _no_color is not None:
        return _no_color
    return bool(os.environ.get("NO_COLOR") or os.environ.get("GIT_EFFECTS_NO_COLOR"))


def is_enabled(level: LogLevel) -> bool:
    return level >= configured_level()


def emit(level: LogLevel, message: str) -> None:
    if not is_enabled(level):
        return
    console = Console(
        file=sys.stderr if level >= LogLevel.WARNING else sys.stdout,
        soft_wrap=True,
        highlight=False,
        no_color=_color_disabled(),
    )
    console.print(Text(message, style=_STYLES.get(level, "")))


def trace(message: str) -> None:
    emit(LogLevel.TRACE, message)


def debug(message: str) -> None:
    emit(LogLevel.DEBUG, message)


def info(message: str) -> None:
    emit(LogLevel.INFO, message)


def warning(message: str) -> None:
    emit(LogLevel.WARNING, message)


def error(message: str) -> None:
    emit(LogLevel.ERROR, message)
