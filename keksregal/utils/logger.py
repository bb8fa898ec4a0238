"""
Console logger for the cookie engine.

Lines are coloured for the terminal, mirrored ANSI-free into an
in-memory buffer, and, when ``WRITE_TO_FILE=true``, appended to
one ``.logs/<domain>_<timestamp>.log`` file per scan.

Timers, the buffer and the open log file live in context
variables, so two scans running in separate tasks keep separate
state.
"""

from __future__ import annotations

import contextvars
import os
import pathlib
import re
import sys
import time
from datetime import UTC, datetime
from typing import Literal, TextIO

Level = Literal["info", "success", "warn", "error", "debug", "timing"]

_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_RED = "\033[31m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_BLUE = "\033[34m"
_MAGENTA = "\033[35m"
_CYAN = "\033[36m"
_GRAY = "\033[90m"

# ============================================================================
# Per-scan state
# ============================================================================

_timers: contextvars.ContextVar[dict[str, tuple[float, str]] | None] = contextvars.ContextVar("keksregal_timers", default=None)
_buffer: contextvars.ContextVar[list[str] | None] = contextvars.ContextVar("keksregal_log_buffer", default=None)
_log_file: contextvars.ContextVar[TextIO | None] = contextvars.ContextVar("keksregal_log_file", default=None)

_ANSI_RE = re.compile(r"\033\[[0-9;]*m")

_MAX_VALUE_CHARS = 200


def _state_timers() -> dict[str, tuple[float, str]]:
    timers = _timers.get()
    if timers is None:
        timers = {}
        _timers.set(timers)
    return timers


def _state_buffer() -> list[str]:
    lines = _buffer.get()
    if lines is None:
        lines = []
        _buffer.set(lines)
    return lines


def get_log_buffer() -> list[str]:
    """Copy of the lines logged in this context, without colours."""
    return list(_state_buffer())


def clear_log_buffer() -> None:
    """Forget buffered lines and running timers."""
    _state_buffer().clear()
    _state_timers().clear()


# ============================================================================
# Per-scan log file
# ============================================================================


def start_log_file(label: str) -> None:
    """Open a log file for one scan when ``WRITE_TO_FILE`` is on.

    Args:
        label: Scanned domain, or ``all-cookies`` for a full
            scan.  A leading dot and ``www.`` are dropped from the
            file name.
    """
    if os.environ.get("WRITE_TO_FILE", "").lower() != "true":
        return
    end_log_file()

    name = label.lstrip(".").removeprefix("www.")
    name = re.sub(r"[^A-Za-z0-9.-]", "_", name)[:50]
    started = datetime.now(UTC)
    path = pathlib.Path.cwd() / ".logs" / f"{name}_{started:%Y-%m-%d_%H-%M-%S}.log"

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        stream = path.open("a", encoding="utf-8")
    except OSError as exc:
        print(f"{_RED}✗ [Logger] Cannot open log file {path}: {exc}{_RESET}", file=sys.stderr)
        return

    _log_file.set(stream)
    banner = "=" * 80
    stream.write(f"\n{banner}\n  Cookie scan: {label}\n  Started: {started.isoformat()}\n{banner}\n")
    print(f"{_CYAN}ℹ [Logger] Log file: {path}{_RESET}", file=sys.stderr)


def end_log_file() -> None:
    """Close the log file of the current scan, if any."""
    stream = _log_file.get()
    if stream is None:
        return
    _log_file.set(None)
    try:
        stream.close()
    except OSError as exc:
        print(f"{_YELLOW}⚠ [Logger] Cannot close log file: {exc}{_RESET}", file=sys.stderr)


# ============================================================================
# Formatting
# ============================================================================

_LEVEL_STYLE: dict[Level, tuple[str, str]] = {
    "info": (_CYAN, "ℹ"),
    "success": (_GREEN, "✓"),
    "warn": (_YELLOW, "⚠"),
    "error": (_RED, "✗"),
    "debug": (_GRAY, "•"),
    "timing": (_MAGENTA, "⏱"),
}


def _clock() -> str:
    now = datetime.now(UTC)
    return f"{now:%H:%M:%S}.{now.microsecond // 1000:03d}"


def _duration(ms: float) -> str:
    if ms < 1000:
        return f"{int(ms)}ms"
    if ms < 60_000:
        return f"{ms / 1000:.2f}s"
    minutes, rest = divmod(ms, 60_000)
    return f"{int(minutes)}m {rest / 1000:.1f}s"


def _render(value: object) -> str:
    match value:
        case None:
            return f"{_DIM}None{_RESET}"
        case bool():
            return f"{_GREEN if value else _RED}{value}{_RESET}"
        case int() | float():
            return f"{_YELLOW}{value}{_RESET}"
        case str():
            # Cookie values run to several KB.
            text = value if len(value) <= _MAX_VALUE_CHARS else value[: _MAX_VALUE_CHARS - 3] + "..."
            return f'{_GREEN}"{text}"{_RESET}'
        case list() | tuple() | set() | frozenset():
            return f"{_CYAN}[{len(value)} items]{_RESET}"
        case dict():
            return f"{_CYAN}{{{len(value)} keys}}{_RESET}"
    return str(value)


# ============================================================================
# Logger
# ============================================================================


class Logger:
    """Module-scoped logger; every line is tagged with its context."""

    def __init__(self, context: str = "Keksregal") -> None:
        self._context = context

    @staticmethod
    def _write(line: str) -> None:
        print(line, file=sys.stderr)
        plain = _ANSI_RE.sub("", line)
        _state_buffer().append(plain)
        stream = _log_file.get()
        if stream is not None:
            stream.write(plain + "\n")
            stream.flush()

    def _log(self, level: Level, message: str, data: dict[str, object] | None = None) -> None:
        colour, symbol = _LEVEL_STYLE[level]
        line = f"{_GRAY}[{_clock()}]{_RESET} {colour}{symbol}{_RESET} {_BOLD}[{self._context}]{_RESET} {message}"
        if data:
            line += " " + " ".join(f"{_DIM}{key}={_RESET}{_render(value)}" for key, value in data.items())
        self._write(line)

    def info(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("info", message, data)

    def success(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("success", message, data)

    def warn(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("warn", message, data)

    def error(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("error", message, data)

    def debug(self, message: str, data: dict[str, object] | None = None) -> None:
        self._log("debug", message, data)

    def start_timer(self, label: str) -> None:
        """Start timing *label* within this logger's context."""
        _state_timers()[f"{self._context}:{label}"] = (time.monotonic(), _clock())
        self._log("timing", f"Starting: {label}")

    def end_timer(self, label: str, message: str | None = None) -> float:
        """Log and return the milliseconds since ``start_timer(label)``.

        Returns ``0.0`` with a warning when the timer was never
        started.
        """
        started = _state_timers().pop(f"{self._context}:{label}", None)
        if started is None:
            self.warn(f'Timer "{label}" was not started')
            return 0.0

        began, began_at = started
        elapsed_ms = (time.monotonic() - began) * 1000
        self._log(
            "timing",
            f"{message or f'Completed: {label}'} {_DIM}took{_RESET} {_MAGENTA}{_duration(elapsed_ms)}{_RESET}"
            f" {_DIM}(started {began_at}){_RESET}",
        )
        return elapsed_ms

    def section(self, title: str) -> None:
        """Write a banner that separates scan stages."""
        rule = f"{_BLUE}{'─' * 60}{_RESET}"
        for line in ("", rule, f"{_BLUE}{_BOLD}  {title}{_RESET}", rule, ""):
            self._write(line)


def create_logger(context: str) -> Logger:
    """Logger tagged with *context*, usually the module's role."""
    return Logger(context)
