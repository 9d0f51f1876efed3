"""
Logging utility with timestamps and timing support.
Provides structured, colourful console output for analysis stages.
Optionally appends logs to a file when verbose logging is enabled.

All output goes to stderr: stdout is reserved for the stdio
transport, so nothing here may ever print to it.

Per-task timers are stored in a ``contextvars.ContextVar`` so that
concurrent analyses running on the same event loop do not
interfere with each other.
"""

from __future__ import annotations

import contextvars
import pathlib
import re
import sys
import threading
import time
from datetime import UTC, datetime
from typing import NamedTuple

# ============================================================================
# ANSI styling
# ============================================================================

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

_ANSI_RE = re.compile(r"\033\[[0-9;]*m")


def _paint(text: str, *styles: str) -> str:
    return "".join(styles) + text + _RESET


class _LevelStyle(NamedTuple):
    rank: int
    colour: str
    symbol: str


_LEVELS: dict[str, _LevelStyle] = {
    "debug": _LevelStyle(10, _GRAY, "•"),
    "timing": _LevelStyle(10, _MAGENTA, "⏱"),
    "info": _LevelStyle(20, _CYAN, "ℹ"),
    "success": _LevelStyle(20, _GREEN, "✓"),
    "warn": _LevelStyle(30, _YELLOW, "⚠"),
    "error": _LevelStyle(40, _RED, "✗"),
}

# Names accepted by ``configure`` and ``--log-level``.
_THRESHOLDS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "WARNING": 30, "ERROR": 40}

# ============================================================================
# Module state
# ============================================================================

_threshold = _THRESHOLDS["INFO"]
_log_file_path: pathlib.Path | None = None
_file_lock = threading.Lock()

_timers_var: contextvars.ContextVar[dict[str, tuple[float, str]]] = contextvars.ContextVar("_timers_var")


def configure(level: str = "INFO", log_file: str | pathlib.Path | None = None) -> None:
    """Set the minimum level and the optional log file for every logger.

    Args:
        level: One of ``DEBUG``, ``INFO``, ``WARN`` or ``ERROR``
            (case-insensitive). Unknown names fall back to ``INFO``.
        log_file: Path to append ANSI-stripped lines to, or ``None``
            to log to stderr only. Relative paths resolve against the
            current working directory.
    """
    global _threshold, _log_file_path
    _threshold = _THRESHOLDS.get(level.upper(), _THRESHOLDS["INFO"])
    if log_file is None:
        _log_file_path = None
    else:
        _log_file_path = pathlib.Path.cwd() / log_file


def get_log_file_path() -> pathlib.Path | None:
    """Return the resolved log file path, if file logging is enabled."""
    return _log_file_path


def _timers() -> dict[str, tuple[float, str]]:
    timers = _timers_var.get(None)
    if timers is None:
        timers = {}
        _timers_var.set(timers)
    return timers


def _emit(line: str) -> None:
    """Write *line* to stderr and, when enabled, to the log file."""
    print(line, file=sys.stderr)
    path = _log_file_path
    if path is None:
        return
    try:
        with _file_lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as stream:
                stream.write(_ANSI_RE.sub("", line) + "\n")
    except OSError as exc:
        print(_paint(f"✗ [Logger] Failed to write log file: {exc}", _RED), file=sys.stderr)


# ============================================================================
# Formatting
# ============================================================================


def _clock() -> str:
    """Current UTC time as HH:MM:SS.mmm."""
    now = datetime.now(UTC)
    return f"{now:%H:%M:%S}.{now.microsecond // 1000:03d}"


def _format_duration(ms: float) -> str:
    if ms < 1000:
        return f"{int(ms)}ms"
    if ms < 60_000:
        return f"{ms / 1000:.2f}s"
    minutes, rest = divmod(ms, 60_000)
    return f"{int(minutes)}m {rest / 1000:.1f}s"


def _format_value(value: object) -> str:
    if value is None:
        return _paint("None", _DIM)
    if isinstance(value, bool):
        return _paint(str(value), _GREEN if value else _RED)
    if isinstance(value, (int, float)):
        return _paint(str(value), _YELLOW)
    if isinstance(value, str):
        shown = value if len(value) <= 500 else value[:497] + "..."
        return _paint(f'"{shown}"', _GREEN)
    if isinstance(value, (list, tuple)):
        return _paint(f"[{len(value)} items]", _CYAN)
    if isinstance(value, dict):
        return _paint(f"{{{len(value)} keys}}", _CYAN)
    return str(value)


# ============================================================================
# Logger
# ============================================================================


class Logger:
    """Structured logger with context prefix and timing support."""

    def __init__(self, context: str = "Server") -> None:
        self._context = context

    @property
    def context(self) -> str:
        """The prefix shown in square brackets on every line."""
        return self._context

    def is_enabled_for(self, level: str) -> bool:
        """Return whether *level* passes the configured threshold."""
        style = _LEVELS.get(level, _LEVELS["info"])
        return style.rank >= _threshold

    def _log(self, level: str, message: str, data: dict[str, object] | None = None) -> None:
        if not self.is_enabled_for(level):
            return
        style = _LEVELS.get(level, _LEVELS["info"])
        parts = [
            _paint(f"[{_clock()}]", _GRAY),
            _paint(style.symbol, style.colour),
            _paint(f"[{self._context}]", _BOLD),
            message,
        ]
        if data:
            parts.extend(_paint(f"{key}=", _DIM) + _format_value(value) for key, value in data.items())
        _emit(" ".join(parts))

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
        """Start a named timer; timers are scoped to the current task."""
        _timers()[f"{self._context}:{label}"] = (time.monotonic() * 1000, _clock())
        self._log("timing", f"Starting: {label}")

    def end_timer(self, label: str, message: str | None = None) -> float:
        """Stop a named timer, log the elapsed time and return it in milliseconds."""
        entry = _timers().pop(f"{self._context}:{label}", None)
        if entry is None:
            self.warn(f'Timer "{label}" was not started')
            return 0.0

        started_ms, started_at = entry
        elapsed = time.monotonic() * 1000 - started_ms
        self._log(
            "timing",
            f"{message or f'Completed: {label}'} {_paint('took', _DIM)} "
            f"{_paint(_format_duration(elapsed), _MAGENTA)} {_paint(f'(started {started_at})', _DIM)}",
        )
        return elapsed

    def section(self, title: str) -> None:
        """Print a prominent section divider with *title*."""
        rule = _paint("─" * 60, _BLUE)
        for line in ("", rule, _paint(f"  {title}", _BLUE, _BOLD), rule, ""):
            _emit(line)


def create_logger(context: str) -> Logger:
    """Create a logger for a specific module."""
    return Logger(context)
