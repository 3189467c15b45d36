"""
Colourful structured console logging for the traffic monitor.

Every line carries a timestamp, a level symbol, the module context and,
inside a scan task, the ``#<scan id>`` of that scan.

Scan tag, timers and the optional per-scan log file live in
``contextvars.ContextVar`` slots so concurrent tasks never share them.
Environment:

- ``LOG_LEVEL``: lowest level printed (``debug``, ``info``, ``warn``,
  ``error``); defaults to ``info``.
- ``WRITE_TO_FILE=true``: mirror each scan's lines, without colours,
  to ``.logs/<domain>_<timestamp>.log``.
"""

from __future__ import annotations

import contextvars
import io
import os
import pathlib
import re
import sys
import time
from datetime import UTC, datetime

# ============================================================================
# Levels & colours
# ============================================================================

_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_GRAY = "\033[90m"
_GREEN = "\033[32m"
_RED = "\033[31m"
_YELLOW = "\033[33m"
_CYAN = "\033[36m"
_BLUE = "\033[34m"
_MAGENTA = "\033[35m"

_ANSI_RE = re.compile(r"\033\[[0-9;]*m")


# level -> (rank, colour, symbol)
_LEVELS: dict[str, tuple[int, str, str]] = {
    "debug": (10, _GRAY, "•"),
    "timing": (15, _MAGENTA, "⏱"),
    "info": (20, _CYAN, "ℹ"),
    "success": (20, _GREEN, "✓"),
    "warn": (30, _YELLOW, "⚠"),
    "error": (40, _RED, "✗"),
}


def _threshold() -> int:
    name = os.environ.get("LOG_LEVEL", "info").lower()
    rank, _, _ = _LEVELS.get(name, _LEVELS["info"])
    return rank


# ============================================================================
# Per-task state
# ============================================================================

_scan_tag_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("_scan_tag_var", default=None)
_timers_var: contextvars.ContextVar[dict[str, float]] = contextvars.ContextVar("_timers_var")
_scan_log_var: contextvars.ContextVar[io.TextIOWrapper | None] = contextvars.ContextVar("_scan_log_var", default=None)


def _timers() -> dict[str, float]:
    try:
        return _timers_var.get()
    except LookupError:
        timers: dict[str, float] = {}
        _timers_var.set(timers)
        return timers


# ============================================================================
# Scan binding
# ============================================================================


def _log_file_name(domain: str, started: datetime) -> str:
    safe = "".join(c if c.isalnum() or c in ".-" else "_" for c in domain.removeprefix("www."))[:50]
    return f"{safe}_{started.strftime('%Y-%m-%d_%H-%M-%S')}.log"


def open_scan_log(scan_id: int, domain: str) -> str | None:
    """Tag the current task's lines with *scan_id* and open its log file.

    Returns:
        The log file path, or ``None`` when ``WRITE_TO_FILE`` is not
        enabled or the file could not be created.
    """
    close_scan_log()
    _scan_tag_var.set(f"#{scan_id}")
    if os.environ.get("WRITE_TO_FILE", "").lower() != "true":
        return None

    started = datetime.now(UTC)
    path = pathlib.Path.cwd() / ".logs" / _log_file_name(domain, started)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        stream = path.open("a", encoding="utf-8")
    except OSError as exc:
        _write(f"{_RED}✗ [Logger] Cannot create scan log: {exc}{_RESET}")
        return None

    stream.write(f"# scan {scan_id}: {domain}\n# started {started.isoformat()}\n\n")
    _scan_log_var.set(stream)
    _write(f"{_CYAN}ℹ [Logger] Scan #{scan_id} logging to {path}{_RESET}")
    return str(path)


def close_scan_log() -> None:
    """Close the current task's scan log file and drop its scan tag."""
    _scan_tag_var.set(None)
    stream = _scan_log_var.get()
    if stream is None:
        return
    _scan_log_var.set(None)
    try:
        stream.close()
    except OSError as exc:
        _write(f"{_YELLOW}⚠ [Logger] Scan log close failed: {exc}{_RESET}")


def _write(line: str) -> None:
    print(line, file=sys.stderr)
    stream = _scan_log_var.get()
    if stream is not None and not stream.closed:
        stream.write(_ANSI_RE.sub("", line) + "\n")
        stream.flush()


# ============================================================================
# Formatting
# ============================================================================


def _clock() -> str:
    now = datetime.now(UTC)
    return f"{now:%H:%M:%S}.{now.microsecond // 1000:03d}"


def format_duration(ms: float) -> str:
    """Render a millisecond duration as ``850ms``, ``2.40s`` or ``1m 5.0s``."""
    if ms < 1000:
        return f"{int(ms)}ms"
    if ms < 60000:
        return f"{ms / 1000:.2f}s"
    return f"{int(ms // 60000)}m {(ms % 60000) / 1000:.1f}s"


def _render(value: object) -> str:
    if value is None:
        return f"{_DIM}None{_RESET}"
    if isinstance(value, bool):
        return f"{_GREEN if value else _RED}{value}{_RESET}"
    if isinstance(value, (int, float)):
        return f"{_YELLOW}{value}{_RESET}"
    if isinstance(value, str):
        text = value if len(value) <= 200 else value[:197] + "..."
        return f'{_GREEN}"{text}"{_RESET}'
    if isinstance(value, (list, tuple)):
        return f"{_CYAN}[{len(value)} items]{_RESET}"
    if isinstance(value, dict):
        return f"{_CYAN}{{{len(value)} keys}}{_RESET}"
    return str(value)


# ============================================================================
# Logger
# ============================================================================


class Logger:
    """Module-scoped logger: ``log = create_logger("Scan")``."""

    def __init__(self, context: str = "Server") -> None:
        self._context = context

    def _log(self, level: str, message: str, data: dict[str, object] | None = None) -> None:
        rank, colour, symbol = _LEVELS[level]
        if rank < _threshold():
            return
        tag = _scan_tag_var.get()
        scope = f"{_BOLD}[{self._context}]{_RESET}" + (f" {_BLUE}{tag}{_RESET}" if tag else "")
        fields = "".join(f" {_DIM}{key}={_RESET}{_render(val)}" for key, val in (data or {}).items())
        _write(f"{_GRAY}[{_clock()}]{_RESET} {colour}{symbol}{_RESET} {scope} {message}{fields}")

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
        """Start the named timer (scoped to this logger and task)."""
        _timers()[f"{self._context}:{label}"] = time.monotonic()
        self._log("timing", f"Started: {label}")

    def end_timer(self, label: str, message: str | None = None) -> float:
        """Stop the named timer and log how long it ran.

        Returns:
            Elapsed milliseconds, or ``0.0`` if the timer was never started.
        """
        started = _timers().pop(f"{self._context}:{label}", None)
        if started is None:
            self.warn(f'Timer "{label}" was not started')
            return 0.0
        elapsed = (time.monotonic() - started) * 1000
        self._log("timing", f"{message or label} {_DIM}in{_RESET} {_MAGENTA}{format_duration(elapsed)}{_RESET}")
        return elapsed

    def section(self, title: str) -> None:
        rule = f"{_BLUE}{'─' * 60}{_RESET}"
        _write(f"\n{rule}\n{_BLUE}{_BOLD}  {title}{_RESET}\n{rule}\n")

    def subsection(self, title: str) -> None:
        _write(f"\n{_CYAN}  ▸ {title}{_RESET}")


def create_logger(context: str) -> Logger:
    """Create a logger for a specific module."""
    return Logger(context)
