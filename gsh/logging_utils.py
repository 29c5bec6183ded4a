"""
Colored stderr logging using ANSI codes (standard library only).

stdout belongs to the shell statements gsh emits, so every message here
goes to stderr.
"""
import os
import sys
from typing import TextIO, Optional


class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[31m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"


def _should_use_colors(stream: Optional[TextIO] = None) -> bool:
    """Determine if colors should be used on the given stream."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM", "") == "dumb":
        return False
    if os.environ.get("FORCE_COLOR") == "1":
        return True

    stream = stream or sys.stderr
    return hasattr(stream, "isatty") and stream.isatty()


def _colorize(text: str, color: str, bold: bool = False) -> str:
    if not _should_use_colors():
        return text
    bold_code = Colors.BOLD if bold else ""
    return f"{bold_code}{color}{text}{Colors.RESET}"


def _emit(label: str, color: str, message: str) -> None:
    prefix = _colorize(label, color, bold=True)
    body = _colorize(str(message).replace("\r", "").rstrip(), color)
    print(f"{prefix} {body}", file=sys.stderr, flush=True)


def debug_enabled() -> bool:
    return os.environ.get("DEBUG") == "1"


def log_error(message: str) -> None:
    """Log an error message in red."""
    _emit("ERROR:", Colors.RED, message)


def log_warn(message: str) -> None:
    """Log a warning message in yellow."""
    _emit("WARNING:", Colors.YELLOW, message)


def log_info(message: str) -> None:
    """Log an info message in blue."""
    _emit("INFO:", Colors.BLUE, message)


def log_debug(message: str) -> None:
    """Log a debug message in magenta (only if DEBUG=1)."""
    if not debug_enabled():
        return
    _emit("DEBUG:", Colors.MAGENTA, message)


class StderrOutput:
    """
    User-facing message channel handed to the session controller.

    Wraps the log_* helpers so callers (and tests) can swap in their own
    sink without touching module globals.
    """

    def error(self, message: str) -> None:
        log_error(message)

    def info(self, message: str) -> None:
        log_info(message)

    def debug(self, message: str) -> None:
        log_debug(message)
