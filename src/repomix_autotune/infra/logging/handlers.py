from __future__ import annotations

"""
Logging Handlers and Formatters.

Handler factories tagged so the application can tell its own handlers apart
from those installed by libraries or test harnesses, plus the console
formatter that colors level names on interactive terminals.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import IO, Optional

_HANDLER_TAG_ATTR: str = "_repomix_autotune_handler"

_RESET = "\033[0m"
_LEVEL_COLORS = {
    logging.DEBUG: "\033[0;34m",
    logging.INFO: "\033[0;34m",
    logging.WARNING: "\033[1;33m",
    logging.ERROR: "\033[0;31m",
    logging.CRITICAL: "\033[0;31m",
}


class ConsoleFormatter(logging.Formatter):
    """Formatter adding ANSI colors around the level name when enabled."""

    def __init__(self, fmt: str, use_color: bool = False) -> None:
        super().__init__(fmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_color:
            return super().format(record)
        original = record.levelname
        color = _LEVEL_COLORS.get(record.levelno, "")
        record.levelname = f"{color}{original}{_RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def _tag_handler(handler: logging.Handler) -> None:
    setattr(handler, _HANDLER_TAG_ATTR, True)


def _is_our_handler(handler: logging.Handler) -> bool:
    return bool(getattr(handler, _HANDLER_TAG_ATTR, False))


def _should_color(mode: str, stream: IO[str]) -> bool:
    """Resolve 'auto' / 'always' / 'never' against the target stream."""
    if mode == "always":
        return True
    if mode == "never" or os.environ.get("NO_COLOR"):
        return False
    return bool(getattr(stream, "isatty", lambda: False)())


def _create_console_handler(level_int: int, fmt: str, color: str) -> logging.Handler:
    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(level_int)
    sh.setFormatter(ConsoleFormatter(fmt, use_color=_should_color(color, sys.stderr)))
    _tag_handler(sh)
    return sh


def _create_rotating_file_handler(
        log_file: str,
        level_int: int,
        formatter: logging.Formatter,
        max_bytes: int,
        backup_count: int,
) -> Optional[RotatingFileHandler]:
    """
    Initialize a RotatingFileHandler.

    Returns:
        Optional[RotatingFileHandler]: Configured handler, or None if the file
        cannot be opened (reported on stderr, never raised).
    """
    try:
        parent = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(parent, exist_ok=True)
        fh = RotatingFileHandler(
            log_file,
            maxBytes=int(max_bytes),
            backupCount=int(backup_count),
            encoding="utf-8",
        )
    except OSError as e:
        sys.stderr.write(f"WARNING: Cannot open log file '{log_file}': {e}\n")
        return None

    fh.setLevel(level_int)
    fh.setFormatter(formatter)
    _tag_handler(fh)
    return fh
