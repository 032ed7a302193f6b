from __future__ import annotations

"""
Logging Configuration Models.

Defines the immutable settings of the logging subsystem and the mapping from
CLI verbosity flags to severity levels.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

_LEVEL_MAP: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


@dataclass(frozen=True)
class LoggingConfig:
    """
    Immutable specification for the logging subsystem initialization.

    Attributes:
        level: Minimum severity level to capture.
        console: Flag to enable stderr stream output.
        color: Colorize console level prefixes ('auto' follows the terminal).
        log_file: Optional path for a rotating diagnostic log.
        max_bytes: Maximum size per log segment before rotation.
        backup_count: Number of rotated segments to keep.
        console_fmt: Format for terminal output.
        file_fmt: Format for file entries.
        datefmt: Timestamp format for file entries.
    """
    level: str = "INFO"
    console: bool = True
    color: str = "auto"
    log_file: Optional[str] = None

    max_bytes: int = 1024 * 1024
    backup_count: int = 2

    console_fmt: str = "%(levelname)s: %(message)s"
    file_fmt: str = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def from_flags(cls, verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None) -> "LoggingConfig":
        """
        Map CLI verbosity flags to a configuration.

        --verbose wins over --quiet; the default level is INFO.
        """
        if verbose:
            level = "DEBUG"
        elif quiet:
            level = "WARNING"
        else:
            level = "INFO"
        return cls(level=level, log_file=log_file or None)
