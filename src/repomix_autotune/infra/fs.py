from __future__ import annotations

"""
FileSystem Infrastructure Layer.

Provides path normalization, user data directory resolution, collision checks
for persisted configuration files and atomic JSON writes.
"""

import json
import os
import tempfile
from typing import Any, Dict, List, Optional

# -----------------------------------------------------------------------------
# GLOBAL CONSTANTS
# -----------------------------------------------------------------------------

APP_DIR_NAME = "RepomixAutotune"
UNIX_APP_DIR_NAME = ".repomix_autotune"

# -----------------------------------------------------------------------------
# PATH RESOLUTION API
# -----------------------------------------------------------------------------

def get_user_data_dir() -> str:
    """
    Resolve the OS-specific directory for persistent user defaults.

    Standards:
    - Windows: %LOCALAPPDATA%/RepomixAutotune
    - Linux/Mac: ~/.repomix_autotune

    Returns:
        str: Absolute path to the application data directory (not created).
    """
    path = ""
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA")
        if base:
            path = os.path.join(base, APP_DIR_NAME)

    if not path:
        path = os.path.join(os.path.expanduser("~"), UNIX_APP_DIR_NAME)

    return os.path.abspath(path)


def normalize_path(path: Optional[str], fallback: str) -> str:
    """
    Normalize a directory path string into an absolute filesystem path.

    Handles environment variable expansion and '~'. Reverts to fallback if
    the input is empty.

    Args:
        path: Raw input path string.
        fallback: Default path to use if the input is empty.

    Returns:
        str: Normalized absolute path.
    """
    p = (path or "").strip()
    if not p:
        p = fallback
    p = os.path.expandvars(os.path.expanduser(p))
    return os.path.abspath(p)


def to_posix_relpath(path: str, start: str) -> str:
    """Relative path from start using '/' separators ('.' for start itself)."""
    rel = os.path.relpath(path, start)
    return rel.replace(os.sep, "/")


def is_readable_dir(path: str) -> bool:
    """True if path is a directory the process can list."""
    return os.path.isdir(path) and os.access(path, os.R_OK | os.X_OK)

# -----------------------------------------------------------------------------
# FILESYSTEM VALIDATION API
# -----------------------------------------------------------------------------

def check_existing_files(paths: List[str]) -> List[str]:
    """
    Identify which of the given absolute paths already exist.

    Args:
        paths: Candidate file paths.

    Returns:
        List[str]: Paths that exist, in input order.
    """
    return [p for p in paths if os.path.exists(p)]


def write_json_atomic(path: str, data: Dict[str, Any]) -> None:
    """
    Write a JSON document so readers never observe a partial file.

    The payload goes to a temporary sibling first and is then renamed over
    the destination.

    Args:
        path: Destination file.
        data: JSON-serializable document.

    Raises:
        OSError: If the directory is not writable.
    """
    directory = os.path.dirname(os.path.abspath(path)) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
