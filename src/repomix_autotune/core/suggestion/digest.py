from __future__ import annotations

"""
Repository Digest Builder.

Summarizes a subtree as plain text for the pattern suggestion service:
directory structure, file type histogram, oversized files, the existing
.gitignore and the build manifests present near the root.
"""

import fnmatch
import logging
import os
from collections import Counter
from typing import List, Tuple

from repomix_autotune.domain.constants import BUILD_MANIFEST_NAMES

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# DIGEST LIMITS
# -----------------------------------------------------------------------------

MAX_STRUCTURE_ENTRIES = 50
MAX_FILE_TYPES = 20
MAX_LARGE_FILES = 10
LARGE_FILE_THRESHOLD = 1024 * 1024
MANIFEST_MAX_DEPTH = 2

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def build_repository_digest(root: str) -> str:
    """
    Render the plain-text digest of a subtree.

    Args:
        root: Absolute path of the subtree.

    Returns:
        str: Digest with one '=== SECTION ===' header per section.
    """
    root_abs = os.path.abspath(root)
    directories: List[str] = []
    extensions: Counter = Counter()
    large_files: List[Tuple[str, int]] = []
    manifests: List[str] = []

    for current, dirs, files in os.walk(root_abs):
        dirs.sort()
        files.sort()
        rel_dir = os.path.relpath(current, root_abs).replace(os.sep, "/")
        depth = 0 if rel_dir == "." else rel_dir.count("/") + 1

        for d in dirs:
            directories.append(f"./{d}" if rel_dir == "." else f"./{rel_dir}/{d}")

        for name in files:
            if "." in name.lstrip("."):
                extensions[name.rsplit(".", 1)[-1]] += 1

            rel_file = name if rel_dir == "." else f"{rel_dir}/{name}"
            if depth < MANIFEST_MAX_DEPTH and any(fnmatch.fnmatchcase(name, g) for g in BUILD_MANIFEST_NAMES):
                manifests.append(f"./{rel_file}")

            try:
                size = os.path.getsize(os.path.join(current, name))
            except OSError:
                continue
            if size > LARGE_FILE_THRESHOLD:
                large_files.append((f"./{rel_file}", size))

    sections = [
        _section("REPOSITORY STRUCTURE", directories[:MAX_STRUCTURE_ENTRIES]),
        _section("FILE TYPES AND COUNTS", _format_histogram(extensions)),
        _section(
            "LARGE FILES (>1MB)",
            [f"{_human_size(size)}\t{path}" for path, size in large_files[:MAX_LARGE_FILES]],
        ),
        _section("EXISTING .gitignore", _read_gitignore(root_abs)),
        _section("PACKAGE/BUILD FILES", manifests),
    ]
    return "\n\n".join(sections) + "\n"

# -----------------------------------------------------------------------------
# PRIVATE HELPERS
# -----------------------------------------------------------------------------

def _section(title: str, lines: List[str]) -> str:
    return "\n".join([f"=== {title} ==="] + list(lines))


def _format_histogram(extensions: Counter) -> List[str]:
    ordered = sorted(extensions.items(), key=lambda kv: (-kv[1], kv[0]))
    return [f"{count:7d} {ext}" for ext, count in ordered[:MAX_FILE_TYPES]]


def _read_gitignore(root: str) -> List[str]:
    path = os.path.join(root, ".gitignore")
    if not os.path.isfile(path):
        return ["No .gitignore found"]
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read().splitlines()
    except OSError as e:
        logger.debug(f"Could not read {path}: {e}")
        return ["No .gitignore found"]


def _human_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "K", "M", "G"):
        if value < 1024 or unit == "G":
            return f"{value:.1f}{unit}" if unit != "B" else f"{int(value)}B"
        value /= 1024
    return f"{value:.1f}G"
