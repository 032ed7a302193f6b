from __future__ import annotations

"""
Subtree Discovery Service.

Walks a directory once, pruning excluded directories early, and produces the
PathNode snapshot (recursive file counts and byte sizes per immediate child)
consumed by the assessment and splitting engine.
"""

import logging
import os
from typing import Dict, Iterable, List, Tuple

from repomix_autotune.core.rules import RuleMatcher
from repomix_autotune.domain.rule_set import RuleSet
from repomix_autotune.domain.tree_models import PathNode

logger = logging.getLogger(__name__)


# ==============================================================================
# PUBLIC API (DISCOVERY SERVICES)
# ==============================================================================

def yield_included_files(root: str, rule_set: RuleSet) -> Iterable[Tuple[str, str]]:
    """
    Traverse a subtree and yield every file not excluded by the rule set.

    Excluded directories are pruned in place so their contents are never
    visited. Traversal order is sorted and therefore stable.

    Args:
        root: Absolute path of the subtree.
        rule_set: Exclusions relative to root.

    Yields:
        Tuple[str, str]: (absolute path, root-relative POSIX path).
    """
    root_abs = os.path.abspath(root)
    matcher = RuleMatcher(rule_set)

    for current, dirs, files in os.walk(root_abs, onerror=_log_walk_error):
        rel_dir = _relative(current, root_abs)

        dirs[:] = sorted(
            d for d in dirs
            if not os.path.islink(os.path.join(current, d))
            and not matcher.matches(_join(rel_dir, d), is_dir=True)
        )

        for file_name in sorted(files):
            rel_path = _join(rel_dir, file_name)
            if matcher.matches(rel_path, is_dir=False):
                continue
            yield os.path.join(current, file_name), rel_path


def scan_tree(root: str, rule_set: RuleSet) -> PathNode:
    """
    Build the PathNode snapshot of a subtree.

    The returned node carries recursive totals for the whole subtree and one
    shallow child node per immediate subdirectory. Children whose every file
    is excluded still appear (with zero counts) unless the directory itself
    is excluded.

    Args:
        root: Absolute path of the subtree.
        rule_set: Exclusions relative to root.

    Returns:
        PathNode: Immutable snapshot.
    """
    root_abs = os.path.abspath(root)
    matcher = RuleMatcher(rule_set)

    child_names: List[str] = []
    try:
        with os.scandir(root_abs) as it:
            for entry in it:
                if entry.is_dir(follow_symlinks=False) and not matcher.matches(entry.name, is_dir=True):
                    child_names.append(entry.name)
    except OSError as e:
        logger.warning(f"Cannot list directory {root_abs}: {e}")

    counts: Dict[str, List[int]] = {name: [0, 0] for name in child_names}
    total_files = 0
    total_bytes = 0

    for abs_path, rel_path in yield_included_files(root_abs, rule_set):
        size = _file_size(abs_path)
        total_files += 1
        total_bytes += size
        head = rel_path.split("/", 1)[0]
        if "/" in rel_path and head in counts:
            counts[head][0] += 1
            counts[head][1] += size

    children = tuple(
        PathNode(
            path=os.path.join(root_abs, name),
            file_count=counts[name][0],
            byte_size=counts[name][1],
        )
        for name in sorted(child_names)
    )

    logger.debug(
        f"Scanned {root_abs}: {total_files} files, {total_bytes} bytes, {len(children)} subdirectories"
    )
    return PathNode(path=root_abs, file_count=total_files, byte_size=total_bytes, children=children)

# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _relative(path: str, root: str) -> str:
    if path == root:
        return ""
    return os.path.relpath(path, root).replace(os.sep, "/")


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name


def _file_size(path: str) -> int:
    try:
        return os.path.getsize(path)
    except OSError:
        return 0


def _log_walk_error(error: OSError) -> None:
    logger.debug(f"Skipping unreadable path during walk: {error}")
