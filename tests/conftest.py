from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. Deterministic fake estimator and suggestion backends.
3. Factories building synthetic repositories on disk.
"""

import os
import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from repomix_autotune.core.estimation import EstimatorBackend  # noqa: E402
from repomix_autotune.core.scanner import yield_included_files  # noqa: E402
from repomix_autotune.core.suggestion import SuggestionBackend  # noqa: E402
from repomix_autotune.domain.errors import SuggestionUnavailable  # noqa: E402
from repomix_autotune.domain.rule_set import RuleSet  # noqa: E402


# -----------------------------------------------------------------------------
# Fake Backends
# -----------------------------------------------------------------------------
class FileCountBackend(EstimatorBackend):
    """
    Estimator charging a fixed number of tokens per included file.

    Honors the rule set exactly like the real backends, so split exclusions
    change the estimate. Records every call for assertions.
    """

    name = "file-count"

    def __init__(self, tokens_per_file: int = 100) -> None:
        self.tokens_per_file = tokens_per_file
        self.calls: List[Tuple[str, Tuple[str, ...]]] = []
        self._lock = threading.Lock()

    def count(self, subtree_root: str, rule_set: RuleSet, encoding: str) -> int:
        with self._lock:
            self.calls.append((subtree_root, rule_set.patterns))
        files = sum(1 for _ in yield_included_files(subtree_root, rule_set))
        return files * self.tokens_per_file


class StaticSuggestionBackend(SuggestionBackend):
    """Suggestion backend answering with a fixed list, or failing on demand."""

    name = "static"

    def __init__(self, patterns: Optional[List[str]] = None, fail: bool = False) -> None:
        self.patterns = list(patterns or [])
        self.fail = fail
        self.prompts: List[str] = []
        self._lock = threading.Lock()

    def suggest(self, prompt: str) -> List[str]:
        with self._lock:
            self.prompts.append(prompt)
        if self.fail:
            raise SuggestionUnavailable("static backend configured to fail")
        return list(self.patterns)


# -----------------------------------------------------------------------------
# Tree Builders
# -----------------------------------------------------------------------------
def build_tree(root: Path, layout: Dict[str, int], content: str = "x") -> Path:
    """
    Create files under root.

    Args:
        root: Base directory (created if missing).
        layout: Mapping of relative directory ('.' for root) to file count.
        content: Text written into every file.

    Returns:
        Path: The root directory.
    """
    root.mkdir(parents=True, exist_ok=True)
    for rel_dir, count in layout.items():
        directory = root if rel_dir == "." else root / rel_dir
        directory.mkdir(parents=True, exist_ok=True)
        for i in range(count):
            (directory / f"file_{i:04d}.txt").write_text(content, encoding="utf-8")
    return root


def all_files(root: Path) -> List[str]:
    """Every file under root as sorted POSIX relative paths."""
    out = []
    for current, _, files in os.walk(root):
        for name in files:
            rel = os.path.relpath(os.path.join(current, name), root)
            out.append(rel.replace(os.sep, "/"))
    return sorted(out)


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def tree_factory(tmp_path: Path) -> Callable[..., Path]:
    """Return a builder creating a repository under tmp_path/repo."""

    def _factory(layout: Dict[str, int], name: str = "repo", content: str = "x") -> Path:
        return build_tree(tmp_path / name, layout, content)

    return _factory


@pytest.fixture
def run_config(tmp_path: Path) -> Dict[str, Any]:
    """
    Return a configuration dictionary runnable without external tools.

    Tests using injected backends only need to set 'target_dir'.
    """
    return {
        "target_dir": str(tmp_path / "repo"),
        "target_tokens": 25000,
        "buffer_ratio": 0.10,
        "max_depth": 3,
        "estimator": "heuristic",
        "skip_ai": False,
        "validate_units": False,
        "dry_run": False,
        "force": False,
        "jobs": 1,
    }
