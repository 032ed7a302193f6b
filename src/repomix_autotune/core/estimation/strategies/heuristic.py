from __future__ import annotations

"""
Heuristic Estimation Backend.

Implements the byte-density estimate used when the packaging tool is
unavailable: the total size of every non-excluded file divided by four.
"""

import os

from repomix_autotune.core.estimation.strategies.base import EstimatorBackend
from repomix_autotune.core.scanner import yield_included_files
from repomix_autotune.domain.constants import BYTES_PER_TOKEN
from repomix_autotune.domain.rule_set import RuleSet


class HeuristicBackend(EstimatorBackend):
    """
    Fallback algorithm using byte density.

    A pure function of the filesystem snapshot: identical inputs always give
    identical counts.
    """

    name = "heuristic"

    def count(self, subtree_root: str, rule_set: RuleSet, encoding: str) -> int:
        """
        Estimate tokens as floor(total_bytes / 4).

        Args:
            subtree_root: Absolute path of the subtree.
            rule_set: Exclusions relative to subtree_root.
            encoding: Ignored by this backend.

        Returns:
            int: Estimated tokens (minimum 0).
        """
        total_bytes = 0
        for abs_path, _ in yield_included_files(subtree_root, rule_set):
            try:
                total_bytes += os.path.getsize(abs_path)
            except OSError:
                continue
        return total_bytes // BYTES_PER_TOKEN
