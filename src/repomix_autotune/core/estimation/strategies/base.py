from __future__ import annotations

"""
Base Definitions for Token Estimation Backends.

Provides the abstract interface implemented by every way of measuring how many
tokens a subtree occupies once serialized.
"""

from abc import ABC, abstractmethod

from repomix_autotune.domain.rule_set import RuleSet


class EstimatorBackend(ABC):
    """
    Abstract base class for subtree token counting.

    Implementations raise EstimationDegraded when they cannot produce a count;
    the estimator facade then falls back to the next backend.
    """

    name: str = "base"

    @abstractmethod
    def count(self, subtree_root: str, rule_set: RuleSet, encoding: str) -> int:
        """
        Measure the serialized size of a subtree.

        Args:
            subtree_root: Absolute path of the subtree.
            rule_set: Exclusions relative to subtree_root.
            encoding: Tokenizer encoding identifier.

        Returns:
            int: Non-negative token count.
        """
        pass
