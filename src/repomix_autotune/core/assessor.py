from __future__ import annotations

"""
Budget Assessment Service.

Evaluates a subtree under a rule set against the run's budget. Every call
produces a fresh estimate; nothing is cached across rule-set changes.
"""

import logging
import threading
from typing import Optional

from repomix_autotune.core.estimation import TokenEstimator
from repomix_autotune.domain.budget import Assessment, Budget
from repomix_autotune.domain.rule_set import RuleSet

logger = logging.getLogger(__name__)


class Assessor:
    """
    Binds an estimator to a budget.

    Args:
        estimator: Token estimation facade.
        budget: Immutable budget of the run.
        ignored: Patterns excluded from every estimate on top of the
            assessed rule set (they never reach persisted configurations).
    """

    def __init__(self, estimator: TokenEstimator, budget: Budget, ignored: Optional[RuleSet] = None) -> None:
        self.estimator = estimator
        self.budget = budget
        self.ignored = ignored or RuleSet()
        self._lock = threading.Lock()
        self._calls = 0

    @property
    def call_count(self) -> int:
        with self._lock:
            return self._calls

    def assess(self, subtree_root: str, rule_set: RuleSet) -> Assessment:
        """
        Estimate a subtree and classify it against the budget.

        Args:
            subtree_root: Absolute path of the subtree.
            rule_set: Exclusions relative to subtree_root.

        Returns:
            Assessment: Fresh assessment.
        """
        tokens = self.estimator.estimate(subtree_root, rule_set.merge(self.ignored), self.budget.encoding)
        with self._lock:
            self._calls += 1

        assessment = self.budget.assess(tokens)
        logger.debug(
            f"Assessed {subtree_root}: {assessment.estimated_tokens} tokens "
            f"(limit {self.budget.effective_limit}, overflow {assessment.overflow_ratio:.2f}, "
            f"recommended splits {assessment.recommended_splits})"
        )
        return assessment
