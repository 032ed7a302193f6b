from __future__ import annotations

"""
Subtree Token Estimation Service.

Routes every estimate to the configured backend and degrades gracefully to the
byte heuristic when that backend cannot produce a count, so a missing or
failing packaging tool never aborts a run.
"""

import logging
from typing import Dict, Optional, Type

from repomix_autotune.core.estimation.strategies import (
    EstimatorBackend,
    HeuristicBackend,
    RepomixBackend,
    TiktokenBackend,
)
from repomix_autotune.domain.constants import DEFAULT_TOOL_TIMEOUT
from repomix_autotune.domain.errors import EnvironmentCheckError, EstimationDegraded
from repomix_autotune.domain.rule_set import RuleSet
from repomix_autotune.infra.fs import is_readable_dir

logger = logging.getLogger(__name__)

_BACKENDS: Dict[str, Type[EstimatorBackend]] = {
    "repomix": RepomixBackend,
    "tiktoken": TiktokenBackend,
    "heuristic": HeuristicBackend,
}


class TokenEstimator:
    """
    Facade over an estimator backend with heuristic fallback.

    Thread-safe: backends keep no per-call state outside their own temporary
    workspaces.
    """

    def __init__(
            self,
            backend: Optional[EstimatorBackend] = None,
            fallback: Optional[EstimatorBackend] = None
    ) -> None:
        self.backend = backend or HeuristicBackend()
        self.fallback = fallback or HeuristicBackend()

    def estimate(self, subtree_root: str, rule_set: RuleSet, encoding: str) -> int:
        """
        Estimate the serialized token count of a subtree.

        Args:
            subtree_root: Absolute path of the subtree.
            rule_set: Exclusions relative to subtree_root.
            encoding: Tokenizer encoding identifier.

        Returns:
            int: Non-negative token estimate.

        Raises:
            EnvironmentCheckError: If subtree_root is not a readable directory.
        """
        if not is_readable_dir(subtree_root):
            raise EnvironmentCheckError(f"Not a readable directory: {subtree_root}")

        try:
            tokens = self.backend.count(subtree_root, rule_set, encoding)
        except EstimationDegraded as e:
            if self.backend is self.fallback:
                raise
            logger.info(f"Estimator '{self.backend.name}' unavailable ({e}). Using {self.fallback.name} estimate.")
            tokens = self.fallback.count(subtree_root, rule_set, encoding)

        tokens = max(0, int(tokens))
        logger.debug(f"Estimated {tokens} tokens for {subtree_root} ({len(rule_set)} rules)")
        return tokens


def create_estimator(name: str, timeout: float = DEFAULT_TOOL_TIMEOUT) -> TokenEstimator:
    """
    Build the estimator for a configured backend name.

    Args:
        name: One of 'repomix', 'tiktoken', 'heuristic'.
        timeout: Seconds allowed for one packaging tool call.

    Returns:
        TokenEstimator: Facade with heuristic fallback.

    Raises:
        ValueError: If the name is unknown.
    """
    if name not in _BACKENDS:
        raise ValueError(f"Unknown estimator backend: {name}")
    if name == "repomix":
        backend: EstimatorBackend = RepomixBackend(timeout=timeout)
    else:
        backend = _BACKENDS[name]()
    return TokenEstimator(backend=backend)
