from __future__ import annotations

"""
Token Estimation Package.

Facade exposing the estimator service and its backends.
"""

from repomix_autotune.core.estimation.estimator import TokenEstimator, create_estimator
from repomix_autotune.core.estimation.strategies import (
    EstimatorBackend,
    HeuristicBackend,
    RepomixBackend,
    TiktokenBackend,
)

__all__ = [
    "TokenEstimator",
    "create_estimator",
    "EstimatorBackend",
    "HeuristicBackend",
    "RepomixBackend",
    "TiktokenBackend",
]
