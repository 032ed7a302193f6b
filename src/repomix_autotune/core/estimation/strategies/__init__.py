from __future__ import annotations

from .base import EstimatorBackend
from .heuristic import HeuristicBackend
from .repomix import RepomixBackend, parse_total_tokens
from .tiktoken_local import TiktokenBackend

__all__ = [
    "EstimatorBackend",
    "HeuristicBackend",
    "RepomixBackend",
    "TiktokenBackend",
    "parse_total_tokens",
]
