from __future__ import annotations

"""
Token Budget Domain Models.

Defines the immutable budget value and the assessment produced for every
evaluated subtree.
"""

import math
from dataclasses import dataclass

from repomix_autotune.domain.constants import DEFAULT_BUFFER_RATIO, DEFAULT_ENCODING


@dataclass(frozen=True)
class Budget:
    """
    Token ceiling for a single packaging unit.

    Attributes:
        target_tokens: Nominal token target (strictly positive).
        encoding: Tokenizer encoding identifier passed to the packaging tool.
        buffer_ratio: Safety margin in [0, 1) shaved off the target.
    """
    target_tokens: int
    encoding: str = DEFAULT_ENCODING
    buffer_ratio: float = DEFAULT_BUFFER_RATIO

    def __post_init__(self) -> None:
        if isinstance(self.target_tokens, bool) or not isinstance(self.target_tokens, int):
            raise ValueError(f"target_tokens must be an integer, got {self.target_tokens!r}")
        if self.target_tokens <= 0:
            raise ValueError(f"target_tokens must be positive, got {self.target_tokens}")
        if not 0.0 <= self.buffer_ratio < 1.0:
            raise ValueError(f"buffer_ratio must be in [0, 1), got {self.buffer_ratio}")
        if not self.encoding:
            raise ValueError("encoding must not be empty")

    @property
    def effective_limit(self) -> int:
        """Usable token count after applying the buffer (never below 1)."""
        return max(1, math.floor(self.target_tokens * (1.0 - self.buffer_ratio)))

    def assess(self, estimated_tokens: int) -> "Assessment":
        """Classify an estimate against this budget."""
        estimated = max(0, int(estimated_tokens))
        limit = self.effective_limit
        overflow = estimated / limit
        return Assessment(
            estimated_tokens=estimated,
            within_budget=estimated <= limit,
            overflow_ratio=overflow,
            recommended_splits=max(1, math.ceil(overflow)),
        )


@dataclass(frozen=True)
class Assessment:
    """
    Result of evaluating one subtree against a budget.

    Attributes:
        estimated_tokens: Estimated serialized size.
        within_budget: True if the estimate fits the effective limit.
        overflow_ratio: estimated_tokens / effective_limit.
        recommended_splits: Advisory split count, max(1, ceil(overflow_ratio)).
    """
    estimated_tokens: int
    within_budget: bool
    overflow_ratio: float
    recommended_splits: int
