from __future__ import annotations

"""
Base Definitions for Pattern Suggestion Backends.
"""

from abc import ABC, abstractmethod
from typing import List


class SuggestionBackend(ABC):
    """
    Abstract base class for exclusion pattern sources.

    Remote backends raise SuggestionUnavailable on any failure or malformed
    answer; the suggester then falls back to the built-in patterns.
    """

    name: str = "base"

    @abstractmethod
    def suggest(self, prompt: str) -> List[str]:
        """
        Produce exclusion globs for the repository described by the prompt.

        Args:
            prompt: Instruction prompt with the repository digest appended.

        Returns:
            List[str]: Glob patterns.
        """
        pass
