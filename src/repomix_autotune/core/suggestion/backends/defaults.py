from __future__ import annotations

"""
Built-in Pattern Backend.

Returns the fixed exclusion list (binary and media extensions, build and
output directories, lockfiles, editor and VCS metadata) regardless of the
repository.
"""

from typing import List

from repomix_autotune.core.suggestion.backends.base import SuggestionBackend
from repomix_autotune.domain.constants import DEFAULT_IGNORE_PATTERNS


class DefaultPatternsBackend(SuggestionBackend):
    """Offline fallback that never fails."""

    name = "defaults"

    def suggest(self, prompt: str) -> List[str]:
        return list(DEFAULT_IGNORE_PATTERNS)
