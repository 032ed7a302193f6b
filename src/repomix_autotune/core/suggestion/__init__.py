from __future__ import annotations

"""
Pattern Suggestion Package.

Facade exposing the suggestion service, its backends and the digest helpers.
"""

from repomix_autotune.core.suggestion.backends import (
    AnthropicApiBackend,
    ClaudeCliBackend,
    DefaultPatternsBackend,
    SuggestionBackend,
)
from repomix_autotune.core.suggestion.digest import build_repository_digest
from repomix_autotune.core.suggestion.prompt import build_prompt, parse_pattern_array
from repomix_autotune.core.suggestion.suggester import PatternSuggester, create_suggester

__all__ = [
    "PatternSuggester",
    "create_suggester",
    "SuggestionBackend",
    "ClaudeCliBackend",
    "AnthropicApiBackend",
    "DefaultPatternsBackend",
    "build_repository_digest",
    "build_prompt",
    "parse_pattern_array",
]
