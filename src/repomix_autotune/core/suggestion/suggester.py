from __future__ import annotations

"""
Exclusion Pattern Suggestion Service.

Builds the repository digest for a subtree, asks the configured backend for
exclusion globs and falls back to the built-in list whenever the backend is
skipped, fails or answers with something unusable.
"""

import logging
import threading
from typing import Optional

from repomix_autotune.core.suggestion.backends import (
    AnthropicApiBackend,
    ClaudeCliBackend,
    DefaultPatternsBackend,
    SuggestionBackend,
)
from repomix_autotune.core.suggestion.digest import build_repository_digest
from repomix_autotune.core.suggestion.prompt import build_prompt
from repomix_autotune.domain.constants import DEFAULT_SUGGESTION_TIMEOUT, DEFAULT_TARGET_TOKENS
from repomix_autotune.domain.errors import SuggestionUnavailable
from repomix_autotune.domain.rule_set import RuleSet

logger = logging.getLogger(__name__)


class PatternSuggester:
    """
    Facade producing a RuleSet of suggested exclusions per subtree.

    Thread-safe. The number of fallbacks to the built-in list is tracked for
    the run summary.
    """

    def __init__(
            self,
            backend: Optional[SuggestionBackend] = None,
            target_tokens: int = DEFAULT_TARGET_TOKENS,
            skip_ai: bool = False,
            fallback: Optional[SuggestionBackend] = None
    ) -> None:
        self.backend = backend or DefaultPatternsBackend()
        self.fallback = fallback or DefaultPatternsBackend()
        self.target_tokens = target_tokens
        self.skip_ai = skip_ai
        self._lock = threading.Lock()
        self._fallbacks = 0

    @property
    def fallback_count(self) -> int:
        with self._lock:
            return self._fallbacks

    def suggest(self, subtree_root: str) -> RuleSet:
        """
        Suggest exclusions for one subtree.

        Args:
            subtree_root: Absolute path of the subtree.

        Returns:
            RuleSet: Suggested patterns (never empty-handed on failure).
        """
        if self.skip_ai:
            logger.debug(f"Skipping AI pattern generation for {subtree_root}, using defaults")
            return RuleSet.of(self.fallback.suggest(""))

        logger.info(f"Generating AI ignore patterns for: {subtree_root}")
        prompt = build_prompt(build_repository_digest(subtree_root), self.target_tokens)
        try:
            patterns = self.backend.suggest(prompt)
        except SuggestionUnavailable as e:
            logger.warning(f"{e}. Falling back to default patterns")
            with self._lock:
                self._fallbacks += 1
            return RuleSet.of(self.fallback.suggest(prompt))

        logger.debug(f"Generated patterns: {sorted(patterns)}")
        return RuleSet.of(patterns)


def create_suggester(
        name: str,
        target_tokens: int = DEFAULT_TARGET_TOKENS,
        skip_ai: bool = False,
        timeout: float = DEFAULT_SUGGESTION_TIMEOUT,
        model: str = ""
) -> PatternSuggester:
    """
    Build the suggester for a configured backend name.

    Args:
        name: 'claude-cli' or 'anthropic-api'.
        target_tokens: Token target quoted in the prompt.
        skip_ai: Always use the built-in patterns.
        timeout: Seconds allowed for one suggestion call.
        model: Model override for the HTTP backend.

    Raises:
        ValueError: If the name is unknown.
    """
    if name == "claude-cli":
        backend: SuggestionBackend = ClaudeCliBackend(timeout=timeout)
    elif name == "anthropic-api":
        backend = AnthropicApiBackend(model=model or None, timeout=timeout)
    else:
        raise ValueError(f"Unknown suggestion backend: {name}")
    return PatternSuggester(backend=backend, target_tokens=target_tokens, skip_ai=skip_ai)
