from __future__ import annotations

"""
Claude CLI Suggestion Backend.

Sends the prompt to the locally installed 'claude' command in print mode and
parses the JSON array from its answer.
"""

import logging
from typing import List

from repomix_autotune.core.suggestion.backends.base import SuggestionBackend
from repomix_autotune.core.suggestion.prompt import parse_pattern_array
from repomix_autotune.domain.constants import CLAUDE_EXECUTABLE, DEFAULT_SUGGESTION_TIMEOUT
from repomix_autotune.domain.errors import SuggestionUnavailable
from repomix_autotune.infra.process import run_tool

logger = logging.getLogger(__name__)


class ClaudeCliBackend(SuggestionBackend):
    """
    Backend invoking 'claude -p' with the prompt on stdin.
    """

    name = "claude-cli"

    def __init__(self, executable: str = CLAUDE_EXECUTABLE, timeout: float = DEFAULT_SUGGESTION_TIMEOUT) -> None:
        self.executable = executable
        self.timeout = timeout

    def suggest(self, prompt: str) -> List[str]:
        """
        Ask the CLI for patterns.

        Raises:
            SuggestionUnavailable: On launch failure, timeout, non-zero exit or
            an answer without a valid array.
        """
        logger.debug("Calling Claude CLI to generate ignore patterns...")
        result = run_tool([self.executable, "-p"], input_text=prompt, timeout=self.timeout)

        if result.timed_out:
            raise SuggestionUnavailable(f"{self.executable} timed out after {self.timeout}s")
        if not result.ok:
            detail = result.error or (result.stderr or "").strip()[:200]
            raise SuggestionUnavailable(f"Failed to call {self.executable} (exit {result.returncode}): {detail}")

        patterns = parse_pattern_array(result.stdout)
        logger.debug(f"AI generated {len(patterns)} ignore patterns")
        return patterns
