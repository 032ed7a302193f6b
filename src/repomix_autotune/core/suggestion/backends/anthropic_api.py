from __future__ import annotations

"""
Anthropic Messages API Suggestion Backend.

Posts the prompt to the Messages endpoint over HTTPS and parses the JSON
array from the text blocks of the reply. Requires ANTHROPIC_API_KEY.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import requests

from repomix_autotune.core.suggestion.backends.base import SuggestionBackend
from repomix_autotune.core.suggestion.prompt import parse_pattern_array
from repomix_autotune.domain.constants import (
    ANTHROPIC_API_URL,
    ANTHROPIC_API_VERSION,
    ANTHROPIC_DEFAULT_MODEL,
    DEFAULT_SUGGESTION_TIMEOUT,
)
from repomix_autotune.domain.errors import SuggestionUnavailable

logger = logging.getLogger(__name__)

USER_AGENT = "repomix-autotune/0.1.0"
MAX_RESPONSE_TOKENS = 1024


class AnthropicApiBackend(SuggestionBackend):
    """
    Backend calling the Messages API with requests.
    """

    name = "anthropic-api"

    def __init__(
            self,
            model: Optional[str] = None,
            timeout: float = DEFAULT_SUGGESTION_TIMEOUT,
            api_key: Optional[str] = None,
            url: str = ANTHROPIC_API_URL
    ) -> None:
        self.model = model or ANTHROPIC_DEFAULT_MODEL
        self.timeout = timeout
        self.api_key = api_key
        self.url = url

    def suggest(self, prompt: str) -> List[str]:
        """
        Request patterns from the HTTP API.

        Raises:
            SuggestionUnavailable: On missing key, network error, timeout,
            HTTP error status or an answer without a valid array.
        """
        api_key = self.api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise SuggestionUnavailable("ANTHROPIC_API_KEY missing from environment variables.")

        headers = {
            "User-Agent": USER_AGENT,
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_API_VERSION,
            "content-type": "application/json",
        }
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": MAX_RESPONSE_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }

        logger.debug(f"Requesting ignore patterns from {self.url} (model={self.model})")
        try:
            response = requests.post(self.url, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            raise SuggestionUnavailable(f"Suggestion request timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise SuggestionUnavailable(f"Suggestion request failed: {e}") from e
        except ValueError as e:
            raise SuggestionUnavailable(f"Suggestion response is not JSON: {e}") from e

        text = _extract_text(data)
        patterns = parse_pattern_array(text)
        logger.debug(f"AI generated {len(patterns)} ignore patterns")
        return patterns


def _extract_text(data: Any) -> str:
    if not isinstance(data, dict):
        raise SuggestionUnavailable("Malformed API response (root is not an object)")
    blocks = data.get("content")
    if not isinstance(blocks, list):
        raise SuggestionUnavailable("Malformed API response (no content blocks)")
    parts = [
        b.get("text", "") for b in blocks
        if isinstance(b, dict) and b.get("type") == "text"
    ]
    return "\n".join(parts)
