from __future__ import annotations

from .anthropic_api import AnthropicApiBackend
from .base import SuggestionBackend
from .claude_cli import ClaudeCliBackend
from .defaults import DefaultPatternsBackend

__all__ = [
    "SuggestionBackend",
    "ClaudeCliBackend",
    "AnthropicApiBackend",
    "DefaultPatternsBackend",
]
