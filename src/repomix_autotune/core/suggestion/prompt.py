from __future__ import annotations

"""
Suggestion Prompt and Response Parsing.

Holds the fixed instruction prompt sent to the suggestion service and the
parser that recovers a JSON array of glob patterns from its free-text answer.
"""

import json
import re
from typing import List

from repomix_autotune.domain.errors import SuggestionUnavailable

PROMPT_TEMPLATE = """\
You are an expert at analyzing code repositories and generating optimal ignore patterns for AI/LLM processing tools like repomix.

Your task is to analyze the repository information below and generate ignore patterns that will:
1. Remove files that add noise for LLMs (favicons, binaries, SQLite DBs, build artifacts, generated files)
2. Keep essential source code, documentation, and configuration files
3. Target a final output of ~{target_tokens:,} tokens or less

Based on the repository information provided, generate a JSON array of ignore patterns using fast-glob syntax. Focus on:

- Binary files (images, videos, audio, executables, archives)
- Build artifacts and generated files (dist/, build/, target/, node_modules/, __pycache__/, .git/)
- IDE and editor files (.vscode/, .idea/, *.swp, *.tmp)
- Log files and temporary files (*.log, *.tmp, *.cache)
- Database files (*.db, *.sqlite, *.sqlite3)
- Large data files and assets that don't contribute to code understanding
- Minified files (*.min.js, *.min.css)
- Documentation assets (if excessive) like screenshots in docs/

Return ONLY a valid JSON array of patterns, no other text. Example format:
["node_modules/**", "*.log", "dist/**", "*.min.js", "*.sqlite"]

Repository Information:
"""

_LINE_ARRAY_RE = re.compile(r"\[.*\]")
_SPANNING_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)


def build_prompt(digest: str, target_tokens: int) -> str:
    """Append a repository digest to the fixed instruction prompt."""
    return PROMPT_TEMPLATE.format(target_tokens=target_tokens) + digest


def parse_pattern_array(raw: str) -> List[str]:
    """
    Extract the glob array from a free-text service answer.

    Bracketed spans confined to one line are tried first, in answer order, so
    brackets in surrounding prose do not spoil the answer. A span covering
    several lines (a pretty-printed array) is tried last. The first span
    decoding to an array of strings wins; blank entries are dropped.

    Args:
        raw: Raw service output.

    Returns:
        List[str]: Patterns in answer order.

    Raises:
        SuggestionUnavailable: If no valid array of strings is present.
    """
    text = raw or ""
    candidates = [m.group(0) for m in _LINE_ARRAY_RE.finditer(text)]
    spanning = _SPANNING_ARRAY_RE.search(text)
    if spanning:
        candidates.append(spanning.group(0))
    if not candidates:
        raise SuggestionUnavailable("Could not extract a JSON array from the suggestion output")

    last_error = "Suggestion output is not an array of strings"
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except ValueError as e:
            last_error = f"Suggestion output is not valid JSON: {e}"
            continue
        if isinstance(data, list) and all(isinstance(p, str) for p in data):
            return [p.strip() for p in data if p.strip()]
        last_error = "Suggestion output is not an array of strings"

    raise SuggestionUnavailable(last_error)
