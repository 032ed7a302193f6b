from __future__ import annotations

"""
Local BPE Estimation Backend.

Counts tokens offline with tiktoken over the concatenated text of every
non-excluded file. Binary files (undecodable as UTF-8) are skipped.
"""

import logging
from typing import Any, Dict

import tiktoken

from repomix_autotune.core.estimation.strategies.base import EstimatorBackend
from repomix_autotune.core.scanner import yield_included_files
from repomix_autotune.domain.errors import EstimationDegraded
from repomix_autotune.domain.rule_set import RuleSet

logger = logging.getLogger(__name__)

# Loaded encodings are shared across threads and calls
_ENCODING_CACHE: Dict[str, Any] = {}


def _get_encoding(name: str) -> Any:
    if name not in _ENCODING_CACHE:
        logger.debug(f"Loading tiktoken encoding '{name}'...")
        _ENCODING_CACHE[name] = tiktoken.get_encoding(name)
    return _ENCODING_CACHE[name]


class TiktokenBackend(EstimatorBackend):
    """
    Offline backend encoding file contents with tiktoken.
    """

    name = "tiktoken"

    def count(self, subtree_root: str, rule_set: RuleSet, encoding: str) -> int:
        """
        Encode every included text file and sum the token counts.

        Args:
            subtree_root: Absolute path of the subtree.
            rule_set: Exclusions relative to subtree_root.
            encoding: tiktoken encoding name (e.g. 'o200k_base').

        Returns:
            int: Total token count.

        Raises:
            EstimationDegraded: If the encoding cannot be loaded.
        """
        try:
            encoder = _get_encoding(encoding)
        except (ValueError, KeyError) as e:
            raise EstimationDegraded(f"Unknown tiktoken encoding '{encoding}': {e}") from e

        total = 0
        for abs_path, rel_path in yield_included_files(subtree_root, rule_set):
            try:
                with open(abs_path, "r", encoding="utf-8") as f:
                    text = f.read()
            except UnicodeDecodeError:
                logger.debug(f"Skipping binary file: {rel_path}")
                continue
            except OSError as e:
                logger.debug(f"Skipping unreadable file {rel_path}: {e}")
                continue
            if text:
                total += len(encoder.encode(text, disallowed_special=()))
        return total
