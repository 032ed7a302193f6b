from __future__ import annotations

"""
Packaging Tool Estimation Backend.

Runs repomix against the subtree with a temporary configuration identical to
the one persisted for units, and reads the token total from its summary.
Every temporary file lives in a private workspace that is removed before the
call returns, so concurrent measurements never collide.
"""

import json
import logging
import os
import re
import tempfile
from typing import Optional

from repomix_autotune.core.estimation.strategies.base import EstimatorBackend
from repomix_autotune.core.repomix_config import render_config_document
from repomix_autotune.domain.constants import BYTES_PER_TOKEN, DEFAULT_TOOL_TIMEOUT, REPOMIX_EXECUTABLE
from repomix_autotune.domain.errors import EstimationDegraded
from repomix_autotune.domain.rule_set import RuleSet
from repomix_autotune.infra.process import run_tool

logger = logging.getLogger(__name__)

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
_TOTAL_TOKENS_RE = re.compile(r"Total Tokens:\s*([0-9][0-9,]*)")

MEASURE_CONFIG_NAME = "measure.config.json"
MEASURE_OUTPUT_NAME = "measure.xml"


def parse_total_tokens(output: str) -> Optional[int]:
    """
    Extract the 'Total Tokens: N' figure from the tool's summary.

    Colour codes and thousands separators are stripped.

    Returns:
        Optional[int]: The count, or None if the summary has no total.
    """
    clean = _ANSI_RE.sub("", output or "")
    match = _TOTAL_TOKENS_RE.search(clean)
    if not match:
        return None
    return int(match.group(1).replace(",", ""))


class RepomixBackend(EstimatorBackend):
    """
    Primary backend measuring with the packaging tool itself.
    """

    name = "repomix"

    def __init__(self, executable: str = REPOMIX_EXECUTABLE, timeout: float = DEFAULT_TOOL_TIMEOUT) -> None:
        self.executable = executable
        self.timeout = timeout

    def count(self, subtree_root: str, rule_set: RuleSet, encoding: str) -> int:
        """
        Measure the subtree by packaging it into a throwaway artifact.

        Args:
            subtree_root: Absolute path of the subtree.
            rule_set: Exclusions relative to subtree_root.
            encoding: Tokenizer encoding passed to the tool.

        Returns:
            int: Token count reported by the tool, or artifact_bytes // 4 when
            the summary reports zero but an artifact exists.

        Raises:
            EstimationDegraded: If the tool failed, timed out or produced
            nothing usable.
        """
        with tempfile.TemporaryDirectory(prefix="repomix-autotune-") as workspace:
            config_path = os.path.join(workspace, MEASURE_CONFIG_NAME)
            output_path = os.path.join(workspace, MEASURE_OUTPUT_NAME)

            document = render_config_document(output_path, rule_set, encoding)
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)

            result = run_tool(
                [self.executable, "--config", config_path, "--output", output_path],
                cwd=subtree_root,
                timeout=self.timeout,
            )

            if result.timed_out:
                raise EstimationDegraded(f"{self.executable} timed out after {self.timeout}s")
            if not result.ok:
                detail = result.error or (result.stderr or "").strip()[:200]
                raise EstimationDegraded(f"{self.executable} failed (exit {result.returncode}): {detail}")

            tokens = parse_total_tokens(result.stdout + "\n" + result.stderr)
            if tokens:
                return tokens

            if os.path.isfile(output_path):
                estimated = os.path.getsize(output_path) // BYTES_PER_TOKEN
                logger.debug(f"No token total in summary; estimated {estimated} from artifact size")
                return estimated

        raise EstimationDegraded(f"{self.executable} reported no token count for {subtree_root}")
