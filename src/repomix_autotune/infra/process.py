from __future__ import annotations

"""
External Process Infrastructure.

Thin wrappers around subprocess for the command-line collaborators
(the packaging tool and the suggestion CLI), plus pre-flight resolution of
the executables a run depends on.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from repomix_autotune.domain.constants import CLAUDE_EXECUTABLE, REPOMIX_EXECUTABLE
from repomix_autotune.domain.errors import InvalidArgumentsError, MissingToolError

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# PROCESS MODELS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolResult:
    """
    Captured outcome of one external command.

    Attributes:
        returncode: Exit status (None if the process never completed).
        stdout: Captured standard output.
        stderr: Captured standard error.
        timed_out: True if the timeout elapsed.
        error: Launch failure description, empty on success.
    """
    returncode: Optional[int]
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out and not self.error

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def run_tool(
        args: Sequence[str],
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
        input_text: Optional[str] = None,
) -> ToolResult:
    """
    Run an external command and capture its output without raising.

    Args:
        args: Command and arguments.
        cwd: Working directory.
        timeout: Seconds before the process is killed.
        input_text: Optional payload written to stdin.

    Returns:
        ToolResult: Captured outcome. Launch failures and timeouts are
        reported through the result, never raised.
    """
    logger.debug(f"Executing: {' '.join(args)} (cwd={cwd}, timeout={timeout})")
    try:
        completed = subprocess.run(
            list(args),
            cwd=cwd,
            input=input_text,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.debug(f"Command timed out after {timeout}s: {args[0]}")
        return ToolResult(returncode=None, timed_out=True)
    except (FileNotFoundError, PermissionError) as e:
        logger.debug(f"Command could not be launched: {e}")
        return ToolResult(returncode=None, error=str(e))
    except OSError as e:
        logger.debug(f"Command failed at OS level: {e}")
        return ToolResult(returncode=None, error=str(e))

    return ToolResult(
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


def which(executable: str) -> Optional[str]:
    """Resolve an executable on PATH."""
    return shutil.which(executable)


def required_tools(config: Dict[str, Any]) -> List[str]:
    """
    List the executables a run with this configuration depends on.

    Args:
        config: Validated configuration dictionary.

    Returns:
        List[str]: Executable names in a stable order.
    """
    tools: List[str] = []
    needs_repomix = config.get("estimator") == "repomix" or (
        not config.get("dry_run") and config.get("validate_units")
    )
    if needs_repomix:
        tools.append(REPOMIX_EXECUTABLE)
    if not config.get("skip_ai") and config.get("suggester") == "claude-cli":
        tools.append(CLAUDE_EXECUTABLE)
    return tools


def check_dependencies(config: Dict[str, Any]) -> None:
    """
    Verify every external collaborator is reachable before any work starts.

    Args:
        config: Validated configuration dictionary.

    Raises:
        MissingToolError: If a required executable is not on PATH.
        InvalidArgumentsError: If the HTTP suggestion backend lacks its API key.
    """
    missing = [tool for tool in required_tools(config) if which(tool) is None]
    if missing:
        logger.error(f"Missing required dependencies: {', '.join(missing)}")
        raise MissingToolError(missing)

    if not config.get("skip_ai") and config.get("suggester") == "anthropic-api":
        if not os.environ.get("ANTHROPIC_API_KEY"):
            raise InvalidArgumentsError(
                "ANTHROPIC_API_KEY must be set to use the anthropic-api suggester."
            )

    logger.debug("Dependency check passed.")
