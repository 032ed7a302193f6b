from __future__ import annotations

"""
Error Taxonomy.

Fatal errors carry the process exit code the CLI reports for them. Recoverable
conditions (degraded estimation, unavailable suggestions, impossible splits,
depth ceiling) are raised at their source and handled one level up, where
they are downgraded to warnings.
"""

from typing import List, Optional

from repomix_autotune.domain.constants import (
    EXIT_CONFIG_CONFLICT,
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_INVALID_ARGS,
    EXIT_MISSING_TOOL,
)


class AutotuneError(Exception):
    """Base exception for all repomix-autotune errors."""

    exit_code: int = EXIT_FAILURE


# -----------------------------------------------------------------------------
# FATAL
# -----------------------------------------------------------------------------

class EnvironmentCheckError(AutotuneError):
    """The analyzed root is missing or unreadable."""


class MissingToolError(EnvironmentCheckError):
    """A required external executable is not installed."""

    exit_code = EXIT_MISSING_TOOL

    def __init__(self, tools: List[str]):
        self.tools = list(tools)
        super().__init__(
            f"Missing required dependencies: {', '.join(self.tools)}. "
            "Please install the missing tools and try again."
        )


class InvalidArgumentsError(AutotuneError):
    """A CLI argument or configuration value is out of range."""

    exit_code = EXIT_INVALID_ARGS


class ConflictError(AutotuneError):
    """A configuration artifact already exists and overwriting was not forced."""

    exit_code = EXIT_CONFIG_CONFLICT

    def __init__(self, paths: List[str]):
        self.paths = list(paths)
        super().__init__(
            f"Configuration already exists: {', '.join(self.paths)}. "
            "Use -f/--force to overwrite."
        )


class RunCancelled(AutotuneError):
    """The run was aborted at a subtree boundary."""

    exit_code = EXIT_INTERRUPTED


# -----------------------------------------------------------------------------
# RECOVERABLE
# -----------------------------------------------------------------------------

class EstimationDegraded(AutotuneError):
    """The packaging tool failed, timed out or reported nothing usable."""


class SuggestionUnavailable(AutotuneError):
    """The suggestion service failed or returned an invalid structure."""


class NoSplitPossible(AutotuneError):
    """The subtree has no child directories to extract."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"No directories available for splitting in {path}")


class DepthExceeded(AutotuneError):
    """Recursion reached the depth ceiling while still over budget."""

    def __init__(self, path: str, depth: int, max_depth: Optional[int] = None):
        self.path = path
        self.depth = depth
        suffix = f" (max {max_depth})" if max_depth is not None else ""
        super().__init__(f"Maximum recursion depth reached at {path}: depth {depth}{suffix}")
