from __future__ import annotations

"""
Partitioning Domain Data Models.

Defines the structures exchanged between the partitioner, the unit builder and
the interface layers, plus factory functions for run results.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from repomix_autotune.domain.budget import Assessment
from repomix_autotune.domain.rule_set import RuleSet
from repomix_autotune.domain.tree_models import PathNode

# -----------------------------------------------------------------------------
# SPLITTING MODELS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class SplitGroup:
    """
    One child subtree extracted from an over-budget parent.

    Attributes:
        member_directories: Directories packaged together (one per group).
        estimated_tokens: Final estimate with nested splits excluded.
        depth: Recursion depth of the resulting unit (parent depth + 1).
        rule_set: Exclusions before this group's own splits are merged.
        assessment: Final assessment of the group.
        children: Nested groups produced by recursing into this group.
        exclusions: Patterns excluding the nested groups from this one.
    """
    member_directories: Tuple[PathNode, ...]
    estimated_tokens: int
    depth: int
    rule_set: RuleSet
    assessment: Assessment
    children: Tuple["SplitGroup", ...] = field(default_factory=tuple)
    exclusions: RuleSet = field(default_factory=RuleSet)

    @property
    def root(self) -> PathNode:
        return self.member_directories[0]


@dataclass(frozen=True)
class SplitResult:
    """
    Outcome of splitting one subtree.

    Attributes:
        groups: Top-level groups in deterministic order.
        exclusions: '<child>/**' patterns for the parent's rule set.
        depth: Depth of the split subtree.
        warnings: Recovered conditions from nested levels, in group order.
    """
    groups: Tuple[SplitGroup, ...]
    exclusions: RuleSet
    depth: int
    warnings: Tuple[str, ...] = field(default_factory=tuple)

# -----------------------------------------------------------------------------
# PACKAGING UNIT MODELS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class PackagingUnit:
    """
    One persisted configuration and the artifact it produces.

    Attributes:
        name: Root-relative path of the unit ('.' for the root unit).
        source_root: Directory the configuration is written to.
        output_path: Absolute path of the artifact.
        rule_set: Final exclusions, split-off children included.
        depth: Recursion depth (0 for the root unit).
        estimated_tokens: Estimate reported for the unit.
        within_budget: Whether the estimate fits the effective limit.
        config_path: Absolute path of the configuration file.
    """
    name: str
    source_root: str
    output_path: str
    rule_set: RuleSet
    depth: int
    estimated_tokens: int
    within_budget: bool
    config_path: str

    @property
    def is_root(self) -> bool:
        return self.depth == 0


@dataclass(frozen=True)
class PersistOutcome:
    """
    Result of writing (or simulating) one unit.

    Attributes:
        unit: The unit concerned.
        written: True if the configuration file was written.
        validated: True if the packaging tool produced the artifact.
        actual_tokens: Token count reported by the packaging tool, if any.
        document: Rendered configuration document.
        warnings: Non-fatal validation problems.
    """
    unit: PackagingUnit
    written: bool
    validated: bool = False
    actual_tokens: Optional[int] = None
    document: Dict[str, Any] = field(default_factory=dict)
    warnings: Tuple[str, ...] = field(default_factory=tuple)

# -----------------------------------------------------------------------------
# RUN RESULT
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class RunResult:
    """
    Unified result of one autotune run.

    Attributes:
        ok: Flag indicating success or failure.
        error: Descriptive message in case of failure.
        exit_code: Process exit code for the CLI.
        target_dir: Normalized analyzed root.
        dry_run: True if nothing was persisted.
        units: Produced units, root first, then depth-first split order.
        warnings: Non-fatal conditions raised during the run.
        summary: Execution statistics.
    """
    ok: bool
    error: str
    exit_code: int
    target_dir: str
    dry_run: bool = False
    units: List[PackagingUnit] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)

    @property
    def over_budget_units(self) -> List[PackagingUnit]:
        return [u for u in self.units if not u.within_budget]

# -----------------------------------------------------------------------------
# FACTORY FUNCTIONS
# -----------------------------------------------------------------------------

def create_error_result(
        error: str,
        exit_code: int,
        target_dir: str,
        dry_run: bool = False,
        warnings: Optional[List[str]] = None,
        summary_extra: Optional[Dict[str, Any]] = None
) -> RunResult:
    """
    Create a failed run result instance.

    Args:
        error: Detailed error description.
        exit_code: Exit code the CLI should return.
        target_dir: The analyzed root.
        dry_run: Whether the run was a simulation.
        warnings: Warnings collected before the failure.
        summary_extra: Additional metadata for the summary payload.

    Returns:
        RunResult: An immutable error result object.
    """
    return RunResult(
        ok=False,
        error=error,
        exit_code=exit_code,
        target_dir=target_dir,
        dry_run=dry_run,
        warnings=list(warnings or []),
        summary=summary_extra or {},
    )


def create_success_result(
        target_dir: str,
        units: List[PackagingUnit],
        warnings: List[str],
        dry_run: bool = False,
        summary_extra: Optional[Dict[str, Any]] = None
) -> RunResult:
    """
    Create a successful run result instance.

    Args:
        target_dir: The analyzed root.
        units: Every produced packaging unit.
        warnings: Non-fatal conditions raised during the run.
        dry_run: Whether the run was a simulation.
        summary_extra: Execution metrics.

    Returns:
        RunResult: An immutable success result object.
    """
    return RunResult(
        ok=True,
        error="",
        exit_code=0,
        target_dir=target_dir,
        dry_run=dry_run,
        units=list(units),
        warnings=list(warnings),
        summary=summary_extra or {},
    )
