from __future__ import annotations

"""
Recursive Subtree Partitioner.

Splits an over-budget subtree by extracting its largest immediate child
directories (by file count) until roughly half of its files are covered.
Each extracted child becomes a packaging unit of its own and is assessed and,
if still over budget, split again, down to the depth ceiling. What is not
extracted stays with the parent unit, which receives one '<child>/**'
exclusion per extracted child.

The algorithm is deterministic: children are ordered by descending file count
with ties broken by path, and concurrent evaluation of siblings is merged back
in that same order.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from repomix_autotune.core.assessor import Assessor
from repomix_autotune.core.scanner import scan_tree
from repomix_autotune.core.suggestion import PatternSuggester
from repomix_autotune.domain.budget import Assessment
from repomix_autotune.domain.constants import (
    FALLBACK_SPLIT_LIMIT,
    MAX_RECURSION_DEPTH,
    SPLIT_EXCLUSION_SUFFIX,
    SPLIT_EXTRACTION_RATIO,
)
from repomix_autotune.domain.errors import DepthExceeded, NoSplitPossible, RunCancelled
from repomix_autotune.domain.partition_models import SplitGroup, SplitResult
from repomix_autotune.domain.rule_set import RuleSet
from repomix_autotune.domain.tree_models import PathNode

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# SELECTION POLICY
# -----------------------------------------------------------------------------

def split_candidates(node: PathNode) -> List[PathNode]:
    """
    Immediate child directories eligible for extraction, largest first.

    Hidden directories are never candidates. Ties are broken by path.
    """
    return sorted((c for c in node.children if not c.is_hidden), key=PathNode.sort_key)


def select_split_directories(node: PathNode) -> List[PathNode]:
    """
    Choose the children to extract from an over-budget subtree.

    Children are taken largest first while the accumulated file count is
    below half of the subtree's total. If that selects nothing, up to three
    candidates are taken in lexicographic order.

    Args:
        node: Snapshot of the subtree.

    Returns:
        List[PathNode]: Selected children in processing order (may be empty).
    """
    candidates = split_candidates(node)
    target_files = int(node.file_count * SPLIT_EXTRACTION_RATIO)

    selected: List[PathNode] = []
    accumulated = 0
    for child in candidates:
        if accumulated >= target_files:
            break
        if child.file_count == 0:
            continue
        selected.append(child)
        accumulated += child.file_count
        logger.debug(f"Selected {child.name} for splitting ({child.file_count} files)")

    if not selected and candidates:
        logger.debug("No suitable directories for splitting, trying alphabetical fallback")
        selected = sorted(candidates, key=lambda c: c.path)[:FALLBACK_SPLIT_LIMIT]

    return selected


def exclusion_for(child: PathNode) -> str:
    """Parent-relative pattern excluding a split-off child."""
    return f"{child.name}{SPLIT_EXCLUSION_SUFFIX}"

# -----------------------------------------------------------------------------
# PARTITIONER
# -----------------------------------------------------------------------------

class Partitioner:
    """
    Recursive splitting engine.

    Args:
        assessor: Budget-bound assessor.
        suggester: Source of per-subtree exclusion patterns.
        max_depth: Recursion ceiling (unit depth never exceeds it).
        jobs: Worker threads for sibling subtrees (1 = sequential).
        cancel_event: Optional event aborting the run at subtree boundaries.
            It is also set when a sibling fails or the caller is interrupted,
            so queued siblings never start.
    """

    def __init__(
            self,
            assessor: Assessor,
            suggester: PatternSuggester,
            max_depth: int = MAX_RECURSION_DEPTH,
            jobs: int = 1,
            cancel_event: Optional[threading.Event] = None
    ) -> None:
        self.assessor = assessor
        self.suggester = suggester
        self.max_depth = max_depth
        self.jobs = max(1, jobs)
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()

    def split(self, subtree_root: str, rule_set: RuleSet, assessment: Assessment, depth: int) -> SplitResult:
        """
        Split an over-budget subtree.

        Args:
            subtree_root: Absolute path of the subtree.
            rule_set: Exclusions currently applied to the subtree.
            assessment: Its over-budget assessment.
            depth: Depth of the subtree (0 for the analyzed root).

        Returns:
            SplitResult: Extracted groups in deterministic order and the
            exclusions the subtree must merge.

        Raises:
            ValueError: If the subtree is within budget.
            DepthExceeded: If depth is already at the ceiling.
            NoSplitPossible: If the subtree has no child directory to extract.
            RunCancelled: If the cancel event is set.
        """
        if assessment.within_budget:
            raise ValueError(f"Subtree is within budget, nothing to split: {subtree_root}")
        if depth >= self.max_depth:
            raise DepthExceeded(subtree_root, depth, self.max_depth)
        self._check_cancelled()

        logger.info(
            f"Splitting {subtree_root} (tokens: {assessment.estimated_tokens}, depth: {depth}, "
            f"recommended splits: {assessment.recommended_splits})"
        )

        node = scan_tree(subtree_root, rule_set.merge(self.assessor.ignored))
        selected = select_split_directories(node)
        if not selected:
            raise NoSplitPossible(subtree_root)

        evaluated = self._evaluate_all(selected, rule_set, depth)
        groups = tuple(group for group, _ in evaluated)
        warnings: Tuple[str, ...] = tuple(w for _, ws in evaluated for w in ws)
        exclusions = RuleSet.of(exclusion_for(child) for child in selected)

        return SplitResult(groups=groups, exclusions=exclusions, depth=depth, warnings=warnings)

    # -------------------------------------------------------------------------
    # INTERNALS
    # -------------------------------------------------------------------------

    def _evaluate_all(
            self,
            selected: Sequence[PathNode],
            parent_rules: RuleSet,
            depth: int
    ) -> List[Tuple[SplitGroup, List[str]]]:
        def worker(child: PathNode) -> Tuple[SplitGroup, List[str]]:
            try:
                return self._evaluate_child(child, parent_rules, depth)
            except BaseException:
                # Siblings still queued must see the failure before they start
                self.cancel_event.set()
                raise

        if self.jobs == 1 or len(selected) == 1:
            return [self._evaluate_child(child, parent_rules, depth) for child in selected]

        executor = ThreadPoolExecutor(max_workers=min(self.jobs, len(selected)))
        futures = [executor.submit(worker, child) for child in selected]
        try:
            results = [f.result() for f in futures]
        except BaseException as e:
            self.cancel_event.set()
            executor.shutdown(wait=True, cancel_futures=True)
            if isinstance(e, RunCancelled):
                root_cause = _first_failure(futures)
                if root_cause is not None:
                    raise root_cause from None
            raise
        executor.shutdown(wait=True)
        return results

    def _evaluate_child(
            self,
            child: PathNode,
            parent_rules: RuleSet,
            depth: int
    ) -> Tuple[SplitGroup, List[str]]:
        self._check_cancelled()
        child_depth = depth + 1
        warnings: List[str] = []

        child_rules = self.suggester.suggest(child.path).merge(parent_rules.rebase(child.name))
        assessment = self.assessor.assess(child.path, child_rules)

        nested: Optional[SplitResult] = None
        if not assessment.within_budget:
            if child_depth < self.max_depth:
                logger.debug(f"Subdirectory {child.name} still exceeds limit ({assessment.estimated_tokens} tokens), recursing")
                try:
                    nested = self.split(child.path, child_rules, assessment, child_depth)
                except NoSplitPossible as e:
                    logger.warning(f"{e}; keeping it as one over-budget unit")
                    warnings.append(str(e))
            else:
                e = DepthExceeded(child.path, child_depth, self.max_depth)
                logger.warning(f"{e}; keeping it as one over-budget unit")
                warnings.append(str(e))

        final_assessment = assessment
        exclusions = RuleSet()
        children: Tuple[SplitGroup, ...] = ()
        if nested is not None:
            warnings.extend(nested.warnings)
            exclusions = nested.exclusions
            children = nested.groups
            # Reporting only: the child keeps what its own splits did not extract
            final_assessment = self.assessor.assess(child.path, child_rules.merge(exclusions))

        group = SplitGroup(
            member_directories=(child,),
            estimated_tokens=final_assessment.estimated_tokens,
            depth=child_depth,
            rule_set=child_rules,
            assessment=final_assessment,
            children=children,
            exclusions=exclusions,
        )
        return group, warnings

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise RunCancelled("Run cancelled between subtrees")


def _first_failure(futures: Sequence[Future]) -> Optional[BaseException]:
    """First sibling error that is not the cancellation it triggered."""
    for future in futures:
        if future.cancelled():
            continue
        error = future.exception()
        if error is not None and not isinstance(error, RunCancelled):
            return error
    return None
