from __future__ import annotations

"""
Core orchestration pipeline.

This module coordinates the entire autotune workflow:
1. Validates configuration and the analyzed root.
2. Checks external tools, then the root configuration for an overwrite conflict.
3. Suggests root exclusions and assesses the root against the budget.
4. Splits the root recursively while it is over budget.
5. Builds every packaging unit (root first, then depth-first split order).
6. Checks every planned configuration path for conflicts.
7. Persists (or, in dry-run mode, only renders) each unit.
"""

import logging
import os
import threading
import time
from typing import Any, Dict, List, Optional, Union

from repomix_autotune.core.assessor import Assessor
from repomix_autotune.core.estimation import EstimatorBackend, TokenEstimator, create_estimator
from repomix_autotune.core.partitioner import Partitioner
from repomix_autotune.core.pipeline.validator import validate_config
from repomix_autotune.core.suggestion import PatternSuggester, SuggestionBackend, create_suggester
from repomix_autotune.core.unit_builder import UnitBuilder
from repomix_autotune.domain.config import RunConfig
from repomix_autotune.domain.constants import EXIT_FAILURE, REPOMIX_CONFIG_NAME, TOOL_ARTIFACT_PATTERNS
from repomix_autotune.domain.errors import (
    AutotuneError,
    ConflictError,
    EnvironmentCheckError,
    NoSplitPossible,
)
from repomix_autotune.domain.partition_models import (
    PackagingUnit,
    RunResult,
    SplitResult,
    create_error_result,
    create_success_result,
)
from repomix_autotune.domain.rule_set import RuleSet
from repomix_autotune.infra.fs import check_existing_files, is_readable_dir, normalize_path
from repomix_autotune.infra.process import check_dependencies

logger = logging.getLogger(__name__)


def run_autotune(
        config: Optional[Dict[str, Any]],
        *,
        estimator: Optional[Union[TokenEstimator, EstimatorBackend]] = None,
        suggester: Optional[Union[PatternSuggester, SuggestionBackend]] = None,
        cancel_event: Optional[threading.Event] = None,
) -> RunResult:
    """
    Execute the full assess, split, build and persist workflow.

    Backends not injected are created from the configuration, and the
    external tools they need are checked before any work starts.

    Args:
        config: The configuration dictionary (raw or partial).
        estimator: Estimator facade or backend to use instead of the configured one.
        suggester: Suggester facade or backend to use instead of the configured one.
        cancel_event: Event aborting the run at the next subtree boundary.

    Returns:
        RunResult: Object containing status, units, warnings and summary.
    """
    logger.info("Autotune run started.")
    started = time.monotonic()
    target_hint = (config or {}).get("target_dir", "") if isinstance(config, dict) else ""

    # -------------------------------------------------------------------------
    # 1) Config & Root Validation
    # -------------------------------------------------------------------------
    try:
        cfg, warnings = validate_config(config, strict=False)
    except AutotuneError as e:
        logger.error(str(e))
        return create_error_result(str(e), e.exit_code, str(target_hint))

    for warning in warnings:
        logger.warning(f"Configuration Warning: {warning}")

    target_dir = normalize_path(cfg.get("target_dir", ""), os.getcwd())
    cfg["target_dir"] = target_dir
    run_cfg = RunConfig.from_dict(cfg)
    dry_run = run_cfg.dry_run

    try:
        if not is_readable_dir(target_dir):
            raise EnvironmentCheckError(f"Invalid target directory: {target_dir}")

        # ---------------------------------------------------------------------
        # 2) Pre-flight & Root Conflict Check
        # ---------------------------------------------------------------------
        check_dependencies(_preflight_view(cfg, estimator is not None, suggester is not None))

        logger.info(f"Analyzing repository: {target_dir}")
        if not os.path.isdir(os.path.join(target_dir, ".git")):
            logger.warning("Not a git repository, some features may be limited")

        root_config = os.path.join(target_dir, REPOMIX_CONFIG_NAME)
        if not run_cfg.force and os.path.exists(root_config):
            raise ConflictError([root_config])

        budget = run_cfg.budget()
        token_estimator = _resolve_estimator(estimator, run_cfg)
        pattern_suggester = _resolve_suggester(suggester, run_cfg)
        assessor = Assessor(token_estimator, budget, ignored=RuleSet.of(TOOL_ARTIFACT_PATTERNS))
        partitioner = Partitioner(
            assessor,
            pattern_suggester,
            max_depth=run_cfg.max_depth,
            jobs=run_cfg.jobs,
            cancel_event=cancel_event,
        )
        builder = UnitBuilder(
            target_dir,
            budget,
            output_dir=run_cfg.output_dir,
            dry_run=dry_run,
            validate=run_cfg.validate_units,
            tool_timeout=run_cfg.tool_timeout,
        )

        # ---------------------------------------------------------------------
        # 3) Root Assessment
        # ---------------------------------------------------------------------
        root_rules = pattern_suggester.suggest(target_dir)
        assessment = assessor.assess(target_dir, root_rules)
        logger.info(
            f"Initial token count: {assessment.estimated_tokens} "
            f"(target: {budget.target_tokens}, effective limit: {budget.effective_limit})"
        )

        # ---------------------------------------------------------------------
        # 4) Recursive Splitting
        # ---------------------------------------------------------------------
        split: Optional[SplitResult] = None
        final_rules = root_rules
        final_assessment = assessment

        if assessment.within_budget:
            logger.info("Token count within limits, no splitting required")
        else:
            logger.info("Token count exceeds limit, initiating repository splitting...")
            try:
                split = partitioner.split(target_dir, root_rules, assessment, 0)
            except NoSplitPossible as e:
                msg = f"{e}; using a single over-budget configuration"
                logger.warning(msg)
                warnings.append(msg)

            if split is not None:
                warnings.extend(split.warnings)
                final_rules = root_rules.merge(split.exclusions)
                final_assessment = assessor.assess(target_dir, final_rules)
                logger.info(f"Final root token count: {final_assessment.estimated_tokens}")

        # ---------------------------------------------------------------------
        # 5) Unit Construction
        # ---------------------------------------------------------------------
        units: List[PackagingUnit] = [
            builder.build(
                source_root=target_dir,
                rule_set=final_rules,
                depth=0,
                estimated_tokens=final_assessment.estimated_tokens,
                within_budget=final_assessment.within_budget,
            )
        ]
        if split is not None:
            for group in split.groups:
                units.extend(builder.build_group(group))

        # ---------------------------------------------------------------------
        # 6) Conflict Check on Every Planned Configuration
        # ---------------------------------------------------------------------
        if not dry_run and not run_cfg.force:
            existing = check_existing_files([u.config_path for u in units])
            if existing:
                raise ConflictError(existing)

        # ---------------------------------------------------------------------
        # 7) Persistence
        # ---------------------------------------------------------------------
        actual_tokens: Dict[str, Optional[int]] = {}
        for unit in units:
            outcome = builder.persist(unit)
            actual_tokens[unit.name] = outcome.actual_tokens
            warnings.extend(outcome.warnings)

    except AutotuneError as e:
        logger.error(str(e))
        return create_error_result(str(e), e.exit_code, target_dir, dry_run=dry_run, warnings=warnings)
    except OSError as e:
        msg = f"Failed to write configuration: {e}"
        logger.critical(msg)
        return create_error_result(msg, EXIT_FAILURE, target_dir, dry_run=dry_run, warnings=warnings)

    for unit in units:
        if not unit.within_budget:
            msg = (
                f"Unit '{unit.name}' is over budget: {unit.estimated_tokens} tokens "
                f"(limit {budget.effective_limit})"
            )
            logger.warning(msg)
            warnings.append(msg)

    summary = {
        "target_tokens": budget.target_tokens,
        "effective_limit": budget.effective_limit,
        "encoding": budget.encoding,
        "unit_count": len(units),
        "over_budget_count": sum(1 for u in units if not u.within_budget),
        "split": split is not None,
        "assessments": assessor.call_count,
        "suggestion_fallbacks": pattern_suggester.fallback_count,
        "elapsed_seconds": round(time.monotonic() - started, 3),
        "units": [
            {
                "name": u.name,
                "depth": u.depth,
                "estimated_tokens": u.estimated_tokens,
                "actual_tokens": actual_tokens.get(u.name),
                "within_budget": u.within_budget,
                "config_path": u.config_path,
                "output_path": u.output_path,
            }
            for u in units
        ],
    }

    logger.info("Configuration generation completed!")
    return create_success_result(target_dir, units, warnings, dry_run=dry_run, summary_extra=summary)

# -----------------------------------------------------------------------------
# PRIVATE HELPERS
# -----------------------------------------------------------------------------

def _resolve_estimator(
        estimator: Optional[Union[TokenEstimator, EstimatorBackend]],
        run_cfg: RunConfig
) -> TokenEstimator:
    if estimator is None:
        return create_estimator(run_cfg.estimator, timeout=run_cfg.tool_timeout)
    if isinstance(estimator, EstimatorBackend):
        return TokenEstimator(backend=estimator)
    return estimator


def _resolve_suggester(
        suggester: Optional[Union[PatternSuggester, SuggestionBackend]],
        run_cfg: RunConfig
) -> PatternSuggester:
    if suggester is None:
        return create_suggester(
            run_cfg.suggester,
            target_tokens=run_cfg.target_tokens,
            skip_ai=run_cfg.skip_ai,
            timeout=run_cfg.suggestion_timeout,
            model=run_cfg.suggestion_model,
        )
    if isinstance(suggester, SuggestionBackend):
        return PatternSuggester(backend=suggester, target_tokens=run_cfg.target_tokens, skip_ai=run_cfg.skip_ai)
    return suggester


def _preflight_view(cfg: Dict[str, Any], has_estimator: bool, has_suggester: bool) -> Dict[str, Any]:
    """Configuration as seen by the dependency check, minus injected backends."""
    view = dict(cfg)
    if has_estimator:
        view["estimator"] = "injected"
    if has_suggester:
        view["skip_ai"] = True
    return view

