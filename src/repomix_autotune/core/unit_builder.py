from __future__ import annotations

"""
Packaging Unit Builder.

Turns the root subtree and every split group into packaging units (output
artifact path, final rule set, configuration location) and persists each one
as a repomix configuration, optionally validating it with the packaging tool.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from repomix_autotune.core.estimation.strategies.repomix import parse_total_tokens
from repomix_autotune.core.repomix_config import render_config_document
from repomix_autotune.domain.budget import Budget
from repomix_autotune.domain.constants import (
    DEFAULT_TOOL_TIMEOUT,
    REPOMIX_CONFIG_NAME,
    REPOMIX_EXECUTABLE,
    ROOT_OUTPUT_NAME,
    SPLIT_OUTPUT_TEMPLATE,
)
from repomix_autotune.domain.partition_models import PackagingUnit, PersistOutcome, SplitGroup
from repomix_autotune.domain.rule_set import RuleSet
from repomix_autotune.infra.fs import to_posix_relpath, write_json_atomic
from repomix_autotune.infra.process import run_tool

logger = logging.getLogger(__name__)


def output_name_for(unit_name: str) -> str:
    """
    Artifact file name for a unit.

    Args:
        unit_name: Root-relative POSIX path of the unit ('.' for the root).

    Returns:
        str: 'repomix-output.xml' for the root, 'repomix-output-<slug>.xml'
        otherwise, where the slug is the relative path with '/' replaced by '-'.
    """
    if unit_name in (".", ""):
        return ROOT_OUTPUT_NAME
    return SPLIT_OUTPUT_TEMPLATE.format(slug=unit_name.replace("/", "-"))


class UnitBuilder:
    """
    Builds and persists packaging units for one analyzed root.

    Args:
        analyzed_root: Absolute path of the analyzed root.
        budget: Budget of the run (encoding and reporting threshold).
        output_dir: Artifact directory override ('' keeps artifacts in each
            unit's source root).
        dry_run: Never write or validate.
        validate: Run the packaging tool after writing each configuration.
        tool_timeout: Seconds allowed for one validation run.
    """

    def __init__(
            self,
            analyzed_root: str,
            budget: Budget,
            output_dir: str = "",
            dry_run: bool = False,
            validate: bool = True,
            tool_timeout: float = DEFAULT_TOOL_TIMEOUT,
            executable: str = REPOMIX_EXECUTABLE
    ) -> None:
        self.analyzed_root = os.path.abspath(analyzed_root)
        self.budget = budget
        self.output_dir = os.path.abspath(output_dir) if output_dir else ""
        self.dry_run = dry_run
        self.validate = validate
        self.tool_timeout = tool_timeout
        self.executable = executable

    # -------------------------------------------------------------------------
    # BUILD
    # -------------------------------------------------------------------------

    def build(
            self,
            source_root: str,
            rule_set: RuleSet,
            depth: int,
            estimated_tokens: int,
            within_budget: bool,
            output_path_hint: Optional[str] = None
    ) -> PackagingUnit:
        """
        Create the unit for one subtree.

        Args:
            source_root: Absolute path of the subtree.
            rule_set: Final exclusions (split-off children already merged).
            depth: Recursion depth of the unit.
            estimated_tokens: Estimate reported for the unit.
            within_budget: Whether the estimate fits the budget.
            output_path_hint: Explicit artifact path; derived when omitted.

        Returns:
            PackagingUnit: Immutable unit description.
        """
        source_abs = os.path.abspath(source_root)
        name = to_posix_relpath(source_abs, self.analyzed_root)

        if output_path_hint:
            output_path = os.path.abspath(output_path_hint)
        else:
            output_path = os.path.join(self.output_dir or source_abs, output_name_for(name))

        return PackagingUnit(
            name=name,
            source_root=source_abs,
            output_path=output_path,
            rule_set=rule_set,
            depth=depth,
            estimated_tokens=estimated_tokens,
            within_budget=within_budget,
            config_path=os.path.join(source_abs, REPOMIX_CONFIG_NAME),
        )

    def build_group(self, group: SplitGroup) -> List[PackagingUnit]:
        """
        Create the units of a split group and its nested groups.

        Returns:
            List[PackagingUnit]: The group's unit followed by its descendants,
            depth-first in group order.
        """
        units = [
            self.build(
                source_root=group.root.path,
                rule_set=group.rule_set.merge(group.exclusions),
                depth=group.depth,
                estimated_tokens=group.estimated_tokens,
                within_budget=group.assessment.within_budget,
            )
        ]
        for child in group.children:
            units.extend(self.build_group(child))
        return units

    def render(self, unit: PackagingUnit) -> Dict[str, Any]:
        return render_config_document(unit.output_path, unit.rule_set, self.budget.encoding)

    # -------------------------------------------------------------------------
    # PERSIST
    # -------------------------------------------------------------------------

    def persist(self, unit: PackagingUnit) -> PersistOutcome:
        """
        Write (or, in dry-run mode, only log) a unit's configuration.

        After writing, the packaging tool is run once to confirm the artifact
        is producible and to report its actual token count. Validation
        problems are returned as warnings and never raised.

        Args:
            unit: Unit to persist.

        Returns:
            PersistOutcome: What was written and validated.

        Raises:
            OSError: If the configuration cannot be written.
        """
        document = self.render(unit)

        if self.dry_run:
            logger.info(f"DRY RUN: Would create {unit.config_path} with:\n{json.dumps(document, indent=2)}")
            return PersistOutcome(unit=unit, written=False, document=document)

        write_json_atomic(unit.config_path, document)
        logger.info(f"Created repomix config: {unit.config_path}")

        if not self.validate:
            return PersistOutcome(unit=unit, written=True, document=document)

        result = run_tool(
            [self.executable, "--config", unit.config_path],
            cwd=unit.source_root,
            timeout=self.tool_timeout,
        )
        if not result.ok:
            message = f"Configuration test failed for {unit.config_path}, but config file was created"
            logger.warning(message)
            return PersistOutcome(unit=unit, written=True, document=document, warnings=(message,))

        actual = parse_total_tokens(result.stdout + "\n" + result.stderr)
        warnings: Tuple[str, ...] = ()
        if actual is not None:
            logger.info(f"Configuration validated. Final token count: {actual}")
            if actual > self.budget.target_tokens:
                message = f"Token count ({actual}) for {unit.name} still exceeds target ({self.budget.target_tokens})"
                logger.warning(message)
                warnings = (message,)
        else:
            logger.info("Configuration validated.")

        return PersistOutcome(
            unit=unit,
            written=True,
            validated=True,
            actual_tokens=actual,
            document=document,
            warnings=warnings,
        )
