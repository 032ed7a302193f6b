from __future__ import annotations

"""
Integration tests for the full autotune pipeline.

Drives 'run_autotune' over synthetic repositories with deterministic fake
backends injected, and checks the run-level guarantees: the reference
scenarios, determinism, coverage, non-overlap, termination and conflict
safety.
"""

import json
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Set
from unittest.mock import patch

from repomix_autotune.core.pipeline.engine import run_autotune
from repomix_autotune.core.rules import RuleMatcher
from repomix_autotune.core.scanner import yield_included_files
from repomix_autotune.domain.partition_models import RunResult

from conftest import FileCountBackend, StaticSuggestionBackend, all_files


def _run(config: Dict[str, Any], tokens_per_file: int, patterns: List[str] = None, **kwargs: Any) -> RunResult:
    return run_autotune(
        config,
        estimator=FileCountBackend(tokens_per_file),
        suggester=StaticSuggestionBackend(patterns or []),
        **kwargs,
    )


def _unit_files(result: RunResult) -> Dict[str, Set[str]]:
    """Files each unit would pack, as analyzed-root relative paths."""
    out: Dict[str, Set[str]] = {}
    for unit in result.units:
        files = set()
        for abs_path, _ in yield_included_files(unit.source_root, unit.rule_set):
            files.add(os.path.relpath(abs_path, result.target_dir).replace(os.sep, "/"))
        out[unit.name] = files
    return out

# -----------------------------------------------------------------------------
# Reference Scenarios
# -----------------------------------------------------------------------------

def test_scenario_a_flat_repository_within_budget(
        tree_factory: Callable[..., Path], run_config: Dict[str, Any]
) -> None:
    """Ten files at 5,000 tokens produce exactly one unit, no split."""
    root = tree_factory({".": 10})

    result = _run(run_config, tokens_per_file=500)

    assert result.ok, result.error
    assert len(result.units) == 1
    unit = result.units[0]
    assert unit.name == "."
    assert unit.estimated_tokens == 5000
    assert unit.within_budget
    assert result.summary["split"] is False
    assert result.summary["assessments"] == 1
    assert (root / "repomix.config.json").exists()


def test_scenario_b_largest_child_extracted(
        tree_factory: Callable[..., Path], run_config: Dict[str, Any]
) -> None:
    """'a' (80 files) is split off; the root keeps 'b' and excludes 'a/**'."""
    root = tree_factory({"a": 80, "b": 20})

    result = _run(run_config, tokens_per_file=900)

    assert result.ok, result.error
    assert [u.name for u in result.units] == [".", "a"]
    root_unit, a_unit = result.units
    assert "a/**" in root_unit.rule_set
    assert root_unit.estimated_tokens == 20 * 900
    assert root_unit.within_budget
    assert a_unit.depth == 1
    assert a_unit.output_path == str(root / "a" / "repomix-output-a.xml")
    assert not a_unit.within_budget
    assert any("No directories available for splitting" in w for w in result.warnings)
    assert any("over budget" in w for w in result.warnings)
    assert (root / "repomix.config.json").exists()
    assert (root / "a" / "repomix.config.json").exists()
    assert not (root / "b" / "repomix.config.json").exists()


def test_scenario_c_no_directories_to_extract(
        tree_factory: Callable[..., Path], run_config: Dict[str, Any]
) -> None:
    """A flat over-budget root is kept as one over-budget unit."""
    tree_factory({".": 60})

    result = _run(run_config, tokens_per_file=1000)

    assert result.ok
    assert len(result.units) == 1
    assert not result.units[0].within_budget
    assert result.summary["over_budget_count"] == 1
    assert any("No directories available for splitting" in w for w in result.warnings)


def test_scenario_d_existing_root_config_conflicts(
        tree_factory: Callable[..., Path], run_config: Dict[str, Any]
) -> None:
    """An existing root configuration is fatal without force; nothing changes."""
    root = tree_factory({"a": 80, "b": 20})
    (root / "repomix.config.json").write_text('{"keep": true}', encoding="utf-8")
    before = all_files(root)

    result = _run(run_config, tokens_per_file=900)

    assert not result.ok
    assert result.exit_code == 64
    assert "already exists" in result.error
    assert all_files(root) == before
    assert (root / "repomix.config.json").read_text(encoding="utf-8") == '{"keep": true}'

# -----------------------------------------------------------------------------
# Conflict Safety
# -----------------------------------------------------------------------------

def test_nested_conflict_detected_before_any_write(
        tree_factory: Callable[..., Path], run_config: Dict[str, Any]
) -> None:
    root = tree_factory({"a": 80, "b": 20})
    (root / "a" / "repomix.config.json").write_text("{}", encoding="utf-8")

    result = _run(run_config, tokens_per_file=900)

    assert result.exit_code == 64
    assert not (root / "repomix.config.json").exists()


def test_force_overwrites(tree_factory: Callable[..., Path], run_config: Dict[str, Any]) -> None:
    root = tree_factory({".": 2})
    (root / "repomix.config.json").write_text("{}", encoding="utf-8")
    run_config["force"] = True

    result = _run(run_config, tokens_per_file=1)

    assert result.ok
    assert '"ignore"' in (root / "repomix.config.json").read_text(encoding="utf-8")


def test_dry_run_writes_nothing(tree_factory: Callable[..., Path], run_config: Dict[str, Any]) -> None:
    root = tree_factory({"a": 80, "b": 20})
    before = all_files(root)
    run_config["dry_run"] = True

    result = _run(run_config, tokens_per_file=900)

    assert result.ok
    assert result.dry_run
    assert len(result.units) == 2
    assert all_files(root) == before

# -----------------------------------------------------------------------------
# Run-Level Guarantees
# -----------------------------------------------------------------------------

NESTED_LAYOUT = {".": 5, "a/x": 25, "a/y": 20, "a/z/deep": 3, "b": 10, "c": 4}


def test_determinism_across_runs(tree_factory: Callable[..., Path], run_config: Dict[str, Any]) -> None:
    """A forced re-run over the same sources reproduces the units and files byte for byte."""
    root = tree_factory(NESTED_LAYOUT)

    def persisted() -> Dict[str, bytes]:
        return {p: (root / p).read_bytes() for p in all_files(root) if p.endswith("repomix.config.json")}

    first = _run(run_config, tokens_per_file=900)
    first_bytes = persisted()
    run_config["force"] = True
    second = _run(run_config, tokens_per_file=900)
    second_bytes = persisted()

    assert first.ok and second.ok
    assert first.units == second.units
    assert first_bytes == second_bytes
    assert len(first_bytes) == len(first.units)


def test_packed_artifacts_are_never_counted(tree_factory: Callable[..., Path], run_config: Dict[str, Any]) -> None:
    """Outputs packed by repomix inside the tree do not inflate a forced re-run."""
    root = tree_factory({".": 4, "a": 80, "b": 20})
    run_config.update({"estimator": "heuristic", "skip_ai": True, "target_tokens": 1000})

    first = run_autotune(run_config)
    (root / "repomix-output.xml").write_text("x" * 20000, encoding="utf-8")
    (root / "a" / "repomix-output-a.xml").write_text("x" * 20000, encoding="utf-8")
    run_config["force"] = True
    second = run_autotune(run_config)

    assert first.ok and second.ok
    assert [(u.name, u.estimated_tokens) for u in first.units] == [(".", 26)]
    assert [(u.name, u.estimated_tokens) for u in second.units] == [(".", 26)]
    assert second.warnings == first.warnings

    persisted = json.loads((root / "repomix.config.json").read_text(encoding="utf-8"))
    assert "repomix.config.json" not in persisted["ignore"]
    assert "repomix-output*.xml" not in persisted["ignore"]


def test_coverage_and_non_overlap(tree_factory: Callable[..., Path], run_config: Dict[str, Any]) -> None:
    """Every file lands in exactly one unit; the root excludes every split subtree."""
    root = tree_factory(NESTED_LAYOUT)
    run_config["dry_run"] = True

    result = _run(run_config, tokens_per_file=900)

    assert result.ok
    assert len(result.units) > 2
    per_unit = _unit_files(result)
    union = set().union(*per_unit.values())
    assert union == set(all_files(root))
    assert sum(len(files) for files in per_unit.values()) == len(union)

    root_matcher = RuleMatcher(result.units[0].rule_set)
    for unit in result.units[1:]:
        for rel in per_unit[unit.name]:
            assert root_matcher.is_excluded(rel)


def test_termination_at_depth_ceiling(tree_factory: Callable[..., Path], run_config: Dict[str, Any]) -> None:
    """A deep chain stops at the ceiling with a warning."""
    tree_factory({".": 10, "d1": 10, "d1/d2": 10, "d1/d2/d3": 10, "d1/d2/d3/d4": 10, "d1/d2/d3/d4/d5": 10})
    run_config["target_tokens"] = 5000
    run_config["dry_run"] = True

    result = _run(run_config, tokens_per_file=1000)

    assert result.ok
    assert [u.name for u in result.units] == [".", "d1", "d1/d2", "d1/d2/d3"]
    assert max(u.depth for u in result.units) == 3
    assert any("Maximum recursion depth" in w for w in result.warnings)


def test_parallel_jobs_match_sequential(tree_factory: Callable[..., Path], run_config: Dict[str, Any]) -> None:
    tree_factory({"a": 40, "b": 30, "c": 20, "d": 10})
    run_config.update({"target_tokens": 5000, "dry_run": True})

    sequential = _run(dict(run_config, jobs=1), tokens_per_file=100)
    parallel = _run(dict(run_config, jobs=4), tokens_per_file=100)

    assert [u.name for u in sequential.units] == [".", "a", "b"]
    assert sequential.units == parallel.units

# -----------------------------------------------------------------------------
# Failure Handling
# -----------------------------------------------------------------------------

def test_cancellation_aborts_run(tree_factory: Callable[..., Path], run_config: Dict[str, Any]) -> None:
    root = tree_factory({"a": 80, "b": 20})
    cancel = threading.Event()
    cancel.set()

    result = _run(run_config, tokens_per_file=900, cancel_event=cancel)

    assert result.exit_code == 130
    assert not (root / "repomix.config.json").exists()


def test_suggestion_failure_falls_back_to_defaults(
        tree_factory: Callable[..., Path], run_config: Dict[str, Any]
) -> None:
    tree_factory({".": 2})
    run_config["dry_run"] = True

    result = run_autotune(
        run_config,
        estimator=FileCountBackend(1),
        suggester=StaticSuggestionBackend(fail=True),
    )

    assert result.ok
    assert result.summary["suggestion_fallbacks"] == 1
    assert "node_modules/**" in result.units[0].rule_set


def test_missing_tool_is_fatal(tree_factory: Callable[..., Path], run_config: Dict[str, Any]) -> None:
    root = tree_factory({".": 2})
    run_config.update({"estimator": "repomix", "skip_ai": True})

    with patch("repomix_autotune.infra.process.which", return_value=None):
        result = run_autotune(run_config)

    assert result.exit_code == 2
    assert "repomix" in result.error
    assert not (root / "repomix.config.json").exists()


def test_invalid_config_is_argument_error(run_config: Dict[str, Any]) -> None:
    run_config["target_tokens"] = 0

    result = run_autotune(run_config)

    assert not result.ok
    assert result.exit_code == 3


def test_missing_root_is_environment_error(tmp_path: Path, run_config: Dict[str, Any]) -> None:
    run_config["target_dir"] = str(tmp_path / "does-not-exist")

    result = _run(run_config, tokens_per_file=1)

    assert not result.ok
    assert result.exit_code == 1


def test_configured_backends_run_offline(tree_factory: Callable[..., Path], run_config: Dict[str, Any]) -> None:
    """Without injected backends the configured offline ones are used."""
    tree_factory({".": 3})
    run_config.update({"estimator": "heuristic", "skip_ai": True, "dry_run": True})

    result = run_autotune(run_config)

    assert result.ok
    assert result.units[0].estimated_tokens == 0
