from __future__ import annotations

"""
Unit tests for packaging unit construction and persistence.

The validation run of the packaging tool is simulated by patching 'run_tool'.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from repomix_autotune.core.unit_builder import UnitBuilder, output_name_for
from repomix_autotune.domain.budget import Budget
from repomix_autotune.domain.partition_models import SplitGroup
from repomix_autotune.domain.rule_set import RuleSet
from repomix_autotune.domain.tree_models import PathNode
from repomix_autotune.infra.process import ToolResult

RUN_TOOL = "repomix_autotune.core.unit_builder.run_tool"


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    (root / "src" / "api").mkdir(parents=True)
    return root


def _unit(builder: UnitBuilder, path: Path, depth: int = 0, tokens: int = 100, rules: RuleSet = RuleSet()):
    return builder.build(
        source_root=str(path),
        rule_set=rules,
        depth=depth,
        estimated_tokens=tokens,
        within_budget=tokens <= builder.budget.effective_limit,
    )


@pytest.mark.parametrize("name,expected", [
    (".", "repomix-output.xml"),
    ("src", "repomix-output-src.xml"),
    ("src/api", "repomix-output-src-api.xml"),
])
def test_output_name_for(name: str, expected: str) -> None:
    assert output_name_for(name) == expected


def test_build_root_and_nested_units(repo: Path) -> None:
    """TC-01: Names are root-relative; configs and artifacts live in the unit root."""
    builder = UnitBuilder(str(repo), Budget(25000))

    root_unit = _unit(builder, repo)
    nested = _unit(builder, repo / "src" / "api", depth=2)

    assert root_unit.name == "."
    assert root_unit.is_root
    assert root_unit.config_path == str(repo / "repomix.config.json")
    assert root_unit.output_path == str(repo / "repomix-output.xml")
    assert nested.name == "src/api"
    assert nested.output_path == str(repo / "src" / "api" / "repomix-output-src-api.xml")


def test_output_dir_override(repo: Path, tmp_path: Path) -> None:
    out = tmp_path / "artifacts"
    builder = UnitBuilder(str(repo), Budget(25000), output_dir=str(out))

    unit = _unit(builder, repo / "src")

    assert unit.output_path == str(out / "repomix-output-src.xml")
    assert unit.config_path == str(repo / "src" / "repomix.config.json")


def test_render_document_shape(repo: Path) -> None:
    """TC-02: The persisted document carries sorted ignores and the encoding."""
    builder = UnitBuilder(str(repo), Budget(25000, encoding="cl100k_base"))
    unit = _unit(builder, repo, rules=RuleSet.of(["src/**", "*.log", "*.log"]))

    doc = builder.render(unit)

    assert doc["include"] == []
    assert doc["ignore"] == ["*.log", "src/**"]
    assert doc["output"]["filePath"] == unit.output_path
    assert doc["output"]["style"] == "xml"
    assert doc["output"]["topFilesLength"] == 5
    assert doc["security"]["enableSecurityCheck"] is True
    assert doc["tokenCount"] == {"encoding": "cl100k_base", "enableTokenCount": True}


def test_build_group_orders_depth_first(repo: Path) -> None:
    """TC-03: A group's unit precedes its nested units; exclusions are merged."""
    budget = Budget(25000)
    assessment = budget.assess(100)
    api = SplitGroup(
        member_directories=(PathNode(str(repo / "src" / "api"), 3),),
        estimated_tokens=100, depth=2, rule_set=RuleSet(), assessment=assessment,
    )
    src = SplitGroup(
        member_directories=(PathNode(str(repo / "src"), 9),),
        estimated_tokens=100, depth=1, rule_set=RuleSet.of(["*.tmp"]), assessment=assessment,
        children=(api,), exclusions=RuleSet.of(["api/**"]),
    )

    units = UnitBuilder(str(repo), budget).build_group(src)

    assert [u.name for u in units] == ["src", "src/api"]
    assert units[0].rule_set.patterns == ("*.tmp", "api/**")
    assert [u.depth for u in units] == [1, 2]


def test_persist_dry_run_writes_nothing(repo: Path) -> None:
    builder = UnitBuilder(str(repo), Budget(25000), dry_run=True)
    unit = _unit(builder, repo)

    with patch(RUN_TOOL) as mock_run:
        outcome = builder.persist(unit)

    assert outcome.written is False
    assert not Path(unit.config_path).exists()
    assert outcome.document["ignore"] == []
    mock_run.assert_not_called()


def test_persist_without_validation(repo: Path) -> None:
    """TC-04: The file is complete JSON with a trailing newline."""
    builder = UnitBuilder(str(repo), Budget(25000), validate=False)
    unit = _unit(builder, repo, rules=RuleSet.of(["b/**", "a/**"]))

    with patch(RUN_TOOL) as mock_run:
        outcome = builder.persist(unit)

    text = Path(unit.config_path).read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert json.loads(text) == builder.render(unit)
    assert outcome.written is True
    assert outcome.validated is False
    mock_run.assert_not_called()


def test_persist_validation_reports_actual_tokens(repo: Path) -> None:
    builder = UnitBuilder(str(repo), Budget(25000))
    unit = _unit(builder, repo)

    with patch(RUN_TOOL, return_value=ToolResult(returncode=0, stdout="Total Tokens: 30,000 tokens")) as mock_run:
        outcome = builder.persist(unit)

    assert mock_run.call_args.args[0] == ["repomix", "--config", unit.config_path]
    assert mock_run.call_args.kwargs["cwd"] == unit.source_root
    assert outcome.validated is True
    assert outcome.actual_tokens == 30000
    assert any("still exceeds target" in w for w in outcome.warnings)


def test_persist_validation_failure_is_warning(repo: Path) -> None:
    """TC-05: A failed validation keeps the written file and reports a warning."""
    builder = UnitBuilder(str(repo), Budget(25000))
    unit = _unit(builder, repo)

    with patch(RUN_TOOL, return_value=ToolResult(returncode=2, stderr="bad config")):
        outcome = builder.persist(unit)

    assert Path(unit.config_path).exists()
    assert outcome.validated is False
    assert outcome.warnings and "Configuration test failed" in outcome.warnings[0]
