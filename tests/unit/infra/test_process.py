from __future__ import annotations

"""
Unit tests for the external process layer and dependency pre-flight.
"""

import subprocess
from typing import Any, Dict
from unittest.mock import MagicMock, patch

import pytest

from repomix_autotune.domain.errors import InvalidArgumentsError, MissingToolError
from repomix_autotune.infra.process import check_dependencies, required_tools, run_tool

SUBPROCESS_RUN = "repomix_autotune.infra.process.subprocess.run"
WHICH = "repomix_autotune.infra.process.which"


def _cfg(**overrides: Any) -> Dict[str, Any]:
    base = {
        "estimator": "repomix",
        "suggester": "claude-cli",
        "skip_ai": False,
        "dry_run": False,
        "validate_units": True,
    }
    base.update(overrides)
    return base

# -----------------------------------------------------------------------------
# run_tool
# -----------------------------------------------------------------------------

def test_run_tool_captures_output() -> None:
    completed = MagicMock(returncode=0, stdout="out", stderr="err")
    with patch(SUBPROCESS_RUN, return_value=completed) as mock_run:
        result = run_tool(["repomix", "--version"], cwd="/tmp", timeout=3, input_text="in")

    assert result.ok
    assert (result.stdout, result.stderr) == ("out", "err")
    kwargs = mock_run.call_args.kwargs
    assert kwargs["input"] == "in"
    assert kwargs["timeout"] == 3
    assert kwargs["capture_output"] is True
    assert kwargs["text"] is True


def test_run_tool_timeout_is_reported() -> None:
    """TC-01: Timeouts never raise."""
    with patch(SUBPROCESS_RUN, side_effect=subprocess.TimeoutExpired(cmd="repomix", timeout=1)):
        result = run_tool(["repomix"], timeout=1)

    assert result.timed_out
    assert not result.ok


def test_run_tool_missing_executable_is_reported() -> None:
    with patch(SUBPROCESS_RUN, side_effect=FileNotFoundError("repomix")):
        result = run_tool(["repomix"])

    assert result.error
    assert result.returncode is None
    assert not result.ok


def test_non_zero_exit_is_not_ok() -> None:
    with patch(SUBPROCESS_RUN, return_value=MagicMock(returncode=1, stdout="", stderr="x")):
        assert not run_tool(["repomix"]).ok

# -----------------------------------------------------------------------------
# Pre-flight
# -----------------------------------------------------------------------------

@pytest.mark.parametrize("overrides,expected", [
    ({}, ["repomix", "claude"]),
    ({"skip_ai": True}, ["repomix"]),
    ({"estimator": "heuristic", "skip_ai": True}, ["repomix"]),
    ({"estimator": "heuristic", "skip_ai": True, "validate_units": False}, []),
    ({"estimator": "tiktoken", "skip_ai": True, "dry_run": True}, []),
    ({"estimator": "heuristic", "suggester": "anthropic-api", "dry_run": True}, []),
])
def test_required_tools(overrides: Dict[str, Any], expected) -> None:
    assert required_tools(_cfg(**overrides)) == expected


def test_missing_tools_raise_with_exit_code_two() -> None:
    """TC-02: Every missing executable is named in the error."""
    with patch(WHICH, return_value=None):
        with pytest.raises(MissingToolError) as exc_info:
            check_dependencies(_cfg())

    assert exc_info.value.tools == ["repomix", "claude"]
    assert exc_info.value.exit_code == 2


def test_present_tools_pass() -> None:
    with patch(WHICH, side_effect=lambda name: f"/usr/bin/{name}"):
        check_dependencies(_cfg())


def test_api_suggester_requires_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    cfg = _cfg(estimator="heuristic", suggester="anthropic-api", validate_units=False)

    with pytest.raises(InvalidArgumentsError):
        check_dependencies(cfg)

    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    check_dependencies(cfg)
