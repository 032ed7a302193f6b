from __future__ import annotations

"""
End-to-End (E2E) CLI Tests.

Verifies the application's external behavior by invoking the entry point
script via subprocess. These tests validate argument parsing, exit codes,
stream output (stdout/stderr), and file system side effects (persisted
configurations). Only offline backends are used.
"""

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
SRC_DIR = PROJECT_ROOT / "src"
ENTRY_POINT = SRC_DIR / "repomix_autotune" / "main.py"

OFFLINE = ["--use-defaults", "--estimator", "heuristic", "--skip-ai", "--no-validate"]


def run_cli(args: List[str], cwd: Path | None = None, env_overrides: Optional[Dict[str, str]] = None,
            home: Optional[Path] = None) -> subprocess.CompletedProcess[str]:
    """
    Helper to execute the CLI in a separate process.

    Injects the 'src' directory into PYTHONPATH to ensure the package
    is resolvable without being installed in site-packages.

    Args:
        args: List of command line arguments (excluding 'python' and script path).
        cwd: Optional working directory for the subprocess.
        env_overrides: Extra environment variables.
        home: Home directory for persisted user defaults.

    Returns:
        subprocess.CompletedProcess: The result object containing returncode, stdout, and stderr.
    """
    env = os.environ.copy()
    env["PYTHONPATH"] = str(SRC_DIR) + os.pathsep + env.get("PYTHONPATH", "")
    env["NO_COLOR"] = "1"
    if home is not None:
        env["HOME"] = str(home)
    env.update(env_overrides or {})

    cmd = [sys.executable, str(ENTRY_POINT)] + args

    return subprocess.run(
        cmd,
        cwd=cwd,
        env=env,
        capture_output=True,
        text=True,
        encoding="utf-8"
    )


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    """
    Create a dummy project structure for E2E testing.

    Structure:
    /input
      /src
        main.py
      /tests
        test_main.py
      README.md
    """
    input_dir = tmp_path / "input"
    input_dir.mkdir()

    src_dir = input_dir / "src"
    src_dir.mkdir()
    (src_dir / "main.py").write_text("def main(): pass", encoding="utf-8")

    test_dir = input_dir / "tests"
    test_dir.mkdir()
    (test_dir / "test_main.py").write_text("def test_main(): assert True", encoding="utf-8")

    (input_dir / "README.md").write_text("# Dummy Project", encoding="utf-8")
    return input_dir


def test_help_exits_zero() -> None:
    result = run_cli(["--help"])

    assert result.returncode == 0
    assert "usage: repomix-autotune" in result.stdout


@pytest.mark.parametrize("args", [["-t", "abc"], ["--unknown-flag"], ["-t"]])
def test_usage_errors_exit_three(args: List[str], sample_project: Path) -> None:
    result = run_cli(args + [str(sample_project)])

    assert result.returncode == 3
    assert "error" in result.stderr


def test_missing_target_exits_three(tmp_path: Path) -> None:
    result = run_cli(OFFLINE + [str(tmp_path / "missing")])

    assert result.returncode == 3
    assert "does not exist" in result.stderr


def test_missing_dependencies_exit_two(sample_project: Path, tmp_path: Path) -> None:
    """The default backends need 'repomix' and 'claude' on PATH."""
    empty_bin = tmp_path / "empty-bin"
    empty_bin.mkdir()

    result = run_cli(["--use-defaults", str(sample_project)], env_overrides={"PATH": str(empty_bin)})

    assert result.returncode == 2
    assert "Missing required dependencies" in result.stderr
    assert not (sample_project / "repomix.config.json").exists()


def test_generates_configuration(sample_project: Path, tmp_path: Path) -> None:
    result = run_cli(OFFLINE + [str(sample_project)], home=tmp_path)

    assert result.returncode == 0, result.stderr
    assert "Configuration generation completed!" in result.stdout

    config = json.loads((sample_project / "repomix.config.json").read_text(encoding="utf-8"))
    assert config["include"] == []
    assert "node_modules/**" in config["ignore"]
    assert config["ignore"] == sorted(config["ignore"])
    assert config["output"]["filePath"].endswith("repomix-output.xml")
    assert config["tokenCount"]["encoding"] == "o200k_base"


def test_second_run_conflicts_without_force(sample_project: Path, tmp_path: Path) -> None:
    first = run_cli(OFFLINE + [str(sample_project)], home=tmp_path)
    assert first.returncode == 0

    second = run_cli(OFFLINE + [str(sample_project)], home=tmp_path)
    forced = run_cli(OFFLINE + ["-f", str(sample_project)], home=tmp_path)

    assert second.returncode == 64
    assert "already exists" in second.stderr
    assert forced.returncode == 0


def test_dry_run_json(sample_project: Path, tmp_path: Path) -> None:
    result = run_cli(OFFLINE + ["-n", "--json", "-t", "30000", str(sample_project)], home=tmp_path)

    assert result.returncode == 0
    payload = json.loads(result.stdout)
    assert payload["ok"] is True
    assert payload["dry_run"] is True
    assert payload["summary"]["target_tokens"] == 30000
    assert not (sample_project / "repomix.config.json").exists()


def test_verbose_logs_to_stderr(sample_project: Path, tmp_path: Path) -> None:
    result = run_cli(OFFLINE + ["-v", "-n", str(sample_project)], home=tmp_path)

    assert result.returncode == 0
    assert "Analyzing repository" in result.stderr
    assert "Not a git repository" in result.stderr
