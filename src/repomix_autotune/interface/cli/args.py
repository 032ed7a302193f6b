from __future__ import annotations

"""
CLI Argument Definition and Mapping.

Defines the command-line interface schema, including help messages,
argument types, and defaults. Provides logic to translate raw argparse
namespaces into domain-compatible configuration overrides.
"""

import argparse
from typing import Any, Dict, NoReturn

from repomix_autotune.domain.constants import (
    DEFAULT_ENCODING,
    DEFAULT_TARGET_TOKENS,
    ESTIMATOR_CHOICES,
    EXIT_INVALID_ARGS,
    SUGGESTER_CHOICES,
)

DESCRIPTION = (
    "Automatically generate repomix configurations that keep every output "
    f"artifact within a token budget (default {DEFAULT_TARGET_TOKENS:,} tokens). "
    "Uses AI-suggested ignore patterns and deterministically splits the "
    "repository into several configurations when needed."
)

EPILOG = """\
examples:
  repomix-autotune                    Analyze current directory
  repomix-autotune /path/to/repo      Analyze specific directory
  repomix-autotune -v -f .            Verbose mode, force overwrite
  repomix-autotune -t 30000 /repo     Custom token limit

exit codes:
  0    Success
  1    General error
  2    Missing dependencies
  3    Invalid arguments
  64   Configuration already exists (use --force)
  130  Interrupted
"""

# -----------------------------------------------------------------------------
# PARSER
# -----------------------------------------------------------------------------

class AutotuneArgumentParser(argparse.ArgumentParser):
    """ArgumentParser reporting usage errors with the invalid-arguments exit code."""

    def error(self, message: str) -> NoReturn:
        self.print_usage()
        self.exit(EXIT_INVALID_ARGS, f"{self.prog}: error: {message}\n")


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got '{value}'")
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got '{value}'")
    return parsed


def _ratio(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"must be a number in [0, 1), got '{value}'")
    if not 0.0 <= parsed < 1.0:
        raise argparse.ArgumentTypeError(f"must be a number in [0, 1), got '{value}'")
    return parsed


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"must be a positive number, got '{value}'")
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive number, got '{value}'")
    return parsed

# -----------------------------------------------------------------------------
# ARGUMENT DEFINITION
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """
    Construct the argument parser for the repomix-autotune CLI.

    Returns:
        argparse.ArgumentParser: Configured parser instance.
    """
    p = AutotuneArgumentParser(
        prog="repomix-autotune",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    p.add_argument(
        "target_dir",
        nargs="?",
        default=None,
        metavar="TARGET_DIR",
        help="Directory to analyze (default: current directory).",
    )

    # --- Verbosity ---
    p.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output.")
    p.add_argument("-q", "--quiet", action="store_true", help="Suppress non-error output.")
    p.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        metavar="PATH",
        help="Also write a rotating diagnostic log to PATH.",
    )

    # --- Run Mode ---
    p.add_argument(
        "-n", "--dry-run",
        action="store_true",
        help="Show what would be done without making changes.",
    )
    p.add_argument(
        "-f", "--force",
        action="store_true",
        help="Overwrite existing repomix.config.json files.",
    )
    p.add_argument(
        "-s", "--skip-ai",
        action="store_true",
        help="Skip AI pattern generation, use defaults only.",
    )
    p.add_argument(
        "--no-validate",
        action="store_true",
        help="Do not run repomix on the written configurations.",
    )

    # --- Budget ---
    p.add_argument(
        "-o", "--output",
        dest="output_dir",
        default=None,
        metavar="DIR",
        help="Directory for the repomix output artifacts.",
    )
    p.add_argument(
        "-e", "--encoding",
        default=None,
        metavar="ENC",
        help=f"Token encoding to use (default: {DEFAULT_ENCODING}).",
    )
    p.add_argument(
        "-t", "--target",
        dest="target_tokens",
        type=_positive_int,
        default=None,
        metavar="NUM",
        help=f"Target token limit (default: {DEFAULT_TARGET_TOKENS}).",
    )
    p.add_argument(
        "--buffer-ratio",
        type=_ratio,
        default=None,
        metavar="RATIO",
        help="Safety margin removed from the target, in [0, 1) (default: 0.10).",
    )
    p.add_argument(
        "--max-depth",
        type=_positive_int,
        default=None,
        metavar="N",
        help="Maximum split recursion depth (default: 3).",
    )

    # --- Backends ---
    p.add_argument(
        "--estimator",
        choices=ESTIMATOR_CHOICES,
        default=None,
        help="Token estimation backend (default: repomix).",
    )
    p.add_argument(
        "--suggester",
        choices=SUGGESTER_CHOICES,
        default=None,
        help="AI pattern suggestion backend (default: claude-cli).",
    )
    p.add_argument(
        "--jobs",
        type=_positive_int,
        default=None,
        metavar="N",
        help="Evaluate up to N sibling directories concurrently (default: 1).",
    )
    p.add_argument(
        "--timeout",
        dest="tool_timeout",
        type=_positive_float,
        default=None,
        metavar="SEC",
        help="Timeout in seconds for each repomix invocation.",
    )

    # --- Configuration and Output ---
    p.add_argument(
        "--use-defaults",
        action="store_true",
        help="Ignore saved user defaults.",
    )
    p.add_argument(
        "--save-defaults",
        action="store_true",
        help="Persist the effective settings as user defaults.",
    )
    p.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the effective configuration as JSON and exit.",
    )
    p.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Print the run result as JSON.",
    )

    return p

# -----------------------------------------------------------------------------
# ARGUMENT MAPPING
# -----------------------------------------------------------------------------

def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Translate the argparse Namespace into a domain configuration dictionary.

    Only options given on the command line appear in the result, so saved
    defaults are never masked by parser defaults.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Dict[str, Any]: Configuration overrides subset.
    """
    overrides: Dict[str, Any] = {}

    value_options = [
        "target_dir", "output_dir", "encoding", "target_tokens",
        "buffer_ratio", "max_depth", "estimator", "suggester",
        "jobs", "tool_timeout",
    ]
    for key in value_options:
        value = getattr(args, key, None)
        if value is not None:
            overrides[key] = value

    if args.dry_run:
        overrides["dry_run"] = True
    if args.force:
        overrides["force"] = True
    if args.skip_ai:
        overrides["skip_ai"] = True
    if args.no_validate:
        overrides["validate_units"] = False

    return overrides
