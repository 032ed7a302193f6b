from __future__ import annotations

"""
Command Line Interface (CLI) Application Controller.

Orchestrates the CLI lifecycle: initialization of logging, loading and merging
of configuration sources (defaults, saved user defaults, and CLI overrides),
run execution, and result rendering.
"""

import json
import logging
import os
import sys
import threading
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from repomix_autotune.core.pipeline.engine import run_autotune
from repomix_autotune.core.pipeline.validator import validate_config
from repomix_autotune.domain.config import get_default_config, load_config, save_config
from repomix_autotune.domain.constants import (
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_INVALID_ARGS,
    EXIT_OK,
)
from repomix_autotune.domain.errors import InvalidArgumentsError
from repomix_autotune.domain.partition_models import RunResult
from repomix_autotune.infra.logging import LoggingConfig, configure_logging, shutdown_logging
from repomix_autotune.interface.cli import args as cli_args

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# ENTRYPOINT ORCHESTRATOR
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """
    Execute the main CLI application workflow.

    Args:
        argv: Optional list of command line arguments. Defaults to sys.argv.

    Returns:
        int: Process exit code.
    """
    # 1. Argument parsing phase (usage errors exit with code 3)
    parser = cli_args.build_parser()
    args = parser.parse_args(argv)

    # 2. Logging bootstrap
    configure_logging(LoggingConfig.from_flags(args.verbose, args.quiet, args.log_file))
    try:
        return _run(args)
    finally:
        shutdown_logging()


def _run(args: Any) -> int:
    logger.debug("CLI execution initiated. Resolving configuration hierarchy...")

    # 3. Resolve base configuration (built-in vs saved defaults)
    base_conf = get_default_config() if args.use_defaults else load_config()

    # 4. Merge overrides and validate
    raw_conf = _merge_config(base_conf, cli_args.args_to_overrides(args))
    try:
        clean_conf, warnings = validate_config(raw_conf, strict=False)
    except InvalidArgumentsError as e:
        _print_error(str(e))
        return e.exit_code

    for w in warnings:
        logger.warning(f"Configuration Constraint: {w}")

    if args.dump_config:
        print(json.dumps(clean_conf, ensure_ascii=False, indent=2))
        return EXIT_OK

    if args.save_defaults:
        saved = save_config(clean_conf)
        if saved:
            logger.info(f"Saved user defaults to {saved}")

    # 5. Target verification
    target_dir = os.path.abspath(os.path.expanduser(clean_conf["target_dir"]))
    if not os.path.isdir(target_dir):
        _print_error(f"Target directory does not exist: {target_dir}")
        return EXIT_INVALID_ARGS
    clean_conf["target_dir"] = target_dir

    # 6. Run phase
    cancel_event = threading.Event()
    try:
        result = run_autotune(clean_conf, cancel_event=cancel_event)
    except KeyboardInterrupt:
        cancel_event.set()
        _print_error("Interrupted by user.")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.critical(f"Run failed: {e}", exc_info=True)
        _print_error(f"Run failed: {e}")
        return EXIT_FAILURE

    # 7. Output rendering phase
    if args.json_output:
        print(json.dumps(_result_to_dict(result), ensure_ascii=False, indent=2))
    else:
        _print_human_summary(result, quiet=args.quiet)

    return result.exit_code

# -----------------------------------------------------------------------------
# CONFIGURATION MERGING
# -----------------------------------------------------------------------------

def _merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge of known override keys into the base configuration.

    Args:
        base: The primary configuration dictionary.
        overrides: New values to inject.

    Returns:
        Dict[str, Any]: The merged configuration state.
    """
    out = dict(base)
    for k, v in overrides.items():
        if k in base and v is not None:
            out[k] = v
    return out

# -----------------------------------------------------------------------------
# VIEW RENDERING
# -----------------------------------------------------------------------------

def _result_to_dict(result: RunResult) -> Dict[str, Any]:
    data = asdict(result)
    data["units"] = [
        {**u, "rule_set": list(unit.rule_set.patterns)}
        for u, unit in zip(data["units"], result.units)
    ]
    return data


def _print_error(message: str) -> None:
    print(f"ERROR: {message}", file=sys.stderr)


def _print_human_summary(result: RunResult, quiet: bool = False) -> None:
    """
    Render the run result for a terminal.

    Fatal errors go to stderr; warnings are printed even in quiet mode.

    Args:
        result: The run result to render.
        quiet: Only print warnings and errors.
    """
    if not result.ok:
        _print_error(result.error)
        return

    if result.warnings:
        print("\nWarnings:", file=sys.stderr)
        for w in result.warnings:
            print(f"  - {w}", file=sys.stderr)

    if quiet:
        return

    summary = result.summary
    header = "Dry run complete (no files written)." if result.dry_run else "Configuration generation completed!"
    print(header)
    print(f"Target: {result.target_dir}")
    print(
        f"Budget: {summary.get('target_tokens', 0):,} tokens "
        f"(effective limit {summary.get('effective_limit', 0):,}, encoding {summary.get('encoding', '')})"
    )
    print(f"Units: {len(result.units)}")

    for entry in summary.get("units", []):
        flag = "" if entry["within_budget"] else "  [OVER BUDGET]"
        actual = entry.get("actual_tokens")
        actual_txt = f", actual {actual:,}" if actual is not None else ""
        print(f"  - {entry['name']}: ~{entry['estimated_tokens']:,} tokens{actual_txt}{flag}")
        print(f"      config: {entry['config_path']}")
        print(f"      output: {entry['output_path']}")

    over = len(result.over_budget_units)
    if over:
        print(f"{over} unit(s) exceed the budget.")

    if not result.dry_run:
        print("To run repomix with the generated configuration:")
        print(f"  cd {result.target_dir} && repomix")

# -----------------------------------------------------------------------------
# CLI ENTRYPOINT
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
