from __future__ import annotations

"""
Configuration Domain Management.

Defines the default run configuration, persistent user defaults stored as
JSON in the user data directory, and the immutable RunConfig threaded through
every component of a run.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from repomix_autotune.domain.budget import Budget
from repomix_autotune.domain.constants import (
    CURRENT_CONFIG_VERSION,
    DEFAULT_BUFFER_RATIO,
    DEFAULT_ENCODING,
    DEFAULT_SUGGESTION_TIMEOUT,
    DEFAULT_TARGET_TOKENS,
    DEFAULT_TOOL_TIMEOUT,
    MAX_RECURSION_DEPTH,
)
from repomix_autotune.infra.fs import get_user_data_dir, write_json_atomic

logger = logging.getLogger(__name__)

CONFIG_FILE = os.path.join(get_user_data_dir(), "config.json")

# Keys a user may persist as defaults (paths and one-shot flags excluded)
PERSISTABLE_KEYS = (
    "target_tokens", "encoding", "buffer_ratio", "max_depth",
    "skip_ai", "estimator", "suggester", "suggestion_model",
    "tool_timeout", "suggestion_timeout", "jobs", "validate_units",
)

# -----------------------------------------------------------------------------
# Configuration Models
# -----------------------------------------------------------------------------

def get_default_config() -> Dict[str, Any]:
    """
    Generate the default run configuration.

    Returns:
        Dict[str, Any]: Default configuration values.
    """
    return {
        # IO Paths
        "target_dir": os.getcwd(),
        "output_dir": "",

        # Budget
        "target_tokens": DEFAULT_TARGET_TOKENS,
        "encoding": DEFAULT_ENCODING,
        "buffer_ratio": DEFAULT_BUFFER_RATIO,
        "max_depth": MAX_RECURSION_DEPTH,

        # Backends
        "estimator": "repomix",
        "suggester": "claude-cli",
        "suggestion_model": "",
        "skip_ai": False,
        "tool_timeout": DEFAULT_TOOL_TIMEOUT,
        "suggestion_timeout": DEFAULT_SUGGESTION_TIMEOUT,

        # Execution
        "jobs": 1,
        "dry_run": False,
        "force": False,
        "validate_units": True,
    }


@dataclass(frozen=True)
class RunConfig:
    """
    Immutable, validated parameters of one run.

    Attributes:
        target_dir: Absolute analyzed root.
        output_dir: Artifact directory override ('' keeps artifacts beside configs).
        target_tokens: Nominal per-unit token target.
        encoding: Tokenizer encoding identifier.
        buffer_ratio: Safety margin applied to the target.
        max_depth: Recursion ceiling.
        estimator: Estimator backend name.
        suggester: Suggestion backend name.
        suggestion_model: Model override for the HTTP suggestion backend.
        skip_ai: Always use the built-in patterns.
        tool_timeout: Seconds allowed for one packaging tool call.
        suggestion_timeout: Seconds allowed for one suggestion call.
        jobs: Worker threads for sibling subtrees.
        dry_run: Compute only, persist nothing.
        force: Overwrite existing configuration files.
        validate_units: Run the packaging tool after persisting each unit.
    """
    target_dir: str
    output_dir: str = ""
    target_tokens: int = DEFAULT_TARGET_TOKENS
    encoding: str = DEFAULT_ENCODING
    buffer_ratio: float = DEFAULT_BUFFER_RATIO
    max_depth: int = MAX_RECURSION_DEPTH
    estimator: str = "repomix"
    suggester: str = "claude-cli"
    suggestion_model: str = ""
    skip_ai: bool = False
    tool_timeout: float = DEFAULT_TOOL_TIMEOUT
    suggestion_timeout: float = DEFAULT_SUGGESTION_TIMEOUT
    jobs: int = 1
    dry_run: bool = False
    force: bool = False
    validate_units: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunConfig":
        """Build from a validated configuration dictionary, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def budget(self) -> Budget:
        return Budget(
            target_tokens=self.target_tokens,
            encoding=self.encoding,
            buffer_ratio=self.buffer_ratio,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

# -----------------------------------------------------------------------------
# Persistence Logic
# -----------------------------------------------------------------------------

def load_user_defaults() -> Dict[str, Any]:
    """
    Load persisted user defaults from disk.

    Returns:
        Dict[str, Any]: Persisted keys, or an empty dict when absent or corrupt.
    """
    if not os.path.exists(CONFIG_FILE):
        logger.debug("Config file not found. Using built-in defaults.")
        return {}

    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load config: {e}. Using defaults.")
        return {}

    if not isinstance(data, dict):
        logger.warning("Corrupted config file. Using defaults.")
        return {}

    stored = data.get("defaults", {})
    if not isinstance(stored, dict):
        return {}
    return {k: v for k, v in stored.items() if k in PERSISTABLE_KEYS}


def save_config(config: Dict[str, Any]) -> Optional[str]:
    """
    Persist the persistable subset of a configuration as user defaults.

    Args:
        config: A validated configuration dictionary.

    Returns:
        Optional[str]: The written path, or None on failure.
    """
    payload = {
        "version": CURRENT_CONFIG_VERSION,
        "defaults": {k: config[k] for k in PERSISTABLE_KEYS if k in config},
    }
    try:
        write_json_atomic(CONFIG_FILE, payload)
    except OSError as e:
        logger.error(f"Failed to save configuration: {e}")
        return None
    logger.debug(f"Configuration saved to {CONFIG_FILE}")
    return CONFIG_FILE

# -----------------------------------------------------------------------------
# Facade API
# -----------------------------------------------------------------------------

def load_config() -> Dict[str, Any]:
    """
    Retrieve the default configuration overlaid with persisted user defaults.
    """
    config = get_default_config()
    config.update(load_user_defaults())
    return config
