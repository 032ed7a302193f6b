from __future__ import annotations

"""
Configuration Validator.

Acts as a gatekeeper to ensure that the configuration dictionary passed
to the run contains valid types and normalized values.
Uses a schema-driven approach to minimize boilerplate. Type problems are
recovered with a warning (unless strict); out-of-range values are fatal.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from repomix_autotune.domain.config import get_default_config
from repomix_autotune.domain.constants import ESTIMATOR_CHOICES, SUGGESTER_CHOICES
from repomix_autotune.domain.errors import InvalidArgumentsError

logger = logging.getLogger(__name__)

MAX_DEPTH_CEILING = 16
MAX_JOBS = 64


def validate_config(
        config: Any,
        *,
        strict: bool = False,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate and normalize the configuration dictionary.

    Ensures types are correct (converting strings to numbers/bools if needed)
    and fills in missing values with defaults using a declarative schema.

    Args:
        config: The raw configuration dictionary (or untrusted input).
        strict: If True, raises TypeError on invalid types.

    Returns:
        Tuple[Dict, List[str]]: (Normalized Config, List of Warnings).

    Raises:
        InvalidArgumentsError: If a value is out of its allowed range.
    """
    warnings: List[str] = []
    defaults = get_default_config()

    # Base Validation: Type Check
    if not isinstance(config, dict):
        msg = f"Invalid config type: expected dict, received {type(config).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(f"{msg} Using defaults.")
        logger.warning(msg)
        return defaults, warnings

    merged: Dict[str, Any] = dict(defaults)
    merged.update({k: v for k, v in config.items() if v is not None})

    for field, coerce in _FIELD_SCHEMA.items():
        value = merged.get(field)
        if value is None:
            merged[field] = defaults[field]
            continue
        try:
            merged[field], note = coerce(value, strict)
            if merged[field] is None:
                merged[field] = defaults[field]
        except _Rejected as e:
            if strict:
                raise e.error_type(f"Invalid field '{field}': {e}.") from None
            warnings.append(f"Invalid field '{field}': {e}. Using fallback.")
            merged[field] = defaults[field]
            continue
        if note:
            warnings.append(f"Field '{field}' converted from {value!r} to {merged[field]!r}.")

    _check_ranges(merged)
    return merged, warnings

# -----------------------------------------------------------------------------
# RANGE CHECKS
# -----------------------------------------------------------------------------

def _check_ranges(cfg: Dict[str, Any]) -> None:
    if cfg["target_tokens"] <= 0:
        raise InvalidArgumentsError(f"Target tokens must be a positive integer, got {cfg['target_tokens']}")
    if not 0.0 <= cfg["buffer_ratio"] < 1.0:
        raise InvalidArgumentsError(f"Buffer ratio must be in [0, 1), got {cfg['buffer_ratio']}")
    if not 1 <= cfg["max_depth"] <= MAX_DEPTH_CEILING:
        raise InvalidArgumentsError(f"Max depth must be between 1 and {MAX_DEPTH_CEILING}, got {cfg['max_depth']}")
    if not 1 <= cfg["jobs"] <= MAX_JOBS:
        raise InvalidArgumentsError(f"Jobs must be between 1 and {MAX_JOBS}, got {cfg['jobs']}")
    for field in ("tool_timeout", "suggestion_timeout"):
        if cfg[field] <= 0:
            raise InvalidArgumentsError(f"{field} must be positive, got {cfg[field]}")
    if not cfg["encoding"]:
        raise InvalidArgumentsError("Encoding must not be empty")


# -----------------------------------------------------------------------------
# COERCION SCHEMA
# -----------------------------------------------------------------------------

_TRUE_WORDS = ("true", "1", "yes", "y", "on")
_FALSE_WORDS = ("false", "0", "no", "n", "off")


class _Rejected(Exception):
    """A value that cannot be coerced to its field type."""

    def __init__(self, reason: str, error_type: type = TypeError) -> None:
        super().__init__(reason)
        self.error_type = error_type


def _expected(kind: str, value: Any) -> _Rejected:
    return _Rejected(f"expected {kind}, received {type(value).__name__}")


def _to_str(value: Any, strict: bool) -> Tuple[Optional[str], bool]:
    if not isinstance(value, str):
        raise _expected("str", value)
    return (value.strip() or None), False


def _to_bool(value: Any, strict: bool) -> Tuple[bool, bool]:
    if isinstance(value, bool):
        return value, False
    if not strict:
        if isinstance(value, (int, float)) and value in (0, 1):
            return bool(value), True
        if isinstance(value, str):
            word = value.strip().lower()
            if word in _TRUE_WORDS:
                return True, True
            if word in _FALSE_WORDS:
                return False, True
    raise _expected("bool", value)


def _to_int(value: Any, strict: bool) -> Tuple[int, bool]:
    if isinstance(value, int) and not isinstance(value, bool):
        return value, False
    parsed = None if strict else _parse_number(value, int)
    if parsed is None:
        raise _expected("int", value)
    return int(parsed), True


def _to_float(value: Any, strict: bool) -> Tuple[float, bool]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value), False
    parsed = None if strict else _parse_number(value, float)
    if parsed is None:
        raise _expected("float", value)
    return float(parsed), True


def _one_of(choices: Sequence[str]):
    def coerce(value: Any, strict: bool) -> Tuple[str, bool]:
        if isinstance(value, str) and value.strip().lower() in choices:
            return value.strip().lower(), False
        raise _Rejected(f"expected one of {', '.join(choices)}, received {value!r}", ValueError)
    return coerce


def _parse_number(value: Any, kind: type) -> Optional[float]:
    if not isinstance(value, str):
        return None
    s = value.strip().replace(",", "").replace("_", "")
    try:
        return kind(s)
    except ValueError:
        return None


_FIELD_SCHEMA = {
    "target_dir": _to_str,
    "output_dir": _to_str,
    "encoding": _to_str,
    "suggestion_model": _to_str,
    "skip_ai": _to_bool,
    "dry_run": _to_bool,
    "force": _to_bool,
    "validate_units": _to_bool,
    "target_tokens": _to_int,
    "max_depth": _to_int,
    "jobs": _to_int,
    "buffer_ratio": _to_float,
    "tool_timeout": _to_float,
    "suggestion_timeout": _to_float,
    "estimator": _one_of(ESTIMATOR_CHOICES),
    "suggester": _one_of(SUGGESTER_CHOICES),
}
