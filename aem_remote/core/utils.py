"""
Core utility functions
"""
import re
from typing import Dict

from .exceptions import ConfigError


# ============================================================
# Environment Script
# ============================================================

def env_to_script(env: Dict[str, str]) -> str:
    """
    Serialize environment variables into a POSIX shell script.

    Only ``"`` and ``$`` are escaped; values with newlines or backticks
    are not supported.
    """
    lines = ["#!/bin/sh"]
    for name in sorted(env):
        value = env[name].replace('"', '\\"').replace("$", "\\$")
        lines.append(f'export {name}="{value}"')
    return "\n".join(lines) + "\n"


# ============================================================
# Settings Coercion
# ============================================================

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"", "0", "f", "F", "FALSE", "false", "False"}

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def to_int(value: str) -> int:
    """Convert setting value to int, empty string means 0"""
    value = (value or "").strip()
    if not value:
        return 0
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"cannot convert '{value}' to integer") from e


def to_bool(value: str) -> bool:
    """Convert setting value to bool, empty string means False"""
    value = (value or "").strip()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"cannot convert '{value}' to boolean")


def to_duration(value: str) -> float:
    """
    Convert setting value to seconds.

    Accepts Go-style durations ("300ms", "1m30s", "2h") or a bare number
    of seconds. Empty string means 0.
    """
    value = (value or "").strip()
    if not value:
        return 0.0
    try:
        return float(value)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(value):
        raise ConfigError(f"cannot convert '{value}' to duration")
    return total
