"""
Configuration utilities for oauth2pg.
Provides environment lookups, duration parsing and config file loading.
"""

import json
import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Union

import yaml


def load_config_from_env(prefix: str = "OAUTH2PG_") -> Dict[str, str]:
    """
    Collect environment variables starting with prefix.

    Keys are returned without the prefix and lowercased, so
    ``OAUTH2PG_TOKEN_GC_INTERVAL`` read with prefix ``OAUTH2PG_TOKEN_``
    becomes ``gc_interval``. Values stay strings.
    """
    return {
        key[len(prefix):].lower(): value
        for key, value in os.environ.items()
        if key.startswith(prefix)
    }


def parse_bool(value: Any) -> bool:
    """Interpret common truthy strings ('true', '1', 'yes', 'on')."""
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'on')
    return bool(value)


def parse_duration_string(duration_str: str) -> timedelta:
    """
    Parse duration string like '500ms', '30s', '5m', '2h', '1d' into timedelta.
    """
    if not isinstance(duration_str, str):
        raise ValueError("Duration must be a string")

    duration_str = duration_str.strip().lower()

    # Pattern to match number followed by unit
    pattern = r'^(\d+(?:\.\d+)?)\s*(ms|[smhd])$'
    match = re.match(pattern, duration_str)

    if not match:
        raise ValueError(f"Invalid duration format: {duration_str}")

    value, unit = match.groups()
    value = float(value)

    if unit == 'ms':
        return timedelta(milliseconds=value)
    elif unit == 's':
        return timedelta(seconds=value)
    elif unit == 'm':
        return timedelta(minutes=value)
    elif unit == 'h':
        return timedelta(hours=value)
    else:
        return timedelta(days=value)


def parse_duration(value: Union[str, int, float, timedelta]) -> timedelta:
    """
    Coerce a duration given as timedelta, seconds or duration string.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    try:
        return timedelta(seconds=float(value))
    except ValueError:
        return parse_duration_string(value)


def load_config_file(file_path: str) -> Dict[str, Any]:
    """Load configuration from a file (JSON or YAML)."""
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    file_ext = Path(file_path).suffix.lower()

    with open(file_path, 'r', encoding='utf-8') as f:
        if file_ext in ['.json']:
            return json.load(f)
        elif file_ext in ['.yaml', '.yml']:
            return yaml.safe_load(f) or {}
        else:
            raise ValueError(f"Unsupported configuration file format: {file_ext}")
