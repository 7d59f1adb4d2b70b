"""
Utility package providing helper functions for oauth2pg.

This package includes configuration helpers for reading environment
variables, parsing durations and loading JSON or YAML files.
"""

from .config import (
    load_config_from_env, parse_bool,
    parse_duration_string, parse_duration, load_config_file
)

__all__ = [
    "load_config_from_env",
    "parse_bool",
    "parse_duration_string",
    "parse_duration",
    "load_config_file",
]
