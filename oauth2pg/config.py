"""
Construction options for the token and client stores.

Options can be given directly, as keyword overrides to the store
factories, from environment variables or from a JSON/YAML file:

    token_store:
      table_name: oauth2_tokens
      gc_interval: 5m
    client_store:
      table_name: oauth2_clients
"""

import re
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Any, Dict, Optional

from .log import Logger
from .metrics import StoreMetrics
from .util.config import (
    load_config_file, load_config_from_env, parse_bool, parse_duration
)


DEFAULT_TOKEN_TABLE = "oauth2_tokens"
DEFAULT_CLIENT_TABLE = "oauth2_clients"
DEFAULT_GC_INTERVAL = timedelta(minutes=10)

_IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def _validate_table_name(table_name: str) -> None:
    # table names are interpolated into SQL text, never bound as parameters
    if not isinstance(table_name, str) or not _IDENTIFIER.match(table_name):
        raise ValueError(f"Invalid table name: {table_name!r}")


@dataclass
class ClientStoreConfig:
    """Configuration for the client store."""

    table_name: str = DEFAULT_CLIENT_TABLE
    init_table_disabled: bool = False
    logger: Optional[Logger] = None
    metrics: Optional[StoreMetrics] = None

    def validate(self) -> None:
        """
        Validate configuration.

        Raises:
            ValueError: If an option is invalid
        """
        _validate_table_name(self.table_name)

    def with_options(self, **options) -> 'ClientStoreConfig':
        """Return a copy with the given options overridden."""
        return replace(self, **options)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClientStoreConfig':
        """
        Create configuration from dictionary.

        Args:
            data: Dictionary data, unknown keys are ignored

        Returns:
            ClientStoreConfig instance
        """
        config = cls()
        if 'table_name' in data:
            config.table_name = str(data['table_name'])
        if 'init_table_disabled' in data:
            config.init_table_disabled = parse_bool(data['init_table_disabled'])
        config.validate()
        return config

    @classmethod
    def from_env(cls, prefix: str = "OAUTH2PG_CLIENT_") -> 'ClientStoreConfig':
        """Create configuration from environment variables."""
        return cls.from_dict(load_config_from_env(prefix))


@dataclass
class TokenStoreConfig:
    """Configuration for the token store."""

    table_name: str = DEFAULT_TOKEN_TABLE
    init_table_disabled: bool = False
    gc_disabled: bool = False
    gc_interval: timedelta = field(default=DEFAULT_GC_INTERVAL)
    logger: Optional[Logger] = None
    metrics: Optional[StoreMetrics] = None

    def validate(self) -> None:
        """
        Validate configuration.

        Raises:
            ValueError: If an option is invalid
        """
        _validate_table_name(self.table_name)

        if not isinstance(self.gc_interval, timedelta):
            raise ValueError("gc_interval must be a timedelta")
        if self.gc_interval <= timedelta(0):
            raise ValueError("gc_interval must be positive")

    def with_options(self, **options) -> 'TokenStoreConfig':
        """Return a copy with the given options overridden."""
        if 'gc_interval' in options:
            options['gc_interval'] = parse_duration(options['gc_interval'])
        return replace(self, **options)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TokenStoreConfig':
        """
        Create configuration from dictionary.

        Args:
            data: Dictionary data, unknown keys are ignored. ``gc_interval``
                accepts seconds or a duration string such as ``"5m"``.

        Returns:
            TokenStoreConfig instance
        """
        config = cls()
        if 'table_name' in data:
            config.table_name = str(data['table_name'])
        if 'init_table_disabled' in data:
            config.init_table_disabled = parse_bool(data['init_table_disabled'])
        if 'gc_disabled' in data:
            config.gc_disabled = parse_bool(data['gc_disabled'])
        if 'gc_interval' in data:
            config.gc_interval = parse_duration(data['gc_interval'])
        config.validate()
        return config

    @classmethod
    def from_env(cls, prefix: str = "OAUTH2PG_TOKEN_") -> 'TokenStoreConfig':
        """Create configuration from environment variables."""
        return cls.from_dict(load_config_from_env(prefix))


def load_store_configs(file_path: str) -> Dict[str, Any]:
    """
    Load token and client store configuration from a JSON or YAML file.

    Args:
        file_path: Path to the configuration file

    Returns:
        Dictionary with ``token_store`` and ``client_store`` entries
    """
    data = load_config_file(file_path)
    return {
        'token_store': TokenStoreConfig.from_dict(data.get('token_store') or {}),
        'client_store': ClientStoreConfig.from_dict(data.get('client_store') or {}),
    }
