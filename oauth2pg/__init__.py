"""
oauth2pg Python Package

PostgreSQL storage for OAuth2 authorization codes, access tokens,
refresh tokens and client registrations.
"""

__version__ = "0.1.0"

from .adapter import Adapter, NoRowsError
from .config import ClientStoreConfig, TokenStoreConfig, load_store_configs
from .errors import NotFoundError, StorageError, StoreInitError
from .metrics import StoreMetrics
from .models import Client, Token, new_token
from .store import (
    ClientStore,
    StoreResult,
    TokenStore,
    create_client_store,
    create_token_store,
)

__all__ = [
    "Adapter",
    "NoRowsError",
    "ClientStoreConfig",
    "TokenStoreConfig",
    "load_store_configs",
    "NotFoundError",
    "StorageError",
    "StoreInitError",
    "StoreMetrics",
    "Client",
    "Token",
    "new_token",
    "ClientStore",
    "StoreResult",
    "TokenStore",
    "create_client_store",
    "create_token_store",
]
