"""
Package store provides the PostgreSQL token and client stores.

This package implements:
- Token storage with code, access and refresh lookups on one table
- Background garbage collection of expired token rows
- Client registration storage
"""

from .types import (
    TokenStoreItem,
    ClientStoreItem,
    StoreResult
)

from .gc import (
    GCScheduler
)

from .token import (
    TokenStore,
    create_token_store
)

from .client import (
    ClientStore,
    create_client_store
)

__all__ = [
    # Row records
    'TokenStoreItem',
    'ClientStoreItem',
    'StoreResult',

    # Garbage collection
    'GCScheduler',

    # Stores
    'TokenStore',
    'create_token_store',
    'ClientStore',
    'create_client_store'
]
