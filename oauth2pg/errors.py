"""
Error types raised by the oauth2pg stores.

Every failure reported by a store derives from StorageError so callers
can catch a single base class, while NotFoundError stays distinguishable
for the "token revoked or expired" branch of the protocol engine.
"""

from typing import Optional


class StorageError(Exception):
    """Base class for storage-related errors."""

    def __init__(self, operation: str, key: str = "", message: str = "",
                 cause: Optional[Exception] = None):
        self.operation = operation
        self.key = key
        self.message = message
        self.cause = cause
        super().__init__(f"Storage error in {operation}: {message}")


class NotFoundError(StorageError):
    """Raised when a lookup by code, access, refresh or id matches no row."""
    pass


class StoreInitError(StorageError):
    """
    Raised when the table creation statement fails during construction.

    Construction never raises it: it is handed back next to the store in a
    StoreResult so the caller decides whether to abort.
    """
    pass


__all__ = [
    "StorageError",
    "NotFoundError",
    "StoreInitError",
]
