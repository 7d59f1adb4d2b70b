"""
PostgreSQL token store.

One table row holds the authorization code, access token and refresh
token issued for a grant, each looked up by its own column and each with
its own expiry window. A background scheduler deletes rows once every
populated artifact has expired.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..adapter.types import Adapter, NoRowsError
from ..config import TokenStoreConfig
from ..errors import NotFoundError, StorageError, StoreInitError
from ..metrics import StoreMetrics
from ..models import Token
from .gc import GCScheduler
from .types import StoreResult, TokenStoreItem, decode_payload


logger = logging.getLogger(__name__)


_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
  id                 BIGSERIAL   NOT NULL,
  code               TEXT        NOT NULL,
  code_created_at    TIMESTAMPTZ NOT NULL,
  code_expires_in    BIGINT      NOT NULL,
  access             TEXT        NOT NULL,
  access_created_at  TIMESTAMPTZ NOT NULL,
  access_expires_in  BIGINT      NOT NULL,
  refresh            TEXT        NOT NULL,
  refresh_created_at TIMESTAMPTZ NOT NULL,
  refresh_expires_in BIGINT      NOT NULL,
  data               JSONB       NOT NULL,
  CONSTRAINT {table}_pkey PRIMARY KEY (id)
);

CREATE INDEX IF NOT EXISTS idx_{table}_code ON {table} (code);
CREATE INDEX IF NOT EXISTS idx_{table}_access ON {table} (access);
CREATE INDEX IF NOT EXISTS idx_{table}_refresh ON {table} (refresh);
"""

_INSERT = (
    "INSERT INTO {table} ("
    "code, code_created_at, code_expires_in, "
    "access, access_created_at, access_expires_in, "
    "refresh, refresh_created_at, refresh_expires_in, "
    "data) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)"
)

# Expiry is evaluated against the database clock so that several store
# instances agree on it.
_DELETE_EXPIRED = (
    "DELETE FROM {table} WHERE "
    "(code = '' OR code_created_at + code_expires_in * INTERVAL '1 second' <= NOW()) AND "
    "(access = '' OR access_created_at + access_expires_in * INTERVAL '1 second' <= NOW()) AND "
    "(refresh = '' OR refresh_created_at + refresh_expires_in * INTERVAL '1 second' <= NOW())"
)


def _seconds(window: timedelta) -> int:
    # round up so a row never looks expired before its token does
    return max(0, math.ceil(window.total_seconds()))


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class TokenStore:
    """
    Token store backed by a single PostgreSQL table.

    All operations are synchronous and may be called from several threads
    at once; the store keeps no state besides its configuration, so all
    coordination is left to the database.
    """

    def __init__(self, adapter: Adapter, config: Optional[TokenStoreConfig] = None):
        """
        Initialize token store.

        The table is neither created nor is the garbage collector started,
        use create_token_store() for that or call init_table() and
        start_gc() explicitly.

        Args:
            adapter: Database adapter, shared and never closed by the store
            config: Store configuration
        """
        self.config = config or TokenStoreConfig()
        self.config.validate()

        self._adapter = adapter
        self._table_name = self.config.table_name
        self._logger = self.config.logger or logger
        self._metrics = self.config.metrics or StoreMetrics()
        self._gc = GCScheduler(
            self.cleanup,
            self.config.gc_interval,
            self._logger,
            name=f"oauth2pg-gc-{self._table_name}",
        )

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def gc_interval(self) -> timedelta:
        return self.config.gc_interval

    @property
    def gc_running(self) -> bool:
        return self._gc.running

    @property
    def metrics(self) -> StoreMetrics:
        return self._metrics

    def init_table(self) -> None:
        """
        Create the token table and its lookup indexes if they do not exist.

        Raises:
            StoreInitError: If the statement fails
        """
        try:
            self._adapter.exec(_CREATE_TABLE.format(table=self._table_name))
        except Exception as e:
            raise StoreInitError(
                "init_table", self._table_name, f"Failed to create table: {e}", e
            ) from e
        logger.info(f"Initialized token table {self._table_name}")

    def start_gc(self) -> None:
        """Start the background garbage collector."""
        self._gc.start()

    def close(self) -> None:
        """
        Stop the background garbage collector.

        Returns once an in-flight pass has finished. The adapter is left
        open.
        """
        self._gc.stop()

    def __enter__(self) -> 'TokenStore':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def create(self, token: Token) -> None:
        """
        Store a new token row.

        A fresh row is inserted on every call, even when one of the values
        already exists in another row.

        Args:
            token: Token to store

        Raises:
            StorageError: If serialization or the insert fails
        """
        try:
            args = (
                token.code,
                _aware(token.code_created_at),
                _seconds(token.code_expires_in),
                token.access,
                _aware(token.access_created_at),
                _seconds(token.access_expires_in),
                token.refresh,
                _aware(token.refresh_created_at),
                _seconds(token.refresh_expires_in),
                token.to_json(),
            )
        except Exception as e:
            self._metrics.record_operation("token", "create", "error")
            raise StorageError("create", "", f"Failed to serialize token: {e}", e) from e

        self._exec("create", "", _INSERT.format(table=self._table_name), *args)
        logger.debug(f"Stored token for client {token.client_id}")

    def remove_by_code(self, code: str) -> None:
        """
        Delete every token row holding the authorization code.

        An empty code is a no-op, it would otherwise match every row
        issued without a code.
        """
        self._remove_by("code", code)

    def remove_by_access(self, access: str) -> None:
        """Delete every token row holding the access token."""
        self._remove_by("access", access)

    def remove_by_refresh(self, refresh: str) -> None:
        """Delete every token row holding the refresh token."""
        self._remove_by("refresh", refresh)

    def get_by_code(self, code: str) -> Optional[Token]:
        """
        Retrieve a token by authorization code.

        Args:
            code: Authorization code

        Returns:
            Token, or None when code is empty

        Raises:
            NotFoundError: If no row holds the code
            StorageError: If the query or deserialization fails
        """
        return self._get_by("code", code)

    def get_by_access(self, access: str) -> Optional[Token]:
        """
        Retrieve a token by access token.

        Raises:
            NotFoundError: If no row holds the access token
            StorageError: If the query or deserialization fails
        """
        return self._get_by("access", access)

    def get_by_refresh(self, refresh: str) -> Optional[Token]:
        """
        Retrieve a token by refresh token.

        Raises:
            NotFoundError: If no row holds the refresh token
            StorageError: If the query or deserialization fails
        """
        return self._get_by("refresh", refresh)

    def cleanup(self) -> int:
        """
        Remove expired token rows.

        A row is removed once each of its non-empty code, access and
        refresh values has outlived its expiry window.

        Returns:
            Number of removed rows, -1 when the driver cannot tell

        Raises:
            StorageError: If the delete statement fails
        """
        with self._metrics.time_gc(self._table_name):
            removed = self._exec("cleanup", "", _DELETE_EXPIRED.format(table=self._table_name))
        self._metrics.record_gc_removed(self._table_name, removed)
        return removed

    def _remove_by(self, column: str, value: str) -> None:
        if not value:
            return

        self._exec(
            f"remove_by_{column}", value,
            f"DELETE FROM {self._table_name} WHERE {column} = %s",
            value,
        )

    def _get_by(self, column: str, value: str) -> Optional[Token]:
        if not value:
            return None

        operation = f"get_by_{column}"
        try:
            item = self._adapter.select_one(
                TokenStoreItem,
                f"SELECT id, data FROM {self._table_name} WHERE {column} = %s",
                value,
            )
            token = Token.from_dict(decode_payload(item.data))
        except NoRowsError as e:
            self._metrics.record_operation("token", operation, "not_found")
            raise NotFoundError(operation, value, "Token not found", e) from e
        except Exception as e:
            self._metrics.record_operation("token", operation, "error")
            raise StorageError(operation, value, f"Failed to retrieve token: {e}", e) from e

        self._metrics.record_operation("token", operation, "success")
        return token

    def _exec(self, operation: str, key: str, query: str, *args: Any) -> int:
        try:
            result = self._adapter.exec(query, *args)
        except Exception as e:
            self._metrics.record_operation("token", operation, "error")
            raise StorageError(operation, key, f"Statement failed: {e}", e) from e

        self._metrics.record_operation("token", operation, "success")
        return result if result is not None else -1


def create_token_store(adapter: Adapter,
                       config: Optional[TokenStoreConfig] = None,
                       **options) -> StoreResult:
    """
    Create a token store, its table and its garbage collector.

    A failing table creation does not prevent the store from being
    returned; the error travels next to it.

    Args:
        adapter: Database adapter
        config: Store configuration
        **options: TokenStoreConfig fields overriding config

    Returns:
        StoreResult with the store and an optional StoreInitError
    """
    config = config or TokenStoreConfig()
    if options:
        config = config.with_options(**options)

    store = TokenStore(adapter, config)

    error = None
    if not config.init_table_disabled:
        try:
            store.init_table()
        except StoreInitError as e:
            error = e

    if not config.gc_disabled:
        store.start_gc()

    return StoreResult(store, error)
