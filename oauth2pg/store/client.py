"""
PostgreSQL client store.
"""

import logging
from typing import Optional

from ..adapter.types import Adapter, NoRowsError
from ..config import ClientStoreConfig
from ..errors import NotFoundError, StorageError, StoreInitError
from ..metrics import StoreMetrics
from ..models import Client
from .types import ClientStoreItem, StoreResult, decode_payload


logger = logging.getLogger(__name__)


_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
  id     TEXT  NOT NULL,
  secret TEXT  NOT NULL,
  domain TEXT  NOT NULL,
  data   JSONB NOT NULL,
  CONSTRAINT {table}_pkey PRIMARY KEY (id)
);
"""


class ClientStore:
    """Client store backed by a single PostgreSQL table keyed by client id."""

    def __init__(self, adapter: Adapter, config: Optional[ClientStoreConfig] = None):
        self.config = config or ClientStoreConfig()
        self.config.validate()

        self._adapter = adapter
        self._table_name = self.config.table_name
        self._logger = self.config.logger or logger
        self._metrics = self.config.metrics or StoreMetrics()

    @property
    def table_name(self) -> str:
        return self._table_name

    @property
    def metrics(self) -> StoreMetrics:
        return self._metrics

    def init_table(self) -> None:
        """
        Create the client table if it does not exist.

        Raises:
            StoreInitError: If the statement fails
        """
        try:
            self._adapter.exec(_CREATE_TABLE.format(table=self._table_name))
        except Exception as e:
            raise StoreInitError(
                "init_table", self._table_name, f"Failed to create table: {e}", e
            ) from e
        logger.info(f"Initialized client table {self._table_name}")

    def close(self) -> None:
        """Release store resources. The adapter is left open."""
        pass

    def __enter__(self) -> 'ClientStore':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def get_by_id(self, client_id: str) -> Optional[Client]:
        """
        Retrieve client information by id.

        Args:
            client_id: Client id

        Returns:
            Client, or None when client_id is empty

        Raises:
            NotFoundError: If no client is registered under the id
            StorageError: If the query or deserialization fails
        """
        if not client_id:
            return None

        try:
            item = self._adapter.select_one(
                ClientStoreItem,
                f"SELECT id, data FROM {self._table_name} WHERE id = %s",
                client_id,
            )
            client = Client.from_dict(decode_payload(item.data))
        except NoRowsError as e:
            self._metrics.record_operation("client", "get_by_id", "not_found")
            raise NotFoundError("get_by_id", client_id, "Client not found", e) from e
        except Exception as e:
            self._metrics.record_operation("client", "get_by_id", "error")
            raise StorageError("get_by_id", client_id, f"Failed to retrieve client: {e}", e) from e

        self._metrics.record_operation("client", "get_by_id", "success")
        return client

    def create(self, client: Client) -> None:
        """
        Store a new client.

        Args:
            client: Client to register

        Raises:
            StorageError: If serialization fails or the id is already taken
        """
        try:
            data = client.to_json()
            self._adapter.exec(
                f"INSERT INTO {self._table_name} (id, secret, domain, data) VALUES (%s, %s, %s, %s)",
                client.id,
                client.secret,
                client.domain,
                data,
            )
        except Exception as e:
            self._metrics.record_operation("client", "create", "error")
            raise StorageError("create", client.id, f"Failed to store client: {e}", e) from e

        self._metrics.record_operation("client", "create", "success")
        logger.debug(f"Stored client {client.id}")


def create_client_store(adapter: Adapter,
                        config: Optional[ClientStoreConfig] = None,
                        **options) -> StoreResult:
    """
    Create a client store and its table.

    Args:
        adapter: Database adapter
        config: Store configuration
        **options: ClientStoreConfig fields overriding config

    Returns:
        StoreResult with the store and an optional StoreInitError
    """
    config = config or ClientStoreConfig()
    if options:
        config = config.with_options(**options)

    store = ClientStore(adapter, config)

    error = None
    if not config.init_table_disabled:
        try:
            store.init_table()
        except StoreInitError as e:
            error = e

    return StoreResult(store, error)
