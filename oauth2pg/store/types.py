"""
Row records and result types shared by the oauth2pg stores.

Lookups only read back the row id and the JSON payload. The timestamp
columns exist for the garbage collector, and reading them would make the
driver parse year-1 placeholders that some session time zones render as
BC dates.
"""

import json
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional

from ..errors import StoreInitError


@dataclass
class TokenStoreItem:
    """Token row as read by the lookup queries."""
    id: int = 0
    data: Any = None


@dataclass
class ClientStoreItem:
    """Client row as read by the lookup query."""
    id: str = ""
    data: Any = None


def decode_payload(data: Any) -> Any:
    """
    Decode a ``data`` column value.

    psycopg2 already parses JSONB columns, other drivers hand back the raw
    text or bytes.
    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        data = bytes(data).decode('utf-8')
    if isinstance(data, str):
        return json.loads(data)
    return data


class StoreResult(NamedTuple):
    """
    A constructed store together with its table initialization error.

    The store is usable even when ``error`` is set, callers that know the
    table already exists may ignore it:

        store, err = create_token_store(adapter)
        if err is not None:
            raise err
    """
    store: Any
    error: Optional[StoreInitError] = None
