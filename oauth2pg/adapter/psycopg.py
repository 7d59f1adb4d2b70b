"""
psycopg2 backed adapters.

PsycopgConnAdapter wraps a single connection owned by the caller,
PsycopgPoolAdapter borrows a connection from a psycopg2 pool for every
statement. Neither closes what it was given.
"""

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Type

import psycopg2.extras
from psycopg2.extensions import connection as PGConnection
from psycopg2.pool import AbstractConnectionPool

from .types import Adapter, NoRowsError, R, build_record


def _exec(conn: PGConnection, query: str, args: tuple) -> int:
    with conn:
        with conn.cursor() as cursor:
            cursor.execute(query, args)
            return cursor.rowcount


def _select_one(conn: PGConnection, record_type: Type[R], query: str, args: tuple) -> R:
    with conn:
        with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
            cursor.execute(query, args)
            row = cursor.fetchone()

    if row is None:
        raise NoRowsError(query)

    return build_record(record_type, row)


class PsycopgConnAdapter(Adapter):
    """
    Adapter over a single psycopg2 connection.

    Each statement runs in its own transaction (``with conn`` commits or
    rolls back). A lock keeps concurrent callers from interleaving
    statements inside the same transaction.
    """

    def __init__(self, conn: PGConnection):
        self._conn = conn
        self._lock = threading.Lock()

    def exec(self, query: str, *args: Any) -> int:
        with self._lock:
            return _exec(self._conn, query, args)

    def select_one(self, record_type: Type[R], query: str, *args: Any) -> R:
        with self._lock:
            return _select_one(self._conn, record_type, query, args)


class PsycopgPoolAdapter(Adapter):
    """
    Adapter over a psycopg2 connection pool.

    Use a ThreadedConnectionPool when the stores are shared between
    threads, the garbage collector always runs on its own thread.
    """

    def __init__(self, pool: AbstractConnectionPool):
        self._pool = pool

    @contextmanager
    def _connection(self) -> Iterator[PGConnection]:
        conn = self._pool.getconn()
        try:
            yield conn
        finally:
            self._pool.putconn(conn)

    def exec(self, query: str, *args: Any) -> int:
        with self._connection() as conn:
            return _exec(conn, query, args)

    def select_one(self, record_type: Type[R], query: str, *args: Any) -> R:
        with self._connection() as conn:
            return _select_one(conn, record_type, query, args)


def new_conn(conn: PGConnection) -> PsycopgConnAdapter:
    """Create an adapter for a single psycopg2 connection."""
    return PsycopgConnAdapter(conn)


def new_conn_pool(pool: AbstractConnectionPool) -> PsycopgPoolAdapter:
    """Create an adapter for a psycopg2 connection pool."""
    return PsycopgPoolAdapter(pool)
