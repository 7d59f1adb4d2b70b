"""
SQLAlchemy backed adapter.

Statements are passed to the DBAPI driver untouched through
``exec_driver_sql``, so the engine must use a driver with the ``%s``
placeholder style (psycopg2, psycopg, pg8000 in format mode).
"""

from typing import Any, Type

from sqlalchemy.engine import Engine

from .types import Adapter, NoRowsError, R, build_record


class SQLAlchemyAdapter(Adapter):
    """
    Adapter over a SQLAlchemy Engine.

    Every call checks a connection out of the engine pool and runs in its
    own transaction.
    """

    def __init__(self, engine: Engine):
        self._engine = engine

    def exec(self, query: str, *args: Any) -> int:
        with self._engine.begin() as conn:
            result = conn.exec_driver_sql(query, args)
            return result.rowcount

    def select_one(self, record_type: Type[R], query: str, *args: Any) -> R:
        with self._engine.begin() as conn:
            row = conn.exec_driver_sql(query, args).mappings().first()

        if row is None:
            raise NoRowsError(query)

        return build_record(record_type, row)


def new_engine_adapter(engine: Engine) -> SQLAlchemyAdapter:
    """Create an adapter for a SQLAlchemy engine."""
    return SQLAlchemyAdapter(engine)
