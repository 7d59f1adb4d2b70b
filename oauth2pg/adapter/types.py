"""
Storage adapter capability used by the oauth2pg stores.

The stores never talk to a database client directly. They only need to
execute a mutating statement and to select a single row, so any library
that can do both can back them.
"""

from abc import ABC, abstractmethod
from dataclasses import fields, is_dataclass
from typing import Any, Mapping, Type, TypeVar


R = TypeVar("R")


class NoRowsError(LookupError):
    """Raised by Adapter.select_one when the query yields no row."""

    def __init__(self, query: str = ""):
        self.query = query
        super().__init__("no rows in result set")


class Adapter(ABC):
    """
    Abstract base class for database adapters.

    Implementations must be safe for concurrent use from several threads,
    the token store shares one adapter between its callers and its
    garbage collector.
    """

    @abstractmethod
    def exec(self, query: str, *args: Any) -> int:
        """
        Execute a mutating statement.

        Args:
            query: SQL statement using %s placeholders
            *args: Positional statement arguments

        Returns:
            Number of affected rows, -1 when the driver cannot tell

        Raises:
            Exception: Whatever the underlying driver raises
        """
        pass

    @abstractmethod
    def select_one(self, record_type: Type[R], query: str, *args: Any) -> R:
        """
        Select a single row and build a record from it.

        Args:
            record_type: Dataclass whose fields are filled from the row columns
            query: SQL query using %s placeholders
            *args: Positional query arguments

        Returns:
            record_type instance

        Raises:
            NoRowsError: If the query returns no row
            Exception: Whatever the underlying driver raises
        """
        pass


def build_record(record_type: Type[R], row: Mapping[str, Any]) -> R:
    """
    Build a record from a row mapping, picking only the columns it declares.

    Args:
        record_type: Dataclass type to build
        row: Column name to value mapping

    Returns:
        record_type instance
    """
    if not is_dataclass(record_type):
        raise TypeError(f"{record_type!r} is not a dataclass")

    values = {f.name: row[f.name] for f in fields(record_type) if f.name in row}
    return record_type(**values)
