"""
Shared fixtures for the oauth2pg tests.

MockAdapter records every statement and lets a test decide the outcome,
FakeAdapter keeps rows in memory and understands the handful of statements
the stores issue, so store behaviour can be checked without a database.
"""

import re
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from oauth2pg.adapter import Adapter, NoRowsError, build_record
from oauth2pg.models import get_current_time


@dataclass
class QueryCall:
    query: str
    args: Tuple[Any, ...]


class MockAdapter(Adapter):
    """Adapter recording calls and delegating results to callbacks."""

    def __init__(self,
                 exec_callback: Optional[Callable[..., int]] = None,
                 select_callback: Optional[Callable[..., Any]] = None):
        self.exec_calls: List[QueryCall] = []
        self.select_one_calls: List[QueryCall] = []
        self.exec_callback = exec_callback
        self.select_callback = select_callback
        self._lock = threading.Lock()

    def exec(self, query: str, *args: Any) -> int:
        with self._lock:
            self.exec_calls.append(QueryCall(query, args))
        if self.exec_callback is not None:
            return self.exec_callback(query, *args)
        return 0

    def select_one(self, record_type, query: str, *args: Any):
        with self._lock:
            self.select_one_calls.append(QueryCall(query, args))
        if self.select_callback is not None:
            return self.select_callback(record_type, query, *args)
        raise NoRowsError(query)


class UniqueViolation(Exception):
    """Stands in for a driver's duplicate key error."""


_INSERT = re.compile(r'^INSERT INTO (\w+) \(([^)]*)\)')
_BY_COLUMN = re.compile(r'^(SELECT id, data|DELETE) FROM (\w+) WHERE (\w+) = %s$')
_DELETE_EXPIRED = re.compile(r"^DELETE FROM (\w+) WHERE \(code = ''")


class FakeAdapter(Adapter):
    """In-memory tables answering the statements issued by the stores."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.exec_count = 0
        self._next_id = 1
        self._lock = threading.Lock()

    def exec(self, query: str, *args: Any) -> int:
        query = query.strip()
        with self._lock:
            self.exec_count += 1

            if query.startswith("CREATE TABLE"):
                table = query.split()[5]
                self.tables.setdefault(table, [])
                return 0

            match = _INSERT.match(query)
            if match:
                table, columns = match.group(1), [c.strip() for c in match.group(2).split(",")]
                row = dict(zip(columns, args))
                rows = self.tables.setdefault(table, [])
                if "id" in row:
                    if any(r["id"] == row["id"] for r in rows):
                        raise UniqueViolation(f"duplicate key value violates {table}_pkey")
                else:
                    row["id"] = self._next_id
                    self._next_id += 1
                rows.append(row)
                return 1

            match = _DELETE_EXPIRED.match(query)
            if match:
                rows = self.tables.setdefault(match.group(1), [])
                kept = [row for row in rows if not _row_expired(row)]
                removed = len(rows) - len(kept)
                self.tables[match.group(1)] = kept
                return removed

            match = _BY_COLUMN.match(query)
            if match and match.group(1) == "DELETE":
                table, column = match.group(2), match.group(3)
                rows = self.tables.setdefault(table, [])
                kept = [row for row in rows if row[column] != args[0]]
                self.tables[table] = kept
                return len(rows) - len(kept)

        raise ValueError(f"Unsupported statement: {query}")

    def select_one(self, record_type, query: str, *args: Any):
        match = _BY_COLUMN.match(query.strip())
        if not match or match.group(1) != "SELECT id, data":
            raise ValueError(f"Unsupported query: {query}")

        table, column = match.group(2), match.group(3)
        with self._lock:
            for row in self.tables.get(table, []):
                if row[column] == args[0]:
                    return build_record(record_type, row)
        raise NoRowsError(query)


def _row_expired(row: Dict[str, Any]) -> bool:
    now = get_current_time()
    for name in ("code", "access", "refresh"):
        if not row[name]:
            continue
        expires_at = row[f"{name}_created_at"] + timedelta(seconds=row[f"{name}_expires_in"])
        if expires_at > now:
            return False
    return True


class MemoryLogger:
    """Logger sink keeping every formatted error."""

    def __init__(self):
        self.formats: List[str] = []
        self.args: List[Tuple[Any, ...]] = []

    def error(self, msg: str, *args: Any) -> None:
        self.formats.append(msg)
        self.args.append(args)


@pytest.fixture
def mock_adapter():
    """Create a recording adapter"""
    return MockAdapter()


@pytest.fixture
def fake_adapter():
    """Create an in-memory adapter"""
    return FakeAdapter()


@pytest.fixture
def memory_logger():
    """Create a logger sink recording errors"""
    return MemoryLogger()
