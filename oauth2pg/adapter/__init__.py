"""
Database adapters for the oauth2pg stores.

This package provides the Adapter capability the stores are written
against, plus implementations for psycopg2 connections and pools and for
SQLAlchemy engines. The driver specific modules are imported lazily by
the caller so that only the driver actually used has to be installed.
"""

from .types import (
    Adapter,
    NoRowsError,
    build_record
)

__all__ = [
    "Adapter",
    "NoRowsError",
    "build_record",
]
