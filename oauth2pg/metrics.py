"""
Prometheus metrics for the oauth2pg stores.

Every store records its operations and garbage collection passes here.
Each StoreMetrics owns a CollectorRegistry unless one is given, so several
stores in one process never collide on metric names.
"""

import time
from contextlib import contextmanager
from typing import Iterator, Optional

from prometheus_client import (
    Counter, Histogram, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
)


class StoreMetrics:
    """Metrics collector for store operations and GC passes."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics collector.

        Args:
            registry: Registry to attach collectors to, a private one by default
        """
        self.registry = registry if registry is not None else CollectorRegistry()

        self.operations = Counter(
            'oauth2pg_store_operations_total',
            'Total number of store operations',
            ['store', 'operation', 'status'],
            registry=self.registry
        )

        self.gc_runs = Counter(
            'oauth2pg_gc_runs_total',
            'Total number of garbage collection passes',
            ['table', 'status'],
            registry=self.registry
        )

        self.gc_removed = Counter(
            'oauth2pg_gc_removed_total',
            'Total number of expired token rows removed',
            ['table'],
            registry=self.registry
        )

        self.gc_duration = Histogram(
            'oauth2pg_gc_duration_seconds',
            'Garbage collection pass duration in seconds',
            ['table'],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0],
            registry=self.registry
        )

    def record_operation(self, store: str, operation: str, status: str) -> None:
        """Record a store operation outcome."""
        self.operations.labels(store=store, operation=operation, status=status).inc()

    @contextmanager
    def time_gc(self, table: str) -> Iterator[None]:
        """
        Time a garbage collection pass and count its outcome.

        Exceptions raised inside the block are counted as errors and
        re-raised.

        Args:
            table: Token table name
        """
        start_time = time.time()
        try:
            yield
        except Exception:
            self.gc_runs.labels(table=table, status='error').inc()
            raise
        else:
            self.gc_runs.labels(table=table, status='success').inc()
        finally:
            self.gc_duration.labels(table=table).observe(time.time() - start_time)

    def record_gc_removed(self, table: str, count: int) -> None:
        """Count rows removed by a garbage collection pass."""
        if count > 0:
            self.gc_removed.labels(table=table).inc(count)

    def get_sample(self, name: str, **labels) -> float:
        """
        Get the current value of a sample, 0.0 when it was never recorded.

        Args:
            name: Sample name, e.g. ``oauth2pg_gc_runs_total``
            **labels: Sample labels

        Returns:
            Sample value
        """
        value = self.registry.get_sample_value(name, labels)
        return value if value is not None else 0.0

    def export(self) -> bytes:
        """Export metrics in Prometheus text format."""
        return generate_latest(self.registry)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST
