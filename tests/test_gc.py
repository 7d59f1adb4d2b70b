"""
Tests for background garbage collection of expired tokens.
"""

import threading
import time
from datetime import timedelta

import pytest

from oauth2pg import NotFoundError, create_token_store, new_token
from oauth2pg.models import get_current_time
from oauth2pg.store.gc import GCScheduler

from conftest import MockAdapter


class TestGCLoop:
    """Test the GC loop driven by the token store"""

    def test_gc(self, mock_adapter):
        """GC issues one delete statement per interval"""
        store, err = create_token_store(
            mock_adapter, init_table_disabled=True, gc_interval=timedelta(milliseconds=200)
        )
        assert err is None

        try:
            time.sleep(1.1)
        finally:
            store.close()

        # in 1.1 seconds we should have 4-5 gc calls
        assert 3 <= len(mock_adapter.exec_calls) <= 6
        assert len(mock_adapter.select_one_calls) == 0
        for call in mock_adapter.exec_calls:
            assert call.query.startswith("DELETE FROM oauth2_tokens WHERE")
            assert "NOW()" in call.query
            assert call.args == ()

    def test_gc_disabled(self, mock_adapter):
        """No GC statements when GC is disabled"""
        store, _ = create_token_store(
            mock_adapter, init_table_disabled=True, gc_disabled=True,
            gc_interval=timedelta(milliseconds=50)
        )
        time.sleep(0.3)
        store.close()

        assert mock_adapter.exec_calls == []
        assert store.gc_running is False

    def test_gc_failure_is_logged(self, memory_logger):
        """Failed passes go to the logger and the loop keeps running"""
        def failing_exec(query, *args):
            raise RuntimeError("database is restarting")

        adapter = MockAdapter(exec_callback=failing_exec)
        store, _ = create_token_store(
            adapter, init_table_disabled=True, logger=memory_logger,
            gc_interval=timedelta(milliseconds=100)
        )

        try:
            time.sleep(0.55)
            assert store.gc_running is True
        finally:
            store.close()

        assert len(memory_logger.formats) >= 3
        assert len(memory_logger.formats) == len(adapter.exec_calls)
        assert "database is restarting" in str(memory_logger.args[0][0])
        assert store.metrics.get_sample("oauth2pg_gc_runs_total",
                                        table="oauth2_tokens", status="error") >= 3

    def test_no_logging_on_success(self, fake_adapter, memory_logger):
        """The logger is never used on the happy path"""
        store, _ = create_token_store(
            fake_adapter, logger=memory_logger, gc_interval=timedelta(milliseconds=50)
        )
        store.create(new_token(code="ok", code_created_at=get_current_time(),
                               code_expires_in=timedelta(minutes=1)))
        time.sleep(0.3)
        store.close()

        assert memory_logger.formats == []

    def test_close_waits_for_running_pass(self):
        """No GC statement runs after close() returns"""
        entered = threading.Event()
        finished = threading.Event()

        def slow_exec(query, *args):
            entered.set()
            time.sleep(0.3)
            finished.set()
            return 0

        adapter = MockAdapter(exec_callback=slow_exec)
        store, _ = create_token_store(
            adapter, init_table_disabled=True, gc_interval=timedelta(milliseconds=50)
        )

        assert entered.wait(2)
        store.close()
        assert finished.is_set()

        calls = len(adapter.exec_calls)
        time.sleep(0.2)
        assert len(adapter.exec_calls) == calls


class TestGCConvergence:
    """Test that expired rows become unreachable"""

    def test_expired_token_removed(self, fake_adapter):
        """A token is reachable before its window and gone after window plus interval"""
        store, _ = create_token_store(fake_adapter, gc_interval=timedelta(milliseconds=200))

        try:
            store.create(new_token(access="short", access_created_at=get_current_time(),
                                   access_expires_in=timedelta(seconds=1)))
            assert store.get_by_access("short").access == "short"

            time.sleep(1 + 0.2 + 0.5)

            with pytest.raises(NotFoundError):
                store.get_by_access("short")
        finally:
            store.close()

    def test_partially_live_row_kept(self, fake_adapter):
        """A row survives while any populated artifact is still live"""
        store, _ = create_token_store(fake_adapter, gc_disabled=True)
        now = get_current_time()
        store.create(new_token(access="expired", access_created_at=now - timedelta(hours=2),
                               access_expires_in=timedelta(hours=1),
                               refresh="live", refresh_created_at=now - timedelta(hours=2),
                               refresh_expires_in=timedelta(days=1)))
        store.create(new_token(code="gone", code_created_at=now - timedelta(minutes=20),
                               code_expires_in=timedelta(minutes=10)))

        assert store.cleanup() == 1

        assert store.get_by_access("expired").refresh == "live"
        with pytest.raises(NotFoundError):
            store.get_by_code("gone")
        assert store.metrics.get_sample("oauth2pg_gc_removed_total", table="oauth2_tokens") == 1.0
        store.close()


class TestGCScheduler:
    """Test the scheduler state machine"""

    def test_run_once_reports_failure(self, memory_logger):
        """run_once swallows and logs errors"""
        def collect():
            raise ValueError("bad")

        scheduler = GCScheduler(collect, timedelta(seconds=1), memory_logger)

        assert scheduler.run_once() == 0
        assert memory_logger.formats == ["Failed to remove expired tokens: %s"]

    def test_states(self, memory_logger):
        """Stopped, running, then terminally stopped"""
        scheduler = GCScheduler(lambda: 0, timedelta(seconds=1), memory_logger)
        assert scheduler.running is False

        scheduler.start()
        scheduler.start()
        assert scheduler.running is True

        scheduler.stop()
        assert scheduler.running is False

        with pytest.raises(RuntimeError):
            scheduler.start()

    def test_stop_before_start(self, memory_logger):
        """Stopping an idle scheduler is harmless"""
        scheduler = GCScheduler(lambda: 0, timedelta(seconds=1), memory_logger)
        scheduler.stop()
        assert scheduler.running is False
