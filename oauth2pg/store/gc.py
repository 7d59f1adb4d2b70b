"""
Background garbage collection for the token store.

The scheduler owns one daemon thread that wakes up every interval and
runs a collect callable. A failing pass is reported to the logger sink
and the loop carries on; stop() joins the thread so no pass runs after
it returns.
"""

import logging
import threading
from datetime import timedelta
from typing import Callable, Optional

from ..log import Logger


logger = logging.getLogger(__name__)


class GCScheduler:
    """
    Periodic runner for expired token reclamation.

    States are stopped (initial and terminal) and running. A scheduler
    that has been stopped cannot be started again.
    """

    def __init__(self,
                 collect: Callable[[], int],
                 interval: timedelta,
                 error_logger: Logger,
                 name: str = "oauth2pg-gc"):
        """
        Initialize GC scheduler.

        Args:
            collect: Callable running one pass, returns the number of removed rows
            interval: Time between two passes
            error_logger: Sink receiving failed passes
            name: Thread name
        """
        self._collect = collect
        self._interval = interval.total_seconds()
        self._error_logger = error_logger
        self._name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stop_event.is_set()

    def start(self) -> None:
        """Start the collection thread."""
        with self._lock:
            if self._stop_event.is_set():
                raise RuntimeError("GC scheduler was stopped and cannot be restarted")
            if self._thread is not None:
                return

            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()
            logger.info(f"Started {self._name} with {self._interval}s interval")

    def stop(self) -> None:
        """Stop the collection thread, waiting for an in-flight pass."""
        with self._lock:
            already_stopped = self._stop_event.is_set()
            self._stop_event.set()
            thread = self._thread

        if thread is not None and thread is not threading.current_thread():
            thread.join()

        if thread is not None and not already_stopped:
            logger.info(f"Stopped {self._name}")

    def run_once(self) -> int:
        """
        Run a single pass, reporting failures to the logger sink.

        Returns:
            Number of removed rows, 0 when the pass failed
        """
        try:
            return self._collect()
        except Exception as e:
            self._error_logger.error("Failed to remove expired tokens: %s", e)
            return 0

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            removed = self.run_once()
            if removed > 0:
                logger.debug(f"GC pass removed {removed} expired tokens")
