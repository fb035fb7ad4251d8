"""Periodic retry sweep.

The scheduler owns its own thread and cancellation token, so retries run
on a fixed interval whether or not new notifications arrive.

Entry points:
- start() / stop(): background thread inside the API process
- run_once(): single sweep
- run_forever(): blocking loop for the CLI, stopped by SIGINT/SIGTERM
"""

import logging
import signal
import threading
from typing import Any

from notification_service.workers.base import WorkerResult, WorkerStatus
from notification_service.workers.retry_worker import RetryWorker

logger = logging.getLogger(__name__)


class RetryScheduler:
    """Runs the retry worker every ``interval_seconds``."""

    def __init__(self, worker: RetryWorker, interval_seconds: float = 300) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.worker = worker
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> WorkerResult:
        """Run one sweep. Never raises."""
        try:
            return self.worker.run()
        except Exception as e:
            self._logger.error(
                "Retry sweep failed",
                extra={"error": str(e)},
                exc_info=True,
            )
            return WorkerResult(status=WorkerStatus.FAILED, errors=[{"error": str(e)}])

    def start(self) -> None:
        """Start the sweep thread. A second call while running is a no-op."""
        with self._lock:
            if self.is_running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._loop, name="notification-retry-scheduler", daemon=True
            )
            self._thread.start()

        self._logger.info(
            "Retry scheduler started",
            extra={"interval_seconds": self.interval_seconds},
        )

    def stop(self, timeout: float | None = 10.0) -> None:
        """Signal the sweep thread to stop and wait for it."""
        self._stop_event.set()
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                self._logger.warning("Retry scheduler did not stop within timeout")
        self._logger.info("Retry scheduler stopped")

    def _loop(self) -> None:
        # First sweep happens one interval after start
        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()

    def run_forever(self, max_iterations: int | None = None) -> int:
        """Sweep on the interval in the current thread until signalled.

        Returns:
            Number of sweeps run
        """
        self._stop_event.clear()
        previous = self._setup_signal_handlers()
        iterations = 0

        self._logger.info(
            "Starting retry loop",
            extra={"interval_seconds": self.interval_seconds, "max_iterations": max_iterations},
        )

        try:
            while not self._stop_event.is_set():
                result = self.run_once()
                iterations += 1
                self._logger.info(
                    f"Iteration {iterations} complete",
                    extra={"processed": result.processed_count, "failed": result.failed_count},
                )

                if max_iterations is not None and iterations >= max_iterations:
                    self._logger.info(f"Reached max iterations ({max_iterations}), stopping")
                    break
                self._stop_event.wait(self.interval_seconds)
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)

        self._logger.info("Retry loop stopped", extra={"total_iterations": iterations})
        return iterations

    def _setup_signal_handlers(self) -> dict[int, Any]:
        """Install SIGINT/SIGTERM handlers and return the ones they replaced."""
        def handle_signal(signum, frame):
            self._logger.info(f"Received signal {signum}, requesting shutdown")
            self._stop_event.set()

        previous = {}
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.getsignal(signum)
            signal.signal(signum, handle_signal)
        return previous


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure logging for the service and the CLI.

    Args:
        level: Logging level or level name
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("notification_service").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
