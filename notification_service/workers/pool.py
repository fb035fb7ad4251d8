"""Bounded worker pools for outbound sends.

A pool accepts at most ``max_size + queue_capacity`` tasks at once. When
both the threads and the queue are full the task runs on the submitting
thread instead, which slows the producer down and never drops work.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolConfig:
    """Sizing for one worker pool.

    Attributes:
        name: Thread name prefix
        core_size: Threads expected to stay warm
        max_size: Maximum concurrent threads
        queue_capacity: Tasks allowed to wait for a thread
    """

    name: str
    core_size: int
    max_size: int
    queue_capacity: int

    def __post_init__(self) -> None:
        if self.max_size < 1:
            raise ValueError(f"{self.name}: max_size must be at least 1")
        if self.core_size < 0 or self.core_size > self.max_size:
            raise ValueError(f"{self.name}: core_size must be between 0 and max_size")
        if self.queue_capacity < 0:
            raise ValueError(f"{self.name}: queue_capacity must not be negative")


PRIMARY_POOL = PoolConfig(
    name="notification-async-", core_size=10, max_size=50, queue_capacity=1000
)
RETRY_POOL = PoolConfig(
    name="notification-retry-", core_size=2, max_size=5, queue_capacity=100
)


class WorkerPool:
    """Thread pool with caller-runs backpressure.

    ``ThreadPoolExecutor`` starts threads on demand up to ``max_size`` and
    reuses idle ones, so ``core_size`` is informational.
    """

    def __init__(self, config: PoolConfig) -> None:
        self.config = config
        self._executor = ThreadPoolExecutor(
            max_workers=config.max_size,
            thread_name_prefix=config.name,
        )
        self._permits = threading.BoundedSemaphore(config.max_size + config.queue_capacity)
        self._lock = threading.Lock()
        self._in_flight = 0
        self._caller_runs = 0
        self._shutdown = False
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def in_flight(self) -> int:
        """Tasks admitted to the executor and not yet finished."""
        with self._lock:
            return self._in_flight

    @property
    def caller_runs(self) -> int:
        """Tasks that ran on the submitting thread because the pool was full."""
        with self._lock:
            return self._caller_runs

    @property
    def is_shutdown(self) -> bool:
        with self._lock:
            return self._shutdown

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Run ``fn`` on the pool, or on the caller when the pool is saturated.

        Raises:
            RuntimeError: If the pool has been shut down
        """
        if self.is_shutdown:
            raise RuntimeError(f"Pool {self.name} is shut down")

        if not self._permits.acquire(blocking=False):
            with self._lock:
                self._caller_runs += 1
            self._logger.warning(
                f"[{self.name}] Pool saturated, running task on caller thread",
                extra={"max_size": self.config.max_size, "queue": self.config.queue_capacity},
            )
            return self._run_inline(fn, *args, **kwargs)

        with self._lock:
            self._in_flight += 1
        try:
            future = self._executor.submit(fn, *args, **kwargs)
        except RuntimeError:
            self._release()
            raise

        future.add_done_callback(lambda _f: self._release())
        return future

    def _release(self) -> None:
        with self._lock:
            self._in_flight -= 1
        self._permits.release()

    @staticmethod
    def _run_inline(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, grace_seconds: float = 30.0) -> bool:
        """Stop accepting work and drain in-flight tasks.

        Waits up to ``grace_seconds`` for admitted tasks to finish, then
        cancels whatever is still queued.

        Returns:
            True if every admitted task finished within the grace period
        """
        with self._lock:
            self._shutdown = True
        deadline = time.monotonic() + grace_seconds

        while self.in_flight and time.monotonic() < deadline:
            time.sleep(0.05)

        drained = self.in_flight == 0
        if drained:
            self._executor.shutdown(wait=True)
        else:
            self._logger.warning(
                f"[{self.name}] Grace period elapsed, cancelling queued tasks",
                extra={"in_flight": self.in_flight, "grace_seconds": grace_seconds},
            )
            self._executor.shutdown(wait=False, cancel_futures=True)

        self._logger.info(f"[{self.name}] Pool shut down", extra={"drained": drained})
        return drained


class PoolSet:
    """The two pools the engine runs on: fresh sends and retries."""

    def __init__(self, primary: PoolConfig = PRIMARY_POOL, retry: PoolConfig = RETRY_POOL) -> None:
        self.primary = WorkerPool(primary)
        self.retry = WorkerPool(retry)

    def shutdown(self, grace_seconds: float = 30.0) -> bool:
        primary_drained = self.primary.shutdown(grace_seconds)
        retry_drained = self.retry.shutdown(grace_seconds)
        return primary_drained and retry_drained
