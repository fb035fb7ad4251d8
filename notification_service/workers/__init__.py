"""Background execution for the notification engine.

- pool.py: Bounded thread pools for fresh sends and retries
- base.py: Worker abstraction for periodic sweeps
- retry_worker.py: Resubmits failed deliveries
- scheduler.py: Runs the retry worker on a fixed interval
"""

from notification_service.workers.base import WorkerBase, WorkerResult, WorkerStatus
from notification_service.workers.pool import (
    PRIMARY_POOL,
    RETRY_POOL,
    PoolConfig,
    PoolSet,
    WorkerPool,
)
from notification_service.workers.retry_worker import RetryWorker
from notification_service.workers.scheduler import RetryScheduler, configure_logging

__all__ = [
    # Base classes
    "WorkerBase",
    "WorkerResult",
    "WorkerStatus",
    # Pools
    "PRIMARY_POOL",
    "RETRY_POOL",
    "PoolConfig",
    "PoolSet",
    "WorkerPool",
    # Retry sweep
    "RetryWorker",
    "RetryScheduler",
    "configure_logging",
]
