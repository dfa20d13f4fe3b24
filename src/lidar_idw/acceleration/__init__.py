"""
Acceleration Module

This module provides the concurrency infrastructure of a run:
- Largest-first ordering of input files
- Thread pool execution of one task per file
- Lock-guarded progress aggregation and cooperative cancellation
"""

from .parallel_executor import (
    FileParallelExecutor,
    FileTask,
    TaskOutcome,
    default_worker_count,
    order_by_point_count,
)
from .progress import (
    HostCallbacks,
    LoggingHost,
    ProgressAggregator,
    request_cancel,
    clear_cancel,
    is_cancelled,
)

__all__ = [
    # Scheduling
    "FileParallelExecutor",
    "FileTask",
    "TaskOutcome",
    "default_worker_count",
    "order_by_point_count",
    # Progress and host
    "HostCallbacks",
    "LoggingHost",
    "ProgressAggregator",
    "request_cancel",
    "clear_cancel",
    "is_cancelled",
]
