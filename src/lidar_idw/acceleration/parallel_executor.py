"""
Parallel execution infrastructure for per-file processing.

Provides FileParallelExecutor, which orders input files largest first and
runs one task per file on a fixed-size thread pool.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from multiprocessing.pool import ThreadPool
from typing import Any, Callable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileTask:
    """One file of a run; ``display`` marks the output surfaced to the host."""

    path: str
    display: bool = False
    point_count: int = 0


@dataclass
class TaskOutcome:
    """Result of one task, with ``error`` set when the task raised."""

    task: FileTask
    result: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def default_worker_count() -> int:
    return max(1, os.cpu_count() or 1)


def order_by_point_count(counts: Sequence[Tuple[str, int]]) -> List[Tuple[str, int]]:
    """
    Order (path, count) pairs by descending count.

    The sort is stable, so files of equal size keep their input order.
    """
    return sorted(counts, key=lambda item: -item[1])


def _run_task(task: FileTask, worker_fn: Callable[[FileTask], Any]) -> TaskOutcome:
    """
    Worker wrapper for one file task.

    Failures are converted into an outcome so they never reach sibling tasks.
    """
    try:
        return TaskOutcome(task=task, result=worker_fn(task))
    except MemoryError:
        error_msg = f"Out of memory while processing {task.path}"
        logger.error(error_msg)
        return TaskOutcome(task=task, error=error_msg)
    except Exception as e:
        error_msg = f"{type(e).__name__}: {str(e)}"
        logger.error(f"Worker error on {task.path}: {error_msg}", exc_info=True)
        return TaskOutcome(task=task, error=error_msg)


class FileParallelExecutor:
    """
    Parallel executor for per-file processing.

    Files are dispatched largest first so the slowest jobs start early and
    overlap with the smaller ones. Each file runs start to finish on one
    worker thread.

    Example:
        executor = FileParallelExecutor(n_workers=4)
        tasks = executor.plan(paths, count_fn=loader.count_points)
        outcomes = executor.run(tasks, worker_fn=process_file)
    """

    def __init__(self, n_workers: Optional[int] = None):
        """
        Initialize parallel executor.

        Args:
            n_workers: Number of worker threads. If None, uses the number of
                available CPUs. Minimum is 1.
        """
        if n_workers is None:
            n_workers = default_worker_count()
        else:
            n_workers = max(1, int(n_workers))

        self.n_workers = n_workers

        logger.info(
            f"Initialized FileParallelExecutor with {self.n_workers} workers "
            f"(total CPUs: {os.cpu_count()})"
        )

    def plan(
        self,
        paths: Sequence[str],
        count_fn: Callable[[str], int],
    ) -> List[FileTask]:
        """
        Build the dispatch order for a run.

        A file whose point count cannot be read is scheduled last with a
        count of 0; its task then reports the failure on its own.
        """
        counts = []
        for path in paths:
            try:
                count = int(count_fn(path))
            except Exception as e:
                logger.warning(f"Could not read point count of {path}: {e}")
                count = 0
            counts.append((str(path), count))

        ordered = order_by_point_count(counts)
        tasks = [
            FileTask(path=path, display=(i == 0), point_count=count)
            for i, (path, count) in enumerate(ordered)
        ]
        for task in tasks:
            logger.debug(f"Scheduled {task.path} ({task.point_count:,} points)")
        return tasks

    def run(
        self,
        tasks: Sequence[FileTask],
        worker_fn: Callable[[FileTask], Any],
    ) -> List[TaskOutcome]:
        """
        Run every task and block until all of them have finished.

        Returns:
            Outcomes in dispatch order
        """
        n_tasks = len(tasks)
        if n_tasks == 0:
            logger.warning("No files to process")
            return []

        logger.info(f"Processing {n_tasks} files with {self.n_workers} workers")
        start_time = time.time()

        with ThreadPool(processes=min(self.n_workers, n_tasks)) as pool:
            pending = [pool.apply_async(_run_task, (task, worker_fn)) for task in tasks]
            pool.close()
            pool.join()
            outcomes = [p.get() for p in pending]

        n_failed = sum(1 for o in outcomes if not o.ok)
        total_time = time.time() - start_time
        logger.info(
            f"Processed {n_tasks} files in {total_time:.1f}s "
            f"({n_tasks - n_failed} succeeded, {n_failed} failed)"
        )
        return outcomes
