"""
IDW interpolation of LiDAR point files into rasters.

Each input file is processed independently on a worker thread:
point filter -> spatial index -> grid planner -> IDW estimator -> raster.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from ..acceleration.parallel_executor import FileParallelExecutor, FileTask
from ..acceleration.progress import (
    HostCallbacks,
    LoggingHost,
    ProgressAggregator,
    clear_cancel,
    is_cancelled,
)
from ..preprocessing.loader import PointCloudLoader
from ..utils.config import AppConfig, ConfigurationError, OutputConfig, RunConfig, parse_host_args
from ..utils.export import (
    derive_output_header,
    detect_crs_from_laz,
    export_surface_to_geotiff,
    export_surface_to_whitebox,
)
from ..utils.logging import setup_logger
from ..utils.point_cloud_filters import filter_points, get_filter_statistics
from .grid import GridSpec, plan_grid
from .idw import NO_DATA, IDWEstimator
from .spatial_index import SpatialIndex

logger = setup_logger(__name__)


@dataclass
class FileResult:
    """Outcome of interpolating one input file."""

    input_path: str
    output_path: Optional[str] = None
    geotiff_path: Optional[str] = None
    grid: Optional[GridSpec] = None
    n_points: int = 0
    cancelled: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.output_path is not None and self.error is None


@dataclass
class RunSummary:
    """Per-file results of a run, in dispatch order."""

    results: List[FileResult] = field(default_factory=list)
    error: Optional[str] = None
    elapsed_s: float = 0.0

    @property
    def cancelled(self) -> bool:
        return any(r.cancelled for r in self.results)

    @property
    def errors(self) -> Dict[str, str]:
        return {r.input_path: r.error for r in self.results if r.error}

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.results) and all(r.ok for r in self.results)


class IDWInterpolator:
    """
    Runs IDW interpolation over many point files in parallel.

    Example:
        interpolator = IDWInterpolator(RunConfig(resolution=0.5), n_workers=4)
        summary = interpolator.run(["a.las", "b.las"])
    """

    def __init__(
        self,
        config: RunConfig,
        host: Optional[HostCallbacks] = None,
        *,
        loader: Optional[PointCloudLoader] = None,
        n_workers: Optional[int] = None,
        output: Optional[OutputConfig] = None,
    ):
        self.config = config
        self.host = host if host is not None else LoggingHost()
        self.loader = loader or PointCloudLoader()
        self.n_workers = n_workers
        self.output = output or OutputConfig()

    @classmethod
    def from_app_config(cls, app: AppConfig, host: Optional[HostCallbacks] = None) -> 'IDWInterpolator':
        return cls(
            app.interpolation,
            host,
            n_workers=app.parallel.n_workers,
            output=app.output,
        )

    def interpolate_file(
        self,
        path: str | Path,
        cancelled: Callable[[], bool] = is_cancelled,
    ) -> FileResult:
        """
        Interpolate one point file and write its raster.

        Raises:
            FileNotFoundError, ValueError: If the file cannot be read
        """
        cfg = self.config
        path = str(path)

        records = self.loader.read_records(path)
        exclusion_table = cfg.exclusion_table
        filtered = filter_points(records, cfg.attribute, cfg.return_policy, exclusion_table)

        stats = get_filter_statistics(len(records), len(filtered), cfg.return_policy, exclusion_table)
        logger.info(
            f"{Path(path).name}: {stats['filtered_points']:,} points ({stats['filter_description']}) "
            f"out of {stats['total_points']:,} total ({stats['percentage']:.1f}%)"
        )
        if len(filtered) == 0:
            logger.warning(f"No qualifying points in {path}")

        index = SpatialIndex.build(filtered)
        grid = plan_grid(filtered.bounds, cfg.resolution)
        del records, filtered

        logger.info(f"{Path(path).name}: {grid.rows} rows x {grid.cols} cols at {cfg.resolution}")

        surface = IDWEstimator.from_config(index, cfg).fill(grid, cancelled)
        if surface is None:
            return FileResult(input_path=path, grid=grid, n_points=len(index), cancelled=True)

        header = export_surface_to_whitebox(
            surface,
            grid,
            derive_output_header(path, cfg.suffix),
            attribute=cfg.attribute,
            nodata=NO_DATA,
        )

        geotiff = None
        if self.output.write_geotiff:
            crs = self.output.crs or detect_crs_from_laz(path)
            geotiff = export_surface_to_geotiff(
                surface, grid, header.with_suffix(".tif"), crs=crs, nodata=NO_DATA
            )

        return FileResult(
            input_path=path,
            output_path=str(header),
            geotiff_path=str(geotiff) if geotiff else None,
            grid=grid,
            n_points=len(index),
        )

    def _process_task(self, task: FileTask, progress: ProgressAggregator) -> FileResult:
        """Worker body: never raises, reports failures to the host."""
        if is_cancelled():
            progress.notify_cancelled()
            return FileResult(input_path=task.path, cancelled=True)

        try:
            result = self.interpolate_file(task.path)
        except MemoryError:
            message = f"Out of memory while processing {task.path}"
            logger.error(message)
            self.host.report_feedback(message)
            result = FileResult(input_path=task.path, error=message)
        except Exception as e:
            logger.error(f"Error interpolating {task.path}: {e}", exc_info=True)
            self.host.report_feedback(str(e) or type(e).__name__)
            result = FileResult(input_path=task.path, error=str(e) or type(e).__name__)

        if result.cancelled:
            progress.notify_cancelled()
            return result

        progress.complete()
        if task.display and result.ok:
            self.host.report_result(result.output_path)
        return result

    def run(self, paths: Sequence[str | Path]) -> RunSummary:
        """
        Interpolate every file and block until all of them are done.

        The host's ``signal_complete`` is called exactly once, however the
        run ends.
        """
        start_time = time.time()
        summary = RunSummary()
        clear_cancel()

        try:
            paths = [str(p) for p in paths if str(p).strip()]
            if not paths:
                raise ConfigurationError("One or more of the input parameters have not been set properly.")

            executor = FileParallelExecutor(self.n_workers)
            tasks = executor.plan(paths, self.loader.count_points)
            progress = ProgressAggregator(len(tasks), self.host)

            outcomes = executor.run(tasks, lambda task: self._process_task(task, progress))
            for outcome in outcomes:
                if outcome.ok:
                    summary.results.append(outcome.result)
                else:
                    summary.results.append(FileResult(input_path=outcome.task.path, error=outcome.error))

        except ConfigurationError as e:
            summary.error = str(e)
            self.host.report_feedback(str(e))
        except MemoryError:
            summary.error = "Out of memory"
            logger.error("Out of memory while dispatching the run")
            self.host.report_feedback("Out of memory")
        except Exception as e:
            summary.error = str(e)
            logger.error(f"Interpolation run failed: {e}", exc_info=True)
            self.host.report_feedback(str(e))
        finally:
            summary.elapsed_s = time.time() - start_time
            logger.info(f"Time elapsed: {summary.elapsed_s:.2f}s")
            self.host.signal_complete()

        return summary


def run_host(
    args: Sequence[str],
    host: Optional[HostCallbacks] = None,
    *,
    n_workers: Optional[int] = None,
) -> RunSummary:
    """
    Entry point for a host application passing its argument vector.

    Configuration errors are reported to the host before any file is
    dispatched, and the run is still signalled complete.
    """
    host = host if host is not None else LoggingHost()
    try:
        files, config = parse_host_args(args)
    except ConfigurationError as e:
        host.report_feedback(str(e))
        host.signal_complete()
        return RunSummary(error=str(e))

    return IDWInterpolator(config, host, n_workers=n_workers).run(files)
