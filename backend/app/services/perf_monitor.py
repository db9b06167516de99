"""Performance monitoring utilities for the materials recommendation pipeline."""
import time
import logging
import threading
import functools
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("packmat-api.perf")


def timed(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time for synchronous functions.

    Usage::

        @timed
        def my_function():
            ...
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.debug(
                "function timed",
                extra={
                    "function": func.__qualname__,
                    "duration_ms": duration_ms,
                },
            )
    return wrapper


def timed_async(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time for async functions.

    Usage::

        @timed_async
        async def my_async_function():
            ...
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.debug(
                "async function timed",
                extra={
                    "function": func.__qualname__,
                    "duration_ms": duration_ms,
                },
            )
    return wrapper


class PerformanceTracker:
    """
    Thread-safe in-memory tracker for pipeline-level metrics.

    Tracks:
    - Total recommendation runs completed
    - Cumulative and average pipeline duration
    - Slowest stage across all runs (catalog, research, synthesis, ...)
    - Error count broken down by stage name
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._runs_completed: int = 0
        self._total_pipeline_duration_ms: float = 0.0
        self._stage_durations: Dict[str, list] = {}   # stage -> [duration_ms, ...]
        self._error_counts: Dict[str, int] = {}        # stage -> count
        self._slowest_stage: Optional[str] = None
        self._slowest_stage_ms: float = 0.0

    # ------------------------------------------------------------------
    # Public write API
    # ------------------------------------------------------------------

    def record_pipeline_complete(self, pipeline_duration_ms: float) -> None:
        """Call once when a full recommendation run finishes."""
        with self._lock:
            self._runs_completed += 1
            self._total_pipeline_duration_ms += pipeline_duration_ms

    def record_stage_duration(self, stage: str, duration_ms: float) -> None:
        with self._lock:
            self._stage_durations.setdefault(stage, []).append(duration_ms)
            if duration_ms > self._slowest_stage_ms:
                self._slowest_stage_ms = duration_ms
                self._slowest_stage = stage

    def record_stage_error(self, stage: str) -> None:
        with self._lock:
            self._error_counts[stage] = self._error_counts.get(stage, 0) + 1

    # ------------------------------------------------------------------
    # Public read API
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return a snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            runs_completed            : int
            avg_pipeline_duration_ms  : float  (0 if none completed)
            slowest_stage             : str | None
            slowest_stage_ms          : float
            error_count               : int   (total across all stages)
            error_count_by_stage      : dict  {stage: count}
            stage_avg_durations_ms    : dict  {stage: avg_ms}
        """
        with self._lock:
            avg = (
                round(self._total_pipeline_duration_ms / self._runs_completed, 2)
                if self._runs_completed > 0
                else 0.0
            )
            stage_avgs = {
                stage: round(sum(durations) / len(durations), 2) if durations else 0.0
                for stage, durations in self._stage_durations.items()
            }
            return {
                "runs_completed": self._runs_completed,
                "avg_pipeline_duration_ms": avg,
                "slowest_stage": self._slowest_stage,
                "slowest_stage_ms": round(self._slowest_stage_ms, 2),
                "error_count": sum(self._error_counts.values()),
                "error_count_by_stage": dict(self._error_counts),
                "stage_avg_durations_ms": stage_avgs,
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._runs_completed = 0
            self._total_pipeline_duration_ms = 0.0
            self._stage_durations.clear()
            self._error_counts.clear()
            self._slowest_stage = None
            self._slowest_stage_ms = 0.0


# Module-level singleton; import this instance everywhere else.
tracker = PerformanceTracker()
