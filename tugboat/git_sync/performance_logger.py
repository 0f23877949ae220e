"""Per-repository phase timing for status runs."""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Generator, List, Optional, Sequence, Any

PHASES = ("branch", "fetch", "status", "rev_list", "merge_base")


@dataclass
class RepositoryTiming:
    """Wall-clock durations (seconds) of each status phase for one repository."""
    path: str = ""
    total: float = 0.0
    branch: float = 0.0
    fetch: float = 0.0
    status: float = 0.0
    rev_list: float = 0.0
    merge_base: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = {"path": self.path, "total": round(self.total, 4)}
        for phase in PHASES:
            data[phase] = round(getattr(self, phase), 4)
        return data


@contextmanager
def time_phase(timing: Optional[RepositoryTiming], phase: str) -> Generator[None, None, None]:
    """
    Record the duration of the enclosed block into `timing.<phase>`.

    A None sink makes this a no-op so the status engine never branches on
    whether timing was requested.
    """
    if timing is None:
        yield
        return
    start = time.perf_counter()
    try:
        yield
    finally:
        setattr(timing, phase, time.perf_counter() - start)


def sort_timings(timings: List[RepositoryTiming]) -> List[RepositoryTiming]:
    """Slowest repositories first."""
    return sorted(timings, key=lambda t: t.total, reverse=True)


class PerformanceLogger:
    """
    Logs timing summaries for a status run.

    Slow repositories are called out at warning level so they show up
    without enabling debug logging.
    """

    SLOW_REPOSITORY_SECONDS = 10.0

    def __init__(self, logger_name: str = 'tugboat.performance'):
        self.logger = logging.getLogger(logger_name)

    def summarize(self, timings: Sequence[RepositoryTiming]) -> Dict[str, Any]:
        if not timings:
            return {"repositories": 0, "total_duration": 0.0, "average_duration": 0.0}

        total = sum(t.total for t in timings)
        slowest = max(timings, key=lambda t: t.total)
        phase_totals = {phase: sum(getattr(t, phase) for t in timings) for phase in PHASES}
        return {
            "repositories": len(timings),
            "total_duration": total,
            "average_duration": total / len(timings),
            "phase_totals": phase_totals,
            "slowest": {"path": slowest.path, "duration": slowest.total},
        }

    def log_summary(self, timings: Sequence[RepositoryTiming]) -> None:
        summary = self.summarize(timings)
        if summary["repositories"] == 0:
            self.logger.info("📊 No timing data available")
            return

        self.logger.info(
            f"📊 Timing: {summary['repositories']} repos, "
            f"total {summary['total_duration']:.3f}s, avg {summary['average_duration']:.3f}s"
        )
        for phase, duration in summary["phase_totals"].items():
            self.logger.debug(f"📋 Phase {phase}: {duration:.3f}s")

        for timing in timings:
            if timing.total > self.SLOW_REPOSITORY_SECONDS:
                self.logger.warning(f"⚠️ Slow repository: {timing.path} took {timing.total:.3f}s")
