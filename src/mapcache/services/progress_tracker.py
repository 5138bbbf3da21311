import logging
import threading
from typing import Callable, List, Optional

from mapcache.models.tile import RunCounters, RunSummary, TileOutcome, TileStatus

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class ProgressTracker:
    """Counts processed tiles against the run total.

    Purely observational: scheduling never reads it. Outcomes are recorded
    from worker threads, so every update happens under a lock.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.counters = RunCounters()
        self.failures: List[TileOutcome] = []
        self._callback = callback
        self._lock = threading.Lock()

    def add_total(self, count: int) -> None:
        with self._lock:
            self.counters.total += count

    def record(self, outcome: TileOutcome) -> None:
        """Register one finished tile and report progress"""
        with self._lock:
            counters = self.counters
            counters.processed += 1
            if outcome.status is TileStatus.SUCCESS:
                counters.succeeded += 1
            elif outcome.status is TileStatus.SKIPPED:
                counters.skipped += 1
            else:
                counters.failed += 1
                self.failures.append(outcome)
            processed, total, percent = counters.processed, counters.total, counters.percent

        coordinate = outcome.job.coordinate
        logger.info("[%d/%d %.2f%%] %s %d/%d/%d", processed, total, percent,
                    outcome.status.value, coordinate.z, coordinate.x, coordinate.y)
        if self._callback is not None:
            self._callback(processed, total)

    def summary(self) -> RunSummary:
        with self._lock:
            return RunSummary(
                total=self.counters.total,
                succeeded=self.counters.succeeded,
                skipped=self.counters.skipped,
                failed=self.counters.failed,
                failures=list(self.failures),
            )
