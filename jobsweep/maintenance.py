"""
Queue maintenance for jobsweep

Administrative operations on a job queue: deleting all of its work and
re-pushing abandoned jobs without pushing the same job again on every run.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .cache import WatermarkStore, make_global_key
from .queue import JobQueue
from .utils import MIN_TIMESTAMP, format_timestamp, to_unix_timestamp

logger = logging.getLogger(__name__)

LAST_REPUSH_COLLECTION = 'last-job-repush'


@dataclass
class SweepResult:
    """Counts of one abandoned-job sweep"""
    pushed: int = 0
    skipped: int = 0
    last_repush_time: float = MIN_TIMESTAMP
    started_at: float = 0.0


@dataclass(frozen=True)
class PurgeResult:
    """Queue size before and after a delete"""
    size_before: int
    size_after: int


ProgressCallback = Callable[[str, SweepResult], None]


class JobQueueMaintenance:
    """
    Maintenance operations for a single queue.

    The sweep keeps its watermark in ``watermarks`` under a key derived from
    the queue's (domain, type). Reading and writing the watermark is not
    locked; two concurrent sweeps of the same queue may both re-push the
    same jobs.
    """

    def __init__(self, queue: JobQueue, watermarks: WatermarkStore,
                 clock: Callable[[], float] = time.time):
        """
        Initialize maintenance for a queue.

        Args:
            queue: Queue handle
            watermarks: Store holding the last sweep time
            clock: Source of the current time in epoch seconds
        """
        self.queue = queue
        self.watermarks = watermarks
        self.clock = clock

    @property
    def watermark_key(self) -> str:
        return make_global_key(LAST_REPUSH_COLLECTION, self.queue.domain, self.queue.type)

    def delete(self) -> PurgeResult:
        """
        Delete every job in the queue. This is irreversible.

        Returns:
            Queue size before and after the delete
        """
        size_before = self.queue.get_size()
        logger.warning(f"Deleting all jobs of {self.queue!r} ({size_before} ready)")
        self.queue.delete()
        size_after = self.queue.get_size()

        return PurgeResult(size_before=size_before, size_after=size_after)

    def read_watermark(self) -> float:
        """
        Read the time of the last completed sweep.

        Returns:
            Epoch seconds, or MIN_TIMESTAMP if no sweep completed yet
        """
        stored = self.watermarks.get(self.watermark_key)
        if stored is None:
            return MIN_TIMESTAMP

        try:
            return to_unix_timestamp(stored)
        except ValueError:
            logger.warning(f"Ignoring unreadable watermark {stored!r} for {self.queue!r}")
            return MIN_TIMESTAMP

    def repush_abandoned(self, batch_size: int = 100,
                         progress: Optional[ProgressCallback] = None) -> SweepResult:
        """
        Re-push abandoned jobs that no earlier sweep has handled.

        Jobs queued before the last sweep started are skipped. Every
        ``batch_size`` pushes the queue is asked to wait for its backups.
        The watermark is advanced to this sweep's start time only after the
        abandoned jobs are exhausted, so a failed sweep can simply be rerun.

        Args:
            batch_size: Number of pushes between durability waits
            progress: Optional callback receiving ("start" | "batch", result)

        Returns:
            Counts of pushed and skipped jobs
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        now = self.clock()
        last_repush_time = self.read_watermark()
        result = SweepResult(last_repush_time=last_repush_time, started_at=now)

        logger.info(
            f"Sweeping {self.queue!r}: last re-push {format_timestamp(last_repush_time)}, "
            f"now {format_timestamp(now)}"
        )
        if progress:
            progress("start", result)

        for job in self.queue.get_all_abandoned_jobs():
            try:
                queued_at = to_unix_timestamp(job.queued_at)
            except ValueError:
                logger.warning(f"Job {job.id} has unreadable queue time {job.queued_at!r}; re-pushing")
                queued_at = None

            if queued_at is not None and queued_at < last_repush_time:
                result.skipped += 1
                continue  # handled by an earlier sweep

            self.queue.push(job)
            result.pushed += 1

            if result.pushed % batch_size == 0:
                self.queue.wait_for_backups()
                logger.debug(f"Re-pushed {result.pushed} job(s) so far [{result.skipped} skipped]")
                if progress:
                    progress("batch", result)

        self.watermarks.set(self.watermark_key, now)

        logger.info(f"Re-pushed {result.pushed} job(s) of {self.queue!r} [{result.skipped} skipped]")
        return result
