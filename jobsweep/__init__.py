"""
jobsweep - Job queue maintenance tool

Deletes queued work and re-pushes abandoned jobs, remembering the last
sweep so repeated runs do not re-push the same jobs over and over.
"""

__version__ = "1.0.0"
__author__ = "jobsweep Team"

from .job import Job, JobState
from .storage import JobStorage
from .config import Config
from .queue import JobQueue, FileJobQueue, JobQueueGroup, QueueNotFoundError, QueueBackendError
from .cache import WatermarkStore, InMemoryWatermarkStore, FileWatermarkStore
from .maintenance import JobQueueMaintenance, SweepResult, PurgeResult

__all__ = [
    "Job",
    "JobState",
    "JobStorage",
    "Config",
    "JobQueue",
    "FileJobQueue",
    "JobQueueGroup",
    "QueueNotFoundError",
    "QueueBackendError",
    "WatermarkStore",
    "InMemoryWatermarkStore",
    "FileWatermarkStore",
    "JobQueueMaintenance",
    "SweepResult",
    "PurgeResult"
]
