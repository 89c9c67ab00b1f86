"""
Job queue handles for jobsweep

Defines the queue interface the maintenance operations work against, the
file-backed implementation built on JobStorage, and the group that resolves
a queue handle by (domain, type).
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterator, Optional, Type

from .config import Config
from .job import Job, JobState
from .storage import JobStorage

logger = logging.getLogger(__name__)


class QueueNotFoundError(LookupError):
    """Raised when a job type has no configured queue backend"""


class QueueBackendError(RuntimeError):
    """Raised when the queue backend fails to carry out an operation"""


class JobQueue(ABC):
    """
    A queue of jobs identified by (domain, type).
    """

    def __init__(self, domain: str, job_type: str):
        self._domain = domain
        self._type = job_type

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def type(self) -> str:
        return self._type

    @abstractmethod
    def get_size(self) -> int:
        """Number of jobs ready to be claimed"""

    @abstractmethod
    def delete(self):
        """Delete every job in the queue, ready or claimed"""

    @abstractmethod
    def get_all_abandoned_jobs(self) -> Iterator[Job]:
        """Lazily iterate over jobs that were claimed but never completed"""

    @abstractmethod
    def push(self, job: Job):
        """Insert a job as a fresh, ready entry"""

    @abstractmethod
    def wait_for_backups(self):
        """Block until writes made so far are durable"""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(domain={self.domain!r}, type={self.type!r})"


class FileJobQueue(JobQueue):
    """
    Job queue stored in the JSON files managed by JobStorage.

    A claimed job counts as abandoned once its claim is older than
    ``claim_ttl`` seconds.
    """

    def __init__(self, storage: JobStorage, domain: str, job_type: str,
                 claim_ttl: float = 3600, clock: Callable[[], float] = time.time):
        """
        Initialize the queue handle.

        Args:
            storage: Job storage instance
            domain: Queue domain
            job_type: Queue type
            claim_ttl: Seconds after which a claim is considered stale
            clock: Source of the current time in epoch seconds
        """
        super().__init__(domain, job_type)
        self.storage = storage
        self.claim_ttl = claim_ttl
        self.clock = clock

    def get_size(self) -> int:
        try:
            return self.storage.count_jobs(self.domain, self.type, JobState.PENDING)
        except (OSError, TimeoutError) as e:
            raise QueueBackendError(f"Failed to read size of {self!r}: {e}") from e

    def delete(self):
        try:
            deleted = self.storage.delete_jobs(self.domain, self.type)
        except (OSError, TimeoutError) as e:
            raise QueueBackendError(f"Failed to delete jobs of {self!r}: {e}") from e
        logger.info(f"Deleted {deleted} job(s) from {self!r}")

    def get_all_abandoned_jobs(self) -> Iterator[Job]:
        now = self.clock()
        try:
            jobs = self.storage.iter_jobs(self.domain, self.type, JobState.CLAIMED)
            for job in jobs:
                if job.is_abandoned(self.claim_ttl, now):
                    yield job
        except (OSError, TimeoutError) as e:
            raise QueueBackendError(f"Failed to list abandoned jobs of {self!r}: {e}") from e

    def push(self, job: Job):
        if job.domain != self.domain or job.type != self.type:
            raise QueueBackendError(
                f"Job {job.id} belongs to ({job.domain}, {job.type}), not {self!r}"
            )

        job.release()
        try:
            self.storage.put_job(job)
        except (OSError, TimeoutError) as e:
            raise QueueBackendError(f"Failed to push job {job.id}: {e}") from e

    def wait_for_backups(self):
        try:
            self.storage.sync()
        except (OSError, TimeoutError) as e:
            raise QueueBackendError(f"Failed to flush {self!r}: {e}") from e


class JobQueueGroup:
    """
    Resolves queue handles for one domain from the configured backends.
    """

    BACKENDS: Dict[str, Type[JobQueue]] = {
        'file': FileJobQueue,
    }

    def __init__(self, storage: JobStorage, config: Config, domain: Optional[str] = None):
        """
        Initialize the queue group.

        Args:
            storage: Job storage instance
            config: Configuration instance
            domain: Queue domain, defaults to the configured domain
        """
        self.storage = storage
        self.config = config
        self.domain = domain or config.get('domain', 'default')

    def get(self, job_type: str) -> JobQueue:
        """
        Get the queue handle for a job type.

        Args:
            job_type: Queue type name

        Returns:
            Queue handle

        Raises:
            QueueNotFoundError: If no backend is configured for the type
        """
        backend = self.config.backend_for(job_type)
        if backend is None:
            raise QueueNotFoundError(f"No queue backend configured for job type '{job_type}'")
        if backend not in self.BACKENDS:
            raise QueueNotFoundError(
                f"Unknown queue backend '{backend}' configured for job type '{job_type}'"
            )

        queue_class = self.BACKENDS[backend]
        return queue_class(
            self.storage,
            self.domain,
            job_type,
            claim_ttl=self.config.get('claim_ttl', 3600),
        )
