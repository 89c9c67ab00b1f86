"""
Storage layer for jobsweep

Provides persistent storage for jobs, configuration and cached values using
JSON files with atomic writes and file locking to prevent race conditions.
"""

import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Dict, Iterator, Optional
from contextlib import contextmanager

from .job import Job, JobState, validate_job_data
from .utils import to_unix_timestamp

logger = logging.getLogger(__name__)


class StorageCorruptedError(OSError):
    """Raised when a storage file exists but cannot be parsed"""


def _in_queue(record: Any, domain: str, job_type: str) -> bool:
    return isinstance(record, dict) and record.get('domain') == domain and record.get('type') == job_type


class JobStorage:
    """
    Persistent storage for jobs using JSON files.

    Features:
    - Atomic operations using temporary files
    - File locking to prevent race conditions
    - Filtering by queue identity (domain, type) and state
    - A small key/value cache file for sweep bookkeeping
    """

    def __init__(self, storage_dir: Optional[str] = None):
        """
        Initialize storage with specified directory.

        Args:
            storage_dir: Directory for storage files, defaults to ~/.jobsweep
        """
        if storage_dir is None:
            storage_dir = os.path.expanduser("~/.jobsweep")

        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

        self.jobs_file = self.storage_dir / "jobs.json"
        self.cache_file = self.storage_dir / "cache.json"
        self.config_file = self.storage_dir / "config.json"

        # Thread-local lock for preventing concurrent access within same process
        self._thread_lock = threading.RLock()

        self._initialize_files()

    def _initialize_files(self):
        """Initialize storage files with empty data if they don't exist"""
        for file_path in (self.jobs_file, self.cache_file, self.config_file):
            if not file_path.exists():
                self._write_json_file(file_path, {})

    @contextmanager
    def _file_lock(self, file_path: Path):
        """
        Simple file locking using lock directories.

        Args:
            file_path: Path to file to lock
        """
        lock_dir = file_path.with_suffix(file_path.suffix + '.lock')
        max_wait = 30  # seconds
        wait_interval = 0.1
        waited = 0

        while waited < max_wait:
            try:
                lock_dir.mkdir(exist_ok=False)
                break
            except FileExistsError:
                time.sleep(wait_interval)
                waited += wait_interval
        else:
            raise TimeoutError(f"Could not acquire lock for {file_path} after {max_wait} seconds")

        try:
            yield
        finally:
            try:
                lock_dir.rmdir()
            except OSError:
                pass

    def _read_json_file(self, file_path: Path) -> Dict:
        """
        Read JSON file with error handling.

        Args:
            file_path: Path to JSON file

        Returns:
            Parsed JSON data or empty dict if file doesn't exist/is invalid
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (FileNotFoundError, json.JSONDecodeError):
            return {}

    def _read_jobs_file(self) -> Dict:
        """
        Read the jobs file, refusing to treat an unreadable file as empty.

        Returns:
            Mapping of job ID to job record

        Raises:
            StorageCorruptedError: If the file is not a JSON object
        """
        try:
            with open(self.jobs_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            raise StorageCorruptedError(f"Cannot parse {self.jobs_file}: {e}") from e

        if not isinstance(data, dict):
            raise StorageCorruptedError(f"{self.jobs_file} does not hold a JSON object")

        return data

    def _write_json_file(self, file_path: Path, data: Dict):
        """
        Write JSON file atomically using temporary file.

        Args:
            file_path: Path to JSON file
            data: Data to write
        """
        with tempfile.NamedTemporaryFile(
            mode='w',
            dir=self.storage_dir,
            delete=False,
            encoding='utf-8'
        ) as tmp_file:
            json.dump(data, tmp_file, indent=2, ensure_ascii=False)
            tmp_file_path = tmp_file.name

        if os.name == 'nt':  # Windows
            if file_path.exists():
                file_path.unlink()

        Path(tmp_file_path).replace(file_path)

    def add_job(self, job: Job) -> bool:
        """
        Add a new job to storage.

        Args:
            job: Job to add

        Returns:
            True if job was added, False if job ID already exists
        """
        with self._thread_lock:
            with self._file_lock(self.jobs_file):
                jobs_data = self._read_jobs_file()

                if job.id in jobs_data:
                    return False

                jobs_data[job.id] = job.to_dict()
                self._write_json_file(self.jobs_file, jobs_data)

                return True

    def put_job(self, job: Job):
        """
        Insert or replace a job.

        Args:
            job: Job to store
        """
        with self._thread_lock:
            with self._file_lock(self.jobs_file):
                jobs_data = self._read_jobs_file()
                jobs_data[job.id] = job.to_dict()
                self._write_json_file(self.jobs_file, jobs_data)

    def get_job(self, job_id: str) -> Optional[Job]:
        """
        Get job by ID.

        Args:
            job_id: Job ID to retrieve

        Returns:
            Job instance or None if not found
        """
        with self._thread_lock:
            with self._file_lock(self.jobs_file):
                jobs_data = self._read_jobs_file()

                if job_id not in jobs_data:
                    return None

                return Job.from_dict(jobs_data[job_id])

    def iter_jobs(self, domain: str, job_type: str, state: Optional[JobState] = None) -> Iterator[Job]:
        """
        Iterate over the jobs of one queue in enqueue order.

        The jobs file is read once up front; jobs are built one at a time as
        the caller advances.

        Args:
            domain: Queue domain
            job_type: Queue type
            state: Optional state filter

        Yields:
            Job instances
        """
        with self._thread_lock:
            with self._file_lock(self.jobs_file):
                jobs_data = self._read_jobs_file()

        records = []
        for record in jobs_data.values():
            if not _in_queue(record, domain, job_type):
                continue
            if not validate_job_data(record):
                logger.warning(f"Skipping malformed job record {record.get('id')!r} in {self.jobs_file}")
                continue
            records.append((to_unix_timestamp(record.get('queued_at')), record))

        records.sort(key=lambda item: (item[0] is None, item[0] or 0))

        for _, record in records:
            job = Job.from_dict(record)
            if state is None or job.state == state:
                yield job

    def count_jobs(self, domain: str, job_type: str, state: Optional[JobState] = None) -> int:
        """
        Count jobs of one queue, optionally filtered by state.

        Args:
            domain: Queue domain
            job_type: Queue type
            state: Optional state filter

        Returns:
            Number of matching jobs
        """
        with self._thread_lock:
            with self._file_lock(self.jobs_file):
                jobs_data = self._read_jobs_file()

                return sum(
                    1 for record in jobs_data.values()
                    if _in_queue(record, domain, job_type)
                    and (state is None or record.get('state') == state.value)
                )

    def delete_jobs(self, domain: str, job_type: str) -> int:
        """
        Delete every job of one queue regardless of state.

        Args:
            domain: Queue domain
            job_type: Queue type

        Returns:
            Number of jobs deleted
        """
        with self._thread_lock:
            with self._file_lock(self.jobs_file):
                jobs_data = self._read_jobs_file()

                remaining = {
                    job_id: record for job_id, record in jobs_data.items()
                    if not _in_queue(record, domain, job_type)
                }
                deleted = len(jobs_data) - len(remaining)

                if deleted:
                    self._write_json_file(self.jobs_file, remaining)

                return deleted

    def sync(self):
        """Flush the jobs file to stable storage"""
        with self._thread_lock:
            with self._file_lock(self.jobs_file):
                fd = os.open(self.jobs_file, os.O_RDONLY)
                try:
                    os.fsync(fd)
                finally:
                    os.close(fd)

    def get_cache_value(self, key: str) -> Optional[Any]:
        """
        Get a cached value.

        Args:
            key: Cache key

        Returns:
            Stored value or None if absent
        """
        with self._thread_lock:
            with self._file_lock(self.cache_file):
                return self._read_json_file(self.cache_file).get(key)

    def set_cache_value(self, key: str, value: Any):
        """
        Store a cached value.

        Args:
            key: Cache key
            value: JSON-serializable value
        """
        with self._thread_lock:
            with self._file_lock(self.cache_file):
                cache_data = self._read_json_file(self.cache_file)
                cache_data[key] = value
                self._write_json_file(self.cache_file, cache_data)

    def get_config(self) -> Dict:
        """
        Get configuration settings.

        Returns:
            Configuration dictionary
        """
        return self._read_json_file(self.config_file)

    def update_config(self, config: Dict):
        """
        Update configuration settings.

        Args:
            config: Configuration dictionary
        """
        with self._thread_lock:
            with self._file_lock(self.config_file):
                current_config = self._read_json_file(self.config_file)
                current_config.update(config)
                self._write_json_file(self.config_file, current_config)

    def replace_config(self, config: Dict):
        """Overwrite configuration settings"""
        with self._thread_lock:
            with self._file_lock(self.config_file):
                self._write_json_file(self.config_file, dict(config))
