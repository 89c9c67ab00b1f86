"""
Job model for jobsweep
"""

import json
import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict, field, fields

from .utils import to_unix_timestamp


class JobState(Enum):
    """Job state enumeration"""
    PENDING = "pending"
    CLAIMED = "claimed"
    COMPLETED = "completed"


@dataclass
class Job:
    """
    Job model representing a unit of queued work.

    Attributes:
        id: Unique job identifier
        type: Job type (queue name)
        domain: Logical partition the queue belongs to
        params: Opaque job payload
        state: Current job state
        attempts: Number of times the job has been claimed
        queued_at: Enqueue time in epoch seconds (UTC)
        claimed_at: Claim time in epoch seconds (UTC), if claimed
        claimed_by: Identifier of the claiming worker
        created_at: Job creation timestamp
        updated_at: Last update timestamp
    """
    id: str
    type: str
    domain: str = "default"
    params: Dict[str, Any] = field(default_factory=dict)
    state: JobState = JobState.PENDING
    attempts: int = 0
    queued_at: Optional[float] = None
    claimed_at: Optional[float] = None
    claimed_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        """Initialize timestamps if not provided"""
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc).isoformat()
        if self.updated_at is None:
            self.updated_at = self.created_at

    @classmethod
    def create(cls, job_type: str, params: Optional[Dict[str, Any]] = None,
               domain: str = "default", job_id: Optional[str] = None, **kwargs) -> 'Job':
        """
        Create a new job stamped with the current enqueue time.

        Args:
            job_type: Queue type the job belongs to
            params: Job payload
            domain: Queue domain
            job_id: Optional job ID, auto-generated if None
            **kwargs: Additional job fields

        Returns:
            New Job instance
        """
        if job_id is None:
            job_id = str(uuid.uuid4())
        kwargs.setdefault('queued_at', time.time())

        return cls(id=job_id, type=job_type, domain=domain, params=dict(params or {}), **kwargs)

    def claim(self, worker_id: str, claimed_at: Optional[float] = None):
        """Mark the job as claimed by a worker"""
        self.state = JobState.CLAIMED
        self.claimed_by = worker_id
        self.claimed_at = time.time() if claimed_at is None else claimed_at
        self.attempts += 1
        self.updated_at = datetime.now(timezone.utc).isoformat()

    def release(self):
        """Return the job to the ready state, dropping any claim"""
        self.state = JobState.PENDING
        self.claimed_by = None
        self.claimed_at = None
        self.updated_at = datetime.now(timezone.utc).isoformat()

    def is_abandoned(self, claim_ttl: float, now: Optional[float] = None) -> bool:
        """
        Check whether a claimed job has outlived its claim.

        Args:
            claim_ttl: Seconds a claim stays valid
            now: Reference time in epoch seconds, defaults to the current time

        Returns:
            True if the job is claimed and the claim is stale
        """
        if self.state != JobState.CLAIMED:
            return False
        if self.claimed_at is None:
            return True
        if now is None:
            now = time.time()
        return now - self.claimed_at >= claim_ttl

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert job to dictionary representation.

        Returns:
            Job as dictionary
        """
        data = asdict(self)
        data['state'] = self.state.value  # Convert enum to string
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Job':
        """
        Create job from dictionary representation.

        Args:
            data: Job data as dictionary

        Returns:
            Job instance
        """
        data = dict(data)
        if 'state' in data and isinstance(data['state'], str):
            data['state'] = JobState(data['state'])

        return cls(**data)

    def to_json(self) -> str:
        """Convert job to JSON string"""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> 'Job':
        """Create job from JSON string"""
        return cls.from_dict(json.loads(json_str))

    def __str__(self) -> str:
        return f"Job(id={self.id}, type={self.type}, domain={self.domain}, state={self.state.value})"


def validate_job_data(data: Dict[str, Any]) -> bool:
    """
    Validate job data dictionary.

    Args:
        data: Job data to validate

    Returns:
        True if valid, False otherwise
    """
    if not set(data) <= {f.name for f in fields(Job)}:
        return False

    for required in ('id', 'type'):
        if not isinstance(data.get(required), str) or not data[required]:
            return False

    if 'state' in data:
        try:
            JobState(data['state'])
        except ValueError:
            return False

    if 'attempts' in data:
        if not isinstance(data['attempts'], int) or data['attempts'] < 0:
            return False

    if 'params' in data and not isinstance(data['params'], dict):
        return False

    try:
        to_unix_timestamp(data.get('queued_at'))
    except ValueError:
        return False

    claimed_at = data.get('claimed_at')
    if claimed_at is not None and (isinstance(claimed_at, bool) or not isinstance(claimed_at, (int, float))):
        return False

    return True
