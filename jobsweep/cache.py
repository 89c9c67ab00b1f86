"""
Watermark stores for jobsweep

Keyed stores holding the time of the last abandoned-job sweep per queue.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from urllib.parse import quote

from .config import Config
from .storage import JobStorage

logger = logging.getLogger(__name__)


def make_global_key(collection: str, *components: Any) -> str:
    """
    Build a cache key shared by every domain.

    Args:
        collection: Key namespace, e.g. 'last-job-repush'
        *components: Further key parts, percent-encoded

    Returns:
        Cache key string
    """
    parts = [quote(str(part), safe='') for part in (collection,) + components]
    return 'global:' + ':'.join(parts)


class WatermarkStore(ABC):
    """Key/value store for sweep watermarks"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None if absent"""

    @abstractmethod
    def set(self, key: str, value: Any):
        """Store a value under key"""


class InMemoryWatermarkStore(WatermarkStore):
    """Process-local store; values do not outlive the instance"""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any):
        self._data[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileWatermarkStore(WatermarkStore):
    """Store persisted in the storage directory's cache file"""

    def __init__(self, storage: JobStorage):
        self.storage = storage

    def get(self, key: str) -> Optional[Any]:
        return self.storage.get_cache_value(key)

    def set(self, key: str, value: Any):
        self.storage.set_cache_value(key, value)
        logger.debug(f"Stored {key} = {value!r} in {self.storage.cache_file}")


def create_watermark_store(config: Config, storage: JobStorage) -> WatermarkStore:
    """
    Create the watermark store selected by configuration.

    Args:
        config: Configuration instance
        storage: Job storage instance

    Returns:
        Watermark store
    """
    kind = config.get('watermark_store', 'file')
    if kind == 'memory':
        logger.warning("Using in-memory watermark store; sweep progress will not persist")
        return InMemoryWatermarkStore()
    if kind == 'file':
        return FileWatermarkStore(storage)
    raise ValueError(f"Unknown watermark store '{kind}'")
