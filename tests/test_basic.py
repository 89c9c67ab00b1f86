"""
Basic functionality tests for jobsweep

Tests the job model, configuration, storage, watermark stores and
timestamp helpers.
"""

import tempfile
import unittest
from datetime import datetime, timezone, timedelta
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).parent.parent))

from jobsweep.job import Job, JobState, validate_job_data
from jobsweep.storage import JobStorage
from jobsweep.config import Config
from jobsweep.cache import (
    FileWatermarkStore, InMemoryWatermarkStore, create_watermark_store, make_global_key
)
from jobsweep.utils import (
    MIN_TIMESTAMP, format_timestamp, to_unix_timestamp, truncate_string, validate_queue_name
)


class TestJob(unittest.TestCase):
    """Test the job model"""

    def test_job_creation(self):
        """Test job creation stamps the enqueue time"""
        job = Job.create("refreshLinks", {"page": 1}, domain="wiki", job_id="job-1")

        self.assertEqual(job.id, "job-1")
        self.assertEqual(job.type, "refreshLinks")
        self.assertEqual(job.domain, "wiki")
        self.assertEqual(job.params, {"page": 1})
        self.assertEqual(job.state, JobState.PENDING)
        self.assertIsNotNone(job.queued_at)
        self.assertIsNotNone(job.created_at)

    def test_job_serialization(self):
        """Test job JSON serialization/deserialization"""
        original = Job.create("refreshLinks", {"page": 1}, job_id="ser", queued_at=123.5)
        original.claim("worker-1", claimed_at=200)

        restored = Job.from_dict(original.to_dict())
        self.assertEqual(restored, original)

        from_json = Job.from_json(original.to_json())
        self.assertEqual(from_json.state, JobState.CLAIMED)
        self.assertEqual(from_json.queued_at, 123.5)

    def test_claim_and_release(self):
        """Test claim bookkeeping"""
        job = Job.create("refreshLinks", job_id="claim")

        job.claim("worker-1", claimed_at=100)
        self.assertEqual(job.state, JobState.CLAIMED)
        self.assertEqual(job.attempts, 1)
        self.assertFalse(job.is_abandoned(60, now=150))
        self.assertTrue(job.is_abandoned(60, now=160))

        job.release()
        self.assertEqual(job.state, JobState.PENDING)
        self.assertIsNone(job.claimed_by)
        self.assertFalse(job.is_abandoned(60, now=10000))

    def test_claim_without_time_is_abandoned(self):
        """Test that a claim with no recorded time counts as stale"""
        job = Job.create("refreshLinks", job_id="no-time", state=JobState.CLAIMED)

        self.assertTrue(job.is_abandoned(3600))

    def test_validate_job_data(self):
        """Test job record validation"""
        self.assertTrue(validate_job_data({"id": "a", "type": "t"}))
        self.assertTrue(validate_job_data({"id": "a", "type": "t", "state": "claimed", "attempts": 2}))
        self.assertFalse(validate_job_data({"type": "t"}))
        self.assertFalse(validate_job_data({"id": "a", "type": "t", "state": "running"}))
        self.assertFalse(validate_job_data({"id": "a", "type": "t", "attempts": -1}))
        self.assertFalse(validate_job_data({"id": "a", "type": "t", "params": []}))

    def test_validate_job_data_fields(self):
        """Test that unknown fields and unreadable times are rejected"""
        self.assertTrue(validate_job_data({"id": "a", "type": "t", "queued_at": "2020-01-01T00:00:00Z"}))
        self.assertFalse(validate_job_data({"id": "a", "type": "t", "extra_field": 1}))
        self.assertFalse(validate_job_data({"id": "a", "type": "t", "queued_at": "yesterday"}))
        self.assertFalse(validate_job_data({"id": "a", "type": "t", "claimed_at": "x"}))


class TestConfig(unittest.TestCase):
    """Test configuration management"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config = Config(self.temp_dir)

    def tearDown(self):
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_defaults(self):
        """Test default configuration values"""
        self.assertEqual(self.config.get('batch_size'), 100)
        self.assertEqual(self.config.get('domain'), 'default')
        self.assertEqual(self.config.get('storage_dir'), self.temp_dir)
        self.assertEqual(self.config.backend_for('anything'), 'file')

    def test_validation(self):
        """Test value validation"""
        self.assertTrue(self.config.set('batch_size', 2))
        self.assertFalse(self.config.set('batch_size', 0))
        self.assertFalse(self.config.set('batch_size', True))
        self.assertFalse(self.config.set('log_level', 'LOUD'))
        self.assertFalse(self.config.set('watermark_store', 'redis'))
        self.assertFalse(self.config.set('queue_backends', ['file']))
        self.assertTrue(self.config.set('custom', 'anything'))
        self.assertEqual(self.config.get('batch_size'), 2)

    def test_backend_lookup(self):
        """Test per-type backends and the default entry"""
        self.config.set('queue_backends', {'refreshLinks': 'file'})

        self.assertEqual(self.config.backend_for('refreshLinks'), 'file')
        self.assertIsNone(self.config.backend_for('htmlCacheUpdate'))

    def test_reset_does_not_share_defaults(self):
        """Test that mutating a config leaves the defaults intact"""
        self.config.get('queue_backends')['refreshLinks'] = 'memory'
        other = Config(self.temp_dir)

        self.assertEqual(other.get('queue_backends'), {'default': 'file'})

        self.config.reset_to_defaults()
        self.assertEqual(self.config.get('queue_backends'), {'default': 'file'})


class TestStorageAndCache(unittest.TestCase):
    """Test JSON storage and watermark stores"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.storage = JobStorage(self.temp_dir)

    def tearDown(self):
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_add_and_get_job(self):
        """Test storing and loading jobs"""
        job = Job.create("refreshLinks", job_id="stored")

        self.assertTrue(self.storage.add_job(job))
        self.assertFalse(self.storage.add_job(job))
        self.assertEqual(self.storage.get_job("stored").id, "stored")
        self.assertIsNone(self.storage.get_job("missing"))

    def test_cache_values_persist(self):
        """Test that cached values survive a new storage instance"""
        self.storage.set_cache_value("k", 12.5)

        self.assertEqual(JobStorage(self.temp_dir).get_cache_value("k"), 12.5)
        self.assertIsNone(self.storage.get_cache_value("missing"))

    def test_file_watermark_store(self):
        """Test the file-backed watermark store"""
        store = FileWatermarkStore(self.storage)

        self.assertIsNone(store.get("key"))
        store.set("key", 1000)
        self.assertEqual(FileWatermarkStore(JobStorage(self.temp_dir)).get("key"), 1000)

    def test_in_memory_watermark_store(self):
        """Test the in-memory watermark store"""
        store = InMemoryWatermarkStore({"a": 1})

        self.assertEqual(store.get("a"), 1)
        self.assertIsNone(store.get("b"))
        store.set("b", 2)
        self.assertIn("b", store)

    def test_create_watermark_store(self):
        """Test store selection from configuration"""
        config = Config(self.temp_dir)
        self.assertIsInstance(create_watermark_store(config, self.storage), FileWatermarkStore)

        config.set('watermark_store', 'memory')
        self.assertIsInstance(create_watermark_store(config, self.storage), InMemoryWatermarkStore)

    def test_make_global_key(self):
        """Test key construction and escaping"""
        self.assertEqual(
            make_global_key("last-job-repush", "wiki", "refreshLinks"),
            "global:last-job-repush:wiki:refreshLinks"
        )
        self.assertNotEqual(
            make_global_key("last-job-repush", "a:b", "c"),
            make_global_key("last-job-repush", "a", "b:c")
        )


class TestUtils(unittest.TestCase):
    """Test timestamp and validation helpers"""

    def test_to_unix_timestamp(self):
        """Test normalization of timestamp representations"""
        self.assertIsNone(to_unix_timestamp(None))
        self.assertEqual(to_unix_timestamp(100), 100.0)
        self.assertEqual(to_unix_timestamp("100.5"), 100.5)
        self.assertEqual(to_unix_timestamp("19700101000140"), 100.0)
        self.assertEqual(to_unix_timestamp("1970-01-01T00:01:40Z"), 100.0)
        self.assertEqual(to_unix_timestamp("1970-01-01T01:01:40+01:00"), 100.0)
        self.assertEqual(to_unix_timestamp(datetime(1970, 1, 1, 0, 1, 40)), 100.0)
        self.assertEqual(
            to_unix_timestamp(datetime(1970, 1, 1, 2, 1, 40, tzinfo=timezone(timedelta(hours=2)))),
            100.0
        )

    def test_to_unix_timestamp_rejects_garbage(self):
        """Test that unparseable values raise"""
        for value in ("yesterday", True, [1]):
            with self.assertRaises(ValueError):
                to_unix_timestamp(value)

    def test_format_timestamp(self):
        """Test human-readable timestamps"""
        self.assertEqual(format_timestamp(100), "1970-01-01 00:01:40 UTC")
        self.assertEqual(format_timestamp(MIN_TIMESTAMP), "never")
        self.assertEqual(format_timestamp(None), "Unknown")

    def test_truncate_string(self):
        self.assertEqual(truncate_string("short", 10), "short")
        self.assertEqual(truncate_string("a" * 20, 10), "aaaaaaa...")

    def test_validate_queue_name(self):
        self.assertTrue(validate_queue_name("refreshLinks"))
        self.assertTrue(validate_queue_name("cirrusSearch.linksUpdate"))
        self.assertFalse(validate_queue_name(""))
        self.assertFalse(validate_queue_name("bad name"))


if __name__ == '__main__':
    unittest.main()
