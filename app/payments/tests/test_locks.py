"""
Tests for the Redis run lock used by scheduled payout jobs.
"""

from unittest.mock import MagicMock, patch

import pytest

from payments.exceptions import LockAcquisitionError
from payments.locks import DistributedLock


@pytest.fixture
def redis_conn():
    """Mock Redis connection returned by django-redis."""
    with patch("payments.locks.get_redis_connection") as mock_get_conn:
        redis_instance = MagicMock()
        mock_get_conn.return_value = redis_instance
        yield redis_instance


class TestDistributedLock:
    """Tests for DistributedLock."""

    def test_acquire_sets_key_with_ttl(self, redis_conn):
        """Should SET NX with the prefixed key and TTL."""
        redis_conn.set.return_value = True

        lock = DistributedLock("payouts:process_scheduled", ttl=600)

        assert lock.acquire() is True
        assert lock.is_held is True
        args, kwargs = redis_conn.set.call_args
        assert args[0] == "lock:payouts:process_scheduled"
        assert kwargs == {"nx": True, "ex": 600}

    def test_non_blocking_raises_when_held(self, redis_conn):
        """Should fail immediately when another worker holds the lock."""
        redis_conn.set.return_value = False

        lock = DistributedLock("payouts:process_scheduled")

        with pytest.raises(LockAcquisitionError, match="already held"):
            lock.acquire()
        assert lock.is_held is False

    def test_blocking_retries_until_free(self, redis_conn):
        """Should keep trying until the key can be set."""
        redis_conn.set.side_effect = [False, False, True]

        lock = DistributedLock("payouts:reconcile", blocking=True, timeout=1.0)

        assert lock.acquire() is True
        assert redis_conn.set.call_count == 3

    def test_blocking_timeout_raises(self, redis_conn):
        """Should raise once the wait exceeds the timeout."""
        redis_conn.set.return_value = False

        lock = DistributedLock("payouts:reconcile", blocking=True, timeout=0.1)

        with pytest.raises(LockAcquisitionError) as exc_info:
            lock.acquire()
        assert exc_info.value.details["timeout"] == 0.1

    def test_release_runs_owner_check_script(self, redis_conn):
        """Should release through the Lua owner check."""
        redis_conn.set.return_value = True
        redis_conn.eval.return_value = 1

        lock = DistributedLock("payouts:process_scheduled")
        lock.acquire()

        assert lock.release() is True
        assert lock.is_held is False
        redis_conn.eval.assert_called_once()

    def test_release_without_acquire_is_noop(self, redis_conn):
        lock = DistributedLock("payouts:process_scheduled")

        assert lock.release() is False
        redis_conn.eval.assert_not_called()

    def test_context_manager_releases_on_exception(self, redis_conn):
        """Should release the lock and re-raise."""
        redis_conn.set.return_value = True
        redis_conn.eval.return_value = 1

        with pytest.raises(ValueError, match="boom"):
            with DistributedLock("payouts:process_scheduled"):
                raise ValueError("boom")

        redis_conn.eval.assert_called_once()
