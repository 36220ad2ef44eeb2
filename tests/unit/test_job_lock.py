"""Tests for Redis-backed job run locks."""

from unittest.mock import MagicMock

import pytest
import redis

from inkstudio.job_lock import RELEASE_SCRIPT, JobLock, get_redis_client


def test_no_redis_configured_returns_none():
    assert get_redis_client() is None


class TestJobLock:
    def test_fails_open_without_redis(self):
        with JobLock().hold("cleanup") as acquired:
            assert acquired is True

    def test_acquires_and_releases(self):
        client = MagicMock()
        client.set.return_value = True

        with JobLock(client=client, ttl_seconds=30).hold("cleanup") as acquired:
            assert acquired is True

        key = "inkstudio:job-lock:cleanup"
        args, kwargs = client.set.call_args
        assert args[0] == key
        assert kwargs == {"nx": True, "ex": 30}
        token = args[1]
        client.eval.assert_called_once_with(RELEASE_SCRIPT, 1, key, token)

    def test_held_elsewhere(self):
        client = MagicMock()
        client.set.return_value = None

        with JobLock(client=client).hold("cleanup") as acquired:
            assert acquired is False
        client.eval.assert_not_called()

    def test_fails_open_on_redis_error(self):
        client = MagicMock()
        client.set.side_effect = redis.ConnectionError("down")

        with JobLock(client=client).hold("cleanup") as acquired:
            assert acquired is True

    def test_releases_when_body_raises(self):
        client = MagicMock()
        client.set.return_value = True

        with pytest.raises(RuntimeError):
            with JobLock(client=client).hold("cleanup"):
                raise RuntimeError("job failed")
        client.eval.assert_called_once()
