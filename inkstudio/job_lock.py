"""
Redis-backed run locks for batch jobs
Prevents two overlapping cron firings of the same job from running together.
Fails open: without Redis every acquire succeeds.
"""

import logging
import os
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

import redis

from . import config

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None

# Release only if the lock still carries our token
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


def get_redis_client() -> Optional[redis.Redis]:
    """
    Get or create Redis client
    Returns None when neither REDIS_URL nor REDIS_HOST is configured
    """
    global redis_client

    if redis_client is not None:
        return redis_client

    redis_url = os.getenv("REDIS_URL")
    redis_host = os.getenv("REDIS_HOST")

    if redis_url:
        redis_client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30,
        )
    elif redis_host:
        redis_client = redis.Redis(
            host=redis_host,
            port=int(os.getenv("REDIS_PORT", "6379")),
            password=os.getenv("REDIS_PASSWORD"),
            db=int(os.getenv("REDIS_DB", "0")),
            ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
    else:
        logger.debug("ℹ️ Redis not configured - job locks disabled")
        return None

    logger.info("📡 Redis client initialized for job locks")
    return redis_client


class JobLock:
    """SET NX EX lock keyed by job type"""

    def __init__(self, client: Optional[redis.Redis] = None, ttl_seconds: Optional[int] = None):
        self._client = client
        self.ttl_seconds = ttl_seconds or config.JOB_LOCK_TTL_SECONDS

    def _get_client(self) -> Optional[redis.Redis]:
        if self._client is None:
            try:
                self._client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis unavailable for job locks: {e}")
                return None
        return self._client

    @contextmanager
    def hold(self, job_type: str) -> Iterator[bool]:
        """Yield True when this caller owns the lock for job_type"""
        client = self._get_client()
        if client is None:
            yield True
            return

        key = f"inkstudio:job-lock:{job_type}"
        token = uuid.uuid4().hex
        try:
            acquired = bool(client.set(key, token, nx=True, ex=self.ttl_seconds))
        except redis.RedisError as e:
            logger.warning(f"⚠️ Job lock check failed for {job_type}, running unlocked: {e}")
            yield True
            return

        if not acquired:
            logger.warning(f"🔒 Job {job_type} is already running elsewhere - skipping")
            yield False
            return

        try:
            yield True
        finally:
            try:
                client.eval(RELEASE_SCRIPT, 1, key, token)
            except redis.RedisError as e:
                logger.warning(f"⚠️ Failed to release job lock {key}: {e}")
