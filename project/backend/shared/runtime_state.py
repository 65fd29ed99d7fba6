"""
Runtime job state.

Short-lived per-job flags that are not part of the job record: cancellation
requests and real assembly progress. Backed by Redis when REDIS_URL is set so
every API worker sees the same values; in-process otherwise.
"""

import asyncio
from typing import Dict, Optional, Set

from shared.errors import RetryableError
from shared.logging import get_logger
from shared.redis_client import RedisClient

logger = get_logger("runtime_state")

# Runtime keys expire after a day; jobs never run that long
STATE_TTL_SECONDS = 24 * 60 * 60


class RuntimeState:
    """In-process runtime state, used when Redis is not configured."""

    def __init__(self):
        self._cancelled: Set[str] = set()
        self._progress: Dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def request_cancel(self, job_id: str) -> None:
        async with self._lock:
            self._cancelled.add(str(job_id))

    async def is_cancelled(self, job_id: str) -> bool:
        return str(job_id) in self._cancelled

    async def set_progress(self, job_id: str, progress: float) -> None:
        async with self._lock:
            self._progress[str(job_id)] = progress

    async def get_progress(self, job_id: str) -> Optional[float]:
        return self._progress.get(str(job_id))

    async def clear(self, job_id: str) -> None:
        """Drop all runtime state for a finished job."""
        async with self._lock:
            self._cancelled.discard(str(job_id))
            self._progress.pop(str(job_id), None)

    async def close(self) -> None:
        return None


class RedisRuntimeState(RuntimeState):
    """Runtime state shared across workers through Redis."""

    def __init__(self, redis_client: RedisClient):
        super().__init__()
        self.redis = redis_client

    @staticmethod
    def _cancel_key(job_id: str) -> str:
        return f"job_cancel:{job_id}"

    @staticmethod
    def _progress_key(job_id: str) -> str:
        return f"job_progress:{job_id}"

    async def request_cancel(self, job_id: str) -> None:
        await self.redis.set(self._cancel_key(job_id), "1", ex=STATE_TTL_SECONDS)

    async def is_cancelled(self, job_id: str) -> bool:
        try:
            return await self.redis.get(self._cancel_key(job_id)) is not None
        except RetryableError as e:
            # A Redis outage must not cancel or fail running jobs
            logger.warning("Failed to check cancellation flag", extra={"job_id": str(job_id), "error": str(e)})
            return False

    async def set_progress(self, job_id: str, progress: float) -> None:
        try:
            await self.redis.set(self._progress_key(job_id), f"{progress:.1f}", ex=STATE_TTL_SECONDS)
        except RetryableError as e:
            logger.warning("Failed to publish assembly progress", extra={"job_id": str(job_id), "error": str(e)})

    async def get_progress(self, job_id: str) -> Optional[float]:
        try:
            value = await self.redis.get(self._progress_key(job_id))
        except RetryableError as e:
            logger.warning("Failed to read assembly progress", extra={"job_id": str(job_id), "error": str(e)})
            return None
        return float(value) if value is not None else None

    async def clear(self, job_id: str) -> None:
        try:
            await self.redis.delete(self._cancel_key(job_id))
            await self.redis.delete(self._progress_key(job_id))
        except RetryableError as e:
            logger.warning("Failed to clear runtime state", extra={"job_id": str(job_id), "error": str(e)})

    async def close(self) -> None:
        await self.redis.close()


def create_runtime_state(redis_url: str) -> RuntimeState:
    """Redis-backed state when a URL is configured, in-process otherwise."""
    if redis_url:
        return RedisRuntimeState(RedisClient(redis_url))
    logger.info("REDIS_URL not set, runtime state is kept in-process")
    return RuntimeState()
