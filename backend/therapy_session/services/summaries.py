"""Store for finished session summaries, read by the review surface."""

import redis.asyncio as redis

from therapy_session.core.config import get_settings
from therapy_session.core.logging import get_logger, session_context
from therapy_session.models.session import SessionSummary

logger = get_logger(__name__)


class SummaryStore:
    """Keeps summaries in Redis when configured, otherwise in memory."""

    def __init__(self, redis_url: str | None = None, ttl_seconds: int | None = None):
        settings = get_settings()
        self.redis_url = settings.redis_url if redis_url is None else redis_url
        self.ttl_seconds = settings.summary_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._redis: redis.Redis | None = None
        self._redis_checked = False

        # In-memory fallback if Redis unavailable
        self._summaries: dict[str, SessionSummary] = {}

    async def _get_redis(self) -> redis.Redis | None:
        """Get Redis connection (lazy init, checked once)."""
        if self._redis_checked or not self.redis_url:
            return self._redis

        self._redis_checked = True
        try:
            self._redis = redis.from_url(self.redis_url, decode_responses=True)
            await self._redis.ping()
        except (redis.RedisError, OSError) as e:
            logger.warning("Redis unavailable, keeping summaries in memory: %s", e)
            self._redis = None
        return self._redis

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "memory"

    async def save(self, summary: SessionSummary) -> None:
        r = await self._get_redis()
        if r:
            await r.setex(
                f"summary:{summary.session_id}",
                self.ttl_seconds,
                summary.model_dump_json(by_alias=True),
            )
        else:
            self._summaries[summary.session_id] = summary

        logger.info("Summary stored", extra=session_context(summary.session_id))

    async def get(self, session_id: str) -> SessionSummary | None:
        r = await self._get_redis()
        if r:
            data = await r.get(f"summary:{session_id}")
            if data:
                return SessionSummary.model_validate_json(data)
            return None
        return self._summaries.get(session_id)

    async def list_ids(self) -> list[str]:
        r = await self._get_redis()
        if r:
            keys = [key async for key in r.scan_iter(match="summary:*")]
            return sorted(key.split(":", 1)[1] for key in keys)
        return sorted(self._summaries)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self._redis_checked = False
