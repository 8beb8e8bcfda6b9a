from typing import Optional, Iterable
import json
import logging

from pydantic import ValidationError

from app.domain.models.product import RecommendationCandidate

logger = logging.getLogger(__name__)


class RecoCacheRepo:
    """
    Adapter for caching live recommendation candidates in Redis.
    Only successful gateway answers are stored; a failed call is never cached
    so the next request retries the scorer.
    """
    def __init__(self, redis, key_prefix: str = "reco"):
        """
        Args:
            redis: Redis client instance
            key_prefix: Namespace for cache keys (e.g. 'reco')
        """
        self.cache = redis
        self.prefix = key_prefix

    def key(self, source: str, subject: str, limit: int) -> str:
        """
        Build a cache key for one (source, subject) query,
        e.g. 'reco:collaborative:<user_id>:10'.
        """
        return f"{self.prefix}:{source}:{subject}:{limit}"

    async def get(self, key: str) -> Optional[list[RecommendationCandidate]]:
        """
        Cached candidates in gateway order, or None on a miss.
        An unreadable entry (corrupt JSON, older schema) is dropped and
        reported as a miss.
        """
        raw = await self.cache.get(key)
        if not raw:
            return None
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            return [RecommendationCandidate.model_validate(x) for x in data]
        except (ValueError, ValidationError) as e:
            logger.warning("reco cache entry unreadable key=%s err=%s (dropped)", key, e)
            await self.cache.delete(key)
            return None

    async def set(self, key: str, items: Iterable[RecommendationCandidate], ttl: int) -> None:
        payload = [i.model_dump() for i in items]
        await self.cache.set(key, json.dumps(payload), ex=ttl)
