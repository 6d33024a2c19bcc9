"""
Hot-read cache on Redis
Best effort: every failure is logged and treated as a miss
"""

from typing import Any, Optional
import json
import logging

import redis.asyncio as redis

from app.config.settings import settings

logger = logging.getLogger(__name__)


def user_cache_key(uid: str) -> str:
    return f"user:{uid}"


class CacheService:
    """JSON values with TTL; a disabled cache behaves like a permanent miss"""

    def __init__(self, client: Optional[redis.Redis] = None, default_ttl: Optional[int] = None):
        self._redis = client
        self.default_ttl = default_ttl or settings.user_cache_ttl_seconds

    async def get_json(self, key: str) -> Optional[Any]:
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(key)
        except Exception as e:
            logger.warning(f"[CACHE] get failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"[CACHE] Discarding undecodable entry for {key}")
            return None

    async def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl or self.default_ttl)
        except Exception as e:
            logger.warning(f"[CACHE] set failed for {key}: {e}")

    async def delete(self, *keys: str) -> None:
        if self._redis is None or not keys:
            return
        try:
            await self._redis.delete(*keys)
        except Exception as e:
            logger.warning(f"[CACHE] delete failed for {keys}: {e}")

    async def close(self) -> None:
        if self._redis is not None:
            try:
                await self._redis.aclose()
            except Exception as e:
                logger.warning(f"[CACHE] close failed: {e}")


_cache_service: Optional[CacheService] = None


def get_cache_service() -> CacheService:
    """
    FastAPI dependency returning the shared cache
    Without REDIS_URL the cache is disabled rather than failing requests
    """
    global _cache_service

    if _cache_service is None:
        client = None
        if settings.redis_url:
            try:
                client = redis.from_url(settings.redis_url, decode_responses=True)
            except Exception as e:
                logger.warning(f"[CACHE] Redis unavailable ({e}), hot-read cache disabled")
                client = None
        else:
            logger.info("[CACHE] REDIS_URL not set; hot-read cache disabled")
        _cache_service = CacheService(client)

    return _cache_service


async def close_cache_service() -> None:
    global _cache_service
    if _cache_service is not None:
        await _cache_service.close()
        _cache_service = None
