import json
import logging
import redis
from typing import Any, Iterable, Optional

from bakery_pos.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Create Redis client
redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)


class CacheService:
    """
    Redis cache for catalog lookups.

    Values are stored as JSON under "<prefix>:<key>" with a TTL. Any Redis
    failure is treated as a cache miss so the POS keeps selling when the
    cache is down.
    """

    def __init__(self, client: redis.Redis = None, ttl: int = None):
        self.client = client or redis_client
        self.ttl = ttl or settings.CACHE_TTL

    def _make_key(self, prefix: str, key: str) -> str:
        """Create a namespaced cache key."""
        return f"{prefix}:{key}"

    def get(self, prefix: str, key: str) -> Optional[Any]:
        """
        Get a value from cache.

        Args:
            prefix: Cache key prefix (e.g., 'product')
            key: Unique identifier

        Returns:
            Cached value or None if missing or unreadable
        """
        cache_key = self._make_key(prefix, key)
        try:
            value = self.client.get(cache_key)
        except redis.RedisError as e:
            logger.debug(f"Cache read failed for {cache_key}: {e}")
            return None
        if not value:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable cache entry {cache_key}")
            return None

    def set(self, prefix: str, key: str, value: Any, ttl: int = None) -> bool:
        """
        Set a value in cache with TTL.

        Args:
            prefix: Cache key prefix
            key: Unique identifier
            value: Value to cache (JSON serialized, non-JSON types via str)
            ttl: Time to live in seconds (defaults to CACHE_TTL)

        Returns:
            True if stored, False otherwise
        """
        cache_key = self._make_key(prefix, key)
        try:
            serialized = json.dumps(value, default=str)
            self.client.setex(cache_key, ttl or self.ttl, serialized)
            return True
        except (redis.RedisError, TypeError) as e:
            logger.debug(f"Cache write failed for {cache_key}: {e}")
            return False

    def delete(self, prefix: str, *keys: str) -> bool:
        """Delete one or more keys under a prefix."""
        if not keys:
            return True
        cache_keys = [self._make_key(prefix, key) for key in keys]
        try:
            self.client.delete(*cache_keys)
            return True
        except redis.RedisError as e:
            logger.debug(f"Cache delete failed for {cache_keys}: {e}")
            return False

    def delete_many(self, prefix: str, keys: Iterable[Any]) -> bool:
        """Delete keys given as any iterable of identifiers."""
        return self.delete(prefix, *(str(key) for key in keys))


# Singleton cache service instance
cache_service = CacheService()
