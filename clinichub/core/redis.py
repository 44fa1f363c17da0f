"""
Redis connection and cache management.

This module provides the Redis connection used as the read-through cache in
front of persisted onboarding progress records.
"""

import json
import logging
from typing import Any, Optional

import redis

from clinichub.config.settings import settings

logger = logging.getLogger(__name__)


class RedisManager:
    """
    Redis connection manager with caching utilities.
    
    Every operation degrades to a cache miss when Redis is unreachable, so
    callers always fall back to the database.
    """
    
    def __init__(self, url: Optional[str] = None):
        """Initialize Redis connection pool."""
        self.redis_client = redis.from_url(
            url or settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2
        )
    
    def get(self, key: str) -> Optional[Any]:
        """
        Get value from Redis cache.
        
        Args:
            key: Cache key to retrieve
            
        Returns:
            Cached value if found, None if not found, expired, or Redis is down
        """
        try:
            value = self.redis_client.get(key)
            if value:
                try:
                    return json.loads(value)
                except (json.JSONDecodeError, TypeError):
                    return value
            return None
        except redis.RedisError as e:
            logger.warning(f"Redis GET failed for {key}: {e}")
            return None
    
    def set(self, key: str, value: Any, ttl: Optional[int] = 3600) -> bool:
        """
        Set value in Redis cache.
        
        Args:
            key: Cache key
            value: Value to cache (JSON serialized if not a string)
            ttl: Time to live in seconds
            
        Returns:
            True if successful, False otherwise
        """
        try:
            if not isinstance(value, str):
                value = json.dumps(value, default=str)
            return bool(self.redis_client.set(key, value, ex=ttl))
        except (redis.RedisError, TypeError) as e:
            logger.warning(f"Redis SET failed for {key}: {e}")
            return False
    
    def delete(self, key: str) -> bool:
        """
        Delete key from Redis cache.
        
        Returns:
            True if key was deleted, False otherwise
        """
        try:
            return bool(self.redis_client.delete(key))
        except redis.RedisError as e:
            logger.warning(f"Redis DELETE failed for {key}: {e}")
            return False


# Global Redis manager instance
redis_manager = RedisManager()


def get_redis() -> RedisManager:
    """
    FastAPI dependency function to get Redis manager.
    
    Returns:
        RedisManager: Redis connection manager instance
    """
    return redis_manager
