"""
Redis Cache Mock

In-memory stand-in for ``RedisManager`` used by tests and local runs without
a Redis server. Same ``get`` / ``set`` / ``delete`` interface.
"""

import copy
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class CacheUnavailableError(Exception):
    """Simulated cache outage."""


class RedisMock:
    """Mock Redis implementation."""
    
    def __init__(self, failure_rate: float = 0.0):
        self.failure_rate = failure_rate
        
        # In-memory storage
        self._data = {}
        self._expiry = {}
        
        # Metrics
        self._operations = 0
        self._hits = 0
        self._misses = 0
        
        logger.info("RedisMock initialized")
    
    def get(self, key: str) -> Optional[Any]:
        """Get value by key."""
        self._operations += 1
        
        if self._should_fail():
            raise CacheUnavailableError("Redis connection error")
        
        self._expire(key)
        
        if key in self._data:
            self._hits += 1
            return copy.deepcopy(self._data[key])
        else:
            self._misses += 1
            return None
    
    def set(self, key: str, value: Any, ttl: int = None) -> bool:
        """Set key-value pair with optional TTL."""
        self._operations += 1
        
        if self._should_fail():
            raise CacheUnavailableError("Redis connection error")
        
        self._data[key] = copy.deepcopy(value)
        
        if ttl:
            self._expiry[key] = datetime.now(timezone.utc) + timedelta(seconds=ttl)
        else:
            self._expiry.pop(key, None)
        
        return True
    
    def delete(self, key: str) -> bool:
        """Delete key."""
        self._operations += 1
        
        if self._should_fail():
            raise CacheUnavailableError("Redis connection error")
        
        self._expiry.pop(key, None)
        return self._data.pop(key, None) is not None
    
    def get_metrics(self) -> Dict[str, Any]:
        """Get cache metrics."""
        hit_rate = (self._hits / self._operations) if self._operations > 0 else 0
        
        return {
            "total_operations": self._operations,
            "cache_hits": self._hits,
            "cache_misses": self._misses,
            "hit_rate": hit_rate,
            "keys_stored": len(self._data),
        }
    
    def _expire(self, key: str) -> None:
        if key in self._expiry and datetime.now(timezone.utc) > self._expiry[key]:
            self._data.pop(key, None)
            del self._expiry[key]
    
    def _should_fail(self) -> bool:
        """Determine if operation should fail."""
        return random.random() < self.failure_rate
