"""
Caching Service

Caches query embeddings and generated summaries behind a pluggable backend:
- MemoryCacheBackend: in-process LRU with per-entry TTL (single instance)
- RedisCacheBackend: shared Redis store (several instances)

Every entry carries an explicit TTL; nothing relies on process lifetime.
Cache failures are logged and treated as misses.
"""

from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Dict, List, Optional
import hashlib
import json
import logging
import threading
import time

from docuchat.config import settings

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Key-value store with TTL"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on miss or expiry"""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int) -> bool:
        """Store a JSON-serializable value for ttl seconds"""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    def clear(self) -> bool:
        pass


class MemoryCacheBackend(CacheBackend):
    """
    In-process LRU cache with TTL

    Oldest entries are evicted once max_entries is reached. Expired entries
    are dropped when read.
    """

    def __init__(self, max_entries: int = None, clock=time.monotonic):
        self.max_entries = max_entries or settings.CACHE_MAX_ENTRIES
        self._clock = clock
        self._entries: "OrderedDict[str, tuple]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any, ttl: int) -> bool:
        with self._lock:
            self._entries[key] = (self._clock() + ttl, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> bool:
        with self._lock:
            self._entries.clear()
        return True

    def __len__(self):
        return len(self._entries)


class RedisCacheBackend(CacheBackend):
    """Redis-backed cache, values stored as JSON with SETEX"""

    def __init__(self, redis_client=None):
        if redis_client is None:
            import redis
            redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=False,
                socket_connect_timeout=5,
                socket_timeout=5
            )
        self.redis = redis_client

    def get(self, key: str) -> Optional[Any]:
        try:
            data = self.redis.get(key)
            return json.loads(data.decode('utf-8')) if data else None
        except Exception as e:
            logger.error(f"Error reading {key} from Redis cache: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int) -> bool:
        try:
            self.redis.setex(key, ttl, json.dumps(value).encode('utf-8'))
            return True
        except Exception as e:
            logger.error(f"Error writing {key} to Redis cache: {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            return bool(self.redis.delete(key))
        except Exception as e:
            logger.error(f"Error deleting {key} from Redis cache: {e}")
            return False

    def clear(self) -> bool:
        try:
            self.redis.flushdb()
            logger.warning("Cleared all cache")
            return True
        except Exception as e:
            logger.error(f"Error clearing cache: {e}")
            return False


def get_cache_backend(name: str = None) -> CacheBackend:
    """Build the backend named by settings.CACHE_BACKEND"""
    name = (name or settings.CACHE_BACKEND).lower()
    if name == "memory":
        return MemoryCacheBackend()
    if name == "redis":
        return RedisCacheBackend()
    raise ValueError(f"Unknown cache backend: {name}")


def _hash(text: str) -> str:
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


class CacheService:
    """
    Embedding and summary caches over one backend

    Cache Keys:
    - embedding:{sha256(text)} -> query embedding (CACHE_EMBEDDING_TTL)
    - summary:{type}:{domain}:{sha256(text, type, domain)} -> summary text (SUMMARY_CACHE_TTL)
    """

    def __init__(self, backend: Optional[CacheBackend] = None):
        self.enabled = settings.CACHE_ENABLED
        self.backend = backend or get_cache_backend()

    def get_embedding(self, text: str) -> Optional[List[float]]:
        if not self.enabled:
            return None
        embedding = self.backend.get(f"embedding:{_hash(text)}")
        logger.debug(f"Embedding cache {'HIT' if embedding else 'MISS'} for text hash: {_hash(text)[:8]}")
        return embedding

    def set_embedding(self, text: str, embedding: List[float], ttl: Optional[int] = None) -> bool:
        if not self.enabled:
            return False
        return self.backend.set(
            f"embedding:{_hash(text)}",
            [float(x) for x in embedding],
            ttl or settings.CACHE_EMBEDDING_TTL,
        )

    @staticmethod
    def summary_key(text: str, summary_type: str, domain_focus: Optional[str] = None) -> str:
        domain = domain_focus or "general"
        digest = _hash(json.dumps([text, summary_type, domain]))
        return f"summary:{summary_type}:{domain}:{digest}"

    def get_summary(self, text: str, summary_type: str, domain_focus: Optional[str] = None) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        cached = self.backend.get(self.summary_key(text, summary_type, domain_focus))
        if cached:
            logger.info(f"Summary cache HIT ({summary_type})")
        return cached

    def set_summary(
        self,
        text: str,
        summary_type: str,
        domain_focus: Optional[str],
        summary: Dict[str, Any],
        ttl: Optional[int] = None
    ) -> bool:
        if not self.enabled:
            return False
        return self.backend.set(
            self.summary_key(text, summary_type, domain_focus),
            summary,
            ttl or settings.SUMMARY_CACHE_TTL,
        )
