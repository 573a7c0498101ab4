"""
Cache backends storing JSON-compatible values with expiration

The in-memory cache is always available, while the Redis cache requires
a reachable Redis server. The composite cache combines both: it prefers
the primary (usually Redis) and falls back to the secondary (in-memory)
cache whenever the primary fails, so that an unavailable Redis server
never breaks request handling.
"""

import abc
import json
import time
import fnmatch
import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

import pydantic
import redis
import redis.exceptions

from ..schemas import config


class CacheError(Exception):
    """
    Exception raised by cache backends when the underlying store failed
    """


class CacheEntryOptions(pydantic.BaseModel):
    absolute_expiration: Optional[pydantic.PositiveFloat] = 300
    """Seconds after which the entry expires, independent of any access"""
    sliding_expiration: Optional[pydantic.PositiveFloat] = None
    """Seconds after the last access after which the entry expires"""


DEFAULT_OPTIONS = CacheEntryOptions()


class Cache(abc.ABC):
    """
    Abstract base class of all cache backends

    Values must be JSON-serializable. A return value of ``None``
    from ``get`` always means that the key is not present.
    """

    def __init__(self, default_options: Optional[CacheEntryOptions] = None):
        self.default_options = default_options or DEFAULT_OPTIONS
        self.hits = 0
        self.misses = 0

    @abc.abstractmethod
    def get(self, key: str) -> Optional[Any]:
        pass

    @abc.abstractmethod
    def set(self, key: str, value: Any, options: Optional[CacheEntryOptions] = None):
        pass

    @abc.abstractmethod
    def remove(self, key: str):
        pass

    @abc.abstractmethod
    def remove_by_pattern(self, pattern: str) -> int:
        """
        Remove all keys matching the glob-style pattern and return their number
        """

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    def get_or_set(self, key: str, factory: Callable[[], Any], options: Optional[CacheEntryOptions] = None) -> Any:
        value = self.get(key)
        if value is not None:
            return value
        value = factory()
        if value is not None:
            self.set(key, value, options)
        return value

    def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        result = {}
        for key in keys:
            value = self.get(key)
            if value is not None:
                result[key] = value
        return result

    def set_many(self, values: Dict[str, Any], options: Optional[CacheEntryOptions] = None):
        for key, value in values.items():
            self.set(key, value, options)

    def _count(self, value: Optional[Any]) -> Optional[Any]:
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value


class NullCache(Cache):
    """
    Cache that never stores anything (used when caching is disabled)
    """

    def get(self, key: str) -> Optional[Any]:
        return self._count(None)

    def set(self, key: str, value: Any, options: Optional[CacheEntryOptions] = None):
        pass

    def remove(self, key: str):
        pass

    def remove_by_pattern(self, pattern: str) -> int:
        return 0


class _MemoryEntry:
    __slots__ = ("payload", "absolute_deadline", "sliding", "sliding_deadline")

    def __init__(self, payload: str, options: CacheEntryOptions, now: float):
        self.payload = payload
        self.absolute_deadline = options.absolute_expiration and now + options.absolute_expiration
        self.sliding = options.sliding_expiration
        self.sliding_deadline = self.sliding and now + self.sliding

    def expired(self, now: float) -> bool:
        if self.absolute_deadline is not None and now >= self.absolute_deadline:
            return True
        return self.sliding_deadline is not None and now >= self.sliding_deadline

    def touch(self, now: float):
        if self.sliding:
            self.sliding_deadline = now + self.sliding


class MemoryCache(Cache):
    """
    Thread-safe in-process cache with absolute and sliding expiration
    """

    def __init__(
            self,
            default_options: Optional[CacheEntryOptions] = None,
            clock: Callable[[], float] = time.monotonic
    ):
        super().__init__(default_options)
        self._clock = clock
        self._entries: Dict[str, _MemoryEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return self._count(None)
            now = self._clock()
            if entry.expired(now):
                del self._entries[key]
                return self._count(None)
            entry.touch(now)
            return self._count(json.loads(entry.payload))

    def set(self, key: str, value: Any, options: Optional[CacheEntryOptions] = None):
        payload = json.dumps(value)
        with self._lock:
            self._entries[key] = _MemoryEntry(payload, options or self.default_options, self._clock())

    def remove(self, key: str):
        with self._lock:
            self._entries.pop(key, None)

    def remove_by_pattern(self, pattern: str) -> int:
        with self._lock:
            matching = [key for key in self._entries if fnmatch.fnmatchcase(key, pattern)]
            for key in matching:
                del self._entries[key]
        return len(matching)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries.keys())

    def clear(self):
        with self._lock:
            self._entries.clear()


class RedisCache(Cache):
    """
    Cache backed by a Redis server, using Redis TTLs for expiration

    Entries with sliding expiration store their sliding period next to
    the value, so that every hit can renew the TTL of the key.
    """

    def __init__(self, client: redis.Redis, default_options: Optional[CacheEntryOptions] = None):
        super().__init__(default_options)
        self.client = client

    @classmethod
    def from_url(cls, url: str, default_options: Optional[CacheEntryOptions] = None) -> "RedisCache":
        client = redis.Redis.from_url(url, decode_responses=True, socket_timeout=1, socket_connect_timeout=1)
        return cls(client, default_options)

    @staticmethod
    def _ttl(options: CacheEntryOptions) -> Optional[int]:
        periods = [p for p in (options.absolute_expiration, options.sliding_expiration) if p]
        if not periods:
            return None
        return max(1, int(round(min(periods))))

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(key)
            if raw is None:
                return self._count(None)
            envelope = json.loads(raw)
            if envelope.get("sliding"):
                self.client.expire(key, max(1, int(round(envelope["sliding"]))))
        except redis.exceptions.RedisError as exc:
            raise CacheError(f"Redis GET of {key!r} failed: {exc}") from exc
        return self._count(envelope.get("value"))

    def set(self, key: str, value: Any, options: Optional[CacheEntryOptions] = None):
        options = options or self.default_options
        payload = json.dumps({"value": value, "sliding": options.sliding_expiration})
        try:
            self.client.set(key, payload, ex=self._ttl(options))
        except redis.exceptions.RedisError as exc:
            raise CacheError(f"Redis SET of {key!r} failed: {exc}") from exc

    def remove(self, key: str):
        try:
            self.client.delete(key)
        except redis.exceptions.RedisError as exc:
            raise CacheError(f"Redis DEL of {key!r} failed: {exc}") from exc

    def remove_by_pattern(self, pattern: str) -> int:
        removed = 0
        try:
            for key in self.client.scan_iter(match=pattern, count=250):
                removed += self.client.delete(key)
        except redis.exceptions.RedisError as exc:
            raise CacheError(f"Redis SCAN/DEL of {pattern!r} failed: {exc}") from exc
        return removed


class CompositeCache(Cache):
    """
    Two-level cache preferring the primary and falling back to the secondary cache

    Reads try the primary cache first. Misses and failures of the primary
    are served by the secondary cache. Writes and removals are applied to
    both caches, where failures of the primary are logged but not raised.
    """

    def __init__(
            self,
            primary: Cache,
            secondary: Cache,
            default_options: Optional[CacheEntryOptions] = None,
            logger: Optional[logging.Logger] = None
    ):
        super().__init__(default_options or secondary.default_options)
        self.primary = primary
        self.secondary = secondary
        self.logger = logger or logging.getLogger(__name__)

    def get(self, key: str) -> Optional[Any]:
        try:
            value = self.primary.get(key)
            if value is not None:
                return self._count(value)
        except CacheError as exc:
            self.logger.warning(f"Primary cache failed, falling back to secondary cache: {exc}")
        return self._count(self.secondary.get(key))

    def set(self, key: str, value: Any, options: Optional[CacheEntryOptions] = None):
        options = options or self.default_options
        try:
            self.primary.set(key, value, options)
        except CacheError as exc:
            self.logger.warning(f"Primary cache failed to store {key!r}: {exc}")
        self.secondary.set(key, value, options)

    def remove(self, key: str):
        try:
            self.primary.remove(key)
        except CacheError as exc:
            self.logger.warning(f"Primary cache failed to remove {key!r}: {exc}")
        self.secondary.remove(key)

    def remove_by_pattern(self, pattern: str) -> int:
        removed = 0
        try:
            removed = self.primary.remove_by_pattern(pattern)
        except CacheError as exc:
            self.logger.warning(f"Primary cache failed to remove pattern {pattern!r}: {exc}")
        return max(removed, self.secondary.remove_by_pattern(pattern))


def build_cache(conf: config.CacheConfig, logger: Optional[logging.Logger] = None) -> Cache:
    """
    Create the cache backend described by the cache configuration
    """

    options = CacheEntryOptions(
        absolute_expiration=conf.absolute_expiration,
        sliding_expiration=conf.sliding_expiration
    )
    if not conf.enabled:
        return NullCache(options)
    memory = MemoryCache(options)
    if not conf.redis_url:
        return memory
    return CompositeCache(RedisCache.from_url(conf.redis_url, options), memory, options, logger)
