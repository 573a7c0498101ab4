"""
CRUD core entity cache

Queries of the service layer are decorated with ``cached`` to serve
their results from the configured cache, while commands are decorated
with ``invalidates`` to drop all cached entries of the entity types they
modify after they have completed successfully. The cache backend is set
up once by ``init`` (usually while creating the API application).
"""

import logging
import functools
from typing import Any, Callable, Optional

import pydantic

from . import keys
from .backends import (
    Cache, CacheEntryOptions, CacheError, CompositeCache,
    MemoryCache, NullCache, RedisCache, build_cache
)


logger = logging.getLogger(__name__)

_cache: Optional[Cache] = None


def init(cache: Cache, prefix: Optional[str] = None) -> Cache:
    global _cache
    _cache = cache
    if prefix is not None:
        keys.prefix = prefix
    logger.debug(f"Using cache backend {type(cache).__name__} with key prefix {keys.prefix!r}")
    return cache


def get_cache() -> Cache:
    global _cache
    if _cache is None:
        logger.warning("Cache not initialized! Using a new in-memory cache with default settings.")
        _cache = MemoryCache()
    return _cache


def invalidate(*entities: str) -> int:
    """
    Remove the collection, entity and name entries of all given entity types
    """

    cache = get_cache()
    removed = 0
    for entity in entities:
        try:
            cache.remove(keys.collection(entity))
            removed += cache.remove_by_pattern(keys.entity_pattern(entity))
            removed += cache.remove_by_pattern(keys.name_pattern(entity))
        except CacheError:
            logger.exception(f"Invalidating cached entries of {entity!r} failed")
    logger.debug(f"Invalidated {removed} cache entries for {', '.join(entities)}")
    return removed


def cached(
        type_: Any,
        key_func: Callable[..., str],
        options: Optional[CacheEntryOptions] = None
) -> Callable[[Callable], Callable]:
    """
    Decorate a query function to serve its result from the cache

    Results are stored as JSON-compatible data and validated against
    the given type when read from the cache again. Failures of the
    cache are logged and the query function will be executed instead.

    :param type_: pydantic model or other type annotation of the query's result
    :param key_func: callable receiving the same arguments as the query and returning the cache key
    :param options: optional cache entry options (the cache's defaults are used otherwise)
    :return: decorator to use on a query function
    """

    adapter = pydantic.TypeAdapter(type_)

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            key = key_func(*args, **kwargs)
            cache = get_cache()
            try:
                value = cache.get(key)
            except CacheError:
                logger.exception(f"Reading {key!r} from cache failed")
                value = None
            if value is not None:
                logger.debug(f"Cache hit for {key!r}")
                return adapter.validate_python(value)

            result = func(*args, **kwargs)
            try:
                cache.set(key, adapter.dump_python(result, mode="json"), options)
            except CacheError:
                logger.exception(f"Storing {key!r} in cache failed")
            return result

        return wrapper

    return decorator


def invalidates(*entities: str) -> Callable[[Callable], Callable]:
    """
    Decorate a command function to invalidate the cached entries of the given entity types

    The invalidation takes place only after the command returned
    successfully, failed commands leave the cache untouched.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            result = func(*args, **kwargs)
            invalidate(*entities)
            return result

        return wrapper

    return decorator
