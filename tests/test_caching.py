"""
CRUD core unit tests for the entity cache and its backends
"""

import uuid
import unittest as _unittest
from typing import Any, List, Optional

from crud_core import caching, schemas
from crud_core.caching import keys
from crud_core.schemas.config import CacheConfig


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class BrokenCache(caching.Cache):
    """
    Cache backend failing on every operation, like an unreachable Redis server
    """

    def get(self, key: str) -> Optional[Any]:
        raise caching.CacheError("unreachable")

    def set(self, key: str, value: Any, options: Optional[caching.CacheEntryOptions] = None):
        raise caching.CacheError("unreachable")

    def remove(self, key: str):
        raise caching.CacheError("unreachable")

    def remove_by_pattern(self, pattern: str) -> int:
        raise caching.CacheError("unreachable")


class CacheKeyTests(_unittest.TestCase):
    def setUp(self) -> None:
        self._prefix = keys.prefix
        keys.prefix = "test"

    def tearDown(self) -> None:
        keys.prefix = self._prefix

    def test_key_formats(self):
        entity_id = uuid.UUID("12345678-1234-5678-1234-567812345678")
        self.assertEqual("test:entity:person:12345678123456781234567812345678", keys.entity("person", entity_id))
        self.assertEqual("test:entity:role:abc", keys.entity("Role", "ABC"))
        self.assertEqual("test:list:wall", keys.collection("wall"))
        self.assertEqual("test:name:role:site_manager_", keys.by_name("role", " Site Manager! "))
        self.assertEqual("test:name:role:empty", keys.by_name("role", "   "))
        self.assertEqual("test:entity:window:*", keys.entity_pattern("window"))
        self.assertEqual("test:name:role:*", keys.name_pattern("role"))

    def test_entity_names(self):
        class PersonEntity:
            pass

        self.assertEqual("person", keys.entity_name(PersonEntity))
        self.assertEqual("role", keys.entity_name("ROLE"))
        self.assertEqual("entity", keys.entity_name("Entity"))

    def test_empty_prefix(self):
        keys.prefix = ""
        self.assertEqual("list:role", keys.collection("role"))


class MemoryCacheTests(_unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.cache = caching.MemoryCache(clock=self.clock)

    def test_get_set_remove(self):
        self.assertIsNone(self.cache.get("foo"))
        self.cache.set("foo", {"bar": [1, 2, 3]})
        self.assertEqual({"bar": [1, 2, 3]}, self.cache.get("foo"))
        self.assertTrue(self.cache.exists("foo"))
        self.cache.remove("foo")
        self.cache.remove("foo")
        self.assertFalse(self.cache.exists("foo"))
        self.assertEqual(2, self.cache.hits)
        self.assertEqual(2, self.cache.misses)

    def test_stored_values_are_copies(self):
        value = {"items": [1]}
        self.cache.set("foo", value)
        value["items"].append(2)
        self.assertEqual({"items": [1]}, self.cache.get("foo"))

    def test_absolute_expiration(self):
        self.cache.set("foo", 42, caching.CacheEntryOptions(absolute_expiration=10))
        self.clock.advance(9)
        self.assertEqual(42, self.cache.get("foo"))
        self.clock.advance(1)
        self.assertIsNone(self.cache.get("foo"))
        self.assertListEqual([], self.cache.keys())

    def test_sliding_expiration(self):
        options = caching.CacheEntryOptions(absolute_expiration=100, sliding_expiration=10)
        self.cache.set("foo", "bar", options)
        for _ in range(5):
            self.clock.advance(8)
            self.assertEqual("bar", self.cache.get("foo"))
        self.clock.advance(10)
        self.assertIsNone(self.cache.get("foo"))

        self.cache.set("foo", "bar", options)
        for _ in range(13):
            self.clock.advance(8)
            self.cache.get("foo")
        self.assertIsNone(self.cache.get("foo"))

    def test_remove_by_pattern(self):
        for key in ("p:entity:role:1", "p:entity:role:2", "p:entity:person:1", "p:list:role"):
            self.cache.set(key, 1)
        self.assertEqual(2, self.cache.remove_by_pattern("p:entity:role:*"))
        self.assertEqual(0, self.cache.remove_by_pattern("p:entity:wall:*"))
        self.assertListEqual(["p:entity:person:1", "p:list:role"], sorted(self.cache.keys()))
        self.cache.clear()
        self.assertListEqual([], self.cache.keys())

    def test_helpers(self):
        calls = []

        def factory():
            calls.append(1)
            return "value"

        self.assertEqual("value", self.cache.get_or_set("foo", factory))
        self.assertEqual("value", self.cache.get_or_set("foo", factory))
        self.assertEqual(1, len(calls))
        self.cache.set_many({"a": 1, "b": 2})
        self.assertEqual({"a": 1, "b": 2}, self.cache.get_many(["a", "b", "c"]))


class CacheBackendTests(_unittest.TestCase):
    def test_null_cache(self):
        cache = caching.NullCache()
        cache.set("foo", 1)
        self.assertIsNone(cache.get("foo"))
        self.assertEqual(0, cache.remove_by_pattern("*"))

    def test_composite_cache_falls_back(self):
        secondary = caching.MemoryCache()
        cache = caching.CompositeCache(BrokenCache(), secondary)
        cache.set("foo", [1, 2])
        self.assertEqual([1, 2], secondary.get("foo"))
        self.assertEqual([1, 2], cache.get("foo"))
        self.assertEqual(1, cache.remove_by_pattern("fo*"))
        self.assertIsNone(cache.get("foo"))

    def test_composite_cache_prefers_primary(self):
        primary = caching.MemoryCache()
        secondary = caching.MemoryCache()
        cache = caching.CompositeCache(primary, secondary)
        primary.set("foo", "primary")
        secondary.set("foo", "secondary")
        self.assertEqual("primary", cache.get("foo"))
        cache.remove("foo")
        self.assertIsNone(primary.get("foo"))
        self.assertIsNone(secondary.get("foo"))

    def test_build_cache(self):
        self.assertIsInstance(caching.build_cache(CacheConfig(enabled=False)), caching.NullCache)
        memory = caching.build_cache(CacheConfig(absolute_expiration=30, sliding_expiration=5))
        self.assertIsInstance(memory, caching.MemoryCache)
        self.assertEqual(30, memory.default_options.absolute_expiration)
        self.assertEqual(5, memory.default_options.sliding_expiration)
        composite = caching.build_cache(CacheConfig(redis_url="redis://localhost:6379/0"))
        self.assertIsInstance(composite, caching.CompositeCache)
        self.assertIsInstance(composite.primary, caching.RedisCache)
        self.assertIsInstance(composite.secondary, caching.MemoryCache)


class CacheDecoratorTests(_unittest.TestCase):
    def setUp(self) -> None:
        self.cache = caching.init(caching.MemoryCache(), "unittest")
        self.calls: List[uuid.UUID] = []

    def tearDown(self) -> None:
        caching.init(caching.MemoryCache(), "crud_core")

    def _make_query(self):
        @caching.cached(schemas.Count, lambda entity_id: keys.entity("thing", entity_id))
        def query(entity_id: uuid.UUID) -> schemas.Count:
            self.calls.append(entity_id)
            return schemas.Count(count=len(self.calls))

        return query

    def test_cached_queries(self):
        query = self._make_query()
        first, second = uuid.uuid4(), uuid.uuid4()
        self.assertEqual(schemas.Count(count=1), query(first))
        self.assertEqual(schemas.Count(count=1), query(first))
        self.assertEqual(schemas.Count(count=2), query(second))
        self.assertListEqual([first, second], self.calls)
        self.assertEqual({"count": 1}, self.cache.get(keys.entity("thing", first)))

    def test_invalidating_commands(self):
        query = self._make_query()
        entity_id = uuid.uuid4()

        @caching.invalidates("thing")
        def command(fail: bool = False) -> str:
            if fail:
                raise ValueError
            return "done"

        query(entity_id)
        self.cache.set(keys.collection("thing"), [])
        self.cache.set(keys.by_name("thing", "foo"), {})
        self.cache.set(keys.collection("other"), [])

        with self.assertRaises(ValueError):
            command(True)
        self.assertTrue(self.cache.exists(keys.entity("thing", entity_id)))

        self.assertEqual("done", command())
        self.assertListEqual(["unittest:list:other"], self.cache.keys())
        query(entity_id)
        self.assertEqual(2, len(self.calls))

    def test_cache_failures_are_tolerated(self):
        caching.init(BrokenCache())
        query = self._make_query()
        entity_id = uuid.uuid4()
        self.assertEqual(schemas.Count(count=1), query(entity_id))
        self.assertEqual(schemas.Count(count=2), query(entity_id))
        self.assertEqual(0, caching.invalidate("thing"))


if __name__ == '__main__':
    _unittest.main()
