"""
CRUD core unit tests
"""

import unittest
from .test_api import APITests, AuthAPITests, ProductionAPITests
from .test_caching import CacheBackendTests, CacheDecoratorTests, CacheKeyTests, MemoryCacheTests
from .test_cli import StandaloneCLITests
from .test_helpers import AuthTests, ErrorHandlerTests, ETagTests, RateLimitTests, VersioningTests as APIVersioningTests
from .test_persistence import DatabaseUsabilityTests, VersioningTests as RowVersioningTests


TEST_CLASSES = [
    APITests,
    APIVersioningTests,
    AuthAPITests,
    AuthTests,
    CacheBackendTests,
    CacheDecoratorTests,
    CacheKeyTests,
    DatabaseUsabilityTests,
    ErrorHandlerTests,
    ETagTests,
    MemoryCacheTests,
    ProductionAPITests,
    RateLimitTests,
    RowVersioningTests,
    StandaloneCLITests,
]


def get_suite() -> unittest.TestSuite:
    suite = unittest.TestSuite()
    for cls in TEST_CLASSES:
        for fixture in filter(lambda f: f.startswith("test_"), dir(cls)):
            suite.addTest(cls(fixture))
    return suite
