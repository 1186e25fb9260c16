"""Unit tests for the Store protocol.

Tests in this module verify that the Store protocol is runtime checkable and
that both bundled backends conform to it.
"""

import fakeredis

from idempotency_key.storage import MemoryStore, RedisStore, Store


class TestStoreProtocol:
    """Test suite for the Store protocol definition."""

    def test_store_has_required_methods(self):
        assert hasattr(Store, "get")
        assert hasattr(Store, "set")
        assert hasattr(Store, "unset")

    def test_conforming_class(self):
        """A class with the three operations and expires_in conforms."""

        class DictStore:
            expires_in = 10

            async def get(self, key):
                return None

            async def set(self, key, value, ttl_seconds=None):
                return value

            async def unset(self, key):
                return None

        assert isinstance(DictStore(), Store)

    def test_non_conforming_class(self):
        """A class missing unset does not conform."""

        class ReadOnlyStore:
            expires_in = 10

            async def get(self, key):
                return None

            async def set(self, key, value, ttl_seconds=None):
                return value

        assert not isinstance(ReadOnlyStore(), Store)

    def test_memory_store_conforms(self):
        assert isinstance(MemoryStore(), Store)

    def test_redis_store_conforms(self):
        assert isinstance(RedisStore(fakeredis.FakeAsyncRedis()), Store)
