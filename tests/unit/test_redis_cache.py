# tests/unit/test_redis_cache.py
import asyncio

from puphax.infra.cache.redis_cache import RedisCache


class FakeRedis:
    """Just enough of redis.asyncio.Redis for RedisCache."""
    def __init__(self):
        self.store, self.ttls = {}, {}

    async def get(self, k):
        return self.store.get(k)

    async def set(self, k, v, ex=None):
        self.store[k] = v
        self.ttls[k] = ex

    async def delete(self, *keys):
        return sum(1 for k in keys if self.store.pop(k, None) is not None)

    async def ping(self):
        return True


async def _run(c: RedisCache, r: FakeRedis):
    assert await c.get("t:x") is None
    await c.set("t:x", {"name": "Magyarország", "n": 1}, ttl=60)
    assert r.ttls["t:x"] == 60
    assert "Magyarország" in r.store["t:x"]
    assert (await c.get("t:x"))["n"] == 1
    assert await c.delete("t:x") == 1
    assert await c.get("t:x") is None
    assert await c.ping() is True


def test_cache_ops():
    r = FakeRedis()
    asyncio.run(_run(RedisCache(client=r), r))
