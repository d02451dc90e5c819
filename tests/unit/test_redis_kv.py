import pytest

from practice_engine.services.redis_kv import RedisKV


@pytest.mark.asyncio
async def test_key_building(redis_kv: RedisKV):
    k = redis_kv._key("catalog", "items")
    assert k == "test:catalog:items"


@pytest.mark.asyncio
async def test_save_load_delete(redis_kv: RedisKV, fake_redis):
    payload = [{"id": "a", "name": "кот"}]

    await redis_kv.save("catalog:items", payload)
    assert "test:catalog:items" in fake_redis.data
    assert await redis_kv.load("catalog:items") == payload

    await redis_kv.delete("catalog:items")
    assert await redis_kv.load("catalog:items") is None


@pytest.mark.asyncio
async def test_load_missing_returns_none(redis_kv: RedisKV):
    assert await redis_kv.load("nope") is None
