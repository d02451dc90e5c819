from dataclasses import dataclass
from typing import AsyncGenerator, Dict

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker as _async_sessionmaker
from sqlalchemy.ext.asyncio import create_async_engine

from practice_engine.models import Base
from practice_engine.services.collection_catalog import CollectionCatalog
from practice_engine.services.item_catalog import ItemCatalog
from practice_engine.services.persistence import Persister
from practice_engine.services.redis_kv import RedisKV
from practice_engine.services.sync_ledger import SyncLedger


@dataclass
class FakeRedis:
    data: Dict[str, bytes]

    def __init__(self) -> None:
        self.data = {}
        self.closed = False

    async def set(self, key: str, value: bytes, ex: int | None = None) -> None:
        self.data[key] = value

    async def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)

    async def aclose(self) -> None:
        self.closed = True


class FlakyStore:
    """In-memory store whose writes fail while ``failing`` is set."""

    def __init__(self) -> None:
        self.data: dict = {}
        self.failing = False
        self.saves = 0

    async def save(self, key, value):
        self.saves += 1
        if self.failing:
            raise ConnectionError("store unavailable")
        self.data[key] = value

    async def load(self, key):
        return self.data.get(key)

    async def delete(self, key):
        self.data.pop(key, None)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def redis_kv(fake_redis: FakeRedis) -> RedisKV:
    return RedisKV(client=fake_redis, prefix="test")


@pytest.fixture
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def persister(redis_kv: RedisKV) -> Persister:
    return Persister(redis_kv)


@pytest.fixture
def ledger(persister: Persister) -> SyncLedger:
    return SyncLedger(persister)


@pytest.fixture
def items(persister: Persister, ledger: SyncLedger) -> ItemCatalog:
    return ItemCatalog(persister, ledger, seed=())


@pytest.fixture
def collections(
    persister: Persister, items: ItemCatalog, ledger: SyncLedger
) -> CollectionCatalog:
    return CollectionCatalog(persister, items, ledger)


@pytest.fixture
def make_items(items: ItemCatalog):
    def _make(*names: str) -> list[str]:
        return [items.add(name, f"asset:{name}.png").id for name in names]

    return _make


@pytest.fixture
async def async_session_maker() -> AsyncGenerator[_async_sessionmaker, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        future=True,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield _async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()
