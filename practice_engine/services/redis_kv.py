from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from redis.asyncio import Redis


@dataclass(slots=True)
class RedisKV:
    client: Redis
    prefix: str

    def _key(self, *parts: Any) -> str:
        return ":".join([self.prefix, *map(lambda x: str(x), parts)])

    async def set_json(self, key: str, value: Any, ex: int | None = None) -> None:
        await self.client.set(
            key, json.dumps(value, ensure_ascii=False).encode("utf-8"), ex=ex
        )

    async def get_json(self, key: str) -> Any | None:
        raw = await self.client.get(key)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    async def save(self, key: str, value: Any) -> None:
        await self.set_json(self._key(key), value)

    async def load(self, key: str) -> Any | None:
        return await self.get_json(self._key(key))

    async def delete(self, key: str) -> None:
        await self.client.delete(self._key(key))
