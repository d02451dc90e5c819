from __future__ import annotations

from typing import Any

from sqlalchemy import delete

from practice_engine.models.kv_entry import KVEntry
from practice_engine.services.db import get_session


class SqlKV:
    """Key-value store over the ``kv_entries`` table."""

    def __init__(self, async_session_maker) -> None:
        self._sm = async_session_maker

    async def save(self, key: str, value: Any) -> None:
        async with get_session(self._sm) as session:
            entry = await session.get(KVEntry, key)
            if entry is None:
                session.add(KVEntry(key=key, value=value))
            else:
                entry.value = value
            await session.commit()

    async def load(self, key: str) -> Any | None:
        async with get_session(self._sm) as session:
            entry = await session.get(KVEntry, key)
            return None if entry is None else entry.value

    async def delete(self, key: str) -> None:
        async with get_session(self._sm) as session:
            await session.execute(delete(KVEntry).where(KVEntry.key == key))
            await session.commit()
