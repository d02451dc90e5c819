from __future__ import annotations

from typing import Any, Protocol


class KeyValueStore(Protocol):
    async def save(self, key: str, value: Any) -> None: ...

    async def load(self, key: str) -> Any | None: ...

    async def delete(self, key: str) -> None: ...
