from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Set

from practice_engine.errors import PracticeError
from practice_engine.services.storage import KeyValueStore

log = logging.getLogger(__name__)

Snapshot = Callable[[], Any]


class Persister:
    """Fire-and-forget writer in front of a :class:`KeyValueStore`.

    ``schedule`` returns immediately. The value is taken from the snapshot
    callable when the write actually runs, so a burst of mutations on one key
    collapses into the latest state. A key whose write fails stays dirty and
    is written again on the next ``schedule`` call or on ``flush``.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self._snapshots: Dict[str, Snapshot] = {}
        self._dirty: Set[str] = set()
        self._queued: Set[str] = set()
        self._inflight: Dict[str, asyncio.Task] = {}

    @property
    def dirty_keys(self) -> Set[str]:
        return set(self._dirty)

    def schedule(self, key: str, snapshot: Snapshot) -> None:
        self._snapshots[key] = snapshot
        self._dirty.add(key)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.debug("no running loop, %s stays dirty until flush", key)
            return

        keys = list(self._dirty)
        self._dirty.clear()
        for k in keys:
            if k in self._inflight:
                self._queued.add(k)
                continue
            self._inflight[k] = loop.create_task(self._write(k))

    async def _write(self, key: str) -> None:
        try:
            while True:
                self._queued.discard(key)
                try:
                    await self.store.save(key, self._snapshots[key]())
                except Exception as e:
                    log.warning("%s for %s: %s", PracticeError.PERSISTENCE_FAILURE.value, key, e)
                    self._dirty.add(key)
                    return
                if key not in self._queued:
                    return
        finally:
            self._inflight.pop(key, None)

    async def flush(self) -> bool:
        """Wait for in-flight writes and retry dirty keys once.

        Returns True when nothing is left dirty.
        """
        while self._inflight:
            await asyncio.gather(*list(self._inflight.values()), return_exceptions=True)

        for key in list(self._dirty):
            self._dirty.discard(key)
            try:
                await self.store.save(key, self._snapshots[key]())
            except Exception as e:
                log.warning("%s for %s: %s", PracticeError.PERSISTENCE_FAILURE.value, key, e)
                self._dirty.add(key)
        return not self._dirty
