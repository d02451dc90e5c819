from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

from practice_engine.errors import CorruptedStateError
from practice_engine.models.sync import SyncMeta, SyncStatus
from practice_engine.services import clock
from practice_engine.services.persistence import Persister

log = logging.getLogger(__name__)

SYNC_META_KEY = "sync:meta"
ENTITY_KINDS = ("items", "collections")


class Synced(Protocol):
    KIND: str
    id: str
    sync: SyncMeta


def _empty_queues() -> Dict[str, List[str]]:
    return {kind: [] for kind in ENTITY_KINDS}


class SyncLedger:
    """Version and sync-status bookkeeping for catalog entities.

    The ledger only records state. Uploading, downloading and resolving
    conflicts belong to an external sync collaborator.
    """

    def __init__(self, persister: Persister) -> None:
        self._persister = persister
        self._pending = _empty_queues()
        self._conflicts = _empty_queues()
        self.last_sync_time = 0
        self.server_version = 0

    async def load(self) -> None:
        raw = await self._persister.store.load(SYNC_META_KEY)
        if not raw:
            return
        try:
            pending = raw.get("pendingUploads") or {}
            conflicts = raw.get("conflicts") or {}
            self._pending = {k: [str(x) for x in pending.get(k, [])] for k in ENTITY_KINDS}
            self._conflicts = {k: [str(x) for x in conflicts.get(k, [])] for k in ENTITY_KINDS}
            self.last_sync_time = int(raw.get("lastSyncTime") or 0)
            self.server_version = int(raw.get("serverVersion") or 0)
        except (AttributeError, TypeError, ValueError) as e:
            raise CorruptedStateError(SYNC_META_KEY, str(e)) from e

    def to_dict(self) -> dict:
        return {
            "lastSyncTime": self.last_sync_time,
            "pendingUploads": self.get_pending_uploads(),
            "conflicts": self.get_conflicts(),
            "serverVersion": self.server_version,
        }

    def _persist(self) -> None:
        self._persister.schedule(SYNC_META_KEY, self.to_dict)

    def mark_for_sync(self, entity: Synced) -> bool:
        meta = entity.sync
        if meta.is_local:
            return False
        meta.status = SyncStatus.PENDING
        meta.version += 1
        meta.last_modified_at = clock.now_ms()
        queue = self._pending[entity.KIND]
        if entity.id not in queue:
            queue.append(entity.id)
        self._persist()
        return True

    def mark_synced(self, entity: Synced) -> bool:
        meta = entity.sync
        if meta.is_local:
            return False
        meta.status = SyncStatus.SYNCED
        self._discard(self._pending, entity.KIND, entity.id)
        self._persist()
        return True

    def mark_conflict(self, entity: Synced) -> bool:
        meta = entity.sync
        if meta.is_local:
            return False
        meta.status = SyncStatus.CONFLICT
        # not uploadable until the collaborator resolves it
        self._discard(self._pending, entity.KIND, entity.id)
        queue = self._conflicts[entity.KIND]
        if entity.id not in queue:
            queue.append(entity.id)
        self._persist()
        return True

    def resolve_conflict(self, kind: str, entity_id: str) -> bool:
        removed = self._discard(self._conflicts, kind, entity_id)
        if removed:
            self._persist()
        return removed

    def forget(self, entity: Synced) -> None:
        """Drop a removed entity from every queue."""
        a = self._discard(self._pending, entity.KIND, entity.id)
        b = self._discard(self._conflicts, entity.KIND, entity.id)
        if a or b:
            self._persist()

    def record_sync(self, server_version: Optional[int] = None) -> None:
        self.last_sync_time = clock.now_ms()
        if server_version is not None:
            self.server_version = int(server_version)
        self._persist()

    def get_pending_uploads(self) -> Dict[str, List[str]]:
        return {k: list(v) for k, v in self._pending.items()}

    def get_conflicts(self) -> Dict[str, List[str]]:
        return {k: list(v) for k, v in self._conflicts.items()}

    @staticmethod
    def _discard(queues: Dict[str, List[str]], kind: str, entity_id: str) -> bool:
        queue = queues.get(kind)
        if queue is None or entity_id not in queue:
            return False
        queue.remove(entity_id)
        return True
