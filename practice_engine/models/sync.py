from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from practice_engine.services import clock


class SyncStatus(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    CONFLICT = "conflict"
    LOCAL = "local"


@dataclass(slots=True)
class SyncMeta:
    version: int = 1
    status: SyncStatus = SyncStatus.SYNCED
    last_modified_at: int = 0
    is_local: bool = False

    @classmethod
    def fresh(cls, is_local: bool = False) -> "SyncMeta":
        return cls(
            version=1,
            status=SyncStatus.LOCAL if is_local else SyncStatus.SYNCED,
            last_modified_at=clock.now_ms(),
            is_local=is_local,
        )

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "syncStatus": self.status.value,
            "lastModified": self.last_modified_at,
            "isLocal": self.is_local,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "SyncMeta":
        data = data or {}
        is_local = bool(data.get("isLocal", False))
        status = data.get("syncStatus") or ("local" if is_local else "synced")
        return cls(
            version=int(data.get("version", 1)),
            status=SyncStatus(status),
            last_modified_at=int(data.get("lastModified") or 0),
            is_local=is_local,
        )
