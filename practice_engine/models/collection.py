from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Iterable, List, Optional

from .sync import SyncMeta


class PracticeMode(str, Enum):
    SEQUENTIAL = "sequential"
    RANDOM = "random"
    ADAPTIVE = "adaptive"


@dataclass(slots=True)
class Collection:
    KIND: ClassVar[str] = "collections"
    EDITABLE: ClassVar[frozenset] = frozenset(
        {"name", "description", "category", "is_active", "practice_mode"}
    )

    id: str
    name: str
    description: str = ""
    category: str = ""
    item_ids: List[str] = field(default_factory=list)
    is_active: bool = True
    is_default: bool = False
    practice_mode: PracticeMode = PracticeMode.SEQUENTIAL
    temporary_code: Optional[str] = None
    sync: SyncMeta = field(default_factory=SyncMeta)

    def __repr__(self) -> str:
        return f"<Collection id={self.id} name={self.name!r} items={len(self.item_ids)}>"

    def has_item(self, item_id: str) -> bool:
        return item_id in self.item_ids

    def add_item(self, item_id: str) -> bool:
        if item_id in self.item_ids:
            return False
        self.item_ids.append(item_id)
        return True

    def remove_item(self, item_id: str) -> bool:
        if item_id not in self.item_ids:
            return False
        self.item_ids.remove(item_id)
        return True

    def reorder(self, item_ids: Iterable[str]) -> None:
        # an id may appear at most once
        self.item_ids = list(dict.fromkeys(item_ids))

    def toggle_active(self) -> bool:
        self.is_active = not self.is_active
        return self.is_active

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "objectIds": list(self.item_ids),
            "isActive": self.is_active,
            "isDefault": self.is_default,
            "practiceMode": self.practice_mode.value,
            "temporaryCode": self.temporary_code,
            "sync": self.sync.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Collection":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=str(data.get("description") or ""),
            category=str(data.get("category") or ""),
            item_ids=list(dict.fromkeys(str(x) for x in data.get("objectIds") or [])),
            is_active=bool(data.get("isActive", True)),
            is_default=bool(data.get("isDefault", False)),
            practice_mode=PracticeMode(data.get("practiceMode") or "sequential"),
            temporary_code=data.get("temporaryCode"),
            sync=SyncMeta.from_dict(data.get("sync")),
        )
