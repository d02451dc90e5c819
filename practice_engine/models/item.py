from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional

from .sync import SyncMeta


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(slots=True)
class Performance:
    attempts: int = 0
    correct_attempts: int = 0
    last_practiced_at: Optional[int] = None

    @property
    def success_rate(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.correct_attempts / self.attempts

    def record(self, was_correct: bool, at: int) -> None:
        self.attempts += 1
        if was_correct:
            self.correct_attempts += 1
        self.last_practiced_at = at

    def to_dict(self) -> dict:
        return {
            "attempts": self.attempts,
            "correctAttempts": self.correct_attempts,
            "lastPracticedAt": self.last_practiced_at,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "Performance":
        data = data or {}
        last = data.get("lastPracticedAt")
        return cls(
            attempts=int(data.get("attempts") or 0),
            correct_attempts=int(data.get("correctAttempts") or 0),
            last_practiced_at=int(last) if last is not None else None,
        )


@dataclass(slots=True)
class Item:
    KIND: ClassVar[str] = "items"
    EDITABLE: ClassVar[frozenset] = frozenset(
        {
            "name",
            "image_ref",
            "pronunciation",
            "tags",
            "difficulty",
            "category",
            "notes",
            "is_active",
        }
    )

    id: str
    name: str
    image_ref: str
    pronunciation: str = ""
    tags: set[str] = field(default_factory=set)
    difficulty: Difficulty = Difficulty.MEDIUM
    category: str = ""
    notes: str = ""
    is_active: bool = True
    is_default: bool = False
    created_at: int = 0
    modified_at: int = 0
    performance: Performance = field(default_factory=Performance)
    sync: SyncMeta = field(default_factory=SyncMeta)

    @property
    def success_rate(self) -> float:
        return self.performance.success_rate

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "uri": self.image_ref,
            "pronunciation": self.pronunciation,
            "tags": sorted(self.tags),
            "difficulty": self.difficulty.value,
            "category": self.category,
            "notes": self.notes,
            "isActive": self.is_active,
            "isDefault": self.is_default,
            "createdAt": self.created_at,
            "modifiedAt": self.modified_at,
            "performance": self.performance.to_dict(),
            "sync": self.sync.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Item":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            image_ref=str(data["uri"]),
            pronunciation=str(data.get("pronunciation") or ""),
            tags={str(t) for t in data.get("tags") or []},
            difficulty=Difficulty(data.get("difficulty") or "medium"),
            category=str(data.get("category") or ""),
            notes=str(data.get("notes") or ""),
            is_active=bool(data.get("isActive", True)),
            is_default=bool(data.get("isDefault", False)),
            created_at=int(data.get("createdAt") or 0),
            modified_at=int(data.get("modifiedAt") or 0),
            performance=Performance.from_dict(data.get("performance")),
            sync=SyncMeta.from_dict(data.get("sync")),
        )
