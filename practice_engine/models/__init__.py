from .base import Base
from .collection import Collection, PracticeMode
from .item import Difficulty, Item, Performance
from .kv_entry import KVEntry
from .session import (
    PracticeSession,
    PracticeSettings,
    PracticeStats,
    PracticeVariant,
    SessionRecord,
    SessionState,
    WordChoice,
)
from .sync import SyncMeta, SyncStatus

__all__ = [
    "Base",
    "KVEntry",
    "Item",
    "Performance",
    "Difficulty",
    "Collection",
    "PracticeMode",
    "SyncMeta",
    "SyncStatus",
    "PracticeSession",
    "PracticeSettings",
    "PracticeStats",
    "PracticeVariant",
    "SessionRecord",
    "SessionState",
    "WordChoice",
]
