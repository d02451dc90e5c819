from __future__ import annotations

import logging
import secrets
from typing import Iterable, List, Optional

from practice_engine.errors import CorruptedStateError
from practice_engine.models.item import Difficulty, Item, Performance
from practice_engine.models.sync import SyncMeta
from practice_engine.services import clock
from practice_engine.services.persistence import Persister
from practice_engine.services.sync_ledger import SyncLedger

log = logging.getLogger(__name__)

ITEMS_KEY = "catalog:items"

DEFAULT_ITEMS = (
    ("default_1", "bed", "furniture"),
    ("default_2", "chair", "furniture"),
    ("default_3", "table", "furniture"),
    ("default_4", "cup", "kitchen"),
    ("default_5", "car", "transport"),
    ("default_6", "glasses", "clothing"),
    ("default_7", "hat", "clothing"),
    ("default_8", "lamp", "home"),
    ("default_9", "shoe", "clothing"),
    ("default_10", "silverware", "kitchen"),
)


def asset_ref(name: str) -> str:
    return f"asset:defaults/{name}.png"


class ItemCatalog:
    """Canonical list of practiceable items.

    Every mutation updates memory first and then schedules a write through
    the persister; a failed write never rolls the change back.
    """

    def __init__(
        self,
        persister: Persister,
        ledger: Optional[SyncLedger] = None,
        seed: Iterable[tuple] = DEFAULT_ITEMS,
    ) -> None:
        self._persister = persister
        self._ledger = ledger
        self._seed = tuple(seed)
        self._items: List[Item] = []

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: str) -> bool:
        return self.get(item_id) is not None

    async def load(self) -> None:
        raw = await self._persister.store.load(ITEMS_KEY)
        if raw is None:
            self._items = []
            for item_id, name, category in self._seed:
                self._items.append(self._build(name, asset_ref(name), id=item_id,
                                               category=category, is_default=True))
            log.info("item catalog seeded with %d default items", len(self._items))
            if self._items:
                self._persist()
            return
        try:
            self._items = [Item.from_dict(d) for d in raw]
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptedStateError(ITEMS_KEY, str(e)) from e
        log.debug("item catalog loaded: %d items", len(self._items))

    def to_list(self) -> list:
        return [i.to_dict() for i in self._items]

    def _persist(self) -> None:
        self._persister.schedule(ITEMS_KEY, self.to_list)

    def _touch(self, item: Item) -> None:
        item.modified_at = clock.now_ms()
        if self._ledger is not None:
            self._ledger.mark_for_sync(item)
        self._persist()

    def get(self, item_id: str) -> Optional[Item]:
        return next((i for i in self._items if i.id == item_id), None)

    def list(self, active_only: bool = False) -> List[Item]:
        if active_only:
            return [i for i in self._items if i.is_active]
        return list(self._items)

    def defaults(self) -> List[Item]:
        return [i for i in self._items if i.is_default]

    def _new_id(self) -> str:
        while True:
            candidate = secrets.token_hex(6)
            if candidate not in self:
                return candidate

    def _build(
        self,
        name: str,
        image_ref: str,
        *,
        id: Optional[str] = None,
        pronunciation: str = "",
        tags: Optional[Iterable[str]] = None,
        difficulty: Difficulty | str = Difficulty.MEDIUM,
        category: str = "",
        notes: str = "",
        is_active: bool = True,
        is_default: bool = False,
        is_local: bool = False,
    ) -> Item:
        now = clock.now_ms()
        return Item(
            id=id or self._new_id(),
            name=name,
            image_ref=image_ref,
            pronunciation=pronunciation or "",
            tags=set(tags or ()),
            difficulty=Difficulty(difficulty),
            category=category or "",
            notes=notes or "",
            is_active=is_active,
            is_default=is_default,
            created_at=now,
            modified_at=now,
            performance=Performance(),
            sync=SyncMeta.fresh(is_local=is_local),
        )

    def add(self, name: str, image_ref: str, **fields) -> Item:
        """Create an item with zeroed performance and append it."""
        item_id = fields.get("id")
        if item_id and item_id in self:
            raise ValueError(f"item {item_id!r} already exists")
        item = self._build(name, image_ref, **fields)
        self._items.append(item)
        log.debug("item added: %s", item)
        self._persist()
        return item

    def update(self, item_id: str, **fields) -> Optional[Item]:
        unknown = set(fields) - Item.EDITABLE
        if unknown:
            raise TypeError(f"not editable: {', '.join(sorted(unknown))}")
        item = self.get(item_id)
        if item is None:
            return None
        for name, value in fields.items():
            if name == "tags":
                value = set(value or ())
            elif name == "difficulty":
                value = Difficulty(value)
            setattr(item, name, value)
        self._touch(item)
        return item

    def remove(self, item_id: str) -> bool:
        # collections keep the id; round draws skip it
        item = self.get(item_id)
        if item is None:
            return False
        self._items.remove(item)
        if self._ledger is not None:
            self._ledger.forget(item)
        self._persist()
        return True

    def record_attempt(self, item_id: str, was_correct: bool) -> bool:
        item = self.get(item_id)
        if item is None:
            return False
        item.performance.record(was_correct, clock.now_ms())
        # practice is not an edit; modified_at stays with update()
        if self._ledger is not None:
            self._ledger.mark_for_sync(item)
        self._persist()
        return True
