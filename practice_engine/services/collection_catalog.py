from __future__ import annotations

import logging
import secrets
from typing import Iterable, List, Optional

from practice_engine.errors import CorruptedStateError, PracticeError
from practice_engine.models.collection import Collection, PracticeMode
from practice_engine.models.sync import SyncMeta
from practice_engine.services.item_catalog import ItemCatalog
from practice_engine.services.persistence import Persister
from practice_engine.services.sync_ledger import SyncLedger

log = logging.getLogger(__name__)

COLLECTIONS_KEY = "catalog:collections"
DEFAULT_COLLECTION_ID = "default"


class CollectionCatalog:
    """Named collections of item ids.

    Collections hold ids only. An id whose item has been removed from the
    item catalog stays in the collection and is skipped when rounds are drawn.
    """

    def __init__(
        self,
        persister: Persister,
        items: ItemCatalog,
        ledger: Optional[SyncLedger] = None,
    ) -> None:
        self._persister = persister
        self._items = items
        self._ledger = ledger
        self._collections: List[Collection] = []

    def __len__(self) -> int:
        return len(self._collections)

    async def load(self) -> None:
        raw = await self._persister.store.load(COLLECTIONS_KEY)
        if raw is None:
            self._collections = [self._default_collection()]
            log.info(
                "collection catalog bootstrapped with default collection (%d items)",
                len(self._collections[0].item_ids),
            )
            self._persist()
            return
        try:
            self._collections = [Collection.from_dict(d) for d in raw]
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptedStateError(COLLECTIONS_KEY, str(e)) from e

    def _default_collection(self) -> Collection:
        return Collection(
            id=DEFAULT_COLLECTION_ID,
            name="Default Objects",
            description="A collection of common objects for practice",
            item_ids=[i.id for i in self._items.defaults()],
            is_active=False,
            is_default=True,
            practice_mode=PracticeMode.SEQUENTIAL,
            sync=SyncMeta.fresh(),
        )

    def to_list(self) -> list:
        return [c.to_dict() for c in self._collections]

    def _persist(self) -> None:
        self._persister.schedule(COLLECTIONS_KEY, self.to_list)

    def _touch(self, collection: Collection) -> None:
        if self._ledger is not None:
            self._ledger.mark_for_sync(collection)
        self._persist()

    def get(self, collection_id: str) -> Optional[Collection]:
        return next((c for c in self._collections if c.id == collection_id), None)

    def list(self) -> List[Collection]:
        return list(self._collections)

    def active_collections(self) -> List[Collection]:
        return [c for c in self._collections if c.is_active]

    def collections_containing(self, item_id: str) -> List[Collection]:
        return [c for c in self._collections if c.has_item(item_id)]

    def add(
        self,
        name: str,
        *,
        description: str = "",
        category: str = "",
        item_ids: Iterable[str] = (),
        is_active: bool = True,
        practice_mode: PracticeMode | str = PracticeMode.SEQUENTIAL,
        is_local: bool = False,
    ) -> Collection:
        collection_id = secrets.token_hex(6)
        while self.get(collection_id) is not None:
            collection_id = secrets.token_hex(6)
        collection = Collection(
            id=collection_id,
            name=name,
            description=description,
            category=category,
            item_ids=list(dict.fromkeys(item_ids)),
            is_active=is_active,
            practice_mode=PracticeMode(practice_mode),
            sync=SyncMeta.fresh(is_local=is_local),
        )
        self._collections.append(collection)
        log.debug("collection added: %s", collection)
        self._persist()
        return collection

    def update(self, collection_id: str, **fields) -> Optional[Collection]:
        unknown = set(fields) - Collection.EDITABLE
        if unknown:
            raise TypeError(f"not editable: {', '.join(sorted(unknown))}")
        collection = self.get(collection_id)
        if collection is None:
            return None
        for name, value in fields.items():
            if name == "practice_mode":
                value = PracticeMode(value)
            setattr(collection, name, value)
        self._touch(collection)
        return collection

    def remove(self, collection_id: str) -> bool:
        collection = self.get(collection_id)
        if collection is None:
            return False
        if collection.is_default:
            log.info("refusing to remove default collection %s", collection_id)
            return False
        self._collections.remove(collection)
        if self._ledger is not None:
            self._ledger.forget(collection)
        self._persist()
        return True

    def toggle_active(self, collection_id: str) -> Optional[bool]:
        collection = self.get(collection_id)
        if collection is None:
            return None
        active = collection.toggle_active()
        self._touch(collection)
        return active

    def add_item_to_collection(self, collection_id: str, item_id: str) -> bool:
        collection = self.get(collection_id)
        if collection is None or not collection.add_item(item_id):
            return False
        self._touch(collection)
        return True

    def remove_item_from_collection(self, collection_id: str, item_id: str) -> bool:
        collection = self.get(collection_id)
        if collection is None or not collection.remove_item(item_id):
            return False
        self._touch(collection)
        return True

    def reorder_items(self, collection_id: str, ordered_item_ids: Iterable[str]) -> bool:
        collection = self.get(collection_id)
        if collection is None:
            return False
        collection.reorder(ordered_item_ids)
        self._touch(collection)
        return True

    def set_temporary_code(self, collection_id: str, code: str) -> bool:
        collection = self.get(collection_id)
        if collection is None:
            return False
        collection.temporary_code = code
        self._persist()
        return True

    def clear_temporary_code(self, collection_id: str) -> bool:
        collection = self.get(collection_id)
        if collection is None:
            return False
        collection.temporary_code = None
        self._persist()
        return True

    def eligible_item_ids(self, collection_ids: Iterable[str]) -> List[str]:
        """Union of live, active item ids across the given active collections.

        Order follows the collections and their stored item order; duplicates
        are dropped. Unknown collections and dangling item ids are skipped.
        """
        out: dict[str, None] = {}
        for cid in collection_ids:
            collection = self.get(cid)
            if collection is None or not collection.is_active:
                continue
            for item_id in collection.item_ids:
                item = self._items.get(item_id)
                if item is None:
                    log.debug(
                        "%s: %s in %s",
                        PracticeError.DANGLING_REFERENCE.value,
                        item_id,
                        cid,
                    )
                    continue
                if item.is_active:
                    out[item_id] = None
        return list(out)
