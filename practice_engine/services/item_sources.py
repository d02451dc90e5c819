from __future__ import annotations

import string
from typing import List, Optional, Protocol, Sequence

from practice_engine.services.collection_catalog import CollectionCatalog
from practice_engine.services.item_catalog import ItemCatalog

DEFAULT_ALPHABET = string.ascii_uppercase + string.digits


class ItemSource(Protocol):
    requires_assignment: bool

    def eligible(self, collection_ids: Sequence[str]) -> List[str]: ...

    def label(self, item_id: str) -> str: ...

    def success_rate(self, item_id: str) -> Optional[float]: ...

    def record_attempt(self, item_id: str, was_correct: bool) -> None: ...


class CollectionItemSource:
    """Items reachable through assigned collections."""

    requires_assignment = True

    def __init__(self, collections: CollectionCatalog, items: ItemCatalog) -> None:
        self._collections = collections
        self._items = items

    def eligible(self, collection_ids: Sequence[str]) -> List[str]:
        return self._collections.eligible_item_ids(collection_ids)

    def label(self, item_id: str) -> str:
        item = self._items.get(item_id)
        return item.name if item else item_id

    def success_rate(self, item_id: str) -> Optional[float]:
        item = self._items.get(item_id)
        if item is None or item.performance.attempts == 0:
            return None
        return item.success_rate

    def record_attempt(self, item_id: str, was_correct: bool) -> None:
        self._items.record_attempt(item_id, was_correct)


class CharacterSource:
    """Fixed alphabet for letter search; needs no collections."""

    requires_assignment = False

    def __init__(self, alphabet: str = DEFAULT_ALPHABET) -> None:
        self.alphabet = list(dict.fromkeys(alphabet))

    def eligible(self, collection_ids: Sequence[str]) -> List[str]:
        return list(self.alphabet)

    def label(self, item_id: str) -> str:
        return item_id

    def success_rate(self, item_id: str) -> Optional[float]:
        return None

    def record_attempt(self, item_id: str, was_correct: bool) -> None:
        # characters are tracked through session tallies only
        return None
