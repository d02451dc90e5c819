from __future__ import annotations

from enum import Enum


class PracticeError(str, Enum):
    NO_COLLECTIONS_ASSIGNED = "no_collections_assigned"
    INSUFFICIENT_POOL = "insufficient_pool"
    ALREADY_MATCHED = "already_matched"
    PERSISTENCE_FAILURE = "persistence_failure"
    DANGLING_REFERENCE = "dangling_reference"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    PracticeError.NO_COLLECTIONS_ASSIGNED: "No collections assigned for practice. Assign a collection and try again.",
    PracticeError.INSUFFICIENT_POOL: "Not enough items available for practice. Add more items and try again.",
    PracticeError.ALREADY_MATCHED: "This choice is already matched.",
    PracticeError.PERSISTENCE_FAILURE: "Progress could not be saved yet. It will be retried.",
    PracticeError.DANGLING_REFERENCE: "A collection refers to an item that no longer exists.",
}


class CorruptedStateError(Exception):
    """Persisted payload under ``key`` could not be decoded."""

    def __init__(self, key: str, reason: str = "") -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"corrupted state under {key!r}: {reason}" if reason else key)
