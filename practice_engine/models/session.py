from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from practice_engine.errors import PracticeError

from .collection import PracticeMode


def accuracy_of(correct: int, total: int) -> int:
    """Percentage of correct answers, rounded half up; 0 when nothing was tried."""
    if total <= 0:
        return 0
    return int(math.floor(100 * correct / total + 0.5))


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ROUND_TRANSITIONING = "round_transitioning"
    ENDED = "ended"


class PracticeVariant(str, Enum):
    LETTER_SEARCH = "letter_search"
    PICTURE_TO_WORD = "picture_to_word"
    RECOGNITION = "recognition"


@dataclass(slots=True)
class WordChoice:
    # id of the item the label was taken from
    id: str
    label: str
    is_matched: bool = False
    matched_to_id: Optional[str] = None
    was_correct_match: bool = False


@dataclass(slots=True)
class ItemTally:
    attempts: int = 0
    correct: int = 0

    def add(self, was_correct: bool) -> None:
        self.attempts += 1
        if was_correct:
            self.correct += 1


@dataclass(frozen=True, slots=True)
class SessionRecord:
    id: str
    accuracy: int
    total_attempts: int
    correct_answers: int
    timestamp: int
    date: str
    items: Dict[str, ItemTally] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "accuracy": self.accuracy,
            "totalAttempts": self.total_attempts,
            "correctAnswers": self.correct_answers,
            "timestamp": self.timestamp,
            "date": self.date,
            "items": {
                k: {"attempts": v.attempts, "correct": v.correct}
                for k, v in self.items.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionRecord":
        return cls(
            id=str(data["id"]),
            accuracy=int(data["accuracy"]),
            total_attempts=int(data["totalAttempts"]),
            correct_answers=int(data["correctAnswers"]),
            timestamp=int(data["timestamp"]),
            date=str(data["date"]),
            items={
                str(k): ItemTally(
                    attempts=int(v.get("attempts") or 0),
                    correct=int(v.get("correct") or 0),
                )
                for k, v in (data.get("items") or {}).items()
            },
        )


@dataclass(slots=True)
class PracticeSettings:
    number_of_items: int = 3
    announce_choices: bool = True
    announce_correctness: bool = True
    practice_mode: PracticeMode = PracticeMode.RANDOM

    def to_dict(self) -> dict:
        return {
            "numberOfItems": self.number_of_items,
            "announceChoices": self.announce_choices,
            "announceCorrectness": self.announce_correctness,
            "practiceMode": self.practice_mode.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PracticeSettings":
        return cls(
            number_of_items=int(data.get("numberOfItems") or 3),
            announce_choices=bool(data.get("announceChoices", True)),
            announce_correctness=bool(data.get("announceCorrectness", True)),
            practice_mode=PracticeMode(data.get("practiceMode") or "random"),
        )


@dataclass(slots=True)
class PracticeStats:
    all_time_attempts: int = 0
    all_time_correct_answers: int = 0
    total_sessions: int = 0
    history: List[SessionRecord] = field(default_factory=list)

    @property
    def all_time_accuracy(self) -> int:
        return accuracy_of(self.all_time_correct_answers, self.all_time_attempts)

    def to_dict(self) -> dict:
        return {
            "allTimeAttempts": self.all_time_attempts,
            "allTimeCorrectAnswers": self.all_time_correct_answers,
            "totalSessions": self.total_sessions,
            "sessionHistory": [r.to_dict() for r in self.history],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PracticeStats":
        return cls(
            all_time_attempts=int(data.get("allTimeAttempts") or 0),
            all_time_correct_answers=int(data.get("allTimeCorrectAnswers") or 0),
            total_sessions=int(data.get("totalSessions") or 0),
            history=[SessionRecord.from_dict(r) for r in data.get("sessionHistory") or []],
        )


@dataclass(slots=True)
class PracticeSession:
    """Transient state of one practice session; never persisted as such."""

    is_active: bool = False
    assigned_collection_ids: List[str] = field(default_factory=list)
    round_item_ids: List[str] = field(default_factory=list)
    choices: List[WordChoice] = field(default_factory=list)
    pool: List[str] = field(default_factory=list)
    drawn_since_refill: int = 0
    correct_answers: int = 0
    total_attempts: int = 0
    current_round: int = 0
    is_transitioning: bool = False
    error: Optional[PracticeError] = None
    started_at: int = 0
    tallies: Dict[str, ItemTally] = field(default_factory=dict)

    @property
    def accuracy(self) -> int:
        return accuracy_of(self.correct_answers, self.total_attempts)

    @property
    def is_round_complete(self) -> bool:
        return bool(self.choices) and all(c.is_matched for c in self.choices)

    def find_choice(self, choice_id: str) -> Optional[WordChoice]:
        return next((c for c in self.choices if c.id == choice_id), None)

    def tally(self, item_id: str, was_correct: bool) -> None:
        self.tallies.setdefault(item_id, ItemTally()).add(was_correct)

    def clear(self) -> None:
        # error survives so the caller can still read why the session stopped
        self.is_active = False
        self.assigned_collection_ids = []
        self.round_item_ids = []
        self.choices = []
        self.pool = []
        self.drawn_since_refill = 0
        self.correct_answers = 0
        self.total_attempts = 0
        self.current_round = 0
        self.is_transitioning = False
        self.started_at = 0
        self.tallies = {}
