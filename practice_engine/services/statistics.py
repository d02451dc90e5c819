from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional

from practice_engine.errors import CorruptedStateError
from practice_engine.models.session import (
    ItemTally,
    PracticeSession,
    PracticeStats,
    SessionRecord,
    accuracy_of,
)
from practice_engine.services import clock
from practice_engine.services.collection_catalog import CollectionCatalog
from practice_engine.services.item_catalog import ItemCatalog
from practice_engine.services.persistence import Persister

log = logging.getLogger(__name__)


def stats_key(variant: str) -> str:
    return f"practice:{variant}:stats"


def _mean(values: List[int]) -> int:
    return int(math.floor(sum(values) / len(values) + 0.5))


@dataclass(frozen=True, slots=True)
class DailyStat:
    date: date
    accuracy: int
    sessions: int

    @property
    def label(self) -> str:
        return f"{self.date:%b} {self.date.day}"


@dataclass(frozen=True, slots=True)
class RangeStats:
    average_accuracy: int
    session_count: int
    distinct_items: int


@dataclass(frozen=True, slots=True)
class ItemStats:
    item_id: str
    average_accuracy: int
    attempts: int
    correct: int
    sessions: int
    last_practiced_at: Optional[int]


@dataclass(frozen=True, slots=True)
class CollectionStats:
    collection_id: str
    attempts: int
    correct_attempts: int
    success_rate: int
    practiced_items: int
    total_items: int
    last_practiced_at: Optional[int]


class StatisticsAggregator:
    """Session history and lifetime counters of one practice variant."""

    def __init__(self, persister: Persister, variant: str) -> None:
        self._persister = persister
        self.key = stats_key(variant)
        self.stats = PracticeStats()

    async def load(self) -> None:
        raw = await self._persister.store.load(self.key)
        if raw is None:
            return
        try:
            self.stats = PracticeStats.from_dict(raw)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CorruptedStateError(self.key, str(e)) from e

    def _persist(self) -> None:
        self._persister.schedule(self.key, self.stats.to_dict)

    @property
    def history(self) -> List[SessionRecord]:
        return list(self.stats.history)

    @property
    def total_sessions(self) -> int:
        return self.stats.total_sessions

    @property
    def all_time_accuracy(self) -> int:
        return self.stats.all_time_accuracy

    @staticmethod
    def accuracy(record: SessionRecord | PracticeSession) -> int:
        return accuracy_of(record.correct_answers, record.total_attempts)

    def note_session_started(self) -> None:
        self.stats.total_sessions += 1
        self._persist()

    def record_session(self, session: PracticeSession) -> SessionRecord:
        """Append a finished session to history and fold it into lifetime totals."""
        ts = clock.now_ms()
        record_id = str(ts)
        if any(r.id == record_id for r in self.stats.history):
            record_id = f"{ts}-{len(self.stats.history)}"
        record = SessionRecord(
            id=record_id,
            accuracy=self.accuracy(session),
            total_attempts=session.total_attempts,
            correct_answers=session.correct_answers,
            timestamp=ts,
            date=clock.local_date(ts).isoformat(),
            items={
                k: ItemTally(attempts=v.attempts, correct=v.correct)
                for k, v in session.tallies.items()
            },
        )
        self.stats.history.append(record)
        self.stats.all_time_attempts += session.total_attempts
        self.stats.all_time_correct_answers += session.correct_answers
        log.info(
            "session %s recorded: %d/%d (%d%%)",
            record.id,
            record.correct_answers,
            record.total_attempts,
            record.accuracy,
        )
        self._persist()
        return record

    def daily_stats(self, days: int) -> List[DailyStat]:
        """One entry per local calendar day, oldest first, today last."""
        buckets: Dict[date, List[int]] = {}
        for record in self.stats.history:
            buckets.setdefault(clock.local_date(record.timestamp), []).append(record.accuracy)

        today = clock.today()
        out: List[DailyStat] = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            values = buckets.get(day)
            if values:
                out.append(DailyStat(date=day, accuracy=_mean(values), sessions=len(values)))
            else:
                out.append(DailyStat(date=day, accuracy=0, sessions=0))
        return out

    def range_stats(self, days: int) -> Optional[RangeStats]:
        since = clock.now_ms() - days * clock.DAY_MS
        records = [r for r in self.stats.history if r.timestamp >= since]
        if not records:
            return None
        touched = set()
        for r in records:
            touched.update(r.items)
        return RangeStats(
            average_accuracy=_mean([r.accuracy for r in records]),
            session_count=len(records),
            distinct_items=len(touched),
        )

    def practiced_items(self) -> List[str]:
        seen: dict[str, None] = {}
        for r in self.stats.history:
            for item_id in r.items:
                seen[item_id] = None
        return sorted(seen)

    def per_item_stats(self, item_id: str) -> Optional[ItemStats]:
        attempts = correct = sessions = 0
        last: Optional[int] = None
        for r in self.stats.history:
            tally = r.items.get(item_id)
            if tally is None or tally.attempts == 0:
                continue
            attempts += tally.attempts
            correct += tally.correct
            sessions += 1
            last = r.timestamp if last is None else max(last, r.timestamp)
        if sessions == 0:
            return None
        return ItemStats(
            item_id=item_id,
            average_accuracy=accuracy_of(correct, attempts),
            attempts=attempts,
            correct=correct,
            sessions=sessions,
            last_practiced_at=last,
        )


def per_collection_stats(
    collections: CollectionCatalog,
    items: ItemCatalog,
    collection_id: str,
) -> Optional[CollectionStats]:
    """Performance counters summed over a collection's live items."""
    collection = collections.get(collection_id)
    if collection is None:
        return None
    live = [i for i in (items.get(x) for x in collection.item_ids) if i is not None]
    attempts = sum(i.performance.attempts for i in live)
    correct = sum(i.performance.correct_attempts for i in live)
    stamps = [i.performance.last_practiced_at for i in live if i.performance.last_practiced_at]
    return CollectionStats(
        collection_id=collection_id,
        attempts=attempts,
        correct_attempts=correct,
        success_rate=accuracy_of(correct, attempts),
        practiced_items=sum(1 for i in live if i.performance.attempts > 0),
        total_items=len(live),
        last_practiced_at=max(stamps) if stamps else None,
    )
