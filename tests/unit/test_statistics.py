from datetime import datetime, timedelta

import pytest

from practice_engine.models.session import ItemTally, PracticeSession, SessionRecord
from practice_engine.services import clock
from practice_engine.services.statistics import (
    StatisticsAggregator,
    per_collection_stats,
)


def _ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def _session(correct: int, total: int, **tallies) -> PracticeSession:
    s = PracticeSession(correct_answers=correct, total_attempts=total)
    for item_id, (attempts, ok) in tallies.items():
        s.tallies[item_id] = ItemTally(attempts=attempts, correct=ok)
    return s


@pytest.fixture
def stats(persister) -> StatisticsAggregator:
    return StatisticsAggregator(persister, "recognition")


@pytest.mark.parametrize(
    "correct,total,expected",
    [(0, 0, 0), (3, 3, 100), (2, 3, 67), (1, 3, 33), (1, 8, 13), (7, 8, 88)],
)
def test_accuracy(correct, total, expected):
    record = SessionRecord(
        id="x",
        accuracy=0,
        total_attempts=total,
        correct_answers=correct,
        timestamp=0,
        date="",
    )
    assert StatisticsAggregator.accuracy(record) == expected


def test_record_session_folds_lifetime_counters(stats, monkeypatch):
    monkeypatch.setattr(clock, "now_ms", lambda: _ms(datetime(2024, 3, 5, 9, 30)))
    stats.note_session_started()
    record = stats.record_session(_session(2, 3, a=(2, 1), b=(1, 1)))

    assert record.accuracy == 67
    assert record.date == "2024-03-05"
    assert record.items["a"].attempts == 2
    assert stats.stats.all_time_attempts == 3
    assert stats.stats.all_time_correct_answers == 2
    assert stats.all_time_accuracy == 67
    assert stats.total_sessions == 1

    again = stats.record_session(_session(0, 0))
    assert again.id != record.id
    assert again.accuracy == 0


@pytest.mark.asyncio
async def test_accuracy_survives_persistence(stats, persister):
    stats.record_session(_session(5, 7, a=(7, 5)))
    await persister.flush()

    reloaded = StatisticsAggregator(persister, "recognition")
    await reloaded.load()
    record = reloaded.history[0]
    assert StatisticsAggregator.accuracy(record) == record.accuracy == 71
    assert reloaded.stats.all_time_attempts == 7


def test_daily_stats_zero_fills_and_orders_oldest_first(stats, monkeypatch):
    today = datetime(2024, 6, 10, 18, 0)
    plan = [
        (today - timedelta(days=5), [80, 100, 60]),
        (today - timedelta(days=2), [40, 100, 90, 70]),
        (today.replace(hour=8), [50, 100, 80]),
    ]
    for day, accuracies in plan:
        for n, acc in enumerate(accuracies):
            ts = _ms(day.replace(hour=8 + n))
            monkeypatch.setattr(clock, "now_ms", lambda ts=ts: ts)
            stats.record_session(_session(acc, 100))
    assert len(stats.history) == 10

    monkeypatch.setattr(clock, "now_ms", lambda: _ms(today))
    daily = stats.daily_stats(7)

    assert len(daily) == 7
    assert [d.date for d in daily] == [
        (today - timedelta(days=n)).date() for n in range(6, -1, -1)
    ]
    assert [d.sessions for d in daily] == [0, 3, 0, 0, 4, 0, 3]
    assert [d.accuracy for d in daily] == [0, 80, 0, 0, 75, 0, 77]
    assert daily[-1].label == "Jun 10"


def test_daily_stats_uses_local_midnight(stats, monkeypatch):
    late = datetime(2024, 6, 9, 23, 59)
    early = datetime(2024, 6, 10, 0, 1)
    for dt, acc in ((late, 100), (early, 50)):
        monkeypatch.setattr(clock, "now_ms", lambda dt=dt: _ms(dt))
        stats.record_session(_session(acc, 100))

    monkeypatch.setattr(clock, "now_ms", lambda: _ms(datetime(2024, 6, 10, 12)))
    daily = stats.daily_stats(2)
    assert [(d.accuracy, d.sessions) for d in daily] == [(100, 1), (50, 1)]


def test_range_stats(stats, monkeypatch):
    now = datetime(2024, 6, 10, 12)
    for days_ago, acc, tallies in (
        (10, 20, {"A": (1, 0)}),
        (3, 80, {"A": (2, 2), "B": (1, 1)}),
        (1, 100, {"C": (1, 1)}),
    ):
        ts = _ms(now - timedelta(days=days_ago))
        monkeypatch.setattr(clock, "now_ms", lambda ts=ts: ts)
        stats.record_session(_session(acc, 100, **tallies))

    monkeypatch.setattr(clock, "now_ms", lambda: _ms(now))
    result = stats.range_stats(7)
    assert result.average_accuracy == 90
    assert result.session_count == 2
    assert result.distinct_items == 3

    assert stats.range_stats(0) is None


def test_per_item_stats(stats, monkeypatch):
    for ts, tallies in ((1_000, {"A": (2, 1)}), (5_000, {"A": (2, 2), "B": (1, 0)})):
        monkeypatch.setattr(clock, "now_ms", lambda ts=ts: ts)
        stats.record_session(_session(0, 0, **tallies))

    a = stats.per_item_stats("A")
    assert a.average_accuracy == 75
    assert a.sessions == 2
    assert a.last_practiced_at == 5_000
    assert stats.per_item_stats("B").average_accuracy == 0
    assert stats.per_item_stats("Z") is None
    assert stats.practiced_items() == ["A", "B"]


def test_per_collection_stats(collections, items, make_items, monkeypatch):
    a, b, c = make_items("a", "b", "c")
    col = collections.add("C", item_ids=[a, b, c, "ghost"])

    monkeypatch.setattr(clock, "now_ms", lambda: 700)
    items.record_attempt(a, True)
    items.record_attempt(a, False)
    items.record_attempt(b, True)

    result = per_collection_stats(collections, items, col.id)
    assert result.attempts == 3
    assert result.correct_attempts == 2
    assert result.success_rate == 67
    assert result.practiced_items == 2
    assert result.total_items == 3
    assert result.last_practiced_at == 700
    assert per_collection_stats(collections, items, "ghost") is None
