import asyncio

import pytest

from practice_engine.services.persistence import Persister


@pytest.mark.asyncio
async def test_schedule_returns_before_write_and_writes_latest(flaky_store):
    p = Persister(flaky_store)
    state = {"n": 1}

    p.schedule("k", lambda: dict(state))
    assert "k" not in flaky_store.data

    state["n"] = 2
    await p.flush()
    assert flaky_store.data["k"] == {"n": 2}


@pytest.mark.asyncio
async def test_burst_on_one_key_is_coalesced(flaky_store):
    p = Persister(flaky_store)
    state = {"n": 0}
    for i in range(10):
        state["n"] = i
        p.schedule("k", lambda: dict(state))
    await p.flush()
    assert flaky_store.data["k"] == {"n": 9}
    assert flaky_store.saves <= 2


@pytest.mark.asyncio
async def test_failed_write_is_logged_and_retried_on_next_mutation(flaky_store, caplog):
    p = Persister(flaky_store)
    flaky_store.failing = True

    p.schedule("a", lambda: {"a": 1})
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert "a" in p.dirty_keys
    assert "persistence_failure" in caplog.text

    flaky_store.failing = False
    p.schedule("b", lambda: {"b": 1})
    await p.flush()
    assert flaky_store.data == {"a": {"a": 1}, "b": {"b": 1}}
    assert p.dirty_keys == set()


@pytest.mark.asyncio
async def test_flush_reports_remaining_dirty_keys(flaky_store):
    p = Persister(flaky_store)
    flaky_store.failing = True
    p.schedule("a", lambda: 1)
    assert await p.flush() is False
    assert p.dirty_keys == {"a"}


def test_schedule_without_loop_keeps_key_dirty(flaky_store):
    p = Persister(flaky_store)
    p.schedule("a", lambda: 1)
    assert p.dirty_keys == {"a"}
    assert flaky_store.saves == 0

    assert asyncio.run(p.flush()) is True
    assert flaky_store.data == {"a": 1}
