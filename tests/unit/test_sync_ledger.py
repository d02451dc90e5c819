import pytest

from practice_engine.models.sync import SyncStatus
from practice_engine.services import clock
from practice_engine.services.sync_ledger import SYNC_META_KEY, SyncLedger


def test_mark_for_sync_strictly_increases_version(items, ledger, monkeypatch):
    item = items.add("cup", "asset:cup.png")
    versions = [item.sync.version]
    for ts in (10, 20, 30):
        monkeypatch.setattr(clock, "now_ms", lambda ts=ts: ts)
        assert ledger.mark_for_sync(item) is True
        versions.append(item.sync.version)

    assert versions == [1, 2, 3, 4]
    assert item.sync.status is SyncStatus.PENDING
    assert item.sync.last_modified_at == 30


def test_local_entities_are_untouched(collections, ledger):
    col = collections.add("Private", is_local=True)
    before = (col.sync.version, col.sync.status, col.sync.last_modified_at)

    assert ledger.mark_for_sync(col) is False
    assert ledger.mark_conflict(col) is False
    assert ledger.mark_synced(col) is False

    assert (col.sync.version, col.sync.status, col.sync.last_modified_at) == before
    assert col.sync.status is SyncStatus.LOCAL
    assert ledger.get_pending_uploads() == {"items": [], "collections": []}


def test_synced_and_conflict_queues(collections, ledger):
    col = collections.add("Shared")
    ledger.mark_for_sync(col)
    assert ledger.get_pending_uploads()["collections"] == [col.id]

    ledger.mark_synced(col)
    assert col.sync.status is SyncStatus.SYNCED
    assert ledger.get_pending_uploads()["collections"] == []

    ledger.mark_for_sync(col)
    ledger.mark_conflict(col)
    assert col.sync.status is SyncStatus.CONFLICT
    assert ledger.get_conflicts()["collections"] == [col.id]
    assert ledger.get_pending_uploads()["collections"] == []

    # the ledger never resolves on its own
    ledger.mark_for_sync(col)
    assert ledger.get_conflicts()["collections"] == [col.id]

    assert ledger.resolve_conflict("collections", col.id) is True
    assert ledger.resolve_conflict("collections", col.id) is False
    assert ledger.get_conflicts()["collections"] == []


def test_returned_queues_are_copies(items, ledger):
    item = items.add("cup", "asset:cup.png")
    ledger.mark_for_sync(item)
    ledger.get_pending_uploads()["items"].clear()
    assert ledger.get_pending_uploads()["items"] == [item.id]


@pytest.mark.asyncio
async def test_meta_persists(items, ledger, persister, monkeypatch):
    monkeypatch.setattr(clock, "now_ms", lambda: 99)
    item = items.add("cup", "asset:cup.png")
    ledger.mark_for_sync(item)
    ledger.record_sync(server_version=4)
    await persister.flush()

    stored = await persister.store.load(SYNC_META_KEY)
    assert stored["serverVersion"] == 4
    assert stored["lastSyncTime"] == 99

    restored = SyncLedger(persister)
    await restored.load()
    assert restored.get_pending_uploads()["items"] == [item.id]
    assert restored.server_version == 4
