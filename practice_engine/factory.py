import logging
from types import SimpleNamespace

from practice_engine.models.session import PracticeSettings, PracticeVariant
from practice_engine.services.collection_catalog import CollectionCatalog
from practice_engine.services.db import create_schema, make_engine_and_session
from practice_engine.services.item_catalog import ItemCatalog
from practice_engine.services.item_sources import CharacterSource, CollectionItemSource
from practice_engine.services.persistence import Persister
from practice_engine.services.practice_session import (
    InteractionMode,
    PracticeSessionMachine,
)
from practice_engine.services.redis_client import create_redis
from practice_engine.services.redis_kv import RedisKV
from practice_engine.services.sql_kv import SqlKV
from practice_engine.services.statistics import StatisticsAggregator
from practice_engine.services.sync_ledger import SyncLedger

from .config import Settings, settings as default_settings

log = logging.getLogger(__name__)


async def _make_store(cfg: Settings, ns: SimpleNamespace):
    backend = cfg.STORE_BACKEND.lower()
    if backend == "redis":
        ns.redis_client = create_redis(cfg.REDIS_DSN)
        return RedisKV(client=ns.redis_client, prefix=cfg.REDIS_PREFIX)
    if backend == "sql":
        ns.engine, ns.async_session_maker = make_engine_and_session(cfg.DB_DSN)
        await create_schema(ns.engine)
        return SqlKV(ns.async_session_maker)
    raise ValueError(f"unknown STORE_BACKEND: {cfg.STORE_BACKEND}")


def _machine(variant, source, persister, cfg, interaction=InteractionMode.MATCHING, min_round_size=None):
    stats = StatisticsAggregator(persister, variant.value)
    return PracticeSessionMachine(
        variant,
        source,
        stats,
        persister,
        interaction=interaction,
        settings=PracticeSettings(number_of_items=cfg.ROUND_SIZE),
        min_round_size=cfg.MIN_ROUND_SIZE if min_round_size is None else min_round_size,
        correct_delay=cfg.CORRECT_TRANSITION_MS / 1000,
        skip_delay=cfg.SKIP_TRANSITION_MS / 1000,
    )


async def create_app(cfg: Settings | None = None) -> SimpleNamespace:
    cfg = cfg or default_settings
    ns = SimpleNamespace(redis_client=None, engine=None, async_session_maker=None)

    store = await _make_store(cfg, ns)
    persister = Persister(store)
    ledger = SyncLedger(persister)
    items = ItemCatalog(persister, ledger)
    collections = CollectionCatalog(persister, items, ledger)

    await ledger.load()
    await items.load()
    await collections.load()

    by_collection = CollectionItemSource(collections, items)
    machines = {
        PracticeVariant.LETTER_SEARCH: _machine(
            PracticeVariant.LETTER_SEARCH,
            CharacterSource(cfg.LETTER_ALPHABET),
            persister,
            cfg,
            interaction=InteractionMode.SINGLE,
            min_round_size=1,
        ),
        PracticeVariant.PICTURE_TO_WORD: _machine(
            PracticeVariant.PICTURE_TO_WORD, by_collection, persister, cfg
        ),
        PracticeVariant.RECOGNITION: _machine(
            PracticeVariant.RECOGNITION, by_collection, persister, cfg
        ),
    }
    for machine in machines.values():
        await machine.load()
        await machine.statistics.load()

    log.info(
        "practice engine ready: %d items, %d collections, backend=%s",
        len(items),
        len(collections),
        cfg.STORE_BACKEND,
    )

    ns.settings = cfg
    ns.store = store
    ns.persister = persister
    ns.ledger = ledger
    ns.items = items
    ns.collections = collections
    ns.machines = machines
    return ns


async def close_app(app: SimpleNamespace) -> None:
    for machine in app.machines.values():
        machine.end_session(reason="shutdown")
    if not await app.persister.flush():
        log.warning("unsaved keys on shutdown: %s", sorted(app.persister.dirty_keys))
    if app.engine is not None:
        await app.engine.dispose()
    if app.redis_client is not None:
        await app.redis_client.aclose()
