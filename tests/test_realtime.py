import asyncio

import pytest

from atelier.data import DEFAULT_SETTINGS
from atelier.persistence import DocumentStore
from atelier.realtime import INVENTORY, ORDERS, PRODUCTS, SETTINGS, SETTINGS_DOC_ID, RealtimeStore


async def started(store):
    realtime = RealtimeStore(store)
    await realtime.start(poll_interval=None)
    await asyncio.wait_for(realtime.ready.wait(), timeout=2)
    return realtime


@pytest.mark.asyncio
async def test_slices_are_loaded_and_ordered(store):
    await store.add(PRODUCTS, {"name": "Penne", "price": 4000, "createdAt": 1}, doc_id="old")
    await store.add(PRODUCTS, {"name": "Lasagnes", "price": 5000, "createdAt": 2}, doc_id="new")
    await store.add(INVENTORY, {"name": "Tomates", "quantity": 25, "threshold": 8}, doc_id="t")
    await store.add(INVENTORY, {"name": "Crème", "quantity": 6, "threshold": 3}, doc_id="c")

    realtime = await started(store)

    assert [p.id for p in realtime.products] == ["new", "old"]
    assert [i.name for i in realtime.inventory] == ["Crème", "Tomates"]
    assert realtime.orders == ()
    assert realtime.has_snapshot(ORDERS)
    assert not realtime.loading
    await realtime.close()


@pytest.mark.asyncio
async def test_listeners_receive_new_slices(store, make_order):
    realtime = await started(store)
    seen = []
    realtime.listen(ORDERS, seen.append)

    await store.add(ORDERS, make_order("o2").to_document(), doc_id="o2")
    await store.settle()

    assert [o.id for o in seen[-1]] == ["o2"]
    assert realtime.orders == seen[-1]
    await realtime.close()


@pytest.mark.asyncio
async def test_malformed_feed_keeps_stale_slice_and_still_becomes_ready(store):
    await store.add(PRODUCTS, {"price": 1000}, doc_id="no-name")

    realtime = await started(store)

    assert realtime.products == ()
    assert not realtime.has_snapshot(PRODUCTS)
    await realtime.close()


@pytest.mark.asyncio
async def test_missing_settings_use_defaults_and_are_created(store):
    realtime = await started(store)
    assert realtime.settings == DEFAULT_SETTINGS

    stored = None
    for _ in range(100):
        stored = await store.get(SETTINGS, SETTINGS_DOC_ID)
        if stored is not None:
            break
        await asyncio.sleep(0.01)
    assert stored["appName"] == DEFAULT_SETTINGS.app_name
    await realtime.close()


@pytest.mark.asyncio
async def test_partial_settings_are_merged_over_defaults(store):
    await store.set(SETTINGS, SETTINGS_DOC_ID, {"appName": "Chez Awa"})

    realtime = await started(store)

    assert realtime.settings.app_name == "Chez Awa"
    assert realtime.settings.currency == DEFAULT_SETTINGS.currency
    await realtime.close()


@pytest.mark.asyncio
async def test_disabled_anonymous_sessions_are_silent(tmp_path):
    store = DocumentStore(tmp_path / "locked.db", anonymous_auth=False)
    store.bootstrap_schema()

    realtime = await started(store)

    assert realtime.identity is None
    assert not realtime.loading
    await realtime.close()
    store.close()


@pytest.mark.asyncio
async def test_close_stops_every_subscription(store, make_order):
    realtime = await started(store)
    seen = []
    realtime.listen(ORDERS, seen.append)

    await realtime.close()
    await realtime.close()
    await store.add(ORDERS, make_order("late").to_document(), doc_id="late")
    await store.settle()

    assert seen == []
    assert realtime.orders == ()


@pytest.mark.asyncio
async def test_context_manager_starts_poller_and_cleans_up(store):
    async with RealtimeStore(store) as realtime:
        await asyncio.wait_for(realtime.ready.wait(), timeout=2)
        assert realtime.identity is not None
    assert realtime._poller is None


@pytest.mark.asyncio
async def test_close_waits_for_the_settings_seed_write(store):
    realtime = await started(store)
    seeds = list(realtime._background)

    await realtime.close()

    assert all(task.done() for task in seeds)
    assert realtime._background == set()
    assert (await store.get(SETTINGS, SETTINGS_DOC_ID))["appName"] == DEFAULT_SETTINGS.app_name
