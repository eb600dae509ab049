import threading

import pytest

from atelier.persistence import AuthNotConfiguredError, DocumentNotFoundError, DocumentStore, StoreError


@pytest.mark.asyncio
async def test_add_get_update_delete(store):
    doc_id = await store.add("products", {"name": "Penne", "price": 4000})

    assert await store.get("products", doc_id) == {"id": doc_id, "name": "Penne", "price": 4000}

    await store.update("products", doc_id, {"price": 4200})
    assert (await store.get("products", doc_id))["price"] == 4200

    await store.delete("products", doc_id)
    assert await store.get("products", doc_id) is None


@pytest.mark.asyncio
async def test_add_with_existing_id_fails(store):
    await store.add("Commandes", {"quantity": 1}, doc_id="ord-1")

    with pytest.raises(StoreError):
        await store.add("Commandes", {"quantity": 2}, doc_id="ord-1")


@pytest.mark.asyncio
async def test_update_missing_document_raises(store):
    with pytest.raises(DocumentNotFoundError):
        await store.update("Commandes", "missing", {"status": "CONFIRMED"})


@pytest.mark.asyncio
async def test_set_merge_keeps_other_fields(store):
    await store.set("Settings", "general", {"appName": "A", "currency": "FCFA"})
    await store.set("Settings", "general", {"appName": "B"}, merge=True)

    assert await store.get("Settings", "general") == {"id": "general", "appName": "B", "currency": "FCFA"}


@pytest.mark.asyncio
async def test_watch_delivers_initial_and_ordered_snapshots(store):
    snapshots = []
    await store.add("Commandes", {"date": 1}, doc_id="old")
    store.watch("Commandes", snapshots.append, order_by="date", descending=True)
    await store.settle()

    await store.add("Commandes", {"date": 5}, doc_id="new")
    await store.settle()

    assert [[doc["id"] for doc in snap] for snap in snapshots] == [["old"], ["new", "old"]]


@pytest.mark.asyncio
async def test_watch_skips_identical_snapshot(store):
    snapshots = []
    store.watch("Inventory", snapshots.append)
    await store.settle()

    await store.delete("Inventory", "nothing-here")
    await store.settle()

    assert snapshots == [[]]


@pytest.mark.asyncio
async def test_cancelled_watch_receives_nothing(store):
    snapshots = []
    watch = store.watch("products", snapshots.append)
    watch.cancel()
    await store.settle()

    await store.add("products", {"name": "Lasagnes"})
    await store.settle()

    assert snapshots == []


@pytest.mark.asyncio
async def test_watch_document_reports_absence_then_value(store):
    snapshots = []
    store.watch_document("Settings", "general", snapshots.append)
    await store.settle()

    await store.set("Settings", "general", {"appName": "Atelier"})
    await store.settle()

    assert snapshots == [None, {"id": "general", "appName": "Atelier"}]


@pytest.mark.asyncio
async def test_poll_picks_up_writes_from_another_store(store):
    snapshots = []
    store.watch("products", snapshots.append)
    await store.settle()

    other = DocumentStore(store.db_path)
    await other.add("products", {"name": "Jus de Bissap"}, doc_id="p9")

    assert store.poll_once() is True
    await store.settle()
    assert [doc["id"] for doc in snapshots[-1]] == ["p9"]
    assert store.poll_once() is False
    other.close()


@pytest.mark.asyncio
async def test_anonymous_sign_in(store, tmp_path):
    uid = await store.sign_in_anonymously()
    assert uid

    locked = DocumentStore(tmp_path / "atelier.db", anonymous_auth=False)
    with pytest.raises(AuthNotConfiguredError):
        await locked.sign_in_anonymously()


def test_preferences_round_trip(store):
    assert store.get_preference("admin_sound_enabled", "false") == "false"

    store.set_preference("admin_sound_enabled", "true")

    assert store.get_preference("admin_sound_enabled") == "true"


@pytest.mark.asyncio
async def test_watch_reads_run_off_the_event_loop_thread(store):
    loop_thread = threading.get_ident()
    read_threads = []
    load = store._load_collection

    def recording_load(*args):
        read_threads.append(threading.get_ident())
        return load(*args)

    store._load_collection = recording_load
    snapshots = []
    store.watch("products", snapshots.append)
    await store.settle()

    assert snapshots == [[]]
    assert read_threads and loop_thread not in read_threads


@pytest.mark.asyncio
async def test_burst_of_writes_ends_on_latest_snapshot(store):
    snapshots = []
    store.watch("Inventory", snapshots.append, order_by="name")

    for name in ("Crème", "Oeufs", "Tomates"):
        await store.add("Inventory", {"name": name}, doc_id=name)
    await store.settle()

    assert [doc["id"] for doc in snapshots[-1]] == ["Crème", "Oeufs", "Tomates"]
    sizes = [len(snap) for snap in snapshots]
    assert sizes == sorted(sizes)
