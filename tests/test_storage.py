from __future__ import annotations

import pytest

from gsetrack._constants import VERSION_MARKER_KEY
from gsetrack.exceptions import StoreError
from gsetrack.storage.base import Collection
from gsetrack.storage.memory import MemoryStore
from gsetrack.storage.sqlite import SqliteStore


def test_collection_keys_are_namespaced_and_distinct() -> None:
    keys = {collection.key for collection in Collection}

    assert keys == {"gsetrack.equipment", "gsetrack.faults", "gsetrack.handovers"}
    assert VERSION_MARKER_KEY not in keys


# ------------------------------------------------------------------
# MemoryStore
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_memory_store_copies_documents() -> None:
    store = MemoryStore()
    docs = [{"id": "EQ-1", "attributes": {"fuel": "diesel"}}]

    await store.put_all(Collection.EQUIPMENT, docs)
    docs[0]["attributes"]["fuel"] = "petrol"
    read = await store.get(Collection.EQUIPMENT)
    read[0]["id"] = "mutated"

    assert await store.get(Collection.EQUIPMENT) == [{"id": "EQ-1", "attributes": {"fuel": "diesel"}}]
    assert await store.get(Collection.FAULTS) == []


@pytest.mark.asyncio
async def test_memory_store_rejects_unserializable_batch_atomically() -> None:
    store = MemoryStore()
    await store.put_all(Collection.EQUIPMENT, [{"id": "EQ-1"}])

    with pytest.raises(StoreError) as excinfo:
        await store.put_many(
            {
                Collection.EQUIPMENT: [{"id": "EQ-2"}],
                Collection.FAULTS: [{"id": "F-1", "payload": object()}],
            }
        )

    assert excinfo.value.collection == "faults"
    assert await store.get(Collection.EQUIPMENT) == [{"id": "EQ-1"}]


@pytest.mark.asyncio
async def test_memory_store_version_marker() -> None:
    async with MemoryStore() as store:
        assert await store.get_version_marker() is None
        await store.set_version_marker("1.1")
        assert await store.get_version_marker() == "1.1"


# ------------------------------------------------------------------
# SqliteStore
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_sqlite_store_survives_reopen(tmp_path) -> None:
    path = tmp_path / "nested" / "gse.sqlite3"
    equipment = [{"id": f"EQ-{n}", "name": f"Tractor {n}", "type": "Baggage Tractor"} for n in range(1, 6)]

    async with SqliteStore(path) as store:
        await store.put_many(
            {
                Collection.EQUIPMENT: equipment,
                Collection.HANDOVERS: [{"id": "H-1", "equipmentId": "EQ-1", "notes": "Çekildi"}],
            }
        )
        await store.set_version_marker("1.1")

    async with SqliteStore(path) as reopened:
        assert await reopened.get(Collection.EQUIPMENT) == equipment
        assert await reopened.get(Collection.HANDOVERS) == [{"id": "H-1", "equipmentId": "EQ-1", "notes": "Çekildi"}]
        assert await reopened.get(Collection.FAULTS) == []
        assert await reopened.get_version_marker() == "1.1"


@pytest.mark.asyncio
async def test_sqlite_put_all_replaces_collection(tmp_path) -> None:
    async with SqliteStore(tmp_path / "gse.sqlite3") as store:
        await store.put_all(Collection.FAULTS, [{"id": "F-1"}, {"id": "F-2"}, {"id": "F-3"}])
        await store.put_all(Collection.FAULTS, [{"id": "F-4"}])
        await store.set_version_marker("1.0")
        await store.set_version_marker("1.1")

        assert await store.get(Collection.FAULTS) == [{"id": "F-4"}]
        assert await store.get_version_marker() == "1.1"


@pytest.mark.asyncio
async def test_sqlite_batch_is_atomic_across_collections(tmp_path) -> None:
    async with SqliteStore(tmp_path / "gse.sqlite3") as store:
        await store.put_many(
            {
                Collection.EQUIPMENT: [{"id": "EQ-1", "holder": "Depot"}],
                Collection.HANDOVERS: [],
            }
        )
        db = store._db  # noqa: SLF001
        assert db is not None
        await db.execute(
            "CREATE TRIGGER reject_handovers BEFORE INSERT ON records "
            "WHEN NEW.collection = 'gsetrack.handovers' BEGIN SELECT RAISE(ABORT, 'disk full'); END"
        )
        await db.commit()

        with pytest.raises(StoreError) as excinfo:
            await store.put_many(
                {
                    Collection.EQUIPMENT: [{"id": "EQ-1", "holder": "Gate-3"}],
                    Collection.HANDOVERS: [{"id": "H-1", "equipmentId": "EQ-1"}],
                }
            )

        assert excinfo.value.collection == "handovers"
        assert await store.get(Collection.EQUIPMENT) == [{"id": "EQ-1", "holder": "Depot"}]
        assert await store.get(Collection.HANDOVERS) == []


@pytest.mark.asyncio
async def test_sqlite_rejects_unserializable_documents(tmp_path) -> None:
    async with SqliteStore(tmp_path / "gse.sqlite3") as store:
        await store.put_all(Collection.EQUIPMENT, [{"id": "EQ-1"}])

        with pytest.raises(StoreError):
            await store.put_all(Collection.EQUIPMENT, [{"id": "EQ-2", "bad": {1, 2}}])

        assert await store.get(Collection.EQUIPMENT) == [{"id": "EQ-1"}]


@pytest.mark.asyncio
async def test_sqlite_store_requires_open() -> None:
    store = SqliteStore(":memory:")

    with pytest.raises(StoreError):
        await store.get(Collection.EQUIPMENT)
    with pytest.raises(StoreError):
        await store.set_version_marker("1.1")


@pytest.mark.asyncio
async def test_sqlite_open_failure_is_a_store_error(tmp_path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")

    with pytest.raises(StoreError):
        await SqliteStore(blocker / "gse.sqlite3").open()
