from __future__ import annotations

import pytest

from gsetrack._constants import SCHEMA_VERSION
from gsetrack.bootstrap import BootstrapAction, ensure_initialized
from gsetrack.exceptions import BootstrapError, ReferenceDataError, StoreError
from gsetrack.ingestion.dataset import parse_reference_dataset
from gsetrack.ingestion.normalize import NormalizationTable
from gsetrack.state.store import SharedStateStore
from gsetrack.storage.base import Collection


@pytest.mark.asyncio
async def test_first_run_seeds_normalized_collections_then_marker(store, dataset) -> None:
    outcome = await ensure_initialized(store, dataset, dataset.normalization, SCHEMA_VERSION)

    assert outcome.action == BootstrapAction.SEEDED
    assert outcome.previous_version is None
    assert (outcome.equipment_count, outcome.fault_count, outcome.handover_count) == (4, 2, 1)
    assert await store.get_version_marker() == SCHEMA_VERSION

    equipment = await store.get(Collection.EQUIPMENT)
    assert [doc["id"] for doc in equipment] == ["EQ-1", "EQ-2", "EQ-3", "EQ-4"]
    assert equipment[0]["type"] == "Baggage Tractor"
    assert equipment[0]["mobility"] == "motorized"
    assert equipment[1]["type"] == "Baggage Cart"
    assert equipment[2]["type"] == "Ground Power Unit"
    assert equipment[2]["mobility"] == "non-motorized"
    assert [doc["id"] for doc in await store.get(Collection.FAULTS)] == ["F-1", "F-2"]
    assert [doc["equipmentId"] for doc in await store.get(Collection.HANDOVERS)] == ["EQ-4"]


@pytest.mark.asyncio
async def test_unchanged_version_is_a_no_op(store, dataset) -> None:
    await ensure_initialized(store, dataset, None, SCHEMA_VERSION)
    before = {c: await store.get(c) for c in Collection}
    writes_before = (store.put_calls, store.marker_writes)

    outcome = await ensure_initialized(store, dataset, None, SCHEMA_VERSION)

    assert outcome.action == BootstrapAction.SKIPPED
    assert not outcome.seeded
    assert (store.put_calls, store.marker_writes) == writes_before
    assert {c: await store.get(c) for c in Collection} == before


@pytest.mark.asyncio
async def test_unchanged_version_keeps_session_changes(store, dataset) -> None:
    await ensure_initialized(store, dataset, None, SCHEMA_VERSION)
    state = SharedStateStore(store, dataset.normalization)
    await state.load()
    await state.record_handover("EQ-1", "Depot", "Gate-3", "ok")

    await ensure_initialized(store, dataset, None, SCHEMA_VERSION)

    reloaded = SharedStateStore(store, dataset.normalization)
    await reloaded.load()
    assert reloaded.get_equipment("EQ-1").holder == "Gate-3"
    assert len(reloaded.list_handovers(equipment_id="EQ-1")) == 1


@pytest.mark.asyncio
async def test_marker_write_failure_leaves_marker_absent_and_next_run_reseeds(store, dataset) -> None:
    store.fail_marker = True

    with pytest.raises(BootstrapError) as excinfo:
        await ensure_initialized(store, dataset, None, SCHEMA_VERSION)

    assert isinstance(excinfo.value.cause, StoreError)
    assert excinfo.value.__cause__ is excinfo.value.cause
    assert await store.get_version_marker() is None

    store.fail_marker = False
    outcome = await ensure_initialized(store, dataset, None, SCHEMA_VERSION)

    assert outcome.action == BootstrapAction.SEEDED
    assert store.put_calls == 2
    assert await store.get_version_marker() == SCHEMA_VERSION


@pytest.mark.asyncio
async def test_collection_write_failure_writes_nothing(store, dataset) -> None:
    store.fail_put = True

    with pytest.raises(BootstrapError):
        await ensure_initialized(store, dataset, None, SCHEMA_VERSION)

    assert store.marker_writes == 0
    assert await store.get_version_marker() is None
    assert await store.get(Collection.EQUIPMENT) == []


@pytest.mark.asyncio
async def test_failed_reseed_keeps_old_marker(store, dataset) -> None:
    await ensure_initialized(store, dataset, None, "1.0")
    store.fail_marker = True

    with pytest.raises(BootstrapError):
        await ensure_initialized(store, dataset, None, "1.1")

    assert await store.get_version_marker() == "1.0"

    store.fail_marker = False
    outcome = await ensure_initialized(store, dataset, None, "1.1")
    assert outcome.seeded
    assert outcome.previous_version == "1.0"


@pytest.mark.asyncio
async def test_version_change_replaces_collections_wholesale(store, dataset) -> None:
    await ensure_initialized(store, dataset, None, "1.0")
    state = SharedStateStore(store, dataset.normalization)
    await state.load()
    await state.record_handover("EQ-1", "Depot", "Gate-3", "ok")
    await state.report_fault("EQ-4", "Flat tyre", "low")

    outcome = await ensure_initialized(store, dataset, None, "1.1")

    assert outcome.action == BootstrapAction.SEEDED
    assert outcome.previous_version == "1.0"
    reloaded = SharedStateStore(store, dataset.normalization)
    await reloaded.load()
    assert reloaded.get_equipment("EQ-1").holder == "Depot"
    assert [f.id for f in reloaded.list_faults()] == ["F-1", "F-2"]
    assert len(reloaded.list_handovers()) == 1


@pytest.mark.asyncio
async def test_marker_read_failure_is_a_bootstrap_error(store, dataset) -> None:
    store.fail_marker_read = True

    with pytest.raises(BootstrapError) as excinfo:
        await ensure_initialized(store, dataset, None, SCHEMA_VERSION)

    assert isinstance(excinfo.value.cause, StoreError)
    assert store.put_calls == 0


@pytest.mark.asyncio
async def test_orphaned_reference_data_is_rejected_before_any_write(store, payload) -> None:
    payload["faults"].append(
        {"id": "F-9", "equipmentId": "EQ-404", "description": "Ghost", "reportedAt": "2025-12-30T10:00:00Z"}
    )
    dataset = parse_reference_dataset(payload)

    with pytest.raises(BootstrapError) as excinfo:
        await ensure_initialized(store, dataset, None, SCHEMA_VERSION)

    assert isinstance(excinfo.value.cause, ReferenceDataError)
    assert "EQ-404" in str(excinfo.value)
    assert store.put_calls == 0
    assert await store.get_version_marker() is None


@pytest.mark.asyncio
async def test_duplicate_equipment_ids_are_rejected(store, payload) -> None:
    payload["equipment"].append(dict(payload["equipment"][0]))
    dataset = parse_reference_dataset(payload)

    with pytest.raises(BootstrapError, match="duplicate equipment id 'EQ-1'"):
        await ensure_initialized(store, dataset, None, SCHEMA_VERSION)


@pytest.mark.asyncio
async def test_explicit_normalization_table_wins_over_bundled_one(store, dataset) -> None:
    table = NormalizationTable.from_mapping({"type": {"Tractor": ["Bagaj Traktörü", "tug"]}})

    await ensure_initialized(store, dataset, table, SCHEMA_VERSION)

    equipment = await store.get(Collection.EQUIPMENT)
    assert equipment[0]["type"] == "Tractor"
    # No mobility rules in the override table.
    assert equipment[0]["mobility"] == "Motorlu"


@pytest.mark.asyncio
async def test_empty_version_is_rejected(store, dataset) -> None:
    with pytest.raises(BootstrapError):
        await ensure_initialized(store, dataset, None, "")
