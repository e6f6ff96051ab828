from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from gsetrack.exceptions import StoreError
from gsetrack.ingestion.dataset import ReferenceDataset, parse_reference_dataset
from gsetrack.storage.base import Collection, Document
from gsetrack.storage.memory import MemoryStore

BASE_TIME = datetime(2026, 1, 1, 8, 0, tzinfo=UTC)


class StepClock:
    """Deterministic clock: each reading is one step after the previous one."""

    def __init__(self, start: datetime = BASE_TIME, step: timedelta = timedelta(minutes=1)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current


class FailingStore(MemoryStore):
    """MemoryStore whose writes can be switched to fail, and which counts calls."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_put = False
        self.fail_marker = False
        self.fail_marker_read = False
        self.put_calls = 0
        self.marker_writes = 0

    async def put_many(self, batch: Mapping[Collection, Sequence[Document]]) -> None:
        self.put_calls += 1
        if self.fail_put:
            raise StoreError("disk full", operation="put_many")
        await super().put_many(batch)

    async def get_version_marker(self) -> str | None:
        if self.fail_marker_read:
            raise StoreError("marker unreadable", operation="get_version_marker")
        return await super().get_version_marker()

    async def set_version_marker(self, value: str) -> None:
        self.marker_writes += 1
        if self.fail_marker:
            raise StoreError("quota exceeded", operation="set_version_marker")
        await super().set_version_marker(value)


def dataset_payload() -> dict[str, Any]:
    return {
        "normalizationConfig": {
            "type": {
                "Baggage Tractor": ["Bagaj Traktörü", "tug"],
                "Ground Power Unit": ["GPU"],
            },
            "mobility": {
                "motorized": ["Motorlu"],
                "non-motorized": ["Motorsuz", "towed"],
            },
        },
        "equipment": [
            {"id": "EQ-1", "name": "Tractor 1", "type": "Bagaj Traktörü", "mobility": "Motorlu",
             "status": "available", "holder": "Depot"},
            {"id": "EQ-2", "name": "Cart 7", "type": "Baggage Cart", "mobility": "Motorsuz",
             "status": "out-of-service", "holder": "Scrap Yard"},
            {"id": "EQ-3", "name": "GPU 2", "type": "GPU", "mobility": "towed",
             "status": "under-maintenance", "holder": "Workshop"},
            {"id": "EQ-4", "name": "Tractor 4", "type": "tug", "mobility": "Motorlu",
             "status": "in-use", "holder": "Gate-2"},
        ],
        "faults": [
            {"id": "F-1", "equipmentId": "EQ-3", "description": "No output voltage", "severity": "high",
             "status": "open", "reportedAt": "2025-12-30T10:00:00Z"},
            {"id": "F-2", "equipmentId": "EQ-2", "description": "Frame cracked", "severity": "critical",
             "status": "resolved", "reportedAt": "2025-12-01T10:00:00Z", "resolvedAt": "2025-12-02T10:00:00Z"},
        ],
        "handovers": [
            {"id": "H-1", "equipmentId": "EQ-4", "fromHolder": "Depot", "toHolder": "Gate-2",
             "timestamp": "2025-12-31T06:00:00Z", "notes": "ok"},
        ],
    }


@pytest.fixture
def payload() -> dict[str, Any]:
    return dataset_payload()


@pytest.fixture
def dataset() -> ReferenceDataset:
    return parse_reference_dataset(dataset_payload())


@pytest.fixture
def store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def clock() -> StepClock:
    return StepClock()
