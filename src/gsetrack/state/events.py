"""Change notifications and immutable snapshots.

Every successful mutation of the shared state store produces one
:class:`StateChange`; subscribers receive it together with the
:class:`StateSnapshot` taken right after the change.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from gsetrack.models import EquipmentRecord, EquipmentStatus, FaultRecord, FaultStatus, HandoverRecord


class ChangeKind(StrEnum):
    HANDOVER_RECORDED = "handover_recorded"
    FAULT_REPORTED = "fault_reported"
    FAULT_STARTED = "fault_started"
    FAULT_RESOLVED = "fault_resolved"
    FAULT_ARCHIVED = "fault_archived"
    EQUIPMENT_ADDED = "equipment_added"
    EQUIPMENT_UPDATED = "equipment_updated"


class StateChange(BaseModel):
    """What a single mutation changed."""

    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    equipment_id: str
    record_id: str = Field(..., description="Id of the created or modified record")
    revision: int
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class StateSnapshot(BaseModel):
    """Point-in-time, read-only view of the whole store."""

    model_config = ConfigDict(frozen=True)

    revision: int = 0
    equipment: tuple[EquipmentRecord, ...] = ()
    faults: tuple[FaultRecord, ...] = ()
    handovers: tuple[HandoverRecord, ...] = ()


class StoreSummary(BaseModel):
    """Dashboard counters."""

    model_config = ConfigDict(frozen=True)

    equipment_total: int = 0
    equipment_by_status: dict[EquipmentStatus, int] = Field(default_factory=dict)
    faults_by_status: dict[FaultStatus, int] = Field(default_factory=dict)
    unresolved_faults: int = 0
    handovers_total: int = 0
