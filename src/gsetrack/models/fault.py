"""Fault registry models."""

from __future__ import annotations

from pydantic import Field, field_validator, model_validator

from gsetrack.models._base import GseBaseModel, GseEnum, GseTimestamp, OptionalGseTimestamp


class FaultSeverity(GseEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FaultStatus(GseEnum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


class FaultRecord(GseBaseModel):
    """A fault reported against one piece of equipment."""

    id: str = Field(..., min_length=1)
    equipment_id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    severity: FaultSeverity = FaultSeverity.MEDIUM
    status: FaultStatus = FaultStatus.OPEN
    reported_at: GseTimestamp
    resolved_at: OptionalGseTimestamp = None
    reported_by: str | None = None
    archived: bool = False
    """Archival is the only change a resolved fault still accepts."""

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value: object) -> object:
        if isinstance(value, str):
            return FaultSeverity(value)
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: object) -> object:
        if isinstance(value, str):
            return FaultStatus(value)
        return value

    @model_validator(mode="after")
    def _check_resolution(self) -> FaultRecord:
        if self.status == FaultStatus.RESOLVED and self.resolved_at is None:
            raise ValueError("resolved faults need resolved_at")
        if self.status != FaultStatus.RESOLVED and self.resolved_at is not None:
            raise ValueError("only resolved faults carry resolved_at")
        if self.archived and self.status != FaultStatus.RESOLVED:
            raise ValueError("only resolved faults can be archived")
        return self

    @property
    def is_resolved(self) -> bool:
        return self.status == FaultStatus.RESOLVED
