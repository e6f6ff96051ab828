"""Handover log model."""

from __future__ import annotations

from pydantic import Field

from gsetrack.models._base import GseBaseModel, GseTimestamp


class HandoverRecord(GseBaseModel):
    """One custody transfer. Append-only: never changed once logged."""

    id: str = Field(..., min_length=1)
    equipment_id: str = Field(..., min_length=1)
    from_holder: str = ""
    to_holder: str = Field(..., min_length=1)
    timestamp: GseTimestamp
    notes: str = ""
    """Condition notes recorded at the handover."""
