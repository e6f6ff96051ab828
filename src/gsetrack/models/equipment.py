"""Equipment inventory models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field, field_validator, model_validator

from gsetrack.models._base import _SENTINELS, GseBaseModel, GseEnum, OptionalGseTimestamp


class EquipmentStatus(GseEnum):
    AVAILABLE = "available"
    IN_USE = "in-use"
    UNDER_MAINTENANCE = "under-maintenance"
    OUT_OF_SERVICE = "out-of-service"


#: Optional equipment fields a patch may reset to ``None``.
CLEARABLE_FIELDS: frozenset[str] = frozenset({"mobility", "location", "serial_number"})


class EquipmentRecord(GseBaseModel):
    """A piece of ground support equipment.

    ``type`` and ``mobility`` are canonicalized through the
    :class:`~gsetrack.ingestion.normalize.NormalizationTable` before the
    record is stored. Records are never deleted; retirement is the
    ``out-of-service`` status.
    """

    id: str = Field(..., min_length=1)
    """Stable identifier (e.g. ``"EQ-1"``)."""
    name: str = ""
    """Display name."""
    type: str = ""
    """Equipment category (e.g. ``"Baggage Tractor"``)."""
    mobility: str | None = None
    """Mobility class (e.g. ``"motorized"``)."""
    status: EquipmentStatus = EquipmentStatus.AVAILABLE
    holder: str = ""
    """Current custodian: a depot, gate, stand, or team."""
    location: str | None = None
    serial_number: str | None = None
    attributes: dict[str, str] = Field(default_factory=dict)
    """Free-text attributes not covered by dedicated fields."""
    updated_at: OptionalGseTimestamp = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: object) -> object:
        if isinstance(value, str):
            return EquipmentStatus(value)
        return value

    @field_validator("attributes", mode="before")
    @classmethod
    def _stringify_attributes(cls, value: object) -> object:
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items() if v is not None}
        return value

    @property
    def is_retired(self) -> bool:
        return self.status == EquipmentStatus.OUT_OF_SERVICE


class EquipmentPatch(GseBaseModel):
    """Partial update applied by management operations.

    Fields left unset are not touched. ``id`` cannot be patched.
    ``None`` or a placeholder (``""``, ``"--"``) clears ``mobility``,
    ``location`` or ``serial_number``; the other fields cannot be cleared.
    """

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def _clean_placeholders(cls, values: Any) -> Any:
        # Placeholders become explicit clears instead of being dropped.
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if isinstance(value, str):
                value = value.strip()
                if value in _SENTINELS:
                    value = None
            cleaned[key] = value
        return cleaned

    @model_validator(mode="after")
    def _check_clears(self) -> EquipmentPatch:
        for name in self.model_fields_set:
            if getattr(self, name) is None and name not in CLEARABLE_FIELDS:
                raise ValueError(f"{name} cannot be cleared")
        return self

    name: str | None = None
    type: str | None = None
    mobility: str | None = None
    status: EquipmentStatus | None = None
    holder: str | None = None
    location: str | None = None
    serial_number: str | None = None
    attributes: dict[str, str] | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: object) -> object:
        if isinstance(value, str):
            return EquipmentStatus(value)
        return value

    def changes(self) -> dict[str, object]:
        """Explicitly set fields, by field name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


def touch(record: EquipmentRecord, now: datetime, **changes: object) -> EquipmentRecord:
    """Return a copy of *record* with *changes* applied and ``updated_at`` set."""
    return record.model_copy(update={**changes, "updated_at": now})
