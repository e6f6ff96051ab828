"""Reference dataset loading.

The reference dataset is the immutable seed input of the bootstrap gate:
three ordered record sequences plus the normalization table.
"""

from __future__ import annotations

import importlib.resources
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from gsetrack._constants import BUNDLED_DATASET_RESOURCE
from gsetrack.exceptions import ReferenceDataError
from gsetrack.ingestion.normalize import NormalizationTable
from gsetrack.models import EquipmentRecord, FaultRecord, HandoverRecord
from gsetrack.state.policy import integrity_problems

_logger = logging.getLogger(__name__)


class ReferenceDataset(BaseModel):
    """Seed data bundled with a given schema generation."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    schema_version: str | None = Field(default=None, alias="schemaVersion")
    """Schema generation the data was authored for, if stated."""
    equipment: tuple[EquipmentRecord, ...] = ()
    faults: tuple[FaultRecord, ...] = ()
    handovers: tuple[HandoverRecord, ...] = ()
    normalization: NormalizationTable = Field(
        default_factory=NormalizationTable,
        alias="normalizationConfig",
    )

    @field_validator("normalization", mode="before")
    @classmethod
    def _coerce_table(cls, value: Any) -> Any:
        if isinstance(value, NormalizationTable):
            return value
        if isinstance(value, dict):
            return NormalizationTable.from_mapping(value)
        return value

    def validate_integrity(self) -> None:
        """Raise :class:`ReferenceDataError` on duplicate ids or orphaned references."""
        problems = integrity_problems(self.equipment, self.faults, self.handovers)
        if problems:
            raise ReferenceDataError("; ".join(problems))

    def normalized_equipment(self, table: NormalizationTable | None = None) -> list[EquipmentRecord]:
        """Equipment with the normalization table applied, in dataset order."""
        active = table if table is not None else self.normalization
        return [active.apply(record) for record in self.equipment]


def parse_reference_dataset(data: dict[str, Any]) -> ReferenceDataset:
    try:
        return ReferenceDataset.model_validate(data)
    except ValidationError as exc:
        raise ReferenceDataError(f"Invalid reference dataset: {exc}") from exc


def load_reference_dataset(path: Path) -> ReferenceDataset:
    """Load a reference dataset from a JSON file."""
    _logger.debug("Loading reference dataset from %s", path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ReferenceDataError(f"Reference dataset not found: {path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise ReferenceDataError(f"Could not read reference dataset {path}: {exc}") from exc
    return parse_reference_dataset(raw)


def bundled_reference_dataset() -> ReferenceDataset:
    """Load the reference dataset shipped as package data."""
    _logger.debug("Loading reference dataset from package data")
    try:
        ref = importlib.resources.files("gsetrack").joinpath(BUNDLED_DATASET_RESOURCE)
        raw = json.loads(ref.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ReferenceDataError(f"{BUNDLED_DATASET_RESOURCE} not found in package data") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise ReferenceDataError(f"Could not read bundled {BUNDLED_DATASET_RESOURCE}: {exc}") from exc
    return parse_reference_dataset(raw)
