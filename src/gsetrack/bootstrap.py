"""Version-gated seeding of the persistent store.

On every start the gate compares the persisted schema version marker with
the running application's version. A match is a no-op. A mismatch (or no
marker at all) reseeds the three collections from the reference dataset.

The marker is written last. If anything before it fails, the marker keeps
its old value (or stays absent) and the next start reseeds from scratch, so
a half-written seed is never mistaken for a finished one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from gsetrack.exceptions import BootstrapError, ReferenceDataError, StoreError
from gsetrack.ingestion.dataset import ReferenceDataset
from gsetrack.ingestion.normalize import NormalizationTable
from gsetrack.storage.base import Collection, PersistentStore

_logger = logging.getLogger(__name__)


class BootstrapAction(StrEnum):
    SKIPPED = "skipped"
    SEEDED = "seeded"


@dataclass(frozen=True, slots=True)
class BootstrapOutcome:
    """What :func:`ensure_initialized` did."""

    action: BootstrapAction
    version: str
    previous_version: str | None = None
    equipment_count: int = 0
    fault_count: int = 0
    handover_count: int = 0

    @property
    def seeded(self) -> bool:
        return self.action == BootstrapAction.SEEDED


async def ensure_initialized(
    store: PersistentStore,
    dataset: ReferenceDataset,
    normalization_table: NormalizationTable | None,
    current_version: str,
) -> BootstrapOutcome:
    """Make sure *store* holds the reference data of *current_version*.

    Parameters
    ----------
    store : PersistentStore
        Durable store to inspect and, if needed, seed.
    dataset : ReferenceDataset
        Immutable seed records.
    normalization_table : NormalizationTable or None
        Table used to canonicalize equipment attributes. ``None`` uses the
        table bundled with *dataset*.
    current_version : str
        Schema version the running application expects.

    Returns
    -------
    BootstrapOutcome
        ``SKIPPED`` when the marker already matched, ``SEEDED`` otherwise.

    Raises
    ------
    BootstrapError
        Seeding failed. ``cause`` holds the :class:`StoreError` or
        :class:`ReferenceDataError`; the marker was not advanced.
    """
    if not current_version:
        raise BootstrapError("current_version must be non-empty")

    try:
        marker = await store.get_version_marker()
    except StoreError as exc:
        raise BootstrapError(f"Cannot read schema version marker: {exc}", cause=exc) from exc

    if marker == current_version:
        _logger.debug("Store already at schema version %s; skipping seed", current_version)
        return BootstrapOutcome(action=BootstrapAction.SKIPPED, version=current_version, previous_version=marker)

    if marker is None:
        _logger.info("No schema version marker; seeding store at version %s", current_version)
    else:
        _logger.info("Schema version %s != %s; reseeding store", marker, current_version)

    if dataset.schema_version is not None and dataset.schema_version != current_version:
        _logger.warning(
            "Reference dataset declares schema version %s, seeding it as %s", dataset.schema_version, current_version
        )

    table = normalization_table if normalization_table is not None else dataset.normalization
    try:
        dataset.validate_integrity()
    except ReferenceDataError as exc:
        raise BootstrapError(f"Reference dataset rejected: {exc}", cause=exc) from exc

    equipment = dataset.normalized_equipment(table)
    batch = {
        Collection.EQUIPMENT: [record.to_document() for record in equipment],
        Collection.FAULTS: [fault.to_document() for fault in dataset.faults],
        Collection.HANDOVERS: [handover.to_document() for handover in dataset.handovers],
    }

    try:
        await store.put_many(batch)
        await store.set_version_marker(current_version)
    except StoreError as exc:
        _logger.debug("Seeding failed; marker left at %r", marker, exc_info=True)
        raise BootstrapError(f"Seeding store failed: {exc}", cause=exc) from exc

    outcome = BootstrapOutcome(
        action=BootstrapAction.SEEDED,
        version=current_version,
        previous_version=marker,
        equipment_count=len(batch[Collection.EQUIPMENT]),
        fault_count=len(batch[Collection.FAULTS]),
        handover_count=len(batch[Collection.HANDOVERS]),
    )
    _logger.info(
        "Seeded store at version %s (equipment=%d faults=%d handovers=%d)",
        current_version,
        outcome.equipment_count,
        outcome.fault_count,
        outcome.handover_count,
    )
    return outcome
