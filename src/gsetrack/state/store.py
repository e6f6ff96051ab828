"""Shared in-memory state store.

This is the only component allowed to mutate equipment, fault and handover
records, and the only writer back to the persistent store. Views read
snapshots from it and subscribe to change notifications.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections import Counter
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from gsetrack._constants import FAULT_ID_PREFIX, HANDOVER_ID_PREFIX
from gsetrack.exceptions import (
    DuplicateEquipmentError,
    EquipmentNotFoundError,
    EquipmentUnavailableError,
    FaultNotFoundError,
    HolderMismatchError,
    InvalidInputError,
    InvalidTransitionError,
    StoreError,
)
from gsetrack.ingestion.normalize import NormalizationTable
from gsetrack.models import (
    EquipmentPatch,
    EquipmentRecord,
    EquipmentStatus,
    FaultRecord,
    FaultSeverity,
    FaultStatus,
    HandoverRecord,
)
from gsetrack.models._base import utcnow
from gsetrack.models.equipment import touch
from gsetrack.state.events import ChangeKind, StateChange, StateSnapshot, StoreSummary
from gsetrack.state.policy import (
    FAULT_MAINTENANCE_STATUSES,
    can_hand_over,
    check_fault_transition,
    holders_match,
    integrity_problems,
    next_handover_timestamp,
)
from gsetrack.storage.base import Collection, Document, PersistentStore

_logger = logging.getLogger(__name__)

Subscriber = Callable[[StateSnapshot, StateChange], None]


def _random_id(prefix: str) -> str:
    return f"{prefix}-{secrets.token_hex(4).upper()}"


def _require_text(value: str | None, field_name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidInputError(f"{field_name} must be non-empty")
    return text


class SharedStateStore:
    """Session-wide projection of the persistent store.

    Every mutation runs under one lock: validate against current state
    (raising :class:`~gsetrack.exceptions.DomainError` before any change),
    update memory, persist the touched collections in one atomic write,
    then notify subscribers. If the write fails the in-memory change is
    rolled back and the :class:`~gsetrack.exceptions.StoreError` propagates.

    Usage::

        state = SharedStateStore(persistent, dataset.normalization)
        await state.load()
        unsubscribe = state.subscribe(lambda snapshot, change: ...)
        await state.record_handover("EQ-1", "Depot", "Gate-3", "ok")
    """

    def __init__(
        self,
        persistent: PersistentStore,
        normalization: NormalizationTable | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[str], str] = _random_id,
        fault_marks_maintenance: bool = True,
    ) -> None:
        self._persistent = persistent
        self._normalization = normalization if normalization is not None else NormalizationTable()
        self._clock = clock
        self._id_factory = id_factory
        self._fault_marks_maintenance = fault_marks_maintenance
        self._lock = asyncio.Lock()
        self._equipment: dict[str, EquipmentRecord] = {}
        self._faults: dict[str, FaultRecord] = {}
        self._handovers: list[HandoverRecord] = []
        self._subscribers: list[Subscriber] = []
        self._revision = 0
        self._loaded = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def revision(self) -> int:
        """Incremented by every successful mutation."""
        return self._revision

    async def load(self) -> None:
        """Replace in-memory state with the persisted collections."""
        async with self._lock:
            equipment = await self._read(Collection.EQUIPMENT, EquipmentRecord)
            faults = await self._read(Collection.FAULTS, FaultRecord)
            handovers = await self._read(Collection.HANDOVERS, HandoverRecord)

            problems = integrity_problems(equipment, faults, handovers)
            if problems:
                raise StoreError("Persisted data is inconsistent: " + "; ".join(problems), operation="load")

            self._equipment = {record.id: record for record in equipment}
            self._faults = {fault.id: fault for fault in faults}
            self._handovers = handovers
            self._loaded = True
            _logger.debug(
                "Loaded state (equipment=%d faults=%d handovers=%d)",
                len(self._equipment),
                len(self._faults),
                len(self._handovers),
            )

    async def _read(self, collection: Collection, model: type[Any]) -> list[Any]:
        documents = await self._persistent.get(collection)
        try:
            return [model.model_validate(document) for document in documents]
        except ValidationError as exc:
            raise StoreError(
                f"Corrupt {collection.value} record: {exc}", operation="load", collection=collection.value
            ) from exc

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call *callback* after every successful mutation.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _notify(self, change: StateChange) -> None:
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snapshot, change)
            except Exception:
                _logger.warning("State subscriber %r failed on %s", callback, change.kind, exc_info=True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            revision=self._revision,
            equipment=tuple(self._equipment.values()),
            faults=tuple(self._faults.values()),
            handovers=tuple(self._handovers),
        )

    def list_equipment(self, *, status: EquipmentStatus | None = None) -> list[EquipmentRecord]:
        records = list(self._equipment.values())
        if status is None:
            return records
        return [record for record in records if record.status == status]

    def find_equipment(self, equipment_id: str) -> EquipmentRecord | None:
        return self._equipment.get(equipment_id)

    def get_equipment(self, equipment_id: str) -> EquipmentRecord:
        record = self._equipment.get(equipment_id)
        if record is None:
            raise EquipmentNotFoundError(equipment_id)
        return record

    def list_faults(
        self,
        *,
        equipment_id: str | None = None,
        status: FaultStatus | None = None,
        include_archived: bool = True,
    ) -> list[FaultRecord]:
        return [
            fault
            for fault in self._faults.values()
            if (equipment_id is None or fault.equipment_id == equipment_id)
            and (status is None or fault.status == status)
            and (include_archived or not fault.archived)
        ]

    def get_fault(self, fault_id: str) -> FaultRecord:
        fault = self._faults.get(fault_id)
        if fault is None:
            raise FaultNotFoundError(fault_id)
        return fault

    def list_handovers(self, *, equipment_id: str | None = None) -> list[HandoverRecord]:
        if equipment_id is None:
            return list(self._handovers)
        return [handover for handover in self._handovers if handover.equipment_id == equipment_id]

    def summary(self) -> StoreSummary:
        equipment_by_status = Counter(record.status for record in self._equipment.values())
        faults_by_status = Counter(fault.status for fault in self._faults.values())
        return StoreSummary(
            equipment_total=len(self._equipment),
            equipment_by_status=dict(equipment_by_status),
            faults_by_status=dict(faults_by_status),
            unresolved_faults=sum(n for status, n in faults_by_status.items() if status != FaultStatus.RESOLVED),
            handovers_total=len(self._handovers),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def record_handover(
        self,
        equipment_id: str,
        from_holder: str,
        to_holder: str,
        notes: str = "",
    ) -> HandoverRecord:
        """Log a custody transfer and move the equipment to *to_holder*.

        Raises
        ------
        EquipmentUnavailableError
            The equipment is under maintenance or out of service.
        HolderMismatchError
            *from_holder* is not the current holder (compared ignoring case
            and surrounding whitespace). A stale view must re-read the
            equipment and retry.
        InvalidInputError
            *to_holder* is blank.
        """
        async with self._lock:
            equipment = self.get_equipment(equipment_id)
            if not can_hand_over(equipment.status):
                raise EquipmentUnavailableError(equipment_id, equipment.status.value)
            target = _require_text(to_holder, "to_holder")
            source = (from_holder or "").strip()
            if not holders_match(equipment.holder, source):
                raise HolderMismatchError(equipment_id, expected=equipment.holder, given=source)

            now = self._clock()
            handover = HandoverRecord(
                id=self._new_id(HANDOVER_ID_PREFIX, {h.id for h in self._handovers}),
                equipment_id=equipment_id,
                from_holder=source,
                to_holder=target,
                timestamp=next_handover_timestamp(now, self.list_handovers(equipment_id=equipment_id)),
                notes=(notes or "").strip(),
            )
            equipment_map = dict(self._equipment)
            equipment_map[equipment_id] = touch(equipment, now, holder=target)

            await self._commit(
                ChangeKind.HANDOVER_RECORDED,
                equipment_id=equipment_id,
                record_id=handover.id,
                equipment=equipment_map,
                handovers=[*self._handovers, handover],
            )
            _logger.debug("Handover %s: %s %s -> %s", handover.id, equipment_id, source, target)
            return handover

    async def report_fault(
        self,
        equipment_id: str,
        description: str,
        severity: FaultSeverity | str = FaultSeverity.MEDIUM,
        *,
        reported_by: str | None = None,
    ) -> FaultRecord:
        """Open a fault against existing equipment.

        With ``fault_marks_maintenance`` enabled, available or in-use
        equipment moves to ``under-maintenance`` in the same write.
        """
        async with self._lock:
            equipment = self.get_equipment(equipment_id)
            text = _require_text(description, "description")
            try:
                level = FaultSeverity(severity)
            except ValueError as exc:
                raise InvalidInputError(f"Unknown severity: {severity!r}") from exc

            now = self._clock()
            fault = FaultRecord(
                id=self._new_id(FAULT_ID_PREFIX, set(self._faults)),
                equipment_id=equipment_id,
                description=text,
                severity=level,
                status=FaultStatus.OPEN,
                reported_at=now,
                reported_by=reported_by,
            )
            faults = {**self._faults, fault.id: fault}

            equipment_map: dict[str, EquipmentRecord] | None = None
            if self._fault_marks_maintenance and equipment.status in FAULT_MAINTENANCE_STATUSES:
                equipment_map = dict(self._equipment)
                equipment_map[equipment_id] = touch(equipment, now, status=EquipmentStatus.UNDER_MAINTENANCE)

            await self._commit(
                ChangeKind.FAULT_REPORTED,
                equipment_id=equipment_id,
                record_id=fault.id,
                equipment=equipment_map,
                faults=faults,
            )
            _logger.debug("Fault %s reported on %s (%s)", fault.id, equipment_id, level)
            return fault

    async def start_fault_work(self, fault_id: str) -> FaultRecord:
        """Move an open fault to ``in-progress``."""
        return await self._transition_fault(fault_id, FaultStatus.IN_PROGRESS, ChangeKind.FAULT_STARTED)

    async def resolve_fault(self, fault_id: str) -> FaultRecord:
        """Resolve a fault. Equipment status is left for management to revert."""
        return await self._transition_fault(fault_id, FaultStatus.RESOLVED, ChangeKind.FAULT_RESOLVED)

    async def _transition_fault(self, fault_id: str, target: FaultStatus, kind: ChangeKind) -> FaultRecord:
        async with self._lock:
            fault = self.get_fault(fault_id)
            check_fault_transition(fault, target)
            update: dict[str, Any] = {"status": target}
            if target == FaultStatus.RESOLVED:
                update["resolved_at"] = max(self._clock(), fault.reported_at)
            updated = fault.model_copy(update=update)
            await self._commit(
                kind,
                equipment_id=fault.equipment_id,
                record_id=fault_id,
                faults={**self._faults, fault_id: updated},
            )
            return updated

    async def archive_fault(self, fault_id: str) -> FaultRecord:
        """Archive a resolved fault."""
        async with self._lock:
            fault = self.get_fault(fault_id)
            if not fault.is_resolved:
                raise InvalidTransitionError(f"Fault {fault_id} must be resolved before archiving")
            if fault.archived:
                raise InvalidTransitionError(f"Fault {fault_id} is already archived")
            updated = fault.model_copy(update={"archived": True})
            await self._commit(
                ChangeKind.FAULT_ARCHIVED,
                equipment_id=fault.equipment_id,
                record_id=fault_id,
                faults={**self._faults, fault_id: updated},
            )
            return updated

    async def update_equipment(
        self,
        equipment_id: str,
        patch: EquipmentPatch | Mapping[str, Any],
    ) -> EquipmentRecord:
        """Apply a management patch; changed ``type``/``mobility`` are re-normalized."""
        if not isinstance(patch, EquipmentPatch):
            try:
                patch = EquipmentPatch.model_validate(dict(patch))
            except ValidationError as exc:
                raise InvalidInputError(f"Invalid equipment patch: {exc}") from exc

        async with self._lock:
            equipment = self.get_equipment(equipment_id)
            changes = self._normalization.apply_patch(patch.changes())
            if not changes:
                return equipment
            updated = touch(equipment, self._clock(), **changes)
            await self._commit(
                ChangeKind.EQUIPMENT_UPDATED,
                equipment_id=equipment_id,
                record_id=equipment_id,
                equipment={**self._equipment, equipment_id: updated},
            )
            _logger.debug("Equipment %s updated: %s", equipment_id, sorted(changes))
            return updated

    async def add_equipment(self, record: EquipmentRecord | Mapping[str, Any]) -> EquipmentRecord:
        """Register new equipment (management action)."""
        if not isinstance(record, EquipmentRecord):
            try:
                record = EquipmentRecord.model_validate(dict(record))
            except ValidationError as exc:
                raise InvalidInputError(f"Invalid equipment record: {exc}") from exc

        async with self._lock:
            if record.id in self._equipment:
                raise DuplicateEquipmentError(record.id)
            created = self._normalization.apply(record).model_copy(update={"updated_at": self._clock()})
            await self._commit(
                ChangeKind.EQUIPMENT_ADDED,
                equipment_id=created.id,
                record_id=created.id,
                equipment={**self._equipment, created.id: created},
            )
            return created

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _new_id(self, prefix: str, taken: set[str]) -> str:
        while True:
            candidate = self._id_factory(prefix)
            if candidate not in taken:
                return candidate

    async def _commit(
        self,
        kind: ChangeKind,
        *,
        equipment_id: str,
        record_id: str,
        equipment: dict[str, EquipmentRecord] | None = None,
        faults: dict[str, FaultRecord] | None = None,
        handovers: list[HandoverRecord] | None = None,
    ) -> StateChange:
        """Swap in new collections, persist them, and roll back on failure.

        Must be called with the lock held.
        """
        previous = (self._equipment, self._faults, self._handovers)
        batch: dict[Collection, list[Document]] = {}
        if equipment is not None:
            self._equipment = equipment
            batch[Collection.EQUIPMENT] = [record.to_document() for record in equipment.values()]
        if faults is not None:
            self._faults = faults
            batch[Collection.FAULTS] = [fault.to_document() for fault in faults.values()]
        if handovers is not None:
            self._handovers = handovers
            batch[Collection.HANDOVERS] = [handover.to_document() for handover in handovers]

        committed = False
        try:
            await self._persistent.put_many(batch)
            committed = True
        except StoreError:
            _logger.warning("Persisting %s for %s failed; change rolled back", kind, equipment_id)
            raise
        finally:
            # Also covers cancellation while the write is pending.
            if not committed:
                self._equipment, self._faults, self._handovers = previous

        self._revision += 1
        change = StateChange(kind=kind, equipment_id=equipment_id, record_id=record_id, revision=self._revision)
        self._notify(change)
        return change
