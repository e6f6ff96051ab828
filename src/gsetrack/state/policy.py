"""Operational policy for state transitions.

This module contains *no* I/O and no store bookkeeping. The shared state
store asks it whether a transition is allowed and raises the resulting
:class:`~gsetrack.exceptions.DomainError` before touching any state.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime

from gsetrack.exceptions import FaultAlreadyResolvedError, InvalidTransitionError
from gsetrack.models import EquipmentRecord, EquipmentStatus, FaultRecord, FaultStatus, HandoverRecord

#: Equipment in these states cannot change hands.
HANDOVER_BLOCKED_STATUSES: frozenset[EquipmentStatus] = frozenset(
    {EquipmentStatus.UNDER_MAINTENANCE, EquipmentStatus.OUT_OF_SERVICE}
)

#: Equipment in these states is pulled into maintenance when a fault is reported.
FAULT_MAINTENANCE_STATUSES: frozenset[EquipmentStatus] = frozenset(
    {EquipmentStatus.AVAILABLE, EquipmentStatus.IN_USE}
)

_FAULT_TRANSITIONS: dict[FaultStatus, frozenset[FaultStatus]] = {
    FaultStatus.OPEN: frozenset({FaultStatus.IN_PROGRESS, FaultStatus.RESOLVED}),
    FaultStatus.IN_PROGRESS: frozenset({FaultStatus.RESOLVED}),
    FaultStatus.RESOLVED: frozenset(),
}


def can_hand_over(status: EquipmentStatus) -> bool:
    return status not in HANDOVER_BLOCKED_STATUSES


def holders_match(current: str, given: str) -> bool:
    """Holder names compare case-insensitively, ignoring surrounding whitespace."""
    return current.strip().casefold() == given.strip().casefold()


def check_fault_transition(fault: FaultRecord, target: FaultStatus) -> None:
    """Raise if *fault* may not move to *target*."""
    if fault.status == FaultStatus.RESOLVED:
        raise FaultAlreadyResolvedError(fault.id)
    if target not in _FAULT_TRANSITIONS[fault.status]:
        raise InvalidTransitionError(f"Fault {fault.id} cannot move from {fault.status} to {target}")


def next_handover_timestamp(now: datetime, history: Sequence[HandoverRecord]) -> datetime:
    """Clamp *now* so an equipment's handover log never goes back in time."""
    if not history:
        return now
    last = history[-1].timestamp
    return now if now >= last else last


def integrity_problems(
    equipment: Iterable[EquipmentRecord],
    faults: Iterable[FaultRecord],
    handovers: Iterable[HandoverRecord],
) -> list[str]:
    """Describe every duplicate id and orphaned reference (empty when consistent)."""
    problems: list[str] = []

    equipment_counts = Counter(record.id for record in equipment)
    problems.extend(f"duplicate equipment id {eid!r}" for eid, n in equipment_counts.items() if n > 1)

    fault_list = list(faults)
    fault_counts = Counter(fault.id for fault in fault_list)
    problems.extend(f"duplicate fault id {fid!r}" for fid, n in fault_counts.items() if n > 1)
    problems.extend(
        f"fault {fault.id!r} references unknown equipment {fault.equipment_id!r}"
        for fault in fault_list
        if fault.equipment_id not in equipment_counts
    )

    handover_list = list(handovers)
    handover_counts = Counter(handover.id for handover in handover_list)
    problems.extend(f"duplicate handover id {hid!r}" for hid, n in handover_counts.items() if n > 1)

    last_seen: dict[str, datetime] = {}
    for handover in handover_list:
        if handover.equipment_id not in equipment_counts:
            problems.append(
                f"handover {handover.id!r} references unknown equipment {handover.equipment_id!r}"
            )
            continue
        previous = last_seen.get(handover.equipment_id)
        if previous is not None and handover.timestamp < previous:
            problems.append(f"handover {handover.id!r} is older than the preceding handover")
        last_seen[handover.equipment_id] = handover.timestamp

    return problems
