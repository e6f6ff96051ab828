"""Custom exception hierarchy for gsetrack."""

from __future__ import annotations


class GseError(Exception):
    """Base exception for all gsetrack errors."""


class GseConfigError(GseError):
    """Invalid or missing configuration."""


class StoreError(GseError):
    """Durability-layer failure (I/O, quota, serialization).

    Never retried automatically. Raised during bootstrap it is wrapped in
    :class:`BootstrapError`; raised during a mutation the in-memory change
    has already been rolled back.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        collection: str = "",
    ) -> None:
        self.operation = operation
        self.collection = collection
        super().__init__(message)


class ReferenceDataError(GseError):
    """The reference dataset is malformed (duplicate ids, orphaned references)."""


class BootstrapError(GseError):
    """Seeding the persistent store failed; the application must not start.

    ``cause`` holds the underlying :class:`StoreError` or
    :class:`ReferenceDataError`.
    """

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class DomainError(GseError):
    """A mutation violated operational policy.

    Recoverable by the caller; the store state is left untouched.
    """


class EquipmentNotFoundError(DomainError):
    """No equipment with the given id exists."""

    def __init__(self, equipment_id: str) -> None:
        self.equipment_id = equipment_id
        super().__init__(f"Unknown equipment: {equipment_id}")


class FaultNotFoundError(DomainError):
    """No fault with the given id exists."""

    def __init__(self, fault_id: str) -> None:
        self.fault_id = fault_id
        super().__init__(f"Unknown fault: {fault_id}")


class DuplicateEquipmentError(DomainError):
    """An equipment record with the same id already exists."""

    def __init__(self, equipment_id: str) -> None:
        self.equipment_id = equipment_id
        super().__init__(f"Equipment already exists: {equipment_id}")


class EquipmentUnavailableError(DomainError):
    """Equipment cannot be handed over in its current status."""

    def __init__(self, equipment_id: str, status: str) -> None:
        self.equipment_id = equipment_id
        self.status = status
        super().__init__(f"Equipment {equipment_id} cannot be handed over while {status}")


class HolderMismatchError(DomainError):
    """The handover names a different current holder than the store has."""

    def __init__(self, equipment_id: str, *, expected: str, given: str) -> None:
        self.equipment_id = equipment_id
        self.expected = expected
        self.given = given
        super().__init__(f"Equipment {equipment_id} is held by {expected!r}, not {given!r}")


class InvalidTransitionError(DomainError):
    """A status transition is not allowed from the record's current status."""


class FaultAlreadyResolvedError(InvalidTransitionError):
    """The fault is already resolved and no longer accepts status changes."""

    def __init__(self, fault_id: str) -> None:
        self.fault_id = fault_id
        super().__init__(f"Fault {fault_id} is already resolved")


class InvalidInputError(DomainError):
    """A mutation argument is empty or malformed."""
