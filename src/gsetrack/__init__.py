"""gsetrack - Versioned local store and shared state for ground support equipment tracking."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("gsetrack")
except PackageNotFoundError:
    __version__ = "0+local"
from gsetrack._constants import SCHEMA_VERSION
from gsetrack.app import TrackerApp, start_tracker
from gsetrack.bootstrap import BootstrapAction, BootstrapOutcome, ensure_initialized
from gsetrack.config import TrackerConfig
from gsetrack.exceptions import (
    BootstrapError,
    DomainError,
    DuplicateEquipmentError,
    EquipmentNotFoundError,
    EquipmentUnavailableError,
    FaultAlreadyResolvedError,
    FaultNotFoundError,
    GseConfigError,
    GseError,
    HolderMismatchError,
    InvalidInputError,
    InvalidTransitionError,
    ReferenceDataError,
    StoreError,
)
from gsetrack.ingestion.dataset import ReferenceDataset, bundled_reference_dataset, load_reference_dataset
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
from gsetrack.state.events import ChangeKind, StateChange, StateSnapshot, StoreSummary
from gsetrack.state.store import SharedStateStore
from gsetrack.storage import Collection, MemoryStore, PersistentStore, SqliteStore

__all__ = [
    "__version__",
    "SCHEMA_VERSION",
    "BootstrapAction",
    "BootstrapError",
    "BootstrapOutcome",
    "ChangeKind",
    "Collection",
    "DomainError",
    "DuplicateEquipmentError",
    "EquipmentNotFoundError",
    "EquipmentPatch",
    "EquipmentRecord",
    "EquipmentStatus",
    "EquipmentUnavailableError",
    "FaultAlreadyResolvedError",
    "FaultNotFoundError",
    "FaultRecord",
    "FaultSeverity",
    "FaultStatus",
    "GseConfigError",
    "GseError",
    "HandoverRecord",
    "HolderMismatchError",
    "InvalidInputError",
    "InvalidTransitionError",
    "MemoryStore",
    "NormalizationTable",
    "PersistentStore",
    "ReferenceDataError",
    "ReferenceDataset",
    "SharedStateStore",
    "SqliteStore",
    "StateChange",
    "StateSnapshot",
    "StoreError",
    "StoreSummary",
    "TrackerApp",
    "TrackerConfig",
    "bundled_reference_dataset",
    "ensure_initialized",
    "load_reference_dataset",
    "start_tracker",
]
