"""Record models for equipment, faults and handovers."""

from gsetrack.models._base import GseBaseModel, GseEnum, GseTimestamp, parse_timestamp
from gsetrack.models.equipment import EquipmentPatch, EquipmentRecord, EquipmentStatus
from gsetrack.models.fault import FaultRecord, FaultSeverity, FaultStatus
from gsetrack.models.handover import HandoverRecord

__all__ = [
    "EquipmentPatch",
    "EquipmentRecord",
    "EquipmentStatus",
    "FaultRecord",
    "FaultSeverity",
    "FaultStatus",
    "GseBaseModel",
    "GseEnum",
    "GseTimestamp",
    "HandoverRecord",
    "parse_timestamp",
]
