"""Equipment entities and the per-work-item draft."""

from work_equipment.models.draft import (
    SIGNAL_FAIL,
    SIGNAL_IDLE,
    SIGNAL_PROCESSING,
    SIGNAL_STATUSES,
    SIGNAL_SUCCESS,
    Draft,
    Snapshot,
)
from work_equipment.models.equipment import (
    CHANGE_REASON_NEW,
    CHANGE_REASON_REUSE,
    LOSS_FLAGS,
    OWNERSHIP_CARRIER,
    OWNERSHIP_CUSTOMER,
    PROVENANCE_CONTRACT_BASELINE,
    PROVENANCE_CUSTOMER_INSTALLED,
    PROVENANCE_RETURNED,
    PROVENANCE_TECHNICIAN_STOCK,
    PROVENANCES,
    SYNTHETIC_CONTRACT_PREFIX,
    Equipment,
    InstalledBinding,
    PendingReturnRequest,
    RemovalRecord,
    RemovalStatus,
    derive_ownership,
    synthetic_contract_for,
)

__all__ = [
    "CHANGE_REASON_NEW",
    "CHANGE_REASON_REUSE",
    "LOSS_FLAGS",
    "OWNERSHIP_CARRIER",
    "OWNERSHIP_CUSTOMER",
    "PROVENANCES",
    "PROVENANCE_CONTRACT_BASELINE",
    "PROVENANCE_CUSTOMER_INSTALLED",
    "PROVENANCE_RETURNED",
    "PROVENANCE_TECHNICIAN_STOCK",
    "SIGNAL_FAIL",
    "SIGNAL_IDLE",
    "SIGNAL_PROCESSING",
    "SIGNAL_STATUSES",
    "SIGNAL_SUCCESS",
    "SYNTHETIC_CONTRACT_PREFIX",
    "Draft",
    "Equipment",
    "InstalledBinding",
    "PendingReturnRequest",
    "RemovalRecord",
    "RemovalStatus",
    "Snapshot",
    "derive_ownership",
    "synthetic_contract_for",
]
