from __future__ import annotations

from collections.abc import Mapping
import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from work_equipment.models.equipment import (
    Equipment,
    InstalledBinding,
    RemovalRecord,
    RemovalStatus,
)

DRAFT_FORMAT_VERSION = 1

SIGNAL_IDLE = "idle"
SIGNAL_PROCESSING = "processing"
SIGNAL_SUCCESS = "success"
SIGNAL_FAIL = "fail"
SIGNAL_STATUSES: tuple[str, ...] = (SIGNAL_IDLE, SIGNAL_PROCESSING, SIGNAL_SUCCESS, SIGNAL_FAIL)


@dataclass(frozen=True)
class Snapshot:
    """Normalized server view of one work item's equipment lists."""

    contracts: tuple[Equipment, ...] = ()
    technician_stock: tuple[Equipment, ...] = ()
    customer_installed: tuple[Equipment, ...] = ()
    removable: tuple[Equipment, ...] = ()


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _equipment_map(data: Mapping[str, Any] | None) -> dict[str, Equipment]:
    return {str(key): Equipment.from_dict(value) for key, value in (data or {}).items()}


@dataclass
class Draft:
    """Local in-progress equipment edits for one work item.

    ``removal_status`` is the only place the loss/reuse bits live; removal
    records are joined from ``marked_for_removal`` on read. ``released_lines``
    holds contract lines the technician emptied locally, which a refresh must
    not fill again.
    """

    work_item_id: str
    installed: dict[str, InstalledBinding] = field(default_factory=dict)
    marked_for_removal: dict[str, Equipment] = field(default_factory=dict)
    removal_status: dict[str, RemovalStatus] = field(default_factory=dict)
    removal_origin: dict[str, str] = field(default_factory=dict)
    released_lines: set[str] = field(default_factory=set)
    removable: dict[str, Equipment] = field(default_factory=dict)
    contracts: dict[str, Equipment] = field(default_factory=dict)
    technician_stock: dict[str, Equipment] = field(default_factory=dict)
    reuse_all: bool = False
    signal_status: str = SIGNAL_IDLE
    signal_result: str = ""
    updated_at: str | None = field(default=None, compare=False)

    @property
    def is_empty(self) -> bool:
        return not (self.installed or self.marked_for_removal or self.removable or self.contracts)

    def status_for(self, equipment_id: str) -> RemovalStatus:
        return self.removal_status.get(equipment_id, RemovalStatus())

    def removal_records(self) -> list[RemovalRecord]:
        return [
            RemovalRecord(equipment=equipment, status=self.status_for(equipment_id))
            for equipment_id, equipment in self.marked_for_removal.items()
        ]

    def binding_for_equipment(self, equipment_id: str) -> InstalledBinding | None:
        for binding in self.installed.values():
            if binding.equipment_id == equipment_id:
                return binding
        return None

    def installed_equipment_ids(self) -> set[str]:
        return {binding.equipment_id for binding in self.installed.values()}

    def touch(self) -> None:
        self.updated_at = _utc_now()

    def copy(self) -> Draft:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": DRAFT_FORMAT_VERSION,
            "work_item_id": self.work_item_id,
            "installed": {key: binding.to_dict() for key, binding in self.installed.items()},
            "marked_for_removal": {
                key: equipment.to_dict() for key, equipment in self.marked_for_removal.items()
            },
            "removal_status": {key: status.to_dict() for key, status in self.removal_status.items()},
            "removal_origin": dict(self.removal_origin),
            "released_lines": sorted(self.released_lines),
            "removable": {key: equipment.to_dict() for key, equipment in self.removable.items()},
            "contracts": {key: equipment.to_dict() for key, equipment in self.contracts.items()},
            "technician_stock": {
                key: equipment.to_dict() for key, equipment in self.technician_stock.items()
            },
            "reuse_all": self.reuse_all,
            "signal_status": self.signal_status,
            "signal_result": self.signal_result,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Draft:
        version = data.get("version", DRAFT_FORMAT_VERSION)
        if version != DRAFT_FORMAT_VERSION:
            raise ValueError(
                f"Unsupported draft format version {version!r}; expected {DRAFT_FORMAT_VERSION}"
            )
        work_item_id = str(data.get("work_item_id") or "").strip()
        if not work_item_id:
            raise ValueError("Draft requires a non-empty 'work_item_id'")

        signal_status = str(data.get("signal_status") or SIGNAL_IDLE)
        if signal_status not in SIGNAL_STATUSES:
            raise ValueError(
                f"Unknown signal_status '{signal_status}'. Expected one of: {', '.join(SIGNAL_STATUSES)}"
            )

        return cls(
            work_item_id=work_item_id,
            installed={
                str(key): InstalledBinding.from_dict(value)
                for key, value in (data.get("installed") or {}).items()
            },
            marked_for_removal=_equipment_map(data.get("marked_for_removal")),
            removal_status={
                str(key): RemovalStatus.from_dict(value)
                for key, value in (data.get("removal_status") or {}).items()
            },
            removal_origin={
                str(key): str(value) for key, value in (data.get("removal_origin") or {}).items()
            },
            released_lines={str(value) for value in (data.get("released_lines") or [])},
            removable=_equipment_map(data.get("removable")),
            contracts=_equipment_map(data.get("contracts")),
            technician_stock=_equipment_map(data.get("technician_stock")),
            reuse_all=bool(data.get("reuse_all", False)),
            signal_status=signal_status,
            signal_result=str(data.get("signal_result") or ""),
            updated_at=data.get("updated_at"),
        )
