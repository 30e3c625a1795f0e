from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
import logging
from types import MappingProxyType
from typing import Any

import pandas as pd

from work_equipment.errors import ValidationError
from work_equipment.models import (
    CHANGE_REASON_REUSE,
    LOSS_FLAGS,
    Draft,
    Equipment,
    InstalledBinding,
    RemovalRecord,
)

logger = logging.getLogger(__name__)

# Backend column per loss flag, in payload order.
LOSS_FLAG_FIELDS: dict[str, str] = {
    "lost": "EQT_LOSS_YN",
    "adapter_lost": "PART_LOSS_BRK_YN",
    "remote_lost": "EQT_BRK_YN",
    "cable_lost": "EQT_CABL_LOSS_YN",
    "cradle_lost": "EQT_CRDL_LOSS_YN",
}

CHANGE_CODE_NEW = "1"
CHANGE_CODE_REUSE = "3"
CHANGE_CODE_LOSS = "02"

_TASK_CLASS_BY_WORK_CODE: dict[str, str] = {
    "01": "01",
    "05": "01",
    "06": "01",
    "07": "01",
    "09": "01",
    "02": "02",
    "08": "02",
    "03": "03",
    "04": "04",
}
_DEFAULT_TASK_CLASS = "01"
_DEFAULT_CARRIER_ID = "01"


def map_work_code_to_task_class(work_code: str) -> str:
    """Map a work order code to the carrier task class sent as CRR_TSK_CL."""
    return _TASK_CLASS_BY_WORK_CODE.get(work_code.strip(), _DEFAULT_TASK_CLASS)


@dataclass(frozen=True)
class WorkOrderContext:
    work_id: str
    worker_id: str
    customer_id: str = ""
    contract_id: str = ""
    work_code: str = ""
    receipt_id: str = ""
    so_id: str = ""
    mst_so_id: str = ""
    carrier_id: str = ""
    product_code: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WorkOrderContext:
        known = {f.name for f in fields(cls)}
        unknown = sorted(str(key) for key in data if key not in known)
        if unknown:
            raise ValueError(f"Unknown work order field(s): {', '.join(unknown)}")
        return cls(**{key: "" if value is None else str(value).strip() for key, value in data.items()})


Row = Mapping[str, str]


@dataclass(frozen=True)
class CommitPayload:
    work_info: Row
    installed: tuple[Row, ...]
    removed: tuple[Row, ...]
    loss_processing: tuple[Row, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "workInfo": dict(self.work_info),
            "equipmentList": [dict(row) for row in self.installed],
            "removeEquipmentList": [dict(row) for row in self.removed],
            "lossProcessingList": [dict(row) for row in self.loss_processing],
        }

    def frames(self) -> dict[str, pd.DataFrame]:
        return {
            "Installed": pd.DataFrame([dict(row) for row in self.installed], dtype=object),
            "Removed": pd.DataFrame([dict(row) for row in self.removed], dtype=object),
            "Loss Processing": pd.DataFrame(
                [dict(row) for row in self.loss_processing], dtype=object
            ),
        }


def _yn(value: bool) -> str:
    return "1" if value else "0"


def _freeze(row: dict[str, str]) -> Row:
    return MappingProxyType(dict(row))


def _contract_service_component(contract: Equipment, actual: Equipment) -> str:
    if contract.service_component_id:
        return contract.service_component_id
    if not contract.is_synthetic:
        return contract.equipment_id
    return actual.service_component_id


def _identity_fields(entity: Equipment, context: WorkOrderContext) -> dict[str, str]:
    return {
        "EQT_NO": entity.equipment_id,
        "EQT_SERNO": entity.serial_number,
        "ITEM_MID_CD": entity.item_category_code,
        "EQT_CL_CD": entity.model_code,
        "WRK_ID": context.work_id,
        "CUST_ID": context.customer_id,
        "CTRT_ID": context.contract_id,
        "WRK_CD": context.work_code,
        "REG_UID": context.worker_id,
    }


def _installed_row(binding: InstalledBinding, context: WorkOrderContext) -> dict[str, str]:
    actual = binding.actual
    contract = binding.contract
    contract_line_id = "" if contract.is_synthetic else contract.equipment_id
    row = _identity_fields(actual, context)
    row.update(
        {
            "MAC_ADDRESS": binding.mac_address or actual.mac_address,
            "INSTL_LCTN": binding.install_location or actual.install_location,
            "SVC_CMPS_ID": _contract_service_component(contract, actual),
            "BASIC_PROD_CMPS_ID": actual.basic_product_component_id
            or contract.basic_product_component_id,
            "EQT_PROD_CMPS_ID": actual.equipment_product_component_id or contract_line_id,
            "PROD_CD": actual.product_code or contract.product_code or context.product_code,
            "SVC_CD": actual.service_code or contract.service_code,
            "EQT_SALE_AMT": actual.sale_amount or "0",
            "MST_SO_ID": actual.mst_so_id or context.mst_so_id or context.so_id,
            "SO_ID": actual.so_id or context.so_id,
            "OLD_LENT_YN": actual.old_lease_flag or "N",
            "LENT": actual.lease_type or "10",
            "LENT_YN": actual.lease_code or "10",
            "ITLLMT_PRD": actual.installment_period or "00",
            "EQT_USE_STAT_CD": actual.use_status_code or "1",
            "EQT_CHG_GB": CHANGE_CODE_REUSE
            if actual.change_reason_code == CHANGE_REASON_REUSE
            else CHANGE_CODE_NEW,
            "IF_DTL_ID": actual.interface_detail_id,
            "VOIP_CUSTOWN_EQT": actual.voip_customer_owned or "N",
        }
    )
    return row


def _removed_row(record: RemovalRecord, context: WorkOrderContext) -> dict[str, str]:
    entity = record.equipment
    row = _identity_fields(entity, context)
    row.update(
        {
            "MAC_ADDRESS": entity.mac_address,
            "SVC_CMPS_ID": entity.service_component_id,
            "BASIC_PROD_CMPS_ID": entity.basic_product_component_id,
            "PROD_CD": entity.product_code or context.product_code,
            "SVC_CD": entity.service_code,
            "SO_ID": entity.so_id or context.so_id,
            "MST_SO_ID": entity.mst_so_id or context.mst_so_id or context.so_id,
            "CRR_TSK_CL": map_work_code_to_task_class(context.work_code),
            "RCPT_ID": context.receipt_id,
            "CRR_ID": context.carrier_id or _DEFAULT_CARRIER_ID,
            "WRKR_ID": context.worker_id,
        }
    )
    for flag, column in LOSS_FLAG_FIELDS.items():
        row[column] = _yn(record.status.flag(flag))
    row["REUSE_YN"] = _yn(record.status.reusable)
    return row


def _work_info(draft: Draft, context: WorkOrderContext) -> dict[str, str]:
    return {
        "WRK_ID": context.work_id,
        "WRK_CD": context.work_code,
        "CUST_ID": context.customer_id,
        "CTRT_ID": context.contract_id,
        "RCPT_ID": context.receipt_id,
        "SO_ID": context.so_id,
        "CRR_ID": context.carrier_id or _DEFAULT_CARRIER_ID,
        "WRKR_ID": context.worker_id,
        "REG_UID": context.worker_id,
        "REUSE_YN": "Y" if draft.reuse_all else "N",
    }


def collect_violations(draft: Draft, context: WorkOrderContext) -> list[str]:
    violations: list[str] = []
    if not context.work_id:
        violations.append("work order has a blank work_id")
    if not context.worker_id:
        violations.append("work order has a blank worker_id")

    bound_on: dict[str, str] = {}
    for contract_id, binding in draft.installed.items():
        if not contract_id or not binding.contract_id:
            violations.append(f"installed binding for '{binding.equipment_id}' has a blank contract id")
        if not binding.equipment_id:
            violations.append(f"contract line '{contract_id}' is bound to a blank equipment id")
            continue
        if binding.equipment_id in bound_on:
            violations.append(
                f"equipment '{binding.equipment_id}' is bound to both "
                f"'{bound_on[binding.equipment_id]}' and '{contract_id}'"
            )
        else:
            bound_on[binding.equipment_id] = contract_id

    for record in draft.removal_records():
        equipment_id = record.equipment_id
        if not equipment_id:
            violations.append("removal list contains a blank equipment id")
            continue
        if equipment_id in bound_on:
            violations.append(f"equipment '{equipment_id}' is both installed and marked for removal")
        flagged = [flag for flag in LOSS_FLAGS if record.status.flag(flag)]
        if flagged and record.equipment.is_customer_owned:
            violations.append(
                f"customer-owned equipment '{equipment_id}' carries loss flag(s): {', '.join(flagged)}"
            )
        if flagged and record.status.reusable:
            violations.append(
                f"reusable equipment '{equipment_id}' carries loss flag(s): {', '.join(flagged)}"
            )
    return violations


def assemble_completion(draft: Draft, context: WorkOrderContext) -> CommitPayload:
    """Build the immutable commit payload from a draft without mutating it."""
    violations = collect_violations(draft, context)
    if violations:
        logger.warning(
            "Work item %s: commit payload rejected with %d violation(s)",
            draft.work_item_id,
            len(violations),
        )
        raise ValidationError(violations)

    installed = tuple(_freeze(_installed_row(binding, context)) for binding in draft.installed.values())
    removed_rows: list[Row] = []
    loss_rows: list[Row] = []
    for record in draft.removal_records():
        row = _removed_row(record, context)
        removed_rows.append(_freeze(row))
        if record.status.has_loss():
            loss_rows.append(_freeze({**row, "EQT_CHG_GB": CHANGE_CODE_LOSS, "REUSE_YN": "0"}))

    payload = CommitPayload(
        work_info=_freeze(_work_info(draft, context)),
        installed=installed,
        removed=tuple(removed_rows),
        loss_processing=tuple(loss_rows),
    )
    logger.info(
        "Work item %s: assembled %d installed, %d removed, %d loss row(s)",
        draft.work_item_id,
        len(payload.installed),
        len(payload.removed),
        len(payload.loss_processing),
    )
    return payload
