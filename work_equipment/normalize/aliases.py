from __future__ import annotations

from collections.abc import Mapping
from typing import Any

# Ordered alias candidates per canonical Equipment field. The first
# non-blank alias present in a raw record wins.
EQUIPMENT_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "equipment_id": ("EQT_NO", "id", "eqtNo"),
    "item_category_code": ("ITEM_MID_CD", "ITM_MID_CD", "itemMidCd"),
    "item_category_name": ("ITEM_MID_NM", "ITEM_NM", "EQT_NM", "itemMidNm"),
    "model_code": ("EQT_CL_CD", "EQT_CL", "eqtClCd"),
    "model_name": ("EQT_CL_NM", "EQT_NM", "eqtClNm"),
    "serial_number": ("EQT_SERNO", "SERIAL_NO", "serialNumber"),
    "mac_address": ("MAC_ADDRESS", "MAC_ADDR", "MAC", "TA_MAC_ADDRESS", "macAddress"),
    "service_component_id": ("SVC_CMPS_ID", "PROD_CMPS_ID"),
    "basic_product_component_id": ("BASIC_PROD_CMPS_ID",),
    "equipment_product_component_id": ("EQT_PROD_CMPS_ID",),
    "product_code": ("PROD_CD",),
    "service_code": ("SVC_CD",),
    "so_id": ("SO_ID",),
    "mst_so_id": ("MST_SO_ID",),
    "lease_code": ("LENT_YN",),
    "lease_type": ("LENT",),
    "old_lease_flag": ("OLD_LENT_YN",),
    "sale_amount": ("EQT_SALE_AMT",),
    "installment_period": ("ITLLMT_PRD",),
    "use_status_code": ("EQT_USE_STAT_CD",),
    "interface_detail_id": ("IF_DTL_ID",),
    "voip_customer_owned": ("VOIP_CUSTOWN_EQT",),
    "install_location": ("INSTL_LCTN", "INSTL_LOC", "installLocation"),
    "arrival_flag": ("EQT_USE_ARR_YN",),
    "return_requested": ("RETURN_REQ_YN", "RTN_REQ_YN"),
}

# Contract baseline lines are keyed by their service component, not by a
# physical unit number.
CONTRACT_ID_ALIASES: tuple[str, ...] = ("SVC_CMPS_ID", "PROD_CMPS_ID", "id")

RETURN_REQUEST_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "equipment_id": ("EQT_NO", "id", "eqtNo"),
    "request_timestamp": ("REQ_DT", "REQ_DTTM", "RETURN_REQ_DT", "requestTimestamp"),
    "return_type_code": ("RETURN_TP", "RTN_TP", "returnTypeCode"),
    "arrival_flag": ("EQT_USE_ARR_YN", "arrivalFlag"),
    "serial_number": ("EQT_SERNO", "SERIAL_NO", "serialNumber"),
    "mac_address": ("MAC_ADDRESS", "MAC_ADDR", "MAC", "macAddress"),
    "item_category_code": ("ITEM_MID_CD", "ITM_MID_CD", "itemMidCd"),
    "item_category_name": ("ITEM_MID_NM", "ITEM_NM", "itemMidNm"),
    "model_code": ("EQT_CL_CD", "EQT_CL", "eqtClCd"),
    "model_name": ("EQT_CL_NM", "EQT_NM", "eqtClNm"),
    "so_id": ("SO_ID",),
}

SNAPSHOT_LIST_ALIASES: dict[str, tuple[str, ...]] = {
    "contracts": ("contractEquipments", "output2"),
    "technician_stock": ("technicianEquipments", "output3"),
    "customer_installed": ("customerEquipments", "output4"),
    "removable": ("removeEquipments", "output5"),
}


def is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float) and value != value:
        return True
    return False


def resolve_alias(record: Mapping[str, Any], aliases: tuple[str, ...]) -> str:
    """Return the first non-blank value among ``aliases`` as stripped text, else ``""``."""
    for alias in aliases:
        value = record.get(alias)
        if is_blank(value):
            continue
        return str(value).strip()
    return ""
