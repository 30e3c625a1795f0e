from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import logging
from typing import Any

import pandas as pd

from work_equipment.errors import DataQualityWarning
from work_equipment.models import (
    PROVENANCE_CONTRACT_BASELINE,
    PROVENANCE_CUSTOMER_INSTALLED,
    PROVENANCE_RETURNED,
    PROVENANCE_TECHNICIAN_STOCK,
    PROVENANCES,
    Equipment,
    InstalledBinding,
    PendingReturnRequest,
    Snapshot,
    derive_ownership,
    synthetic_contract_for,
)
from work_equipment.normalize.aliases import (
    CONTRACT_ID_ALIASES,
    EQUIPMENT_FIELD_ALIASES,
    RETURN_REQUEST_FIELD_ALIASES,
    SNAPSHOT_LIST_ALIASES,
    resolve_alias,
)

logger = logging.getLogger(__name__)

_SNAPSHOT_PROVENANCE: dict[str, str] = {
    "contracts": PROVENANCE_CONTRACT_BASELINE,
    "technician_stock": PROVENANCE_TECHNICIAN_STOCK,
    "customer_installed": PROVENANCE_CUSTOMER_INSTALLED,
    "removable": PROVENANCE_RETURNED,
}


def _resolve_frame(
    records: Sequence[Mapping[str, Any]],
    field_aliases: Mapping[str, tuple[str, ...]],
) -> pd.DataFrame:
    """Resolve every canonical field per row with ``resolve_alias``; earlier aliases take precedence."""
    raw_df = pd.DataFrame([dict(record) for record in records], dtype=object)
    raw_df.index = pd.RangeIndex(len(records))

    resolved_df = pd.DataFrame(index=raw_df.index)
    for field_name, aliases in field_aliases.items():
        present = [alias for alias in aliases if alias in raw_df.columns]
        if not present:
            resolved_df[field_name] = ""
            continue
        resolved_df[field_name] = raw_df[present].apply(
            resolve_alias, axis=1, args=(tuple(present),)
        )
    return resolved_df


def _drop(reason: str, record: Mapping[str, Any] | object, warnings: list[DataQualityWarning]) -> None:
    payload = record if isinstance(record, Mapping) else {"value": record}
    warning = DataQualityWarning(reason, payload)
    warnings.append(warning)
    logger.warning("Dropped snapshot record: %s", reason)


def _split_mappings(
    records: Iterable[object],
    warnings: list[DataQualityWarning],
) -> list[Mapping[str, Any]]:
    mappings: list[Mapping[str, Any]] = []
    for record in records:
        if not isinstance(record, Mapping):
            _drop(f"record is not a mapping ({type(record).__name__})", record, warnings)
            continue
        mappings.append(record)
    return mappings


def normalize_equipment_records(
    records: Iterable[object],
    *,
    provenance: str,
) -> tuple[list[Equipment], list[DataQualityWarning]]:
    """Convert raw provider rows into canonical Equipment entities.

    Rows without an identifier are dropped with a DataQualityWarning, as are
    repeated identifiers (first occurrence wins). The rest of the batch is
    always returned.
    """
    if provenance not in PROVENANCES:
        raise ValueError(f"Unknown provenance '{provenance}'. Expected one of: {', '.join(PROVENANCES)}")

    warnings: list[DataQualityWarning] = []
    mappings = _split_mappings(records, warnings)
    if not mappings:
        return [], warnings

    field_aliases = dict(EQUIPMENT_FIELD_ALIASES)
    if provenance == PROVENANCE_CONTRACT_BASELINE:
        field_aliases["equipment_id"] = CONTRACT_ID_ALIASES
    resolved_df = _resolve_frame(mappings, field_aliases)

    entities: list[Equipment] = []
    seen_ids: set[str] = set()
    for position, values in enumerate(resolved_df.to_dict(orient="records")):
        raw = mappings[position]
        equipment_id = values["equipment_id"]
        if not equipment_id:
            _drop(f"{provenance} record has no equipment identifier", raw, warnings)
            continue
        if equipment_id in seen_ids:
            _drop(f"{provenance} record repeats equipment identifier '{equipment_id}'", raw, warnings)
            continue
        seen_ids.add(equipment_id)

        values["provenance"] = provenance
        values["ownership_flag"] = derive_ownership(
            lease_code=values["lease_code"],
            voip_customer_owned=values["voip_customer_owned"],
            model_code=values["model_code"],
        )
        entities.append(Equipment(**values))

    logger.debug(
        "Normalized %d %s record(s), dropped %d", len(entities), provenance, len(warnings)
    )
    return entities, warnings


def _snapshot_list(raw: Mapping[str, Any], list_name: str) -> list[object]:
    for alias in SNAPSHOT_LIST_ALIASES[list_name]:
        if alias not in raw:
            continue
        value = raw[alias]
        if value is None:
            return []
        if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
            raise ValueError(
                f"Snapshot list '{alias}' must be a list of records, got {type(value).__name__}"
            )
        return list(value)
    return []


def normalize_snapshot(raw: Mapping[str, Any]) -> tuple[Snapshot, list[DataQualityWarning]]:
    """Normalize the provider's four equipment lists into a Snapshot."""
    if not isinstance(raw, Mapping):
        raise ValueError(f"Snapshot must be a mapping of equipment lists, got {type(raw).__name__}")

    warnings: list[DataQualityWarning] = []
    lists: dict[str, tuple[Equipment, ...]] = {}
    for list_name, provenance in _SNAPSHOT_PROVENANCE.items():
        entities, list_warnings = normalize_equipment_records(
            _snapshot_list(raw, list_name), provenance=provenance
        )
        lists[list_name] = tuple(entities)
        warnings.extend(list_warnings)

    snapshot = Snapshot(
        contracts=lists["contracts"],
        technician_stock=lists["technician_stock"],
        customer_installed=lists["customer_installed"],
        removable=lists["removable"],
    )
    return snapshot, warnings


def bind_customer_installed(snapshot: Snapshot) -> list[InstalledBinding]:
    """Pair each customer-installed unit with a contract line of the same item category."""
    used_contract_ids: set[str] = set()
    bindings: list[InstalledBinding] = []
    for unit in snapshot.customer_installed:
        contract = next(
            (
                candidate
                for candidate in snapshot.contracts
                if candidate.equipment_id not in used_contract_ids
                and candidate.item_category_code == unit.item_category_code
            ),
            None,
        )
        if contract is None:
            contract = synthetic_contract_for(unit)
        used_contract_ids.add(contract.equipment_id)
        bindings.append(
            InstalledBinding(
                contract=contract,
                actual=unit,
                mac_address=unit.mac_address,
                install_location=unit.install_location,
            )
        )
    return bindings


def normalize_return_requests(
    records: Iterable[object],
) -> tuple[list[PendingReturnRequest], list[DataQualityWarning]]:
    """Normalize pending return-request rows; one row per (equipment id, timestamp)."""
    warnings: list[DataQualityWarning] = []
    mappings = _split_mappings(records, warnings)
    if not mappings:
        return [], warnings

    resolved_df = _resolve_frame(mappings, RETURN_REQUEST_FIELD_ALIASES)
    rows: list[PendingReturnRequest] = []
    for position, values in enumerate(resolved_df.to_dict(orient="records")):
        raw = mappings[position]
        if not values["equipment_id"]:
            _drop("return request has no equipment identifier", raw, warnings)
            continue
        if not values["request_timestamp"]:
            _drop(
                f"return request for '{values['equipment_id']}' has no request timestamp",
                raw,
                warnings,
            )
            continue
        rows.append(PendingReturnRequest(**values))
    return rows, warnings


def return_requested_ids(rows: Iterable[PendingReturnRequest]) -> frozenset[str]:
    return frozenset(row.equipment_id for row in rows)

