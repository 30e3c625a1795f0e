"""Raw snapshot rows to canonical equipment entities."""

from work_equipment.normalize.aliases import (
    EQUIPMENT_FIELD_ALIASES,
    RETURN_REQUEST_FIELD_ALIASES,
    SNAPSHOT_LIST_ALIASES,
    resolve_alias,
)
from work_equipment.normalize.snapshot import (
    bind_customer_installed,
    normalize_equipment_records,
    normalize_return_requests,
    normalize_snapshot,
    return_requested_ids,
)

__all__ = [
    "EQUIPMENT_FIELD_ALIASES",
    "RETURN_REQUEST_FIELD_ALIASES",
    "SNAPSHOT_LIST_ALIASES",
    "bind_customer_installed",
    "normalize_equipment_records",
    "normalize_return_requests",
    "normalize_snapshot",
    "resolve_alias",
    "return_requested_ids",
]
