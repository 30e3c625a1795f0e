from __future__ import annotations

from collections.abc import Collection, Iterable

import pandas as pd

from work_equipment.models import Equipment

CATEGORY_OWNED = "OWNED"
CATEGORY_INSPECTION_WAITING = "INSPECTION_WAITING"
CATEGORY_RETURN_REQUESTED = "RETURN_REQUESTED"

CATEGORY_RANK: dict[str, int] = {
    CATEGORY_OWNED: 1,
    CATEGORY_INSPECTION_WAITING: 2,
    CATEGORY_RETURN_REQUESTED: 3,
}

DEFAULT_INSPECTION_SENTINELS: tuple[str, ...] = ("A",)

_RETURN_MARKER_VALUES = frozenset({"Y", "1", "TRUE"})

CATEGORY_FRAME_COLUMNS: tuple[str, ...] = (
    "category",
    "category_rank",
    "equipment_id",
    "item_category_code",
    "item_category_name",
    "model_code",
    "model_name",
    "serial_number",
    "mac_address",
    "provenance",
    "ownership_flag",
)


def classify_equipment(
    entity: Equipment,
    *,
    return_requested_ids: Collection[str] = frozenset(),
    inspection_sentinels: Collection[str] = DEFAULT_INSPECTION_SENTINELS,
) -> str:
    if (
        entity.return_requested.upper() in _RETURN_MARKER_VALUES
        or entity.equipment_id in return_requested_ids
    ):
        return CATEGORY_RETURN_REQUESTED
    if entity.arrival_flag and entity.arrival_flag in inspection_sentinels:
        return CATEGORY_INSPECTION_WAITING
    return CATEGORY_OWNED


def _sort_key(category: str, entity: Equipment) -> tuple[object, ...]:
    return (
        CATEGORY_RANK[category],
        entity.item_category_code,
        entity.model_code,
        entity.serial_number,
        entity.equipment_id,
        tuple(entity.to_dict().values()),
    )


def sort_equipment(
    entities: Iterable[Equipment],
    *,
    return_requested_ids: Collection[str] = frozenset(),
    inspection_sentinels: Collection[str] = DEFAULT_INSPECTION_SENTINELS,
) -> list[tuple[str, Equipment]]:
    """Classify and order entities; any input permutation yields the same list."""
    classified = [
        (
            classify_equipment(
                entity,
                return_requested_ids=return_requested_ids,
                inspection_sentinels=inspection_sentinels,
            ),
            entity,
        )
        for entity in entities
    ]
    return sorted(classified, key=lambda item: _sort_key(*item))


def equipment_category_frame(
    entities: Iterable[Equipment],
    *,
    return_requested_ids: Collection[str] = frozenset(),
    inspection_sentinels: Collection[str] = DEFAULT_INSPECTION_SENTINELS,
) -> pd.DataFrame:
    ordered = sort_equipment(
        entities,
        return_requested_ids=return_requested_ids,
        inspection_sentinels=inspection_sentinels,
    )
    rows = [
        {
            "category": category,
            "category_rank": CATEGORY_RANK[category],
            **{column: getattr(entity, column) for column in CATEGORY_FRAME_COLUMNS[2:]},
        }
        for category, entity in ordered
    ]
    return pd.DataFrame(rows, columns=list(CATEGORY_FRAME_COLUMNS))
