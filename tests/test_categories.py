from __future__ import annotations

import itertools

from work_equipment.categories import (
    CATEGORY_INSPECTION_WAITING,
    CATEGORY_OWNED,
    CATEGORY_RETURN_REQUESTED,
    classify_equipment,
    equipment_category_frame,
    sort_equipment,
)
from work_equipment.models import Equipment


def _unit(equipment_id: str, category: str = "04", **extra: str) -> Equipment:
    return Equipment(equipment_id=equipment_id, item_category_code=category, **extra)


def test_return_request_wins_over_inspection_sentinel() -> None:
    unit = _unit("E1", arrival_flag="A")

    assert classify_equipment(unit, return_requested_ids={"E1"}) == CATEGORY_RETURN_REQUESTED
    assert classify_equipment(unit) == CATEGORY_INSPECTION_WAITING


def test_return_marker_on_entity_classifies_as_return_requested() -> None:
    assert classify_equipment(_unit("E1", return_requested="Y")) == CATEGORY_RETURN_REQUESTED
    assert classify_equipment(_unit("E1", return_requested="N")) == CATEGORY_OWNED


def test_inspection_sentinels_are_configurable() -> None:
    unit = _unit("E1", arrival_flag="B")

    assert classify_equipment(unit) == CATEGORY_OWNED
    assert classify_equipment(unit, inspection_sentinels=("A", "B")) == CATEGORY_INSPECTION_WAITING


def test_sort_orders_by_category_rank_then_item_category() -> None:
    units = [
        _unit("R1", "03"),
        _unit("I1", "05", arrival_flag="A"),
        _unit("O1", "05"),
        _unit("O2", "04"),
        _unit("I2", "03", arrival_flag="A"),
    ]

    ordered = sort_equipment(units, return_requested_ids={"R1"})

    assert [(category, unit.equipment_id) for category, unit in ordered] == [
        (CATEGORY_OWNED, "O2"),
        (CATEGORY_OWNED, "O1"),
        (CATEGORY_INSPECTION_WAITING, "I2"),
        (CATEGORY_INSPECTION_WAITING, "I1"),
        (CATEGORY_RETURN_REQUESTED, "R1"),
    ]


def test_sort_is_identical_for_every_input_permutation() -> None:
    units = [
        _unit("E3", "04", model_code="M1", serial_number="S2"),
        _unit("E1", "04", model_code="M1", serial_number="S1"),
        _unit("E2", "04", model_code="M0", serial_number="S9"),
        _unit("E4", "04", arrival_flag="A"),
        _unit("E5", "03", return_requested="Y"),
    ]
    expected = [unit.equipment_id for _, unit in sort_equipment(units)]

    for permutation in itertools.permutations(units):
        assert [unit.equipment_id for _, unit in sort_equipment(permutation)] == expected
    assert expected == ["E2", "E1", "E3", "E4", "E5"]


def test_equipment_category_frame_exposes_sorted_view() -> None:
    frame = equipment_category_frame(
        [_unit("R1", "03"), _unit("O1", "05", serial_number="S1")],
        return_requested_ids={"R1"},
    )

    assert frame["equipment_id"].tolist() == ["O1", "R1"]
    assert frame["category"].tolist() == [CATEGORY_OWNED, CATEGORY_RETURN_REQUESTED]
    assert frame["category_rank"].tolist() == [1, 3]
    assert frame.loc[0, "serial_number"] == "S1"


def test_equipment_category_frame_handles_empty_input() -> None:
    frame = equipment_category_frame([])

    assert frame.empty
    assert "category" in frame.columns
