from __future__ import annotations

import pytest

from work_equipment.completion import (
    LOSS_FLAG_FIELDS,
    WorkOrderContext,
    assemble_completion,
    map_work_code_to_task_class,
)
from work_equipment.engine import TransitionEngine
from work_equipment.errors import ValidationError
from work_equipment.models import (
    OWNERSHIP_CUSTOMER,
    PROVENANCE_RETURNED,
    Draft,
    Equipment,
    InstalledBinding,
    RemovalStatus,
)
from work_equipment.store import DraftStore

_CONTEXT = WorkOrderContext(
    work_id="W1",
    worker_id="TECH7",
    customer_id="CUST1",
    contract_id="CTRT1",
    work_code="02",
    receipt_id="RCPT1",
    so_id="SO100",
    product_code="PROD-ORDER",
)


def _contract(contract_id: str, category: str = "04", **extra: str) -> Equipment:
    return Equipment(equipment_id=contract_id, item_category_code=category, **extra)


def _unit(equipment_id: str, category: str = "04", **extra: str) -> Equipment:
    return Equipment(equipment_id=equipment_id, item_category_code=category, **extra)


@pytest.mark.parametrize(
    ("work_code", "expected"),
    [
        ("01", "01"),
        ("05", "01"),
        ("06", "01"),
        ("07", "01"),
        ("09", "01"),
        ("02", "02"),
        ("08", "02"),
        ("03", "03"),
        ("04", "04"),
        ("99", "01"),
        ("", "01"),
    ],
)
def test_map_work_code_to_task_class(work_code: str, expected: str) -> None:
    assert map_work_code_to_task_class(work_code) == expected


def test_installed_rows_apply_backend_fallbacks() -> None:
    store = DraftStore()
    engine = TransitionEngine(store)
    engine.install(
        "W1",
        InstalledBinding(
            contract=_contract("SC1", service_code="SVC-C", product_code="PROD-C"),
            actual=_unit("E1", serial_number="S1", mac_address="UNIT-MAC"),
            mac_address="AA:BB",
            install_location="Office",
        ),
    )

    payload = assemble_completion(store.load("W1"), _CONTEXT)

    row = payload.installed[0]
    assert row["EQT_NO"] == "E1"
    assert row["EQT_SERNO"] == "S1"
    assert row["MAC_ADDRESS"] == "AA:BB"
    assert row["INSTL_LCTN"] == "Office"
    assert row["SVC_CMPS_ID"] == "SC1"
    assert row["EQT_PROD_CMPS_ID"] == "SC1"
    assert row["PROD_CD"] == "PROD-C"
    assert row["SVC_CD"] == "SVC-C"
    assert row["EQT_SALE_AMT"] == "0"
    assert row["OLD_LENT_YN"] == "N"
    assert row["LENT"] == "10"
    assert row["ITLLMT_PRD"] == "00"
    assert row["EQT_USE_STAT_CD"] == "1"
    assert row["EQT_CHG_GB"] == "1"
    assert row["VOIP_CUSTOWN_EQT"] == "N"
    assert row["SO_ID"] == "SO100"
    assert row["MST_SO_ID"] == "SO100"
    assert row["REG_UID"] == "TECH7"


def test_reused_unit_is_sent_with_reuse_change_code() -> None:
    store = DraftStore()
    engine = TransitionEngine(store)
    store.reconcile(
        "W1",
        [InstalledBinding(contract=_contract("SC1"), actual=_unit("E1"))],
        [],
        contracts=[_contract("SC1")],
    )
    engine.mark_for_removal("W1", "E1")
    engine.reuse("W1", "E1")

    payload = assemble_completion(store.load("W1"), _CONTEXT)

    assert [row["EQT_CHG_GB"] for row in payload.installed] == ["3"]
    assert payload.removed == ()


def test_placeholder_contract_id_is_not_sent_as_service_component() -> None:
    draft = Draft(
        work_item_id="W1",
        installed={
            "unbound:E1": InstalledBinding(
                contract=Equipment(equipment_id="unbound:E1"),
                actual=_unit("E1", service_component_id="SC-OWN"),
            )
        },
    )

    row = assemble_completion(draft, _CONTEXT).installed[0]

    assert row["SVC_CMPS_ID"] == "SC-OWN"
    assert row["EQT_PROD_CMPS_ID"] == ""
    assert row["PROD_CD"] == "PROD-ORDER"


def test_removal_rows_carry_flags_task_class_and_loss_processing_rows() -> None:
    store = DraftStore()
    engine = TransitionEngine(store)
    store.reconcile("W1", [], [_unit("R1"), _unit("R2"), _unit("R3")])
    engine.mark_all_for_removal("W1")
    engine.toggle_loss_flag("W1", "R1", "lost", value=True)
    engine.toggle_loss_flag("W1", "R1", "cradle_lost", value=True)
    engine.set_reusable("W1", "R2", True)

    payload = assemble_completion(store.load("W1"), _CONTEXT)

    removed = {row["EQT_NO"]: row for row in payload.removed}
    assert removed["R1"]["EQT_LOSS_YN"] == "1"
    assert removed["R1"]["EQT_CRDL_LOSS_YN"] == "1"
    assert removed["R1"]["PART_LOSS_BRK_YN"] == "0"
    assert removed["R1"]["REUSE_YN"] == "0"
    assert removed["R2"]["REUSE_YN"] == "1"
    assert all(removed["R3"][column] == "0" for column in LOSS_FLAG_FIELDS.values())
    assert {row["CRR_TSK_CL"] for row in payload.removed} == {"02"}
    assert {row["CRR_ID"] for row in payload.removed} == {"01"}
    assert [row["EQT_NO"] for row in payload.loss_processing] == ["R1"]
    assert payload.loss_processing[0]["EQT_CHG_GB"] == "02"
    assert payload.loss_processing[0]["REUSE_YN"] == "0"


def test_assemble_completion_does_not_mutate_draft_and_payload_is_read_only() -> None:
    store = DraftStore()
    store.reconcile("W1", [InstalledBinding(contract=_contract("SC1"), actual=_unit("E1"))], [])
    draft = store.load("W1")
    snapshot = draft.copy()

    payload = assemble_completion(draft, _CONTEXT)

    assert draft == snapshot
    with pytest.raises(TypeError):
        payload.installed[0]["EQT_NO"] = "X"  # type: ignore[index]
    assert payload.to_dict()["workInfo"]["WRK_ID"] == "W1"
    assert payload.to_dict()["workInfo"]["REUSE_YN"] == "N"


def test_validation_lists_every_violation() -> None:
    draft = Draft(
        work_item_id="W1",
        installed={
            "C1": InstalledBinding(contract=_contract("C1"), actual=_unit("E1")),
            "C2": InstalledBinding(contract=_contract("C2"), actual=_unit("E1")),
            "C3": InstalledBinding(contract=_contract("C3"), actual=_unit("E2")),
        },
        marked_for_removal={
            "E2": _unit("E2", provenance=PROVENANCE_RETURNED),
            "E3": _unit("E3", provenance=PROVENANCE_RETURNED, ownership_flag=OWNERSHIP_CUSTOMER),
        },
        removal_status={"E3": RemovalStatus(lost=True)},
    )

    with pytest.raises(ValidationError) as exc_info:
        assemble_completion(draft, WorkOrderContext(work_id="W1", worker_id=""))

    violations = exc_info.value.violations
    assert len(violations) == 4
    assert "blank worker_id" in violations[0]
    assert "'E1' is bound to both 'C1' and 'C2'" in violations[1]
    assert "'E2' is both installed and marked for removal" in violations[2]
    assert "customer-owned equipment 'E3'" in violations[3]
    assert "failed validation (4)" in str(exc_info.value)


def test_work_order_context_from_dict_rejects_unknown_fields() -> None:
    with pytest.raises(ValueError, match="Unknown work order field\\(s\\): shoe_size"):
        WorkOrderContext.from_dict({"work_id": "W1", "worker_id": "T1", "shoe_size": "9"})
