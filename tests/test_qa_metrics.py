from __future__ import annotations

from work_equipment.engine import TransitionEngine
from work_equipment.models import Equipment, InstalledBinding
from work_equipment.qa import compute_draft_summary
from work_equipment.store import DraftStore


def test_compute_draft_summary_counts_install_and_removal_state() -> None:
    store = DraftStore()
    engine = TransitionEngine(store)
    contracts = [
        Equipment(equipment_id="C1", item_category_code="04"),
        Equipment(equipment_id="C2", item_category_code="05"),
        Equipment(equipment_id="C3", item_category_code="03"),
    ]
    store.reconcile(
        "W1",
        [
            InstalledBinding(contract=contracts[0], actual=Equipment(equipment_id="E1", item_category_code="04")),
            InstalledBinding(contract=contracts[1], actual=Equipment(equipment_id="E2", item_category_code="05")),
        ],
        [Equipment(equipment_id="R1"), Equipment(equipment_id="R2")],
        contracts=contracts,
        technician_stock=[Equipment(equipment_id="T1")],
    )
    engine.mark_for_removal("W1", "E2")
    engine.reuse("W1", "E2")
    engine.mark_all_for_removal("W1")
    engine.toggle_loss_flag("W1", "R1", "lost", value=True)
    engine.toggle_loss_flag("W1", "R1", "cable_lost", value=True)
    engine.set_reusable("W1", "R2", True)
    engine.install(
        "W1",
        InstalledBinding(
            contract=Equipment(equipment_id="unbound:N1"),
            actual=Equipment(equipment_id="N1"),
        ),
    )

    qa_df, qa_dict = compute_draft_summary(store.load("W1"))

    assert qa_dict["contract_lines"] == 3
    assert qa_dict["installed"] == 3
    assert qa_dict["installed_new"] == 1
    assert qa_dict["installed_reuse"] == 1
    assert qa_dict["synthetic_lines"] == 1
    assert qa_dict["free_contract_lines"] == 1
    assert qa_dict["removable"] == 2
    assert qa_dict["marked_for_removal"] == 2
    assert qa_dict["reusable"] == 1
    assert qa_dict["loss_flagged"] == 1
    assert qa_dict["lost_count"] == 1
    assert qa_dict["cable_lost_count"] == 1
    assert qa_dict["technician_stock"] == 1
    assert qa_dict["reuse_all"] is False
    assert list(qa_df.columns) == ["Metric", "Value"]
    assert qa_df.loc[qa_df["Metric"] == "Marked For Removal", "Value"].iloc[0] == 2


def test_compute_draft_summary_for_empty_draft() -> None:
    qa_df, qa_dict = compute_draft_summary(DraftStore().load("W1"))

    assert qa_dict["installed"] == 0
    assert qa_dict["signal_status"] == "idle"
    assert len(qa_df) == 14
