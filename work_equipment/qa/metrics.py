from __future__ import annotations

import pandas as pd

from work_equipment.models import CHANGE_REASON_NEW, CHANGE_REASON_REUSE, LOSS_FLAGS, Draft


def _build_sheet_rows(qa_dict: dict[str, int | bool | str]) -> list[dict[str, int | bool | str]]:
    ordered_rows = [
        ("Contract Lines", qa_dict["contract_lines"]),
        ("Installed Units", qa_dict["installed"]),
        ("New Installs", qa_dict["installed_new"]),
        ("Reused Units", qa_dict["installed_reuse"]),
        ("Unbound Placeholder Lines", qa_dict["synthetic_lines"]),
        ("Free Contract Lines", qa_dict["free_contract_lines"]),
        ("Removable Candidates", qa_dict["removable"]),
        ("Marked For Removal", qa_dict["marked_for_removal"]),
        ("Reusable Removals", qa_dict["reusable"]),
        ("Loss Flagged Removals", qa_dict["loss_flagged"]),
        ("Customer Owned Removals", qa_dict["customer_owned_removals"]),
        ("Technician Stock", qa_dict["technician_stock"]),
        ("Reuse All", qa_dict["reuse_all"]),
        ("Signal Status", qa_dict["signal_status"]),
    ]
    return [{"Metric": metric, "Value": value} for metric, value in ordered_rows]


def compute_draft_summary(draft: Draft) -> tuple[pd.DataFrame, dict[str, int | bool | str]]:
    """Summarize a draft's install/removal state as a Metric/Value frame."""
    bindings = list(draft.installed.values())
    records = draft.removal_records()
    loss_counts = {flag: sum(1 for record in records if record.status.flag(flag)) for flag in LOSS_FLAGS}

    qa_dict: dict[str, int | bool | str] = {
        "contract_lines": len(draft.contracts),
        "installed": len(bindings),
        "installed_new": sum(1 for b in bindings if b.actual.change_reason_code == CHANGE_REASON_NEW),
        "installed_reuse": sum(
            1 for b in bindings if b.actual.change_reason_code == CHANGE_REASON_REUSE
        ),
        "synthetic_lines": sum(1 for b in bindings if b.contract.is_synthetic),
        "free_contract_lines": sum(1 for contract_id in draft.contracts if contract_id not in draft.installed),
        "removable": len(draft.removable),
        "marked_for_removal": len(records),
        "reusable": sum(1 for record in records if record.status.reusable),
        "loss_flagged": sum(1 for record in records if record.status.has_loss()),
        "customer_owned_removals": sum(1 for record in records if record.equipment.is_customer_owned),
        "technician_stock": len(draft.technician_stock),
        "reuse_all": draft.reuse_all,
        "signal_status": draft.signal_status,
    }
    qa_dict.update({f"{flag}_count": count for flag, count in loss_counts.items()})

    qa_df = pd.DataFrame(_build_sheet_rows(qa_dict), columns=["Metric", "Value"])
    return qa_df, qa_dict
