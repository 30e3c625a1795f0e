from __future__ import annotations

import json
from pathlib import Path
from uuid import uuid4

from openpyxl import Workbook, load_workbook

from work_equipment.completion import WorkOrderContext, assemble_completion
from work_equipment.engine import TransitionEngine
from work_equipment.io import PAYLOAD_SHEETS, write_payload_json, write_payload_workbook
from work_equipment.models import Draft, Equipment, InstalledBinding
from work_equipment.qa import compute_draft_summary
from work_equipment.store import DraftStore

_TEST_TMP_DIR = Path("data/_test_tmp")
_CONTEXT = WorkOrderContext(work_id="W1", worker_id="TECH7", work_code="02")


def _draft_with_install_and_loss() -> Draft:
    store = DraftStore()
    engine = TransitionEngine(store)
    store.reconcile(
        "W1",
        [InstalledBinding(contract=Equipment(equipment_id="C1"), actual=Equipment(equipment_id="E1"))],
        [Equipment(equipment_id="R1", serial_number="SR1")],
    )
    engine.mark_for_removal("W1", "R1")
    engine.toggle_loss_flag("W1", "R1", "lost", value=True)
    return store.load("W1")


def test_write_payload_workbook_writes_every_sheet() -> None:
    draft = _draft_with_install_and_loss()
    payload = assemble_completion(draft, _CONTEXT)
    qa_df, _ = compute_draft_summary(draft)
    output_path = _TEST_TMP_DIR / f"payload.{uuid4().hex}.xlsx"

    written = write_payload_workbook(output_path, payload, qa_df=qa_df)

    workbook = load_workbook(written)
    assert workbook.sheetnames == list(PAYLOAD_SHEETS)

    installed = workbook["Installed"]
    headers = [cell.value for cell in installed[1]]
    assert installed.cell(row=2, column=headers.index("EQT_NO") + 1).value == "E1"

    loss = workbook["Loss Processing"]
    loss_headers = [cell.value for cell in loss[1]]
    assert loss.cell(row=2, column=loss_headers.index("EQT_CHG_GB") + 1).value == "02"
    assert loss.cell(row=2, column=loss_headers.index("EQT_SERNO") + 1).value == "SR1"

    work_info = workbook["Work Info"]
    assert work_info["A1"].value == "Field"
    assert work_info["A2"].value == "WRK_ID"
    assert work_info["B2"].value == "W1"

    qa_sheet = workbook["QA Summary"]
    assert qa_sheet["A1"].value == "Metric"
    assert qa_sheet["B1"].value == "Value"


def test_write_payload_workbook_replaces_sheets_in_template_and_keeps_others() -> None:
    template_path = _TEST_TMP_DIR / f"payload.template.{uuid4().hex}.xlsx"
    _TEST_TMP_DIR.mkdir(parents=True, exist_ok=True)
    template = Workbook()
    template.active.title = "Cover"
    template["Cover"]["A1"] = "Field service export"
    stale = template.create_sheet("Installed")
    stale["A1"] = "stale"
    template.save(template_path)

    payload = assemble_completion(_draft_with_install_and_loss(), _CONTEXT)
    output_path = _TEST_TMP_DIR / f"payload.templated.{uuid4().hex}.xlsx"
    write_payload_workbook(output_path, payload, template_path=template_path)

    workbook = load_workbook(output_path)
    assert workbook["Cover"]["A1"].value == "Field service export"
    assert workbook["Installed"]["A1"].value == "EQT_NO"
    assert workbook.sheetnames.index("Installed") == 1


def test_write_payload_json_matches_payload_dict() -> None:
    payload = assemble_completion(_draft_with_install_and_loss(), _CONTEXT)
    output_path = _TEST_TMP_DIR / f"payload.{uuid4().hex}.json"

    write_payload_json(output_path, payload)

    written = json.loads(output_path.read_text(encoding="utf-8"))
    assert written == payload.to_dict()
    assert [row["EQT_NO"] for row in written["removeEquipmentList"]] == ["R1"]
    assert written["removeEquipmentList"][0]["EQT_LOSS_YN"] == "1"
