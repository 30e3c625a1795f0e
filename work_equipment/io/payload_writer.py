from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from work_equipment.completion import CommitPayload

PAYLOAD_SHEETS: tuple[str, ...] = ("Work Info", "Installed", "Removed", "Loss Processing", "QA Summary")
_MAX_COLUMN_WIDTH = 40


def _to_excel_value(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    return value


def _write_dataframe(sheet: Worksheet, df: pd.DataFrame, start_row: int = 1, start_col: int = 1) -> None:
    row_idx = start_row
    columns = list(df.columns)
    if columns:
        for col_offset, header in enumerate(columns):
            sheet.cell(row=row_idx, column=start_col + col_offset, value=header)
        row_idx += 1

    for row_values in df.itertuples(index=False, name=None):
        for col_offset, value in enumerate(row_values):
            sheet.cell(row=row_idx, column=start_col + col_offset, value=_to_excel_value(value))
        row_idx += 1


def _fit_columns(sheet: Worksheet) -> None:
    for col_idx, column_cells in enumerate(sheet.iter_cols(), start=1):
        width = max((len(str(cell.value)) for cell in column_cells if cell.value is not None), default=0)
        sheet.column_dimensions[get_column_letter(col_idx)].width = min(width + 2, _MAX_COLUMN_WIDTH)


def _replace_sheet(workbook: Workbook, title: str) -> Worksheet:
    if title in workbook.sheetnames:
        existing = workbook[title]
        sheet_index = workbook.index(existing)
        workbook.remove(existing)
        return workbook.create_sheet(title=title, index=sheet_index)
    return workbook.create_sheet(title=title)


def _open_workbook(template_path: str | Path | None) -> Workbook:
    if template_path is not None:
        return load_workbook(Path(template_path))
    workbook = Workbook()
    workbook.remove(workbook.active)
    return workbook


def payload_frames(payload: CommitPayload, qa_df: pd.DataFrame | None = None) -> dict[str, pd.DataFrame]:
    work_info = pd.DataFrame(
        [{"Field": key, "Value": value} for key, value in payload.work_info.items()],
        columns=["Field", "Value"],
    )
    return {
        "Work Info": work_info,
        **payload.frames(),
        "QA Summary": qa_df if qa_df is not None else pd.DataFrame(columns=["Metric", "Value"]),
    }


def write_payload_workbook(
    output_path: str | Path,
    payload: CommitPayload,
    qa_df: pd.DataFrame | None = None,
    template_path: str | Path | None = None,
) -> Path:
    """Write the commit payload (and optional QA summary) to an xlsx workbook.

    With ``template_path`` the payload sheets replace same-named sheets in a
    copy of the template; any other template sheets are left as they are.
    """
    output = Path(output_path)
    workbook = _open_workbook(template_path)
    for title, frame in payload_frames(payload, qa_df).items():
        sheet = _replace_sheet(workbook, title)
        _write_dataframe(sheet, frame)
        _fit_columns(sheet)

    output.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(output)
    return output


def write_payload_json(output_path: str | Path, payload: CommitPayload) -> Path:
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(payload.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
    return output
