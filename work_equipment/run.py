from __future__ import annotations

import argparse
from dataclasses import replace
import json
from pathlib import Path
from typing import Any, Sequence

from work_equipment.completion import assemble_completion
from work_equipment.config import EngineConfig, load_config, validate_paths
from work_equipment.errors import ValidationError
from work_equipment.io import write_payload_json, write_payload_workbook
from work_equipment.logging_config import configure_logging
from work_equipment.normalize import normalize_return_requests, normalize_snapshot
from work_equipment.qa import compute_draft_summary
from work_equipment.returns import deduplicate_return_requests
from work_equipment.session import WorkEquipmentSession
from work_equipment.store import DraftStore, JsonFileStore

_QA_PRINT_ORDER: tuple[tuple[str, str], ...] = (
    ("contract_lines", "Contract Lines"),
    ("installed", "Installed Units"),
    ("installed_new", "New Installs"),
    ("installed_reuse", "Reused Units"),
    ("synthetic_lines", "Unbound Placeholder Lines"),
    ("removable", "Removable Candidates"),
    ("marked_for_removal", "Marked For Removal"),
    ("reusable", "Reusable Removals"),
    ("loss_flagged", "Loss Flagged Removals"),
    ("technician_stock", "Technician Stock"),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reconcile a work item's equipment draft and build its commit payload")
    parser.add_argument("--config", required=True, help="Path to local JSON config")
    parser.add_argument("--work-item", required=True, help="Work item id whose draft is reconciled")
    parser.add_argument("--snapshot", help="Path to a JSON equipment snapshot for the work item")
    parser.add_argument("--return-requests", help="Path to a JSON list of pending return-request rows")
    parser.add_argument("--out", help="Override output workbook path from config")
    parser.add_argument("--payload-json", help="Override payload JSON path from config")
    parser.add_argument("--log-level", help="Override log level from config")
    parser.add_argument(
        "--discard",
        action="store_true",
        help="Discard the stored draft for the work item and exit",
    )
    return parser


def _build_effective_config(config: EngineConfig, args: argparse.Namespace) -> EngineConfig:
    return replace(
        config,
        output_path=Path(args.out) if args.out else config.output_path,
        payload_json_path=Path(args.payload_json) if args.payload_json else config.payload_json_path,
        log_level=args.log_level.upper() if args.log_level else config.log_level,
        work_order=replace(config.work_order, work_id=config.work_order.work_id or args.work_item),
    )


def _read_json(path: Path, label: str) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"{label} file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _print_qa_summary(qa_dict: dict[str, int | bool | str]) -> None:
    print("QA Summary")
    for metric_key, label in _QA_PRINT_ORDER:
        print(f"- {label}: {qa_dict.get(metric_key, '')}")


def _print_category_view(session: WorkEquipmentSession, work_item_id: str, rows_path: Path) -> None:
    raw_rows = _read_json(rows_path, "Return-request")
    if not isinstance(raw_rows, list):
        raise ValueError(f"Return-request file must contain a JSON list: {rows_path}")
    rows, _ = normalize_return_requests(raw_rows)
    groups = deduplicate_return_requests(rows)
    view = session.equipment_view(work_item_id, groups)
    print(f"Return requests: {len(rows)} row(s) across {len(groups)} unit(s)")
    print("Technician Equipment")
    for row in view.itertuples(index=False):
        print(f"- [{row.category}] {row.item_category_code} {row.model_code} {row.serial_number} ({row.equipment_id})")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config_path = Path(args.config)
    if not config_path.exists():
        parser.error(f"Config file not found: {config_path}")

    try:
        config = load_config(config_path)
    except (OSError, ValueError) as exc:
        parser.error(f"Failed to load config: {exc}")

    effective_config = _build_effective_config(config, args)
    try:
        validate_paths(effective_config)
        configure_logging(effective_config.log_level)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    store = DraftStore(JsonFileStore(effective_config.store_dir))
    session = WorkEquipmentSession(store, inspection_sentinels=effective_config.inspection_sentinels)

    if args.discard:
        session.discard(args.work_item)
        print(f"Draft discarded for work item: {args.work_item}")
        return 0

    if not args.snapshot:
        parser.error("--snapshot is required unless --discard is given")

    try:
        raw_snapshot = _read_json(Path(args.snapshot), "Snapshot")
        snapshot, warnings = normalize_snapshot(raw_snapshot)
    except (OSError, ValueError) as exc:
        parser.error(f"Failed to read snapshot: {exc}")

    draft = session.apply_snapshot(args.work_item, snapshot)
    if warnings:
        print(f"Dropped {len(warnings)} snapshot record(s); see log for details")

    try:
        payload = assemble_completion(draft, effective_config.work_order)
    except ValidationError as exc:
        parser.error(str(exc))

    qa_df, qa_dict = compute_draft_summary(draft)
    try:
        output_path = write_payload_workbook(
            effective_config.output_path,
            payload,
            qa_df=qa_df,
            template_path=effective_config.template_path,
        )
        if effective_config.payload_json_path is not None:
            json_path = write_payload_json(effective_config.payload_json_path, payload)
            print(f"Payload JSON written to: {json_path}")
    except PermissionError:
        parser.error(
            "Failed to write output workbook at "
            f"'{effective_config.output_path}': permission denied. "
            "Close the file if it is open in Excel or use --out to write to a different path."
        )
    except OSError as exc:
        parser.error(f"Failed to write output at '{effective_config.output_path}': {exc}")

    print(f"Output written to: {output_path}")
    _print_qa_summary(qa_dict)

    if args.return_requests:
        try:
            _print_category_view(session, args.work_item, Path(args.return_requests))
        except (OSError, ValueError) as exc:
            parser.error(f"Failed to read return requests: {exc}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
