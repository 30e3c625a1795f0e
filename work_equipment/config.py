from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from work_equipment.categories import DEFAULT_INSPECTION_SENTINELS
from work_equipment.completion import WorkOrderContext


@dataclass
class EngineConfig:
    store_dir: Path
    work_order: WorkOrderContext
    inspection_sentinels: list[str] = field(default_factory=lambda: list(DEFAULT_INSPECTION_SENTINELS))
    log_level: str = "INFO"
    output_path: Path = Path("data/payload.xlsx")
    payload_json_path: Path | None = None
    template_path: Path | None = None


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"'{key}' must be a non-empty string")
    return value


def _require_str_value(value: object, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"'{label}' must be a non-empty string")
    return value.strip()


def _optional_path(raw: dict[str, Any], key: str) -> Path | None:
    value = raw.get(key)
    if value is None:
        return None
    return Path(_require_str_value(value, key))


def _parse_inspection_sentinels(raw_value: object) -> list[str]:
    if raw_value is None:
        return list(DEFAULT_INSPECTION_SENTINELS)
    if not isinstance(raw_value, list) or not raw_value:
        raise ValueError("'inspection_sentinels' must be a non-empty list of strings")
    return [
        _require_str_value(item, f"inspection_sentinels[{index}]")
        for index, item in enumerate(raw_value)
    ]


def _parse_log_level(raw_value: object) -> str:
    level = _require_str_value(raw_value, "log_level").upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"'log_level' must be a logging level name. Got: {raw_value}")
    return level


def _parse_work_order(raw_value: object) -> WorkOrderContext:
    if not isinstance(raw_value, dict):
        raise ValueError("'work_order' must be an object")
    _require_str(raw_value, "worker_id")
    for key, value in raw_value.items():
        if value is not None and not isinstance(value, str):
            raise ValueError(f"'work_order.{key}' must be a string")
    return WorkOrderContext.from_dict({"work_id": "", **raw_value})


def load_config(path: Path) -> EngineConfig:
    with path.open("r", encoding="utf-8") as fh:
        raw = json.load(fh)
    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON object")

    return EngineConfig(
        store_dir=Path(_require_str(raw, "store_dir")),
        work_order=_parse_work_order(raw.get("work_order")),
        inspection_sentinels=_parse_inspection_sentinels(raw.get("inspection_sentinels")),
        log_level=_parse_log_level(raw.get("log_level", "INFO")),
        output_path=Path(raw.get("output_path", "data/payload.xlsx")),
        payload_json_path=_optional_path(raw, "payload_json_path"),
        template_path=_optional_path(raw, "template_path"),
    )


def validate_paths(config: EngineConfig) -> None:
    required_files = [config.template_path] if config.template_path is not None else []
    missing = [str(file_path) for file_path in required_files if not file_path.exists()]
    if missing:
        raise FileNotFoundError(
            "The following configured input path(s) do not exist: " + ", ".join(missing)
        )
