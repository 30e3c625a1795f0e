from __future__ import annotations

import json
from pathlib import Path

import pytest

from work_equipment.config import load_config, validate_paths

_TEST_TMP_DIR = Path("data/_test_tmp")


def _write_config(filename: str, payload: dict[str, object]) -> Path:
    _TEST_TMP_DIR.mkdir(parents=True, exist_ok=True)
    config_path = _TEST_TMP_DIR / filename
    config_path.write_text(json.dumps(payload), encoding="utf-8")
    return config_path


def test_load_config_applies_defaults() -> None:
    config_path = _write_config(
        "config.defaults.json",
        {"store_dir": "data/_test_tmp/drafts", "work_order": {"worker_id": "TECH7"}},
    )

    config = load_config(config_path)

    assert config.store_dir == Path("data/_test_tmp/drafts")
    assert config.inspection_sentinels == ["A"]
    assert config.log_level == "INFO"
    assert config.output_path == Path("data/payload.xlsx")
    assert config.payload_json_path is None
    assert config.template_path is None
    assert config.work_order.worker_id == "TECH7"
    assert config.work_order.work_id == ""


def test_load_config_reads_full_settings() -> None:
    config_path = _write_config(
        "config.full.json",
        {
            "store_dir": "data/_test_tmp/drafts",
            "inspection_sentinels": ["A", "B"],
            "log_level": "debug",
            "output_path": "data/_test_tmp/out.xlsx",
            "payload_json_path": "data/_test_tmp/out.json",
            "work_order": {
                "work_id": "W1",
                "worker_id": "TECH7",
                "customer_id": "CUST1",
                "work_code": "02",
                "so_id": "SO100",
            },
        },
    )

    config = load_config(config_path)

    assert config.inspection_sentinels == ["A", "B"]
    assert config.log_level == "DEBUG"
    assert config.payload_json_path == Path("data/_test_tmp/out.json")
    assert config.work_order.work_code == "02"
    assert config.work_order.so_id == "SO100"


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({"work_order": {"worker_id": "T"}}, "'store_dir' must be a non-empty string"),
        ({"store_dir": "d"}, "'work_order' must be an object"),
        ({"store_dir": "d", "work_order": {"work_id": "W1"}}, "'worker_id' must be a non-empty string"),
        (
            {"store_dir": "d", "work_order": {"worker_id": "T", "work_code": 2}},
            "'work_order.work_code' must be a string",
        ),
        (
            {"store_dir": "d", "work_order": {"worker_id": "T"}, "inspection_sentinels": []},
            "'inspection_sentinels' must be a non-empty list of strings",
        ),
        (
            {"store_dir": "d", "work_order": {"worker_id": "T"}, "inspection_sentinels": ["A", " "]},
            "'inspection_sentinels\\[1\\]' must be a non-empty string",
        ),
        (
            {"store_dir": "d", "work_order": {"worker_id": "T"}, "log_level": "chatty"},
            "'log_level' must be a logging level name",
        ),
    ],
)
def test_load_config_rejects_invalid_values(payload: dict[str, object], message: str) -> None:
    config_path = _write_config("config.invalid.json", payload)

    with pytest.raises(ValueError, match=message):
        load_config(config_path)


def test_validate_paths_reports_missing_template() -> None:
    config_path = _write_config(
        "config.template.json",
        {
            "store_dir": "data/_test_tmp/drafts",
            "template_path": "data/_test_tmp/does-not-exist.xlsx",
            "work_order": {"worker_id": "TECH7"},
        },
    )

    with pytest.raises(FileNotFoundError, match="does-not-exist.xlsx"):
        validate_paths(load_config(config_path))
