"""Payload export to xlsx and JSON."""

from work_equipment.io.payload_writer import (
    PAYLOAD_SHEETS,
    payload_frames,
    write_payload_json,
    write_payload_workbook,
)

__all__ = [
    "PAYLOAD_SHEETS",
    "payload_frames",
    "write_payload_json",
    "write_payload_workbook",
]
