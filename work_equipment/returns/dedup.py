from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
import logging
from typing import Protocol

from work_equipment.models import PendingReturnRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReturnRequestTimestamp:
    request_timestamp: str
    return_type_code: str
    arrival_flag: str


@dataclass(frozen=True)
class ReturnRequestGroup:
    """One display row per equipment id, holding every backend row's timestamp."""

    representative: PendingReturnRequest
    all_timestamps: tuple[ReturnRequestTimestamp, ...]

    @property
    def equipment_id(self) -> str:
        return self.representative.equipment_id


@dataclass(frozen=True)
class ReturnRequestDelete:
    equipment_id: str
    request_timestamp: str


class ReturnRequestSink(Protocol):
    def delete(self, equipment_id: str, request_timestamp: str) -> None:
        ...


def deduplicate_return_requests(rows: Iterable[PendingReturnRequest]) -> list[ReturnRequestGroup]:
    """Collapse rows sharing an equipment id, first-seen order, no row dropped."""
    representatives: dict[str, PendingReturnRequest] = {}
    timestamps: dict[str, list[ReturnRequestTimestamp]] = {}
    for row in rows:
        if row.equipment_id not in representatives:
            representatives[row.equipment_id] = row
            timestamps[row.equipment_id] = []
        timestamps[row.equipment_id].append(
            ReturnRequestTimestamp(
                request_timestamp=row.request_timestamp,
                return_type_code=row.return_type_code,
                arrival_flag=row.arrival_flag,
            )
        )

    return [
        ReturnRequestGroup(representative=row, all_timestamps=tuple(timestamps[equipment_id]))
        for equipment_id, row in representatives.items()
    ]


def build_cancellation(groups: Sequence[ReturnRequestGroup]) -> list[ReturnRequestDelete]:
    return [
        ReturnRequestDelete(equipment_id=group.equipment_id, request_timestamp=entry.request_timestamp)
        for group in groups
        for entry in group.all_timestamps
    ]


def cancel_return_requests(
    groups: Sequence[ReturnRequestGroup],
    sink: ReturnRequestSink,
) -> list[ReturnRequestDelete]:
    """Delete every backend row behind the given groups; returns the deletes issued."""
    deletes = build_cancellation(groups)
    for delete in deletes:
        sink.delete(delete.equipment_id, delete.request_timestamp)
    logger.info(
        "Cancelled %d return request row(s) for %d unit(s)", len(deletes), len(groups)
    )
    return deletes
