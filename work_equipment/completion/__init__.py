"""Commit payload assembly and validation."""

from work_equipment.completion.assembler import (
    LOSS_FLAG_FIELDS,
    CommitPayload,
    WorkOrderContext,
    assemble_completion,
    collect_violations,
    map_work_code_to_task_class,
)

__all__ = [
    "LOSS_FLAG_FIELDS",
    "CommitPayload",
    "WorkOrderContext",
    "assemble_completion",
    "collect_violations",
    "map_work_code_to_task_class",
]
