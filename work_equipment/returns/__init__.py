"""Pending return-request grouping and cancellation."""

from work_equipment.returns.dedup import (
    ReturnRequestDelete,
    ReturnRequestGroup,
    ReturnRequestSink,
    ReturnRequestTimestamp,
    build_cancellation,
    cancel_return_requests,
    deduplicate_return_requests,
)

__all__ = [
    "ReturnRequestDelete",
    "ReturnRequestGroup",
    "ReturnRequestSink",
    "ReturnRequestTimestamp",
    "build_cancellation",
    "cancel_return_requests",
    "deduplicate_return_requests",
]
