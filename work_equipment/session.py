from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass
import logging
import threading
from typing import Any, Protocol

import pandas as pd

from work_equipment.categories import DEFAULT_INSPECTION_SENTINELS, equipment_category_frame
from work_equipment.completion import CommitPayload, WorkOrderContext, assemble_completion
from work_equipment.engine import TransitionEngine
from work_equipment.errors import CommitInProgressError, DataQualityWarning
from work_equipment.models import Draft, Snapshot
from work_equipment.normalize import (
    bind_customer_installed,
    normalize_return_requests,
    normalize_snapshot,
)
from work_equipment.returns import (
    ReturnRequestDelete,
    ReturnRequestGroup,
    ReturnRequestSink,
    cancel_return_requests,
    deduplicate_return_requests,
)
from work_equipment.store import DraftStore

logger = logging.getLogger(__name__)


class SnapshotProvider(Protocol):
    def fetch(self, work_item_id: str) -> Mapping[str, Any]:
        """Return the raw equipment lists for one work item."""
        ...


@dataclass(frozen=True)
class CommitResult:
    success: bool
    code: str = ""
    message: str = ""


class CommitBoundary(Protocol):
    def submit(self, payload: CommitPayload) -> CommitResult:
        ...


class ReturnRequestSource(Protocol):
    def list_rows(self) -> list[Mapping[str, Any]]:
        ...


class WorkEquipmentSession:
    """Wires snapshot refresh, transitions and commit for one technician session.

    Commits are single-flight per work item. The draft is cleared only after
    the commit boundary reports success, so a failed commit can be retried
    with the same local edits. The work item's store lock is held from load
    to clear, so transitions wait for the commit to finish.
    """

    def __init__(
        self,
        store: DraftStore,
        *,
        provider: SnapshotProvider | None = None,
        boundary: CommitBoundary | None = None,
        return_source: ReturnRequestSource | None = None,
        return_sink: ReturnRequestSink | None = None,
        inspection_sentinels: Collection[str] = DEFAULT_INSPECTION_SENTINELS,
    ) -> None:
        self.store = store
        self.engine = TransitionEngine(store)
        self.provider = provider
        self.boundary = boundary
        self.return_source = return_source
        self.return_sink = return_sink
        self.inspection_sentinels = tuple(inspection_sentinels)
        self._in_flight: set[str] = set()
        self._in_flight_guard = threading.Lock()

    def apply_snapshot(self, work_item_id: str, snapshot: Snapshot) -> Draft:
        return self.store.reconcile(
            work_item_id,
            bind_customer_installed(snapshot),
            snapshot.removable,
            contracts=snapshot.contracts,
            technician_stock=snapshot.technician_stock,
        )

    def refresh(self, work_item_id: str) -> tuple[Draft, list[DataQualityWarning]]:
        if self.provider is None:
            raise RuntimeError("WorkEquipmentSession.refresh requires a snapshot provider")
        snapshot, warnings = normalize_snapshot(self.provider.fetch(work_item_id))
        draft = self.apply_snapshot(work_item_id, snapshot)
        logger.info(
            "Work item %s: refreshed (%d installed, %d marked for removal, %d warning(s))",
            work_item_id,
            len(draft.installed),
            len(draft.marked_for_removal),
            len(warnings),
        )
        return draft, warnings

    def return_requests(self) -> tuple[list[ReturnRequestGroup], list[DataQualityWarning]]:
        if self.return_source is None:
            raise RuntimeError("WorkEquipmentSession.return_requests requires a return-request source")
        rows, warnings = normalize_return_requests(self.return_source.list_rows())
        return deduplicate_return_requests(rows), warnings

    def cancel_return_requests(self, groups: Sequence[ReturnRequestGroup]) -> list[ReturnRequestDelete]:
        if self.return_sink is None:
            raise RuntimeError("WorkEquipmentSession.cancel_return_requests requires a return-request sink")
        return cancel_return_requests(groups, self.return_sink)

    def equipment_view(
        self,
        work_item_id: str,
        groups: Sequence[ReturnRequestGroup] = (),
    ) -> pd.DataFrame:
        """Technician stock classified and sorted for display."""
        draft = self.store.load(work_item_id)
        return equipment_category_frame(
            draft.technician_stock.values(),
            return_requested_ids={group.equipment_id for group in groups},
            inspection_sentinels=self.inspection_sentinels,
        )

    def submit(self, work_item_id: str, context: WorkOrderContext) -> CommitResult:
        if self.boundary is None:
            raise RuntimeError("WorkEquipmentSession.submit requires a commit boundary")

        with self._in_flight_guard:
            if work_item_id in self._in_flight:
                raise CommitInProgressError(f"Work item '{work_item_id}' already has a commit in progress")
            self._in_flight.add(work_item_id)

        try:
            with self.store.locked(work_item_id):
                draft = self.store.load(work_item_id)
                payload = assemble_completion(draft, context)
                result = self.boundary.submit(payload)
                if result.success:
                    self.store.clear(work_item_id)
                    logger.info("Work item %s: commit accepted (%s)", work_item_id, result.code or "ok")
                else:
                    logger.warning(
                        "Work item %s: commit rejected (%s) %s; draft kept",
                        work_item_id,
                        result.code,
                        result.message,
                    )
                return result
        finally:
            with self._in_flight_guard:
                self._in_flight.discard(work_item_id)

    def discard(self, work_item_id: str) -> None:
        self.store.clear(work_item_id)
