from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
import json
import logging
import threading

from work_equipment.models import Draft, Equipment, InstalledBinding
from work_equipment.store.backends import DurableStore, InMemoryStore

logger = logging.getLogger(__name__)

DRAFT_KEY_PREFIX = "work_equipment_draft_"


def _require_work_item_id(work_item_id: str) -> str:
    if not isinstance(work_item_id, str) or not work_item_id.strip():
        raise ValueError("work_item_id must be a non-empty string")
    return work_item_id.strip()


class DraftStore:
    """Per-work-item draft cache backed by a durable key/value store.

    Every read-modify-write for one work item must run inside
    ``locked(work_item_id)``; the lock is re-entrant so callers may nest
    ``load``/``save`` inside it.
    """

    def __init__(self, backend: DurableStore | None = None) -> None:
        self._backend: DurableStore = backend if backend is not None else InMemoryStore()
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @staticmethod
    def key_for(work_item_id: str) -> str:
        return f"{DRAFT_KEY_PREFIX}{_require_work_item_id(work_item_id)}"

    @contextmanager
    def locked(self, work_item_id: str) -> Iterator[None]:
        key = self.key_for(work_item_id)
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.RLock())
        with lock:
            yield

    def exists(self, work_item_id: str) -> bool:
        return self._backend.get(self.key_for(work_item_id)) is not None

    def load(self, work_item_id: str) -> Draft:
        key = self.key_for(work_item_id)
        with self.locked(work_item_id):
            raw = self._backend.get(key)
            if raw is None:
                return Draft(work_item_id=_require_work_item_id(work_item_id))
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Stored draft '{key}' is not valid JSON: {exc}") from exc
            draft = Draft.from_dict(payload)

        if draft.work_item_id != _require_work_item_id(work_item_id):
            raise ValueError(
                f"Stored draft '{key}' belongs to work item '{draft.work_item_id}', "
                f"not '{work_item_id}'"
            )
        return draft

    def save(self, work_item_id: str, draft: Draft) -> None:
        key = self.key_for(work_item_id)
        if draft.work_item_id != _require_work_item_id(work_item_id):
            raise ValueError(
                f"Cannot save draft for work item '{draft.work_item_id}' under '{work_item_id}'"
            )
        with self.locked(work_item_id):
            draft.touch()
            self._backend.set(key, json.dumps(draft.to_dict(), ensure_ascii=False, sort_keys=True))
        logger.debug("Saved draft %s", key)

    def clear(self, work_item_id: str) -> None:
        key = self.key_for(work_item_id)
        with self.locked(work_item_id):
            self._backend.delete(key)
        logger.info("Cleared draft %s", key)

    def reconcile(
        self,
        work_item_id: str,
        fresh_installed: Iterable[InstalledBinding],
        fresh_removable: Iterable[Equipment],
        *,
        contracts: Iterable[Equipment] | None = None,
        technician_stock: Iterable[Equipment] | None = None,
    ) -> Draft:
        """Merge a fresh snapshot into the persisted draft.

        Local removals win over the snapshot: a unit in ``marked_for_removal``
        is never re-added to ``installed`` and its removal entry is kept, and
        a line in ``released_lines`` stays free.
        Snapshot bindings only fill contract lines that have no local binding,
        for units not already bound elsewhere. Removable candidates,
        contracts and technician stock are replaced wholesale.
        """
        with self.locked(work_item_id):
            existed = self.exists(work_item_id)
            draft = self.load(work_item_id)
            before = draft.copy()

            marked_ids = set(draft.marked_for_removal)
            bound_ids = draft.installed_equipment_ids()
            skipped = 0
            for binding in fresh_installed:
                if binding.equipment_id in marked_ids or binding.contract_id in draft.released_lines:
                    skipped += 1
                    continue
                if binding.contract_id in draft.installed or binding.equipment_id in bound_ids:
                    continue
                draft.installed[binding.contract_id] = binding
                bound_ids.add(binding.equipment_id)

            draft.removable = {entity.equipment_id: entity for entity in fresh_removable}
            if contracts is not None:
                draft.contracts = {entity.equipment_id: entity for entity in contracts}
            if technician_stock is not None:
                draft.technician_stock = {entity.equipment_id: entity for entity in technician_stock}

            if skipped:
                logger.info(
                    "Work item %s: kept %d locally removed or released binding(s) out of the refreshed install list",
                    work_item_id,
                    skipped,
                )
            if draft != before or not existed:
                self.save(work_item_id, draft)
            return draft
