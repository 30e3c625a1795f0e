from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
import logging

from work_equipment.errors import ConflictError, GuardRejected
from work_equipment.models import (
    CHANGE_REASON_NEW,
    CHANGE_REASON_REUSE,
    LOSS_FLAGS,
    PROVENANCE_CONTRACT_BASELINE,
    PROVENANCE_CUSTOMER_INSTALLED,
    PROVENANCE_RETURNED,
    SIGNAL_IDLE,
    SIGNAL_STATUSES,
    SYNTHETIC_CONTRACT_PREFIX,
    Draft,
    Equipment,
    InstalledBinding,
    RemovalStatus,
    synthetic_contract_for,
)
from work_equipment.store import DraftStore

logger = logging.getLogger(__name__)


def _unknown_equipment(work_item_id: str, equipment_id: str, where: str) -> KeyError:
    return KeyError(f"Unknown equipment '{equipment_id}' in {where} for work item '{work_item_id}'")


class TransitionEngine:
    """Applies user-driven equipment transitions to a work item's draft.

    Each operation loads the draft under the work item's lock, mutates it
    and writes it straight back. An operation that raises leaves the stored
    draft untouched.
    """

    def __init__(self, store: DraftStore) -> None:
        self.store = store

    @contextmanager
    def _mutate(self, work_item_id: str) -> Iterator[Draft]:
        with self.store.locked(work_item_id):
            draft = self.store.load(work_item_id)
            before = draft.copy()
            yield draft
            if draft != before:
                self.store.save(work_item_id, draft)

    def install(self, work_item_id: str, binding: InstalledBinding) -> Draft:
        contract_id = binding.contract_id
        equipment_id = binding.equipment_id
        with self._mutate(work_item_id) as draft:
            if equipment_id in draft.marked_for_removal:
                raise ConflictError(
                    f"Equipment '{equipment_id}' is marked for removal and cannot be installed"
                )
            current = draft.installed.get(contract_id)
            if current is not None and current.equipment_id != equipment_id:
                raise ConflictError(
                    f"Contract line '{contract_id}' is already bound to '{current.equipment_id}'"
                )
            elsewhere = draft.binding_for_equipment(equipment_id)
            if elsewhere is not None and elsewhere.contract_id != contract_id:
                raise ConflictError(
                    f"Equipment '{equipment_id}' is already bound to contract line '{elsewhere.contract_id}'"
                )

            change_reason = (
                binding.actual.change_reason_code
                or (current.actual.change_reason_code if current is not None else "")
                or CHANGE_REASON_NEW
            )
            actual = replace(
                binding.actual,
                provenance=PROVENANCE_CUSTOMER_INSTALLED,
                change_reason_code=change_reason,
            )
            draft.installed[contract_id] = replace(binding, actual=actual)
            draft.released_lines.discard(contract_id)
            logger.info("Work item %s: installed %s on %s", work_item_id, equipment_id, contract_id)
            return draft

    def uninstall(self, work_item_id: str, contract_id: str) -> Draft:
        with self._mutate(work_item_id) as draft:
            released = draft.installed.pop(contract_id, None)
            if released is not None:
                draft.released_lines.add(contract_id)
                logger.info(
                    "Work item %s: released %s from %s",
                    work_item_id,
                    released.equipment_id,
                    contract_id,
                )
            return draft

    def _mark(self, work_item_id: str, draft: Draft, equipment_id: str) -> bool:
        if equipment_id in draft.marked_for_removal:
            return False

        binding = draft.binding_for_equipment(equipment_id)
        if binding is not None:
            del draft.installed[binding.contract_id]
            draft.removal_origin[equipment_id] = binding.contract_id
            entity = binding.actual
        elif equipment_id in draft.removable:
            entity = draft.removable[equipment_id]
        else:
            raise _unknown_equipment(work_item_id, equipment_id, "installed or removable equipment")

        draft.marked_for_removal[equipment_id] = entity.with_provenance(PROVENANCE_RETURNED)
        draft.removal_status[equipment_id] = RemovalStatus(reusable=draft.reuse_all)
        return True

    def mark_for_removal(self, work_item_id: str, equipment_id: str) -> Draft:
        with self._mutate(work_item_id) as draft:
            if self._mark(work_item_id, draft, equipment_id):
                draft.signal_status = SIGNAL_IDLE
                draft.signal_result = ""
                logger.info("Work item %s: marked %s for removal", work_item_id, equipment_id)
            return draft

    def mark_all_for_removal(self, work_item_id: str) -> Draft:
        with self._mutate(work_item_id) as draft:
            marked = [
                equipment_id
                for equipment_id in list(draft.removable)
                if self._mark(work_item_id, draft, equipment_id)
            ]
            if marked:
                draft.signal_status = SIGNAL_IDLE
                draft.signal_result = ""
                logger.info("Work item %s: marked %d unit(s) for removal", work_item_id, len(marked))
            return draft

    def _origin_contract(self, draft: Draft, entity: Equipment, contract_id: str) -> Equipment:
        if contract_id in draft.contracts:
            return draft.contracts[contract_id]
        if contract_id.startswith(SYNTHETIC_CONTRACT_PREFIX):
            return synthetic_contract_for(entity)
        return Equipment(
            equipment_id=contract_id,
            provenance=PROVENANCE_CONTRACT_BASELINE,
            item_category_code=entity.item_category_code,
            item_category_name=entity.item_category_name,
        )

    def _reuse_target(self, draft: Draft, entity: Equipment) -> Equipment:
        origin = draft.removal_origin.get(entity.equipment_id)
        if origin and origin not in draft.installed:
            return self._origin_contract(draft, entity, origin)
        for contract in draft.contracts.values():
            if contract.equipment_id in draft.installed or contract.equipment_id in draft.released_lines:
                continue
            if contract.item_category_code == entity.item_category_code:
                return contract
        return synthetic_contract_for(entity)

    def unmark_for_removal(self, work_item_id: str, equipment_id: str) -> Draft:
        """Undo a removal; a unit that came off a contract line goes back to it."""
        with self._mutate(work_item_id) as draft:
            if equipment_id not in draft.marked_for_removal:
                raise _unknown_equipment(work_item_id, equipment_id, "marked_for_removal")
            origin = draft.removal_origin.get(equipment_id)
            if origin and origin in draft.installed:
                raise ConflictError(
                    f"Contract line '{origin}' is already bound to "
                    f"'{draft.installed[origin].equipment_id}'; cannot return '{equipment_id}'"
                )

            entity = draft.marked_for_removal.pop(equipment_id)
            draft.removal_status.pop(equipment_id, None)
            draft.removal_origin.pop(equipment_id, None)
            if origin:
                contract = self._origin_contract(draft, entity, origin)
                draft.installed[origin] = InstalledBinding(
                    contract=contract,
                    actual=entity.with_provenance(PROVENANCE_CUSTOMER_INSTALLED),
                    mac_address=entity.mac_address,
                    install_location=entity.install_location,
                )
                draft.released_lines.discard(origin)
            logger.info("Work item %s: unmarked %s", work_item_id, equipment_id)
            return draft

    def toggle_loss_flag(
        self,
        work_item_id: str,
        equipment_id: str,
        flag: str,
        value: bool | None = None,
        *,
        strict: bool = False,
    ) -> bool:
        """Set or flip one loss/breakage flag on a unit marked for removal.

        Returns False without touching the draft when the unit is
        customer-owned (``strict=True`` raises GuardRejected instead). Setting
        any flag revokes reuse for every unit in the removal list.
        """
        if flag not in LOSS_FLAGS:
            raise KeyError(f"Unknown loss flag '{flag}'. Known flags: {', '.join(LOSS_FLAGS)}")

        with self._mutate(work_item_id) as draft:
            if equipment_id not in draft.marked_for_removal:
                raise _unknown_equipment(work_item_id, equipment_id, "marked_for_removal")
            entity = draft.marked_for_removal[equipment_id]
            if entity.is_customer_owned:
                message = f"Equipment '{equipment_id}' is customer-owned; '{flag}' cannot be set"
                if strict:
                    raise GuardRejected(message)
                logger.info("Work item %s: %s", work_item_id, message)
                return False

            status = draft.status_for(equipment_id)
            new_value = (not status.flag(flag)) if value is None else bool(value)
            draft.removal_status[equipment_id] = status.with_flag(flag, new_value)
            if new_value:
                draft.reuse_all = False
                for marked_id in draft.marked_for_removal:
                    draft.removal_status[marked_id] = draft.status_for(marked_id).with_reusable(False)
            logger.debug(
                "Work item %s: %s.%s = %s", work_item_id, equipment_id, flag, new_value
            )
            return True

    def set_reusable(self, work_item_id: str, equipment_id: str, enabled: bool) -> Draft:
        with self._mutate(work_item_id) as draft:
            if equipment_id not in draft.marked_for_removal:
                raise _unknown_equipment(work_item_id, equipment_id, "marked_for_removal")
            draft.removal_status[equipment_id] = draft.status_for(equipment_id).with_reusable(enabled)
            if not enabled:
                draft.reuse_all = False
            return draft

    def reuse(self, work_item_id: str, equipment_id: str) -> Draft:
        """Put a removed unit back into service on its contract line, tagged REUSE."""
        with self._mutate(work_item_id) as draft:
            if equipment_id not in draft.marked_for_removal:
                raise _unknown_equipment(work_item_id, equipment_id, "marked_for_removal")
            entity = draft.marked_for_removal[equipment_id]
            contract = self._reuse_target(draft, entity)

            del draft.marked_for_removal[equipment_id]
            draft.removal_origin.pop(equipment_id, None)
            draft.removal_status[equipment_id] = RemovalStatus(reusable=True)
            draft.installed[contract.equipment_id] = InstalledBinding(
                contract=contract,
                actual=replace(
                    entity,
                    provenance=PROVENANCE_CUSTOMER_INSTALLED,
                    change_reason_code=CHANGE_REASON_REUSE,
                ),
                mac_address=entity.mac_address,
                install_location=entity.install_location,
            )
            draft.released_lines.discard(contract.equipment_id)
            logger.info(
                "Work item %s: reused %s on %s", work_item_id, equipment_id, contract.equipment_id
            )
            return draft

    def set_reuse_all(self, work_item_id: str, enabled: bool) -> Draft:
        with self._mutate(work_item_id) as draft:
            draft.reuse_all = bool(enabled)
            for equipment_id in draft.marked_for_removal:
                status = draft.status_for(equipment_id)
                draft.removal_status[equipment_id] = status.with_reusable(bool(enabled))
            logger.info("Work item %s: reuse_all = %s", work_item_id, draft.reuse_all)
            return draft

    def set_signal_status(self, work_item_id: str, status: str, result: str = "") -> Draft:
        if status not in SIGNAL_STATUSES:
            raise ValueError(
                f"Unknown signal status '{status}'. Expected one of: {', '.join(SIGNAL_STATUSES)}"
            )
        with self._mutate(work_item_id) as draft:
            draft.signal_status = status
            draft.signal_result = result or ""
            return draft
