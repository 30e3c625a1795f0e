from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any

PROVENANCE_CONTRACT_BASELINE = "CONTRACT_BASELINE"
PROVENANCE_CUSTOMER_INSTALLED = "CUSTOMER_INSTALLED"
PROVENANCE_RETURNED = "RETURNED"
PROVENANCE_TECHNICIAN_STOCK = "TECHNICIAN_STOCK"
PROVENANCES: tuple[str, ...] = (
    PROVENANCE_CONTRACT_BASELINE,
    PROVENANCE_CUSTOMER_INSTALLED,
    PROVENANCE_RETURNED,
    PROVENANCE_TECHNICIAN_STOCK,
)

OWNERSHIP_CARRIER = "CARRIER_OWNED"
OWNERSHIP_CUSTOMER = "CUSTOMER_OWNED"

CHANGE_REASON_NEW = "NEW"
CHANGE_REASON_REUSE = "REUSE"

LOSS_FLAGS: tuple[str, ...] = (
    "lost",
    "adapter_lost",
    "remote_lost",
    "cable_lost",
    "cradle_lost",
)

SYNTHETIC_CONTRACT_PREFIX = "unbound:"

_CUSTOMER_OWNED_LEASE_CODE = "40"
_CUSTOMER_OWNED_MODEL_CODES = frozenset({"090852"})


def _as_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:
        return ""
    return str(value).strip()


def derive_ownership(*, lease_code: str, voip_customer_owned: str, model_code: str) -> str:
    """Customer-owned units are never billed for loss or breakage."""
    if (
        lease_code == _CUSTOMER_OWNED_LEASE_CODE
        or voip_customer_owned.upper() == "Y"
        or model_code in _CUSTOMER_OWNED_MODEL_CODES
    ):
        return OWNERSHIP_CUSTOMER
    return OWNERSHIP_CARRIER


@dataclass(frozen=True)
class Equipment:
    equipment_id: str
    provenance: str = PROVENANCE_CUSTOMER_INSTALLED
    item_category_code: str = ""
    item_category_name: str = ""
    model_code: str = ""
    model_name: str = ""
    serial_number: str = ""
    mac_address: str = ""
    ownership_flag: str = OWNERSHIP_CARRIER
    change_reason_code: str = ""
    service_component_id: str = ""
    basic_product_component_id: str = ""
    equipment_product_component_id: str = ""
    product_code: str = ""
    service_code: str = ""
    so_id: str = ""
    mst_so_id: str = ""
    lease_code: str = ""
    lease_type: str = ""
    old_lease_flag: str = ""
    sale_amount: str = ""
    installment_period: str = ""
    use_status_code: str = ""
    interface_detail_id: str = ""
    voip_customer_owned: str = ""
    install_location: str = ""
    arrival_flag: str = ""
    return_requested: str = ""

    @property
    def is_customer_owned(self) -> bool:
        return self.ownership_flag == OWNERSHIP_CUSTOMER

    @property
    def is_synthetic(self) -> bool:
        return self.equipment_id.startswith(SYNTHETIC_CONTRACT_PREFIX)

    def with_provenance(self, provenance: str) -> Equipment:
        if provenance not in PROVENANCES:
            raise ValueError(f"Unknown provenance '{provenance}'")
        return replace(self, provenance=provenance)

    def to_dict(self) -> dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Equipment:
        values: dict[str, str] = {}
        for f in fields(cls):
            if f.name in data:
                values[f.name] = _as_text(data[f.name])
        if not values.get("equipment_id"):
            raise ValueError("Equipment requires a non-empty 'equipment_id'")
        if not values.get("provenance"):
            values.pop("provenance", None)
        if not values.get("ownership_flag"):
            values.pop("ownership_flag", None)
        return cls(**values)


def synthetic_contract_for(equipment: Equipment) -> Equipment:
    """Placeholder contract line for a unit that has no matching baseline."""
    return Equipment(
        equipment_id=f"{SYNTHETIC_CONTRACT_PREFIX}{equipment.equipment_id}",
        provenance=PROVENANCE_CONTRACT_BASELINE,
        item_category_code=equipment.item_category_code,
        item_category_name=equipment.item_category_name,
        service_component_id=equipment.service_component_id,
        basic_product_component_id=equipment.basic_product_component_id,
        product_code=equipment.product_code,
        service_code=equipment.service_code,
    )


@dataclass(frozen=True)
class InstalledBinding:
    contract: Equipment
    actual: Equipment
    mac_address: str = ""
    install_location: str = ""

    @property
    def contract_id(self) -> str:
        return self.contract.equipment_id

    @property
    def equipment_id(self) -> str:
        return self.actual.equipment_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "contract": self.contract.to_dict(),
            "actual": self.actual.to_dict(),
            "mac_address": self.mac_address,
            "install_location": self.install_location,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InstalledBinding:
        return cls(
            contract=Equipment.from_dict(data["contract"]),
            actual=Equipment.from_dict(data["actual"]),
            mac_address=_as_text(data.get("mac_address")),
            install_location=_as_text(data.get("install_location")),
        )


@dataclass(frozen=True)
class RemovalStatus:
    """Loss/breakage bits for one returned unit.

    ``reusable`` and the five loss flags are mutually exclusive: every
    constructor path below keeps ``reusable`` False while any flag is set.
    """

    lost: bool = False
    adapter_lost: bool = False
    remote_lost: bool = False
    cable_lost: bool = False
    cradle_lost: bool = False
    reusable: bool = False

    def __post_init__(self) -> None:
        if self.reusable and self.has_loss():
            raise ValueError("RemovalStatus cannot be reusable while a loss flag is set")

    def has_loss(self) -> bool:
        return any(getattr(self, flag) for flag in LOSS_FLAGS)

    def flag(self, name: str) -> bool:
        if name not in LOSS_FLAGS:
            raise KeyError(f"Unknown loss flag '{name}'. Known flags: {', '.join(LOSS_FLAGS)}")
        return bool(getattr(self, name))

    def with_flag(self, name: str, value: bool) -> RemovalStatus:
        if name not in LOSS_FLAGS:
            raise KeyError(f"Unknown loss flag '{name}'. Known flags: {', '.join(LOSS_FLAGS)}")
        if value:
            return replace(self, **{name: True, "reusable": False})
        return replace(self, **{name: False})

    def with_reusable(self, enabled: bool) -> RemovalStatus:
        if enabled:
            return RemovalStatus(reusable=True)
        return replace(self, reusable=False)

    def to_dict(self) -> dict[str, bool]:
        return {f.name: bool(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RemovalStatus:
        values = {f.name: bool(data.get(f.name, False)) for f in fields(cls)}
        if values["reusable"] and any(values[flag] for flag in LOSS_FLAGS):
            values["reusable"] = False
        return cls(**values)


@dataclass(frozen=True)
class RemovalRecord:
    equipment: Equipment
    status: RemovalStatus

    @property
    def equipment_id(self) -> str:
        return self.equipment.equipment_id


@dataclass(frozen=True)
class PendingReturnRequest:
    equipment_id: str
    request_timestamp: str
    return_type_code: str = ""
    arrival_flag: str = ""
    serial_number: str = ""
    mac_address: str = ""
    item_category_code: str = ""
    item_category_name: str = ""
    model_code: str = ""
    model_name: str = ""
    so_id: str = ""
