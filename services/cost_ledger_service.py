"""
Cost ledger service.

Every write to the ledger goes through here so lock enforcement happens at
the point of mutation:

- Locked costs cannot be edited or deleted, and neither can costs whose
  shipment (or vehicle's shipment) has cleared customs.
- New costs cannot be attached to a cleared shipment, or to a vehicle that
  travels in one.
- Auto-generated shipment costs mirror the shipment's aggregate fields and
  are only changed through sync_shipment_costs_to_ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional
from uuid import UUID, uuid4

from domain.cost import Cost, CostCategory, CostSource
from domain.money import ZERO, to_amount
from domain.shipment import Shipment
from repositories import cost_repository
from services.cost_locking_service import (
    CostLockedError,
    ensure_cost_unlocked,
    is_shipment_locked,
    locking_shipment_for,
)

logger = logging.getLogger(__name__)

# Fields a caller may change on an existing cost.
_UPDATABLE_FIELDS = frozenset(
    {"category", "amount", "cost_date", "shipment_id", "vehicle_id", "vendor", "receipt_url", "notes"}
)

# Updatable fields that may not be set to None.
_REQUIRED_FIELDS = frozenset({"category", "amount", "cost_date"})

# Shipment aggregate field -> ledger category it is mirrored into.
SHIPMENT_FIELD_CATEGORIES: Dict[str, CostCategory] = {
    "ground_transport_cost": CostCategory.GROUND_TRANSPORT,
    "customs_broker_fees": CostCategory.CUSTOMS_BROKER,
    "ocean_freight_cost": CostCategory.OCEAN_FREIGHT,
    "import_fees": CostCategory.IMPORT_FEES,
}


@dataclass(frozen=True, slots=True)
class ShipmentCostSync:
    """What sync_shipment_costs_to_ledger changed."""

    shipment_id: UUID
    created: int = 0
    updated: int = 0
    deleted: int = 0


def _require_non_negative(amount: Decimal) -> None:
    if amount < ZERO:
        raise ValueError("amount must be >= 0")


def _get_cost_or_raise(cost_id: UUID) -> Cost:
    cost = cost_repository.get_cost_by_id(cost_id)
    if cost is None:
        raise LookupError(f"Cost not found: {cost_id}")
    return cost


def _ensure_target_unlocked(
    shipment_id: Optional[UUID],
    vehicle_id: Optional[UUID],
    cost_id: Optional[UUID] = None,
) -> None:
    locked_shipment = locking_shipment_for(shipment_id, vehicle_id)
    if locked_shipment is not None:
        logger.warning(
            "Rejected cost for locked shipment",
            extra={
                "shipment_id": str(locked_shipment),
                "vehicle_id": str(vehicle_id) if vehicle_id else None,
                "cost_id": str(cost_id) if cost_id else None,
            },
        )
        raise CostLockedError(cost_id=cost_id, shipment_id=locked_shipment)


def create_cost(
    category: CostCategory,
    amount: Any,
    cost_date: datetime,
    shipment_id: Optional[UUID] = None,
    vehicle_id: Optional[UUID] = None,
    vendor: Optional[str] = None,
    receipt_url: Optional[str] = None,
    notes: Optional[str] = None,
) -> Cost:
    """
    Record a manual ledger entry.

    Raises:
        ValueError: Invalid entry (negative amount, both shipment and vehicle).
        CostLockedError: The target shipment has cleared customs.
    """

    cost = Cost(
        cost_id=uuid4(),
        category=category,
        amount=to_amount(amount),
        cost_date=cost_date,
        shipment_id=shipment_id,
        vehicle_id=vehicle_id,
        source=CostSource.MANUAL,
        vendor=vendor,
        receipt_url=receipt_url,
        notes=notes,
    )
    _require_non_negative(cost.amount)
    _ensure_target_unlocked(shipment_id, vehicle_id)

    return cost_repository.insert_cost(cost)


def update_cost(cost_id: UUID, changes: Mapping[str, Any]) -> Cost:
    """
    Apply field changes to an unlocked cost.

    Raises:
        LookupError: Unknown cost.
        ValueError: Unknown field, a required field set to None, or an
            invalid resulting entry.
        CostLockedError: The cost is locked, or its current or new shipment
            has cleared customs.
    """

    unknown = set(changes) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update cost fields: {', '.join(sorted(unknown))}")

    blank = sorted(name for name in _REQUIRED_FIELDS if name in changes and changes[name] is None)
    if blank:
        raise ValueError(f"Cost fields cannot be cleared: {', '.join(blank)}")

    current = _get_cost_or_raise(cost_id)
    ensure_cost_unlocked(current)
    # A cleared shipment locks the cost even if its locked flag is not set yet.
    _ensure_target_unlocked(current.shipment_id, current.vehicle_id, cost_id=cost_id)

    values = dict(changes)
    if "amount" in values:
        values["amount"] = to_amount(values["amount"])

    updated = replace(current, **values)
    _require_non_negative(updated.amount)

    if (updated.shipment_id, updated.vehicle_id) != (current.shipment_id, current.vehicle_id):
        _ensure_target_unlocked(updated.shipment_id, updated.vehicle_id)

    return cost_repository.update_cost(updated)


def delete_cost(cost_id: UUID) -> None:
    """
    Remove an unlocked manual cost.

    Raises:
        LookupError: Unknown cost.
        ValueError: The cost was generated from shipment fields.
        CostLockedError: The cost is locked, or its shipment has cleared customs.
    """

    cost = _get_cost_or_raise(cost_id)
    ensure_cost_unlocked(cost)
    _ensure_target_unlocked(cost.shipment_id, cost.vehicle_id, cost_id=cost_id)
    if cost.is_auto_generated:
        raise ValueError(
            f"Cost {cost_id} is generated from shipment {cost.shipment_id}; "
            "change the shipment's cost fields instead"
        )

    cost_repository.delete_cost(cost_id)
    logger.info("Cost deleted", extra={"cost_id": str(cost_id)})


def sync_shipment_costs_to_ledger(
    shipment: Shipment,
    now: Optional[datetime] = None,
) -> ShipmentCostSync:
    """
    Mirror a shipment's aggregate cost fields into auto-generated ledger entries.

    One auto_shipment entry per non-zero field: created if missing, updated if
    the amount changed, deleted when the field drops back to zero.

    Raises:
        CostLockedError: The shipment has cleared customs.
    """

    if is_shipment_locked(shipment.shipment_id):
        raise CostLockedError(shipment_id=shipment.shipment_id)

    cost_date = shipment.shipment_date or now or datetime.now(timezone.utc)
    created = updated = deleted = 0

    for field_name, category in SHIPMENT_FIELD_CATEGORIES.items():
        amount = to_amount(getattr(shipment, field_name))
        existing = cost_repository.find_auto_shipment_cost(shipment.shipment_id, category)

        if amount > ZERO:
            if existing is None:
                cost_repository.insert_cost(
                    Cost(
                        cost_id=uuid4(),
                        category=category,
                        amount=amount,
                        cost_date=cost_date,
                        shipment_id=shipment.shipment_id,
                        source=CostSource.AUTO_SHIPMENT,
                        notes=f"Synced from shipment {shipment.shipment_number}",
                    )
                )
                created += 1
            elif existing.amount != amount:
                ensure_cost_unlocked(existing)
                cost_repository.update_cost(replace(existing, amount=amount))
                updated += 1
        elif existing is not None:
            ensure_cost_unlocked(existing)
            cost_repository.delete_cost(existing.cost_id)
            deleted += 1

    result = ShipmentCostSync(
        shipment_id=shipment.shipment_id,
        created=created,
        updated=updated,
        deleted=deleted,
    )
    logger.info(
        "Shipment costs synced to ledger",
        extra={
            "shipment_id": str(shipment.shipment_id),
            "created": created,
            "updated": updated,
            "deleted": deleted,
        },
    )
    return result


__all__ = [
    "SHIPMENT_FIELD_CATEGORIES",
    "ShipmentCostSync",
    "create_cost",
    "update_cost",
    "delete_cost",
    "sync_shipment_costs_to_ledger",
]
