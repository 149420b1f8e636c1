"""
Cost locking.

Once a shipment's customs clearance is cleared, every ledger entry that
references the shipment, or any vehicle travelling in it, becomes
immutable. Locking is one-way.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from domain.cost import Cost
from repositories import cost_repository, shipment_repository, vehicle_repository

logger = logging.getLogger(__name__)


class CostLockedError(Exception):
    """Raised when a ledger mutation targets a locked cost or a locked shipment."""

    def __init__(self, cost_id: Optional[UUID] = None, shipment_id: Optional[UUID] = None):
        self.cost_id = cost_id
        self.shipment_id = shipment_id
        if cost_id is not None:
            message = f"Cost {cost_id} is locked"
        else:
            message = "Costs are locked"
        if shipment_id is not None:
            message += f": shipment {shipment_id} has cleared customs"
        super().__init__(message)


def lock_shipment_costs(shipment_id: UUID) -> int:
    """
    Lock every cost tied to the shipment or to a vehicle in it.

    Returns:
        Number of ledger entries locked.
    """

    vehicle_ids = [v.vehicle_id for v in vehicle_repository.list_vehicles_by_shipment(shipment_id)]
    locked = cost_repository.lock_costs_for_shipment(shipment_id, vehicle_ids)

    logger.info(
        "Shipment costs locked",
        extra={
            "shipment_id": str(shipment_id),
            "vehicle_count": len(vehicle_ids),
            "locked_count": locked,
        },
    )
    return locked


def is_shipment_locked(shipment_id: UUID) -> bool:
    """A shipment is locked once its customs clearance is cleared."""

    clearance = shipment_repository.get_customs_clearance(shipment_id)
    return clearance is not None and clearance.is_cleared


def locking_shipment_for(
    shipment_id: Optional[UUID],
    vehicle_id: Optional[UUID],
) -> Optional[UUID]:
    """
    The locked shipment a new ledger entry would attach to, or None.

    A vehicle-level entry is caught by the lock of the shipment the vehicle
    travels in.
    """

    if shipment_id is not None:
        return shipment_id if is_shipment_locked(shipment_id) else None

    if vehicle_id is not None:
        vehicle = vehicle_repository.get_vehicle_by_id(vehicle_id)
        if vehicle is not None and vehicle.shipment_id is not None:
            if is_shipment_locked(vehicle.shipment_id):
                return vehicle.shipment_id

    return None


def ensure_cost_unlocked(cost: Cost) -> None:
    """
    Raises:
        CostLockedError: If the cost is locked.
    """

    if cost.locked:
        logger.warning(
            "Rejected change to locked cost",
            extra={"cost_id": str(cost.cost_id), "shipment_id": str(cost.shipment_id)},
        )
        raise CostLockedError(cost.cost_id, cost.shipment_id)


__all__ = [
    "CostLockedError",
    "lock_shipment_costs",
    "is_shipment_locked",
    "locking_shipment_for",
    "ensure_cost_unlocked",
]
