"""
Vehicle sale workflow.

Records the sale first, and only then generates the profit distribution
from freshly loaded data, so the distribution always sees the stored sale.
A failure while distributing leaves the sale in place; running the
distribution again (or scripts/replay_distributions.py --backfill) is safe
because generation is idempotent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from domain.money import ZERO, to_amount
from domain.vehicle import Vehicle
from repositories import cost_repository, shipment_repository, vehicle_repository
from services.profit_distribution_service import DistributionOutcome, generate_profit_distribution

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SaleResult:
    vehicle: Vehicle
    distribution: DistributionOutcome


def distribute_vehicle_profit(vehicle_id: UUID) -> DistributionOutcome:
    """
    Generate the distribution for an already sold vehicle from fresh data.

    Raises:
        LookupError: Unknown vehicle.
        ValueError: The vehicle has no recorded sale.
    """

    vehicles = vehicle_repository.list_vehicles()
    vehicle = next((v for v in vehicles if v.vehicle_id == vehicle_id), None)
    if vehicle is None:
        raise LookupError(f"Vehicle not found: {vehicle_id}")

    return generate_profit_distribution(
        vehicle,
        vehicles,
        cost_repository.list_costs(),
        shipment_repository.list_shipments(),
    )


def complete_vehicle_sale(
    vehicle_id: UUID,
    actual_sale_price: Any,
    sale_date: datetime,
    buyer_name: Optional[str] = None,
    buyer_id: Optional[str] = None,
) -> SaleResult:
    """
    Mark a vehicle sold, then distribute its profit.

    Raises:
        LookupError: Unknown vehicle.
        ValueError: Already sold, negative price, or a non-UTC sale date.
        VehicleSaleConflictError: A concurrent request sold the vehicle first.
        ProfitDistributionConflictError: A concurrent request distributed
            the same sale.
    """

    price: Decimal = to_amount(actual_sale_price)
    if price < ZERO:
        raise ValueError("actual_sale_price must be >= 0")

    current = vehicle_repository.get_vehicle_by_id(vehicle_id)
    if current is None:
        raise LookupError(f"Vehicle not found: {vehicle_id}")

    # Validates the transition before anything is written.
    current.sold(price, sale_date, buyer_name=buyer_name, buyer_id=buyer_id)

    stored = vehicle_repository.mark_vehicle_sold(
        vehicle_id, price, sale_date, buyer_name=buyer_name, buyer_id=buyer_id
    )
    logger.info(
        "Vehicle sold",
        extra={"vehicle_id": str(vehicle_id), "sale_price": str(price)},
    )

    outcome = distribute_vehicle_profit(stored.vehicle_id)
    return SaleResult(vehicle=stored, distribution=outcome)


__all__ = [
    "SaleResult",
    "complete_vehicle_sale",
    "distribute_vehicle_profit",
]
