"""
Estimated profitability of a vehicle against its local market valuation.

Valuations are quoted in the destination currency (HNL); landed costs are in
USD. Revenue is converted with the latest USD -> valuation-currency rate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence
from uuid import UUID

from domain.money import ZERO, round_money, to_amount
from domain.valuation import FxRate, Valuation
from domain.vehicle import Vehicle
from repositories import cost_repository, shipment_repository, valuation_repository, vehicle_repository
from services.cost_allocation_service import landed_cost_for_vehicle, missing_cost_categories

logger = logging.getLogger(__name__)

BASE_CURRENCY: str = "USD"


class MissingPrerequisiteError(Exception):
    """Raised when a calculation needs data that has not been recorded yet."""


class MissingValuationError(MissingPrerequisiteError):
    def __init__(self, vehicle_id: UUID):
        self.vehicle_id = vehicle_id
        super().__init__(
            f"No market valuation recorded for vehicle {vehicle_id}; "
            "add a valuation before requesting profitability"
        )


class MissingFxRateError(MissingPrerequisiteError):
    def __init__(self, base_currency: str, target_currency: str):
        self.base_currency = base_currency
        self.target_currency = target_currency
        super().__init__(
            f"No usable {base_currency}->{target_currency} exchange rate; "
            "record a positive rate before requesting profitability"
        )


@dataclass(frozen=True, slots=True)
class VehicleProfitability:
    vehicle_id: UUID
    total_cost: Decimal
    estimated_revenue: Decimal
    estimated_profit: Decimal
    profit_margin: Decimal
    costs_complete: bool
    missing_costs: List[str] = field(default_factory=list)


def calculate_vehicle_profitability(
    vehicle: Vehicle,
    landed_cost: Decimal,
    valuation: Optional[Valuation],
    fx_rate: Optional[FxRate],
    missing_costs: Sequence[str] = (),
) -> VehicleProfitability:
    """
    Revenue = market value / FX rate; margin is profit as a percentage of
    revenue (0 when revenue is 0).

    Raises:
        MissingValuationError: No valuation for the vehicle.
        MissingFxRateError: No FX rate, or a non-positive one.
    """

    if valuation is None:
        raise MissingValuationError(vehicle.vehicle_id)

    if valuation.currency == BASE_CURRENCY:
        revenue = to_amount(valuation.market_value)
    else:
        if fx_rate is None or to_amount(fx_rate.rate) <= ZERO:
            raise MissingFxRateError(BASE_CURRENCY, valuation.currency)
        revenue = to_amount(valuation.market_value) / to_amount(fx_rate.rate)

    cost = to_amount(landed_cost)
    profit = revenue - cost
    margin = (profit / revenue * Decimal("100")) if revenue != ZERO else ZERO

    return VehicleProfitability(
        vehicle_id=vehicle.vehicle_id,
        total_cost=round_money(cost),
        estimated_revenue=round_money(revenue),
        estimated_profit=round_money(profit),
        profit_margin=round_money(margin),
        costs_complete=not missing_costs,
        missing_costs=list(missing_costs),
    )


def get_vehicle_profitability(vehicle_id: UUID) -> VehicleProfitability:
    """
    Load everything needed and calculate a vehicle's profitability.

    Raises:
        LookupError: Unknown vehicle.
        MissingPrerequisiteError: Valuation or FX rate missing.
    """

    vehicle = vehicle_repository.get_vehicle_by_id(vehicle_id)
    if vehicle is None:
        raise LookupError(f"Vehicle not found: {vehicle_id}")

    vehicles = vehicle_repository.list_vehicles()
    costs = cost_repository.list_costs()
    shipments = shipment_repository.list_shipments()

    valuation = valuation_repository.get_latest_valuation(vehicle_id)
    fx_rate = None
    if valuation is not None and valuation.currency != BASE_CURRENCY:
        fx_rate = valuation_repository.get_latest_fx_rate(BASE_CURRENCY, valuation.currency)

    missing = missing_cost_categories(vehicle, costs)
    if missing:
        logger.info(
            "Profitability computed with incomplete costs",
            extra={"vehicle_id": str(vehicle_id), "missing_costs": missing},
        )

    return calculate_vehicle_profitability(
        vehicle,
        landed_cost_for_vehicle(vehicle, vehicles, costs, shipments),
        valuation,
        fx_rate,
        missing,
    )


__all__ = [
    "BASE_CURRENCY",
    "MissingFxRateError",
    "MissingPrerequisiteError",
    "MissingValuationError",
    "VehicleProfitability",
    "calculate_vehicle_profitability",
    "get_vehicle_profitability",
]
