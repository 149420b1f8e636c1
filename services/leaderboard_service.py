"""
Leaderboard metrics (pure): sales, procurement and logistics.

Profit figures use landed cost. Rates are fractions in [0, 1] rounded to
two places.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List, Sequence, Tuple

from domain.cost import Cost
from domain.money import ZERO, round_money, to_amount
from domain.shipment import CustomsClearance, Shipment
from domain.vehicle import Vehicle
from services.cost_allocation_service import compute_landed_costs, has_complete_landed_cost

TOP_BUYER_LIMIT: int = 5
UNKNOWN_BUYER: str = "Unknown"


@dataclass(frozen=True, slots=True)
class BuyerStats:
    name: str
    units: int
    profit: Decimal


@dataclass(frozen=True, slots=True)
class SalesLeaderboard:
    total_units_sold: int = 0
    total_profit: Decimal = ZERO
    average_profit: Decimal = ZERO
    top_buyers: List[BuyerStats] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ProcurementLeaderboard:
    total_units_acquired: int = 0
    average_spread: Decimal = ZERO
    profitability_rate: Decimal = ZERO


@dataclass(frozen=True, slots=True)
class LogisticsLeaderboard:
    average_clearance_days: Decimal = ZERO
    completion_rate: Decimal = ZERO
    document_completion_rate: Decimal = ZERO
    total_clearances: int = 0


@dataclass(frozen=True, slots=True)
class Leaderboards:
    sales: SalesLeaderboard
    procurement: ProcurementLeaderboard
    logistics: LogisticsLeaderboard


def _rate(numerator: int, denominator: int) -> Decimal:
    if denominator <= 0:
        return ZERO
    return round_money(Decimal(numerator) / Decimal(denominator))


def calculate_sales_metrics(
    vehicles: Sequence[Vehicle],
    costs: Sequence[Cost],
    shipments: Sequence[Shipment],
) -> SalesLeaderboard:
    sold = [v for v in vehicles if v.has_recorded_sale]
    if not sold:
        return SalesLeaderboard()

    landed_costs = compute_landed_costs(vehicles, costs, shipments)
    total_profit = ZERO
    buyers: Dict[str, Tuple[int, Decimal]] = {}

    for vehicle in sold:
        profit = to_amount(vehicle.actual_sale_price) - landed_costs[vehicle.vehicle_id]
        total_profit += profit

        name = vehicle.buyer_name or UNKNOWN_BUYER
        units, buyer_profit = buyers.get(name, (0, ZERO))
        buyers[name] = (units + 1, buyer_profit + profit)

    ranked = sorted(buyers.items(), key=lambda item: (item[1][1], item[1][0]), reverse=True)
    top_buyers = [
        BuyerStats(name=name, units=units, profit=round_money(profit))
        for name, (units, profit) in ranked[:TOP_BUYER_LIMIT]
    ]

    return SalesLeaderboard(
        total_units_sold=len(sold),
        total_profit=round_money(total_profit),
        average_profit=round_money(total_profit / len(sold)),
        top_buyers=top_buyers,
    )


def calculate_procurement_metrics(
    vehicles: Sequence[Vehicle],
    costs: Sequence[Cost],
    shipments: Sequence[Shipment],
) -> ProcurementLeaderboard:
    """
    Spread is (actual or target sale price) - purchase price, averaged over
    vehicles that have a price. A sale counts as profitable only when its
    landed cost is complete.
    """

    if not vehicles:
        return ProcurementLeaderboard()

    landed_costs = compute_landed_costs(vehicles, costs, shipments)
    total_spread = ZERO
    priced = 0
    profitable = 0

    for vehicle in vehicles:
        if vehicle.has_recorded_sale:
            sale_price = to_amount(vehicle.actual_sale_price)
        else:
            sale_price = to_amount(vehicle.target_sale_price)

        if sale_price > ZERO:
            total_spread += sale_price - to_amount(vehicle.purchase_price)
            priced += 1

        if vehicle.has_recorded_sale and has_complete_landed_cost(vehicle, costs):
            if sale_price - landed_costs[vehicle.vehicle_id] > ZERO:
                profitable += 1

    return ProcurementLeaderboard(
        total_units_acquired=len(vehicles),
        average_spread=round_money(total_spread / priced) if priced else ZERO,
        profitability_rate=_rate(profitable, len(vehicles)),
    )


def calculate_logistics_metrics(
    clearances: Sequence[CustomsClearance],
    shipments: Sequence[Shipment],
) -> LogisticsLeaderboard:
    if not clearances:
        return LogisticsLeaderboard()

    durations = [
        c.cleared_at - c.submitted_at
        for c in clearances
        if c.is_cleared and c.submitted_at is not None and c.cleared_at is not None
    ]
    average_days = ZERO
    if durations:
        average = sum(durations, timedelta()) / len(durations)
        average_days = round_money(Decimal(str(average.total_seconds())) / Decimal("86400"))

    cleared = sum(1 for c in clearances if c.is_cleared)
    documented = sum(1 for s in shipments if s.has_complete_documents)

    return LogisticsLeaderboard(
        average_clearance_days=average_days,
        completion_rate=_rate(cleared, len(clearances)),
        document_completion_rate=_rate(documented, len(shipments)),
        total_clearances=len(clearances),
    )


def build_leaderboards(
    vehicles: Sequence[Vehicle],
    costs: Sequence[Cost],
    shipments: Sequence[Shipment],
    clearances: Sequence[CustomsClearance],
) -> Leaderboards:
    return Leaderboards(
        sales=calculate_sales_metrics(vehicles, costs, shipments),
        procurement=calculate_procurement_metrics(vehicles, costs, shipments),
        logistics=calculate_logistics_metrics(clearances, shipments),
    )


__all__ = [
    "BuyerStats",
    "Leaderboards",
    "LogisticsLeaderboard",
    "ProcurementLeaderboard",
    "SalesLeaderboard",
    "build_leaderboards",
    "calculate_logistics_metrics",
    "calculate_procurement_metrics",
    "calculate_sales_metrics",
]
