"""
Financial summary (pure).

Replays every recorded sale in chronological order so each row carries the
split that applied at the time of that sale.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from domain.cost import Cost, CostCategory
from domain.money import ZERO, to_amount
from domain.profit_distribution import ProfitDistribution, ProfitDistributionEntry
from domain.shipment import Shipment
from domain.vehicle import Vehicle
from services.cost_allocation_service import compute_landed_costs
from services.reinvestment_service import replay_sales

PAYOUT_NOT_DISTRIBUTED = "not_distributed"
PAYOUT_PENDING = "pending"
PAYOUT_PAID = "paid"

PURCHASE_PRICE_KEY = "purchase_price"


@dataclass(frozen=True, slots=True)
class VehicleFinancialRow:
    vehicle_id: UUID
    vehicle_name: str
    sale_date: Optional[datetime]
    sale_price: Decimal
    landed_cost: Decimal
    gross_profit: Decimal
    reinvestment: Decimal
    dominick_share: Decimal
    tony_share: Decimal
    reinvestment_phase: bool
    payout_status: str


@dataclass(frozen=True, slots=True)
class FinancialSummary:
    total_gross_profit: Decimal
    dominick_total: Decimal
    tony_total: Decimal
    reinvestment_balance: Decimal
    rows: List[VehicleFinancialRow]
    cost_breakdown: Dict[str, Decimal]


def _payout_status(
    vehicle_id: UUID,
    distributions_by_vehicle: Dict[UUID, ProfitDistribution],
    entries_by_distribution: Dict[UUID, List[ProfitDistributionEntry]],
) -> str:
    distribution = distributions_by_vehicle.get(vehicle_id)
    if distribution is None:
        return PAYOUT_NOT_DISTRIBUTED
    entries = entries_by_distribution.get(distribution.distribution_id, [])
    if entries and not any(e.is_pending for e in entries):
        return PAYOUT_PAID
    return PAYOUT_PENDING


def cost_breakdown(vehicles: Sequence[Vehicle], costs: Sequence[Cost]) -> Dict[str, Decimal]:
    """Total spend per ledger category, plus vehicle purchase prices."""

    breakdown: Dict[str, Decimal] = {
        PURCHASE_PRICE_KEY: sum((to_amount(v.purchase_price) for v in vehicles), ZERO)
    }
    for category in CostCategory:
        breakdown[category.value] = ZERO
    for cost in costs:
        breakdown[cost.category.value] += to_amount(cost.amount)
    return breakdown


def build_financial_summary(
    vehicles: Sequence[Vehicle],
    costs: Sequence[Cost],
    shipments: Sequence[Shipment],
    distributions: Sequence[ProfitDistribution] = (),
    distribution_entries: Sequence[ProfitDistributionEntry] = (),
) -> FinancialSummary:
    landed_costs = compute_landed_costs(vehicles, costs, shipments)

    distributions_by_vehicle = {d.vehicle_id: d for d in distributions}
    entries_by_distribution: Dict[UUID, List[ProfitDistributionEntry]] = {}
    for entry in distribution_entries:
        entries_by_distribution.setdefault(entry.distribution_id, []).append(entry)

    rows: List[VehicleFinancialRow] = []
    total_profit = dominick = tony = reinvestment_balance = ZERO

    for step in replay_sales(vehicles, landed_costs):
        split = step.split
        rows.append(VehicleFinancialRow(
            vehicle_id=step.vehicle.vehicle_id,
            vehicle_name=step.vehicle.display_name,
            sale_date=step.vehicle.sale_date,
            sale_price=step.sale_price,
            landed_cost=step.landed_cost,
            gross_profit=split.gross_profit,
            reinvestment=split.reinvestment_amount,
            dominick_share=split.dominick_share,
            tony_share=split.tony_share,
            reinvestment_phase=split.reinvestment_phase,
            payout_status=_payout_status(
                step.vehicle.vehicle_id, distributions_by_vehicle, entries_by_distribution
            ),
        ))
        total_profit += split.gross_profit
        dominick += split.dominick_share
        tony += split.tony_share
        # Losses reduce partner shares but never the reinvestment balance.
        reinvestment_balance = step.cumulative_after

    return FinancialSummary(
        total_gross_profit=total_profit,
        dominick_total=dominick,
        tony_total=tony,
        reinvestment_balance=reinvestment_balance,
        rows=rows,
        cost_breakdown=cost_breakdown(vehicles, costs),
    )


__all__ = [
    "FinancialSummary",
    "VehicleFinancialRow",
    "build_financial_summary",
    "cost_breakdown",
]
