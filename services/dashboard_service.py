"""
Dashboard metrics (pure).

Recomputed from fresh data on every request; all cost figures are landed
costs from the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Mapping, Sequence
from uuid import UUID

from domain.cost import Cost
from domain.money import ZERO, to_amount
from domain.payment import Payment, PaymentStatus
from domain.profit_distribution import ProfitDistribution, ProfitDistributionEntry
from domain.shipment import Shipment
from domain.time import require_utc_timestamp, whole_days_between
from domain.vehicle import Vehicle, VehicleStatus
from services.cost_allocation_service import compute_landed_costs
from services.profit_distribution_service import payout_due_date
from services.profit_split_service import is_reinvestment_phase
from services.reinvestment_service import GoalProgress, goal_progress, replay_sales

# In-stock vehicles older than this (days since arrival) are flagged.
STALE_INVENTORY_DAYS: int = 60

PRICE_COMPARISON_LIMIT: int = 5


@dataclass(frozen=True, slots=True)
class StatusSummary:
    count: int
    value: Decimal


@dataclass(frozen=True, slots=True)
class StaleVehicle:
    vehicle: Vehicle
    days_in_inventory: int


@dataclass(frozen=True, slots=True)
class PriceComparison:
    vehicle_id: UUID
    vehicle_name: str
    target: Decimal
    actual: Decimal


@dataclass(frozen=True, slots=True)
class DashboardAlerts:
    overdue_payments: List[Payment] = field(default_factory=list)
    overdue_payouts: List[ProfitDistributionEntry] = field(default_factory=list)
    stale_inventory: List[StaleVehicle] = field(default_factory=list)
    approaching_goal: bool = False
    reached_goal: bool = False

    @property
    def overdue_payment_total(self) -> Decimal:
        return sum((p.amount for p in self.overdue_payments), ZERO)


@dataclass(frozen=True, slots=True)
class DashboardMetrics:
    total_investment: Decimal
    inventory_value: Decimal
    total_gross_profit: Decimal
    revenue: Decimal
    goal: GoalProgress
    reinvestment_phase: bool
    by_status: Dict[str, StatusSummary]
    pending_payments: Decimal
    pending_payouts: Decimal
    alerts: DashboardAlerts
    portfolio_composition: Dict[str, int]
    price_comparison: List[PriceComparison]


def _summarize(vehicles: Sequence[Vehicle], landed_costs: Mapping[UUID, Decimal]) -> StatusSummary:
    value = sum((landed_costs.get(v.vehicle_id, to_amount(v.purchase_price)) for v in vehicles), ZERO)
    return StatusSummary(count=len(vehicles), value=value)


def stale_inventory(vehicles: Sequence[Vehicle], now: datetime) -> List[StaleVehicle]:
    """In-stock vehicles that arrived more than STALE_INVENTORY_DAYS ago."""

    stale: List[StaleVehicle] = []
    for vehicle in vehicles:
        if vehicle.status != VehicleStatus.IN_STOCK or vehicle.date_arrived is None:
            continue
        days = whole_days_between(vehicle.date_arrived, now)
        if days > STALE_INVENTORY_DAYS:
            stale.append(StaleVehicle(vehicle=vehicle, days_in_inventory=days))
    return stale


def build_dashboard_metrics(
    vehicles: Sequence[Vehicle],
    costs: Sequence[Cost],
    shipments: Sequence[Shipment],
    payments: Sequence[Payment],
    distributions: Sequence[ProfitDistribution],
    distribution_entries: Sequence[ProfitDistributionEntry],
    now: datetime,
) -> DashboardMetrics:
    require_utc_timestamp("now", now)

    landed_costs = compute_landed_costs(vehicles, costs, shipments)
    replay = replay_sales(vehicles, landed_costs)
    cumulative = replay[-1].cumulative_after if replay else ZERO
    progress = goal_progress(cumulative)

    unsold = [v for v in vehicles if not v.is_sold]
    sold = [v for v in vehicles if v.is_sold]

    by_status = {
        status.value: _summarize([v for v in vehicles if v.status == status], landed_costs)
        for status in VehicleStatus
    }

    revenue = sum((step.sale_price for step in replay), ZERO)

    pending = [p for p in payments if p.status == PaymentStatus.PENDING]
    pending_entries = [e for e in distribution_entries if e.is_pending]

    distributions_by_id = {d.distribution_id: d for d in distributions}
    overdue_payouts = [
        e for e in pending_entries
        if e.distribution_id in distributions_by_id
        and payout_due_date(distributions_by_id[e.distribution_id]) < now
    ]

    alerts = DashboardAlerts(
        overdue_payments=[p for p in payments if p.is_overdue(now)],
        overdue_payouts=overdue_payouts,
        stale_inventory=stale_inventory(vehicles, now),
        approaching_goal=progress.approaching,
        reached_goal=progress.reached,
    )

    price_comparison = [
        PriceComparison(
            vehicle_id=step.vehicle.vehicle_id,
            vehicle_name=step.vehicle.display_name,
            target=to_amount(step.vehicle.target_sale_price),
            actual=step.sale_price,
        )
        for step in replay[:PRICE_COMPARISON_LIMIT]
    ]

    return DashboardMetrics(
        total_investment=sum(
            (landed_costs.get(v.vehicle_id, to_amount(v.purchase_price)) for v in vehicles), ZERO
        ),
        inventory_value=_summarize(unsold, landed_costs).value,
        total_gross_profit=sum((step.gross_profit for step in replay), ZERO),
        revenue=revenue,
        goal=progress,
        reinvestment_phase=is_reinvestment_phase(cumulative),
        by_status=by_status,
        pending_payments=sum((p.amount for p in pending), ZERO),
        pending_payouts=sum((e.amount for e in pending_entries), ZERO),
        alerts=alerts,
        portfolio_composition={
            "in_transit": by_status[VehicleStatus.IN_TRANSIT.value].count,
            "in_stock": by_status[VehicleStatus.IN_STOCK.value].count,
            "sold": len(sold),
        },
        price_comparison=price_comparison,
    )


__all__ = [
    "STALE_INVENTORY_DAYS",
    "DashboardAlerts",
    "DashboardMetrics",
    "PriceComparison",
    "StaleVehicle",
    "StatusSummary",
    "build_dashboard_metrics",
    "stale_inventory",
]
