"""
Reinvestment phase tracking.

The cumulative reinvestment total decides which profit split applies. It is
never stored as a counter: it is derived on demand by replaying every
recorded sale against the current landed-cost map, so the dashboard,
financials, projections and the distribution ledger always agree.

Canonical formula: for every vehicle that is sold with a recorded actual sale
price,

    profit = actual_sale_price - landed_cost
    if profit > 0: cumulative += profit * 0.6

Loss-making sales neither advance nor regress the total.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from domain.money import ZERO, to_amount
from domain.vehicle import Vehicle
from services.profit_split_service import GOAL_AMOUNT, REINVESTMENT_RATE, ProfitSplit, distribute


@dataclass(frozen=True, slots=True)
class SaleReplayStep:
    """One sale in the chronological replay."""

    vehicle: Vehicle
    sale_price: Decimal
    landed_cost: Decimal
    cumulative_before: Decimal
    cumulative_after: Decimal
    split: ProfitSplit

    @property
    def gross_profit(self) -> Decimal:
        return self.split.gross_profit


@dataclass(frozen=True, slots=True)
class GoalProgress:
    """Display view of the cumulative reinvestment total."""

    cumulative_reinvestment: Decimal
    display_value: Decimal  # capped at the goal
    goal_amount: Decimal
    percent: Decimal
    reached: bool
    approaching: bool


def _recorded_sales(vehicles: Sequence[Vehicle], exclude_vehicle_id: Optional[UUID] = None) -> List[Vehicle]:
    return [
        v for v in vehicles
        if v.has_recorded_sale and v.vehicle_id != exclude_vehicle_id
    ]


def _landed_cost(vehicle: Vehicle, landed_costs: Mapping[UUID, Decimal]) -> Decimal:
    return landed_costs.get(vehicle.vehicle_id, to_amount(vehicle.purchase_price))


def reinvestment_contribution(profit: Decimal) -> Decimal:
    """Amount a single sale adds to the cumulative total (0 for losses)."""

    if profit > ZERO:
        return profit * REINVESTMENT_RATE
    return ZERO


def cumulative_reinvestment(
    vehicles: Sequence[Vehicle],
    landed_costs: Mapping[UUID, Decimal],
    exclude_vehicle_id: Optional[UUID] = None,
) -> Decimal:
    """
    Replay all recorded sales and return the cumulative reinvestment total.

    Args:
        vehicles: All vehicles; only sold vehicles with an actual sale price
            contribute.
        landed_costs: Output of compute_landed_costs for the same universe.
        exclude_vehicle_id: Vehicle to leave out, used when computing that
            vehicle's own distribution before it counts itself.
    """

    total = ZERO
    for vehicle in _recorded_sales(vehicles, exclude_vehicle_id):
        profit = to_amount(vehicle.actual_sale_price) - _landed_cost(vehicle, landed_costs)
        total += reinvestment_contribution(profit)
    return total


def _chronological_key(vehicle: Vehicle) -> Tuple[int, float, str]:
    # Undated sales sort last; ties fall back to vehicle id.
    if vehicle.sale_date is None:
        return (1, 0.0, str(vehicle.vehicle_id))
    return (0, vehicle.sale_date.timestamp(), str(vehicle.vehicle_id))


def replay_sales(
    vehicles: Sequence[Vehicle],
    landed_costs: Mapping[UUID, Decimal],
) -> List[SaleReplayStep]:
    """
    Replay recorded sales in chronological order of sale date.

    Each sale is split using the cumulative total as it stood before that
    sale, so the phase change at the goal applies to the sale that crosses
    it and every later one.
    """

    steps: List[SaleReplayStep] = []
    running = ZERO

    for vehicle in sorted(_recorded_sales(vehicles), key=_chronological_key):
        sale_price = to_amount(vehicle.actual_sale_price)
        landed = _landed_cost(vehicle, landed_costs)
        split = distribute(sale_price - landed, running)
        after = running + reinvestment_contribution(split.gross_profit)

        steps.append(SaleReplayStep(
            vehicle=vehicle,
            sale_price=sale_price,
            landed_cost=landed,
            cumulative_before=running,
            cumulative_after=after,
            split=split,
        ))
        running = after

    return steps


def goal_progress(cumulative: Decimal) -> GoalProgress:
    """Progress toward the reinvestment goal, capped at the goal for display."""

    value = to_amount(cumulative)
    display_value = min(value, GOAL_AMOUNT)
    percent = (display_value / GOAL_AMOUNT * Decimal("100")) if GOAL_AMOUNT > ZERO else ZERO
    reached = value >= GOAL_AMOUNT

    return GoalProgress(
        cumulative_reinvestment=value,
        display_value=display_value,
        goal_amount=GOAL_AMOUNT,
        percent=percent,
        reached=reached,
        approaching=not reached and value >= GOAL_AMOUNT * Decimal("0.9"),
    )


__all__ = [
    "GoalProgress",
    "SaleReplayStep",
    "cumulative_reinvestment",
    "goal_progress",
    "reinvestment_contribution",
    "replay_sales",
]
