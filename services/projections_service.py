"""
Projected sales and partner payouts for unsold inventory (pure).

Every projection is split under the phase that applies today; no attempt is
made to model the goal being crossed partway through the projected sales.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Sequence
from uuid import UUID

from domain.cost import Cost
from domain.money import ZERO, to_amount
from domain.shipment import Shipment
from domain.vehicle import Vehicle, VehicleStatus
from services.cost_allocation_service import compute_landed_costs
from services.profit_split_service import ProfitSplit, distribute, is_reinvestment_phase
from services.reinvestment_service import cumulative_reinvestment


@dataclass(frozen=True, slots=True)
class VehicleProjection:
    vehicle_id: UUID
    vehicle_name: str
    vin: str
    status: VehicleStatus
    landed_cost: Decimal
    target_sale_price: Decimal
    minimum_price: Decimal
    target_split: ProfitSplit
    minimum_split: ProfitSplit

    @property
    def target_profit(self) -> Decimal:
        return self.target_split.gross_profit

    @property
    def minimum_profit(self) -> Decimal:
        return self.minimum_split.gross_profit


@dataclass(frozen=True, slots=True)
class ProjectionTotals:
    total_investment: Decimal = ZERO
    target_revenue: Decimal = ZERO
    minimum_revenue: Decimal = ZERO
    target_profit: Decimal = ZERO
    minimum_profit: Decimal = ZERO
    target_dominick: Decimal = ZERO
    target_tony: Decimal = ZERO
    minimum_dominick: Decimal = ZERO
    minimum_tony: Decimal = ZERO


@dataclass(frozen=True, slots=True)
class Projections:
    cumulative_reinvestment: Decimal
    reinvestment_phase: bool
    actualized_revenue: Decimal
    vehicles_in_stock: int
    vehicles_in_transit: int
    vehicles_sold: int
    total_vehicles: int
    totals: ProjectionTotals
    vehicles: List[VehicleProjection] = field(default_factory=list)


def build_projections(
    vehicles: Sequence[Vehicle],
    costs: Sequence[Cost],
    shipments: Sequence[Shipment],
) -> Projections:
    """
    Target and minimum outcomes for every unsold vehicle with a positive
    target price. A missing or non-positive minimum falls back to the target.
    """

    landed_costs = compute_landed_costs(vehicles, costs, shipments)
    cumulative = cumulative_reinvestment(vehicles, landed_costs)

    projections: List[VehicleProjection] = []
    for vehicle in vehicles:
        target = to_amount(vehicle.target_sale_price)
        if vehicle.is_sold or target <= ZERO:
            continue

        minimum = to_amount(vehicle.minimum_price)
        if minimum <= ZERO:
            minimum = target

        landed = landed_costs.get(vehicle.vehicle_id, to_amount(vehicle.purchase_price))
        projections.append(VehicleProjection(
            vehicle_id=vehicle.vehicle_id,
            vehicle_name=vehicle.display_name,
            vin=vehicle.vin,
            status=vehicle.status,
            landed_cost=landed,
            target_sale_price=target,
            minimum_price=minimum,
            target_split=distribute(target - landed, cumulative),
            minimum_split=distribute(minimum - landed, cumulative),
        ))

    totals = ProjectionTotals(
        total_investment=sum((p.landed_cost for p in projections), ZERO),
        target_revenue=sum((p.target_sale_price for p in projections), ZERO),
        minimum_revenue=sum((p.minimum_price for p in projections), ZERO),
        target_profit=sum((p.target_profit for p in projections), ZERO),
        minimum_profit=sum((p.minimum_profit for p in projections), ZERO),
        target_dominick=sum((p.target_split.dominick_share for p in projections), ZERO),
        target_tony=sum((p.target_split.tony_share for p in projections), ZERO),
        minimum_dominick=sum((p.minimum_split.dominick_share for p in projections), ZERO),
        minimum_tony=sum((p.minimum_split.tony_share for p in projections), ZERO),
    )

    sold = [v for v in vehicles if v.is_sold]

    return Projections(
        cumulative_reinvestment=cumulative,
        reinvestment_phase=is_reinvestment_phase(cumulative),
        actualized_revenue=sum((to_amount(v.actual_sale_price) for v in sold), ZERO),
        vehicles_in_stock=sum(1 for v in vehicles if v.status == VehicleStatus.IN_STOCK),
        vehicles_in_transit=sum(1 for v in vehicles if v.status == VehicleStatus.IN_TRANSIT),
        vehicles_sold=len(sold),
        total_vehicles=len(vehicles),
        totals=totals,
        vehicles=projections,
    )


__all__ = [
    "ProjectionTotals",
    "Projections",
    "VehicleProjection",
    "build_projections",
]
