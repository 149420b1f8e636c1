"""
Landed-cost allocation service.

Computes each vehicle's fully landed cost:

    landed_cost(v) = purchase_price(v)
                     + sum(costs referencing v directly)
                     + allocated share of its shipment's unattributed costs

The shipment share for vehicle v in shipment s is

    purchase_price(v) / sum(purchase_price(all vehicles in s)) * C(s)

where C(s) is the sum of ledger costs that reference s but no vehicle. If
the shipment's total purchase price is zero the cost is split equally across
all of its vehicles.

Only ledger entries are used. Shipment aggregate fields are mirrored into the
ledger as auto_shipment costs, so reading them here would double count.

Everything in this module is a pure function of (vehicles, costs,
shipments). Results are recomputed on every call and never cached.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence
from uuid import UUID

from domain.cost import SHIPMENT_COST_CATEGORIES, Cost, CostCategory
from domain.money import ZERO, to_amount
from domain.shipment import Shipment
from domain.vehicle import Vehicle


@dataclass(frozen=True, slots=True)
class LandedCostBreakdown:
    """Landed cost for a single vehicle, split into its components."""

    vehicle_id: UUID
    purchase_price: Decimal
    direct_costs: Decimal
    allocated_shipment_costs: Decimal

    @property
    def total(self) -> Decimal:
        return self.purchase_price + self.direct_costs + self.allocated_shipment_costs


def _sum_amounts(costs: Iterable[Cost]) -> Decimal:
    return sum((to_amount(c.amount) for c in costs), ZERO)


def allocate_shipment_costs(
    vehicles: Sequence[Vehicle],
    costs: Sequence[Cost],
    shipments: Sequence[Shipment],
) -> Dict[UUID, Decimal]:
    """
    Allocate unattributed shipment-level costs to the shipment's vehicles.

    Returns:
        Mapping of vehicle_id to allocated share. Vehicles that receive no
        share (no shipment, or a shipment without positive unattributed cost)
        are absent from the mapping.

    For every shipment that receives an allocation the shares sum to the
    shipment's unattributed cost total.
    """

    shares: Dict[UUID, Decimal] = {}

    for shipment in shipments:
        shipment_vehicles = [v for v in vehicles if v.shipment_id == shipment.shipment_id]
        shipment_costs = [
            c for c in costs
            if c.shipment_id == shipment.shipment_id and c.vehicle_id is None
        ]

        total_shipment_cost = _sum_amounts(shipment_costs)
        if not shipment_vehicles or total_shipment_cost <= ZERO:
            continue

        total_purchase_value = sum(
            (to_amount(v.purchase_price) for v in shipment_vehicles), ZERO
        )

        for vehicle in shipment_vehicles:
            if total_purchase_value > ZERO:
                share = to_amount(vehicle.purchase_price) / total_purchase_value * total_shipment_cost
            else:
                share = total_shipment_cost / len(shipment_vehicles)
            shares[vehicle.vehicle_id] = shares.get(vehicle.vehicle_id, ZERO) + share

    return shares


def compute_landed_costs(
    vehicles: Sequence[Vehicle],
    costs: Sequence[Cost],
    shipments: Sequence[Shipment],
) -> Dict[UUID, Decimal]:
    """
    Compute the landed cost of every vehicle.

    Total over any well-formed input: missing amounts count as zero and no
    exception is raised for sparse data.

    Example:
        landed = compute_landed_costs(vehicles, costs, shipments)
        profit = vehicle.actual_sale_price - landed[vehicle.vehicle_id]
    """

    return {
        vehicle_id: breakdown.total
        for vehicle_id, breakdown in compute_landed_cost_breakdowns(vehicles, costs, shipments).items()
    }


def compute_landed_cost_breakdowns(
    vehicles: Sequence[Vehicle],
    costs: Sequence[Cost],
    shipments: Sequence[Shipment],
) -> Dict[UUID, LandedCostBreakdown]:
    """Same as compute_landed_costs, keeping the individual components."""

    allocated = allocate_shipment_costs(vehicles, costs, shipments)

    direct: Dict[UUID, Decimal] = {}
    for cost in costs:
        if cost.vehicle_id is not None:
            direct[cost.vehicle_id] = direct.get(cost.vehicle_id, ZERO) + to_amount(cost.amount)

    return {
        vehicle.vehicle_id: LandedCostBreakdown(
            vehicle_id=vehicle.vehicle_id,
            purchase_price=to_amount(vehicle.purchase_price),
            direct_costs=direct.get(vehicle.vehicle_id, ZERO),
            allocated_shipment_costs=allocated.get(vehicle.vehicle_id, ZERO),
        )
        for vehicle in vehicles
    }


def landed_cost_for_vehicle(
    vehicle: Vehicle,
    vehicles: Sequence[Vehicle],
    costs: Sequence[Cost],
    shipments: Sequence[Shipment],
) -> Decimal:
    """
    Landed cost of a single vehicle.

    Falls back to the purchase price when the vehicle is not part of the
    supplied universe.
    """

    landed = compute_landed_costs(vehicles, costs, shipments)
    return landed.get(vehicle.vehicle_id, to_amount(vehicle.purchase_price))


def missing_cost_categories(vehicle: Vehicle, costs: Sequence[Cost]) -> List[str]:
    """
    Describe what is still missing before a vehicle's landed cost is final.

    A vehicle needs a positive purchase price. A vehicle assigned to a
    shipment also needs shipment-level ledger entries for ground transport,
    customs broker, ocean freight and import fees.
    """

    missing: List[str] = []

    if to_amount(vehicle.purchase_price) <= ZERO:
        missing.append(CostCategory.VEHICLE_PURCHASE.value)

    if vehicle.shipment_id is not None:
        present = {
            c.category
            for c in costs
            if c.shipment_id == vehicle.shipment_id and c.vehicle_id is None and to_amount(c.amount) > ZERO
        }
        missing.extend(
            category.value for category in SHIPMENT_COST_CATEGORIES if category not in present
        )

    return missing


def has_complete_landed_cost(vehicle: Vehicle, costs: Sequence[Cost]) -> bool:
    return not missing_cost_categories(vehicle, costs)


__all__ = [
    "LandedCostBreakdown",
    "allocate_shipment_costs",
    "compute_landed_costs",
    "compute_landed_cost_breakdowns",
    "landed_cost_for_vehicle",
    "missing_cost_categories",
    "has_complete_landed_cost",
]
