"""
Profit distribution ledger service.

Creates the persisted record of how a vehicle sale's profit was split, and
settles partner entries once they are paid out.

Handles:
- Idempotency: at most one distribution per vehicle. A second call is a
  no-op that reports the existing record.
- Point-in-time snapshot: the cumulative reinvestment total stored with the
  distribution is the value as it stood before this sale.
- Concurrency: the insert goes through an atomic database function backed by
  a unique constraint on vehicle_id; a lost race surfaces as
  ProfitDistributionConflictError.
- Settlement: the payout payment and the closed entry are written together;
  a lost race surfaces as EntrySettlementConflictError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID, uuid4

from domain.cost import Cost
from domain.money import round_money, to_amount
from domain.payment import Payment, PaymentStatus, payment_number_for
from domain.profit_distribution import (
    EntryStatus,
    Partner,
    ProfitDistribution,
    ProfitDistributionEntry,
)
from domain.shipment import Shipment
from domain.time import add_business_days
from domain.vehicle import Vehicle
from repositories import profit_distribution_repository
from services.cost_allocation_service import compute_landed_costs, landed_cost_for_vehicle
from services.profit_split_service import ProfitSplit, distribute
from services.reinvestment_service import cumulative_reinvestment

logger = logging.getLogger(__name__)

# Partner payouts fall due this many business days after the sale.
PAYOUT_DUE_BUSINESS_DAYS: int = 5


@dataclass(frozen=True, slots=True)
class DistributionOutcome:
    """
    Result of a generate_profit_distribution call.

    created: True if this call persisted a new distribution.
    distribution: The new or already existing distribution.
    stale: True if an existing distribution was computed for a different
        sale price than the vehicle now carries. Nothing is rewritten; the
        flag lets callers surface the correction instead of dropping it.
    """

    created: bool
    distribution: ProfitDistribution
    stale: bool = False


def _new_distribution_number() -> str:
    return f"DIST-{uuid4().hex[:6].upper()}"


def payout_due_date(distribution: ProfitDistribution) -> datetime:
    """Date by which the partner entries of a distribution should be paid."""

    return add_business_days(distribution.sale_date, PAYOUT_DUE_BUSINESS_DAYS)


def build_profit_distribution(
    vehicle: Vehicle,
    all_vehicles: Sequence[Vehicle],
    all_costs: Sequence[Cost],
    all_shipments: Sequence[Shipment],
) -> tuple[ProfitDistribution, list[ProfitDistributionEntry], ProfitSplit]:
    """
    Compute (without persisting) the distribution for a sold vehicle.

    Returns:
        (distribution, [dominick_entry, tony_entry], unrounded split)

    Raises:
        ValueError: If the vehicle has no recorded sale or no sale date.
    """

    if not vehicle.has_recorded_sale:
        raise ValueError(
            f"Vehicle {vehicle.vehicle_id} must be sold with an actual sale price "
            "before its profit can be distributed"
        )
    if vehicle.sale_date is None:
        raise ValueError(f"Vehicle {vehicle.vehicle_id} has no sale date")

    landed_cost = landed_cost_for_vehicle(vehicle, all_vehicles, all_costs, all_shipments)
    sale_price = to_amount(vehicle.actual_sale_price)
    gross_profit = sale_price - landed_cost

    # The vehicle must not count itself before it has a distribution.
    landed_costs = compute_landed_costs(all_vehicles, all_costs, all_shipments)
    cumulative = cumulative_reinvestment(all_vehicles, landed_costs, exclude_vehicle_id=vehicle.vehicle_id)

    split = distribute(gross_profit, cumulative)

    distribution_id = uuid4()
    distribution = ProfitDistribution(
        distribution_id=distribution_id,
        distribution_number=_new_distribution_number(),
        vehicle_id=vehicle.vehicle_id,
        gross_profit=round_money(gross_profit),
        total_cost=round_money(landed_cost),
        sale_price=round_money(sale_price),
        reinvestment_amount=round_money(split.reinvestment_amount),
        reinvestment_phase=split.reinvestment_phase,
        cumulative_reinvestment=round_money(cumulative),
        sale_date=vehicle.sale_date,
    )

    entries = [
        ProfitDistributionEntry(
            entry_id=uuid4(),
            distribution_id=distribution_id,
            partner=Partner.DOMINICK,
            amount=round_money(split.dominick_share),
            status=EntryStatus.PENDING,
        ),
        ProfitDistributionEntry(
            entry_id=uuid4(),
            distribution_id=distribution_id,
            partner=Partner.TONY,
            amount=round_money(split.tony_share),
            status=EntryStatus.PENDING,
        ),
    ]

    return distribution, entries, split


def generate_profit_distribution(
    vehicle: Vehicle,
    all_vehicles: Sequence[Vehicle],
    all_costs: Sequence[Cost],
    all_shipments: Sequence[Shipment],
) -> DistributionOutcome:
    """
    Create the profit distribution for a sold vehicle, at most once.

    Must run after the vehicle's sale (status sold, actual sale price, sale
    date) has been durably stored.

    Process:
    1. Return the existing distribution if one exists (no duplicate).
    2. Landed cost -> gross profit = actual sale price - landed cost.
    3. Cumulative reinvestment, replayed over all other recorded sales.
    4. Split under the current phase.
    5. Persist parent + two pending partner entries atomically.

    Raises:
        ValueError: If the vehicle has no recorded sale.
        ProfitDistributionConflictError: A concurrent request created the
            distribution between the check and the insert.
    """

    existing = profit_distribution_repository.get_profit_distribution_by_vehicle(vehicle.vehicle_id)
    if existing is not None:
        stale = (
            vehicle.actual_sale_price is not None
            and round_money(to_amount(vehicle.actual_sale_price)) != existing.sale_price
        )
        if stale:
            logger.warning(
                "Profit distribution exists with a different sale price; not recalculated",
                extra={
                    "vehicle_id": str(vehicle.vehicle_id),
                    "distribution_id": str(existing.distribution_id),
                    "distributed_sale_price": str(existing.sale_price),
                    "current_sale_price": str(vehicle.actual_sale_price),
                },
            )
        else:
            logger.info(
                "Profit distribution already exists; skipping",
                extra={"vehicle_id": str(vehicle.vehicle_id), "distribution_id": str(existing.distribution_id)},
            )
        return DistributionOutcome(created=False, distribution=existing, stale=stale)

    distribution, entries, split = build_profit_distribution(
        vehicle, all_vehicles, all_costs, all_shipments
    )

    recorded = profit_distribution_repository.record_profit_distribution(distribution, entries)

    logger.info(
        "Profit distribution recorded",
        extra={
            "vehicle_id": str(vehicle.vehicle_id),
            "distribution_number": recorded.distribution_number,
            "gross_profit": str(recorded.gross_profit),
            "reinvestment_phase": split.reinvestment_phase,
            "cumulative_reinvestment": str(recorded.cumulative_reinvestment),
        },
    )

    return DistributionOutcome(created=True, distribution=recorded)


def settle_distribution_entry(
    entry_id: UUID,
    paid_at: datetime,
    payment_method: Optional[str] = None,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> tuple[ProfitDistributionEntry, Payment]:
    """
    Pay out a pending partner entry.

    Records a paid Payment for the entry amount and closes the entry against
    it in one database transaction, so no payment survives a failed or lost
    settlement.

    Raises:
        LookupError: If the entry does not exist.
        ValueError: If the entry is already closed.
        EntrySettlementConflictError: A concurrent request settled the entry
            after it was read.
    """

    entry = profit_distribution_repository.get_profit_distribution_entry(entry_id)
    if entry is None:
        raise LookupError(f"Distribution entry not found: {entry_id}")
    if not entry.is_pending:
        raise ValueError(f"Distribution entry {entry_id} is already closed")

    payment_id = uuid4()
    payment = Payment(
        payment_id=payment_id,
        payment_number=payment_number_for(payment_id),
        amount=entry.amount,
        due_date=paid_at,
        status=PaymentStatus.PAID,
        date_paid=paid_at,
        payment_method=payment_method,
        reference_number=reference_number,
        notes=notes or f"{entry.partner.value} profit share",
    )

    closed = profit_distribution_repository.settle_profit_distribution_entry(
        entry.closed(payment_id, paid_at), payment
    )

    logger.info(
        "Distribution entry settled",
        extra={
            "entry_id": str(entry_id),
            "partner": entry.partner.value,
            "amount": str(entry.amount),
            "payment_id": str(payment.payment_id),
        },
    )

    return closed, payment


__all__ = [
    "PAYOUT_DUE_BUSINESS_DAYS",
    "DistributionOutcome",
    "build_profit_distribution",
    "generate_profit_distribution",
    "payout_due_date",
    "settle_distribution_entry",
]
