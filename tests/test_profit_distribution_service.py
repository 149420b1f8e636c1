"""
Tests for `services/profit_distribution_service.py`.

Repository calls are replaced with in-memory fakes via monkeypatch.

Covers:
- A first sale below the goal is split 60/20/20 into two pending entries.
- Generation is idempotent: a second call creates nothing.
- A changed sale price after distribution is reported as stale.
- A lost concurrent insert surfaces as a conflict.
- Settling an entry records a paid payment and closes the entry; a lost or
  failed settlement leaves no payment behind.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List
from uuid import UUID, uuid4

import pytest

from domain.cost import Cost, CostCategory
from domain.payment import Payment, PaymentStatus
from domain.profit_distribution import EntryStatus, Partner, ProfitDistribution, ProfitDistributionEntry
from domain.shipment import Shipment
from domain.vehicle import Vehicle, VehicleStatus
from repositories import profit_distribution_repository
from repositories.profit_distribution_repository import (
    EntrySettlementConflictError,
    ProfitDistributionConflictError,
)
from services.profit_distribution_service import (
    build_profit_distribution,
    generate_profit_distribution,
    payout_due_date,
    settle_distribution_entry,
)

SALE_DATE = datetime(2025, 5, 9, 16, 0, 0, tzinfo=timezone.utc)  # Friday
SHIPMENT_ID = UUID("00000000-0000-0000-0000-0000000000c1")


class FakeDistributionStore:
    """Minimal stand-in for the distribution tables."""

    def __init__(self) -> None:
        self.distributions: Dict[UUID, ProfitDistribution] = {}
        self.entries: Dict[UUID, ProfitDistributionEntry] = {}
        self.payments: List[Payment] = []
        self.record_calls = 0

    def get_by_vehicle(self, vehicle_id: UUID):
        return self.distributions.get(vehicle_id)

    def record(self, distribution: ProfitDistribution, entries: List[ProfitDistributionEntry]):
        self.record_calls += 1
        if distribution.vehicle_id in self.distributions:
            raise ProfitDistributionConflictError(distribution.vehicle_id)
        self.distributions[distribution.vehicle_id] = distribution
        for entry in entries:
            self.entries[entry.entry_id] = entry
        return distribution

    def get_entry(self, entry_id: UUID):
        return self.entries.get(entry_id)

    def settle(self, entry: ProfitDistributionEntry, payment: Payment):
        # Payment and entry are written together or not at all.
        if not self.entries[entry.entry_id].is_pending:
            raise EntrySettlementConflictError(entry.entry_id)
        self.payments.append(payment)
        self.entries[entry.entry_id] = entry
        return entry


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> FakeDistributionStore:
    fake = FakeDistributionStore()
    monkeypatch.setattr(profit_distribution_repository, "get_profit_distribution_by_vehicle", fake.get_by_vehicle)
    monkeypatch.setattr(profit_distribution_repository, "record_profit_distribution", fake.record)
    monkeypatch.setattr(profit_distribution_repository, "get_profit_distribution_entry", fake.get_entry)
    monkeypatch.setattr(profit_distribution_repository, "settle_profit_distribution_entry", fake.settle)
    return fake


def _vehicle(purchase: str, **overrides) -> Vehicle:
    values = dict(
        vehicle_id=uuid4(),
        year=2017,
        make="Toyota",
        model="Tacoma",
        vin=uuid4().hex[:17].upper(),
        purchase_price=Decimal(purchase),
        status=VehicleStatus.IN_STOCK,
        shipment_id=SHIPMENT_ID,
    )
    values.update(overrides)
    return Vehicle(**values)


def _fleet():
    """A 10000 / B 30000 sharing 4000 of ocean freight: landed 11000 / 33000."""

    a = _vehicle("10000")
    b = _vehicle("30000")
    shipments = [Shipment(shipment_id=SHIPMENT_ID, shipment_number="SHP-010", route="Houston -> Puerto Cortes")]
    costs = [
        Cost(
            cost_id=uuid4(),
            category=CostCategory.OCEAN_FREIGHT,
            amount=Decimal("4000"),
            cost_date=SALE_DATE,
            shipment_id=SHIPMENT_ID,
        )
    ]
    return a, b, costs, shipments


def test_first_sale_is_split_into_two_pending_entries(store: FakeDistributionStore) -> None:
    a, b, costs, shipments = _fleet()
    sold_a = a.sold(Decimal("13000"), SALE_DATE)

    outcome = generate_profit_distribution(sold_a, [sold_a, b], costs, shipments)

    assert outcome.created is True
    assert outcome.stale is False
    distribution = outcome.distribution
    assert distribution.total_cost == Decimal("11000.00")
    assert distribution.gross_profit == Decimal("2000.00")
    assert distribution.reinvestment_amount == Decimal("1200.00")
    assert distribution.reinvestment_phase is True
    assert distribution.cumulative_reinvestment == Decimal("0.00")
    assert distribution.distribution_number.startswith("DIST-")

    entries = list(store.entries.values())
    assert len(entries) == 2
    assert {e.partner for e in entries} == {Partner.DOMINICK, Partner.TONY}
    assert all(e.amount == Decimal("400.00") for e in entries)
    assert all(e.status == EntryStatus.PENDING for e in entries)
    assert all(e.distribution_id == distribution.distribution_id for e in entries)


def test_second_call_is_a_no_op(store: FakeDistributionStore) -> None:
    a, b, costs, shipments = _fleet()
    sold_a = a.sold(Decimal("13000"), SALE_DATE)

    first = generate_profit_distribution(sold_a, [sold_a, b], costs, shipments)
    second = generate_profit_distribution(sold_a, [sold_a, b], costs, shipments)

    assert second.created is False
    assert second.stale is False
    assert second.distribution == first.distribution
    assert store.record_calls == 1
    assert len(store.entries) == 2


def test_snapshot_excludes_the_vehicle_itself(store: FakeDistributionStore) -> None:
    """Earlier sales count toward the snapshot; the current sale does not."""

    a, b, costs, shipments = _fleet()
    sold_a = a.sold(Decimal("13000"), SALE_DATE)
    sold_b = b.sold(Decimal("36000"), SALE_DATE)

    outcome = generate_profit_distribution(sold_b, [sold_a, sold_b], costs, shipments)

    # A's 2000 profit contributed 1200 before B was distributed.
    assert outcome.distribution.cumulative_reinvestment == Decimal("1200.00")
    assert outcome.distribution.gross_profit == Decimal("3000.00")


def test_changed_sale_price_is_reported_stale(store: FakeDistributionStore) -> None:
    a, b, costs, shipments = _fleet()
    sold_a = a.sold(Decimal("13000"), SALE_DATE)
    generate_profit_distribution(sold_a, [sold_a, b], costs, shipments)

    corrected = replace(sold_a, actual_sale_price=Decimal("12500"))
    outcome = generate_profit_distribution(corrected, [corrected, b], costs, shipments)

    assert outcome.created is False
    assert outcome.stale is True
    assert outcome.distribution.sale_price == Decimal("13000.00")
    assert store.record_calls == 1


def test_concurrent_insert_surfaces_as_conflict(
    store: FakeDistributionStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    """The existence check misses, but the insert loses the race."""

    a, b, costs, shipments = _fleet()
    sold_a = a.sold(Decimal("13000"), SALE_DATE)
    generate_profit_distribution(sold_a, [sold_a, b], costs, shipments)
    monkeypatch.setattr(profit_distribution_repository, "get_profit_distribution_by_vehicle", lambda _id: None)

    with pytest.raises(ProfitDistributionConflictError):
        generate_profit_distribution(sold_a, [sold_a, b], costs, shipments)

    assert len(store.distributions) == 1


def test_unsold_vehicle_cannot_be_distributed(store: FakeDistributionStore) -> None:
    a, b, costs, shipments = _fleet()

    with pytest.raises(ValueError):
        generate_profit_distribution(a, [a, b], costs, shipments)

    assert store.record_calls == 0


def test_build_returns_unrounded_split() -> None:
    a, b, costs, shipments = _fleet()
    sold_a = a.sold(Decimal("13000.005"), SALE_DATE)

    distribution, entries, split = build_profit_distribution(sold_a, [sold_a, b], costs, shipments)

    assert split.gross_profit == Decimal("2000.005")
    assert distribution.gross_profit == Decimal("2000.01")
    assert [e.partner for e in entries] == [Partner.DOMINICK, Partner.TONY]


def test_payout_due_five_business_days_after_sale() -> None:
    a, b, costs, shipments = _fleet()
    sold_a = a.sold(Decimal("13000"), SALE_DATE)
    distribution, _, _ = build_profit_distribution(sold_a, [sold_a, b], costs, shipments)

    assert payout_due_date(distribution) == datetime(2025, 5, 16, 16, 0, 0, tzinfo=timezone.utc)


class TestSettleDistributionEntry:
    PAID_AT = datetime(2025, 5, 12, 9, 0, 0, tzinfo=timezone.utc)

    @pytest.fixture
    def distributed(self, store: FakeDistributionStore) -> FakeDistributionStore:
        a, b, costs, shipments = _fleet()
        sold_a = a.sold(Decimal("13000"), SALE_DATE)
        generate_profit_distribution(sold_a, [sold_a, b], costs, shipments)
        return store

    def test_settle_closes_entry_against_paid_payment(self, distributed: FakeDistributionStore) -> None:
        entry = next(e for e in distributed.entries.values() if e.partner == Partner.TONY)

        closed, payment = settle_distribution_entry(entry.entry_id, self.PAID_AT, payment_method="wire")

        assert closed.status == EntryStatus.CLOSED
        assert closed.payment_id == payment.payment_id
        assert closed.closed_date == self.PAID_AT
        assert payment.status == PaymentStatus.PAID
        assert payment.amount == Decimal("400.00")
        assert payment.date_paid == self.PAID_AT
        assert payment.payment_method == "wire"
        assert payment.notes == "tony profit share"
        assert payment.payment_number == f"PAY-{payment.payment_id.hex[:8].upper()}"
        assert distributed.payments == [payment]

    def test_settling_twice_is_rejected(self, distributed: FakeDistributionStore) -> None:
        entry_id = next(iter(distributed.entries))

        settle_distribution_entry(entry_id, self.PAID_AT)
        with pytest.raises(ValueError):
            settle_distribution_entry(entry_id, self.PAID_AT)

        assert len(distributed.payments) == 1

    def test_concurrent_settlement_records_one_payment(
        self, distributed: FakeDistributionStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        entry = next(iter(distributed.entries.values()))
        # Both requests read the entry while it was still pending.
        monkeypatch.setattr(profit_distribution_repository, "get_profit_distribution_entry", lambda _id: entry)

        settle_distribution_entry(entry.entry_id, self.PAID_AT)
        with pytest.raises(EntrySettlementConflictError) as exc_info:
            settle_distribution_entry(entry.entry_id, self.PAID_AT)

        assert exc_info.value.entry_id == entry.entry_id
        assert len(distributed.payments) == 1

    def test_failed_settlement_leaves_no_payment(
        self, distributed: FakeDistributionStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        entry = next(iter(distributed.entries.values()))

        def failing_settle(closed, payment):
            raise RuntimeError("Failed to settle distribution entry: connection reset")

        monkeypatch.setattr(profit_distribution_repository, "settle_profit_distribution_entry", failing_settle)

        with pytest.raises(RuntimeError):
            settle_distribution_entry(entry.entry_id, self.PAID_AT)

        assert distributed.payments == []
        assert distributed.entries[entry.entry_id].is_pending

    def test_unknown_entry(self, store: FakeDistributionStore) -> None:
        with pytest.raises(LookupError):
            settle_distribution_entry(uuid4(), self.PAID_AT)

        assert store.payments == []
