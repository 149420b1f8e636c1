"""
Tests for the cost ledger, cost locking and customs clearance services.

An in-memory ledger replaces the cost, shipment and vehicle repositories.

Covers:
- Locked costs reject edits and deletes; unrelated shipments stay editable.
- New costs cannot attach to a cleared shipment or to a vehicle in one.
- Auto-generated shipment costs are synced, never deleted directly.
- Customs clearance: cleared is terminal and locks the shipment's costs;
  clearing again locks whatever a failed batch left unlocked.
- A cleared shipment blocks edits to its costs even before they are flagged.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID, uuid4

import pytest

from domain.cost import Cost, CostCategory, CostSource
from domain.shipment import ClearanceStatus, CustomsClearance, Shipment
from domain.vehicle import Vehicle
from repositories import cost_repository, shipment_repository, vehicle_repository
from services.cost_ledger_service import create_cost, delete_cost, sync_shipment_costs_to_ledger, update_cost
from services.cost_locking_service import CostLockedError
from services.customs_clearance_service import update_customs_clearance

NOW = datetime(2025, 6, 3, 14, 0, 0, tzinfo=timezone.utc)
CLEARED_SHIPMENT = UUID("00000000-0000-0000-0000-0000000000d1")
OPEN_SHIPMENT = UUID("00000000-0000-0000-0000-0000000000d2")


class FakeLedger:
    def __init__(self) -> None:
        self.costs: Dict[UUID, Cost] = {}
        self.clearances: Dict[UUID, CustomsClearance] = {}
        self.shipments: Dict[UUID, Shipment] = {}
        self.vehicles: Dict[UUID, Vehicle] = {}

    # cost_repository
    def get_cost_by_id(self, cost_id: UUID) -> Optional[Cost]:
        return self.costs.get(cost_id)

    def insert_cost(self, cost: Cost) -> Cost:
        self.costs[cost.cost_id] = cost
        return cost

    def update_cost(self, cost: Cost) -> Cost:
        self.costs[cost.cost_id] = cost
        return cost

    def delete_cost(self, cost_id: UUID) -> None:
        del self.costs[cost_id]

    def find_auto_shipment_cost(self, shipment_id: UUID, category: CostCategory) -> Optional[Cost]:
        for cost in self.costs.values():
            if cost.shipment_id == shipment_id and cost.category == category and cost.is_auto_generated:
                return cost
        return None

    def lock_costs_for_shipment(self, shipment_id: UUID, vehicle_ids: List[UUID]) -> int:
        count = 0
        for cost_id, cost in list(self.costs.items()):
            if cost.locked:
                continue
            if cost.shipment_id == shipment_id or cost.vehicle_id in vehicle_ids:
                self.costs[cost_id] = replace(cost, locked=True)
                count += 1
        return count

    # shipment_repository
    def get_shipment_by_id(self, shipment_id: UUID) -> Optional[Shipment]:
        return self.shipments.get(shipment_id)

    def get_customs_clearance(self, shipment_id: UUID) -> Optional[CustomsClearance]:
        return self.clearances.get(shipment_id)

    def upsert_customs_clearance(self, clearance: CustomsClearance) -> CustomsClearance:
        self.clearances[clearance.shipment_id] = clearance
        return clearance

    # vehicle_repository
    def get_vehicle_by_id(self, vehicle_id: UUID) -> Optional[Vehicle]:
        return self.vehicles.get(vehicle_id)

    def list_vehicles_by_shipment(self, shipment_id: UUID) -> List[Vehicle]:
        return [v for v in self.vehicles.values() if v.shipment_id == shipment_id]

    # helpers
    def add_shipment(self, shipment_id: UUID, **fields) -> Shipment:
        shipment = Shipment(shipment_id=shipment_id, shipment_number=f"SHP-{str(shipment_id)[-3:]}", route="Houston -> Puerto Cortes", **fields)
        self.shipments[shipment_id] = shipment
        return shipment

    def add_vehicle(self, shipment_id: Optional[UUID]) -> Vehicle:
        vehicle = Vehicle(
            vehicle_id=uuid4(),
            year=2015,
            make="Ford",
            model="Ranger",
            vin=uuid4().hex[:17].upper(),
            purchase_price=Decimal("9000"),
            shipment_id=shipment_id,
        )
        self.vehicles[vehicle.vehicle_id] = vehicle
        return vehicle

    def add_cost(self, amount: str, **fields) -> Cost:
        cost = Cost(cost_id=uuid4(), amount=Decimal(amount), cost_date=NOW, **{"category": CostCategory.REPAIRS, **fields})
        self.costs[cost.cost_id] = cost
        return cost


@pytest.fixture
def ledger(monkeypatch: pytest.MonkeyPatch) -> FakeLedger:
    fake = FakeLedger()
    for name in (
        "get_cost_by_id",
        "insert_cost",
        "update_cost",
        "delete_cost",
        "find_auto_shipment_cost",
        "lock_costs_for_shipment",
    ):
        monkeypatch.setattr(cost_repository, name, getattr(fake, name))
    for name in ("get_shipment_by_id", "get_customs_clearance", "upsert_customs_clearance"):
        monkeypatch.setattr(shipment_repository, name, getattr(fake, name))
    for name in ("get_vehicle_by_id", "list_vehicles_by_shipment"):
        monkeypatch.setattr(vehicle_repository, name, getattr(fake, name))

    fake.add_shipment(CLEARED_SHIPMENT)
    fake.add_shipment(OPEN_SHIPMENT)
    return fake


def _clear(ledger: FakeLedger, shipment_id: UUID = CLEARED_SHIPMENT) -> int:
    return update_customs_clearance(shipment_id, ClearanceStatus.CLEARED, now=NOW).locked_cost_count


class TestCustomsClearance:
    def test_clearing_locks_shipment_and_vehicle_costs(self, ledger: FakeLedger) -> None:
        vehicle = ledger.add_vehicle(CLEARED_SHIPMENT)
        freight = ledger.add_cost("3000", category=CostCategory.OCEAN_FREIGHT, shipment_id=CLEARED_SHIPMENT)
        repair = ledger.add_cost("450", vehicle_id=vehicle.vehicle_id)
        other = ledger.add_cost("700", category=CostCategory.OCEAN_FREIGHT, shipment_id=OPEN_SHIPMENT)

        assert _clear(ledger) == 2

        assert ledger.costs[freight.cost_id].locked
        assert ledger.costs[repair.cost_id].locked
        assert not ledger.costs[other.cost_id].locked

    def test_clearing_stamps_timestamps(self, ledger: FakeLedger) -> None:
        result = update_customs_clearance(CLEARED_SHIPMENT, ClearanceStatus.CLEARED, port="Puerto Cortes", now=NOW)

        assert result.clearance.cleared_at == NOW
        assert result.clearance.submitted_at == NOW
        assert result.clearance.port == "Puerto Cortes"

    def test_submitted_keeps_original_submission_time(self, ledger: FakeLedger) -> None:
        first = datetime(2025, 6, 1, 9, 0, 0, tzinfo=timezone.utc)
        update_customs_clearance(OPEN_SHIPMENT, ClearanceStatus.SUBMITTED, now=first)

        result = update_customs_clearance(OPEN_SHIPMENT, ClearanceStatus.IN_REVIEW, now=NOW)

        assert result.clearance.submitted_at == first
        assert result.clearance.cleared_at is None
        assert result.locked_cost_count == 0

    def test_cleared_is_terminal(self, ledger: FakeLedger) -> None:
        _clear(ledger)

        with pytest.raises(ValueError):
            update_customs_clearance(CLEARED_SHIPMENT, ClearanceStatus.IN_REVIEW, now=NOW)

        assert ledger.clearances[CLEARED_SHIPMENT].status == ClearanceStatus.CLEARED

    def test_clearing_twice_keeps_the_clearance(self, ledger: FakeLedger) -> None:
        _clear(ledger)
        later = datetime(2025, 7, 1, tzinfo=timezone.utc)

        result = update_customs_clearance(CLEARED_SHIPMENT, ClearanceStatus.CLEARED, now=later)

        assert result.locked_cost_count == 0
        assert result.clearance.cleared_at == NOW

    def test_clearing_again_locks_costs_a_failed_batch_missed(
        self, ledger: FakeLedger, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        vehicle = ledger.add_vehicle(CLEARED_SHIPMENT)
        repair = ledger.add_cost("450", vehicle_id=vehicle.vehicle_id)

        def failing_lock(shipment_id, vehicle_ids):
            raise RuntimeError("Failed to lock shipment costs: connection reset")

        monkeypatch.setattr(cost_repository, "lock_costs_for_shipment", failing_lock)
        with pytest.raises(RuntimeError):
            _clear(ledger)
        assert ledger.clearances[CLEARED_SHIPMENT].is_cleared
        assert not ledger.costs[repair.cost_id].locked

        monkeypatch.setattr(cost_repository, "lock_costs_for_shipment", ledger.lock_costs_for_shipment)
        assert _clear(ledger) == 1

        assert ledger.costs[repair.cost_id].locked
        with pytest.raises(CostLockedError):
            update_cost(repair.cost_id, {"amount": "500"})

    def test_unknown_shipment(self, ledger: FakeLedger) -> None:
        with pytest.raises(LookupError):
            update_customs_clearance(uuid4(), ClearanceStatus.SUBMITTED, now=NOW)


class TestLockedCosts:
    def test_locked_cost_rejects_update(self, ledger: FakeLedger) -> None:
        cost = ledger.add_cost("3000", category=CostCategory.OCEAN_FREIGHT, shipment_id=CLEARED_SHIPMENT)
        _clear(ledger)

        with pytest.raises(CostLockedError) as exc_info:
            update_cost(cost.cost_id, {"amount": "3500"})

        assert exc_info.value.cost_id == cost.cost_id
        assert ledger.costs[cost.cost_id].amount == Decimal("3000")

    def test_locked_cost_rejects_delete(self, ledger: FakeLedger) -> None:
        cost = ledger.add_cost("3000", category=CostCategory.OCEAN_FREIGHT, shipment_id=CLEARED_SHIPMENT)
        _clear(ledger)

        with pytest.raises(CostLockedError):
            delete_cost(cost.cost_id)

        assert cost.cost_id in ledger.costs

    def test_new_cost_on_cleared_shipment_is_rejected(self, ledger: FakeLedger) -> None:
        _clear(ledger)

        with pytest.raises(CostLockedError):
            create_cost(CostCategory.IMPORT_FEES, "800", NOW, shipment_id=CLEARED_SHIPMENT)

    def test_new_cost_on_vehicle_in_cleared_shipment_is_rejected(self, ledger: FakeLedger) -> None:
        vehicle = ledger.add_vehicle(CLEARED_SHIPMENT)
        _clear(ledger)

        with pytest.raises(CostLockedError) as exc_info:
            create_cost(CostCategory.REPAIRS, "120", NOW, vehicle_id=vehicle.vehicle_id)

        assert exc_info.value.shipment_id == CLEARED_SHIPMENT

    def test_moving_cost_onto_cleared_shipment_is_rejected(self, ledger: FakeLedger) -> None:
        _clear(ledger)
        cost = ledger.add_cost("300", category=CostCategory.GROUND_TRANSPORT, shipment_id=OPEN_SHIPMENT)

        with pytest.raises(CostLockedError):
            update_cost(cost.cost_id, {"shipment_id": CLEARED_SHIPMENT})

    def test_unrelated_shipment_stays_editable(self, ledger: FakeLedger) -> None:
        cost = ledger.add_cost("700", category=CostCategory.OCEAN_FREIGHT, shipment_id=OPEN_SHIPMENT)
        _clear(ledger)

        updated = update_cost(cost.cost_id, {"amount": "750", "vendor": "Seaboard"})

        assert updated.amount == Decimal("750")
        assert updated.vendor == "Seaboard"

    def test_cleared_shipment_blocks_costs_without_lock_flag(self, ledger: FakeLedger) -> None:
        cost = ledger.add_cost("3000", category=CostCategory.OCEAN_FREIGHT, shipment_id=CLEARED_SHIPMENT)
        ledger.clearances[CLEARED_SHIPMENT] = CustomsClearance(
            shipment_id=CLEARED_SHIPMENT,
            status=ClearanceStatus.CLEARED,
            submitted_at=NOW,
            cleared_at=NOW,
        )

        with pytest.raises(CostLockedError) as exc_info:
            update_cost(cost.cost_id, {"amount": "3500"})
        with pytest.raises(CostLockedError):
            delete_cost(cost.cost_id)

        assert exc_info.value.cost_id == cost.cost_id
        assert exc_info.value.shipment_id == CLEARED_SHIPMENT
        assert ledger.costs[cost.cost_id].amount == Decimal("3000")

    def test_vehicle_moved_into_cleared_shipment_locks_its_costs(self, ledger: FakeLedger) -> None:
        vehicle = ledger.add_vehicle(OPEN_SHIPMENT)
        repair = ledger.add_cost("200", vehicle_id=vehicle.vehicle_id)
        _clear(ledger)
        ledger.vehicles[vehicle.vehicle_id] = replace(vehicle, shipment_id=CLEARED_SHIPMENT)

        with pytest.raises(CostLockedError):
            update_cost(repair.cost_id, {"notes": "new tires"})
        with pytest.raises(CostLockedError):
            delete_cost(repair.cost_id)

        assert repair.cost_id in ledger.costs


class TestManualCosts:
    def test_create_cost(self, ledger: FakeLedger) -> None:
        cost = create_cost(CostCategory.STORAGE, "85.50", NOW, vehicle_id=ledger.add_vehicle(None).vehicle_id)

        assert cost.amount == Decimal("85.50")
        assert cost.source == CostSource.MANUAL
        assert ledger.costs[cost.cost_id] == cost

    def test_negative_amount_is_rejected(self, ledger: FakeLedger) -> None:
        with pytest.raises(ValueError):
            create_cost(CostCategory.STORAGE, "-1", NOW)

        assert ledger.costs == {}

    def test_unknown_field_is_rejected(self, ledger: FakeLedger) -> None:
        cost = ledger.add_cost("100")

        with pytest.raises(ValueError):
            update_cost(cost.cost_id, {"locked": False})

    @pytest.mark.parametrize("field", ["category", "amount", "cost_date"])
    def test_required_field_cannot_be_cleared(self, ledger: FakeLedger, field: str) -> None:
        cost = ledger.add_cost("100")

        with pytest.raises(ValueError):
            update_cost(cost.cost_id, {field: None})

        assert ledger.costs[cost.cost_id] == cost

    def test_missing_cost(self, ledger: FakeLedger) -> None:
        with pytest.raises(LookupError):
            delete_cost(uuid4())

    def test_auto_generated_cost_cannot_be_deleted(self, ledger: FakeLedger) -> None:
        cost = ledger.add_cost(
            "2500",
            category=CostCategory.OCEAN_FREIGHT,
            shipment_id=OPEN_SHIPMENT,
            source=CostSource.AUTO_SHIPMENT,
        )

        with pytest.raises(ValueError):
            delete_cost(cost.cost_id)

        assert cost.cost_id in ledger.costs


class TestShipmentCostSync:
    def test_sync_creates_updates_and_deletes(self, ledger: FakeLedger) -> None:
        shipment = ledger.add_shipment(
            OPEN_SHIPMENT,
            ocean_freight_cost=Decimal("2500"),
            import_fees=Decimal("900"),
        )

        first = sync_shipment_costs_to_ledger(shipment, now=NOW)
        assert (first.created, first.updated, first.deleted) == (2, 0, 0)

        changed = ledger.add_shipment(OPEN_SHIPMENT, ocean_freight_cost=Decimal("2750"))
        second = sync_shipment_costs_to_ledger(changed, now=NOW)
        assert (second.created, second.updated, second.deleted) == (0, 1, 1)

        remaining = list(ledger.costs.values())
        assert len(remaining) == 1
        assert remaining[0].category == CostCategory.OCEAN_FREIGHT
        assert remaining[0].amount == Decimal("2750")
        assert remaining[0].is_auto_generated

    def test_unchanged_sync_touches_nothing(self, ledger: FakeLedger) -> None:
        shipment = ledger.add_shipment(OPEN_SHIPMENT, customs_broker_fees=Decimal("400"))
        sync_shipment_costs_to_ledger(shipment, now=NOW)

        again = sync_shipment_costs_to_ledger(shipment, now=NOW)

        assert (again.created, again.updated, again.deleted) == (0, 0, 0)

    def test_sync_on_cleared_shipment_is_rejected(self, ledger: FakeLedger) -> None:
        _clear(ledger)
        shipment = ledger.add_shipment(CLEARED_SHIPMENT, ocean_freight_cost=Decimal("5000"))

        with pytest.raises(CostLockedError):
            sync_shipment_costs_to_ledger(shipment, now=NOW)

        assert ledger.costs == {}
