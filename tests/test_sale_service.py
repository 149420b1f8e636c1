"""
Tests for `services/sale_service.py`.

The sale is stored first and the distribution is generated from reloaded
data. Repositories are in-memory fakes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict
from uuid import UUID, uuid4

import pytest

from domain.cost import Cost, CostCategory
from domain.shipment import Shipment
from domain.vehicle import Vehicle, VehicleStatus
from repositories import (
    cost_repository,
    profit_distribution_repository,
    shipment_repository,
    vehicle_repository,
)
from repositories.vehicle_repository import VehicleSaleConflictError
from services.sale_service import complete_vehicle_sale, distribute_vehicle_profit

SALE_DATE = datetime(2025, 4, 11, 18, 0, 0, tzinfo=timezone.utc)
SHIPMENT_ID = UUID("00000000-0000-0000-0000-0000000000a7")


@pytest.fixture
def vehicles(monkeypatch: pytest.MonkeyPatch) -> Dict[UUID, Vehicle]:
    store: Dict[UUID, Vehicle] = {}
    for price in ("10000", "30000"):
        vehicle = Vehicle(
            vehicle_id=uuid4(),
            year=2014,
            make="Toyota",
            model="Land Cruiser",
            vin=uuid4().hex[:17].upper(),
            purchase_price=Decimal(price),
            status=VehicleStatus.IN_STOCK,
            shipment_id=SHIPMENT_ID,
        )
        store[vehicle.vehicle_id] = vehicle

    def mark_sold(vehicle_id, price, sale_date, buyer_name=None, buyer_id=None):
        if store[vehicle_id].status == VehicleStatus.SOLD:
            raise VehicleSaleConflictError(vehicle_id)
        store[vehicle_id] = store[vehicle_id].sold(price, sale_date, buyer_name=buyer_name, buyer_id=buyer_id)
        return store[vehicle_id]

    freight = Cost(
        cost_id=uuid4(),
        category=CostCategory.OCEAN_FREIGHT,
        amount=Decimal("4000"),
        cost_date=SALE_DATE,
        shipment_id=SHIPMENT_ID,
    )
    shipment = Shipment(shipment_id=SHIPMENT_ID, shipment_number="SHP-007", route="Houston -> Puerto Cortes")
    distributions = {}

    def record(distribution, entries):
        distributions[distribution.vehicle_id] = distribution
        return distribution

    monkeypatch.setattr(vehicle_repository, "list_vehicles", lambda: list(store.values()))
    monkeypatch.setattr(vehicle_repository, "get_vehicle_by_id", lambda vehicle_id: store.get(vehicle_id))
    monkeypatch.setattr(vehicle_repository, "mark_vehicle_sold", mark_sold)
    monkeypatch.setattr(cost_repository, "list_costs", lambda: [freight])
    monkeypatch.setattr(shipment_repository, "list_shipments", lambda: [shipment])
    monkeypatch.setattr(profit_distribution_repository, "get_profit_distribution_by_vehicle", distributions.get)
    monkeypatch.setattr(profit_distribution_repository, "record_profit_distribution", record)
    return store


def _cheapest(vehicles: Dict[UUID, Vehicle]) -> UUID:
    return min(vehicles.values(), key=lambda v: v.purchase_price).vehicle_id


def test_sale_is_stored_then_distributed(vehicles: Dict[UUID, Vehicle]) -> None:
    vehicle_id = _cheapest(vehicles)

    result = complete_vehicle_sale(vehicle_id, "13000", SALE_DATE, buyer_name="Carlos Mejia")

    assert vehicles[vehicle_id].status == VehicleStatus.SOLD
    assert result.vehicle.buyer_name == "Carlos Mejia"
    assert result.distribution.created is True
    assert result.distribution.distribution.gross_profit == Decimal("2000.00")
    assert result.distribution.distribution.reinvestment_amount == Decimal("1200.00")


def test_redistributing_is_idempotent(vehicles: Dict[UUID, Vehicle]) -> None:
    vehicle_id = _cheapest(vehicles)
    first = complete_vehicle_sale(vehicle_id, "13000", SALE_DATE)

    again = distribute_vehicle_profit(vehicle_id)

    assert again.created is False
    assert again.distribution == first.distribution.distribution


def test_second_sale_is_rejected(vehicles: Dict[UUID, Vehicle]) -> None:
    vehicle_id = _cheapest(vehicles)
    complete_vehicle_sale(vehicle_id, "13000", SALE_DATE)

    with pytest.raises(ValueError):
        complete_vehicle_sale(vehicle_id, "14000", SALE_DATE)

    assert vehicles[vehicle_id].actual_sale_price == Decimal("13000")


def test_negative_price_is_rejected(vehicles: Dict[UUID, Vehicle]) -> None:
    with pytest.raises(ValueError):
        complete_vehicle_sale(_cheapest(vehicles), "-5", SALE_DATE)


def test_unknown_vehicle(vehicles: Dict[UUID, Vehicle]) -> None:
    with pytest.raises(LookupError):
        complete_vehicle_sale(uuid4(), "13000", SALE_DATE)

    with pytest.raises(LookupError):
        distribute_vehicle_profit(uuid4())


def test_non_utc_sale_date_is_rejected(vehicles: Dict[UUID, Vehicle]) -> None:
    with pytest.raises(ValueError):
        complete_vehicle_sale(_cheapest(vehicles), "13000", datetime(2025, 4, 11, 18, 0, 0))


def test_concurrent_sale_is_a_conflict(
    vehicles: Dict[UUID, Vehicle], monkeypatch: pytest.MonkeyPatch
) -> None:
    vehicle_id = _cheapest(vehicles)
    unsold = vehicles[vehicle_id]
    complete_vehicle_sale(vehicle_id, "13000", SALE_DATE)
    # The losing request read the vehicle before the winner's write landed.
    monkeypatch.setattr(vehicle_repository, "get_vehicle_by_id", lambda _vehicle_id: unsold)

    with pytest.raises(VehicleSaleConflictError):
        complete_vehicle_sale(vehicle_id, "14000", SALE_DATE)

    assert vehicles[vehicle_id].actual_sale_price == Decimal("13000")
