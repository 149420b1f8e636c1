"""
Vehicle repository (persistence).

Persistence operations for the Vehicle domain entity. Business rules (sale
guard, distribution generation) live in the services layer.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.money import to_amount, to_optional_amount
from domain.vehicle import Vehicle, VehicleStatus
from repositories._rows import (
    parse_optional_utc_datetime,
    parse_optional_uuid,
    raise_on_error,
    response_rows,
    to_iso_utc,
)
from repositories.client import get_supabase

# Keep this aligned with your database schema.
_VEHICLES_TABLE: str = "vehicles"


class VehicleSaleConflictError(Exception):
    """Raised when the vehicle was sold by another request before this write."""

    def __init__(self, vehicle_id: UUID):
        self.vehicle_id = vehicle_id
        super().__init__(f"Vehicle {vehicle_id} was already sold by a concurrent request")


def _row_to_vehicle(row: Mapping[str, Any]) -> Vehicle:
    """Convert a Supabase row into a Vehicle."""

    return Vehicle(
        vehicle_id=UUID(str(row["id"])),
        year=int(row.get("year") or 0),
        make=str(row.get("make") or ""),
        model=str(row.get("model") or ""),
        vin=str(row.get("vin") or ""),
        purchase_price=to_amount(row.get("purchase_price")),
        status=VehicleStatus(str(row.get("status") or VehicleStatus.ACQUIRED.value)),
        shipment_id=parse_optional_uuid(row.get("shipment_id")),
        target_sale_price=to_optional_amount(row.get("target_sale_price")),
        minimum_price=to_optional_amount(row.get("minimum_price")),
        actual_sale_price=to_optional_amount(row.get("actual_sale_price")),
        sale_date=parse_optional_utc_datetime(row.get("sale_date")),
        buyer_name=row.get("buyer_name"),
        buyer_id=row.get("buyer_id"),
        purchase_date=parse_optional_utc_datetime(row.get("purchase_date")),
        date_shipped=parse_optional_utc_datetime(row.get("date_shipped")),
        date_arrived=parse_optional_utc_datetime(row.get("date_arrived")),
    )


def list_vehicles() -> List[Vehicle]:
    """
    Retrieve every vehicle.

    Whole-table read; analytics recompute from this on every request.
    """

    response = get_supabase().table(_VEHICLES_TABLE).select("*").execute()
    raise_on_error(response, "list vehicles")
    return [_row_to_vehicle(row) for row in response_rows(response)]


def list_vehicles_by_shipment(shipment_id: UUID) -> List[Vehicle]:
    response = (
        get_supabase()
        .table(_VEHICLES_TABLE)
        .select("*")
        .eq("shipment_id", str(shipment_id))
        .execute()
    )
    raise_on_error(response, "list vehicles for shipment")
    return [_row_to_vehicle(row) for row in response_rows(response)]


def get_vehicle_by_id(vehicle_id: UUID) -> Optional[Vehicle]:
    """
    Retrieve a single vehicle by its ID.

    Returns:
        Vehicle or None if not found
    """

    response = (
        get_supabase()
        .table(_VEHICLES_TABLE)
        .select("*")
        .eq("id", str(vehicle_id))
        .limit(1)
        .execute()
    )
    raise_on_error(response, "get vehicle")

    rows = response_rows(response)
    if not rows:
        return None
    return _row_to_vehicle(rows[0])


def mark_vehicle_sold(
    vehicle_id: UUID,
    actual_sale_price: Decimal,
    sale_date: datetime,
    buyer_name: Optional[str] = None,
    buyer_id: Optional[str] = None,
) -> Vehicle:
    """
    Persist the sale of a vehicle and return the stored record.

    Only updates rows that are not already sold, so a repeated call cannot
    overwrite an earlier sale.

    Raises:
        VehicleSaleConflictError: No unsold vehicle matched (sold concurrently).
        RuntimeError: If the update fails.
    """

    payload: dict[str, Any] = {
        "status": VehicleStatus.SOLD.value,
        "actual_sale_price": str(actual_sale_price),
        "sale_date": to_iso_utc(sale_date, name="sale_date"),
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    if buyer_name is not None:
        payload["buyer_name"] = buyer_name
    if buyer_id is not None:
        payload["buyer_id"] = buyer_id

    response = (
        get_supabase()
        .table(_VEHICLES_TABLE)
        .update(payload)
        .eq("id", str(vehicle_id))
        .neq("status", VehicleStatus.SOLD.value)
        .execute()
    )
    raise_on_error(response, "mark vehicle sold")

    rows = response_rows(response)
    if not rows:
        raise VehicleSaleConflictError(vehicle_id)
    return _row_to_vehicle(rows[0])


__all__ = [
    "VehicleSaleConflictError",
    "list_vehicles",
    "list_vehicles_by_shipment",
    "get_vehicle_by_id",
    "mark_vehicle_sold",
]
