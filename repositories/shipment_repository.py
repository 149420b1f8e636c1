"""
Shipment and customs clearance repository (persistence).

Only inserts, updates and fetches. The customs clearance workflow (terminal
cleared state, cost locking) lives in services/customs_clearance_service.py.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.money import to_amount
from domain.shipment import ClearanceStatus, CustomsClearance, Shipment, ShipmentStatus
from repositories._rows import (
    parse_optional_utc_datetime,
    parse_optional_uuid,
    raise_on_error,
    response_rows,
    to_optional_iso_utc,
)
from repositories.client import get_supabase

_SHIPMENTS_TABLE: str = "shipments"
_CLEARANCE_TABLE: str = "customs_clearance"


def _row_to_shipment(row: Mapping[str, Any]) -> Shipment:
    """Convert a Supabase row into a Shipment."""

    return Shipment(
        shipment_id=UUID(str(row["id"])),
        shipment_number=str(row.get("shipment_number") or ""),
        route=str(row.get("route") or ""),
        status=ShipmentStatus(str(row.get("status") or ShipmentStatus.PLANNED.value)),
        shipment_date=parse_optional_utc_datetime(row.get("shipment_date")),
        origin=row.get("origin"),
        destination=row.get("destination"),
        ground_transport_cost=to_amount(row.get("ground_transport_cost")),
        customs_broker_fees=to_amount(row.get("customs_broker_fees")),
        ocean_freight_cost=to_amount(row.get("ocean_freight_cost")),
        import_fees=to_amount(row.get("import_fees")),
        bill_of_lading_url=row.get("bill_of_lading_url"),
        trucker_packet_urls=tuple(row.get("trucker_packet_urls") or ()),
    )


def _row_to_clearance(row: Mapping[str, Any]) -> CustomsClearance:
    return CustomsClearance(
        clearance_id=parse_optional_uuid(row.get("id")),
        shipment_id=UUID(str(row["shipment_id"])),
        status=ClearanceStatus(str(row.get("status") or ClearanceStatus.PENDING.value)),
        port=row.get("port"),
        submitted_at=parse_optional_utc_datetime(row.get("submitted_at")),
        cleared_at=parse_optional_utc_datetime(row.get("cleared_at")),
    )


def list_shipments() -> List[Shipment]:
    response = get_supabase().table(_SHIPMENTS_TABLE).select("*").execute()
    raise_on_error(response, "list shipments")
    return [_row_to_shipment(row) for row in response_rows(response)]


def get_shipment_by_id(shipment_id: UUID) -> Optional[Shipment]:
    response = (
        get_supabase()
        .table(_SHIPMENTS_TABLE)
        .select("*")
        .eq("id", str(shipment_id))
        .limit(1)
        .execute()
    )
    raise_on_error(response, "get shipment")

    rows = response_rows(response)
    if not rows:
        return None
    return _row_to_shipment(rows[0])


def list_customs_clearances() -> List[CustomsClearance]:
    response = get_supabase().table(_CLEARANCE_TABLE).select("*").execute()
    raise_on_error(response, "list customs clearances")
    return [_row_to_clearance(row) for row in response_rows(response)]


def get_customs_clearance(shipment_id: UUID) -> Optional[CustomsClearance]:
    response = (
        get_supabase()
        .table(_CLEARANCE_TABLE)
        .select("*")
        .eq("shipment_id", str(shipment_id))
        .limit(1)
        .execute()
    )
    raise_on_error(response, "get customs clearance")

    rows = response_rows(response)
    if not rows:
        return None
    return _row_to_clearance(rows[0])


def upsert_customs_clearance(clearance: CustomsClearance) -> CustomsClearance:
    """
    Create or update the clearance row for a shipment (one row per shipment).
    """

    payload: dict[str, Any] = {
        "shipment_id": str(clearance.shipment_id),
        "status": clearance.status.value,
        "port": clearance.port,
        "submitted_at": to_optional_iso_utc(clearance.submitted_at, name="submitted_at"),
        "cleared_at": to_optional_iso_utc(clearance.cleared_at, name="cleared_at"),
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }

    response = (
        get_supabase()
        .table(_CLEARANCE_TABLE)
        .upsert(payload, on_conflict="shipment_id")
        .execute()
    )
    raise_on_error(response, "upsert customs clearance")

    rows = response_rows(response)
    return _row_to_clearance(rows[0]) if rows else clearance


__all__ = [
    "list_shipments",
    "get_shipment_by_id",
    "list_customs_clearances",
    "get_customs_clearance",
    "upsert_customs_clearance",
]
