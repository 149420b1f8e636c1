"""
Cost ledger repository (persistence).

Inserts, updates, deletes and fetches ledger entries. Lock enforcement is
NOT done here; callers go through services/cost_ledger_service.py.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID

from domain.cost import Cost, CostCategory, CostSource
from domain.money import to_amount
from repositories._rows import (
    parse_utc_datetime,
    parse_optional_uuid,
    raise_on_error,
    response_rows,
    to_iso_utc,
)
from repositories.client import get_supabase

_COSTS_TABLE: str = "costs"


def _row_to_cost(row: Mapping[str, Any]) -> Cost:
    """Convert a Supabase row into a Cost."""

    return Cost(
        cost_id=UUID(str(row["id"])),
        category=CostCategory(str(row.get("category") or CostCategory.OTHER.value)),
        amount=to_amount(row.get("amount")),
        cost_date=parse_utc_datetime(row["cost_date"]),
        shipment_id=parse_optional_uuid(row.get("shipment_id")),
        vehicle_id=parse_optional_uuid(row.get("vehicle_id")),
        source=CostSource(str(row.get("source") or CostSource.MANUAL.value)),
        locked=bool(row.get("locked", False)),
        vendor=row.get("vendor"),
        receipt_url=row.get("receipt_url"),
        notes=row.get("notes"),
    )


def _cost_to_payload(cost: Cost) -> dict[str, Any]:
    return {
        "category": cost.category.value,
        "amount": str(cost.amount),
        "cost_date": to_iso_utc(cost.cost_date, name="cost_date"),
        "shipment_id": str(cost.shipment_id) if cost.shipment_id else None,
        "vehicle_id": str(cost.vehicle_id) if cost.vehicle_id else None,
        "source": cost.source.value,
        "vendor": cost.vendor,
        "receipt_url": cost.receipt_url,
        "notes": cost.notes,
    }


def list_costs() -> List[Cost]:
    response = get_supabase().table(_COSTS_TABLE).select("*").execute()
    raise_on_error(response, "list costs")
    return [_row_to_cost(row) for row in response_rows(response)]


def get_cost_by_id(cost_id: UUID) -> Optional[Cost]:
    response = (
        get_supabase()
        .table(_COSTS_TABLE)
        .select("*")
        .eq("id", str(cost_id))
        .limit(1)
        .execute()
    )
    raise_on_error(response, "get cost")

    rows = response_rows(response)
    if not rows:
        return None
    return _row_to_cost(rows[0])


def find_auto_shipment_cost(shipment_id: UUID, category: CostCategory) -> Optional[Cost]:
    """The auto_shipment entry for (shipment, category), if any."""

    response = (
        get_supabase()
        .table(_COSTS_TABLE)
        .select("*")
        .eq("shipment_id", str(shipment_id))
        .eq("category", category.value)
        .eq("source", CostSource.AUTO_SHIPMENT.value)
        .limit(1)
        .execute()
    )
    raise_on_error(response, "find auto shipment cost")

    rows = response_rows(response)
    if not rows:
        return None
    return _row_to_cost(rows[0])


def insert_cost(cost: Cost) -> Cost:
    """
    Insert a new ledger entry and return the stored record.

    New entries are always stored unlocked.
    """

    payload = _cost_to_payload(cost)
    payload["id"] = str(cost.cost_id)
    payload["locked"] = False
    payload["created_at"] = datetime.now(timezone.utc).isoformat()

    response = get_supabase().table(_COSTS_TABLE).insert(payload).execute()
    raise_on_error(response, "insert cost")

    rows = response_rows(response)
    return _row_to_cost(rows[0]) if rows else cost


def update_cost(cost: Cost) -> Cost:
    """
    Overwrite an unlocked ledger entry.

    The `locked = false` filter makes the write a no-op for rows that were
    locked after the caller's check; that case raises RuntimeError.
    """

    payload = _cost_to_payload(cost)
    payload["updated_at"] = datetime.now(timezone.utc).isoformat()

    response = (
        get_supabase()
        .table(_COSTS_TABLE)
        .update(payload)
        .eq("id", str(cost.cost_id))
        .eq("locked", False)
        .execute()
    )
    raise_on_error(response, "update cost")

    rows = response_rows(response)
    if not rows:
        raise RuntimeError(f"Failed to update cost: no unlocked cost {cost.cost_id}")
    return _row_to_cost(rows[0])


def delete_cost(cost_id: UUID) -> None:
    response = (
        get_supabase()
        .table(_COSTS_TABLE)
        .delete()
        .eq("id", str(cost_id))
        .eq("locked", False)
        .execute()
    )
    raise_on_error(response, "delete cost")


def lock_costs_for_shipment(shipment_id: UUID, vehicle_ids: Sequence[UUID]) -> int:
    """
    Mark every cost of a shipment, or of any of its vehicles, as locked.

    Runs as a single UPDATE statement so the whole set flips together.
    Rows that are already locked are left alone, so repeating the call is safe.

    Returns:
        Number of rows newly locked.
    """

    filters = [f"shipment_id.eq.{shipment_id}"]
    if vehicle_ids:
        ids = ",".join(str(v) for v in vehicle_ids)
        filters.append(f"vehicle_id.in.({ids})")

    response = (
        get_supabase()
        .table(_COSTS_TABLE)
        .update({"locked": True, "updated_at": datetime.now(timezone.utc).isoformat()})
        .eq("locked", False)
        .or_(",".join(filters))
        .execute()
    )
    raise_on_error(response, "lock shipment costs")

    return len(response_rows(response))


__all__ = [
    "list_costs",
    "get_cost_by_id",
    "find_auto_shipment_cost",
    "insert_cost",
    "update_cost",
    "delete_cost",
    "lock_costs_for_shipment",
]
