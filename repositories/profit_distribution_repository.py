"""
Profit distribution repository (persistence).

Distributions are written through the `record_profit_distribution_atomic()`
PostgreSQL function (see sql/profit_distributions.sql), which inserts the
parent and both partner entries in one transaction. Entries are settled
through `settle_profit_distribution_entry_atomic()`, which writes the payout
payment and closes the entry together. A unique constraint on
profit_distributions.vehicle_id turns a concurrent second insert for the same
vehicle into a reported conflict instead of a duplicate payout.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID

from domain.money import to_amount
from domain.payment import Payment
from domain.profit_distribution import (
    EntryStatus,
    Partner,
    ProfitDistribution,
    ProfitDistributionEntry,
)
from repositories._rows import (
    parse_optional_utc_datetime,
    parse_optional_uuid,
    parse_utc_datetime,
    raise_on_error,
    response_rows,
    to_iso_utc,
    to_optional_iso_utc,
)
from repositories.client import get_supabase

_DISTRIBUTIONS_TABLE: str = "profit_distributions"
_ENTRIES_TABLE: str = "profit_distribution_entries"
_RECORD_FUNCTION: str = "record_profit_distribution_atomic"
_SETTLE_FUNCTION: str = "settle_profit_distribution_entry_atomic"

# Error code returned by the database function when a distribution already
# exists for the vehicle (unique_violation on vehicle_id).
ALREADY_DISTRIBUTED: str = "ALREADY_DISTRIBUTED"

# Error codes returned by the settlement function.
ALREADY_SETTLED: str = "ALREADY_SETTLED"
ENTRY_NOT_FOUND: str = "ENTRY_NOT_FOUND"


class ProfitDistributionConflictError(Exception):
    """Raised when a distribution for the vehicle was created concurrently."""

    def __init__(self, vehicle_id: UUID, detail: Optional[str] = None):
        self.vehicle_id = vehicle_id
        self.detail = detail
        super().__init__(
            f"Profit distribution already exists for vehicle {vehicle_id}"
            + (f": {detail}" if detail else "")
        )


class EntrySettlementConflictError(Exception):
    """Raised when a partner entry was settled by another request first."""

    def __init__(self, entry_id: UUID, detail: Optional[str] = None):
        self.entry_id = entry_id
        self.detail = detail
        super().__init__(
            f"Distribution entry {entry_id} was already settled"
            + (f": {detail}" if detail else "")
        )


def _call_function(name: str, params: Mapping[str, Any], action: str) -> Mapping[str, Any]:
    """
    Call a database function that reports its outcome as a JSON object.

    supabase-py raises APIError for JSON bodies returned by the function, for
    both the success and the error case, so the body is recovered from it.
    """
    from postgrest.exceptions import APIError

    try:
        response = get_supabase().rpc(name, dict(params)).execute()
        raise_on_error(response, action)
        return getattr(response, "data", None) or {}
    except APIError as e:
        try:
            result = e.json() if callable(getattr(e, "json", None)) else {}
        except ValueError:
            result = {}
        if not result:
            raise RuntimeError(f"Failed to {action}: {e}") from e
        return result


def _row_to_distribution(row: Mapping[str, Any]) -> ProfitDistribution:
    return ProfitDistribution(
        distribution_id=UUID(str(row["id"])),
        distribution_number=str(row.get("distribution_number") or ""),
        vehicle_id=UUID(str(row["vehicle_id"])),
        gross_profit=to_amount(row.get("gross_profit")),
        total_cost=to_amount(row.get("total_cost")),
        sale_price=to_amount(row.get("sale_price")),
        reinvestment_amount=to_amount(row.get("reinvestment_amount")),
        reinvestment_phase=bool(row.get("reinvestment_phase", False)),
        cumulative_reinvestment=to_amount(row.get("cumulative_reinvestment")),
        sale_date=parse_utc_datetime(row["sale_date"]),
        created_at=parse_optional_utc_datetime(row.get("created_at")),
    )


def _row_to_entry(row: Mapping[str, Any]) -> ProfitDistributionEntry:
    return ProfitDistributionEntry(
        entry_id=UUID(str(row["id"])),
        distribution_id=UUID(str(row["distribution_id"])),
        partner=Partner(str(row["partner"])),
        amount=to_amount(row.get("amount")),
        status=EntryStatus(str(row.get("status") or EntryStatus.PENDING.value)),
        payment_id=parse_optional_uuid(row.get("payment_id")),
        closed_date=parse_optional_utc_datetime(row.get("closed_date")),
        notes=row.get("notes"),
    )


def get_profit_distribution_by_vehicle(vehicle_id: UUID) -> Optional[ProfitDistribution]:
    response = (
        get_supabase()
        .table(_DISTRIBUTIONS_TABLE)
        .select("*")
        .eq("vehicle_id", str(vehicle_id))
        .limit(1)
        .execute()
    )
    raise_on_error(response, "get profit distribution")

    rows = response_rows(response)
    if not rows:
        return None
    return _row_to_distribution(rows[0])


def list_profit_distributions() -> List[ProfitDistribution]:
    response = get_supabase().table(_DISTRIBUTIONS_TABLE).select("*").execute()
    raise_on_error(response, "list profit distributions")
    return [_row_to_distribution(row) for row in response_rows(response)]


def record_profit_distribution(
    distribution: ProfitDistribution,
    entries: Sequence[ProfitDistributionEntry],
) -> ProfitDistribution:
    """
    Atomically insert a distribution and its partner entries.

    Raises:
        ProfitDistributionConflictError: A distribution for the vehicle
            already exists (lost a concurrent check-then-insert race).
        RuntimeError: Any other database failure.
    """

    params = {
        "p_distribution": {
            "id": str(distribution.distribution_id),
            "distribution_number": distribution.distribution_number,
            "vehicle_id": str(distribution.vehicle_id),
            "gross_profit": str(distribution.gross_profit),
            "total_cost": str(distribution.total_cost),
            "sale_price": str(distribution.sale_price),
            "reinvestment_amount": str(distribution.reinvestment_amount),
            "reinvestment_phase": distribution.reinvestment_phase,
            "cumulative_reinvestment": str(distribution.cumulative_reinvestment),
            "sale_date": to_iso_utc(distribution.sale_date, name="sale_date"),
        },
        "p_entries": [
            {
                "id": str(entry.entry_id),
                "partner": entry.partner.value,
                "amount": str(entry.amount),
                "status": entry.status.value,
            }
            for entry in entries
        ],
    }

    result = _call_function(_RECORD_FUNCTION, params, "record profit distribution")

    if result.get("success"):
        return distribution

    if result.get("error") == ALREADY_DISTRIBUTED:
        raise ProfitDistributionConflictError(distribution.vehicle_id, result.get("message"))

    raise RuntimeError(
        f"Failed to record profit distribution: {result.get('message') or result}"
    )


def list_profit_distribution_entries(
    distribution_id: Optional[UUID] = None,
    status: Optional[EntryStatus] = None,
) -> List[ProfitDistributionEntry]:
    query = get_supabase().table(_ENTRIES_TABLE).select("*")
    if distribution_id is not None:
        query = query.eq("distribution_id", str(distribution_id))
    if status is not None:
        query = query.eq("status", status.value)

    response = query.execute()
    raise_on_error(response, "list profit distribution entries")
    return [_row_to_entry(row) for row in response_rows(response)]


def get_profit_distribution_entry(entry_id: UUID) -> Optional[ProfitDistributionEntry]:
    response = (
        get_supabase()
        .table(_ENTRIES_TABLE)
        .select("*")
        .eq("id", str(entry_id))
        .limit(1)
        .execute()
    )
    raise_on_error(response, "get profit distribution entry")

    rows = response_rows(response)
    if not rows:
        return None
    return _row_to_entry(rows[0])


def settle_profit_distribution_entry(
    entry: ProfitDistributionEntry,
    payment: Payment,
) -> ProfitDistributionEntry:
    """
    Atomically record the payout of a pending entry and close it.

    Goes through `settle_profit_distribution_entry_atomic()`: the paid payment
    is inserted and the entry closed against it in one transaction, so a
    failed or lost settlement writes no payment.

    Args:
        entry: The entry as closed against `payment` (see ProfitDistributionEntry.closed).
        payment: The paid payment to insert.

    Raises:
        LookupError: The entry does not exist.
        EntrySettlementConflictError: The entry is no longer pending.
        RuntimeError: Any other database failure.
    """

    if entry.closed_date is None or entry.payment_id != payment.payment_id:
        raise ValueError("entry must be closed against the payment being recorded")

    params = {
        "p_entry_id": str(entry.entry_id),
        "p_payment": {
            "id": str(payment.payment_id),
            "payment_number": payment.payment_number,
            "vehicle_id": str(payment.vehicle_id) if payment.vehicle_id else None,
            "amount": str(payment.amount),
            "due_date": to_iso_utc(payment.due_date, name="due_date"),
            "status": payment.status.value,
            "date_paid": to_optional_iso_utc(payment.date_paid, name="date_paid"),
            "payment_method": payment.payment_method,
            "reference_number": payment.reference_number,
            "notes": payment.notes,
        },
        "p_closed_date": to_iso_utc(entry.closed_date, name="closed_date"),
    }

    result = _call_function(_SETTLE_FUNCTION, params, "settle distribution entry")

    if result.get("success"):
        return entry

    if result.get("error") == ENTRY_NOT_FOUND:
        raise LookupError(f"Distribution entry not found: {entry.entry_id}")
    if result.get("error") == ALREADY_SETTLED:
        raise EntrySettlementConflictError(entry.entry_id, result.get("message"))

    raise RuntimeError(
        f"Failed to settle distribution entry: {result.get('message') or result}"
    )


__all__ = [
    "ALREADY_DISTRIBUTED",
    "ALREADY_SETTLED",
    "ENTRY_NOT_FOUND",
    "EntrySettlementConflictError",
    "ProfitDistributionConflictError",
    "get_profit_distribution_by_vehicle",
    "list_profit_distributions",
    "record_profit_distribution",
    "list_profit_distribution_entries",
    "get_profit_distribution_entry",
    "settle_profit_distribution_entry",
]
