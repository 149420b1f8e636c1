"""
Payment repository (persistence).

Payouts of profit distribution entries are written together with the entry
they settle (see profit_distribution_repository.settle_profit_distribution_entry).
"""

from __future__ import annotations

from typing import Any, List, Mapping
from uuid import UUID

from domain.money import to_amount
from domain.payment import Payment, PaymentStatus
from repositories._rows import (
    parse_optional_utc_datetime,
    parse_optional_uuid,
    parse_utc_datetime,
    raise_on_error,
    response_rows,
)
from repositories.client import get_supabase

_PAYMENTS_TABLE: str = "payments"


def _row_to_payment(row: Mapping[str, Any]) -> Payment:
    return Payment(
        payment_id=UUID(str(row["id"])),
        payment_number=str(row.get("payment_number") or ""),
        amount=to_amount(row.get("amount")),
        due_date=parse_utc_datetime(row["due_date"]),
        status=PaymentStatus(str(row.get("status") or PaymentStatus.PENDING.value)),
        vehicle_id=parse_optional_uuid(row.get("vehicle_id")),
        date_paid=parse_optional_utc_datetime(row.get("date_paid")),
        payment_method=row.get("payment_method"),
        reference_number=row.get("reference_number"),
        notes=row.get("notes"),
    )


def list_payments() -> List[Payment]:
    response = get_supabase().table(_PAYMENTS_TABLE).select("*").execute()
    raise_on_error(response, "list payments")
    return [_row_to_payment(row) for row in response_rows(response)]


__all__ = [
    "list_payments",
]
