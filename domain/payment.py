"""
Domain: Payments.

A payment records money moving out to a partner (a settled profit
distribution entry) or any other scheduled amount tied to a vehicle.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_optional_utc_timestamp, require_utc_timestamp


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


@dataclass(frozen=True, slots=True)
class Payment:
    payment_id: UUID
    payment_number: str
    amount: Decimal
    due_date: datetime
    status: PaymentStatus = PaymentStatus.PENDING
    vehicle_id: Optional[UUID] = None
    date_paid: Optional[datetime] = None
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("due_date", self.due_date)
        require_optional_utc_timestamp("date_paid", self.date_paid)

    def is_overdue(self, as_of: datetime) -> bool:
        """A pending payment whose due date has passed."""

        require_utc_timestamp("as_of", as_of)
        return self.status == PaymentStatus.PENDING and self.due_date < as_of


def payment_number_for(payment_id: UUID) -> str:
    """Human-readable payment number, e.g. PAY-1A2B3C4D."""

    return f"PAY-{payment_id.hex[:8].upper()}"
