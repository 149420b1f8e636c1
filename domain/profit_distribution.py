"""
Domain: Profit distributions.

Rules implemented here:
- At most one ProfitDistribution exists per sold vehicle.
- Each distribution has exactly two entries, one per partner.
- cumulative_reinvestment is a snapshot taken at the moment of the sale, not
  a live value.
- An entry starts PENDING and becomes CLOSED once it has been paid out; a
  closed entry references the Payment that settled it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_optional_utc_timestamp, require_utc_timestamp


class Partner(str, Enum):
    DOMINICK = "dominick"
    TONY = "tony"


class EntryStatus(str, Enum):
    PENDING = "pending"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class ProfitDistribution:
    """Parent record: how a single vehicle sale's profit was split."""

    distribution_id: UUID
    distribution_number: str
    vehicle_id: UUID
    gross_profit: Decimal
    total_cost: Decimal
    sale_price: Decimal
    reinvestment_amount: Decimal
    reinvestment_phase: bool
    cumulative_reinvestment: Decimal
    sale_date: datetime
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("sale_date", self.sale_date)
        require_optional_utc_timestamp("created_at", self.created_at)


@dataclass(frozen=True, slots=True)
class ProfitDistributionEntry:
    """One partner's share of a distribution."""

    entry_id: UUID
    distribution_id: UUID
    partner: Partner
    amount: Decimal
    status: EntryStatus = EntryStatus.PENDING
    payment_id: Optional[UUID] = None
    closed_date: Optional[datetime] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        require_optional_utc_timestamp("closed_date", self.closed_date)

    @property
    def is_pending(self) -> bool:
        return self.status == EntryStatus.PENDING

    def closed(self, payment_id: UUID, closed_date: datetime) -> "ProfitDistributionEntry":
        """
        Return a new entry marked as closed against a payment.

        Raises ValueError if the entry is already closed.
        """

        require_utc_timestamp("closed_date", closed_date)
        if not self.is_pending:
            raise ValueError(f"Distribution entry {self.entry_id} is already closed")
        return replace(
            self,
            status=EntryStatus.CLOSED,
            payment_id=payment_id,
            closed_date=closed_date,
        )
