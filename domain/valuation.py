"""
Domain: Market valuations and exchange rates.

Valuations are quoted in the destination market's currency (Honduran
lempira by default); costs and sale prices are in USD. An FxRate converts
between the two: 1 base_currency = rate target_currency.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from .time import require_optional_utc_timestamp, require_utc_timestamp


@dataclass(frozen=True, slots=True)
class Valuation:
    vehicle_id: UUID
    market_value: Decimal
    currency: str = "HNL"
    confidence_level: Optional[str] = None
    market_condition: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_optional_utc_timestamp("created_at", self.created_at)


@dataclass(frozen=True, slots=True)
class FxRate:
    base_currency: str
    target_currency: str
    rate: Decimal
    as_of: datetime
    source: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("as_of", self.as_of)
