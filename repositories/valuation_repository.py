"""
Valuation and FX rate repository (persistence).
"""

from __future__ import annotations

from typing import Any, Mapping, Optional
from uuid import UUID

from domain.money import to_amount
from domain.valuation import FxRate, Valuation
from repositories._rows import (
    parse_optional_utc_datetime,
    parse_utc_datetime,
    raise_on_error,
    response_rows,
)
from repositories.client import get_supabase

_VALUATIONS_TABLE: str = "valuations"
_FX_RATES_TABLE: str = "fx_rates"


def _row_to_valuation(row: Mapping[str, Any]) -> Valuation:
    return Valuation(
        vehicle_id=UUID(str(row["vehicle_id"])),
        market_value=to_amount(row.get("market_value")),
        currency=str(row.get("currency") or "HNL"),
        confidence_level=row.get("confidence_level"),
        market_condition=row.get("market_condition"),
        created_at=parse_optional_utc_datetime(row.get("created_at")),
    )


def _row_to_fx_rate(row: Mapping[str, Any]) -> FxRate:
    return FxRate(
        base_currency=str(row["base_currency"]),
        target_currency=str(row["target_currency"]),
        rate=to_amount(row.get("rate")),
        as_of=parse_utc_datetime(row["as_of"]),
        source=row.get("source"),
    )


def get_latest_valuation(vehicle_id: UUID) -> Optional[Valuation]:
    """Most recent valuation for a vehicle, or None."""

    response = (
        get_supabase()
        .table(_VALUATIONS_TABLE)
        .select("*")
        .eq("vehicle_id", str(vehicle_id))
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    raise_on_error(response, "get latest valuation")

    rows = response_rows(response)
    if not rows:
        return None
    return _row_to_valuation(rows[0])


def get_latest_fx_rate(base_currency: str, target_currency: str) -> Optional[FxRate]:
    """
    Most recent rate for base -> target, or None.

    Example:
        rate = get_latest_fx_rate("USD", "HNL")
        # 1 USD = rate.rate HNL
    """

    response = (
        get_supabase()
        .table(_FX_RATES_TABLE)
        .select("*")
        .eq("base_currency", base_currency)
        .eq("target_currency", target_currency)
        .order("as_of", desc=True)
        .limit(1)
        .execute()
    )
    raise_on_error(response, "get latest fx rate")

    rows = response_rows(response)
    if not rows:
        return None
    return _row_to_fx_rate(rows[0])


__all__ = [
    "get_latest_valuation",
    "get_latest_fx_rate",
]
