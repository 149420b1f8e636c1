"""
Tests for `services/profit_split_service.py`.

Covers:
- 60/20/20 below the reinvestment goal, 50/50 at or above it.
- Losses are split linearly under the same rule.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from services.profit_split_service import GOAL_AMOUNT, distribute, is_reinvestment_phase


def test_split_in_reinvestment_phase() -> None:
    split = distribute(Decimal("1000"), Decimal("0"))

    assert split.reinvestment_phase is True
    assert split.reinvestment_amount == Decimal("600")
    assert split.dominick_share == Decimal("200")
    assert split.tony_share == Decimal("200")


def test_split_after_goal() -> None:
    split = distribute(Decimal("1000"), Decimal("150000"))

    assert split.reinvestment_phase is False
    assert split.reinvestment_amount == Decimal("0")
    assert split.dominick_share == Decimal("500")
    assert split.tony_share == Decimal("500")


@pytest.mark.parametrize(
    "cumulative, expected",
    [
        (Decimal("0"), True),
        (Decimal("149999.99"), True),
        (GOAL_AMOUNT, False),
        (Decimal("210000"), False),
    ],
)
def test_phase_boundary(cumulative: Decimal, expected: bool) -> None:
    assert is_reinvestment_phase(cumulative) is expected


def test_shares_always_sum_to_profit() -> None:
    for cumulative in (Decimal("0"), Decimal("150000")):
        split = distribute(Decimal("2345.67"), cumulative)
        total = split.dominick_share + split.tony_share + split.reinvestment_amount
        assert total == Decimal("2345.67")


def test_loss_is_split_linearly() -> None:
    """No clamping: a loss produces negative shares."""

    split = distribute(Decimal("-500"), Decimal("0"))

    assert split.dominick_share == Decimal("-100")
    assert split.tony_share == Decimal("-100")
    assert split.reinvestment_amount == Decimal("-300")


def test_missing_profit_is_treated_as_zero() -> None:
    split = distribute(None, Decimal("0"))  # type: ignore[arg-type]

    assert split.gross_profit == Decimal("0")
    assert split.dominick_share == Decimal("0")
