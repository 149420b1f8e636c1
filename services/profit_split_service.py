"""
Profit split service.

Splits one sale's gross profit between the business and the two partners:

- Reinvestment phase (cumulative reinvestment below the goal):
  60% reinvested, 20% to each partner.
- After the goal is reached: nothing reinvested, 50% to each partner.

Pure arithmetic. The same rule applies to losses: shares scale linearly and
may be negative; nothing is clamped.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from domain.money import ZERO, to_amount

GOAL_AMOUNT = Decimal("150000")
REINVESTMENT_RATE = Decimal("0.6")
PARTNER_RATE_REINVESTMENT_PHASE = Decimal("0.2")
PARTNER_RATE_AFTER_GOAL = Decimal("0.5")


@dataclass(frozen=True, slots=True)
class ProfitSplit:
    """Result of splitting a single gross profit figure."""

    gross_profit: Decimal
    dominick_share: Decimal
    tony_share: Decimal
    reinvestment_phase: bool
    reinvestment_amount: Decimal


def is_reinvestment_phase(cumulative_reinvestment: Decimal) -> bool:
    return to_amount(cumulative_reinvestment) < GOAL_AMOUNT


def distribute(gross_profit: Decimal, cumulative_reinvestment: Decimal) -> ProfitSplit:
    """
    Split gross profit under the phase implied by cumulative_reinvestment.

    Example:
        distribute(Decimal("1000"), Decimal("0"))
        # dominick=200, tony=200, reinvestment=600, phase=True
        distribute(Decimal("1000"), Decimal("150000"))
        # dominick=500, tony=500, reinvestment=0, phase=False
    """

    profit = to_amount(gross_profit)

    if is_reinvestment_phase(cumulative_reinvestment):
        return ProfitSplit(
            gross_profit=profit,
            dominick_share=profit * PARTNER_RATE_REINVESTMENT_PHASE,
            tony_share=profit * PARTNER_RATE_REINVESTMENT_PHASE,
            reinvestment_phase=True,
            reinvestment_amount=profit * REINVESTMENT_RATE,
        )

    return ProfitSplit(
        gross_profit=profit,
        dominick_share=profit * PARTNER_RATE_AFTER_GOAL,
        tony_share=profit * PARTNER_RATE_AFTER_GOAL,
        reinvestment_phase=False,
        reinvestment_amount=ZERO,
    )


__all__ = [
    "GOAL_AMOUNT",
    "REINVESTMENT_RATE",
    "ProfitSplit",
    "distribute",
    "is_reinvestment_phase",
]
