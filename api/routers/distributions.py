"""
Profit Distribution API Endpoints.

Settling partner payouts.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, HTTPException

from api.models import SettleEntryRequest, SettleEntryResponse
from repositories.profit_distribution_repository import EntrySettlementConflictError
from services.profit_distribution_service import settle_distribution_entry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/distributions/entries/{entry_id}/settle",
    response_model=SettleEntryResponse,
    summary="Settle Partner Payout",
    description="Record the payment of a pending partner entry and close it."
)
def settle_entry(entry_id: UUID, request: SettleEntryRequest):
    """
    Creates a paid payment for the entry amount and links it to the entry.
    Settling an entry that is already closed returns 400; losing a race with
    a concurrent settlement of the same entry returns 409.
    """
    try:
        entry, payment = settle_distribution_entry(
            entry_id,
            request.paid_at or datetime.now(timezone.utc),
            payment_method=request.payment_method,
            reference_number=request.reference_number,
            notes=request.notes,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EntrySettlementConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to settle distribution entry", extra={"entry_id": str(entry_id)})
        raise HTTPException(
            status_code=500,
            detail=f"Failed to settle distribution entry: {str(e)}"
        )

    return SettleEntryResponse(
        entry_id=entry.entry_id,
        distribution_id=entry.distribution_id,
        partner=entry.partner.value,
        amount=entry.amount,
        status=entry.status.value,
        payment_id=payment.payment_id,
        payment_number=payment.payment_number,
        closed_date=entry.closed_date,
    )
