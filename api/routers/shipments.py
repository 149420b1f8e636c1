"""
Shipment API Endpoints.

Customs clearance workflow. Clearing a shipment locks its costs.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException

from api.models import CustomsClearanceRequest, CustomsClearanceResponse
from services.customs_clearance_service import update_customs_clearance

logger = logging.getLogger(__name__)

router = APIRouter()


@router.put(
    "/shipments/{shipment_id}/customs-clearance",
    response_model=CustomsClearanceResponse,
    summary="Update Customs Clearance",
    description="Move a shipment's customs clearance forward. Cleared is terminal and locks the shipment's costs."
)
def put_customs_clearance(shipment_id: UUID, request: CustomsClearanceRequest):
    """
    **Statuses:** pending, submitted, in_review, cleared.

    On the transition into `cleared`, `cleared_at` is stamped and every cost
    of the shipment and its vehicles is locked in one batch. Leaving
    `cleared` is rejected with 400.
    """
    try:
        result = update_customs_clearance(
            shipment_id,
            request.status,
            port=request.port,
            submitted_at=request.submitted_at,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to update customs clearance", extra={"shipment_id": str(shipment_id)})
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update customs clearance: {str(e)}"
        )

    clearance = result.clearance
    return CustomsClearanceResponse(
        shipment_id=clearance.shipment_id,
        status=clearance.status.value,
        port=clearance.port,
        submitted_at=clearance.submitted_at,
        cleared_at=clearance.cleared_at,
        locked_cost_count=result.locked_cost_count,
    )
