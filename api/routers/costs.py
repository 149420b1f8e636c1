"""
Cost Ledger API Endpoints.

Create, edit and delete ledger entries. Costs of a shipment that has cleared
customs are locked and every change to them is rejected with 423.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Response

from api.models import CostRequest, CostResponse, CostUpdateRequest
from domain.cost import Cost
from services import cost_ledger_service
from services.cost_locking_service import CostLockedError

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(cost: Cost) -> CostResponse:
    return CostResponse(
        cost_id=cost.cost_id,
        category=cost.category.value,
        amount=cost.amount,
        cost_date=cost.cost_date,
        shipment_id=cost.shipment_id,
        vehicle_id=cost.vehicle_id,
        source=cost.source.value,
        locked=cost.locked,
        vendor=cost.vendor,
        receipt_url=cost.receipt_url,
        notes=cost.notes,
    )


def _locked(e: CostLockedError) -> HTTPException:
    return HTTPException(
        status_code=423,
        detail={
            "message": str(e),
            "cost_id": str(e.cost_id) if e.cost_id else None,
            "shipment_id": str(e.shipment_id) if e.shipment_id else None,
        },
    )


@router.post(
    "/costs",
    response_model=CostResponse,
    status_code=201,
    summary="Record Cost",
    description="Add a manual ledger entry for a shipment, a vehicle, or general overhead."
)
def create_cost(request: CostRequest):
    try:
        cost = cost_ledger_service.create_cost(
            category=request.category,
            amount=request.amount,
            cost_date=request.cost_date,
            shipment_id=request.shipment_id,
            vehicle_id=request.vehicle_id,
            vendor=request.vendor,
            receipt_url=request.receipt_url,
            notes=request.notes,
        )
    except CostLockedError as e:
        raise _locked(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to create cost")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to create cost: {str(e)}"
        )

    return _to_response(cost)


@router.put(
    "/costs/{cost_id}",
    response_model=CostResponse,
    summary="Update Cost",
    description="Change fields of an unlocked ledger entry."
)
def update_cost(cost_id: UUID, request: CostUpdateRequest):
    changes = request.model_dump(exclude_unset=True)
    try:
        cost = cost_ledger_service.update_cost(cost_id, changes)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CostLockedError as e:
        raise _locked(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to update cost", extra={"cost_id": str(cost_id)})
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update cost: {str(e)}"
        )

    return _to_response(cost)


@router.delete(
    "/costs/{cost_id}",
    status_code=204,
    summary="Delete Cost",
    description="Remove an unlocked manual ledger entry."
)
def delete_cost(cost_id: UUID):
    try:
        cost_ledger_service.delete_cost(cost_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CostLockedError as e:
        raise _locked(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to delete cost", extra={"cost_id": str(cost_id)})
        raise HTTPException(
            status_code=500,
            detail=f"Failed to delete cost: {str(e)}"
        )

    return Response(status_code=204)
