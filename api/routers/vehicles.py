"""
Vehicle API Endpoints.

Endpoints for recording sales and inspecting a vehicle's costs and
estimated profitability.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, HTTPException

from api.models import (
    LandedCostResponse,
    ProfitabilityResponse,
    ProfitDistributionResponse,
    VehicleSaleRequest,
    VehicleSaleResponse,
)
from domain.money import round_money
from repositories import cost_repository, shipment_repository, vehicle_repository
from repositories.profit_distribution_repository import ProfitDistributionConflictError
from repositories.vehicle_repository import VehicleSaleConflictError
from services.cost_allocation_service import compute_landed_cost_breakdowns, missing_cost_categories
from services.profitability_service import MissingPrerequisiteError, get_vehicle_profitability
from services.sale_service import complete_vehicle_sale

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/vehicles/{vehicle_id}/sale",
    response_model=VehicleSaleResponse,
    summary="Record Vehicle Sale",
    description="Mark a vehicle sold and create its profit distribution."
)
def record_vehicle_sale(vehicle_id: UUID, request: VehicleSaleRequest):
    """
    Record the sale of a vehicle.

    **Process:**
    1. Stores the sale (status, actual sale price, sale date, buyer)
    2. Reloads vehicles, costs and shipments
    3. Splits the profit under the reinvestment phase in effect before this sale
    4. Persists the distribution with one pending entry per partner

    A vehicle is sold and distributed at most once. A concurrent duplicate
    request receives 409.
    """
    try:
        result = complete_vehicle_sale(
            vehicle_id,
            request.actual_sale_price,
            request.sale_date or datetime.now(timezone.utc),
            buyer_name=request.buyer_name,
            buyer_id=request.buyer_id,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (VehicleSaleConflictError, ProfitDistributionConflictError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to record sale", extra={"vehicle_id": str(vehicle_id)})
        raise HTTPException(
            status_code=500,
            detail=f"Failed to record sale: {str(e)}"
        )

    distribution = result.distribution.distribution
    return VehicleSaleResponse(
        vehicle_id=result.vehicle.vehicle_id,
        status=result.vehicle.status.value,
        actual_sale_price=result.vehicle.actual_sale_price,
        sale_date=result.vehicle.sale_date,
        distribution_created=result.distribution.created,
        distribution_stale=result.distribution.stale,
        distribution=ProfitDistributionResponse(
            distribution_id=distribution.distribution_id,
            distribution_number=distribution.distribution_number,
            vehicle_id=distribution.vehicle_id,
            sale_price=distribution.sale_price,
            total_cost=distribution.total_cost,
            gross_profit=distribution.gross_profit,
            reinvestment_amount=distribution.reinvestment_amount,
            reinvestment_phase=distribution.reinvestment_phase,
            cumulative_reinvestment=distribution.cumulative_reinvestment,
            sale_date=distribution.sale_date,
        ),
    )


@router.get(
    "/vehicles/{vehicle_id}/landed-cost",
    response_model=LandedCostResponse,
    summary="Get Landed Cost",
    description="Purchase price plus direct costs plus the vehicle's share of shipment costs."
)
def get_landed_cost(vehicle_id: UUID):
    try:
        vehicles = vehicle_repository.list_vehicles()
        vehicle = next((v for v in vehicles if v.vehicle_id == vehicle_id), None)
        if vehicle is None:
            raise HTTPException(status_code=404, detail=f"Vehicle not found: {vehicle_id}")

        costs = cost_repository.list_costs()
        breakdowns = compute_landed_cost_breakdowns(vehicles, costs, shipment_repository.list_shipments())
        breakdown = breakdowns[vehicle_id]
        missing = missing_cost_categories(vehicle, costs)

        return LandedCostResponse(
            vehicle_id=vehicle_id,
            purchase_price=round_money(breakdown.purchase_price),
            direct_costs=round_money(breakdown.direct_costs),
            allocated_shipment_costs=round_money(breakdown.allocated_shipment_costs),
            landed_cost=round_money(breakdown.total),
            costs_complete=not missing,
            missing_costs=missing,
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Failed to compute landed cost", extra={"vehicle_id": str(vehicle_id)})
        raise HTTPException(
            status_code=500,
            detail=f"Failed to compute landed cost: {str(e)}"
        )


@router.get(
    "/vehicles/{vehicle_id}/profitability",
    response_model=ProfitabilityResponse,
    summary="Get Estimated Profitability",
    description="Landed cost against the latest local market valuation, converted to USD."
)
def get_profitability(vehicle_id: UUID):
    """
    Returns 422 with an actionable message when the valuation or the
    exchange rate has not been recorded yet.
    """
    try:
        result = get_vehicle_profitability(vehicle_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MissingPrerequisiteError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.exception("Failed to compute profitability", extra={"vehicle_id": str(vehicle_id)})
        raise HTTPException(
            status_code=500,
            detail=f"Failed to compute profitability: {str(e)}"
        )

    return ProfitabilityResponse(
        vehicle_id=result.vehicle_id,
        total_cost=result.total_cost,
        estimated_revenue=result.estimated_revenue,
        estimated_profit=result.estimated_profit,
        profit_margin=result.profit_margin,
        costs_complete=result.costs_complete,
        missing_costs=result.missing_costs,
    )
