"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Money is Decimal and serializes as a string; timestamps are UTC.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Dict, List, Optional
from uuid import UUID

from pydantic import AfterValidator, BaseModel, Field

from domain.cost import CostCategory
from domain.shipment import ClearanceStatus


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError("timestamp must include a timezone offset")
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_to_utc)]


# ============================================================================
# Vehicle Models
# ============================================================================

class VehicleSaleRequest(BaseModel):
    """Request to record the sale of a vehicle."""
    actual_sale_price: Decimal = Field(..., ge=0, description="Final sale price in USD")
    sale_date: Optional[UtcDatetime] = Field(None, description="Defaults to now")
    buyer_name: Optional[str] = None
    buyer_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "actual_sale_price": "12500.00",
                "sale_date": "2025-03-14T15:00:00Z",
                "buyer_name": "Carlos Mejia"
            }
        }


class ProfitDistributionResponse(BaseModel):
    """Persisted split of one sale's profit."""
    distribution_id: UUID
    distribution_number: str
    vehicle_id: UUID
    sale_price: Decimal
    total_cost: Decimal
    gross_profit: Decimal
    reinvestment_amount: Decimal
    reinvestment_phase: bool
    cumulative_reinvestment: Decimal
    sale_date: datetime


class VehicleSaleResponse(BaseModel):
    """Response after a sale is recorded and its profit distributed."""
    vehicle_id: UUID
    status: str
    actual_sale_price: Decimal
    sale_date: datetime
    distribution_created: bool
    distribution_stale: bool = False
    distribution: ProfitDistributionResponse

    class Config:
        json_schema_extra = {
            "example": {
                "vehicle_id": "123e4567-e89b-12d3-a456-426614174000",
                "status": "sold",
                "actual_sale_price": "12500.00",
                "sale_date": "2025-03-14T15:00:00Z",
                "distribution_created": True,
                "distribution_stale": False,
                "distribution": {
                    "distribution_id": "123e4567-e89b-12d3-a456-426614174009",
                    "distribution_number": "DIST-4F2A9C",
                    "vehicle_id": "123e4567-e89b-12d3-a456-426614174000",
                    "sale_price": "12500.00",
                    "total_cost": "9800.00",
                    "gross_profit": "2700.00",
                    "reinvestment_amount": "1620.00",
                    "reinvestment_phase": True,
                    "cumulative_reinvestment": "48210.00",
                    "sale_date": "2025-03-14T15:00:00Z"
                }
            }
        }


class LandedCostResponse(BaseModel):
    """Landed cost of a vehicle and its components."""
    vehicle_id: UUID
    purchase_price: Decimal
    direct_costs: Decimal
    allocated_shipment_costs: Decimal
    landed_cost: Decimal
    costs_complete: bool
    missing_costs: List[str] = []

    class Config:
        json_schema_extra = {
            "example": {
                "vehicle_id": "123e4567-e89b-12d3-a456-426614174000",
                "purchase_price": "8000.00",
                "direct_costs": "400.00",
                "allocated_shipment_costs": "1400.00",
                "landed_cost": "9800.00",
                "costs_complete": True,
                "missing_costs": []
            }
        }


class ProfitabilityResponse(BaseModel):
    """Estimated profit against the local market valuation."""
    vehicle_id: UUID
    total_cost: Decimal
    estimated_revenue: Decimal
    estimated_profit: Decimal
    profit_margin: Decimal
    costs_complete: bool
    missing_costs: List[str] = []


# ============================================================================
# Cost Ledger Models
# ============================================================================

class CostRequest(BaseModel):
    """Request to record a ledger entry."""
    category: CostCategory
    amount: Decimal = Field(..., ge=0)
    cost_date: UtcDatetime
    shipment_id: Optional[UUID] = Field(None, description="Shipment-level cost")
    vehicle_id: Optional[UUID] = Field(None, description="Cost of one vehicle")
    vendor: Optional[str] = None
    receipt_url: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "category": "ocean_freight",
                "amount": "4200.00",
                "cost_date": "2025-02-01T00:00:00Z",
                "shipment_id": "123e4567-e89b-12d3-a456-426614174005",
                "vendor": "Seaboard Marine"
            }
        }


class CostUpdateRequest(BaseModel):
    """Partial update of a ledger entry; only fields sent are changed."""
    category: Optional[CostCategory] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    cost_date: Optional[UtcDatetime] = None
    shipment_id: Optional[UUID] = None
    vehicle_id: Optional[UUID] = None
    vendor: Optional[str] = None
    receipt_url: Optional[str] = None
    notes: Optional[str] = None


class CostResponse(BaseModel):
    cost_id: UUID
    category: str
    amount: Decimal
    cost_date: datetime
    shipment_id: Optional[UUID] = None
    vehicle_id: Optional[UUID] = None
    source: str
    locked: bool
    vendor: Optional[str] = None
    receipt_url: Optional[str] = None
    notes: Optional[str] = None


# ============================================================================
# Shipment Models
# ============================================================================

class CustomsClearanceRequest(BaseModel):
    """Request to move a shipment's customs clearance forward."""
    status: ClearanceStatus
    port: Optional[str] = None
    submitted_at: Optional[UtcDatetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "status": "cleared",
                "port": "Puerto Cortes"
            }
        }


class CustomsClearanceResponse(BaseModel):
    shipment_id: UUID
    status: str
    port: Optional[str] = None
    submitted_at: Optional[datetime] = None
    cleared_at: Optional[datetime] = None
    locked_cost_count: int = 0


# ============================================================================
# Analytics Models
# ============================================================================

class StatusSummaryModel(BaseModel):
    count: int
    value: Decimal


class GoalProgressModel(BaseModel):
    cumulative_reinvestment: Decimal
    display_value: Decimal
    goal_amount: Decimal
    percent: Decimal
    reached: bool
    approaching: bool


class OverduePaymentModel(BaseModel):
    payment_id: UUID
    payment_number: str
    amount: Decimal
    due_date: datetime


class PendingPayoutModel(BaseModel):
    entry_id: UUID
    distribution_id: UUID
    partner: str
    amount: Decimal


class StaleVehicleModel(BaseModel):
    vehicle_id: UUID
    vehicle_name: str
    vin: str
    date_arrived: datetime
    days_in_inventory: int


class DashboardAlertsModel(BaseModel):
    overdue_payments: List[OverduePaymentModel] = []
    overdue_payment_total: Decimal = Decimal("0")
    overdue_payouts: List[PendingPayoutModel] = []
    stale_inventory: List[StaleVehicleModel] = []
    approaching_goal: bool = False
    reached_goal: bool = False


class PriceComparisonModel(BaseModel):
    vehicle_id: UUID
    vehicle_name: str
    target: Decimal
    actual: Decimal


class DashboardMetricsResponse(BaseModel):
    """Portfolio overview."""
    total_investment: Decimal
    inventory_value: Decimal
    total_gross_profit: Decimal
    revenue: Decimal
    reinvestment_phase: bool
    goal: GoalProgressModel
    by_status: Dict[str, StatusSummaryModel]
    pending_payments: Decimal
    pending_payouts: Decimal
    alerts: DashboardAlertsModel
    portfolio_composition: Dict[str, int]
    price_comparison: List[PriceComparisonModel]


class VehicleFinancialRowModel(BaseModel):
    vehicle_id: UUID
    vehicle_name: str
    sale_date: Optional[datetime] = None
    sale_price: Decimal
    landed_cost: Decimal
    gross_profit: Decimal
    reinvestment: Decimal
    dominick_share: Decimal
    tony_share: Decimal
    reinvestment_phase: bool
    payout_status: str


class FinancialSummaryResponse(BaseModel):
    """Chronological replay of every recorded sale."""
    total_gross_profit: Decimal
    dominick_total: Decimal
    tony_total: Decimal
    reinvestment_balance: Decimal
    rows: List[VehicleFinancialRowModel]
    cost_breakdown: Dict[str, Decimal]


class ProjectedSplitModel(BaseModel):
    profit: Decimal
    dominick: Decimal
    tony: Decimal
    reinvestment: Decimal


class VehicleProjectionModel(BaseModel):
    vehicle_id: UUID
    vehicle_name: str
    vin: str
    status: str
    landed_cost: Decimal
    target_sale_price: Decimal
    minimum_price: Decimal
    target: ProjectedSplitModel
    minimum: ProjectedSplitModel


class ProjectionsResponse(BaseModel):
    """Projected outcomes for unsold inventory under the current phase."""
    cumulative_reinvestment: Decimal
    reinvestment_phase: bool
    actualized_revenue: Decimal
    vehicles_in_stock: int
    vehicles_in_transit: int
    vehicles_sold: int
    total_vehicles: int
    totals: Dict[str, Decimal]
    vehicles: List[VehicleProjectionModel]


class BuyerStatsModel(BaseModel):
    name: str
    units: int
    profit: Decimal


class SalesLeaderboardModel(BaseModel):
    total_units_sold: int
    total_profit: Decimal
    average_profit: Decimal
    top_buyers: List[BuyerStatsModel]


class ProcurementLeaderboardModel(BaseModel):
    total_units_acquired: int
    average_spread: Decimal
    profitability_rate: Decimal


class LogisticsLeaderboardModel(BaseModel):
    average_clearance_days: Decimal
    completion_rate: Decimal
    document_completion_rate: Decimal
    total_clearances: int


class LeaderboardsResponse(BaseModel):
    sales: SalesLeaderboardModel
    procurement: ProcurementLeaderboardModel
    logistics: LogisticsLeaderboardModel


# ============================================================================
# Distribution Models
# ============================================================================

class SettleEntryRequest(BaseModel):
    """Request to pay out a pending partner entry."""
    paid_at: Optional[UtcDatetime] = Field(None, description="Defaults to now")
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "payment_method": "wire",
                "reference_number": "BAC-889211"
            }
        }


class SettleEntryResponse(BaseModel):
    entry_id: UUID
    distribution_id: UUID
    partner: str
    amount: Decimal
    status: str
    payment_id: UUID
    payment_number: str
    closed_date: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str

    class Config:
        json_schema_extra = {
            "example": {
                "detail": "Cost 123e4567-e89b-12d3-a456-426614174007 is locked"
            }
        }
