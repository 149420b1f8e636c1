"""
Analytics API Endpoints.

Dashboard, financial summary, projections and leaderboards. Every response
is recomputed from the current ledger; nothing is cached.
"""

import logging
from dataclasses import asdict
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from api.models import (
    BuyerStatsModel,
    DashboardAlertsModel,
    DashboardMetricsResponse,
    FinancialSummaryResponse,
    GoalProgressModel,
    LeaderboardsResponse,
    LogisticsLeaderboardModel,
    OverduePaymentModel,
    PendingPayoutModel,
    PriceComparisonModel,
    ProcurementLeaderboardModel,
    ProjectedSplitModel,
    ProjectionsResponse,
    SalesLeaderboardModel,
    StaleVehicleModel,
    StatusSummaryModel,
    VehicleFinancialRowModel,
    VehicleProjectionModel,
)
from domain.money import round_money
from repositories import (
    cost_repository,
    payment_repository,
    profit_distribution_repository,
    shipment_repository,
    vehicle_repository,
)
from services.dashboard_service import build_dashboard_metrics
from services.financials_service import build_financial_summary
from services.leaderboard_service import build_leaderboards
from services.profit_split_service import ProfitSplit
from services.projections_service import build_projections

logger = logging.getLogger(__name__)

router = APIRouter()


def _split_model(split: ProfitSplit) -> ProjectedSplitModel:
    return ProjectedSplitModel(
        profit=round_money(split.gross_profit),
        dominick=round_money(split.dominick_share),
        tony=round_money(split.tony_share),
        reinvestment=round_money(split.reinvestment_amount),
    )


@router.get(
    "/dashboard/metrics",
    response_model=DashboardMetricsResponse,
    summary="Dashboard Metrics",
    description="Portfolio totals, reinvestment goal progress and alerts."
)
def get_dashboard_metrics():
    """
    **Alerts:**
    - Pending payments past their due date
    - Partner payouts pending more than 5 business days after the sale
    - In-stock vehicles that arrived more than 60 days ago
    - Reinvestment goal approaching (90%) or reached
    """
    try:
        metrics = build_dashboard_metrics(
            vehicle_repository.list_vehicles(),
            cost_repository.list_costs(),
            shipment_repository.list_shipments(),
            payment_repository.list_payments(),
            profit_distribution_repository.list_profit_distributions(),
            profit_distribution_repository.list_profit_distribution_entries(),
            now=datetime.now(timezone.utc),
        )
    except Exception as e:
        logger.exception("Failed to build dashboard metrics")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch dashboard metrics: {str(e)}"
        )

    alerts = metrics.alerts
    return DashboardMetricsResponse(
        total_investment=round_money(metrics.total_investment),
        inventory_value=round_money(metrics.inventory_value),
        total_gross_profit=round_money(metrics.total_gross_profit),
        revenue=round_money(metrics.revenue),
        reinvestment_phase=metrics.reinvestment_phase,
        goal=GoalProgressModel(
            cumulative_reinvestment=round_money(metrics.goal.cumulative_reinvestment),
            display_value=round_money(metrics.goal.display_value),
            goal_amount=round_money(metrics.goal.goal_amount),
            percent=round_money(metrics.goal.percent),
            reached=metrics.goal.reached,
            approaching=metrics.goal.approaching,
        ),
        by_status={
            status: StatusSummaryModel(count=summary.count, value=round_money(summary.value))
            for status, summary in metrics.by_status.items()
        },
        pending_payments=round_money(metrics.pending_payments),
        pending_payouts=round_money(metrics.pending_payouts),
        alerts=DashboardAlertsModel(
            overdue_payments=[
                OverduePaymentModel(
                    payment_id=p.payment_id,
                    payment_number=p.payment_number,
                    amount=p.amount,
                    due_date=p.due_date,
                )
                for p in alerts.overdue_payments
            ],
            overdue_payment_total=round_money(alerts.overdue_payment_total),
            overdue_payouts=[
                PendingPayoutModel(
                    entry_id=e.entry_id,
                    distribution_id=e.distribution_id,
                    partner=e.partner.value,
                    amount=e.amount,
                )
                for e in alerts.overdue_payouts
            ],
            stale_inventory=[
                StaleVehicleModel(
                    vehicle_id=s.vehicle.vehicle_id,
                    vehicle_name=s.vehicle.display_name,
                    vin=s.vehicle.vin,
                    date_arrived=s.vehicle.date_arrived,
                    days_in_inventory=s.days_in_inventory,
                )
                for s in alerts.stale_inventory
            ],
            approaching_goal=alerts.approaching_goal,
            reached_goal=alerts.reached_goal,
        ),
        portfolio_composition=metrics.portfolio_composition,
        price_comparison=[
            PriceComparisonModel(
                vehicle_id=c.vehicle_id,
                vehicle_name=c.vehicle_name,
                target=round_money(c.target),
                actual=round_money(c.actual),
            )
            for c in metrics.price_comparison
        ],
    )


@router.get(
    "/financials",
    response_model=FinancialSummaryResponse,
    summary="Financial Summary",
    description="Every recorded sale replayed in sale-date order, with partner shares and reinvestment."
)
def get_financials():
    try:
        summary = build_financial_summary(
            vehicle_repository.list_vehicles(),
            cost_repository.list_costs(),
            shipment_repository.list_shipments(),
            profit_distribution_repository.list_profit_distributions(),
            profit_distribution_repository.list_profit_distribution_entries(),
        )
    except Exception as e:
        logger.exception("Failed to build financial summary")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch financial data: {str(e)}"
        )

    return FinancialSummaryResponse(
        total_gross_profit=round_money(summary.total_gross_profit),
        dominick_total=round_money(summary.dominick_total),
        tony_total=round_money(summary.tony_total),
        reinvestment_balance=round_money(summary.reinvestment_balance),
        rows=[
            VehicleFinancialRowModel(
                vehicle_id=row.vehicle_id,
                vehicle_name=row.vehicle_name,
                sale_date=row.sale_date,
                sale_price=round_money(row.sale_price),
                landed_cost=round_money(row.landed_cost),
                gross_profit=round_money(row.gross_profit),
                reinvestment=round_money(row.reinvestment),
                dominick_share=round_money(row.dominick_share),
                tony_share=round_money(row.tony_share),
                reinvestment_phase=row.reinvestment_phase,
                payout_status=row.payout_status,
            )
            for row in summary.rows
        ],
        cost_breakdown={name: round_money(value) for name, value in summary.cost_breakdown.items()},
    )


@router.get(
    "/analytics/projections",
    response_model=ProjectionsResponse,
    summary="Projected Sales",
    description="Target and minimum outcomes for unsold vehicles with a target price."
)
def get_projections():
    try:
        projections = build_projections(
            vehicle_repository.list_vehicles(),
            cost_repository.list_costs(),
            shipment_repository.list_shipments(),
        )
    except Exception as e:
        logger.exception("Failed to build projections")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch projections: {str(e)}"
        )

    return ProjectionsResponse(
        cumulative_reinvestment=round_money(projections.cumulative_reinvestment),
        reinvestment_phase=projections.reinvestment_phase,
        actualized_revenue=round_money(projections.actualized_revenue),
        vehicles_in_stock=projections.vehicles_in_stock,
        vehicles_in_transit=projections.vehicles_in_transit,
        vehicles_sold=projections.vehicles_sold,
        total_vehicles=projections.total_vehicles,
        totals={name: round_money(value) for name, value in asdict(projections.totals).items()},
        vehicles=[
            VehicleProjectionModel(
                vehicle_id=p.vehicle_id,
                vehicle_name=p.vehicle_name,
                vin=p.vin,
                status=p.status.value,
                landed_cost=round_money(p.landed_cost),
                target_sale_price=round_money(p.target_sale_price),
                minimum_price=round_money(p.minimum_price),
                target=_split_model(p.target_split),
                minimum=_split_model(p.minimum_split),
            )
            for p in projections.vehicles
        ],
    )


@router.get(
    "/analytics/leaderboards",
    response_model=LeaderboardsResponse,
    summary="Leaderboards",
    description="Sales, procurement and logistics performance."
)
def get_leaderboards():
    try:
        boards = build_leaderboards(
            vehicle_repository.list_vehicles(),
            cost_repository.list_costs(),
            shipment_repository.list_shipments(),
            shipment_repository.list_customs_clearances(),
        )
    except Exception as e:
        logger.exception("Failed to build leaderboards")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch leaderboards: {str(e)}"
        )

    return LeaderboardsResponse(
        sales=SalesLeaderboardModel(
            total_units_sold=boards.sales.total_units_sold,
            total_profit=boards.sales.total_profit,
            average_profit=boards.sales.average_profit,
            top_buyers=[
                BuyerStatsModel(name=b.name, units=b.units, profit=b.profit)
                for b in boards.sales.top_buyers
            ],
        ),
        procurement=ProcurementLeaderboardModel(**asdict(boards.procurement)),
        logistics=LogisticsLeaderboardModel(**asdict(boards.logistics)),
    )
