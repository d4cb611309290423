"""/v1/advisor - snapshot, forecast, debt strategy and advice endpoints"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from finadvisor.api.v1.schemas import (
    AdviceResponse,
    DebtStrategyRequest,
    DebtStrategyResponse,
    FinancialSnapshotResponse,
    GoalForecastsResponse,
    PredictionsResponse,
)
from finadvisor.api.dependencies import get_advisor_service, get_request_id
from finadvisor.config import settings
from finadvisor.services.advisor import AIAdvisorService
from finadvisor.domain.exceptions import DataAccessError

router = APIRouter(prefix="/advisor")


def _data_unavailable(request: Request, e: Exception) -> HTTPException:
    logging.error(f"Database error: {e}", extra={"request_id": get_request_id(request)})
    return HTTPException(status_code=503, detail="Financial data unavailable")


@router.get("/snapshot", response_model=FinancialSnapshotResponse)
def get_snapshot(
    request: Request,
    tenant_id: str = Query(..., description="Tenant identifier"),
    service: AIAdvisorService = Depends(get_advisor_service),
):
    try:
        snapshot = service.get_financial_snapshot(tenant_id)
    except DataAccessError as e:
        raise _data_unavailable(request, e)
    return FinancialSnapshotResponse.model_validate(snapshot, from_attributes=True)


@router.get("/predictions", response_model=PredictionsResponse)
def get_predictions(
    request: Request,
    tenant_id: str = Query(..., description="Tenant identifier"),
    months: int = Query(3, ge=1, description="Months to forecast"),
    service: AIAdvisorService = Depends(get_advisor_service),
):
    """Spending forecast for the coming months, capped at the configured maximum"""
    months = min(months, settings.max_forecast_months)
    try:
        forecasts = service.predict_spending(tenant_id, months=months)
    except DataAccessError as e:
        raise _data_unavailable(request, e)
    return PredictionsResponse.model_validate({"tenant_id": tenant_id, "forecasts": forecasts}, from_attributes=True)


@router.get("/goals", response_model=GoalForecastsResponse)
def get_goal_forecasts(
    request: Request,
    tenant_id: str = Query(..., description="Tenant identifier"),
    service: AIAdvisorService = Depends(get_advisor_service),
):
    try:
        forecasts = service.forecast_goals(tenant_id)
    except DataAccessError as e:
        raise _data_unavailable(request, e)
    return GoalForecastsResponse.model_validate({"tenant_id": tenant_id, "goals": forecasts}, from_attributes=True)


def _debt_strategy(request: Request, service: AIAdvisorService, tenant_id: str, extra: float) -> DebtStrategyResponse:
    try:
        strategy = service.generate_debt_payoff_strategy(tenant_id, extra=extra)
    except DataAccessError as e:
        raise _data_unavailable(request, e)
    return DebtStrategyResponse.model_validate({"tenant_id": tenant_id, "strategy": strategy}, from_attributes=True)


@router.get("/debt/strategy", response_model=DebtStrategyResponse)
def get_debt_strategy(
    request: Request,
    tenant_id: str = Query(..., description="Tenant identifier"),
    extra_payment: float = Query(0, ge=0),
    service: AIAdvisorService = Depends(get_advisor_service),
):
    return _debt_strategy(request, service, tenant_id, extra_payment)


@router.post("/debt/strategy", response_model=DebtStrategyResponse)
def create_debt_strategy(
    request_body: DebtStrategyRequest,
    request: Request,
    service: AIAdvisorService = Depends(get_advisor_service),
):
    return _debt_strategy(request, service, request_body.tenant_id, request_body.extra_payment)


@router.get("/advice", response_model=AdviceResponse)
async def get_advice(
    request: Request,
    tenant_id: str = Query(..., description="Tenant identifier"),
    service: AIAdvisorService = Depends(get_advisor_service),
):
    """Personalised advice; sections the text backend cannot supply come from rules"""
    try:
        result = await service.generate_personalized_advice(tenant_id)
    except DataAccessError as e:
        raise _data_unavailable(request, e)
    return AdviceResponse.model_validate(result, from_attributes=True)
