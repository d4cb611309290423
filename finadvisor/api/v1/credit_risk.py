"""/v1/credit-risk - credit score and loan affordability endpoints"""

import time
import uuid
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from finadvisor.api.v1.schemas import (
    AffordabilityListResponse,
    AffordabilityRequest,
    AffordabilityResponse,
    CreditScoreRequest,
    CreditScoreResponse,
    ScoreHistoryItem,
    ScoreHistoryResponse,
)
from finadvisor.api.dependencies import get_credit_risk_service, get_request_id
from finadvisor.config import settings
from finadvisor.infrastructure.database.models import CreditRiskScore, LoanAffordabilityAssessment
from finadvisor.infrastructure.database.session import get_db
from finadvisor.services.credit_risk import CreditRiskService
from finadvisor.domain.exceptions import DataAccessError, InvalidLoanRequestError
from finadvisor.infrastructure.observability.logging import log_affordability_assessed, log_score_calculated

router = APIRouter(prefix="/credit-risk")


def _stored_score_response(score: CreditRiskScore) -> CreditScoreResponse:
    return CreditScoreResponse(
        score_id=str(score.id),
        overall_score=score.overall_score,
        score_band=score.score_band,
        breakdown=score.breakdown,
        risk_factors=score.risk_factors or [],
        positive_factors=score.positive_factors or [],
        improvement_tips=score.improvement_tips or [],
        calculated_at=score.calculated_at,
    )


def _stored_assessment_response(assessment: LoanAffordabilityAssessment) -> AffordabilityResponse:
    response = AffordabilityResponse.model_validate(assessment, from_attributes=True)
    response.assessment_id = str(assessment.id)
    return response


@router.get("/score", response_model=Optional[CreditScoreResponse])
def get_latest_score(
    request: Request,
    tenant_id: str = Query(..., description="Tenant identifier"),
    service: CreditRiskService = Depends(get_credit_risk_service),
):
    """Most recent stored credit risk score, or null when none has been calculated"""
    try:
        score = service.get_latest_score(tenant_id)
    except DataAccessError as e:
        logging.error(f"Database error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Financial data unavailable")

    return _stored_score_response(score) if score else None


@router.post("/score/calculate", response_model=CreditScoreResponse)
def calculate_score(
    request_body: CreditScoreRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: CreditRiskService = Depends(get_credit_risk_service),
):
    """
    Calculate and store a new credit risk score.

    Flow:
    1. Gather accounts, active debts and six months of transactions
    2. Score the five factors and compose the overall score
    3. Persist the score and a history entry
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        result = service.calculate_credit_score(request_body.tenant_id)
        score_id = service.store_credit_score(request_body.tenant_id, result)

        duration_ms = (time.time() - start_time) * 1000
        log_score_calculated(request_id, request_body.tenant_id, result.overall_score, result.score_band, duration_ms)

        response = CreditScoreResponse.model_validate(result, from_attributes=True)
        response.score_id = score_id
        return response

    except DataAccessError as e:
        db.rollback()
        logging.error(f"Database error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Financial data unavailable")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/score/history", response_model=ScoreHistoryResponse)
def get_score_history(
    request: Request,
    tenant_id: str = Query(..., description="Tenant identifier"),
    months: int = Query(settings.score_history_months, ge=1, le=120),
    service: CreditRiskService = Depends(get_credit_risk_service),
):
    """Score changes recorded in the last `months` months, newest first"""
    try:
        entries = service.get_score_history(tenant_id, months=months)
    except DataAccessError as e:
        logging.error(f"Database error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Financial data unavailable")

    history = [
        ScoreHistoryItem(
            history_id=str(h.id),
            score_id=str(h.score_id),
            previous_score=h.previous_score,
            new_score=h.new_score,
            score_delta=h.score_delta,
            change_reason=h.change_reason,
            period=h.period,
            created_at=h.created_at,
        )
        for h in entries
    ]
    return ScoreHistoryResponse(tenant_id=tenant_id, months=months, history=history)


@router.post("/affordability", response_model=AffordabilityResponse)
def assess_affordability(
    request_body: AffordabilityRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: CreditRiskService = Depends(get_credit_risk_service),
):
    """Assess and store a loan affordability check"""
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        result = service.calculate_loan_affordability(
            request_body.tenant_id,
            request_body.loan_type,
            request_body.amount,
            term_months=request_body.term_months,
            rate=request_body.interest_rate,
        )
        assessment_id = service.store_affordability_assessment(
            request_body.tenant_id,
            request_body.loan_type,
            request_body.amount,
            request_body.term_months,
            request_body.interest_rate,
            result,
        )

        duration_ms = (time.time() - start_time) * 1000
        log_affordability_assessed(
            request_id,
            request_body.tenant_id,
            request_body.loan_type,
            request_body.amount,
            result.affordability_band,
            duration_ms,
        )

        response = AffordabilityResponse.model_validate(result, from_attributes=True)
        response.assessment_id = assessment_id
        response.loan_type = request_body.loan_type
        response.requested_amount = request_body.amount
        return response

    except InvalidLoanRequestError as e:
        db.rollback()
        logging.warning(f"Invalid loan request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except DataAccessError as e:
        db.rollback()
        logging.error(f"Database error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Financial data unavailable")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/affordability", response_model=AffordabilityListResponse)
def list_affordability_assessments(
    request: Request,
    tenant_id: str = Query(..., description="Tenant identifier"),
    limit: int = Query(10, ge=1, le=100),
    service: CreditRiskService = Depends(get_credit_risk_service),
):
    try:
        assessments = service.get_affordability_assessments(tenant_id, limit=limit)
    except DataAccessError as e:
        logging.error(f"Database error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Financial data unavailable")

    return AffordabilityListResponse(
        tenant_id=tenant_id,
        assessments=[_stored_assessment_response(a) for a in assessments],
    )


@router.get("/affordability/{assessment_id}", response_model=AffordabilityResponse)
def get_affordability_assessment(
    assessment_id: uuid.UUID,
    request: Request,
    tenant_id: str = Query(..., description="Tenant identifier"),
    service: CreditRiskService = Depends(get_credit_risk_service),
):
    try:
        assessment = service.get_affordability_assessment(tenant_id, assessment_id)
    except DataAccessError as e:
        logging.error(f"Database error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Financial data unavailable")

    if assessment is None:
        raise HTTPException(status_code=404, detail="Assessment not found")
    return _stored_assessment_response(assessment)
