"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from finadvisor.infrastructure.clients.ai import TextGenerationClient
from finadvisor.infrastructure.database.repositories import (
    AffordabilityRepository,
    CreditScoreRepository,
    FinancialDataRepository,
)
from finadvisor.infrastructure.database.session import get_db
from finadvisor.services.advisor import AIAdvisorService
from finadvisor.services.credit_risk import CreditRiskService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_ai_client() -> TextGenerationClient:
    """Provide text generation client instance"""
    return TextGenerationClient()


def get_credit_risk_service(db: Session = Depends(get_db)) -> CreditRiskService:
    return CreditRiskService(
        financial_data=FinancialDataRepository(db),
        scores=CreditScoreRepository(db),
        assessments=AffordabilityRepository(db),
    )


def get_advisor_service(
    db: Session = Depends(get_db),
    ai_client: TextGenerationClient = Depends(get_ai_client),
) -> AIAdvisorService:
    return AIAdvisorService(financial_data=FinancialDataRepository(db), ai_client=ai_client)
