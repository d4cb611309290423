"""Credit risk service - credit scoring, score history and loan affordability for a tenant"""

import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from finadvisor.config import settings
from finadvisor.domain.affordability import assess_loan_affordability
from finadvisor.domain.forecasting import monthly_average
from finadvisor.domain.models import CreditRiskResult, LoanAffordabilityResult
from finadvisor.domain.scoring import build_credit_snapshot, calculate_credit_score, describe_score_change
from finadvisor.infrastructure.database.models import CreditRiskHistory, CreditRiskScore, LoanAffordabilityAssessment
from finadvisor.infrastructure.database.repositories import (
    AffordabilityRepository,
    CreditScoreRepository,
    FinancialDataRepository,
)
from finadvisor.infrastructure.observability.metrics import record_affordability, record_credit_score
from finadvisor.utils.date_utils import add_months, month_key, start_of_month, utcnow

SCORING_WINDOW_MONTHS = 6
AFFORDABILITY_WINDOW_MONTHS = 3


class CreditRiskService:
    """Reads a tenant's financial data, scores it and persists the results"""

    def __init__(
        self,
        financial_data: FinancialDataRepository,
        scores: CreditScoreRepository,
        assessments: AffordabilityRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.financial_data = financial_data
        self.scores = scores
        self.assessments = assessments
        self.clock = clock

    def calculate_credit_score(self, tenant_id: str) -> CreditRiskResult:
        now = self.clock()
        accounts = self.financial_data.get_accounts(tenant_id)
        debts = self.financial_data.get_active_debts(tenant_id)
        transactions = self.financial_data.get_transactions(tenant_id, start_of_month(now, SCORING_WINDOW_MONTHS))

        result = calculate_credit_score(build_credit_snapshot(accounts, debts, transactions, now))
        record_credit_score(result.score_band)
        return result

    def store_credit_score(self, tenant_id: str, result: CreditRiskResult) -> str:
        """
        Persist a score, then a history entry describing the change from the previous score.

        The two writes are committed separately. If the second fails the score
        is kept without a history entry (at-least-once, not exactly-once).
        """
        previous = self.scores.get_latest_score(tenant_id)
        previous_score = previous.overall_score if previous else None
        now = self.clock()

        db_score = self.scores.create_score(tenant_id, result, calculated_at=now)
        self.scores.create_history_entry(
            tenant_id=tenant_id,
            score_id=db_score.id,
            previous_score=previous_score,
            new_score=result.overall_score,
            change_reason=describe_score_change(previous_score, result.overall_score, result.score_band),
            period=month_key(now),
            created_at=now,
        )
        return str(db_score.id)

    def get_latest_score(self, tenant_id: str) -> Optional[CreditRiskScore]:
        return self.scores.get_latest_score(tenant_id)

    def get_score_history(self, tenant_id: str, months: int = settings.score_history_months) -> List[CreditRiskHistory]:
        return self.scores.get_history(tenant_id, since=add_months(self.clock(), -months))

    def calculate_loan_affordability(
        self,
        tenant_id: str,
        loan_type: str,
        amount: float,
        term_months: Optional[int] = None,
        rate: Optional[float] = None,
    ) -> LoanAffordabilityResult:
        """
        Assess a loan request against the last three months of cash flow.

        Raises:
            InvalidLoanRequestError: On unknown loan type or out-of-range amount, term or rate
            DataAccessError: On storage failure
        """
        now = self.clock()
        transactions = self.financial_data.get_transactions(tenant_id, add_months(now, -AFFORDABILITY_WINDOW_MONTHS))
        debts = self.financial_data.get_active_debts(tenant_id)
        savings = self.financial_data.get_savings_accounts(tenant_id)

        result = assess_loan_affordability(
            loan_type=loan_type,
            requested_amount=amount,
            monthly_income=monthly_average(
                [t for t in transactions if t.type == "income"], AFFORDABILITY_WINDOW_MONTHS
            ),
            monthly_expenses=monthly_average(
                [t for t in transactions if t.type == "expense"], AFFORDABILITY_WINDOW_MONTHS
            ),
            existing_debt_payments=sum(d.monthly_payment or d.minimum_payment or 0 for d in debts),
            total_savings=sum(a.balance for a in savings),
            term_months=term_months,
            annual_rate=rate,
        )
        record_affordability(result.affordability_band)
        return result

    def store_affordability_assessment(
        self,
        tenant_id: str,
        loan_type: str,
        amount: float,
        term_months: Optional[int],
        rate: Optional[float],
        result: LoanAffordabilityResult,
    ) -> str:
        now = self.clock()
        assessment = self.assessments.create_assessment(
            tenant_id=tenant_id,
            loan_type=loan_type,
            requested_amount=amount,
            term_months=term_months,
            interest_rate=rate,
            result=result,
            calculated_at=now,
            expires_at=now + timedelta(days=settings.assessment_validity_days),
        )
        return str(assessment.id)

    def get_affordability_assessments(self, tenant_id: str, limit: int = 10) -> List[LoanAffordabilityAssessment]:
        return self.assessments.get_assessments(tenant_id, limit=limit)

    def get_affordability_assessment(
        self, tenant_id: str, assessment_id: uuid.UUID
    ) -> Optional[LoanAffordabilityAssessment]:
        return self.assessments.get_assessment(tenant_id, assessment_id)
