"""Data access layer for tenant financial data and credit results"""

import uuid
from dataclasses import asdict
from datetime import datetime
from functools import wraps
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from finadvisor.domain import models as domain
from finadvisor.domain.exceptions import DataAccessError
from finadvisor.infrastructure.database.models import (
    Account,
    CreditRiskHistory,
    CreditRiskScore,
    DebtAccount,
    FinancialHealthScore,
    Goal,
    GoalContribution,
    LoanAffordabilityAssessment,
    Transaction,
    UserFinancialProfile,
)


def _wrap_errors(method):
    """Roll back and re-raise storage failures as DataAccessError"""

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DataAccessError(f"{method.__name__} failed: {e}") from e

    return wrapper


class FinancialDataRepository:
    """Read-only access to a tenant's accounts, debts, transactions and goals"""

    def __init__(self, db: Session):
        self.db = db

    @_wrap_errors
    def get_accounts(self, tenant_id: str) -> List[domain.Account]:
        rows = self.db.query(Account).filter(Account.tenant_id == tenant_id).all()
        return [
            domain.Account(id=r.id, name=r.name, type=r.type, balance=r.balance, created_at=r.created_at)
            for r in rows
        ]

    def get_savings_accounts(self, tenant_id: str) -> List[domain.Account]:
        return [a for a in self.get_accounts(tenant_id) if a.type == "savings"]

    @_wrap_errors
    def get_active_debts(self, tenant_id: str) -> List[domain.DebtAccount]:
        rows = (
            self.db.query(DebtAccount)
            .filter(DebtAccount.tenant_id == tenant_id, DebtAccount.status == "active")
            .all()
        )
        return [
            domain.DebtAccount(
                id=r.id,
                name=r.name,
                type=r.type,
                original_balance=r.original_balance,
                current_balance=r.current_balance,
                interest_rate=r.interest_rate,
                minimum_payment=r.minimum_payment,
                monthly_payment=r.monthly_payment,
            )
            for r in rows
        ]

    @_wrap_errors
    def get_transactions(self, tenant_id: str, since: datetime) -> List[domain.Transaction]:
        """Transactions dated on or after `since`, with category names resolved"""
        rows = (
            self.db.query(Transaction)
            .outerjoin(Transaction.category)
            .filter(Transaction.tenant_id == tenant_id, Transaction.date >= since)
            .order_by(Transaction.date)
            .all()
        )
        return [
            domain.Transaction(
                id=r.id,
                amount=r.amount,
                type=r.type,
                description=r.description,
                date=r.date,
                category=r.category.name if r.category else None,
            )
            for r in rows
        ]

    @_wrap_errors
    def get_active_goals(self, tenant_id: str) -> List[domain.Goal]:
        rows = self.db.query(Goal).filter(Goal.tenant_id == tenant_id, Goal.status == "active").all()
        return [
            domain.Goal(
                id=r.id,
                name=r.name,
                target_amount=r.target_amount,
                current_amount=r.current_amount,
                deadline=r.deadline,
            )
            for r in rows
        ]

    @_wrap_errors
    def get_goal_contributions(self, goal_ids: List[str], since: datetime) -> List[domain.GoalContribution]:
        if not goal_ids:
            return []
        rows = (
            self.db.query(GoalContribution)
            .filter(GoalContribution.goal_id.in_(goal_ids), GoalContribution.date >= since)
            .all()
        )
        return [domain.GoalContribution(goal_id=r.goal_id, amount=r.amount, date=r.date) for r in rows]

    @_wrap_errors
    def get_financial_profile(self, tenant_id: str) -> Optional[domain.FinancialProfile]:
        row = self.db.query(UserFinancialProfile).filter(UserFinancialProfile.tenant_id == tenant_id).first()
        if row is None:
            return None
        return domain.FinancialProfile(
            risk_tolerance=row.risk_tolerance,
            emergency_fund_target=row.emergency_fund_target,
            housing_status=row.housing_status,
        )

    @_wrap_errors
    def get_latest_health_score(self, tenant_id: str) -> Optional[int]:
        row = (
            self.db.query(FinancialHealthScore)
            .filter(FinancialHealthScore.tenant_id == tenant_id)
            .order_by(FinancialHealthScore.calculated_at.desc())
            .first()
        )
        return row.overall_score if row else None


class CreditScoreRepository:
    """Repository for credit risk scores and their history"""

    def __init__(self, db: Session):
        self.db = db

    @_wrap_errors
    def get_latest_score(self, tenant_id: str) -> Optional[CreditRiskScore]:
        return (
            self.db.query(CreditRiskScore)
            .filter(CreditRiskScore.tenant_id == tenant_id)
            .order_by(CreditRiskScore.calculated_at.desc())
            .first()
        )

    @_wrap_errors
    def create_score(
        self, tenant_id: str, result: domain.CreditRiskResult, calculated_at: datetime
    ) -> CreditRiskScore:
        """Persist and commit a credit risk score"""
        breakdown = result.breakdown
        db_score = CreditRiskScore(
            tenant_id=tenant_id,
            overall_score=result.overall_score,
            score_band=result.score_band,
            payment_history_score=breakdown.payment_history.score,
            credit_utilization_score=breakdown.credit_utilization.score,
            credit_age_score=breakdown.credit_age.score,
            credit_mix_score=breakdown.credit_mix.score,
            recent_inquiries_score=breakdown.recent_inquiries.score,
            total_credit_limit=breakdown.credit_utilization.total_limit,
            total_credit_used=breakdown.credit_utilization.total_used,
            utilization_percentage=breakdown.credit_utilization.utilization_percentage,
            oldest_account_age_months=breakdown.credit_age.oldest_account_months,
            average_account_age_months=breakdown.credit_age.average_account_months,
            number_of_accounts=result.number_of_accounts,
            on_time_payments=breakdown.payment_history.on_time_payments,
            missed_payments=breakdown.payment_history.missed_payments,
            recent_applications=breakdown.recent_inquiries.recent_applications,
            breakdown=asdict(breakdown),
            risk_factors=result.risk_factors,
            positive_factors=result.positive_factors,
            improvement_tips=result.improvement_tips,
            calculated_at=calculated_at,
            created_at=calculated_at,
        )
        self.db.add(db_score)
        self.db.commit()
        self.db.refresh(db_score)
        return db_score

    @_wrap_errors
    def create_history_entry(
        self,
        tenant_id: str,
        score_id: uuid.UUID,
        previous_score: Optional[int],
        new_score: int,
        change_reason: str,
        period: str,
        created_at: datetime,
    ) -> CreditRiskHistory:
        """Persist and commit one score change record"""
        entry = CreditRiskHistory(
            tenant_id=tenant_id,
            score_id=score_id,
            previous_score=previous_score,
            new_score=new_score,
            score_delta=new_score - previous_score if previous_score is not None else 0,
            change_reason=change_reason,
            period=period,
            created_at=created_at,
        )
        self.db.add(entry)
        self.db.commit()
        return entry

    @_wrap_errors
    def get_history(self, tenant_id: str, since: datetime) -> List[CreditRiskHistory]:
        """History entries created on or after `since`, newest first"""
        return (
            self.db.query(CreditRiskHistory)
            .filter(CreditRiskHistory.tenant_id == tenant_id, CreditRiskHistory.created_at >= since)
            .order_by(CreditRiskHistory.created_at.desc())
            .all()
        )


class AffordabilityRepository:
    """Repository for loan affordability assessments"""

    def __init__(self, db: Session):
        self.db = db

    @_wrap_errors
    def create_assessment(
        self,
        tenant_id: str,
        loan_type: str,
        requested_amount: float,
        term_months: Optional[int],
        interest_rate: Optional[float],
        result: domain.LoanAffordabilityResult,
        calculated_at: datetime,
        expires_at: datetime,
    ) -> LoanAffordabilityAssessment:
        """Persist and commit an assessment; falls back to the terms the result was computed with"""
        assessment = LoanAffordabilityAssessment(
            tenant_id=tenant_id,
            loan_type=loan_type,
            requested_amount=requested_amount,
            requested_term_months=term_months if term_months is not None else result.term_months,
            interest_rate=interest_rate if interest_rate is not None else result.interest_rate,
            monthly_income=result.monthly_income,
            monthly_expenses=result.monthly_expenses,
            existing_debt_payments=result.existing_debt_payments,
            disposable_income=result.disposable_income,
            affordability_score=result.affordability_score,
            affordability_band=result.affordability_band,
            max_affordable_amount=result.max_affordable_amount,
            recommended_amount=result.recommended_amount,
            monthly_payment_estimate=result.monthly_payment_estimate,
            total_interest_estimate=result.total_interest_estimate,
            debt_to_income_ratio=result.debt_to_income_ratio,
            debt_to_income_after_loan=result.debt_to_income_after_loan,
            stress_test_results=asdict(result.stress_test_results),
            risk_factors=result.risk_factors,
            recommendations=result.recommendations,
            ai_summary=result.ai_summary,
            status="completed",
            calculated_at=calculated_at,
            expires_at=expires_at,
            created_at=calculated_at,
        )
        self.db.add(assessment)
        self.db.commit()
        self.db.refresh(assessment)
        return assessment

    @_wrap_errors
    def get_assessments(self, tenant_id: str, limit: int = 10) -> List[LoanAffordabilityAssessment]:
        return (
            self.db.query(LoanAffordabilityAssessment)
            .filter(LoanAffordabilityAssessment.tenant_id == tenant_id)
            .order_by(LoanAffordabilityAssessment.calculated_at.desc())
            .limit(limit)
            .all()
        )

    @_wrap_errors
    def get_assessment(self, tenant_id: str, assessment_id: uuid.UUID) -> Optional[LoanAffordabilityAssessment]:
        return (
            self.db.query(LoanAffordabilityAssessment)
            .filter(
                LoanAffordabilityAssessment.tenant_id == tenant_id,
                LoanAffordabilityAssessment.id == assessment_id,
            )
            .first()
        )
