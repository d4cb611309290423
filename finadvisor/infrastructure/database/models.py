"""SQLAlchemy ORM models for tenant financial data and computed credit results"""

import uuid
from sqlalchemy import Column, String, Boolean, Float, DateTime, Integer, ForeignKey, Text, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _text_id() -> str:
    return str(uuid.uuid4())


# --- Tenant financial data (read by the engines) ---


class Account(Base):
    """Asset or credit account"""

    __tablename__ = "accounts"

    id = Column(Text, primary_key=True, default=_text_id)
    tenant_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False)  # current | savings | credit | cash | investment | other
    balance = Column(Float, nullable=False, default=0.0)
    currency = Column(String(3), nullable=False, default="GBP")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class Category(Base):
    __tablename__ = "categories"

    id = Column(Text, primary_key=True, default=_text_id)
    tenant_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False)  # income | expense


class Transaction(Base):
    """Ledger transaction; expense amounts may be stored signed or unsigned"""

    __tablename__ = "transactions"

    id = Column(Text, primary_key=True, default=_text_id)
    tenant_id = Column(Text, nullable=False, index=True)
    account_id = Column(Text, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=True)
    category_id = Column(Text, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=False, default="")
    date = Column(DateTime, nullable=False, index=True)
    type = Column(Text, nullable=False)  # income | expense | transfer

    category = relationship("Category")


class DebtAccount(Base):
    __tablename__ = "debt_accounts"

    id = Column(Text, primary_key=True, default=_text_id)
    tenant_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False)  # mortgage | car_loan | student_loan | credit_card | personal_loan | overdraft | other
    original_balance = Column(Float, nullable=False)
    current_balance = Column(Float, nullable=False)
    interest_rate = Column(Float, nullable=True)  # annual, as a fraction
    minimum_payment = Column(Float, nullable=True)
    monthly_payment = Column(Float, nullable=True)
    status = Column(Text, nullable=False, default="active")  # active | paid_off | defaulted | refinanced
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class Goal(Base):
    __tablename__ = "goals"

    id = Column(Text, primary_key=True, default=_text_id)
    tenant_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    target_amount = Column(Float, nullable=False)
    current_amount = Column(Float, nullable=False, default=0.0)
    deadline = Column(DateTime, nullable=True)
    status = Column(Text, nullable=False, default="active")  # active | completed | abandoned
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    contributions = relationship("GoalContribution", back_populates="goal", cascade="all, delete-orphan")


class GoalContribution(Base):
    __tablename__ = "goal_contributions"

    id = Column(Text, primary_key=True, default=_text_id)
    goal_id = Column(Text, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False)

    goal = relationship("Goal", back_populates="contributions")


class UserFinancialProfile(Base):
    __tablename__ = "user_financial_profiles"

    id = Column(Text, primary_key=True, default=_text_id)
    tenant_id = Column(Text, nullable=False, unique=True)
    risk_tolerance = Column(Text, nullable=False, default="moderate")  # conservative | moderate | aggressive
    emergency_fund_target = Column(Float, nullable=False, default=3.0)  # months
    housing_status = Column(Text, nullable=True)


class FinancialHealthScore(Base):
    __tablename__ = "financial_health_scores"

    id = Column(Text, primary_key=True, default=_text_id)
    tenant_id = Column(Text, nullable=False, index=True)
    overall_score = Column(Integer, nullable=False)
    calculated_at = Column(DateTime, nullable=False, server_default=func.now())


# --- Written by the credit risk engine ---


class CreditRiskScore(Base):
    """Credit risk score with factor breakdown and snapshot metrics"""

    __tablename__ = "credit_risk_scores"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Text, nullable=False, index=True)
    overall_score = Column(Integer, nullable=False)
    score_band = Column(Text, nullable=False)
    payment_history_score = Column(Integer, nullable=False)
    credit_utilization_score = Column(Integer, nullable=False)
    credit_age_score = Column(Integer, nullable=False)
    credit_mix_score = Column(Integer, nullable=False)
    recent_inquiries_score = Column(Integer, nullable=False)
    total_credit_limit = Column(Float, nullable=False, default=0.0)
    total_credit_used = Column(Float, nullable=False, default=0.0)
    utilization_percentage = Column(Float, nullable=False, default=0.0)
    oldest_account_age_months = Column(Integer, nullable=False, default=0)
    average_account_age_months = Column(Integer, nullable=False, default=0)
    number_of_accounts = Column(Integer, nullable=False, default=0)
    on_time_payments = Column(Integer, nullable=False, default=0)
    missed_payments = Column(Integer, nullable=False, default=0)
    recent_applications = Column(Integer, nullable=False, default=0)
    breakdown = Column(JSON, nullable=False)
    risk_factors = Column(JSON, nullable=False)
    positive_factors = Column(JSON, nullable=False)
    improvement_tips = Column(JSON, nullable=False)
    calculated_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    history = relationship("CreditRiskHistory", back_populates="score")


class CreditRiskHistory(Base):
    """Immutable score change log, one row per calculation"""

    __tablename__ = "credit_risk_history"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Text, nullable=False, index=True)
    score_id = Column(UUID(as_uuid=True), ForeignKey("credit_risk_scores.id", ondelete="CASCADE"), nullable=False)
    previous_score = Column(Integer, nullable=True)
    new_score = Column(Integer, nullable=False)
    score_delta = Column(Integer, nullable=False, default=0)
    change_reason = Column(Text, nullable=False)
    period = Column(String(7), nullable=False)  # YYYY-MM
    created_at = Column(DateTime, nullable=False, index=True)

    score = relationship("CreditRiskScore", back_populates="history")


class LoanAffordabilityAssessment(Base):
    """Stored loan affordability assessment; expires_at is advisory only"""

    __tablename__ = "loan_affordability_assessments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Text, nullable=False, index=True)
    loan_type = Column(Text, nullable=False)
    requested_amount = Column(Float, nullable=False)
    requested_term_months = Column(Integer, nullable=True)
    interest_rate = Column(Float, nullable=True)
    monthly_income = Column(Float, nullable=False)
    monthly_expenses = Column(Float, nullable=False)
    existing_debt_payments = Column(Float, nullable=False)
    disposable_income = Column(Float, nullable=False)
    affordability_score = Column(Integer, nullable=False)
    affordability_band = Column(Text, nullable=False)
    max_affordable_amount = Column(Float, nullable=False)
    recommended_amount = Column(Float, nullable=False)
    monthly_payment_estimate = Column(Float, nullable=False)
    total_interest_estimate = Column(Float, nullable=False)
    debt_to_income_ratio = Column(Float, nullable=False)
    debt_to_income_after_loan = Column(Float, nullable=False)
    stress_test_results = Column(JSON, nullable=False)
    risk_factors = Column(JSON, nullable=False)
    recommendations = Column(JSON, nullable=False)
    ai_summary = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="completed")
    calculated_at = Column(DateTime, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
