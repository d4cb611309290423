"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Dict, List, Optional


class _FromDomain(BaseModel):
    """Response models populated from domain dataclasses or ORM rows"""

    model_config = ConfigDict(from_attributes=True)


# --- Credit risk ---


class PaymentHistorySchema(_FromDomain):
    score: int
    missed_payments: int
    on_time_payments: int
    payment_rate: float
    description: str


class CreditUtilizationSchema(_FromDomain):
    score: int
    total_limit: float
    total_used: float
    utilization_percentage: float
    description: str


class CreditAgeSchema(_FromDomain):
    score: int
    oldest_account_months: int
    average_account_months: int
    description: str


class CreditMixSchema(_FromDomain):
    score: int
    account_types: List[str]
    number_of_types: int
    description: str


class RecentInquiriesSchema(_FromDomain):
    score: int
    hard_inquiries: int
    recent_applications: int
    description: str


class CreditRiskBreakdownSchema(_FromDomain):
    payment_history: PaymentHistorySchema
    credit_utilization: CreditUtilizationSchema
    credit_age: CreditAgeSchema
    credit_mix: CreditMixSchema
    recent_inquiries: RecentInquiriesSchema


class CreditScoreRequest(BaseModel):
    """Request body for POST /v1/credit-risk/score/calculate"""

    tenant_id: str = Field(..., min_length=1, description="Tenant identifier")


class CreditScoreResponse(_FromDomain):
    """Response for the credit score endpoints"""

    score_id: Optional[str] = None
    overall_score: int
    score_band: str
    breakdown: CreditRiskBreakdownSchema
    risk_factors: List[str]
    positive_factors: List[str]
    improvement_tips: List[str]
    calculated_at: Optional[datetime] = None


class ScoreHistoryItem(BaseModel):
    """Single score change in history"""

    history_id: str
    score_id: str
    previous_score: Optional[int] = None
    new_score: int
    score_delta: int
    change_reason: str
    period: str
    created_at: datetime


class ScoreHistoryResponse(BaseModel):
    """Response for GET /v1/credit-risk/score/history"""

    tenant_id: str
    months: int
    history: List[ScoreHistoryItem]


# --- Loan affordability ---


class AffordabilityRequest(BaseModel):
    """Request body for POST /v1/credit-risk/affordability"""

    tenant_id: str = Field(..., min_length=1, description="Tenant identifier")
    loan_type: str = Field(..., description="mortgage | personal | auto | credit_card | student | business | other")
    amount: float = Field(..., gt=0, description="Requested loan amount in pounds")
    term_months: Optional[int] = Field(None, description="Loan term; defaults per loan type")
    interest_rate: Optional[float] = Field(None, description="Annual rate as a fraction; defaults per loan type")


class StressTestSchema(_FromDomain):
    can_afford_with_2_percent_rate_increase: bool
    can_afford_with_10_percent_income_decrease: bool
    months_of_savings_coverage: float


class AffordabilityResponse(_FromDomain):
    """Loan affordability assessment, fresh or stored"""

    assessment_id: Optional[str] = None
    loan_type: Optional[str] = None
    requested_amount: Optional[float] = None
    affordability_score: int
    affordability_band: str
    max_affordable_amount: float
    recommended_amount: float
    monthly_payment_estimate: float
    total_interest_estimate: float
    debt_to_income_ratio: float
    debt_to_income_after_loan: float
    stress_test_results: StressTestSchema
    risk_factors: List[str]
    recommendations: List[str]
    ai_summary: str
    calculated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class AffordabilityListResponse(BaseModel):
    """Response for GET /v1/credit-risk/affordability"""

    tenant_id: str
    assessments: List[AffordabilityResponse]


# --- Advisor ---


class IncomeSchema(_FromDomain):
    monthly: float
    trend: float


class ExpensesSchema(_FromDomain):
    monthly: float
    trend: float
    by_category: Dict[str, float]


class SavingsSchema(_FromDomain):
    rate: float
    total: float


class DebtSchema(_FromDomain):
    total: float
    monthly_payments: float
    debt_to_income_ratio: float


class GoalsSummarySchema(_FromDomain):
    total: int
    on_track: int
    at_risk: int


class FinancialSnapshotResponse(_FromDomain):
    """Response for GET /v1/advisor/snapshot"""

    income: IncomeSchema
    expenses: ExpensesSchema
    savings: SavingsSchema
    debt: DebtSchema
    goals: GoalsSummarySchema
    health_score: Optional[int] = None


class SpendingPredictionSchema(_FromDomain):
    category: str
    predicted_amount: float
    confidence: float
    trend: str
    percentage_change: float
    reasoning: str


class MonthlyForecastSchema(_FromDomain):
    month: str
    predicted_income: float
    predicted_expenses: float
    predicted_savings: float
    confidence: float
    category_breakdown: List[SpendingPredictionSchema]


class PredictionsResponse(BaseModel):
    """Response for GET /v1/advisor/predictions"""

    tenant_id: str
    forecasts: List[MonthlyForecastSchema]


class GoalForecastSchema(_FromDomain):
    goal_id: str
    goal_name: str
    target_amount: float
    current_amount: float
    deadline: Optional[datetime] = None
    projected_completion_date: Optional[datetime] = None
    on_track: bool
    required_monthly_contribution: float
    current_monthly_average: float
    probability_of_success: float
    recommendations: List[str]


class GoalForecastsResponse(BaseModel):
    """Response for GET /v1/advisor/goals"""

    tenant_id: str
    goals: List[GoalForecastSchema]


class DebtStrategyRequest(BaseModel):
    """Request body for POST /v1/advisor/debt/strategy"""

    tenant_id: str = Field(..., min_length=1, description="Tenant identifier")
    extra_payment: float = Field(0, ge=0, description="Extra monthly payment on top of minimums")


class PayoffOrderSchema(_FromDomain):
    debt_id: str
    debt_name: str
    balance: float
    interest_rate: float
    priority: int
    projected_payoff_month: Optional[int] = None


class DebtStrategySchema(_FromDomain):
    method: str
    total_debt: float
    monthly_payment: float
    projected_payoff_date: datetime
    total_interest_saved: float
    payoff_order: List[PayoffOrderSchema]
    recommendations: List[str]


class DebtStrategyResponse(BaseModel):
    """Response for the debt strategy endpoints; strategy is null without active debts"""

    tenant_id: str
    strategy: Optional[DebtStrategySchema] = None


class UrgentActionSchema(_FromDomain):
    priority: str
    title: str
    description: str
    potential_impact: str
    action_steps: List[str]


class OptimizationSchema(_FromDomain):
    area: str
    current_situation: str
    recommendation: str
    estimated_benefit: str


class LongTermSuggestionSchema(_FromDomain):
    title: str
    description: str
    timeframe: str


class AdviceResponse(_FromDomain):
    """Response for GET /v1/advisor/advice"""

    urgent_actions: List[UrgentActionSchema]
    optimizations: List[OptimizationSchema]
    long_term_suggestions: List[LongTermSuggestionSchema]
    overall_assessment: str
