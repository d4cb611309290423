"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Literal, Optional, Tuple

ScoreBand = Literal["excellent", "good", "fair", "poor", "very_poor"]
AffordabilityBand = Literal["very_affordable", "affordable", "stretching", "risky", "unaffordable"]
LoanType = Literal["mortgage", "personal", "auto", "credit_card", "student", "business", "other"]
PayoffMethod = Literal["avalanche", "snowball"]
Trend = Literal["increasing", "stable", "decreasing"]
ActionPriority = Literal["critical", "high", "medium"]


# --- Records read from the financial data store ---


@dataclass
class Account:
    """Asset or credit account held by a tenant"""

    id: str
    name: str
    type: str  # current | savings | credit | cash | investment | other
    balance: float
    created_at: Optional[datetime] = None


@dataclass
class Transaction:
    """Ledger transaction with its resolved category name"""

    id: str
    amount: float
    type: str  # income | expense | transfer
    description: str
    date: datetime
    category: Optional[str] = None


@dataclass
class DebtAccount:
    """Liability tracked for a tenant"""

    id: str
    name: str
    type: str  # mortgage | car_loan | student_loan | credit_card | personal_loan | overdraft | other
    original_balance: float
    current_balance: float
    interest_rate: Optional[float] = None  # annual, as a fraction
    minimum_payment: Optional[float] = None
    monthly_payment: Optional[float] = None


@dataclass
class Goal:
    """Active savings goal"""

    id: str
    name: str
    target_amount: float
    current_amount: float
    deadline: Optional[datetime] = None


@dataclass
class GoalContribution:
    goal_id: str
    amount: float
    date: datetime


@dataclass
class FinancialProfile:
    """Self-declared preferences used to tailor advice"""

    risk_tolerance: str = "moderate"
    emergency_fund_target: float = 3.0  # months
    housing_status: Optional[str] = None


# --- Credit risk ---


@dataclass
class CreditDataSnapshot:
    """Aggregated credit signals gathered for one calculation"""

    total_credit_limit: float
    total_credit_used: float
    utilization_percentage: float
    account_types: List[str]
    number_of_accounts: int
    oldest_account_age_months: int
    average_account_age_months: float
    on_time_payments: int
    missed_payments: int
    recent_applications: int


@dataclass
class PaymentHistoryFactor:
    score: int
    missed_payments: int
    on_time_payments: int
    payment_rate: float
    description: str


@dataclass
class CreditUtilizationFactor:
    score: int
    total_limit: float
    total_used: float
    utilization_percentage: float
    description: str


@dataclass
class CreditAgeFactor:
    score: int
    oldest_account_months: int
    average_account_months: int
    description: str


@dataclass
class CreditMixFactor:
    score: int
    account_types: List[str]
    number_of_types: int
    description: str


@dataclass
class RecentInquiriesFactor:
    score: int
    hard_inquiries: int
    recent_applications: int
    description: str


@dataclass
class CreditRiskBreakdown:
    payment_history: PaymentHistoryFactor
    credit_utilization: CreditUtilizationFactor
    credit_age: CreditAgeFactor
    credit_mix: CreditMixFactor
    recent_inquiries: RecentInquiriesFactor


@dataclass
class CreditRiskResult:
    """Output of credit risk scoring"""

    overall_score: int
    score_band: ScoreBand
    breakdown: CreditRiskBreakdown
    risk_factors: List[str]
    positive_factors: List[str]
    improvement_tips: List[str]
    number_of_accounts: int = 0


# --- Loan affordability ---


@dataclass
class StressTestResults:
    can_afford_with_2_percent_rate_increase: bool
    can_afford_with_10_percent_income_decrease: bool
    months_of_savings_coverage: float


@dataclass
class LoanAffordabilityResult:
    """Output of a loan affordability assessment"""

    affordability_score: int
    affordability_band: AffordabilityBand
    max_affordable_amount: float
    recommended_amount: float
    monthly_payment_estimate: float
    total_interest_estimate: float
    debt_to_income_ratio: float
    debt_to_income_after_loan: float
    stress_test_results: StressTestResults
    risk_factors: List[str]
    recommendations: List[str]
    ai_summary: str
    monthly_income: float = 0.0
    monthly_expenses: float = 0.0
    existing_debt_payments: float = 0.0
    disposable_income: float = 0.0
    term_months: int = 0
    interest_rate: float = 0.0


# --- Debt payoff ---


@dataclass
class PayoffOrderItem:
    debt_id: str
    debt_name: str
    balance: float
    interest_rate: float
    priority: int
    projected_payoff_month: Optional[int]


@dataclass
class PayoffSimulation:
    """Month-by-month payoff run for one debt ordering"""

    months: int
    total_interest: float
    total_paid: float
    remaining_balance: float
    payoff_months: Dict[str, int] = field(default_factory=dict)


@dataclass
class DebtPayoffStrategy:
    method: PayoffMethod
    total_debt: float
    monthly_payment: float
    projected_payoff_date: datetime
    total_interest_saved: float
    payoff_order: List[PayoffOrderItem]
    recommendations: List[str]


# --- Forecasting ---


@dataclass
class CategoryTrend:
    average: float
    growth_rate: float  # percent per month
    volatility: float  # coefficient of variation


@dataclass
class SpendingPrediction:
    category: str
    predicted_amount: float
    confidence: float
    trend: Trend
    percentage_change: float
    reasoning: str


@dataclass
class MonthlyForecast:
    month: str
    predicted_income: float
    predicted_expenses: float
    predicted_savings: float
    confidence: float
    category_breakdown: List[SpendingPrediction]


@dataclass
class GoalForecast:
    goal_id: str
    goal_name: str
    target_amount: float
    current_amount: float
    deadline: Optional[datetime]
    projected_completion_date: Optional[datetime]
    on_track: bool
    required_monthly_contribution: float
    current_monthly_average: float
    probability_of_success: float
    recommendations: List[str]


# --- Financial snapshot ---


@dataclass
class IncomeSnapshot:
    monthly: float
    trend: float


@dataclass
class ExpenseSnapshot:
    monthly: float
    trend: float
    by_category: Dict[str, float]


@dataclass
class SavingsSnapshot:
    rate: float
    total: float


@dataclass
class DebtSnapshot:
    total: float
    monthly_payments: float
    debt_to_income_ratio: float


@dataclass
class GoalsSnapshot:
    total: int
    on_track: int
    at_risk: int


@dataclass
class FinancialSnapshot:
    income: IncomeSnapshot
    expenses: ExpenseSnapshot
    savings: SavingsSnapshot
    debt: DebtSnapshot
    goals: GoalsSnapshot
    health_score: Optional[int]


# --- Personalised advice ---


@dataclass
class UrgentAction:
    priority: ActionPriority
    title: str
    description: str
    potential_impact: str
    action_steps: List[str]


@dataclass
class Optimization:
    area: str
    current_situation: str
    recommendation: str
    estimated_benefit: str


@dataclass
class LongTermSuggestion:
    title: str
    description: str
    timeframe: str


@dataclass
class PersonalizedAdvice:
    urgent_actions: List[UrgentAction]
    optimizations: List[Optimization]
    long_term_suggestions: List[LongTermSuggestion]
    overall_assessment: str


@dataclass
class AdviceContext:
    """Figures the advice composer reasons over"""

    income: float
    expenses: float
    savings_rate: float
    total_savings: float
    total_debt: float
    debt_to_income: float
    health_score: Optional[int]
    goals_at_risk: int
    top_spending_categories: List[Tuple[str, float]]
    risk_tolerance: str = "moderate"
    emergency_fund_target: float = 3.0
    housing_status: Optional[str] = None
