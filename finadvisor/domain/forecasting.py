"""Spending forecasts, goal forecasts and the financial snapshot"""

import statistics
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from finadvisor.domain.models import (
    Account,
    CategoryTrend,
    DebtAccount,
    DebtSnapshot,
    ExpenseSnapshot,
    FinancialSnapshot,
    Goal,
    GoalContribution,
    GoalForecast,
    GoalsSnapshot,
    IncomeSnapshot,
    MonthlyForecast,
    SavingsSnapshot,
    SpendingPrediction,
    Transaction,
)
from finadvisor.utils.date_utils import DAYS_PER_MONTH, add_months, month_key, months_between, start_of_month
from finadvisor.utils.rounding import round_currency, round_half_up, round_percentage

FORECAST_HISTORY_MONTHS = 6
AVERAGING_MONTHS = 3
UNCATEGORISED = "Other"

TREND_THRESHOLD = 2.0
STEEP_TREND_THRESHOLD = 10.0
VOLATILE_THRESHOLD = 0.3
MIN_CATEGORY_CONFIDENCE = 0.5
MAX_CATEGORY_CONFIDENCE = 0.95
BASE_MONTH_CONFIDENCE = 0.75
MONTHLY_CONFIDENCE_DECAY = 0.05

# Share of free cash flow assumed to go towards goals without contribution history
GOAL_SAVINGS_SHARE = 0.3
# Share of free cash flow a goal may need and still count as on track in the snapshot
SNAPSHOT_ON_TRACK_SHARE = 0.5
MAX_PROBABILITY = 0.95
# Completion dates further out than this are not projected
MAX_PROJECTION_MONTHS = 360


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _category(txn: Transaction) -> str:
    return txn.category or UNCATEGORISED


def monthly_average(transactions: List[Transaction], months: int) -> float:
    """Average absolute amount per month over a fixed number of months"""
    return sum(abs(t.amount) for t in transactions) / max(1, months)


# --- Spending forecast ---


def group_by_month(transactions: List[Transaction]) -> Dict[str, dict]:
    """Monthly income totals and per-category expense totals, keyed chronologically"""
    monthly: Dict[str, dict] = {}
    for txn in sorted(transactions, key=lambda t: t.date):
        bucket = monthly.setdefault(month_key(txn.date), {"income": 0.0, "expenses": defaultdict(float)})
        if txn.type == "income":
            bucket["income"] += txn.amount
        elif txn.type == "expense":
            bucket["expenses"][_category(txn)] += abs(txn.amount)
    return monthly


def _slope(values: List[float]) -> float:
    """Ordinary least squares slope of values against their index"""
    x_mean = (len(values) - 1) / 2
    y_mean = sum(values) / len(values)
    numerator = sum((i - x_mean) * (y - y_mean) for i, y in enumerate(values))
    denominator = sum((i - x_mean) ** 2 for i in range(len(values)))
    return numerator / denominator if denominator else 0.0


def calculate_category_trends(monthly: Dict[str, dict]) -> Dict[str, CategoryTrend]:
    series: Dict[str, List[float]] = defaultdict(list)
    for key in sorted(monthly):
        for category, amount in monthly[key]["expenses"].items():
            series[category].append(amount)

    trends = {}
    for category, amounts in series.items():
        average = sum(amounts) / len(amounts)
        growth_rate = 0.0
        if len(amounts) >= 2 and average > 0:
            growth_rate = _slope(amounts) / average * 100
        volatility = statistics.pstdev(amounts) / average if average > 0 else 0.0

        trends[category] = CategoryTrend(
            average=round_currency(average),
            growth_rate=round_percentage(growth_rate),
            volatility=round_half_up(volatility, 2),
        )
    return trends


def classify_trend(growth_rate: float) -> str:
    if growth_rate > TREND_THRESHOLD:
        return "increasing"
    if growth_rate < -TREND_THRESHOLD:
        return "decreasing"
    return "stable"


def describe_trend(category: str, trend: CategoryTrend) -> str:
    if trend.growth_rate > STEEP_TREND_THRESHOLD:
        return f"{category} spending is increasing significantly. Review for potential savings."
    if trend.growth_rate > TREND_THRESHOLD:
        return f"{category} spending is trending upward. Monitor for budget adjustments."
    if trend.growth_rate < -STEEP_TREND_THRESHOLD:
        return f"{category} spending is decreasing notably. Great progress in this area!"
    if trend.growth_rate < -TREND_THRESHOLD:
        return f"{category} spending is trending downward. Keep up the good habits."
    if trend.volatility > VOLATILE_THRESHOLD:
        return f"{category} spending varies significantly month to month."
    return f"{category} spending is stable and predictable."


def predict_spending(transactions: List[Transaction], months: int, now: datetime) -> List[MonthlyForecast]:
    """
    Project income, expenses and savings for each of the next `months` months.

    Each category compounds its average by its monthly growth rate; income is
    the mean of the observed monthly incomes.
    """
    monthly = group_by_month(transactions)
    trends = calculate_category_trends(monthly)
    incomes = [bucket["income"] for bucket in monthly.values()]
    average_income = sum(incomes) / max(1, len(incomes))

    forecasts = []
    for i in range(1, months + 1):
        breakdown = []
        total_expenses = 0.0
        for category, trend in trends.items():
            predicted = trend.average * (1 + trend.growth_rate / 100) ** i
            total_expenses += predicted
            breakdown.append(
                SpendingPrediction(
                    category=category,
                    predicted_amount=round_currency(predicted),
                    confidence=_clamp(1 - abs(trend.volatility), MIN_CATEGORY_CONFIDENCE, MAX_CATEGORY_CONFIDENCE),
                    trend=classify_trend(trend.growth_rate),
                    percentage_change=trend.growth_rate,
                    reasoning=describe_trend(category, trend),
                )
            )
        breakdown.sort(key=lambda p: p.predicted_amount, reverse=True)

        forecasts.append(
            MonthlyForecast(
                month=month_key(start_of_month(now, -i)),
                predicted_income=round_currency(average_income),
                predicted_expenses=round_currency(total_expenses),
                predicted_savings=round_currency(average_income - total_expenses),
                confidence=round_half_up(_clamp(BASE_MONTH_CONFIDENCE - MONTHLY_CONFIDENCE_DECAY * i, 0.0, 1.0), 2),
                category_breakdown=breakdown,
            )
        )
    return forecasts


# --- Goal forecast ---


def success_probability(current_monthly: float, required_monthly: float, monthly_savings: float) -> float:
    if required_monthly <= 0:
        return MAX_PROBABILITY
    if current_monthly >= required_monthly:
        probability = min(MAX_PROBABILITY, 0.7 + (current_monthly / required_monthly - 1) * 0.25)
    elif current_monthly > 0:
        probability = max(0.1, current_monthly / required_monthly * 0.7)
    else:
        probability = min(0.6, monthly_savings / required_monthly * 0.6)
    return _clamp(probability, 0.0, 1.0)


def goal_recommendations(
    goal: Goal, current_monthly: float, required_monthly: float, available_savings: float, on_track: bool
) -> List[str]:
    recommendations = []

    if not on_track:
        if current_monthly == 0:
            weekly = int(round_half_up(required_monthly / 4))
            recommendations.append(f"Start contributing to reach your goal. Even £{weekly} weekly would help.")
        elif current_monthly < required_monthly * 0.5:
            increase = int(round_half_up(required_monthly - current_monthly))
            recommendations.append(f"Increase monthly contributions by £{increase} to stay on track.")

        if available_savings > required_monthly * 2:
            recommendations.append("You have available savings that could be redirected to this goal.")

        if goal.deadline:
            extended = add_months(goal.deadline, 3)
            recommendations.append(
                f"Consider extending deadline to {extended.strftime('%b %Y')} for a more achievable pace."
            )
    else:
        if current_monthly > required_monthly * 1.5:
            recommendations.append("Excellent progress! You could reach this goal ahead of schedule.")
        recommendations.append("Keep up your current contribution rate.")

    return recommendations


def forecast_goals(
    goals: List[Goal],
    contributions: List[GoalContribution],
    transactions: List[Transaction],
    now: datetime,
) -> List[GoalForecast]:
    """
    Forecast each active goal from the last three months of contributions and cash flow.

    Results are ordered by probability of success, highest first.
    """
    if not goals:
        return []

    income = monthly_average([t for t in transactions if t.type == "income"], AVERAGING_MONTHS)
    expenses = monthly_average([t for t in transactions if t.type == "expense"], AVERAGING_MONTHS)
    monthly_savings = income - expenses

    forecasts = []
    for goal in goals:
        goal_contributions = [c for c in contributions if c.goal_id == goal.id]
        months_of_data = AVERAGING_MONTHS if goal_contributions else 1
        current_monthly = sum(c.amount for c in goal_contributions) / months_of_data
        remaining = goal.target_amount - goal.current_amount

        required_monthly = 0.0
        probability = 0.5
        if goal.deadline:
            months_remaining = max(1.0, months_between(now, goal.deadline))
            required_monthly = remaining / months_remaining
            probability = success_probability(current_monthly, required_monthly, monthly_savings)

        months_to_complete: Optional[float] = None
        if current_monthly > 0:
            months_to_complete = max(0.0, remaining) / current_monthly
        elif monthly_savings > 0:
            months_to_complete = max(0.0, remaining) / (monthly_savings * GOAL_SAVINGS_SHARE)

        projected: Optional[datetime] = None
        if months_to_complete is not None and months_to_complete <= MAX_PROJECTION_MONTHS:
            projected = now + timedelta(days=months_to_complete * DAYS_PER_MONTH)

        if goal.deadline:
            on_track = projected is not None and projected <= goal.deadline
        else:
            on_track = probability > 0.5

        forecasts.append(
            GoalForecast(
                goal_id=goal.id,
                goal_name=goal.name,
                target_amount=goal.target_amount,
                current_amount=goal.current_amount,
                deadline=goal.deadline,
                projected_completion_date=projected,
                on_track=on_track,
                required_monthly_contribution=round_currency(required_monthly),
                current_monthly_average=round_currency(current_monthly),
                probability_of_success=round_half_up(probability, 2),
                recommendations=goal_recommendations(
                    goal, current_monthly, required_monthly, monthly_savings, on_track
                ),
            )
        )

    forecasts.sort(key=lambda f: f.probability_of_success, reverse=True)
    return forecasts


# --- Financial snapshot ---


def _percent_change(value: float, baseline: float) -> float:
    return (value - baseline) / baseline * 100 if baseline > 0 else 0.0


def build_financial_snapshot(
    transactions: List[Transaction],
    savings_accounts: List[Account],
    debts: List[DebtAccount],
    goals: List[Goal],
    health_score: Optional[int],
    now: datetime,
) -> FinancialSnapshot:
    """
    Summarise the three full calendar months before `now`.

    Averages divide by three regardless of how many of those months hold data.
    Expenses by category are monthly averages over the same window.
    """
    window_start = start_of_month(now, AVERAGING_MONTHS)
    last_month_start = start_of_month(now, 1)
    current_month_start = start_of_month(now)
    window = [t for t in transactions if window_start <= t.date < current_month_start]
    last_month = [t for t in window if t.date >= last_month_start]

    income = monthly_average([t for t in window if t.type == "income"], AVERAGING_MONTHS)
    expenses = monthly_average([t for t in window if t.type == "expense"], AVERAGING_MONTHS)
    last_income = sum(abs(t.amount) for t in last_month if t.type == "income")
    last_expenses = sum(abs(t.amount) for t in last_month if t.type == "expense")

    by_category: Dict[str, float] = defaultdict(float)
    for txn in window:
        if txn.type == "expense":
            by_category[_category(txn)] += abs(txn.amount)

    total_debt = sum(d.current_balance for d in debts)
    debt_payments = sum(d.monthly_payment or d.minimum_payment or 0 for d in debts)

    surplus = income - expenses
    on_track = 0
    for goal in goals:
        if not goal.deadline:
            on_track += 1
            continue
        months_remaining = max(1.0, months_between(now, goal.deadline))
        if (goal.target_amount - goal.current_amount) / months_remaining <= surplus * SNAPSHOT_ON_TRACK_SHARE:
            on_track += 1

    return FinancialSnapshot(
        income=IncomeSnapshot(monthly=round_currency(income), trend=round_percentage(_percent_change(last_income, income))),
        expenses=ExpenseSnapshot(
            monthly=round_currency(expenses),
            trend=round_percentage(_percent_change(last_expenses, expenses)),
            by_category={
                category: round_currency(total / AVERAGING_MONTHS) for category, total in by_category.items()
            },
        ),
        savings=SavingsSnapshot(
            rate=round_percentage(surplus / income * 100) if income > 0 else 0.0,
            total=round_currency(sum(a.balance for a in savings_accounts)),
        ),
        debt=DebtSnapshot(
            total=round_currency(total_debt),
            monthly_payments=round_currency(debt_payments),
            debt_to_income_ratio=round_percentage(debt_payments / income * 100) if income > 0 else 0.0,
        ),
        goals=GoalsSnapshot(total=len(goals), on_track=on_track, at_risk=len(goals) - on_track),
        health_score=health_score,
    )
