"""Debt payoff planning - avalanche vs snowball simulation"""

from datetime import datetime
from typing import Dict, List, Optional

from finadvisor.domain.models import DebtAccount, DebtPayoffStrategy, PayoffOrderItem, PayoffSimulation
from finadvisor.utils.date_utils import add_months
from finadvisor.utils.rounding import round_currency

MAX_PAYOFF_MONTHS = 360  # 30 years
BALANCE_TRANSFER_APR = 0.2


def avalanche_order(debts: List[DebtAccount]) -> List[DebtAccount]:
    """Highest interest rate first"""
    return sorted(debts, key=lambda d: d.interest_rate or 0, reverse=True)


def snowball_order(debts: List[DebtAccount]) -> List[DebtAccount]:
    """Smallest balance first"""
    return sorted(debts, key=lambda d: d.current_balance)


def simulate_payoff(
    debts: List[DebtAccount], monthly_payment: float, max_months: int = MAX_PAYOFF_MONTHS
) -> PayoffSimulation:
    """
    Run a month-by-month payoff for debts in the given priority order.

    Each month every open debt accrues interest at annual_rate / 12 and
    receives its minimum payment. Whatever is left of the monthly budget goes
    to open debts in order. A debt's payoff month is the month its balance
    reaches zero.
    """
    balances: Dict[str, float] = {d.id: d.current_balance for d in debts}
    payoff_months: Dict[str, int] = {d.id: 0 for d in debts if d.current_balance <= 0}
    total_interest = 0.0
    total_paid = 0.0
    month = 0

    while month < max_months and any(balance > 0 for balance in balances.values()):
        month += 1
        available = monthly_payment

        for debt in debts:
            if balances[debt.id] <= 0:
                continue
            interest = balances[debt.id] * (debt.interest_rate or 0) / 12
            balances[debt.id] += interest
            total_interest += interest

            payment = min(debt.minimum_payment or 0, balances[debt.id])
            balances[debt.id] -= payment
            total_paid += payment
            available -= payment
            if balances[debt.id] <= 0:
                payoff_months[debt.id] = month

        for debt in debts:
            if available <= 0:
                break
            if balances[debt.id] <= 0:
                continue
            payment = min(available, balances[debt.id])
            balances[debt.id] -= payment
            total_paid += payment
            available -= payment
            if balances[debt.id] <= 0:
                payoff_months[debt.id] = month

    return PayoffSimulation(
        months=month,
        total_interest=total_interest,
        total_paid=total_paid,
        remaining_balance=sum(max(balance, 0.0) for balance in balances.values()),
        payoff_months=payoff_months,
    )


def generate_debt_payoff_strategy(
    debts: List[DebtAccount], today: datetime, extra_payment: float = 0
) -> Optional[DebtPayoffStrategy]:
    """
    Compare avalanche and snowball orderings and recommend the cheaper one.

    Totals equal to the penny go to avalanche. total_interest_saved is
    always snowball interest minus avalanche interest, so it is negative
    when snowball wins.
    """
    if not debts:
        return None

    total_debt = sum(d.current_balance for d in debts)
    monthly_payment = sum(d.minimum_payment or 0 for d in debts) + extra_payment

    avalanche = avalanche_order(debts)
    snowball = snowball_order(debts)
    avalanche_result = simulate_payoff(avalanche, monthly_payment)
    snowball_result = simulate_payoff(snowball, monthly_payment)

    if round_currency(avalanche_result.total_interest) <= round_currency(snowball_result.total_interest):
        method, selected_order, selected = "avalanche", avalanche, avalanche_result
    else:
        method, selected_order, selected = "snowball", snowball, snowball_result

    recommendations = []
    if extra_payment == 0:
        recommendations.append("Consider adding extra payments to accelerate debt payoff")
    if method == "avalanche":
        recommendations.append("Focusing on highest-interest debt first minimizes total interest paid")
    else:
        recommendations.append("Snowball method builds momentum by eliminating smaller debts quickly")

    high_interest = next((d for d in debts if (d.interest_rate or 0) > BALANCE_TRANSFER_APR), None)
    if high_interest is not None:
        recommendations.append(
            f"Consider balance transfer for {high_interest.name} ({high_interest.interest_rate * 100:.1f}% APR)"
        )

    payoff_order = [
        PayoffOrderItem(
            debt_id=debt.id,
            debt_name=debt.name,
            balance=debt.current_balance,
            interest_rate=debt.interest_rate or 0,
            priority=position,
            projected_payoff_month=selected.payoff_months.get(debt.id),
        )
        for position, debt in enumerate(selected_order, start=1)
    ]

    return DebtPayoffStrategy(
        method=method,
        total_debt=round_currency(total_debt),
        monthly_payment=round_currency(monthly_payment),
        projected_payoff_date=add_months(today, selected.months),
        total_interest_saved=round_currency(snowball_result.total_interest - avalanche_result.total_interest),
        payoff_order=payoff_order,
        recommendations=recommendations,
    )
