"""Loan affordability assessment - amortization, DTI ratios and stress tests"""

from typing import List, Optional

from finadvisor.domain.exceptions import InvalidLoanRequestError
from finadvisor.domain.models import AffordabilityBand, LoanAffordabilityResult, StressTestResults
from finadvisor.utils.rounding import format_gbp, round_currency, round_half_up, round_percentage

DEFAULT_RATES = {
    "mortgage": 0.045,
    "personal": 0.089,
    "auto": 0.059,
    "credit_card": 0.199,
    "student": 0.055,
    "business": 0.075,
    "other": 0.10,
}

DEFAULT_TERMS = {
    "mortgage": 300,  # 25 years
    "personal": 60,
    "auto": 60,
    "credit_card": 36,
    "student": 120,
    "business": 84,
    "other": 60,
}

# Share of monthly income available for total debt service
MAX_DTI = 0.36
RECOMMENDED_DTI = 0.28
STRESS_DTI_CEILING = 0.40
STRESS_RATE_INCREASE = 0.02
STRESS_INCOME_FACTOR = 0.9

# (DTI-after-loan above, deduction), checked in order
DTI_PENALTIES = [(50, 40), (43, 25), (36, 15), (28, 5)]
# (remaining disposable income below, deduction), checked in order
DISPOSABLE_PENALTIES = [(0, 30), (200, 20), (500, 10)]
STRESS_TEST_PENALTY = 10
SAVINGS_BONUS_MONTHS = 6
SAVINGS_PENALTY_MONTHS = 3
SAVINGS_ADJUSTMENT = 5

AFFORDABILITY_BANDS: List[tuple] = [
    (80, "very_affordable"),
    (60, "affordable"),
    (40, "stretching"),
    (20, "risky"),
    (0, "unaffordable"),
]


def amortized_payment(principal: float, annual_rate: float, term_months: int) -> float:
    """
    Fixed monthly payment for a fully amortizing loan.

    payment = P * r(1+r)^n / ((1+r)^n - 1), with r the monthly rate.
    A zero rate degenerates to straight-line repayment P / n.
    """
    if term_months <= 0:
        return 0.0
    monthly_rate = annual_rate / 12
    if monthly_rate == 0:
        return principal / term_months
    growth = (1 + monthly_rate) ** term_months
    return principal * (monthly_rate * growth) / (growth - 1)


def principal_for_payment(monthly_payment: float, annual_rate: float, term_months: int) -> float:
    """Inverse amortization: the principal a given monthly payment can service"""
    if monthly_payment <= 0 or term_months <= 0:
        return 0.0
    monthly_rate = annual_rate / 12
    if monthly_rate == 0:
        return monthly_payment * term_months
    growth = (1 + monthly_rate) ** term_months
    return monthly_payment * (growth - 1) / (monthly_rate * growth)


def determine_affordability_band(score: int) -> AffordabilityBand:
    for minimum, band in AFFORDABILITY_BANDS:
        if score >= minimum:
            return band
    return "unaffordable"


def resolve_loan_terms(loan_type: str, term_months: Optional[int], annual_rate: Optional[float]) -> tuple[int, float]:
    """Apply per-type defaults; an explicit rate of 0 is kept as a 0% loan"""
    if loan_type not in DEFAULT_RATES:
        raise InvalidLoanRequestError(f"Unsupported loan type: {loan_type}")
    if term_months is not None and term_months <= 0:
        raise InvalidLoanRequestError("Loan term must be a positive number of months")
    if annual_rate is not None and not 0 <= annual_rate <= 1:
        raise InvalidLoanRequestError("Interest rate must be a fraction between 0 and 1")

    rate = annual_rate if annual_rate is not None else DEFAULT_RATES[loan_type]
    term = term_months if term_months is not None else DEFAULT_TERMS[loan_type]
    return term, rate


def _ratio_percent(amount: float, income: float) -> float:
    return (amount / income) * 100 if income > 0 else 0.0


def calculate_affordability_score(
    dti_after_loan: float,
    remaining_disposable: float,
    passes_rate_stress: bool,
    passes_income_stress: bool,
    months_of_savings_coverage: float,
) -> int:
    score = 100

    for threshold, deduction in DTI_PENALTIES:
        if dti_after_loan > threshold:
            score -= deduction
            break

    for threshold, deduction in DISPOSABLE_PENALTIES:
        if remaining_disposable < threshold:
            score -= deduction
            break

    if not passes_rate_stress:
        score -= STRESS_TEST_PENALTY
    if not passes_income_stress:
        score -= STRESS_TEST_PENALTY

    if months_of_savings_coverage >= SAVINGS_BONUS_MONTHS:
        score += SAVINGS_ADJUSTMENT
    elif months_of_savings_coverage < SAVINGS_PENALTY_MONTHS:
        score -= SAVINGS_ADJUSTMENT

    return max(0, min(100, score))


def generate_affordability_summary(
    band: AffordabilityBand,
    requested_amount: float,
    monthly_payment: float,
    dti_after_loan: float,
    max_affordable: float,
    loan_type: str,
) -> str:
    loan_name = loan_type.replace("_", " ")
    amount = format_gbp(requested_amount)
    payment = format_gbp(round_half_up(monthly_payment))
    maximum = format_gbp(round_half_up(max_affordable))
    dti = f"{dti_after_loan:.1f}%"

    templates = {
        "very_affordable": (
            f"This {loan_name} of {amount} appears very affordable for your situation. "
            f"The estimated monthly payment of {payment} would keep your debt-to-income ratio at a healthy {dti}."
        ),
        "affordable": (
            f"This {loan_name} of {amount} should be manageable based on your current finances. "
            f"The {payment} monthly payment would bring your debt-to-income ratio to {dti}."
        ),
        "stretching": (
            f"This {loan_name} of {amount} would stretch your budget. "
            f"With a {payment} monthly payment, your debt-to-income ratio would be {dti}. "
            "Consider borrowing less or reducing existing debts first."
        ),
        "risky": (
            f"This {loan_name} of {amount} carries significant risk. "
            f"The {payment} monthly payment would push your debt-to-income ratio to {dti}. "
            f"Your maximum affordable amount is approximately {maximum}."
        ),
        "unaffordable": (
            f"This {loan_name} of {amount} is not recommended based on your current financial situation. "
            f"The {payment} monthly payment would result in a debt-to-income ratio of {dti}. "
            f"Consider a smaller amount up to {maximum}."
        ),
    }
    return templates[band]


def assess_loan_affordability(
    loan_type: str,
    requested_amount: float,
    monthly_income: float,
    monthly_expenses: float,
    existing_debt_payments: float,
    total_savings: float,
    term_months: Optional[int] = None,
    annual_rate: Optional[float] = None,
) -> LoanAffordabilityResult:
    """
    Assess whether a requested loan fits the tenant's cash flow.

    Flow:
    1. Amortized payment and total interest for the requested loan
    2. Debt-to-income before and after the loan
    3. Maximum (36% DTI) and recommended (28% DTI) borrowable amounts
    4. Stress tests: +2% rate, -10% income, both against a 40% ceiling
    5. Score, band, risk factors, recommendations and summary
    """
    if requested_amount <= 0:
        raise InvalidLoanRequestError("Requested amount must be positive")
    term, rate = resolve_loan_terms(loan_type, term_months, annual_rate)

    monthly_payment = amortized_payment(requested_amount, rate, term)
    total_interest = monthly_payment * term - requested_amount

    dti = _ratio_percent(existing_debt_payments, monthly_income)
    dti_after_loan = _ratio_percent(existing_debt_payments + monthly_payment, monthly_income)
    disposable_income = monthly_income - monthly_expenses - existing_debt_payments

    max_monthly_payment = max(0.0, monthly_income * MAX_DTI - existing_debt_payments)
    max_affordable = principal_for_payment(max_monthly_payment, rate, term)
    recommended_monthly_payment = max(0.0, monthly_income * RECOMMENDED_DTI - existing_debt_payments)
    recommended_amount = principal_for_payment(recommended_monthly_payment, rate, term)

    stress_payment = amortized_payment(requested_amount, rate + STRESS_RATE_INCREASE, term)
    passes_rate_stress = existing_debt_payments + stress_payment <= monthly_income * STRESS_DTI_CEILING
    reduced_income = monthly_income * STRESS_INCOME_FACTOR
    passes_income_stress = existing_debt_payments + monthly_payment <= reduced_income * STRESS_DTI_CEILING

    months_of_coverage = total_savings / monthly_payment if monthly_payment > 0 else 0.0
    remaining_disposable = disposable_income - monthly_payment

    score = calculate_affordability_score(
        dti_after_loan, remaining_disposable, passes_rate_stress, passes_income_stress, months_of_coverage
    )
    band = determine_affordability_band(score)

    risk_factors = []
    if dti_after_loan > 43:
        risk_factors.append(f"High debt-to-income ratio ({dti_after_loan:.1f}%) after taking this loan")
    if remaining_disposable < 500:
        risk_factors.append("Limited disposable income remaining after loan payment")
    if not passes_rate_stress:
        risk_factors.append("Payment may become unaffordable if interest rates rise by 2%")
    if not passes_income_stress:
        risk_factors.append("Payment may become unaffordable if income decreases by 10%")
    if months_of_coverage < SAVINGS_PENALTY_MONTHS:
        risk_factors.append("Insufficient savings to cover payments in case of emergency")
    if requested_amount > max_affordable:
        risk_factors.append(
            f"Requested amount exceeds maximum affordable amount of {format_gbp(round_half_up(max_affordable))}"
        )

    recommendations = []
    if requested_amount > recommended_amount > 0:
        recommendations.append(
            f"Consider borrowing {format_gbp(round_half_up(recommended_amount))} for a more comfortable payment"
        )
    if dti_after_loan > 36:
        recommendations.append("Pay down existing debts before taking on additional borrowing")
    if months_of_coverage < SAVINGS_BONUS_MONTHS:
        recommendations.append("Build up emergency savings before committing to this loan")
    if term < DEFAULT_TERMS[loan_type]:
        recommendations.append("Consider a longer loan term to reduce monthly payments")
    if score < 60:
        recommendations.append("Review your budget to identify areas where you can reduce spending")

    return LoanAffordabilityResult(
        affordability_score=score,
        affordability_band=band,
        max_affordable_amount=round_currency(max_affordable),
        recommended_amount=round_currency(recommended_amount),
        monthly_payment_estimate=round_currency(monthly_payment),
        total_interest_estimate=round_currency(total_interest),
        debt_to_income_ratio=round_percentage(dti),
        debt_to_income_after_loan=round_percentage(dti_after_loan),
        stress_test_results=StressTestResults(
            can_afford_with_2_percent_rate_increase=passes_rate_stress,
            can_afford_with_10_percent_income_decrease=passes_income_stress,
            months_of_savings_coverage=round_percentage(months_of_coverage),
        ),
        risk_factors=risk_factors,
        recommendations=recommendations,
        ai_summary=generate_affordability_summary(
            band, requested_amount, monthly_payment, dti_after_loan, max_affordable, loan_type
        ),
        monthly_income=round_currency(monthly_income),
        monthly_expenses=round_currency(monthly_expenses),
        existing_debt_payments=round_currency(existing_debt_payments),
        disposable_income=round_currency(disposable_income),
        term_months=term,
        interest_rate=rate,
    )
