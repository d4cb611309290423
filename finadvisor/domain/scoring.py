"""Credit risk scoring engine - core business logic for internal credit scores

Scores are on a 0-999 scale built from five weighted factors, each scored
0-100 against fixed breakpoint tables:

- Payment history (35%)
- Credit utilization (30%)
- Credit age (15%)
- Credit mix (10%)
- Recent inquiries (10%)

This is an estimate for guidance only, not a bureau score.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from finadvisor.domain.models import (
    Account,
    CreditAgeFactor,
    CreditDataSnapshot,
    CreditMixFactor,
    CreditRiskBreakdown,
    CreditRiskResult,
    CreditUtilizationFactor,
    DebtAccount,
    PaymentHistoryFactor,
    RecentInquiriesFactor,
    ScoreBand,
    Transaction,
)
from finadvisor.utils.date_utils import whole_months_between
from finadvisor.utils.rounding import round_half_up

# Issuer limits are not available for asset-side credit accounts
ASSUMED_CREDIT_LIMIT = 5000.0

PAYMENT_KEYWORDS = ("payment", "repayment", "credit card")
APPLICATION_KEYWORDS = ("application", "credit check")
MAX_HARD_INQUIRIES = 10

REVOLVING_TYPES = frozenset({"credit_card", "overdraft", "credit"})
INSTALLMENT_TYPES = frozenset({"mortgage", "car_loan", "personal_loan", "student_loan", "loan"})
UTILIZATION_DEBT_TYPES = frozenset({"credit_card", "overdraft"})

FACTOR_WEIGHTS = {
    "payment_history": 0.35,
    "credit_utilization": 0.30,
    "credit_age": 0.15,
    "credit_mix": 0.10,
    "recent_inquiries": 0.10,
}
SCORE_SCALE = 9.99

# (minimum score, band), highest first
SCORE_BANDS: List[Tuple[int, ScoreBand]] = [
    (961, "excellent"),
    (881, "good"),
    (721, "fair"),
    (561, "poor"),
    (0, "very_poor"),
]


@dataclass(frozen=True)
class Breakpoint:
    """Upper-bounded tier: applies when value <= max_value"""

    max_value: float
    score: int
    description: str


@dataclass(frozen=True)
class PaymentTier:
    max_missed: Optional[int]
    min_on_time: int
    min_rate: float
    score: int
    description: str


@dataclass(frozen=True)
class AgeTier:
    min_oldest: int
    min_average: Optional[float]
    score: int
    description: str


@dataclass(frozen=True)
class MixTier:
    min_types: int
    requires: Optional[str]  # "both" | "either" | None
    score: int
    description: str


PAYMENT_HISTORY_TIERS = [
    PaymentTier(0, 12, 0, 100, "Excellent payment history with no missed payments."),
    PaymentTier(0, 0, 0, 90, "Good payment history. Continue building your track record."),
    PaymentTier(1, 0, 95, 75, "Minor blemish on record. Focus on making all payments on time."),
    PaymentTier(2, 0, 90, 60, "Some missed payments affecting your score."),
    PaymentTier(None, 0, 80, 40, "Payment history needs improvement."),
    PaymentTier(None, 0, 0, 20, "Significant payment issues. Prioritize getting current on all accounts."),
]

UTILIZATION_BREAKPOINTS = [
    Breakpoint(10, 100, "Excellent credit utilization. Keep it under 30%."),
    Breakpoint(30, 90, "Good credit utilization within the recommended range."),
    Breakpoint(50, 70, "Moderate utilization. Consider paying down balances."),
    Breakpoint(75, 45, "High credit utilization is hurting your score."),
    Breakpoint(100, 25, "Very high utilization. Pay down debt urgently."),
    Breakpoint(float("inf"), 10, "Over limit on credit accounts. This severely impacts your score."),
]

CREDIT_AGE_TIERS = [
    AgeTier(120, 60, 100, "Excellent credit history length."),
    AgeTier(84, 36, 85, "Good credit history. Continue maintaining accounts."),
    AgeTier(48, 24, 70, "Moderate credit history. Avoid closing old accounts."),
    AgeTier(24, None, 50, "Building credit history. Be patient and consistent."),
    AgeTier(12, None, 35, "Limited credit history. Keep accounts open and active."),
    AgeTier(0, None, 20, "Very new to credit. Focus on responsible credit building."),
]

CREDIT_MIX_TIERS = [
    MixTier(4, "both", 100, "Excellent credit mix with diverse account types."),
    MixTier(3, "either", 80, "Good variety of credit accounts."),
    MixTier(2, None, 60, "Limited credit mix. Consider diversifying if appropriate."),
    MixTier(1, None, 40, "Single type of credit. Mix can help build score."),
    MixTier(0, None, 20, "No credit accounts found."),
]
SAVINGS_MIX_BONUS = 10
SAVINGS_MIX_NOTE = " Having savings demonstrates financial responsibility."

INQUIRY_BREAKPOINTS = [
    Breakpoint(0, 100, "No recent credit applications. This helps your score."),
    Breakpoint(2, 85, "Few recent inquiries. Minimal impact on score."),
    Breakpoint(4, 65, "Several recent applications. Avoid applying for more credit."),
    Breakpoint(6, 45, "Many recent inquiries hurting your score."),
    Breakpoint(float("inf"), 25, "Excessive credit applications. Wait before applying again."),
]


def _clamp_score(score: float) -> int:
    return int(max(0, min(100, score)))


def _match_breakpoint(value: float, breakpoints: List[Breakpoint]) -> Breakpoint:
    for tier in breakpoints:
        if value <= tier.max_value:
            return tier
    return breakpoints[-1]


def _contains_any(text: Optional[str], keywords: Tuple[str, ...]) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in keywords)


def build_credit_snapshot(
    accounts: List[Account],
    debts: List[DebtAccount],
    transactions: List[Transaction],
    now: datetime,
) -> CreditDataSnapshot:
    """
    Aggregate raw account, debt and transaction records into credit signals.

    `debts` must already be filtered to active debts and `transactions` to the
    scoring window.
    """
    total_limit = 0.0
    total_used = 0.0
    account_types: List[str] = []
    oldest_created: Optional[datetime] = None
    total_age_months = 0

    for account in accounts:
        if account.type not in account_types:
            account_types.append(account.type)

        if account.created_at is not None:
            if oldest_created is None or account.created_at < oldest_created:
                oldest_created = account.created_at
            total_age_months += whole_months_between(account.created_at, now)

        if account.type == "credit":
            total_limit += ASSUMED_CREDIT_LIMIT
            total_used += abs(account.balance)

    # NOTE: credit card / overdraft debts are counted again here on top of the
    # synthetic limit for "credit" accounts, so one card tracked in both places
    # is double counted. Scores depend on this, do not change it silently.
    for debt in debts:
        if debt.type in UTILIZATION_DEBT_TYPES:
            total_limit += debt.original_balance
            total_used += debt.current_balance
        if debt.type not in account_types:
            account_types.append(debt.type)

    on_time_payments = sum(
        1 for t in transactions if t.type == "expense" and _contains_any(t.description, PAYMENT_KEYWORDS)
    )
    # No due dates are tracked, so missed payments cannot be detected yet
    missed_payments = 0

    recent_applications = sum(1 for t in transactions if _contains_any(t.description, APPLICATION_KEYWORDS))

    average_age = total_age_months / len(accounts) if accounts else 0.0
    oldest_age = whole_months_between(oldest_created, now) if oldest_created is not None else 0

    return CreditDataSnapshot(
        total_credit_limit=total_limit,
        total_credit_used=total_used,
        utilization_percentage=(total_used / total_limit) * 100 if total_limit > 0 else 0.0,
        account_types=account_types,
        number_of_accounts=len(accounts) + len(debts),
        oldest_account_age_months=oldest_age,
        average_account_age_months=average_age,
        on_time_payments=on_time_payments,
        missed_payments=missed_payments,
        recent_applications=recent_applications,
    )


def score_payment_history(snapshot: CreditDataSnapshot) -> PaymentHistoryFactor:
    on_time = snapshot.on_time_payments
    missed = snapshot.missed_payments
    total = on_time + missed
    payment_rate = (on_time / total) * 100 if total > 0 else 100.0

    tier = PAYMENT_HISTORY_TIERS[-1]
    for candidate in PAYMENT_HISTORY_TIERS:
        if candidate.max_missed is not None and missed > candidate.max_missed:
            continue
        if on_time >= candidate.min_on_time and payment_rate >= candidate.min_rate:
            tier = candidate
            break

    return PaymentHistoryFactor(
        score=_clamp_score(tier.score),
        missed_payments=missed,
        on_time_payments=on_time,
        payment_rate=round_half_up(payment_rate, 1),
        description=tier.description,
    )


def score_credit_utilization(snapshot: CreditDataSnapshot) -> CreditUtilizationFactor:
    tier = _match_breakpoint(snapshot.utilization_percentage, UTILIZATION_BREAKPOINTS)
    return CreditUtilizationFactor(
        score=_clamp_score(tier.score),
        total_limit=snapshot.total_credit_limit,
        total_used=snapshot.total_credit_used,
        utilization_percentage=round_half_up(snapshot.utilization_percentage, 1),
        description=tier.description,
    )


def score_credit_age(snapshot: CreditDataSnapshot) -> CreditAgeFactor:
    oldest = snapshot.oldest_account_age_months
    average = snapshot.average_account_age_months

    tier = CREDIT_AGE_TIERS[-1]
    for candidate in CREDIT_AGE_TIERS:
        if oldest >= candidate.min_oldest and (candidate.min_average is None or average >= candidate.min_average):
            tier = candidate
            break

    return CreditAgeFactor(
        score=_clamp_score(tier.score),
        oldest_account_months=oldest,
        average_account_months=int(round_half_up(average)),
        description=tier.description,
    )


def score_credit_mix(snapshot: CreditDataSnapshot) -> CreditMixFactor:
    account_types = snapshot.account_types
    number_of_types = len(account_types)
    has_revolving = any(t in REVOLVING_TYPES for t in account_types)
    has_installment = any(t in INSTALLMENT_TYPES for t in account_types)
    has_savings = "savings" in account_types

    tier = CREDIT_MIX_TIERS[-1]
    for candidate in CREDIT_MIX_TIERS:
        if number_of_types < candidate.min_types:
            continue
        if candidate.requires == "both" and not (has_revolving and has_installment):
            continue
        if candidate.requires == "either" and not (has_revolving or has_installment):
            continue
        tier = candidate
        break

    score = tier.score
    description = tier.description
    if has_savings and score < 100:
        score = min(100, score + SAVINGS_MIX_BONUS)
        description += SAVINGS_MIX_NOTE

    return CreditMixFactor(
        score=_clamp_score(score),
        account_types=list(account_types),
        number_of_types=number_of_types,
        description=description,
    )


def score_recent_inquiries(snapshot: CreditDataSnapshot) -> RecentInquiriesFactor:
    hard_inquiries = min(snapshot.recent_applications, MAX_HARD_INQUIRIES)
    tier = _match_breakpoint(hard_inquiries, INQUIRY_BREAKPOINTS)
    return RecentInquiriesFactor(
        score=_clamp_score(tier.score),
        hard_inquiries=hard_inquiries,
        recent_applications=snapshot.recent_applications,
        description=tier.description,
    )


def compose_overall_score(breakdown: CreditRiskBreakdown) -> int:
    """Weighted sum of factor scores scaled from 0-100 to 0-999"""
    weighted = (
        breakdown.payment_history.score * FACTOR_WEIGHTS["payment_history"]
        + breakdown.credit_utilization.score * FACTOR_WEIGHTS["credit_utilization"]
        + breakdown.credit_age.score * FACTOR_WEIGHTS["credit_age"]
        + breakdown.credit_mix.score * FACTOR_WEIGHTS["credit_mix"]
        + breakdown.recent_inquiries.score * FACTOR_WEIGHTS["recent_inquiries"]
    )
    return int(round_half_up(weighted * SCORE_SCALE))


def determine_score_band(score: int) -> ScoreBand:
    for minimum, band in SCORE_BANDS:
        if score >= minimum:
            return band
    return "very_poor"


def identify_risk_factors(breakdown: CreditRiskBreakdown) -> List[str]:
    factors = []
    if breakdown.payment_history.missed_payments > 0:
        factors.append(f"{breakdown.payment_history.missed_payments} missed payment(s) on record")
    if breakdown.credit_utilization.utilization_percentage > 30:
        factors.append(f"High credit utilization at {breakdown.credit_utilization.utilization_percentage:g}%")
    if breakdown.credit_age.oldest_account_months < 24:
        factors.append("Limited credit history length")
    if breakdown.credit_mix.number_of_types < 2:
        factors.append("Limited variety of credit accounts")
    if breakdown.recent_inquiries.hard_inquiries > 2:
        factors.append(f"{breakdown.recent_inquiries.hard_inquiries} recent credit applications")
    return factors


def identify_positive_factors(breakdown: CreditRiskBreakdown) -> List[str]:
    factors = []
    if breakdown.payment_history.missed_payments == 0 and breakdown.payment_history.on_time_payments >= 6:
        factors.append("Consistent on-time payment history")
    if breakdown.credit_utilization.utilization_percentage <= 30:
        factors.append("Low credit utilization")
    if breakdown.credit_age.oldest_account_months >= 48:
        factors.append("Established credit history")
    if breakdown.credit_mix.number_of_types >= 3:
        factors.append("Good mix of credit accounts")
    if breakdown.recent_inquiries.hard_inquiries <= 1:
        factors.append("Few recent credit applications")
    return factors


def generate_improvement_tips(breakdown: CreditRiskBreakdown, score_band: ScoreBand, limit: int = 5) -> List[str]:
    """Tips ordered by impact: payment, utilization, age, mix, inquiries, then band advice"""
    tips = []

    if breakdown.payment_history.score < 70:
        tips.append("Set up automatic payments to ensure you never miss a due date")

    if breakdown.credit_utilization.score < 70:
        tips.append("Pay down credit card balances to below 30% of your limit")
        if breakdown.credit_utilization.utilization_percentage > 50:
            tips.append("Consider requesting a credit limit increase (without additional spending)")

    if breakdown.credit_age.score < 60 and breakdown.credit_age.oldest_account_months < 48:
        tips.append("Keep your oldest credit accounts open, even if unused")

    if breakdown.credit_mix.score < 60:
        tips.append("Consider a credit-builder loan or secured credit card to diversify")

    if breakdown.recent_inquiries.score < 70:
        tips.append("Avoid applying for new credit for 6-12 months")

    if score_band in ("very_poor", "poor"):
        tips.append("Consider speaking with a financial advisor about credit repair strategies")

    if not tips:
        tips.append("Continue your current habits to maintain your excellent score")

    return tips[:limit]


def describe_score_change(previous_score: Optional[int], new_score: int, score_band: ScoreBand) -> str:
    """Human readable reason for a history entry"""
    if previous_score is None:
        return f"Initial credit risk score calculated at {new_score} ({score_band})."

    delta = new_score - previous_score
    if abs(delta) < 10:
        return "Score remained stable with minimal changes."
    if delta > 0:
        return f"Score improved by {delta} points, moving toward {score_band} range."
    return f"Score decreased by {abs(delta)} points. Review risk factors for improvement opportunities."


def calculate_credit_score(snapshot: CreditDataSnapshot) -> CreditRiskResult:
    """
    Main entry point: score every factor and compose the overall result.

    Returns complete CreditRiskResult with breakdown, factors, and tips.
    """
    breakdown = CreditRiskBreakdown(
        payment_history=score_payment_history(snapshot),
        credit_utilization=score_credit_utilization(snapshot),
        credit_age=score_credit_age(snapshot),
        credit_mix=score_credit_mix(snapshot),
        recent_inquiries=score_recent_inquiries(snapshot),
    )
    overall_score = compose_overall_score(breakdown)
    score_band = determine_score_band(overall_score)

    return CreditRiskResult(
        overall_score=overall_score,
        score_band=score_band,
        breakdown=breakdown,
        risk_factors=identify_risk_factors(breakdown),
        positive_factors=identify_positive_factors(breakdown),
        improvement_tips=generate_improvement_tips(breakdown, score_band),
        number_of_accounts=snapshot.number_of_accounts,
    )
