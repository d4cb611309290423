"""Personalised advice - prompt building, response parsing and rule-based fallbacks"""

import json
import re
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from finadvisor.domain.models import (
    AdviceContext,
    FinancialProfile,
    FinancialSnapshot,
    GoalForecast,
    LongTermSuggestion,
    Optimization,
    PersonalizedAdvice,
    UrgentAction,
)

SYSTEM_PROMPT = "You are an expert UK financial advisor providing JSON-formatted advice."
TOP_CATEGORY_COUNT = 5

TARGET_SAVINGS_RATE = 20
LOW_SAVINGS_RATE = 10
HIGH_DEBT_TO_INCOME = 40
DOMINANT_CATEGORY_SHARE = 30

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UrgentActionPayload(_CamelModel):
    priority: Literal["critical", "high", "medium"]
    title: str
    description: str
    potential_impact: str
    action_steps: List[str]


class OptimizationPayload(_CamelModel):
    area: str
    current_situation: str
    recommendation: str
    estimated_benefit: str


class LongTermSuggestionPayload(_CamelModel):
    title: str
    description: str
    timeframe: str


_urgent_actions = TypeAdapter(List[UrgentActionPayload])
_optimizations = TypeAdapter(List[OptimizationPayload])
_long_term = TypeAdapter(List[LongTermSuggestionPayload])


def build_advice_context(
    snapshot: FinancialSnapshot, goal_forecasts: List[GoalForecast], profile: Optional[FinancialProfile]
) -> AdviceContext:
    profile = profile or FinancialProfile()
    top_categories = sorted(snapshot.expenses.by_category.items(), key=lambda item: item[1], reverse=True)
    return AdviceContext(
        income=snapshot.income.monthly,
        expenses=snapshot.expenses.monthly,
        savings_rate=snapshot.savings.rate,
        total_savings=snapshot.savings.total,
        total_debt=snapshot.debt.total,
        debt_to_income=snapshot.debt.debt_to_income_ratio,
        health_score=snapshot.health_score,
        goals_at_risk=sum(1 for forecast in goal_forecasts if not forecast.on_track),
        top_spending_categories=top_categories[:TOP_CATEGORY_COUNT],
        risk_tolerance=profile.risk_tolerance or "moderate",
        emergency_fund_target=profile.emergency_fund_target or 3.0,
        housing_status=profile.housing_status,
    )


def build_advice_prompt(context: AdviceContext) -> str:
    health = context.health_score if context.health_score is not None else "Not calculated"
    categories = "\n".join(
        f"- {category}: £{amount:.2f}/month" for category, amount in context.top_spending_categories
    )
    return f"""You are a certified UK financial planner providing personalized advice.

Financial Profile:
- Monthly Income: £{context.income:.2f}
- Monthly Expenses: £{context.expenses:.2f}
- Savings Rate: {context.savings_rate:.1f}%
- Total Savings: £{context.total_savings:.2f}
- Total Debt: £{context.total_debt:.2f}
- Debt-to-Income: {context.debt_to_income:.1f}%
- Financial Health Score: {health}/100
- Goals at Risk: {context.goals_at_risk}
- Risk Tolerance: {context.risk_tolerance}
- Housing: {context.housing_status or 'Unknown'}
- Emergency Fund Target: {context.emergency_fund_target:g} months

Top Spending Categories:
{categories}

Provide comprehensive financial advice in this JSON format:
{{
  "urgentActions": [
    {{"priority": "high", "title": "Action title", "description": "Why this matters", "potentialImpact": "£X/month savings", "actionSteps": ["Step 1", "Step 2"]}}
  ],
  "optimizations": [
    {{"area": "Spending/Saving/Investing", "currentSituation": "Current state", "recommendation": "What to do", "estimatedBenefit": "Expected benefit"}}
  ],
  "longTermSuggestions": [
    {{"title": "Strategy", "description": "Details", "timeframe": "6-12 months"}}
  ],
  "overallAssessment": "2-3 sentence summary of financial health and key priorities"
}}

Focus on practical, actionable UK-specific advice. Use British English."""


def build_advice_messages(context: AdviceContext) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_advice_prompt(context)},
    ]


def parse_json_response(text: Optional[str]) -> Dict[str, Any]:
    """Extract the outermost {...} block from free text; empty dict when absent or invalid"""
    if not text:
        return {}
    match = _JSON_BLOCK.search(text)
    if not match:
        return {}
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


# --- Rule-based fallbacks ---


def fallback_urgent_actions(context: AdviceContext) -> List[UrgentAction]:
    actions = []

    if context.savings_rate < LOW_SAVINGS_RATE:
        actions.append(
            UrgentAction(
                priority="high",
                title="Increase Savings Rate",
                description=f"Your current savings rate of {context.savings_rate:.1f}% is below the recommended 20%",
                potential_impact=f"£{context.income * 0.1:.0f}/month in additional savings",
                action_steps=[
                    "Review discretionary spending",
                    "Set up automatic transfers to savings",
                    "Identify subscriptions to cancel",
                ],
            )
        )

    if context.debt_to_income > HIGH_DEBT_TO_INCOME:
        actions.append(
            UrgentAction(
                priority="critical",
                title="Address High Debt Burden",
                description=f"Your debt-to-income ratio of {context.debt_to_income:.1f}% is above healthy levels",
                potential_impact="Improved credit score and reduced financial stress",
                action_steps=[
                    "Prioritize high-interest debt",
                    "Consider debt consolidation",
                    "Create a debt payoff plan",
                ],
            )
        )

    if context.total_savings < context.income * context.emergency_fund_target:
        actions.append(
            UrgentAction(
                priority="high",
                title="Build Emergency Fund",
                description=f"Emergency fund should cover {context.emergency_fund_target:g} months of expenses",
                potential_impact="Financial security during unexpected events",
                action_steps=[
                    "Open a dedicated savings account",
                    "Set up automatic monthly transfers",
                    "Target saving 10% of income",
                ],
            )
        )

    if actions:
        return actions
    return [
        UrgentAction(
            priority="medium",
            title="Continue Building Wealth",
            description="Your finances are in good shape. Focus on long-term growth.",
            potential_impact="Long-term financial independence",
            action_steps=[
                "Review investment allocations",
                "Maximize pension contributions",
                "Consider ISA investments",
            ],
        )
    ]


def fallback_optimizations(context: AdviceContext) -> List[Optimization]:
    optimizations = []

    if context.top_spending_categories and context.expenses > 0:
        category, amount = context.top_spending_categories[0]
        share = amount / context.expenses * 100
        if share > DOMINANT_CATEGORY_SHARE:
            optimizations.append(
                Optimization(
                    area="Spending",
                    current_situation=f"{category} accounts for {share:.0f}% of spending",
                    recommendation=f"Review {category.lower()} expenses for potential savings",
                    estimated_benefit=f"Potential to save £{amount * 0.1:.0f}/month",
                )
            )

    if 0 < context.savings_rate < TARGET_SAVINGS_RATE:
        optimizations.append(
            Optimization(
                area="Saving",
                current_situation=f"Saving {context.savings_rate:.1f}% of income",
                recommendation="Increase savings rate towards the 20% target",
                estimated_benefit="Faster goal achievement and emergency fund growth",
            )
        )

    return optimizations


def fallback_long_term(context: AdviceContext) -> List[LongTermSuggestion]:
    suggestions = [
        LongTermSuggestion(
            title="Build Investment Portfolio",
            description="Consider stocks and shares ISA for tax-efficient long-term growth",
            timeframe="12+ months",
        )
    ]
    if context.housing_status == "rent":
        suggestions.append(
            LongTermSuggestion(
                title="Explore Homeownership",
                description="Research Help to Buy and Lifetime ISA options for first-time buyers",
                timeframe="2-5 years",
            )
        )
    suggestions.append(
        LongTermSuggestion(
            title="Maximise Pension Contributions",
            description="Take advantage of employer matching and tax relief on pension contributions",
            timeframe="Ongoing",
        )
    )
    return suggestions


def fallback_assessment(context: AdviceContext) -> str:
    if context.savings_rate >= 20 and context.debt_to_income < 30:
        return (
            "Your financial health is strong. Focus on maintaining your current habits "
            "while exploring investment opportunities for long-term wealth building."
        )
    if context.savings_rate >= 10 and context.debt_to_income < 40:
        return (
            "You're making good progress. Prioritize increasing your savings rate "
            "and managing debt to accelerate your financial goals."
        )
    return (
        "There's room for improvement in your finances. Focus on building an emergency fund, "
        "reducing unnecessary expenses, and creating a clear debt payoff strategy."
    )


def fallback_advice(context: AdviceContext) -> PersonalizedAdvice:
    return PersonalizedAdvice(
        urgent_actions=fallback_urgent_actions(context),
        optimizations=fallback_optimizations(context),
        long_term_suggestions=fallback_long_term(context),
        overall_assessment=fallback_assessment(context),
    )


def _validated(adapter: TypeAdapter, value: Any) -> Optional[list]:
    if value is None:
        return None
    try:
        return adapter.validate_python(value)
    except ValidationError:
        return None


def compose_advice(parsed: Dict[str, Any], context: AdviceContext) -> Tuple[PersonalizedAdvice, List[str]]:
    """
    Merge parsed model output with rule-based sections.

    Each of the four sections is taken from `parsed` when it validates and
    replaced by its fallback otherwise. Returns the advice and the names of
    the sections that fell back.
    """
    fallen_back = []

    urgent = _validated(_urgent_actions, parsed.get("urgentActions"))
    if urgent is None:
        fallen_back.append("urgent_actions")
        urgent_actions = fallback_urgent_actions(context)
    else:
        urgent_actions = [UrgentAction(**item.model_dump()) for item in urgent]

    optimizations_payload = _validated(_optimizations, parsed.get("optimizations"))
    if optimizations_payload is None:
        fallen_back.append("optimizations")
        optimizations = fallback_optimizations(context)
    else:
        optimizations = [Optimization(**item.model_dump()) for item in optimizations_payload]

    long_term_payload = _validated(_long_term, parsed.get("longTermSuggestions"))
    if long_term_payload is None:
        fallen_back.append("long_term_suggestions")
        long_term = fallback_long_term(context)
    else:
        long_term = [LongTermSuggestion(**item.model_dump()) for item in long_term_payload]

    assessment = parsed.get("overallAssessment")
    if not isinstance(assessment, str) or not assessment.strip():
        fallen_back.append("overall_assessment")
        assessment = fallback_assessment(context)

    advice = PersonalizedAdvice(
        urgent_actions=urgent_actions,
        optimizations=optimizations,
        long_term_suggestions=long_term,
        overall_assessment=assessment,
    )
    return advice, fallen_back
