"""Unit tests for personalised advice: parsing, fallbacks, composition and the text backend client"""

import httpx
import json
import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch
from finadvisor.domain.advice import (
    build_advice_context,
    build_advice_messages,
    compose_advice,
    fallback_advice,
    fallback_assessment,
    fallback_long_term,
    fallback_optimizations,
    fallback_urgent_actions,
    parse_json_response,
)
from finadvisor.domain.exceptions import AIServiceError, DataAccessError
from finadvisor.domain.models import (
    AdviceContext,
    DebtSnapshot,
    ExpenseSnapshot,
    FinancialProfile,
    FinancialSnapshot,
    Goal,
    GoalContribution,
    GoalForecast,
    GoalsSnapshot,
    IncomeSnapshot,
    SavingsSnapshot,
    Transaction,
)
from finadvisor.infrastructure.clients.ai import TextGenerationClient
from finadvisor.infrastructure.database.repositories import FinancialDataRepository
from finadvisor.services.advisor import AIAdvisorService


@pytest.fixture
def healthy_context() -> AdviceContext:
    return AdviceContext(
        income=4000.0,
        expenses=2500.0,
        savings_rate=37.5,
        total_savings=20000.0,
        total_debt=0.0,
        debt_to_income=5.0,
        health_score=80,
        goals_at_risk=0,
        top_spending_categories=[("Housing", 1200.0), ("Groceries", 400.0)],
    )


@pytest.fixture
def stretched_context() -> AdviceContext:
    return AdviceContext(
        income=2000.0,
        expenses=1900.0,
        savings_rate=5.0,
        total_savings=500.0,
        total_debt=15000.0,
        debt_to_income=45.0,
        health_score=None,
        goals_at_risk=2,
        top_spending_categories=[("Housing", 500.0), ("Transport", 450.0)],
        housing_status="rent",
    )


AI_PAYLOAD = {
    "urgentActions": [
        {
            "priority": "high",
            "title": "Cut dining out",
            "description": "Dining is your fastest growing category",
            "potentialImpact": "£80/month savings",
            "actionSteps": ["Plan weekly meals", "Set a dining budget"],
        }
    ],
    "optimizations": [
        {
            "area": "Saving",
            "currentSituation": "Cash held in a current account",
            "recommendation": "Move it to an easy access saver",
            "estimatedBenefit": "£150/year interest",
        }
    ],
    "longTermSuggestions": [{"title": "Open a Lifetime ISA", "description": "25% bonus", "timeframe": "1-2 years"}],
    "overallAssessment": "You are in a solid position.",
}


class TestParseJsonResponse:
    def test_extracts_json_embedded_in_prose(self):
        text = f"Sure! Here is your advice:\n{json.dumps(AI_PAYLOAD)}\nHope this helps."
        assert parse_json_response(text) == AI_PAYLOAD

    @pytest.mark.parametrize("text", [None, "", "no braces here", "{not valid json}", "{'single': 'quotes'}"])
    def test_unusable_text_yields_empty_dict(self, text):
        assert parse_json_response(text) == {}

    def test_non_object_json_yields_empty_dict(self):
        assert parse_json_response("[1, 2, 3]") == {}


class TestFallbacks:
    def test_healthy_finances_get_wealth_building_action(self, healthy_context):
        actions = fallback_urgent_actions(healthy_context)

        assert len(actions) == 1
        assert actions[0].priority == "medium"
        assert actions[0].title == "Continue Building Wealth"

    def test_stretched_finances_get_every_urgent_action(self, stretched_context):
        actions = fallback_urgent_actions(stretched_context)

        assert [(a.priority, a.title) for a in actions] == [
            ("high", "Increase Savings Rate"),
            ("critical", "Address High Debt Burden"),
            ("high", "Build Emergency Fund"),
        ]
        assert actions[0].description == "Your current savings rate of 5.0% is below the recommended 20%"
        assert actions[0].potential_impact == "£200/month in additional savings"
        assert actions[2].description == "Emergency fund should cover 3 months of expenses"

    def test_emergency_fund_uses_profile_target(self, healthy_context):
        healthy_context.emergency_fund_target = 6.0
        titles = [a.title for a in fallback_urgent_actions(healthy_context)]
        assert titles == ["Build Emergency Fund"]

    def test_dominant_category_optimization(self, healthy_context):
        optimizations = fallback_optimizations(healthy_context)

        assert len(optimizations) == 1
        assert optimizations[0].area == "Spending"
        assert optimizations[0].current_situation == "Housing accounts for 48% of spending"
        assert optimizations[0].recommendation == "Review housing expenses for potential savings"
        assert optimizations[0].estimated_benefit == "Potential to save £120/month"

    def test_low_savings_rate_optimization(self, stretched_context):
        optimizations = fallback_optimizations(stretched_context)
        assert [o.area for o in optimizations] == ["Saving"]
        assert optimizations[0].current_situation == "Saving 5.0% of income"

    def test_no_expenses_means_no_spending_optimization(self, healthy_context):
        healthy_context.expenses = 0.0
        assert fallback_optimizations(healthy_context) == []

    def test_renters_get_homeownership_suggestion(self, healthy_context, stretched_context):
        assert "Explore Homeownership" not in [s.title for s in fallback_long_term(healthy_context)]
        assert [s.title for s in fallback_long_term(stretched_context)] == [
            "Build Investment Portfolio",
            "Explore Homeownership",
            "Maximise Pension Contributions",
        ]

    @pytest.mark.parametrize(
        "savings_rate, dti, opening",
        [
            (25.0, 10.0, "Your financial health is strong."),
            (20.0, 35.0, "You're making good progress."),
            (12.0, 20.0, "You're making good progress."),
            (12.0, 45.0, "There's room for improvement"),
            (5.0, 0.0, "There's room for improvement"),
        ],
    )
    def test_assessment_thresholds(self, healthy_context, savings_rate, dti, opening):
        healthy_context.savings_rate = savings_rate
        healthy_context.debt_to_income = dti
        assert fallback_assessment(healthy_context).startswith(opening)


class TestComposeAdvice:
    def test_valid_payload_uses_every_section(self, healthy_context):
        advice, fallen_back = compose_advice(AI_PAYLOAD, healthy_context)

        assert fallen_back == []
        assert advice.urgent_actions[0].title == "Cut dining out"
        assert advice.urgent_actions[0].potential_impact == "£80/month savings"
        assert advice.urgent_actions[0].action_steps == ["Plan weekly meals", "Set a dining budget"]
        assert advice.optimizations[0].current_situation == "Cash held in a current account"
        assert advice.long_term_suggestions[0].title == "Open a Lifetime ISA"
        assert advice.overall_assessment == "You are in a solid position."

    def test_empty_lists_are_accepted(self, healthy_context):
        payload = {"urgentActions": [], "optimizations": [], "longTermSuggestions": [], "overallAssessment": "Fine."}
        advice, fallen_back = compose_advice(payload, healthy_context)

        assert fallen_back == []
        assert advice.urgent_actions == []
        assert advice.optimizations == []
        assert advice.long_term_suggestions == []

    def test_invalid_section_falls_back_alone(self, healthy_context):
        payload = dict(AI_PAYLOAD)
        payload["urgentActions"] = [dict(AI_PAYLOAD["urgentActions"][0], priority="low")]
        payload["overallAssessment"] = "   "

        advice, fallen_back = compose_advice(payload, healthy_context)

        assert fallen_back == ["urgent_actions", "overall_assessment"]
        assert advice.urgent_actions == fallback_urgent_actions(healthy_context)
        assert advice.overall_assessment == fallback_assessment(healthy_context)
        assert advice.optimizations[0].area == "Saving"
        assert advice.long_term_suggestions[0].title == "Open a Lifetime ISA"

    def test_missing_payload_is_entirely_rule_based(self, stretched_context):
        advice, fallen_back = compose_advice({}, stretched_context)

        assert len(fallen_back) == 4
        assert advice == fallback_advice(stretched_context)


def _snapshot(by_category: dict, health_score=None) -> FinancialSnapshot:
    return FinancialSnapshot(
        income=IncomeSnapshot(monthly=3000.0, trend=0.0),
        expenses=ExpenseSnapshot(monthly=2000.0, trend=0.0, by_category=by_category),
        savings=SavingsSnapshot(rate=33.3, total=5000.0),
        debt=DebtSnapshot(total=1000.0, monthly_payments=50.0, debt_to_income_ratio=1.7),
        goals=GoalsSnapshot(total=0, on_track=0, at_risk=0),
        health_score=health_score,
    )


def _goal_forecast(goal_id: str, on_track: bool) -> GoalForecast:
    return GoalForecast(goal_id, goal_id, 1000.0, 0.0, None, None, on_track, 0.0, 0.0, 0.5, [])


def test_advice_context_keeps_top_five_categories():
    by_category = {"A": 10.0, "B": 600.0, "C": 50.0, "D": 400.0, "E": 300.0, "F": 200.0}
    context = build_advice_context(
        _snapshot(by_category), [_goal_forecast("g1", True), _goal_forecast("g2", False)], None
    )

    assert [name for name, _ in context.top_spending_categories] == ["B", "D", "E", "F", "C"]
    assert context.goals_at_risk == 1
    assert context.risk_tolerance == "moderate"
    assert context.emergency_fund_target == 3.0
    assert context.housing_status is None


def test_advice_context_applies_profile():
    profile = FinancialProfile(risk_tolerance="aggressive", emergency_fund_target=6.0, housing_status="rent")
    context = build_advice_context(_snapshot({}), [], profile)

    assert context.risk_tolerance == "aggressive"
    assert context.emergency_fund_target == 6.0
    assert context.housing_status == "rent"


def test_advice_prompt_describes_the_tenant(healthy_context):
    healthy_context.health_score = None
    system, user = build_advice_messages(healthy_context)

    assert system["role"] == "system"
    assert user["role"] == "user"
    prompt = user["content"]
    assert "- Monthly Income: £4000.00" in prompt
    assert "- Savings Rate: 37.5%" in prompt
    assert "- Financial Health Score: Not calculated/100" in prompt
    assert "- Housing: Unknown" in prompt
    assert "- Emergency Fund Target: 3 months" in prompt
    assert "- Groceries: £400.00/month" in prompt
    assert '"overallAssessment"' in prompt


# --- Service ---


@pytest.fixture
def financial_data() -> MagicMock:
    repo = MagicMock(spec=FinancialDataRepository)
    repo.get_transactions.return_value = []
    repo.get_savings_accounts.return_value = []
    repo.get_active_debts.return_value = []
    repo.get_active_goals.return_value = []
    repo.get_latest_health_score.return_value = None
    repo.get_financial_profile.return_value = None
    return repo


async def test_service_uses_generated_advice(financial_data, now):
    ai = AsyncMock()
    ai.run.return_value = {"response": f"```json\n{json.dumps(AI_PAYLOAD)}\n```"}
    service = AIAdvisorService(financial_data, ai, model="test-model", max_tokens=256, clock=lambda: now)

    advice = await service.generate_personalized_advice("tenant_1")

    assert advice.overall_assessment == "You are in a solid position."
    assert advice.urgent_actions[0].title == "Cut dining out"
    model, messages = ai.run.call_args.args
    assert model == "test-model"
    assert [m["role"] for m in messages] == ["system", "user"]
    assert ai.run.call_args.kwargs == {"max_tokens": 256}


async def test_service_falls_back_when_backend_fails(financial_data, now):
    ai = AsyncMock()
    ai.run.side_effect = AIServiceError("AI API timeout after 15.0s")
    service = AIAdvisorService(financial_data, ai, clock=lambda: now)

    advice = await service.generate_personalized_advice("tenant_1")

    # empty tenant: zero savings rate is the only trigger
    assert [a.title for a in advice.urgent_actions] == ["Increase Savings Rate"]
    assert advice.optimizations == []
    assert advice.long_term_suggestions[0].title == "Build Investment Portfolio"
    assert advice.overall_assessment.startswith("There's room for improvement")


async def test_service_falls_back_on_unparseable_output(financial_data, now):
    ai = AsyncMock()
    ai.run.return_value = {"response": "I cannot help with that."}
    service = AIAdvisorService(financial_data, ai, clock=lambda: now)

    advice = await service.generate_personalized_advice("tenant_1")
    assert advice.urgent_actions[0].title == "Increase Savings Rate"


async def test_service_advises_on_goals_too_far_out_to_project(financial_data, now):
    financial_data.get_transactions.return_value = [
        Transaction("pay", 3000.0, "income", "Salary", datetime(2024, 5, 1), "Salary"),
        Transaction("bills", -2999.99, "expense", "Rent", datetime(2024, 5, 2), "Housing"),
    ]
    financial_data.get_active_goals.return_value = [
        Goal("house", "House deposit", 30000.0, 0.0),
        Goal("yacht", "Yacht", 100000.0, 0.0, deadline=datetime(2030, 1, 1)),
    ]
    financial_data.get_goal_contributions.return_value = [GoalContribution("yacht", 3.0, datetime(2024, 5, 3))]
    ai = AsyncMock()
    ai.run.side_effect = AIServiceError("AI API timeout after 15.0s")
    service = AIAdvisorService(financial_data, ai, clock=lambda: now)

    advice = await service.generate_personalized_advice("tenant_1")
    forecasts = service.forecast_goals("tenant_1")

    assert advice.overall_assessment
    assert [f.projected_completion_date for f in forecasts] == [None, None]
    assert not any(f.on_track for f in forecasts)


async def test_service_propagates_storage_failures(financial_data, now):
    financial_data.get_transactions.side_effect = DataAccessError("database unavailable")
    ai = AsyncMock()
    service = AIAdvisorService(financial_data, ai, clock=lambda: now)

    with pytest.raises(DataAccessError):
        await service.generate_personalized_advice("tenant_1")
    ai.run.assert_not_called()


# --- Text backend client ---


def _response(status_code: int, payload) -> httpx.Response:
    return httpx.Response(status_code, json=payload, request=httpx.Request("POST", "https://ai.test/run"))


@pytest.fixture
def ai_client() -> TextGenerationClient:
    return TextGenerationClient(base_url="https://ai.test/v4", account_id="acct", api_token="secret", timeout=5)


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
async def test_client_returns_generated_text(mock_post, ai_client):
    mock_post.return_value = _response(200, {"result": {"response": "hello"}, "success": True})

    result = await ai_client.run("@cf/meta/llama", [{"role": "user", "content": "hi"}], max_tokens=64)

    assert result == {"response": "hello"}
    assert mock_post.call_args.args[0] == "https://ai.test/v4/accounts/acct/ai/run/@cf/meta/llama"
    assert mock_post.call_args.kwargs["headers"] == {"Authorization": "Bearer secret"}
    assert mock_post.call_args.kwargs["json"]["max_tokens"] == 64


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
async def test_client_wraps_http_errors(mock_post, ai_client):
    mock_post.return_value = _response(500, {"success": False})

    with pytest.raises(AIServiceError, match="AI API error: 500"):
        await ai_client.run("model", [])


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
async def test_client_wraps_timeouts(mock_post, ai_client):
    mock_post.side_effect = httpx.ReadTimeout("slow")

    with pytest.raises(AIServiceError, match="timeout"):
        await ai_client.run("model", [])


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
async def test_client_rejects_unexpected_body(mock_post, ai_client):
    mock_post.return_value = _response(200, {"errors": []})

    with pytest.raises(AIServiceError, match="Invalid response"):
        await ai_client.run("model", [])
