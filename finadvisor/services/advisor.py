"""Advisor service - snapshot, forecasts, debt strategy and personalised advice for a tenant"""

import logging
import time
from datetime import datetime
from typing import Callable, List, Optional

from finadvisor.config import settings
from finadvisor.domain import advice, debt_payoff, forecasting
from finadvisor.domain.models import (
    DebtPayoffStrategy,
    FinancialSnapshot,
    GoalForecast,
    MonthlyForecast,
    PersonalizedAdvice,
)
from finadvisor.infrastructure.clients.ai import TextGenerationClient
from finadvisor.infrastructure.database.repositories import FinancialDataRepository
from finadvisor.infrastructure.observability.logging import log_advice_generated
from finadvisor.infrastructure.observability.metrics import record_advice
from finadvisor.utils.date_utils import start_of_month, utcnow

logger = logging.getLogger(__name__)

ADVICE_SECTIONS = 4


class AIAdvisorService:
    """Forecasting and advice over a tenant's financial data"""

    def __init__(
        self,
        financial_data: FinancialDataRepository,
        ai_client: TextGenerationClient,
        model: str = settings.ai_model,
        max_tokens: int = settings.ai_max_tokens,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.financial_data = financial_data
        self.ai_client = ai_client
        self.model = model
        self.max_tokens = max_tokens
        self.clock = clock

    def get_financial_snapshot(self, tenant_id: str) -> FinancialSnapshot:
        now = self.clock()
        return forecasting.build_financial_snapshot(
            transactions=self.financial_data.get_transactions(
                tenant_id, start_of_month(now, forecasting.AVERAGING_MONTHS)
            ),
            savings_accounts=self.financial_data.get_savings_accounts(tenant_id),
            debts=self.financial_data.get_active_debts(tenant_id),
            goals=self.financial_data.get_active_goals(tenant_id),
            health_score=self.financial_data.get_latest_health_score(tenant_id),
            now=now,
        )

    def predict_spending(self, tenant_id: str, months: int = 3) -> List[MonthlyForecast]:
        now = self.clock()
        transactions = self.financial_data.get_transactions(
            tenant_id, start_of_month(now, forecasting.FORECAST_HISTORY_MONTHS)
        )
        return forecasting.predict_spending(transactions, months, now)

    def forecast_goals(self, tenant_id: str) -> List[GoalForecast]:
        goals = self.financial_data.get_active_goals(tenant_id)
        if not goals:
            return []

        now = self.clock()
        since = start_of_month(now, forecasting.AVERAGING_MONTHS)
        contributions = self.financial_data.get_goal_contributions([g.id for g in goals], since)
        transactions = self.financial_data.get_transactions(tenant_id, since)
        return forecasting.forecast_goals(goals, contributions, transactions, now)

    def generate_debt_payoff_strategy(self, tenant_id: str, extra: float = 0) -> Optional[DebtPayoffStrategy]:
        debts = self.financial_data.get_active_debts(tenant_id)
        return debt_payoff.generate_debt_payoff_strategy(debts, today=self.clock(), extra_payment=extra)

    async def generate_personalized_advice(self, tenant_id: str) -> PersonalizedAdvice:
        """
        Ask the text backend for advice and fill any missing section from rules.

        Storage failures propagate. Text backend failures never do: every
        section then comes from the rule-based fallbacks.
        """
        start = time.time()
        snapshot = self.get_financial_snapshot(tenant_id)
        goal_forecasts = self.forecast_goals(tenant_id)
        profile = self.financial_data.get_financial_profile(tenant_id)
        context = advice.build_advice_context(snapshot, goal_forecasts, profile)

        try:
            response = await self.ai_client.run(
                self.model, advice.build_advice_messages(context), max_tokens=self.max_tokens
            )
            parsed = advice.parse_json_response(response.get("response"))
            result, fallback_sections = advice.compose_advice(parsed, context)
        except Exception as e:
            logger.warning(f"AI advice generation failed, using fallbacks: {e}", extra={"tenant_id": tenant_id})
            result = advice.fallback_advice(context)
            fallback_sections = ["urgent_actions", "optimizations", "long_term_suggestions", "overall_assessment"]

        record_advice(len(fallback_sections), ADVICE_SECTIONS)
        log_advice_generated(tenant_id, fallback_sections, (time.time() - start) * 1000)
        return result
