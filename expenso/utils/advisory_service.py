"""
Advisory Service
Conversational advice, weekly pacing insight and 7-day forecast on top of the
remote model, with per-product retry limits and fallbacks.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Union

from pydantic import ValidationError

from expenso.core.errors import is_rate_limited
from expenso.models.advisory import AdvisoryConfig, BudgetForecast, PacingState, Personality
from expenso.models.transaction import Transaction
from expenso.utils.analyzer import TransactionLike, WeekStart, compute_weekly_pacing
from expenso.utils.gemini_client import RemoteAdvisor
from expenso.utils.retry import Sleep, retry_with_backoff

logger = logging.getLogger(__name__)

QUOTA_MESSAGE = (
    "You've reached today's AI advice limit. Your data is safe; "
    "please try again tomorrow."
)
APOLOGY_MESSAGE = (
    "I'm sorry, I'm having trouble analyzing your finances right now. "
    "Please try again later."
)

# The model is asked to warn as soon as the pace exceeds the budget; the local
# fallback only warns on a clear overshoot.
REMOTE_WARNING_VELOCITY = 1.0
LOCAL_WARNING_VELOCITY = 1.2

PERSONALITY_INSTRUCTIONS = {
    Personality.PROFESSIONAL: (
        "You are a professional financial assistant. Be clear, neutral and "
        "encouraging but realistic."
    ),
    Personality.STRICT: (
        "You are a strict, no-nonsense budget coach. Be blunt about overspending "
        "and insist on discipline."
    ),
    Personality.SARCASTIC: (
        "You are a witty, sarcastic money buddy. Tease the user about their "
        "spending, but keep the advice genuinely useful."
    ),
}

LOCAL_WARNING_TEMPLATES = {
    Personality.PROFESSIONAL: (
        "Heads up: you've used {percent}% of your weekly budget ({spent}) "
        "in just {days} day(s). Consider slowing down."
    ),
    Personality.STRICT: (
        "Stop spending. {percent}% of your weekly budget ({spent}) is gone "
        "after only {days} day(s)."
    ),
    Personality.SARCASTIC: (
        "Impressive: {percent}% of the weekly budget ({spent}) vanished in "
        "{days} day(s). Planning to live on air for the rest of the week?"
    ),
}

FORECAST_INSTRUCTION = (
    "Predict the user's total spending for the next 7 days from their "
    "transaction history. Return predictedTotal, a confidence between 0 and 1, "
    "up to 3 topPredictedCategories with predictedAmount (largest first) and "
    "2-3 short insights."
)

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def _snapshot(transactions: Iterable[TransactionLike]) -> str:
    rows = []
    for tx in transactions:
        if isinstance(tx, Transaction):
            rows.append(tx.model_dump(mode="json", exclude={"user_id"}))
        else:
            rows.append({k: v for k, v in dict(tx).items() if k != "user_id"})
    return json.dumps(rows, indent=2, default=str)


def parse_forecast(text: Optional[str]) -> Optional[BudgetForecast]:
    """Validate the model's JSON answer; None when it is missing or malformed."""
    if not text:
        return None
    match = _FENCE.search(text)
    payload = match.group(1).strip() if match else text.strip()
    try:
        return BudgetForecast.model_validate_json(payload)
    except ValidationError as e:
        logger.error(f"Forecast response rejected: {e.error_count()} validation error(s)")
        return None


class AdvisoryService:
    """
    Orchestrates pacing computation and remote advice.

    Every call is independent: no cache, no shared counters. Remote failures
    never escape get_advice or get_pacing_insight; get_forecast turns them
    into None.
    """

    def __init__(
        self,
        remote: RemoteAdvisor,
        insight_remote: Optional[RemoteAdvisor] = None,
        advice_retries: int = 3,
        insight_retries: int = 1,
        forecast_retries: int = 3,
        initial_delay: float = 1.0,
        call_budget: Optional[float] = 15.0,
        sleep: Sleep = asyncio.sleep,
        week_start: Union[WeekStart, str] = WeekStart.SUNDAY,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._remote = remote
        self._insight_remote = insight_remote or remote
        self._advice_retries = advice_retries
        self._insight_retries = insight_retries
        self._forecast_retries = forecast_retries
        self._initial_delay = initial_delay
        self._call_budget = call_budget
        self._sleep = sleep
        self._week_start = WeekStart.parse(week_start)
        self._clock = clock

    async def _call(self, operation: Callable[[], Awaitable[Any]], max_retries: int) -> Any:
        attempt = retry_with_backoff(
            operation,
            max_retries=max_retries,
            initial_delay=self._initial_delay,
            sleep=self._sleep,
        )
        if self._call_budget is None:
            return await attempt
        return await asyncio.wait_for(attempt, timeout=self._call_budget)

    def pacing(self, transactions: Iterable[TransactionLike], weekly_budget: float) -> PacingState:
        return compute_weekly_pacing(
            transactions, weekly_budget, reference_date=self._clock(), week_start=self._week_start
        )

    async def get_advice(
        self,
        transactions: List[TransactionLike],
        user_message: str,
        weekly_budget: float,
        config: AdvisoryConfig = AdvisoryConfig(),
    ) -> str:
        symbol = config.currency.symbol
        system_instruction = f"""
{PERSONALITY_INSTRUCTIONS[config.personality]}
You work inside a personal finance app called Expenso.
The user's weekly budget is {symbol}{weekly_budget:,.2f}; express all amounts in {config.currency.value} ({symbol}).
The user has the following transaction history:
{_snapshot(transactions)}

Current date: {self._clock().isoformat()}

Provide concise, actionable financial advice or answer the user's specific question based on this data.
If the user asks for tips, give them 3 specific ones.
"""

        async def attempt() -> str:
            text = await self._remote.generate(system_instruction, user_message, thinking_level="HIGH")
            if not text:
                raise ValueError("Empty advice response")
            return text

        try:
            return await self._call(attempt, self._advice_retries)
        except Exception as e:
            if is_rate_limited(e):
                logger.warning(f"Advice quota exhausted: {e}")
                return QUOTA_MESSAGE
            logger.error(f"Advice unavailable: {e!r}")
            return APOLOGY_MESSAGE

    async def get_pacing_insight(
        self,
        transactions: List[TransactionLike],
        weekly_budget: float,
        config: AdvisoryConfig = AdvisoryConfig(),
    ) -> str:
        """
        One-sentence overspending warning, or "" when the week is on pace.

        Raises InvalidBudgetError for weekly_budget <= 0; remote failures fall
        back to the local velocity rule.
        """
        state = self.pacing(transactions, weekly_budget)
        symbol = config.currency.symbol

        system_instruction = (
            f"{PERSONALITY_INSTRUCTIONS[config.personality]}\n"
            f"If the spending velocity is above {REMOTE_WARNING_VELOCITY}, reply with exactly one "
            f"sentence warning the user about their pace. Otherwise reply with an empty string."
        )
        user_content = (
            f"Weekly budget: {symbol}{weekly_budget:,.2f}\n"
            f"Spent this week: {symbol}{state.weekly_expense_total:,.2f}\n"
            f"Days elapsed: {state.days_elapsed_in_week} of 7\n"
            f"Velocity: {state.velocity:.2f}"
        )

        async def attempt() -> str:
            text = await self._insight_remote.generate(
                system_instruction, user_content, thinking_level="LOW"
            )
            return (text or "").strip().strip('"')

        try:
            return await self._call(attempt, self._insight_retries)
        except Exception as e:
            logger.warning(f"Pacing insight falling back to local rule: {e!r}")
            return self.local_pacing_insight(state, config)

    @staticmethod
    def local_pacing_insight(state: PacingState, config: AdvisoryConfig = AdvisoryConfig()) -> str:
        if state.velocity <= LOCAL_WARNING_VELOCITY:
            return ""
        return LOCAL_WARNING_TEMPLATES[config.personality].format(
            percent=state.percent_used,
            days=state.days_elapsed_in_week,
            spent=config.currency.format(state.weekly_expense_total),
        )

    async def get_forecast(
        self,
        transactions: List[TransactionLike],
        weekly_budget: float,
        config: AdvisoryConfig = AdvisoryConfig(),
    ) -> Optional[BudgetForecast]:
        symbol = config.currency.symbol
        system_instruction = (
            f"{FORECAST_INSTRUCTION}\n"
            f"Amounts are in {config.currency.value} ({symbol}). "
            f"The weekly budget is {symbol}{weekly_budget:,.2f}."
        )
        user_content = f"Transactions:\n{_snapshot(transactions)}\n\nToday: {self._clock().date().isoformat()}"

        async def attempt() -> Optional[str]:
            return await self._remote.generate(
                system_instruction, user_content, structured_schema=BudgetForecast
            )

        try:
            text = await self._call(attempt, self._forecast_retries)
        except Exception as e:
            logger.error(f"Forecast unavailable: {e!r}")
            return None
        return parse_forecast(text)

