from functools import lru_cache
from typing import Optional

from fastapi import Header, HTTPException, status

from expenso.core.config import settings
from expenso.db.dynamo import TransactionStore
from expenso.utils.advisory_service import AdvisoryService
from expenso.utils.analyzer import FinanceAnalyzer
from expenso.utils.gemini_client import GeminiAdvisor
from expenso.utils.notifications import AlertRegistry


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """User id forwarded by the upstream auth layer."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-User-Id header required")
    return x_user_id


@lru_cache
def get_store() -> TransactionStore:
    return TransactionStore()


@lru_cache
def get_analyzer() -> FinanceAnalyzer:
    return FinanceAnalyzer()


@lru_cache
def get_advisory_service() -> AdvisoryService:
    return AdvisoryService(
        GeminiAdvisor(model=settings.ADVICE_MODEL),
        insight_remote=GeminiAdvisor(model=settings.FAST_MODEL),
        advice_retries=settings.ADVICE_MAX_RETRIES,
        insight_retries=settings.INSIGHT_MAX_RETRIES,
        forecast_retries=settings.FORECAST_MAX_RETRIES,
        initial_delay=settings.RETRY_INITIAL_DELAY_SECONDS,
        call_budget=settings.ADVISOR_CALL_BUDGET_SECONDS,
        week_start=settings.WEEK_START,
    )


@lru_cache
def get_alert_registry() -> AlertRegistry:
    return AlertRegistry()
