"""
Advisor Router
Chat advice, the weekly pacing insight and the 7-day forecast
"""
import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query

from expenso.core.deps import get_advisory_service, get_current_user_id, get_store
from expenso.core.errors import InvalidBudgetError, StoreError
from expenso.db.dynamo import TransactionStore
from expenso.models.advisory import AdviceRequest, AdvisoryConfig, Currency, Personality
from expenso.utils.advisory_service import AdvisoryService

router = APIRouter()


async def _transactions(store: TransactionStore, user_id: str):
    try:
        return await asyncio.to_thread(store.list_by_user, user_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/advice")
async def advice(
    request: AdviceRequest,
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
    service: AdvisoryService = Depends(get_advisory_service),
):
    reply = await service.get_advice(
        await _transactions(store, user_id), request.message, request.weekly_budget, request.advisory_config()
    )
    return {"reply": reply}


@router.get("/insight")
async def pacing_insight(
    weekly_budget: float = Query(..., gt=0),
    personality: Personality = Personality.PROFESSIONAL,
    currency: Currency = Currency.INR,
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
    service: AdvisoryService = Depends(get_advisory_service),
):
    config = AdvisoryConfig(personality=personality, currency=currency)
    try:
        insight = await service.get_pacing_insight(await _transactions(store, user_id), weekly_budget, config)
    except InvalidBudgetError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"insight": insight}


@router.get("/forecast")
async def forecast(
    weekly_budget: float = Query(..., gt=0),
    currency: Currency = Currency.INR,
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
    service: AdvisoryService = Depends(get_advisory_service),
):
    result = await service.get_forecast(
        await _transactions(store, user_id), weekly_budget, AdvisoryConfig(currency=currency)
    )
    return {
        "available": result is not None,
        "forecast": result.model_dump(by_alias=True) if result is not None else None,
    }
