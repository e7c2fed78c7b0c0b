from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from expenso.core.deps import get_advisory_service, get_analyzer, get_current_user_id, get_store
from expenso.core.errors import InvalidBudgetError, StoreError
from expenso.db.dynamo import TransactionStore
from expenso.models.transaction import TransactionCreate, TransactionPublic, TransactionType
from expenso.utils.advisory_service import AdvisoryService
from expenso.utils.analyzer import FinanceAnalyzer

router = APIRouter()


def _list(store: TransactionStore, user_id: str):
    try:
        return store.list_by_user(user_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/")
def list_transactions(
    q: str = "",
    type: Optional[TransactionType] = None,
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
    analyzer: FinanceAnalyzer = Depends(get_analyzer),
):
    transactions = analyzer.search(_list(store, user_id), query=q, type=type)
    return {"transactions": transactions, "count": len(transactions)}


@router.post("/", response_model=TransactionPublic, status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction: TransactionCreate,
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
):
    try:
        transaction_id = store.add(user_id, transaction)
        saved = store.get(user_id, transaction_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not saved:
        raise HTTPException(status_code=500, detail="Failed to save transaction")
    return TransactionPublic(**saved)


@router.get("/summary")
def transaction_summary(
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
    analyzer: FinanceAnalyzer = Depends(get_analyzer),
):
    return analyzer.summarize(_list(store, user_id))


@router.get("/pacing")
def weekly_pacing(
    weekly_budget: float = Query(..., gt=0),
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
    service: AdvisoryService = Depends(get_advisory_service),
):
    try:
        state = service.pacing(_list(store, user_id), weekly_budget)
    except InvalidBudgetError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return state.to_dict()


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    store: TransactionStore = Depends(get_store),
):
    try:
        deleted = store.delete(user_id, transaction_id)
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return None
