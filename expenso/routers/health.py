"""
Health Check Router
Liveness plus connectivity of the transactions table and the scheduler
"""
import logging
from datetime import datetime

from fastapi import APIRouter, Depends

from expenso.core.config import settings
from expenso.core.deps import get_store
from expenso.db.dynamo import TransactionStore
from expenso.utils.scheduler import get_scheduler_status

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/status")
def services_status(store: TransactionStore = Depends(get_store)):
    status = {
        "timestamp": datetime.utcnow().isoformat(),
        "services": {}
    }

    dynamodb_status = {
        "connected": False,
        "table": settings.DYNAMO_TRANSACTIONS_TABLE,
        "region": settings.DYNAMO_REGION,
        "error": None
    }
    try:
        store.ping()
        dynamodb_status["connected"] = True
    except Exception as e:
        dynamodb_status["error"] = str(e)
        logger.error(f"DynamoDB check failed: {str(e)}")
    status["services"]["dynamodb"] = dynamodb_status

    scheduler_status = get_scheduler_status()
    status["services"]["scheduler"] = scheduler_status

    healthy = dynamodb_status["connected"] and (
        scheduler_status["running"] or not settings.SCHEDULER_ENABLED
    )
    status["overall_status"] = "healthy" if healthy else "degraded"
    return status
