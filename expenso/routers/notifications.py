"""
Notifications Router
Subscription to background pacing alerts and the in-app toast inbox
"""
from fastapi import APIRouter, Depends, HTTPException, status

from expenso.core.config import settings
from expenso.core.deps import get_alert_registry, get_current_user_id
from expenso.models.advisory import SubscribeRequest
from expenso.utils.notifications import (
    AlertRegistry,
    AlertSubscription,
    NotificationBridge,
    SnsPushSender,
)

router = APIRouter()


@router.post("/subscribe", status_code=status.HTTP_201_CREATED)
def subscribe(
    request: SubscribeRequest,
    user_id: str = Depends(get_current_user_id),
    registry: AlertRegistry = Depends(get_alert_registry),
):
    sender = None
    if request.native and settings.SNS_TOPIC_ARN:
        sender = SnsPushSender(settings.SNS_TOPIC_ARN, settings.SNS_REGION)

    bridge = NotificationBridge(native_sender=sender, reminder_hour=settings.REMINDER_HOUR)
    native_enabled = bridge.request_permission() if request.native else False

    registry.subscribe(
        AlertSubscription(
            user_id=user_id,
            weekly_budget=request.weekly_budget,
            config=request.advisory_config(),
            bridge=bridge,
        )
    )
    return {
        "subscribed": True,
        "native": native_enabled,
        "weekly_budget": request.weekly_budget,
        "personality": request.personality.value,
        "currency": request.currency.value,
    }


@router.delete("/subscribe", status_code=status.HTTP_204_NO_CONTENT)
def unsubscribe(
    user_id: str = Depends(get_current_user_id),
    registry: AlertRegistry = Depends(get_alert_registry),
):
    if not registry.unsubscribe(user_id):
        raise HTTPException(status_code=404, detail="No active subscription")
    return None


@router.get("/")
def inbox(
    user_id: str = Depends(get_current_user_id),
    registry: AlertRegistry = Depends(get_alert_registry),
):
    subscription = registry.get(user_id)
    if subscription is None:
        return {"notifications": [], "count": 0}
    alerts = [alert.to_dict() for alert in subscription.bridge.drain_in_app()]
    return {"notifications": alerts, "count": len(alerts)}
