"""
Notification Bridge
Delivers advisory alerts either as native push (SNS) or as in-app toasts the
client drains on its next poll.
"""
import json
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Deque, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from expenso.models.advisory import AdvisoryConfig

logger = logging.getLogger(__name__)

NativeSender = Callable[[str, str], None]

CHANNEL_NATIVE = "native"
CHANNEL_IN_APP = "in_app"


@dataclass
class InAppAlert:
    title: str
    body: str
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "body": self.body, "created_at": self.created_at}


class SnsPushSender:
    """Publishes notifications to an SNS topic (mobile push / email fan-out)."""

    def __init__(self, topic_arn: str, region: str, client=None) -> None:
        self.topic_arn = topic_arn
        self.client = client or boto3.client("sns", region_name=region)

    def __call__(self, title: str, body: str) -> None:
        self.client.publish(
            TopicArn=self.topic_arn,
            Subject=title[:100],
            Message=json.dumps({"default": body, "title": title}),
            MessageStructure="json",
        )


class NotificationBridge:
    def __init__(
        self,
        native_sender: Optional[NativeSender] = None,
        enabled: bool = False,
        reminder_hour: int = 20,
        max_pending: int = 50,
    ) -> None:
        self._native_sender = native_sender
        self._enabled = enabled and native_sender is not None
        self._reminder_hour = reminder_hour
        self._pending: Deque[InAppAlert] = deque(maxlen=max_pending)
        self._last_reminder: Optional[date] = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    def request_permission(self) -> bool:
        if self._native_sender is None:
            return False
        self._enabled = True
        self.notify(
            "Notifications Enabled",
            "You will now receive budget alerts and reminders from Expenso.",
        )
        return True

    def disable(self) -> None:
        self._enabled = False

    def notify(self, title: str, body: str) -> str:
        """Deliver one alert; returns the channel actually used."""
        if self._enabled:
            try:
                self._native_sender(title, body)
                return CHANNEL_NATIVE
            except (ClientError, BotoCoreError) as e:
                logger.error(f"Native notification failed, using in-app toast: {e}")
            except Exception:
                logger.exception("Native sender raised, using in-app toast")

        logger.info(f"In-app alert: {title} - {body}")
        self._pending.append(InAppAlert(title=title, body=body))
        return CHANNEL_IN_APP

    def pending(self) -> List[InAppAlert]:
        return list(self._pending)

    def drain_in_app(self) -> List[InAppAlert]:
        alerts = list(self._pending)
        self._pending.clear()
        return alerts

    def restore(self, alerts: List[InAppAlert]) -> None:
        self._pending.extend(alerts)

    def maybe_send_daily_reminder(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now()
        if self._last_reminder == now.date():
            return False
        if now.hour < self._reminder_hour:
            return False
        self.notify("Daily Reminder", "Time to log your expenses! Keep Expenso updated.")
        self._last_reminder = now.date()
        return True


@dataclass
class AlertSubscription:
    user_id: str
    weekly_budget: float
    config: AdvisoryConfig
    bridge: NotificationBridge


class AlertRegistry:
    """Users who asked for background pacing alerts, keyed by user_id."""

    def __init__(self) -> None:
        self._subscriptions: Dict[str, AlertSubscription] = {}

    def subscribe(self, subscription: AlertSubscription) -> AlertSubscription:
        existing = self._subscriptions.get(subscription.user_id)
        if existing is not None:
            # keep undelivered toasts across re-subscription
            subscription.bridge.restore(existing.bridge.drain_in_app())
        self._subscriptions[subscription.user_id] = subscription
        return subscription

    def unsubscribe(self, user_id: str) -> bool:
        return self._subscriptions.pop(user_id, None) is not None

    def get(self, user_id: str) -> Optional[AlertSubscription]:
        return self._subscriptions.get(user_id)

    def all(self) -> List[AlertSubscription]:
        return list(self._subscriptions.values())
