from datetime import datetime

from botocore.exceptions import ClientError

from expenso.models.advisory import AdvisoryConfig
from expenso.utils.notifications import (
    CHANNEL_IN_APP,
    CHANNEL_NATIVE,
    AlertRegistry,
    AlertSubscription,
    NotificationBridge,
    SnsPushSender,
)


class CapturingSender:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def __call__(self, title, body):
        if self.fail:
            raise ClientError({"Error": {"Code": "EndpointDisabled", "Message": "gone"}}, "Publish")
        self.sent.append((title, body))


def test_without_native_sender_alerts_become_toasts():
    bridge = NotificationBridge()
    assert bridge.request_permission() is False
    assert bridge.notify("Budget Alert", "Slow down") == CHANNEL_IN_APP
    alerts = bridge.drain_in_app()
    assert [(a.title, a.body) for a in alerts] == [("Budget Alert", "Slow down")]
    assert bridge.drain_in_app() == []


def test_permission_enables_native_delivery():
    sender = CapturingSender()
    bridge = NotificationBridge(native_sender=sender)
    assert bridge.enabled is False

    assert bridge.request_permission() is True
    assert bridge.enabled is True
    assert sender.sent[0][0] == "Notifications Enabled"

    assert bridge.notify("Budget Alert", "Slow down") == CHANNEL_NATIVE
    assert bridge.pending() == []


def test_disabled_bridge_uses_toasts():
    sender = CapturingSender()
    bridge = NotificationBridge(native_sender=sender, enabled=True)
    bridge.disable()
    assert bridge.notify("t", "b") == CHANNEL_IN_APP
    assert sender.sent == []


def test_native_failure_falls_back_to_toast():
    bridge = NotificationBridge(native_sender=CapturingSender(fail=True), enabled=True)
    assert bridge.notify("Budget Alert", "Slow down") == CHANNEL_IN_APP
    assert len(bridge.pending()) == 1


def test_daily_reminder_once_per_day_after_reminder_hour():
    bridge = NotificationBridge(reminder_hour=20)
    assert bridge.maybe_send_daily_reminder(datetime(2026, 10, 13, 19, 59)) is False
    assert bridge.maybe_send_daily_reminder(datetime(2026, 10, 13, 20, 0)) is True
    assert bridge.maybe_send_daily_reminder(datetime(2026, 10, 13, 23, 0)) is False
    assert bridge.maybe_send_daily_reminder(datetime(2026, 10, 14, 21, 0)) is True
    bodies = [a.body for a in bridge.drain_in_app()]
    assert len(bodies) == 2
    assert all("Time to log your expenses!" in body for body in bodies)


def test_sns_sender_publishes_to_topic():
    class FakeSns:
        def __init__(self):
            self.published = []

        def publish(self, **kwargs):
            self.published.append(kwargs)

    client = FakeSns()
    SnsPushSender("arn:aws:sns:eu-west-1:123:alerts", "eu-west-1", client=client)("Budget Alert", "Slow down")

    message = client.published[0]
    assert message["TopicArn"] == "arn:aws:sns:eu-west-1:123:alerts"
    assert message["Subject"] == "Budget Alert"
    assert "Slow down" in message["Message"]


def test_resubscribing_keeps_pending_toasts():
    registry = AlertRegistry()
    first = NotificationBridge()
    registry.subscribe(AlertSubscription("u1", 500, AdvisoryConfig(), first))
    first.notify("Budget Alert", "Slow down")

    second = NotificationBridge()
    registry.subscribe(AlertSubscription("u1", 700, AdvisoryConfig(), second))

    assert registry.get("u1").weekly_budget == 700
    assert [a.body for a in second.drain_in_app()] == ["Slow down"]
    assert registry.unsubscribe("u1") is True
    assert registry.unsubscribe("u1") is False
    assert registry.all() == []


def test_unexpected_sender_error_falls_back_to_toast():
    def broken_sender(title, body):
        raise RuntimeError("push service misconfigured")

    bridge = NotificationBridge(native_sender=broken_sender, enabled=True)
    assert bridge.notify("Budget Alert", "Slow down") == CHANNEL_IN_APP
    assert [a.body for a in bridge.drain_in_app()] == ["Slow down"]
