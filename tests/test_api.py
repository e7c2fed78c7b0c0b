import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from fakes import StubAdvisor

from expenso.core import deps
from expenso.db.dynamo import TransactionStore
from expenso.main import app
from expenso.utils.advisory_service import QUOTA_MESSAGE, AdvisoryService
from expenso.utils.analyzer import WeekStart
from expenso.utils.notifications import AlertRegistry

HEADERS = {"X-User-Id": "u1"}


@pytest.fixture
def remote():
    return StubAdvisor("Spend less on coffee.")


@pytest.fixture
def registry():
    return AlertRegistry()


@pytest.fixture
def client(store, remote, registry, sleep, clock):
    service = AdvisoryService(remote, sleep=sleep, clock=clock, week_start=WeekStart.MONDAY)
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_advisory_service] = lambda: service
    app.dependency_overrides[deps.get_alert_registry] = lambda: registry
    yield TestClient(app)
    app.dependency_overrides.clear()


def _post(client, amount, type="expense", category="Food", date="2026-10-12", description=""):
    return client.post(
        "/api/transactions/",
        json={"amount": amount, "type": type, "category": category, "date": date, "description": description},
        headers=HEADERS,
    )


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_user_header_required(client):
    assert client.get("/api/transactions/").status_code == 401


def test_create_list_and_delete(client):
    created = _post(client, 300, category="Rent", description="October rent")
    assert created.status_code == 201
    body = created.json()
    assert body["category"] == "Rent"
    assert body["date"] == "2026-10-12"

    _post(client, 2000, type="income", category="Salary")

    listing = client.get("/api/transactions/", headers=HEADERS).json()
    assert listing["count"] == 2
    filtered = client.get("/api/transactions/", params={"q": "rent"}, headers=HEADERS).json()
    assert filtered["count"] == 1

    deleted = client.delete(f"/api/transactions/{body['transaction_id']}", headers=HEADERS)
    assert deleted.status_code == 204
    missing = client.delete(f"/api/transactions/{body['transaction_id']}", headers=HEADERS)
    assert missing.status_code == 404


def test_non_positive_amount_rejected(client):
    assert _post(client, 0).status_code == 422


def test_summary_and_pacing(client):
    _post(client, 300, category="Rent")
    _post(client, 1000, type="income", category="Salary")

    summary = client.get("/api/transactions/summary", headers=HEADERS).json()
    assert summary["balance"] == 700

    pacing = client.get("/api/transactions/pacing", params={"weekly_budget": 500}, headers=HEADERS).json()
    assert pacing["days_elapsed_in_week"] == 2
    assert pacing["percent_used"] == 60
    assert pacing["velocity"] == pytest.approx(2.1)

    bad = client.get("/api/transactions/pacing", params={"weekly_budget": 0}, headers=HEADERS)
    assert bad.status_code == 422


def test_advice(client):
    response = client.post(
        "/api/advisor/advice",
        json={"message": "Any tips?", "weekly_budget": 500, "personality": "strict", "currency": "USD"},
        headers=HEADERS,
    )
    assert response.status_code == 200
    assert response.json() == {"reply": "Spend less on coffee."}


def test_advice_quota_message(client, remote):
    remote.outcomes = [Exception("429 Too Many Requests")]
    response = client.post(
        "/api/advisor/advice", json={"message": "Any tips?", "weekly_budget": 500}, headers=HEADERS
    )
    assert response.json() == {"reply": QUOTA_MESSAGE}


def test_insight_local_fallback(client, remote):
    _post(client, 300, category="Rent")
    remote.outcomes = [Exception("503 unavailable")]

    response = client.get("/api/advisor/insight", params={"weekly_budget": 500}, headers=HEADERS)
    assert response.status_code == 200
    assert "60%" in response.json()["insight"]

    bad = client.get("/api/advisor/insight", params={"weekly_budget": -5}, headers=HEADERS)
    assert bad.status_code == 422


def test_forecast(client, remote):
    remote.outcomes = [json.dumps({"predictedTotal": 150, "confidence": 0.6, "insights": ["a", "b"]})]
    body = client.get("/api/advisor/forecast", params={"weekly_budget": 500}, headers=HEADERS).json()
    assert body["available"] is True
    assert body["forecast"]["predictedTotal"] == 150

    remote.outcomes = ["not json"]
    body = client.get("/api/advisor/forecast", params={"weekly_budget": 500}, headers=HEADERS).json()
    assert body == {"available": False, "forecast": None}


def test_subscribe_and_inbox(client, registry):
    response = client.post("/api/notifications/subscribe", json={"weekly_budget": 500}, headers=HEADERS)
    assert response.status_code == 201
    assert response.json()["native"] is False

    registry.get("u1").bridge.notify("Budget Alert", "Slow down")
    inbox = client.get("/api/notifications/", headers=HEADERS).json()
    assert inbox["count"] == 1
    assert inbox["notifications"][0]["body"] == "Slow down"

    assert client.delete("/api/notifications/subscribe", headers=HEADERS).status_code == 204
    assert client.delete("/api/notifications/subscribe", headers=HEADERS).status_code == 404


@pytest.mark.parametrize("budget", ["nan", "inf"])
def test_non_finite_budget_rejected(client, budget):
    _post(client, 300, category="Rent")
    params = {"weekly_budget": budget}
    assert client.get("/api/transactions/pacing", params=params, headers=HEADERS).status_code == 422
    assert client.get("/api/advisor/insight", params=params, headers=HEADERS).status_code == 422


def test_advisor_reads_store_off_the_event_loop(store, remote, sleep, clock):
    loop_threads = []

    class RecordingStore(TransactionStore):
        def list_by_user(self, user_id):
            try:
                asyncio.get_running_loop()
                loop_threads.append(True)
            except RuntimeError:
                loop_threads.append(False)
            return super().list_by_user(user_id)

    service = AdvisoryService(remote, sleep=sleep, clock=clock, week_start=WeekStart.MONDAY)
    app.dependency_overrides[deps.get_store] = lambda: RecordingStore(table=store.table)
    app.dependency_overrides[deps.get_advisory_service] = lambda: service
    try:
        client = TestClient(app)
        client.post("/api/advisor/advice", json={"message": "Tips?", "weekly_budget": 500}, headers=HEADERS)
        client.get("/api/advisor/insight", params={"weekly_budget": 500}, headers=HEADERS)
        client.get("/api/advisor/forecast", params={"weekly_budget": 500}, headers=HEADERS)
    finally:
        app.dependency_overrides.clear()

    assert loop_threads == [False, False, False]
