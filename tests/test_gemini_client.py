import asyncio

import httpx
import pytest
from google.genai import errors as genai_errors

from expenso.core.errors import NetworkError, PermanentFailureError, RateLimitedError, is_rate_limited
from expenso.utils.gemini_client import GeminiAdvisor, map_provider_error


def _api_error(code, status):
    return genai_errors.ClientError(code, {"error": {"code": code, "message": "provider said no", "status": status}})


def test_429_maps_to_rate_limited():
    mapped = map_provider_error(_api_error(429, "RESOURCE_EXHAUSTED"))
    assert isinstance(mapped, RateLimitedError)
    assert mapped.status_code == 429
    assert is_rate_limited(mapped)


def test_other_api_errors_are_permanent():
    mapped = map_provider_error(_api_error(401, "UNAUTHENTICATED"))
    assert isinstance(mapped, PermanentFailureError)
    assert mapped.status_code == 401
    assert not is_rate_limited(mapped)


@pytest.mark.parametrize("error", [httpx.ConnectError("connection refused"), asyncio.TimeoutError()])
def test_transport_failures_map_to_network_error(error):
    assert isinstance(map_provider_error(error), NetworkError)


def test_unknown_errors_keep_the_429_message_signal():
    assert isinstance(map_provider_error(RuntimeError("got 429 from upstream")), RateLimitedError)
    assert isinstance(map_provider_error(RuntimeError("bad request")), PermanentFailureError)


def test_missing_api_key_is_rejected(monkeypatch):
    monkeypatch.setattr("expenso.utils.gemini_client.settings.GEMINI_API_KEY", "")
    with pytest.raises(ValueError):
        GeminiAdvisor()
