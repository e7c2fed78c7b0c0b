"""
Gemini Client
Adapter between the advisory service and the hosted model (google-genai).
Provider errors are mapped to the typed AdvisorError variants here.
"""
import asyncio
import logging
from typing import Any, Optional, Protocol

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from expenso.core.config import settings
from expenso.core.errors import (
    AdvisorError,
    NetworkError,
    PermanentFailureError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)


class RemoteAdvisor(Protocol):
    async def generate(
        self,
        system_instruction: str,
        user_content: str,
        structured_schema: Optional[Any] = None,
        thinking_level: Optional[str] = None,
    ) -> Optional[str]:
        ...


def map_provider_error(error: Exception) -> AdvisorError:
    """Translate an SDK/transport exception into the typed taxonomy."""
    if isinstance(error, AdvisorError):
        return error

    message = str(error)
    if isinstance(error, genai_errors.APIError):
        if error.code == 429 or "429" in message:
            return RateLimitedError(message, status_code=429)
        return PermanentFailureError(message, status_code=error.code)
    if isinstance(error, (httpx.HTTPError, asyncio.TimeoutError)):
        return NetworkError(message or error.__class__.__name__)
    if "429" in message:
        return RateLimitedError(message, status_code=429)
    return PermanentFailureError(message)


class GeminiAdvisor:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None) -> None:
        self.api_key = api_key or settings.GEMINI_API_KEY
        if not self.api_key:
            raise ValueError("Gemini API key not configured")
        self.model = model or settings.ADVICE_MODEL
        self.client = genai.Client(api_key=self.api_key)

    async def generate(
        self,
        system_instruction: str,
        user_content: str,
        structured_schema: Optional[Any] = None,
        thinking_level: Optional[str] = None,
    ) -> Optional[str]:
        config_kwargs: dict = {"system_instruction": system_instruction}
        if structured_schema is not None:
            config_kwargs["response_mime_type"] = "application/json"
            config_kwargs["response_schema"] = structured_schema
        if thinking_level:
            config_kwargs["thinking_config"] = types.ThinkingConfig(thinking_level=thinking_level)

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=user_content,
                config=types.GenerateContentConfig(**config_kwargs),
            )
        except Exception as e:
            mapped = map_provider_error(e)
            logger.error(f"Gemini call failed ({mapped.__class__.__name__}): {e}")
            raise mapped from e

        return response.text
