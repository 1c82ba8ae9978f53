"""
AI Service Module for the suggestion engine
===========================================

Handles communication with OpenAI for the semantic analyzer behind
POST /analyze: builds the analyzer prompt, retries transient failures and
extracts the suggestion array from the model's reply.
"""

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import aiohttp
import openai

# Use optimized JSON (orjson backed)
import json_utils as json

from config import config
from suggest_edit.prompts import build_analyzer_system_prompt


logger = logging.getLogger(__name__)


class AIRequestError(RuntimeError):
    """Raised when the AI provider keeps failing after retry attempts."""

    def __init__(self, provider: str, model: str, attempts: int, max_attempts: int, cause: Exception):
        message = (
            f"AI request failed for {model} via {provider} after "
            f"{attempts}/{max_attempts} attempts: {cause}"
        )
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.attempts = attempts
        self.max_attempts = max_attempts
        self.cause = cause


T = TypeVar("T")


_shared_ai_service: Optional["AIService"] = None
_ai_service_init_lock = threading.Lock()


def get_ai_service() -> "AIService":
    """Return the shared AIService instance, creating it on first use."""
    global _shared_ai_service
    if _shared_ai_service is None:
        with _ai_service_init_lock:
            if _shared_ai_service is None:
                _shared_ai_service = AIService()
    return _shared_ai_service


class AIService:
    """OpenAI-backed semantic analysis service"""

    PROVIDER = "openai"

    def __init__(self, api_key: Optional[str] = None):
        """Initialize the OpenAI client (None when no API key is configured)"""
        self.settings = config.ANALYZER
        self.openai_client: Optional[openai.AsyncOpenAI] = None

        api_key = api_key or config.OPENAI_API_KEY
        if api_key:
            self.openai_client = openai.AsyncOpenAI(
                api_key=api_key,
                timeout=60.0,
                max_retries=0,  # Retries handled by _execute_with_retries
            )
        else:
            logger.warning("OpenAI API key not found")

    def _max_retry_attempts(self) -> int:
        return max(1, self.settings.max_retries + 1)

    def _retry_delay_seconds(self) -> float:
        return max(0.0, self.settings.retry_delay_seconds)

    @staticmethod
    def _extract_request_id(exc: Exception) -> Optional[str]:
        for attr in ("request_id", "response_id", "id"):
            value = getattr(exc, attr, None)
            if value:
                return str(value)
        return None

    @staticmethod
    def _should_retry_exception(exc: Exception) -> bool:
        # Network and timeout errors are always retriable
        if isinstance(exc, (asyncio.TimeoutError, aiohttp.ClientError, ConnectionError, openai.APIConnectionError)):
            return True

        # HTTP status codes that indicate transient issues
        status = getattr(exc, "status", None) or getattr(exc, "status_code", None)
        if status in {408, 425, 429, 500, 502, 503, 504}:
            return True

        message = str(exc).lower()
        transient_markers = [
            "timeout",
            "temporarily unavailable",
            "internal server error",
            "gateway",
            "rate limit",
            "overloaded",
            "service unavailable",
            "connection reset",
            "connection refused",
        ]
        return any(marker in message for marker in transient_markers)

    async def _execute_with_retries(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        model_id: str,
        action: str,
    ) -> T:
        max_attempts = self._max_retry_attempts()
        delay_seconds = self._retry_delay_seconds()
        last_exception: Optional[Exception] = None

        for attempt in range(1, max_attempts + 1):
            try:
                return await operation()
            except AIRequestError:
                raise
            except Exception as exc:
                last_exception = exc
                if not self._should_retry_exception(exc):
                    raise
                if attempt >= max_attempts:
                    break

                request_id = self._extract_request_id(exc)
                suffix = f" (request_id={request_id})" if request_id else ""
                logger.warning(
                    "AI %s failed for %s via %s on attempt %d/%d%s: %s",
                    action,
                    model_id,
                    self.PROVIDER,
                    attempt,
                    max_attempts,
                    suffix,
                    exc,
                )

                await asyncio.sleep(delay_seconds)

        assert last_exception is not None
        raise AIRequestError(self.PROVIDER, model_id, max_attempts, max_attempts, last_exception) from last_exception

    async def generate_completion(
        self,
        system_prompt: str,
        user_text: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Run one chat completion and return the reply text.

        Raises:
            AIRequestError: client not configured or retries exhausted
        """
        model_id = model or self.settings.model
        if self.openai_client is None:
            raise AIRequestError(
                self.PROVIDER, model_id, 0, self._max_retry_attempts(),
                RuntimeError("OpenAI API key not configured"),
            )

        async def _call() -> str:
            response = await self.openai_client.chat.completions.create(
                model=model_id,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_text},
                ],
                temperature=self.settings.temperature if temperature is None else temperature,
            )
            return response.choices[0].message.content or ""

        return await self._execute_with_retries(_call, model_id=model_id, action="analysis")

    async def analyze_text(
        self,
        text: str,
        preferred_tone: Optional[str] = None,
        writing_goals: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Ask the model for writing suggestions on text.

        Returns:
            Raw suggestion dicts as produced by the model; an empty list when
            the reply holds no parseable JSON array
        """
        system_prompt = build_analyzer_system_prompt(
            preferred_tone,
            writing_goals,
            min_confidence=self.settings.min_confidence,
            max_suggestions=self.settings.max_suggestions,
        )
        reply = await self.generate_completion(system_prompt, text)

        suggestions = [entry for entry in json.extract_json_array(reply) if isinstance(entry, dict)]
        if not suggestions:
            logger.info("No suggestions found in AI response")
            return []

        type_counts: Dict[str, int] = {}
        for entry in suggestions:
            kind = str(entry.get("type", "unknown"))
            type_counts[kind] = type_counts.get(kind, 0) + 1
        logger.info(f"AI returned {len(suggestions)} suggestion(s) by type: {json.dumps(type_counts)}")
        return suggestions
