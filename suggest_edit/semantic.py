"""
Suggest Edit Semantic - Client side of the remote semantic analyzer.

Request:  {"text", "preferredTone", "writingGoals"}
Response: {"suggestions": [...]} or {"error": "..."}

Positions in the response are advisory hints relative to the submitted
text; the scheduler re-locates every suggestion before it goes live.
Malformed entries are dropped one by one, and an unusable payload counts as
zero suggestions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

import aiohttp
from pydantic import ValidationError

from config import AnalyzerSettings, config

from .models import Suggestion, SuggestionSource, UserSettings

logger = logging.getLogger(__name__)


class SemanticAnalysisError(RuntimeError):
    """Raised when the remote analyzer is unreachable or answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SemanticAnalyzer(Protocol):
    async def analyze(self, text: str, settings: UserSettings) -> List[Suggestion]: ...


def parse_provider_suggestions(
    payload: Any,
    min_confidence: Optional[float] = None,
    max_suggestions: Optional[int] = None,
) -> List[Suggestion]:
    """
    Validate raw provider entries into semantic suggestions.

    Each entry gets a fresh "ai-" id. Entries that fail validation, and
    entries at or below the confidence floor, are dropped individually.

    Args:
        payload: List of raw suggestion dicts (anything else yields [])
        min_confidence: Floor (defaults to config.ANALYZER.min_confidence)
        max_suggestions: Cap (defaults to config.ANALYZER.max_suggestions)

    Returns:
        Validated suggestions in provider order
    """
    if min_confidence is None:
        min_confidence = config.ANALYZER.min_confidence
    if max_suggestions is None:
        max_suggestions = config.ANALYZER.max_suggestions
    if not isinstance(payload, list):
        return []

    suggestions: List[Suggestion] = []
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        data = dict(entry)
        data["id"] = SuggestionSource.SEMANTIC.new_id()
        if "position" not in data and "span" not in data:
            data["position"] = {"start": 0, "end": 0}
        try:
            suggestion = Suggestion.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Dropping malformed provider suggestion: {e.error_count()} error(s)")
            continue
        if suggestion.confidence <= min_confidence:
            continue
        suggestions.append(suggestion)
        if len(suggestions) >= max_suggestions:
            break

    return suggestions


class RemoteSemanticAnalyzer:
    """
    aiohttp client for the /analyze endpoint.

    Usage:
        async with RemoteSemanticAnalyzer() as analyzer:
            suggestions = await analyzer.analyze(text, UserSettings())
    """

    def __init__(
        self,
        url: Optional[str] = None,
        settings: Optional[AnalyzerSettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.settings = settings or config.ANALYZER
        self.url = url or self.settings.url
        self.timeout = aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
        self._session = session
        self._owns_session = session is None

    async def connect(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True

    async def close(self) -> None:
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "RemoteSemanticAnalyzer":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @staticmethod
    def build_request(text: str, settings: UserSettings) -> Dict[str, Any]:
        return {
            "text": text,
            "preferredTone": settings.preferred_tone,
            "writingGoals": list(settings.writing_goals),
        }

    async def analyze(self, text: str, settings: UserSettings) -> List[Suggestion]:
        """
        Request suggestions for text.

        Raises:
            SemanticAnalysisError: network failure, non-2xx status or {"error"}
        """
        await self.connect()
        try:
            async with self._session.post(self.url, json=self.build_request(text, settings)) as response:
                if not 200 <= response.status < 300:
                    raise SemanticAnalysisError(
                        f"Analyzer returned HTTP {response.status}", status_code=response.status
                    )
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    logger.warning("Analyzer returned a non-JSON body, treating as no suggestions")
                    return []
        except aiohttp.ClientError as e:
            raise SemanticAnalysisError(f"Analyzer request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise SemanticAnalysisError("Analyzer request timed out") from e

        if not isinstance(data, dict):
            return []
        if data.get("error"):
            raise SemanticAnalysisError(str(data["error"]))

        return parse_provider_suggestions(
            data.get("suggestions"),
            self.settings.min_confidence,
            self.settings.max_suggestions,
        )
