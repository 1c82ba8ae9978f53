"""
Suggest Edit Events - Best-effort hooks for suggestion lifecycle analytics.

The editor notifies a sink when suggestions are shown, accepted or
dismissed. Sinks must never break editing: errors raised by a sink are
logged and ignored by the caller. NullEventSink is a valid substitute
wherever a sink is expected.
"""

from __future__ import annotations

import logging
from typing import List, Protocol, Tuple, runtime_checkable

from .models import Suggestion

logger = logging.getLogger(__name__)


@runtime_checkable
class SuggestionEventSink(Protocol):
    def suggestion_shown(self, suggestion: Suggestion) -> None: ...

    def suggestion_accepted(self, suggestion: Suggestion) -> None: ...

    def suggestion_dismissed(self, suggestion: Suggestion) -> None: ...


class NullEventSink:
    """Discards every event."""

    def suggestion_shown(self, suggestion: Suggestion) -> None:
        pass

    def suggestion_accepted(self, suggestion: Suggestion) -> None:
        pass

    def suggestion_dismissed(self, suggestion: Suggestion) -> None:
        pass


class LoggingEventSink:
    """Writes one log line per event."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def suggestion_shown(self, suggestion: Suggestion) -> None:
        logger.log(self.level, f"Suggestion shown: {suggestion.id} ({suggestion.kind.value}) '{suggestion.original}'")

    def suggestion_accepted(self, suggestion: Suggestion) -> None:
        logger.log(
            self.level,
            f"Suggestion accepted: {suggestion.id} '{suggestion.original}' -> '{suggestion.suggested}'",
        )

    def suggestion_dismissed(self, suggestion: Suggestion) -> None:
        logger.log(self.level, f"Suggestion dismissed: {suggestion.id} '{suggestion.original}'")


class RecordingEventSink:
    """Keeps (event, suggestion id) pairs in memory, e.g. for personalization or tests."""

    def __init__(self):
        self.events: List[Tuple[str, str]] = []

    def suggestion_shown(self, suggestion: Suggestion) -> None:
        self.events.append(("shown", suggestion.id))

    def suggestion_accepted(self, suggestion: Suggestion) -> None:
        self.events.append(("accepted", suggestion.id))

    def suggestion_dismissed(self, suggestion: Suggestion) -> None:
        self.events.append(("dismissed", suggestion.id))

    def ids_for(self, event: str) -> List[str]:
        return [suggestion_id for name, suggestion_id in self.events if name == event]
