"""
Suggest Edit Models - Data structures for anchored writing suggestions.

Core Types:
- SuggestionSource: Which producer created a suggestion (encoded in its id)
- SuggestionKind: What the suggestion is about (grammar, tone, ...)
- Span: Half-open character range into the current document text
- Suggestion: A proposed edit anchored to a span of the document
- LocateResult: Outcome of resolving a suggestion's position
- TextChange: First divergence point and net length delta of an edit
- TextSection: A hashable unit of re-analysis scope

Session Types:
- UserSettings: Tone/goal preferences forwarded to the semantic analyzer
- Notification: Transient, dismissible message for the user
- Highlight: A rendered suggestion range
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field


class SuggestionSource(str, Enum):
    """Producer of a suggestion. The value is the id prefix."""

    DICTIONARY = "dict"
    SEMANTIC = "ai"

    @property
    def prefix(self) -> str:
        return f"{self.value}-"

    def new_id(self) -> str:
        return f"{self.prefix}{uuid.uuid4().hex[:8]}"

    @classmethod
    def from_id(cls, suggestion_id: str) -> Optional["SuggestionSource"]:
        for source in cls:
            if suggestion_id.startswith(source.prefix):
                return source
        return None


class SuggestionKind(str, Enum):
    """What a suggestion improves."""

    GRAMMAR = "grammar"
    TONE = "tone"
    PERSUASION = "persuasion"
    SPELLING = "spelling"


class SuggestBaseModel(BaseModel):
    """Base model enabling population by field name as well as provider aliases."""
    model_config = {"populate_by_name": True}


class Span(SuggestBaseModel):
    """Half-open [start, end) character range."""

    start: int
    end: int

    def is_valid_for(self, text: str) -> bool:
        return 0 <= self.start < self.end <= len(text)

    def overlaps(self, other: "Span") -> bool:
        return self.start < other.end and self.end > other.start

    def shifted(self, delta: int) -> "Span":
        return Span(start=self.start + delta, end=self.end + delta)


class Suggestion(SuggestBaseModel):
    """
    A proposed edit anchored to the document.

    The id carries the producer as a prefix ("dict-" or "ai-"); merge
    priority is read from it. `span` is only meaningful relative to the text
    snapshot it was last verified against; reconciliation keeps
    `text[span.start:span.end] == original` or destroys the suggestion.
    """

    id: str
    kind: SuggestionKind = Field(
        default=SuggestionKind.GRAMMAR,
        validation_alias=AliasChoices("kind", "type"),
    )
    span: Span = Field(validation_alias=AliasChoices("span", "position"))
    original: str = Field(min_length=1)
    suggested: str = ""
    context_before: str = Field(
        default="",
        validation_alias=AliasChoices("context_before", "contextBefore"),
    )
    context_after: str = Field(
        default="",
        validation_alias=AliasChoices("context_after", "contextAfter"),
    )
    explanation: str = ""
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    @property
    def source(self) -> Optional[SuggestionSource]:
        return SuggestionSource.from_id(self.id)

    @property
    def start(self) -> int:
        return self.span.start

    @property
    def end(self) -> int:
        return self.span.end

    def matches(self, text: str) -> bool:
        """True when the span is in bounds and still covers `original`."""
        return self.span.is_valid_for(text) and text[self.span.start:self.span.end] == self.original

    def move_to(self, start: int, end: int) -> None:
        """Re-anchor in place. Only the span ever changes after creation."""
        self.span = Span(start=start, end=end)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize with the provider's camelCase field names."""
        return {
            "id": self.id,
            "type": self.kind.value,
            "position": {"start": self.span.start, "end": self.span.end},
            "original": self.original,
            "suggested": self.suggested,
            "contextBefore": self.context_before,
            "contextAfter": self.context_after,
            "explanation": self.explanation,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class LocateResult:
    """Resolved position for a suggestion. `found=False` means "could not relocate"."""

    start: int
    end: int
    found: bool
    method: str = "none"

    def verified(self, text: str, original: str) -> bool:
        """True when the located range holds exactly `original`."""
        return self.found and 0 <= self.start < self.end <= len(text) and text[self.start:self.end] == original


@dataclass(frozen=True)
class TextChange:
    """Where two snapshots first diverge and by how much the length changed."""

    change_start: int
    length_delta: int


@dataclass(frozen=True)
class TextSection:
    """A paragraph or sentence used as the unit of change detection."""

    hash: str
    content: str
    start_index: int
    end_index: int


class UserSettings(SuggestBaseModel):
    """Writing preferences, read once per document session."""

    preferred_tone: str = Field(
        default="professional",
        validation_alias=AliasChoices("preferred_tone", "preferredTone"),
    )
    writing_goals: List[str] = Field(
        default_factory=lambda: ["clarity", "grammar"],
        validation_alias=AliasChoices("writing_goals", "writingGoals"),
    )


class NotificationLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A transient message shown to the user until dismissed."""

    level: NotificationLevel
    title: str
    description: str = ""


@dataclass(frozen=True)
class Highlight:
    """A suggestion range as rendered on the surface."""

    start: int
    end: int
    suggestion: Suggestion
    selected: bool = False
