"""
Suggest Edit - Writing suggestions anchored to continuously edited text.

Two producers feed the editor at different latencies:

1. **Dictionary pass** (local, fast): spelling suggestions from Hunspell-style data
2. **Semantic pass** (remote, slow): grammar, tone and persuasion suggestions

Suggestions are located on the current text, merged by source priority and
kept anchored across every edit; a suggestion that can no longer be verified
is dropped rather than left pointing at the wrong text.

Editing:
    from suggest_edit import EditorSurface, DictionaryAnalyzer, RemoteSemanticAnalyzer

    surface = EditorSurface(
        text,
        dictionary=DictionaryAnalyzer(),
        semantic=RemoteSemanticAnalyzer(),
    )
    surface.handle_input(new_text, caret=len(new_text))
    await surface.analyze_now()
    surface.apply_suggestion(surface.suggestions[0].id)

Reconciliation primitives (pure functions):
    from suggest_edit import diff, locate, reposition, merge, split_sections

    change = diff(old_text, new_text)
    live = reposition(live, old_text, new_text, change.change_start)
    result = locate(new_text, "synergy", 40, 47, context_before="drive ")
"""

from .models import (
    Highlight,
    LocateResult,
    Notification,
    NotificationLevel,
    Span,
    Suggestion,
    SuggestionKind,
    SuggestionSource,
    TextChange,
    TextSection,
    UserSettings,
)
from .differ import diff
from .sections import changed_sections, section_hash, split_sections
from .locators import anchor, find_all_occurrences, locate, locate_suggestion
from .reposition import reposition, reposition_after_replacement
from .merger import merge
from .dictionary import (
    Dictionary,
    DictionaryAnalyzer,
    DictionaryChecker,
    DictionaryUnavailableError,
    build_dictionary,
    load_dictionary,
)
from .semantic import (
    RemoteSemanticAnalyzer,
    SemanticAnalysisError,
    SemanticAnalyzer,
    parse_provider_suggestions,
)
from .events import LoggingEventSink, NullEventSink, RecordingEventSink, SuggestionEventSink
from .prompts import build_analyzer_system_prompt
from .scheduler import AnalysisScheduler, SchedulerState, completes_word
from .autosave import AutoSaver
from .surface import EditorSurface

__all__ = [
    # Models
    "Highlight",
    "LocateResult",
    "Notification",
    "NotificationLevel",
    "Span",
    "Suggestion",
    "SuggestionKind",
    "SuggestionSource",
    "TextChange",
    "TextSection",
    "UserSettings",
    # Reconciliation
    "diff",
    "split_sections",
    "changed_sections",
    "section_hash",
    "locate",
    "locate_suggestion",
    "anchor",
    "find_all_occurrences",
    "reposition",
    "reposition_after_replacement",
    "merge",
    # Producers
    "Dictionary",
    "DictionaryAnalyzer",
    "DictionaryChecker",
    "DictionaryUnavailableError",
    "build_dictionary",
    "load_dictionary",
    "RemoteSemanticAnalyzer",
    "SemanticAnalysisError",
    "SemanticAnalyzer",
    "parse_provider_suggestions",
    "build_analyzer_system_prompt",
    # Events
    "SuggestionEventSink",
    "NullEventSink",
    "LoggingEventSink",
    "RecordingEventSink",
    # Orchestration
    "AnalysisScheduler",
    "SchedulerState",
    "completes_word",
    "AutoSaver",
    "EditorSurface",
]

__version__ = "1.0.0"
