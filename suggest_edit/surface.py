"""
Suggest Edit Surface - The editing surface that owns text, caret and suggestions.

EditorSurface is the only stateful owner of the document buffer and of the
live suggestion set. Everything else is a pure function over snapshots
(differ, locators, reposition, merger) or per-document orchestration
(scheduler), which calls back into the surface to read the current text and
to merge results.

Usage:
    surface = EditorSurface("Teh cat sat.", dictionary=DictionaryAnalyzer())
    surface.handle_input("Teh cat sat. ", caret=13)
    ...
    surface.apply_suggestion(surface.suggestions[0].id)
    await surface.save()  # with save_callback=store.document_saver(doc_id)
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from config import LocatorSettings, config

from .autosave import AutoSaver, SaveCallback
from .dictionary import DictionaryAnalyzer
from .differ import diff
from .events import NullEventSink, SuggestionEventSink
from .locators import anchor, locate_suggestion
from .merger import merge
from .models import Highlight, Notification, NotificationLevel, Suggestion, SuggestionSource, UserSettings
from .reposition import reposition, reposition_after_replacement
from .scheduler import AnalysisScheduler
from .semantic import SemanticAnalyzer

logger = logging.getLogger(__name__)

APPLY_FAILED_TITLE = "Could not apply suggestion"
APPLY_FAILED_DESCRIPTION = "The original text could not be found in the document. Please apply changes manually."
APPLIED_TITLE = "Suggestion applied"
APPLIED_DESCRIPTION = "The suggestion has been applied to your text."
SAVED_TITLE = "Document saved"
SAVED_DESCRIPTION = "Your document has been saved successfully."
SAVE_FAILED_TITLE = "Failed to save document"
SAVE_FAILED_DESCRIPTION = "Please try again later."
DEFAULT_TITLE = "Untitled Document"


class EditorSurface:
    """
    Text buffer, caret, suggestion set, selection and notifications for one
    open document.

    A scheduler is created only when at least one producer is supplied;
    without one the surface still reconciles suggestions merged by hand.
    With a save callback, title and content changes are autosaved after a
    quiet period and save() performs a manual save.
    """

    def __init__(
        self,
        text: str = "",
        dictionary: Optional[DictionaryAnalyzer] = None,
        semantic: Optional[SemanticAnalyzer] = None,
        user_settings: Optional[UserSettings] = None,
        event_sink: Optional[SuggestionEventSink] = None,
        title: str = DEFAULT_TITLE,
        save_callback: Optional[SaveCallback] = None,
        session_id: str = "document",
        locator_settings: Optional[LocatorSettings] = None,
        **scheduler_options,
    ):
        self._text = text
        self._caret = len(text)
        self.suggestions: List[Suggestion] = []
        self.selected_id: Optional[str] = None
        self.notifications: List[Notification] = []
        self.analyzing = False
        self.event_sink = event_sink or NullEventSink()
        self.locator_settings = locator_settings or config.LOCATOR
        self.title = title

        editor_settings = scheduler_options.get("editor_settings") or config.EDITOR
        self._autosave_delay = editor_settings.autosave_delay_seconds
        self.autosaver: Optional[AutoSaver] = None
        if save_callback is not None:
            self.autosaver = AutoSaver(save_callback, self._autosave_delay, title, text)

        self.scheduler: Optional[AnalysisScheduler] = None
        if dictionary is not None or semantic is not None:
            self.scheduler = AnalysisScheduler(
                self,
                dictionary=dictionary,
                semantic=semantic,
                user_settings=user_settings,
                session_id=session_id,
                locator_settings=self.locator_settings,
                **scheduler_options,
            )

    @property
    def text(self) -> str:
        return self._text

    @property
    def caret(self) -> int:
        return self._caret

    @property
    def selected(self) -> Optional[Suggestion]:
        return self._find(self.selected_id) if self.selected_id else None

    def _find(self, suggestion_id: str) -> Optional[Suggestion]:
        for suggestion in self.suggestions:
            if suggestion.id == suggestion_id:
                return suggestion
        return None

    def _sync_selection(self) -> None:
        if self.selected_id and self._find(self.selected_id) is None:
            logger.debug(f"Selected suggestion {self.selected_id} no longer live, clearing selection")
            self.selected_id = None

    def _touch_autosave(self) -> None:
        if self.autosaver is not None:
            self.autosaver.touch(self.title, self._text)

    def _emit(self, event: str, suggestion: Suggestion) -> None:
        try:
            getattr(self.event_sink, event)(suggestion)
        except Exception:
            logger.warning(f"Event sink failed on {event} for {suggestion.id}", exc_info=True)

    # =========================================================================
    # Editing
    # =========================================================================

    def handle_input(self, new_text: str, caret: Optional[int] = None) -> None:
        """
        Apply a user edit: reconcile suggestion spans synchronously, then let
        the scheduler decide what to analyze.
        """
        old_text = self._text
        self._caret = len(new_text) if caret is None else max(0, min(caret, len(new_text)))
        if new_text == old_text:
            return

        change = diff(old_text, new_text)
        self._text = new_text

        if self.suggestions:
            before = len(self.suggestions)
            self.suggestions = reposition(
                self.suggestions, old_text, new_text, change.change_start, self.locator_settings
            )
            self._sync_selection()
            if len(self.suggestions) != before:
                logger.debug(f"Edit at {change.change_start} removed {before - len(self.suggestions)} suggestion(s)")

        self._touch_autosave()

        if self.scheduler is not None:
            self.scheduler.on_keystroke(new_text, self._caret)

    def merge_incoming(
        self,
        incoming: Sequence[Suggestion],
        source: Optional[SuggestionSource] = None,
    ) -> List[Suggestion]:
        """Merge one producer's located suggestions into the live set."""
        before_ids = {s.id for s in self.suggestions}
        self.suggestions = merge(self.suggestions, incoming, self._text, source)
        self._sync_selection()
        for suggestion in self.suggestions:
            if suggestion.id not in before_ids:
                self._emit("suggestion_shown", suggestion)
        return list(self.suggestions)

    # =========================================================================
    # Selection
    # =========================================================================

    def select_suggestion(self, suggestion_id: str) -> Optional[Suggestion]:
        """Select a suggestion and move the caret to its start."""
        suggestion = self._find(suggestion_id)
        if suggestion is None:
            return None
        if not anchor(suggestion, self._text, self.locator_settings):
            self.suggestions = [s for s in self.suggestions if s.id != suggestion_id]
            self._sync_selection()
            return None
        self.selected_id = suggestion_id
        self._caret = suggestion.span.start
        return suggestion

    def clear_selection(self) -> None:
        self.selected_id = None

    # =========================================================================
    # Accept / dismiss
    # =========================================================================

    def apply_suggestion(self, suggestion_id: str) -> bool:
        """
        Replace the suggestion's text with its replacement.

        When the original text cannot be found, an error notification is
        raised and neither the text nor the suggestion set changes.

        Returns:
            True if the document was modified
        """
        suggestion = self._find(suggestion_id)
        if suggestion is None:
            logger.debug(f"Apply requested for unknown suggestion {suggestion_id}")
            return False

        result = locate_suggestion(self._text, suggestion, self.locator_settings)
        if not result.verified(self._text, suggestion.original):
            self.notify(NotificationLevel.ERROR, APPLY_FAILED_TITLE, APPLY_FAILED_DESCRIPTION)
            return False

        new_text = self._text[:result.start] + suggestion.suggested + self._text[result.end:]
        delta = len(suggestion.suggested) - len(suggestion.original)
        remaining = [s for s in self.suggestions if s.id != suggestion_id]

        self._text = new_text
        self._caret = result.start + len(suggestion.suggested)
        self.suggestions = reposition_after_replacement(
            remaining, new_text, result.start, result.end, delta, self.locator_settings
        )
        self.selected_id = None

        logger.debug(
            f"Applied {suggestion.id}: '{suggestion.original}' -> '{suggestion.suggested}' at {result.start}, "
            f"{len(self.suggestions)} suggestion(s) remain"
        )
        self._touch_autosave()
        self._emit("suggestion_accepted", suggestion)
        self.notify(NotificationLevel.INFO, APPLIED_TITLE, APPLIED_DESCRIPTION)
        return True

    def dismiss_suggestion(self, suggestion_id: str) -> bool:
        suggestion = self._find(suggestion_id)
        if suggestion is None:
            return False
        self.suggestions = [s for s in self.suggestions if s.id != suggestion_id]
        if self.selected_id == suggestion_id:
            self.selected_id = None
        self._emit("suggestion_dismissed", suggestion)
        return True

    # =========================================================================
    # Rendering
    # =========================================================================

    def highlights(self) -> List[Highlight]:
        """
        Non-overlapping highlight ranges in document order.

        The selected suggestion is placed first, then the rest by start
        offset; a range overlapping one already placed is not rendered.
        """
        ordered = sorted(
            (s for s in self.suggestions if s.matches(self._text)),
            key=lambda s: (s.id != self.selected_id, s.span.start),
        )
        placed: List[Highlight] = []
        for suggestion in ordered:
            if any(suggestion.span.start < h.end and suggestion.span.end > h.start for h in placed):
                continue
            placed.append(
                Highlight(
                    start=suggestion.span.start,
                    end=suggestion.span.end,
                    suggestion=suggestion,
                    selected=suggestion.id == self.selected_id,
                )
            )
        placed.sort(key=lambda h: h.start)
        return placed

    # =========================================================================
    # Notifications
    # =========================================================================

    def notify(self, level: NotificationLevel, title: str, description: str = "") -> None:
        self.notifications.append(Notification(level=level, title=title, description=description))

    def dismiss_notification(self, index: int = 0) -> Optional[Notification]:
        if 0 <= index < len(self.notifications):
            return self.notifications.pop(index)
        return None

    # =========================================================================
    # Session
    # =========================================================================

    def open_document(
        self,
        text: str,
        user_settings: Optional[UserSettings] = None,
        title: str = DEFAULT_TITLE,
        save_callback: Optional[SaveCallback] = None,
    ) -> None:
        """Switch to another document; all per-document state starts over."""
        if self.autosaver is not None:
            self.autosaver.reset(title, text)
        if save_callback is not None:
            self.autosaver = AutoSaver(save_callback, self._autosave_delay, title, text)
        self.title = title
        if self.scheduler is not None:
            self.scheduler.reset()
            if user_settings is not None:
                self.scheduler.user_settings = user_settings
        self._text = text
        self._caret = 0
        self.suggestions = []
        self.selected_id = None
        self.notifications = []

    def close(self) -> None:
        if self.scheduler is not None:
            self.scheduler.close()
        if self.autosaver is not None:
            self.autosaver.cancel()
        self.suggestions = []
        self.selected_id = None

    def set_title(self, title: str) -> None:
        self.title = title
        self._touch_autosave()

    async def save(self) -> bool:
        """
        Manual save of title and content; the outcome becomes a notification.

        Returns:
            True if the save callback succeeded
        """
        if self.autosaver is None:
            logger.debug("Save requested without a save callback")
            return False
        if await self.autosaver.save_now(self.title, self._text):
            self.notify(NotificationLevel.INFO, SAVED_TITLE, SAVED_DESCRIPTION)
            return True
        self.notify(NotificationLevel.ERROR, SAVE_FAILED_TITLE, SAVE_FAILED_DESCRIPTION)
        return False

    async def analyze_now(self) -> List[Suggestion]:
        """Manual full-document analysis; failures become a warning notification."""
        if self.scheduler is None:
            return []
        self.analyzing = True
        try:
            return await self.scheduler.analyze_now()
        finally:
            self.analyzing = False

    async def drain(self) -> None:
        if self.scheduler is not None:
            await self.scheduler.drain()
        if self.autosaver is not None:
            await self.autosaver.drain()
