"""
Suggest Edit Scheduler - Decides when and what to analyze for one document.

Passes:
- Word check: a keystroke that completes a word schedules a short debounced
  dictionary check over the last few words before the caret.
- Incremental pass: every keystroke resets an idle timer. When it fires the
  document is re-partitioned, section hashes are diffed against the
  previous partition, the dictionary runs over the changed sections (merged
  at once), and the remote analyzer is queried for the changed sections as
  a background task.
- Manual pass: analyze_now() sends the whole document to the remote
  analyzer, bypassing section diffing.

Every result is located and merged against the text current when it
arrives, never the text it was computed from. In-flight requests are never
cancelled; results belonging to a previous document session are discarded.

State kept across passes (previous partition, section cache) belongs to one
scheduler instance, i.e. one open document.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Sequence, Set

from config import EditorSettings, LocatorSettings, SectionSettings, config
from logging_utils import Phase, create_phase_logger

from .dictionary import DictionaryAnalyzer, DictionaryUnavailableError, trailing_words_start
from .locators import anchor
from .models import NotificationLevel, Span, Suggestion, SuggestionSource, TextSection, UserSettings
from .sections import changed_sections, split_sections
from .semantic import SemanticAnalysisError, SemanticAnalyzer

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_TITLE = "Analysis failed"
ANALYSIS_FAILED_DESCRIPTION = "Failed to analyze your text. Please try again."


class SchedulerState(str, Enum):
    IDLE = "idle"
    PENDING_IMMEDIATE = "pending_immediate"
    PENDING_DEBOUNCED = "pending_debounced"
    ANALYZING_LOCAL = "analyzing_local"
    ANALYZING_REMOTE = "analyzing_remote"


class AnalysisHost(Protocol):
    """What the scheduler needs from the surface that owns the text."""

    @property
    def text(self) -> str: ...

    @property
    def caret(self) -> int: ...

    def merge_incoming(self, incoming: Sequence[Suggestion], source: SuggestionSource) -> List[Suggestion]: ...

    def notify(self, level: NotificationLevel, title: str, description: str = "") -> None: ...


@dataclass(frozen=True)
class _Segment:
    """A slice of the document sent to the remote analyzer."""

    request_offset: int
    document_start: int
    content: str
    section_hash: Optional[str] = None


def completes_word(text: str, caret: int, min_letters: int = 2) -> bool:
    """
    True when the character before the caret ends a word.

    The keystroke must be whitespace or punctuation and the token before it
    must be at least `min_letters` ASCII letters.
    """
    if caret <= 0 or caret > len(text):
        return False
    last = text[caret - 1]
    if last.isalnum() or last in "'_":
        return False

    letters = 0
    index = caret - 2
    while index >= 0 and text[index].isascii() and text[index].isalpha():
        letters += 1
        index -= 1
    return letters >= min_letters


class AnalysisScheduler:
    """
    Per-document orchestration of the dictionary and semantic producers.

    Must be driven from a running asyncio event loop; timers use
    loop.call_later and remote calls run as background tasks.
    """

    def __init__(
        self,
        host: AnalysisHost,
        dictionary: Optional[DictionaryAnalyzer] = None,
        semantic: Optional[SemanticAnalyzer] = None,
        user_settings: Optional[UserSettings] = None,
        session_id: str = "document",
        editor_settings: Optional[EditorSettings] = None,
        section_settings: Optional[SectionSettings] = None,
        locator_settings: Optional[LocatorSettings] = None,
    ):
        self.host = host
        self.dictionary = dictionary
        self.semantic = semantic
        self.user_settings = user_settings or UserSettings()
        self.settings = editor_settings or config.EDITOR
        self.section_settings = section_settings or config.SECTIONS
        self.locator_settings = locator_settings or config.LOCATOR
        self.phase_logger = create_phase_logger(session_id, verbose=self.settings.verbose)

        self.state = SchedulerState.IDLE
        self._previous_sections: List[TextSection] = []
        self._section_cache: "OrderedDict[str, List[Suggestion]]" = OrderedDict()
        self._idle_handle: Optional[asyncio.TimerHandle] = None
        self._word_handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._generation = 0

    # =========================================================================
    # Timers
    # =========================================================================

    def on_keystroke(self, text: str, caret: int) -> None:
        """
        Register an edit. Resets the idle timer and, when the keystroke
        completes a word, (re)schedules the immediate word check.

        Without a running event loop no timer can be armed; the edit is
        still accepted and analysis waits for the next call made from a loop.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, analysis timers not scheduled")
            return

        if self._idle_handle is not None:
            self._idle_handle.cancel()
        self._idle_handle = loop.call_later(self.settings.idle_delay_seconds, self._on_idle_timer)

        if self.dictionary is not None and completes_word(text, caret, self.settings.min_word_letters):
            if self._word_handle is not None:
                self._word_handle.cancel()
            self._word_handle = loop.call_later(self.settings.word_check_delay_seconds, self._on_word_timer)

        if self._word_handle is not None and not self._word_handle.cancelled():
            self.state = SchedulerState.PENDING_IMMEDIATE
        else:
            self.state = SchedulerState.PENDING_DEBOUNCED

    def _on_word_timer(self) -> None:
        self._word_handle = None
        if self._idle_handle is not None:
            self.state = SchedulerState.PENDING_DEBOUNCED
        # Run the check on the next loop iteration, after pending input callbacks
        asyncio.get_running_loop().call_soon(self._spawn, self.run_word_check())

    def _on_idle_timer(self) -> None:
        self._idle_handle = None
        self._spawn(self.run_incremental_pass())

    def _cancel_timers(self) -> None:
        for handle in (self._idle_handle, self._word_handle):
            if handle is not None:
                handle.cancel()
        self._idle_handle = None
        self._word_handle = None

    # =========================================================================
    # Background tasks
    # =========================================================================

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Analysis task failed", exc_info=exc)
        if not self._tasks and self._idle_handle is None and self._word_handle is None:
            self.state = SchedulerState.IDLE

    async def drain(self) -> None:
        """Wait until no analysis task is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def _reconcile(self, incoming: Sequence[Suggestion], source: SuggestionSource, generation: int) -> List[Suggestion]:
        """Locate incoming suggestions on the current text and merge them."""
        if generation != self._generation:
            logger.debug(f"Discarding {len(incoming)} {source.value} result(s) from a closed session")
            return []

        with self.phase_logger.phase(Phase.RECONCILE, sub_label=source.value):
            current = self.host.text
            located = [s for s in incoming if anchor(s, current, self.locator_settings)]
            dropped = len(incoming) - len(located)
            if dropped:
                self.phase_logger.debug(f"{dropped} {source.value} suggestion(s) could not be located")
            if located:
                live = self.host.merge_incoming(located, source)
                self.phase_logger.log_merge_result(source.value, len(located), len(live))
            return located

    # =========================================================================
    # Word check
    # =========================================================================

    async def run_word_check(self, caret: Optional[int] = None) -> List[Suggestion]:
        """
        Dictionary check over the last few words before the caret.

        A word still being typed at the caret is left out.
        """
        if self.dictionary is None:
            return []

        generation = self._generation
        text = self.host.text
        end = self.host.caret if caret is None else caret
        end = max(0, min(end, len(text)))
        while end > 0 and text[end - 1].isalpha():
            end -= 1
        start = trailing_words_start(text, end, self.settings.word_check_window_words)
        if start >= end:
            return []

        self.state = SchedulerState.ANALYZING_LOCAL
        with self.phase_logger.phase(Phase.WORD_CHECK, sub_label=f"{start}-{end}"):
            try:
                found = await self.dictionary.analyze(text, start, end)
            except DictionaryUnavailableError as e:
                logger.debug(f"Dictionary unavailable, skipping word check: {e}")
                return []

        return self._reconcile(found, SuggestionSource.DICTIONARY, generation)

    # =========================================================================
    # Incremental pass
    # =========================================================================

    async def run_incremental_pass(self) -> List[TextSection]:
        """
        Re-partition, analyze changed sections locally, then remotely in the
        background.

        Returns:
            The changed sections (empty when nothing changed)
        """
        generation = self._generation
        text = self.host.text

        with self.phase_logger.phase(Phase.SECTION_DIFF):
            sections = split_sections(text, self.section_settings)
            changed = changed_sections(self._previous_sections, sections)
            self._previous_sections = sections
            self.phase_logger.debug(f"{len(changed)} of {len(sections)} section(s) changed")

        if not changed:
            return []

        to_query: List[TextSection] = []
        for section in changed:
            cached = self._cache_get(section.hash)
            if cached is None:
                to_query.append(section)
            elif cached:
                restored = [self._restore(s, section.start_index) for s in cached]
                self._reconcile(restored, SuggestionSource.SEMANTIC, generation)

        await self._local_pass(text, changed, generation)

        if self.semantic is not None and to_query:
            segments = self._segments(to_query)
            request_text = "\n\n".join(segment.content for segment in segments)
            if len(request_text) >= self.settings.min_analysis_length:
                self.state = SchedulerState.ANALYZING_REMOTE
                self._spawn(self._remote_pass(request_text, segments, text, manual=False, generation=generation))

        return changed

    async def _local_pass(self, text: str, sections: Sequence[TextSection], generation: int) -> None:
        if self.dictionary is None:
            return
        self.state = SchedulerState.ANALYZING_LOCAL
        found: List[Suggestion] = []
        with self.phase_logger.phase(Phase.LOCAL_PASS, sub_label=f"{len(sections)} section(s)"):
            try:
                for section in sections:
                    found.extend(await self.dictionary.analyze(text, section.start_index, section.end_index))
            except DictionaryUnavailableError as e:
                logger.debug(f"Dictionary unavailable, skipping local pass: {e}")
                return
        self._reconcile(found, SuggestionSource.DICTIONARY, generation)

    @staticmethod
    def _segments(sections: Sequence[TextSection]) -> List[_Segment]:
        segments = []
        offset = 0
        for section in sections:
            segments.append(_Segment(offset, section.start_index, section.content, section.hash))
            offset += len(section.content) + 2
        return segments

    # =========================================================================
    # Remote pass
    # =========================================================================

    async def _remote_pass(
        self,
        request_text: str,
        segments: Sequence[_Segment],
        document_text: str,
        manual: bool,
        generation: int,
    ) -> List[Suggestion]:
        with self.phase_logger.phase(Phase.REMOTE_PASS, sub_label=f"{len(request_text)} chars"):
            try:
                found = await self.semantic.analyze(request_text, self.user_settings)
            except SemanticAnalysisError as e:
                if manual and generation == self._generation:
                    self.host.notify(NotificationLevel.WARNING, ANALYSIS_FAILED_TITLE, ANALYSIS_FAILED_DESCRIPTION)
                else:
                    logger.warning(f"Background semantic analysis failed: {e}")
                return []

        if generation != self._generation:
            logger.debug(f"Discarding {len(found)} semantic result(s) from a closed session")
            return []

        for suggestion in found:
            self._map_to_document(suggestion, segments)
            # Verified position in the snapshot that was sent, used as the hint from here on
            anchor(suggestion, document_text, self.locator_settings)
        self._cache_results(found, segments, document_text)
        return self._reconcile(found, SuggestionSource.SEMANTIC, generation)

    @staticmethod
    def _map_to_document(suggestion: Suggestion, segments: Sequence[_Segment]) -> None:
        """Turn a request-relative hint into a document-relative one."""
        start = suggestion.span.start
        for segment in segments:
            if segment.request_offset <= start < segment.request_offset + len(segment.content):
                delta = segment.document_start - segment.request_offset
                suggestion.move_to(start + delta, suggestion.span.end + delta)
                return

    # =========================================================================
    # Section cache
    # =========================================================================

    def _cache_get(self, section_hash: str) -> Optional[List[Suggestion]]:
        cached = self._section_cache.get(section_hash)
        if cached is not None:
            self._section_cache.move_to_end(section_hash)
        return cached

    def _cache_results(self, found: Sequence[Suggestion], segments: Sequence[_Segment], document_text: str) -> None:
        """Remember verified results per section, with section-relative spans."""
        if self.settings.section_cache_size <= 0:
            return
        for segment in segments:
            if segment.section_hash is None:
                continue
            section_end = segment.document_start + len(segment.content)
            entries = []
            for suggestion in found:
                if not suggestion.matches(document_text):
                    continue
                if segment.document_start <= suggestion.span.start and suggestion.span.end <= section_end:
                    relative = suggestion.model_copy(deep=True)
                    relative.move_to(
                        suggestion.span.start - segment.document_start,
                        suggestion.span.end - segment.document_start,
                    )
                    entries.append(relative)
            self._section_cache[segment.section_hash] = entries
            self._section_cache.move_to_end(segment.section_hash)
        while len(self._section_cache) > self.settings.section_cache_size:
            self._section_cache.popitem(last=False)

    @staticmethod
    def _restore(cached: Suggestion, section_start: int) -> Suggestion:
        restored = cached.model_copy(deep=True)
        restored.id = SuggestionSource.SEMANTIC.new_id()
        restored.span = Span(start=cached.span.start + section_start, end=cached.span.end + section_start)
        return restored

    def cached_hashes(self) -> List[str]:
        return list(self._section_cache.keys())

    # =========================================================================
    # Manual pass and session control
    # =========================================================================

    async def analyze_now(self) -> List[Suggestion]:
        """
        Full-document semantic pass, awaited by the caller.

        Failures surface as a warning notification on the host.
        """
        if self.semantic is None:
            return []
        text = self.host.text
        if len(text) < self.settings.min_analysis_length:
            return []

        self.state = SchedulerState.ANALYZING_REMOTE
        try:
            return await self._remote_pass(
                text, [_Segment(0, 0, text)], text, manual=True, generation=self._generation
            )
        finally:
            if not self._tasks and self._idle_handle is None and self._word_handle is None:
                self.state = SchedulerState.IDLE

    def reset(self) -> None:
        """Forget the partition, the cache and pending timers (document switch)."""
        self._cancel_timers()
        self._generation += 1
        self._previous_sections = []
        self._section_cache.clear()
        self.state = SchedulerState.IDLE

    def close(self) -> None:
        self.reset()
