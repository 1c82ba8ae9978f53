"""
Tests for suggest_edit/scheduler.py - when and what gets analyzed.

These tests verify:
1. Word completion detection
2. Incremental pass: section diffing, local pass, remote pass
3. Section cache restores semantic results without a remote call
4. Failure handling (silent in the background, notified when manual)
5. Results are reconciled against the text current when they arrive
6. Timers: immediate word check and debounced idle pass
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from config import EditorSettings
from suggest_edit.dictionary import DictionaryAnalyzer
from suggest_edit.models import NotificationLevel, SuggestionKind, SuggestionSource
from suggest_edit.scheduler import (
    ANALYSIS_FAILED_TITLE,
    SchedulerState,
    completes_word,
)
from suggest_edit.semantic import SemanticAnalysisError
from suggest_edit.surface import EditorSurface

from conftest import StaticDictionaryAnalyzer, make_suggestion, semantic_returning


# =============================================================================
# TEST DATA
# =============================================================================

FIRST_PARAGRAPH = "Teh cat sat on the mat today."
SECOND_PARAGRAPH = "Our synergy is strong with the team."
DOC = f"{FIRST_PARAGRAPH}\n\n{SECOND_PARAGRAPH}"

QUIET = EditorSettings(idle_delay_seconds=60, word_check_delay_seconds=60)


def _surface(text=DOC, dictionary=None, semantic=None, settings=QUIET):
    return EditorSurface(text, dictionary=dictionary, semantic=semantic, editor_settings=settings)


def _originals(surface):
    return sorted(s.original for s in surface.suggestions)


@pytest.fixture
def synergy_analyzer():
    return semantic_returning(("synergy", "cooperation", SuggestionKind.TONE))


def _gated_analyzer(gate):
    async def _analyze(text, settings):
        await gate.wait()
        return [make_suggestion(text, "synergy", "cooperation", SuggestionSource.SEMANTIC, SuggestionKind.TONE)]

    analyzer = MagicMock()
    analyzer.analyze = AsyncMock(side_effect=_analyze)
    return analyzer


# =============================================================================
# TESTS: completes_word
# =============================================================================

class TestCompletesWord:

    @pytest.mark.parametrize(
        "text,caret,expected",
        [
            ("Teh ", 4, True),
            ("hello,", 6, True),
            ("Teh", 3, False),
            ("a ", 2, False),
            ("12 ", 3, False),
            ("", 0, False),
            ("don'", 4, False),
        ],
    )
    def test_completes_word(self, text, caret, expected):
        assert completes_word(text, caret) is expected

    def test_minimum_letters_is_configurable(self):
        assert completes_word("a ", 2, min_letters=1) is True


# =============================================================================
# TESTS: Incremental pass
# =============================================================================

class TestIncrementalPass:

    @pytest.mark.asyncio
    async def test_first_pass_runs_both_producers(self, static_dictionary, synergy_analyzer):
        surface = _surface(dictionary=static_dictionary, semantic=synergy_analyzer)

        changed = await surface.scheduler.run_incremental_pass()
        await surface.drain()

        assert [s.content for s in changed] == [FIRST_PARAGRAPH, SECOND_PARAGRAPH]
        assert _originals(surface) == ["Teh", "synergy"]
        assert all(s.matches(surface.text) for s in surface.suggestions)
        synergy_analyzer.analyze.assert_awaited_once()
        assert synergy_analyzer.analyze.call_args[0][0] == DOC

    @pytest.mark.asyncio
    async def test_unchanged_document_is_not_reanalyzed(self, static_dictionary, synergy_analyzer):
        surface = _surface(dictionary=static_dictionary, semantic=synergy_analyzer)
        await surface.scheduler.run_incremental_pass()
        await surface.drain()

        changed = await surface.scheduler.run_incremental_pass()
        await surface.drain()

        assert changed == []
        assert synergy_analyzer.analyze.await_count == 1

    @pytest.mark.asyncio
    async def test_only_changed_section_is_sent(self, static_dictionary, synergy_analyzer):
        surface = _surface(dictionary=static_dictionary, semantic=synergy_analyzer)
        await surface.scheduler.run_incremental_pass()
        await surface.drain()

        edited = DOC.replace("the team", "the whole team")
        surface.handle_input(edited)
        changed = await surface.scheduler.run_incremental_pass()
        await surface.drain()

        assert [s.content for s in changed] == ["Our synergy is strong with the whole team."]
        assert synergy_analyzer.analyze.call_args[0][0] == "Our synergy is strong with the whole team."
        assert static_dictionary.calls[-1] == (changed[0].start_index, changed[0].end_index)
        # First paragraph's suggestion survives untouched
        assert _originals(surface) == ["Teh", "synergy"]
        surface.close()

    @pytest.mark.asyncio
    async def test_cached_section_is_restored_without_remote_call(self, synergy_analyzer):
        surface = _surface(semantic=synergy_analyzer)
        await surface.scheduler.run_incremental_pass()
        await surface.drain()

        edited = DOC.replace("the team", "the whole team")
        surface.handle_input(edited)
        await surface.scheduler.run_incremental_pass()
        await surface.drain()
        assert synergy_analyzer.analyze.await_count == 2

        surface.handle_input(DOC)
        changed = await surface.scheduler.run_incremental_pass()
        await surface.drain()

        assert [s.content for s in changed] == [SECOND_PARAGRAPH]
        assert synergy_analyzer.analyze.await_count == 2
        [synergy] = surface.suggestions
        assert synergy.start == DOC.index("synergy")
        assert synergy.source == SuggestionSource.SEMANTIC
        surface.close()

    @pytest.mark.asyncio
    async def test_short_request_skips_remote(self, synergy_analyzer):
        surface = _surface(text="Tiny note.", semantic=synergy_analyzer)

        await surface.scheduler.run_incremental_pass()
        await surface.drain()

        synergy_analyzer.analyze.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_section_cache_is_bounded(self, synergy_analyzer):
        settings = QUIET.model_copy(update={"section_cache_size": 1})
        surface = _surface(semantic=synergy_analyzer, settings=settings)

        await surface.scheduler.run_incremental_pass()
        await surface.drain()

        assert len(surface.scheduler.cached_hashes()) == 1

    @pytest.mark.asyncio
    async def test_unavailable_dictionary_does_not_block_remote(self, tmp_path, synergy_analyzer):
        dictionary = DictionaryAnalyzer(str(tmp_path / "none.aff"), str(tmp_path / "none.dic"))
        surface = _surface(dictionary=dictionary, semantic=synergy_analyzer)

        await surface.scheduler.run_incremental_pass()
        await surface.drain()

        assert _originals(surface) == ["synergy"]
        assert surface.notifications == []


# =============================================================================
# TESTS: Failures
# =============================================================================

class TestFailures:

    @pytest.mark.asyncio
    async def test_background_failure_is_silent(self, static_dictionary):
        semantic = MagicMock()
        semantic.analyze = AsyncMock(side_effect=SemanticAnalysisError("Analyzer returned HTTP 500", 500))
        surface = _surface(dictionary=static_dictionary, semantic=semantic)

        await surface.scheduler.run_incremental_pass()
        await surface.drain()

        assert surface.notifications == []
        assert _originals(surface) == ["Teh"]
        assert surface.scheduler.state == SchedulerState.IDLE

    @pytest.mark.asyncio
    async def test_manual_failure_notifies(self):
        semantic = MagicMock()
        semantic.analyze = AsyncMock(side_effect=SemanticAnalysisError("Analyzer request timed out"))
        surface = _surface(semantic=semantic)

        result = await surface.analyze_now()

        assert result == []
        assert len(surface.notifications) == 1
        assert surface.notifications[0].level == NotificationLevel.WARNING
        assert surface.notifications[0].title == ANALYSIS_FAILED_TITLE
        assert surface.analyzing is False


# =============================================================================
# TESTS: Manual pass
# =============================================================================

class TestAnalyzeNow:

    @pytest.mark.asyncio
    async def test_sends_whole_document_every_time(self, synergy_analyzer):
        surface = _surface(semantic=synergy_analyzer)

        await surface.analyze_now()
        await surface.analyze_now()

        assert synergy_analyzer.analyze.await_count == 2
        assert all(call.args[0] == DOC for call in synergy_analyzer.analyze.await_args_list)
        assert _originals(surface) == ["synergy"]

    @pytest.mark.asyncio
    async def test_short_document_is_not_sent(self, synergy_analyzer):
        surface = _surface(text="Too short.", semantic=synergy_analyzer)

        assert await surface.analyze_now() == []
        synergy_analyzer.analyze.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_without_semantic_analyzer(self, static_dictionary):
        surface = _surface(dictionary=static_dictionary)
        assert await surface.analyze_now() == []


# =============================================================================
# TESTS: Late results
# =============================================================================

class TestLateResults:

    @pytest.mark.asyncio
    async def test_result_is_located_on_current_text(self):
        gate = asyncio.Event()
        surface = _surface(semantic=_gated_analyzer(gate))

        await surface.scheduler.run_incremental_pass()
        edited = "A new opening line.\n\n" + DOC
        surface.handle_input(edited)
        gate.set()
        await surface.drain()

        [synergy] = surface.suggestions
        assert synergy.start == edited.index("synergy")
        assert synergy.matches(surface.text)
        surface.close()

    @pytest.mark.asyncio
    async def test_result_for_removed_text_is_dropped(self):
        gate = asyncio.Event()
        surface = _surface(semantic=_gated_analyzer(gate))

        await surface.scheduler.run_incremental_pass()
        surface.handle_input(FIRST_PARAGRAPH)
        gate.set()
        await surface.drain()

        assert surface.suggestions == []
        surface.close()

    @pytest.mark.asyncio
    async def test_result_from_closed_session_is_discarded(self):
        gate = asyncio.Event()
        surface = _surface(semantic=_gated_analyzer(gate))

        await surface.scheduler.run_incremental_pass()
        surface.open_document("Another document that also mentions synergy.")
        gate.set()
        await surface.drain()

        assert surface.suggestions == []


# =============================================================================
# TESTS: Timers
# =============================================================================

class TestTimers:

    @pytest.mark.asyncio
    async def test_state_tracks_pending_work(self, static_dictionary):
        surface = _surface(text="", dictionary=static_dictionary)

        surface.handle_input("Teh", 3)
        assert surface.scheduler.state == SchedulerState.PENDING_DEBOUNCED

        surface.handle_input("Teh ", 4)
        assert surface.scheduler.state == SchedulerState.PENDING_IMMEDIATE
        surface.close()
        assert surface.scheduler.state == SchedulerState.IDLE

    @pytest.mark.asyncio
    async def test_completed_word_is_checked_immediately(self, static_dictionary):
        settings = EditorSettings(idle_delay_seconds=60, word_check_delay_seconds=0.01)
        surface = _surface(text="", dictionary=static_dictionary, settings=settings)

        surface.handle_input("Teh", 3)
        surface.handle_input("Teh ", 4)
        await asyncio.sleep(0.1)
        await surface.drain()

        assert _originals(surface) == ["Teh"]
        assert static_dictionary.calls == [(0, 4)]
        surface.close()

    @pytest.mark.asyncio
    async def test_word_in_progress_is_not_checked(self, static_dictionary):
        surface = _surface(text="Teh cat sa", dictionary=static_dictionary)

        await surface.scheduler.run_word_check(caret=len("Teh cat sa"))

        assert static_dictionary.calls == [(0, len("Teh cat "))]

    @pytest.mark.asyncio
    async def test_idle_timer_runs_one_pass_after_typing_stops(self, synergy_analyzer):
        settings = EditorSettings(idle_delay_seconds=0.15, word_check_delay_seconds=0.01)
        surface = _surface(text="", semantic=synergy_analyzer, settings=settings)

        for end in (len(FIRST_PARAGRAPH), len(FIRST_PARAGRAPH) + 2, len(DOC)):
            surface.handle_input(DOC[:end])
            await asyncio.sleep(0.03)
        synergy_analyzer.analyze.assert_not_awaited()

        await asyncio.sleep(0.4)
        await surface.drain()

        synergy_analyzer.analyze.assert_awaited_once()
        assert _originals(surface) == ["synergy"]
        surface.close()
