"""
Tests for suggest_edit/sections.py - section partitioning and change detection.

Test Areas:
1. section_hash()
2. split_sections(): paragraphs, sentences, guards, short sentences
3. changed_sections()
"""

import pytest

from config import SectionSettings
from suggest_edit.sections import changed_sections, section_hash, split_sections


# =============================================================================
# TEST DATA
# =============================================================================

TWO_PARAGRAPHS = "Para one sentence. Another sentence here.\n\nPara two."

SENTENCE_SETTINGS = SectionSettings(
    paragraph_threshold=20,
    min_sentence_length=10,
    abbreviation_max_length=10,
    keep_short_sentences=True,
)

DROP_SHORT_SETTINGS = SENTENCE_SETTINGS.model_copy(update={"keep_short_sentences": False})


def assert_sections_match_text(text, sections):
    for section in sections:
        assert text[section.start_index:section.end_index] == section.content
    for first, second in zip(sections, sections[1:]):
        assert first.end_index <= second.start_index


# =============================================================================
# TESTS: section_hash
# =============================================================================

class TestSectionHash:

    def test_is_eight_hex_chars(self):
        value = section_hash("Para two.")
        assert len(value) == 8
        int(value, 16)

    def test_ignores_surrounding_whitespace(self):
        assert section_hash("  Para two.\n") == section_hash("Para two.")

    def test_is_order_sensitive(self):
        assert section_hash("ab") != section_hash("ba")

    def test_is_deterministic(self):
        assert section_hash("same content") == section_hash("same content")


# =============================================================================
# TESTS: split_sections
# =============================================================================

class TestSplitSections:

    def test_short_paragraphs_are_one_section_each(self):
        sections = split_sections(TWO_PARAGRAPHS, SectionSettings())
        assert [s.content for s in sections] == [
            "Para one sentence. Another sentence here.",
            "Para two.",
        ]
        assert_sections_match_text(TWO_PARAGRAPHS, sections)

    def test_blank_text_has_no_sections(self):
        assert split_sections("   \n\n  ") == []

    def test_long_paragraph_is_split_into_sentences(self):
        text = "This is the first sentence. This is the second sentence here."
        sections = split_sections(text, SENTENCE_SETTINGS)
        assert [s.content for s in sections] == [
            "This is the first sentence.",
            "This is the second sentence here.",
        ]
        assert_sections_match_text(text, sections)

    def test_terminator_runs_stay_together(self):
        text = "Is this really the end?! It seems so, at least for now..."
        sections = split_sections(text, SENTENCE_SETTINGS)
        assert sections[0].content == "Is this really the end?!"
        assert sections[1].content == "It seems so, at least for now..."

    def test_initial_does_not_end_a_sentence(self):
        text = "J. Smith wrote the first chapter today. Then he rested all afternoon."
        sections = split_sections(text, SENTENCE_SETTINGS)
        assert len(sections) == 2
        assert sections[0].content == "J. Smith wrote the first chapter today."

    def test_decimal_point_does_not_end_a_sentence(self):
        text = "The price rose to 3.14 dollars this week. Analysts expected less growth."
        sections = split_sections(text, SENTENCE_SETTINGS)
        assert len(sections) == 2
        assert "3.14 dollars" in sections[0].content

    def test_short_sentence_is_carried_into_next_section(self):
        text = "This is the first sentence. Ok. This is the third sentence here."
        sections = split_sections(text, SENTENCE_SETTINGS)
        assert [s.content for s in sections] == [
            "This is the first sentence.",
            "Ok. This is the third sentence here.",
        ]
        assert_sections_match_text(text, sections)

    def test_short_sentence_is_dropped_when_configured(self):
        text = "This is the first sentence. Ok. This is the third sentence here."
        sections = split_sections(text, DROP_SHORT_SETTINGS)
        assert [s.content for s in sections] == [
            "This is the first sentence.",
            "This is the third sentence here.",
        ]
        assert all("Ok." not in s.content for s in sections)

    def test_short_tail_is_folded_into_previous_sentence(self):
        text = "This is the first sentence. Ok"
        sections = split_sections(text, SENTENCE_SETTINGS)
        assert len(sections) == 1
        assert sections[0].content == text

    def test_short_tail_is_dropped_when_configured(self):
        text = "This is the first sentence. Ok"
        sections = split_sections(text, DROP_SHORT_SETTINGS)
        assert [s.content for s in sections] == ["This is the first sentence."]

    def test_whole_text_fallback(self):
        settings = DROP_SHORT_SETTINGS.model_copy(update={"paragraph_threshold": 1})
        sections = split_sections("Hi. Ok.", settings)
        assert len(sections) == 1
        assert sections[0].content == "Hi. Ok."

    def test_offsets_skip_leading_whitespace(self):
        text = "\n\n   Indented paragraph here."
        sections = split_sections(text, SectionSettings())
        assert sections[0].start_index == text.index("Indented")
        assert_sections_match_text(text, sections)


# =============================================================================
# TESTS: changed_sections
# =============================================================================

class TestChangedSections:

    def test_everything_is_new_on_first_pass(self):
        sections = split_sections(TWO_PARAGRAPHS)
        assert changed_sections([], sections) == sections

    def test_editing_second_paragraph_marks_only_it(self):
        before = split_sections(TWO_PARAGRAPHS, SectionSettings())
        after_text = TWO_PARAGRAPHS.replace("Para two.", "Para two, edited.")
        after = split_sections(after_text, SectionSettings())

        changed = changed_sections(before, after)

        assert [s.content for s in changed] == ["Para two, edited."]
        assert after[0].hash == before[0].hash

    def test_unchanged_text_has_no_changes(self):
        sections = split_sections(TWO_PARAGRAPHS)
        assert changed_sections(sections, split_sections(TWO_PARAGRAPHS)) == []

    def test_moved_section_is_not_a_change(self):
        before = split_sections("First block.\n\nSecond block.")
        after = split_sections("Intro.\n\nFirst block.\n\nSecond block.")
        assert [s.content for s in changed_sections(before, after)] == ["Intro."]

    @pytest.mark.parametrize("keep_short", [True, False])
    def test_sentence_edit_marks_only_that_sentence(self, keep_short):
        settings = SENTENCE_SETTINGS.model_copy(update={"keep_short_sentences": keep_short})
        text = "This is the first sentence. This is the second sentence here."
        edited = text.replace("second", "other")

        changed = changed_sections(split_sections(text, settings), split_sections(edited, settings))

        assert [s.content for s in changed] == ["This is the other sentence here."]
