"""
Tests for suggest_edit/dictionary.py - the local spelling producer.

Test Areas:
1. Affix rule parsing and word expansion
2. Dictionary lookups and SymSpell-ranked corrections
3. Asset loading and the process-lifetime cache
4. DictionaryChecker / DictionaryAnalyzer output
"""

import os
from unittest.mock import patch

import pytest

from suggest_edit.dictionary import (
    Dictionary,
    DictionaryAnalyzer,
    DictionaryChecker,
    DictionaryUnavailableError,
    build_dictionary,
    clear_dictionary_cache,
    expand_word,
    load_dictionary,
    parse_affix_rules,
    trailing_words_start,
)
from suggest_edit.models import SuggestionKind, SuggestionSource

from conftest import SMALL_AFF, SMALL_DIC


# =============================================================================
# TESTS: Affix rules
# =============================================================================

class TestAffixRules:

    def test_parses_prefix_and_suffix_groups(self):
        table = parse_affix_rules(SMALL_AFF)
        assert set(table.rules) == {"U", "D", "S"}
        assert len(table.rules["D"]) == 2
        assert table.rules["U"][0].kind == "PFX"

    def test_expands_suffixes_by_condition(self):
        table = parse_affix_rules(SMALL_AFF)
        assert expand_word("bake", ["D"], table) == {"bake", "baked"}
        assert expand_word("lock", ["D"], table) == {"lock", "locked"}

    def test_cross_product_combines_prefix_and_suffix(self):
        table = parse_affix_rules(SMALL_AFF)
        forms = expand_word("lock", ["U", "D", "S"], table)
        assert forms == {"lock", "locked", "locks", "unlock", "unlocked", "unlocks"}

    def test_no_cross_product_without_flag(self):
        aff = "PFX U N 1\nPFX U 0 un .\nSFX S Y 1\nSFX S 0 s .\n"
        table = parse_affix_rules(aff)
        assert expand_word("lock", ["U", "S"], table) == {"lock", "locks", "unlock"}

    def test_strip_and_add(self):
        aff = "SFX D Y 1\nSFX D y ied [^aeiou]y\n"
        table = parse_affix_rules(aff)
        assert expand_word("apply", ["D"], table) == {"apply", "applied"}
        assert expand_word("play", ["D"], table) == {"play"}

    def test_comments_and_unknown_directives_are_ignored(self):
        aff = "SET UTF-8\nTRY abc\n# SFX S Y 1\nSFX S Y 1\nSFX S 0 s . # plural\n"
        table = parse_affix_rules(aff)
        assert list(table.rules) == ["S"]

    def test_long_flags(self):
        table = parse_affix_rules("FLAG long\n")
        assert table.split_flags("AaBb") == ["Aa", "Bb"]

    def test_numeric_flags(self):
        table = parse_affix_rules("FLAG num\n")
        assert table.split_flags("12,7") == ["12", "7"]


# =============================================================================
# TESTS: Dictionary
# =============================================================================

class TestDictionary:

    @pytest.fixture
    def dictionary(self):
        return build_dictionary(SMALL_AFF, SMALL_DIC)

    def test_count_line_is_not_a_word(self, dictionary):
        assert "9" not in dictionary.words
        assert "cats" in dictionary.words

    def test_lookup_is_case_insensitive(self, dictionary):
        assert dictionary.is_known("The")
        assert dictionary.is_known("CAT")
        assert "Unlocked" in dictionary

    def test_possessive_of_known_word(self, dictionary):
        assert dictionary.is_known("cat's")
        assert not dictionary.is_known("dgo's")

    def test_transposition_ranks_first(self):
        dictionary = Dictionary(["ten", "tea", "the", "then"])
        assert dictionary.corrections("teh")[0] == "the"

    def test_corrections_respect_max_distance(self):
        dictionary = Dictionary(["synergy"])
        assert dictionary.corrections("synrgy") == ["synergy"]
        assert dictionary.corrections("snrg", max_distance=2) == []

    def test_corrections_may_change_first_letter(self):
        dictionary = Dictionary(["cat"])
        assert dictionary.corrections("bat") == ["cat"]

    def test_lookup_reports_distance(self):
        dictionary = Dictionary(["the", "then"])
        assert dictionary.lookup("teh", limit=1) == [("the", 1)]

    def test_distance_is_capped_by_the_index(self):
        dictionary = Dictionary(["synergy"], max_edit_distance=1)
        assert dictionary.corrections("synrgey", max_distance=3) == []
        assert dictionary.corrections("synrgy", max_distance=3) == ["synergy"]

    def test_corrections_limit(self):
        dictionary = Dictionary(["bat", "bag", "bad", "ban"])
        assert len(dictionary.corrections("bax", limit=2)) == 2


# =============================================================================
# TESTS: Loading
# =============================================================================

class TestLoadDictionary:

    @pytest.mark.asyncio
    async def test_loads_from_files(self, dictionary_files):
        aff, dic = dictionary_files
        dictionary = await load_dictionary(aff, dic)
        assert dictionary.is_known("unlocks")

    @pytest.mark.asyncio
    async def test_second_load_is_cached(self, dictionary_files):
        aff, dic = dictionary_files
        first = await load_dictionary(aff, dic)
        os.remove(dic)
        second = await load_dictionary(aff, dic)
        assert second is first

    @pytest.mark.asyncio
    async def test_missing_asset_raises(self, tmp_path, dictionary_files):
        aff, _ = dictionary_files
        with pytest.raises(DictionaryUnavailableError) as exc_info:
            await load_dictionary(aff, str(tmp_path / "missing.dic"))
        assert exc_info.value.source.endswith("missing.dic")

    @pytest.mark.asyncio
    async def test_failure_is_remembered_until_cache_is_cleared(self, tmp_path, dictionary_files):
        """
        Given: A word list that is missing on the first load
        When: The file appears and the load is repeated
        Then: The failure is served from memory until clear_dictionary_cache()
        """
        aff, _ = dictionary_files
        dic = tmp_path / "late.dic"
        with pytest.raises(DictionaryUnavailableError):
            await load_dictionary(aff, str(dic))

        dic.write_text(SMALL_DIC, encoding="utf-8")
        with pytest.raises(DictionaryUnavailableError) as exc_info:
            await load_dictionary(aff, str(dic))
        assert exc_info.value.source == str(dic)

        clear_dictionary_cache()
        dictionary = await load_dictionary(aff, str(dic))
        assert dictionary.is_known("cat")

    @pytest.mark.asyncio
    async def test_failed_url_is_fetched_once(self):
        async def missing(source, timeout_seconds):
            raise DictionaryUnavailableError("Dictionary asset returned HTTP 404", source=source)

        with patch("suggest_edit.dictionary._read_source", side_effect=missing) as mock_read:
            for _ in range(3):
                with pytest.raises(DictionaryUnavailableError):
                    await load_dictionary("https://example.test/en.aff", "https://example.test/en.dic")

        assert mock_read.call_count == 2

    @pytest.mark.asyncio
    async def test_empty_word_list_raises(self, tmp_path, dictionary_files):
        aff, _ = dictionary_files
        dic = tmp_path / "empty.dic"
        dic.write_text("0\n", encoding="utf-8")
        with pytest.raises(DictionaryUnavailableError):
            await load_dictionary(aff, str(dic))

    @pytest.mark.asyncio
    async def test_url_sources_are_fetched(self):
        async def fake_read(source, timeout_seconds):
            return SMALL_AFF if source.endswith(".aff") else SMALL_DIC

        with patch("suggest_edit.dictionary._read_source", side_effect=fake_read) as mock_read:
            dictionary = await load_dictionary("https://example.test/en.aff", "https://example.test/en.dic")

        assert dictionary.is_known("synergy")
        assert mock_read.call_count == 2

    @pytest.mark.asyncio
    async def test_bundled_assets_load(self, bundled_dictionary_files):
        dictionary = await load_dictionary(*bundled_dictionary_files)
        assert dictionary.is_known("the")
        assert dictionary.is_known("thinking")
        assert not dictionary.is_known("teh")


# =============================================================================
# TESTS: Checking
# =============================================================================

class TestDictionaryChecker:

    @pytest.fixture
    def checker(self):
        return DictionaryChecker(build_dictionary(SMALL_AFF, SMALL_DIC))

    def test_misspelling_produces_suggestion(self, checker):
        suggestions = checker.check("Teh cat sat.")

        assert len(suggestions) == 1
        suggestion = suggestions[0]
        assert (suggestion.start, suggestion.end) == (0, 3)
        assert suggestion.original == "Teh"
        assert suggestion.suggested == "The"
        assert suggestion.kind == SuggestionKind.SPELLING
        assert suggestion.source == SuggestionSource.DICTIONARY
        assert suggestion.id.startswith("dict-")
        assert suggestion.context_after.startswith(" cat")
        assert 0.5 <= suggestion.confidence <= 1.0

    def test_lowercase_correction_keeps_case(self, checker):
        suggestions = checker.check("the cat sat on teh mat")
        assert [s.suggested for s in suggestions] == ["the"]

    def test_known_words_are_clean(self, checker):
        assert checker.check("The cats sat.") == []

    def test_acronyms_and_single_letters_are_skipped(self, checker):
        assert checker.check("NASA x cat") == []

    def test_range_limits_the_check(self, checker):
        text = "Teh cat sat on teh mat"
        suggestions = checker.check(text, 4, len(text))
        assert [s.start for s in suggestions] == [text.rindex("teh")]

    def test_words_cut_by_the_range_are_skipped(self, checker):
        assert checker.check("Tehcat", 0, 3) == []

    def test_unknown_word_without_candidates(self, checker):
        assert checker.check("zzzz") == []


class TestDictionaryAnalyzer:

    @pytest.mark.asyncio
    async def test_analyze_loads_lazily(self, dictionary_files):
        analyzer = DictionaryAnalyzer(*dictionary_files)
        suggestions = await analyzer.analyze("Teh cat sat.")
        assert [s.suggested for s in suggestions] == ["The"]

    @pytest.mark.asyncio
    async def test_unavailable_assets_raise_on_analyze(self, tmp_path):
        analyzer = DictionaryAnalyzer(str(tmp_path / "a.aff"), str(tmp_path / "a.dic"))
        with pytest.raises(DictionaryUnavailableError):
            await analyzer.analyze("Teh cat sat.")

    @pytest.mark.asyncio
    async def test_bundled_assets_correct_transposition(self, bundled_dictionary_files):
        analyzer = DictionaryAnalyzer(*bundled_dictionary_files)
        suggestions = await analyzer.analyze("Teh cat sat.")
        assert [(s.original, s.suggested) for s in suggestions] == [("Teh", "The")]


class TestTrailingWordsStart:

    def test_last_two_words(self):
        text = "one two three four"
        assert trailing_words_start(text, len(text), 2) == text.index("three")

    def test_fewer_words_than_requested(self):
        assert trailing_words_start("one two", 7, 5) == 0

    def test_no_words(self):
        assert trailing_words_start("   ", 3, 2) == 3
