"""Shared pytest fixtures for the suggestion engine tests."""

import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from suggest_edit.dictionary import build_dictionary, clear_dictionary_cache, DictionaryChecker
from suggest_edit.models import Span, Suggestion, SuggestionKind, SuggestionSource


PROJECT_ROOT = Path(__file__).resolve().parent.parent
DICTIONARY_DIR = PROJECT_ROOT / "data" / "dictionary"


# ============================================================================
# Dictionary Fixtures
# ============================================================================

SMALL_AFF = """# test rules
PFX U Y 1
PFX U   0     un         .

SFX D Y 2
SFX D   0     d          e
SFX D   0     ed         [^e]

SFX S Y 1
SFX S   0     s          .
"""

SMALL_DIC = """9
the
then
cat/S
sat
lock/UDS
bake/D
mat/S
team/S
synergy
"""


@pytest.fixture(autouse=True)
def reset_dictionary_cache():
    """Every test starts with an empty process-wide dictionary cache."""
    clear_dictionary_cache()
    yield
    clear_dictionary_cache()


@pytest.fixture
def dictionary_files(tmp_path):
    """Small .aff/.dic pair written to disk, as (aff_path, dic_path) strings."""
    aff = tmp_path / "test.aff"
    dic = tmp_path / "test.dic"
    aff.write_text(SMALL_AFF, encoding="utf-8")
    dic.write_text(SMALL_DIC, encoding="utf-8")
    return str(aff), str(dic)


@pytest.fixture
def bundled_dictionary_files():
    """The starter en_US assets shipped with the project."""
    return str(DICTIONARY_DIR / "en_US.aff"), str(DICTIONARY_DIR / "en_US.dic")


class StaticDictionaryAnalyzer:
    """In-memory stand-in for DictionaryAnalyzer (no asset loading)."""

    def __init__(self, aff: str = SMALL_AFF, dic: str = SMALL_DIC):
        self.checker = DictionaryChecker(build_dictionary(aff, dic))
        self.calls = []

    async def analyze(self, text, start=0, end=None):
        self.calls.append((start, end))
        return self.checker.check(text, start, end)


@pytest.fixture
def static_dictionary():
    return StaticDictionaryAnalyzer()


# ============================================================================
# Suggestion Factories
# ============================================================================

def make_suggestion(
    text: str,
    original: str,
    suggested: str = "",
    source: SuggestionSource = SuggestionSource.SEMANTIC,
    kind: SuggestionKind = SuggestionKind.GRAMMAR,
    start: int = None,
    **extra,
) -> Suggestion:
    """Suggestion anchored on the first occurrence of original (or at start)."""
    if start is None:
        start = text.index(original)
    return Suggestion(
        id=source.new_id(),
        kind=kind,
        span=Span(start=start, end=start + len(original)),
        original=original,
        suggested=suggested,
        **extra,
    )


@pytest.fixture
def suggestion_factory():
    return make_suggestion


# ============================================================================
# Semantic Analyzer Mocks
# ============================================================================

def semantic_returning(*targets):
    """
    AsyncMock analyzer that, for each (original, suggested, kind) target
    present in the submitted text, returns a fresh suggestion positioned
    relative to that text.
    """

    async def _analyze(text, settings):
        found = []
        for original, suggested, kind in targets:
            if original in text:
                found.append(
                    make_suggestion(text, original, suggested, SuggestionSource.SEMANTIC, kind, confidence=0.9)
                )
        return found

    analyzer = MagicMock()
    analyzer.analyze = AsyncMock(side_effect=_analyze)
    return analyzer


@pytest.fixture
def mock_ai_service():
    """Mocked AIService for router tests."""
    service = MagicMock()
    service.analyze_text = AsyncMock(return_value=[])
    return service
