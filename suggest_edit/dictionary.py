"""
Suggest Edit Dictionary - Local spelling producer backed by Hunspell-style data.

Two assets are consumed:
- Affix rules (.aff): PFX/SFX groups with strip, add and condition fields
- Word list (.dic): an optional count line, then "word/FLAGS" entries

Every .dic stem is expanded through the affix rules and the resulting word
forms are loaded into a SymSpell index, which answers both "is this word
known" and "what are the closest known words" (Damerau-Levenshtein, so
"Teh" -> "The" is a single edit).

Both assets are loaded once per (aff, dic) source pair from a path or an
http(s) URL and cached for the process lifetime. A failed load is
remembered as well: later calls raise the same DictionaryUnavailableError
without fetching again until clear_dictionary_cache(). Callers degrade
silently. Tokenization is ASCII letters only, with an optional inner
apostrophe.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import aiohttp
from symspellpy import SymSpell, Verbosity

from config import DictionarySettings, config

from .models import Span, Suggestion, SuggestionKind, SuggestionSource

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

WORD_PATTERN = re.compile(r"[A-Za-z]+(?:'[A-Za-z]+)?")
CONTEXT_CHARS = 24


class DictionaryUnavailableError(RuntimeError):
    """Raised when the affix rules or the word list cannot be loaded."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


# =============================================================================
# AFFIX RULES
# =============================================================================


@dataclass
class AffixRule:
    """One PFX/SFX line: strip `strip`, then add `add`, when `condition` matches."""

    kind: str
    flag: str
    strip: str
    add: str
    condition: "re.Pattern[str]"
    cross_product: bool

    def applies_to(self, word: str) -> bool:
        if self.kind == "SFX":
            return word.endswith(self.strip) and bool(self.condition.search(word))
        return word.startswith(self.strip) and bool(self.condition.search(word))

    def apply(self, word: str) -> str:
        if self.kind == "SFX":
            stem = word[: len(word) - len(self.strip)] if self.strip else word
            return stem + self.add
        stem = word[len(self.strip):]
        return self.add + stem


@dataclass
class AffixTable:
    flag_mode: str = "short"
    rules: Dict[str, List[AffixRule]] = field(default_factory=dict)

    def split_flags(self, raw: str) -> List[str]:
        if not raw:
            return []
        if self.flag_mode == "long":
            return [raw[i:i + 2] for i in range(0, len(raw), 2)]
        if self.flag_mode == "num":
            return [part.strip() for part in raw.split(",") if part.strip()]
        return list(raw)


def _compile_condition(kind: str, condition: str) -> "re.Pattern[str]":
    if condition in ("", "."):
        return re.compile("")
    try:
        return re.compile(f"{condition}$" if kind == "SFX" else f"^{condition}")
    except re.error:
        logger.debug(f"Invalid affix condition '{condition}', rule matches every word")
        return re.compile("")


def parse_affix_rules(content: str) -> AffixTable:
    """
    Parse the subset of the .aff format used for word expansion.

    Recognized: FLAG (short/long/num), PFX and SFX groups. Everything else
    (TRY, REP, KEY, morphology fields) is ignored.
    """
    table = AffixTable()
    headers: Dict[Tuple[str, str], bool] = {}

    for raw_line in content.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if not line:
            continue
        parts = line.split()

        if parts[0] == "FLAG" and len(parts) > 1:
            table.flag_mode = parts[1].lower() if parts[1].lower() in ("long", "num") else "short"
            continue

        if parts[0] not in ("PFX", "SFX") or len(parts) < 4:
            continue

        kind, flag = parts[0], parts[1]
        if (kind, flag) not in headers:
            headers[(kind, flag)] = parts[2] == "Y"
            continue

        strip = "" if parts[2] == "0" else parts[2]
        add = "" if parts[3] == "0" else parts[3].split("/", 1)[0]
        condition = parts[4] if len(parts) > 4 else "."
        table.rules.setdefault(flag, []).append(
            AffixRule(
                kind=kind,
                flag=flag,
                strip=strip,
                add=add,
                condition=_compile_condition(kind, condition),
                cross_product=headers[(kind, flag)],
            )
        )

    return table


def expand_word(word: str, flags: Iterable[str], table: AffixTable) -> Set[str]:
    """All surface forms of a stem given its affix flags."""
    forms = {word}
    suffixed: List[Tuple[str, bool]] = []
    prefix_rules: List[AffixRule] = []

    for flag in flags:
        for rule in table.rules.get(flag, []):
            if rule.kind == "PFX":
                prefix_rules.append(rule)
            elif rule.applies_to(word):
                form = rule.apply(word)
                forms.add(form)
                suffixed.append((form, rule.cross_product))

    for rule in prefix_rules:
        if rule.applies_to(word):
            forms.add(rule.apply(word))
        if not rule.cross_product:
            continue
        for form, cross_product in suffixed:
            if cross_product and rule.applies_to(form):
                forms.add(rule.apply(form))

    return forms




# =============================================================================
# DICTIONARY
# =============================================================================


class Dictionary:
    """Expanded word forms held in a SymSpell index."""

    def __init__(self, words: Iterable[str], max_edit_distance: int = 2, prefix_length: int = 7):
        self.max_edit_distance = max_edit_distance
        self._sym_spell = SymSpell(
            max_dictionary_edit_distance=max_edit_distance,
            prefix_length=prefix_length,
        )
        for word in words:
            self._sym_spell.create_dictionary_entry(word.lower(), 1)

    @property
    def words(self) -> Dict[str, int]:
        return self._sym_spell.words

    def __len__(self) -> int:
        return len(self._sym_spell.words)

    def __contains__(self, word: str) -> bool:
        return self.is_known(word)

    def is_known(self, word: str) -> bool:
        if word.lower() in self._sym_spell.words:
            return True
        # Possessives and contractions of known words ("editor's")
        if "'" in word:
            return word.split("'", 1)[0].lower() in self._sym_spell.words
        return False

    def lookup(self, word: str, max_distance: Optional[int] = None, limit: int = 3) -> List[Tuple[str, int]]:
        """
        Closest dictionary words as (term, distance), best first.

        SymSpell returns every term within max_distance; ties on distance go
        to the same letters in a different order, then the closer length,
        then the more frequent form, then alphabetical order.
        """
        lowered = word.lower()
        if max_distance is None or max_distance > self.max_edit_distance:
            max_distance = self.max_edit_distance
        letters = sorted(lowered)
        items = [
            item
            for item in self._sym_spell.lookup(lowered, Verbosity.ALL, max_edit_distance=max_distance)
            if item.term != lowered
        ]
        items.sort(
            key=lambda item: (
                item.distance,
                sorted(item.term) != letters,
                abs(len(item.term) - len(lowered)),
                -item.count,
                item.term,
            )
        )
        return [(item.term, item.distance) for item in items[:limit]]

    def corrections(self, word: str, max_distance: Optional[int] = None, limit: int = 3) -> List[str]:
        return [term for term, _ in self.lookup(word, max_distance, limit)]


def build_dictionary(
    aff_content: str,
    dic_content: str,
    settings: Optional[DictionarySettings] = None,
) -> Dictionary:
    """Expand every .dic entry through the affix table into a Dictionary."""
    settings = settings or config.DICTIONARY
    table = parse_affix_rules(aff_content)
    words: List[str] = []

    lines = dic_content.splitlines()
    if lines and lines[0].strip().isdigit():
        lines = lines[1:]

    for raw_line in lines:
        entry = raw_line.strip().split()[0] if raw_line.strip() else ""
        if not entry:
            continue
        stem, _, raw_flags = entry.partition("/")
        if not stem:
            continue
        words.extend(expand_word(stem, table.split_flags(raw_flags), table))

    return Dictionary(words, settings.max_edit_distance, settings.prefix_length)


# =============================================================================
# LOADING (process-lifetime cache)
# =============================================================================


_DICTIONARY_CACHE: Dict[Tuple[str, str], Dictionary] = {}
_FAILED_LOADS: Dict[Tuple[str, str], DictionaryUnavailableError] = {}


async def _read_source(source: str, timeout_seconds: float) -> str:
    if source.startswith(("http://", "https://")):
        timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(source) as response:
                    if response.status != 200:
                        raise DictionaryUnavailableError(
                            f"Dictionary asset returned HTTP {response.status}", source=source
                        )
                    return await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DictionaryUnavailableError(f"Failed to fetch dictionary asset: {e}", source=source) from e

    path = Path(source)
    # Relative asset paths fall back to the project directory
    if not path.is_absolute() and not path.exists():
        path = PROJECT_ROOT / path
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise DictionaryUnavailableError(f"Failed to read dictionary asset: {e}", source=source) from e


async def load_dictionary(
    aff_source: Optional[str] = None,
    dic_source: Optional[str] = None,
    settings: Optional[DictionarySettings] = None,
) -> Dictionary:
    """
    Load (or return the cached) dictionary for an asset pair.

    Raises:
        DictionaryUnavailableError: either asset is missing or unreadable,
            now or on an earlier attempt since the cache was last cleared
    """
    settings = settings or config.DICTIONARY
    aff_source = aff_source or settings.aff_source
    dic_source = dic_source or settings.dic_source
    key = (aff_source, dic_source)

    cached = _DICTIONARY_CACHE.get(key)
    if cached is not None:
        return cached

    failed = _FAILED_LOADS.get(key)
    if failed is not None:
        raise DictionaryUnavailableError(str(failed), source=failed.source)

    try:
        aff_content, dic_content = await asyncio.gather(
            _read_source(aff_source, settings.fetch_timeout_seconds),
            _read_source(dic_source, settings.fetch_timeout_seconds),
        )
        dictionary = build_dictionary(aff_content, dic_content, settings)
        if not len(dictionary):
            raise DictionaryUnavailableError("Dictionary word list is empty", source=dic_source)
    except DictionaryUnavailableError as e:
        _FAILED_LOADS[key] = e
        logger.warning(f"Dictionary unavailable, spelling checks disabled: {e}")
        raise

    _DICTIONARY_CACHE[key] = dictionary
    logger.info(f"Loaded dictionary with {len(dictionary)} word forms from {dic_source}")
    return dictionary


def clear_dictionary_cache() -> None:
    """Forget loaded dictionaries and remembered failures."""
    _DICTIONARY_CACHE.clear()
    _FAILED_LOADS.clear()


# =============================================================================
# CHECKING
# =============================================================================


def _context_before(text: str, start: int) -> str:
    before = text[max(0, start - CONTEXT_CHARS):start]
    if start > CONTEXT_CHARS and " " in before:
        before = before[before.index(" ") + 1:]
    return before


def _context_after(text: str, end: int) -> str:
    after = text[end:end + CONTEXT_CHARS]
    if end + CONTEXT_CHARS < len(text) and " " in after:
        after = after[:after.rindex(" ")]
    return after


def _match_case(original: str, candidate: str) -> str:
    if original[:1].isupper():
        return candidate[:1].upper() + candidate[1:]
    return candidate


def trailing_words_start(text: str, caret: int, count: int) -> int:
    """Offset where the last `count` words before the caret begin."""
    starts = [match.start() for match in WORD_PATTERN.finditer(text, 0, max(0, caret))]
    if not starts:
        return max(0, caret)
    return starts[-count] if len(starts) >= count else starts[0]


class DictionaryChecker:
    """Produces spelling suggestions for unknown words in a text range."""

    def __init__(self, dictionary: Dictionary, settings: Optional[DictionarySettings] = None):
        self.dictionary = dictionary
        self.settings = settings or config.DICTIONARY

    def check(self, text: str, start: int = 0, end: Optional[int] = None) -> List[Suggestion]:
        """
        Spelling suggestions for words lying entirely inside [start, end).

        Skips single letters and all-caps tokens (acronyms). Spans are
        offsets into `text`.
        """
        end = len(text) if end is None else min(end, len(text))
        suggestions: List[Suggestion] = []

        for match in WORD_PATTERN.finditer(text, max(0, start), end):
            # Words cut by the range boundaries are left for a wider pass
            if match.start() > 0 and text[match.start() - 1].isalpha():
                continue
            if match.end() < len(text) and text[match.end()].isalpha():
                continue

            word = match.group(0)
            if len(word) < 2 or word.isupper() or self.dictionary.is_known(word):
                continue

            candidates = self.dictionary.lookup(word, self.settings.max_edit_distance, limit=1)
            if not candidates:
                continue

            term, distance = candidates[0]
            best = _match_case(word, term)
            suggestions.append(
                Suggestion(
                    id=SuggestionSource.DICTIONARY.new_id(),
                    kind=SuggestionKind.SPELLING,
                    span=Span(start=match.start(), end=match.end()),
                    original=word,
                    suggested=best,
                    context_before=_context_before(text, match.start()),
                    context_after=_context_after(text, match.end()),
                    explanation=f'"{word}" is not in the dictionary. Did you mean "{best}"?',
                    confidence=max(0.5, 1.0 - 0.1 * distance),
                )
            )

        return suggestions


class DictionaryAnalyzer:
    """
    Lazily loading dictionary producer used by the scheduler.

    The first call loads the assets (or reuses the process cache). A load
    failure propagates as DictionaryUnavailableError on every call, without
    refetching, until clear_dictionary_cache() is called.
    """

    def __init__(
        self,
        aff_source: Optional[str] = None,
        dic_source: Optional[str] = None,
        settings: Optional[DictionarySettings] = None,
    ):
        self.settings = settings or config.DICTIONARY
        self.aff_source = aff_source or self.settings.aff_source
        self.dic_source = dic_source or self.settings.dic_source
        self._checker: Optional[DictionaryChecker] = None

    async def checker(self) -> DictionaryChecker:
        if self._checker is None:
            dictionary = await load_dictionary(self.aff_source, self.dic_source, self.settings)
            self._checker = DictionaryChecker(dictionary, self.settings)
        return self._checker

    async def analyze(self, text: str, start: int = 0, end: Optional[int] = None) -> List[Suggestion]:
        checker = await self.checker()
        return checker.check(text, start, end)
