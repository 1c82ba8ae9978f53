"""
Suggest Edit Locators - Recover the current span of a suggestion's text.

A suggestion remembers the exact text it targets plus an approximate hint
span (possibly stale, possibly invented by the provider) and optionally a
little surrounding context. `locate` resolves the best current position:

1. Hint verification (text at the hint is exactly the original)
2. Context-disambiguated search over all exact occurrences
3. Unique exact occurrence, or the occurrence closest to the hint
4. Fuzzy word-window match around the hint

The first stage that succeeds wins. Stages 1-3 always return a span that
holds the original text; stage 4 is recall-oriented and may return a span
that does not, so reconciliation code must check `LocateResult.verified()`
before treating a result as a live span.

All functions here are pure.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from config import LocatorSettings, config

from .models import LocateResult, Suggestion

logger = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(r"\S+")


# =============================================================================
# EXACT OCCURRENCES
# =============================================================================


def find_all_occurrences(text: str, original: str) -> List[int]:
    """Start offsets of every (possibly overlapping) occurrence of original in text."""
    if not original:
        return []
    positions = []
    index = text.find(original)
    while index != -1:
        positions.append(index)
        index = text.find(original, index + 1)
    return positions


def _closest_to(positions: List[int], hint_start: int) -> int:
    """Occurrence closest to the hint; the earlier one wins a tie."""
    best = positions[0]
    for position in positions[1:]:
        if abs(position - hint_start) < abs(best - hint_start):
            best = position
    return best


# =============================================================================
# CONTEXT DISAMBIGUATION
# =============================================================================


def _context_score(
    text: str,
    start: int,
    end: int,
    context_before: str,
    context_after: str,
    slack: int,
) -> Optional[int]:
    """
    Score one occurrence against the remembered context.

    Returns None when a provided context string is not found near the
    occurrence (the occurrence is not a candidate at all), otherwise
    1 + 2 per matching context side.
    """
    score = 1

    if context_before.strip():
        before_text = text[max(0, start - len(context_before) - slack):start]
        if context_before not in before_text:
            return None
        score += 2

    if context_after.strip():
        after_text = text[end:min(len(text), end + len(context_after) + slack)]
        if context_after not in after_text:
            return None
        score += 2

    return score


def find_with_context(
    text: str,
    original: str,
    hint_start: int,
    context_before: str = "",
    context_after: str = "",
    settings: Optional[LocatorSettings] = None,
) -> Optional[Tuple[int, int]]:
    """
    Pick the occurrence of original whose surroundings match the context.

    Highest score wins; equal scores go to the occurrence closest to the
    hint, so two identical words with identical context ("you you") still
    resolve toward where the provider pointed.

    Returns:
        (start, end) of the winning occurrence, or None
    """
    settings = settings or config.LOCATOR
    best: Optional[Tuple[int, int]] = None
    best_key: Optional[Tuple[int, int]] = None

    for start in find_all_occurrences(text, original):
        end = start + len(original)
        score = _context_score(text, start, end, context_before, context_after, settings.context_slack)
        if score is None:
            continue
        key = (score, -abs(start - hint_start))
        if best_key is None or key > best_key:
            best, best_key = (start, end), key

    return best


# =============================================================================
# FUZZY WINDOW MATCHING
# =============================================================================


def _search_words(original: str) -> List[str]:
    return [word for word in original.lower().split() if len(word) > 2]


def find_fuzzy_match(
    text: str,
    original: str,
    hint_start: int,
    settings: Optional[LocatorSettings] = None,
) -> Optional[Tuple[int, int, float]]:
    """
    Best approximate location of original near the hint.

    A window of at most `fuzzy_window` characters centered on the hint is
    tokenized on whitespace. Runs of 2 x word-count tokens are scored by the
    fraction of the original's words (longer than 2 chars) they contain;
    runs at or above the threshold are ranked by
    confidence - distance_from_hint / distance_divisor.

    The returned span starts at the first token of the winning run and ends
    at the last token in it that contains one of the words.

    Returns:
        (start, end, confidence), or None when nothing qualifies
    """
    settings = settings or config.LOCATOR
    words = _search_words(original)
    if not words or not text:
        return None

    window_size = min(settings.fuzzy_window, len(text))
    window_start = max(0, hint_start - window_size // 2)
    window_end = min(len(text), hint_start + window_size // 2)
    window = text[window_start:window_end].lower()

    tokens = [(m.group(0), m.start(), m.end()) for m in _TOKEN_PATTERN.finditer(window)]
    run_length = len(words) * 2

    best: Optional[Tuple[int, int, float]] = None
    best_rank: Optional[float] = None

    for index in range(len(tokens) - len(words) + 1):
        run = tokens[index:index + run_length]
        joined = " ".join(token for token, _, _ in run)
        matched = [word for word in words if word in joined]
        confidence = len(matched) / len(words)
        if confidence < settings.fuzzy_threshold:
            continue

        last_end = run[-1][2]
        for token, _, token_end in reversed(run):
            if any(word in token for word in matched):
                last_end = token_end
                break

        start = window_start + run[0][1]
        end = window_start + last_end
        rank = confidence - abs(start - hint_start) / settings.distance_divisor
        if best_rank is None or rank > best_rank:
            best, best_rank = (start, end, confidence), rank

    return best


# =============================================================================
# PUBLIC API
# =============================================================================


def locate(
    text: str,
    original: str,
    hint_start: int,
    hint_end: int,
    context_before: Optional[str] = None,
    context_after: Optional[str] = None,
    settings: Optional[LocatorSettings] = None,
) -> LocateResult:
    """
    Resolve the current span of `original` in `text`.

    Args:
        text: Current document text
        original: Exact text the suggestion targets
        hint_start: Approximate start offset (advisory)
        hint_end: Approximate end offset (advisory)
        context_before: Text that preceded original when it was captured
        context_after: Text that followed original when it was captured
        settings: Locator tuning (defaults to config.LOCATOR)

    Returns:
        LocateResult; on failure found=False with the hint span unchanged
    """
    settings = settings or config.LOCATOR
    context_before = context_before or ""
    context_after = context_after or ""

    if not original:
        return LocateResult(hint_start, hint_end, False)

    # 1. Hint verification
    if 0 <= hint_start < hint_end <= len(text) and text[hint_start:hint_end] == original:
        return LocateResult(hint_start, hint_end, True, "hint")

    # 2. Context-disambiguated search
    if context_before or context_after:
        match = find_with_context(text, original, hint_start, context_before, context_after, settings)
        if match:
            logger.debug(f"Located '{original}' by context at {match[0]} (hint {hint_start})")
            return LocateResult(match[0], match[1], True, "context")

    # 3. Unique or closest exact occurrence
    positions = find_all_occurrences(text, original)
    if positions:
        start = positions[0] if len(positions) == 1 else _closest_to(positions, hint_start)
        return LocateResult(start, start + len(original), True, "closest")

    # 4. Fuzzy window
    fuzzy = find_fuzzy_match(text, original, hint_start, settings)
    if fuzzy:
        start, end, confidence = fuzzy
        logger.debug(f"Fuzzy match for '{original}' at {start}-{end} (confidence {confidence:.2f})")
        return LocateResult(start, end, True, "fuzzy")

    logger.debug(f"Could not locate '{original}' (hint {hint_start}-{hint_end})")
    return LocateResult(hint_start, hint_end, False)


def locate_suggestion(
    text: str,
    suggestion: Suggestion,
    settings: Optional[LocatorSettings] = None,
) -> LocateResult:
    """`locate` using the suggestion's own span and context as hints."""
    return locate(
        text,
        suggestion.original,
        suggestion.span.start,
        suggestion.span.end,
        suggestion.context_before,
        suggestion.context_after,
        settings,
    )


def anchor(
    suggestion: Suggestion,
    text: str,
    settings: Optional[LocatorSettings] = None,
) -> bool:
    """
    Move a suggestion onto its verified span in text.

    Returns:
        True if the suggestion now satisfies the span invariant against
        text; False if it could not be verified (the caller drops it)
    """
    result = locate_suggestion(text, suggestion, settings)
    if not result.verified(text, suggestion.original):
        return False
    if (result.start, result.end) != (suggestion.span.start, suggestion.span.end):
        suggestion.move_to(result.start, result.end)
    return True
