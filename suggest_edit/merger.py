"""
Suggest Edit Merger - Reconcile a fresh batch of suggestions with the live set.

Source priority on overlapping spans:

    incoming    existing    outcome
    --------    --------    -------------------------------------------
    semantic    dictionary  existing displaced, incoming inserted
    semantic    semantic    existing displaced, incoming inserted
    dictionary  semantic    incoming dropped, existing kept
    other       other       existing displaced, incoming inserted

Cheaper analysis never overwrites the semantic analyzer's work, and
disappears as soon as semantic analysis covers the same text.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .models import Suggestion, SuggestionSource

logger = logging.getLogger(__name__)


def _overlaps(a: Suggestion, b: Suggestion) -> bool:
    return a.span.start < b.span.end and a.span.end > b.span.start


def _same_suggestion(a: Suggestion, b: Suggestion) -> bool:
    """Same producer proposing the same change at the same place."""
    return (
        a.source == b.source
        and a.span == b.span
        and a.original == b.original
        and a.suggested == b.suggested
    )


def _incoming_loses(incoming: Suggestion, other: Suggestion) -> bool:
    """True when an overlapping existing suggestion outranks the incoming one."""
    return (
        incoming.source == SuggestionSource.DICTIONARY
        and other.source == SuggestionSource.SEMANTIC
    )


def merge(
    existing: Sequence[Suggestion],
    incoming: Sequence[Suggestion],
    current_text: str,
    merged_source: Optional[SuggestionSource] = None,
) -> List[Suggestion]:
    """
    Merge one producer's suggestions into the live set.

    Steps:
    1. Drop existing suggestions that no longer hold their original text
    2. Drop incoming suggestions that do not hold theirs either
    3. For each incoming suggestion, skip it when an identical live one
       (same source, span and change) exists, otherwise resolve overlaps by
       source priority; displaced suggestions are removed before the
       incoming one is inserted
    4. Sort by span start

    Args:
        existing: Current live suggestions
        incoming: Fresh suggestions from a single producer, already located
        current_text: Document text at merge time
        merged_source: Only used for logging

    Returns:
        New list; the inputs are not modified
    """
    merged = [s for s in existing if s.matches(current_text)]
    stale = len(existing) - len(merged)
    if stale:
        logger.debug(f"Merge dropped {stale} stale existing suggestion(s)")

    for candidate in incoming:
        if not candidate.matches(current_text):
            logger.debug(f"Merge dropped unverifiable incoming suggestion {candidate.id}")
            continue

        overlapping = [s for s in merged if s.id != candidate.id and _overlaps(candidate, s)]
        if any(_same_suggestion(candidate, other) for other in overlapping):
            # Re-found by a later pass; the live suggestion keeps its id and selection
            continue
        if any(_incoming_loses(candidate, other) for other in overlapping):
            logger.debug(f"Dictionary suggestion {candidate.id} overlaps semantic suggestion, dropped")
            continue

        displaced = {s.id for s in overlapping}
        displaced.add(candidate.id)
        merged = [s for s in merged if s.id not in displaced]
        merged.append(candidate)

    merged.sort(key=lambda s: s.span.start)

    if merged_source is not None:
        logger.debug(
            f"Merged {len(incoming)} {merged_source.value} suggestion(s): "
            f"{len(existing)} -> {len(merged)} live"
        )
    return merged
