"""
Suggest Edit Reposition - Keep live suggestions anchored across document edits.

Two entry points:
- reposition(): after a user edit, given the first divergence point
- reposition_after_replacement(): after a suggestion was applied, given the
  replaced range

Both shift spans after the edit, drop spans the edit cut into, then re-run
the locator against the new text and drop anything that no longer holds its
original text. Suggestions are moved in place (span only).
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from config import LocatorSettings

from .locators import anchor
from .models import Suggestion

logger = logging.getLogger(__name__)


def _reverify(
    suggestions: List[Suggestion],
    new_text: str,
    settings: Optional[LocatorSettings],
) -> List[Suggestion]:
    """Drop every suggestion that cannot be re-anchored on new_text."""
    survivors = []
    for suggestion in suggestions:
        if anchor(suggestion, new_text, settings):
            survivors.append(suggestion)
        else:
            logger.debug(f"Suggestion {suggestion.id} ('{suggestion.original}') could not be relocated")
    return survivors


def reposition(
    suggestions: Sequence[Suggestion],
    old_text: str,
    new_text: str,
    change_start: int,
    settings: Optional[LocatorSettings] = None,
) -> List[Suggestion]:
    """
    Apply a user edit to the live suggestion set.

    - span.start >= change_start: shifted by the length delta
    - change_start strictly inside the span: dropped (no partial healing)
    - span entirely before change_start: unchanged

    Survivors are then re-located on new_text; unverifiable ones are dropped.

    Args:
        suggestions: Live suggestions, anchored on old_text
        old_text: Snapshot before the edit
        new_text: Snapshot after the edit
        change_start: First divergence index (see differ.diff)
        settings: Locator tuning

    Returns:
        Surviving suggestions, anchored on new_text
    """
    delta = len(new_text) - len(old_text)
    shifted: List[Suggestion] = []

    for suggestion in suggestions:
        start, end = suggestion.span.start, suggestion.span.end
        if start >= change_start:
            if delta:
                suggestion.move_to(start + delta, end + delta)
            shifted.append(suggestion)
        elif end > change_start:
            logger.debug(f"Edit at {change_start} falls inside suggestion {suggestion.id} ({start}-{end})")
        else:
            shifted.append(suggestion)

    return _reverify(shifted, new_text, settings)


def reposition_after_replacement(
    suggestions: Sequence[Suggestion],
    new_text: str,
    replaced_start: int,
    replaced_end: int,
    delta: int,
    settings: Optional[LocatorSettings] = None,
) -> List[Suggestion]:
    """
    Apply an accepted suggestion's replacement to the remaining suggestions.

    Spans overlapping the replaced range [replaced_start, replaced_end) are
    dropped, spans at or after its end are shifted by delta, spans before it
    are unchanged. Survivors are re-verified on new_text.
    """
    shifted: List[Suggestion] = []

    for suggestion in suggestions:
        start, end = suggestion.span.start, suggestion.span.end
        if start >= replaced_end:
            if delta:
                suggestion.move_to(start + delta, end + delta)
            shifted.append(suggestion)
        elif end > replaced_start and start < replaced_end:
            logger.debug(f"Suggestion {suggestion.id} overlaps the applied replacement, dropping")
        else:
            shifted.append(suggestion)

    return _reverify(shifted, new_text, settings)
