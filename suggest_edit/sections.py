"""
Suggest Edit Sections - Partition a document into hashable units of re-analysis.

A section is a paragraph, or a sentence of a long paragraph. Sections are
recomputed from scratch on every pass; change detection compares content
hashes against the previous partition, so an edit only re-queries the
remote analyzer for the sections it actually touched.

Hash collisions are tolerated: a changed section that happens to hash like
an old one is treated as unchanged and simply skipped for that pass.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Set, Tuple

from config import SectionSettings, config

from .models import TextSection

logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_TERMINATOR_RUN = re.compile(r"[.!?]+")


# =============================================================================
# HASHING
# =============================================================================


def section_hash(content: str) -> str:
    """
    32-bit polynomial rolling hash of the trimmed content, as 8 hex chars.

    Order-sensitive and non-cryptographic; only used to tell whether a
    section existed in the previous partition.
    """
    value = 0
    for char in content.strip():
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    return f"{value:08x}"


def _make_section(text: str, start: int, end: int) -> Optional[TextSection]:
    """Build a section for text[start:end], trimmed to its non-blank core."""
    raw = text[start:end]
    content = raw.strip()
    if not content:
        return None
    lead = len(raw) - len(raw.lstrip())
    section_start = start + lead
    return TextSection(
        hash=section_hash(content),
        content=content,
        start_index=section_start,
        end_index=section_start + len(content),
    )


# =============================================================================
# SPLITTING
# =============================================================================


def _paragraph_ranges(text: str) -> Iterable[Tuple[int, int]]:
    """Yield (start, end) of each blank-line separated paragraph."""
    position = 0
    for match in _PARAGRAPH_BREAK.finditer(text):
        yield position, match.start()
        position = match.end()
    yield position, len(text)


def _is_abbreviation(text: str, sentence_start: int, run_start: int, settings: SectionSettings) -> bool:
    """Uppercase letter before the terminator in a very short candidate ("Dr.", "J.")."""
    if run_start == 0 or not text[run_start - 1].isupper():
        return False
    candidate = text[sentence_start:run_start].strip()
    return len(candidate) < settings.abbreviation_max_length


def _is_decimal_point(text: str, run_start: int, run_end: int) -> bool:
    """A single '.' flanked by digits ("3.14")."""
    if run_end - run_start != 1 or text[run_start] != ".":
        return False
    if run_start == 0 or run_end >= len(text):
        return False
    return text[run_start - 1].isdigit() and text[run_end].isdigit()


def _sentence_ranges(text: str, start: int, end: int, settings: SectionSettings) -> List[Tuple[int, int]]:
    """
    Split text[start:end] into sentence ranges.

    Short sentences are carried into the following sentence (or folded into
    the previous one at the end of the paragraph) when keep_short_sentences
    is on; otherwise they are left out of the partition.
    """
    ranges: List[Tuple[int, int]] = []
    sentence_start = start

    for match in _TERMINATOR_RUN.finditer(text, start, end):
        if _is_decimal_point(text, match.start(), match.end()):
            continue
        if _is_abbreviation(text, sentence_start, match.start(), settings):
            continue

        length = len(text[sentence_start:match.end()].strip())
        if length >= settings.min_sentence_length:
            ranges.append((sentence_start, match.end()))
            sentence_start = match.end()
        elif not settings.keep_short_sentences:
            logger.debug(f"Dropping short sentence at {sentence_start}: {length} chars")
            sentence_start = match.end()

    # Trailing text without a terminator, or a carried short sentence
    tail = text[sentence_start:end].strip()
    if tail:
        if len(tail) >= settings.min_sentence_length:
            ranges.append((sentence_start, end))
        elif settings.keep_short_sentences:
            if ranges:
                previous_start, _ = ranges.pop()
                ranges.append((previous_start, end))
            else:
                ranges.append((sentence_start, end))
        else:
            logger.debug(f"Dropping short trailing sentence at {sentence_start}")

    return ranges


def split_sections(text: str, settings: Optional[SectionSettings] = None) -> List[TextSection]:
    """
    Partition text into sections in document order.

    Paragraphs (blank-line separated) shorter than the threshold become one
    section each. Longer paragraphs are split into sentences on runs of
    '.', '!' and '?', except after an uppercase letter closing a very short
    candidate (abbreviations, initials) and at decimal points.

    Args:
        text: Full document text
        settings: Partition rules (defaults to config.SECTIONS)

    Returns:
        Non-overlapping sections; non-blank text always yields at least one
    """
    settings = settings or config.SECTIONS
    sections: List[TextSection] = []

    for para_start, para_end in _paragraph_ranges(text):
        paragraph = text[para_start:para_end].strip()
        if not paragraph:
            continue

        if len(paragraph) < settings.paragraph_threshold:
            section = _make_section(text, para_start, para_end)
            if section:
                sections.append(section)
            continue

        for sentence_start, sentence_end in _sentence_ranges(text, para_start, para_end, settings):
            section = _make_section(text, sentence_start, sentence_end)
            if section:
                sections.append(section)

    if not sections and text.strip():
        section = _make_section(text, 0, len(text))
        if section:
            sections.append(section)

    return sections


def changed_sections(previous: Iterable[TextSection], current: Iterable[TextSection]) -> List[TextSection]:
    """Sections of the current partition whose hash did not exist in the previous one."""
    previous_hashes: Set[str] = {section.hash for section in previous}
    return [section for section in current if section.hash not in previous_hashes]
