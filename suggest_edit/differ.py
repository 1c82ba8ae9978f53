"""
Suggest Edit Differ - First point of divergence between two text snapshots.

Every span adjustment in the package starts here: the change start tells
which suggestions sit before the edit (untouched), inside it (invalidated)
or after it (shifted by the length delta).
"""

from __future__ import annotations

from .models import TextChange


def diff(old_text: str, new_text: str) -> TextChange:
    """
    Compute where new_text first departs from old_text.

    Scans left to right over the common length. When no disagreement is found
    there, the change is a pure trailing insertion or deletion and starts at
    the shorter length.

    Callers are expected to skip identical snapshots; for them this returns
    TextChange(len(old_text), 0).

    Args:
        old_text: Snapshot before the edit
        new_text: Snapshot after the edit

    Returns:
        TextChange with change_start and length_delta = len(new) - len(old)
    """
    common = min(len(old_text), len(new_text))
    change_start = common
    for index in range(common):
        if old_text[index] != new_text[index]:
            change_start = index
            break

    return TextChange(change_start=change_start, length_delta=len(new_text) - len(old_text))
