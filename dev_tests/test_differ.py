"""
Tests for suggest_edit/differ.py - first divergence between two snapshots.
"""

import pytest

from suggest_edit.differ import diff
from suggest_edit.models import TextChange


class TestDiff:
    """Tests for diff()."""

    def test_insertion_in_the_middle(self):
        assert diff("abc", "abXc") == TextChange(change_start=2, length_delta=1)

    def test_deletion_in_the_middle(self):
        assert diff("abXc", "abc") == TextChange(change_start=2, length_delta=-1)

    def test_replacement_keeps_length(self):
        change = diff("The cat sat.", "The bat sat.")
        assert change.change_start == 4
        assert change.length_delta == 0

    def test_trailing_insertion_starts_at_old_length(self):
        assert diff("abc", "abcd") == TextChange(change_start=3, length_delta=1)

    def test_trailing_deletion_starts_at_new_length(self):
        assert diff("abcd", "ab") == TextChange(change_start=2, length_delta=-2)

    def test_insertion_at_start(self):
        assert diff("cat", "a cat").change_start == 0

    def test_from_empty(self):
        assert diff("", "hello") == TextChange(change_start=0, length_delta=5)

    def test_identical_snapshots(self):
        assert diff("same", "same") == TextChange(change_start=4, length_delta=0)

    @pytest.mark.parametrize(
        "old,new",
        [
            ("I think you should go.", "I think that you should go."),
            ("Teh cat sat.", "The cat sat."),
            ("line one\n\nline two", "line one\n\nline 2"),
        ],
    )
    def test_prefix_before_change_is_common(self, old, new):
        change = diff(old, new)
        assert old[:change.change_start] == new[:change.change_start]
        assert change.length_delta == len(new) - len(old)
