"""Tests for per-hunk selection state."""
from __future__ import annotations

import pytest

from patchengine.core import HunkSelection


class TestHunkSelection:
    def test_hunks_start_selected(self, two_hunk_diff):
        sel = HunkSelection(two_hunk_diff)
        assert sel.selected_ids() == {0, 1}
        assert sel.counts() == (2, 2)

    def test_toggle_is_per_hunk(self, two_hunk_diff):
        sel = HunkSelection(two_hunk_diff)
        assert sel.toggle(1) is False
        assert two_hunk_diff.hunks[0].selected is True
        assert two_hunk_diff.hunks[1].selected is False
        assert sel.toggle(1) is True

    def test_bulk_operations_set_every_flag(self, two_hunk_diff):
        sel = HunkSelection(two_hunk_diff)
        sel.select_none()
        assert [h.selected for h in two_hunk_diff.hunks] == [False, False]
        assert sel.selected_hunks() == []
        sel.select_all()
        assert [h.selected for h in two_hunk_diff.hunks] == [True, True]

    def test_set_selected(self, two_hunk_diff):
        sel = HunkSelection(two_hunk_diff)
        sel.set_selected(0, False)
        assert not sel.is_selected(0)
        assert sel.selected_ids() == {1}
        assert two_hunk_diff.summary().selected_hunks == 1

    def test_unknown_id(self, two_hunk_diff):
        with pytest.raises(KeyError):
            HunkSelection(two_hunk_diff).toggle(9)
