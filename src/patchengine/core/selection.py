"""Patch Engine core: per-hunk selection state."""

from __future__ import annotations

from typing import List, Set, Tuple

from .models import Hunk, ParsedDiff


class HunkSelection:
    """
    Selection state over a ParsedDiff, stored on each Hunk.selected flag.

    Bulk operations are conveniences that still set every hunk's flag, so the
    per-hunk state is always the single source of truth. Unknown ids raise
    KeyError: that is a caller bug, not a property of the diff.
    """

    def __init__(self, diff: ParsedDiff):
        self._diff = diff

    @property
    def diff(self) -> ParsedDiff:
        return self._diff

    def toggle(self, hunk_id: int) -> bool:
        h = self._diff.hunk(hunk_id)
        h.selected = not h.selected
        return h.selected

    def set_selected(self, hunk_id: int, value: bool) -> None:
        self._diff.hunk(hunk_id).selected = bool(value)

    def is_selected(self, hunk_id: int) -> bool:
        return self._diff.hunk(hunk_id).selected

    def select_all(self) -> None:
        for h in self._diff.hunks:
            h.selected = True

    def select_none(self) -> None:
        for h in self._diff.hunks:
            h.selected = False

    def selected_ids(self) -> Set[int]:
        return {h.id for h in self._diff.hunks if h.selected}

    def selected_hunks(self) -> List[Hunk]:
        return [h for h in self._diff.hunks if h.selected]

    def counts(self) -> Tuple[int, int]:
        return len(self.selected_ids()), len(self._diff.hunks)
