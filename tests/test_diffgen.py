"""Tests for diff generation and hunk rendering."""
from __future__ import annotations

from patchengine.core import DiffGenerator

from conftest import TWO_HUNK_DIFF


class TestDiffGenerator:
    def test_generate_for_file(self):
        text = DiffGenerator().generate_unified_for_file("a\nb\n", "a\nB\n", "a/f", "b/f")
        assert text.splitlines() == ["--- a/f", "+++ b/f", "@@ -1,2 +1,2 @@", " a", "-b", "+B"]

    def test_identical_content_gives_empty_diff(self):
        assert DiffGenerator().generate_unified_for_file("same\n", "same\n", "a", "b") == ""

    def test_render_hunks_reproduces_body(self, two_hunk_diff):
        assert DiffGenerator().render_hunks(two_hunk_diff.hunks) == TWO_HUNK_DIFF

    def test_render_subset_with_file_headers(self, two_hunk_diff):
        text = DiffGenerator().render_hunks(two_hunk_diff.hunks[1:], "ten.txt")
        assert text.splitlines()[:3] == ["--- a/ten.txt", "+++ b/ten.txt", "@@ -8,3 +8,3 @@"]

    def test_render_nothing(self):
        assert DiffGenerator().render_hunks([]) == ""

    def test_digest_is_stable(self):
        gen = DiffGenerator()
        assert gen.digest("x") == gen.digest("x")
        assert gen.digest("x") != gen.digest("y")
