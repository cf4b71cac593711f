"""Patch Engine core: unified diff parsing into selectable hunks."""

from __future__ import annotations

import re
from typing import List, Optional

from .normalizer import PatchInputNormalizer
from .models import DiffLine, Hunk, LineKind, ParsedDiff, ParseWarning


class UnifiedDiffParser:
    """
    Parses the unified diff text for one file into ParsedDiff/Hunk/DiffLine.

    Never raises on malformed input. Structural problems are reported through
    ParsedDiff.warnings so a viewer can still render a best-effort result;
    reconstruction is what refuses to apply a broken hunk.
    """

    RE_HUNK = re.compile(r"^@@\s*\-(\d+)(?:,(\d+))?\s*\+(\d+)(?:,(\d+))?\s*@@(.*)$")

    WARN_LINE_COUNT = "line_count_mismatch"
    WARN_UNORDERED = "unordered_hunks"
    WARN_OVERLAP = "overlapping_hunks"
    WARN_INVALID_HEADER = "invalid_header"
    WARN_INVALID_RANGE = "invalid_range"

    def __init__(self, normalizer: Optional[PatchInputNormalizer] = None):
        self._normalizer = normalizer or PatchInputNormalizer()

    def parse(self, unified_diff: str, file_path: str) -> ParsedDiff:
        diff = ParsedDiff(file_path=file_path)
        lines = self._normalizer.split_lines(unified_diff)

        current: Optional[Hunk] = None
        old_no = 0
        new_no = 0

        for ln in lines:
            if ln.startswith("@@"):
                m = self.RE_HUNK.match(ln)
                if m:
                    if current is not None:
                        diff.hunks.append(current)
                    current = Hunk(
                        id=len(diff.hunks),
                        old_start=int(m.group(1)),
                        old_lines=int(m.group(2)) if m.group(2) is not None else 1,
                        new_start=int(m.group(3)),
                        new_lines=int(m.group(4)) if m.group(4) is not None else 1,
                        header=ln,
                        section=(m.group(5) or "").strip(),
                    )
                    old_no = current.old_start
                    new_no = current.new_start
                    continue
                if current is None or current.is_complete():
                    diff.warnings.append(ParseWarning(
                        hunk_id=None,
                        code=self.WARN_INVALID_HEADER,
                        message=f"Unrecognized hunk header: {ln!r}",
                    ))
                    if current is not None:
                        diff.hunks.append(current)
                        current = None
                    continue

            if current is None:
                # preamble: ---/+++ file headers, git metadata, prose
                continue

            if self._normalizer.is_no_newline_marker(ln):
                continue

            if current.is_complete():
                # blank line after a full hunk ends it; a second file header is descriptive only
                if ln == "" or ln.startswith("---") or ln.startswith("+++"):
                    continue

            tag = ln[:1]
            if tag == " ":
                line = DiffLine(LineKind.CONTEXT, ln[1:], old_line_number=old_no, new_line_number=new_no)
                old_no += 1
                new_no += 1
            elif tag == "-":
                line = DiffLine(LineKind.REMOVE, ln[1:], old_line_number=old_no)
                old_no += 1
            elif tag == "+":
                line = DiffLine(LineKind.ADD, ln[1:], new_line_number=new_no)
                new_no += 1
            else:
                # unknown marker (or a blank line with its leading space stripped): keep as context
                line = DiffLine(LineKind.CONTEXT, ln, old_line_number=old_no, new_line_number=new_no)
                old_no += 1
                new_no += 1
            current.lines.append(line)

        if current is not None:
            diff.hunks.append(current)

        diff.warnings.extend(self.validate(diff.hunks))
        return diff

    def validate(self, hunks: List[Hunk]) -> List[ParseWarning]:
        """Structural checks shared by the parser and the reconstruction engine."""
        warnings: List[ParseWarning] = []
        prev: Optional[Hunk] = None
        for h in hunks:
            old_n, new_n = h.counted_lines()
            if old_n != h.old_lines or new_n != h.new_lines:
                warnings.append(ParseWarning(
                    hunk_id=h.id,
                    code=self.WARN_LINE_COUNT,
                    message=(
                        f"Hunk {h.id} header {h.header!r} announces {h.old_lines}/{h.new_lines} "
                        f"old/new lines but its body has {old_n}/{new_n}."
                    ),
                ))
            if h.old_start == 0 and h.old_lines > 0:
                warnings.append(ParseWarning(
                    hunk_id=h.id,
                    code=self.WARN_INVALID_RANGE,
                    message=f"Hunk {h.id} starts at old line 0 but removes or keeps {h.old_lines} lines.",
                ))
            if prev is not None:
                if h.anchor_index() < prev.anchor_index():
                    warnings.append(ParseWarning(
                        hunk_id=h.id,
                        code=self.WARN_UNORDERED,
                        message=f"Hunk {h.id} starts before hunk {prev.id}.",
                    ))
                elif h.anchor_index() < prev.anchor_index() + prev.old_lines:
                    warnings.append(ParseWarning(
                        hunk_id=h.id,
                        code=self.WARN_OVERLAP,
                        message=f"Hunk {h.id} overlaps hunk {prev.id} in the original file.",
                    ))
            prev = h
        return warnings


def parse_diff(unified_diff: str, file_path: str) -> ParsedDiff:
    return UnifiedDiffParser().parse(unified_diff, file_path)
