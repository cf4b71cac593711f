"""Patch Engine core: rebuild file content from a subset of hunks."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import ErrorKind, Hunk, ParsedDiff, PatchError, ReconstructResult
from .parser import UnifiedDiffParser


class ReconstructionEngine:
    """
    Applies the selected hunks of a ParsedDiff to the original content.

    Every hunk is anchored to the base snapshot through old_start, whether or
    not the hunks before it are selected: the walk always runs over the
    original lines, never over a partially patched intermediate. Deselected
    hunks still have their context verified so a stale base is caught even
    when only part of the proposal is taken.
    """

    def __init__(self, parser: Optional[UnifiedDiffParser] = None):
        self._parser = parser or UnifiedDiffParser()

    def reconstruct(
        self,
        original_content: str,
        diff: ParsedDiff,
        selection: Optional[Iterable[int]] = None,
    ) -> ReconstructResult:
        if selection is None:
            chosen = {h.id for h in diff.hunks if h.selected}
        else:
            chosen = set(selection)

        unknown = chosen - {h.id for h in diff.hunks}
        if unknown:
            return self._fail(ErrorKind.MALFORMED_DIFF, f"Selection names unknown hunks: {sorted(unknown)}.")

        # an unrecognized header means the body after it never reached any hunk
        problems = [w for w in diff.warnings if w.code == self._parser.WARN_INVALID_HEADER]
        problems.extend(self._parser.validate(diff.hunks))
        if problems:
            first = problems[0]
            return self._fail(
                ErrorKind.MALFORMED_DIFF,
                first.message,
                hunk_id=first.hunk_id,
                details={"problems": [{"hunk_id": p.hunk_id, "code": p.code, "message": p.message} for p in problems]},
            )

        original_lines, trailing_newline = self._split(original_content)

        out: List[str] = []
        applied: List[int] = []
        added = 0
        removed = 0
        cursor = 0

        for h in diff.hunks:
            anchor = h.anchor_index()
            out.extend(original_lines[cursor:anchor])

            mismatch = self._verify_anchor(original_lines, h, anchor)
            if mismatch is not None:
                return self._fail(
                    ErrorKind.CONTEXT_MISMATCH,
                    f"Hunk {h.id} ({h.header}) no longer matches the original at line {mismatch['line']}: "
                    f"{mismatch['reason']}.",
                    hunk_id=h.id,
                    details=mismatch,
                )

            if h.id in chosen:
                out.extend(h.new_side())
                applied.append(h.id)
                added += h.lines_added()
                removed += h.lines_removed()
            else:
                out.extend(original_lines[anchor:anchor + h.old_lines])
            cursor = anchor + h.old_lines

        out.extend(original_lines[cursor:])

        return ReconstructResult(
            success=True,
            content=self._join(out, trailing_newline or original_content == ""),
            applied_ids=applied,
            lines_added=added,
            lines_removed=removed,
        )

    def _split(self, content: str) -> Tuple[List[str], bool]:
        if content == "":
            return [], False
        trailing = content.endswith("\n")
        body = content[:-1] if trailing else content
        return body.split("\n"), trailing

    def _join(self, lines: List[str], trailing_newline: bool) -> str:
        if not lines:
            return ""
        text = "\n".join(lines)
        if trailing_newline:
            text += "\n"
        return text

    def _verify_anchor(self, original: List[str], hunk: Hunk, anchor: int) -> Optional[Dict[str, Any]]:
        """Byte-exact comparison of the hunk's old side against the original span."""
        expected = hunk.old_side()
        if anchor > len(original) or anchor + len(expected) > len(original):
            return self._mismatch_diag(original, hunk, anchor, "hunk extends past end of file", None, None)

        for offset, want in enumerate(expected):
            have = original[anchor + offset]
            if want != have:
                return self._mismatch_diag(original, hunk, anchor + offset, "line differs", want, have)
        return None

    def _mismatch_diag(
        self,
        original: List[str],
        hunk: Hunk,
        pos: int,
        reason: str,
        expected: Optional[str],
        actual: Optional[str],
    ) -> Dict[str, Any]:
        excerpt_start = max(0, pos - 2)
        excerpt_end = min(len(original), pos + 3)
        return {
            "hunk_id": hunk.id,
            "hunk_header": hunk.header,
            "line": pos + 1,
            "reason": reason,
            "expected": expected,
            "actual": actual,
            "expected_excerpt": hunk.old_side()[:5],
            "actual_excerpt": original[excerpt_start:excerpt_end],
        }

    def _fail(
        self,
        kind: ErrorKind,
        message: str,
        hunk_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> ReconstructResult:
        return ReconstructResult(
            success=False,
            error=PatchError(kind=kind, message=message, hunk_id=hunk_id, details=details or {}),
        )


def reconstruct(
    original_content: str,
    diff: ParsedDiff,
    selection: Optional[Iterable[int]] = None,
) -> ReconstructResult:
    return ReconstructionEngine().reconstruct(original_content, diff, selection)
