"""Patch Engine core: generate unified diffs and render hunk subsets as diff text."""

from __future__ import annotations

import difflib
import hashlib
from typing import Iterable, List, Optional

from .models import Hunk


class DiffGenerator:
    """
    Generate unified diffs:
      - single file: original vs edited content (difflib)
      - a chosen subset of parsed hunks, rendered back for the audit trail
    """

    def generate_unified_for_file(
        self,
        old_text: str,
        new_text: str,
        old_path: str,
        new_path: str,
        context: int = 3,
    ) -> str:
        diff = difflib.unified_diff(
            old_text.splitlines(),
            new_text.splitlines(),
            fromfile=old_path,
            tofile=new_path,
            n=context,
            lineterm="",
        )
        lines = list(diff)
        return "\n".join(lines) + "\n" if lines else ""

    def render_hunks(self, hunks: Iterable[Hunk], file_path: Optional[str] = None) -> str:
        buf: List[str] = []
        if file_path:
            buf.append(f"--- a/{file_path}")
            buf.append(f"+++ b/{file_path}")
        for h in hunks:
            buf.append(h.header)
            for ln in h.lines:
                buf.append(ln.marker + ln.text)
        return "\n".join(buf) + "\n" if buf else ""

    def digest(self, diff_text: str) -> str:
        return hashlib.sha256(diff_text.encode("utf-8")).hexdigest()
