"""Patch Engine core: diff text normalization."""

from __future__ import annotations

from typing import List


class PatchInputNormalizer:
    """
    Responsibilities:
      - Strip UTF-8 BOM if present.
      - Normalize line endings of the diff text to \\n.
      - Split into lines, dropping the empty tail produced by a final newline.

    Only the diff text is normalized; file content is compared byte for byte.
    """

    def normalize(self, raw_text: str) -> str:
        if raw_text.startswith("\ufeff"):
            raw_text = raw_text.lstrip("\ufeff")
        return raw_text.replace("\r\n", "\n").replace("\r", "\n")

    def split_lines(self, raw_text: str) -> List[str]:
        text = self.normalize(raw_text)
        if not text:
            return []
        lines = text.split("\n")
        if text.endswith("\n"):
            lines.pop()
        return lines

    def is_no_newline_marker(self, line: str) -> bool:
        # diff tools localize the message; the backslash marker is what matters
        return line.startswith("\\")
