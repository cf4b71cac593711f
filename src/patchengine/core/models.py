"""Patch Engine core: shared data models."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Any, Optional, Set, Tuple


class LineKind(str, Enum):
    CONTEXT = "context"
    REMOVE = "remove"
    ADD = "add"


@dataclass
class DiffLine:
    kind: LineKind
    text: str
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None

    @property
    def marker(self) -> str:
        if self.kind == LineKind.REMOVE:
            return "-"
        if self.kind == LineKind.ADD:
            return "+"
        return " "


@dataclass
class Hunk:
    id: int
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    header: str
    section: str = ""
    lines: List[DiffLine] = field(default_factory=list)
    selected: bool = True

    def lines_added(self) -> int:
        return sum(1 for ln in self.lines if ln.kind == LineKind.ADD)

    def lines_removed(self) -> int:
        return sum(1 for ln in self.lines if ln.kind == LineKind.REMOVE)

    def counted_lines(self) -> Tuple[int, int]:
        """(old side, new side) as counted from the body, for comparison with the header."""
        context = sum(1 for ln in self.lines if ln.kind == LineKind.CONTEXT)
        return context + self.lines_removed(), context + self.lines_added()

    def is_complete(self) -> bool:
        old_n, new_n = self.counted_lines()
        return old_n >= self.old_lines and new_n >= self.new_lines

    def anchor_index(self) -> int:
        # unified diff convention: a zero-length old side names the line *after which* to insert
        if self.old_lines == 0:
            return self.old_start
        return self.old_start - 1

    def old_side(self) -> List[str]:
        return [ln.text for ln in self.lines if ln.kind != LineKind.ADD]

    def new_side(self) -> List[str]:
        return [ln.text for ln in self.lines if ln.kind != LineKind.REMOVE]


@dataclass
class ParseWarning:
    hunk_id: Optional[int]
    code: str
    message: str


@dataclass
class DiffSummary:
    total_hunks: int
    selected_hunks: int
    lines_added: int = 0
    lines_removed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "total_hunks": self.total_hunks,
            "selected_hunks": self.selected_hunks,
            "lines_added": self.lines_added,
            "lines_removed": self.lines_removed,
        }


@dataclass
class ParsedDiff:
    file_path: str
    hunks: List[Hunk] = field(default_factory=list)
    warnings: List[ParseWarning] = field(default_factory=list)

    def hunk(self, hunk_id: int) -> Hunk:
        for h in self.hunks:
            if h.id == hunk_id:
                return h
        raise KeyError(hunk_id)

    def is_empty(self) -> bool:
        return not self.hunks

    def warnings_for(self, hunk_id: int) -> List[ParseWarning]:
        return [w for w in self.warnings if w.hunk_id == hunk_id]

    def summary(self, selection: Optional[Set[int]] = None) -> DiffSummary:
        if selection is None:
            chosen = [h for h in self.hunks if h.selected]
        else:
            chosen = [h for h in self.hunks if h.id in selection]
        return DiffSummary(
            total_hunks=len(self.hunks),
            selected_hunks=len(chosen),
            lines_added=sum(h.lines_added() for h in chosen),
            lines_removed=sum(h.lines_removed() for h in chosen),
        )


@dataclass(frozen=True)
class BackupRecord:
    file_path: str
    backup_path: str
    created_at: float
    size_bytes: int
    sha256: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "backup_path": self.backup_path,
            "created_at": self.created_at,
            "size_bytes": self.size_bytes,
            "sha256": self.sha256,
        }


class AuditAction(str, Enum):
    APPLIED = "applied"
    REJECTED = "rejected"
    RESTORED = "restored"


@dataclass(frozen=True)
class AuditEntry:
    file_path: str
    action: AuditAction
    diff_summary: DiffSummary
    timestamp: float = field(default_factory=time.time)
    backup_path: Optional[str] = None
    notes: Optional[str] = None
    diff_hash: str = ""
    hunk_ids: Tuple[int, ...] = ()
    diff_text: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "action": self.action.value,
            "diff_summary": self.diff_summary.to_dict(),
            "timestamp": self.timestamp,
            "backup_path": self.backup_path,
            "notes": self.notes,
            "diff_hash": self.diff_hash,
            "hunk_ids": list(self.hunk_ids),
            "diff_text": self.diff_text,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEntry":
        s = data.get("diff_summary") or {}
        return cls(
            file_path=data["file_path"],
            action=AuditAction(data["action"]),
            diff_summary=DiffSummary(
                total_hunks=int(s.get("total_hunks", 0)),
                selected_hunks=int(s.get("selected_hunks", 0)),
                lines_added=int(s.get("lines_added", 0)),
                lines_removed=int(s.get("lines_removed", 0)),
            ),
            timestamp=float(data["timestamp"]),
            backup_path=data.get("backup_path"),
            notes=data.get("notes"),
            diff_hash=data.get("diff_hash", ""),
            hunk_ids=tuple(data.get("hunk_ids") or ()),
            diff_text=data.get("diff_text", ""),
            metadata=dict(data.get("metadata") or {}),
        )


class ErrorKind(str, Enum):
    MALFORMED_DIFF = "malformed_diff"
    CONTEXT_MISMATCH = "context_mismatch"
    BACKUP_FAILED = "backup_failed"
    WRITE_FAILED = "write_failed"
    BACKUP_NOT_FOUND = "backup_not_found"
    READ_FAILED = "read_failed"
    AUDIT_FAILED = "audit_failed"


@dataclass
class PatchError:
    kind: ErrorKind
    message: str
    hunk_id: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def recoverable_by_regeneration(self) -> bool:
        """Stale or broken proposal: ask for a fresh diff against current content."""
        return self.kind in (ErrorKind.MALFORMED_DIFF, ErrorKind.CONTEXT_MISMATCH)

    @property
    def recoverable_by_retry(self) -> bool:
        return self.kind in (
            ErrorKind.WRITE_FAILED, ErrorKind.BACKUP_FAILED, ErrorKind.READ_FAILED, ErrorKind.AUDIT_FAILED,
        )


@dataclass
class ReconstructResult:
    success: bool
    content: Optional[str] = None
    error: Optional[PatchError] = None
    applied_ids: List[int] = field(default_factory=list)
    lines_added: int = 0
    lines_removed: int = 0


@dataclass
class _Outcome:
    success: bool
    overall_message: str
    error: Optional[PatchError] = None
    audit_error: Optional[PatchError] = None
    audit_entry: Optional[AuditEntry] = None
    logs: List[Dict[str, Any]] = field(default_factory=list)

    def add_log(self, level: str, message: str, **fields: Any) -> None:
        entry = {"ts": time.time(), "level": level, "message": message}
        entry.update(fields)
        self.logs.append(entry)


@dataclass
class ApplyOutcome(_Outcome):
    file_path: str = ""
    content: Optional[str] = None
    backup: Optional[BackupRecord] = None
    summary: Optional[DiffSummary] = None


@dataclass
class RestoreOutcome(_Outcome):
    file_path: str = ""
    backup_path: str = ""
