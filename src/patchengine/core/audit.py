"""Patch Engine core: append-only audit trail of apply/reject/restore actions."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from .models import AuditAction, AuditEntry


class AuditError(Exception):
    """The sink could not durably record an entry."""


class AuditLog:
    """
    Append-only sink. Subclasses provide append() and entries(); the query
    surface below is a read-only projection over entries().
    """

    def append(self, entry: AuditEntry) -> None:
        raise NotImplementedError

    def entries(self) -> List[AuditEntry]:
        raise NotImplementedError

    def for_file(self, file_path: str) -> List[AuditEntry]:
        return [e for e in self.entries() if e.file_path == file_path]

    def between(self, start: float, end: float) -> List[AuditEntry]:
        return [e for e in self.entries() if start <= e.timestamp <= end]

    def recent(self, limit: int = 50) -> List[AuditEntry]:
        ordered = sorted(self.entries(), key=lambda e: e.timestamp, reverse=True)
        return ordered[:limit]

    def stats(self) -> Dict[str, Any]:
        entries = self.entries()
        counts = {a.value: 0 for a in AuditAction}
        for e in entries:
            counts[e.action.value] += 1
        return {
            "total": len(entries),
            "by_action": counts,
            "unique_files": len({e.file_path for e in entries}),
        }


class MemoryAuditLog(AuditLog):
    def __init__(self, fail_appends: bool = False):
        self._entries: List[AuditEntry] = []
        self.fail_appends = fail_appends

    def append(self, entry: AuditEntry) -> None:
        if self.fail_appends:
            raise AuditError("simulated audit sink failure")
        self._entries.append(entry)

    def entries(self) -> List[AuditEntry]:
        return list(self._entries)


class JsonlAuditLog(AuditLog):
    """One JSON object per line; the file is only ever opened for append."""

    def __init__(self, path: str, encoding: str = "utf-8"):
        self.path = Path(path)
        self.encoding = encoding

    def append(self, entry: AuditEntry) -> None:
        line = json.dumps(entry.to_dict(), ensure_ascii=False, sort_keys=True)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding=self.encoding, newline="\n") as f:
                f.write(line + "\n")
                f.flush()
        except OSError as e:
            raise AuditError(f"Cannot append to audit log {self.path}: {e}") from e

    def entries(self) -> List[AuditEntry]:
        if not self.path.exists():
            return []
        out: List[AuditEntry] = []
        with open(self.path, "r", encoding=self.encoding) as f:
            for n, raw in enumerate(f, start=1):
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    out.append(AuditEntry.from_dict(json.loads(raw)))
                except (ValueError, KeyError) as e:
                    raise AuditError(f"Corrupt audit record at {self.path}:{n}: {e}") from e
        return out

