"""Patch Engine core: backup snapshots kept in a content store."""

from __future__ import annotations

import hashlib
import time
from pathlib import PurePosixPath
from typing import List, Optional

from .models import BackupRecord
from .stores import ContentStore, StoreConfig


class BackupManager:
    """
    Snapshots file content under <backup_dir>/<timestamp>_<hash>/<relative path>.

    The returned backup_path is the reference a later restore uses; it stays
    readable until the host prunes it. Snapshots are never modified.
    """

    def __init__(self, store: ContentStore, config: Optional[StoreConfig] = None):
        self.store = store
        self.config = config or StoreConfig()

    def snapshot(self, file_path: str, content: str) -> BackupRecord:
        now = time.time()
        data = content.encode("utf-8")
        digest = hashlib.sha256(data).hexdigest()
        stamp = time.strftime("%Y%m%d_%H%M%S", time.localtime(now)) + f"_{int(now * 1_000_000) % 1_000_000:06d}"
        backup_path = f"{self.prefix}{stamp}_{digest[:12]}/{self._relative(file_path)}"
        self.store.write(backup_path, content)
        return BackupRecord(
            file_path=file_path,
            backup_path=backup_path,
            created_at=now,
            size_bytes=len(data),
            sha256=digest,
        )

    @property
    def prefix(self) -> str:
        return self.config.backup_dir.rstrip("/") + "/"

    def owns(self, backup_path: str) -> bool:
        if not backup_path.startswith(self.prefix):
            return False
        rest = PurePosixPath(backup_path[len(self.prefix):]).parts
        return len(rest) >= 2 and ".." not in rest

    def exists(self, backup_path: str) -> bool:
        return self.owns(backup_path) and self.store.exists(backup_path)

    def read(self, backup_path: str) -> str:
        return self.store.read(backup_path)

    def list_backups(self, file_path: str) -> List[str]:
        """Backup paths holding snapshots of file_path, newest first."""
        rel = self._relative(file_path)
        found = []
        for p in self.store.list(self.prefix):
            rest = PurePosixPath(p[len(self.prefix):]).parts
            if len(rest) >= 2 and "/".join(rest[1:]) == rel:
                found.append((rest[0], p))
        found.sort(reverse=True)
        return [p for _, p in found]

    def _relative(self, file_path: str) -> str:
        # Absolute, drive-qualified or parent-relative paths are folded into the backup tree.
        parts = []
        for part in PurePosixPath(file_path.replace("\\", "/")).parts:
            if part in ("/", "", ".", ".."):
                continue
            parts.append(part.replace(":", ""))
        return "/".join(parts) or "unnamed"
