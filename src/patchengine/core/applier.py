"""Patch Engine core: apply selected hunks with backup, reject, and restore."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Set, Tuple

from .audit import AuditLog, MemoryAuditLog
from .backups import BackupManager
from .diffgen import DiffGenerator
from .models import (
    ApplyOutcome, AuditAction, AuditEntry, DiffSummary, ErrorKind, ParsedDiff,
    PatchError, ReconstructResult, RestoreOutcome,
)
from .reconstruct import ReconstructionEngine
from .stores import ContentStore, StoreConfig


class PatchApplier:
    """
    Implements:
      - apply: reconstruct -> backup original -> write -> audit
      - reject: audit the hunks the user turned down; the file is untouched
      - restore: read backup -> write -> audit

    Side effects are strictly ordered. A failed reconstruction creates no
    backup and writes nothing; the audit entry is only appended after the
    write is confirmed, and a failing audit sink never undoes a write.

    The engine does not serialize calls: the host must keep at most one apply
    in flight per file.
    """

    def __init__(
        self,
        store: ContentStore,
        backups: Optional[BackupManager] = None,
        audit: Optional[AuditLog] = None,
        config: Optional[StoreConfig] = None,
        engine: Optional[ReconstructionEngine] = None,
    ):
        self.config = config or StoreConfig()
        self.store = store
        self.backups = backups or BackupManager(store, self.config)
        self.audit = audit if audit is not None else MemoryAuditLog()
        self.engine = engine or ReconstructionEngine()
        self.generator = DiffGenerator()

    # ---- apply ----

    def apply(
        self,
        file_path: str,
        original_content: str,
        diff: ParsedDiff,
        selection: Optional[Iterable[int]] = None,
        notes: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ApplyOutcome:
        res, rec = self.begin_apply(file_path, original_content, diff, selection)
        if rec is None:
            return res
        if not self.snapshot_original(res, original_content):
            return res
        if not self.write_content(res):
            return res
        self.finish_apply(res, diff, rec, notes, metadata)
        return res

    def begin_apply(
        self,
        file_path: str,
        original_content: str,
        diff: ParsedDiff,
        selection: Optional[Iterable[int]] = None,
    ) -> Tuple[ApplyOutcome, Optional[ReconstructResult]]:
        """Pure step: reconstruct and prepare the outcome. No I/O."""
        chosen = self._chosen(diff, selection)
        res = ApplyOutcome(success=False, overall_message="Apply failed.", file_path=file_path)
        res.summary = diff.summary(chosen)

        rec = self.engine.reconstruct(original_content, diff, chosen)
        if not rec.success:
            res.error = rec.error
            if rec.error.kind == ErrorKind.CONTEXT_MISMATCH:
                res.overall_message = "The file changed since the proposal was made; request a new diff."
            else:
                res.overall_message = "The proposed diff is malformed; request a new diff."
            res.add_log("ERROR", "Reconstruction failed; nothing written.", file=file_path,
                        kind=rec.error.kind.value, hunk_id=rec.error.hunk_id, error=rec.error.message)
            return res, None

        res.content = rec.content
        res.add_log("INFO", "Reconstructed content.", file=file_path,
                    hunks_applied=len(rec.applied_ids), hunks_total=len(diff.hunks))
        return res, rec

    def snapshot_original(self, res: ApplyOutcome, original_content: str) -> bool:
        try:
            res.backup = self.backups.snapshot(res.file_path, original_content)
        except Exception as e:
            res.error = PatchError(ErrorKind.BACKUP_FAILED, f"Could not back up {res.file_path}: {e}")
            res.overall_message = "Backup failed; the file was not modified."
            res.add_log("ERROR", "Backup failed; blocking write.", file=res.file_path, error=str(e))
            return False
        res.add_log("INFO", "Created backup.", file=res.file_path, backup=res.backup.backup_path)
        return True

    def write_content(self, res: ApplyOutcome) -> bool:
        try:
            self.store.write(res.file_path, res.content)
        except Exception as e:
            backup_path = res.backup.backup_path if res.backup else None
            res.error = PatchError(
                ErrorKind.WRITE_FAILED,
                f"Could not write {res.file_path}: {e}",
                details={"backup_path": backup_path},
            )
            res.overall_message = "Write failed; retry or restore from the backup."
            res.add_log("ERROR", "Write failed after backup.", file=res.file_path, backup=backup_path, error=str(e))
            return False
        res.add_log("INFO", "Wrote reconstructed content.", file=res.file_path)
        return True

    def finish_apply(
        self,
        res: ApplyOutcome,
        diff: ParsedDiff,
        rec: ReconstructResult,
        notes: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        res.success = True
        res.overall_message = "Apply completed."
        applied = [h for h in diff.hunks if h.id in set(rec.applied_ids)]
        diff_text = self.generator.render_hunks(applied, res.file_path)
        entry = AuditEntry(
            file_path=res.file_path,
            action=AuditAction.APPLIED,
            diff_summary=res.summary,
            backup_path=res.backup.backup_path if res.backup else None,
            notes=notes,
            diff_hash=self.generator.digest(diff_text),
            hunk_ids=tuple(rec.applied_ids),
            diff_text=diff_text,
            metadata=dict(metadata or {}),
        )
        self._record(res, entry)

    # ---- reject ----

    def reject(
        self,
        file_path: str,
        diff: ParsedDiff,
        selection: Optional[Iterable[int]] = None,
        notes: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ApplyOutcome:
        chosen = self._chosen(diff, selection)
        rejected = [h for h in diff.hunks if h.id in chosen]
        res = ApplyOutcome(success=True, overall_message="Rejection recorded.", file_path=file_path)
        res.summary = diff.summary(chosen)
        diff_text = self.generator.render_hunks(rejected, file_path)
        entry = AuditEntry(
            file_path=file_path,
            action=AuditAction.REJECTED,
            diff_summary=res.summary,
            notes=notes,
            diff_hash=self.generator.digest(diff_text),
            hunk_ids=tuple(h.id for h in rejected),
            diff_text=diff_text,
            metadata=dict(metadata or {}),
        )
        res.add_log("INFO", "Hunks rejected.", file=file_path, rejected=len(rejected), total=len(diff.hunks))
        self._record(res, entry)
        return res

    # ---- restore ----

    def restore(
        self,
        file_path: str,
        backup_ref: str,
        notes: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> RestoreOutcome:
        res, content = self.load_backup(file_path, backup_ref)
        if content is None:
            return res
        if not self.write_restored(res, content):
            return res
        self.finish_restore(res, notes, metadata)
        return res

    def load_backup(self, file_path: str, backup_ref: str) -> Tuple[RestoreOutcome, Optional[str]]:
        res = RestoreOutcome(success=False, overall_message="Restore failed.",
                             file_path=file_path, backup_path=backup_ref)
        if not self.backups.owns(backup_ref):
            self._backup_not_found(res, "reference is outside the backup area")
            return res, None
        try:
            content = self.backups.read(backup_ref)
        except FileNotFoundError as e:
            self._backup_not_found(res, str(e))
            return res, None
        except Exception as e:
            res.error = PatchError(
                ErrorKind.READ_FAILED,
                f"Could not read backup {backup_ref!r}: {e}",
                details={"backup_path": backup_ref},
            )
            res.overall_message = "Backup could not be read; retry the restore."
            res.add_log("ERROR", "Backup read failed.", file=file_path, backup=backup_ref, error=str(e))
            return res, None
        return res, content

    def _backup_not_found(self, res: RestoreOutcome, error: str) -> None:
        res.error = PatchError(
            ErrorKind.BACKUP_NOT_FOUND,
            f"Backup {res.backup_path!r} is missing or expired: {error}",
            details={"backup_path": res.backup_path},
        )
        res.overall_message = "Backup not found; nothing restored."
        res.add_log("ERROR", "Backup not found.", file=res.file_path, backup=res.backup_path, error=error)

    def write_restored(self, res: RestoreOutcome, content: str) -> bool:
        try:
            self.store.write(res.file_path, content)
        except Exception as e:
            res.error = PatchError(
                ErrorKind.WRITE_FAILED,
                f"Could not write {res.file_path}: {e}",
                details={"backup_path": res.backup_path},
            )
            res.overall_message = "Write failed while restoring; retry the restore."
            res.add_log("ERROR", "Restore write failed.", file=res.file_path, backup=res.backup_path, error=str(e))
            return False
        res.add_log("INFO", "Restored content from backup.", file=res.file_path, backup=res.backup_path)
        return True

    def finish_restore(
        self,
        res: RestoreOutcome,
        notes: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        res.success = True
        res.overall_message = "Restore completed."
        entry = AuditEntry(
            file_path=res.file_path,
            action=AuditAction.RESTORED,
            diff_summary=DiffSummary(total_hunks=0, selected_hunks=0),
            backup_path=res.backup_path,
            notes=notes or f"File restored from backup: {res.backup_path}",
            metadata=dict(metadata or {}),
        )
        self._record(res, entry)

    # ---- helpers ----

    def _chosen(self, diff: ParsedDiff, selection: Optional[Iterable[int]]) -> Set[int]:
        if selection is None:
            return {h.id for h in diff.hunks if h.selected}
        return set(selection)

    def _record(self, res, entry: AuditEntry) -> None:
        try:
            self.audit.append(entry)
        except Exception as e:
            res.audit_error = PatchError(ErrorKind.AUDIT_FAILED, f"Audit append failed: {e}")
            res.add_log("WARN", "Audit entry not recorded; the file change stands.",
                        file=entry.file_path, action=entry.action.value, error=str(e))
            return
        res.audit_entry = entry
