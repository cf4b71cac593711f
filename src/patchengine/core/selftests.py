"""Patch Engine core: in-process self tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Tuple

from .applier import PatchApplier
from .audit import JsonlAuditLog
from .backups import BackupManager
from .diffgen import DiffGenerator
from .models import AuditAction, ErrorKind
from .parser import UnifiedDiffParser
from .reconstruct import ReconstructionEngine
from .selection import HunkSelection
from .stores import DirectoryContentStore, MemoryContentStore


class PatchEngineSelfTests:
    """
    In-process self tests using temporary directories and embedded diff strings.
    """

    @staticmethod
    def run() -> Tuple[bool, str]:
        parser = UnifiedDiffParser()
        engine = ReconstructionEngine()
        generator = DiffGenerator()

        report_lines = []
        ok = True

        def fail(msg: str) -> None:
            nonlocal ok
            ok = False
            report_lines.append("FAIL: " + msg)

        def pass_(msg: str) -> None:
            report_lines.append("OK: " + msg)

        original = "a\nb\nc\nd\ne\n"

        # 1) Five-line scenario, selected and deselected
        patch1 = (
            "--- a/letters.txt\n"
            "+++ b/letters.txt\n"
            "@@ -2,2 +2,3 @@\n"
            "-b\n"
            "-c\n"
            "+b2\n"
            "+c2\n"
            "+c3\n"
        )
        d1 = parser.parse(patch1, "letters.txt")
        if len(d1.hunks) != 1 or d1.warnings:
            fail("Single hunk parsing incorrect.")
        else:
            pass_("Single hunk parsing.")
        r1 = engine.reconstruct(original, d1)
        if not r1.success or r1.content != "a\nb2\nc2\nc3\nd\ne\n":
            fail("Selected hunk reconstruction incorrect.")
        else:
            pass_("Selected hunk reconstruction.")
        HunkSelection(d1).select_none()
        r1n = engine.reconstruct(original, d1)
        if not r1n.success or r1n.content != original:
            fail("Deselected hunk did not leave the original intact.")
        else:
            pass_("Deselected hunk reconstruction.")

        # 2) Partial selection over two disjoint hunks
        new_text = "A\nb\nc\nd\nE\n"
        d2 = parser.parse(generator.generate_unified_for_file(original, new_text, "a/f", "b/f", context=0), "f")
        if len(d2.hunks) != 2:
            fail("Expected two hunks from zero-context diff.")
        else:
            r2 = engine.reconstruct(original, d2, {1})
            if not r2.success or r2.content != "a\nb\nc\nd\nE\n":
                fail("Partial selection reconstruction incorrect.")
            else:
                pass_("Partial selection reconstruction.")

        # 3) Stale base detected
        r3 = engine.reconstruct("a\nB\nc\nd\ne\n", parser.parse(patch1, "letters.txt"))
        if r3.success or r3.error.kind != ErrorKind.CONTEXT_MISMATCH:
            fail("Context drift not detected.")
        else:
            pass_("Context drift detected.")

        # 4) Truncated hunk flagged and refused
        d4 = parser.parse("@@ -1,3 +1,3 @@\n a\n-b\n+B\n", "letters.txt")
        if not d4.warnings:
            fail("Truncated hunk not flagged at parse time.")
        elif engine.reconstruct(original, d4).error is None:
            fail("Truncated hunk was applied.")
        else:
            pass_("Truncated hunk flagged and refused.")

        # 5) Write failure keeps the backup and skips the audit entry
        backup_store = MemoryContentStore()
        applier = PatchApplier(MemoryContentStore(fail_writes=True), backups=BackupManager(backup_store))
        res5 = applier.apply("letters.txt", original, parser.parse(patch1, "letters.txt"))
        if res5.success or res5.error.kind != ErrorKind.WRITE_FAILED or res5.backup is None:
            fail("Write failure outcome incorrect.")
        elif backup_store.files.get(res5.backup.backup_path) != original or applier.audit.entries():
            fail("Write failure left wrong backup/audit state.")
        else:
            pass_("Backup before write; no audit on failed write.")

        # 6) Disk apply, then restore
        with tempfile.TemporaryDirectory() as td:
            root = Path(td).resolve()
            (root / "letters.txt").write_text(original, encoding="utf-8", newline="\n")
            store = DirectoryContentStore(str(root))
            audit = JsonlAuditLog(str(root / "audit.jsonl"))
            disk = PatchApplier(store, audit=audit)
            res6 = disk.apply("letters.txt", store.read("letters.txt"), parser.parse(patch1, "letters.txt"))
            if not res6.success or (root / "letters.txt").read_text(encoding="utf-8") != "a\nb2\nc2\nc3\nd\ne\n":
                fail("Disk apply failed.")
            else:
                pass_("Disk apply.")
                back = disk.restore("letters.txt", res6.backup.backup_path)
                actions = [e.action for e in audit.for_file("letters.txt")]
                if not back.success or store.read("letters.txt") != original:
                    fail("Restore from backup failed.")
                elif actions != [AuditAction.APPLIED, AuditAction.RESTORED]:
                    fail("Audit trail incorrect after apply+restore.")
                else:
                    pass_("Restore from backup with audit trail.")

        return ok, "\n".join(report_lines)
