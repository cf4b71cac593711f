from .models import (
    LineKind, DiffLine, Hunk, ParsedDiff, ParseWarning, DiffSummary, BackupRecord,
    AuditAction, AuditEntry, ErrorKind, PatchError, ReconstructResult, ApplyOutcome, RestoreOutcome,
)
from .normalizer import PatchInputNormalizer
from .parser import UnifiedDiffParser, parse_diff
from .selection import HunkSelection
from .reconstruct import ReconstructionEngine, reconstruct
from .stores import StoreConfig, ContentStore, MemoryContentStore, DirectoryContentStore
from .backups import BackupManager
from .audit import AuditError, AuditLog, MemoryAuditLog, JsonlAuditLog
from .applier import PatchApplier
from .aio import AsyncPatchApplier
from .diffgen import DiffGenerator
from .selftests import PatchEngineSelfTests

__all__ = [
    "LineKind","DiffLine","Hunk","ParsedDiff","ParseWarning","DiffSummary","BackupRecord",
    "AuditAction","AuditEntry","ErrorKind","PatchError","ReconstructResult","ApplyOutcome","RestoreOutcome",
    "PatchInputNormalizer","UnifiedDiffParser","parse_diff","HunkSelection",
    "ReconstructionEngine","reconstruct","StoreConfig","ContentStore","MemoryContentStore",
    "DirectoryContentStore","BackupManager","AuditError","AuditLog","MemoryAuditLog","JsonlAuditLog",
    "PatchApplier","AsyncPatchApplier","DiffGenerator","PatchEngineSelfTests",
]
