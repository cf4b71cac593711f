"""Tests for awaitable apply/restore and cancellation around the write."""
from __future__ import annotations

import asyncio
import threading

import pytest

from patchengine.core import (
    AsyncPatchApplier, AuditAction, ErrorKind, MemoryAuditLog, MemoryContentStore, PatchApplier,
)

from conftest import LETTERS


class BlockingStore(MemoryContentStore):
    """Blocks writes matching `block` until released."""

    def __init__(self, files, block):
        super().__init__(files)
        self.block = block
        self.started = threading.Event()
        self.release = threading.Event()

    def write(self, path, content):
        if self.block(path):
            self.started.set()
            self.release.wait(5)
        super().write(path, content)


def _is_backup(path):
    return path.startswith(".patchengine_backups/")


class TestAsyncApply:
    def test_apply_and_restore(self, letters_diff):
        store = MemoryContentStore({"letters.txt": LETTERS})
        audit = MemoryAuditLog()
        aapplier = AsyncPatchApplier(PatchApplier(store, audit=audit))

        async def scenario():
            applied = await aapplier.apply("letters.txt", LETTERS, letters_diff)
            restored = await aapplier.restore("letters.txt", applied.backup.backup_path)
            rejected = await aapplier.reject("letters.txt", letters_diff)
            return applied, restored, rejected

        applied, restored, rejected = asyncio.run(scenario())
        assert applied.success and restored.success and rejected.success
        assert store.files["letters.txt"] == LETTERS
        assert [e.action for e in audit.entries()] == [
            AuditAction.APPLIED, AuditAction.RESTORED, AuditAction.REJECTED,
        ]

    def test_failed_reconstruction(self, letters_diff):
        store = MemoryContentStore({"letters.txt": LETTERS})
        aapplier = AsyncPatchApplier(PatchApplier(store))
        res = asyncio.run(aapplier.apply("letters.txt", "stale\n", letters_diff))
        assert res.error.kind == ErrorKind.CONTEXT_MISMATCH
        assert store.writes == []

    def test_cancel_before_write_leaves_file_untouched(self, letters_diff):
        store = BlockingStore({"letters.txt": LETTERS}, block=_is_backup)
        audit = MemoryAuditLog()
        aapplier = AsyncPatchApplier(PatchApplier(store, audit=audit))

        async def scenario():
            task = asyncio.create_task(aapplier.apply("letters.txt", LETTERS, letters_diff))
            await asyncio.to_thread(store.started.wait, 5)
            task.cancel()
            await asyncio.sleep(0)
            store.release.set()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert "letters.txt" not in store.writes
        assert store.files["letters.txt"] == LETTERS
        assert audit.entries() == []

    def test_cancel_during_write_completes_and_audits(self, letters_diff):
        store = BlockingStore({"letters.txt": LETTERS}, block=lambda p: p == "letters.txt")
        audit = MemoryAuditLog()
        aapplier = AsyncPatchApplier(PatchApplier(store, audit=audit))

        async def scenario():
            task = asyncio.create_task(aapplier.apply("letters.txt", LETTERS, letters_diff))
            await asyncio.to_thread(store.started.wait, 5)
            task.cancel()
            await asyncio.sleep(0)
            store.release.set()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert store.files["letters.txt"] == "a\nb2\nc2\nc3\nd\ne\n"
        assert [e.action for e in audit.entries()] == [AuditAction.APPLIED]

    def test_repeated_cancel_during_write_still_audits(self, letters_diff):
        store = BlockingStore({"letters.txt": LETTERS}, block=lambda p: p == "letters.txt")
        audit = MemoryAuditLog()
        aapplier = AsyncPatchApplier(PatchApplier(store, audit=audit))

        async def scenario():
            task = asyncio.create_task(aapplier.apply("letters.txt", LETTERS, letters_diff))
            await asyncio.to_thread(store.started.wait, 5)
            for _ in range(3):
                task.cancel()
                for _ in range(3):
                    await asyncio.sleep(0)
            store.release.set()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert store.files["letters.txt"] == "a\nb2\nc2\nc3\nd\ne\n"
        assert [e.action for e in audit.entries()] == [AuditAction.APPLIED]


class TestAsyncRestore:
    def test_repeated_cancel_during_restore_write_still_audits(self, letters_diff):
        store = BlockingStore({"letters.txt": LETTERS}, block=lambda p: False)
        audit = MemoryAuditLog()
        applier = PatchApplier(store, audit=audit)
        backup = applier.apply("letters.txt", LETTERS, letters_diff).backup
        store.block = lambda p: p == "letters.txt"
        aapplier = AsyncPatchApplier(applier)

        async def scenario():
            task = asyncio.create_task(aapplier.restore("letters.txt", backup.backup_path))
            await asyncio.to_thread(store.started.wait, 5)
            for _ in range(3):
                task.cancel()
                for _ in range(3):
                    await asyncio.sleep(0)
            store.release.set()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert store.files["letters.txt"] == LETTERS
        assert [e.action for e in audit.entries()] == [AuditAction.APPLIED, AuditAction.RESTORED]
