"""Patch Engine core: awaitable apply/restore for async hosts."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, Optional

from .applier import PatchApplier
from .models import ApplyOutcome, ParsedDiff, RestoreOutcome


class AsyncPatchApplier:
    """
    Runs PatchApplier's steps with store I/O moved to worker threads.

    Cancellation is honoured until the content write is issued. From then on
    the write is shielded: if the caller is cancelled meanwhile, even more than
    once, the write is still awaited and audited before CancelledError
    propagates, so the audit log reflects what actually happened to the file.
    """

    def __init__(self, applier: PatchApplier):
        self.applier = applier

    async def apply(
        self,
        file_path: str,
        original_content: str,
        diff: ParsedDiff,
        selection: Optional[Iterable[int]] = None,
        notes: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ApplyOutcome:
        a = self.applier
        res, rec = a.begin_apply(file_path, original_content, diff, selection)
        if rec is None:
            return res
        if not await asyncio.to_thread(a.snapshot_original, res, original_content):
            return res

        write = asyncio.ensure_future(asyncio.to_thread(a.write_content, res))
        try:
            written = await asyncio.shield(write)
        except asyncio.CancelledError:
            if await _settle(write):
                await asyncio.to_thread(a.finish_apply, res, diff, rec, notes, metadata)
            raise

        if written:
            await asyncio.to_thread(a.finish_apply, res, diff, rec, notes, metadata)
        return res

    async def reject(
        self,
        file_path: str,
        diff: ParsedDiff,
        selection: Optional[Iterable[int]] = None,
        notes: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ApplyOutcome:
        return await asyncio.to_thread(self.applier.reject, file_path, diff, selection, notes, metadata)

    async def restore(
        self,
        file_path: str,
        backup_ref: str,
        notes: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> RestoreOutcome:
        a = self.applier
        res, content = await asyncio.to_thread(a.load_backup, file_path, backup_ref)
        if content is None:
            return res

        write = asyncio.ensure_future(asyncio.to_thread(a.write_restored, res, content))
        try:
            written = await asyncio.shield(write)
        except asyncio.CancelledError:
            if await _settle(write):
                await asyncio.to_thread(a.finish_restore, res, notes, metadata)
            raise

        if written:
            await asyncio.to_thread(a.finish_restore, res, notes, metadata)
        return res


async def _settle(write: asyncio.Future) -> bool:
    """Wait out a write that has already started, absorbing further cancellations."""
    while not write.done():
        try:
            await asyncio.shield(write)
        except asyncio.CancelledError:
            continue
    return write.result()
