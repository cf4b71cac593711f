"""Pytest fixtures for the patch engine tests."""
from __future__ import annotations

import pytest

from patchengine.core import (
    BackupManager, MemoryAuditLog, MemoryContentStore, PatchApplier, UnifiedDiffParser,
)


LETTERS = "a\nb\nc\nd\ne\n"

LETTERS_DIFF = (
    "--- a/letters.txt\n"
    "+++ b/letters.txt\n"
    "@@ -2,2 +2,3 @@\n"
    "-b\n"
    "-c\n"
    "+b2\n"
    "+c2\n"
    "+c3\n"
)

TEN = "".join(f"l{i}\n" for i in range(1, 11))

TWO_HUNK_DIFF = (
    "@@ -1,3 +1,3 @@\n"
    "-l1\n"
    "+L1\n"
    " l2\n"
    " l3\n"
    "@@ -8,3 +8,3 @@\n"
    " l8\n"
    " l9\n"
    "-l10\n"
    "+L10\n"
)


@pytest.fixture
def parser():
    return UnifiedDiffParser()


@pytest.fixture
def letters_diff(parser):
    return parser.parse(LETTERS_DIFF, "letters.txt")


@pytest.fixture
def two_hunk_diff(parser):
    return parser.parse(TWO_HUNK_DIFF, "ten.txt")


@pytest.fixture
def store():
    return MemoryContentStore({"letters.txt": LETTERS})


@pytest.fixture
def audit():
    return MemoryAuditLog()


@pytest.fixture
def applier(store, audit):
    return PatchApplier(store, audit=audit)


@pytest.fixture
def split_applier(audit):
    """Target and backup stores kept apart so each can fail independently."""
    target = MemoryContentStore({"letters.txt": LETTERS})
    backup_store = MemoryContentStore()
    return PatchApplier(target, backups=BackupManager(backup_store), audit=audit), target, backup_store
