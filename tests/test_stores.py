"""Tests for content stores, store configuration and backups."""
from __future__ import annotations

import itertools

import pytest

from patchengine.core import BackupManager, DirectoryContentStore, MemoryContentStore, StoreConfig
from patchengine.core import backups as backups_module


class TestStoreConfig:
    def test_defaults(self):
        cfg = StoreConfig()
        assert cfg.backup_dir == ".patchengine_backups"
        assert cfg.preserve_line_endings is True

    def test_from_options(self):
        cfg = StoreConfig.from_options({
            "backup_dir": "/snapshots/",
            "preserve_original_line_endings": False,
        })
        assert cfg.backup_dir == "snapshots"
        assert cfg.preserve_line_endings is False
        assert cfg.encoding == "utf-8"


class TestMemoryContentStore:
    def test_read_write_list(self):
        store = MemoryContentStore({"a.txt": "A"})
        store.write("dir/b.txt", "B")
        assert store.read("dir/b.txt") == "B"
        assert store.exists("a.txt")
        assert store.list("dir/") == ["dir/b.txt"]

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            MemoryContentStore().read("nope")

    def test_failure_predicate(self):
        store = MemoryContentStore(fail_writes=lambda p: p.startswith("locked/"))
        store.write("open.txt", "x")
        with pytest.raises(OSError):
            store.write("locked/f.txt", "x")
        assert store.writes == ["open.txt"]


class TestDirectoryContentStore:
    def test_write_creates_parents(self, tmp_path):
        store = DirectoryContentStore(str(tmp_path))
        store.write("pkg/mod.py", "x = 1\n")
        assert (tmp_path / "pkg" / "mod.py").read_text(encoding="utf-8") == "x = 1\n"
        assert store.list("pkg/") == ["pkg/mod.py"]
        assert store.exists("pkg/mod.py")

    def test_outside_root_refused(self, tmp_path):
        store = DirectoryContentStore(str(tmp_path / "root"))
        with pytest.raises(ValueError):
            store.write("../escape.txt", "x")
        assert not (tmp_path / "escape.txt").exists()
        assert store.exists("../escape.txt") is False

    def test_raw_mode_keeps_crlf(self, tmp_path):
        (tmp_path / "f.txt").write_bytes(b"a\r\nb\r\n")
        store = DirectoryContentStore(str(tmp_path), StoreConfig(preserve_line_endings=False))
        assert store.read("f.txt") == "a\r\nb\r\n"

    def test_no_temp_files_left_behind(self, tmp_path):
        store = DirectoryContentStore(str(tmp_path))
        store.write("f.txt", "one\n")
        store.write("f.txt", "two\n")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["f.txt"]


class TestBackupManager:
    def test_snapshot_record(self):
        store = MemoryContentStore()
        record = BackupManager(store).snapshot("src/app.py", "print('hi')\n")
        assert record.file_path == "src/app.py"
        assert record.backup_path.startswith(".patchengine_backups/")
        assert record.backup_path.endswith("/src/app.py")
        assert store.files[record.backup_path] == "print('hi')\n"

    def test_absolute_and_parent_paths_stay_inside_backup_area(self):
        backups = BackupManager(MemoryContentStore())
        for path in ("/etc/hosts", "../../x.txt", "C:\\work\\a.txt"):
            record = backups.snapshot(path, "x")
            assert backups.owns(record.backup_path)
            assert ".." not in record.backup_path.split("/")

    def test_owns(self):
        backups = BackupManager(MemoryContentStore())
        assert backups.owns(".patchengine_backups/20240101_000000_000000_ab/f.txt")
        assert not backups.owns(".patchengine_backups/f.txt")
        assert not backups.owns("f.txt")
        assert not backups.owns(".patchengine_backups/x/../../f.txt")

    def test_list_backups_newest_first(self, monkeypatch):
        clock = itertools.count(1_700_000_000, 5)
        monkeypatch.setattr(backups_module.time, "time", lambda: float(next(clock)))
        backups = BackupManager(MemoryContentStore())
        first = backups.snapshot("f.txt", "v1").backup_path
        second = backups.snapshot("f.txt", "v2").backup_path
        backups.snapshot("other.txt", "o")
        assert backups.list_backups("f.txt") == [second, first]
        assert backups.exists(first)

    def test_custom_backup_dir(self):
        backups = BackupManager(MemoryContentStore(), StoreConfig(backup_dir="var/bak"))
        record = backups.snapshot("f.txt", "x")
        assert record.backup_path.startswith("var/bak/")
        assert backups.list_backups("f.txt") == [record.backup_path]
