"""Patch Engine core: content stores the engine reads from and writes to."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class StoreConfig:
    backup_dir: str = ".patchengine_backups"
    preserve_line_endings: bool = True
    encoding: str = "utf-8"

    @classmethod
    def from_options(cls, options: Dict[str, Any]) -> "StoreConfig":
        return cls(
            backup_dir=str(options.get("backup_dir", cls.backup_dir)).strip("/") or cls.backup_dir,
            preserve_line_endings=bool(options.get("preserve_original_line_endings", True)),
            encoding=str(options.get("encoding", cls.encoding)),
        )


class ContentStore:
    """
    Host-supplied storage. Paths are store-relative strings using '/'.
    Any exception raised by read/write is terminal for the calling operation.
    """

    def read(self, path: str) -> str:
        raise NotImplementedError

    def write(self, path: str, content: str) -> None:
        raise NotImplementedError

    def exists(self, path: str) -> bool:
        raise NotImplementedError

    def list(self, prefix: str = "") -> List[str]:
        raise NotImplementedError


class MemoryContentStore(ContentStore):
    """
    Dict-backed store. fail_writes/fail_reads accept True (always fail) or a
    predicate on the path, to simulate a host whose storage is unavailable.
    """

    def __init__(
        self,
        files: Optional[Dict[str, str]] = None,
        fail_writes: Any = False,
        fail_reads: Any = False,
    ):
        self.files: Dict[str, str] = dict(files or {})
        self.fail_writes = fail_writes
        self.fail_reads = fail_reads
        self.writes: List[str] = []

    def _should_fail(self, rule: Any, path: str) -> bool:
        if callable(rule):
            return bool(rule(path))
        return bool(rule)

    def read(self, path: str) -> str:
        if self._should_fail(self.fail_reads, path):
            raise OSError(f"simulated read failure: {path}")
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def write(self, path: str, content: str) -> None:
        if self._should_fail(self.fail_writes, path):
            raise OSError(f"simulated write failure: {path}")
        self.files[path] = content
        self.writes.append(path)

    def exists(self, path: str) -> bool:
        return path in self.files

    def list(self, prefix: str = "") -> List[str]:
        return sorted(p for p in self.files if p.startswith(prefix))


class DirectoryContentStore(ContentStore):
    """
    Store rooted at a folder on disk.

    Paths resolving outside the root are refused. Writes go to a temp file that
    replaces the target. With preserve_line_endings, reads hand out '\\n' text
    and writes convert back to the target file's dominant line ending.
    """

    def __init__(self, root: str, config: Optional[StoreConfig] = None):
        self.root = Path(root).resolve()
        self.config = config or StoreConfig()

    def resolve(self, path: str) -> Path:
        p = Path(path)
        target = p.resolve() if p.is_absolute() else (self.root / p).resolve()
        try:
            target.relative_to(self.root)
        except ValueError:
            raise ValueError(f"Path resolves outside store root: {path}")
        return target

    def read(self, path: str) -> str:
        target = self.resolve(path)
        if self.config.preserve_line_endings:
            text = target.read_text(encoding=self.config.encoding)
            return text.replace("\r\n", "\n").replace("\r", "\n")
        with open(target, "r", encoding=self.config.encoding, newline="") as f:
            return f.read()

    def write(self, path: str, content: str) -> None:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        eol = "\n"
        if self.config.preserve_line_endings and target.exists():
            eol = self._detect_eol(target)
        self._atomic_write_text(target, content, eol=eol)

    def exists(self, path: str) -> bool:
        try:
            return self.resolve(path).is_file()
        except ValueError:
            return False

    def list(self, prefix: str = "") -> List[str]:
        out = []
        for p in self.root.rglob("*"):
            if not p.is_file():
                continue
            rel = p.relative_to(self.root).as_posix()
            if rel.startswith(prefix):
                out.append(rel)
        return sorted(out)

    def _detect_eol(self, path: Path) -> str:
        # Detect dominant EOL by reading bytes; default \n.
        data = path.read_bytes()
        crlf = data.count(b"\r\n")
        lf = data.count(b"\n")
        if crlf > 0 and crlf >= (lf - crlf):
            return "\r\n"
        return "\n"

    def _atomic_write_text(self, path: Path, text: str, eol: str = "\n") -> None:
        data = text.replace("\n", eol) if eol != "\n" else text
        tmp = path.with_name(path.name + f".patchengine_tmp_{os.getpid()}_{int(time.time()*1000)}")
        try:
            with open(tmp, "w", encoding=self.config.encoding, newline="") as f:
                f.write(data)
            os.replace(str(tmp), str(path))
        finally:
            if tmp.exists():
                tmp.unlink()


