"""
Content Sources - Where the engine reads and writes file text

Any backing store with read/write/delete/exists works. The local filesystem
is used by the server; the in-memory map is used for tests and previews.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Protocol

from .errors import PathOutsideWorkspaceError


class ContentSource(Protocol):
    """Minimal file access used by the patch engine"""

    def read(self, file_path: str) -> str:
        """Return file text; raise FileNotFoundError if absent"""
        ...

    def write(self, file_path: str, content: str) -> None: ...

    def delete(self, file_path: str) -> None: ...

    def exists(self, file_path: str) -> bool: ...


class LocalFileSource:
    """Filesystem-backed content source confined to a workspace directory"""

    def __init__(self, root: str | Path = "."):
        self.root = Path(root).expanduser().resolve()

    def resolve(self, file_path: str) -> Path:
        """Absolute path for file_path; anything outside the root is refused"""
        path = Path(file_path).expanduser()
        if not path.is_absolute():
            path = self.root / path
        # Resolving first folds ".." segments and symlinks into the real location
        path = path.resolve()
        if not path.is_relative_to(self.root):
            raise PathOutsideWorkspaceError(file_path, str(self.root))
        return path

    def read(self, file_path: str) -> str:
        # newline="" keeps \r\n intact so diffs stay byte-exact
        with open(self.resolve(file_path), encoding="utf-8", newline="") as f:
            return f.read()

    def write(self, file_path: str, content: str) -> None:
        path = self.resolve(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

    def delete(self, file_path: str) -> None:
        self.resolve(file_path).unlink()

    def exists(self, file_path: str) -> bool:
        return self.resolve(file_path).is_file()


class InMemoryContentSource:
    """Dict-backed content source"""

    def __init__(self, files: dict[str, str] | None = None):
        self._files: dict[str, str] = dict(files or {})
        self._lock = threading.Lock()

    def read(self, file_path: str) -> str:
        with self._lock:
            if file_path not in self._files:
                raise FileNotFoundError(file_path)
            return self._files[file_path]

    def write(self, file_path: str, content: str) -> None:
        with self._lock:
            self._files[file_path] = content

    def delete(self, file_path: str) -> None:
        with self._lock:
            if file_path not in self._files:
                raise FileNotFoundError(file_path)
            del self._files[file_path]

    def exists(self, file_path: str) -> bool:
        with self._lock:
            return file_path in self._files

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._files)
