"""
File-system collaborator — the read/write/delete contract the review queue
drives, plus a local-disk implementation rooted at a project directory.

Paths handed to a ``FileSystem`` are already normalized, relative and free
of ``..`` segments (see :func:`apply_changes.editing.validator.normalize_path`).
"""

from __future__ import annotations

import logging
import os
import shutil
from abc import ABC, abstractmethod

from .errors import FileSystemError, NotFoundError

logger = logging.getLogger(__name__)


class FileSystem(ABC):

    @abstractmethod
    def read(self, path: str) -> str:
        """Return the file's text; raise ``NotFoundError`` if it does not exist."""

    @abstractmethod
    def write(self, path: str, content: str) -> None:
        """Create or overwrite the file; raise ``FileSystemError`` on failure."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the file; raise ``FileSystemError`` on failure."""

    def exists(self, path: str) -> bool:
        try:
            self.read(path)
        except NotFoundError:
            return False
        return True


class LocalFileSystem(FileSystem):
    """Files under *root* on the local disk, written atomically."""

    def __init__(self, root: str = ".") -> None:
        self.root = os.path.realpath(root)

    def resolve(self, path: str) -> str:
        """Absolute path for *path*, refusing anything outside the root."""
        full = os.path.realpath(os.path.join(self.root, path))
        if full != self.root and not full.startswith(self.root + os.sep):
            raise FileSystemError(f"Path resolves outside project root: {path}", path)
        return full

    def exists(self, path: str) -> bool:
        return os.path.isfile(self.resolve(path))

    def read(self, path: str) -> str:
        full = self.resolve(path)
        if os.path.isdir(full):
            raise FileSystemError(f"Path is a directory: {path}", path)
        try:
            # newline="" keeps \r\n intact so patched files keep their endings
            with open(full, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except FileNotFoundError as exc:
            raise NotFoundError(f"File not found: {path}", path) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise FileSystemError(f"Cannot read {path}: {exc}", path) from exc

    def write(self, path: str, content: str) -> None:
        full = self.resolve(path)
        try:
            parent = os.path.dirname(full)
            if parent:
                os.makedirs(parent, exist_ok=True)
            self._safe_write(full, content)
        except OSError as exc:
            raise FileSystemError(f"Cannot write {path}: {exc}", path) from exc
        logger.info("Written: %s", path)

    def delete(self, path: str) -> None:
        full = self.resolve(path)
        try:
            os.remove(full)
        except FileNotFoundError as exc:
            raise NotFoundError(f"File not found: {path}", path) from exc
        except OSError as exc:
            raise FileSystemError(f"Cannot delete {path}: {exc}", path) from exc
        logger.info("Deleted: %s", path)

    @staticmethod
    def _safe_write(abs_path: str, content: str) -> None:
        """Write content atomically via temp file + rename."""
        tmp_path = abs_path + ".apply_changes_tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)

            # On Windows, os.rename fails if destination exists
            if os.path.exists(abs_path):
                shutil.move(tmp_path, abs_path)
            else:
                os.rename(tmp_path, abs_path)
        except OSError:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise


class MemoryFileSystem(FileSystem):
    """In-memory files, for dry runs and for driving the queue in tests."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})

    def read(self, path: str) -> str:
        try:
            return self.files[path]
        except KeyError:
            raise NotFoundError(f"File not found: {path}", path) from None

    def write(self, path: str, content: str) -> None:
        self.files[path] = content

    def delete(self, path: str) -> None:
        if path not in self.files:
            raise NotFoundError(f"File not found: {path}", path)
        del self.files[path]
