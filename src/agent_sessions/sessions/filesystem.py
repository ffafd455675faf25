"""Filesystem abstraction and the atomic write primitive.

Every mutation of the session directory goes through atomic_write(), so a
reader never sees a partially written session, index or pointer file.
"""

from __future__ import annotations

import contextlib
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path

from agent_sessions.core import get_logger

from .identity import random_token

logger = get_logger("sessions.filesystem")

TEMP_MARKER = ".tmp."


class FileSystem(ABC):
    """Minimal filesystem interface used by the session store.

    Swappable for testing and for alternative storage backends. Paths are
    pathlib objects; implementations raise OSError subclasses on failure.
    """

    @abstractmethod
    def read_text(self, path: Path) -> str:
        """Read a file as UTF-8 text.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        ...

    @abstractmethod
    def write_text(self, path: Path, content: str) -> None:
        """Write UTF-8 text, replacing any existing content."""
        ...

    @abstractmethod
    def exists(self, path: Path) -> bool:
        """Check whether a file or directory exists."""
        ...

    @abstractmethod
    def mkdir(self, path: Path) -> None:
        """Create a directory and any missing parents."""
        ...

    @abstractmethod
    def listdir(self, path: Path) -> list[str]:
        """List entry names directly under a directory."""
        ...

    @abstractmethod
    def rename(self, src: Path, dst: Path) -> None:
        """Atomically move src onto dst, replacing dst if present."""
        ...

    @abstractmethod
    def unlink(self, path: Path) -> None:
        """Remove a file.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        ...

    def chmod(self, path: Path, mode: int) -> None:
        """Set permission bits. No-op unless overridden."""

    def resolve(self, path: Path | str) -> Path:
        """Expand ~ and return an absolute path."""
        return Path(path).expanduser().absolute()


class LocalFileSystem(FileSystem):
    """FileSystem backed by the local disk via pathlib."""

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def write_text(self, path: Path, content: str) -> None:
        with path.open("w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

    def exists(self, path: Path) -> bool:
        return path.exists()

    def mkdir(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def listdir(self, path: Path) -> list[str]:
        return [entry.name for entry in path.iterdir()]

    def rename(self, src: Path, dst: Path) -> None:
        # os.replace is atomic on POSIX and overwrites on Windows
        os.replace(src, dst)

    def unlink(self, path: Path) -> None:
        path.unlink()

    def chmod(self, path: Path, mode: int) -> None:
        with contextlib.suppress(OSError, NotImplementedError):
            path.chmod(mode)


def temp_path_for(path: Path) -> Path:
    """Build a unique sibling temp path for an atomic write.

    The suffix combines epoch milliseconds with random characters so
    concurrent writers targeting the same file never share a temp file.
    """
    suffix = f"{int(time.time() * 1000)}-{random_token(6, 5)}"
    return path.with_name(f"{path.name}{TEMP_MARKER}{suffix}")


def atomic_write(fs: FileSystem, path: Path, content: str) -> None:
    """Write content to path so readers see either the old or new file.

    Writes to a temp file in the same directory, then renames it onto
    path. On failure the temp file is removed (best-effort) and the
    original error is re-raised.

    Args:
        fs: Filesystem to write through.
        path: Final destination.
        content: Complete new file content.

    Raises:
        OSError: If the write or the rename fails.
    """
    temp_path = temp_path_for(path)
    try:
        fs.write_text(temp_path, content)
        fs.rename(temp_path, path)
    except Exception:
        try:
            if fs.exists(temp_path):
                fs.unlink(temp_path)
        except OSError as cleanup_error:
            logger.debug("Failed to remove temp file %s: %s", temp_path, cleanup_error)
        raise
