"""Test doubles shared across the test suite."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from agent_sessions.sessions import FileSystem

MEMORY_SESSION_DIR = Path("/mem/sessions")


class FakeClock:
    """Deterministic UTC clock. Time only moves when advance() is called."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 15, 10, 30, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1.0) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class MemoryFileSystem(FileSystem):
    """In-memory FileSystem with call recording and failure injection."""

    def __init__(self) -> None:
        self.files: dict[Path, str] = {}
        self.dirs: set[Path] = {Path("/")}
        self.modes: dict[Path, int] = {}
        self.calls: list[tuple[str, Path]] = []
        self._failures: list[tuple[str, Exception, Callable[[Path], bool] | None]] = []

    def fail(
        self,
        op: str,
        error: Exception,
        when: Callable[[Path], bool] | None = None,
    ) -> None:
        """Make op raise error (for paths matching when, if given)."""
        self._failures.append((op, error, when))

    def clear_failures(self) -> None:
        self._failures.clear()

    def _record(self, op: str, path: Path) -> None:
        self.calls.append((op, path))
        for fail_op, error, when in self._failures:
            if fail_op == op and (when is None or when(path)):
                raise error

    def read_text(self, path: Path) -> str:
        self._record("read_text", path)
        if path not in self.files:
            raise FileNotFoundError(str(path))
        return self.files[path]

    def write_text(self, path: Path, content: str) -> None:
        self._record("write_text", path)
        if path.parent not in self.dirs:
            raise FileNotFoundError(str(path.parent))
        self.files[path] = content

    def exists(self, path: Path) -> bool:
        self._record("exists", path)
        return path in self.files or path in self.dirs

    def mkdir(self, path: Path) -> None:
        self._record("mkdir", path)
        self.dirs.add(path)
        self.dirs.update(path.parents)

    def listdir(self, path: Path) -> list[str]:
        self._record("listdir", path)
        if path not in self.dirs:
            raise FileNotFoundError(str(path))
        entries = [p.name for p in self.files if p.parent == path]
        entries.extend(d.name for d in self.dirs if d.parent == path and d != path)
        return entries

    def rename(self, src: Path, dst: Path) -> None:
        self._record("rename", src)
        if src not in self.files:
            raise FileNotFoundError(str(src))
        self.files[dst] = self.files.pop(src)

    def unlink(self, path: Path) -> None:
        self._record("unlink", path)
        if path not in self.files:
            raise FileNotFoundError(str(path))
        del self.files[path]

    def chmod(self, path: Path, mode: int) -> None:
        self._record("chmod", path)
        self.modes[path] = mode

    def resolve(self, path: Path | str) -> Path:
        path = Path(path)
        return path if path.is_absolute() else Path("/mem") / path

    # Helpers for tests

    def put(self, path: Path, content: str) -> None:
        """Create a file (and its parent directories) without recording."""
        self.dirs.add(path.parent)
        self.dirs.update(path.parent.parents)
        self.files[path] = content

    def names(self, directory: Path) -> list[str]:
        """Sorted file names directly under directory."""
        return sorted(p.name for p in self.files if p.parent == directory)
