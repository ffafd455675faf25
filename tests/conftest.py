"""Shared test fixtures for agent-sessions tests.

Fixture Dependency Hierarchy
============================

::

    clock (FakeClock, starts 2025-01-15T10:30:00Z)
    memory_fs (MemoryFileSystem, records every call)
    └── memory_store (SessionStore over /mem/sessions)

    temp_dir (base temporary directory)
    ├── temp_home (isolated $AGENT_HOME, AGENT_* vars cleared)
    └── session_dir (temp_dir/sessions, not created)
        └── disk_store (SessionStore on the local disk)

    make_messages (factory for alternating user/assistant messages)

Notes:
- memory_fs.fail(op, error) injects failures into a single operation,
  optionally only for paths matching a predicate.
- memory_fs.calls lists (operation, path) tuples; tests assert it stays
  empty to prove validation happens before any I/O.
"""

from __future__ import annotations

import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from agent_sessions.sessions import SessionStore

from support import MEMORY_SESSION_DIR, FakeClock, MemoryFileSystem


# =============================================================================
# Clock and in-memory fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """Deterministic clock starting at 2025-01-15T10:30:00Z."""
    return FakeClock()


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    """Fresh in-memory filesystem."""
    return MemoryFileSystem()


@pytest.fixture
def memory_store(memory_fs: MemoryFileSystem, clock: FakeClock) -> SessionStore:
    """SessionStore over the in-memory filesystem."""
    return SessionStore(
        MEMORY_SESSION_DIR,
        max_sessions=50,
        file_system=memory_fs,
        clock=clock,
    )


# =============================================================================
# Disk fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(prefix="agent-sessions-") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated agent home with AGENT_* overrides cleared and cwd moved."""
    home = temp_dir / "home"
    home.mkdir()
    for var in ("AGENT_SESSION_DIR", "AGENT_MAX_SESSIONS", "AGENT_AUTO_SAVE", "AGENT_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("AGENT_HOME", str(home))
    project = temp_dir / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return home


@pytest.fixture
def session_dir(temp_dir: Path) -> Path:
    """Session directory path under temp_dir (not created)."""
    return temp_dir / "sessions"


@pytest.fixture
def disk_store(session_dir: Path, clock: FakeClock) -> SessionStore:
    """SessionStore on the local disk."""
    return SessionStore(session_dir, max_sessions=50, clock=clock)


# =============================================================================
# Data factories
# =============================================================================


@pytest.fixture
def make_messages() -> Callable[..., list[dict[str, Any]]]:
    """Factory for alternating user/assistant messages.

    make_messages(2) -> [user "message 1", assistant "message 2"]
    """

    def _make(count: int = 2, prefix: str = "message") -> list[dict[str, Any]]:
        roles = ("user", "assistant")
        return [
            {"role": roles[i % 2], "content": f"{prefix} {i + 1}"}
            for i in range(count)
        ]

    return _make
