"""Async tests for SessionRepository.

Tests the async repository layer that wraps the sync SessionStore with a
single-worker ThreadPoolExecutor for non-blocking I/O operations.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from agent_sessions.config import SessionConfig
from agent_sessions.core import ISessionRepository
from agent_sessions.sessions import SessionRepository, SessionStore

from support import FakeClock


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def mock_store() -> MagicMock:
    """Create mock SessionStore."""
    store = MagicMock(spec=SessionStore)
    store.load_session = MagicMock(return_value=None)
    store.list_sessions = MagicMock(return_value=[])
    store.delete_session = MagicMock(return_value=True)
    store.get_last_session = MagicMock(return_value="demo")
    store.purge_sessions = MagicMock(return_value=2)
    store.restore_session = MagicMock(return_value=None)
    store.session_exists = MagicMock(return_value=True)
    return store


@pytest.fixture
def repository(mock_store: MagicMock) -> Generator[SessionRepository, None, None]:
    """Create repository with mock store."""
    repo = SessionRepository(store=mock_store)
    yield repo
    repo.close()


@pytest.fixture
def disk_repository(
    session_dir: Path, clock: FakeClock
) -> Generator[SessionRepository, None, None]:
    """Create repository over a real store."""
    repo = SessionRepository(SessionStore(session_dir, max_sessions=3, clock=clock))
    yield repo
    repo.close()


# =============================================================================
# Test SessionRepository Initialization
# =============================================================================


class TestSessionRepositoryInit:
    """Tests for SessionRepository construction."""

    def test_implements_interface(self, repository: SessionRepository) -> None:
        """Test the repository satisfies ISessionRepository."""
        assert isinstance(repository, ISessionRepository)

    def test_store_property(
        self, repository: SessionRepository, mock_store: MagicMock
    ) -> None:
        """Test the wrapped store is exposed."""
        assert repository.store is mock_store

    def test_single_worker(self, repository: SessionRepository) -> None:
        """Test operations run on exactly one worker thread."""
        assert isinstance(repository._executor, ThreadPoolExecutor)
        assert repository._executor._max_workers == 1

    def test_from_config(self, temp_dir: Path) -> None:
        """Test construction from SessionConfig."""
        repo = SessionRepository.from_config(
            SessionConfig(session_dir=temp_dir, max_sessions=5)
        )
        try:
            assert repo.store.session_dir == temp_dir
            assert repo.store.max_sessions == 5
        finally:
            repo.close()


# =============================================================================
# Test Delegation
# =============================================================================


class TestSessionRepositoryDelegation:
    """Tests that each async method delegates to the store."""

    @pytest.mark.asyncio
    async def test_save_session(
        self, repository: SessionRepository, mock_store: MagicMock
    ) -> None:
        """Test save_session forwards messages and options."""
        messages = [{"role": "user", "content": "hi"}]

        await repository.save_session(messages, name="demo", provider="p", model="m")

        mock_store.save_session.assert_called_once_with(
            messages, name="demo", description=None, provider="p", model="m"
        )

    @pytest.mark.asyncio
    async def test_load_session(
        self, repository: SessionRepository, mock_store: MagicMock
    ) -> None:
        """Test load_session delegates."""
        assert await repository.load_session("demo") is None
        mock_store.load_session.assert_called_once_with("demo")

    @pytest.mark.asyncio
    async def test_simple_delegates(
        self, repository: SessionRepository, mock_store: MagicMock
    ) -> None:
        """Test the remaining operations return the store's results."""
        assert await repository.list_sessions() == []
        assert await repository.delete_session("demo") is True
        assert await repository.get_last_session() == "demo"
        assert await repository.purge_sessions(1) == 2
        assert await repository.restore_session("demo") is None
        assert await repository.session_exists("demo") is True

        mock_store.purge_sessions.assert_called_once_with(1)
        mock_store.delete_session.assert_called_once_with("demo")

    @pytest.mark.asyncio
    async def test_runs_off_event_loop_thread(
        self, repository: SessionRepository, mock_store: MagicMock
    ) -> None:
        """Test store calls execute on the worker thread."""
        seen: list[str] = []
        mock_store.list_sessions.side_effect = lambda: seen.append(
            threading.current_thread().name
        ) or []

        await repository.list_sessions()

        assert seen and seen[0] != threading.current_thread().name
        assert seen[0].startswith("agent-sessions")

    @pytest.mark.asyncio
    async def test_exceptions_propagate(
        self, repository: SessionRepository, mock_store: MagicMock
    ) -> None:
        """Test store errors surface to the awaiting caller."""
        mock_store.session_exists.side_effect = ValueError("bad id")

        with pytest.raises(ValueError, match="bad id"):
            await repository.session_exists("../x")


# =============================================================================
# Test Against a Real Store
# =============================================================================


class TestSessionRepositoryOnDisk:
    """Integration of the async layer with SessionStore."""

    @pytest.mark.asyncio
    async def test_save_and_restore(self, disk_repository: SessionRepository) -> None:
        """Test a save can be restored through the async API."""
        meta = await disk_repository.save_session(
            [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}],
            name="demo",
        )

        restored = await disk_repository.restore_session(meta.id)

        assert restored is not None
        assert [m.content for m in restored.messages] == ["hi", "hello"]
        assert await disk_repository.get_last_session() == "demo"

    @pytest.mark.asyncio
    async def test_concurrent_saves_are_serialized(
        self, disk_repository: SessionRepository
    ) -> None:
        """Test concurrent saves never lose index entries."""
        await asyncio.gather(
            *(
                disk_repository.save_session([], name=f"s{i}")
                for i in range(3)
            )
        )

        sessions = await disk_repository.list_sessions()
        assert {m.id for m in sessions} == {"s0", "s1", "s2"}

    @pytest.mark.asyncio
    async def test_context_manager(self, session_dir: Path) -> None:
        """Test the async context manager shuts the executor down."""
        async with SessionRepository(SessionStore(session_dir)) as repo:
            assert await repo.list_sessions() == []

        with pytest.raises(RuntimeError):
            repo._executor.submit(lambda: None)
