"""Session repository implementing the ISessionRepository interface.

This module provides an async layer on top of the sync SessionStore so the
agent loop can persist conversations without blocking the event loop.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import TYPE_CHECKING, Any, TypeVar

from agent_sessions.core.interfaces import ISessionRepository

from .storage import SessionStore

if TYPE_CHECKING:
    from agent_sessions.config.models import SessionConfig

    from .models import RestoredSession, SessionMetadata, StoredMessage, StoredSession

T = TypeVar("T")


class SessionRepository(ISessionRepository):
    """Async repository for session persistence.

    Wraps SessionStore and runs every call on a single worker thread.
    One worker keeps operations from the same repository strictly ordered,
    so a save and a purge never interleave their index updates.

    Attributes:
        store: The underlying sync store instance.
    """

    def __init__(self, store: SessionStore | None = None) -> None:
        """Initialize session repository.

        Args:
            store: SessionStore instance. Creates default if None.
        """
        self._store = store or SessionStore()
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="agent-sessions"
        )

    @classmethod
    def from_config(cls, config: SessionConfig, **kwargs: Any) -> SessionRepository:
        """Create a repository over a store built from configuration."""
        return cls(SessionStore.from_config(config, **kwargs))

    @property
    def store(self) -> SessionStore:
        """Get underlying store instance."""
        return self._store

    async def _run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor,
            partial(func, *args, **kwargs),
        )

    async def save_session(
        self,
        messages: Sequence[StoredMessage | dict[str, Any]],
        *,
        name: str | None = None,
        description: str | None = None,
        provider: str | None = None,
        model: str | None = None,
    ) -> SessionMetadata:
        """Persist a complete message list as a session.

        Raises:
            SessionValidationError: If the name is unusable.
            SessionStorageError: If the write fails.
        """
        return await self._run(
            self._store.save_session,
            list(messages),
            name=name,
            description=description,
            provider=provider,
            model=model,
        )

    async def load_session(self, session_id: str) -> StoredSession | None:
        """Load session by ID."""
        return await self._run(self._store.load_session, session_id)

    async def list_sessions(self) -> list[SessionMetadata]:
        """List sessions, newest activity first."""
        return await self._run(self._store.list_sessions)

    async def delete_session(self, session_id: str) -> bool:
        """Delete session.

        Returns:
            True if deleted, False if not found.
        """
        return await self._run(self._store.delete_session, session_id)

    async def get_last_session(self) -> str | None:
        """Get the id of the most recently saved session."""
        return await self._run(self._store.get_last_session)

    async def purge_sessions(self, keep_count: int | None = None) -> int:
        """Delete old sessions beyond keep_count (max_sessions by default)."""
        return await self._run(self._store.purge_sessions, keep_count)

    async def restore_session(self, session_id: str) -> RestoredSession | None:
        """Get messages and context summary for replay."""
        return await self._run(self._store.restore_session, session_id)

    async def session_exists(self, session_id: str) -> bool:
        """Check if session exists."""
        return await self._run(self._store.session_exists, session_id)

    def close(self) -> None:
        """Shutdown the thread pool executor."""
        self._executor.shutdown(wait=True)

    async def __aenter__(self) -> SessionRepository:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        self.close()
