"""Abstract interfaces for agent-sessions.

- IConfigLoader: implemented by config.loader.ConfigLoader
- ISessionRepository: implemented by sessions.repository.SessionRepository

Callers depend on these so tests can substitute mocks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from agent_sessions.sessions.models import (
        RestoredSession,
        SessionMetadata,
        StoredMessage,
        StoredSession,
    )


class IConfigLoader(ABC):
    """Loads, merges and checks settings dictionaries."""

    @abstractmethod
    def load(self, path: Path) -> dict[str, Any]:
        """Read one settings file.

        Raises:
            ConfigError: If the file cannot be parsed.
        """
        ...

    @abstractmethod
    def merge(
        self, base: dict[str, Any], override: dict[str, Any]
    ) -> dict[str, Any]:
        """Return base updated by override, recursing into nested dicts."""
        ...

    @abstractmethod
    def validate(self, config: dict[str, Any]) -> tuple[bool, list[str]]:
        """Return (is_valid, errors) for a settings dictionary."""
        ...


class ISessionRepository(ABC):
    """Abstract base class for async session persistence.

    Implemented by sessions.repository.SessionRepository which wraps
    the sync SessionStore with an async interface.
    """

    @abstractmethod
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

        Returns:
            Metadata of the saved session.
        """
        ...

    @abstractmethod
    async def load_session(self, session_id: str) -> StoredSession | None:
        """Load a session by ID.

        Returns:
            The session if found and readable, None otherwise.
        """
        ...

    @abstractmethod
    async def list_sessions(self) -> list[SessionMetadata]:
        """List all sessions, newest activity first."""
        ...

    @abstractmethod
    async def delete_session(self, session_id: str) -> bool:
        """Delete a session.

        Returns:
            True if deleted, False if not found or the delete failed.
        """
        ...

    @abstractmethod
    async def get_last_session(self) -> str | None:
        """Return the id of the most recently saved session, if any."""
        ...

    @abstractmethod
    async def purge_sessions(self, keep_count: int | None = None) -> int:
        """Delete the oldest sessions beyond keep_count.

        Returns:
            Number of sessions deleted.
        """
        ...

    @abstractmethod
    async def restore_session(self, session_id: str) -> RestoredSession | None:
        """Return messages and context summary for conversation replay."""
        ...

    @abstractmethod
    async def session_exists(self, session_id: str) -> bool:
        """Check whether a session file exists."""
        ...
