"""Session persistence layer.

SessionStore is the storage engine behind the session commands. It writes
one JSON file per session, keeps index.json in step for fast listing,
tracks the most recently saved session for --continue, and prunes the
oldest sessions once max_sessions is exceeded.

Known limitation: there is no cross-process locking. Two processes saving
into the same directory at once race on the index read-modify-write and
the later index save wins, dropping the other's entry. The session file
itself survives and the entry comes back on the next rebuild. One process
per session directory is the supported mode.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from agent_sessions.config.models import default_session_dir
from agent_sessions.core import (
    SessionStorageError,
    SessionValidationError,
    get_logger,
)
from agent_sessions.core.constants import (
    CONTEXT_TOPIC_PREVIEW_LENGTH,
    DEFAULT_MAX_SESSIONS,
    DEFAULT_SESSION_NAME_MAX_LENGTH,
    FIRST_MESSAGE_PREVIEW_LENGTH,
    LAST_SESSION_FILE_NAME,
    UNKNOWN_VALUE,
)

from .filesystem import FileSystem, LocalFileSystem, atomic_write
from .identity import generate_session_id, validate_session_id, validate_session_name
from .index import IndexManager
from .models import (
    RestoredSession,
    SessionHeader,
    SessionIndex,
    SessionMetadata,
    StoredMessage,
    StoredSession,
    format_timestamp,
    truncate_to_millis,
    utc_now,
)

if TYPE_CHECKING:
    from agent_sessions.config.models import SessionConfig

logger = get_logger("sessions.storage")

DebugCallback = Callable[[str, "dict[str, Any] | None"], None]


def build_context_summary(
    messages: Sequence[StoredMessage], metadata: SessionMetadata
) -> str:
    """Generate the recap replayed to the agent when a session is resumed.

    Args:
        messages: The session's messages.
        metadata: The session's metadata.

    Returns:
        Multi-line natural-language summary.
    """
    user_messages = [m for m in messages if m.role == "user"]
    assistant_count = sum(1 for m in messages if m.role == "assistant")

    lines = [
        "You are resuming a previous conversation session.",
        f"Session: {metadata.name}",
        f"Created: {format_timestamp(metadata.created_at)}",
        f"Last activity: {format_timestamp(metadata.last_activity_at)}",
        f"Total messages: {len(messages)} "
        f"({len(user_messages)} from user, {assistant_count} from assistant)",
    ]

    if metadata.description is not None:
        lines.append(f"Description: {metadata.description}")

    if user_messages:
        topic = user_messages[0].content[:CONTEXT_TOPIC_PREVIEW_LENGTH]
        lines.append(f"First topic: {topic}...")

    lines.append("")
    lines.append(
        "The conversation history follows. Continue naturally from where you left off."
    )
    return "\n".join(lines)


def sort_newest_first(sessions: Sequence[SessionMetadata]) -> list[SessionMetadata]:
    """Order by last activity, newest first; ties by id, descending."""
    return sorted(sessions, key=lambda m: (m.last_activity_at, m.id), reverse=True)


class SessionStore:
    """Handles session persistence to disk.

    Each operation re-reads what it needs from disk and runs its steps
    strictly in order. No state is shared between instances.

    Example:
        store = SessionStore("~/.agent/sessions", max_sessions=20)
        meta = store.save_session(messages, name="refactor-auth")
        store.load_session(meta.id)
    """

    def __init__(
        self,
        session_dir: Path | str | None = None,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        file_system: FileSystem | None = None,
        on_debug: DebugCallback | None = None,
        *,
        name_max_length: int = DEFAULT_SESSION_NAME_MAX_LENGTH,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize session store.

        Args:
            session_dir: Directory for session files. Uses default if None.
            max_sessions: Sessions kept after every save (1+).
            file_system: Filesystem implementation. Local disk if None.
            on_debug: Called with (message, data) for progress and error
                notes. Never used for control flow.
            name_max_length: Maximum length of a sanitized custom name.
            clock: Source of the current time (UTC). For tests.

        Raises:
            ValueError: If max_sessions is less than 1.
        """
        if max_sessions < 1:
            raise ValueError(f"max_sessions must be at least 1, got {max_sessions}")

        self._fs = file_system or LocalFileSystem()
        if session_dir is None:
            session_dir = default_session_dir()
        self._session_dir = self._fs.resolve(session_dir)
        self._max_sessions = max_sessions
        self._name_max_length = name_max_length
        self._on_debug = on_debug
        self._clock = clock or utc_now
        self._index = IndexManager(
            self._fs,
            self._session_dir,
            debug=self._debug,
            clock=self._now,
        )
        self._debug(
            "SessionStore initialized",
            session_dir=str(self._session_dir),
            max_sessions=max_sessions,
        )

    @classmethod
    def from_config(cls, config: SessionConfig, **kwargs: Any) -> SessionStore:
        """Create a store from validated session configuration.

        Args:
            config: Session configuration section.
            **kwargs: Extra constructor arguments (file_system, on_debug, clock).
        """
        return cls(
            config.session_dir,
            max_sessions=config.max_sessions,
            name_max_length=config.name_max_length,
            **kwargs,
        )

    @property
    def session_dir(self) -> Path:
        """Resolved directory holding the session files."""
        return self._session_dir

    def get_session_dir(self) -> Path:
        """Get the session directory path."""
        return self._session_dir

    @property
    def max_sessions(self) -> int:
        """Retention limit applied after every save."""
        return self._max_sessions

    @property
    def index(self) -> IndexManager:
        """The index manager for this store."""
        return self._index

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def save_session(
        self,
        messages: Sequence[StoredMessage | dict[str, Any]],
        *,
        name: str | None = None,
        description: str | None = None,
        provider: str | None = None,
        model: str | None = None,
    ) -> SessionMetadata:
        """Save a complete message list as a session.

        Saving an existing id replaces its messages but keeps the original
        created_at. Afterwards the index and last-session pointer point at
        this session and the retention limit is enforced.

        Args:
            messages: Full conversation, oldest first.
            name: Custom session name. A timestamp id is generated if None.
            description: Optional description.
            provider: Provider name ("unknown" if None).
            model: Model name ("unknown" if None).

        Returns:
            Metadata of the saved session.

        Raises:
            InvalidSessionNameError: If name is unusable (before any I/O).
            ReservedSessionNameError: If name is reserved (before any I/O).
            pydantic.ValidationError: If a message lacks role or content.
            SessionStorageError: If writing to disk fails.
        """
        now = self._now()
        session_id = generate_session_id(
            name, now=now, max_length=self._name_max_length
        )
        if name is not None:
            validate_session_name(name, self._name_max_length)
        validate_session_id(session_id)

        stored_messages = [
            m if isinstance(m, StoredMessage) else StoredMessage.model_validate(m)
            for m in messages
        ]
        first_user = next((m for m in stored_messages if m.role == "user"), None)
        first_message = (
            first_user.content[:FIRST_MESSAGE_PREVIEW_LENGTH] if first_user else ""
        )

        session_path = self._index.session_path(session_id)

        try:
            self._ensure_session_dir()

            metadata = SessionMetadata(
                id=session_id,
                name=name if name is not None else session_id,
                description=description,
                created_at=self._existing_created_at(session_path) or now,
                last_activity_at=now,
                message_count=len(stored_messages),
                first_message=first_message,
                provider=provider if provider is not None else UNKNOWN_VALUE,
                model=model if model is not None else UNKNOWN_VALUE,
            )
            session = StoredSession(
                metadata=metadata,
                messages=stored_messages,
                context_summary=build_context_summary(stored_messages, metadata),
            )
            atomic_write(self._fs, session_path, session.to_json())
            # Owner read/write only
            self._fs.chmod(session_path, 0o600)

            index = self._index.load(pending=session_id)
            index.sessions[session_id] = metadata
            self._index.save(index)

            self._write_last_session(session_id)
        except OSError as e:
            logger.error("Failed to save session %s: %s", session_id, e)
            raise SessionStorageError(f"Failed to save session {session_id}: {e}") from e

        self._enforce_max_sessions()

        self._debug(
            "Session saved", session_id=session_id, message_count=len(stored_messages)
        )
        return metadata

    def load_session(self, session_id: str) -> StoredSession | None:
        """Load a session from disk.

        Args:
            session_id: The session ID to load.

        Returns:
            The stored session, or None if missing or unreadable.

        Raises:
            InvalidSessionIdError: If session_id is unsafe.
        """
        validate_session_id(session_id)
        session_path = self._index.session_path(session_id)

        try:
            if not self._fs.exists(session_path):
                self._debug("Session not found", session_id=session_id)
                return None
            session = StoredSession.from_json(self._fs.read_text(session_path))
        except (OSError, ValueError) as e:
            self._debug("Failed to load session", session_id=session_id, error=str(e))
            return None

        self._debug(
            "Session loaded",
            session_id=session_id,
            message_count=len(session.messages),
        )
        return session

    def list_sessions(self) -> list[SessionMetadata]:
        """List all sessions.

        Returns:
            Session metadata sorted by last activity (newest first), then
            by id (descending) so equal timestamps order deterministically.
        """
        return sort_newest_first(list(self._index.load().sessions.values()))

    def get_session_metadata(self, session_id: str) -> SessionMetadata | None:
        """Look up one session's metadata in the index.

        Raises:
            InvalidSessionIdError: If session_id is unsafe.
        """
        validate_session_id(session_id)
        return self._index.load().sessions.get(session_id)

    def delete_session(self, session_id: str) -> bool:
        """Delete a session and update the index.

        If the session was the last-session pointer target, the pointer
        moves to the next most recent session, or is cleared when none
        remain.

        Args:
            session_id: Session ID to delete.

        Returns:
            True if deleted; False if it did not exist or an I/O step failed.

        Raises:
            InvalidSessionIdError: If session_id is unsafe.
        """
        validate_session_id(session_id)
        session_path = self._index.session_path(session_id)

        try:
            if not self._fs.exists(session_path):
                self._debug("Session not found for deletion", session_id=session_id)
                return False

            # Must be read before the file goes away
            was_last = self._read_last_session() == session_id

            self._fs.unlink(session_path)

            index = self._index.load(pending=session_id)
            index.sessions.pop(session_id, None)
            self._index.save(index)

            if was_last:
                remaining = sort_newest_first(list(index.sessions.values()))
                if remaining:
                    self._write_last_session(remaining[0].id)
                else:
                    self._clear_last_session()
        except OSError as e:
            self._debug("Failed to delete session", session_id=session_id, error=str(e))
            return False

        self._debug("Session deleted", session_id=session_id)
        return True

    def get_last_session(self) -> str | None:
        """Get the id of the most recently saved session, for --continue.

        Returns:
            Session ID, or None if the pointer is missing, empty, unreadable
            or names a session that no longer exists.
        """
        session_id = self._read_last_session()
        if not session_id:
            return None

        try:
            if self.session_exists(session_id):
                return session_id
        except (OSError, SessionValidationError) as e:
            self._debug("Ignoring invalid last session pointer", error=str(e))
            return None

        self._debug("Last session pointer is stale", session_id=session_id)
        return None

    def purge_sessions(self, keep_count: int | None = None) -> int:
        """Delete old sessions beyond the limit.

        Args:
            keep_count: Number of sessions to keep. Defaults to max_sessions.

        Returns:
            Number of sessions deleted.

        Raises:
            ValueError: If keep_count is negative.
        """
        limit = self._max_sessions if keep_count is None else keep_count
        if limit < 0:
            raise ValueError(f"keep_count must not be negative, got {limit}")

        sessions = self.list_sessions()
        if len(sessions) <= limit:
            return 0

        deleted = 0
        for metadata in sessions[limit:]:
            if self.delete_session(metadata.id):
                deleted += 1

        if deleted:
            logger.info("Purged %d old sessions", deleted)
        self._debug("Sessions purged", deleted_count=deleted, kept=limit)
        return deleted

    def restore_session(self, session_id: str) -> RestoredSession | None:
        """Get a session's messages and context summary for replay.

        Returns:
            RestoredSession, or None if the session is missing or unreadable.

        Raises:
            InvalidSessionIdError: If session_id is unsafe.
        """
        session = self.load_session(session_id)
        if session is None:
            return None
        return RestoredSession(
            messages=session.messages,
            context_summary=session.context_summary,
        )

    def session_exists(self, session_id: str) -> bool:
        """Check if a session file exists.

        Raises:
            InvalidSessionIdError: If session_id is unsafe.
        """
        validate_session_id(session_id)
        return self._fs.exists(self._index.session_path(session_id))

    def rebuild_index(self) -> SessionIndex:
        """Regenerate index.json from the session files on disk."""
        return self._index.rebuild()

    def count(self) -> int:
        """Number of indexed sessions."""
        return len(self._index.load().sessions)

    # ------------------------------------------------------------------
    # Last-session pointer
    # ------------------------------------------------------------------

    @property
    def last_session_path(self) -> Path:
        """Path to the last-session pointer file."""
        return self._session_dir / LAST_SESSION_FILE_NAME

    def _read_last_session(self) -> str | None:
        try:
            if not self._fs.exists(self.last_session_path):
                return None
            return self._fs.read_text(self.last_session_path).strip()
        except (OSError, ValueError) as e:
            self._debug("Failed to read last session pointer", error=str(e))
            return None

    def _write_last_session(self, session_id: str) -> None:
        atomic_write(self._fs, self.last_session_path, session_id)

    def _clear_last_session(self) -> None:
        try:
            if self._fs.exists(self.last_session_path):
                self._fs.unlink(self.last_session_path)
        except OSError as e:
            self._debug("Failed to clear last session pointer", error=str(e))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return truncate_to_millis(self._clock())

    def _ensure_session_dir(self) -> None:
        if not self._fs.exists(self._session_dir):
            self._fs.mkdir(self._session_dir)
            # Owner only
            self._fs.chmod(self._session_dir, 0o700)
            self._debug("Created session directory", session_dir=str(self._session_dir))

    def _existing_created_at(self, session_path: Path) -> datetime | None:
        """created_at of the session already stored at session_path, if any."""
        try:
            if not self._fs.exists(session_path):
                return None
            header = SessionHeader.model_validate_json(self._fs.read_text(session_path))
        except (OSError, ValueError) as e:
            self._debug("Could not read existing session, using current time", error=str(e))
            return None
        self._debug(
            "Preserving existing createdAt for session update",
            session_id=header.metadata.id,
        )
        return header.metadata.created_at

    def _enforce_max_sessions(self) -> None:
        deleted = self.purge_sessions(self._max_sessions)
        if deleted:
            self._debug("Enforced max sessions limit", deleted=deleted)

    def _debug(self, message: str, **data: Any) -> None:
        if data:
            logger.debug("%s %s", message, data)
        else:
            logger.debug(message)

        if self._on_debug is not None:
            try:
                self._on_debug(message, data or None)
            except Exception as e:
                logger.warning("Debug callback failed: %s", e)
