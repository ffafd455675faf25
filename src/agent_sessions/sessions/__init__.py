"""Session persistence package.

This package saves agent conversations to disk so they can be listed,
resumed with --continue, and pruned once too many accumulate.

Example:
    from agent_sessions.sessions import SessionStore

    store = SessionStore("~/.agent/sessions", max_sessions=50)

    # Save the whole conversation after each exchange
    meta = store.save_session(
        [
            {"role": "user", "content": "Hello!"},
            {"role": "assistant", "content": "Hi there!"},
        ],
        name="greeting",
    )

    # Later, resume
    session_id = store.get_last_session()
    restored = store.restore_session(session_id)
"""

from .filesystem import FileSystem, LocalFileSystem, atomic_write
from .identity import (
    RESERVED_NAMES,
    generate_session_id,
    sanitize_session_name,
    validate_session_id,
    validate_session_name,
)
from .index import IndexManager
from .models import (
    RestoredSession,
    SessionIndex,
    SessionMetadata,
    StoredMessage,
    StoredSession,
)
from .repository import SessionRepository
from .storage import SessionStore, build_context_summary

__all__ = [
    "RESERVED_NAMES",
    "FileSystem",
    "IndexManager",
    "LocalFileSystem",
    "RestoredSession",
    "SessionIndex",
    "SessionMetadata",
    "SessionRepository",
    "SessionStore",
    "StoredMessage",
    "StoredSession",
    "atomic_write",
    "build_context_summary",
    "generate_session_id",
    "sanitize_session_name",
    "validate_session_id",
    "validate_session_name",
]
