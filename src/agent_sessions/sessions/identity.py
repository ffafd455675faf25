"""Session identity: id generation, name sanitization and validation.

validate_session_id() is the path-traversal boundary. Every store operation
that takes an id calls it before building a path.
"""

from __future__ import annotations

import base64
import re
import secrets
from datetime import datetime

from agent_sessions.core.constants import DEFAULT_SESSION_NAME_MAX_LENGTH
from agent_sessions.core.errors import (
    InvalidSessionIdError,
    InvalidSessionNameError,
    ReservedSessionNameError,
)

# Names that would collide with control files or unsafe platform device names
RESERVED_NAMES: frozenset[str] = frozenset({
    "index",
    "metadata",
    "last_session",
    "con",
    "prn",
    "aux",
    "nul",
    "com1",
    "com2",
    "com3",
    "com4",
    "lpt1",
    "lpt2",
    "lpt3",
    "lpt4",
})

SAFE_ID_PATTERN = re.compile(r"[a-zA-Z0-9_.-]+")

_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9_.-]")
_DASH_RUNS = re.compile(r"-+")


def random_token(length: int, num_bytes: int) -> str:
    """Return length URL-safe characters drawn from secure random bytes."""
    token = base64.urlsafe_b64encode(secrets.token_bytes(num_bytes)).decode("ascii")
    return token.rstrip("=")[:length]


def sanitize_session_name(
    name: str, max_length: int = DEFAULT_SESSION_NAME_MAX_LENGTH
) -> str:
    """Turn a display name into a filename-safe session id.

    Lowercases, replaces anything outside [a-z0-9_.-] with "-", collapses
    dash runs, trims leading/trailing dashes and caps the length.

    Example:
        >>> sanitize_session_name("My Session!")
        'my-session'
    """
    sanitized = _UNSAFE_NAME_CHARS.sub("-", name.lower())
    sanitized = _DASH_RUNS.sub("-", sanitized)
    sanitized = sanitized.strip("-")
    return sanitized[:max_length]


def generate_session_id(
    custom_name: str | None = None,
    *,
    now: datetime | None = None,
    max_length: int = DEFAULT_SESSION_NAME_MAX_LENGTH,
) -> str:
    """Produce a session id.

    Without a custom name the id is a sortable local timestamp with
    milliseconds plus a 4 character random suffix, e.g.
    ``2025-01-15-10-30-00-123-aB3x``. The suffix keeps saves within the same
    millisecond apart.

    Args:
        custom_name: Caller supplied name, sanitized when given.
        now: Timestamp to use (defaults to the current local time).
        max_length: Cap for sanitized custom names.
    """
    if custom_name is not None:
        return sanitize_session_name(custom_name, max_length)

    if now is None:
        now = datetime.now()
    else:
        now = now.astimezone()

    millis = f"{now.microsecond // 1000:03d}"
    return f"{now.strftime('%Y-%m-%d-%H-%M-%S')}-{millis}-{random_token(4, 3)}"


def validate_session_name(
    name: str, max_length: int = DEFAULT_SESSION_NAME_MAX_LENGTH
) -> None:
    """Validate a caller supplied session name.

    Raises:
        InvalidSessionNameError: If the name sanitizes to nothing or contains
            path components.
        ReservedSessionNameError: If the sanitized name is reserved.
    """
    sanitized = sanitize_session_name(name, max_length)

    if not sanitized:
        raise InvalidSessionNameError("Session name cannot be empty")

    if sanitized in RESERVED_NAMES:
        raise ReservedSessionNameError(f'Session name "{sanitized}" is reserved')

    if ".." in name or "/" in name or "\\" in name:
        raise InvalidSessionNameError("Session name contains invalid characters")


def validate_session_id(session_id: str) -> None:
    """Reject ids that could escape the session directory.

    Raises:
        InvalidSessionIdError: If the id is empty, contains "..", a path
            separator or NUL, uses any character outside [a-zA-Z0-9_.-],
            or is a reserved name such as "index".
    """
    if not session_id:
        raise InvalidSessionIdError("Session ID cannot be empty")

    if (
        ".." in session_id
        or "/" in session_id
        or "\\" in session_id
        or "\0" in session_id
    ):
        raise InvalidSessionIdError("Invalid session ID: path traversal not allowed")

    if not SAFE_ID_PATTERN.fullmatch(session_id):
        raise InvalidSessionIdError("Invalid session ID: contains invalid characters")

    # index.json and friends are control files, not sessions
    if session_id.lower() in RESERVED_NAMES:
        raise InvalidSessionIdError(f'Invalid session ID: "{session_id}" is reserved')
