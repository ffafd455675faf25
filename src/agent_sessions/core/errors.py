"""Exception hierarchy for agent-sessions.

All errors raised by the package derive from AgentSessionsError so callers
can catch everything from this library with a single except clause.
"""

from __future__ import annotations


class AgentSessionsError(Exception):
    """Base class for all agent-sessions errors."""

    pass


class ConfigError(AgentSessionsError):
    """Configuration could not be loaded or validated."""

    pass


class SessionError(AgentSessionsError):
    """Base class for session store errors."""

    pass


class SessionValidationError(SessionError, ValueError):
    """Caller supplied an unusable session id or name.

    Raised before any filesystem access takes place.
    """

    pass


class InvalidSessionIdError(SessionValidationError):
    """Session id is empty, unsafe, or contains disallowed characters."""

    pass


class InvalidSessionNameError(SessionValidationError):
    """Session name cannot be turned into a safe session id."""

    pass


class ReservedSessionNameError(InvalidSessionNameError):
    """Session name collides with a control file or platform device name."""

    pass


class SessionStorageError(SessionError):
    """A write to the session directory failed.

    The underlying OSError is available as __cause__.
    """

    pass
