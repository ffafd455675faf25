"""CLI package for agent-sessions.

Provides the ``agent-sessions`` command for inspecting and maintaining a
session directory: listing, showing, deleting, purging and rebuilding the
index.
"""

from agent_sessions.cli.main import main

__all__ = ["main"]
