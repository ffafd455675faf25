"""agent-sessions - persistent conversation session store for CLI agents."""

try:
    from importlib.metadata import version

    __version__ = version("agent-sessions")
except Exception:
    __version__ = "0.0.0"  # Fallback for development/testing

__all__ = ["__version__"]
