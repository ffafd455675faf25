"""Centralized constants for agent-sessions.

Defaults that the configuration layer and the session store share live
here so both agree on the same values.
"""

# =============================================================================
# Locations
# =============================================================================

# Base directory for all agent data when $AGENT_HOME is not set
DEFAULT_AGENT_HOME_NAME: str = ".agent"

# Environment variable overriding the agent home directory
AGENT_HOME_ENV: str = "AGENT_HOME"

# Sessions subdirectory under the agent home
SESSIONS_DIR_NAME: str = "sessions"

# =============================================================================
# Session store limits
# =============================================================================

# Maximum sessions kept after a save completes
DEFAULT_MAX_SESSIONS: int = 50

# Maximum length of a sanitized custom session name
DEFAULT_SESSION_NAME_MAX_LENGTH: int = 64

# First user message preview stored in metadata (characters)
FIRST_MESSAGE_PREVIEW_LENGTH: int = 200

# First topic preview in the resume context summary (characters)
CONTEXT_TOPIC_PREVIEW_LENGTH: int = 100

# =============================================================================
# On-disk layout
# =============================================================================

SESSION_EXTENSION: str = ".json"
INDEX_FILE_NAME: str = "index.json"
LAST_SESSION_FILE_NAME: str = "last_session"

# Schema version written into index.json
INDEX_VERSION: str = "1.0"

# Fallback provider/model recorded when the caller does not supply one
UNKNOWN_VALUE: str = "unknown"
