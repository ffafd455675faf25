"""Session data models.

Records are pydantic models serialised with camelCase aliases so the files
on disk keep the layout other tools expect::

    <session_dir>/<id>.json      StoredSession
    <session_dir>/index.json     SessionIndex
    <session_dir>/last_session   bare session id
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_serializer,
)
from pydantic.alias_generators import to_camel

from agent_sessions.core.constants import INDEX_VERSION, UNKNOWN_VALUE


def utc_now() -> datetime:
    """Current UTC time truncated to millisecond precision."""
    return truncate_to_millis(datetime.now(UTC))


def truncate_to_millis(value: datetime) -> datetime:
    """Drop sub-millisecond precision so stored and in-memory values agree."""
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with milliseconds and a Z suffix.

    Example: 2025-01-15T10:30:00.123Z
    """
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _ensure_aware(value: datetime) -> datetime:
    # Timestamps written without an offset are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StoredMessage(BaseModel):
    """A conversation message as persisted in a session file.

    Only role and content are required. Any other keys the agent attaches
    (id, timestamp, turnIndex, name, toolCallId, ...) are kept verbatim.
    """

    model_config = ConfigDict(extra="allow")

    role: str
    content: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the plain dict the agent loop works with."""
        return self.model_dump(mode="json")


class SessionMetadata(_CamelModel):
    """Metadata for one session, stored in the session file and the index.

    Attributes:
        id: Stable on-disk identifier (file name without extension).
        name: Display name; equals id for generated sessions.
        description: Optional free-form description.
        created_at: When the session was first saved. Never changes.
        last_activity_at: When the session was last saved.
        message_count: Number of messages in the session.
        first_message: First user message, truncated, for list previews.
        provider: LLM provider used in the session.
        model: LLM model used in the session.
    """

    id: str
    name: str
    description: str | None = None
    created_at: datetime
    last_activity_at: datetime
    message_count: int = Field(ge=0)
    first_message: str = ""
    provider: str = UNKNOWN_VALUE
    model: str = UNKNOWN_VALUE

    @field_validator("created_at", "last_activity_at")
    @classmethod
    def validate_timestamps(cls, v: datetime) -> datetime:
        """Normalize timestamps to timezone-aware values."""
        return _ensure_aware(v)

    @field_serializer("created_at", "last_activity_at")
    def serialize_timestamps(self, v: datetime) -> str:
        """Write timestamps in the canonical millisecond Z form."""
        return format_timestamp(v)

    @model_serializer(mode="wrap")
    def _omit_missing_description(self, handler: Any) -> dict[str, Any]:
        data: dict[str, Any] = handler(self)
        if self.description is None:
            data.pop("description", None)
        return data


class StoredSession(_CamelModel):
    """The complete persisted unit for one session.

    Attributes:
        metadata: Session metadata.
        messages: Full ordered message list.
        context_summary: Natural-language recap replayed to the agent on resume.
    """

    metadata: SessionMetadata
    messages: list[StoredMessage] = Field(default_factory=list)
    context_summary: str | None = None

    def to_json(self, indent: int = 2) -> str:
        """Serialize session to JSON string."""
        return self.model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> StoredSession:
        """Deserialize session from JSON string.

        Raises:
            pydantic.ValidationError: If the document is malformed.
        """
        return cls.model_validate_json(json_str)


class SessionIndex(_CamelModel):
    """Denormalized cache of every session's metadata.

    The session files remain the source of truth; this document can always
    be regenerated from them.
    """

    version: str = INDEX_VERSION
    sessions: dict[str, SessionMetadata] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("updated_at")
    @classmethod
    def validate_updated_at(cls, v: datetime) -> datetime:
        """Normalize timestamp to a timezone-aware value."""
        return _ensure_aware(v)

    @field_serializer("updated_at")
    def serialize_updated_at(self, v: datetime) -> str:
        """Write timestamp in the canonical millisecond Z form."""
        return format_timestamp(v)

    def to_json(self, indent: int = 2) -> str:
        """Serialize index to JSON string."""
        return self.model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> SessionIndex:
        """Deserialize index from JSON string.

        Raises:
            pydantic.ValidationError: If the document is malformed.
        """
        return cls.model_validate_json(json_str)


class RestoredSession(_CamelModel):
    """What a caller needs to replay a conversation."""

    messages: list[StoredMessage]
    context_summary: str | None = None


class SessionHeader(BaseModel):
    """Just the metadata of a session file.

    Used when only metadata is needed (index rebuild, createdAt lookup),
    so a damaged message list does not hide an otherwise valid session.
    """

    metadata: SessionMetadata
