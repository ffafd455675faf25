"""Session index for fast listing without reading every session file."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from agent_sessions.core import SessionValidationError, get_logger
from agent_sessions.core.constants import (
    INDEX_FILE_NAME,
    LAST_SESSION_FILE_NAME,
    SESSION_EXTENSION,
)

from .filesystem import FileSystem, atomic_write
from .identity import validate_session_id
from .models import SessionHeader, SessionIndex, utc_now

logger = get_logger("sessions.index")

DebugFn = Callable[..., None]


def _log_debug(message: str, **data: Any) -> None:
    if data:
        logger.debug("%s %s", message, data)
    else:
        logger.debug(message)


class IndexManager:
    """Maintains index.json, a cache of every session's metadata.

    The index is re-read from disk on every call; nothing is cached in
    memory. When the file is unreadable, fails validation, or disagrees
    with the session files on disk, it is rebuilt from those files.

    Attributes:
        session_dir: Directory holding the session files.
    """

    def __init__(
        self,
        fs: FileSystem,
        session_dir: Path,
        *,
        debug: DebugFn | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the index manager.

        Args:
            fs: Filesystem to read and write through.
            session_dir: Directory holding the session files.
            debug: Progress note sink, called as debug(message, **data).
            clock: Source of the current UTC time.
        """
        self._fs = fs
        self.session_dir = session_dir
        self._debug = debug or _log_debug
        self._clock = clock

    @property
    def index_path(self) -> Path:
        """Path to the index file."""
        return self.session_dir / INDEX_FILE_NAME

    def session_path(self, session_id: str) -> Path:
        """Path to a session file. The id must already be validated."""
        return self.session_dir / f"{session_id}{SESSION_EXTENSION}"

    def empty(self) -> SessionIndex:
        """Create an empty index stamped with the current time."""
        return SessionIndex(updated_at=self._clock())

    def list_session_ids(self) -> list[str]:
        """List ids of the session files directly under the session directory.

        Skips the index, the last-session pointer, leftover temp files and
        any file whose stem is not a valid session id.
        """
        try:
            if not self._fs.exists(self.session_dir):
                return []
            filenames = self._fs.listdir(self.session_dir)
        except OSError as e:
            self._debug("Failed to list session directory", error=str(e))
            return []

        session_ids = []
        for filename in sorted(filenames):
            if filename in (INDEX_FILE_NAME, LAST_SESSION_FILE_NAME):
                continue
            if not filename.endswith(SESSION_EXTENSION):
                continue
            session_id = filename[: -len(SESSION_EXTENSION)]
            try:
                validate_session_id(session_id)
            except SessionValidationError:
                self._debug("Ignoring file with unsafe name", filename=filename)
                continue
            session_ids.append(session_id)
        return session_ids

    def load(self, *, pending: str | None = None) -> SessionIndex:
        """Load the index, rebuilding it when it cannot be trusted.

        Never raises for read or decode problems.

        Args:
            pending: Id whose file is being written or removed by the
                current operation. It is left out of the consistency check.

        Returns:
            The loaded (or rebuilt) index.
        """
        try:
            if not self._fs.exists(self.index_path):
                if self.list_session_ids():
                    self._debug("Index missing, rebuilding from session files")
                    return self.rebuild()
                return self.empty()

            index = SessionIndex.from_json(self._fs.read_text(self.index_path))
        except (OSError, ValueError) as e:
            self._debug("Failed to load index, rebuilding", error=str(e))
            return self.rebuild()

        if not self._matches_disk(index, pending):
            self._debug("Index out of sync with session files, rebuilding")
            return self.rebuild()

        return index

    def _matches_disk(self, index: SessionIndex, pending: str | None) -> bool:
        on_disk = set(self.list_session_ids())
        indexed = set(index.sessions)
        if pending is not None:
            on_disk.discard(pending)
            indexed.discard(pending)
        return on_disk == indexed

    def rebuild(self) -> SessionIndex:
        """Rebuild the index by reading every session file.

        Files that cannot be read or parsed, or whose metadata id differs
        from the file name, are skipped so one bad file never blocks listing
        the others. The rebuilt index is persisted before being returned; a
        failed persist is logged only.
        """
        index = self.empty()
        skipped = 0

        for session_id in self.list_session_ids():
            try:
                content = self._fs.read_text(self.session_path(session_id))
                header = SessionHeader.model_validate_json(content)
            except (OSError, ValueError) as e:
                skipped += 1
                self._debug(
                    "Failed to read session file during rebuild",
                    session_id=session_id,
                    error=str(e),
                )
                continue
            if header.metadata.id != session_id:
                # Copied or renamed file; the id it claims belongs elsewhere
                self._debug(
                    "Skipping session file whose id does not match its name",
                    session_id=session_id,
                    claimed_id=header.metadata.id,
                )
                continue
            index.sessions[session_id] = header.metadata

        if skipped:
            logger.warning(
                "Rebuilt index with %d sessions (%d unreadable sessions skipped)",
                len(index.sessions),
                skipped,
            )

        try:
            if self._fs.exists(self.session_dir):
                self.save(index)
        except OSError as e:
            logger.warning("Failed to persist rebuilt index: %s", e)

        self._debug("Index rebuilt", session_count=len(index.sessions))
        return index

    def save(self, index: SessionIndex) -> None:
        """Atomically write the index with a refreshed updated_at.

        Raises:
            OSError: If the write fails.
        """
        index.updated_at = self._clock()
        atomic_write(self._fs, self.index_path, index.to_json())
