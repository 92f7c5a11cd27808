"""
Session Store - durable persistence for SessionState records.

One JSON file per session under the sessions directory. Archived sessions
move to ``archive/``. Writes replace the whole file atomically under an
exclusive sidecar lock, so a crash mid-write never leaves a torn record.
"""

import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from ..errors import ThemeBuilderError
from ..models import SessionState, SessionSummary

logger = logging.getLogger(__name__)

_LOCK_SUFFIX = ".lock"


class SessionNotFoundError(ThemeBuilderError, FileNotFoundError):
    """No stored session with the requested id."""

    pass


@contextmanager
def _locked_file(path: Path) -> Iterator[None]:
    """Hold an exclusive lock on a ``.lock`` sidecar of *path*."""
    lock_path = path.with_suffix(path.suffix + _LOCK_SUFFIX)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with lock_path.open("a+", encoding="utf-8") as lock_handle:
        fcntl.flock(lock_handle.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock_handle.fileno(), fcntl.LOCK_UN)


def _atomic_write_text(path: Path, content: str) -> None:
    """Write to a temp file in the same directory, then ``os.replace`` it in."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp_handle:
            tmp_handle.write(content)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class SessionStore:
    """
    Persists, loads, lists, archives and deletes sessions.

    Access discipline is one writer, whole-file replace: load, mutate in
    memory, save the entire state back.
    """

    ARCHIVE_DIR = "archive"

    def __init__(self, sessions_dir: Path | str):
        self.sessions_dir = Path(sessions_dir)

    @property
    def archive_dir(self) -> Path:
        return self.sessions_dir / self.ARCHIVE_DIR

    def path_for(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}.json"

    def create(self) -> SessionState:
        """Create a new empty session and persist it."""
        session = SessionState.create()
        self.save(session)
        logger.info("Created session %s", session.id)
        return session

    def save(self, session: SessionState) -> Path:
        """Persist the full session, refreshing ``last_updated_at``."""
        session.touch()
        path = self.path_for(session.id)
        payload = json.dumps(session.model_dump(mode="json"), indent=2)
        with _locked_file(path):
            _atomic_write_text(path, payload)
        logger.debug("Saved session %s (%s)", session.id, session.current_phase.value)
        return path

    def load(self, session_id: str) -> SessionState:
        """Load a session by id.

        Raises:
            SessionNotFoundError: If no record exists for the id.
        """
        path = self.path_for(session_id)
        if not path.exists():
            raise SessionNotFoundError(f"No session found with id {session_id!r} at {path}")

        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return SessionState.model_validate(data)

    def exists(self, session_id: str) -> bool:
        return self.path_for(session_id).exists()

    def list_sessions(self) -> list[SessionSummary]:
        """Summaries of all active sessions, most recently updated first.

        Unreadable or invalid records are skipped with a warning.
        """
        if not self.sessions_dir.exists():
            return []

        summaries = []
        for path in self.sessions_dir.glob("*.json"):
            try:
                with open(path, encoding="utf-8") as f:
                    data = json.load(f)
                session = SessionState.model_validate(data)
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.warning("Skipping unreadable session file %s: %s", path.name, e)
                continue
            summaries.append(
                SessionSummary(
                    id=session.id,
                    theme_name=session.theme_name,
                    last_updated_at=session.last_updated_at,
                    current_phase=session.current_phase,
                )
            )

        summaries.sort(key=lambda s: s.last_updated_at, reverse=True)
        return summaries

    def archive(self, session_id: str) -> Path:
        """Move a session into the archive directory."""
        path = self.path_for(session_id)
        if not path.exists():
            raise SessionNotFoundError(f"No session found with id {session_id!r}")

        self.archive_dir.mkdir(parents=True, exist_ok=True)
        target = self.archive_dir / path.name
        with _locked_file(path):
            os.replace(path, target)
        self._remove_lock(path)
        logger.info("Archived session %s", session_id)
        return target

    def delete(self, session_id: str) -> None:
        """Delete a session record permanently."""
        path = self.path_for(session_id)
        if not path.exists():
            raise SessionNotFoundError(f"No session found with id {session_id!r}")

        with _locked_file(path):
            path.unlink()
        self._remove_lock(path)
        logger.info("Deleted session %s", session_id)

    def _remove_lock(self, path: Path) -> None:
        lock_path = path.with_suffix(path.suffix + _LOCK_SUFFIX)
        try:
            lock_path.unlink()
        except FileNotFoundError:
            pass
