"""Tests for session persistence."""

import json
import time
from datetime import datetime

import pytest

from theme_builder.models import Phase, SessionState
from theme_builder.session.store import SessionNotFoundError, SessionStore


class TestSessionStore:
    """Tests for SessionStore."""

    def test_create_persists_new_session(self, store):
        """Test that create writes an empty session to disk."""
        session = store.create()

        assert store.exists(session.id)
        assert store.load(session.id).current_phase == Phase.BRIEF

    def test_save_and_load_round_trip(self, store, sample_session):
        """Test that a populated session loads back unchanged."""
        store.save(sample_session)
        loaded = store.load(sample_session.id)

        assert loaded.brief == sample_session.brief
        assert loaded.products == sample_session.products
        assert loaded.completed_phases == [Phase.BRIEF, Phase.PRODUCTS]
        assert loaded.current_phase == Phase.IMAGES

    def test_save_refreshes_last_updated(self, store):
        """Test that saving touches the update timestamp."""
        session = SessionState.create()
        before = session.last_updated_at
        time.sleep(0.01)

        store.save(session)

        assert session.last_updated_at > before

    def test_save_is_whole_file_json(self, store, sample_session):
        """Test the on-disk record format."""
        path = store.save(sample_session)

        data = json.loads(path.read_text())
        assert data["id"] == sample_session.id
        assert data["current_phase"] == "images"
        assert not list(path.parent.glob("*.tmp"))

    def test_load_record_without_completed_phases(self, store, sample_session):
        """Test that an older record lacking completed_phases loads with none."""
        path = store.save(sample_session)
        data = json.loads(path.read_text())
        del data["completed_phases"]
        path.write_text(json.dumps(data, indent=2))

        loaded = store.load(sample_session.id)

        assert loaded.completed_phases == []
        assert isinstance(loaded.started_at, datetime)
        assert loaded.current_phase == Phase.IMAGES

    def test_load_missing(self, store):
        """Test that loading an unknown id raises."""
        with pytest.raises(SessionNotFoundError):
            store.load("does-not-exist")

    def test_missing_session_is_file_not_found(self, store):
        """Test that the not-found error can be caught as FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            store.load("does-not-exist")

    def test_list_sessions_newest_first(self, store):
        """Test listing order and summary contents."""
        older = store.create()
        time.sleep(0.01)
        newer = store.create()
        newer.theme_name = "Newest"
        store.save(newer)

        summaries = store.list_sessions()

        assert [s.id for s in summaries] == [newer.id, older.id]
        assert summaries[0].theme_name == "Newest"

    def test_list_sessions_skips_corrupt_files(self, store):
        """Test that unreadable records are skipped."""
        session = store.create()
        (store.sessions_dir / "broken.json").write_text("{not json")
        (store.sessions_dir / "invalid.json").write_text(json.dumps({"current_phase": "nowhere"}))

        assert [s.id for s in store.list_sessions()] == [session.id]

    def test_list_sessions_without_directory(self, tmp_path):
        """Test listing when the sessions directory does not exist yet."""
        assert SessionStore(tmp_path / "missing").list_sessions() == []

    def test_archive(self, store):
        """Test that archived sessions leave the active list."""
        session = store.create()

        target = store.archive(session.id)

        assert target.exists()
        assert target.parent == store.archive_dir
        assert not store.exists(session.id)
        assert store.list_sessions() == []

    def test_delete(self, store):
        """Test permanent deletion."""
        session = store.create()

        store.delete(session.id)

        assert not store.exists(session.id)
        with pytest.raises(SessionNotFoundError):
            store.delete(session.id)
