"""Tests for novelreader.session module."""

import pytest

from novelreader.document import (
    DocumentNotFoundError,
    NoActiveDocumentError,
    TermNotFoundError,
)
from novelreader.navigator import Navigator
from novelreader.session import Session
from novelreader.store import MemoryStore, PositionStore, position_key

TEXT_A = "".join(f"{i:02d}-chapter" for i in range(10))  # 100 chars
TEXT_B = "b" * 35


@pytest.fixture
def kv():
    return MemoryStore()


@pytest.fixture
def session(kv):
    return Session.restore(PositionStore(kv), navigator=Navigator(chunk_size=10))


class TestEmptySession:
    """Tests for a session with nothing loaded."""

    def test_no_active_document(self, session):
        """Test a fresh session has no active document."""
        assert session.active() is None
        with pytest.raises(NoActiveDocumentError):
            session.require_active()

    @pytest.mark.parametrize("operation", ["next_page", "previous_page", "status_line"])
    def test_navigation_needs_document(self, session, operation):
        """Test navigation reports the empty state."""
        with pytest.raises(NoActiveDocumentError):
            getattr(session, operation)()

    def test_search_needs_document(self, session):
        """Test search reports the empty state."""
        with pytest.raises(NoActiveDocumentError):
            session.search("x")


class TestOpen:
    """Tests for Session.open."""

    def test_first_document_is_active(self, session):
        """Test loading one document activates it."""
        session.open("/books/a.txt", TEXT_A.encode())
        assert session.registry.active_index == 0
        assert session.status_line() == "[a.txt] 00-chapter"

    def test_persists_snapshot(self, session, kv):
        """Test loading writes the registry snapshot."""
        session.open("/books/a.txt", TEXT_A.encode())
        assert kv.get("reader.documents")[0]["path"] == "/books/a.txt"
        assert kv.get("reader.active_index") == 0

    def test_reopen_keeps_cursor(self, session):
        """Test loading an open path again keeps the position."""
        session.open("/books/a.txt", TEXT_A.encode())
        session.next_page()
        result = session.open("/books/a.txt", TEXT_A.encode())
        assert result.created is False
        assert result.document.cursor == 10
        assert len(session.registry) == 1

    def test_uses_session_policy(self, kv):
        """Test documents are decoded with the session policy."""
        session = Session(store=PositionStore(kv), policy="gbk")
        result = session.open("/books/c.txt", "春眠不觉晓".encode("gbk"))
        assert result.document.text == "春眠不觉晓"


class TestNavigation:
    """Tests for paging through the active document."""

    def test_next_and_previous(self, session, kv):
        """Test paging moves and persists the cursor."""
        session.open("/books/a.txt", TEXT_A.encode())
        session.next_page()
        session.next_page()
        assert session.active().cursor == 20
        assert kv.get(position_key("/books/a.txt")) == 20

        session.previous_page()
        assert kv.get(position_key("/books/a.txt")) == 10

    def test_wraps_both_ways(self, session):
        """Test wrap-around at both ends of a short document."""
        session.open("/books/b.txt", TEXT_B.encode())
        session.previous_page()
        assert session.active().cursor == 30
        session.next_page()
        assert session.active().cursor == 0


class TestSearch:
    """Tests for Session.search."""

    def test_moves_and_persists(self, session, kv):
        """Test a match moves the cursor and is persisted."""
        session.open("/books/a.txt", TEXT_A.encode())
        match = session.search("05-")
        assert match.index == 50
        assert kv.get(position_key("/books/a.txt")) == 50
        assert session.status_line() == "[a.txt] 05-chapter"

    def test_not_found_changes_nothing(self, session, kv):
        """Test a missing term leaves cursor and store alone."""
        session.open("/books/a.txt", TEXT_A.encode())
        session.next_page()
        with pytest.raises(TermNotFoundError):
            session.search("epilogue")
        assert session.active().cursor == 10
        assert kv.get(position_key("/books/a.txt")) == 10


class TestSwitch:
    """Tests for Session.switch_to."""

    def test_round_trip_restores_position(self, session, kv):
        """Test switching away and back restores the saved cursor."""
        session.open("/books/a.txt", TEXT_A.encode())
        session.open("/books/b.txt", TEXT_B.encode())
        session.next_page()
        session.next_page()

        session.switch_to("b.txt")
        assert kv.get(position_key("/books/a.txt")) == 20
        assert session.active().path == "/books/b.txt"
        assert session.active().cursor == 0

        session.switch_to("/books/a.txt")
        assert session.active().cursor == 20

    def test_restores_from_store(self, session, kv):
        """Test the target cursor comes from the store."""
        session.open("/books/a.txt", TEXT_A.encode())
        session.open("/books/b.txt", TEXT_B.encode())
        kv.set(position_key("/books/b.txt"), 30)
        session.switch_to("b.txt")
        assert session.active().cursor == 30

    def test_switch_to_active_keeps_cursor(self, session):
        """Test switching to the active document is harmless."""
        session.open("/books/a.txt", TEXT_A.encode())
        session.next_page()
        session.switch_to("a.txt")
        assert session.active().cursor == 10

    def test_unknown_document(self, session):
        """Test switching to an unknown name raises and keeps the selection."""
        session.open("/books/a.txt", TEXT_A.encode())
        with pytest.raises(DocumentNotFoundError):
            session.switch_to("missing.txt")
        assert session.active().path == "/books/a.txt"

    def test_persists_active_index(self, session, kv):
        """Test the selection is part of the snapshot."""
        session.open("/books/a.txt", TEXT_A.encode())
        session.open("/books/b.txt", TEXT_B.encode())
        session.switch_to("b.txt")
        assert kv.get("reader.active_index") == 1


class TestRestore:
    """Tests for rebuilding a session from the store."""

    def test_survives_restart(self, session, kv):
        """Test documents, cursors and selection survive a restart."""
        session.open("/books/a.txt", TEXT_A.encode())
        session.open("/books/b.txt", TEXT_B.encode())
        session.next_page()
        session.switch_to("b.txt")
        session.next_page()
        session.close()

        restored = Session.restore(
            PositionStore(kv), navigator=Navigator(chunk_size=10)
        )
        assert [d.path for d in restored.registry] == ["/books/a.txt", "/books/b.txt"]
        assert restored.active().path == "/books/b.txt"
        assert restored.active().cursor == 10
        assert restored.registry.get("/books/a.txt").cursor == 10

    def test_saved_position_overrides_snapshot(self, session, kv):
        """Test per-document positions win over snapshot cursors."""
        session.open("/books/a.txt", TEXT_A.encode())
        kv.set(position_key("/books/a.txt"), 70)
        restored = Session.restore(PositionStore(kv))
        assert restored.active().cursor == 70

    def test_invalid_saved_position_ignored(self, session, kv):
        """Test a saved position beyond the text is discarded."""
        session.open("/books/a.txt", TEXT_A.encode())
        kv.set(position_key("/books/a.txt"), 1000)
        restored = Session.restore(PositionStore(kv))
        assert restored.active().cursor == 0

    def test_close_writes_snapshot(self, kv):
        """Test close persists the registry."""
        session = Session(store=PositionStore(kv))
        session.close()
        assert kv.get("reader.documents") == []
        assert kv.get("reader.active_index") == -1

    def test_close_after_restore_writes_nothing(self, session, kv):
        """Test closing an unchanged restored session skips the snapshot."""
        session.open("/books/a.txt", TEXT_A.encode())
        session.close()

        writes = []
        kv.update = writes.append
        restored = Session.restore(PositionStore(kv))
        restored.status_line()
        restored.close()
        assert writes == []

    def test_close_after_paging_writes_snapshot(self, session, kv):
        """Test close saves cursors moved since the last snapshot."""
        session.open("/books/a.txt", TEXT_A.encode())
        session.next_page()
        session.close()
        assert kv.get("reader.documents")[0]["cursor"] == 10
