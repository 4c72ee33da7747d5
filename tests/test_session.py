"""Unit tests for Session."""

import json

import pytest

from invoice_review.models.session import Session


@pytest.fixture
def session(make_record):
    return Session(records=[make_record(n) for n in "ABCD"])


class TestSession:
    """Test session bookkeeping."""

    def test_negative_tax_rate_rejected(self):
        with pytest.raises(ValueError):
            Session(tax_rate=-0.1)

    def test_append_keeps_order(self, make_record):
        session = Session()
        assert session.is_empty
        assert session.append_records([make_record("A"), make_record("B")]) == 2
        assert session.append_records([make_record("C")]) == 1
        assert [r.file_name for r in session] == ["A.pdf", "B.pdf", "C.pdf"]

    def test_record_out_of_range(self, session):
        with pytest.raises(IndexError):
            session.record(4)
        with pytest.raises(IndexError):
            session.record(-1)

    def test_mark_persisted_never_replaces(self, session):
        session.mark_persisted(1, 501)
        session.mark_persisted(1, 999)
        assert session.persisted_ids == {1: 501}
        assert session.is_persisted(1)
        assert session.unpersisted_indices() == [0, 2, 3]

    def test_mark_persisted_unknown_index(self, session):
        with pytest.raises(IndexError):
            session.mark_persisted(10, 1)

    def test_retain_indices_reindexes_persisted_ids(self, session):
        session.mark_persisted(1, 501)
        session.mark_persisted(2, 502)

        session.retain_indices([3, 1])

        assert [r.file_name for r in session] == ["B.pdf", "D.pdf"]
        assert session.persisted_ids == {0: 501}

    def test_clear(self, session):
        session.mark_persisted(0, 1)
        session.clear()
        assert session.is_empty
        assert session.persisted_ids == {}


class TestSessionPersistence:
    """Test saving and loading sessions."""

    def test_save_and_load(self, session, tmp_path):
        session.mark_persisted(2, 77)
        session.tax_rate = 0.17
        session.customer_id = 3
        path = tmp_path / "out" / "session.json"

        session.save(path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data['persisted_ids'] == {'2': 77}
        loaded = Session.load(path)
        assert loaded == session
        assert not path.with_suffix(".json.tmp").exists()

    def test_load_missing_file_gives_empty_session(self, tmp_path):
        loaded = Session.load(tmp_path / "missing.json", tax_rate=0.17)
        assert loaded.is_empty
        assert loaded.tax_rate == 0.17
