import sqlite3
import pytest
from app.storage import db as log_db

class TestProxyLogStorage:
    """Unit tests for the request log (database comes from conftest)"""

    def setup_method(self):
        log_db.clear_all()

    def test_record_and_recent(self):
        log_db.record("https://a.test/", "2025-01-01T10:00:00+00:00")
        log_db.record("https://b.test/", "2025-01-01T11:00:00+00:00")

        entries = log_db.recent()
        assert [e["requested_url"] for e in entries] == ["https://b.test/", "https://a.test/"]
        assert entries[0]["timestamp"] == "2025-01-01T11:00:00+00:00"

    def test_record_defaults_timestamp(self):
        row_id = log_db.record("https://now.test/")
        entry = log_db.recent(1)[0]
        assert entry["id"] == row_id
        assert entry["timestamp"]

    def test_recent_limit(self):
        for i in range(5):
            log_db.record(f"https://site.test/{i}")
        assert len(log_db.recent(3)) == 3

    def test_stats(self):
        log_db.record("https://old.test/", "2000-01-01T00:00:00+00:00")
        log_db.record("https://new.test/")

        stats = log_db.get_stats()
        assert stats["total_entries"] == 2
        assert stats["today_entries"] == 1
        assert stats["database_path"] == log_db.DATABASE_PATH

    def test_clear_all(self):
        log_db.record("https://a.test/")
        log_db.clear_all()
        assert log_db.get_stats()["total_entries"] == 0

    def test_record_quietly_swallows_storage_errors(self, tmp_path, caplog):
        original = log_db.DATABASE_PATH
        log_db.DATABASE_PATH = str(tmp_path / "missing-table.sqlite")
        try:
            log_db.record_quietly("https://a.test/")
        finally:
            log_db.DATABASE_PATH = original
        assert "Failed to persist proxy log" in caplog.text

    def test_record_raises_without_table(self, tmp_path):
        original = log_db.DATABASE_PATH
        log_db.DATABASE_PATH = str(tmp_path / "missing-table.sqlite")
        try:
            with pytest.raises(sqlite3.OperationalError):
                log_db.record("https://a.test/")
        finally:
            log_db.DATABASE_PATH = original
