import os
import tempfile
import pytest
import sqlite3
from app.storage import db as log_db
from app.core import config

@pytest.fixture(autouse=True)
def setup_test_environment():
    """Point the request log at a throwaway database for every test"""
    # Store original values
    original_db_path = log_db.DATABASE_PATH
    original_log_enabled = config.settings.PROXY_LOG_ENABLED

    temp_db = tempfile.NamedTemporaryFile(suffix='.sqlite', delete=False)
    temp_db_path = temp_db.name
    temp_db.close()

    log_db.DATABASE_PATH = temp_db_path
    config.settings.PROXY_LOG_ENABLED = True

    log_db.init_db()

    yield

    # Restore original values
    log_db.DATABASE_PATH = original_db_path
    config.settings.PROXY_LOG_ENABLED = original_log_enabled

    # Windows fix: make sure the file handle is released before unlinking
    try:
        conn = sqlite3.connect(temp_db_path)
        conn.close()
        if os.path.exists(temp_db_path):
            os.unlink(temp_db_path)
    except OSError:
        pass
