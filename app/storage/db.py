import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from app.core.config import settings

DATABASE_PATH = settings.DATABASE_PATH

log = logging.getLogger(__name__)

def init_db():
    """Initialize SQLite database with the proxy_logs table"""
    directory = os.path.dirname(DATABASE_PATH)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with sqlite3.connect(DATABASE_PATH) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS proxy_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                requested_url TEXT NOT NULL,
                timestamp TEXT NOT NULL
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_proxy_logs_timestamp ON proxy_logs(timestamp)")
        conn.commit()

def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")

def record(url: str, timestamp: Optional[str] = None) -> int:
    """Store one requested URL, returns the row id"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        cursor = conn.execute(
            "INSERT INTO proxy_logs (requested_url, timestamp) VALUES (?, ?)",
            (url, timestamp or _now())
        )
        conn.commit()
        return cursor.lastrowid

def record_quietly(url: str) -> None:
    """Background-task variant of record(): storage problems are only logged"""
    try:
        record(url)
    except sqlite3.Error as e:
        log.warning("Failed to persist proxy log for %s: %s", url, e)

def recent(limit: int = 50) -> List[dict]:
    """Latest entries, newest first"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.execute(
            "SELECT id, requested_url, timestamp FROM proxy_logs ORDER BY id DESC LIMIT ?",
            (limit,)
        )
        return [dict(row) for row in cursor.fetchall()]

def clear_all():
    """Clear all log entries"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        conn.execute("DELETE FROM proxy_logs")
        conn.commit()

def get_stats() -> dict:
    """Get request log statistics"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        cursor = conn.execute("SELECT COUNT(*) FROM proxy_logs")
        total_entries = cursor.fetchone()[0]

        today = datetime.now(timezone.utc).date().isoformat()
        cursor = conn.execute("SELECT COUNT(*) FROM proxy_logs WHERE timestamp >= ?", (today,))
        today_entries = cursor.fetchone()[0]

        return {
            "total_entries": total_entries,
            "today_entries": today_entries,
            "database_path": DATABASE_PATH
        }
