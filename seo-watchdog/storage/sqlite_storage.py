"""
SQLite-backed client storage.
One key/value table; survives process restarts the way browser local storage
survives page reloads.
"""

import sqlite3
import threading
from pathlib import Path

from monitor.config import DATA_DIR
from storage.local import ClientStorage

DB_PATH = DATA_DIR / "watchdog.db"


class SQLiteStorage(ClientStorage):

    def __init__(self, db_path=DB_PATH):
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self.initialize_db()

    def get_connection(self):
        """Create and return a SQLite connection usable from any watchdog thread."""
        return sqlite3.connect(self.db_path, timeout=5, check_same_thread=False)

    def initialize_db(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.get_connection()
        try:
            conn.execute("""
            CREATE TABLE IF NOT EXISTS client_storage (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """)
            conn.commit()
        finally:
            conn.close()

    def get_item(self, key):
        with self._lock:
            conn = self.get_connection()
            try:
                row = conn.execute("SELECT value FROM client_storage WHERE key = ?", (key,)).fetchone()
            finally:
                conn.close()
        return row[0] if row else None

    def set_item(self, key, value):
        with self._lock:
            conn = self.get_connection()
            try:
                conn.execute("""
                    INSERT INTO client_storage (key, value, updated_at)
                    VALUES (?, ?, datetime('now'))
                    ON CONFLICT(key) DO UPDATE SET
                        value=excluded.value,
                        updated_at=excluded.updated_at;
                """, (key, value))
                conn.commit()
            finally:
                conn.close()

    def remove_item(self, key):
        with self._lock:
            conn = self.get_connection()
            try:
                conn.execute("DELETE FROM client_storage WHERE key = ?", (key,))
                conn.commit()
            finally:
                conn.close()
