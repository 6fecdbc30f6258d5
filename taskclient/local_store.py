"""Local snapshot storage for the task list client.

The whole collection is stored as one JSON document under a key, the way
browser clients keep it in local storage. There are no partial updates and
no migration of older shapes: a missing or unreadable snapshot loads as an
empty list.
"""

import sqlite3
import json
import os
import logging
from typing import List, Sequence

from pydantic import ValidationError as SchemaError

from .errors import PersistenceError
from .schemas import Task

logger = logging.getLogger(__name__)

DEFAULT_KEY = 'tasks'


class SnapshotStore:
    """SQLite-backed key-value snapshot store."""

    def __init__(self, db_path: str = None, key: str = DEFAULT_KEY):
        if db_path is None:
            db_path = os.path.join(os.path.dirname(__file__), 'local_tasks.db')
        self.db_path = db_path
        self.key = key
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the snapshot table."""
        parent = os.path.dirname(self.db_path)
        try:
            if parent:
                os.makedirs(parent, exist_ok=True)
            with sqlite3.connect(self.db_path) as conn:
                conn.execute('''
                    CREATE TABLE IF NOT EXISTS snapshots (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        saved_at TEXT DEFAULT CURRENT_TIMESTAMP
                    )
                ''')
                conn.commit()
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceError(f'cannot open snapshot store {self.db_path}') from exc

    def read_raw(self):
        """Return the stored JSON text for this key, or None."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                row = conn.execute('SELECT value FROM snapshots WHERE key = ?', (self.key,)).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError('snapshot read failed') from exc
        return row[0] if row else None

    def load(self) -> List[Task]:
        """Load the snapshot; absent or malformed data yields []."""
        raw = self.read_raw()
        if raw is None:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError('snapshot is not a list')
            return [Task.model_validate(item) for item in data]
        except (ValueError, SchemaError):
            logger.warning('ignoring malformed snapshot under key %r', self.key)
            return []

    def save(self, tasks: Sequence[Task]) -> None:
        """Overwrite the snapshot with the full collection."""
        payload = json.dumps([t.to_wire() for t in tasks])
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    'INSERT OR REPLACE INTO snapshots (key, value, saved_at) VALUES (?, ?, CURRENT_TIMESTAMP)',
                    (self.key, payload)
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError('snapshot write failed') from exc

    def write_raw(self, value: str) -> None:
        """Store arbitrary text under this key (used to seed/inspect snapshots)."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute('INSERT OR REPLACE INTO snapshots (key, value) VALUES (?, ?)', (self.key, value))
                conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError('snapshot write failed') from exc

    def clear(self) -> None:
        """Remove the snapshot for this key."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute('DELETE FROM snapshots WHERE key = ?', (self.key,))
                conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError('snapshot clear failed') from exc
