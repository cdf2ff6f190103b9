"""SQLite key/value store for Mind Mapper."""

import json
import logging
import os
import sqlite3
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Optional

from mindmapper.model import BACKGROUND_COLOR


logger = logging.getLogger(__name__)

STATE_KEY = "mindmap"
SETTINGS_KEY = "session_settings"


def get_data_dir() -> Path:
    """Directory holding the store and PNG exports, created on demand."""
    override = os.environ.get("MINDMAPPER_DATA_DIR")
    if override:
        data_dir = Path(override).expanduser()
    else:
        data_dir = Path.home() / ".local" / "share" / "mindmapper"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_db_path() -> Path:
    """Location of the SQLite store inside the data directory."""
    return get_data_dir() / "mindmapper.db"


@dataclass
class SessionSettings:
    """User preferences applied when a session starts."""
    history_size: int = 10
    autosave: bool = True
    background: str = BACKGROUND_COLOR

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, data: Optional[str]) -> "SessionSettings":
        if not data:
            return cls()
        try:
            d = json.loads(data)
            # Filter to only known fields to handle schema evolution
            known = {f.name for f in cls.__dataclass_fields__.values()}
            settings = cls(**{k: v for k, v in d.items() if k in known})
        except (json.JSONDecodeError, TypeError, AttributeError):
            return cls()
        return settings._sanitized()

    def _sanitized(self) -> "SessionSettings":
        """Reset values of the wrong type or range to their defaults."""
        defaults = SessionSettings()
        if (isinstance(self.history_size, bool) or not isinstance(self.history_size, int)
                or self.history_size < 1):
            logger.warning("Ignoring invalid history_size %r", self.history_size)
            self.history_size = defaults.history_size
        if not isinstance(self.autosave, bool):
            logger.warning("Ignoring invalid autosave %r", self.autosave)
            self.autosave = defaults.autosave
        if not isinstance(self.background, str) or not self.background:
            logger.warning("Ignoring invalid background %r", self.background)
            self.background = defaults.background
        return self


class LocalStore:
    """Persistent key/value store holding the current map and settings."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or get_db_path()
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    def _init_db(self):
        """Create the key/value table if this is a fresh store."""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value JSON
            )
        """)
        self.conn.commit()

    def close(self):
        """Release the SQLite connection; safe to call twice."""
        if self._conn:
            self._conn.close()
            self._conn = None

    # ==================== Key/value access ====================

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a stored value."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = cursor.fetchone()

        if not row:
            return default

        try:
            return json.loads(row["value"])
        except (json.JSONDecodeError, TypeError):
            logger.warning("Ignoring unreadable value for %r", key)
            return default

    def set_setting(self, key: str, value: Any):
        """Set a stored value."""
        self.conn.execute(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
            (key, json.dumps(value))
        )
        self.conn.commit()

    def delete_setting(self, key: str):
        self.conn.execute("DELETE FROM settings WHERE key = ?", (key,))
        self.conn.commit()

    # ==================== Map State ====================

    def load_state(self) -> Optional[dict]:
        """Return the last saved document, or None if nothing usable is stored."""
        state = self.get_setting(STATE_KEY)
        if not isinstance(state, dict) or not state.get("nodes"):
            return None
        return state

    def save_state(self, document: dict):
        self.set_setting(STATE_KEY, document)

    def clear_state(self):
        self.delete_setting(STATE_KEY)

    def get_session_settings(self) -> SessionSettings:
        raw = self.get_setting(SETTINGS_KEY)
        return SessionSettings.from_json(json.dumps(raw) if raw is not None else None)

    def set_session_settings(self, settings: SessionSettings):
        self.set_setting(SETTINGS_KEY, asdict(settings))
