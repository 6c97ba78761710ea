"""
Settings Database
=================
SQLite persistence for settings. Values are stored JSON-encoded, one row per
(category, key). Every change, including resets, leaves an audit row.
"""

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .defaults import SETTING_DEFINITIONS, get_all_defaults

logger = logging.getLogger(__name__)


class SettingsDB:
    """Settings store with change history."""

    def __init__(self, db_path: Optional[str] = None):
        """
        Args:
            db_path: SQLite file. Defaults to WORDROOT_SETTINGS_DB_PATH, then
                DATA_DIR/settings.db
        """
        db_path = db_path or os.getenv("WORDROOT_SETTINGS_DB_PATH")
        if not db_path:
            data_dir = Path(os.getenv("DATA_DIR", "data"))
            data_dir.mkdir(parents=True, exist_ok=True)
            db_path = str(data_dir / "settings.db")

        self.db_path = str(db_path)
        self._init_schema()

    @contextmanager
    def _get_connection(self):
        """Connection inside one write transaction; rolled back on error."""
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            conn.execute("COMMIT")
        except Exception:
            conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    # ==================== SCHEMA ====================

    def _init_schema(self):
        with self._get_connection() as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS setting_values (
                    category TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    value_type TEXT NOT NULL,
                    updated_at TEXT,
                    updated_by TEXT,
                    PRIMARY KEY (category, key)
                )
            ''')
            conn.execute('''
                CREATE TABLE IF NOT EXISTS settings_audit (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    setting_category TEXT NOT NULL,
                    setting_key TEXT NOT NULL,
                    action TEXT NOT NULL CHECK (action IN ('update', 'reset')),
                    old_value TEXT,
                    new_value TEXT,
                    changed_by TEXT,
                    changed_at TEXT NOT NULL
                )
            ''')
            conn.execute(
                'CREATE INDEX IF NOT EXISTS idx_settings_audit_key '
                'ON settings_audit(setting_category, setting_key)'
            )

            # New definitions get their default; stored values are kept
            for category, definitions in SETTING_DEFINITIONS.items():
                conn.executemany(
                    '''INSERT OR IGNORE INTO setting_values (category, key, value, value_type)
                       VALUES (?, ?, ?, ?)''',
                    [
                        (category, d.key, json.dumps(d.default_value), d.value_type.value)
                        for d in definitions
                    ],
                )

    # ==================== READS ====================

    def get_setting(self, category: str, key: str) -> Optional[Dict[str, Any]]:
        """Stored setting as a dict, or None."""
        with self._get_connection() as conn:
            row = conn.execute(
                'SELECT * FROM setting_values WHERE category = ? AND key = ?',
                (category, key),
            ).fetchone()
        return self._row_to_setting(row) if row else None

    def get_all_settings(self) -> Dict[str, List[Dict[str, Any]]]:
        """Stored settings grouped by category."""
        with self._get_connection() as conn:
            rows = conn.execute(
                'SELECT * FROM setting_values ORDER BY category, key'
            ).fetchall()

        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for row in rows:
            grouped.setdefault(row["category"], []).append(self._row_to_setting(row))
        return grouped

    def get_audit_history(
        self,
        category: Optional[str] = None,
        key: Optional[str] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """Change history, newest first."""
        clauses, params = [], []
        if category:
            clauses.append("setting_category = ?")
            params.append(category)
        if key:
            clauses.append("setting_key = ?")
            params.append(key)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)

        with self._get_connection() as conn:
            rows = conn.execute(
                f'''SELECT * FROM settings_audit {where}
                    ORDER BY changed_at DESC, id DESC LIMIT ?''',
                params,
            ).fetchall()

        history = []
        for row in rows:
            entry = dict(row)
            entry["old_value"] = json.loads(row["old_value"]) if row["old_value"] else None
            entry["new_value"] = json.loads(row["new_value"]) if row["new_value"] else None
            history.append(entry)
        return history

    # ==================== WRITES ====================

    def update_setting(self, category: str, key: str, value: Any,
                       updated_by: Optional[str] = None) -> bool:
        """Store a value. Returns False if the setting does not exist."""
        with self._get_connection() as conn:
            return self._write(conn, category, key, value, updated_by, "update")

    def reset_to_defaults(self, category: Optional[str] = None,
                          updated_by: Optional[str] = None) -> int:
        """
        Restore defaults for one category or all of them, in one transaction.

        Returns:
            Number of settings whose value changed
        """
        defaults = get_all_defaults()
        targets = [category] if category else list(defaults)

        changed = 0
        with self._get_connection() as conn:
            for cat in targets:
                for key, value in defaults.get(cat, {}).items():
                    if self._write(conn, cat, key, value, updated_by, "reset"):
                        changed += 1
        return changed

    def _write(self, conn: sqlite3.Connection, category: str, key: str, value: Any,
               updated_by: Optional[str], action: str) -> bool:
        """Update one row and audit it. Unchanged values are not audited."""
        row = conn.execute(
            'SELECT value FROM setting_values WHERE category = ? AND key = ?',
            (category, key),
        ).fetchone()
        if row is None:
            return False

        encoded = json.dumps(value)
        if row["value"] == encoded:
            return action == "update"

        now = datetime.now(timezone.utc).isoformat()
        conn.execute(
            '''UPDATE setting_values SET value = ?, updated_at = ?, updated_by = ?
               WHERE category = ? AND key = ?''',
            (encoded, now, updated_by, category, key),
        )
        conn.execute(
            '''INSERT INTO settings_audit
               (setting_category, setting_key, action, old_value, new_value, changed_by, changed_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)''',
            (category, key, action, row["value"], encoded, updated_by, now),
        )
        logger.debug(f"{action} {category}.{key}: {row['value']} -> {encoded}")
        return True

    def _row_to_setting(self, row: sqlite3.Row) -> Dict[str, Any]:
        return {
            "category": row["category"],
            "key": row["key"],
            "value": json.loads(row["value"]),
            "value_type": row["value_type"],
            "updated_at": row["updated_at"],
            "updated_by": row["updated_by"],
        }
