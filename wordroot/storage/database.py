"""
Naming Database Module
======================

SQLite storage for word roots, standard fields and notification tasks.

All three tables live in one database file so that operations spanning
several entities (resolving a task while inserting a root, approving a field
while closing its task) commit or roll back together. Uniqueness of
``en_abbr`` and the integrity of composition chains are enforced by
constraints, never by check-then-insert in application code.
"""

import json
import logging
import os
import re
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import DuplicateAbbreviation, NotFound, RootInUse, StorageUnavailable
from ..models import (
    NotificationTask,
    StandardField,
    TaskFilter,
    TaskStatus,
    TaskType,
    WordRoot,
    WordRootCreate,
)
from ..text import normalize_term, parse_terms, serialize_terms, trigrams

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class NamingDB:
    """
    Database manager for the naming dictionary and review queue.

    Tables:
    - word_roots: the controlled vocabulary
    - root_terms: normalized cn_name/synonym lookup keys per root
    - root_trigrams: trigram inverted index backing similarity search
    - standard_fields / field_compositions: composed fields and their ordered root chains
    - notification_tasks: review queue (never deleted)
    """

    def __init__(self, db_path: Optional[str] = None, timeout: float = 30.0):
        """
        Initialize the NamingDB.

        Args:
            db_path: Path to SQLite database file. If None, uses WORDROOT_DB_PATH
                or DATA_DIR/wordroot.db.
            timeout: Seconds to wait on a locked database before giving up.
        """
        if db_path is None:
            db_path = os.getenv("WORDROOT_DB_PATH", None)
            if db_path is None:
                data_dir = Path(os.getenv("DATA_DIR", "data"))
                db_path = data_dir / "wordroot.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout

        self._enable_wal()
        self._init_schema()

    def _enable_wal(self):
        """Switch to WAL so readers never block the single writer."""
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
            try:
                conn.execute("PRAGMA journal_mode=WAL")
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageUnavailable(str(self.db_path), e) from e

    @contextmanager
    def _get_connection(self, immediate: bool = False):
        """Context manager for one transaction on a fresh connection.

        ``immediate`` takes the write lock up front (BEGIN IMMEDIATE) so that
        read-then-write sequences cannot interleave with another writer.
        """
        try:
            conn = sqlite3.connect(
                str(self.db_path), timeout=self.timeout, isolation_level=None
            )
        except sqlite3.Error as e:
            raise StorageUnavailable(str(self.db_path), e) from e

        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            yield conn
            conn.commit()
        except sqlite3.OperationalError as e:
            conn.rollback()
            raise StorageUnavailable(str(self.db_path), e) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self):
        """Open a write transaction that several operations can share via ``conn=``."""
        with self._get_connection(immediate=True) as conn:
            yield conn

    @contextmanager
    def connection(self, conn: Optional[sqlite3.Connection], immediate: bool = False):
        """Reuse the caller's connection, or open a transaction of our own."""
        if conn is not None:
            yield conn
        else:
            with self._get_connection(immediate=immediate) as new_conn:
                yield new_conn

    def _init_schema(self):
        """Initialize the database schema."""
        with self._get_connection(immediate=True) as conn:
            cursor = conn.cursor()

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS word_roots (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    cn_name TEXT NOT NULL CHECK (length(trim(cn_name)) > 0),
                    en_abbr TEXT NOT NULL COLLATE NOCASE
                        CHECK (length(trim(en_abbr)) > 0),
                    en_full_name TEXT,
                    associated_terms TEXT,
                    data_type TEXT,
                    remark TEXT,
                    created_at TEXT NOT NULL,
                    UNIQUE (en_abbr)
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS root_terms (
                    root_id INTEGER NOT NULL,
                    term TEXT NOT NULL,
                    kind TEXT NOT NULL CHECK (kind IN ('name', 'synonym')),
                    PRIMARY KEY (term, kind, root_id),
                    FOREIGN KEY (root_id) REFERENCES word_roots(id) ON DELETE CASCADE
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS root_trigrams (
                    trigram TEXT NOT NULL,
                    root_id INTEGER NOT NULL,
                    PRIMARY KEY (trigram, root_id),
                    FOREIGN KEY (root_id) REFERENCES word_roots(id) ON DELETE CASCADE
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS standard_fields (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    field_cn_name TEXT NOT NULL,
                    field_en_name TEXT NOT NULL,
                    data_type TEXT,
                    is_standard INTEGER NOT NULL DEFAULT 0,
                    fully_matched INTEGER NOT NULL DEFAULT 1,
                    associated_terms TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS field_compositions (
                    field_id INTEGER NOT NULL,
                    position INTEGER NOT NULL,
                    root_id INTEGER NOT NULL,
                    PRIMARY KEY (field_id, position),
                    FOREIGN KEY (field_id) REFERENCES standard_fields(id) ON DELETE CASCADE,
                    FOREIGN KEY (root_id) REFERENCES word_roots(id) ON DELETE RESTRICT
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS notification_tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    task_type TEXT NOT NULL
                        CHECK (task_type IN ('ROOT_REQUEST', 'FIELD_UPDATE')),
                    payload TEXT,
                    dedupe_key TEXT,
                    is_read INTEGER NOT NULL DEFAULT 0,
                    status TEXT NOT NULL DEFAULT 'open'
                        CHECK (status IN ('open', 'resolved')),
                    resolution TEXT,
                    created_at TEXT NOT NULL,
                    resolved_at TEXT
                )
            ''')

            cursor.execute('CREATE INDEX IF NOT EXISTS idx_root_terms_root ON root_terms(root_id)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_root_trigrams_root ON root_trigrams(root_id)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_fields_en_name ON standard_fields(field_en_name)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_compositions_root ON field_compositions(root_id)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_tasks_created ON notification_tasks(created_at, id)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_tasks_unread ON notification_tasks(is_read)')
            cursor.execute('''
                CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_open_dedupe
                ON notification_tasks(task_type, dedupe_key)
                WHERE status = 'open' AND dedupe_key IS NOT NULL
            ''')

    # ==================== ROOT OPERATIONS ====================

    def insert_root(self, data: WordRootCreate,
                    conn: Optional[sqlite3.Connection] = None) -> WordRoot:
        """
        Insert a word root.

        Raises:
            DuplicateAbbreviation: If en_abbr is already taken (case-insensitive).
        """
        with self.connection(conn, immediate=True) as c:
            cursor = c.cursor()
            try:
                cursor.execute('''
                    INSERT INTO word_roots (
                        cn_name, en_abbr, en_full_name, associated_terms,
                        data_type, remark, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ''', (
                    data.cn_name,
                    data.en_abbr,
                    data.en_full_name,
                    serialize_terms(data.associated_terms),
                    data.data_type,
                    data.remark,
                    _now(),
                ))
            except sqlite3.IntegrityError as e:
                self._raise_abbr_conflict(c, e, data.en_abbr)
            root_id = cursor.lastrowid
            self._index_root(c, root_id, data.cn_name, data.associated_terms)
            return self.get_root(root_id, conn=c)

    def insert_roots(self, items: Sequence[WordRootCreate]) -> List[WordRoot]:
        """Insert several roots in one transaction; any conflict rolls back all of them."""
        with self.transaction() as conn:
            return [self.insert_root(item, conn=conn) for item in items]

    def get_root(self, root_id: int,
                 conn: Optional[sqlite3.Connection] = None) -> Optional[WordRoot]:
        """Get a word root by ID."""
        with self.connection(conn) as c:
            row = c.execute('SELECT * FROM word_roots WHERE id = ?', (root_id,)).fetchone()
            return self._row_to_root(row) if row else None

    def get_roots(self, root_ids: Iterable[int],
                  conn: Optional[sqlite3.Connection] = None) -> Dict[int, WordRoot]:
        """Get several roots keyed by ID. Missing IDs are simply absent."""
        ids = list(dict.fromkeys(root_ids))
        if not ids:
            return {}
        placeholders = ','.join('?' * len(ids))
        with self.connection(conn) as c:
            rows = c.execute(
                f'SELECT * FROM word_roots WHERE id IN ({placeholders})', ids
            ).fetchall()
            return {row['id']: self._row_to_root(row) for row in rows}

    def list_roots(self, conn: Optional[sqlite3.Connection] = None) -> List[WordRoot]:
        """All roots ordered by ID."""
        with self.connection(conn) as c:
            rows = c.execute('SELECT * FROM word_roots ORDER BY id').fetchall()
            return [self._row_to_root(row) for row in rows]

    def find_roots_by_term(self, term: str, kind: str,
                           conn: Optional[sqlite3.Connection] = None) -> List[WordRoot]:
        """Roots whose normalized cn_name (kind='name') or synonym (kind='synonym') equals term."""
        key = normalize_term(term)
        if not key:
            return []
        with self.connection(conn) as c:
            rows = c.execute('''
                SELECT r.* FROM root_terms t
                JOIN word_roots r ON r.id = t.root_id
                WHERE t.term = ? AND t.kind = ?
                ORDER BY r.id
            ''', (key, kind)).fetchall()
            return [self._row_to_root(row) for row in rows]

    def find_roots_sharing_trigrams(self, grams: Iterable[str], limit: Optional[int] = None,
                                    conn: Optional[sqlite3.Connection] = None
                                    ) -> List[Tuple[int, int]]:
        """
        Query the trigram index.

        Returns:
            (root_id, shared_trigram_count) pairs, most shared first, then by ID.
        """
        grams = list(grams)
        if not grams:
            return []
        placeholders = ','.join('?' * len(grams))
        query = f'''
            SELECT root_id, COUNT(*) AS shared
            FROM root_trigrams
            WHERE trigram IN ({placeholders})
            GROUP BY root_id
            ORDER BY shared DESC, root_id
        '''
        params: List[Any] = list(grams)
        if limit is not None:
            query += ' LIMIT ?'
            params.append(limit)
        with self.connection(conn) as c:
            return [(row['root_id'], row['shared']) for row in c.execute(query, params).fetchall()]

    def update_root(self, root_id: int, data: WordRootCreate,
                    conn: Optional[sqlite3.Connection] = None) -> WordRoot:
        """
        Replace every editable column of a root.

        Raises:
            NotFound: If the root does not exist.
            DuplicateAbbreviation: If the new en_abbr belongs to another root.
        """
        with self.connection(conn, immediate=True) as c:
            try:
                cursor = c.execute('''
                    UPDATE word_roots
                    SET cn_name = ?, en_abbr = ?, en_full_name = ?, associated_terms = ?,
                        data_type = ?, remark = ?
                    WHERE id = ?
                ''', (
                    data.cn_name,
                    data.en_abbr,
                    data.en_full_name,
                    serialize_terms(data.associated_terms),
                    data.data_type,
                    data.remark,
                    root_id,
                ))
            except sqlite3.IntegrityError as e:
                self._raise_abbr_conflict(c, e, data.en_abbr)
            if cursor.rowcount == 0:
                raise NotFound("word root", root_id)
            self._index_root(c, root_id, data.cn_name, data.associated_terms)
            return self.get_root(root_id, conn=c)

    def update_root_synonyms(self, root_id: int, terms: Iterable[str],
                             conn: Optional[sqlite3.Connection] = None) -> WordRoot:
        """Replace a root's synonym set."""
        with self.connection(conn, immediate=True) as c:
            row = c.execute('SELECT cn_name FROM word_roots WHERE id = ?', (root_id,)).fetchone()
            if row is None:
                raise NotFound("word root", root_id)
            terms = frozenset(terms)
            c.execute(
                'UPDATE word_roots SET associated_terms = ? WHERE id = ?',
                (serialize_terms(terms), root_id),
            )
            self._index_root(c, root_id, row['cn_name'], parse_terms(serialize_terms(terms)))
            return self.get_root(root_id, conn=c)

    def delete_root(self, root_id: int,
                    conn: Optional[sqlite3.Connection] = None) -> bool:
        """
        Delete a root.

        Raises:
            RootInUse: If any field's composition chain references the root.
        """
        with self.connection(conn, immediate=True) as c:
            try:
                cursor = c.execute('DELETE FROM word_roots WHERE id = ?', (root_id,))
            except sqlite3.IntegrityError as e:
                if "FOREIGN KEY" not in str(e).upper():
                    raise
                field_ids = self.fields_using_root(root_id, conn=c)
                logger.warning(f"Refused delete of word root {root_id}: used by fields {field_ids}")
                raise RootInUse(root_id, field_ids) from e
            return cursor.rowcount > 0

    def _index_root(self, conn: sqlite3.Connection, root_id: int,
                    cn_name: str, synonyms: Iterable[str]):
        """Rebuild lookup keys and trigrams for one root."""
        conn.execute('DELETE FROM root_terms WHERE root_id = ?', (root_id,))
        conn.execute('DELETE FROM root_trigrams WHERE root_id = ?', (root_id,))

        keys = {(normalize_term(cn_name), 'name')}
        keys.update((normalize_term(s), 'synonym') for s in synonyms)
        conn.executemany(
            'INSERT OR IGNORE INTO root_terms (root_id, term, kind) VALUES (?, ?, ?)',
            [(root_id, term, kind) for term, kind in keys if term],
        )

        grams = set(trigrams(cn_name))
        for synonym in synonyms:
            grams.update(trigrams(synonym))
        conn.executemany(
            'INSERT OR IGNORE INTO root_trigrams (trigram, root_id) VALUES (?, ?)',
            [(gram, root_id) for gram in grams],
        )

    def _raise_abbr_conflict(self, conn: sqlite3.Connection,
                             error: sqlite3.IntegrityError, en_abbr: str):
        """Translate an IntegrityError from word_roots into a typed error."""
        message = str(error).lower()
        if "unique" in message and "en_abbr" in message:
            row = conn.execute(
                'SELECT id FROM word_roots WHERE en_abbr = ?', (en_abbr,)
            ).fetchone()
            logger.warning(f"Rejected duplicate abbreviation: {en_abbr}")
            raise DuplicateAbbreviation(en_abbr, row['id'] if row else None) from error
        if "check" in message:
            raise ValueError(f"Invalid word root: {error}") from error
        raise error

    # ==================== FIELD OPERATIONS ====================

    def insert_field(self, field_cn_name: str, field_en_name: str,
                     composition_ids: Sequence[int], data_type: Optional[str] = None,
                     fully_matched: bool = True, associated_terms: Iterable[str] = (),
                     conn: Optional[sqlite3.Connection] = None) -> StandardField:
        """
        Insert a non-standard field with its composition chain.

        Raises:
            NotFound: If a composition ID does not reference an existing root.
        """
        with self.connection(conn, immediate=True) as c:
            self._check_roots_exist(c, composition_ids)
            now = _now()
            cursor = c.execute('''
                INSERT INTO standard_fields (
                    field_cn_name, field_en_name, data_type, is_standard,
                    fully_matched, associated_terms, created_at, updated_at
                ) VALUES (?, ?, ?, 0, ?, ?, ?, ?)
            ''', (
                field_cn_name,
                field_en_name,
                data_type,
                1 if fully_matched else 0,
                serialize_terms(associated_terms),
                now,
                now,
            ))
            field_id = cursor.lastrowid
            self._write_composition(c, field_id, composition_ids)
            return self.get_field(field_id, conn=c)

    def get_field(self, field_id: int,
                  conn: Optional[sqlite3.Connection] = None) -> Optional[StandardField]:
        """Get a field with its ordered composition chain."""
        with self.connection(conn) as c:
            row = c.execute('SELECT * FROM standard_fields WHERE id = ?', (field_id,)).fetchone()
            return self._row_to_field(c, row) if row else None

    def list_fields(self, conn: Optional[sqlite3.Connection] = None) -> List[StandardField]:
        """All fields, newest first."""
        with self.connection(conn) as c:
            rows = c.execute(
                'SELECT * FROM standard_fields ORDER BY created_at DESC, id DESC'
            ).fetchall()
            return [self._row_to_field(c, row) for row in rows]

    def find_fields_by_base_name(self, base_name: str,
                                 conn: Optional[sqlite3.Connection] = None
                                 ) -> List[StandardField]:
        """Fields named exactly ``base_name`` or a versioned ``base_name_vN``."""
        pattern = re.compile(rf"^{re.escape(base_name)}(_v\d+)?$")
        with self.connection(conn) as c:
            rows = c.execute(
                'SELECT * FROM standard_fields WHERE substr(field_en_name, 1, ?) = ? ORDER BY id',
                (len(base_name), base_name),
            ).fetchall()
            return [
                self._row_to_field(c, row) for row in rows
                if pattern.match(row['field_en_name'])
            ]

    def search_fields(self, query: str, limit: int = 10,
                      conn: Optional[sqlite3.Connection] = None) -> List[StandardField]:
        """Substring search over field_cn_name and field synonyms."""
        escaped = query.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
        pattern = f"%{escaped}%"
        with self.connection(conn) as c:
            rows = c.execute('''
                SELECT * FROM standard_fields
                WHERE field_cn_name LIKE ? ESCAPE '\\'
                   OR associated_terms LIKE ? ESCAPE '\\'
                ORDER BY is_standard DESC, id
                LIMIT ?
            ''', (pattern, pattern, limit)).fetchall()
            return [self._row_to_field(c, row) for row in rows]

    def update_field(self, field_id: int, conn: Optional[sqlite3.Connection] = None,
                     **kwargs) -> StandardField:
        """
        Update field columns. ``composition_ids`` replaces the whole chain.

        Raises:
            NotFound: If the field or a referenced root does not exist.
        """
        allowed_fields = {'field_cn_name', 'field_en_name', 'data_type', 'is_standard',
                          'fully_matched', 'associated_terms'}
        updates = {k: v for k, v in kwargs.items() if k in allowed_fields}
        composition_ids = kwargs.get('composition_ids')

        if 'associated_terms' in updates:
            updates['associated_terms'] = serialize_terms(updates['associated_terms'])
        for flag in ('is_standard', 'fully_matched'):
            if flag in updates:
                updates[flag] = 1 if updates[flag] else 0
        updates['updated_at'] = _now()

        with self.connection(conn, immediate=True) as c:
            set_clause = ', '.join(f'{k} = ?' for k in updates.keys())
            cursor = c.execute(
                f'UPDATE standard_fields SET {set_clause} WHERE id = ?',
                (*updates.values(), field_id),
            )
            if cursor.rowcount == 0:
                raise NotFound("field", field_id)

            if composition_ids is not None:
                self._check_roots_exist(c, composition_ids)
                c.execute('DELETE FROM field_compositions WHERE field_id = ?', (field_id,))
                self._write_composition(c, field_id, composition_ids)

            return self.get_field(field_id, conn=c)

    def delete_field(self, field_id: int,
                     conn: Optional[sqlite3.Connection] = None) -> bool:
        """Delete a field and its composition chain."""
        with self.connection(conn, immediate=True) as c:
            cursor = c.execute('DELETE FROM standard_fields WHERE id = ?', (field_id,))
            return cursor.rowcount > 0

    def fields_using_root(self, root_id: int,
                          conn: Optional[sqlite3.Connection] = None) -> List[int]:
        """IDs of fields whose composition chain contains the root."""
        with self.connection(conn) as c:
            rows = c.execute(
                'SELECT DISTINCT field_id FROM field_compositions WHERE root_id = ? ORDER BY field_id',
                (root_id,),
            ).fetchall()
            return [row['field_id'] for row in rows]

    def _check_roots_exist(self, conn: sqlite3.Connection, root_ids: Sequence[int]):
        existing = self.get_roots(root_ids, conn=conn)
        for root_id in root_ids:
            if root_id not in existing:
                raise NotFound("word root", root_id)

    def _write_composition(self, conn: sqlite3.Connection, field_id: int,
                           root_ids: Sequence[int]):
        conn.executemany(
            'INSERT INTO field_compositions (field_id, position, root_id) VALUES (?, ?, ?)',
            [(field_id, position, root_id) for position, root_id in enumerate(root_ids)],
        )

    # ==================== TASK OPERATIONS ====================

    def insert_task(self, task_type: TaskType, payload: Dict[str, Any],
                    dedupe_key: Optional[str] = None,
                    conn: Optional[sqlite3.Connection] = None) -> NotificationTask:
        """Insert an unread, open task."""
        with self.connection(conn, immediate=True) as c:
            cursor = c.execute('''
                INSERT INTO notification_tasks (task_type, payload, dedupe_key, created_at)
                VALUES (?, ?, ?, ?)
            ''', (
                task_type.value,
                json.dumps(payload, ensure_ascii=False),
                dedupe_key,
                _now(),
            ))
            return self.get_task(cursor.lastrowid, conn=c)

    def get_task(self, task_id: int,
                 conn: Optional[sqlite3.Connection] = None) -> Optional[NotificationTask]:
        """Get a task by ID."""
        with self.connection(conn) as c:
            row = c.execute('SELECT * FROM notification_tasks WHERE id = ?', (task_id,)).fetchone()
            return self._row_to_task(row) if row else None

    def find_open_task(self, task_type: TaskType, dedupe_key: str,
                       conn: Optional[sqlite3.Connection] = None) -> Optional[NotificationTask]:
        """The open task of this type carrying the given dedupe key, if any."""
        with self.connection(conn) as c:
            row = c.execute('''
                SELECT * FROM notification_tasks
                WHERE task_type = ? AND dedupe_key = ? AND status = 'open'
            ''', (task_type.value, dedupe_key)).fetchone()
            return self._row_to_task(row) if row else None

    def list_tasks(self, filters: Optional[TaskFilter] = None,
                   conn: Optional[sqlite3.Connection] = None) -> List[NotificationTask]:
        """Tasks matching the filters, oldest first."""
        filters = filters or TaskFilter()
        conditions = []
        params: List[Any] = []

        if filters.task_type is not None:
            conditions.append("task_type = ?")
            params.append(filters.task_type.value)

        if filters.is_read is not None:
            conditions.append("is_read = ?")
            params.append(1 if filters.is_read else 0)

        if filters.status is not None:
            conditions.append("status = ?")
            params.append(filters.status.value)

        where_clause = " AND ".join(conditions) if conditions else "1=1"
        query = f"SELECT * FROM notification_tasks WHERE {where_clause} ORDER BY created_at, id"
        if filters.limit:
            query += " LIMIT ?"
            params.append(filters.limit)

        with self.connection(conn) as c:
            return [self._row_to_task(row) for row in c.execute(query, params).fetchall()]

    def count_unread(self, conn: Optional[sqlite3.Connection] = None) -> int:
        """Number of tasks not yet read."""
        with self.connection(conn) as c:
            row = c.execute(
                'SELECT COUNT(*) AS total FROM notification_tasks WHERE is_read = 0'
            ).fetchone()
            return row['total']

    def mark_task_read(self, task_id: int,
                       conn: Optional[sqlite3.Connection] = None) -> bool:
        """Set is_read. Returns True only if the row changed."""
        with self.connection(conn, immediate=True) as c:
            cursor = c.execute(
                'UPDATE notification_tasks SET is_read = 1 WHERE id = ? AND is_read = 0',
                (task_id,),
            )
            return cursor.rowcount > 0

    def resolve_task(self, task_id: int, resolution: Dict[str, Any],
                     conn: Optional[sqlite3.Connection] = None) -> bool:
        """Move an open task to resolved. Returns False if it was not open."""
        with self.connection(conn, immediate=True) as c:
            cursor = c.execute('''
                UPDATE notification_tasks
                SET status = 'resolved', is_read = 1, resolution = ?, resolved_at = ?
                WHERE id = ? AND status = 'open'
            ''', (json.dumps(resolution, ensure_ascii=False), _now(), task_id))
            return cursor.rowcount > 0

    # ==================== ROW CONVERSION ====================

    def _row_to_root(self, row: sqlite3.Row) -> WordRoot:
        return WordRoot(
            id=row['id'],
            cn_name=row['cn_name'],
            en_abbr=row['en_abbr'],
            en_full_name=row['en_full_name'],
            associated_terms=parse_terms(row['associated_terms']),
            data_type=row['data_type'],
            remark=row['remark'],
            created_at=_parse_ts(row['created_at']),
        )

    def _row_to_field(self, conn: sqlite3.Connection, row: sqlite3.Row) -> StandardField:
        chain = conn.execute(
            'SELECT root_id FROM field_compositions WHERE field_id = ? ORDER BY position',
            (row['id'],),
        ).fetchall()
        return StandardField(
            id=row['id'],
            field_cn_name=row['field_cn_name'],
            field_en_name=row['field_en_name'],
            composition_ids=[r['root_id'] for r in chain],
            data_type=row['data_type'],
            is_standard=bool(row['is_standard']),
            fully_matched=bool(row['fully_matched']),
            associated_terms=parse_terms(row['associated_terms']),
            created_at=_parse_ts(row['created_at']),
            updated_at=_parse_ts(row['updated_at']),
        )

    def _row_to_task(self, row: sqlite3.Row) -> NotificationTask:
        return NotificationTask(
            id=row['id'],
            task_type=TaskType(row['task_type']),
            payload=json.loads(row['payload']) if row['payload'] else {},
            is_read=bool(row['is_read']),
            status=TaskStatus(row['status']),
            resolution=json.loads(row['resolution']) if row['resolution'] else None,
            created_at=_parse_ts(row['created_at']),
            resolved_at=_parse_ts(row['resolved_at']),
        )
