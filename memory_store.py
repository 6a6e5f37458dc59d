"""
Correction Memory Store
=======================
Remembers accepted corrections as misspelling -> correction mappings so
later occurrences can be expanded without prompting.

Uses SQLite for storage:
- global_abbrevs: mappings applied in every document
- local_abbrevs: mappings applied in one document only
- corrections: history of every recorded correction

Triggers and expansions are stored in lower case. Expansion carries the
trigger's capitalisation pattern (lower, Capitalised, UPPER) to the text.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from config_logging import MemoryStoreError, VERSION, get_config
from document import WORD_PATTERN

logger = logging.getLogger(__name__)


class Scope(Enum):
    GLOBAL = "global"
    LOCAL = "local"


@dataclass(frozen=True)
class AbbrevMapping:
    """A memorized correction."""
    trigger: str
    expansion: str
    scope: Scope
    document_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trigger': self.trigger,
            'expansion': self.expansion,
            'scope': self.scope.value,
            'document_id': self.document_id,
        }


def fold(text: str) -> str:
    return text.lower()


def match_case(template: str, word: str) -> str:
    """Give word the capitalisation pattern of template."""
    letters = [ch for ch in template if ch.isalpha()]
    if len(letters) > 1 and all(ch.isupper() for ch in letters):
        return word.upper()
    if letters and letters[0].isupper():
        return word[:1].upper() + word[1:]
    return word


class MemoryStore:
    """
    SQLite-backed store of memorized corrections.

    Every mutation runs in its own transaction. Failures are logged and
    raised as MemoryStoreError.
    """

    def __init__(self, db_path=None):
        """
        Initialize with SQLite database.
        Creates tables if they don't exist.
        """
        self.db_path = str(db_path or get_config().memory_db)
        if self.db_path != ':memory:':
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        self._init_database()
        logger.info(f"[MemoryStore] Initialized with database: {self.db_path}")

    def _get_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            self._connection = sqlite3.connect(self.db_path, timeout=30.0)
            self._connection.row_factory = sqlite3.Row
        return self._connection

    @contextmanager
    def _db_cursor(self, operation: str):
        """Cursor context manager committing on success."""
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            logger.error(f"[MemoryStore] Cannot open {self.db_path}: {e}")
            raise MemoryStoreError(f"Cannot open correction memory: {e}", operation=operation) from e
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"[MemoryStore] Database error during {operation}: {e}")
            raise MemoryStoreError(f"Correction memory {operation} failed: {e}",
                                   operation=operation) from e
        finally:
            cursor.close()

    def _init_database(self) -> None:
        """Create tables if they don't exist."""
        with self._lock:
            with self._db_cursor('init') as cursor:
                cursor.execute('''
                    CREATE TABLE IF NOT EXISTS global_abbrevs (
                        trigger TEXT PRIMARY KEY,
                        expansion TEXT NOT NULL,
                        updated DATETIME DEFAULT CURRENT_TIMESTAMP
                    )
                ''')
                cursor.execute('''
                    CREATE TABLE IF NOT EXISTS local_abbrevs (
                        document_id TEXT NOT NULL,
                        trigger TEXT NOT NULL,
                        expansion TEXT NOT NULL,
                        updated DATETIME DEFAULT CURRENT_TIMESTAMP,
                        PRIMARY KEY (document_id, trigger)
                    )
                ''')
                cursor.execute('''
                    CREATE TABLE IF NOT EXISTS corrections (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
                        trigger TEXT NOT NULL,
                        expansion TEXT NOT NULL,
                        scope TEXT NOT NULL,
                        document_id TEXT,
                        overwrote TEXT
                    )
                ''')
                cursor.execute('CREATE INDEX IF NOT EXISTS idx_corrections_trigger ON corrections(trigger)')

    def close(self):
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    @staticmethod
    def _check_scope(scope: Scope, document_id: Optional[str]):
        if scope is Scope.LOCAL and not document_id:
            raise ValueError("Local corrections need a document_id")

    # ------------------------------------------------------------------
    # Mappings
    # ------------------------------------------------------------------

    def record(
        self,
        trigger: str,
        expansion: str,
        scope: Scope = Scope.GLOBAL,
        document_id: Optional[str] = None
    ) -> bool:
        """
        Memorize trigger -> expansion in scope.

        Returns True if a mapping for trigger already existed in that scope
        and was overwritten. A correction that folds to its own trigger is
        not stored.
        """
        self._check_scope(scope, document_id)
        trigger, expansion = fold(trigger), fold(expansion)
        if trigger == expansion:
            logger.debug(f"[MemoryStore] Ignored no-op correction: {trigger}")
            return False

        with self._lock:
            with self._db_cursor('record') as cursor:
                previous = self._select_expansion(cursor, trigger, scope, document_id)
                if scope is Scope.GLOBAL:
                    cursor.execute('''
                        INSERT OR REPLACE INTO global_abbrevs (trigger, expansion, updated)
                        VALUES (?, ?, ?)
                    ''', (trigger, expansion, datetime.now().isoformat()))
                else:
                    cursor.execute('''
                        INSERT OR REPLACE INTO local_abbrevs (document_id, trigger, expansion, updated)
                        VALUES (?, ?, ?, ?)
                    ''', (document_id, trigger, expansion, datetime.now().isoformat()))
                cursor.execute('''
                    INSERT INTO corrections (trigger, expansion, scope, document_id, overwrote)
                    VALUES (?, ?, ?, ?, ?)
                ''', (trigger, expansion, scope.value, document_id, previous))

        logger.info(f"[MemoryStore] Recorded {scope.value} correction: {trigger} -> {expansion}")
        return previous is not None

    @staticmethod
    def _select_expansion(cursor, trigger: str, scope: Scope, document_id: Optional[str]) -> Optional[str]:
        if scope is Scope.GLOBAL:
            cursor.execute('SELECT expansion FROM global_abbrevs WHERE trigger = ?', (trigger,))
        else:
            cursor.execute('SELECT expansion FROM local_abbrevs WHERE document_id = ? AND trigger = ?',
                           (document_id, trigger))
        row = cursor.fetchone()
        return row['expansion'] if row else None

    def lookup(
        self,
        trigger: str,
        scope: Optional[Scope] = None,
        document_id: Optional[str] = None
    ) -> Optional[str]:
        """
        Expansion memorized for trigger.

        Without a scope, a local mapping for document_id wins over a global
        one.
        """
        trigger = fold(trigger)
        with self._db_cursor('lookup') as cursor:
            if scope is not None:
                self._check_scope(scope, document_id)
                return self._select_expansion(cursor, trigger, scope, document_id)
            if document_id:
                local = self._select_expansion(cursor, trigger, Scope.LOCAL, document_id)
                if local is not None:
                    return local
            return self._select_expansion(cursor, trigger, Scope.GLOBAL, None)

    def get_table(self, scope: Scope = Scope.GLOBAL, document_id: Optional[str] = None) -> Dict[str, str]:
        """All trigger -> expansion pairs of one table."""
        self._check_scope(scope, document_id)
        with self._db_cursor('get_table') as cursor:
            if scope is Scope.GLOBAL:
                cursor.execute('SELECT trigger, expansion FROM global_abbrevs ORDER BY trigger')
            else:
                cursor.execute('SELECT trigger, expansion FROM local_abbrevs WHERE document_id = ? '
                               'ORDER BY trigger', (document_id,))
            return {row['trigger']: row['expansion'] for row in cursor.fetchall()}

    def list_mappings(self, scope: Optional[Scope] = None) -> List[AbbrevMapping]:
        """Every mapping, global first, optionally limited to one scope."""
        mappings: List[AbbrevMapping] = []
        with self._db_cursor('list') as cursor:
            if scope in (None, Scope.GLOBAL):
                cursor.execute('SELECT trigger, expansion FROM global_abbrevs ORDER BY trigger')
                mappings.extend(AbbrevMapping(row['trigger'], row['expansion'], Scope.GLOBAL)
                                for row in cursor.fetchall())
            if scope in (None, Scope.LOCAL):
                cursor.execute('SELECT document_id, trigger, expansion FROM local_abbrevs '
                               'ORDER BY document_id, trigger')
                mappings.extend(AbbrevMapping(row['trigger'], row['expansion'], Scope.LOCAL,
                                              row['document_id'])
                                for row in cursor.fetchall())
        return mappings

    def remove(self, trigger: str, scope: Scope = Scope.GLOBAL, document_id: Optional[str] = None) -> bool:
        """Forget one mapping. Returns True if it existed."""
        self._check_scope(scope, document_id)
        trigger = fold(trigger)
        with self._lock:
            with self._db_cursor('remove') as cursor:
                if scope is Scope.GLOBAL:
                    cursor.execute('DELETE FROM global_abbrevs WHERE trigger = ?', (trigger,))
                else:
                    cursor.execute('DELETE FROM local_abbrevs WHERE document_id = ? AND trigger = ?',
                                   (document_id, trigger))
                removed = cursor.rowcount > 0
        if removed:
            logger.info(f"[MemoryStore] Removed {scope.value} correction: {trigger}")
        return removed

    def clear(self, scope: Optional[Scope] = None) -> int:
        """Delete every mapping of scope (both when None). Returns rows deleted."""
        deleted = 0
        with self._lock:
            with self._db_cursor('clear') as cursor:
                if scope in (None, Scope.GLOBAL):
                    cursor.execute('DELETE FROM global_abbrevs')
                    deleted += cursor.rowcount
                if scope in (None, Scope.LOCAL):
                    cursor.execute('DELETE FROM local_abbrevs')
                    deleted += cursor.rowcount
        logger.info(f"[MemoryStore] Cleared {deleted} corrections")
        return deleted

    # ------------------------------------------------------------------
    # Expansion
    # ------------------------------------------------------------------

    def expand_text(self, text: str, document_id: Optional[str] = None) -> Tuple[str, int]:
        """
        Replay memorized corrections over text.

        Returns the new text and the number of words replaced.
        """
        table = self.get_table(Scope.GLOBAL)
        if document_id:
            table.update(self.get_table(Scope.LOCAL, document_id))
        if not table:
            return text, 0

        count = 0

        def substitute(match) -> str:
            nonlocal count
            word = match.group()
            expansion = table.get(fold(word))
            if expansion is None:
                return word
            count += 1
            return match_case(word, expansion)

        return WORD_PATTERN.sub(substitute, text), count

    # ------------------------------------------------------------------
    # Backup and statistics
    # ------------------------------------------------------------------

    def export_data(self) -> Dict[str, Any]:
        """Export all mappings and recent history for backup."""
        with self._db_cursor('export') as cursor:
            cursor.execute('SELECT trigger, expansion FROM global_abbrevs ORDER BY trigger')
            global_rows = [dict(row) for row in cursor.fetchall()]

            cursor.execute('SELECT document_id, trigger, expansion FROM local_abbrevs '
                           'ORDER BY document_id, trigger')
            local_rows = [dict(row) for row in cursor.fetchall()]

            cursor.execute('SELECT * FROM corrections ORDER BY id DESC LIMIT 1000')
            recent = [dict(row) for row in cursor.fetchall()]

        return {
            'version': VERSION,
            'exported_at': datetime.now().isoformat(),
            'global': global_rows,
            'local': local_rows,
            'recent_corrections': recent,
        }

    def import_data(self, data: Dict[str, Any]) -> int:
        """Import mappings from a backup. Returns the number imported."""
        if not data or ('global' not in data and 'local' not in data):
            raise ValueError("Invalid import data: expected 'global' or 'local' mappings")

        imported = 0
        with self._lock:
            with self._db_cursor('import') as cursor:
                for row in data.get('global', []):
                    trigger, expansion = fold(row['trigger']), fold(row['expansion'])
                    if trigger == expansion:
                        continue
                    cursor.execute('INSERT OR REPLACE INTO global_abbrevs (trigger, expansion) VALUES (?, ?)',
                                   (trigger, expansion))
                    imported += 1
                for row in data.get('local', []):
                    trigger, expansion = fold(row['trigger']), fold(row['expansion'])
                    if trigger == expansion or not row.get('document_id'):
                        continue
                    cursor.execute('INSERT OR REPLACE INTO local_abbrevs (document_id, trigger, expansion) '
                                   'VALUES (?, ?, ?)', (row['document_id'], trigger, expansion))
                    imported += 1

        logger.info(f"[MemoryStore] Imported {imported} corrections")
        return imported

    def get_statistics(self) -> Dict[str, Any]:
        """Counts of mappings and recorded corrections."""
        with self._db_cursor('statistics') as cursor:
            cursor.execute('SELECT COUNT(*) AS count FROM global_abbrevs')
            global_count = cursor.fetchone()['count']

            cursor.execute('SELECT COUNT(*) AS count FROM local_abbrevs')
            local_count = cursor.fetchone()['count']

            cursor.execute('SELECT COUNT(DISTINCT document_id) AS count FROM local_abbrevs')
            documents = cursor.fetchone()['count']

            cursor.execute('SELECT COUNT(*) AS count FROM corrections')
            total = cursor.fetchone()['count']

            cursor.execute('''
                SELECT trigger, COUNT(*) AS count FROM corrections
                GROUP BY trigger ORDER BY count DESC, trigger LIMIT 10
            ''')
            frequent = {row['trigger']: row['count'] for row in cursor.fetchall()}

        return {
            'global_mappings': global_count,
            'local_mappings': local_count,
            'documents_with_local_mappings': documents,
            'total_corrections': total,
            'most_corrected': frequent,
        }


# Shared instance for the command line tool
_store_instance: Optional[MemoryStore] = None


def get_store(db_path=None) -> MemoryStore:
    """Get or create the shared MemoryStore instance."""
    global _store_instance
    if _store_instance is None:
        _store_instance = MemoryStore(db_path)
    return _store_instance


def reset_store():
    """Close and drop the shared instance (for testing)."""
    global _store_instance
    if _store_instance is not None:
        _store_instance.close()
    _store_instance = None
