"""
Ledger Storage Backend Module

Provides the abstract ledger store used by the ledger writer and three
implementations: in-memory (testing), SQLite and PostgreSQL (persistence).

Rows are plain dicts with the columns listed in LEDGER_COLUMNS. Monetary
values are stored as Decimal strings. Every backend enforces uniqueness on
(transaction_id, side) and raises DuplicateKeyError when it is violated, so
two concurrent submissions of the same transaction cannot both commit.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Any
from datetime import datetime, timezone
import sqlite3
import json
import threading
from contextlib import contextmanager


LEDGER_TABLE = "ledger_entries"
LEDGER_COLUMNS = ("transaction_id", "side", "account", "debit", "credit", "occurred_at")


class DuplicateKeyError(Exception):
    """Raised when a row violates the (transaction_id, side) uniqueness constraint"""


class LedgerStore(ABC):
    """Abstract interface for ledger storage backends"""

    @abstractmethod
    def exists_by_transaction_id(self, transaction_id: str) -> bool:
        """Check if any ledger row exists for a transaction"""
        pass

    @abstractmethod
    def save_all(self, rows: List[Dict[str, Any]]) -> List[int]:
        """Insert rows and return their assigned surrogate ids"""
        pass

    @abstractmethod
    def find_by_transaction_id(self, transaction_id: str) -> List[Dict[str, Any]]:
        """Load all rows for a transaction, ordered by id"""
        pass

    @abstractmethod
    def count(self) -> int:
        """Count ledger rows"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def begin_transaction(self) -> None:
        """Start a database transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @contextmanager
    def atomic(self):
        """Context manager for atomic operations"""
        self.begin_transaction()
        try:
            yield
            self.commit()
        except BaseException:
            self.rollback()
            raise


def _validate_row(row: Dict[str, Any]) -> None:
    missing = [column for column in LEDGER_COLUMNS if row.get(column) in (None, "")]
    if missing:
        raise ValueError(f"Ledger row missing columns: {', '.join(missing)}")


class InMemoryLedgerStore(LedgerStore):
    """
    In-memory ledger store for testing.

    An atomic unit holds a re-entrant lock for its whole duration and stages
    inserted rows until commit, which gives serializable check-then-insert
    semantics across threads.
    """

    def __init__(self):
        self._rows: List[Dict[str, Any]] = []
        self._staged: List[Dict[str, Any]] = []
        self._next_id = 1
        self._lock = threading.RLock()
        self._depth = 0

    def _visible_rows(self) -> List[Dict[str, Any]]:
        return self._rows + self._staged

    def exists_by_transaction_id(self, transaction_id: str) -> bool:
        with self._lock:
            return any(row["transaction_id"] == transaction_id for row in self._visible_rows())

    def save_all(self, rows: List[Dict[str, Any]]) -> List[int]:
        with self._lock:
            keys = {(row["transaction_id"], row["side"]) for row in self._visible_rows()}
            prepared = []
            for row in rows:
                _validate_row(row)
                key = (row["transaction_id"], row["side"])
                if key in keys:
                    raise DuplicateKeyError(f"Duplicate ledger row for side {row['side']}")
                keys.add(key)
                # Deep copy to prevent external mutation
                stored = json.loads(json.dumps(row, default=str))
                stored["id"] = self._next_id
                self._next_id += 1
                prepared.append(stored)

            if self._depth > 0:
                self._staged.extend(prepared)
            else:
                self._rows.extend(prepared)
            return [row["id"] for row in prepared]

    def find_by_transaction_id(self, transaction_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                json.loads(json.dumps(row))
                for row in self._visible_rows()
                if row["transaction_id"] == transaction_id
            ]

    def count(self) -> int:
        with self._lock:
            return len(self._visible_rows())

    def begin_transaction(self) -> None:
        self._lock.acquire()
        self._depth += 1

    def commit(self) -> None:
        try:
            self._depth -= 1
            if self._depth == 0:
                self._rows.extend(self._staged)
                self._staged = []
        finally:
            self._lock.release()

    def rollback(self) -> None:
        try:
            self._depth -= 1
            if self._depth == 0:
                self._staged = []
        finally:
            self._lock.release()

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass

    def get_all_rows(self) -> List[Dict[str, Any]]:
        """Get all committed rows for debugging/inspection"""
        with self._lock:
            return json.loads(json.dumps(self._rows))


class SQLiteLedgerStore(LedgerStore):
    """SQLite ledger store for persistence"""

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = str(db_path)
        # Autocommit mode; atomic units issue BEGIN IMMEDIATE explicitly
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._depth = 0

        with self._lock:
            # Enable WAL mode for better concurrent access
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
            self._ensure_table()

    def _ensure_table(self) -> None:
        """Ensure ledger table exists with proper schema"""
        self._connection.execute(f"""
            CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                transaction_id TEXT NOT NULL,
                side TEXT NOT NULL CHECK (side IN ('DEBIT', 'CREDIT')),
                account TEXT NOT NULL,
                debit TEXT NOT NULL,
                credit TEXT NOT NULL,
                occurred_at TEXT NOT NULL,
                created_at TEXT NOT NULL,
                UNIQUE (transaction_id, side)
            )
        """)
        self._connection.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{LEDGER_TABLE}_occurred_at
            ON {LEDGER_TABLE}(occurred_at)
        """)

    def exists_by_transaction_id(self, transaction_id: str) -> bool:
        with self._lock:
            cursor = self._connection.execute(f"""
                SELECT 1 FROM {LEDGER_TABLE} WHERE transaction_id = ? LIMIT 1
            """, (transaction_id,))
            return cursor.fetchone() is not None

    def save_all(self, rows: List[Dict[str, Any]]) -> List[int]:
        with self.atomic():
            now = datetime.now(timezone.utc).isoformat()
            ids = []
            for row in rows:
                _validate_row(row)
                try:
                    cursor = self._connection.execute(f"""
                        INSERT INTO {LEDGER_TABLE}
                            (transaction_id, side, account, debit, credit, occurred_at, created_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                    """, (
                        row["transaction_id"], row["side"], row["account"],
                        str(row["debit"]), str(row["credit"]), str(row["occurred_at"]), now
                    ))
                except sqlite3.IntegrityError as e:
                    if "UNIQUE" in str(e).upper():
                        raise DuplicateKeyError(f"Duplicate ledger row for side {row['side']}") from e
                    raise
                ids.append(cursor.lastrowid)
            return ids

    def find_by_transaction_id(self, transaction_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            cursor = self._connection.execute(f"""
                SELECT id, transaction_id, side, account, debit, credit, occurred_at
                FROM {LEDGER_TABLE} WHERE transaction_id = ? ORDER BY id
            """, (transaction_id,))
            return [dict(row) for row in cursor.fetchall()]

    def count(self) -> int:
        with self._lock:
            cursor = self._connection.execute(f"""
                SELECT COUNT(*) as count FROM {LEDGER_TABLE}
            """)
            return cursor.fetchone()['count']

    def begin_transaction(self) -> None:
        """Start a write transaction; BEGIN IMMEDIATE takes the write lock up front"""
        self._lock.acquire()
        try:
            if self._depth == 0:
                self._connection.execute("BEGIN IMMEDIATE")
            self._depth += 1
        except Exception:
            self._lock.release()
            raise

    def commit(self) -> None:
        """Commit current transaction"""
        try:
            self._depth -= 1
            if self._depth == 0:
                self._connection.execute("COMMIT")
        finally:
            self._lock.release()

    def rollback(self) -> None:
        """Rollback current transaction"""
        try:
            self._depth -= 1
            if self._depth == 0:
                self._connection.execute("ROLLBACK")
        finally:
            self._lock.release()

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


class PostgreSQLLedgerStore(LedgerStore):
    """PostgreSQL ledger store with ACID transaction support"""

    def __init__(self, connection_string: str):
        try:
            import psycopg2
            import psycopg2.errors
            import psycopg2.extras
            self.psycopg2 = psycopg2
            self.extras = psycopg2.extras
        except ImportError:
            raise ImportError("psycopg2 is required for PostgreSQL storage. Install with: pip install psycopg2-binary")

        self.connection_string = connection_string
        self._connection = None
        self._lock = threading.RLock()
        self._depth = 0
        self._connect()
        self._ensure_table()

    def _connect(self) -> None:
        """Establish database connection"""
        with self._lock:
            self._connection = self.psycopg2.connect(
                self.connection_string,
                cursor_factory=self.extras.RealDictCursor
            )
            self._connection.autocommit = False  # We handle transactions manually

    @contextmanager
    def _read_cursor(self):
        """Cursor for a read; outside an atomic unit the implicit transaction is ended"""
        with self._lock:
            cursor = self._connection.cursor()
            try:
                yield cursor
            finally:
                cursor.close()
                if self._depth == 0:
                    self._connection.rollback()

    def _ensure_table(self) -> None:
        """Ensure ledger table exists with proper schema"""
        with self._lock:
            cursor = self._connection.cursor()
            try:
                cursor.execute(f"""
                    CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
                        id BIGSERIAL PRIMARY KEY,
                        transaction_id VARCHAR(100) NOT NULL,
                        side VARCHAR(6) NOT NULL CHECK (side IN ('DEBIT', 'CREDIT')),
                        account VARCHAR(500) NOT NULL,
                        debit NUMERIC(19, 2) NOT NULL CHECK (debit >= 0),
                        credit NUMERIC(19, 2) NOT NULL CHECK (credit >= 0),
                        occurred_at TIMESTAMP NOT NULL,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        UNIQUE (transaction_id, side)
                    )
                """)
                cursor.execute(f"""
                    CREATE INDEX IF NOT EXISTS idx_{LEDGER_TABLE}_occurred_at
                    ON {LEDGER_TABLE}(occurred_at)
                """)
                self._connection.commit()
            finally:
                cursor.close()

    def exists_by_transaction_id(self, transaction_id: str) -> bool:
        with self._read_cursor() as cursor:
            cursor.execute(f"""
                SELECT 1 FROM {LEDGER_TABLE} WHERE transaction_id = %s LIMIT 1
            """, (transaction_id,))
            return cursor.fetchone() is not None

    def save_all(self, rows: List[Dict[str, Any]]) -> List[int]:
        with self.atomic():
            cursor = self._connection.cursor()
            try:
                ids = []
                for row in rows:
                    _validate_row(row)
                    try:
                        cursor.execute(f"""
                            INSERT INTO {LEDGER_TABLE}
                                (transaction_id, side, account, debit, credit, occurred_at)
                            VALUES (%s, %s, %s, %s, %s, %s)
                            RETURNING id
                        """, (
                            row["transaction_id"], row["side"], row["account"],
                            str(row["debit"]), str(row["credit"]), row["occurred_at"]
                        ))
                    except self.psycopg2.errors.UniqueViolation as e:
                        raise DuplicateKeyError(f"Duplicate ledger row for side {row['side']}") from e
                    ids.append(cursor.fetchone()['id'])
                return ids
            finally:
                cursor.close()

    def find_by_transaction_id(self, transaction_id: str) -> List[Dict[str, Any]]:
        with self._read_cursor() as cursor:
            cursor.execute(f"""
                SELECT id, transaction_id, side, account, debit, credit, occurred_at
                FROM {LEDGER_TABLE} WHERE transaction_id = %s ORDER BY id
            """, (transaction_id,))
            results = []
            for row in cursor.fetchall():
                record = dict(row)
                record['debit'] = str(record['debit'])
                record['credit'] = str(record['credit'])
                record['occurred_at'] = record['occurred_at'].isoformat()
                results.append(record)
            return results

    def count(self) -> int:
        with self._read_cursor() as cursor:
            cursor.execute(f"""
                SELECT COUNT(*) as count FROM {LEDGER_TABLE}
            """)
            return cursor.fetchone()['count']

    def begin_transaction(self) -> None:
        """Start a database transaction (PostgreSQL transactions start automatically)"""
        self._lock.acquire()
        self._depth += 1

    def commit(self) -> None:
        """Commit current transaction"""
        try:
            self._depth -= 1
            if self._depth == 0:
                self._connection.commit()
        finally:
            self._lock.release()

    def rollback(self) -> None:
        """Rollback current transaction"""
        try:
            self._depth -= 1
            if self._depth == 0:
                self._connection.rollback()
        finally:
            self._lock.release()

    def close(self) -> None:
        """Close PostgreSQL connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_ledger_store(database_url: str) -> LedgerStore:
    """Factory function to create a ledger store from a database URL"""
    if database_url.startswith("memory://"):
        return InMemoryLedgerStore()

    if database_url.startswith("sqlite:///"):
        return SQLiteLedgerStore(database_url[len("sqlite:///"):] or ":memory:")

    if database_url.startswith(("postgresql://", "postgres://")):
        return PostgreSQLLedgerStore(database_url)

    raise ValueError(f"Unsupported database URL scheme: {database_url.split(':', 1)[0]}")
