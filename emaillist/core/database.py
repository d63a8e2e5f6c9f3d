import os
import sqlite3
import logging
from contextlib import contextmanager
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for subscription store failures"""


class DuplicateEmailError(StoreError):
    """The email address is already subscribed"""

    def __init__(self, email):
        super().__init__(f"Email already subscribed: {email}")
        self.email = email


class StorageError(StoreError):
    """Any other failure of the underlying database"""


def utc_timestamp():
    """Current UTC time as ISO-8601 with millisecond precision, e.g. 2026-10-19T08:15:30.123Z"""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class SubscriptionStore:
    """
    Single-table SQLite store of subscribed email addresses.

    One instance owns one database file. Uniqueness of `email` is enforced by
    the table's UNIQUE constraint, so concurrent inserts of the same address
    resolve to exactly one success.
    """

    DEFAULT_TABLE = 'emails'

    def __init__(self, db_path, table=None, timeout=5.0):
        self.db_path = db_path
        self.table = table or self.DEFAULT_TABLE
        self.timeout = timeout

    def connect(self):
        return sqlite3.connect(self.db_path, timeout=self.timeout)

    @contextmanager
    def connection(self):
        """Open a connection, commit on success, roll back on error, always close"""
        conn = self.connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self):
        """Create the database file and emails table if they don't exist yet"""
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        try:
            with self.connection() as conn:
                conn.execute(f'''
                    CREATE TABLE IF NOT EXISTS {self.table} (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        email TEXT UNIQUE NOT NULL,
                        created_at TEXT NOT NULL
                    )
                ''')
            logger.info(f"Emails table created/verified in {self.db_path}")
        except sqlite3.Error as e:
            raise StorageError(f"Could not initialise {self.db_path}: {e}") from e

    def insert(self, email, created_at=None):
        """
        Add a subscription.

        Returns:
            dict: the new record (id, email, created_at)

        Raises:
            DuplicateEmailError: the email is already stored
            StorageError: any other database failure
        """
        created_at = created_at or utc_timestamp()
        try:
            with self.connection() as conn:
                cursor = conn.execute(
                    f'INSERT INTO {self.table} (email, created_at) VALUES (?, ?)',
                    (email, created_at)
                )
                record_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            if 'UNIQUE' in str(e).upper():
                raise DuplicateEmailError(email) from e
            raise StorageError(f"Failed to insert email: {e}") from e
        except sqlite3.Error as e:
            raise StorageError(f"Failed to insert email: {e}") from e

        return {'id': record_id, 'email': email, 'created_at': created_at}

    def delete(self, email):
        """Remove a subscription by exact match. Returns the number of rows deleted (0 or 1)."""
        try:
            with self.connection() as conn:
                cursor = conn.execute(f'DELETE FROM {self.table} WHERE email = ?', (email,))
                return cursor.rowcount
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete email: {e}") from e

    def list_all(self):
        """All stored emails in insertion order"""
        try:
            with self.connection() as conn:
                rows = conn.execute(f'SELECT email FROM {self.table} ORDER BY id').fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to fetch emails: {e}") from e
        return [row[0] for row in rows]

    def get(self, email):
        try:
            with self.connection() as conn:
                row = conn.execute(
                    f'SELECT id, email, created_at FROM {self.table} WHERE email = ?',
                    (email,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to fetch email: {e}") from e

        if row is None:
            return None
        return dict(zip(['id', 'email', 'created_at'], row))

    def count(self):
        try:
            with self.connection() as conn:
                return conn.execute(f'SELECT COUNT(*) FROM {self.table}').fetchone()[0]
        except sqlite3.Error as e:
            raise StorageError(f"Failed to count emails: {e}") from e
