"""
Persistent logging for the email list service.
Warnings and errors are written to an app_logs table next to the subscription
data so operators can inspect failures after the process has gone away.
"""

import json
import logging
import sqlite3
import traceback

from flask import current_app, request, has_request_context

from .database import utc_timestamp
from .rate_limit import get_client_ip

logger = logging.getLogger(__name__)


class LoggingService:
    """Writes log entries to the app_logs table, mirroring them to the stdlib logger"""

    DEFAULT_TABLE = 'app_logs'

    def __init__(self, db_path, table=None):
        self.db_path = db_path
        self.table = table or self.DEFAULT_TABLE

    def _connect(self):
        return sqlite3.connect(self.db_path, timeout=5.0)

    def ensure_logs_table(self):
        """Ensure the app_logs table exists"""
        conn = self._connect()
        try:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    level TEXT NOT NULL,
                    source TEXT NOT NULL,
                    message TEXT NOT NULL,
                    details TEXT,
                    ip_address TEXT,
                    request_path TEXT
                )
            """)
            conn.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{self.table}_timestamp
                ON {self.table}(timestamp DESC)
            """)
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _get_request_context():
        """Client IP and path of the current request, if there is one"""
        if not has_request_context():
            return None, None

        ip_address = get_client_ip(request, current_app.config.get('TRUST_PROXY', False))
        return ip_address, request.path

    def log(self, level, source, message, details=None):
        """
        Log a message to stdout and the database

        Args:
            level (str): DEBUG, INFO, WARNING, ERROR or CRITICAL
            source (str): component name (subscribers, auth, ops, ...)
            message (str): main log message
            details (str/dict): extra context, JSON-encoded if a dict
        """
        level = level.upper()
        logger.log(getattr(logging, level, logging.INFO), f"[{source}] {message}")

        if isinstance(details, dict):
            details = json.dumps(details, indent=2, default=str)

        ip_address, request_path = self._get_request_context()

        try:
            self.ensure_logs_table()
            conn = self._connect()
            try:
                conn.execute(f"""
                    INSERT INTO {self.table}
                    (timestamp, level, source, message, details, ip_address, request_path)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (
                    utc_timestamp(), level, source, message, details,
                    ip_address, request_path
                ))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            # Never let a logging failure turn into a failed request
            logger.error(f"Could not persist log entry from {source}: {e}")

    def info(self, source, message, details=None):
        self.log('INFO', source, message, details)

    def warning(self, source, message, details=None):
        self.log('WARNING', source, message, details)

    def error(self, source, message, details=None):
        self.log('ERROR', source, message, details)

    def log_error_with_traceback(self, source, error, details=None):
        """Log error with full traceback"""
        error_details = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'traceback': ''.join(traceback.format_exception(type(error), error, error.__traceback__)),
        }
        if details:
            error_details['additional_details'] = details

        self.error(source, f"Exception occurred: {type(error).__name__}", error_details)

    def recent(self, limit=50, level=None):
        """Most recent log entries as dicts, newest first"""
        query = f"SELECT timestamp, level, source, message, details, ip_address, request_path FROM {self.table}"
        params = []
        if level:
            query += " WHERE level = ?"
            params.append(level.upper())
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        self.ensure_logs_table()
        conn = self._connect()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()

        columns = ['timestamp', 'level', 'source', 'message', 'details', 'ip_address', 'request_path']
        return [dict(zip(columns, row)) for row in rows]
