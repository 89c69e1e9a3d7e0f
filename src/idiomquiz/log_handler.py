import logging

from .database import get_db_connection


class SQLiteHandler(logging.Handler):
    """
    Persists log records, including dropped-question diagnostics, to SQLite.
    """

    def emit(self, record):
        try:
            conn = get_db_connection()
            with conn:
                conn.execute(
                    "INSERT INTO logs (logger, level, message) VALUES (?, ?, ?)",
                    (record.name, record.levelname, self.format(record)),
                )
            conn.close()
        except Exception:
            self.handleError(record)
