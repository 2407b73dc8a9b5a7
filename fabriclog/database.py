"""A small thread-safe wrapper over an SQLite database holding parsed logs."""

from __future__ import annotations

import sqlite3
import threading
from datetime import timedelta
from os import PathLike
from typing import Any, List, Optional, Union

from fabriclog.config import DatabaseConfig

_SCHEMA = """
CREATE TABLE IF NOT EXISTS logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    file_name TEXT NOT NULL,
    status TEXT NOT NULL,
    uploaded_at TEXT NOT NULL,
    node_count INTEGER NOT NULL DEFAULT 0,
    port_count INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS nodes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    log_id INTEGER NOT NULL,
    node_guid TEXT NOT NULL,
    node_desc TEXT NOT NULL,
    node_type INTEGER NOT NULL,
    num_ports INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS nodes_info (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    node_id INTEGER NOT NULL,
    serial_number TEXT,
    part_number TEXT,
    revision TEXT,
    product_name TEXT,
    endianness INTEGER,
    enable_endianness_per_job INTEGER,
    reproducibility_disable INTEGER
);
CREATE TABLE IF NOT EXISTS ports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    node_id INTEGER NOT NULL,
    port_guid TEXT NOT NULL,
    port_num INTEGER NOT NULL,
    port_state INTEGER NOT NULL,
    lid INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS nodes_log_id ON nodes(log_id);
CREATE INDEX IF NOT EXISTS ports_node_id ON ports(node_id);
"""


class Database:
    """An SQLite connection with the application schema and an operation timeout."""

    def __init__(
        self, path: Union[str, PathLike], op_timeout: Union[timedelta, float]
    ) -> None:
        if not isinstance(op_timeout, timedelta):
            op_timeout = timedelta(seconds=op_timeout)
        self.op_timeout = op_timeout
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            path, timeout=op_timeout.total_seconds(), check_same_thread=False
        )
        self._conn.row_factory = sqlite3.Row
        with self._lock:
            self._conn.executescript(_SCHEMA)
            self._conn.commit()

    def fetch_all(self, sql: str, *args: Any) -> List[sqlite3.Row]:
        """Run a query and return every row."""
        with self._lock:
            return self._conn.execute(sql, args).fetchall()

    def fetch_one(self, sql: str, *args: Any) -> Optional[sqlite3.Row]:
        """Run a query and return its first row, or None when there is none."""
        with self._lock:
            return self._conn.execute(sql, args).fetchone()

    def execute(self, sql: str, *args: Any) -> Optional[int]:
        """Run a statement, commit it and return the id of the row it inserted."""
        with self._lock:
            try:
                cursor = self._conn.execute(sql, args)
            except sqlite3.Error:
                self._conn.rollback()
                raise
            self._conn.commit()
            return cursor.lastrowid

    def close(self) -> None:
        """Close the connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def connect(config: DatabaseConfig) -> Database:
    """Open the database named by the configuration and check that it answers."""
    db = Database(config.database, config.timeout)
    try:
        db.fetch_one("SELECT 1")
    except sqlite3.Error:
        db.close()
        raise
    return db