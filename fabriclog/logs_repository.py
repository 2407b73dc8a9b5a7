"""Storage of log uploads."""

from __future__ import annotations

from datetime import datetime

from fabriclog.database import Database
from fabriclog.domain import Log, LogStatus
from fabriclog.errors import NotFoundError

_COLUMNS = "id, file_name, status, uploaded_at, node_count, port_count"


def _log_from_row(row) -> Log:
    return Log(
        id=row["id"],
        file_name=row["file_name"],
        status=LogStatus(row["status"]),
        uploaded_at=datetime.fromisoformat(row["uploaded_at"]),
        node_count=row["node_count"],
        port_count=row["port_count"],
    )


class LogsRepository:
    """Create, update and read log records."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create_log(self, log: Log) -> Log:
        """Insert the log and return it as stored, with its new id."""
        log_id = self._db.execute(
            "INSERT INTO logs (file_name, status, uploaded_at, node_count, port_count)"
            " VALUES (?, ?, ?, ?, ?)",
            log.file_name,
            LogStatus(log.status).value,
            log.uploaded_at.isoformat(),
            log.node_count,
            log.port_count,
        )
        return self.get_log(log_id)

    def update_log(self, log: Log) -> None:
        """Store the status and counts of an existing log."""
        self._db.execute(
            "UPDATE logs SET status = ?, node_count = ?, port_count = ? WHERE id = ?",
            LogStatus(log.status).value,
            log.node_count,
            log.port_count,
            log.id,
        )

    def get_log(self, log_id: int) -> Log:
        """Return the log with this id or raise NotFoundError."""
        row = self._db.fetch_one(f"SELECT {_COLUMNS} FROM logs WHERE id = ?", log_id)
        if row is None:
            raise NotFoundError(f"log id={log_id}: not found")
        return _log_from_row(row)