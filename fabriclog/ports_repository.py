"""Storage of node ports."""

from __future__ import annotations

from typing import List

from fabriclog.database import Database
from fabriclog.domain import Port


class PortsRepository:
    """Create and read ports."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create_port(self, port: Port) -> None:
        """Insert a port belonging to port.node_id."""
        self._db.execute(
            "INSERT INTO ports (node_id, port_guid, port_num, port_state, lid)"
            " VALUES (?, ?, ?, ?, ?)",
            port.node_id,
            port.port_guid,
            port.port_num,
            port.port_state,
            port.lid,
        )

    def get_ports(self, node_id: int) -> List[Port]:
        """Return every port of a node."""
        rows = self._db.fetch_all(
            "SELECT id, node_id, port_guid, port_num, port_state, lid"
            " FROM ports WHERE node_id = ? ORDER BY id",
            node_id,
        )
        return [
            Port(
                id=row["id"],
                node_id=row["node_id"],
                port_guid=row["port_guid"],
                port_num=row["port_num"],
                port_state=row["port_state"],
                lid=row["lid"],
            )
            for row in rows
        ]