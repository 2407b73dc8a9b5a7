"""Storage of fabric nodes and their optional details."""

from __future__ import annotations

from typing import List

from fabriclog.database import Database
from fabriclog.domain import Node, NodeInfo, NodeType
from fabriclog.errors import NotFoundError

_NODE_COLUMNS = "id, log_id, node_guid, node_desc, node_type, num_ports"


def _node_from_row(row) -> Node:
    return Node(
        id=row["id"],
        log_id=row["log_id"],
        node_guid=row["node_guid"],
        node_desc=row["node_desc"],
        node_type=NodeType.from_value(row["node_type"]),
        num_ports=row["num_ports"],
    )


class NodesRepository:
    """Create and read nodes and node details."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create_node(self, node: Node) -> Node:
        """Insert the node and return it as stored, without details."""
        node_id = self._db.execute(
            "INSERT INTO nodes (log_id, node_guid, node_desc, node_type, num_ports)"
            " VALUES (?, ?, ?, ?, ?)",
            node.log_id,
            node.node_guid,
            node.node_desc,
            int(node.node_type),
            node.num_ports,
        )
        row = self._db.fetch_one(f"SELECT {_NODE_COLUMNS} FROM nodes WHERE id = ?", node_id)
        return _node_from_row(row)

    def create_node_info(self, info: NodeInfo) -> None:
        """Insert details for the node named by info.node_id."""
        self._db.execute(
            "INSERT INTO nodes_info (node_id, serial_number, part_number, revision,"
            " product_name, endianness, enable_endianness_per_job, reproducibility_disable)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            info.node_id,
            info.serial_number,
            info.part_number,
            info.revision,
            info.product_name,
            info.endianness,
            info.enable_endianness_per_job,
            info.reproducibility_disable,
        )

    def get_node(self, node_id: int) -> Node:
        """Return the node with its details, or raise NotFoundError."""
        row = self._db.fetch_one(
            "SELECT n.id, n.log_id, n.node_guid, n.node_desc, n.node_type, n.num_ports,"
            " i.id AS info_id, i.serial_number, i.part_number, i.revision, i.product_name,"
            " i.endianness, i.enable_endianness_per_job, i.reproducibility_disable"
            " FROM nodes n LEFT JOIN nodes_info i ON i.node_id = n.id"
            " WHERE n.id = ?",
            node_id,
        )
        if row is None:
            raise NotFoundError(f"node id={node_id}: not found")

        node = _node_from_row(row)
        if row["info_id"] is not None:
            node.info = NodeInfo(
                id=row["info_id"],
                node_id=node.id,
                serial_number=row["serial_number"],
                part_number=row["part_number"],
                revision=row["revision"],
                product_name=row["product_name"],
                endianness=row["endianness"],
                enable_endianness_per_job=row["enable_endianness_per_job"],
                reproducibility_disable=row["reproducibility_disable"],
            )
        return node

    def get_topology(self, log_id: int) -> List[Node]:
        """Return every node of a log, without details."""
        rows = self._db.fetch_all(
            f"SELECT {_NODE_COLUMNS} FROM nodes WHERE log_id = ? ORDER BY id", log_id
        )
        return [_node_from_row(row) for row in rows]