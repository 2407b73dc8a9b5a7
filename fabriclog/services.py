"""Business operations on logs, nodes and ports."""

from __future__ import annotations

import time
from contextlib import suppress
from dataclasses import replace
from datetime import timedelta
from typing import Dict, List

from fabriclog.domain import Log, LogStatus, Node, Port
from fabriclog.logger import from_context
from fabriclog.parser import parse_zip


class LogsService:
    """Parse dumps into stored nodes and ports, and read logs back."""

    def __init__(self, logs_repository, nodes_repository, ports_repository) -> None:
        self._logs = logs_repository
        self._nodes = nodes_repository
        self._ports = ports_repository

    def _mark_failed(self, record: Log) -> None:
        record.status = LogStatus.FAILED
        with suppress(Exception):
            self._logs.update_log(record)

    def parse(self, file_path: str) -> Log:
        """Parse the zip at file_path, store its topology and return the log record."""
        log = from_context()

        record = self._logs.create_log(Log.uninitialized(file_path))

        start = time.monotonic()
        log.debug("start parsing", file_path=file_path)

        try:
            parsed = parse_zip(file_path)
        except Exception:
            self._mark_failed(record)
            raise

        log.debug(
            "parsed zip",
            duration=timedelta(seconds=time.monotonic() - start),
            nodes=len(parsed.nodes),
            ports=len(parsed.ports),
        )

        guid_to_node_id: Dict[str, int] = {}
        try:
            for node in parsed.nodes:
                saved = self._nodes.create_node(replace(node, log_id=record.id))
                guid_to_node_id[node.node_guid] = saved.id

            for port in parsed.ports:
                node_id = guid_to_node_id.get(port.port_guid)
                if node_id is None:
                    continue
                self._ports.create_port(replace(port, node_id=node_id))
        except Exception:
            self._mark_failed(record)
            raise

        record.status = LogStatus.DONE
        record.node_count = len(parsed.nodes)
        record.port_count = len(parsed.ports)
        self._logs.update_log(record)
        return record

    def get_log(self, log_id: int) -> Log:
        """Return a stored log."""
        return self._logs.get_log(log_id)


class NodesService:
    """Read nodes of parsed logs."""

    def __init__(self, nodes_repository) -> None:
        self._nodes = nodes_repository

    def get_node(self, node_id: int) -> Node:
        """Return a node with its details."""
        return self._nodes.get_node(node_id)

    def get_topology(self, log_id: int) -> List[Node]:
        """Return every node of a log."""
        return self._nodes.get_topology(log_id)


class PortsService:
    """Read ports of stored nodes."""

    def __init__(self, ports_repository) -> None:
        self._ports = ports_repository

    def get_ports(self, node_id: int) -> List[Port]:
        """Return every port of a node."""
        return self._ports.get_ports(node_id)