"""Domain objects describing an uploaded fabric log and its topology."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Optional, Union

UNINITIALIZED_ID = -1


class LogStatus(str, Enum):
    """Processing state of an uploaded log."""

    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


class NodeType(IntEnum):
    """Known kinds of fabric nodes."""

    HOST = 1
    SWITCH = 2

    @classmethod
    def from_value(cls, value: int) -> Union["NodeType", int]:
        """Return the matching member, or the plain integer for unknown kinds."""
        try:
            return cls(value)
        except ValueError:
            return value


@dataclass
class Log:
    """A log upload and the counts gathered from it."""

    id: int
    file_name: str
    status: LogStatus
    uploaded_at: datetime
    node_count: int = 0
    port_count: int = 0

    @classmethod
    def uninitialized(cls, file_name: str) -> "Log":
        """A new log that is being processed and has no database id yet."""
        return cls(
            id=UNINITIALIZED_ID,
            file_name=file_name,
            status=LogStatus.PROCESSING,
            uploaded_at=datetime.now(timezone.utc),
        )


@dataclass
class NodeInfo:
    """Optional hardware and switch details of a node."""

    id: int = 0
    node_id: int = 0
    serial_number: Optional[str] = None
    part_number: Optional[str] = None
    revision: Optional[str] = None
    product_name: Optional[str] = None
    endianness: Optional[int] = None
    enable_endianness_per_job: Optional[int] = None
    reproducibility_disable: Optional[int] = None


@dataclass
class Node:
    """A host or switch in the fabric."""

    id: int
    log_id: int
    node_guid: str
    node_desc: str
    node_type: Union[NodeType, int]
    num_ports: int
    info: Optional[NodeInfo] = field(default=None)

    @classmethod
    def uninitialized(
        cls,
        log_id: int,
        node_guid: str,
        node_desc: str,
        node_type: Union[NodeType, int],
        num_ports: int,
    ) -> "Node":
        """A node without a database id and without extra info."""
        return cls(
            id=UNINITIALIZED_ID,
            log_id=log_id,
            node_guid=node_guid,
            node_desc=node_desc,
            node_type=node_type,
            num_ports=num_ports,
        )


@dataclass
class Port:
    """A numbered connection point on a fabric node."""

    id: int
    node_id: int
    port_guid: str
    port_num: int
    port_state: int
    lid: int

    @classmethod
    def uninitialized(
        cls, node_id: int, port_guid: str, port_num: int, port_state: int, lid: int
    ) -> "Port":
        """An unsaved connection point with no database id."""
        return cls(
            id=UNINITIALIZED_ID,
            node_id=node_id,
            port_guid=port_guid,
            port_num=port_num,
            port_state=port_state,
            lid=lid,
        )