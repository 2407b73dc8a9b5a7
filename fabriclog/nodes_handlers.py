"""HTTP endpoints for reading the topology of a log and single nodes."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, List

from fabriclog.domain import Node, NodeType
from fabriclog.errors import InvalidArgumentError
from fabriclog.http_request import Request, get_int_path_value
from fabriclog.http_response import Response, ResponseHandler
from fabriclog.http_server import Route
from fabriclog.logger import from_context


def _node_type_name(node: Node) -> str:
    return "switch" if node.node_type == NodeType.SWITCH else "host"


def node_to_dict(node: Node) -> Dict[str, Any]:
    """The JSON form of a node in a topology listing."""
    return {
        "id": node.id,
        "node_guid": node.node_guid,
        "node_desc": node.node_desc,
        "node_type": _node_type_name(node),
        "num_ports": node.num_ports,
    }


def node_detail_to_dict(node: Node) -> Dict[str, Any]:
    """The JSON form of a single node, with its details or null."""
    result = node_to_dict(node)
    info = node.info
    result["info"] = (
        None
        if info is None
        else {
            "serial_number": info.serial_number,
            "part_number": info.part_number,
            "revision": info.revision,
            "product_name": info.product_name,
            "endianness": info.endianness,
            "enable_endianness_per_job": info.enable_endianness_per_job,
            "reproducibility_disable": info.reproducibility_disable,
        }
    )
    return result


class NodesHTTPHandler:
    """Handlers for GET /topology/{log_id} and GET /node/{id}."""

    def __init__(self, nodes_service) -> None:
        self._service = nodes_service

    def routes(self) -> List[Route]:
        """The routes served by this handler."""
        return [
            Route("GET", "/topology/{log_id}", self.get_topology),
            Route("GET", "/node/{id}", self.get_node),
        ]

    def get_topology(self, request: Request) -> Response:
        """Answer with every node of the log named by the log_id path parameter."""
        log = from_context()
        responses = ResponseHandler(log)
        log.debug("invoke GetTopology handler")

        try:
            log_id = get_int_path_value(request, "log_id")
        except InvalidArgumentError as exc:
            return responses.error_response(exc, "failed to get log_id from path")

        try:
            nodes = self._service.get_topology(log_id)
        except Exception as exc:
            return responses.error_response(exc, "failed to get topology")

        return responses.json_response(
            {"nodes": [node_to_dict(node) for node in nodes]}, HTTPStatus.OK
        )

    def get_node(self, request: Request) -> Response:
        """Answer with the node named by the id path parameter."""
        log = from_context()
        responses = ResponseHandler(log)
        log.debug("invoke GetNode handler")

        try:
            node_id = get_int_path_value(request, "id")
        except InvalidArgumentError as exc:
            return responses.error_response(exc, "failed to get id from path")

        try:
            node = self._service.get_node(node_id)
        except Exception as exc:
            return responses.error_response(exc, "failed to get node")

        return responses.json_response(node_detail_to_dict(node), HTTPStatus.OK)