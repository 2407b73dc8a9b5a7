"""HTTP endpoint for reading the ports of a node."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, List

from fabriclog.domain import Port
from fabriclog.errors import InvalidArgumentError
from fabriclog.http_request import Request, get_int_path_value
from fabriclog.http_response import Response, ResponseHandler
from fabriclog.http_server import Route
from fabriclog.logger import from_context


def port_to_dict(port: Port) -> Dict[str, Any]:
    """The JSON form of a port."""
    return {
        "id": port.id,
        "port_guid": port.port_guid,
        "port_num": port.port_num,
        "port_state": port.port_state,
        "lid": port.lid,
    }


class PortsHTTPHandler:
    """Handler for GET /port/{node_id}."""

    def __init__(self, ports_service) -> None:
        self._service = ports_service

    def routes(self) -> List[Route]:
        """The routes served by this handler."""
        return [Route("GET", "/port/{node_id}", self.get_ports)]

    def get_ports(self, request: Request) -> Response:
        """Answer with every port of the node named by the node_id path parameter."""
        log = from_context()
        responses = ResponseHandler(log)
        log.debug("invoke GetPorts handler")

        try:
            node_id = get_int_path_value(request, "node_id")
        except InvalidArgumentError as exc:
            return responses.error_response(exc, "failed to get node_id from path")

        try:
            ports = self._service.get_ports(node_id)
        except Exception as exc:
            return responses.error_response(exc, "failed to get ports")

        return responses.json_response(
            {"ports": [port_to_dict(port) for port in ports]}, HTTPStatus.OK
        )