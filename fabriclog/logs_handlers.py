"""HTTP endpoints for parsing dumps and reading log records."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Dict, List

from fabriclog.domain import Log, LogStatus
from fabriclog.errors import InvalidArgumentError
from fabriclog.http_request import Request, decode_and_validate, get_int_path_value
from fabriclog.http_response import Response, ResponseHandler
from fabriclog.http_server import Route
from fabriclog.logger import from_context


@dataclass
class ParseRequest:
    """Body of a parse request."""

    file_path: str = field(metadata={"json": "file_path", "required": True})


def log_to_dict(log: Log) -> Dict[str, Any]:
    """The JSON form of a log record."""
    return {
        "id": log.id,
        "file_name": log.file_name,
        "status": LogStatus(log.status).value,
        "uploaded_at": log.uploaded_at,
        "node_count": log.node_count,
        "parse_count": log.port_count,
    }


class LogsHTTPHandler:
    """Handlers for POST /parse and GET /log/{id}."""

    def __init__(self, logs_service) -> None:
        self._service = logs_service

    def routes(self) -> List[Route]:
        """The routes served by this handler."""
        return [
            Route("POST", "/parse", self.parse),
            Route("GET", "/log/{id}", self.get_log),
        ]

    def parse(self, request: Request) -> Response:
        """Parse the dump named in the body and answer with the new log id."""
        log = from_context()
        responses = ResponseHandler(log)
        log.debug("invoke Parse handler")

        try:
            body = decode_and_validate(request, ParseRequest)
        except InvalidArgumentError as exc:
            return responses.error_response(exc, "failed to decode and validate http request")

        try:
            record = self._service.parse(body.file_path)
        except Exception as exc:
            return responses.error_response(exc, "failed to parse log file")

        return responses.json_response({"log_id": record.id}, HTTPStatus.CREATED)

    def get_log(self, request: Request) -> Response:
        """Answer with the log record named by the id path parameter."""
        log = from_context()
        responses = ResponseHandler(log)
        log.debug("invoke GetLog handler")

        try:
            log_id = get_int_path_value(request, "id")
        except InvalidArgumentError as exc:
            return responses.error_response(exc, "failed to get id from request")

        try:
            record = self._service.get_log(log_id)
        except Exception as exc:
            return responses.error_response(exc, "failed to get log")

        return responses.json_response(log_to_dict(record), HTTPStatus.OK)