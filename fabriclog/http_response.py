"""HTTP responses and the helper that builds JSON and error replies."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from http import HTTPStatus
from typing import Any, Dict, Tuple

from fabriclog.errors import ConflictError, InvalidArgumentError, NotFoundError
from fabriclog.logger import AppLogger

_ERROR_KINDS = (
    (InvalidArgumentError, HTTPStatus.BAD_REQUEST, "warning"),
    (NotFoundError, HTTPStatus.NOT_FOUND, "debug"),
    (ConflictError, HTTPStatus.CONFLICT, "warning"),
)

_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


@dataclass
class Response:
    """An HTTP response ready to be sent."""

    status: int = HTTPStatus.OK
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        """Decode the body as JSON; an empty body gives None."""
        return json.loads(self.body) if self.body else None


def _format_time(value: datetime) -> str:
    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset()
    if not offset:
        return text + "Z"
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return _format_time(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"object of type {type(obj).__name__} is not JSON serializable")


def _encode(body: Any) -> bytes:
    text = json.dumps(body, default=_default, ensure_ascii=False, separators=(",", ":"))
    for raw, escaped in _ESCAPES.items():
        text = text.replace(raw, escaped)
    return (text + "\n").encode("utf-8")


def _classify(error: BaseException) -> Tuple[int, str]:
    seen = set()
    current = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        for kind, status, level in _ERROR_KINDS:
            if isinstance(current, kind):
                return status, level
        current = current.__cause__
    return HTTPStatus.INTERNAL_SERVER_ERROR, "error"


class ResponseHandler:
    """Build responses and log failures with the request's logger."""

    def __init__(self, logger: AppLogger) -> None:
        self._logger = logger

    def json_response(self, body: Any, status: int) -> Response:
        """Encode body as JSON with the given status."""
        try:
            payload = _encode(body)
        except (TypeError, ValueError) as exc:
            self._logger.error("write HTTP response", error=str(exc))
            payload = b""
        return Response(
            status=status,
            body=payload,
            headers={"Content-Type": "application/json"},
        )

    def no_content_response(self) -> Response:
        """An empty 204 response."""
        return Response(status=HTTPStatus.NO_CONTENT)

    def error_response(self, error: BaseException, msg: str) -> Response:
        """Map the error to a status code, log it and describe it in the body."""
        status, level = _classify(error)
        getattr(self._logger, level)(msg, error=str(error))
        return self._error_body(status, str(error), msg)

    def panic_response(self, exc: BaseException, msg: str) -> Response:
        """Log an unexpected exception and answer with 500."""
        text = f"Unexpected panic: {exc}"
        self._logger.error(msg, error=text)
        return self._error_body(HTTPStatus.INTERNAL_SERVER_ERROR, text, msg)

    def _error_body(self, status: int, error: str, msg: str) -> Response:
        return self.json_response({"error": error, "message": msg}, status)