"""Request middleware: request ids, per-request loggers, tracing and crash recovery."""

from __future__ import annotations

import time
import traceback
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from fabriclog.http_request import Request
from fabriclog.http_response import Response, ResponseHandler
from fabriclog.logger import AppLogger, from_context, use_logger

Handler = Callable[[Request], Response]
Middleware = Callable[[Handler], Handler]

REQUEST_ID_HEADER = "X-Request-ID"


def chain_middleware(handler: Handler, middleware: Iterable[Middleware]) -> Handler:
    """Wrap handler so that the first middleware is the outermost one."""
    for wrap in reversed(list(middleware)):
        handler = wrap(handler)
    return handler


def request_id_middleware() -> Middleware:
    """Ensure every request carries an X-Request-ID and echo it in the response."""

    def middleware(next_handler: Handler) -> Handler:
        def handler(request: Request) -> Response:
            request_id = request.header(REQUEST_ID_HEADER) or str(uuid.uuid4())
            request.set_header(REQUEST_ID_HEADER, request_id)
            response = next_handler(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        return handler

    return middleware


def logger_middleware(logger: AppLogger) -> Middleware:
    """Make a logger bound to the request id and URL current for the request."""

    def middleware(next_handler: Handler) -> Handler:
        def handler(request: Request) -> Response:
            bound = logger.bind(
                request_id=request.header(REQUEST_ID_HEADER),
                url=request.url,
            )
            with use_logger(bound):
                return next_handler(request)

        return handler

    return middleware


def trace_middleware() -> Middleware:
    """Log the start of every request and its status code and latency."""

    def middleware(next_handler: Handler) -> Handler:
        def handler(request: Request) -> Response:
            log = from_context()
            started = time.monotonic()
            log.debug(
                ">>> incoming HTTP request",
                http_method=request.method,
                time=datetime.now(timezone.utc).isoformat(),
            )
            response = next_handler(request)
            log.debug(
                "<<< done HTTP request",
                status_code=int(response.status),
                latency=timedelta(seconds=time.monotonic() - started),
            )
            return response

        return handler

    return middleware


def panic_middleware() -> Middleware:
    """Turn an unexpected exception from the handler into a 500 response."""

    def middleware(next_handler: Handler) -> Handler:
        def handler(request: Request) -> Response:
            log = from_context()
            responses = ResponseHandler(log)
            try:
                return next_handler(request)
            except Exception as exc:
                log.error("panic stack trace", stack=traceback.format_exc())
                return responses.panic_response(
                    exc, "during handle http request got unexpected panic"
                )

        return handler

    return middleware