"""Routing of API requests and the HTTP server that serves them."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from http import HTTPStatus
from socketserver import ThreadingMixIn
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from fabriclog.config import ServerConfig
from fabriclog.http_middleware import Handler, Middleware, chain_middleware
from fabriclog.http_request import Request
from fabriclog.http_response import Response
from fabriclog.logger import AppLogger


def _plain(status: int, text: str, headers: Optional[Dict[str, str]] = None) -> Response:
    all_headers = {
        "Content-Type": "text/plain; charset=utf-8",
        "X-Content-Type-Options": "nosniff",
    }
    all_headers.update(headers or {})
    return Response(status=status, body=(text + "\n").encode("utf-8"), headers=all_headers)


def _not_found() -> Response:
    return _plain(HTTPStatus.NOT_FOUND, "404 page not found")


def _segments(path: str) -> List[str]:
    return path.split("/")[1:]


def _is_wildcard(segment: str) -> bool:
    return len(segment) > 2 and segment.startswith("{") and segment.endswith("}")


def _shape(segments: Iterable[str]) -> Tuple[str, ...]:
    return tuple("{}" if _is_wildcard(s) else s for s in segments)


def _match(pattern: List[str], segments: List[str]) -> Optional[Dict[str, str]]:
    if len(pattern) != len(segments):
        return None
    params: Dict[str, str] = {}
    for expected, actual in zip(pattern, segments):
        if _is_wildcard(expected):
            if not actual:
                return None
            params[expected[1:-1]] = actual
        elif expected != actual:
            return None
    return params


@dataclass
class Route:
    """A method and path pattern served by a handler behind its own middleware."""

    method: str
    path: str
    handler: Handler
    middleware: List[Middleware] = field(default_factory=list)

    def with_middleware(self) -> Handler:
        """The handler wrapped in the route's middleware."""
        return chain_middleware(self.handler, self.middleware)


class ApiVersion(str, Enum):
    """Versions of the API, each mounted under /api/<version>."""

    V1 = "v1"
    V2 = "v2"
    V3 = "v3"


class APIVersionRouter:
    """Routes of one API version; paths are matched after the version prefix."""

    def __init__(self, api_version: ApiVersion, *middleware: Middleware) -> None:
        self.api_version = ApiVersion(api_version)
        self.middleware: List[Middleware] = list(middleware)
        self._entries: List[Tuple[str, List[str], Handler]] = []

    def register_routes(self, *routes: Route) -> None:
        """Add routes; a second route with the same method and path shape is an error."""
        for route in routes:
            method = route.method.upper()
            pattern = _segments(route.path)
            for known_method, known_pattern, _ in self._entries:
                if known_method == method and _shape(known_pattern) == _shape(pattern):
                    raise ValueError(
                        f"pattern {method} {route.path} conflicts with a registered route"
                    )
            self._entries.append((method, pattern, route.with_middleware()))

    def handle(self, request: Request) -> Response:
        """Dispatch the request to the matching route, or answer 404 or 405."""
        segments = _segments(request.path)
        method = request.method.upper()
        allowed: List[str] = []
        for route_method, pattern, handler in self._entries:
            params = _match(pattern, segments)
            if params is None:
                continue
            if route_method == method or (route_method == "GET" and method == "HEAD"):
                return handler(replace(request, path_params=params))
            allowed.append(route_method)

        if allowed:
            if "GET" in allowed:
                allowed.append("HEAD")
            return _plain(
                HTTPStatus.METHOD_NOT_ALLOWED,
                "Method Not Allowed",
                {"Allow": ", ".join(sorted(set(allowed)))},
            )
        return _not_found()

    def with_middleware(self) -> Handler:
        """The router wrapped in its middleware."""
        return chain_middleware(self.handle, self.middleware)


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = False
    block_on_close = True


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        pass


def _split_addr(addr: str) -> Tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr!r}")
    return host.strip("[]"), int(port)


def _request_from_environ(environ: Dict[str, Any]) -> Request:
    headers: Dict[str, str] = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            headers[key[5:].replace("_", "-")] = value
    for key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
        if environ.get(key):
            headers[key.replace("_", "-")] = environ[key]

    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    body = environ["wsgi.input"].read(length) if length > 0 else b""

    path = environ.get("PATH_INFO") or "/"
    path = path.encode("latin-1").decode("utf-8", "replace")
    return Request(
        method=environ.get("REQUEST_METHOD", "GET").upper(),
        path=path,
        query_string=environ.get("QUERY_STRING", ""),
        headers=headers,
        body=body,
    )


def _status_line(status: int) -> str:
    try:
        phrase = HTTPStatus(status).phrase
    except ValueError:
        phrase = ""
    return f"{int(status)} {phrase}".rstrip()


class HTTPServer:
    """Mounts version routers under /api/<version> and serves them over HTTP."""

    def __init__(self, config: ServerConfig, logger: AppLogger, *middleware: Middleware) -> None:
        self.config = config
        self.middleware: List[Middleware] = list(middleware)
        self._logger = logger
        self._mounts: Dict[str, Handler] = {}
        self.bound_address: Optional[Tuple[str, int]] = None
        self.started = threading.Event()

    def register_api_routes(self, *routers: APIVersionRouter) -> None:
        """Mount each router under its version prefix."""
        for router in routers:
            prefix = f"/api/{router.api_version.value}"
            if prefix in self._mounts:
                raise ValueError(f"routes for {prefix} are already registered")
            self._mounts[prefix] = router.with_middleware()

    def _dispatch(self, request: Request) -> Response:
        for prefix, handler in self._mounts.items():
            if request.path.startswith(prefix + "/"):
                return handler(replace(request, path=request.path[len(prefix):]))
            if request.path == prefix:
                location = prefix + "/"
                if request.query_string:
                    location += "?" + request.query_string
                return Response(
                    status=HTTPStatus.MOVED_PERMANENTLY, headers={"Location": location}
                )
        return _not_found()

    def handle(self, request: Request) -> Response:
        """Serve one request through the server middleware and the mounted routers."""
        return chain_middleware(self._dispatch, self.middleware)(request)

    def wsgi_app(self, environ: Dict[str, Any], start_response: Callable) -> List[bytes]:
        """WSGI entry point."""
        request = _request_from_environ(environ)
        response = self.handle(request)
        headers = dict(response.headers)
        headers.setdefault("Content-Length", str(len(response.body)))
        start_response(_status_line(response.status), list(headers.items()))
        return [b"" if request.method == "HEAD" else response.body]

    def run(self, stop_event: threading.Event) -> None:
        """Serve until stop_event is set, then shut down within the configured timeout."""
        try:
            host, port = _split_addr(self.config.addr)
            server = make_server(
                host,
                port,
                self.wsgi_app,
                server_class=_ThreadingWSGIServer,
                handler_class=_QuietHandler,
            )
        except (OSError, ValueError) as exc:
            raise RuntimeError(f"listen and serve HTTP: {exc}") from exc

        self.bound_address = tuple(server.server_address[:2])
        self._logger.warning("start http server", addr=self.config.addr)

        serving = threading.Thread(
            target=server.serve_forever, kwargs={"poll_interval": 0.1}, daemon=True
        )
        serving.start()
        self.started.set()

        while not stop_event.wait(0.1):
            if not serving.is_alive():
                server.server_close()
                return

        self._logger.warning("shutdown HTTP server...")

        def stop() -> None:
            server.shutdown()
            server.server_close()

        stopper = threading.Thread(target=stop, daemon=True)
        stopper.start()
        stopper.join(self.config.shutdown_timeout.total_seconds())
        if stopper.is_alive():
            server.socket.close()
            raise RuntimeError("shutdown HTTP server: timed out waiting for requests")

        self._logger.warning("HTTP server stopped")