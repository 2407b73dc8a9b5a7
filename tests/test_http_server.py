import io
import json
import logging
import threading
import urllib.request
from datetime import timedelta
from http import HTTPStatus
from wsgiref.util import setup_testing_defaults

import pytest

from fabriclog.config import ServerConfig
from fabriclog.http_middleware import request_id_middleware
from fabriclog.http_request import Request
from fabriclog.http_response import Response
from fabriclog.http_server import APIVersionRouter, ApiVersion, HTTPServer, Route
from fabriclog.logger import AppLogger


def make_logger():
    base = logging.Logger("server-test", logging.DEBUG)
    base.addHandler(logging.NullHandler())
    return AppLogger(base)


def echo(request):
    payload = {"params": request.path_params, "path": request.path}
    return Response(status=HTTPStatus.OK, body=json.dumps(payload).encode())


def body_echo(request):
    return Response(status=HTTPStatus.OK, body=request.body)


def tag_middleware(next_handler):
    def handler(request):
        response = next_handler(request)
        response.headers["X-Tag"] = "yes"
        return response

    return handler


def make_server():
    router = APIVersionRouter(ApiVersion.V1)
    router.register_routes(Route("GET", "/log/{id}", echo), Route("POST", "/echo", body_echo))
    server = HTTPServer(ServerConfig(addr="127.0.0.1:0"), make_logger(), request_id_middleware())
    server.register_api_routes(router)
    return server


def test_route_with_middleware():
    handler = Route("GET", "/x", echo, [tag_middleware]).with_middleware()
    assert handler(Request()).headers["X-Tag"] == "yes"


def test_router_extracts_path_params():
    router = APIVersionRouter(ApiVersion.V1)
    router.register_routes(Route("GET", "/log/{id}", echo))
    response = router.handle(Request(path="/log/42"))
    assert response.status == HTTPStatus.OK
    assert response.json()["params"] == {"id": "42"}


def test_router_unknown_path_is_404():
    router = APIVersionRouter(ApiVersion.V1)
    router.register_routes(Route("GET", "/log/{id}", echo))
    response = router.handle(Request(path="/missing"))
    assert response.status == HTTPStatus.NOT_FOUND
    assert response.body == b"404 page not found\n"


def test_router_empty_wildcard_does_not_match():
    router = APIVersionRouter(ApiVersion.V1)
    router.register_routes(Route("GET", "/log/{id}", echo))
    assert router.handle(Request(path="/log/")).status == HTTPStatus.NOT_FOUND


def test_router_wrong_method_is_405():
    router = APIVersionRouter(ApiVersion.V1)
    router.register_routes(Route("GET", "/log/{id}", echo))
    response = router.handle(Request(method="POST", path="/log/1"))
    assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
    assert response.headers["Allow"] == "GET, HEAD"


def test_router_head_matches_get():
    router = APIVersionRouter(ApiVersion.V1)
    router.register_routes(Route("GET", "/log/{id}", echo))
    response = router.handle(Request(method="HEAD", path="/log/5"))
    assert response.json()["params"] == {"id": "5"}


def test_router_rejects_conflicting_routes():
    router = APIVersionRouter(ApiVersion.V1)
    router.register_routes(Route("GET", "/log/{id}", echo))
    with pytest.raises(ValueError):
        router.register_routes(Route("GET", "/log/{log_id}", echo))


def test_router_middleware_applies():
    router = APIVersionRouter(ApiVersion.V2, tag_middleware)
    router.register_routes(Route("GET", "/log/{id}", echo))
    response = router.with_middleware()(Request(path="/log/1"))
    assert response.headers["X-Tag"] == "yes"


def test_server_strips_version_prefix():
    response = make_server().handle(Request(path="/api/v1/log/3"))
    assert response.json() == {"params": {"id": "3"}, "path": "/log/3"}
    assert response.headers["X-Request-ID"]


def test_server_unmounted_version_is_404():
    response = make_server().handle(Request(path="/api/v2/log/3"))
    assert response.status == HTTPStatus.NOT_FOUND


def test_server_redirects_bare_prefix():
    response = make_server().handle(Request(path="/api/v1"))
    assert response.status == HTTPStatus.MOVED_PERMANENTLY
    assert response.headers["Location"] == "/api/v1/"


def test_server_rejects_duplicate_version():
    server = make_server()
    with pytest.raises(ValueError):
        server.register_api_routes(APIVersionRouter(ApiVersion.V1))


def test_wsgi_app_get():
    environ = {"PATH_INFO": "/api/v1/log/5", "REQUEST_METHOD": "GET"}
    setup_testing_defaults(environ)
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(make_server().wsgi_app(environ, start_response))
    assert captured["status"] == "200 OK"
    assert json.loads(body)["params"] == {"id": "5"}
    assert captured["headers"]["Content-Length"] == str(len(body))


def test_wsgi_app_reads_body():
    payload = b'{"file_path": "x"}'
    environ = {
        "PATH_INFO": "/api/v1/echo",
        "REQUEST_METHOD": "POST",
        "CONTENT_LENGTH": str(len(payload)),
        "wsgi.input": io.BytesIO(payload),
    }
    setup_testing_defaults(environ)
    body = b"".join(make_server().wsgi_app(environ, lambda status, headers: None))
    assert body == payload


def test_run_serves_until_stopped():
    server = make_server()
    stop = threading.Event()
    worker = threading.Thread(target=server.run, args=(stop,))
    worker.start()
    try:
        assert server.started.wait(5)
        port = server.bound_address[1]
        with urllib.request.urlopen(f"http://127.0.0.1:{port}/api/v1/log/8", timeout=5) as reply:
            data = json.loads(reply.read())
    finally:
        stop.set()
        worker.join(10)
    assert data["params"] == {"id": "8"}
    assert not worker.is_alive()


def test_run_with_bad_address_raises():
    server = HTTPServer(
        ServerConfig(addr="127.0.0.1:notaport", shutdown_timeout=timedelta(seconds=1)),
        make_logger(),
    )
    with pytest.raises(RuntimeError):
        server.run(threading.Event())