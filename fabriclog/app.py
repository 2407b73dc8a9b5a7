"""Application wiring and the command that starts the HTTP service."""

from __future__ import annotations

import argparse
import signal
import sqlite3
import threading
from typing import Dict, Optional, Sequence

from fabriclog.config import (
    ConfigError,
    ServerConfig,
    load_database_config,
    load_logger_config,
    load_server_config,
)
from fabriclog.database import Database, connect
from fabriclog.http_middleware import (
    logger_middleware,
    panic_middleware,
    request_id_middleware,
    trace_middleware,
)
from fabriclog.http_server import APIVersionRouter, ApiVersion, HTTPServer
from fabriclog.logger import AppLogger, new_logger
from fabriclog.logs_handlers import LogsHTTPHandler
from fabriclog.logs_repository import LogsRepository
from fabriclog.nodes_handlers import NodesHTTPHandler
from fabriclog.nodes_repository import NodesRepository
from fabriclog.ports_handlers import PortsHTTPHandler
from fabriclog.ports_repository import PortsRepository
from fabriclog.services import LogsService, NodesService, PortsService


def build_server(db: Database, logger: AppLogger, server_config: ServerConfig) -> HTTPServer:
    """Wire repositories, services and handlers into a ready HTTP server."""
    logs_repository = LogsRepository(db)
    nodes_repository = NodesRepository(db)
    ports_repository = PortsRepository(db)

    logger.debug("initializing feature", feature="logs")
    logs_service = LogsService(logs_repository, nodes_repository, ports_repository)
    logger.debug("initializing feature", feature="nodes")
    nodes_service = NodesService(nodes_repository)
    logger.debug("initializing feature", feature="ports")
    ports_service = PortsService(ports_repository)

    logger.debug("Initializing HTTP server")
    server = HTTPServer(
        server_config,
        logger,
        request_id_middleware(),
        logger_middleware(logger),
        trace_middleware(),
        panic_middleware(),
    )

    router = APIVersionRouter(ApiVersion.V1)
    router.register_routes(*LogsHTTPHandler(logs_service).routes())
    router.register_routes(*NodesHTTPHandler(nodes_service).routes())
    router.register_routes(*PortsHTTPHandler(ports_service).routes())
    server.register_api_routes(router)
    return server


def _install_signal_handlers(stop: threading.Event) -> Dict[int, object]:
    if threading.current_thread() is not threading.main_thread():
        return {}
    return {
        sig: signal.signal(sig, lambda *_: stop.set())
        for sig in (signal.SIGINT, signal.SIGTERM)
    }


def _restore_signal_handlers(previous: Dict[int, object]) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the service with settings from the environment; stop on SIGINT or SIGTERM."""
    argparse.ArgumentParser(
        prog="fabriclog",
        description="Serve parsed fabric dumps over an HTTP API.",
    ).parse_args(argv)

    try:
        logger = new_logger(load_logger_config())
    except (ConfigError, ValueError, OSError) as exc:
        print("failed to init application logger", exc)
        return 1

    try:
        logger.debug("Initializing database connection")
        try:
            db = connect(load_database_config())
        except (ConfigError, sqlite3.Error) as exc:
            logger.error("failed to init database connection", error=str(exc))
            return 1

        with db:
            try:
                server = build_server(db, logger, load_server_config())
            except ConfigError as exc:
                logger.error("failed to init HTTP server", error=str(exc))
                return 1

            stop = threading.Event()
            previous = _install_signal_handlers(stop)
            try:
                server.run(stop)
            except RuntimeError as exc:
                logger.error("HTTP server run error", error=str(exc))
            finally:
                _restore_signal_handlers(previous)
        return 0
    finally:
        logger.close()


if __name__ == "__main__":
    raise SystemExit(main())