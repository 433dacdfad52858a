"""HTTP health check server.

Serves ``GET /health`` (path configurable) from a small FastAPI app run
by uvicorn inside the current event loop. Every other path answers 404.
"""

import asyncio
import contextlib
import socket
from dataclasses import dataclass
from typing import Iterator, Optional

import uvicorn
from fastapi import FastAPI
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from src.logging_config import get_logger

from .config import DEFAULT_HEALTH_HOST, DEFAULT_HEALTH_PATH, DEFAULT_HEALTH_PORT
from .interfaces import HealthCheckStatus, RequestHandler

logger = get_logger(__name__)

STARTUP_POLL_INTERVAL_SECONDS = 0.01


@dataclass(frozen=True)
class HealthCheckServerConfig:
    """Where the health endpoint listens."""

    port: int = DEFAULT_HEALTH_PORT
    host: str = DEFAULT_HEALTH_HOST
    path: str = DEFAULT_HEALTH_PATH


async def default_health_handler(request: Request) -> Response:
    """Generic liveness answer used when no handler is supplied."""
    return JSONResponse({"status": "Ok"}, status_code=200)


def create_health_app(
    handler: Optional[RequestHandler] = None,
    path: str = DEFAULT_HEALTH_PATH,
) -> FastAPI:
    """Build the ASGI app exposing only ``GET path``."""
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    app.add_route(path, handler or default_health_handler, methods=["GET"], include_in_schema=False)
    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves process signals to the signal registrar."""

    def install_signal_handlers(self) -> None:
        # uvicorn < 0.29
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


def _bind_socket(host: str, port: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


class HealthCheckService:
    """Handle to a running health check server."""

    def __init__(self, server: uvicorn.Server, task: "asyncio.Task[None]", port: int):
        self._server = server
        self._task = task
        self._port = port
        self._closed = False

    @property
    def port(self) -> int:
        """Port actually bound (resolved when 0 was requested)."""
        return self._port

    def status(self) -> HealthCheckStatus:
        return HealthCheckStatus(
            listening=self._server.started and not self._task.done(),
            port=self._port,
        )

    async def close(self) -> None:
        """Stop the server and wait for open connections to finish.

        No timeout is applied. Repeated calls wait on the same shutdown.
        """
        self._server.should_exit = True
        await self._task
        if not self._closed:
            self._closed = True
            logger.info({"port": self._port}, "Health check server closed")


async def start_health_check_server(
    handler: Optional[RequestHandler] = None,
    config: Optional[HealthCheckServerConfig] = None,
) -> HealthCheckService:
    """Start the health endpoint and wait until it accepts connections.

    Raises OSError if the port cannot be bound.
    """
    config = config or HealthCheckServerConfig()
    sock = _bind_socket(config.host, config.port)
    port = sock.getsockname()[1]

    server = _EmbeddedServer(
        uvicorn.Config(
            create_health_app(handler, config.path),
            host=config.host,
            port=port,
            lifespan="off",
            log_config=None,
            access_log=False,
        )
    )
    task = asyncio.create_task(server.serve(sockets=[sock]))

    while not server.started:
        if task.done():
            sock.close()
            task.result()
            raise RuntimeError("Health check server exited during startup")
        await asyncio.sleep(STARTUP_POLL_INTERVAL_SECONDS)

    logger.info({"port": port, "path": config.path}, "Health check server listening")
    return HealthCheckService(server, task, port)


class UvicornHealthCheckServer:
    """Default HealthCheckServer collaborator backed by uvicorn."""

    async def start(
        self,
        handler: Optional[RequestHandler],
        *,
        port: int = DEFAULT_HEALTH_PORT,
        host: str = DEFAULT_HEALTH_HOST,
        path: str = DEFAULT_HEALTH_PATH,
    ) -> HealthCheckService:
        return await start_health_check_server(
            handler, HealthCheckServerConfig(port=port, host=host, path=path)
        )
