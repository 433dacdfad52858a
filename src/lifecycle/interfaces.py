"""Narrow contracts for the collaborators the controller drives."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol

from starlette.requests import Request
from starlette.responses import Response

RequestHandler = Callable[[Request], Awaitable[Response]]
TerminateCallback = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class HealthCheckStatus:
    """Status information for the health check server."""

    listening: bool
    port: int


class ServerHandle(Protocol):
    """Handle to a started health check server."""

    def status(self) -> HealthCheckStatus:
        ...

    async def close(self) -> None:
        """Stop accepting requests. Safe to call more than once."""
        ...


class HealthCheckServer(Protocol):
    """Starts the HTTP health endpoint."""

    async def start(
        self,
        handler: Optional[RequestHandler],
        *,
        port: int,
        host: str,
        path: str,
    ) -> ServerHandle:
        ...


class ShutdownSignalRegistrar(Protocol):
    """Routes termination signals to an async callback."""

    def register(self, on_terminate: TerminateCallback) -> None:
        ...

    def restore(self) -> None:
        ...


class StructuredLogger(Protocol):
    """Fields-first logger."""

    def info(self, fields: Optional[Mapping[str, Any]], message: str) -> None:
        ...

    def warning(self, fields: Optional[Mapping[str, Any]], message: str) -> None:
        ...

    def error(
        self,
        fields: Optional[Mapping[str, Any]],
        message: str,
        exc_info: Any = None,
    ) -> None:
        ...
