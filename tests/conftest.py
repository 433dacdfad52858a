"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.lifecycle import HealthCheckStatus, LifecycleConfig, LifecycleController  # noqa: E402


class FakeServerHandle:
    """Server handle recording close() calls."""

    def __init__(self, calls, port, close_error=None):
        self.calls = calls
        self.port = port
        self.close_error = close_error
        self.close_count = 0

    def status(self):
        return HealthCheckStatus(listening=self.close_count == 0, port=self.port)

    async def close(self):
        self.close_count += 1
        self.calls.append("close_health_server")
        if self.close_error is not None:
            raise self.close_error


class FakeHealthServer:
    """HealthCheckServer stand-in that never opens a socket."""

    def __init__(self, calls, start_error=None, close_error=None):
        self.calls = calls
        self.start_error = start_error
        self.close_error = close_error
        self.handler = None
        self.handle = None
        self.start_kwargs = {}

    async def start(self, handler, *, port, host, path):
        self.calls.append("start_health_server")
        if self.start_error is not None:
            raise self.start_error
        self.handler = handler
        self.start_kwargs = {"port": port, "host": host, "path": path}
        self.handle = FakeServerHandle(self.calls, port, self.close_error)
        return self.handle


class FakeSignalRegistrar:
    """Signal registrar stand-in; fire() simulates a received signal."""

    def __init__(self, calls, register_error=None):
        self.calls = calls
        self.register_error = register_error
        self.callbacks = []
        self.restore_count = 0

    def register(self, on_terminate):
        self.calls.append("register_signals")
        if self.register_error is not None:
            raise self.register_error
        self.callbacks.append(on_terminate)

    def restore(self):
        self.restore_count += 1

    async def fire(self):
        for callback in list(self.callbacks):
            await callback()


class RecordingLogger:
    """Structured logger capturing (level, fields, message) tuples."""

    def __init__(self):
        self.records = []

    def info(self, fields, message):
        self.records.append(("info", dict(fields or {}), message))

    def warning(self, fields, message):
        self.records.append(("warning", dict(fields or {}), message))

    def error(self, fields, message, exc_info=None):
        self.records.append(("error", dict(fields or {}), message))

    def messages(self, level):
        return [m for lvl, _, m in self.records if lvl == level]


@pytest.fixture
def calls():
    """Ordered log of collaborator and callback invocations."""
    return []


@pytest.fixture
def exits():
    """Exit codes passed to the controller's terminate callable."""
    return []


@pytest.fixture
def fake_server(calls):
    return FakeHealthServer(calls)


@pytest.fixture
def fake_registrar(calls):
    return FakeSignalRegistrar(calls)


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def make_controller(fake_server, fake_registrar, recording_logger, exits):
    """Build a controller wired to fake collaborators."""

    def factory(**config_fields):
        return LifecycleController(
            LifecycleConfig(**config_fields),
            health_server=fake_server,
            signal_registrar=fake_registrar,
            logger=recording_logger,
            terminate=exits.append,
        )

    return factory
