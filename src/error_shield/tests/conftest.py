"""
Core pytest configuration for the entire test suite.

Provides the logging baseline for the session, a recording diagnostic sink the
tests can inspect, and app/client fixtures wired to that sink.
"""

from __future__ import annotations

# -------------------------------
# Standard library imports
# -------------------------------
import logging
import threading
from pathlib import Path

# -------------------------------
# Early logging tuning (IMPORTANT)
# -------------------------------
# Keep this block before importing app modules or libraries that log at import time.
NOISY_LOGGERS = (
    "faker",
    "faker.factory",
    "asyncio",
    "httpx",
    "httpcore",
    "urllib3",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

# -------------------------------
# Third-party / project imports
# -------------------------------
import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

from error_shield.config.settings import Settings
from error_shield.core.diagnostics import DiagnosticRecord
from error_shield.core.logging.builder import setup_logging, stop_queue_logging
from error_shield.main import create_app


def make_settings(**overrides) -> Settings:
    """Settings for tests: console logging, no queue, nothing read from the environment file."""
    values = dict(
        ENV="testing",
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="json",
        LOG_TO_STDOUT=True,
        LOG_DIR=Path("logs"),
        LOG_USE_QUEUE=False,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class RecordingDiagnosticSink:
    """In-memory DiagnosticSink: keeps every record, in write order."""

    def __init__(self):
        self.records: list[DiagnosticRecord] = []
        self.closed = False
        self._lock = threading.Lock()

    def write(self, record: DiagnosticRecord) -> None:
        with self._lock:
            self.records.append(record)

    def close(self) -> None:
        self.closed = True

    @property
    def last(self) -> DiagnosticRecord:
        return self.records[-1]


class BrokenDiagnosticSink(RecordingDiagnosticSink):
    """A sink whose backend is down: every write raises."""

    def write(self, record: DiagnosticRecord) -> None:
        raise ConnectionError("log backend unavailable")


# -------------------------------
# Logging: install application logging early
# -------------------------------
@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Install the application logging config once for the session."""
    setup_logging(make_settings())
    yield
    stop_queue_logging()


@pytest.fixture
def restore_logging():
    """
    For tests that call setup_logging() themselves: put the session baseline back
    afterwards so later tests see the usual handlers (and caplog works again).
    """
    yield
    stop_queue_logging()
    setup_logging(make_settings())


# -------------------------------
# App fixtures
# -------------------------------
@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def sink() -> RecordingDiagnosticSink:
    return RecordingDiagnosticSink()


@pytest.fixture
def broken_sink() -> BrokenDiagnosticSink:
    return BrokenDiagnosticSink()


@pytest.fixture
def app(settings: Settings, sink: RecordingDiagnosticSink) -> FastAPI:
    return create_app(settings, sink=sink, configure_logging=False)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    # Opaque errors are re-raised by design; let them become the framework's plain 500
    # instead of failing the test with the exception.
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def client_factory():
    """Build a client for an app with custom settings and/or sink."""

    def _make(settings: Settings | None = None, sink=None) -> TestClient:
        app = create_app(settings or make_settings(), sink=sink or RecordingDiagnosticSink(), configure_logging=False)
        return TestClient(app, raise_server_exceptions=False)

    return _make
