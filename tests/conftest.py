"""
Shared fixtures and test doubles for the tracer's collaborators.
"""

from typing import Dict, List, Optional

import pytest

from opentracing_stackdriver import Tracer, TracerConfig
from opentracing_stackdriver.backends.interfaces import ErrorReporter, Logger, TraceBackend, TraceHandle
from opentracing_stackdriver.models import LogEntry


class RecordingLogger(Logger):
    """Log sink keeping every entry in memory."""

    def __init__(self):
        self.entries: List[LogEntry] = []
        self.closed = False

    def log(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def close(self) -> None:
        self.closed = True


class RecordingErrorReporter(ErrorReporter):
    """Error reporter keeping every reported error in memory."""

    def __init__(self):
        self.errors: List[BaseException] = []

    def report(self, error: BaseException) -> None:
        self.errors.append(error)


class FakeHandle(TraceHandle):
    def __init__(self, name: str, trace_id: str, span_id: str,
                 parent_span_id: Optional[str], traced: bool):
        self.name = name
        self._trace_id = trace_id
        self._span_id = span_id
        self.parent_span_id = parent_span_id
        self._traced = traced
        self.labels: Dict[str, str] = {}
        self.finished = False
        self.status_code: Optional[int] = None

    @property
    def trace_id(self) -> str:
        return self._trace_id

    @property
    def span_id(self) -> str:
        return self._span_id

    @property
    def traced(self) -> bool:
        return self._traced

    def set_label(self, key: str, value: str) -> None:
        self.labels[key] = value

    def finish(self, status_code: Optional[int] = None) -> None:
        self.finished = True
        self.status_code = status_code


class FakeTraceBackend(TraceBackend):
    """Trace backend sampling every root span according to ``sample``."""

    def __init__(self, sample: bool = True):
        self.sample = sample
        self.handles: List[FakeHandle] = []
        self.closed = False

    def start_span(self, name, trace_id, span_id, parent_span_id=None, sampled=None):
        traced = self.sample if sampled is None else sampled
        handle = FakeHandle(name, trace_id, span_id, parent_span_id, traced)
        self.handles.append(handle)
        return handle

    def close(self) -> None:
        self.closed = True


class FakeResponse:
    """Minimal HTTP response, shaped like requests/httpx responses."""

    def __init__(self, status_code: int):
        self.status_code = status_code


class FakeStatusResponse:
    """Minimal HTTP response, shaped like aiohttp/urllib3 responses."""

    def __init__(self, status: int, method: str = "GET", url: str = "https://example.com/"):
        self.status = status
        self.method = method
        self.url = url

    def __str__(self):
        return f"<ClientResponse [{self.status}]> Authorization: secret"


class FakeRequest:
    """Minimal HTTP request, shaped like requests/httpx requests."""

    def __init__(self, method: str = "GET", url: str = "https://example.com/"):
        self.method = method
        self.url = url


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def error_reporter():
    return RecordingErrorReporter()


@pytest.fixture
def trace_backend():
    return FakeTraceBackend(sample=True)


@pytest.fixture
def tracer(recording_logger, error_reporter):
    """Tracer without a trace backend: every finished span is logged."""
    return Tracer(
        config=TracerConfig(project_id="test-project"),
        log_sink=recording_logger,
        error_reporter=error_reporter,
    )


@pytest.fixture
def traced_tracer(recording_logger, error_reporter, trace_backend):
    """Tracer exporting every span to a fake trace backend."""
    return Tracer(
        config=TracerConfig(project_id="test-project"),
        log_sink=recording_logger,
        error_reporter=error_reporter,
        trace_backend=trace_backend,
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: tests that talk to real Google Cloud services")
