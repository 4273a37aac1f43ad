"""
Fluent construction of a ``Tracer``.

Example:
    tracer = (
        TracerBuilder()
        .project_id("my-project")
        .with_cloud_logging()
        .with_cloud_trace(sample_rate=0.1)
        .with_error_reporting()
        .build()
    )
"""

from typing import Any, Callable, Dict, List, Optional
import logging

import opentracing

from .backends.cloud_logging import CloudLoggingSink
from .backends.cloud_trace import CloudTraceBackend
from .backends.error_reporting import CloudErrorReporter
from .backends.interfaces import ErrorReporter, Logger, TraceBackend
from .config import TracerConfig
from .exceptions import ConfigurationError
from .loggers import MultiLogger, LoggerFunc, as_logger
from .models import LogEntry
from .span_pool import SpanPool
from .tracer import Tracer

logger = logging.getLogger(__name__)


class TracerBuilder:
    """Collects tracer settings and collaborators, then builds the tracer."""

    def __init__(self, config: Optional[TracerConfig] = None):
        base = config or TracerConfig()
        self._settings: Dict[str, Any] = {
            "project_id": base.project_id,
            "service": base.service,
            "version": base.version,
            "log_name": base.log_name,
            "sample_rate": base.sample_rate,
            "pool_size": base.pool_size,
        }
        self._baggage: Dict[str, str] = dict(base.baggage)
        self._loggers: List[Logger] = []
        self._error_reporter: Optional[ErrorReporter] = None
        self._trace_backend: Optional[TraceBackend] = None
        self._span_pool: Optional[SpanPool] = None
        self._scope_manager: Optional[opentracing.ScopeManager] = None
        # cloud collaborators are created in build() from the final settings
        self._cloud_logging: Optional[Dict[str, Any]] = None
        self._cloud_trace: Optional[Dict[str, Any]] = None
        self._error_reporting: Optional[Dict[str, Any]] = None

    def project_id(self, project_id: str) -> "TracerBuilder":
        self._settings["project_id"] = project_id
        return self

    def service(self, service: str, version: Optional[str] = None) -> "TracerBuilder":
        self._settings["service"] = service
        if version is not None:
            self._settings["version"] = version
        return self

    def version(self, version: str) -> "TracerBuilder":
        self._settings["version"] = version
        return self

    def log_name(self, log_name: str) -> "TracerBuilder":
        self._settings["log_name"] = log_name
        return self

    def sample_rate(self, sample_rate: float) -> "TracerBuilder":
        self._settings["sample_rate"] = sample_rate
        return self

    def pool_size(self, pool_size: int) -> "TracerBuilder":
        self._settings["pool_size"] = pool_size
        return self

    def set_baggage_item(self, key: str, value: str) -> "TracerBuilder":
        """Add a baggage item every root span starts with."""
        self._baggage[key] = str(value)
        return self

    def logger(self, target: Any) -> "TracerBuilder":
        """
        Add a log sink. Several sinks are combined into a ``MultiLogger``.

        Args:
            target: A ``Logger``, a ``logging.Logger`` or a callable taking a ``LogEntry``
        """
        self._loggers.append(as_logger(target))
        return self

    def logger_func(self, func: Callable[[LogEntry], Any]) -> "TracerBuilder":
        self._loggers.append(LoggerFunc(func))
        return self

    def error_reporter(self, reporter: ErrorReporter) -> "TracerBuilder":
        self._error_reporter = reporter
        return self

    def trace_backend(self, backend: TraceBackend) -> "TracerBuilder":
        self._trace_backend = backend
        return self

    def span_pool(self, pool: SpanPool) -> "TracerBuilder":
        self._span_pool = pool
        return self

    def scope_manager(self, scope_manager: opentracing.ScopeManager) -> "TracerBuilder":
        self._scope_manager = scope_manager
        return self

    def with_cloud_logging(self, client: Optional[Any] = None) -> "TracerBuilder":
        """Send span log entries to Cloud Logging."""
        self._cloud_logging = {"client": client}
        return self

    def with_cloud_trace(self, client: Optional[Any] = None,
                         sample_rate: Optional[float] = None) -> "TracerBuilder":
        """Export sampled spans to Cloud Trace."""
        if sample_rate is not None:
            self._settings["sample_rate"] = sample_rate
        self._cloud_trace = {"client": client}
        return self

    def with_error_reporting(self, client: Optional[Any] = None) -> "TracerBuilder":
        """Report logged errors to Error Reporting."""
        self._error_reporting = {"client": client}
        return self

    def build(self) -> Tracer:
        """
        Build the tracer.

        Returns:
            The configured tracer

        Raises:
            ConfigurationError: If the settings are invalid or conflict
            ImportError: If a requested Google Cloud SDK is not installed
        """
        config = TracerConfig(baggage=dict(self._baggage), **self._settings)

        if self._trace_backend is not None and self._cloud_trace is not None:
            raise ConfigurationError("trace_backend and with_cloud_trace are mutually exclusive")
        if self._error_reporter is not None and self._error_reporting is not None:
            raise ConfigurationError("error_reporter and with_error_reporting are mutually exclusive")

        loggers = list(self._loggers)
        if self._cloud_logging is not None:
            loggers.append(CloudLoggingSink(
                log_name=config.log_name,
                project_id=config.project_id,
                client=self._cloud_logging["client"],
            ))

        trace_backend = self._trace_backend
        if self._cloud_trace is not None:
            trace_backend = CloudTraceBackend(
                config.project_id,
                client=self._cloud_trace["client"],
                sample_rate=config.sample_rate,
            )

        error_reporter = self._error_reporter
        if self._error_reporting is not None:
            error_reporter = CloudErrorReporter(
                project_id=config.project_id,
                service=config.service,
                version=config.version,
                client=self._error_reporting["client"],
            )

        log_sink: Optional[Logger] = None
        if len(loggers) == 1:
            log_sink = loggers[0]
        elif loggers:
            log_sink = MultiLogger(*loggers)

        logger.debug(
            f"Building tracer: {len(loggers)} log sinks, "
            f"trace backend={type(trace_backend).__name__ if trace_backend else None}, "
            f"error reporter={type(error_reporter).__name__ if error_reporter else None}"
        )
        return Tracer(
            config=config,
            log_sink=log_sink,
            error_reporter=error_reporter,
            trace_backend=trace_backend,
            span_pool=self._span_pool,
            scope_manager=self._scope_manager,
        )


def new_builder(config: Optional[TracerConfig] = None) -> TracerBuilder:
    """Start building a tracer."""
    return TracerBuilder(config)
