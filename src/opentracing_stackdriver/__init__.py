"""
OpenTracing Stackdriver - an OpenTracing tracer for Google Cloud.

This package provides:
- An ``opentracing.Tracer`` whose spans are exported to Cloud Trace when sampled
- Structured log entries for spans that are not traced, correlated by trace id
- At-most-once error reporting per trace to Error Reporting
- Tag normalization from arbitrary Python values to string labels
- Pooling of span objects to reduce allocation churn
"""

__version__ = "0.1.0"

from .models import LogEntry, LogField
from .context import ErrorLatch, SpanContext
from .span import Span
from .span_pool import SpanPool
from .tracer import Tracer
from .builder import TracerBuilder, new_builder
from .config import TracerConfig
from .exceptions import ConfigurationError
from .loggers import LoggerFunc, MultiLogger, StdlibLogger, wrap
from .tags import TagKind, TagValue, TAG_HTTP_STATUS_CODE, TAG_GOOGLE_TRACE_ID
from .backends.interfaces import TraceBackend, TraceHandle, Logger, ErrorReporter
from .backends.cloud_trace import CloudTraceBackend
from .backends.cloud_logging import CloudLoggingSink
from .backends.error_reporting import CloudErrorReporter

__all__ = [
    "Span",
    "SpanContext",
    "SpanPool",
    "Tracer",
    "TracerBuilder",
    "TracerConfig",
    "new_builder",
    "ErrorLatch",
    "ConfigurationError",
    # Models
    "LogEntry",
    "LogField",
    # Tags
    "TagKind",
    "TagValue",
    "TAG_HTTP_STATUS_CODE",
    "TAG_GOOGLE_TRACE_ID",
    # Sinks
    "Logger",
    "LoggerFunc",
    "MultiLogger",
    "StdlibLogger",
    "wrap",
    # Backends
    "TraceBackend",
    "TraceHandle",
    "ErrorReporter",
    "CloudTraceBackend",
    "CloudLoggingSink",
    "CloudErrorReporter",
]
