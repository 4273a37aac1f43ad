# Backends module
from .interfaces import TraceBackend, TraceHandle, Logger, ErrorReporter
from .cloud_trace import CloudTraceBackend, CloudTraceHandle
from .cloud_logging import CloudLoggingSink
from .error_reporting import CloudErrorReporter
from .utils import new_trace_id, new_span_id, format_trace_header, parse_trace_header

__all__ = [
    "TraceBackend",
    "TraceHandle",
    "Logger",
    "ErrorReporter",
    "CloudTraceBackend",
    "CloudTraceHandle",
    "CloudLoggingSink",
    "CloudErrorReporter",
    "new_trace_id",
    "new_span_id",
    "format_trace_header",
    "parse_trace_header",
]
