"""
OpenTracing tracer emitting to Cloud Trace, Cloud Logging and Error Reporting.
"""

from typing import Any, Dict, List, Mapping, Optional, Union
import logging

import opentracing
from opentracing import Format, ReferenceType, UnsupportedFormatException
from opentracing.scope_managers import ThreadLocalScopeManager

from .backends.interfaces import ErrorReporter, Logger, TraceBackend, TraceHandle
from .backends.utils import new_span_id, new_trace_id, utc_from_timestamp
from .config import TracerConfig
from .context import ErrorLatch, SpanContext
from .loggers import as_logger
from .models import LogEntry
from .propagation import TextMapPropagator
from .span import Span
from .span_pool import SpanPool


class Tracer(opentracing.Tracer):
    """
    Creates spans and routes their data to the configured collaborators.

    Every collaborator is optional: without a trace backend every span is
    written to the log sink on finish; without a log sink nothing is logged;
    without an error reporter errors only appear in the logs.
    """

    def __init__(self, config: Optional[TracerConfig] = None,
                 log_sink: Optional[Logger] = None,
                 error_reporter: Optional[ErrorReporter] = None,
                 trace_backend: Optional[TraceBackend] = None,
                 span_pool: Optional[SpanPool] = None,
                 scope_manager: Optional[opentracing.ScopeManager] = None):
        """
        Initialize the tracer.

        Args:
            config: Tracer configuration; defaults apply when omitted
            log_sink: Structured log sink (a ``Logger``, stdlib logger or callable)
            error_reporter: Error reporting collaborator
            trace_backend: Trace collection backend
            span_pool: Pool to recycle spans through; one is created when omitted
            scope_manager: Scope manager; ``ThreadLocalScopeManager`` when omitted
        """
        super().__init__(scope_manager=scope_manager or ThreadLocalScopeManager())
        self.config = config or TracerConfig()
        self.log_sink = as_logger(log_sink) if log_sink is not None else None
        self.error_reporter = error_reporter
        self.trace_backend = trace_backend
        self.span_pool = span_pool or SpanPool(Span, self.config.pool_size)
        self.logger = logging.getLogger(self.__class__.__name__)
        self._propagators = {
            Format.TEXT_MAP: TextMapPropagator(),
            Format.HTTP_HEADERS: TextMapPropagator(url_encoding=True),
        }

    def start_active_span(self, operation_name: str, child_of=None, references=None,
                          tags: Optional[Mapping[str, Any]] = None,
                          start_time: Optional[float] = None,
                          ignore_active_span: bool = False,
                          finish_on_close: bool = True) -> opentracing.Scope:
        span = self.start_span(
            operation_name=operation_name,
            child_of=child_of,
            references=references,
            tags=tags,
            start_time=start_time,
            ignore_active_span=ignore_active_span,
        )
        return self.scope_manager.activate(span, finish_on_close)

    def start_span(self, operation_name: Optional[str] = None, child_of=None, references=None,
                   tags: Optional[Mapping[str, Any]] = None,
                   start_time: Optional[float] = None,
                   ignore_active_span: bool = False) -> Span:
        """
        Start a new span.

        Args:
            operation_name: Name of the operation
            child_of: Parent ``Span`` or ``SpanContext``
            references: List of ``opentracing.Reference``; CHILD_OF wins over FOLLOWS_FROM
            tags: Initial tags
            start_time: Explicit start time in epoch seconds
            ignore_active_span: Do not use the active span as implicit parent

        Returns:
            The started span
        """
        operation_name = operation_name or ""
        parent = self._parent_context(child_of, references, ignore_active_span)
        span_id = new_span_id()

        if parent is not None:
            trace_id = parent.trace_id
            parent_span_id = parent.span_id or None
            baggage = parent.baggage
            error_latch = parent.error_latch
            sampled = parent.sampled
        else:
            trace_id = new_trace_id()
            parent_span_id = None
            baggage = self.config.baggage
            error_latch = ErrorLatch()
            sampled = None

        handle = self._start_handle(operation_name, trace_id, span_id, parent_span_id, sampled)

        span = self.span_pool.acquire()
        span.start(
            self,
            operation_name,
            trace_id,
            span_id,
            parent_span_id=parent_span_id,
            baggage=baggage,
            error_latch=error_latch,
            sampled=sampled,
            handle=handle,
            start_time=start_time,
        )
        for key, value in (tags or {}).items():
            span.set_tag(key, value)

        self.logger.debug(f"Started span '{operation_name}' ({trace_id}/{span_id})")
        return span

    def inject(self, span_context, format: str, carrier: Any) -> None:
        """
        Inject a span context into a carrier.

        Raises:
            UnsupportedFormatException: If ``format`` is not TEXT_MAP or HTTP_HEADERS
        """
        propagator = self._propagators.get(format)
        if propagator is None:
            raise UnsupportedFormatException(format)
        if isinstance(span_context, Span):
            span_context = span_context.context
        propagator.inject(span_context, carrier)

    def extract(self, format: str, carrier: Any) -> Optional[SpanContext]:
        """
        Extract a span context from a carrier.

        Returns:
            The context, or None when the carrier does not hold one

        Raises:
            UnsupportedFormatException: If ``format`` is not TEXT_MAP or HTTP_HEADERS
            SpanContextCorruptedException: If the carrier holds a malformed context
        """
        propagator = self._propagators.get(format)
        if propagator is None:
            raise UnsupportedFormatException(format)
        return propagator.extract(carrier)

    def report_error(self, error: BaseException, error_latch: Optional[ErrorLatch] = None) -> bool:
        """
        Forward an error to the error reporter, at most once per lineage.

        Args:
            error: The exception to report
            error_latch: Latch of the reporting span's lineage

        Returns:
            True if the error was handed to the reporter
        """
        if self.error_reporter is None:
            return False
        if error_latch is not None and not error_latch.acquire_once():
            self.logger.debug(f"Error already reported for this trace, skipping: {error}")
            return False

        try:
            self.error_reporter.report(error)
        except Exception as e:
            self.logger.error(f"Failed to report error '{error}': {e}")
            return False
        return True

    def log(self, payload: Mapping[str, Any], trace_id: Optional[str] = None,
            baggage: Optional[Mapping[str, str]] = None,
            tags: Optional[Mapping[str, str]] = None,
            severity: str = "INFO",
            timestamp: Optional[float] = None) -> None:
        """
        Write a structured record to the log sink.

        Labels are the baggage overlaid with the tags.
        """
        if self.log_sink is None:
            return

        labels: Dict[str, str] = {}
        for source in (baggage or {}, tags or {}):
            labels.update((str(key), str(value)) for key, value in source.items())

        try:
            entry = LogEntry(
                payload=dict(payload),
                labels=labels,
                trace_id=trace_id,
                severity=severity,
                timestamp=utc_from_timestamp(timestamp),
            )
            self.log_sink.log(entry)
        except Exception as e:
            self.logger.error(f"Failed to write log entry for trace '{trace_id}': {e}")

    def release(self, span: Span) -> None:
        """Return a finished span to the pool."""
        self.span_pool.release(span)

    def close(self) -> None:
        """Flush and close the log sink and trace backend."""
        for collaborator in (self.log_sink, self.trace_backend):
            if collaborator is None:
                continue
            try:
                collaborator.close()
            except Exception as e:
                self.logger.error(f"Failed to close {collaborator!r}: {e}")

    def _parent_context(self, child_of, references: Optional[List[opentracing.Reference]],
                        ignore_active_span: bool) -> Optional[SpanContext]:
        parent: Union[Span, SpanContext, None] = child_of

        if parent is None and references:
            for reference_type in (ReferenceType.CHILD_OF, ReferenceType.FOLLOWS_FROM):
                match = next((ref for ref in references if ref.type == reference_type), None)
                if match is not None:
                    parent = match.referenced_context
                    break

        if parent is None and not ignore_active_span:
            parent = self.active_span

        if isinstance(parent, opentracing.Span):
            parent = parent.context
        if parent is None:
            return None
        if not isinstance(parent, SpanContext):
            self.logger.warning(f"Ignoring foreign span context {parent!r}")
            return None
        return parent

    def _start_handle(self, operation_name: str, trace_id: str, span_id: str,
                      parent_span_id: Optional[str], sampled: Optional[bool]) -> Optional[TraceHandle]:
        if self.trace_backend is None:
            return None
        try:
            return self.trace_backend.start_span(
                operation_name, trace_id, span_id,
                parent_span_id=parent_span_id,
                sampled=sampled,
            )
        except Exception as e:
            self.logger.error(f"Failed to start trace span '{operation_name}': {e}")
            return None
