"""
OpenTracing span backed by Cloud Trace and Cloud Logging.

A span is created by the ``Tracer`` from its ``SpanPool``, mutated by a single
owner while active, finished exactly once and then handed back to the pool.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union, TYPE_CHECKING
from types import MappingProxyType
import logging
import time
import warnings

import opentracing

from .backends.interfaces import TraceHandle
from .backends.utils import elapsed_ms
from .context import ErrorLatch, SpanContext
from .models import LogField
from .tags import TAG_HTTP_STATUS_CODE, TagKind, TagValue, is_displayable

if TYPE_CHECKING:
    from .tracer import Tracer

logger = logging.getLogger(__name__)

_JSON_TYPES = (str, bool, int, float, dict, list, tuple)

LogRecord = Union[Mapping[str, Any], Tuple[Optional[float], Mapping[str, Any]]]


class Span(opentracing.Span):
    """
    A unit of tracing work.

    Tags and baggage are stored as strings and mirrored as labels on the
    backend handle when the span has one. Spans that the backend did not
    sample (or every span, when no backend is configured) are written to the
    tracer's log sink on ``finish``.

    With the exception of ``context``, no method may be called after
    ``finish``.
    """

    def __init__(self, tracer: Optional["Tracer"] = None):
        super().__init__(tracer=tracer, context=None)
        self._tags: Dict[str, str] = {}
        self._baggage: Dict[str, str] = {}
        self._final_context: Optional[SpanContext] = None
        self.reset()

    def reset(self) -> None:
        """Clear all per-span state before the span goes back to the pool."""
        self._tags.clear()
        self._baggage.clear()
        self._tracer = None
        self._handle: Optional[TraceHandle] = None
        self._error_latch: Optional[ErrorLatch] = None
        self._trace_id = ""
        self._span_id = ""
        self._parent_span_id: Optional[str] = None
        self._upstream_sampled: Optional[bool] = None
        self.operation_name = ""
        self.status_code: Optional[int] = None
        self.start_time = 0.0
        self.started_at = 0.0
        self._finished = True

    def start(self, tracer: "Tracer", operation_name: str, trace_id: str, span_id: str,
              parent_span_id: Optional[str] = None,
              baggage: Optional[Mapping[str, str]] = None,
              error_latch: Optional[ErrorLatch] = None,
              sampled: Optional[bool] = None,
              handle: Optional[TraceHandle] = None,
              start_time: Optional[float] = None) -> "Span":
        """
        Bring a pooled span to life. Called by the tracer only.

        Args:
            tracer: Tracer owning the span
            operation_name: Name of the operation
            trace_id: Trace identifier
            span_id: Span identifier
            parent_span_id: Parent span identifier, None for a root span
            baggage: Initial baggage (copied)
            error_latch: Lineage latch; a new one is created for root spans
            sampled: Upstream sampling decision
            handle: Backend handle, None when no trace backend is configured
            start_time: Explicit start time in epoch seconds

        Returns:
            The span itself
        """
        self._final_context = None
        self._finished = False
        self._tracer = tracer
        self.operation_name = operation_name
        self._trace_id = trace_id
        self._span_id = span_id
        self._parent_span_id = parent_span_id
        self._baggage.update((key, str(value)) for key, value in (baggage or {}).items())
        self._error_latch = error_latch if error_latch is not None else ErrorLatch()
        self._upstream_sampled = sampled
        self._handle = handle

        now = time.time()
        self.start_time = start_time if start_time is not None else now
        # monotonic origin shifted back by however far the explicit start lies in the past
        self.started_at = time.monotonic() - max(0.0, now - self.start_time)

        if handle is not None:
            for key, value in self._baggage.items():
                self._label(key, value)
        return self

    @property
    def trace_id(self) -> str:
        return self._trace_id

    @property
    def span_id(self) -> str:
        return self._span_id

    @property
    def parent_span_id(self) -> Optional[str]:
        return self._parent_span_id

    @property
    def sampled(self) -> bool:
        """Whether the span is exported to the trace backend."""
        return self._handle is not None and self._handle.traced

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def tags(self) -> Mapping[str, str]:
        return MappingProxyType(self._tags)

    @property
    def baggage(self) -> Mapping[str, str]:
        return MappingProxyType(self._baggage)

    @property
    def context(self) -> SpanContext:
        """
        Snapshot of the propagated state of this span.

        Still valid after ``finish``: the last snapshot is frozen when the span
        finishes and stays available until the object is reused. Once the
        tracer hands the pooled object out again, this property describes the
        new span; keep the returned ``SpanContext`` rather than the span to
        refer to a finished one.
        """
        if self._final_context is not None:
            return self._final_context
        sampled = self._handle.traced if self._handle is not None else self._upstream_sampled
        return SpanContext(self._trace_id, self._span_id, sampled, self._baggage, self._error_latch)

    def set_operation_name(self, operation_name: str) -> "Span":
        logger.warning(
            f"Stackdriver spans do not support set_operation_name; "
            f"keeping '{self.operation_name}' instead of '{operation_name}'"
        )
        return self

    def set_tag(self, key: str, value: Any) -> "Span":
        """
        Add a tag to the span, overwriting any previous value for ``key``.

        Values of any type are accepted and rendered to strings (see
        ``TagValue``). HTTP responses record their status code under
        ``http.status_code``; HTTP requests and ``None`` are ignored.
        """
        if self._closed("set_tag"):
            return self
        try:
            tag = TagValue.of(value, key)
        except Exception as e:
            logger.warning(f"Could not classify value for tag '{key}': {e}")
            tag = TagValue(TagKind.OTHER, f"<{type(value).__name__} object>")

        if tag is None or not tag.storable:
            return self

        if tag.kind is TagKind.RESPONSE:
            key = TAG_HTTP_STATUS_CODE
        if tag.status_code is not None:
            self.status_code = tag.status_code

        self._tags[key] = tag.text
        self._label(key, tag.text)
        return self

    def set_baggage_item(self, key: str, value: str) -> "Span":
        """
        Set a baggage item that propagates to future descendants of this span.

        Every item is copied into every local and remote child, so keep
        baggage small.
        """
        if self._closed("set_baggage_item"):
            return self
        value = str(value)
        self._baggage[key] = value
        self._label(key, value)
        return self

    def get_baggage_item(self, key: str) -> Optional[str]:
        return self._baggage.get(key)

    def foreach_baggage_item(self, handler: Callable[[str, str], Any]) -> None:
        """Call ``handler(key, value)`` per baggage item until it returns False."""
        for key, value in list(self._baggage.items()):
            if handler(key, value) is False:
                return

    def log_fields(self, *fields: Union[LogField, Tuple[str, Any]],
                   timestamp: Optional[float] = None) -> "Span":
        """
        Log typed key/value fields against the span.

        Example:
            span.log_fields(
                LogField.event("soft error"),
                LogField.string("type", "cache timeout"),
                LogField.integer("waited.millis", 1500))

        Exceptions are rendered as their message and forwarded to the error
        reporter, at most once per trace lineage.
        """
        if self._closed("log_fields"):
            return self
        pairs = []
        for field in fields:
            if isinstance(field, LogField):
                pairs.append((field.key, field.value))
            elif isinstance(field, tuple) and len(field) == 2:
                key, value = field
                pairs.append((str(key), value))
            else:
                logger.warning(f"Ignoring log field {field!r}: expected a LogField or a (key, value) pair")
        self._log_pairs(pairs, timestamp)
        return self

    def log_kv(self, key_values: Union[Mapping[str, Any], Iterable[Any]],
               timestamp: Optional[float] = None) -> "Span":
        """
        Log key/value data against the span.

        Accepts either a mapping, or an alternating sequence
        ``[key1, value1, key2, value2, ...]``:

            span.log_kv({"event": "soft error", "waited.millis": 1500})
            span.log_kv(["event", "soft error", "waited.millis", 1500])
        """
        if self._closed("log_kv"):
            return self
        self._log_pairs(decode_key_values(key_values), timestamp)
        return self

    def finish(self, finish_time: Optional[float] = None) -> None:
        """
        Set the end timestamp and finalize the span.

        With the exception of ``context``, ``finish`` must be the last call
        made to a span; the object is recycled afterwards.
        """
        self.finish_with_options(finish_time=finish_time)

    def finish_with_options(self, finish_time: Optional[float] = None,
                            log_records: Optional[Iterable[LogRecord]] = None) -> None:
        """
        Like ``finish`` but with explicit control over timestamps and log data.

        Args:
            finish_time: Explicit end time in epoch seconds
            log_records: Bulk log data, each a mapping or a ``(timestamp, mapping)`` pair
        """
        if self._finished:
            logger.warning(f"Span '{self.operation_name}' finished more than once")
            return
        self._final_context = self.context
        self._finished = True

        try:
            for record in log_records or ():
                self._log_record(record)

            if self._handle is not None:
                try:
                    if self.status_code and self.status_code > 0:
                        self._handle.finish(status_code=self.status_code)
                    else:
                        self._handle.finish()
                except Exception as e:
                    logger.error(f"Failed to finish trace span '{self.operation_name}': {e}")

            # untraced spans are still visible as a log line
            if self._handle is None or not self._handle.traced:
                content = {
                    "message": self.operation_name,
                    "elapsed": self._elapsed(finish_time),
                }
                self._emit(content, "INFO", finish_time)
        finally:
            self._tracer.release(self)

    def log_event(self, event: str, payload: Any = None) -> "Span":
        """Deprecated: use ``log_kv`` or ``log_fields``."""
        warnings.warn(
            "Span.log_event is deprecated. Use log_fields or log_kv",
            DeprecationWarning,
            stacklevel=2,
        )
        return self

    def log(self, **kwargs: Any) -> "Span":
        """Deprecated: use ``log_kv`` or ``log_fields``."""
        warnings.warn(
            "Span.log is deprecated. Use log_fields or log_kv",
            DeprecationWarning,
            stacklevel=2,
        )
        return self

    def _log_record(self, record: Any) -> None:
        if isinstance(record, Mapping):
            self._log_pairs(decode_key_values(record), None)
        elif isinstance(record, tuple) and len(record) == 2:
            record_time, key_values = record
            if record_time is not None and not isinstance(record_time, (int, float)):
                logger.warning(f"Ignoring non-numeric log record timestamp {record_time!r}")
                record_time = None
            self._log_pairs(decode_key_values(key_values), record_time)
        else:
            logger.warning(f"Ignoring log record {record!r}: expected a mapping or a (timestamp, mapping) pair")

    def _closed(self, operation: str) -> bool:
        if self._finished:
            logger.warning(f"Ignoring {operation} on a finished span")
            return True
        return False

    def _elapsed(self, finish_time: Optional[float]) -> int:
        if finish_time is not None:
            return max(0, int((finish_time - self.start_time) * 1000))
        return elapsed_ms(self.started_at, time.monotonic())

    def _label(self, key: str, value: str) -> None:
        if self._handle is None:
            return
        try:
            self._handle.set_label(key, value)
        except Exception as e:
            logger.error(f"Failed to set label '{key}' on span '{self.operation_name}': {e}")

    def _log_pairs(self, pairs: List[Tuple[str, Any]], timestamp: Optional[float]) -> None:
        content: Dict[str, Any] = {}
        severity = "INFO"
        for key, value in pairs:
            if value is None:
                continue
            if isinstance(value, BaseException):
                self._tracer.report_error(value, self._error_latch)
                content[key] = str(value)
                severity = "ERROR"
            else:
                content[key] = _payload_value(value)

        if not content:
            logger.debug(f"Nothing to log for span '{self.operation_name}'")
            return
        self._emit(content, severity, timestamp)

    def _emit(self, content: Dict[str, Any], severity: str, timestamp: Optional[float]) -> None:
        self._tracer.log(
            content,
            trace_id=self._trace_id or None,
            baggage=self._baggage,
            tags=self._tags,
            severity=severity,
            timestamp=timestamp,
        )

    def __repr__(self) -> str:
        return (
            f"Span(operation_name={self.operation_name!r}, trace_id={self._trace_id!r}, "
            f"span_id={self._span_id!r}, finished={self._finished!r})"
        )


def decode_key_values(key_values: Union[Mapping[str, Any], Iterable[Any]]) -> List[Tuple[str, Any]]:
    """
    Turn a mapping or an alternating key/value sequence into pairs.

    Anything else is logged as a warning and yields no pairs.
    """
    if isinstance(key_values, Mapping):
        return [(str(key), value) for key, value in key_values.items()]
    if isinstance(key_values, (str, bytes)) or not isinstance(key_values, Iterable):
        logger.warning(f"Ignoring log data of type {type(key_values).__name__}: expected a mapping or a list")
        return []
    return interleaved_pairs(key_values)


def interleaved_pairs(alternating: Iterable[Any]) -> List[Tuple[str, Any]]:
    """
    Decode ``[key1, value1, key2, value2, ...]`` into key/value pairs.

    A trailing key without a value is dropped with a warning; non-string keys
    are converted with ``str``.
    """
    items = list(alternating)
    if len(items) % 2:
        logger.warning(f"Dropping log key {items[-1]!r} without a value")
        items = items[:-1]
    return [(key if isinstance(key, str) else str(key), value)
            for key, value in zip(items[0::2], items[1::2])]


def _payload_value(value: Any) -> Any:
    if isinstance(value, _JSON_TYPES):
        return value
    if not is_displayable(value):
        return repr(value)
    try:
        return str(value)
    except Exception:
        return repr(value)
