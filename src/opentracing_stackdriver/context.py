"""
Span context and the per-lineage error latch.
"""

from typing import Dict, Iterator, Mapping, Optional, Tuple
from types import MappingProxyType
import threading

import opentracing


class ErrorLatch:
    """
    Thread-safe at-most-once flag shared by every span of a trace lineage.

    The root span of a trace creates the latch; descendants receive the same
    object through their parent's ``SpanContext``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._set = False

    @property
    def is_set(self) -> bool:
        return self._set

    def acquire_once(self) -> bool:
        """
        Set the latch.

        Returns:
            True for the first caller only, False afterwards
        """
        with self._lock:
            if self._set:
                return False
            self._set = True
            return True


class SpanContext(opentracing.SpanContext):
    """
    Immutable snapshot of the propagated state of a span.

    Pooled spans are reused once finished, so ``Span.context`` hands out these
    snapshots rather than the span itself.
    """

    __slots__ = ("_trace_id", "_span_id", "_sampled", "_baggage", "_error_latch")

    def __init__(self, trace_id: str, span_id: str, sampled: Optional[bool] = None,
                 baggage: Optional[Mapping[str, str]] = None,
                 error_latch: Optional[ErrorLatch] = None):
        self._trace_id = trace_id
        self._span_id = span_id
        self._sampled = sampled
        self._baggage = MappingProxyType(dict(baggage or {}))
        self._error_latch = error_latch if error_latch is not None else ErrorLatch()

    @property
    def trace_id(self) -> str:
        return self._trace_id

    @property
    def span_id(self) -> str:
        return self._span_id

    @property
    def sampled(self) -> Optional[bool]:
        """Upstream sampling decision, or None to let the backend decide."""
        return self._sampled

    @property
    def baggage(self) -> Mapping[str, str]:
        return self._baggage

    @property
    def error_latch(self) -> ErrorLatch:
        return self._error_latch

    def foreach_baggage_item(self, handler) -> None:
        """Call ``handler(key, value)`` per baggage item until it returns False."""
        for key, value in self._baggage.items():
            if handler(key, value) is False:
                return

    def iter_baggage(self) -> Iterator[Tuple[str, str]]:
        return iter(self._baggage.items())

    def with_baggage_item(self, key: str, value: str) -> "SpanContext":
        """Return a copy of this context with one more baggage item."""
        baggage: Dict[str, str] = dict(self._baggage)
        baggage[key] = value
        return SpanContext(self._trace_id, self._span_id, self._sampled, baggage, self._error_latch)

    def __repr__(self) -> str:
        return (
            f"SpanContext(trace_id={self._trace_id!r}, span_id={self._span_id!r}, "
            f"sampled={self._sampled!r}, baggage={dict(self._baggage)!r})"
        )
