"""
Span context propagation over text maps and HTTP headers.

The trace position travels in Google's ``X-Cloud-Trace-Context`` header so
that load balancers and other Google Cloud services join the same trace;
baggage travels in ``ot-baggage-*`` entries.
"""

from typing import Dict, MutableMapping, Mapping, Optional
from urllib.parse import quote, unquote
import logging

from opentracing import SpanContextCorruptedException

from .backends.utils import TRACE_CONTEXT_HEADER, format_trace_header, parse_trace_header
from .context import SpanContext

logger = logging.getLogger(__name__)

BAGGAGE_PREFIX = "ot-baggage-"


class TextMapPropagator:
    """
    Injects and extracts span contexts into string dictionaries.

    Args:
        url_encoding: URL-quote baggage values (used for HTTP headers)
    """

    def __init__(self, url_encoding: bool = False):
        self.url_encoding = url_encoding

    def inject(self, span_context: SpanContext, carrier: MutableMapping[str, str]) -> None:
        carrier[TRACE_CONTEXT_HEADER] = format_trace_header(
            span_context.trace_id, span_context.span_id, span_context.sampled
        )
        for key, value in span_context.baggage.items():
            value = str(value)
            if self.url_encoding:
                value = quote(value, safe="")
            carrier[BAGGAGE_PREFIX + key] = value

    def extract(self, carrier: Mapping[str, str]) -> Optional[SpanContext]:
        """
        Read a span context from a carrier.

        Returns:
            The extracted context, or None when the carrier holds no trace header

        Raises:
            SpanContextCorruptedException: If the trace header is malformed
        """
        header_value = None
        baggage: Dict[str, str] = {}
        header_name = TRACE_CONTEXT_HEADER.lower()

        for key, value in carrier.items():
            lowered = key.lower()
            if lowered == header_name:
                header_value = value
            elif lowered.startswith(BAGGAGE_PREFIX):
                if self.url_encoding:
                    value = unquote(value)
                baggage[lowered[len(BAGGAGE_PREFIX):]] = value

        if header_value is None:
            if baggage:
                logger.debug("Ignoring baggage without a trace context header")
            return None

        parsed = parse_trace_header(header_value)
        if parsed is None:
            raise SpanContextCorruptedException(f"malformed {TRACE_CONTEXT_HEADER}: {header_value!r}")

        trace_id, span_id, sampled = parsed
        return SpanContext(trace_id, span_id or "", sampled, baggage)
