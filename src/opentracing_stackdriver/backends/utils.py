"""
Utility functions shared by backends and propagation.
"""

from typing import Optional, Tuple
from datetime import datetime, timezone
import logging
import random
import re

logger = logging.getLogger(__name__)

TRACE_CONTEXT_HEADER = "X-Cloud-Trace-Context"

_HEADER_PATTERN = re.compile(r"^([0-9a-fA-F]{32})(?:/(\d+))?(?:;o=(\d+))?$")
_MAX_SPAN_ID = (1 << 64) - 1

_random = random.SystemRandom()


def new_trace_id() -> str:
    """Generate a 128-bit trace identifier as 32 lowercase hex characters."""
    return f"{_random.getrandbits(128):032x}"


def new_span_id() -> str:
    """Generate a non-zero 64-bit span identifier as 16 lowercase hex characters."""
    value = 0
    while value == 0:
        value = _random.getrandbits(64)
    return f"{value:016x}"


def format_trace_header(trace_id: str, span_id: str, sampled: Optional[bool]) -> str:
    """
    Format an ``X-Cloud-Trace-Context`` header value.

    Args:
        trace_id: Trace identifier in hex
        span_id: Span identifier in hex (written in decimal, omitted when empty)
        sampled: Sampling decision; None omits the options part

    Returns:
        Header value such as ``"<trace>/<span>;o=1"``
    """
    value = f"{trace_id}/{int(span_id, 16)}" if span_id else trace_id
    if sampled is not None:
        value += f";o={1 if sampled else 0}"
    return value


def parse_trace_header(value: str) -> Optional[Tuple[str, Optional[str], Optional[bool]]]:
    """
    Parse an ``X-Cloud-Trace-Context`` header value.

    Args:
        value: Raw header value

    Returns:
        (trace_id, span_id, sampled) or None if the value is malformed
    """
    match = _HEADER_PATTERN.match(value.strip())
    if not match:
        logger.warning(f"Malformed trace header '{value}'")
        return None

    trace_id, span_decimal, options = match.groups()
    span_id = None
    if span_decimal is not None:
        number = int(span_decimal)
        if number == 0 or number > _MAX_SPAN_ID:
            logger.warning(f"Span id out of range in trace header '{value}'")
            return None
        span_id = f"{number:016x}"

    sampled = None
    if options is not None:
        sampled = bool(int(options) & 1)

    return trace_id.lower(), span_id, sampled


def trace_resource_name(project_id: Optional[str], trace_id: str) -> str:
    """
    Build the fully-qualified trace name Cloud Logging uses for correlation.

    Falls back to the bare trace id when the project is unknown.
    """
    if not project_id:
        return trace_id
    return f"projects/{project_id}/traces/{trace_id}"


def utc_from_timestamp(timestamp: Optional[float]) -> datetime:
    """Convert an epoch timestamp in seconds to an aware UTC datetime (now if None)."""
    if timestamp is None:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def elapsed_ms(started: float, ended: float) -> int:
    """Elapsed whole milliseconds between two monotonic readings, never negative."""
    return max(0, int((ended - started) * 1000))
