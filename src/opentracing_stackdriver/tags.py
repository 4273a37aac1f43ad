"""
Tag value normalization.

Cloud Trace labels and Cloud Logging labels are plain strings, so every value
handed to ``Span.set_tag`` is classified into a closed set of kinds and
rendered to text once, at write time.
"""

from typing import Any, Optional
from dataclasses import dataclass
from enum import Enum
from http.client import HTTPResponse
from urllib.request import Request
import numbers

from opentracing.ext import tags as ext_tags

# Reserved tag keys
TAG_HTTP_STATUS_CODE = ext_tags.HTTP_STATUS_CODE
TAG_GOOGLE_TRACE_ID = "appengine.googleapis.com/trace_id"


class TagKind(str, Enum):
    """Kinds of values a tag can hold."""
    REQUEST = "request"
    RESPONSE = "response"
    STRING = "string"
    BOOL = "bool"
    INTEGER = "integer"
    FLOAT = "float"
    ERROR = "error"
    DISPLAYABLE = "displayable"
    OTHER = "other"


@dataclass(frozen=True)
class TagValue:
    """
    A tag value after classification.

    ``text`` is the label rendering; it is ``None`` for kinds that must not be
    stored (HTTP requests, responses without a status). ``status_code`` is set
    for HTTP responses and for integers stored under ``http.status_code``.
    """
    kind: TagKind
    text: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def storable(self) -> bool:
        return self.text is not None

    @classmethod
    def of(cls, value: Any, key: Optional[str] = None) -> Optional["TagValue"]:
        """
        Classify a value.

        Args:
            value: Any value passed to ``set_tag``
            key: The tag key; integers under ``http.status_code`` carry a status

        Returns:
            The classified value, or None for ``None``
        """
        if value is None:
            return None

        if is_request_like(value):
            return cls(TagKind.REQUEST)

        status = response_status(value)
        if status is not None:
            if status == 0:
                return cls(TagKind.RESPONSE)
            return cls(TagKind.RESPONSE, str(status), status)

        if isinstance(value, str):
            return cls(TagKind.STRING, str.__str__(value))
        # bool is an Integral, so it goes first
        if isinstance(value, bool):
            return cls(TagKind.BOOL, "true" if value else "false")
        if isinstance(value, numbers.Integral):
            number = int(value)
            status_code = number if key == TAG_HTTP_STATUS_CODE else None
            return cls(TagKind.INTEGER, str(number), status_code)
        if isinstance(value, numbers.Real):
            return cls(TagKind.FLOAT, f"{float(value):.2f}")
        if isinstance(value, BaseException):
            return cls(TagKind.ERROR, str(value))
        if is_displayable(value):
            return cls(TagKind.DISPLAYABLE, _safe_str(value))
        return cls(TagKind.OTHER, _safe_repr(value))


def normalize_tag(key: str, value: Any) -> Optional[TagValue]:
    """Shorthand for ``TagValue.of(value, key)``."""
    return TagValue.of(value, key)


def is_request_like(value: Any) -> bool:
    """
    Check whether a value looks like an outgoing or incoming HTTP request.

    Covers ``urllib.request.Request`` and the request objects of requests,
    httpx and aiohttp, all of which expose ``method`` and ``url``.
    """
    if isinstance(value, Request):
        return True
    if isinstance(value, (str, bytes, numbers.Number, BaseException)):
        return False
    return (
        hasattr(value, "method")
        and hasattr(value, "url")
        and not hasattr(value, "status_code")
        and not hasattr(value, "status")
    )


def response_status(value: Any) -> Optional[int]:
    """
    Extract the status code of an HTTP-response-like value.

    Returns:
        The integer status (possibly 0), or None when the value is not a response
    """
    if isinstance(value, (str, bytes, numbers.Number, BaseException)):
        return None
    if isinstance(value, HTTPResponse):
        return int(value.status or 0)
    # requests/httpx use status_code; aiohttp and urllib3 use status
    for attribute in ("status_code", "status"):
        status = getattr(value, attribute, None)
        if isinstance(status, numbers.Integral) and not isinstance(status, bool):
            return int(status)
    return None


def is_displayable(value: Any) -> bool:
    """Check whether the value's class provides its own ``__str__``."""
    return type(value).__str__ is not object.__str__


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return _safe_repr(value)


def _safe_repr(value: Any) -> str:
    try:
        return repr(value)
    except Exception:
        return f"<{type(value).__name__} object>"
