"""
Interfaces for the external collaborators a tracer emits data to.
"""

from abc import ABC, abstractmethod
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..models import LogEntry


class TraceHandle(ABC):
    """Backend-side representation of a single span."""

    @property
    @abstractmethod
    def trace_id(self) -> str:
        """Identifier of the trace the span belongs to."""
        pass

    @property
    @abstractmethod
    def span_id(self) -> str:
        """Identifier of the span."""
        pass

    @property
    @abstractmethod
    def traced(self) -> bool:
        """
        Whether the backend sampled this span.

        Returns:
            True if the span will be exported, False otherwise
        """
        pass

    @abstractmethod
    def set_label(self, key: str, value: str) -> None:
        """
        Attach a string label to the span.

        Args:
            key: Label name
            value: Label value
        """
        pass

    @abstractmethod
    def finish(self, status_code: Optional[int] = None) -> None:
        """
        Finish the span, optionally recording an HTTP response status.

        Args:
            status_code: Response status code, or None when no response was recorded
        """
        pass


class TraceBackend(ABC):
    """Abstract interface for trace collection services."""

    @abstractmethod
    def start_span(self, name: str, trace_id: str, span_id: str,
                   parent_span_id: Optional[str] = None,
                   sampled: Optional[bool] = None) -> TraceHandle:
        """
        Create the backend representation of a new span.

        Args:
            name: Operation name
            trace_id: Trace identifier (32 hex characters)
            span_id: Span identifier (16 hex characters)
            parent_span_id: Identifier of the parent span, if any
            sampled: Upstream sampling decision, or None to let the backend decide

        Returns:
            A handle used to label and finish the span
        """
        pass

    def close(self) -> None:
        """Flush pending data and release resources."""
        pass


class Logger(ABC):
    """Structured log sink."""

    @abstractmethod
    def log(self, entry: "LogEntry") -> None:
        """
        Write a single entry.

        Args:
            entry: The structured log entry
        """
        pass

    def close(self) -> None:
        """Flush pending entries and release resources."""
        pass


class ErrorReporter(ABC):
    """Out-of-band error reporting service."""

    @abstractmethod
    def report(self, error: BaseException) -> None:
        """
        Report an error.

        Args:
            error: The exception to report
        """
        pass
