"""
Cloud Trace backend exporting sampled spans with the v2 API.
"""

from typing import Dict, List, Optional, Any
from datetime import datetime, timezone
import logging
import random
import threading

from .interfaces import TraceBackend, TraceHandle
from ..exceptions import ConfigurationError

try:
    from google.cloud import trace_v2
    CLOUD_TRACE_AVAILABLE = True
except ImportError:
    CLOUD_TRACE_AVAILABLE = False

STATUS_CODE_ATTRIBUTE = "/http/status_code"
DEFAULT_BATCH_SIZE = 20


class CloudTraceHandle(TraceHandle):
    """A span being recorded for Cloud Trace."""

    def __init__(self, backend: "CloudTraceBackend", name: str, trace_id: str, span_id: str,
                 parent_span_id: Optional[str], traced: bool):
        self.backend = backend
        self.name = name
        self._trace_id = trace_id
        self._span_id = span_id
        self.parent_span_id = parent_span_id
        self._traced = traced
        self.labels: Dict[str, str] = {}
        self.start_time = datetime.now(timezone.utc)
        self.finished = False

    @property
    def trace_id(self) -> str:
        return self._trace_id

    @property
    def span_id(self) -> str:
        return self._span_id

    @property
    def traced(self) -> bool:
        return self._traced

    def set_label(self, key: str, value: str) -> None:
        self.labels[key] = value

    def finish(self, status_code: Optional[int] = None) -> None:
        if self.finished:
            return
        self.finished = True
        if not self._traced:
            return
        self.backend.export(self.to_record(datetime.now(timezone.utc), status_code))

    def to_record(self, end_time: datetime, status_code: Optional[int] = None) -> Dict[str, Any]:
        """
        Build the Cloud Trace v2 span resource for this handle.

        Args:
            end_time: Time the span finished
            status_code: HTTP response status, if any

        Returns:
            Span resource as a dictionary accepted by ``batch_write_spans``
        """
        attribute_map: Dict[str, Any] = {
            key: {"string_value": {"value": value}}
            for key, value in self.labels.items()
        }
        if status_code:
            attribute_map[STATUS_CODE_ATTRIBUTE] = {"int_value": status_code}

        record: Dict[str, Any] = {
            "name": f"projects/{self.backend.project_id}/traces/{self._trace_id}/spans/{self._span_id}",
            "span_id": self._span_id,
            "display_name": {"value": self.name or "span"},
            "start_time": self.start_time,
            "end_time": end_time,
            "attributes": {"attribute_map": attribute_map},
        }
        if self.parent_span_id:
            record["parent_span_id"] = self.parent_span_id
        return record


class CloudTraceBackend(TraceBackend):
    """
    Trace backend writing finished, sampled spans to Google Cloud Trace.

    Spans are buffered and written with ``batch_write_spans`` once
    ``batch_size`` of them are pending, and on ``flush``/``close``.
    """

    def __init__(self, project_id: Optional[str], client: Optional[Any] = None,
                 sample_rate: float = 1.0, batch_size: int = DEFAULT_BATCH_SIZE):
        """
        Initialize the Cloud Trace backend.

        Args:
            project_id: Google Cloud project receiving the spans
            client: ``trace_v2.TraceServiceClient``; created when omitted
            sample_rate: Probability of sampling a root span
            batch_size: Number of spans buffered before a write
        """
        if client is None and not CLOUD_TRACE_AVAILABLE:
            raise ImportError(
                "Cloud Trace SDK not available. Install with: pip install google-cloud-trace"
            )
        if not project_id:
            raise ConfigurationError("Cloud Trace requires a project_id")
        if not 0.0 <= sample_rate <= 1.0:
            raise ConfigurationError(f"sample_rate must be between 0 and 1, got {sample_rate}")

        self.project_id = project_id
        self.sample_rate = sample_rate
        self.batch_size = max(1, batch_size)
        self.logger = logging.getLogger(self.__class__.__name__)
        self.client = client if client is not None else trace_v2.TraceServiceClient()
        self._pending: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def start_span(self, name: str, trace_id: str, span_id: str,
                   parent_span_id: Optional[str] = None,
                   sampled: Optional[bool] = None) -> CloudTraceHandle:
        traced = self.should_sample() if sampled is None else sampled
        return CloudTraceHandle(self, name, trace_id, span_id, parent_span_id, traced)

    def should_sample(self) -> bool:
        if self.sample_rate >= 1.0:
            return True
        return random.random() < self.sample_rate

    def export(self, record: Dict[str, Any]) -> None:
        with self._lock:
            self._pending.append(record)
            full = len(self._pending) >= self.batch_size
        if full:
            self.flush()

    def flush(self) -> None:
        """Write all buffered spans."""
        with self._lock:
            batch, self._pending = self._pending, []
        if not batch:
            return

        try:
            self.client.batch_write_spans(name=f"projects/{self.project_id}", spans=batch)
            self.logger.debug(f"Wrote {len(batch)} spans to Cloud Trace")
        except Exception as e:
            self.logger.error(f"Failed to write {len(batch)} spans to Cloud Trace: {e}")

    def close(self) -> None:
        self.flush()
