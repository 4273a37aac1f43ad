"""
Cloud Logging sink for span log entries.
"""

from typing import Optional, Any
import logging

from .interfaces import Logger
from .utils import trace_resource_name
from ..models import LogEntry
from ..tags import TAG_GOOGLE_TRACE_ID

try:
    from google.cloud import logging as cloud_logging
    CLOUD_LOGGING_AVAILABLE = True
except ImportError:
    CLOUD_LOGGING_AVAILABLE = False


class CloudLoggingSink(Logger):
    """
    Writes span log entries to Google Cloud Logging as structured entries.

    Entries carry their trace as ``projects/<project>/traces/<trace_id>`` so
    the Logs Explorer shows them next to the trace.
    """

    def __init__(self, log_name: str = "opentracing", project_id: Optional[str] = None,
                 client: Optional[Any] = None):
        """
        Initialize the Cloud Logging sink.

        Args:
            log_name: Name of the log entries are written to
            project_id: Google Cloud project; the client's default when omitted
            client: ``google.cloud.logging.Client``; created when omitted
        """
        if client is None and not CLOUD_LOGGING_AVAILABLE:
            raise ImportError(
                "Cloud Logging SDK not available. Install with: pip install google-cloud-logging"
            )

        self.logger = logging.getLogger(self.__class__.__name__)
        self.client = client if client is not None else cloud_logging.Client(project=project_id)
        self.project_id = project_id or getattr(self.client, "project", None)
        self.log_name = log_name
        self.cloud_logger = self.client.logger(log_name)

    def log(self, entry: LogEntry) -> None:
        labels = dict(entry.labels)
        kwargs = {
            "severity": entry.severity,
            "timestamp": entry.timestamp,
        }
        if entry.trace_id:
            labels[TAG_GOOGLE_TRACE_ID] = entry.trace_id
            kwargs["trace"] = trace_resource_name(self.project_id, entry.trace_id)
        if labels:
            kwargs["labels"] = labels

        self.cloud_logger.log_struct(dict(entry.payload), **kwargs)

    def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            close()
