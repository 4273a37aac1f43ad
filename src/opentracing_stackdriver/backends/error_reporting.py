"""
Error Reporting collaborator.
"""

from typing import Optional, Any
import logging
import traceback

from .interfaces import ErrorReporter

try:
    from google.cloud import error_reporting
    ERROR_REPORTING_AVAILABLE = True
except ImportError:
    ERROR_REPORTING_AVAILABLE = False


def format_error(error: BaseException) -> str:
    """Render an exception together with its traceback."""
    return "".join(traceback.format_exception(type(error), error, error.__traceback__)).rstrip()


class CloudErrorReporter(ErrorReporter):
    """Reports errors to Google Cloud Error Reporting."""

    def __init__(self, project_id: Optional[str] = None, service: Optional[str] = None,
                 version: Optional[str] = None, client: Optional[Any] = None):
        """
        Initialize the reporter.

        Args:
            project_id: Google Cloud project; the client's default when omitted
            service: Service name errors are grouped under
            version: Service version
            client: ``google.cloud.error_reporting.Client``; created when omitted
        """
        if client is None and not ERROR_REPORTING_AVAILABLE:
            raise ImportError(
                "Error Reporting SDK not available. Install with: pip install google-cloud-error-reporting"
            )

        self.logger = logging.getLogger(self.__class__.__name__)
        if client is None:
            client = error_reporting.Client(project=project_id, service=service, version=version)
        self.client = client

    def report(self, error: BaseException) -> None:
        self.client.report(format_error(error))
        self.logger.debug(f"Reported {type(error).__name__} to Error Reporting")
