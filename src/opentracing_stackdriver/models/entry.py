"""
Log entry model for records written to a structured log sink.
"""

from typing import Dict, Optional, Any
from datetime import datetime, timezone
from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LogEntry(BaseModel):
    """Represents a single structured log record correlated with a trace."""
    payload: Dict[str, Any] = Field(default_factory=dict, description="Free-form structured payload")
    labels: Dict[str, str] = Field(default_factory=dict, description="String labels (baggage and tags)")
    trace_id: Optional[str] = Field(None, description="Identifier of the trace this entry belongs to")
    severity: str = Field("INFO", description="Log severity (DEBUG, INFO, WARNING, ERROR)")
    timestamp: datetime = Field(default_factory=_utcnow, description="Time the entry was produced")

    class Config:
        """Pydantic configuration."""
        extra = "allow"

    @property
    def message(self) -> Optional[str]:
        """The ``message`` key of the payload, if any."""
        value = self.payload.get("message")
        return None if value is None else str(value)
