"""
Typed key/value log fields accepted by ``Span.log_fields``.
"""

from typing import Any
from pydantic import BaseModel, Field


class LogField(BaseModel):
    """A single key/value pair logged against a span."""
    key: str = Field(..., description="Name of the logged value")
    value: Any = Field(None, description="Logged value of any type")

    class Config:
        """Pydantic configuration."""
        arbitrary_types_allowed = True
        frozen = True

    @classmethod
    def string(cls, key: str, value: str) -> "LogField":
        return cls(key=key, value=str(value))

    @classmethod
    def integer(cls, key: str, value: int) -> "LogField":
        return cls(key=key, value=int(value))

    @classmethod
    def number(cls, key: str, value: float) -> "LogField":
        return cls(key=key, value=float(value))

    @classmethod
    def boolean(cls, key: str, value: bool) -> "LogField":
        return cls(key=key, value=bool(value))

    @classmethod
    def error(cls, error: BaseException) -> "LogField":
        """Build the conventional ``error.object`` field for an exception."""
        return cls(key="error.object", value=error)

    @classmethod
    def event(cls, name: str) -> "LogField":
        return cls(key="event", value=name)

    @classmethod
    def message(cls, text: str) -> "LogField":
        return cls(key="message", value=text)
