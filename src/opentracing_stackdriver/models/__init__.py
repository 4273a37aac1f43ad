"""
Data models exchanged with log sinks.
"""

from .entry import LogEntry
from .field import LogField

__all__ = [
    "LogEntry",
    "LogField",
]
