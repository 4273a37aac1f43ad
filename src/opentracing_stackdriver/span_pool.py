"""
Object pool recycling finished spans.
"""

from typing import Callable, List, TYPE_CHECKING
import threading

if TYPE_CHECKING:
    from .span import Span

DEFAULT_POOL_SIZE = 1024


class SpanPool:
    """
    Thread-safe pool of reusable ``Span`` objects.

    Spans are cleared before they are stored, so an acquired span never carries
    tags or baggage of a previous logical span. Once ``max_size`` idle spans
    are held, further releases are dropped for the garbage collector.
    """

    def __init__(self, factory: Callable[[], "Span"], max_size: int = DEFAULT_POOL_SIZE):
        if max_size < 0:
            raise ValueError("max_size must not be negative")
        self.factory = factory
        self.max_size = max_size
        self._idle: List["Span"] = []
        self._lock = threading.Lock()

    def acquire(self) -> "Span":
        with self._lock:
            span = self._idle.pop() if self._idle else None
        if span is None:
            span = self.factory()
        return span

    def release(self, span: "Span") -> None:
        span.reset()
        with self._lock:
            if len(self._idle) < self.max_size:
                self._idle.append(span)

    def clear(self) -> None:
        with self._lock:
            self._idle.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._idle)
