"""
Sink interface: where dictionaries and fact rows are persisted.

The normalizer is written once against this interface. A sink assigns
surrogate ids and is the final authority on dictionary uniqueness.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, Sequence

from trace_wrangler.model import Context, NormalizedSpan, Point


class Sink(ABC):
    """Destination for normalized contexts, points and spans."""

    name: str = "sink"

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create the contexts/points/traces structures if missing. Idempotent."""

    @abstractmethod
    def load_contexts(self) -> list[tuple[Context, int]]:
        """Return every persisted context with its id (empty for a fresh sink)."""

    @abstractmethod
    def load_points(self) -> list[tuple[Point, int]]:
        """Return every persisted point with its id (empty for a fresh sink)."""

    @abstractmethod
    def insert_context(self, context: Context) -> int:
        """Persist a new context and return its id. UniquenessViolation if known."""

    @abstractmethod
    def insert_point(self, point: Point) -> int:
        """Persist a new point and return its id. UniquenessViolation if known."""

    @abstractmethod
    def append_facts(self, message_id: int, spans: Sequence[NormalizedSpan]) -> None:
        """Persist all fact rows of one message."""

    @contextmanager
    def unit_of_work(self) -> Iterator["Sink"]:
        """Scope the writes of one message. Default: nothing to commit."""
        yield self

    def close(self) -> None:
        pass

    def __enter__(self) -> "Sink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
