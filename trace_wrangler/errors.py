"""
Error taxonomy for the trace normalizer.

Decode errors are local: the pipeline logs them and skips the line.
Sink errors are fatal and propagate to the top of the run.
"""


class WranglerError(Exception):
    """Base class for all trace-wrangler errors."""


class SpanDecodeError(WranglerError, ValueError):
    """A line could not be decoded into spans. Skippable."""


class DictionaryError(WranglerError):
    """The in-memory dictionary was asked to hold inconsistent entries."""


class SinkError(WranglerError):
    """Persisting to a sink failed. Fatal for the run."""


class UniquenessViolation(SinkError):
    """A dictionary key was inserted into a sink that already holds it."""

    def __init__(self, table: str, key: object):
        super().__init__(f"duplicate {table} key: {key!r}")
        self.table = table
        self.key = key
