"""trace-wrangler: Normalize VM execution-trace spans into deduplicated dictionaries and facts."""

__version__ = "0.1.0"

from trace_wrangler.config import WranglerConfig
from trace_wrangler.dictionary import SurrogateDictionary
from trace_wrangler.errors import (
    WranglerError,
    SpanDecodeError,
    DictionaryError,
    SinkError,
    UniquenessViolation,
)
from trace_wrangler.model import (
    Context,
    Point,
    Consumption,
    Timing,
    RawSpan,
    NormalizedSpan,
)

__all__ = [
    "__version__",
    "WranglerConfig",
    "SurrogateDictionary",
    "WranglerError",
    "SpanDecodeError",
    "DictionaryError",
    "SinkError",
    "UniquenessViolation",
    "Context",
    "Point",
    "Consumption",
    "Timing",
    "RawSpan",
    "NormalizedSpan",
]
