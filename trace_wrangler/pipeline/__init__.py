"""Pipeline module: Normalize span messages into a sink."""

from trace_wrangler.pipeline.normalizer import (
    Normalizer,
    RunReport,
    SkippedLine,
    normalize_stream,
    format_run_report,
)

__all__ = [
    "Normalizer",
    "RunReport",
    "SkippedLine",
    "normalize_stream",
    "format_run_report",
]
