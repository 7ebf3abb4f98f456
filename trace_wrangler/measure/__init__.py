"""Measure module: Aggregate statistics over normalized traces."""

from trace_wrangler.measure.trace_stats import TraceStats, format_stats_table

__all__ = [
    "TraceStats",
    "format_stats_table",
]
