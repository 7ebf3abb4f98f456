"""Ingest module: Decode NDJSON span lines."""

from trace_wrangler.ingest.span_decoder import decode_line, iter_messages

__all__ = [
    "decode_line",
    "iter_messages",
]
