"""Sinks module: relational (SQLite) and split-file (NDJSON) destinations."""

from pathlib import Path
from typing import Optional

from trace_wrangler.config import WranglerConfig
from trace_wrangler.sinks.base import Sink
from trace_wrangler.sinks.relational import RelationalSink
from trace_wrangler.sinks.split_file import SplitFileSink, SplitFilePaths, derive_output_paths

SINK_KINDS = ("relational", "split-file")


def open_sink(
    kind: str,
    target: Path | str,
    config: Optional[WranglerConfig] = None,
    append: bool = False,
) -> Sink:
    """
    Build a sink by name.

    Args:
        kind: "relational" (target is the database path) or "split-file"
            (target is the input path the outputs are derived from)
        config: Settings for the relational sink
        append: Split-file only: extend existing outputs instead of truncating
    """
    if kind == "relational":
        return RelationalSink(target, config)
    if kind == "split-file":
        return SplitFileSink(derive_output_paths(target), append=append)
    raise ValueError(f"Unknown sink kind {kind!r}; expected one of {SINK_KINDS}")


__all__ = [
    "Sink",
    "RelationalSink",
    "SplitFileSink",
    "SplitFilePaths",
    "derive_output_paths",
    "open_sink",
    "SINK_KINDS",
]
