"""Database module: SQLite store for normalized traces."""

from trace_wrangler.db.schema import (
    Base,
    ContextRecord,
    PointRecord,
    TraceRecord,
    get_engine,
    get_session,
)

__all__ = [
    "Base",
    "ContextRecord",
    "PointRecord",
    "TraceRecord",
    "get_engine",
    "get_session",
]
