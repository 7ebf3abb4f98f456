"""
Trace statistics: Aggregate gas, fuel and time over a loaded store.

Joins the traces fact table back to its dictionaries and groups by
instrumentation point or by code context. Absent gas/fuel values stay
missing (NaN) and are skipped by the aggregates rather than counted as 0.
"""

from typing import Optional

import pandas as pd
from rich.table import Table
from sqlalchemy.orm import Session as DBSession

from trace_wrangler.db.schema import ContextRecord, PointRecord, TraceRecord

FRAME_COLUMNS = [
    "message_id",
    "code_cid",
    "method_num",
    "event",
    "label",
    "elapsed_rel_ns",
    "elapsed_cum_ns",
    "fuel_consumed",
    "gas_consumed",
]

GROUPINGS = {
    "point": ["event", "label"],
    "context": ["code_cid", "method_num"],
}


class TraceStats:
    """
    Read-only aggregate queries over a relational store.
    """

    def __init__(self, db: DBSession):
        self.db = db

    def load_frame(self, limit: Optional[int] = None) -> pd.DataFrame:
        """
        Load fact rows joined with their context and point.

        Args:
            limit: Optional cap on the number of fact rows (in trace_id order)
        """
        query = (
            self.db.query(
                TraceRecord.message_id,
                ContextRecord.code_cid,
                ContextRecord.method_num,
                PointRecord.event,
                PointRecord.label,
                TraceRecord.elapsed_rel_ns,
                TraceRecord.elapsed_cum_ns,
                TraceRecord.fuel_consumed,
                TraceRecord.gas_consumed,
            )
            .join(ContextRecord, TraceRecord.context_id == ContextRecord.id)
            .join(PointRecord, TraceRecord.point_id == PointRecord.id)
            .order_by(TraceRecord.trace_id)
        )
        if limit:
            query = query.limit(limit)

        rows = [tuple(row) for row in query.all()]
        df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
        # nullable integers keep "absent" distinct from 0
        for column in ("fuel_consumed", "gas_consumed"):
            index = FRAME_COLUMNS.index(column)
            df[column] = pd.array([row[index] for row in rows], dtype="Int64")
        return df

    def aggregate(self, by: str = "point") -> pd.DataFrame:
        """
        Aggregate spans grouped by point or context.

        Returns:
            DataFrame with spans, messages, total/mean gas, total fuel and
            total elapsed_rel_ns per group, sorted by total gas descending
        """
        if by not in GROUPINGS:
            raise ValueError(f"Unknown grouping {by!r}; expected one of {sorted(GROUPINGS)}")

        df = self.load_frame()
        if df.empty:
            return pd.DataFrame()

        keys = GROUPINGS[by]
        grouped = df.groupby(keys, dropna=False, sort=True)
        result = grouped.agg(
            spans=("message_id", "size"),
            messages=("message_id", "nunique"),
            gas_total=("gas_consumed", "sum"),
            gas_mean=("gas_consumed", "mean"),
            gas_reported=("gas_consumed", "count"),
            fuel_total=("fuel_consumed", "sum"),
            elapsed_rel_ns_total=("elapsed_rel_ns", "sum"),
        ).reset_index()

        return result.sort_values(
            ["gas_total", "spans"], ascending=[False, False], kind="stable"
        ).reset_index(drop=True)

    def per_point(self) -> pd.DataFrame:
        return self.aggregate("point")

    def per_context(self) -> pd.DataFrame:
        return self.aggregate("context")


def format_stats_table(df: pd.DataFrame, by: str = "point", limit: int = 20) -> Table:
    """Render an aggregate frame as a rich table."""
    table = Table(title=f"Gas by {by}")
    for column in GROUPINGS[by]:
        table.add_column(column)
    table.add_column("Spans", justify="right")
    table.add_column("Messages", justify="right")
    table.add_column("Gas total", justify="right")
    table.add_column("Gas mean", justify="right")
    table.add_column("Fuel total", justify="right")
    table.add_column("Elapsed (ms)", justify="right")

    for _, row in df.head(limit).iterrows():
        gas_mean = "-" if pd.isna(row["gas_mean"]) else f"{row['gas_mean']:.1f}"
        table.add_row(
            *[str(row[c]) for c in GROUPINGS[by]],
            str(row["spans"]),
            str(row["messages"]),
            str(int(row["gas_total"])),
            gas_mean,
            str(int(row["fuel_total"])),
            f"{row['elapsed_rel_ns_total'] / 1e6:.3f}",
        )
    return table
