"""
Relational sink: SQLite store through SQLAlchemy.

All inserts triggered by one message run inside one transaction. Contexts
and points get their ids from SQLite's rowid assignment; the UNIQUE
constraints on both dictionaries are the final guard against duplicates.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Iterator, Sequence
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from trace_wrangler.config import WranglerConfig
from trace_wrangler.db.schema import (
    Base,
    ContextRecord,
    PointRecord,
    TraceRecord,
    get_engine,
    get_session,
)
from trace_wrangler.errors import SinkError, UniquenessViolation
from trace_wrangler.model import Context, NormalizedSpan, Point
from trace_wrangler.sinks.base import Sink

logger = logging.getLogger(__name__)

SQLITE_INTEGER_MAX = 2**63 - 1


class RelationalSink(Sink):
    """
    SQLite-backed sink.

    Args:
        db_path: Path to the SQLite file (created if missing)
        config: Pragmas and other settings
    """

    name = "relational"

    def __init__(self, db_path: Path | str, config: Optional[WranglerConfig] = None):
        self.db_path = Path(db_path)
        self.config = config or WranglerConfig()
        try:
            self.engine = get_engine(self.db_path, self.config)
            self.session: DBSession = get_session(self.engine)
        except SQLAlchemyError as e:
            raise SinkError(f"cannot open database {self.db_path}: {e}") from e

    def ensure_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise SinkError(f"schema creation failed: {e}") from e
        logger.debug("Schema ready at %s", self.db_path)

    def load_contexts(self) -> list[tuple[Context, int]]:
        with self._read() as db:
            return [(r.to_key(), r.id) for r in db.query(ContextRecord).order_by(ContextRecord.id)]

    def load_points(self) -> list[tuple[Point, int]]:
        with self._read() as db:
            return [(r.to_key(), r.id) for r in db.query(PointRecord).order_by(PointRecord.id)]

    def insert_context(self, context: Context) -> int:
        record = ContextRecord(code_cid=context.code_cid, method_num=context.method_num)
        self._insert(record, "contexts", context)
        return record.id

    def insert_point(self, point: Point) -> int:
        record = PointRecord(event=point.event, label=point.label)
        self._insert(record, "points", point)
        return record.id

    def append_facts(self, message_id: int, spans: Sequence[NormalizedSpan]) -> None:
        for s in spans:
            for field_name in ("elapsed_rel_ns", "elapsed_cum_ns", "fuel_consumed", "gas_consumed"):
                value = getattr(s, field_name)
                if value is not None and value > SQLITE_INTEGER_MAX:
                    raise SinkError(
                        f"message {message_id}: {field_name}={value} does not fit "
                        f"a SQLite integer (max {SQLITE_INTEGER_MAX})"
                    )

        self.session.add_all(
            TraceRecord(
                message_id=message_id,
                context_id=s.context_id,
                point_id=s.point_id,
                elapsed_rel_ns=s.elapsed_rel_ns,
                elapsed_cum_ns=s.elapsed_cum_ns,
                fuel_consumed=s.fuel_consumed,
                gas_consumed=s.gas_consumed,
            )
            for s in spans
        )
        try:
            self.session.flush()
        except (SQLAlchemyError, OverflowError) as e:
            raise SinkError(f"writing traces of message {message_id} failed: {e}") from e

    @contextmanager
    def unit_of_work(self) -> Iterator["RelationalSink"]:
        """
        One transaction per message.

        Commits when the block exits cleanly; any exception rolls back
        everything the block wrote and is re-raised.
        """
        try:
            with self.session.begin():
                yield self
        except SQLAlchemyError as e:
            raise SinkError(f"transaction failed: {e}") from e

    def close(self) -> None:
        self.session.close()
        self.engine.dispose()

    def _insert(self, record: Base, table: str, key: object) -> None:
        self.session.add(record)
        try:
            self.session.flush()
        except IntegrityError as e:
            raise UniquenessViolation(table, key) from e
        except (SQLAlchemyError, OverflowError) as e:
            raise SinkError(f"insert into {table} failed: {e}") from e

    @contextmanager
    def _read(self) -> Iterator[DBSession]:
        try:
            with self.session.begin():
                yield self.session
        except SQLAlchemyError as e:
            raise SinkError(f"read from {self.db_path} failed: {e}") from e
