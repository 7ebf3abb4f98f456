"""
SQLAlchemy models for the normalized trace store.

Three tables: the contexts and points dictionaries, and the traces fact
table referencing both by surrogate id.
"""

from pathlib import Path
from typing import Optional

from sqlalchemy import (
    create_engine,
    event,
    Column,
    Integer,
    Text,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    declarative_base,
    sessionmaker,
    Session as DBSession,
)
from sqlalchemy.engine import Engine

from trace_wrangler.config import WranglerConfig
from trace_wrangler.model import Context, Point

Base = declarative_base()


class ContextRecord(Base):
    """Context dictionary row: (code_cid, method_num) -> id."""
    __tablename__ = "contexts"

    id = Column(Integer, primary_key=True, nullable=False)
    code_cid = Column(Text)
    method_num = Column(Integer)

    __table_args__ = (
        UniqueConstraint("code_cid", "method_num"),
    )

    def to_key(self) -> Context:
        return Context(code_cid=self.code_cid or "", method_num=int(self.method_num or 0))


class PointRecord(Base):
    """Point dictionary row: (event, label) -> id."""
    __tablename__ = "points"

    id = Column(Integer, primary_key=True, nullable=False)
    event = Column(Text)
    label = Column(Text)

    __table_args__ = (
        UniqueConstraint("event", "label"),
    )

    def to_key(self) -> Point:
        return Point(event=self.event or "", label=self.label or "")


class TraceRecord(Base):
    """One normalized span. fuel/gas stay NULL when absent on input."""
    __tablename__ = "traces"
    __table_args__ = {"sqlite_autoincrement": True}

    trace_id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(Integer, nullable=False)
    context_id = Column(Integer, ForeignKey("contexts.id"), nullable=False)
    point_id = Column(Integer, ForeignKey("points.id"), nullable=False)
    elapsed_rel_ns = Column(Integer, nullable=False)
    elapsed_cum_ns = Column(Integer, nullable=False)
    fuel_consumed = Column(Integer, nullable=True)
    gas_consumed = Column(Integer, nullable=True)


# Database initialization functions

def get_engine(db_path: Path | str, config: Optional[WranglerConfig] = None) -> Engine:
    """Create an engine for a SQLite file with the configured pragmas."""
    config = config or WranglerConfig()
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA journal_mode={config.journal_mode}")
        cursor.execute(f"PRAGMA foreign_keys={'ON' if config.foreign_keys else 'OFF'}")
        cursor.close()

    return engine


def get_session(engine: Engine) -> DBSession:
    """Get a new database session bound to engine."""
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return Session()
