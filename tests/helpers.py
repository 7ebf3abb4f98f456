"""Helpers for building trace files and inspecting sink output."""

from pathlib import Path
import json

from sqlalchemy import create_engine, text

FIXTURES_DIR = Path(__file__).parent / "fixtures"

EXAMPLE_LINE = (
    '[{"context":{"code_cid":"baeaaaaa","method_num":0},'
    '"point":{"event":"Started","label":""},'
    '"consumption":{},'
    '"timing":{"elapsed_cum_ns":60,"elapsed_rel_ns":60}}]'
)


def span(code_cid="baeaaaaa", method_num=0, event="Started", label="",
         fuel=None, gas=None, cum=0, rel=0) -> dict:
    """Build one wire-format span dict."""
    consumption = {}
    if fuel is not None:
        consumption["fuel_consumed"] = fuel
    if gas is not None:
        consumption["gas_consumed"] = gas
    return {
        "context": {"code_cid": code_cid, "method_num": method_num},
        "point": {"event": event, "label": label},
        "consumption": consumption,
        "timing": {"elapsed_cum_ns": cum, "elapsed_rel_ns": rel},
    }


def write_trace_file(path: Path, messages: list) -> Path:
    """Write messages (lists of span dicts, or raw strings) as NDJSON."""
    lines = [m if isinstance(m, str) else json.dumps(m) for m in messages]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def fetch_rows(db_path: Path, sql: str) -> list[tuple]:
    """Read rows straight from a SQLite file, bypassing the sink."""
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        with engine.connect() as conn:
            return [tuple(r) for r in conn.execute(text(sql))]
    finally:
        engine.dispose()


def read_ndjson(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]
