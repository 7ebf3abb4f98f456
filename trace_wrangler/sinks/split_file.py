"""
Split-file sink: three append-only NDJSON streams.

    <input>.contexts<ext>   {"code_cid": ..., "method_num": ..., "id": N}
    <input>.points<ext>     {"event": ..., "label": ..., "id": N}
    <input>.spans<ext>      {"msg": M, "ctx": N, "p": N, "c": {...}, "t": {...}}

Entries are written in discovery order. Dictionary ids start at 1, the
same numbering SQLite rowids give the relational sink, so both sinks assign
identical ids to the same input. There is no atomicity across the three
streams: a crash mid-message can leave them out of step.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Any, IO, Iterator, Sequence
import json
import logging

from trace_wrangler.errors import SinkError, UniquenessViolation
from trace_wrangler.model import Context, NormalizedSpan, Point
from trace_wrangler.sinks.base import Sink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitFilePaths:
    """Locations of the three output streams."""
    contexts: Path
    points: Path
    spans: Path

    def all(self) -> tuple[Path, Path, Path]:
        return (self.contexts, self.points, self.spans)


def derive_output_paths(input_path: Path | str) -> SplitFilePaths:
    """
    Place the outputs next to the input file.

    ``traces.ndjson`` becomes ``traces.ndjson.contexts.ndjson`` and so on.
    """
    input_path = Path(input_path)
    name, ext = input_path.name, input_path.suffix
    return SplitFilePaths(
        contexts=input_path.with_name(f"{name}.contexts{ext}"),
        points=input_path.with_name(f"{name}.points{ext}"),
        spans=input_path.with_name(f"{name}.spans{ext}"),
    )


class SplitFileSink(Sink):
    """
    NDJSON sink.

    Args:
        paths: Output stream locations
        append: Keep existing files, preload their dictionaries and append.
            When False (default) the files are truncated.
    """

    name = "split-file"

    def __init__(self, paths: SplitFilePaths, append: bool = False):
        self.paths = paths
        self.append = append
        self._files: dict[str, IO[str]] = {}
        self._contexts: dict[Context, int] = {}
        self._points: dict[Point, int] = {}
        self._max_ids = {"contexts": 0, "points": 0}

    def ensure_schema(self) -> None:
        """Open (or create) the three streams."""
        if self._files:
            return
        mode = "a" if self.append else "w"
        try:
            for kind, path in (
                ("contexts", self.paths.contexts),
                ("points", self.paths.points),
                ("spans", self.paths.spans),
            ):
                self._files[kind] = open(path, mode, encoding="utf-8")
        except OSError as e:
            self.close()
            raise SinkError(f"cannot open output: {e}") from e
        logger.debug("Writing %s", ", ".join(str(p) for p in self.paths.all()))

    def load_contexts(self) -> list[tuple[Context, int]]:
        entries = [
            (Context(code_cid=row.get("code_cid", ""), method_num=row.get("method_num", 0)), row["id"])
            for row in self._read_dictionary(self.paths.contexts)
        ]
        self._remember("contexts", self._contexts, entries)
        return entries

    def load_points(self) -> list[tuple[Point, int]]:
        entries = [
            (Point(event=row.get("event", ""), label=row.get("label", "")), row["id"])
            for row in self._read_dictionary(self.paths.points)
        ]
        self._remember("points", self._points, entries)
        return entries

    def insert_context(self, context: Context) -> int:
        if context in self._contexts:
            raise UniquenessViolation("contexts", context)
        id_ = self._max_ids["contexts"] + 1
        self._write("contexts", {**context.to_json(), "id": id_})
        self._remember("contexts", self._contexts, [(context, id_)])
        return id_

    def insert_point(self, point: Point) -> int:
        if point in self._points:
            raise UniquenessViolation("points", point)
        id_ = self._max_ids["points"] + 1
        self._write("points", {**point.to_json(), "id": id_})
        self._remember("points", self._points, [(point, id_)])
        return id_

    def append_facts(self, message_id: int, spans: Sequence[NormalizedSpan]) -> None:
        for span in spans:
            self._write("spans", {
                "msg": message_id,
                "ctx": span.context_id,
                "p": span.point_id,
                "c": span.consumption.to_json(),
                "t": span.timing.to_json(),
            })

    @contextmanager
    def unit_of_work(self) -> Iterator["SplitFileSink"]:
        """Flush all streams once the message is written."""
        yield self
        try:
            for f in self._files.values():
                f.flush()
        except OSError as e:
            raise SinkError(f"flush failed: {e}") from e

    def close(self) -> None:
        for f in self._files.values():
            f.close()
        self._files.clear()

    def _write(self, kind: str, record: dict[str, Any]) -> None:
        f = self._files.get(kind)
        if f is None:
            raise SinkError(f"{kind} stream is not open; call ensure_schema() first")
        try:
            f.write(json.dumps(record, separators=(",", ":")) + "\n")
        except OSError as e:
            raise SinkError(f"writing {kind} failed: {e}") from e

    def _read_dictionary(self, path: Path) -> list[dict[str, Any]]:
        if not self.append or not path.exists():
            return []
        rows = []
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        row = json.loads(line)
                    except json.JSONDecodeError as e:
                        raise SinkError(f"{path}:{line_num}: corrupt dictionary entry: {e}") from e
                    if not isinstance(row, dict) or "id" not in row:
                        raise SinkError(f"{path}:{line_num}: dictionary entry without id")
                    rows.append(row)
        except OSError as e:
            raise SinkError(f"cannot read {path}: {e}") from e
        return rows

    def _remember(self, kind: str, seen: dict, entries: list[tuple[Any, int]]) -> None:
        for key, id_ in entries:
            seen[key] = id_
            self._max_ids[kind] = max(self._max_ids[kind], id_)
