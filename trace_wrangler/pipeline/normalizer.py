"""
Normalizer: turn a stream of span messages into dictionary rows and facts.

For every input line:
1. Decode it into spans (malformed lines are logged and skipped)
2. Open a unit of work on the sink
3. Resolve each span's context and point, inserting unknown keys into the
   sink and registering the returned ids in the dictionaries
4. Append the message's fact rows
5. Commit (relational) or flush (split-file)

Surrogate ids follow first-seen order, so the same input on an empty sink
always yields the same ids and rows.
"""

from dataclasses import dataclass, field
from typing import Optional, Any, IO, Sequence
import logging

from rich.markup import escape

from trace_wrangler.config import WranglerConfig
from trace_wrangler.dictionary import SurrogateDictionary
from trace_wrangler.errors import SpanDecodeError
from trace_wrangler.ingest.span_decoder import decode_line, iter_messages
from trace_wrangler.model import Context, NormalizedSpan, Point, RawSpan
from trace_wrangler.sinks.base import Sink

logger = logging.getLogger(__name__)


@dataclass
class SkippedLine:
    """A line the decoder rejected."""
    line_number: int
    message_id: int  # ordinal the line would have received
    error: str


@dataclass
class RunReport:
    """Summary of one normalization run."""
    sink: str
    lines_read: int = 0
    messages_processed: int = 0
    blank_lines: int = 0
    spans_written: int = 0
    contexts_preloaded: int = 0
    points_preloaded: int = 0
    contexts_added: int = 0
    points_added: int = 0
    skipped: list[SkippedLine] = field(default_factory=list)

    @property
    def lines_skipped(self) -> int:
        return len(self.skipped)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sink": self.sink,
            "lines_read": self.lines_read,
            "messages_processed": self.messages_processed,
            "blank_lines": self.blank_lines,
            "lines_skipped": self.lines_skipped,
            "spans_written": self.spans_written,
            "contexts_preloaded": self.contexts_preloaded,
            "points_preloaded": self.points_preloaded,
            "contexts_added": self.contexts_added,
            "points_added": self.points_added,
            "skipped": [
                {"line": s.line_number, "message_id": s.message_id, "error": s.error}
                for s in self.skipped
            ],
        }


class Normalizer:
    """
    Drives decoding, dictionary resolution and persistence.

    Args:
        sink: Destination for dictionary rows and facts
        contexts: Context dictionary cache (a fresh one if omitted)
        points: Point dictionary cache (a fresh one if omitted)
        config: Progress reporting settings
    """

    def __init__(
        self,
        sink: Sink,
        contexts: Optional[SurrogateDictionary[Context]] = None,
        points: Optional[SurrogateDictionary[Point]] = None,
        config: Optional[WranglerConfig] = None,
    ):
        self.sink = sink
        self.contexts = contexts if contexts is not None else SurrogateDictionary("contexts")
        self.points = points if points is not None else SurrogateDictionary("points")
        self.config = config or WranglerConfig()
        self.report = RunReport(sink=sink.name)
        self._bootstrapped = False

    def bootstrap(self) -> None:
        """Create the sink schema and preload both dictionaries from it."""
        if self._bootstrapped:
            return
        self.sink.ensure_schema()

        loaded_contexts = self.sink.load_contexts()
        self.contexts.preload(loaded_contexts)
        loaded_points = self.sink.load_points()
        self.points.preload(loaded_points)

        self.report.contexts_preloaded = len(loaded_contexts)
        self.report.points_preloaded = len(loaded_points)
        self._bootstrapped = True
        logger.info(
            "Preloaded %d context(s) and %d point(s) from %s sink",
            len(loaded_contexts), len(loaded_points), self.sink.name,
        )

    def process_message(self, message_id: int, spans: Sequence[RawSpan]) -> list[NormalizedSpan]:
        """
        Normalize and persist one message inside a single unit of work.

        If anything fails, ids registered for this message are dropped from
        the dictionaries (the sink rolled them back) and the error propagates.
        """
        new_contexts: list[Context] = []
        new_points: list[Point] = []
        try:
            with self.sink.unit_of_work():
                facts = []
                for span in spans:
                    context_id = self.contexts.lookup(span.context)
                    if context_id is None:
                        context_id = self.sink.insert_context(span.context)
                        self.contexts.register(span.context, context_id)
                        new_contexts.append(span.context)
                        logger.debug("Added context %d: %s", context_id, span.context)

                    point_id = self.points.lookup(span.point)
                    if point_id is None:
                        point_id = self.sink.insert_point(span.point)
                        self.points.register(span.point, point_id)
                        new_points.append(span.point)
                        logger.debug("Added point %d: %s", point_id, span.point)

                    facts.append(NormalizedSpan.from_raw(span, message_id, context_id, point_id))

                self.sink.append_facts(message_id, facts)
        except Exception:
            self.contexts.discard(new_contexts)
            self.points.discard(new_points)
            raise

        self.report.contexts_added += len(new_contexts)
        self.report.points_added += len(new_points)
        self.report.spans_written += len(facts)
        return facts

    def run(self, stream: IO[bytes]) -> RunReport:
        """
        Normalize every message of a binary NDJSON stream.

        Skipped lines (blank or undecodable) do not consume a message
        ordinal: ordinals count decoded messages from 0. Sink errors abort
        the run.
        """
        self.bootstrap()
        message_id = 0

        for line_number, line in iter_messages(stream):
            self.report.lines_read += 1

            if not line.strip():
                self.report.blank_lines += 1
                logger.warning("Skipping blank line %d", line_number)
                continue

            try:
                spans = decode_line(line)
            except SpanDecodeError as e:
                self.report.skipped.append(SkippedLine(line_number, message_id, str(e)))
                logger.warning("Skipping line %d (message %d): %s", line_number, message_id, e)
                continue

            self.process_message(message_id, spans)
            message_id += 1
            self.report.messages_processed += 1

            logger.debug("Processed message %d (%d span(s))", message_id - 1, len(spans))
            if message_id % self.config.progress_every == 0:
                logger.info("Processed %d message(s)", message_id)

        return self.report


def normalize_stream(
    stream: IO[bytes],
    sink: Sink,
    config: Optional[WranglerConfig] = None,
) -> RunReport:
    """Run a fresh Normalizer over stream into sink."""
    return Normalizer(sink, config=config).run(stream)


def format_run_report(report: RunReport) -> str:
    """Format a run report as rich markup."""
    lines = [
        f"[bold]Run Report[/bold] ({report.sink} sink)",
        "",
        f"Lines read: {report.lines_read}",
        f"Messages processed: {report.messages_processed}",
        f"Spans written: {report.spans_written}",
        f"Contexts: {report.contexts_added} new, {report.contexts_preloaded} preloaded",
        f"Points: {report.points_added} new, {report.points_preloaded} preloaded",
    ]
    if report.blank_lines:
        lines.append(f"Blank lines: {report.blank_lines}")

    if report.skipped:
        lines.extend([
            "",
            f"[yellow]Skipped lines: {report.lines_skipped}[/yellow]",
        ])
        for s in report.skipped[:10]:
            lines.append(f"  - line {s.line_number}: {escape(s.error)}")
        if report.lines_skipped > 10:
            lines.append(f"  ... and {report.lines_skipped - 10} more")

    return "\n".join(lines)
