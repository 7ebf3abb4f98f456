"""
Span decoder: Parse one NDJSON line of VM execution spans.

Each line holds a JSON array of span objects:

    [{"context": {"code_cid": "baeaaaaa", "method_num": 0},
      "point": {"event": "Started", "label": ""},
      "consumption": {"fuel_consumed": 10},
      "timing": {"elapsed_cum_ns": 60, "elapsed_rel_ns": 60}}]

Fields equal to their zero value may be omitted on the wire. Consumption
fields are the exception: a missing or null value decodes to None, never 0.
"""

from typing import Optional, Any, Iterator, IO
import json

from trace_wrangler.errors import SpanDecodeError
from trace_wrangler.model import (
    METHOD_NUM_MAX,
    U64_MAX,
    Consumption,
    Context,
    Point,
    RawSpan,
    Timing,
)


def decode_line(line: bytes | str) -> list[RawSpan]:
    """
    Decode one input line into its spans, in array order.

    Raises:
        SpanDecodeError: the line is not valid UTF-8 / JSON, or a field has
            the wrong type or is out of range.
    """
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SpanDecodeError(f"invalid utf-8: {e}") from e

    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise SpanDecodeError(f"invalid json: {e}") from e
    except RecursionError as e:
        raise SpanDecodeError(f"invalid json: nesting too deep ({e})") from e

    if not isinstance(data, list):
        raise SpanDecodeError(f"expected a JSON array of spans, got {type(data).__name__}")

    return [_decode_span(item, index) for index, item in enumerate(data)]


def iter_messages(stream: IO[bytes]) -> Iterator[tuple[int, bytes]]:
    """
    Yield (line_number, line) for every physical line of a binary stream.

    Line numbers are 1-based; the trailing newline is stripped. Blank lines
    are yielded as empty bytes so the caller can account for them.
    """
    for line_num, line in enumerate(stream, 1):
        yield line_num, line.rstrip(b"\r\n")


def _decode_span(item: Any, index: int) -> RawSpan:
    if not isinstance(item, dict):
        raise SpanDecodeError(f"span {index}: expected an object, got {type(item).__name__}")

    context = _section(item, "context", index)
    point = _section(item, "point", index)
    consumption = _section(item, "consumption", index)
    timing = _section(item, "timing", index)

    return RawSpan(
        context=Context(
            code_cid=_string(context, "code_cid", index),
            method_num=_integer(context, "method_num", index, METHOD_NUM_MAX),
        ),
        point=Point(
            event=_string(point, "event", index),
            label=_string(point, "label", index),
        ),
        consumption=Consumption(
            fuel_consumed=_optional_integer(consumption, "fuel_consumed", index),
            gas_consumed=_optional_integer(consumption, "gas_consumed", index),
        ),
        timing=Timing(
            elapsed_cum_ns=_integer(timing, "elapsed_cum_ns", index, U64_MAX),
            elapsed_rel_ns=_integer(timing, "elapsed_rel_ns", index, U64_MAX),
        ),
    )


def _section(item: dict[str, Any], name: str, index: int) -> dict[str, Any]:
    value = item.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise SpanDecodeError(f"span {index}: {name} must be an object")
    return value


def _string(section: dict[str, Any], name: str, index: int) -> str:
    value = section.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise SpanDecodeError(f"span {index}: {name} must be a string")
    return value


def _integer(section: dict[str, Any], name: str, index: int, maximum: int) -> int:
    value = _optional_integer(section, name, index, maximum)
    return 0 if value is None else value


def _optional_integer(
    section: dict[str, Any],
    name: str,
    index: int,
    maximum: int = U64_MAX,
) -> Optional[int]:
    value = section.get(name)
    if value is None:
        return None
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise SpanDecodeError(f"span {index}: {name} must be an unsigned integer")
    if value < 0 or value > maximum:
        raise SpanDecodeError(f"span {index}: {name}={value} out of range 0..{maximum}")
    return value
