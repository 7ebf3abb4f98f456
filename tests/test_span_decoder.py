"""
Tests for decoding NDJSON span lines.
"""

import io
import json

import pytest

from tests.helpers import EXAMPLE_LINE, span
from trace_wrangler.errors import SpanDecodeError
from trace_wrangler.ingest import decode_line, iter_messages
from trace_wrangler.model import Consumption, Context, Point, RawSpan, Timing


class TestDecodeLine:
    """Valid input."""

    def test_example_line(self):
        """Test decoding the single-span example message."""
        spans = decode_line(EXAMPLE_LINE.encode())

        assert spans == [
            RawSpan(
                context=Context("baeaaaaa", 0),
                point=Point("Started", ""),
                consumption=Consumption(None, None),
                timing=Timing(elapsed_cum_ns=60, elapsed_rel_ns=60),
            )
        ]

    def test_accepts_str(self):
        """Test str and bytes input decode the same."""
        assert decode_line(EXAMPLE_LINE) == decode_line(EXAMPLE_LINE.encode())

    def test_preserves_array_order(self):
        """Test spans come back in array order."""
        line = json.dumps([span(event="A"), span(event="B"), span(event="C")])

        assert [s.point.event for s in decode_line(line)] == ["A", "B", "C"]

    def test_empty_array(self):
        """Test an empty array is a message with no spans."""
        assert decode_line(b"[]") == []

    def test_missing_fields_default_to_zero_values(self):
        """Test omitted fields decode to their zero values."""
        spans = decode_line(b"[{}]")

        assert spans[0] == RawSpan()
        assert spans[0].context == Context("", 0)
        assert spans[0].timing == Timing(0, 0)

    def test_absent_consumption_is_not_zero(self):
        """Test missing consumption is None while explicit zero stays 0."""
        spans = decode_line(json.dumps([span(), span(fuel=0, gas=0)]))

        assert spans[0].consumption == Consumption(None, None)
        assert spans[1].consumption == Consumption(0, 0)

    def test_null_consumption_is_absent(self):
        """Test null consumption fields decode to None."""
        line = '[{"consumption":{"fuel_consumed":null,"gas_consumed":7}}]'

        assert decode_line(line)[0].consumption == Consumption(None, 7)

    def test_null_sections_are_empty(self):
        """Test null sub-objects decode like missing ones."""
        line = '[{"context":null,"point":null,"consumption":null,"timing":null}]'

        assert decode_line(line) == [RawSpan()]

    def test_u64_upper_bound(self):
        """Test the largest u64 is accepted."""
        line = json.dumps([span(gas=2**64 - 1)])

        assert decode_line(line)[0].consumption.gas_consumed == 2**64 - 1

    def test_method_num_upper_bound(self):
        """Test method_num 255 is accepted."""
        assert decode_line(json.dumps([span(method_num=255)]))[0].context.method_num == 255


class TestDecodeErrors:
    """Malformed input raises SpanDecodeError."""

    @pytest.mark.parametrize("line", [
        b'[{"context":{"code_cid":"baeaaaaa"',
        b"not json",
        b"",
        b"\xff\xfe",
    ])
    def test_unparseable(self, line):
        """Test truncated, non-JSON, empty and non-UTF-8 lines."""
        with pytest.raises(SpanDecodeError):
            decode_line(line)

    @pytest.mark.parametrize("line", [
        b"[" * 200000,
        b"[" * 200000 + b"]" * 200000,
    ])
    def test_nesting_too_deep(self, line):
        """Test deeply nested arrays fail as a decode error."""
        with pytest.raises(SpanDecodeError, match="nesting too deep"):
            decode_line(line)

    @pytest.mark.parametrize("line", [
        b'{"context":{}}',
        b"42",
        b"[1]",
        b'[{"context":[]}]',
    ])
    def test_wrong_shape(self, line):
        """Test non-array top levels and non-object spans or sections."""
        with pytest.raises(SpanDecodeError):
            decode_line(line)

    def test_method_num_out_of_range(self):
        """Test method_num 256 is rejected, not truncated."""
        with pytest.raises(SpanDecodeError, match="method_num"):
            decode_line(json.dumps([span(method_num=256)]))

    def test_negative_value(self):
        """Test negative integers are rejected."""
        with pytest.raises(SpanDecodeError, match="elapsed_rel_ns"):
            decode_line(json.dumps([span(rel=-1)]))

    def test_u64_overflow(self):
        """Test values past the u64 range are rejected."""
        with pytest.raises(SpanDecodeError, match="fuel_consumed"):
            decode_line(json.dumps([span(fuel=2**64)]))

    def test_float_rejected(self):
        """Test floats in integer fields are rejected."""
        with pytest.raises(SpanDecodeError):
            decode_line('[{"timing":{"elapsed_cum_ns":1.5}}]')

    def test_bool_rejected(self):
        """Test booleans in integer fields are rejected."""
        with pytest.raises(SpanDecodeError):
            decode_line('[{"consumption":{"gas_consumed":true}}]')

    def test_non_string_label(self):
        """Test non-string values in string fields are rejected."""
        with pytest.raises(SpanDecodeError, match="label"):
            decode_line('[{"point":{"event":"Started","label":3}}]')

    def test_is_value_error(self):
        """Test decode errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            decode_line(b"nope")


class TestIterMessages:
    """Line iteration over a binary stream."""

    def test_numbers_lines_from_one_and_strips_newlines(self):
        """Test 1-based numbering, newline stripping and blank lines kept."""
        stream = io.BytesIO(b"[]\n\n[{}]\r\n[]")

        assert list(iter_messages(stream)) == [
            (1, b"[]"),
            (2, b""),
            (3, b"[{}]"),
            (4, b"[]"),
        ]
