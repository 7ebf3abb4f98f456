"""Shared fixtures for trace-wrangler tests."""

import pytest

from trace_wrangler.sinks import RelationalSink, SplitFileSink, derive_output_paths


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "traces.db"


@pytest.fixture
def relational_sink(db_path):
    sink = RelationalSink(db_path)
    yield sink
    sink.close()


@pytest.fixture
def trace_path(tmp_path):
    return tmp_path / "trace.ndjson"


@pytest.fixture
def split_sink(trace_path):
    sink = SplitFileSink(derive_output_paths(trace_path))
    yield sink
    sink.close()
