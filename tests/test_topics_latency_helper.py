"""TopicsLatencyHelper against canned logcat output (hot/cold start metrics)."""

import io
from unittest.mock import MagicMock

import pytest

from latency_mcp.ingestion.topics import (
    TopicsLatencyHelper, TOPICS_HOT_START_LATENCY_METRIC, TOPICS_COLD_START_LATENCY_METRIC,
    TOPICS_EVENT_TAG, get_helper,
)
from latency_mcp.ingestion.stream_filter import LogcatStreamFilter

SAMPLE_TOPICS_HOT_START_LATENCY_OUTPUT = (
    "06-13 18:09:24.058 20765 20781 D\n"
    " GetTopicsApiCall: (TOPICS_HOT_START_LATENCY_METRIC: 14)"
)
SAMPLE_TOPICS_COLD_START_LATENCY_OUTPUT = (
    "06-13 18:09:24.058 20765 20781 D\n"
    " GetTopicsApiCall: (TOPICS_COLD_START_LATENCY_METRIC: 200)"
)


@pytest.fixture
def stream_filter():
    return MagicMock()


@pytest.fixture
def helper(stream_filter):
    return TopicsLatencyHelper.get_collector(stream_filter)


def test_get_metrics(helper, stream_filter):
    output = SAMPLE_TOPICS_HOT_START_LATENCY_OUTPUT + "\n" + SAMPLE_TOPICS_COLD_START_LATENCY_OUTPUT
    stream_filter.get_stream.return_value = io.BytesIO(output.encode())
    metrics = helper.get_metrics()
    assert metrics[TOPICS_HOT_START_LATENCY_METRIC] == 14
    assert metrics[TOPICS_COLD_START_LATENCY_METRIC] == 200
    assert metrics == {TOPICS_HOT_START_LATENCY_METRIC: 14, TOPICS_COLD_START_LATENCY_METRIC: 200}


def test_empty_logcat_no_metrics(helper, stream_filter):
    stream_filter.get_stream.return_value = io.BytesIO(b"")
    metrics = helper.get_metrics()
    assert TOPICS_COLD_START_LATENCY_METRIC not in metrics
    assert TOPICS_HOT_START_LATENCY_METRIC not in metrics
    assert metrics == {}


def test_stream_requested_with_event_tag_and_window(helper, stream_filter):
    stream_filter.get_stream.return_value = io.BytesIO(b"")
    helper.start_collecting()
    helper.get_metrics()
    filters, start = stream_filter.get_stream.call_args[0]
    assert filters == TOPICS_EVENT_TAG
    assert start == helper.window_start


def test_default_collector_uses_logcat():
    helper = TopicsLatencyHelper.get_logcat_collector()
    assert isinstance(helper.stream_filter, LogcatStreamFilter)
    assert [p.name for p in helper.patterns] == [TOPICS_HOT_START_LATENCY_METRIC, TOPICS_COLD_START_LATENCY_METRIC]


def test_get_helper_by_name(stream_filter):
    helper = get_helper('Topics', stream_filter)
    assert helper.label == TOPICS_EVENT_TAG
    with pytest.raises(ValueError):
        get_helper('fledge', stream_filter)
