import datetime

from latency_mcp import mcp_app
from latency_mcp.ingestion import stream_filter as sf
from latency_mcp.ingestion.stream_filter import StaticStreamFilter

CAPTURE = (
    "06-13 18:09:24.058 20765 20781 D\n"
    " GetTopicsApiCall: (TOPICS_HOT_START_LATENCY_METRIC: 14)\n"
)


def _tool(t):
    return getattr(t, 'fn', t)


def test_list_helpers_reports_topics():
    helpers = _tool(mcp_app.list_helpers)()
    topics = next(h for h in helpers if h['helper'] == 'topics')
    assert topics['label'] == 'GetTopicsApiCall'
    assert 'TOPICS_COLD_START_LATENCY_METRIC' in topics['metrics']


def test_parse_capture_reports_missing():
    body = _tool(mcp_app.parse_latency_capture)('topics', CAPTURE)
    assert body['metrics'] == {'TOPICS_HOT_START_LATENCY_METRIC': 14}
    assert body['missing'] == ['TOPICS_COLD_START_LATENCY_METRIC']


def test_parse_capture_unknown_helper():
    body = _tool(mcp_app.parse_latency_capture)('nope', CAPTURE)
    assert body['error'] == 'unknown_helper'


def test_collect_uses_since_ms_window():
    source = StaticStreamFilter(CAPTURE)
    body = mcp_app._collect_impl('topics', since_ms=1718302164000, stream_filter=source)
    assert body['metrics'] == {'TOPICS_HOT_START_LATENCY_METRIC': 14}
    assert body['window_start_ms'] == 1718302164000
    _, start = source.calls[0]
    assert start == datetime.datetime(2024, 6, 13, 18, 9, 24, tzinfo=datetime.timezone.utc)


def test_collect_default_lookback(monkeypatch):
    monkeypatch.setenv('LATENCY_LOOKBACK_S', '60')
    source = StaticStreamFilter('')
    before = datetime.datetime.now(datetime.timezone.utc)
    body = mcp_app._collect_impl('topics', stream_filter=source)
    assert body['metrics'] == {}
    assert len(body['missing']) == 2
    _, start = source.calls[0]
    assert before - datetime.timedelta(seconds=61) < start <= before


def test_collect_acquisition_failure(monkeypatch):
    def fake_run(argv, **kw):
        raise OSError('adb not found')

    monkeypatch.setattr(sf.subprocess, 'run', fake_run)
    body = _tool(mcp_app.collect_latency_metrics)('topics', since_ms=0)
    assert body['error'] == 'acquisition_failed'


def test_healthz_and_prompt():
    body = _tool(mcp_app.healthz)()
    assert body['status'] == 'ok'
    assert 'topics' in body['helpers']
    assert 'never read it as 0' in mcp_app.SYSTEM_PROMPT


def test_collect_out_of_range_window():
    source = StaticStreamFilter(CAPTURE)
    body = mcp_app._collect_impl('topics', since_ms=10 ** 18, stream_filter=source)
    assert body['error'] == 'invalid_window'
    assert source.calls == []
