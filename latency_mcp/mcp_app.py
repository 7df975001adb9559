import os, time, datetime
from typing import List, Optional

from .ingestion.latency_helper import parse_latency_lines
from .ingestion.stream_filter import StaticStreamFilter, StreamAcquisitionError
from .ingestion.topics import HELPERS, get_helper
from .debug_util import dbg
from fastmcp import FastMCP

# ----------------- System Prompt Guidance -----------------
SYSTEM_PROMPT = (
    "Workflow (latency collection):\n"
    "1. list_helpers() shows the configured latency helpers and the metric names each one reports.\n"
    "2. Run the scenario on the device, then collect_latency_metrics(helper=..., since_ms=<epoch ms before the run>).\n"
    "3. Only metrics that were actually logged appear in 'metrics'. A missing key means the metric was not emitted; never read it as 0.\n"
    "4. parse_latency_capture(helper=..., text=...) parses a saved logcat capture without touching a device.\n"
    "5. Values are milliseconds. When a metric was logged several times in one window the last value is reported.\n"
)

mcp = FastMCP("latency-mcp")

DEFAULT_LOOKBACK_S = 300


def _window_start(since_ms: Optional[int]) -> datetime.datetime:
    if since_ms is not None:
        return datetime.datetime.fromtimestamp(since_ms / 1000, tz=datetime.timezone.utc)
    try:
        lookback = float(os.environ.get('LATENCY_LOOKBACK_S', DEFAULT_LOOKBACK_S))
    except ValueError:
        lookback = DEFAULT_LOOKBACK_S
    return datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(seconds=lookback)

# ----------------- Tools -----------------

def _list_helpers_impl() -> List[dict]:
    out = []
    for name in sorted(HELPERS):
        helper = get_helper(name, StaticStreamFilter())
        out.append({'helper': name, 'label': helper.label, 'metrics': [p.name for p in helper.patterns]})
    return out


def _collect_impl(helper: str, since_ms: Optional[int] = None, stream_filter=None) -> dict:
    try:
        start = _window_start(since_ms)
    except (ValueError, OverflowError, OSError) as e:
        return {'error': 'invalid_window', 'detail': f'since_ms out of range: {since_ms} ({e})'}
    dbg(f'_collect_impl helper={helper} window_start={start.isoformat()}')
    try:
        collector = get_helper(helper, stream_filter, clock=lambda: start)
    except ValueError as e:
        return {'error': 'unknown_helper', 'detail': str(e)}
    t0 = time.time()
    try:
        metrics = collector.get_metrics()
    except StreamAcquisitionError as e:
        return {'error': 'acquisition_failed', 'detail': str(e)}
    missing = [p.name for p in collector.patterns if p.name not in metrics]
    return {
        'helper': helper,
        'label': collector.label,
        'window_start_ms': int(start.timestamp() * 1000),
        'metrics': metrics,
        'missing': missing,
        'elapsed_ms': int((time.time() - t0) * 1000),
    }


@mcp.tool()
def list_helpers() -> List[dict]:
    """Configured latency helpers with the metric names they report."""
    return _list_helpers_impl()


@mcp.tool()
def collect_latency_metrics(helper: str, since_ms: Optional[int] = None) -> dict:
    """Capture logcat since `since_ms` (default: LATENCY_LOOKBACK_S ago) and extract latency metrics."""
    return _collect_impl(helper, since_ms)


def _parse_capture_impl(helper: str, text: str) -> dict:
    try:
        collector = get_helper(helper, StaticStreamFilter())
    except ValueError as e:
        return {'error': 'unknown_helper', 'detail': str(e)}
    metrics = parse_latency_lines(text.splitlines(), collector.patterns)
    missing = [p.name for p in collector.patterns if p.name not in metrics]
    return {'helper': helper, 'label': collector.label, 'metrics': metrics, 'missing': missing}


@mcp.tool()
def parse_latency_capture(helper: str, text: str) -> dict:
    """Extract latency metrics from a saved logcat capture (no device needed)."""
    return _parse_capture_impl(helper, text)


@mcp.tool()
def healthz() -> dict:
    return {'status': 'ok', 'time': int(time.time() * 1000), 'helpers': sorted(HELPERS)}


# --------------- HTTP Runner via mcp.run ---------------

if __name__ == '__main__':
    host = os.environ.get('HOST', '0.0.0.0')
    port = int(os.environ.get('PORT', '8000'))
    print(f'Starting FastMCP on {host}:{port}')
    mcp.run(transport="http", host=host, port=port, stateless_http=True)
