"""Latency metric extraction from a logcat capture.

Record shape emitted by the instrumented code (header and payload may sit on
two physical lines):

    06-13 18:09:24.058 20765 20781 D
     GetTopicsApiCall: (TOPICS_HOT_START_LATENCY_METRIC: 14)

Each configured MetricPattern is searched in every line independently, so one
capture can yield any number of metrics. Result policy:
  * key present only when at least one line matched (absence != 0)
  * repeated emissions of one metric: last occurrence wins
  * a matched line whose value is not a signed 64-bit integer is skipped
"""
from __future__ import annotations
import re, datetime
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Sequence

from .stream_filter import InputStreamFilter, LogcatStreamFilter
from ..debug_util import dbg


INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
INTEGER_RE = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class MetricPattern:
    name: str
    regex: re.Pattern

    @classmethod
    def for_event(cls, event_tag: str, metric_name: str) -> 'MetricPattern':
        """Build `<event_tag>: (<METRIC_NAME>: <value>)` anchored on the literal name.

        The value group takes any token up to the closing paren; parse_value
        decides whether it is a number.
        """
        regex = re.compile(
            rf"(?<![\w/]){re.escape(event_tag)}:\s*\(\s*{re.escape(metric_name)}:\s*([^)\s]*)\s*\)"
        )
        return cls(metric_name, regex)


def parse_value(raw: str) -> Optional[int]:
    # plain decimal only; int() alone would also take "1_000" and unicode digits
    if not INTEGER_RE.fullmatch(raw):
        return None
    value = int(raw, 10)
    if value < INT64_MIN or value > INT64_MAX:
        return None
    return value


def parse_record(line: str, pattern: MetricPattern) -> Optional[int]:
    """Value for `pattern` in `line`, or None when the line is not a usable record."""
    m = pattern.regex.search(line)
    if not m:
        return None
    value = parse_value(m.group(1))
    if value is None:
        dbg(f'latency skip malformed metric={pattern.name} raw={m.group(1)!r} line={line[:120]}')
    return value


def parse_latency_lines(lines: Iterable[str], patterns: Sequence[MetricPattern]) -> Dict[str, int]:
    metrics: Dict[str, int] = {}
    for line in lines:
        for pattern in patterns:
            value = parse_record(line, pattern)
            if value is not None:
                metrics[pattern.name] = value
    return metrics


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class LatencyHelper:
    """Collector driving one stream filter and one set of metric patterns.

    Lifecycle mirrors the harness collectors: start_collecting() marks the
    capture window, get_metrics() pulls and parses the window, stop_collecting()
    is a no-op. No state survives between get_metrics() calls beyond the window start.
    """

    def __init__(self, label: str, patterns: Sequence[MetricPattern],
                 stream_filter: InputStreamFilter, clock: Callable[[], datetime.datetime] = _utc_now):
        self.label = label
        self.patterns = tuple(patterns)
        self.stream_filter = stream_filter
        self._clock = clock
        self._init_time = clock()

    @classmethod
    def get_logcat_latency_helper(cls, label: str, patterns: Sequence[MetricPattern]) -> 'LatencyHelper':
        return cls(label, patterns, LogcatStreamFilter())

    @property
    def window_start(self) -> datetime.datetime:
        return self._init_time

    def start_collecting(self) -> bool:
        self._init_time = self._clock()
        dbg(f'latency start label={self.label} window_start={self._init_time.isoformat()}')
        return True

    def get_metrics(self) -> Dict[str, int]:
        # acquisition errors propagate; everything after is best effort
        stream = self.stream_filter.get_stream(self.label, self._init_time)
        try:
            data = stream.read()
        finally:
            stream.close()
        if isinstance(data, bytes):
            data = data.decode('utf-8', errors='ignore')
        metrics = parse_latency_lines(data.splitlines(), self.patterns)
        dbg(f'latency collected label={self.label} metrics={metrics}')
        return metrics

    def stop_collecting(self) -> bool:
        return True
