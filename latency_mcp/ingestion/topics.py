from __future__ import annotations
import datetime
from typing import Callable, Dict, Optional

from .latency_helper import LatencyHelper, MetricPattern
from .stream_filter import InputStreamFilter, LogcatStreamFilter

TOPICS_HOT_START_LATENCY_METRIC = 'TOPICS_HOT_START_LATENCY_METRIC'
TOPICS_COLD_START_LATENCY_METRIC = 'TOPICS_COLD_START_LATENCY_METRIC'
TOPICS_EVENT_TAG = 'GetTopicsApiCall'

TOPICS_PATTERNS = (
    MetricPattern.for_event(TOPICS_EVENT_TAG, TOPICS_HOT_START_LATENCY_METRIC),
    MetricPattern.for_event(TOPICS_EVENT_TAG, TOPICS_COLD_START_LATENCY_METRIC),
)


class TopicsLatencyHelper:
    """getTopics() hot/cold start latency, logged by the AdServices API call."""

    @staticmethod
    def get_logcat_collector() -> LatencyHelper:
        return LatencyHelper.get_logcat_latency_helper(TOPICS_EVENT_TAG, TOPICS_PATTERNS)

    @staticmethod
    def get_collector(stream_filter: Optional[InputStreamFilter] = None,
                      clock: Optional[Callable[[], datetime.datetime]] = None) -> LatencyHelper:
        if stream_filter is None:
            stream_filter = LogcatStreamFilter()
        if clock is None:
            return LatencyHelper(TOPICS_EVENT_TAG, TOPICS_PATTERNS, stream_filter)
        return LatencyHelper(TOPICS_EVENT_TAG, TOPICS_PATTERNS, stream_filter, clock)


# name -> factory(stream_filter, clock) used by the MCP / HTTP surfaces
HELPERS: Dict[str, Callable[..., LatencyHelper]] = {
    'topics': TopicsLatencyHelper.get_collector,
}


def get_helper(name: str, stream_filter: Optional[InputStreamFilter] = None,
               clock: Optional[Callable[[], datetime.datetime]] = None) -> LatencyHelper:
    try:
        factory = HELPERS[name.lower()]
    except KeyError:
        raise ValueError(f'unknown latency helper: {name}') from None
    return factory(stream_filter, clock)
