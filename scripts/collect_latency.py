#!/usr/bin/env python3
"""
Collect latency metrics once and print them as JSON.

Two modes:
 - live: capture logcat from the attached device (adb) since --since-ms
 - replay: parse a saved capture with --capture path/to/logcat.txt

Exit status is 0 when every --require'd metric is present, 2 otherwise, 1 when
no capture could be obtained.
"""
from __future__ import annotations
import os, json, argparse, sys, datetime
from typing import List

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
REPO_ROOT = os.path.dirname(BASE_DIR)
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from latency_mcp.ingestion.stream_filter import FileStreamFilter, StreamAcquisitionError  # noqa: E402
from latency_mcp.ingestion.topics import HELPERS, get_helper  # noqa: E402


def main(argv: List[str]) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument('helper', choices=sorted(HELPERS))
    ap.add_argument('--capture', help='Saved logcat capture to parse instead of a live device')
    ap.add_argument('--since-ms', type=int, default=None, help='Capture window start (epoch ms); default: now')
    ap.add_argument('--require', action='append', default=[], help='Metric that must be present (repeatable)')
    ap.add_argument('--output', default=None, help='Write JSON here instead of stdout')
    args = ap.parse_args(argv)

    stream_filter = FileStreamFilter(args.capture) if args.capture else None
    clock = None
    if args.since_ms is not None:
        try:
            start = datetime.datetime.fromtimestamp(args.since_ms / 1000, tz=datetime.timezone.utc)
        except (ValueError, OverflowError, OSError) as e:
            ap.error(f"--since-ms out of range: {args.since_ms} ({e})")
        clock = lambda: start  # noqa: E731
    helper = get_helper(args.helper, stream_filter, clock)
    try:
        metrics = helper.get_metrics()
    except StreamAcquisitionError as e:
        print(f"Capture failed: {e}", file=sys.stderr)
        return 1

    payload = json.dumps(metrics, indent=2, sort_keys=True)
    if args.output:
        with open(args.output, 'w', encoding='utf-8') as out:
            out.write(payload + '\n')
    else:
        print(payload)

    missing = [m for m in args.require if m not in metrics]
    if missing:
        print(f"Missing metrics: {', '.join(missing)}", file=sys.stderr)
        return 2
    return 0

if __name__ == '__main__':  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
