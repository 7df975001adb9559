import os, logging, sys

logger = logging.getLogger("latency_mcp")

def _ensure_logger():
    """Give the latency logger a stderr handler the first time it speaks.

    stdout stays clean for the JSON metric map printed by collect_latency.py;
    a harness that already configured `latency_mcp` logging keeps its handlers.
    """
    if logger.handlers:
        return
    logger.setLevel(logging.INFO)
    h = logging.StreamHandler(stream=sys.stderr)
    h.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(message)s'))
    logger.addHandler(h)

def dbg(msg: str):
    """Trace capture and parse decisions (argv, skipped records, result map).

    Silent unless DEBUG_VERBOSE=1; the flag is read per call.
    """
    if os.environ.get('DEBUG_VERBOSE') == '1':
        _ensure_logger()
        logger.info('[debug] %s', msg)
