"""Capture sources for latency extraction.

A stream filter answers one question: given a logcat tag filter and the start
of the capture window, hand back the raw bytes of that log slice. The helper
never cares whether the bytes came from a live device, a saved capture or a
string in a test.

Failure policy:
  * the capture command ran but printed nothing (or failed silently) -> empty stream
  * the capture command could not be launched or timed out -> StreamAcquisitionError
"""
from __future__ import annotations
import io, os, shlex, subprocess, datetime
from pathlib import Path
from typing import BinaryIO, Optional, Protocol, Union

from ..debug_util import dbg

# threadtime keeps the `<tag>: <message>` shape the metric patterns anchor on
LOGCAT_COMMAND = 'logcat --buffer=all --format=threadtime'
DEFAULT_TIMEOUT_S = 30.0


class StreamAcquisitionError(RuntimeError):
    """Raised when no capture can be obtained at all."""


class InputStreamFilter(Protocol):
    def get_stream(self, filters: str, start_time: datetime.datetime) -> BinaryIO:
        ...


def format_log_time(start_time: datetime.datetime) -> str:
    """Render start_time for `logcat -t` as epoch `<seconds>.<millis>`.

    Epoch form is independent of the host and device time zones and carries
    the year. Naive datetimes are taken as host local time.
    """
    millis = int(round(start_time.timestamp() * 1000))
    return f"{millis // 1000}.{millis % 1000:03d}"


class LogcatStreamFilter:
    """Dump the logcat buffer for `filters` since `start_time`.

    Runs through `adb shell` by default; LOGCAT_USE_ADB=0 runs logcat directly,
    which is what an on-device harness wants.
    """

    def __init__(self, adb_path: Optional[str] = None, serial: Optional[str] = None,
                 use_adb: Optional[bool] = None, timeout_s: Optional[float] = None):
        self.adb_path = adb_path or os.environ.get('ADB_PATH', 'adb')
        self.serial = serial if serial is not None else os.environ.get('ANDROID_SERIAL')
        if use_adb is None:
            use_adb = os.environ.get('LOGCAT_USE_ADB', '1') != '0'
        self.use_adb = use_adb
        if timeout_s is None:
            try:
                timeout_s = float(os.environ.get('LOGCAT_TIMEOUT_S', DEFAULT_TIMEOUT_S))
            except ValueError:
                timeout_s = DEFAULT_TIMEOUT_S
        self.timeout_s = timeout_s

    def logcat_command(self, filters: str, start_time: datetime.datetime) -> str:
        return f"{LOGCAT_COMMAND} -s {filters} -t '{format_log_time(start_time)}'"

    def build_argv(self, filters: str, start_time: datetime.datetime) -> list[str]:
        command = self.logcat_command(filters, start_time)
        if not self.use_adb:
            return shlex.split(command)
        argv = [self.adb_path]
        if self.serial:
            argv += ['-s', self.serial]
        # adb shell takes the remote command as one string so the quoted time survives
        argv += ['shell', command]
        return argv

    def get_stream(self, filters: str, start_time: datetime.datetime) -> BinaryIO:
        argv = self.build_argv(filters, start_time)
        dbg(f'logcat capture argv={argv} timeout={self.timeout_s}')
        try:
            proc = subprocess.run(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired as e:
            raise StreamAcquisitionError(f'logcat capture timed out after {self.timeout_s}s') from e
        except OSError as e:
            raise StreamAcquisitionError(f'failed to launch {argv[0]}: {e}') from e
        output = proc.stdout or b''
        if proc.returncode != 0:
            dbg(f'logcat capture rc={proc.returncode} bytes={len(output)}')
        return io.BytesIO(output)


class StaticStreamFilter:
    """Serve the same canned capture for every request."""

    def __init__(self, capture: Union[str, bytes] = b''):
        self.capture = capture.encode('utf-8') if isinstance(capture, str) else capture
        self.calls: list[tuple[str, datetime.datetime]] = []

    def get_stream(self, filters: str, start_time: datetime.datetime) -> BinaryIO:
        self.calls.append((filters, start_time))
        return io.BytesIO(self.capture)


class FileStreamFilter:
    """Replay a capture previously saved with `adb logcat -d > file`."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def get_stream(self, filters: str, start_time: datetime.datetime) -> BinaryIO:
        try:
            return self.path.open('rb')
        except OSError as e:
            raise StreamAcquisitionError(f'capture file unreadable: {self.path}') from e
