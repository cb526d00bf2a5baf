import threading

import pytest

from journald_semistruct.baseline import build_baseline
from journald_semistruct.config import LogOptions, SessionContext
from journald_semistruct.errors import ForwardingError
from journald_semistruct.sink import Sink


class RecordingSink(Sink):
    """Keeps every record in memory; rejects lines containing 'fail_on'."""

    def __init__(self, enabled: bool = True, fail_on: str | None = None):
        self.records: list[tuple] = []
        self.closed = False
        self.fail_on = fail_on
        self._enabled = enabled
        self._lock = threading.Lock()

    def enabled(self) -> bool:
        return self._enabled

    def send(self, line, priority, fields):
        if self.fail_on is not None and self.fail_on in line:
            raise ForwardingError("sink rejected line")
        with self._lock:
            self.records.append((line, priority, dict(fields)))

    def close(self):
        self.closed = True


@pytest.fixture
def recording_sink_cls():
    return RecordingSink


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def context():
    return SessionContext(
        container_id="0123456789abcdef0123456789abcdef",
        container_name="/web",
        image_id="sha256:fedcba9876543210fedcba",
        image_name="nginx:1.25",
        daemon_name="dockerd",
        labels={"com.example.team": "core", "stage": "from-label"},
        env=["STAGE=prod", "EMPTY=", "NOEQUALS"],
    )


@pytest.fixture
def baseline(context):
    return build_baseline(context, LogOptions())
