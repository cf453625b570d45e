"""
Test Configuration
==================

Pytest fixtures and test doubles for posecast.
"""

import pytest

from posecast.config import Settings
from posecast.models.frame import JoystickFrame, JoysticksFrame, Vector3
from posecast.stream.jobs import JobQueue


class FakeTransport:
    """
    In-memory transport driven explicitly by tests.

    Callbacks are invoked synchronously on the calling thread, which stands
    in for the transport's I/O thread.
    """

    def __init__(self, url, on_open, on_error, on_close, on_message):
        self.url = url
        self.on_open = on_open
        self.on_error = on_error
        self.on_close = on_close
        self.on_message = on_message

        self.alive = False
        self.connect_calls = 0
        self.close_calls = 0
        self.sent = []

    @property
    def is_alive(self):
        return self.alive

    def connect_async(self):
        self.connect_calls += 1

    def send_async(self, data, on_complete):
        self.sent.append((data, on_complete))

    def close(self):
        self.close_calls += 1
        if not self.alive:
            return
        self.alive = False
        self.on_close()

    # Test helpers

    def open(self):
        self.alive = True
        self.on_open()

    def fail(self, message="Connection refused"):
        self.alive = False
        self.on_error(message)
        self.on_close()

    def complete_all(self, success=True):
        pending, self.sent = self.sent, []
        for _, on_complete in pending:
            on_complete(success)
        return [data for data, _ in pending]


class FakeTransportFactory:
    """Records every transport the controller creates."""

    def __init__(self):
        self.created = []

    def __call__(self, url, **callbacks):
        transport = FakeTransport(url, **callbacks)
        self.created.append(transport)
        return transport

    @property
    def last(self):
        return self.created[-1]

    @property
    def urls(self):
        return [t.url for t in self.created]


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def jobs():
    return JobQueue()


@pytest.fixture
def transport_factory():
    return FakeTransportFactory()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    """Settings tuned for deterministic tests (no initial delay, compact JSON)."""
    return Settings.model_validate({
        "connection": {
            "hosts": ["receiver.local:8181"],
            "retry_interval_seconds": 5.0,
            "initial_retry_delay_seconds": 0.0,
        },
        "encoding": {"indent": None},
    })


@pytest.fixture
def joystick():
    return JoystickFrame(attached=True, position=Vector3(x=0.1, y=1.2, z=-0.3))


@pytest.fixture
def keyframe_joystick():
    return JoystickFrame(attached=False, keyframe=True)


@pytest.fixture
def make_frame():
    """Build a JoysticksFrame tagged by its x position."""
    def _make(x: float = 0.0, keyframe: bool = False) -> JoysticksFrame:
        return JoysticksFrame(joysticks=[
            JoystickFrame(position=Vector3(x=x), keyframe=keyframe),
        ])
    return _make
