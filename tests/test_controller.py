"""
Connection Controller Tests
===========================

Lifecycle transitions, host rotation, retry timing and event marshaling.
"""

import pytest

from posecast.models.connection import ConnectionState
from posecast.transport.controller import ConnectionController


@pytest.fixture
def statuses():
    return []


@pytest.fixture
def make_controller(jobs, transport_factory, statuses):
    def _make(hosts=("a.local:8181",), retry_interval=0.0, initial_retry_delay=0.0):
        return ConnectionController(
            hosts=list(hosts),
            jobs=jobs,
            retry_interval=retry_interval,
            initial_retry_delay=initial_retry_delay,
            transport_factory=transport_factory,
            on_status=statuses.append,
        )
    return _make


def connect(controller, jobs, transport_factory):
    """Tick until a transport exists, open it and drain the open job."""
    controller.tick(0.016)
    transport = transport_factory.last
    transport.open()
    jobs.drain()
    return transport


class TestConnectionLifecycle:

    def test_starts_idle(self, make_controller):
        controller = make_controller()
        assert controller.state == ConnectionState.IDLE
        assert controller.current_host() is None

    def test_idle_to_connecting(self, make_controller, transport_factory, statuses):
        controller = make_controller()
        controller.tick(0.016)

        assert controller.state == ConnectionState.CONNECTING
        assert transport_factory.urls == ["ws://a.local:8181"]
        assert transport_factory.last.connect_calls == 1
        assert statuses == ["Connecting to a.local:8181..."]

    def test_open_is_marshaled_to_control_loop(self, make_controller, jobs, transport_factory, statuses):
        controller = make_controller()
        controller.tick(0.016)
        transport_factory.last.open()

        # Not applied until the control loop drains
        assert controller.state == ConnectionState.CONNECTING
        assert len(jobs) == 1

        jobs.drain()
        assert controller.state == ConnectionState.CONNECTED
        assert controller.status == "Connected"
        assert statuses[-1] == "Connected"

    def test_error_returns_to_idle(self, make_controller, jobs, transport_factory, statuses):
        controller = make_controller()
        transport = connect(controller, jobs, transport_factory)

        transport.on_error("stream reset")
        jobs.drain()

        assert controller.state == ConnectionState.IDLE
        assert transport.close_calls == 1
        assert statuses[-1] == "Error: stream reset"

    def test_close_flips_connecting_flag_immediately(self, make_controller, jobs, transport_factory):
        controller = make_controller()
        controller.tick(0.016)
        transport = transport_factory.last

        transport.on_close()

        # Flag cleared on the callback thread, before any drain
        assert controller.state == ConnectionState.IDLE
        assert len(jobs) == 1
        jobs.drain()
        assert controller.state == ConnectionState.IDLE

    def test_remote_close_does_not_recurse(self, make_controller, jobs, transport_factory):
        controller = make_controller()
        transport = connect(controller, jobs, transport_factory)

        # Remote side closed: socket no longer alive when the job runs
        transport.alive = False
        transport.on_close()
        jobs.drain()

        assert controller.state == ConnectionState.IDLE
        assert transport.close_calls == 0
        assert len(jobs) == 0

    def test_close_during_close_handling_is_not_reentered(self, make_controller, jobs, transport_factory):
        controller = make_controller()
        transport = connect(controller, jobs, transport_factory)

        # Error while still alive: controller closes the socket, which in
        # turn reports close. That second event must not close again.
        transport.on_error("protocol error")
        jobs.drain()

        assert transport.close_calls == 1
        assert controller.state == ConnectionState.IDLE
        assert len(jobs) == 0

    def test_send_without_socket_fails_immediately(self, make_controller):
        controller = make_controller()
        outcomes = []
        controller.send("payload", outcomes.append)
        assert outcomes == [False]

    def test_send_forwards_to_active_socket(self, make_controller, jobs, transport_factory):
        controller = make_controller()
        transport = connect(controller, jobs, transport_factory)
        outcomes = []

        controller.send("payload", outcomes.append)
        assert transport.complete_all(True) == ["payload"]
        assert outcomes == [True]

    def test_close_shuts_active_socket(self, make_controller, jobs, transport_factory):
        controller = make_controller()
        transport = connect(controller, jobs, transport_factory)

        controller.close()

        assert transport.close_calls == 1
        assert controller.state == ConnectionState.IDLE

        # The close event from our own shutdown is not an error
        errors = controller.metrics.errors
        jobs.drain()
        assert controller.metrics.errors == errors

    def test_no_connect_while_connected(self, make_controller, jobs, transport_factory):
        controller = make_controller()
        connect(controller, jobs, transport_factory)

        for _ in range(10):
            controller.tick(1.0)

        assert len(transport_factory.created) == 1


class TestHostRotation:

    def test_round_robin_over_failures(self, make_controller, jobs, transport_factory):
        controller = make_controller(hosts=["a.local:1", "b.local:2"])

        for _ in range(3):
            controller.tick(0.016)
            transport_factory.last.fail()
            jobs.drain()

        assert transport_factory.urls == [
            "ws://a.local:1",
            "ws://b.local:2",
            "ws://a.local:1",
        ]

    def test_single_host_wraps(self, make_controller, jobs, transport_factory):
        controller = make_controller(hosts=["only.local:9"])

        for _ in range(3):
            controller.tick(0.016)
            assert controller.current_host_index == 0
            transport_factory.last.fail()
            jobs.drain()

        assert transport_factory.urls == ["ws://only.local:9"] * 3

    def test_empty_host_list_reports_and_stays_idle(self, make_controller, transport_factory, statuses):
        controller = make_controller(hosts=[])
        controller.tick(0.016)
        controller.tick(0.016)

        assert transport_factory.created == []
        assert controller.state == ConnectionState.IDLE
        assert statuses == ["No hosts specified", "No hosts specified"]

    def test_set_host_replaces_list(self, make_controller, jobs, transport_factory):
        controller = make_controller(hosts=["a.local:1", "b.local:2"])
        controller.set_host("c.local:3")
        controller.tick(0.016)

        assert transport_factory.urls == ["ws://c.local:3"]


class TestRetryTiming:

    def test_initial_delay_counts_down(self, make_controller, transport_factory):
        controller = make_controller(retry_interval=5.0, initial_retry_delay=1.0)

        controller.tick(0.5)
        controller.tick(0.5)
        assert transport_factory.created == []

        controller.tick(0.016)
        assert len(transport_factory.created) == 1
        assert controller.retry_timeout == 5.0

    def test_fixed_retry_interval_after_failure(self, make_controller, jobs, transport_factory):
        controller = make_controller(retry_interval=2.0)

        controller.tick(0.1)
        transport_factory.last.fail()
        jobs.drain()

        # 2.0s must elapse before the next attempt
        for _ in range(4):
            controller.tick(0.5)
        assert len(transport_factory.created) == 1

        controller.tick(0.5)
        assert len(transport_factory.created) == 2

    def test_timeout_reset_even_while_connecting(self, make_controller, transport_factory):
        controller = make_controller(retry_interval=1.0)

        controller.tick(0.1)
        assert controller.state == ConnectionState.CONNECTING

        controller.tick(0.6)
        controller.tick(0.6)
        controller.tick(0.1)

        # Still handshaking: no second transport, timer rearmed
        assert len(transport_factory.created) == 1
        assert controller.retry_timeout == 1.0


class TestMessages:

    def test_text_message_logged(self, make_controller, jobs, transport_factory, caplog):
        controller = make_controller()
        transport = connect(controller, jobs, transport_factory)

        with caplog.at_level("INFO"):
            transport.on_message("hello")
            jobs.drain()

        assert "Message: hello" in caplog.text
        assert controller.metrics.text_messages == 1

    def test_binary_message_reports_size(self, make_controller, jobs, transport_factory, statuses):
        controller = make_controller()
        transport = connect(controller, jobs, transport_factory)

        transport.on_message(b"\x00\x01\x02\x03")
        jobs.drain()

        assert statuses[-1] == "Binary Message: 4 bytes"

    def test_unknown_message_is_error_but_not_fatal(self, make_controller, jobs, transport_factory, statuses):
        controller = make_controller()
        transport = connect(controller, jobs, transport_factory)

        transport.on_message(12345)
        jobs.drain()

        assert statuses[-1] == "Error: Unknown message type int"
        assert controller.state == ConnectionState.CONNECTED
        assert transport.close_calls == 0


class TestStaleSockets:

    def test_events_from_replaced_socket_are_ignored(self, make_controller, jobs, transport_factory):
        controller = make_controller()
        old = connect(controller, jobs, transport_factory)
        old.on_error("dropped")
        jobs.drain()

        new = connect(controller, jobs, transport_factory)
        assert new is not old

        old.on_error("late error")
        old.on_close()
        jobs.drain()

        assert controller.state == ConnectionState.CONNECTED
        assert new.close_calls == 0

    def test_error_from_replaced_attempt_is_still_reported(self, make_controller, jobs, transport_factory, statuses):
        controller = make_controller()
        controller.tick(0.016)
        old = transport_factory.last

        # Close clears the connecting flag at once, so the next tick starts a
        # new attempt before the old error job is drained
        old.fail("handshake timed out")
        controller.tick(0.016)
        new = transport_factory.last
        jobs.drain()

        assert new is not old
        assert "Error: handshake timed out" in statuses
        assert "Error: Closed" not in statuses
        assert controller.metrics.errors == 1
        assert controller.state == ConnectionState.CONNECTING
        assert new.close_calls == 0


class TestConnectFailures:

    @pytest.fixture
    def failing_factory(self):
        calls = []

        def _factory(url, **callbacks):
            calls.append(url)
            raise OSError("no route to host")

        _factory.calls = calls
        return _factory

    def test_factory_error_returns_to_idle_and_retries(self, jobs, failing_factory, statuses):
        controller = ConnectionController(
            hosts=["a.local:8181"],
            jobs=jobs,
            retry_interval=0.0,
            initial_retry_delay=0.0,
            transport_factory=failing_factory,
            on_status=statuses.append,
        )

        for _ in range(4):
            controller.tick(0.016)
            assert controller.state == ConnectionState.IDLE

        assert len(failing_factory.calls) == 4
        assert controller.metrics.connect_attempts == 4
        assert controller.metrics.errors == 4
        assert statuses[-1] == "Error: no route to host"

    def test_connect_async_error_returns_to_idle(self, jobs, transport_factory, statuses):
        def _factory(url, **callbacks):
            transport = transport_factory(url, **callbacks)

            def refuse():
                raise RuntimeError("can't start new thread")

            transport.connect_async = refuse
            return transport

        controller = ConnectionController(
            hosts=["a.local:8181"],
            jobs=jobs,
            retry_interval=0.0,
            initial_retry_delay=0.0,
            transport_factory=_factory,
            on_status=statuses.append,
        )

        controller.tick(0.016)
        controller.tick(0.016)

        assert controller.state == ConnectionState.IDLE
        assert len(transport_factory.created) == 2
        assert statuses[-1] == "Error: can't start new thread"
        assert len(jobs) == 0
