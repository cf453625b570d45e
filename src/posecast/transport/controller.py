"""
Connection Controller
=====================

Tick-driven state machine owning the WebSocket connection lifecycle.

States:
    IDLE       - no socket, counting down retry_timeout
    CONNECTING - transport created, handshake in flight
    CONNECTED  - transport active, used by the send stage

Transitions:
    IDLE → CONNECTING:
        retry_timeout <= 0 on tick. The next host is picked round-robin
        (index starts at -1, so the first attempt uses hosts[0]) and
        retry_timeout is reset to retry_interval whatever the outcome.
        An empty host list is reported and the controller stays IDLE.
    CONNECTING → CONNECTED:
        transport open event (marshaled as a job)
    CONNECTING|CONNECTED → IDLE:
        transport error/close event (marshaled as a job). On close, the
        connecting flag is cleared immediately on the callback thread.
        A transport that fails to start (factory or connect_async raising)
        is reported and the controller returns to IDLE at once.

Threading:
    Transport callbacks only put jobs on the JobQueue (plus the single
    connecting-flag write on close). The active socket reference is only
    written by jobs, i.e. on the control loop thread.

Retry policy:
    Fixed interval, no exponential backoff. Rotation advances on every
    attempt, so a single host is simply retried.
"""

import logging
import weakref
from typing import Any, Callable, List, Optional, Sequence

from posecast.models.connection import ConnectionState
from posecast.stream.jobs import JobQueue
from posecast.transport.websocket import Transport, TransportFactory, WebSocketTransport


logger = logging.getLogger(__name__)


StatusCallback = Callable[[str], None]


def _log_status(status: str) -> None:
    logger.info(f"Websocket: {status}")


class ConnectionControllerMetrics:
    """Metrics for ConnectionController observability."""

    __slots__ = (
        "connect_attempts",
        "connections_opened",
        "errors",
        "text_messages",
        "binary_messages",
    )

    def __init__(self) -> None:
        self.connect_attempts: int = 0
        self.connections_opened: int = 0
        self.errors: int = 0
        self.text_messages: int = 0
        self.binary_messages: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "connect_attempts": self.connect_attempts,
            "connections_opened": self.connections_opened,
            "errors": self.errors,
            "text_messages": self.text_messages,
            "binary_messages": self.binary_messages,
        }


class ConnectionController:
    """
    Connection lifecycle manager with multi-host rotation and fixed retry.

    Attributes:
        hosts: Ordered "host:port" list to rotate through
        retry_interval: Seconds between connect attempts while idle
        status: Last reported status string
        metrics: Operational counters

    Example:
        jobs = JobQueue()
        controller = ConnectionController(
            hosts=["10.0.0.5:8181", "localhost:8181"],
            jobs=jobs,
            retry_interval=5.0,
        )

        # Control loop
        controller.tick(delta_seconds)
        jobs.drain()
    """

    def __init__(
        self,
        hosts: Sequence[str],
        jobs: JobQueue,
        retry_interval: float = 5.0,
        initial_retry_delay: float = 1.0,
        transport_factory: Optional[TransportFactory] = None,
        on_status: Optional[StatusCallback] = None,
        scheme: str = "ws",
        ping_interval: Optional[float] = 10.0,
        open_timeout: Optional[float] = 10.0,
    ) -> None:
        """
        Initialize connection controller.

        Args:
            hosts: Host addresses ("host:port[/path]"), tried in order
            jobs: JobQueue drained by the control loop
            retry_interval: Seconds between connect attempts
            initial_retry_delay: Seconds before the very first attempt
            transport_factory: Builds a Transport for a URL and callbacks.
                Defaults to WebSocketTransport.
            on_status: Receives status strings. Defaults to logging them.
            scheme: URL scheme prefixed to the host
            ping_interval: Protocol ping interval for the default transport
            open_timeout: Handshake timeout for the default transport
        """
        if retry_interval < 0:
            raise ValueError("retry_interval must be >= 0")

        self.hosts: List[str] = list(hosts)
        self.jobs = jobs
        self.retry_interval = retry_interval
        self.scheme = scheme
        self.ping_interval = ping_interval
        self.open_timeout = open_timeout

        self._transport_factory = transport_factory or self._default_transport
        self._on_status = on_status or _log_status

        # State
        self._socket: Optional[Transport] = None
        self._pending: Optional[Transport] = None
        self._connecting: bool = False
        self._current_host_index: int = -1
        self._retry_timeout: float = initial_retry_delay
        # Transports whose failure has already been reported
        self._finished: "weakref.WeakSet[Transport]" = weakref.WeakSet()

        self.status: str = ""
        self.metrics = ConnectionControllerMetrics()

    @property
    def state(self) -> ConnectionState:
        if self._socket is not None:
            return ConnectionState.CONNECTED
        if self._connecting:
            return ConnectionState.CONNECTING
        return ConnectionState.IDLE

    @property
    def connected(self) -> bool:
        """Whether a socket is active for sends."""
        return self._socket is not None

    @property
    def current_host_index(self) -> int:
        return self._current_host_index

    @property
    def retry_timeout(self) -> float:
        """Seconds remaining before the next connect attempt."""
        return self._retry_timeout

    def current_host(self) -> Optional[str]:
        if not self.hosts or self._current_host_index < 0:
            return None
        return self.hosts[self._current_host_index]

    def set_host(self, host: str) -> None:
        """Replace the host list with a single host."""
        self.hosts = [host]
        self._current_host_index = -1

    def tick(self, delta_seconds: float) -> None:
        """
        Advance the retry timer; attempt a connect when it expires.

        Args:
            delta_seconds: Time elapsed since the previous tick
        """
        if self._socket is not None:
            return

        if self._retry_timeout <= 0:
            self.connect()
            self._retry_timeout = self.retry_interval
        else:
            self._retry_timeout -= delta_seconds

    def connect(self) -> None:
        """Start connecting to the next host (no-op if busy)."""
        if self._socket is not None:
            return

        if self._connecting:
            return

        if not self.hosts:
            self._set_status("No hosts specified")
            return

        self._current_host_index += 1
        if self._current_host_index >= len(self.hosts):
            self._current_host_index = 0

        host = self.current_host()
        self._set_status(f"Connecting to {host}...")
        logger.info(f"Trying to connect to: {host}")

        self.metrics.connect_attempts += 1
        self._connecting = True

        transport: Optional[Transport] = None

        def on_open() -> None:
            self.jobs.put(lambda: self._handle_open(transport))

        def on_error(message: str) -> None:
            self.jobs.put(lambda: self._handle_error(transport, message, close=True))

        def on_close() -> None:
            if transport is self._pending:
                self._connecting = False
            self.jobs.put(lambda: self._handle_error(transport, "Closed", close=True))

        def on_message(data: Any) -> None:
            self.jobs.put(lambda: self._handle_message(transport, data))

        try:
            transport = self._transport_factory(
                f"{self.scheme}://{host}",
                on_open=on_open,
                on_error=on_error,
                on_close=on_close,
                on_message=on_message,
            )
            self._pending = transport
            transport.connect_async()
        except Exception as e:
            logger.exception(f"Failed to start connection to {host}")
            self.metrics.errors += 1
            self._set_status(f"Error: {e}")
            if transport is not None:
                self._finished.add(transport)
            self._pending = None
            self._connecting = False

    def send(self, data: Any, on_complete: Callable[[bool], None]) -> None:
        """
        Sender port for the staged queue.

        Args:
            data: Encoded payload
            on_complete: Called with the send outcome, False if not connected
        """
        socket = self._socket
        if socket is not None:
            socket.send_async(data, on_complete)
        else:
            on_complete(False)

    def close(self) -> None:
        """Close active and pending sockets (application shutdown)."""
        for transport in (self._socket, self._pending):
            if transport is not None:
                self._finished.add(transport)
                transport.close()
        self._socket = None
        self._pending = None
        self._connecting = False

    def stats(self) -> dict:
        """
        Get controller metrics for observability.

        Returns:
            Dict with state, host and counters
        """
        return {
            "state": self.state.value,
            "host": self.current_host(),
            "retry_timeout": self._retry_timeout,
            **self.metrics.to_dict(),
        }

    def _is_current(self, transport: Optional[Transport]) -> bool:
        return transport is not None and (
            transport is self._socket or transport is self._pending
        )

    def _handle_open(self, transport: Transport) -> None:
        if not self._is_current(transport):
            logger.debug("Ignoring open from stale socket")
            self._finished.add(transport)
            transport.close()
            return

        self._socket = transport
        self._pending = None
        self._connecting = False
        self.metrics.connections_opened += 1
        self._set_status("Connected")

    def _handle_message(self, transport: Transport, data: Any) -> None:
        if not self._is_current(transport):
            return

        if isinstance(data, str):
            self.metrics.text_messages += 1
            logger.info(f"Message: {data}")
        elif isinstance(data, (bytes, bytearray, memoryview)):
            self.metrics.binary_messages += 1
            self._set_status(f"Binary Message: {len(data)} bytes")
        else:
            self._handle_error(
                transport, f"Unknown message type {type(data).__name__}", close=False
            )

    def _handle_error(self, transport: Transport, message: str, close: bool) -> None:
        if transport in self._finished:
            logger.debug(f"Ignoring error from finished socket: {message}")
            return

        self.metrics.errors += 1
        logger.warning(f"Error: {message}")
        self._set_status(f"Error: {message}")

        if not close:
            return

        self._finished.add(transport)
        if transport.is_alive:
            transport.close()

        # Replaced by a newer attempt: report only, keep the current state
        if not self._is_current(transport):
            return

        if transport is self._socket:
            self._socket = None
        if transport is self._pending:
            self._pending = None
        self._connecting = False

    def _set_status(self, status: str) -> None:
        self.status = status
        self._on_status(status)

    def _default_transport(self, url: str, **callbacks: Any) -> Transport:
        return WebSocketTransport(
            url,
            ping_interval=self.ping_interval,
            open_timeout=self.open_timeout,
            **callbacks,
        )
