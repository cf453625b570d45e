"""
WebSocket Transport
===================

Callback-style WebSocket client built on the `websockets` asyncio library.

Each transport owns a daemon I/O thread running its own asyncio event loop.
Connection events and send completions are reported through plain callbacks
invoked ON THAT THREAD; callers that need to touch shared state must
marshal back to their own thread (see posecast.stream.jobs).

Event callbacks:
    on_open()            - handshake completed
    on_error(message)    - handshake failure or mid-stream error
    on_close()           - connection finished (always last, exactly once)
    on_message(data)     - str for text frames, bytes for binary frames

Design Rules:
    - connect_async() and send_async() never block the caller
    - close() is idempotent; closing an already closing socket is a no-op
    - Every send completion fires exactly once, False if not delivered
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Callable, Optional, Protocol, Set

import websockets
from websockets.exceptions import ConnectionClosedOK


logger = logging.getLogger(__name__)


OpenCallback = Callable[[], None]
ErrorCallback = Callable[[str], None]
CloseCallback = Callable[[], None]
MessageCallback = Callable[[Any], None]


class Transport(Protocol):
    """
    Protocol for socket transports driven by the connection controller.

    Implemented by:
        - WebSocketTransport (production)
        - test doubles in tests/
    """

    @property
    def is_alive(self) -> bool:
        """True while the connection is open and not closing."""
        ...

    def connect_async(self) -> None:
        """Begin connecting without blocking."""
        ...

    def send_async(self, data: Any, on_complete: Callable[[bool], None]) -> None:
        """Send data; call on_complete(success) exactly once."""
        ...

    def close(self) -> None:
        """Close the connection if open. Must tolerate repeated calls."""
        ...


TransportFactory = Callable[..., Transport]


class WebSocketTransport:
    """
    WebSocket client running on a dedicated asyncio I/O thread.

    Attributes:
        url: WebSocket URL (ws://host:port/path)
        ping_interval: Seconds between protocol-level pings (None disables)
        open_timeout: Seconds allowed for the opening handshake

    Example:
        transport = WebSocketTransport(
            "ws://localhost:8181",
            on_open=lambda: print("open"),
            on_error=lambda msg: print("error", msg),
            on_close=lambda: print("closed"),
            on_message=print,
        )
        transport.connect_async()
        transport.send_async('{"joysticks": []}', lambda ok: None)
    """

    def __init__(
        self,
        url: str,
        on_open: OpenCallback,
        on_error: ErrorCallback,
        on_close: CloseCallback,
        on_message: MessageCallback,
        ping_interval: Optional[float] = 10.0,
        open_timeout: Optional[float] = 10.0,
    ) -> None:
        self.url = url
        self.ping_interval = ping_interval
        self.open_timeout = open_timeout

        self._on_open = on_open
        self._on_error = on_error
        self._on_close = on_close
        self._on_message = on_message

        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._websocket: Optional[Any] = None
        self._open: bool = False
        self._closing: bool = False
        # Sends scheduled on the loop and not yet completed
        self._outstanding: Set[concurrent.futures.Future] = set()

    @property
    def is_alive(self) -> bool:
        with self._lock:
            return self._open and not self._closing

    def connect_async(self) -> None:
        """Start the I/O thread and begin the opening handshake."""
        with self._lock:
            if self._thread is not None:
                return
            self._thread = threading.Thread(
                target=self._thread_main,
                name=f"posecast-ws-{self.url}",
                daemon=True,
            )
        self._thread.start()

    def send_async(self, data: Any, on_complete: Callable[[bool], None]) -> None:
        """
        Schedule a send on the I/O loop.

        Args:
            data: str (text frame) or bytes (binary frame)
            on_complete: Called with True once sent, False on failure
        """
        future: Optional[concurrent.futures.Future] = None
        with self._lock:
            websocket = self._websocket
            loop = self._loop
            if self._open and not self._closing and websocket is not None and loop is not None:
                # Registered under the lock so _fail_outstanding sees every send
                try:
                    future = asyncio.run_coroutine_threadsafe(websocket.send(data), loop)
                except RuntimeError:
                    logger.debug(f"Send after loop shutdown: {self.url}")
                else:
                    self._outstanding.add(future)

        if future is None:
            on_complete(False)
            return

        def _done(f) -> None:
            with self._lock:
                self._outstanding.discard(f)
            success = not f.cancelled() and f.exception() is None
            if not success and not f.cancelled():
                logger.debug(f"Send failed: {f.exception()}")
            on_complete(success)

        future.add_done_callback(_done)

    def close(self) -> None:
        """Request a graceful close. Repeated calls are ignored."""
        with self._lock:
            if self._closing:
                return
            self._closing = True
            websocket = self._websocket
            loop = self._loop

        if websocket is None or loop is None:
            # Still handshaking; _run closes right after open
            return

        try:
            asyncio.run_coroutine_threadsafe(websocket.close(), loop)
        except RuntimeError:
            logger.debug(f"Close requested after loop shutdown: {self.url}")

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the I/O thread to finish (tests and shutdown)."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _thread_main(self) -> None:
        try:
            asyncio.run(self._run())
        finally:
            self._fail_outstanding()

    def _fail_outstanding(self) -> None:
        """Complete sends the finished loop never ran as failures."""
        with self._lock:
            outstanding, self._outstanding = self._outstanding, set()
        for future in outstanding:
            if future.cancel():
                logger.debug(f"Send dropped at shutdown: {self.url}")

    async def _run(self) -> None:
        with self._lock:
            self._loop = asyncio.get_running_loop()

        try:
            async with websockets.connect(
                self.url,
                ping_interval=self.ping_interval,
                ping_timeout=self.ping_interval,
                open_timeout=self.open_timeout,
                close_timeout=5,
            ) as websocket:
                with self._lock:
                    self._websocket = websocket
                    abort = self._closing
                    self._open = not abort

                if abort:
                    logger.info(f"Close requested during handshake: {self.url}")
                    return

                logger.info(f"Connected: {self.url}")
                self._on_open()

                async for message in websocket:
                    self._on_message(message)

        except ConnectionClosedOK:
            logger.info(f"Connection closed normally: {self.url}")
        except Exception as e:
            logger.warning(f"Connection error ({self.url}): {e}")
            self._on_error(str(e) or type(e).__name__)
        finally:
            with self._lock:
                self._open = False
                self._websocket = None
            self._on_close()
