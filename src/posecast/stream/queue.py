"""
Staged Frame Queue
==================

Two-stage (encode → send) bounded-concurrency queue for outgoing frames.

Frames are pushed into the encode stage by the producer. Each tick the
control loop calls `encode()` and `send()`, each of which advances at most
ONE item. In-flight work per stage is capped, so a slow encoder or a slow
network never makes the control loop wait; pending items simply stay queued.

Backpressure (only_send_latest):
    When enabled, a stage holding more than one pending item is truncated to
    its most recently pushed item right before dequeuing. Older items are
    discarded and never reach the encoder or the sender. Truncation drops,
    it never reorders.

Design Rules:
    - push() never blocks and never fails
    - encode()/send() never block the calling thread
    - In-flight counters never exceed their maxima and never go negative
    - Failed sends are NOT retried or requeued (best-effort delivery)
    - Keyframes get no special treatment from truncation

Example:
    queue = StagedFrameQueue(
        encode_fn=JsonFrameEncoder(),
        send_fn=controller.send,
        only_send_latest=True,
    )

    queue.push(frame)

    # Once per tick
    queue.encode(run_async=False)
    queue.send()
"""

import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Deque, Generic, Optional, TypeVar


logger = logging.getLogger(__name__)


InT = TypeVar("InT")
OutT = TypeVar("OutT")

CompletionCallback = Callable[[bool], None]
SendFunction = Callable[[OutT, CompletionCallback], None]

# Returned by _pop_next for an empty stage (None is a legal item)
_EMPTY = object()


class AtomicCounter:
    """Lock-protected integer counter, safe to update from any thread."""

    __slots__ = ("_value", "_lock")

    def __init__(self, value: int = 0) -> None:
        self._value = value
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    def decrement(self) -> int:
        with self._lock:
            if self._value <= 0:
                raise RuntimeError("counter decremented below zero")
            self._value -= 1
            return self._value


class StagedFrameQueueMetrics:
    """Counters for StagedFrameQueue observability."""

    __slots__ = (
        "pushed",
        "encoded",
        "encode_failures",
        "sent",
        "send_failures",
        "discarded",
    )

    def __init__(self) -> None:
        self.pushed: int = 0
        self.encoded: int = 0
        self.encode_failures: int = 0
        self.sent: int = 0
        self.send_failures: int = 0
        self.discarded: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "pushed": self.pushed,
            "encoded": self.encoded,
            "encode_failures": self.encode_failures,
            "sent": self.sent,
            "send_failures": self.send_failures,
            "discarded": self.discarded,
        }


class StagedFrameQueue(Generic[InT, OutT]):
    """
    Bounded two-stage frame pipeline, generic over input and output types.

    The encode stage turns InT frames into OutT payloads with `encode_fn`.
    The send stage hands payloads to `send_fn(payload, on_complete)`, which
    must eventually call `on_complete(success)` exactly once.

    Attributes:
        max_encode_concurrent: Cap on in-flight encodes
        max_send_concurrent: Cap on in-flight sends
        only_send_latest: Keep-latest backpressure policy
        metrics: Operational counters
    """

    def __init__(
        self,
        encode_fn: Callable[[InT], OutT],
        send_fn: SendFunction,
        max_encode_concurrent: int = 3,
        max_send_concurrent: int = 3,
        only_send_latest: bool = False,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        """
        Initialize the staged queue.

        Args:
            encode_fn: Encoder port, InT -> OutT
            send_fn: Sender port, (OutT, on_complete) -> None
            max_encode_concurrent: Max simultaneous encodes. Must be >= 1.
            max_send_concurrent: Max simultaneous sends. Must be >= 1.
            only_send_latest: Discard all but the newest pending item
            executor: Worker pool for async encodes. Created lazily
                (sized to max_encode_concurrent) if not supplied.
        """
        if max_encode_concurrent < 1:
            raise ValueError("max_encode_concurrent must be >= 1")
        if max_send_concurrent < 1:
            raise ValueError("max_send_concurrent must be >= 1")

        self._encode_fn = encode_fn
        self._send_fn = send_fn
        self.max_encode_concurrent = max_encode_concurrent
        self.max_send_concurrent = max_send_concurrent
        self.only_send_latest = only_send_latest

        self._encode_queue: Deque[InT] = deque()
        self._send_queue: Deque[OutT] = deque()
        self._lock = threading.Lock()

        self._encode_in_flight = AtomicCounter()
        self._send_in_flight = AtomicCounter()

        self._executor = executor
        self._owns_executor = executor is None

        self.metrics = StagedFrameQueueMetrics()

    @property
    def pending_encode(self) -> int:
        """Frames waiting for the encode stage."""
        with self._lock:
            return len(self._encode_queue)

    @property
    def pending_send(self) -> int:
        """Payloads waiting for the send stage."""
        with self._lock:
            return len(self._send_queue)

    @property
    def encode_in_flight(self) -> int:
        return self._encode_in_flight.value

    @property
    def send_in_flight(self) -> int:
        return self._send_in_flight.value

    def push(self, frame: InT) -> None:
        """Append a frame to the encode stage. Ownership moves to the queue."""
        with self._lock:
            self._encode_queue.append(frame)
            self.metrics.pushed += 1

    def encode(self, run_async: bool = False) -> bool:
        """
        Advance at most one frame from the encode stage.

        Args:
            run_async: Run the encoder on the worker pool instead of inline

        Returns:
            True if a frame was dequeued for encoding, False on no-op
            (stage saturated or empty).
        """
        if self._encode_in_flight.value >= self.max_encode_concurrent:
            return False

        frame = self._pop_next(self._encode_queue)
        if frame is _EMPTY:
            return False

        self._encode_in_flight.increment()

        if run_async:
            self._get_executor().submit(self._run_encode, frame)
        else:
            self._run_encode(frame)
        return True

    def send(self) -> bool:
        """
        Advance at most one payload from the send stage to the sender.

        Returns:
            True if a payload was handed to the sender, False on no-op.
        """
        if self._send_in_flight.value >= self.max_send_concurrent:
            return False

        payload = self._pop_next(self._send_queue)
        if payload is _EMPTY:
            return False

        self._send_in_flight.increment()
        self._send_fn(payload, self._make_completion())
        return True

    def clear(self) -> int:
        """
        Drop all pending (not in-flight) items from both stages.

        Returns:
            Number of items cleared.
        """
        with self._lock:
            cleared = len(self._encode_queue) + len(self._send_queue)
            self._encode_queue.clear()
            self._send_queue.clear()
        return cleared

    def close(self) -> None:
        """Shut down the worker pool if this queue created it."""
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=False)
            self._executor = None

    def stats(self) -> dict:
        """
        Get queue metrics for observability.

        Returns:
            Dict with pending/in-flight counts and lifetime totals
        """
        return {
            "pending_encode": self.pending_encode,
            "pending_send": self.pending_send,
            "encode_in_flight": self.encode_in_flight,
            "send_in_flight": self.send_in_flight,
            **self.metrics.to_dict(),
        }

    def _pop_next(self, queue: Deque) -> object:
        """Pop the front item, truncating to the newest first if configured."""
        with self._lock:
            if not queue:
                return _EMPTY
            if self.only_send_latest and len(queue) > 1:
                discarded = len(queue) - 1
                latest = queue[-1]
                queue.clear()
                queue.append(latest)
                self.metrics.discarded += discarded
                logger.debug(f"Latest-only: discarded {discarded} stale item(s)")
            return queue.popleft()

    def _run_encode(self, frame: InT) -> None:
        try:
            output = self._encode_fn(frame)
        except Exception:
            logger.exception("Encoder raised, dropping frame")
            with self._lock:
                self.metrics.encode_failures += 1
            self._encode_in_flight.decrement()
            return

        self._encode_in_flight.decrement()
        with self._lock:
            self._send_queue.append(output)
            self.metrics.encoded += 1

    def _make_completion(self) -> CompletionCallback:
        """Build a send completion that releases its slot exactly once."""
        guard = threading.Lock()
        released = False

        def on_complete(success: bool) -> None:
            nonlocal released
            with guard:
                if released:
                    logger.warning("Send completion invoked more than once, ignoring")
                    return
                released = True

            self._send_in_flight.decrement()
            with self._lock:
                if success:
                    self.metrics.sent += 1
                else:
                    self.metrics.send_failures += 1

        return on_complete

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_encode_concurrent,
                thread_name_prefix="posecast-encode",
            )
        return self._executor
