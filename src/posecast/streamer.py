"""
Frame Streamer
==============

Embedding façade that wires the pipeline to a single control loop.

The host application owns the loop (a game/render tick). It calls:
    - send(joysticks) whenever new pose samples are available
    - tick(delta_seconds) once per loop iteration
    - close() on shutdown

Each tick runs, in order:
    1. Connection retry timer (may start a connect attempt)
    2. Job drain (transport events marshaled from the I/O thread)
    3. One encode step
    4. One send step

Nothing here blocks; frames that cannot be carried are dropped by the
producer's rate limit or by the queue's keep-latest policy.
"""

import logging
from typing import Optional, Sequence

from posecast.config import Settings
from posecast.models.connection import ConnectionState
from posecast.models.frame import JoystickFrame, JoysticksFrame
from posecast.stream.encoding import Encoder, JsonFrameEncoder
from posecast.stream.jobs import JobQueue
from posecast.stream.producer import FrameProducer
from posecast.stream.queue import StagedFrameQueue
from posecast.transport.controller import ConnectionController, StatusCallback
from posecast.transport.websocket import TransportFactory


logger = logging.getLogger(__name__)


class FrameStreamer:
    """
    Streams joystick pose frames to a WebSocket endpoint.

    Attributes:
        jobs: Job marshaling queue drained every tick
        controller: Connection lifecycle manager (also the sender port)
        queue: Staged encode → send queue
        producer: Rate-limited frame entry point
        async_encode: Run encodes on worker threads

    Example:
        streamer = FrameStreamer.from_settings(load_config())

        while running:
            streamer.send(read_joysticks())
            streamer.tick(dt)

        streamer.close()
    """

    def __init__(
        self,
        controller: ConnectionController,
        jobs: JobQueue,
        queue: StagedFrameQueue,
        producer: FrameProducer,
        async_encode: bool = False,
    ) -> None:
        self.controller = controller
        self.jobs = jobs
        self.queue = queue
        self.producer = producer
        self.async_encode = async_encode

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        encoder: Optional[Encoder] = None,
        transport_factory: Optional[TransportFactory] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> "FrameStreamer":
        """
        Build a streamer from configuration.

        Args:
            settings: Loaded Settings
            encoder: Encoder port; defaults to JsonFrameEncoder
            transport_factory: Override the WebSocket transport (tests)
            on_status: Status string sink; defaults to logging

        Returns:
            Fully wired FrameStreamer
        """
        conn = settings.connection
        jobs = JobQueue()
        controller = ConnectionController(
            hosts=conn.hosts,
            jobs=jobs,
            retry_interval=conn.retry_interval_seconds,
            initial_retry_delay=conn.initial_retry_delay_seconds,
            transport_factory=transport_factory,
            on_status=on_status,
            scheme=conn.scheme,
            ping_interval=conn.ping_interval_seconds,
            open_timeout=conn.open_timeout_seconds,
        )

        queue: StagedFrameQueue[JoysticksFrame, str] = StagedFrameQueue(
            encode_fn=encoder or JsonFrameEncoder(indent=settings.encoding.indent),
            send_fn=controller.send,
            max_encode_concurrent=settings.queue.max_encode_concurrent,
            max_send_concurrent=settings.queue.max_send_concurrent,
            only_send_latest=settings.queue.only_send_latest,
        )

        producer = FrameProducer(queue, send_frame_rate=settings.producer.send_frame_rate)

        logger.info(
            f"FrameStreamer initialized: hosts={conn.hosts}, "
            f"rate={settings.producer.send_frame_rate}Hz, "
            f"only_send_latest={settings.queue.only_send_latest}"
        )

        return cls(
            controller=controller,
            jobs=jobs,
            queue=queue,
            producer=producer,
            async_encode=settings.queue.async_encode,
        )

    @property
    def state(self) -> ConnectionState:
        return self.controller.state

    @property
    def status(self) -> str:
        """Last status string (connecting, connected, error text...)."""
        return self.controller.status

    def set_host(self, host: str) -> None:
        self.controller.set_host(host)

    def send(self, joysticks: Sequence[JoystickFrame]) -> bool:
        """
        Offer pose samples for streaming.

        Returns:
            True if queued, False if dropped by the rate limit.
        """
        return self.producer.send(joysticks)

    def tick(self, delta_seconds: float) -> None:
        """Run one control loop iteration. Never blocks."""
        self.controller.tick(delta_seconds)
        self.jobs.drain()
        self.queue.encode(run_async=self.async_encode)
        self.queue.send()

    def close(self) -> None:
        """Close the connection and release worker threads. Pending frames are dropped."""
        logger.info("FrameStreamer closing")
        self.controller.close()
        dropped = self.queue.clear()
        if dropped:
            logger.info(f"Dropped {dropped} pending frame(s)")
        self.queue.close()

    def stats(self) -> dict:
        """
        Get combined pipeline metrics.

        Returns:
            Dict with connection, queue and producer sections
        """
        return {
            "connection": self.controller.stats(),
            "queue": self.queue.stats(),
            "producer": {
                "accepted": self.producer.accepted_count,
                "rate_limited": self.producer.rate_limited_count,
            },
            "failed_jobs": self.jobs.failed_count,
        }
