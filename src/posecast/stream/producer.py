"""
Frame Producer
==============

Rate-limited entry point that turns per-tick joystick samples into queued
frames.

The embedding application calls `send()` at its own frame rate (often
faster than the network should carry). Non-keyframes arriving sooner than
1 / send_frame_rate seconds after the last accepted frame are dropped before
they reach the queue. Keyframes always go through.
"""

import logging
import time
from typing import Callable, Optional, Sequence

from posecast.models.frame import JoystickFrame, JoysticksFrame
from posecast.stream.queue import StagedFrameQueue


logger = logging.getLogger(__name__)


class FrameProducer:
    """
    Builds JoysticksFrames and pushes them into a StagedFrameQueue.

    Attributes:
        queue: Destination queue
        send_frame_rate: Maximum non-keyframe rate (Hz)
        accepted_count: Frames pushed into the queue
        rate_limited_count: Frames dropped by the rate limit

    Example:
        producer = FrameProducer(queue, send_frame_rate=30)

        # Called every render frame
        producer.send(joysticks)
    """

    def __init__(
        self,
        queue: StagedFrameQueue,
        send_frame_rate: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize frame producer.

        Args:
            queue: StagedFrameQueue to push accepted frames into
            send_frame_rate: Frames per second allowed through. Must be > 0.
            clock: Time source in seconds
        """
        if send_frame_rate <= 0:
            raise ValueError("send_frame_rate must be positive")

        self.queue = queue
        self.send_frame_rate = send_frame_rate
        self._clock = clock
        self._last_send_time: Optional[float] = None

        self.accepted_count: int = 0
        self.rate_limited_count: int = 0

    @property
    def send_delay(self) -> float:
        """Minimum seconds between accepted non-keyframes."""
        return 1.0 / self.send_frame_rate

    def send(self, joysticks: Sequence[JoystickFrame]) -> bool:
        """
        Offer one tick of joystick samples to the pipeline.

        Args:
            joysticks: Pose sample per controller slot

        Returns:
            True if the frame was queued, False if rate limited.
        """
        return self.submit(JoysticksFrame(joysticks=list(joysticks)))

    def submit(self, frame: JoysticksFrame) -> bool:
        """Rate-limit and queue an already built frame."""
        now = self._clock()
        keyframe = frame.is_keyframe()

        if self._last_send_time is not None and not keyframe:
            if now - self._last_send_time < self.send_delay:
                self.rate_limited_count += 1
                return False

        if keyframe:
            logger.debug("Keyframe")

        self.queue.push(frame)
        self._last_send_time = now
        self.accepted_count += 1
        return True
