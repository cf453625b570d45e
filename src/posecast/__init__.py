"""
posecast
========

Streams controller/joystick pose frames to a WebSocket endpoint.

The pipeline is driven by the embedding application's tick and tolerates
network failure without blocking the tick or growing memory without bound.

Components:
    - models: Pose frames and connection states
    - stream: Staged encode → send queue, job marshaling, rate-limited producer
    - transport: WebSocket transport and connection lifecycle controller
    - devices: Slot-indexed controller mirrors
    - streamer: FrameStreamer façade wiring it all together

Example:
    from posecast.config import load_config
    from posecast.streamer import FrameStreamer

    streamer = FrameStreamer.from_settings(load_config())
    streamer.send(joysticks)
    streamer.tick(1 / 60)
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
