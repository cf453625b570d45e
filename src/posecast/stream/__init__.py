"""
Stream Module
=============

Outgoing frame pipeline components.

This module provides the production side of posecast:
    - StagedFrameQueue: Bounded encode → send queue with keep-latest policy
    - JobQueue: Thread-safe job marshaling onto the control loop
    - FrameProducer: Rate-limited frame entry point
    - JsonFrameEncoder: Default encoder port (pydantic → JSON)

Example:
    from posecast.stream import FrameProducer, JsonFrameEncoder, StagedFrameQueue

    queue = StagedFrameQueue(JsonFrameEncoder(), send_fn)
    producer = FrameProducer(queue, send_frame_rate=60)

    # Render loop
    producer.send(joysticks)

    # Control loop tick
    queue.encode()
    queue.send()
"""

from posecast.stream.encoding import JsonFrameEncoder
from posecast.stream.jobs import JobQueue
from posecast.stream.producer import FrameProducer
from posecast.stream.queue import AtomicCounter, StagedFrameQueue, StagedFrameQueueMetrics


__all__ = [
    "AtomicCounter",
    "FrameProducer",
    "JobQueue",
    "JsonFrameEncoder",
    "StagedFrameQueue",
    "StagedFrameQueueMetrics",
]
