#!/usr/bin/env python3
"""
Frame Streaming Demo
====================

Standalone script that drives a FrameStreamer from a fixed-tick loop with
synthetic joystick poses.

This script:
    1. Builds a FrameStreamer from config (plus CLI overrides)
    2. Ticks it at a fixed rate for a configurable duration
    3. Emits a keyframe every few seconds (attach/detach toggle)
    4. Logs pipeline stats every report interval

Prerequisites:
    - A WebSocket receiver, e.g. scripts/mock_receiver.py
    - Install the package: pip install -e .

Usage:
    python scripts/stream_demo.py --duration 30
    python scripts/stream_demo.py --host localhost:8181 --only-send-latest
"""

import argparse
import logging
import math
import os
import sys
import time

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from posecast.config import load_config, setup_logging
from posecast.models.frame import JoystickFrame, Quaternion, Vector3
from posecast.streamer import FrameStreamer


logger = logging.getLogger(__name__)


def synthetic_joysticks(t: float, count: int, attached: bool, keyframe: bool):
    """Controllers circling the origin at head height."""
    joysticks = []
    for i in range(count):
        angle = t + i * (2 * math.pi / max(count, 1))
        joysticks.append(JoystickFrame(
            attached=attached,
            position=Vector3(x=0.3 * math.cos(angle), y=1.2, z=0.3 * math.sin(angle)),
            rotation=Quaternion(y=math.sin(angle / 2), w=math.cos(angle / 2)),
            keyframe=keyframe,
        ))
    return joysticks


def run_demo(
    streamer: FrameStreamer,
    duration: float,
    tick_rate: float,
    controllers: int,
    keyframe_interval: float,
    report_interval: float,
) -> dict:
    """
    Run the fixed-tick loop.

    Returns:
        Final stats dict
    """
    tick = 1.0 / tick_rate
    start_time = time.monotonic()
    last_tick = start_time
    last_report = start_time
    last_keyframe = start_time
    attached = True

    try:
        while True:
            now = time.monotonic()
            elapsed = now - start_time
            if elapsed >= duration:
                logger.info(f"Demo duration ({duration}s) reached")
                break

            keyframe = now - last_keyframe >= keyframe_interval
            if keyframe:
                attached = not attached
                last_keyframe = now

            streamer.send(synthetic_joysticks(elapsed, controllers, attached, keyframe))
            streamer.tick(now - last_tick)
            last_tick = now

            if now - last_report >= report_interval:
                stats = streamer.stats()
                logger.info("-" * 40)
                logger.info(f"Progress Report (elapsed: {elapsed:.0f}s)")
                logger.info(f"  State: {stats['connection']['state']} ({streamer.status})")
                logger.info(f"  Accepted: {stats['producer']['accepted']}")
                logger.info(f"  Rate limited: {stats['producer']['rate_limited']}")
                logger.info(f"  Sent: {stats['queue']['sent']}")
                logger.info(f"  Send failures: {stats['queue']['send_failures']}")
                logger.info(f"  Discarded (latest-only): {stats['queue']['discarded']}")
                logger.info(f"  Pending: {stats['queue']['pending_encode']} encode / {stats['queue']['pending_send']} send")
                last_report = now

            time.sleep(max(0.0, tick - (time.monotonic() - now)))

    except KeyboardInterrupt:
        logger.info("Demo interrupted by user")
    finally:
        streamer.close()

    stats = streamer.stats()
    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Connect attempts: {stats['connection']['connect_attempts']}")
    logger.info(f"Connections opened: {stats['connection']['connections_opened']}")
    logger.info(f"Frames sent: {stats['queue']['sent']}")
    logger.info(f"Send failures: {stats['queue']['send_failures']}")
    logger.info("=" * 60)
    return stats


def main():
    parser = argparse.ArgumentParser(description="posecast frame streaming demo")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--host", action="append", default=None, help="Host (repeatable)")
    parser.add_argument("--duration", type=float, default=30, help="Seconds to run (default: 30)")
    parser.add_argument("--tick-rate", type=float, default=90, help="Control loop rate Hz (default: 90)")
    parser.add_argument("--controllers", type=int, default=2, help="Synthetic controllers (default: 2)")
    parser.add_argument("--keyframe-interval", type=float, default=3, help="Seconds between keyframes")
    parser.add_argument("--report-interval", type=float, default=5, help="Seconds between reports")
    parser.add_argument("--only-send-latest", action="store_true", help="Enable keep-latest backpressure")

    args = parser.parse_args()

    settings = load_config(args.config)
    if args.host:
        settings.connection.hosts = args.host
    if args.only_send_latest:
        settings.queue.only_send_latest = True
    setup_logging(settings)

    stats = run_demo(
        FrameStreamer.from_settings(settings),
        duration=args.duration,
        tick_rate=args.tick_rate,
        controllers=args.controllers,
        keyframe_interval=args.keyframe_interval,
        report_interval=args.report_interval,
    )

    sys.exit(0 if stats["queue"]["sent"] > 0 else 1)


if __name__ == "__main__":
    main()
