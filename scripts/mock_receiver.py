#!/usr/bin/env python3
"""
Mock Frame Receiver
===================

Minimal WebSocket server that accepts posecast frames and logs a summary.

Usage:
    python scripts/mock_receiver.py --port 8181
    python scripts/mock_receiver.py --port 8181 --echo-binary
"""

import argparse
import asyncio
import json
import logging
import time

import websockets


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger("mock_receiver")


async def handle(websocket, echo_binary: bool) -> None:
    peer = websocket.remote_address
    logger.info(f"Client connected: {peer}")
    received = 0
    keyframes = 0
    last_report = time.monotonic()

    try:
        async for message in websocket:
            received += 1
            try:
                frame = json.loads(message)
            except (TypeError, json.JSONDecodeError) as e:
                logger.warning(f"Unparseable frame: {e}")
                continue

            if any(j.get("keyframe") for j in frame.get("joysticks", [])):
                keyframes += 1

            if echo_binary:
                await websocket.send(len(message).to_bytes(4, "little"))

            now = time.monotonic()
            if now - last_report >= 5:
                logger.info(f"{peer}: {received} frames ({keyframes} keyframes)")
                last_report = now
    except websockets.exceptions.ConnectionClosed as e:
        logger.info(f"Connection closed: {e}")
    finally:
        logger.info(f"Client disconnected: {peer} after {received} frames")


async def serve(host: str, port: int, echo_binary: bool) -> None:
    async with websockets.serve(lambda ws: handle(ws, echo_binary), host, port):
        logger.info(f"Listening on ws://{host}:{port}")
        await asyncio.Future()


def main():
    parser = argparse.ArgumentParser(description="Mock posecast frame receiver")
    parser.add_argument("--host", type=str, default="localhost")
    parser.add_argument("--port", type=int, default=8181)
    parser.add_argument("--echo-binary", action="store_true", help="Reply with a 4-byte length per frame")
    args = parser.parse_args()

    try:
        asyncio.run(serve(args.host, args.port, args.echo_binary))
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    main()
