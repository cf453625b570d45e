"""
Transport Module
================

Socket transport and connection lifecycle management.

    - Transport: Protocol implemented by socket transports
    - WebSocketTransport: websockets-based client on its own I/O thread
    - ConnectionController: Host rotation, fixed retry, event marshaling
"""

from posecast.transport.websocket import Transport, WebSocketTransport
from posecast.transport.controller import ConnectionController, ConnectionControllerMetrics


__all__ = [
    "ConnectionController",
    "ConnectionControllerMetrics",
    "Transport",
    "WebSocketTransport",
]
