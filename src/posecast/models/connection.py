"""
Connection State Models
=======================

Discrete lifecycle states for the WebSocket connection.

Transitions:
    IDLE → CONNECTING:      retry timeout expired, next host selected
    CONNECTING → CONNECTED: transport reported open
    CONNECTING|CONNECTED → IDLE: transport reported error or close
"""

from enum import Enum


class ConnectionState(str, Enum):
    """
    Lifecycle states of the connection controller.

    Attributes:
        IDLE: No socket, counting down to the next connect attempt
        CONNECTING: Socket created, handshake in flight
        CONNECTED: Socket active and usable for sends
    """

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
