"""
Data Models
===========

Pydantic models for posecast.

Models:
    Frames:
        - Vector3, Quaternion: Pose primitives
        - JoystickFrame: Pose sample for one controller
        - JoysticksFrame: All controller samples for one tick

    Connection:
        - ConnectionState: Enum of connection lifecycle states
"""

from posecast.models.frame import JoystickFrame, JoysticksFrame, Quaternion, Vector3
from posecast.models.connection import ConnectionState

__all__ = [
    # Frames
    "Vector3",
    "Quaternion",
    "JoystickFrame",
    "JoysticksFrame",
    # Connection
    "ConnectionState",
]
