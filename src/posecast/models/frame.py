"""
Pose Frame Models
=================

This module defines the pose samples that flow through the streaming pipeline.

A JoysticksFrame is the unit pushed into the staged queue. It bundles one
JoystickFrame per tracked device and is serialized to JSON by the encode stage.

Output Contract (default JSON encoder, indent=2):
    {
      "joysticks": [
        {
          "attached": true,
          "position": {"x": 0.1, "y": 1.2, "z": -0.3},
          "rotation": {"x": 0.0, "y": 0.0, "z": 0.0, "w": 1.0},
          "keyframe": false
        }
      ]
    }

Keyframes:
    A frame is a keyframe when any of its joysticks is flagged as one
    (e.g. a device was attached/detached or a button changed state).
    Keyframes bypass the producer's frame-rate limit.

Example:
    from posecast.models.frame import JoystickFrame, JoysticksFrame, Vector3

    frame = JoysticksFrame(joysticks=[
        JoystickFrame(attached=True, position=Vector3(x=0.0, y=1.0, z=0.0)),
    ])
    frame.is_keyframe()  # False
"""

from typing import List

from pydantic import BaseModel, Field


class Vector3(BaseModel):
    """Position in metres, tracking-space coordinates."""

    x: float = Field(default=0.0, description="X component")
    y: float = Field(default=0.0, description="Y component")
    z: float = Field(default=0.0, description="Z component")

    class Config:
        """Pydantic model configuration."""

        frozen = True


class Quaternion(BaseModel):
    """Orientation as a unit quaternion (identity by default)."""

    x: float = Field(default=0.0, description="X component")
    y: float = Field(default=0.0, description="Y component")
    z: float = Field(default=0.0, description="Z component")
    w: float = Field(default=1.0, description="W (scalar) component")

    class Config:
        """Pydantic model configuration."""

        frozen = True


class JoystickFrame(BaseModel):
    """
    Pose sample for a single tracked controller.

    Attributes:
        attached: Whether the device is currently connected/tracked
        position: Device position
        rotation: Device orientation
        keyframe: Whether this sample must bypass rate limiting
    """

    attached: bool = Field(
        default=True,
        description="Whether the device is currently tracked",
    )

    position: Vector3 = Field(
        default_factory=Vector3,
        description="Device position (metres)",
    )

    rotation: Quaternion = Field(
        default_factory=Quaternion,
        description="Device orientation",
    )

    keyframe: bool = Field(
        default=False,
        description="Mandatory-to-deliver sample (bypasses rate limiting)",
    )

    class Config:
        """Pydantic model configuration."""

        frozen = True

    def is_keyframe(self) -> bool:
        return self.keyframe


class JoysticksFrame(BaseModel):
    """
    One tick worth of pose samples, indexed by controller slot.

    This is the input type of the default staged queue. It is immutable
    once constructed, so it can be handed to an encode worker thread
    without copying.
    """

    joysticks: List[JoystickFrame] = Field(
        default_factory=list,
        description="Pose sample per controller slot",
    )

    class Config:
        """Pydantic model configuration."""

        frozen = True

    def is_keyframe(self) -> bool:
        """True if any joystick in the frame is a keyframe."""
        return any(j.is_keyframe() for j in self.joysticks)
