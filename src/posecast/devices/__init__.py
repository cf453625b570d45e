"""
Devices Module
==============

Slot-indexed mirrors of tracked controllers.
"""

from posecast.devices.arena import DeviceArena, MirroredDevice, SlotResult, mirror_joystick


__all__ = [
    "DeviceArena",
    "MirroredDevice",
    "SlotResult",
    "mirror_joystick",
]
