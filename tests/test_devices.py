"""
Device Arena Tests
==================
"""

import pytest

from posecast.devices.arena import DeviceArena, MirroredDevice, mirror_joystick
from posecast.models.frame import JoystickFrame, Quaternion, Vector3


@pytest.fixture
def arena():
    return DeviceArena(lambda i: MirroredDevice(name=f"Controller {i}"))


class TestDeviceArena:

    def test_lazily_pads_slots(self, arena):
        device = arena.get(2)

        assert device.name == "Controller 2"
        assert len(arena) == 3
        assert [d.name for d in arena] == ["Controller 0", "Controller 1", "Controller 2"]

    def test_entries_are_stable(self, arena):
        assert arena.get(1) is arena.get(1)

    def test_negative_index(self, arena):
        with pytest.raises(IndexError):
            arena.get(-1)

    def test_update_all_mirrors_pose(self, arena):
        frames = [
            JoystickFrame(attached=True, position=Vector3(x=1.0), rotation=Quaternion(y=1.0, w=0.0)),
            JoystickFrame(attached=False),
        ]

        results = arena.update_all(frames, mirror_joystick)

        assert [r.ok for r in results] == [True, True]
        assert arena.get(0).active is True
        assert arena.get(0).position.x == 1.0
        assert arena.get(0).rotation.y == 1.0
        assert arena.get(1).active is False

    def test_failing_slot_is_reported_and_skipped(self, arena, caplog):
        def apply(device, value):
            if value is None:
                raise ValueError("no sample")
            device.active = value

        with caplog.at_level("WARNING"):
            results = arena.update_all([True, None, True], apply)

        assert [r.ok for r in results] == [True, False, True]
        assert results[1].error == "no sample"
        assert arena.get(2).active is True
        assert "Device slot 1 update failed" in caplog.text
