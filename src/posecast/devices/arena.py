"""
Device Slot Arena
=================

Growable, index-keyed store of per-controller objects.

Incoming frames carry one sample per controller slot. The arena maps slot
`i` to a stable object, creating entries lazily (padding any missing lower
slots) the first time a slot is addressed. It has no knowledge of any
rendering framework; `MirroredDevice` is a plain pose holder that a
renderer can read from.

Failures while applying a frame to one slot are logged and reported in the
returned SlotResult list; the remaining slots still update.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from posecast.models.frame import JoystickFrame, Quaternion, Vector3


logger = logging.getLogger(__name__)


T = TypeVar("T")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class SlotResult:
    """Outcome of applying one frame to one slot."""

    index: int
    ok: bool
    error: Optional[str] = None


@dataclass(slots=True)
class MirroredDevice:
    """
    Framework-independent mirror of a tracked controller.

    Attributes:
        name: Display name ("<base> <slot>")
        active: Whether the device is attached (hidden when False)
        position: Last known position
        rotation: Last known orientation
    """

    name: str
    active: bool = False
    position: Vector3 = field(default_factory=Vector3)
    rotation: Quaternion = field(default_factory=Quaternion)


def mirror_joystick(device: MirroredDevice, frame: JoystickFrame) -> None:
    """Copy attachment and pose from a joystick sample onto a device."""
    device.active = frame.attached
    device.position = frame.position
    device.rotation = frame.rotation


class DeviceArena(Generic[T]):
    """
    Slot-indexed arena with lazily created entries.

    Example:
        arena = DeviceArena(lambda i: MirroredDevice(name=f"Controller {i}"))

        results = arena.update_all(frame.joysticks, mirror_joystick)
        failed = [r for r in results if not r.ok]
    """

    def __init__(self, factory: Callable[[int], T]) -> None:
        """
        Initialize arena.

        Args:
            factory: Builds the entry for a slot index
        """
        self._factory = factory
        self._entries: List[T] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def get(self, index: int) -> T:
        """
        Get the entry for a slot, creating it (and any lower slots) if needed.

        Raises:
            IndexError: If index is negative
        """
        if index < 0:
            raise IndexError(f"slot index must be >= 0, got {index}")

        while len(self._entries) < index + 1:
            new_index = len(self._entries)
            self._entries.append(self._factory(new_index))
            logger.debug(f"Created device slot {new_index}")

        return self._entries[index]

    def update_all(
        self,
        frames: Sequence[F],
        apply: Callable[[T, F], None],
    ) -> List[SlotResult]:
        """
        Apply frames[i] to slot i for every frame.

        Args:
            frames: One frame per slot
            apply: Mutates an entry from a frame

        Returns:
            One SlotResult per frame, in slot order
        """
        results: List[SlotResult] = []
        for index, frame in enumerate(frames):
            try:
                apply(self.get(index), frame)
            except Exception as e:
                logger.warning(f"Device slot {index} update failed: {e}")
                results.append(SlotResult(index=index, ok=False, error=str(e)))
            else:
                results.append(SlotResult(index=index, ok=True))
        return results
