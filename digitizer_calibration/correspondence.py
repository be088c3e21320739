"""Device/screen correspondences and the fixed order in which they are collected."""

import numbers
from dataclasses import dataclass
from enum import IntEnum

from digitizer_calibration.types import DeviceUnits, Pixels


class TargetCorner(IntEnum):
    """Calibration targets, in the order the user is asked to press them."""

    UPPER_LEFT = 0
    LOWER_LEFT = 1
    UPPER_RIGHT = 2
    LOWER_RIGHT = 3


NUM_POINTS = len(TargetCorner)


@dataclass(frozen=True)
class Correspondence:
    """One observed pair of raw device coordinates and intended screen position.

    Attributes:
        device_x: Raw X reported by the digitizer.
        device_y: Raw Y reported by the digitizer.
        screen_x: X of the target that was displayed, in pixels.
        screen_y: Y of the target that was displayed, in pixels.
    """

    device_x: DeviceUnits
    device_y: DeviceUnits
    screen_x: Pixels
    screen_y: Pixels

    def __post_init__(self) -> None:
        for name in ("device_x", "device_y", "screen_x", "screen_y"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            # numpy integers would silently wrap in the 64-bit replay
            object.__setattr__(self, name, int(value))

    @property
    def device(self) -> tuple[int, int]:
        return (self.device_x, self.device_y)

    @property
    def screen(self) -> tuple[int, int]:
        return (self.screen_x, self.screen_y)
