"""
Screen geometry and the active calibration zone.

The zone is the axis-aligned rectangle of the screen that the digitizer is
mapped onto. When it covers the whole screen it is "unrestricted" and the
compositor transform collapses to the identity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from digitizer_calibration.types import Pixels


@dataclass(frozen=True)
class ScreenGeometry:
    """Detected screen resolution, rotation already applied.

    Attributes:
        width: Screen width in pixels.
        height: Screen height in pixels.
    """

    width: Pixels
    height: Pixels

    def __post_init__(self) -> None:
        if self.width <= 0:
            raise ValueError(f"width must be positive, got {self.width}")
        if self.height <= 0:
            raise ValueError(f"height must be positive, got {self.height}")


@dataclass(frozen=True)
class Zone:
    """Active zone of the screen.

    Attributes:
        min_x: Left edge, inclusive.
        min_y: Top edge, inclusive.
        max_x: Right edge, inclusive.
        max_y: Bottom edge, inclusive.
        is_restricted: False when the zone equals the full screen.
    """

    min_x: Pixels
    min_y: Pixels
    max_x: Pixels
    max_y: Pixels
    is_restricted: bool = True

    def __post_init__(self) -> None:
        if self.min_x >= self.max_x:
            raise ValueError(f"min_x ({self.min_x}) must be lower than max_x ({self.max_x})")
        if self.min_y >= self.max_y:
            raise ValueError(f"min_y ({self.min_y}) must be lower than max_y ({self.max_y})")

    @classmethod
    def full_screen(cls, screen: ScreenGeometry) -> Zone:
        """Unrestricted zone covering the whole screen."""
        return cls(
            min_x=Pixels(0),
            min_y=Pixels(0),
            max_x=Pixels(screen.width - 1),
            max_y=Pixels(screen.height - 1),
            is_restricted=False,
        )

    @classmethod
    def from_bounds(
        cls, min_x: int, min_y: int, max_x: int, max_y: int, screen: ScreenGeometry
    ) -> Zone:
        """Build a zone, deriving is_restricted from the screen geometry."""
        restricted = (min_x, min_y, max_x, max_y) != (0, 0, screen.width - 1, screen.height - 1)
        return cls(
            min_x=Pixels(min_x),
            min_y=Pixels(min_y),
            max_x=Pixels(max_x),
            max_y=Pixels(max_y),
            is_restricted=restricted,
        )

    @classmethod
    def resolve(cls, bounds: Sequence[int] | None, screen: ScreenGeometry) -> Zone:
        """Zone from user supplied (min_x, min_y, max_x, max_y).

        None or all-zero bounds select the full screen.

        Raises:
            ValueError: If bounds does not hold 4 values or is inverted.
        """
        if bounds is None or not any(bounds):
            return cls.full_screen(screen)
        if len(bounds) != 4:
            raise ValueError(f"zone needs 4 values (min_x min_y max_x max_y), got {len(bounds)}")
        min_x, min_y, max_x, max_y = (int(v) for v in bounds)
        return cls.from_bounds(min_x, min_y, max_x, max_y, screen)

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    def axis_bounds(self) -> tuple[int, int, int, int]:
        """Bounds in the (min_x, max_x, min_y, max_y) order used on the wire."""
        return (self.min_x, self.max_x, self.min_y, self.max_y)
