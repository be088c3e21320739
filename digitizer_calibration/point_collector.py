"""
Collection of the four device/screen correspondences of a calibration run.

Digitizers such as the eBeam report unstable raw values, and users tend to
press a target twice. A click landing within `threshold` device units of ANY
previously accepted point, on both axes independently, is rejected.
"""

import logging

from digitizer_calibration.correspondence import NUM_POINTS, Correspondence, TargetCorner
from digitizer_calibration.outcome import FailureKind, Outcome
from digitizer_calibration.types import DeviceUnits, Pixels

logger = logging.getLogger(__name__)

DEFAULT_DOUBLECLICK_THRESHOLD = 16


class PointCollector:
    """Capacity-bounded calibration session.

    Accepted points are indexed by TargetCorner; insertion order is the
    target order (upper-left, lower-left, upper-right, lower-right).

    Attributes:
        threshold: Double-click rejection distance in device units, 0 disables it.
    """

    def __init__(self, threshold: int = DEFAULT_DOUBLECLICK_THRESHOLD):
        if threshold < 0:
            raise ValueError(f"threshold must be >= 0, got {threshold}")
        self.threshold = threshold
        self._points: list[Correspondence] = []

    @property
    def count(self) -> int:
        return len(self._points)

    def __len__(self) -> int:
        return len(self._points)

    @property
    def is_complete(self) -> bool:
        return len(self._points) == NUM_POINTS

    @property
    def next_corner(self) -> TargetCorner | None:
        """Target expected by the next accepted click, None once complete."""
        if self.is_complete:
            return None
        return TargetCorner(len(self._points))

    @property
    def correspondences(self) -> tuple[Correspondence, ...]:
        """Accepted correspondences, in target order."""
        return tuple(self._points)

    def get(self, corner: TargetCorner) -> Correspondence | None:
        if corner >= len(self._points):
            return None
        return self._points[corner]

    def accept(
        self, raw_x: DeviceUnits, raw_y: DeviceUnits, target_x: Pixels, target_y: Pixels
    ) -> Outcome[Correspondence]:
        """Record a click for the next target.

        Args:
            raw_x: Raw X reported by the device.
            raw_y: Raw Y reported by the device.
            target_x: Screen X of the displayed target.
            target_y: Screen Y of the displayed target.

        Returns:
            Outcome carrying the stored Correspondence, or a DUPLICATE_CLICK /
            SESSION_FULL failure. The session is unchanged on failure.
        """
        if self.is_complete:
            return Outcome.fail(
                FailureKind.SESSION_FULL, f"session already holds {NUM_POINTS} points"
            )

        if self.threshold > 0:
            for previous in self._points:
                if (
                    abs(raw_x - previous.device_x) <= self.threshold
                    and abs(raw_y - previous.device_y) <= self.threshold
                ):
                    logger.debug(
                        f"Not adding click {len(self._points) + 1} raw({raw_x}, {raw_y}): "
                        f"within {self.threshold} units of a previous click"
                    )
                    return Outcome.fail(
                        FailureKind.DUPLICATE_CLICK,
                        f"raw({raw_x}, {raw_y}) within {self.threshold} units of "
                        f"raw({previous.device_x}, {previous.device_y})",
                    )

        correspondence = Correspondence(raw_x, raw_y, target_x, target_y)
        self._points.append(correspondence)
        logger.debug(
            f"Adding click {len(self._points)}: raw({raw_x}, {raw_y}) <=> screen({target_x}, {target_y})"
        )
        return Outcome.success(correspondence)

    def reset(self) -> None:
        """Forget accepted clicks."""
        self._points.clear()
