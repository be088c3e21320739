"""
Export of a calibration to its two consumers.

The integer device driver receives the verified HomographyMatrix together
with the zone bounds. The compositor receives a float affine transform that
depends only on the zone and the screen size: it maps the full-screen
normalized device surface onto the active sub-rectangle, and is unrelated to
the homography.

Both exports are independent: a failure of one does not prevent the other
from being attempted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from digitizer_calibration.fixed_point import HomographyMatrix
from digitizer_calibration.outcome import FailureKind, Outcome
from digitizer_calibration.sinks.base import (
    BOUND_FIELDS,
    CALIBRATED_FLAG,
    MATRIX_FIELDS,
    CompositorSink,
    IntegerCalibrationSink,
)
from digitizer_calibration.zone import ScreenGeometry, Zone

logger = logging.getLogger(__name__)

IDENTITY = np.eye(3, dtype=np.float32)


def compute_zone_transform(zone: Zone, screen: ScreenGeometry) -> npt.NDArray[np.float32]:
    """Affine compositor transform of a zone.

    Returns:
        3x3 float32 matrix
        [[scale_x, 0, offset_x], [0, scale_y, offset_y], [0, 0, 1]],
        the identity when the zone is not restricted.
    """
    if not zone.is_restricted:
        return IDENTITY.copy()

    matrix = np.array(
        [
            [zone.width / screen.width, 0.0, zone.min_x / screen.width],
            [0.0, zone.height / screen.height, zone.min_y / screen.height],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float32,
    )
    logger.debug(f"Computed coordinate transformation matrix:\n{matrix}")
    return matrix


def _integer_fields(matrix: HomographyMatrix, zone: Zone) -> dict[str, int]:
    bounds = dict(zip(BOUND_FIELDS, (zone.min_x, zone.min_y, zone.max_x, zone.max_y)))
    coefficients = dict(zip(MATRIX_FIELDS, matrix.coefficients))
    return {**bounds, **coefficients}


def export_integer_calibration(
    matrix: HomographyMatrix, zone: Zone, sink: IntegerCalibrationSink
) -> Outcome[HomographyMatrix]:
    """Clear the calibrated flag, write bounds and h1..h9, then raise it.

    The flag is cleared before the first field and only raised again once
    every field write succeeded, so a failed export leaves the device
    uncalibrated.

    Returns:
        Outcome carrying the matrix, or EXPORT_INCOMPLETE.
    """
    try:
        sink.write_field(CALIBRATED_FLAG, 0)
    except (OSError, ValueError) as e:
        logger.error(f"Unable to disable calibration: {e}")
        return Outcome.fail(FailureKind.EXPORT_INCOMPLETE, f"unable to clear {CALIBRATED_FLAG}: {e}")

    fields = _integer_fields(matrix, zone)
    for name, value in fields.items():
        try:
            sink.write_field(name, value)
        except (OSError, ValueError) as e:
            logger.error(f"Unable to set {name}: {e}")
            return Outcome.fail(FailureKind.EXPORT_INCOMPLETE, f"unable to set {name}: {e}")

    try:
        sink.write_field(CALIBRATED_FLAG, 1)
    except (OSError, ValueError) as e:
        logger.error(f"Unable to enable calibration: {e}")
        return Outcome.fail(FailureKind.EXPORT_INCOMPLETE, f"unable to set {CALIBRATED_FLAG}: {e}")

    logger.info(f"Device calibration done ({len(fields)} parameters set)")
    return Outcome.success(matrix)


def reset_integer_calibration(sink: IntegerCalibrationSink) -> Outcome[bool]:
    """Mark the device as uncalibrated."""
    try:
        sink.write_field(CALIBRATED_FLAG, 0)
    except (OSError, ValueError) as e:
        logger.error(f"Unable to reset device calibration: {e}")
        return Outcome.fail(FailureKind.EXPORT_INCOMPLETE, str(e))
    logger.info("Device calibration reset")
    return Outcome.success(True)


def export_compositor_calibration(
    zone: Zone, screen: ScreenGeometry, sink: CompositorSink
) -> Outcome[Zone]:
    """Write axis bounds and the transformation matrix.

    A full-screen zone writes the identity, undoing any previous restricted
    calibration.
    """
    matrix = compute_zone_transform(zone, screen)
    try:
        sink.set_axis_calibration(list(zone.axis_bounds()))
        sink.set_transformation_matrix([float(v) for v in matrix.ravel()])
    except (OSError, ValueError) as e:
        logger.error(f"Unable to set compositor calibration: {e}")
        return Outcome.fail(FailureKind.EXPORT_INCOMPLETE, str(e))

    logger.info("Compositor calibration sync done")
    return Outcome.success(zone)


def reset_compositor_calibration(sink: CompositorSink) -> Outcome[bool]:
    """Clear the axis bounds and reset the transformation matrix to identity."""
    try:
        sink.set_axis_calibration([])
        sink.set_transformation_matrix([float(v) for v in IDENTITY.ravel()])
    except (OSError, ValueError) as e:
        logger.error(f"Unable to reset compositor calibration: {e}")
        return Outcome.fail(FailureKind.EXPORT_INCOMPLETE, str(e))

    logger.info("Compositor calibration reset")
    return Outcome.success(True)


@dataclass(frozen=True)
class ExportReport:
    """Outcome of both exports of one calibration.

    Attributes:
        device: Result of the integer consumer export, None if no sink was given.
        compositor: Result of the compositor export, None if no sink was given.
    """

    device: Outcome[HomographyMatrix] | None
    compositor: Outcome[Zone] | None

    @property
    def ok(self) -> bool:
        return all(o is None or o.ok for o in (self.device, self.compositor))

    @property
    def failures(self) -> list[str]:
        return [
            f"{name}: {o.message}"
            for name, o in (("device", self.device), ("compositor", self.compositor))
            if o is not None and not o.ok
        ]


def export_calibration(
    matrix: HomographyMatrix,
    zone: Zone,
    screen: ScreenGeometry,
    device: IntegerCalibrationSink | None = None,
    compositor: CompositorSink | None = None,
) -> ExportReport:
    """Attempt both exports independently."""
    device_outcome = export_integer_calibration(matrix, zone, device) if device is not None else None
    compositor_outcome = (
        export_compositor_calibration(zone, screen, compositor) if compositor is not None else None
    )
    return ExportReport(device=device_outcome, compositor=compositor_outcome)
