"""
Calibration run: from four clicks to an exported, verified correction.

The Calibrator owns one PointCollector session and drives the pipeline

    PointCollector -> solve_homography -> quantize -> verify_matrix -> export

It also implements saving the device's current calibration to a state file
and restoring it later, which is what the `digcal state` commands use.

Usage Example:
    >>> screen = ScreenGeometry(1920, 1080)
    >>> calibrator = Calibrator(screen, device=SysfsDeviceState(device_dir))
    >>> calibrator.begin()
    >>> for raw_x, raw_y in presses:
    ...     calibrator.add_click(raw_x, raw_y)
    >>> outcome = calibrator.finish()
"""

from __future__ import annotations

import logging
from pathlib import Path

from digitizer_calibration import __version__
from digitizer_calibration.config import CalibratorConfig, get_default_config
from digitizer_calibration.correspondence import NUM_POINTS, Correspondence, TargetCorner
from digitizer_calibration.fixed_point import HomographyMatrix, quantize
from digitizer_calibration.homography_solver import solve_homography
from digitizer_calibration.outcome import FailureKind, Outcome
from digitizer_calibration.persistence import CalibrationSnapshot, load_snapshot, save_snapshot
from digitizer_calibration.point_collector import PointCollector
from digitizer_calibration.sinks.base import (
    BOUND_FIELDS,
    CALIBRATION_FIELDS,
    MATRIX_FIELDS,
    CompositorSink,
    IntegerCalibrationSink,
)
from digitizer_calibration.targets import compute_targets
from digitizer_calibration.transform_exporter import (
    ExportReport,
    export_calibration,
    reset_compositor_calibration,
    reset_integer_calibration,
)
from digitizer_calibration.types import DeviceUnits, Pixels
from digitizer_calibration.verifier import verify_matrix
from digitizer_calibration.zone import ScreenGeometry, Zone

logger = logging.getLogger(__name__)


def compute_matrix(
    correspondences: tuple[Correspondence, ...] | list[Correspondence], precision: int
) -> Outcome[HomographyMatrix]:
    """Solve, quantize and verify. The verified matrix is safe to export."""
    if len(correspondences) != NUM_POINTS:
        logger.error("Not enough points")
        return Outcome.fail(
            FailureKind.INSUFFICIENT_POINTS,
            f"need {NUM_POINTS} points, got {len(correspondences)}",
        )

    solved = solve_homography(correspondences)
    if not solved.ok:
        logger.error(f"Unable to compute H matrix: {solved.message}")
        return Outcome.fail(solved.failure, solved.message)

    quantized = quantize(solved.unwrap(), precision)
    if not quantized.ok:
        return quantized

    verified = verify_matrix(quantized.unwrap(), correspondences)
    if not verified.ok:
        logger.error(f"Unreliable H matrix: {verified.message}")
    return verified


def read_device_calibration(
    sink: IntegerCalibrationSink, screen: ScreenGeometry
) -> Outcome[CalibrationSnapshot]:
    """Read the zone and matrix currently held by the device driver."""
    try:
        values = {name: sink.read_field(name) for name in CALIBRATION_FIELDS}
    except (OSError, ValueError) as e:
        logger.error(f"Unable to retrieve actual calibration: {e}")
        return Outcome.fail(FailureKind.SNAPSHOT_PARSE_ERROR, f"unable to read device state: {e}")

    min_x, min_y, max_x, max_y = (values[name] for name in BOUND_FIELDS)
    try:
        zone = Zone.from_bounds(min_x, min_y, max_x, max_y, screen)
        matrix = HomographyMatrix.from_coefficients([values[name] for name in MATRIX_FIELDS])
    except ValueError as e:
        return Outcome.fail(FailureKind.SNAPSHOT_PARSE_ERROR, f"device holds no valid calibration: {e}")
    return Outcome.success(CalibrationSnapshot(version=__version__, zone=zone, matrix=matrix))


class Calibrator:
    """One calibration run against one device.

    Attributes:
        screen: Current screen geometry.
        config: Settings of the run.
        zone: Active zone, resolved against the screen.
        session: Correspondences collected so far.
        matrix: Last verified (or restored) matrix, None until available.
        device: Integer consumer, None to skip that export.
        compositor: Compositor consumer, None to skip that export.
    """

    def __init__(
        self,
        screen: ScreenGeometry,
        config: CalibratorConfig | None = None,
        device: IntegerCalibrationSink | None = None,
        compositor: CompositorSink | None = None,
    ):
        self.config = config if config is not None else get_default_config()
        self.screen = screen
        self.zone = Zone.resolve(self.config.zone, screen)
        self.session = PointCollector(self.config.threshold_doubleclick)
        self.matrix: HomographyMatrix | None = None
        self.device = device
        self.compositor = compositor

        if self.zone.is_restricted:
            z = self.zone
            logger.info(f"Calibrating with ({z.min_x} {z.min_y} {z.max_x} {z.max_y}) active zone")

    @property
    def precision(self) -> int:
        return self.config.precision

    @property
    def targets(self) -> dict[TargetCorner, tuple[Pixels, Pixels]]:
        return compute_targets(self.zone)

    def next_target(self) -> tuple[Pixels, Pixels] | None:
        corner = self.session.next_corner
        return None if corner is None else self.targets[corner]

    def accept(
        self, raw_x: DeviceUnits, raw_y: DeviceUnits, target_x: Pixels, target_y: Pixels
    ) -> Outcome[Correspondence]:
        return self.session.accept(raw_x, raw_y, target_x, target_y)

    def add_click(self, raw_x: DeviceUnits, raw_y: DeviceUnits) -> Outcome[Correspondence]:
        """Record a click against the target currently displayed."""
        target = self.next_target()
        if target is None:
            return Outcome.fail(FailureKind.SESSION_FULL, f"session already holds {NUM_POINTS} points")
        return self.session.accept(raw_x, raw_y, *target)

    def reset(self) -> None:
        """Start collecting again, keeping settings and screen."""
        self.session.reset()

    def set_screen(self, screen: ScreenGeometry) -> bool:
        """Adopt a new screen geometry.

        Returns:
            True if the geometry changed, in which case the zone is resolved
            again and collected points are dropped.
        """
        if screen == self.screen:
            return False
        logger.info(f"Screen geometry changed to {screen.width}x{screen.height}, restarting")
        self.screen = screen
        self.zone = Zone.resolve(self.config.zone, screen)
        self.session.reset()
        return True

    def compute(self) -> Outcome[HomographyMatrix]:
        """Compute and verify the matrix from the collected points."""
        outcome = compute_matrix(self.session.correspondences, self.precision)
        if outcome.ok:
            self.matrix = outcome.unwrap()
        return outcome

    def snapshot(self) -> CalibrationSnapshot:
        """Snapshot of the current zone and matrix.

        Raises:
            RuntimeError: If no matrix has been computed or restored yet.
        """
        if self.matrix is None:
            raise RuntimeError("No calibration matrix available")
        return CalibrationSnapshot(version=__version__, zone=self.zone, matrix=self.matrix)

    def export(self) -> ExportReport:
        """Send the current matrix and zone to both consumers."""
        snapshot = self.snapshot()
        return export_calibration(
            snapshot.matrix, snapshot.zone, self.screen, self.device, self.compositor
        )

    def finish(self) -> Outcome[CalibrationSnapshot]:
        """Compute, verify and export the calibration.

        Returns:
            Outcome carrying the exported snapshot. A failed export is
            EXPORT_INCOMPLETE: the device may be left uncalibrated and the
            user has to retry.
        """
        computed = self.compute()
        if not computed.ok:
            return Outcome.fail(computed.failure, computed.message)

        report = self.export()
        if not report.ok:
            message = "; ".join(report.failures)
            logger.error(f"Unable to export calibration: {message}")
            return Outcome.fail(FailureKind.EXPORT_INCOMPLETE, message)
        return Outcome.success(self.snapshot())

    def reset_calibration(self) -> ExportReport:
        """Mark both consumers uncalibrated."""
        device = reset_integer_calibration(self.device) if self.device is not None else None
        compositor = (
            reset_compositor_calibration(self.compositor) if self.compositor is not None else None
        )
        return ExportReport(device=device, compositor=compositor)

    def begin(self) -> Outcome[ExportReport]:
        """Start a run: clear the session and mark both consumers uncalibrated.

        Clicks collected afterwards are raw device coordinates, not positions
        already corrected by a previous calibration.

        Returns:
            Outcome carrying the reset report, or EXPORT_INCOMPLETE when a
            consumer could not be reset.
        """
        self.session.reset()
        report = self.reset_calibration()
        if not report.ok:
            message = "; ".join(report.failures)
            logger.error(f"Unable to reset calibration before collecting: {message}")
            return Outcome.fail(FailureKind.EXPORT_INCOMPLETE, message)
        return Outcome.success(report)

    def save_state(self, path: str | Path) -> Outcome[Path]:
        """Save the calibration currently held by the device to a state file."""
        if self.device is None:
            return Outcome.fail(FailureKind.SNAPSHOT_PARSE_ERROR, "no device to read from")
        current = read_device_calibration(self.device, self.screen)
        if not current.ok:
            return Outcome.fail(current.failure, current.message)
        return save_snapshot(path, current.unwrap())

    def restore_state(self, path: str | Path) -> Outcome[CalibrationSnapshot]:
        """Load a state file and push it to both consumers.

        On a parse failure, zone and matrix are left unchanged.
        """
        loaded = load_snapshot(path, self.screen)
        if not loaded.ok:
            return loaded

        snapshot = loaded.unwrap()
        self.zone = snapshot.zone
        self.matrix = snapshot.matrix

        report = self.export()
        if not report.ok:
            message = "; ".join(report.failures)
            logger.error(f"Unable to restore calibration: {message}")
            return Outcome.fail(FailureKind.EXPORT_INCOMPLETE, message)

        logger.info(f"Calibration data restored from {path}")
        return Outcome.success(snapshot, warnings=loaded.warnings)
