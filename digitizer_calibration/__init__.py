"""
Digitizer calibration package.

Turns four observed correspondences between a digitizer's raw coordinates
and on-screen targets into a correction model for two consumers:

    - an integer-only device driver, which receives a fixed-point homography
      (9 integers scaled by 10**precision) verified bit for bit against the
      driver's own arithmetic;
    - the display compositor, which receives a float affine transform mapping
      the device onto the active zone of the screen.

Example Usage:
    >>> from digitizer_calibration import Calibrator, ScreenGeometry, SysfsDeviceState
    >>>
    >>> calibrator = Calibrator(
    ...     ScreenGeometry(1920, 1080),
    ...     device=SysfsDeviceState("/sys/class/input/event5/device/device/"),
    ... )
    >>> for raw_x, raw_y in presses:          # one press per displayed target
    ...     calibrator.add_click(raw_x, raw_y)
    >>> outcome = calibrator.finish()
    >>> if not outcome.ok:
    ...     print(outcome.failure, outcome.message)

Available Classes:
    Core:
        - PointCollector: Session of up to 4 correspondences
        - solve_homography / SolvedHomography: Floating point solution
        - quantize / HomographyMatrix: Fixed-point matrix
        - verify_matrix / evaluate_point: Integer consumer replay
        - compute_zone_transform / export_calibration: Export to consumers
        - serialize / deserialize / CalibrationSnapshot: State file codec

    Orchestration:
        - Calibrator: One calibration run against one device
        - CollectionLoop: Cooperative tick-driven click collection
"""

# Defined before submodule imports: persistence reads it at import time.
__version__ = '0.9.0'

from digitizer_calibration.outcome import FailureKind, Outcome
from digitizer_calibration.correspondence import Correspondence, TargetCorner
from digitizer_calibration.zone import ScreenGeometry, Zone
from digitizer_calibration.point_collector import PointCollector
from digitizer_calibration.homography_solver import SolvedHomography, solve_homography
from digitizer_calibration.fixed_point import DEFAULT_PRECISION, HomographyMatrix, quantize
from digitizer_calibration.verifier import evaluate_point, verify_matrix
from digitizer_calibration.transform_exporter import (
    ExportReport,
    compute_zone_transform,
    export_calibration,
)
from digitizer_calibration.persistence import (
    CalibrationSnapshot,
    deserialize,
    load_snapshot,
    save_snapshot,
    serialize,
)
from digitizer_calibration.sinks import SysfsDeviceState, XInputPropertySink
from digitizer_calibration.config import CalibratorConfig, get_default_config
from digitizer_calibration.calibrator import Calibrator, compute_matrix
from digitizer_calibration.collection_loop import CollectionLoop, CollectionState

__all__ = [
    # Results
    'FailureKind',
    'Outcome',

    # Value types
    'Correspondence',
    'TargetCorner',
    'ScreenGeometry',
    'Zone',
    'HomographyMatrix',
    'SolvedHomography',
    'CalibrationSnapshot',

    # Core
    'PointCollector',
    'solve_homography',
    'quantize',
    'DEFAULT_PRECISION',
    'evaluate_point',
    'verify_matrix',
    'compute_zone_transform',
    'export_calibration',
    'ExportReport',
    'serialize',
    'deserialize',
    'save_snapshot',
    'load_snapshot',

    # Consumers
    'SysfsDeviceState',
    'XInputPropertySink',

    # Orchestration and configuration
    'Calibrator',
    'compute_matrix',
    'CollectionLoop',
    'CollectionState',
    'CalibratorConfig',
    'get_default_config',
]

__description__ = 'Four-point digitizer calibration with a fixed-point homography'
