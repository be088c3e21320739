"""Consumers of a calibration: the integer device driver and the compositor."""

from digitizer_calibration.sinks.base import (
    CALIBRATED_FLAG,
    CALIBRATION_FIELDS,
    CompositorSink,
    IntegerCalibrationSink,
)
from digitizer_calibration.sinks.sysfs import SysfsDeviceState
from digitizer_calibration.sinks.xinput import XInputPropertySink

__all__ = [
    "CALIBRATED_FLAG",
    "CALIBRATION_FIELDS",
    "CompositorSink",
    "IntegerCalibrationSink",
    "SysfsDeviceState",
    "XInputPropertySink",
]
