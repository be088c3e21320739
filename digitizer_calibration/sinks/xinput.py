"""
Compositor properties set through the `xinput` command line tool.

The X server keeps its own view of the device: the evdev driver rescales raw
values with "Evdev Axis Calibration" and the server applies the
"Coordinate Transformation Matrix" afterwards.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Sequence

logger = logging.getLogger(__name__)

AXIS_CALIBRATION_PROPERTY = "Evdev Axis Calibration"
TRANSFORMATION_MATRIX_PROPERTY = "Coordinate Transformation Matrix"


class XInputPropertySink:
    """Sets device properties by running `xinput set-prop`.

    Attributes:
        device: XInput device name or id.
        executable: xinput binary to run.
        timeout: Seconds to wait for each command.
    """

    def __init__(self, device: str, executable: str = "xinput", timeout: float = 5.0):
        self.device = str(device)
        self.executable = executable
        self.timeout = timeout

    def _set_prop(self, args: list[str]) -> None:
        if shutil.which(self.executable) is None:
            raise OSError(f"{self.executable} not found in PATH")
        cmd = [self.executable, "set-prop", self.device, *args]
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise OSError(f"{self.executable} timed out after {self.timeout}s") from e
        if result.returncode != 0:
            raise OSError(
                f"{self.executable} exited with {result.returncode}: {result.stderr.strip()}"
            )

    def set_axis_calibration(self, bounds: Sequence[int]) -> None:
        if len(bounds) not in (0, 4):
            raise ValueError(f"axis calibration takes 0 or 4 values, got {len(bounds)}")
        # an empty value list resets evdev to uncalibrated
        self._set_prop(
            [
                "--type=int",
                "--format=32",
                AXIS_CALIBRATION_PROPERTY,
                *(str(int(v)) for v in bounds),
            ]
        )

    def set_transformation_matrix(self, matrix: Sequence[float]) -> None:
        if len(matrix) != 9:
            raise ValueError(f"transformation matrix takes 9 values, got {len(matrix)}")
        self._set_prop(
            [
                "--type=float",
                TRANSFORMATION_MATRIX_PROPERTY,
                *(f"{float(v):.9g}" for v in matrix),
            ]
        )
