"""Protocols for the two consumers of a calibration."""

from __future__ import annotations

from typing import Protocol, Sequence

# Integer consumer fields, in write order. The `calibrated` flag is written
# separately, after all of these succeeded.
BOUND_FIELDS = ("min_x", "min_y", "max_x", "max_y")
MATRIX_FIELDS = tuple(f"h{i}" for i in range(1, 10))
CALIBRATION_FIELDS = BOUND_FIELDS + MATRIX_FIELDS
CALIBRATED_FLAG = "calibrated"


class IntegerCalibrationSink(Protocol):
    """Device driver state exposed as one named integer per field.

    Implementations raise OSError when a field cannot be read or written and
    ValueError when a read value is not an integer.
    """

    def write_field(self, name: str, value: int) -> None:
        """Write one named integer field."""
        ...

    def read_field(self, name: str) -> int:
        """Read one named integer field."""
        ...


class CompositorSink(Protocol):
    """Compositor-level input properties of the device.

    Implementations raise OSError when a property cannot be changed.
    """

    def set_axis_calibration(self, bounds: Sequence[int]) -> None:
        """Set the raw bounds property: [min_x, max_x, min_y, max_y], or [] to clear."""
        ...

    def set_transformation_matrix(self, matrix: Sequence[float]) -> None:
        """Set the 9 float row-major coordinate transformation matrix."""
        ...
