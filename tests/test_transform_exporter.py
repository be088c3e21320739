#!/usr/bin/env python3
"""
Tests for exporting a calibration to the device driver and the compositor.

Sinks are replaced by in-memory fakes recording every write, so the order of
writes and the all-or-nothing calibrated flag can be checked.
"""

import numpy as np
import pytest

from digitizer_calibration.fixed_point import HomographyMatrix
from digitizer_calibration.outcome import FailureKind
from digitizer_calibration.sinks.base import CALIBRATED_FLAG, CALIBRATION_FIELDS
from digitizer_calibration.transform_exporter import (
    IDENTITY,
    compute_zone_transform,
    export_calibration,
    export_compositor_calibration,
    export_integer_calibration,
    reset_compositor_calibration,
    reset_integer_calibration,
)
from digitizer_calibration.zone import ScreenGeometry, Zone

SCREEN = ScreenGeometry(1920, 1080)
MATRIX = HomographyMatrix((80, 0, 2000, 0, 80, 2000, 0, 0, 100), 2)


class MemorySink:
    """Integer sink keeping fields in a dict, optionally failing on one field."""

    def __init__(self, fail_on=None, fields=None):
        self.fields = dict(fields or {})
        self.writes = []
        self.fail_on = fail_on

    def write_field(self, name, value):
        if name == self.fail_on:
            raise OSError(f"{name}: permission denied")
        self.writes.append(name)
        self.fields[name] = value

    def read_field(self, name):
        return self.fields[name]


class RecordingCompositor:
    """Compositor sink recording the last values set."""

    def __init__(self, fail=False):
        self.axis = None
        self.matrix = None
        self.fail = fail

    def set_axis_calibration(self, bounds):
        if self.fail:
            raise OSError("xinput not found in PATH")
        self.axis = list(bounds)

    def set_transformation_matrix(self, matrix):
        if self.fail:
            raise OSError("xinput not found in PATH")
        self.matrix = list(matrix)


@pytest.fixture
def restricted_zone() -> Zone:
    return Zone.from_bounds(100, 50, 1819, 1029, SCREEN)


# =============================================================================
# Compositor transform
# =============================================================================


class TestComputeZoneTransform:
    """Tests for the compositor transformation matrix."""

    def test_restricted_zone(self, restricted_zone):
        matrix = compute_zone_transform(restricted_zone, SCREEN)

        assert matrix.dtype == np.float32
        assert matrix[0, 0] == pytest.approx(1720 / 1920, rel=1e-6)
        assert matrix[1, 1] == pytest.approx(980 / 1080, rel=1e-6)
        assert matrix[0, 2] == pytest.approx(100 / 1920, rel=1e-6)
        assert matrix[1, 2] == pytest.approx(50 / 1080, rel=1e-6)
        assert matrix[0, 1] == matrix[1, 0] == 0.0
        np.testing.assert_array_equal(matrix[2], [0.0, 0.0, 1.0])

    def test_full_screen_is_identity(self):
        matrix = compute_zone_transform(Zone.full_screen(SCREEN), SCREEN)

        np.testing.assert_array_equal(matrix, np.eye(3))

    def test_identity_is_not_shared(self):
        matrix = compute_zone_transform(Zone.full_screen(SCREEN), SCREEN)
        matrix[0, 0] = 5.0

        assert IDENTITY[0, 0] == 1.0


# =============================================================================
# Integer export
# =============================================================================


class TestExportIntegerCalibration:
    """Tests for the device driver export."""

    def test_writes_all_fields_then_flag(self, restricted_zone):
        sink = MemorySink()

        outcome = export_integer_calibration(MATRIX, restricted_zone, sink)

        assert outcome.ok
        assert sink.writes == [CALIBRATED_FLAG, *CALIBRATION_FIELDS, CALIBRATED_FLAG]
        assert sink.fields["min_x"] == 100
        assert sink.fields["min_y"] == 50
        assert sink.fields["max_x"] == 1819
        assert sink.fields["max_y"] == 1029
        assert [sink.fields[f"h{i}"] for i in range(1, 10)] == list(MATRIX.coefficients)
        assert sink.fields[CALIBRATED_FLAG] == 1

    def test_failed_field_leaves_flag_cleared(self, restricted_zone):
        sink = MemorySink(fail_on="h5")

        outcome = export_integer_calibration(MATRIX, restricted_zone, sink)

        assert outcome.failure is FailureKind.EXPORT_INCOMPLETE
        assert "h5" in outcome.message
        assert sink.fields[CALIBRATED_FLAG] == 0
        assert "h6" not in sink.writes

    def test_failed_flag_write(self, restricted_zone):
        sink = MemorySink(fail_on=CALIBRATED_FLAG)

        outcome = export_integer_calibration(MATRIX, restricted_zone, sink)

        assert outcome.failure is FailureKind.EXPORT_INCOMPLETE
        assert sink.writes == []

    def test_failed_field_uncalibrates_previous_calibration(self, restricted_zone):
        sink = MemorySink(fail_on="h5", fields={CALIBRATED_FLAG: 1, "h5": 111, "h6": 222})

        outcome = export_integer_calibration(MATRIX, restricted_zone, sink)

        assert outcome.failure is FailureKind.EXPORT_INCOMPLETE
        assert sink.fields[CALIBRATED_FLAG] == 0
        assert sink.writes[0] == CALIBRATED_FLAG
        assert sink.fields["h6"] == 222

    def test_reset_clears_flag_only(self):
        sink = MemorySink()

        assert reset_integer_calibration(sink).ok
        assert sink.writes == [CALIBRATED_FLAG]
        assert sink.fields[CALIBRATED_FLAG] == 0

    def test_reset_failure(self):
        outcome = reset_integer_calibration(MemorySink(fail_on=CALIBRATED_FLAG))

        assert outcome.failure is FailureKind.EXPORT_INCOMPLETE


# =============================================================================
# Compositor export
# =============================================================================


class TestExportCompositorCalibration:
    """Tests for the compositor export."""

    def test_restricted_zone(self, restricted_zone):
        sink = RecordingCompositor()

        assert export_compositor_calibration(restricted_zone, SCREEN, sink).ok
        assert sink.axis == [100, 1819, 50, 1029]
        assert len(sink.matrix) == 9
        assert sink.matrix[0] == pytest.approx(1720 / 1920, rel=1e-6)
        assert sink.matrix[2] == pytest.approx(100 / 1920, rel=1e-6)

    def test_full_screen_writes_identity(self):
        sink = RecordingCompositor()

        assert export_compositor_calibration(Zone.full_screen(SCREEN), SCREEN, sink).ok
        assert sink.axis == [0, 1919, 0, 1079]
        assert sink.matrix == [1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0]

    def test_reset(self):
        sink = RecordingCompositor()

        assert reset_compositor_calibration(sink).ok
        assert sink.axis == []
        assert sink.matrix == [1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0]

    def test_failure(self, restricted_zone):
        outcome = export_compositor_calibration(
            restricted_zone, SCREEN, RecordingCompositor(fail=True)
        )

        assert outcome.failure is FailureKind.EXPORT_INCOMPLETE


class TestExportCalibration:
    """Both exports together."""

    def test_both_succeed(self, restricted_zone):
        report = export_calibration(
            MATRIX, restricted_zone, SCREEN, MemorySink(), RecordingCompositor()
        )

        assert report.ok
        assert report.failures == []

    def test_compositor_failure_does_not_block_device(self, restricted_zone):
        sink = MemorySink()

        report = export_calibration(
            MATRIX, restricted_zone, SCREEN, sink, RecordingCompositor(fail=True)
        )

        assert not report.ok
        assert report.device.ok
        assert sink.fields[CALIBRATED_FLAG] == 1
        assert len(report.failures) == 1
        assert report.failures[0].startswith("compositor:")

    def test_device_failure_does_not_block_compositor(self, restricted_zone):
        compositor = RecordingCompositor()

        report = export_calibration(
            MATRIX, restricted_zone, SCREEN, MemorySink(fail_on="min_x"), compositor
        )

        assert not report.ok
        assert report.compositor.ok
        assert compositor.axis == [100, 1819, 50, 1029]

    def test_missing_sinks_are_skipped(self, restricted_zone):
        report = export_calibration(MATRIX, restricted_zone, SCREEN)

        assert report.ok
        assert report.device is None and report.compositor is None
