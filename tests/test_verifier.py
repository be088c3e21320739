#!/usr/bin/env python3
"""
Tests for the integer replay of the device driver arithmetic.

The replay must match the driver bit for bit, so these tests pin down the
rounding rule, the zero divisor case and 64-bit overflow detection.
"""

import pytest

from digitizer_calibration.calibrator import compute_matrix
from digitizer_calibration.correspondence import Correspondence
from digitizer_calibration.fixed_point import HomographyMatrix
from digitizer_calibration.outcome import FailureKind
from digitizer_calibration.verifier import IntegerOverflow, evaluate_point, verify_matrix

WORKED_MATRIX = HomographyMatrix((80, 0, 2000, 0, 80, 2000, 0, 0, 100), 2)

WORKED_EXAMPLE = [
    Correspondence(0, 0, 20, 20),
    Correspondence(0, 100, 20, 100),
    Correspondence(100, 0, 100, 20),
    Correspondence(100, 100, 100, 100),
]

PROJECTIVE_EXAMPLE = [
    Correspondence(1000, 1000, 240, 135),
    Correspondence(1050, 14900, 240, 945),
    Correspondence(15000, 950, 1680, 135),
    Correspondence(15100, 15050, 1680, 945),
]


class TestEvaluatePoint:
    """Tests for evaluate_point."""

    def test_worked_example_point(self):
        point = evaluate_point(WORKED_MATRIX, 100, 0)

        assert (point.x, point.y) == (100, 20)
        assert point.divisor == 100

    def test_half_pixel_rounds_up(self):
        """x = 20.5 exactly: (2*2050 + 100) // 200 == 21."""
        matrix = HomographyMatrix((1, 0, 2000, 0, 1, 0, 0, 0, 100), 2)

        point = evaluate_point(matrix, 50, 0)

        assert point.x == 21

    def test_negative_divisor_uses_floor_division(self):
        """div = -1: x = floor(5 / -2) = -3, y = floor(9 / -2) = -5."""
        matrix = HomographyMatrix((3, 0, 0, 0, 5, 0, -2, 0, 1), 0)

        point = evaluate_point(matrix, 1, 1)

        assert point.divisor == -1
        assert (point.x, point.y) == (-3, -5)

    def test_zero_divisor_returns_none(self):
        matrix = HomographyMatrix((80, 0, 2000, 0, 80, 2000, -1, 0, 100), 2)

        assert evaluate_point(matrix, 100, 0) is None

    def test_overflow_raises(self):
        matrix = HomographyMatrix((2**62, 0, 0, 0, 1, 0, 0, 0, 1), 0)

        with pytest.raises(IntegerOverflow):
            evaluate_point(matrix, 4, 0)

    def test_deterministic(self):
        results = {evaluate_point(WORKED_MATRIX, 37, 81) for _ in range(10)}
        assert len(results) == 1


class TestVerifyMatrix:
    """Tests for verify_matrix."""

    def test_worked_example_verifies(self):
        outcome = verify_matrix(WORKED_MATRIX, WORKED_EXAMPLE)

        assert outcome.ok
        assert outcome.unwrap() is WORKED_MATRIX

    def test_shifted_matrix_is_a_mismatch(self):
        shifted = HomographyMatrix((80, 0, 2100, 0, 80, 2000, 0, 0, 100), 2)

        outcome = verify_matrix(shifted, WORKED_EXAMPLE)

        assert outcome.failure is FailureKind.VERIFICATION_MISMATCH
        assert outcome.message == "point 1: dev(0 ; 0) => scr(21 ; 20), real(20 ; 20)"

    def test_zero_divisor_is_degenerate(self):
        matrix = HomographyMatrix((80, 0, 2000, 0, 80, 2000, -1, 0, 100), 2)

        outcome = verify_matrix(matrix, WORKED_EXAMPLE)

        assert outcome.failure is FailureKind.DEGENERATE_MATRIX
        assert "dev(100 ; 0)" in outcome.message

    def test_overflow_is_reported(self):
        matrix = HomographyMatrix((2**62, 0, 0, 0, 1, 0, 0, 0, 1), 0)
        points = [
            Correspondence(4, 0, 0, 0),
            Correspondence(0, 4, 0, 4),
            Correspondence(4, 4, 4, 4),
            Correspondence(8, 0, 8, 0),
        ]

        assert verify_matrix(matrix, points).failure is FailureKind.COEFFICIENT_OVERFLOW


class TestComputeMatrix:
    """Solve, quantize and verify chained together."""

    def test_worked_example_at_precision_2(self):
        outcome = compute_matrix(WORKED_EXAMPLE, 2)

        assert outcome.ok
        assert outcome.unwrap() == WORKED_MATRIX

    @pytest.mark.parametrize("precision", [9, 10, 12, 14])
    def test_projective_example_verifies(self, precision):
        outcome = compute_matrix(PROJECTIVE_EXAMPLE, precision)

        assert outcome.ok
        matrix = outcome.unwrap()
        for c in PROJECTIVE_EXAMPLE:
            point = evaluate_point(matrix, c.device_x, c.device_y)
            assert (point.x, point.y) == (c.screen_x, c.screen_y)

    def test_low_precision_projective_mismatch(self):
        """Precision 0 rounds every sub-unit coefficient to zero."""
        outcome = compute_matrix(PROJECTIVE_EXAMPLE, 0)

        assert outcome.failure is FailureKind.VERIFICATION_MISMATCH

    def test_insufficient_points(self):
        assert compute_matrix(WORKED_EXAMPLE[:2], 12).failure is FailureKind.INSUFFICIENT_POINTS

    def test_singular_points(self):
        points = [
            Correspondence(0, 0, 20, 20),
            Correspondence(50, 50, 20, 100),
            Correspondence(100, 100, 100, 20),
            Correspondence(100, 0, 100, 100),
        ]

        assert compute_matrix(points, 12).failure is FailureKind.SINGULAR_SYSTEM

    def test_precision_out_of_range(self):
        assert compute_matrix(WORKED_EXAMPLE, 20).failure is FailureKind.PRECISION_OUT_OF_RANGE
