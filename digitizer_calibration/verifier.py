"""
Replay of the integer consumer's evaluation of a HomographyMatrix.

The kernel driver computes, for a raw point (X, Y), with signed 64-bit
integers:

    div = h7*X + h8*Y + h9
    x   = (2*(h1*X + h2*Y + h3) + div) / (2*div)
    y   = (2*(h4*X + h5*Y + h6) + div) / (2*div)

Doubling numerator and denominator before the division rounds to the nearest
integer without floating point. The replay below must stay in sync with the
driver: a quantized matrix is only exported if it reproduces every training
point exactly under this rule.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from digitizer_calibration.correspondence import Correspondence
from digitizer_calibration.fixed_point import S64_MAX, S64_MIN, HomographyMatrix
from digitizer_calibration.outcome import FailureKind, Outcome

logger = logging.getLogger(__name__)


class IntegerOverflow(ArithmeticError):
    """An intermediate value left the signed 64-bit range of the consumer."""


def _s64(value: int) -> int:
    if not S64_MIN <= value <= S64_MAX:
        raise IntegerOverflow(f"{value} does not fit a signed 64-bit integer")
    return value


@dataclass(frozen=True)
class EvaluatedPoint:
    """Screen position computed by the integer pipeline for one device point."""

    x: int
    y: int
    divisor: int


def _linear(a: int, b: int, c: int, X: int, Y: int) -> int:
    return _s64(_s64(_s64(a * X) + _s64(b * Y)) + c)


def evaluate_point(matrix: HomographyMatrix, device_x: int, device_y: int) -> EvaluatedPoint | None:
    """Map one device point the way the integer consumer does.

    Returns:
        The evaluated point, or None when the divisor is zero.

    Raises:
        IntegerOverflow: If an intermediate value overflows 64 bits.
    """
    h = matrix.coefficients
    X, Y = int(device_x), int(device_y)

    div = _linear(h[6], h[7], h[8], X, Y)
    if div == 0:
        return None

    denominator = _s64(2 * div)
    x = _s64(_s64(2 * _linear(h[0], h[1], h[2], X, Y)) + div) // denominator
    y = _s64(_s64(2 * _linear(h[3], h[4], h[5], X, Y)) + div) // denominator
    return EvaluatedPoint(x=x, y=y, divisor=div)


def verify_matrix(
    matrix: HomographyMatrix, correspondences: Sequence[Correspondence]
) -> Outcome[HomographyMatrix]:
    """Check that matrix reproduces every training correspondence exactly.

    Returns:
        Outcome carrying the matrix when all points match, otherwise
        DEGENERATE_MATRIX, COEFFICIENT_OVERFLOW or VERIFICATION_MISMATCH.
    """
    for index, c in enumerate(correspondences, start=1):
        try:
            point = evaluate_point(matrix, c.device_x, c.device_y)
        except IntegerOverflow as e:
            logger.error(f"Bad H matrix: point {index} overflows the integer consumer ({e})")
            return Outcome.fail(FailureKind.COEFFICIENT_OVERFLOW, f"point {index}: {e}")

        if point is None:
            logger.error(f"Bad H matrix: division by zero at point {index}")
            return Outcome.fail(
                FailureKind.DEGENERATE_MATRIX,
                f"division by zero at dev({c.device_x} ; {c.device_y})",
            )

        if (point.x, point.y) != (c.screen_x, c.screen_y):
            message = (
                f"point {index}: dev({c.device_x} ; {c.device_y}) => "
                f"scr({point.x} ; {point.y}), real({c.screen_x} ; {c.screen_y})"
            )
            logger.error(f"Unreliable H matrix, {message}")
            return Outcome.fail(FailureKind.VERIFICATION_MISMATCH, message)

    logger.debug(f"H matrix reproduces all {len(correspondences)} training points")
    return Outcome.success(matrix)
