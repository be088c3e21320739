"""
Projective transform from four device/screen correspondences.

The homography H maps raw device coordinates (X, Y) to screen pixels (x, y):

    x = (h1*X + h2*Y + h3) / (h7*X + h8*Y + 1)
    y = (h4*X + h5*Y + h6) / (h7*X + h8*Y + 1)

With h9 fixed at 1 there are 8 unknowns, and each correspondence contributes
two linear equations:

    [X, Y, 1, 0, 0, 0, -X*x, -Y*x] . h = x
    [0, 0, 0, X, Y, 1, -X*y, -Y*y] . h = y

The resulting 8x8 system A.h = b is solved directly with an LU decomposition
with partial pivoting rather than by inverting A.

Degenerate layouts (three targets or three presses on a line) cannot define
a projective transform. They are detected exactly on the integer inputs
before any floating point work, so no tolerance is involved.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from itertools import combinations
from typing import Sequence

import numpy as np
import numpy.typing as npt
from scipy.linalg import LinAlgWarning, lu_factor, lu_solve

from digitizer_calibration.correspondence import NUM_POINTS, Correspondence
from digitizer_calibration.outcome import FailureKind, Outcome

logger = logging.getLogger(__name__)

NUM_UNKNOWNS = 8


@dataclass(frozen=True)
class SolvedHomography:
    """Floating point solution h1..h8 (h9 is implicitly 1).

    Attributes:
        coefficients: The 8 solved coefficients, in h1..h8 order.
    """

    coefficients: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.coefficients) != NUM_UNKNOWNS:
            raise ValueError(
                f"Expected {NUM_UNKNOWNS} coefficients, got {len(self.coefficients)}"
            )
        object.__setattr__(self, "coefficients", tuple(float(c) for c in self.coefficients))

    def as_matrix(self) -> npt.NDArray[np.float64]:
        """3x3 homography with h9 = 1."""
        return np.array([*self.coefficients, 1.0], dtype=np.float64).reshape(3, 3)

    def apply(self, device_x: float, device_y: float) -> tuple[float, float]:
        """Map a device point to screen coordinates in floating point.

        Raises:
            ValueError: If the point maps to infinity.
        """
        h = self.coefficients
        w = h[6] * device_x + h[7] * device_y + 1.0
        if w == 0.0:
            raise ValueError(f"Device point ({device_x}, {device_y}) maps to infinity")
        x = (h[0] * device_x + h[1] * device_y + h[2]) / w
        y = (h[3] * device_x + h[4] * device_y + h[5]) / w
        return (x, y)


def build_linear_system(
    correspondences: Sequence[Correspondence],
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Build A and b of the 8x8 system A.h = b.

    Args:
        correspondences: Exactly 4 correspondences in target order.

    Returns:
        Tuple (A, b) with A of shape (8, 8) and b of shape (8,).

    Raises:
        ValueError: If there are not exactly 4 correspondences.
    """
    if len(correspondences) != NUM_POINTS:
        raise ValueError(f"Need exactly {NUM_POINTS} correspondences, got {len(correspondences)}")

    A = np.zeros((NUM_UNKNOWNS, NUM_UNKNOWNS), dtype=np.float64)
    b = np.zeros(NUM_UNKNOWNS, dtype=np.float64)

    for p, c in enumerate(correspondences):
        X, Y = c.device_x, c.device_y
        x, y = c.screen_x, c.screen_y
        # products are formed on Python ints, then converted
        A[2 * p] = [X, Y, 1, 0, 0, 0, -(X * x), -(Y * x)]
        A[2 * p + 1] = [0, 0, 0, X, Y, 1, -(X * y), -(Y * y)]
        b[2 * p] = x
        b[2 * p + 1] = y

    return A, b


def _collinear(p1: tuple[int, int], p2: tuple[int, int], p3: tuple[int, int]) -> bool:
    cross = (p2[0] - p1[0]) * (p3[1] - p1[1]) - (p2[1] - p1[1]) * (p3[0] - p1[0])
    return cross == 0


def find_degenerate_triple(points: Sequence[tuple[int, int]]) -> tuple[int, int, int] | None:
    """Indices of the first three collinear (or coincident) points, if any."""
    for i, j, k in combinations(range(len(points)), 3):
        if _collinear(points[i], points[j], points[k]):
            return (i, j, k)
    return None


def solve_homography(correspondences: Sequence[Correspondence]) -> Outcome[SolvedHomography]:
    """Solve h1..h8 from 4 correspondences.

    Args:
        correspondences: Exactly 4 correspondences in target order. Not modified.

    Returns:
        Outcome carrying the SolvedHomography, or INSUFFICIENT_POINTS /
        SINGULAR_SYSTEM.
    """
    if len(correspondences) != NUM_POINTS:
        return Outcome.fail(
            FailureKind.INSUFFICIENT_POINTS,
            f"need {NUM_POINTS} points, got {len(correspondences)}",
        )

    for label, points in (
        ("device", [c.device for c in correspondences]),
        ("screen", [c.screen for c in correspondences]),
    ):
        triple = find_degenerate_triple(points)
        if triple is not None:
            logger.warning(
                f"Degenerate {label} points {[i + 1 for i in triple]}: collinear or coincident"
            )
            return Outcome.fail(
                FailureKind.SINGULAR_SYSTEM,
                f"{label} points {', '.join(str(i + 1) for i in triple)} are collinear",
            )

    A, b = build_linear_system(correspondences)

    with warnings.catch_warnings():
        # an exactly singular U is reported below, not as a warning
        warnings.simplefilter("ignore", LinAlgWarning)
        try:
            lu, piv = lu_factor(A)
        except (ValueError, np.linalg.LinAlgError) as e:
            logger.error(f"LU decomposition failed: {e}")
            return Outcome.fail(FailureKind.SINGULAR_SYSTEM, f"LU decomposition failed: {e}")

    if np.any(np.diag(lu) == 0.0):
        logger.error("LU decomposition failed: matrix is singular")
        return Outcome.fail(FailureKind.SINGULAR_SYSTEM, "matrix is singular")

    h = lu_solve((lu, piv), b)
    if not np.all(np.isfinite(h)):
        logger.error("Solver produced non-finite coefficients")
        return Outcome.fail(FailureKind.SINGULAR_SYSTEM, "solution is not finite")

    solved = SolvedHomography(tuple(h))
    logger.debug(f"Solved homography coefficients: {solved.coefficients}")
    return Outcome.success(solved)
