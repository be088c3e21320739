"""
Fixed-point representation of a homography for an integer-only consumer.

The kernel driver evaluates the homography with 64-bit integer arithmetic, so
each coefficient is scaled by 10**precision and rounded half away from zero.
h9 is not solved: it is the normalization constant 1, scaled to
10**precision exactly.

Choosing the precision:
    The driver multiplies a raw device coordinate by each coefficient, so a
    scaled coefficient must stay under about 2**48 for the products to fit in
    a signed 64-bit integer. Below 10**9 the computed screen positions lose
    sub-pixel accuracy; above 10**14 the products may overflow. 10**12 is the
    default.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Sequence

from digitizer_calibration.homography_solver import SolvedHomography
from digitizer_calibration.outcome import FailureKind, Outcome
from digitizer_calibration.types import ScaledInt

logger = logging.getLogger(__name__)

DEFAULT_PRECISION = 12
MIN_PRECISION = 0
MAX_PRECISION = 14
MIN_ACCURATE_PRECISION = 9
MAX_SCALED_COEFFICIENT = 2**48
S64_MIN = -(2**63)
S64_MAX = 2**63 - 1


@dataclass(frozen=True)
class HomographyMatrix:
    """Nine scaled integer coefficients h[0..8] and their precision.

    The real coefficient is h[i] / 10**precision; h[8] == 10**precision.

    Attributes:
        coefficients: The 9 scaled coefficients, row-major.
        precision: Power of ten the coefficients are scaled by.
    """

    coefficients: tuple[ScaledInt, ...]
    precision: int

    def __post_init__(self) -> None:
        if len(self.coefficients) != 9:
            raise ValueError(f"HomographyMatrix needs 9 coefficients, got {len(self.coefficients)}")
        if self.precision < 0:
            raise ValueError(f"precision must be >= 0, got {self.precision}")
        object.__setattr__(self, "coefficients", tuple(int(h) for h in self.coefficients))
        if self.coefficients[8] != self.scale:
            raise ValueError(
                f"h[8] must equal 10**precision ({self.scale}), got {self.coefficients[8]}"
            )

    @property
    def scale(self) -> int:
        return 10**self.precision

    def __getitem__(self, index: int) -> int:
        return self.coefficients[index]

    def __iter__(self):
        return iter(self.coefficients)

    def __len__(self) -> int:
        return 9

    def rows(self) -> tuple[tuple[int, int, int], ...]:
        h = self.coefficients
        return ((h[0], h[1], h[2]), (h[3], h[4], h[5]), (h[6], h[7], h[8]))

    def to_float(self) -> tuple[float, ...]:
        """Unscaled coefficients (h[8] becomes 1.0)."""
        return tuple(h / self.scale for h in self.coefficients)

    @classmethod
    def from_coefficients(cls, coefficients: Sequence[int]) -> HomographyMatrix:
        """Rebuild a matrix from 9 coefficients, deriving precision from h[8].

        Raises:
            ValueError: If h[8] is not a positive power of ten.
        """
        if len(coefficients) != 9:
            raise ValueError(f"HomographyMatrix needs 9 coefficients, got {len(coefficients)}")
        return cls(tuple(coefficients), precision_from_scale(int(coefficients[8])))

    def describe(self) -> str:
        """Multi-line rendering, one matrix row per line."""
        return "\n".join(f"[{a:19d} ; {b:19d} ; {c:19d}]" for a, b, c in self.rows())


def precision_from_scale(scale: int) -> int:
    """Exponent p such that scale == 10**p.

    Raises:
        ValueError: If scale is not a positive power of ten.
    """
    if scale <= 0:
        raise ValueError(f"scale must be a positive power of ten, got {scale}")
    precision = len(str(scale)) - 1
    if 10**precision != scale:
        raise ValueError(f"scale must be a positive power of ten, got {scale}")
    return precision


def round_half_away(value: float, precision: int) -> int:
    """Scale value by 10**precision and round half away from zero.

    The product is computed exactly on the rational value of the double.
    """
    scaled = Fraction(value) * 10**precision
    if value >= 0:
        return math.floor(scaled + Fraction(1, 2))
    return math.ceil(scaled - Fraction(1, 2))


def quantize(solved: SolvedHomography, precision: int = DEFAULT_PRECISION) -> Outcome[HomographyMatrix]:
    """Convert a floating point solution into a HomographyMatrix.

    Args:
        solved: Solution h1..h8 from the solver.
        precision: Decimal digits kept, in [MIN_PRECISION, MAX_PRECISION].

    Returns:
        Outcome carrying the matrix, or PRECISION_OUT_OF_RANGE /
        COEFFICIENT_OVERFLOW.
    """
    if isinstance(precision, bool) or not isinstance(precision, int):
        return Outcome.fail(
            FailureKind.PRECISION_OUT_OF_RANGE, f"precision must be an integer, got {precision!r}"
        )
    if not MIN_PRECISION <= precision <= MAX_PRECISION:
        return Outcome.fail(
            FailureKind.PRECISION_OUT_OF_RANGE,
            f"precision {precision} outside [{MIN_PRECISION}, {MAX_PRECISION}]",
        )
    if precision < MIN_ACCURATE_PRECISION:
        logger.warning(
            f"Precision {precision} is below {MIN_ACCURATE_PRECISION}, "
            f"computed screen positions may be inaccurate"
        )

    scaled = [round_half_away(v, precision) for v in solved.coefficients]
    for index, h in enumerate(scaled):
        if not S64_MIN <= h <= S64_MAX:
            logger.error(f"h{index + 1} = {h} does not fit a 64-bit integer")
            return Outcome.fail(
                FailureKind.COEFFICIENT_OVERFLOW,
                f"h{index + 1} = {h} does not fit a 64-bit integer at precision {precision}",
            )
        if abs(h) >= MAX_SCALED_COEFFICIENT:
            logger.warning(
                f"h{index + 1} = {h} exceeds 2**48, the integer consumer may overflow "
                f"for large device coordinates"
            )

    matrix = HomographyMatrix(tuple([*scaled, 10**precision]), precision)
    logger.debug(f"Computed H matrix:\n{matrix.describe()}")
    return Outcome.success(matrix)
