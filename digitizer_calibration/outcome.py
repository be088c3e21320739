"""
Result type and failure taxonomy shared by every calibration operation.

Core operations never raise for expected failures (a duplicate click, a
degenerate point layout, a malformed state file). They return an Outcome
instead, and the caller decides whether to retry, reset the session or give
up. ValueError is reserved for programming errors such as building a Zone
with inverted bounds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class FailureKind(Enum):
    """Reasons a calibration operation can fail (or warn)."""

    INSUFFICIENT_POINTS = "insufficient_points"
    SESSION_FULL = "session_full"
    DUPLICATE_CLICK = "duplicate_click"
    SINGULAR_SYSTEM = "singular_system"
    PRECISION_OUT_OF_RANGE = "precision_out_of_range"
    COEFFICIENT_OVERFLOW = "coefficient_overflow"
    DEGENERATE_MATRIX = "degenerate_matrix"
    VERIFICATION_MISMATCH = "verification_mismatch"
    EXPORT_INCOMPLETE = "export_incomplete"
    SNAPSHOT_PARSE_ERROR = "snapshot_parse_error"
    SNAPSHOT_VERSION_MISMATCH = "snapshot_version_mismatch"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Success or failure of a single operation.

    Attributes:
        value: Produced value on success, None on failure.
        failure: Reason of the failure, None on success.
        message: Human readable detail, empty on plain success.
        warnings: Non-fatal conditions met along the way
            (e.g. SNAPSHOT_VERSION_MISMATCH).
    """

    value: T | None = None
    failure: FailureKind | None = None
    message: str = ""
    warnings: tuple[FailureKind, ...] = ()

    def __post_init__(self) -> None:
        if self.failure is None and self.value is None:
            raise ValueError("A successful Outcome must carry a value")
        if self.failure is not None and self.value is not None:
            raise ValueError("A failed Outcome cannot carry a value")

    @classmethod
    def success(cls, value: T, warnings: tuple[FailureKind, ...] = ()) -> Outcome[T]:
        return cls(value=value, warnings=warnings)

    @classmethod
    def fail(cls, failure: FailureKind, message: str = "") -> Outcome[T]:
        return cls(failure=failure, message=message)

    @property
    def ok(self) -> bool:
        return self.failure is None

    def unwrap(self) -> T:
        """Return the value of a successful outcome.

        Raises:
            RuntimeError: If the outcome is a failure or holds no value.
        """
        if self.failure is not None:
            raise RuntimeError(f"{self.failure.value}: {self.message}")
        if self.value is None:
            raise RuntimeError("successful outcome holds no value")
        return self.value
