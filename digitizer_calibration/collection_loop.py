"""
Cooperative driver for collecting the four calibration clicks.

A UI front-end owns the window and the input events; this loop owns the
calibration state machine. It is single-threaded and advanced explicitly:
the front-end calls tick() at a fixed period and forwards clicks with
on_click(). No signal handlers, no blocking waits.

    COLLECTING --4th click, calibration ok--> FINISHED
    COLLECTING --4th click, failure---------> FAILED
    COLLECTING --no click for timeout_ms----> TIMED_OUT
    COLLECTING --cancel()-------------------> CANCELLED
    start      --consumer reset fails-------> FAILED

Every click, accepted or rejected as a double click, restarts the timeout.
Starting a run, on construction or with restart(), marks both consumers
uncalibrated first so that clicks arrive as raw device coordinates.
A failed run stays FAILED until restart() is called.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Iterable

from digitizer_calibration.calibrator import Calibrator
from digitizer_calibration.correspondence import Correspondence
from digitizer_calibration.outcome import FailureKind, Outcome
from digitizer_calibration.persistence import CalibrationSnapshot
from digitizer_calibration.types import DeviceUnits
from digitizer_calibration.zone import ScreenGeometry

logger = logging.getLogger(__name__)


class CollectionState(Enum):
    """States of a collection run."""

    COLLECTING = "collecting"
    FINISHED = "finished"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class CollectionLoop:
    """Tick-driven state machine around a Calibrator.

    Attributes:
        calibrator: Calibration run being driven.
        tick_ms: Time represented by one tick.
        timeout_ms: Run times out after this long without a click.
        elapsed_ms: Time since the last click.
        state: Current state.
        result: Outcome of Calibrator.finish() once the 4th click was accepted,
            or the failed consumer reset that kept the run from starting.
    """

    def __init__(
        self,
        calibrator: Calibrator,
        tick_ms: int | None = None,
        timeout_ms: int | None = None,
    ):
        self.calibrator = calibrator
        self.tick_ms = tick_ms if tick_ms is not None else calibrator.config.tick_ms
        self.timeout_ms = timeout_ms if timeout_ms is not None else calibrator.config.timeout_ms
        if self.tick_ms <= 0:
            raise ValueError(f"tick_ms must be positive, got {self.tick_ms}")
        self.elapsed_ms = 0
        self.state = CollectionState.COLLECTING
        self.result: Outcome[CalibrationSnapshot] | None = None
        self._cancel_requested = False
        self._start()

    @property
    def running(self) -> bool:
        return self.state is CollectionState.COLLECTING

    @property
    def progress(self) -> float:
        """Fraction of the timeout already elapsed, for the countdown clock."""
        return min(self.elapsed_ms / self.timeout_ms, 1.0)

    def cancel(self) -> None:
        """Request cancellation; honored at the next tick."""
        self._cancel_requested = True

    def tick(self) -> CollectionState:
        """Advance time by one tick."""
        if not self.running:
            return self.state
        if self._cancel_requested:
            logger.info("Calibration cancelled")
            self.state = CollectionState.CANCELLED
            return self.state

        self.elapsed_ms += self.tick_ms
        if self.elapsed_ms > self.timeout_ms:
            logger.info(f"No click for {self.timeout_ms} ms, giving up")
            self.state = CollectionState.TIMED_OUT
        return self.state

    def on_click(self, raw_x: DeviceUnits, raw_y: DeviceUnits) -> Outcome[Correspondence]:
        """Forward a click to the calibrator.

        The fourth accepted click completes the run.
        """
        if not self.running:
            return Outcome.fail(FailureKind.SESSION_FULL, f"run is {self.state.value}")

        self.elapsed_ms = 0
        outcome = self.calibrator.add_click(raw_x, raw_y)
        if not outcome.ok:
            return outcome

        if self.calibrator.session.is_complete:
            self.result = self.calibrator.finish()
            self.state = CollectionState.FINISHED if self.result.ok else CollectionState.FAILED
            logger.info(
                "Calibration complete" if self.result.ok else f"Calibration failed: {self.result.message}"
            )
        return outcome

    def on_geometry_change(self, screen: ScreenGeometry) -> None:
        """Screen resized or rotated: targets move, collected points are dropped."""
        if self.calibrator.set_screen(screen):
            self.elapsed_ms = 0

    def _start(self) -> None:
        self.elapsed_ms = 0
        self.result = None
        self._cancel_requested = False
        started = self.calibrator.begin()
        if started.ok:
            self.state = CollectionState.COLLECTING
        else:
            self.result = Outcome.fail(started.failure, started.message)
            self.state = CollectionState.FAILED

    def restart(self) -> None:
        """Start a fresh run with the same calibrator."""
        self._start()

    def run(
        self,
        poll: Callable[[], Iterable[tuple[int, int]]],
        sleep: Callable[[float], None] = time.sleep,
    ) -> CollectionState:
        """Drive the loop until it leaves COLLECTING.

        Args:
            poll: Returns the clicks received since the previous call, as
                (raw_x, raw_y) pairs. Must not block.
            sleep: Waits for one tick period, in seconds.
        """
        while self.running:
            for raw_x, raw_y in poll():
                self.on_click(DeviceUnits(raw_x), DeviceUnits(raw_y))
                if not self.running:
                    return self.state
            if self.tick() is not CollectionState.COLLECTING:
                break
            sleep(self.tick_ms / 1000.0)
        return self.state
