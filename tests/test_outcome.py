#!/usr/bin/env python3
"""
Tests for the Outcome result type shared by every pipeline step.
"""

import pytest

from digitizer_calibration.outcome import FailureKind, Outcome


class TestUnwrap:
    """Tests for reading the value of an outcome."""

    def test_success_returns_value(self):
        assert Outcome.success(0).unwrap() == 0

    def test_failure_raises_with_kind_and_message(self):
        outcome = Outcome.fail(FailureKind.SINGULAR_SYSTEM, "device points 1, 2, 3 are collinear")

        with pytest.raises(RuntimeError, match="singular_system: device points"):
            outcome.unwrap()

    def test_success_without_value_raises(self):
        with pytest.raises(RuntimeError, match="no value"):
            Outcome.success(None).unwrap()

    def test_warnings_are_kept(self):
        outcome = Outcome.success(12, warnings=(FailureKind.PRECISION_OUT_OF_RANGE,))

        assert outcome.ok
        assert FailureKind.PRECISION_OUT_OF_RANGE in outcome.warnings
