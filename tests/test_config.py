#!/usr/bin/env python3
"""
Tests for CalibratorConfig loading and validation.
"""

import logging
from pathlib import Path

import pytest

from digitizer_calibration.config import CalibratorConfig, get_default_config


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv("DIGCAL_DEVICE_DIR", raising=False)
    monkeypatch.delenv("DIGCAL_DEVICE", raising=False)


class TestDefaults:
    def test_default_values(self):
        config = get_default_config()

        assert config.precision == 12
        assert config.threshold_doubleclick == 16
        assert config.zone is None
        assert config.device_dir is None
        assert config.timeout_ms == 15000
        assert config.tick_ms == 100

    def test_environment_fills_device(self, monkeypatch):
        monkeypatch.setenv("DIGCAL_DEVICE_DIR", "/sys/class/input/event5/device/device/")
        monkeypatch.setenv("DIGCAL_DEVICE", "eBeam Classic")

        config = get_default_config()

        assert config.device_dir == Path("/sys/class/input/event5/device/device/")
        assert config.device == "eBeam Classic"


class TestFromDict:
    def test_explicit_values_win_over_environment(self, monkeypatch):
        monkeypatch.setenv("DIGCAL_DEVICE_DIR", "/from/env")

        config = CalibratorConfig.from_dict({"device_dir": "/from/file", "zone": [1, 2, 300, 400]})

        assert config.device_dir == Path("/from/file")
        assert config.zone == (1, 2, 300, 400)

    def test_unknown_keys_warn(self, caplog):
        with caplog.at_level(logging.WARNING):
            CalibratorConfig.from_dict({"precison": 10})

        assert "precison" in caplog.text

    @pytest.mark.parametrize(
        "values",
        [
            {"precision": 15},
            {"precision": -1},
            {"threshold_doubleclick": -5},
            {"zone": [1, 2, 3]},
            {"zone": "everywhere"},
            {"tick_ms": 0},
            {"timeout_ms": 50, "tick_ms": 100},
        ],
    )
    def test_invalid_values(self, values):
        with pytest.raises(ValueError):
            CalibratorConfig.from_dict(values)

    def test_not_a_dict(self):
        with pytest.raises(ValueError):
            CalibratorConfig.from_dict([("precision", 12)])

    def test_to_dict_round_trip(self):
        config = CalibratorConfig(precision=10, zone=(100, 50, 1819, 1029), device="12")

        assert CalibratorConfig.from_dict(config.to_dict()) == config


class TestFromYaml:
    def test_loads_calibration_section(self, tmp_path):
        path = tmp_path / "digcal.yaml"
        path.write_text(
            "calibration:\n"
            "  precision: 10\n"
            "  threshold_doubleclick: 8\n"
            "  zone: [100, 50, 1819, 1029]\n"
            "  timeout_ms: 20000\n"
        )

        config = CalibratorConfig.from_yaml(path)

        assert config.precision == 10
        assert config.threshold_doubleclick == 8
        assert config.zone == (100, 50, 1819, 1029)
        assert config.timeout_ms == 20000

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CalibratorConfig.from_yaml(tmp_path / "absent.yaml")

    def test_missing_section(self, tmp_path):
        path = tmp_path / "digcal.yaml"
        path.write_text("display:\n  width: 1920\n")

        with pytest.raises(ValueError, match="calibration"):
            CalibratorConfig.from_yaml(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "digcal.yaml"
        path.write_text("calibration: [unclosed\n")

        with pytest.raises(ValueError):
            CalibratorConfig.from_yaml(path)
