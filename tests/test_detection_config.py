"""Tests for detection config normalization and settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from config.controller import ConfigController
from hardware.camera_source import CameraSettings
from hardware.classifier_model import ClassifierSettings
from services.flame_detection import DetectionSettings
from services.game_session import GameSettings
from vision.fusion import FusionSettings
from vision.model_scorer import ModelScorerSettings
from vision.stabilizer import StabilizerConfig


@pytest.fixture(autouse=True)
def _reset_config_singleton():
    ConfigController._instance = None
    yield
    ConfigController._instance = None


def _write_config(tmp_path: Path, lines: list[str], name: str = "default.yaml") -> None:
    config_dir = tmp_path / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / name).write_text("\n".join(lines), encoding="utf-8")


def test_missing_config_falls_back_to_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    settings = DetectionSettings.from_config()
    assert settings.sensitivity == 7
    assert settings.sample_period_ms == 200
    assert settings.stabilizer == StabilizerConfig()
    assert FusionSettings.from_config() == FusionSettings()
    assert ModelScorerSettings.from_config() == ModelScorerSettings()
    assert CameraSettings.from_config() == CameraSettings()
    assert GameSettings.from_config() == GameSettings()


def test_legacy_flat_keys_map_onto_sections(tmp_path: Path, monkeypatch) -> None:
    _write_config(
        tmp_path,
        [
            "detection_sensitivity: 4",
            "model_path: ./models/custom.tflite",
            "detection:",
            "  confirm_ticks: 5",
        ],
    )
    monkeypatch.chdir(tmp_path)

    detection_cfg = ConfigController.get_instance().get_section("detection")
    assert detection_cfg["sensitivity"] == 4
    assert detection_cfg["confirm_ticks"] == 5
    assert detection_cfg["cooldown_ms"] == 2000
    assert DetectionSettings.from_config().sensitivity == 4
    assert StabilizerConfig.from_config().confirm_ticks == 5
    assert ClassifierSettings.from_config().path == "./models/custom.tflite"


def test_values_are_clamped(tmp_path: Path, monkeypatch) -> None:
    _write_config(
        tmp_path,
        [
            "detection:",
            "  sensitivity: 42",
            "  baseline_accuracy_percent: 150",
            "  confirm_ticks: 0",
            "game:",
            "  discovery_chance: 3",
        ],
    )
    monkeypatch.chdir(tmp_path)

    config = ConfigController.get_instance().get_config()
    assert config["detection"]["sensitivity"] == 10
    assert config["detection"]["baseline_accuracy_percent"] == 100
    assert config["detection"]["confirm_ticks"] == 1
    assert config["game"]["discovery_chance"] == 1.0


def test_override_file_is_deep_merged(tmp_path: Path, monkeypatch) -> None:
    _write_config(tmp_path, ["detection:", "  sensitivity: 6", "  cooldown_ms: 1500"])
    _write_config(tmp_path, ["detection:", "  sensitivity: 3", "model:", "  flame_class_indices: [1, 2]"], "override.yaml")
    monkeypatch.chdir(tmp_path)

    assert DetectionSettings.from_config().sensitivity == 3
    assert StabilizerConfig.from_config().cooldown_ms == 1500
    assert ModelScorerSettings.from_config().flame_class_indices == (1, 2)


def test_set_config_archives_previous_override(tmp_path: Path, monkeypatch) -> None:
    _write_config(tmp_path, ["detection:", "  sensitivity: 6"])
    monkeypatch.chdir(tmp_path)

    controller = ConfigController.get_instance()
    config = controller.get_config()
    config["detection"] = {**config["detection"], "sensitivity": 2}
    controller.set_config(config)
    controller.set_config(config)

    assert (tmp_path / "config" / "override.yaml").exists()
    assert (tmp_path / "config" / "override_0001.yaml").exists()
    ConfigController._instance = None
    assert DetectionSettings.from_config().sensitivity == 2


def test_detection_can_be_disabled_from_config(tmp_path: Path, monkeypatch) -> None:
    _write_config(tmp_path, ["detection:", "  enabled: false"])
    monkeypatch.chdir(tmp_path)

    assert DetectionSettings.from_config().enabled is False
