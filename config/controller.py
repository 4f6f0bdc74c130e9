"""Configuration controller for YAML-based settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


DETECTION_DEFAULTS: dict[str, Any] = {
    "enabled": True,
    "sensitivity": 7,
    "sample_period_ms": 200,
    "confirm_ticks": 3,
    "cooldown_ms": 2000,
    "baseline_accuracy_percent": 96,
    "flame_pixel_threshold": 300,
    "model_weight": 0.7,
    "color_weight": 0.3,
}

MODEL_DEFAULTS: dict[str, Any] = {
    "path": "./models/mobilenet_v3_small_224.tflite",
    "input_size": 224,
    "flame_class_indices": [917, 474, 475],
    "num_threads": 2,
    "output_is_logits": False,
}

CAMERA_DEFAULTS: dict[str, Any] = {
    "width": 1280,
    "height": 720,
    "warmup_frames": 5,
    "warmup_ms": 1000,
}

GAME_DEFAULTS: dict[str, Any] = {
    "discovery_chance": 0.25,
    "total_secrets": 7,
    "location": "Mystic Forest",
    "state_file": "./var/game_state.json",
}


@dataclass(frozen=True)
class ConfigPaths:
    """Filesystem paths for configuration files."""

    config_dir: Path
    config_file: Path
    override_file: Path


class ConfigController:
    """Singleton controller for loading and updating configuration."""

    _instance: "ConfigController | None" = None

    def __init__(self, config_file: str = "default.yaml") -> None:
        if ConfigController._instance is not None:
            raise RuntimeError("You cannot create another ConfigController class")

        config_dir = Path("config")
        self.paths = ConfigPaths(
            config_dir=config_dir,
            config_file=config_dir / config_file,
            override_file=config_dir / "override.yaml",
        )
        self.config: dict[str, Any] = {}
        self.load_config()

    @classmethod
    def get_instance(cls) -> "ConfigController":
        """Return the singleton instance of the controller."""

        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def load_config(self) -> None:
        """Load configuration from default and override YAML files."""

        config: dict[str, Any] = {}
        if self.paths.config_file.exists():
            with self.paths.config_file.open("r", encoding="utf-8") as file:
                config = yaml.safe_load(file) or {}

        if self.paths.override_file.exists():
            with self.paths.override_file.open("r", encoding="utf-8") as file:
                override_config = yaml.safe_load(file) or {}
            if override_config:
                config = self._deep_merge(config, override_config)

        self.config = self._normalize_config(config)

    def save_config(self, config: dict[str, Any]) -> None:
        """Persist configuration to override.yaml, archiving previous overrides."""

        self.paths.config_dir.mkdir(parents=True, exist_ok=True)
        if self.paths.override_file.exists():
            archive_index = 1
            archive_file = self._archive_path(archive_index)
            while archive_file.exists():
                archive_index += 1
                archive_file = self._archive_path(archive_index)
            self.paths.override_file.rename(archive_file)

        with self.paths.override_file.open("w", encoding="utf-8") as file:
            yaml.safe_dump(config, file)

    def get_config(self) -> dict[str, Any]:
        """Return the currently loaded configuration."""

        return dict(self.config)

    def get_section(self, name: str) -> dict[str, Any]:
        """Return a copy of one nested configuration section."""

        return dict(self.config.get(name) or {})

    def set_config(self, config: dict[str, Any]) -> None:
        """Set and persist configuration values."""

        self.config = self._normalize_config(config)
        self.save_config(self.config)

    def _archive_path(self, index: int) -> Path:
        """Return the archive path for a given override index."""

        filename = f"override_{index:04d}.yaml"
        return self.paths.config_dir / filename

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge dictionaries, overriding base values with override values."""

        merged = dict(base)
        for key, value in override.items():
            if (
                key in merged
                and isinstance(merged[key], dict)
                and isinstance(value, dict)
            ):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _normalize_config(self, config: dict[str, Any]) -> dict[str, Any]:
        """Fill section defaults and map flat legacy keys onto nested sections."""

        normalized = dict(config)

        detection_cfg = dict(DETECTION_DEFAULTS)
        detection_cfg.update(normalized.get("detection") or {})
        if "sensitivity" not in (normalized.get("detection") or {}):
            legacy = normalized.get("sensitivity", normalized.get("detection_sensitivity"))
            if legacy is not None:
                detection_cfg["sensitivity"] = legacy
        detection_cfg["enabled"] = bool(detection_cfg["enabled"])
        detection_cfg["sensitivity"] = max(1, min(10, int(detection_cfg["sensitivity"])))
        detection_cfg["sample_period_ms"] = max(1, int(detection_cfg["sample_period_ms"]))
        detection_cfg["confirm_ticks"] = max(1, int(detection_cfg["confirm_ticks"]))
        detection_cfg["cooldown_ms"] = max(0, int(detection_cfg["cooldown_ms"]))
        detection_cfg["baseline_accuracy_percent"] = max(
            0, min(100, int(detection_cfg["baseline_accuracy_percent"]))
        )
        detection_cfg["flame_pixel_threshold"] = max(0, int(detection_cfg["flame_pixel_threshold"]))
        detection_cfg["model_weight"] = float(detection_cfg["model_weight"])
        detection_cfg["color_weight"] = float(detection_cfg["color_weight"])

        model_cfg = dict(MODEL_DEFAULTS)
        model_cfg.update(normalized.get("model") or {})
        if "path" not in (normalized.get("model") or {}) and normalized.get("model_path"):
            model_cfg["path"] = normalized["model_path"]
        model_cfg["path"] = str(model_cfg["path"])
        model_cfg["input_size"] = max(1, int(model_cfg["input_size"]))
        model_cfg["flame_class_indices"] = [int(idx) for idx in model_cfg["flame_class_indices"]]
        model_cfg["num_threads"] = max(1, int(model_cfg["num_threads"]))
        model_cfg["output_is_logits"] = bool(model_cfg["output_is_logits"])

        camera_cfg = dict(CAMERA_DEFAULTS)
        camera_cfg.update(normalized.get("camera") or {})
        for key in ("width", "height"):
            camera_cfg[key] = max(1, int(camera_cfg[key]))
        for key in ("warmup_frames", "warmup_ms"):
            camera_cfg[key] = max(0, int(camera_cfg[key]))

        game_cfg = dict(GAME_DEFAULTS)
        game_cfg.update(normalized.get("game") or {})
        game_cfg["discovery_chance"] = max(0.0, min(1.0, float(game_cfg["discovery_chance"])))
        game_cfg["total_secrets"] = max(0, int(game_cfg["total_secrets"]))
        game_cfg["location"] = str(game_cfg["location"])
        game_cfg["state_file"] = str(game_cfg["state_file"])

        normalized["detection"] = detection_cfg
        normalized["model"] = model_cfg
        normalized["camera"] = camera_cfg
        normalized["game"] = game_cfg
        return normalized
