"""Diagnostics routines for camera and model backends."""

from __future__ import annotations

import importlib.util
from dataclasses import dataclass
from pathlib import Path

from diagnostics.models import DiagnosticResult, DiagnosticStatus


MODEL_BACKENDS = ("tflite_runtime", "tensorflow")


@dataclass(frozen=True)
class HardwareProbeConfig:
    """Configuration for hardware dependency checks."""

    require_all: bool = False
    model_path: str | None = None


def probe(config: HardwareProbeConfig | None = None, available_modules: set[str] | None = None) -> DiagnosticResult:
    """Check for the camera backend, a TFLite backend and the model file.

    Args:
        config: Optional configuration for probe behavior.
        available_modules: Optional override set for offline testing.

    Returns:
        Diagnostic result indicating hardware dependency readiness.
    """

    name = "hardware"
    settings = config or HardwareProbeConfig()

    def _available(module_name: str) -> bool:
        if available_modules is not None:
            return module_name in available_modules
        return importlib.util.find_spec(module_name) is not None

    problems: list[str] = []
    if not _available("picamera2"):
        problems.append("missing picamera2")
    if not any(_available(backend) for backend in MODEL_BACKENDS):
        problems.append("missing TFLite backend (tflite_runtime or tensorflow)")
    if settings.model_path is not None and not Path(settings.model_path).expanduser().is_file():
        problems.append(f"model file not found at {settings.model_path}")

    if problems:
        status = DiagnosticStatus.FAIL if settings.require_all else DiagnosticStatus.WARN
        return DiagnosticResult(name=name, status=status, details="; ".join(problems))

    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details="Camera and model backends available",
    )
