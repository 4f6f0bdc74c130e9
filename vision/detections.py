"""Stable result schemas for the flame detection pipeline.

Frames are ``numpy`` arrays shaped ``(height, width, channels)`` with RGB
intensities in ``[0, 255]``. Extra channels (for example alpha) are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass


MIN_SENSITIVITY_LEVEL = 1
MAX_SENSITIVITY_LEVEL = 10


@dataclass(frozen=True)
class ColorRange:
    """Inclusive per-channel bounds describing one band of flame-like colors."""

    name: str
    r: tuple[int, int]
    g: tuple[int, int]
    b: tuple[int, int]

    def contains(self, r: int, g: int, b: int) -> bool:
        return (
            self.r[0] <= r <= self.r[1]
            and self.g[0] <= g <= self.g[1]
            and self.b[0] <= b <= self.b[1]
        )


@dataclass(frozen=True)
class ColorScore:
    """Output of the color heuristic for a single frame."""

    flame_pixel_count: int
    confidence: float


@dataclass(frozen=True)
class DetectionResult:
    """Per-frame detection decision."""

    detected: bool
    confidence: float


NO_DETECTION = DetectionResult(detected=False, confidence=0.0)


@dataclass(frozen=True)
class StabilizedState:
    """Debounced flame state published to consumers once per tick."""

    flame_detected: bool
    detection_accuracy_percent: int


def clamp_sensitivity_level(level: int) -> int:
    """Clamp a user-facing sensitivity setting into the supported 1-10 range."""

    return max(MIN_SENSITIVITY_LEVEL, min(MAX_SENSITIVITY_LEVEL, int(level)))


def sensitivity_from_level(level: int) -> float:
    """Convert the 1-10 sensitivity setting into a scalar in ``(0, 1]``."""

    return clamp_sensitivity_level(level) / 10.0
