"""Vision package exports."""

from vision.color_scorer import ColorHeuristicScorer, is_flame_color
from vision.detections import ColorRange, ColorScore, DetectionResult, StabilizedState
from vision.fusion import FusionDetector
from vision.model_scorer import ModelScorer
from vision.stabilizer import FlameState, TemporalStabilizer

__all__ = [
    "ColorHeuristicScorer",
    "ColorRange",
    "ColorScore",
    "DetectionResult",
    "FlameState",
    "FusionDetector",
    "ModelScorer",
    "StabilizedState",
    "TemporalStabilizer",
    "is_flame_color",
]
