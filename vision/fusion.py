"""Two-stage flame detector combining the color heuristic with the classifier."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core.logging import logger
from vision.color_scorer import ColorHeuristicScorer
from vision.detections import NO_DETECTION, DetectionResult
from vision.model_scorer import ImageClassifier, ModelScorer


@dataclass(frozen=True)
class FusionSettings:
    """Gate and weighting constants for score fusion."""

    flame_pixel_threshold: int = 300
    model_weight: float = 0.7
    color_weight: float = 0.3

    @classmethod
    def from_config(cls) -> "FusionSettings":
        from config import ConfigController

        detection_cfg = ConfigController.get_instance().get_section("detection")
        defaults = cls()
        return cls(
            flame_pixel_threshold=int(
                detection_cfg.get("flame_pixel_threshold", defaults.flame_pixel_threshold)
            ),
            model_weight=float(detection_cfg.get("model_weight", defaults.model_weight)),
            color_weight=float(detection_cfg.get("color_weight", defaults.color_weight)),
        )


class FusionDetector:
    """Gate the expensive model pass on cheap color evidence, then fuse both scores."""

    def __init__(
        self,
        settings: FusionSettings | None = None,
        color_scorer: ColorHeuristicScorer | None = None,
        model_scorer: ModelScorer | None = None,
    ) -> None:
        self.settings = settings or FusionSettings()
        self.color_scorer = color_scorer or ColorHeuristicScorer()
        self.model_scorer = model_scorer or ModelScorer()
        self.model_passes = 0
        self.short_circuits = 0

    async def detect(self, frame: Any, model: ImageClassifier, sensitivity: float) -> DetectionResult:
        try:
            color = self.color_scorer.score(frame)

            if color.flame_pixel_count < self.settings.flame_pixel_threshold * sensitivity:
                self.short_circuits += 1
                return DetectionResult(detected=False, confidence=color.confidence)

            self.model_passes += 1
            model_result = await self.model_scorer.score(frame, model, sensitivity)
            combined = self.fuse(model_result.confidence, color.confidence)
            logger.debug(
                "[DETECT] pixels=%d color=%.3f model=%.3f combined=%.3f",
                color.flame_pixel_count,
                color.confidence,
                model_result.confidence,
                combined,
            )
            return DetectionResult(detected=combined >= sensitivity, confidence=combined)
        except Exception:
            logger.exception("[DETECT] Flame detection failed; treating frame as no flame")
            return NO_DETECTION

    def fuse(self, model_confidence: float, color_confidence: float) -> float:
        return model_confidence * self.settings.model_weight + color_confidence * self.settings.color_weight
