import asyncio

import numpy as np
import pytest

from vision.detections import NO_DETECTION, sensitivity_from_level
from vision.fusion import FusionDetector, FusionSettings


class _FakeModel:
    def __init__(self, raw_confidence: float = 0.0, error: Exception | None = None) -> None:
        self.raw_confidence = raw_confidence
        self.error = error
        self.calls = 0

    def predict(self, batch: np.ndarray) -> np.ndarray:
        self.calls += 1
        if self.error is not None:
            raise self.error
        probabilities = np.zeros((1, 1001), dtype=np.float32)
        probabilities[0, 917] = self.raw_confidence
        return probabilities


def _frame(flame_pixels: int, size: int = 100) -> np.ndarray:
    frame = np.zeros((size, size, 3), dtype=np.uint8)
    flat = frame.reshape(-1, 3)
    flat[:flame_pixels] = (220, 120, 30)
    return frame


def test_sparse_flame_pixels_short_circuit_without_model() -> None:
    detector = FusionDetector()
    model = _FakeModel(raw_confidence=1.0)

    # Threshold at sensitivity 7 is 300 * 0.7 = 210 pixels.
    result = asyncio.run(detector.detect(_frame(200), model, sensitivity_from_level(7)))

    assert model.calls == 0
    assert result.detected is False
    assert result.confidence == pytest.approx(200 / 500)
    assert detector.short_circuits == 1
    assert detector.model_passes == 0


def test_short_circuit_threshold_scales_with_sensitivity() -> None:
    detector = FusionDetector()
    model = _FakeModel(raw_confidence=0.0)

    asyncio.run(detector.detect(_frame(200), model, sensitivity_from_level(5)))

    assert model.calls == 1
    assert detector.model_passes == 1


def test_fused_score_above_sensitivity_is_detected() -> None:
    detector = FusionDetector()
    model = _FakeModel(raw_confidence=0.75)

    result = asyncio.run(detector.detect(_frame(400), model, sensitivity_from_level(7)))

    # model: 0.75 * 1.2 = 0.9; color: 400 / 500 = 0.8; 0.9 * 0.7 + 0.8 * 0.3
    assert result.confidence == pytest.approx(0.87)
    assert result.detected is True


def test_fused_score_below_sensitivity_is_rejected() -> None:
    detector = FusionDetector()
    model = _FakeModel(raw_confidence=0.5)

    result = asyncio.run(detector.detect(_frame(400), model, sensitivity_from_level(7)))

    # model: 0.5 * 1.2 = 0.6; 0.6 * 0.7 + 0.8 * 0.3 = 0.66
    assert result.confidence == pytest.approx(0.66)
    assert result.detected is False


def test_custom_weights_are_applied() -> None:
    detector = FusionDetector(FusionSettings(flame_pixel_threshold=0, model_weight=0.5, color_weight=0.5))

    assert detector.fuse(1.0, 0.0) == pytest.approx(0.5)
    assert detector.fuse(0.4, 0.8) == pytest.approx(0.6)


def test_model_failure_is_reported_as_no_flame() -> None:
    detector = FusionDetector()
    model = _FakeModel(error=RuntimeError("interpreter crashed"))

    result = asyncio.run(detector.detect(_frame(400), model, sensitivity_from_level(7)))

    assert result == NO_DETECTION
    assert model.calls == 1


def test_unusable_frame_short_circuits() -> None:
    detector = FusionDetector()
    model = _FakeModel(raw_confidence=1.0)

    result = asyncio.run(detector.detect(None, model, sensitivity_from_level(7)))

    assert result.detected is False
    assert result.confidence == 0.0
    assert model.calls == 0


def test_default_weights_span_zero_to_one() -> None:
    detector = FusionDetector()

    assert detector.fuse(1.0, 1.0) == pytest.approx(1.0)
    assert detector.fuse(0.0, 0.0) == 0.0
    assert detector.fuse(1.0, 0.0) == pytest.approx(0.7)
    assert detector.fuse(0.0, 1.0) == pytest.approx(0.3)


def test_strong_model_and_moderate_color_detect_at_default_sensitivity() -> None:
    detector = FusionDetector()
    # 0.75 * (1 + (0.7 - 0.5)) = 0.9 from the model; 300 / 500 = 0.6 from color.
    model = _FakeModel(raw_confidence=0.75)

    result = asyncio.run(detector.detect(_frame(300), model, sensitivity_from_level(7)))

    assert result.confidence == pytest.approx(0.81)
    assert result.detected is True


def test_repeated_detection_of_same_frame_is_identical() -> None:
    detector = FusionDetector()
    model = _FakeModel(raw_confidence=0.6)
    frame = _frame(400)

    results = [asyncio.run(detector.detect(frame, model, sensitivity_from_level(6))) for _ in range(3)]

    assert results[0] == results[1] == results[2]
    assert model.calls == 3
