"""Classifier-based flame confidence from a pretrained image model."""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
import inspect
from typing import Any, Iterator, Protocol

import numpy as np
from PIL import Image

from vision.detections import DetectionResult


class ImageClassifier(Protocol):
    """Anything that maps a ``(1, H, W, 3)`` float batch to class probabilities."""

    def predict(self, batch: np.ndarray) -> Any:
        ...


@dataclass(frozen=True)
class ModelScorerSettings:
    """Preprocessing and aggregation settings for the model pass."""

    input_size: int = 224
    # ImageNet labels (with background offset): matchstick, lighter, candle
    flame_class_indices: tuple[int, ...] = (917, 474, 475)

    @classmethod
    def from_config(cls) -> "ModelScorerSettings":
        from config import ConfigController

        model_cfg = ConfigController.get_instance().get_section("model")
        defaults = cls()
        indices = model_cfg.get("flame_class_indices")
        return cls(
            input_size=int(model_cfg.get("input_size", defaults.input_size)),
            flame_class_indices=tuple(int(idx) for idx in indices)
            if isinstance(indices, (list, tuple))
            else defaults.flame_class_indices,
        )


class BufferScope:
    """Track buffers allocated during one inference and release them on exit."""

    def __init__(self) -> None:
        self._tracked: list[Any] = []

    def track(self, buffer: Any) -> Any:
        self._tracked.append(buffer)
        return buffer

    def __len__(self) -> int:
        return len(self._tracked)

    def release(self) -> None:
        while self._tracked:
            buffer = self._tracked.pop()
            for method_name in ("dispose", "close"):
                method = getattr(buffer, method_name, None)
                if callable(method):
                    method()
                    break


@contextmanager
def inference_scope() -> Iterator[BufferScope]:
    scope = BufferScope()
    try:
        yield scope
    finally:
        scope.release()


def adjust_for_sensitivity(raw_confidence: float, sensitivity: float) -> float:
    """Bias a raw class-probability sum up above 0.5 sensitivity and down below it."""

    return raw_confidence * (1.0 + (sensitivity - 0.5))


class ModelScorer:
    """Run the classifier over a frame and aggregate flame-adjacent classes."""

    def __init__(self, settings: ModelScorerSettings | None = None) -> None:
        self.settings = settings or ModelScorerSettings()

    async def score(self, frame: Any, model: ImageClassifier, sensitivity: float) -> DetectionResult:
        with inference_scope() as scope:
            batch = self.preprocess(frame, scope)
            output = await self._predict(model, batch)
            scope.track(output)
            probabilities = self._to_probabilities(output)
            raw_confidence = float(
                sum(float(probabilities[idx]) for idx in self.settings.flame_class_indices)
            )

        adjusted = adjust_for_sensitivity(raw_confidence, sensitivity)
        return DetectionResult(
            detected=adjusted >= sensitivity,
            confidence=min(adjusted, 1.0),
        )

    def preprocess(self, frame: Any, scope: BufferScope) -> np.ndarray:
        """Resize to the model input and normalize into ``[-1, 1]`` as a batch of one."""

        pixels = np.asarray(frame)
        if pixels.ndim != 3 or pixels.shape[2] < 3:
            raise ValueError(f"Expected an (H, W, 3) frame, got shape {pixels.shape}")
        rgb = scope.track(np.ascontiguousarray(pixels[..., :3], dtype=np.uint8))
        image = scope.track(Image.fromarray(rgb))
        size = self.settings.input_size
        resized = scope.track(image.resize((size, size), Image.Resampling.BILINEAR))
        normalized = scope.track(np.asarray(resized, dtype=np.float32) / 127.5 - 1.0)
        return scope.track(np.expand_dims(normalized, axis=0))

    async def _predict(self, model: ImageClassifier, batch: np.ndarray) -> Any:
        """Run inference without blocking the event loop."""

        if inspect.iscoroutinefunction(model.predict):
            return await model.predict(batch)
        output = await asyncio.to_thread(model.predict, batch)
        if inspect.isawaitable(output):
            output = await output
        return output

    def _to_probabilities(self, output: Any) -> np.ndarray:
        if isinstance(output, (list, tuple)) and output and not np.isscalar(output[0]):
            output = output[0]
        probabilities = np.asarray(output, dtype=np.float32)
        return probabilities.reshape(-1)
