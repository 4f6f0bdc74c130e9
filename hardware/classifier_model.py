"""Pretrained image classifier loaded once and shared across detection ticks."""

from __future__ import annotations

from dataclasses import dataclass
import importlib
import importlib.util
from pathlib import Path
import threading
from typing import Any

import numpy as np

from core.logging import logger


class ModelUnavailableError(RuntimeError):
    """Raised when the classifier backend or model file cannot be loaded."""


@dataclass(frozen=True)
class ClassifierSettings:
    """Runtime settings for the TFLite classifier."""

    path: str = "./models/mobilenet_v3_small_224.tflite"
    num_threads: int = 2
    output_is_logits: bool = False

    @classmethod
    def from_config(cls) -> "ClassifierSettings":
        from config import ConfigController

        model_cfg = ConfigController.get_instance().get_section("model")
        defaults = cls()
        return cls(
            path=str(model_cfg.get("path", defaults.path)),
            num_threads=int(model_cfg.get("num_threads", defaults.num_threads)),
            output_is_logits=bool(model_cfg.get("output_is_logits", defaults.output_is_logits)),
        )


def _softmax(values: np.ndarray) -> np.ndarray:
    shifted = values - np.max(values, axis=-1, keepdims=True)
    exp = np.exp(shifted)
    return exp / np.sum(exp, axis=-1, keepdims=True)


class TfliteClassifier:
    """Thin ``predict(batch)`` wrapper around a TFLite interpreter.

    The interpreter holds a single set of input/output tensors, so calls are
    serialized with a lock.
    """

    def __init__(self, interpreter: Any, output_is_logits: bool = False) -> None:
        self._interpreter = interpreter
        self._output_is_logits = output_is_logits
        self._lock = threading.Lock()
        self._interpreter.allocate_tensors()
        self._input_details = self._interpreter.get_input_details()[0]
        self._output_details = self._interpreter.get_output_details()[0]

    @property
    def input_shape(self) -> tuple[int, ...]:
        return tuple(int(dim) for dim in self._input_details["shape"])

    def predict(self, batch: np.ndarray) -> np.ndarray:
        tensor = np.asarray(batch, dtype=self._input_details.get("dtype", np.float32))
        with self._lock:
            self._interpreter.set_tensor(self._input_details["index"], tensor)
            self._interpreter.invoke()
            output = np.array(self._interpreter.get_tensor(self._output_details["index"]))
        if self._output_is_logits:
            output = _softmax(output.astype(np.float32))
        return output


def find_interpreter_class() -> tuple[Any, str]:
    """Return the first available TFLite interpreter class and its module name."""

    for module_name in ("tflite_runtime.interpreter", "tensorflow.lite"):
        root = module_name.split(".")[0]
        if importlib.util.find_spec(root) is None:
            continue
        module = importlib.import_module(module_name)
        interpreter_cls = getattr(module, "Interpreter", None)
        if interpreter_cls is not None:
            return interpreter_cls, module_name
    raise ModelUnavailableError("No TFLite backend installed (tflite-runtime or tensorflow)")


def load_classifier(settings: ClassifierSettings | None = None) -> TfliteClassifier:
    """Load the classifier from disk; blocking, meant for ``asyncio.to_thread``."""

    settings = settings or ClassifierSettings()
    model_path = Path(settings.path).expanduser()
    if not model_path.is_file():
        raise ModelUnavailableError(f"Model file not found at {model_path}")

    interpreter_cls, backend = find_interpreter_class()
    try:
        interpreter = interpreter_cls(
            model_path=str(model_path),
            num_threads=max(1, settings.num_threads),
        )
        classifier = TfliteClassifier(interpreter, output_is_logits=settings.output_is_logits)
    except Exception as exc:
        raise ModelUnavailableError(f"Failed to load model {model_path}: {exc}") from exc

    logger.info(
        "[MODEL] Loaded %s via %s (input_shape=%s)",
        model_path.name,
        backend,
        classifier.input_shape,
    )
    return classifier
