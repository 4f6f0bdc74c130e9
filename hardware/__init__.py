"""Camera and classifier backends."""

from hardware.camera_source import CameraFrameSource, CameraSettings, FrameSource
from hardware.classifier_model import (
    ClassifierSettings,
    ModelUnavailableError,
    TfliteClassifier,
    load_classifier,
)

__all__ = [
    "CameraFrameSource",
    "CameraSettings",
    "ClassifierSettings",
    "FrameSource",
    "ModelUnavailableError",
    "TfliteClassifier",
    "load_classifier",
]
