"""Live camera frame source with warm-up gating."""

from __future__ import annotations

from dataclasses import dataclass
import importlib
import importlib.util
import threading
import time
from typing import Any, Protocol

import numpy as np

from core.logging import logger


class FrameSource(Protocol):
    """Minimal frame provider consumed by the detection sampler."""

    def is_ready(self) -> bool:
        ...

    def capture_frame(self) -> np.ndarray | None:
        ...


def millis() -> int:
    """Return current monotonic time in milliseconds."""

    return int(time.monotonic() * 1000)


@dataclass(frozen=True)
class CameraSettings:
    """Capture resolution and warm-up gating for the camera."""

    width: int = 1280
    height: int = 720
    warmup_frames: int = 5
    warmup_ms: int = 1000

    @classmethod
    def from_config(cls) -> "CameraSettings":
        from config import ConfigController

        camera_cfg = ConfigController.get_instance().get_section("camera")
        defaults = cls()
        return cls(
            width=int(camera_cfg.get("width", defaults.width)),
            height=int(camera_cfg.get("height", defaults.height)),
            warmup_frames=int(camera_cfg.get("warmup_frames", defaults.warmup_frames)),
            warmup_ms=int(camera_cfg.get("warmup_ms", defaults.warmup_ms)),
        )


def _require_camera_backend() -> Any:
    if importlib.util.find_spec("picamera2") is None:
        raise RuntimeError("picamera2 is required for CameraFrameSource")
    picamera2 = importlib.import_module("picamera2")
    return picamera2.Picamera2


class CameraFrameSource:
    """Capture RGB frames from a picamera2 device.

    The source reports not-ready until the camera is started and the warm-up
    window (frame count and elapsed time) has passed.
    """

    def __init__(self, settings: CameraSettings | None = None, camera: Any = None) -> None:
        self.settings = settings or CameraSettings()
        self._camera = camera
        self._lock = threading.Lock()
        self._started = False
        self._warmup_start_ms = 0
        self._warmup_frames_seen = 0
        self._warmup_done = False

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            if self._camera is None:
                picamera2_cls = _require_camera_backend()
                self._camera = picamera2_cls()
            configuration = self._camera.create_preview_configuration(
                main={"size": (self.settings.width, self.settings.height), "format": "RGB888"},
                buffer_count=2,
            )
            self._camera.configure(configuration)
            self._camera.start()
            self._started = True
            self._reset_warmup()
        logger.info("[CAMERA] Started at %sx%s", self.settings.width, self.settings.height)

    def stop(self) -> None:
        with self._lock:
            if not self._started:
                return
            self._started = False
            camera = self._camera
        for method_name in ("stop", "close"):
            method = getattr(camera, method_name, None)
            if callable(method):
                try:
                    method()
                except Exception:
                    logger.exception("[CAMERA] Failed to %s camera", method_name)

    def is_ready(self) -> bool:
        with self._lock:
            if not self._started:
                return False
            if self._warmup_done:
                return True
            camera = self._camera
        # Frames captured during warm-up are discarded.
        camera.capture_array("main")
        with self._lock:
            self._warmup_frames_seen += 1
            elapsed_ms = millis() - self._warmup_start_ms
            if (
                self._warmup_frames_seen >= self.settings.warmup_frames
                and elapsed_ms >= self.settings.warmup_ms
            ):
                self._warmup_done = True
                logger.info(
                    "[CAMERA] Warm-up complete after %d frames / %d ms",
                    self._warmup_frames_seen,
                    elapsed_ms,
                )
            return self._warmup_done

    def capture_frame(self) -> np.ndarray | None:
        with self._lock:
            if not self._started:
                return None
            camera = self._camera
        frame = camera.capture_array("main")
        if frame is None:
            return None
        # picamera2's RGB888 buffers are laid out BGR in memory.
        return np.ascontiguousarray(np.asarray(frame)[..., :3][..., ::-1])

    def _reset_warmup(self) -> None:
        self._warmup_start_ms = millis()
        self._warmup_frames_seen = 0
        self._warmup_done = self.settings.warmup_frames == 0 and self.settings.warmup_ms == 0
