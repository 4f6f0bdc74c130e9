"""Fast color heuristic that counts flame-colored pixels in a frame."""

from __future__ import annotations

from typing import Any

import numpy as np

from vision.detections import ColorRange, ColorScore


FLAME_COLORS: tuple[ColorRange, ...] = (
    ColorRange(name="yellow-orange", r=(180, 255), g=(100, 180), b=(0, 100)),
    ColorRange(name="orange-red", r=(200, 255), g=(50, 150), b=(0, 50)),
    ColorRange(name="deep-red", r=(150, 255), g=(30, 100), b=(0, 40)),
)

# Share of the frame that counts as full confidence.
FULL_CONFIDENCE_AREA = 0.05

EMPTY_SCORE = ColorScore(flame_pixel_count=0, confidence=0.0)


def is_flame_color(r: int, g: int, b: int, ranges: tuple[ColorRange, ...] = FLAME_COLORS) -> bool:
    """Return whether an RGB triple falls inside any flame color band."""

    return any(color_range.contains(r, g, b) for color_range in ranges)


def flame_mask(frame: np.ndarray, ranges: tuple[ColorRange, ...] = FLAME_COLORS) -> np.ndarray:
    """Return a boolean ``(height, width)`` mask of flame-colored pixels."""

    r = frame[..., 0]
    g = frame[..., 1]
    b = frame[..., 2]
    mask = np.zeros(frame.shape[:2], dtype=bool)
    for color_range in ranges:
        mask |= (
            (r >= color_range.r[0]) & (r <= color_range.r[1])
            & (g >= color_range.g[0]) & (g <= color_range.g[1])
            & (b >= color_range.b[0]) & (b <= color_range.b[1])
        )
    return mask


def confidence_for_count(flame_pixel_count: int, total_pixels: int) -> float:
    if total_pixels <= 0:
        return 0.0
    return min(flame_pixel_count / (total_pixels * FULL_CONFIDENCE_AREA), 1.0)


class ColorHeuristicScorer:
    """Score a frame by the fraction of its pixels that look like flame."""

    def __init__(self, ranges: tuple[ColorRange, ...] = FLAME_COLORS) -> None:
        self.ranges = ranges

    def score(self, frame: Any) -> ColorScore:
        pixels = self._as_pixels(frame)
        if pixels is None:
            return EMPTY_SCORE

        total_pixels = pixels.shape[0] * pixels.shape[1]
        flame_pixel_count = int(np.count_nonzero(flame_mask(pixels, self.ranges)))
        return ColorScore(
            flame_pixel_count=flame_pixel_count,
            confidence=confidence_for_count(flame_pixel_count, total_pixels),
        )

    def _as_pixels(self, frame: Any) -> np.ndarray | None:
        if frame is None:
            return None
        pixels = np.asarray(frame)
        if pixels.ndim != 3 or pixels.shape[2] < 3:
            return None
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            return None
        if not np.issubdtype(pixels.dtype, np.number):
            return None
        # Signed arithmetic keeps the range checks exact for any integer dtype.
        return pixels[..., :3].astype(np.int16, copy=False)
