"""Diagnostics routines for the vision pipeline."""

from __future__ import annotations

import numpy as np

from diagnostics.models import DiagnosticResult, DiagnosticStatus
from vision.color_scorer import ColorHeuristicScorer


def probe(frame_size: tuple[int, int] = (120, 160)) -> DiagnosticResult:
    """Score a synthetic frame with a known flame patch.

    Args:
        frame_size: ``(height, width)`` of the synthetic frame.

    Returns:
        Diagnostic result indicating whether the color heuristic behaves.
    """

    name = "vision"
    height, width = frame_size
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    patch_h, patch_w = max(1, height // 10), max(1, width // 10)
    frame[:patch_h, :patch_w] = (220, 120, 30)

    score = ColorHeuristicScorer().score(frame)
    expected = patch_h * patch_w
    if score.flame_pixel_count != expected:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Color scorer counted {score.flame_pixel_count} flame pixels, expected {expected}",
        )
    if not 0.0 < score.confidence <= 1.0:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Color confidence out of range: {score.confidence}",
        )
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"Color scorer ok (pixels={score.flame_pixel_count} confidence={score.confidence:.2f})",
    )
