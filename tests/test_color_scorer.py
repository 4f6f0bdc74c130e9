import numpy as np
import pytest

from vision.color_scorer import EMPTY_SCORE, ColorHeuristicScorer, is_flame_color


def _frame_with_patch(
    size: int = 100,
    patch: int = 20,
    color: tuple[int, int, int] = (220, 120, 30),
    channels: int = 3,
) -> np.ndarray:
    frame = np.zeros((size, size, channels), dtype=np.uint8)
    frame[:patch, :patch, :3] = color
    return frame


def test_counts_flame_pixels_and_scales_confidence() -> None:
    score = ColorHeuristicScorer().score(_frame_with_patch())

    assert score.flame_pixel_count == 400
    # 400 pixels over 5% of a 100x100 frame.
    assert score.confidence == pytest.approx(0.8)


def test_confidence_saturates_at_one() -> None:
    score = ColorHeuristicScorer().score(_frame_with_patch(patch=50))

    assert score.flame_pixel_count == 2500
    assert score.confidence == 1.0


def test_dark_frame_scores_zero() -> None:
    score = ColorHeuristicScorer().score(np.zeros((32, 32, 3), dtype=np.uint8))

    assert score.flame_pixel_count == 0
    assert score.confidence == 0.0


def test_alpha_channel_is_ignored() -> None:
    frame = _frame_with_patch(channels=4)
    frame[..., 3] = 255

    score = ColorHeuristicScorer().score(frame)
    assert score.flame_pixel_count == 400


@pytest.mark.parametrize(
    "frame",
    [
        None,
        np.zeros((10, 10), dtype=np.uint8),
        np.zeros((10, 10, 2), dtype=np.uint8),
        np.zeros((0, 10, 3), dtype=np.uint8),
        np.full((4, 4, 3), "x"),
    ],
)
def test_unusable_frames_return_empty_score(frame) -> None:
    assert ColorHeuristicScorer().score(frame) == EMPTY_SCORE


def test_color_band_bounds_are_inclusive() -> None:
    assert is_flame_color(180, 100, 0)
    assert is_flame_color(255, 180, 100)
    assert is_flame_color(150, 30, 40)
    assert not is_flame_color(149, 30, 40)
    assert not is_flame_color(255, 255, 255)
    assert not is_flame_color(30, 120, 220)


def test_confidence_never_decreases_with_more_flame_pixels() -> None:
    scorer = ColorHeuristicScorer()
    confidences = []
    for flame_pixels in range(0, 1001, 50):
        frame = np.zeros((100, 100, 3), dtype=np.uint8)
        frame.reshape(-1, 3)[:flame_pixels] = (220, 120, 30)
        confidences.append(scorer.score(frame).confidence)

    assert confidences == sorted(confidences)
    assert confidences[0] == 0.0
    assert confidences[-1] == 1.0
