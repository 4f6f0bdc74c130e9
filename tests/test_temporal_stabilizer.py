from vision.detections import DetectionResult
from vision.stabilizer import FlameState, StabilizerConfig, StabilizerUpdate, TemporalStabilizer


HIT = DetectionResult(detected=True, confidence=0.87)
MISS = DetectionResult(detected=False, confidence=0.12)


def _feed(stabilizer: TemporalStabilizer, results: list[DetectionResult], start_ms: float = 0.0, step_ms: float = 200.0) -> list[StabilizerUpdate]:
    updates: list[StabilizerUpdate] = []
    now_ms = start_ms
    for result in results:
        updates.append(stabilizer.update(result, now_ms))
        now_ms += step_ms
    return updates


def test_initial_snapshot_reports_baseline_accuracy() -> None:
    stabilizer = TemporalStabilizer()

    snapshot = stabilizer.snapshot()
    assert snapshot.flame_detected is False
    assert snapshot.detection_accuracy_percent == 96
    assert stabilizer.state is FlameState.IDLE


def test_flame_confirms_on_third_consecutive_hit() -> None:
    stabilizer = TemporalStabilizer()

    updates = _feed(stabilizer, [HIT, HIT, HIT])

    assert [update.flame_detected for update in updates] == [False, False, True]
    assert updates[0].state is FlameState.CONFIRMING
    assert updates[2].state is FlameState.DETECTED
    assert updates[2].rising_edge is True
    assert updates[2].accuracy_percent == 87


def test_interrupted_streak_does_not_confirm() -> None:
    stabilizer = TemporalStabilizer()

    updates = _feed(stabilizer, [HIT, HIT, MISS, HIT, HIT])

    assert not any(update.flame_detected for update in updates)
    assert updates[2].state is FlameState.IDLE
    assert stabilizer.consecutive_hits == 2


def test_sustained_flame_rises_once() -> None:
    stabilizer = TemporalStabilizer()

    updates = _feed(stabilizer, [HIT] * 10)

    assert sum(update.rising_edge for update in updates) == 1
    assert all(update.flame_detected for update in updates[2:])


def test_flame_held_through_cooldown_then_released() -> None:
    stabilizer = TemporalStabilizer()
    _feed(stabilizer, [HIT, HIT, HIT])  # last confirmed hit at 400 ms

    holding = stabilizer.update(MISS, 600)
    assert holding.state is FlameState.COOLING_DOWN
    assert holding.flame_detected is True
    assert holding.accuracy_percent == 12

    at_boundary = stabilizer.update(MISS, 2400)
    assert at_boundary.flame_detected is True

    released = stabilizer.update(MISS, 2401)
    assert released.state is FlameState.IDLE
    assert released.flame_detected is False
    assert released.falling_edge is True


def test_unconfirmed_hits_during_cooldown_do_not_extend_it() -> None:
    stabilizer = TemporalStabilizer()
    _feed(stabilizer, [HIT, HIT, HIT])

    stabilizer.update(MISS, 600)
    stabilizer.update(HIT, 800)
    stabilizer.update(MISS, 1000)
    released = stabilizer.update(MISS, 2500)

    assert released.flame_detected is False


def test_reconfirmed_flame_during_cooldown_does_not_rise_again() -> None:
    stabilizer = TemporalStabilizer()
    _feed(stabilizer, [HIT, HIT, HIT])
    stabilizer.update(MISS, 600)

    updates = _feed(stabilizer, [HIT, HIT, HIT], start_ms=800)

    assert updates[-1].state is FlameState.DETECTED
    assert not any(update.rising_edge for update in updates)


def test_custom_config_and_reset() -> None:
    stabilizer = TemporalStabilizer(StabilizerConfig(confirm_ticks=1, cooldown_ms=0, baseline_accuracy_percent=50))

    assert stabilizer.update(HIT, 0).rising_edge is True
    assert stabilizer.update(MISS, 1).falling_edge is True

    stabilizer.update(HIT, 2)
    stabilizer.reset()
    assert stabilizer.state is FlameState.IDLE
    assert stabilizer.snapshot().detection_accuracy_percent == 50


def test_accuracy_is_clamped_to_percent_range() -> None:
    stabilizer = TemporalStabilizer()

    update = stabilizer.update(DetectionResult(detected=True, confidence=1.4), 0)
    assert update.accuracy_percent == 100
