"""Debounce and cooldown state machine for per-frame flame detections."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from core.logging import logger
from vision.detections import DetectionResult, StabilizedState


class FlameState(str, Enum):
    """Stabilizer phases.

    ``IDLE`` and ``CONFIRMING`` report no flame; ``DETECTED`` and
    ``COOLING_DOWN`` report flame present.
    """

    IDLE = "idle"
    CONFIRMING = "confirming"
    DETECTED = "detected"
    COOLING_DOWN = "cooling_down"


@dataclass(frozen=True)
class StabilizerConfig:
    """Thresholds for confirming and releasing the flame state."""

    confirm_ticks: int = 3
    cooldown_ms: int = 2000
    baseline_accuracy_percent: int = 96

    @classmethod
    def from_config(cls) -> "StabilizerConfig":
        from config import ConfigController

        detection_cfg = ConfigController.get_instance().get_section("detection")
        defaults = cls()
        return cls(
            confirm_ticks=int(detection_cfg.get("confirm_ticks", defaults.confirm_ticks)),
            cooldown_ms=int(detection_cfg.get("cooldown_ms", defaults.cooldown_ms)),
            baseline_accuracy_percent=int(
                detection_cfg.get("baseline_accuracy_percent", defaults.baseline_accuracy_percent)
            ),
        )


@dataclass(frozen=True)
class StabilizerUpdate:
    """Result of feeding one tick into the stabilizer."""

    state: FlameState
    flame_detected: bool
    accuracy_percent: int
    consecutive_hits: int
    state_changed: bool
    rising_edge: bool
    falling_edge: bool

    def snapshot(self) -> StabilizedState:
        return StabilizedState(
            flame_detected=self.flame_detected,
            detection_accuracy_percent=self.accuracy_percent,
        )


class TemporalStabilizer:
    """Turn a noisy stream of per-tick detections into a stable flame flag.

    A flame is confirmed after ``confirm_ticks`` consecutive positive ticks.
    Once confirmed, it is held through negative ticks until more than
    ``cooldown_ms`` have passed since the last confirmed hit.
    """

    def __init__(self, config: StabilizerConfig | None = None) -> None:
        self._config = config or StabilizerConfig()
        self._state = FlameState.IDLE
        self._consecutive_hits = 0
        self._last_hit_ms: float | None = None
        self._accuracy_percent = self._config.baseline_accuracy_percent

    @property
    def state(self) -> FlameState:
        return self._state

    @property
    def flame_detected(self) -> bool:
        return self._state in (FlameState.DETECTED, FlameState.COOLING_DOWN)

    @property
    def consecutive_hits(self) -> int:
        return self._consecutive_hits

    def snapshot(self) -> StabilizedState:
        return StabilizedState(
            flame_detected=self.flame_detected,
            detection_accuracy_percent=self._accuracy_percent,
        )

    def reset(self) -> None:
        self._state = FlameState.IDLE
        self._consecutive_hits = 0
        self._last_hit_ms = None
        self._accuracy_percent = self._config.baseline_accuracy_percent

    def update(self, result: DetectionResult, now_ms: float) -> StabilizerUpdate:
        was_detected = self.flame_detected
        state_before = self._state
        self._accuracy_percent = max(0, min(100, int(round(result.confidence * 100))))
        confirm_ticks = max(self._config.confirm_ticks, 1)

        if result.detected:
            self._consecutive_hits += 1
            if self._consecutive_hits >= confirm_ticks:
                self._last_hit_ms = now_ms
                self._transition(FlameState.DETECTED, "confirmed")
            elif not was_detected:
                self._transition(FlameState.CONFIRMING, "positive tick")
        else:
            self._consecutive_hits = 0
            if was_detected:
                last_hit_ms = self._last_hit_ms if self._last_hit_ms is not None else now_ms
                if now_ms - last_hit_ms > self._config.cooldown_ms:
                    self._transition(FlameState.IDLE, "cooldown elapsed")
                else:
                    self._transition(FlameState.COOLING_DOWN, "negative tick")
            else:
                self._transition(FlameState.IDLE, "negative tick")

        is_detected = self.flame_detected
        return StabilizerUpdate(
            state=self._state,
            flame_detected=is_detected,
            accuracy_percent=self._accuracy_percent,
            consecutive_hits=self._consecutive_hits,
            state_changed=state_before is not self._state,
            rising_edge=is_detected and not was_detected,
            falling_edge=was_detected and not is_detected,
        )

    def _transition(self, new_state: FlameState, reason: str) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        logger.debug(
            "[DETECT] %s -> %s (%s, hits=%d)",
            old_state.value,
            new_state.value,
            reason,
            self._consecutive_hits,
        )
