"""Fixed-cadence flame detection service driving the stabilizer."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import inspect
import time
from typing import Any, Awaitable, Callable

from core.logging import log_state_change, logger
from hardware.camera_source import FrameSource
from hardware.classifier_model import ModelUnavailableError, load_classifier
from vision.detections import (
    StabilizedState,
    clamp_sensitivity_level,
    sensitivity_from_level,
)
from vision.fusion import FusionDetector
from vision.model_scorer import ImageClassifier
from vision.stabilizer import StabilizerConfig, StabilizerUpdate, TemporalStabilizer


StateCallback = Callable[[StabilizedState], Awaitable[None] | None]
DiscoveryCallback = Callable[[], Awaitable[Any] | Any]
ModelLoader = Callable[[], ImageClassifier]


@dataclass(frozen=True)
class DetectionSettings:
    """Sampler cadence and startup values for the detection service."""

    enabled: bool = True
    sensitivity: int = 7
    sample_period_ms: int = 200
    stabilizer: StabilizerConfig = field(default_factory=StabilizerConfig)

    @classmethod
    def from_config(cls) -> "DetectionSettings":
        from config import ConfigController

        detection_cfg = ConfigController.get_instance().get_section("detection")
        defaults = cls()
        return cls(
            enabled=bool(detection_cfg.get("enabled", defaults.enabled)),
            sensitivity=clamp_sensitivity_level(
                detection_cfg.get("sensitivity", defaults.sensitivity)
            ),
            sample_period_ms=int(detection_cfg.get("sample_period_ms", defaults.sample_period_ms)),
            stabilizer=StabilizerConfig.from_config(),
        )


class _DetectionSession:
    """State owned by one enable/disable cycle."""

    def __init__(self, session_id: int, config: StabilizerConfig) -> None:
        self.session_id = session_id
        self.stabilizer = TemporalStabilizer(config)
        self.stop_event = asyncio.Event()

    @property
    def active(self) -> bool:
        return not self.stop_event.is_set()


class FlameDetectionService:
    """Sample frames on a fixed period and publish a debounced flame state.

    Ticks run one at a time on the event loop. Disabling detection stops the
    schedule immediately; a tick already awaiting inference finishes but its
    result is dropped.
    """

    def __init__(
        self,
        frame_source: FrameSource,
        settings: DetectionSettings | None = None,
        detector: FusionDetector | None = None,
        model_loader: ModelLoader | None = None,
        on_discovery: DiscoveryCallback | None = None,
        clock_ms: Callable[[], float] | None = None,
    ) -> None:
        self.settings = settings or DetectionSettings()
        self._frame_source = frame_source
        self._detector = detector or FusionDetector()
        self._model_loader = model_loader or load_classifier
        self._on_discovery = on_discovery
        self._clock_ms = clock_ms or (lambda: time.monotonic() * 1000.0)

        self._model: ImageClassifier | None = None
        self._model_started = False
        self._status_message: str | None = None
        self._sensitivity_level = clamp_sensitivity_level(self.settings.sensitivity)
        self._enabled = False
        self._session: _DetectionSession | None = None
        self._session_counter = 0
        self._sampler_task: asyncio.Task[None] | None = None
        self._sampler_session_id = 0
        self._state = StabilizedState(
            flame_detected=False,
            detection_accuracy_percent=self.settings.stabilizer.baseline_accuracy_percent,
        )
        self._subscribers: set[StateCallback] = set()
        self._ticks = 0
        self._skipped_ticks = 0
        self._discarded_ticks = 0
        self._rising_edges = 0

    @property
    def model_ready(self) -> bool:
        return self._model is not None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def status_message(self) -> str | None:
        return self._status_message

    async def start(self) -> None:
        """Load the classifier once and start sampling if detection is enabled.

        The first call enables detection when ``settings.enabled`` is set.
        """

        if self._model_started:
            self._sync_sampler()
            return
        self._model_started = True
        if self.settings.enabled:
            self.enable()
        else:
            logger.info("[DETECT] Detection disabled by config; call enable() to start")
        logger.info("[MODEL] Loading flame classifier...")
        try:
            model = await asyncio.to_thread(self._model_loader)
        except ModelUnavailableError as exc:
            self._status_message = f"Detection model unavailable: {exc}"
            logger.warning("[MODEL] %s", self._status_message)
            return
        except Exception as exc:
            self._status_message = f"Failed to load detection model: {exc}"
            logger.exception("[MODEL] Model load failed")
            return

        self._model = model
        self._status_message = None
        logger.info("[MODEL] Flame classifier ready")
        self._sync_sampler()

    async def stop(self) -> None:
        """Disable detection and wait for the sampler task to wind down."""

        task = self._sampler_task
        self.disable()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def enable(self) -> None:
        """Begin a fresh detection session."""

        if self._enabled:
            return
        self._enabled = True
        self._session_counter += 1
        self._session = _DetectionSession(self._session_counter, self.settings.stabilizer)
        self._state = self._session.stabilizer.snapshot()
        logger.info("[DETECT] Detection enabled (session %d)", self._session_counter)
        self._sync_sampler()

    def disable(self) -> None:
        """Stop sampling now; any in-flight tick result is discarded."""

        if not self._enabled:
            return
        self._enabled = False
        session = self._session
        self._session = None
        self._state = StabilizedState(
            flame_detected=False,
            detection_accuracy_percent=self.settings.stabilizer.baseline_accuracy_percent,
        )
        if session is not None:
            session.stop_event.set()
            logger.info("[DETECT] Detection disabled (session %d)", session.session_id)

    def set_enabled(self, enabled: bool) -> None:
        if enabled:
            self.enable()
        else:
            self.disable()

    def set_sensitivity(self, level: int) -> None:
        """Store the 1-10 sensitivity setting; applied from the next tick."""

        self._sensitivity_level = clamp_sensitivity_level(level)

    def get_sensitivity(self) -> int:
        return self._sensitivity_level

    def get_state(self) -> StabilizedState:
        return self._state

    def subscribe(self, callback: StateCallback) -> None:
        self._subscribers.add(callback)

    def unsubscribe(self, callback: StateCallback) -> None:
        self._subscribers.discard(callback)

    def is_sampler_alive(self) -> bool:
        return (
            self._enabled
            and self._sampler_task is not None
            and not self._sampler_task.done()
            and self._sampler_session_id == self._session_counter
        )

    def get_status(self) -> dict[str, Any]:
        return {
            "enabled": self._enabled,
            "model_ready": self.model_ready,
            "sampler_alive": self.is_sampler_alive(),
            "sensitivity": self._sensitivity_level,
            "ticks": self._ticks,
            "skipped_ticks": self._skipped_ticks,
            "discarded_ticks": self._discarded_ticks,
            "rising_edges": self._rising_edges,
            "model_passes": self._detector.model_passes,
            "short_circuits": self._detector.short_circuits,
            "status_message": self._status_message,
        }

    def _sync_sampler(self) -> None:
        if not self._enabled or self._model is None or self._session is None:
            return
        if self.is_sampler_alive():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("[DETECT] No running event loop; sampler deferred")
            return
        previous = self._sampler_task
        if previous is not None and previous.done():
            previous = None
        self._sampler_session_id = self._session.session_id
        self._sampler_task = loop.create_task(
            self._sampler_loop(self._session, previous),
            name=f"flame-sampler-{self._session.session_id}",
        )

    async def _sampler_loop(
        self,
        session: _DetectionSession,
        previous: asyncio.Task[None] | None = None,
    ) -> None:
        if previous is not None:
            # Let the prior session's in-flight tick finish before sampling again.
            await asyncio.gather(previous, return_exceptions=True)
        period_s = max(self.settings.sample_period_ms, 1) / 1000.0
        loop = asyncio.get_running_loop()
        logger.debug("[DETECT] Sampler started (period=%.3fs)", period_s)
        while session.active:
            tick_start = loop.time()
            try:
                await self._tick(session)
            except Exception:
                logger.exception("[DETECT] Tick failed (continuing)")
            elapsed_s = loop.time() - tick_start
            sleep_s = max(0.0, period_s - elapsed_s)
            try:
                await asyncio.wait_for(session.stop_event.wait(), timeout=sleep_s)
            except asyncio.TimeoutError:
                pass
        logger.debug("[DETECT] Sampler for session %d exited", session.session_id)

    async def run_tick(self) -> StabilizerUpdate | None:
        """Run one sampling tick by hand; returns the applied update or ``None`` if skipped.

        Ticks are serialized, so this is a no-op while the sampler task owns
        the current session.
        """

        if self.is_sampler_alive():
            logger.debug("[DETECT] Sampler running; manual tick ignored")
            return None
        return await self._tick(self._session)

    async def _tick(self, session: _DetectionSession | None) -> StabilizerUpdate | None:
        if session is None or not session.active or self._model is None:
            return None

        if not self._frame_source.is_ready():
            self._skipped_ticks += 1
            return None
        frame = self._frame_source.capture_frame()
        if frame is None:
            self._skipped_ticks += 1
            return None

        sensitivity = sensitivity_from_level(self._sensitivity_level)
        result = await self._detector.detect(frame, self._model, sensitivity)

        if not session.active or session is not self._session:
            self._discarded_ticks += 1
            return None

        update = session.stabilizer.update(result, self._clock_ms())
        self._ticks += 1
        self._state = update.snapshot()

        if update.rising_edge or update.falling_edge:
            log_state_change(update.flame_detected, update.accuracy_percent)
        if update.rising_edge:
            self._rising_edges += 1
            await self._notify_discovery()
        await self._publish_state(self._state)
        return update

    async def _notify_discovery(self) -> None:
        if self._on_discovery is None:
            return
        try:
            outcome = self._on_discovery()
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("[DETECT] Discovery callback failed")

    async def _publish_state(self, state: StabilizedState) -> None:
        for callback in list(self._subscribers):
            try:
                outcome = callback(state)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception("[DETECT] State subscriber failed")
