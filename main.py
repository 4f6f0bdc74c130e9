"""Command-line entry point for the enchanted flame detector."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
from pathlib import Path
import sys

from config import ConfigController
from core.logging import enable_file_logging, logger, set_level
from hardware import CameraFrameSource, CameraSettings, ClassifierSettings, load_classifier
from services import DetectionSettings, FlameDetectionService, GameSession, GameSettings
from storage.discoveries import DiscoveryStore
from vision.detections import StabilizedState


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Raw command-line arguments.

    Returns:
        Parsed arguments namespace.
    """

    parser = argparse.ArgumentParser(
        description="Detect small flames with the camera and unlock discoveries."
    )
    parser.add_argument(
        "--sensitivity",
        type=int,
        help="Detection sensitivity from 1 (strict) to 10 (eager).",
    )
    parser.add_argument("--model-path", type=str, help="Path to the TFLite classifier.")
    parser.add_argument(
        "--duration-s",
        type=float,
        default=None,
        help="Stop after this many seconds instead of running until interrupted.",
    )
    parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Run diagnostics probes and exit.",
    )
    return parser.parse_args(argv)


async def run_detection(
    service: FlameDetectionService,
    game: GameSession,
    duration_s: float | None,
) -> None:
    """Load the model, enable detection and keep sampling until stopped."""

    def _on_state(state: StabilizedState) -> None:
        logger.debug(
            "[DETECT] flame=%s accuracy=%d%%",
            state.flame_detected,
            state.detection_accuracy_percent,
        )

    service.subscribe(_on_state)
    await service.start()
    if service.status_message:
        logger.error("[MODEL] %s", service.status_message)
        return
    if not service.enabled:
        logger.warning("[DETECT] detection.enabled is false; nothing to do")
        return

    try:
        if duration_s is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration_s)
    finally:
        await service.stop()
        service.unsubscribe(_on_state)
        logger.info("[DETECT] Final status: %s", service.get_status())
        logger.info(
            "[GAME] Secrets found: %d/%d",
            game.secrets_found,
            game.total_secrets,
        )


def main(argv: list[str] | None = None) -> int:
    """Application entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Process exit code.
    """

    if argv is None:
        argv = sys.argv[1:]

    config_controller = ConfigController.get_instance()
    config = config_controller.get_config()
    set_level(config.get("logging_level", "INFO"))
    args = parse_args(argv)

    classifier_settings = ClassifierSettings.from_config()
    if args.model_path:
        classifier_settings = replace(classifier_settings, path=args.model_path)

    if args.diagnostics:
        from diagnostics.run import main as run_diagnostics_cli

        return run_diagnostics_cli(["--model-path", classifier_settings.path])

    if config.get("file_logging_enabled", True):
        log_file_path = Path(config.get("log_dir", "./log/")).expanduser() / "flame_detector.log"
        enable_file_logging(log_file_path)
        logger.info("Writing logs to %s", log_file_path)

    game_settings = GameSettings.from_config()
    store = DiscoveryStore()
    game = GameSession(settings=game_settings, store=store)
    game.load_state()
    if args.sensitivity is not None:
        game.update_sensitivity(args.sensitivity)

    detection_settings = DetectionSettings.from_config()
    frame_source = CameraFrameSource(CameraSettings.from_config())
    try:
        frame_source.start()
    except Exception as exc:
        logger.exception("Camera unavailable: %s", exc)
        store.close()
        return 1

    service = FlameDetectionService(
        frame_source,
        settings=detection_settings,
        model_loader=lambda: load_classifier(classifier_settings),
        on_discovery=game.check_for_new_discoveries,
    )
    service.set_sensitivity(
        args.sensitivity if args.sensitivity is not None else game.preferences.sensitivity
    )

    exit_code = 0
    try:
        asyncio.run(run_detection(service, game, args.duration_s))
        if service.status_message:
            exit_code = 1
    except KeyboardInterrupt:
        logger.info("Program terminated by user")
    except Exception as exc:
        logger.exception("An unexpected error occurred: %s", exc)
        exit_code = 1
    finally:
        frame_source.stop()
        game.save_state()
        store.close()

    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
