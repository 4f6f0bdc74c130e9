"""Detection and game services."""

from services.flame_detection import DetectionSettings, FlameDetectionService
from services.game_session import GameSession, GameSettings

__all__ = ["DetectionSettings", "FlameDetectionService", "GameSession", "GameSettings"]
