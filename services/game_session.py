"""Discovery game state driven by flame detection rising edges."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
import json
from pathlib import Path
import random
import sqlite3
from typing import Any

from core.logging import log_discovery, logger
from storage.discoveries import DEFAULT_DISCOVERIES, DiscoveryStore
from vision.detections import clamp_sensitivity_level


@dataclass(frozen=True)
class GameSettings:
    """Tunables for discovery rolls and local state persistence."""

    discovery_chance: float = 0.25
    total_secrets: int = 7
    location: str = "Mystic Forest"
    state_file: str = "./var/game_state.json"

    @classmethod
    def from_config(cls) -> "GameSettings":
        from config import ConfigController

        game_cfg = ConfigController.get_instance().get_section("game")
        defaults = cls()
        return cls(
            discovery_chance=float(game_cfg.get("discovery_chance", defaults.discovery_chance)),
            total_secrets=int(game_cfg.get("total_secrets", defaults.total_secrets)),
            location=str(game_cfg.get("location", defaults.location)),
            state_file=str(game_cfg.get("state_file", defaults.state_file)),
        )


@dataclass(frozen=True)
class PlayerState:
    player_id: int
    name: str
    is_active: bool = False
    discoveries: int = 0


@dataclass(frozen=True)
class DiscoveryState:
    discovery_id: int
    name: str
    description: str
    hint: str
    discovered: bool = False


@dataclass
class PlayerPreferences:
    sensitivity: int = 7
    sound_effects_enabled: bool = True
    particle_effects_enabled: bool = True
    tutorial_completed: bool = False


def _default_discoveries() -> list[DiscoveryState]:
    return [
        DiscoveryState(discovery_id=index, name=name, description=description, hint=hint)
        for index, (name, description, hint) in enumerate(DEFAULT_DISCOVERIES, start=1)
    ]


@dataclass
class GameState:
    players: list[PlayerState] = field(
        default_factory=lambda: [PlayerState(player_id=1, name="Player 1", is_active=True)]
    )
    discoveries: list[DiscoveryState] = field(default_factory=_default_discoveries)
    secrets_found: int = 0
    preferences: PlayerPreferences = field(default_factory=PlayerPreferences)


class GameSession:
    """Local multiplayer discovery game.

    ``check_for_new_discoveries`` is wired as the flame detector's rising-edge
    callback; every other method is a plain state update.
    """

    def __init__(
        self,
        settings: GameSettings | None = None,
        store: DiscoveryStore | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or GameSettings()
        self._store = store
        self._rng = rng or random.Random()
        self.state = GameState()
        self.current_discovery: DiscoveryState | None = None

    @property
    def location(self) -> str:
        return self.settings.location

    @property
    def total_secrets(self) -> int:
        return self.settings.total_secrets

    @property
    def players(self) -> list[PlayerState]:
        return list(self.state.players)

    @property
    def discoveries(self) -> list[DiscoveryState]:
        return list(self.state.discoveries)

    @property
    def secrets_found(self) -> int:
        return self.state.secrets_found

    @property
    def preferences(self) -> PlayerPreferences:
        return self.state.preferences

    def get_active_player(self) -> PlayerState | None:
        for player in self.state.players:
            if player.is_active:
                return player
        return None

    def add_local_player(self) -> PlayerState:
        new_id = max([0, *(player.player_id for player in self.state.players)]) + 1
        player = PlayerState(player_id=new_id, name=f"Player {new_id}")
        self.state.players.append(player)
        logger.info("[GAME] Added %s", player.name)
        return player

    def switch_active_player(self, player_id: int) -> None:
        self.state.players = [
            replace(player, is_active=player.player_id == player_id)
            for player in self.state.players
        ]

    def update_sensitivity(self, value: int) -> int:
        self.state.preferences.sensitivity = clamp_sensitivity_level(value)
        return self.state.preferences.sensitivity

    def toggle_sound_effects(self) -> bool:
        prefs = self.state.preferences
        prefs.sound_effects_enabled = not prefs.sound_effects_enabled
        return prefs.sound_effects_enabled

    def toggle_particle_effects(self) -> bool:
        prefs = self.state.preferences
        prefs.particle_effects_enabled = not prefs.particle_effects_enabled
        return prefs.particle_effects_enabled

    def complete_tutorial(self) -> None:
        self.state.preferences.tutorial_completed = True

    def check_for_new_discoveries(self) -> DiscoveryState | None:
        """Maybe unlock a random undiscovered flame for the active player."""

        active_player = self.get_active_player()
        if active_player is None:
            return None
        undiscovered = [item for item in self.state.discoveries if not item.discovered]
        if not undiscovered:
            return None
        if self._rng.random() >= self.settings.discovery_chance:
            return None

        found = replace(undiscovered[self._rng.randrange(len(undiscovered))], discovered=True)
        self.state.discoveries = [
            found if item.discovery_id == found.discovery_id else item
            for item in self.state.discoveries
        ]
        self.state.players = [
            replace(player, discoveries=player.discoveries + 1)
            if player.player_id == active_player.player_id
            else player
            for player in self.state.players
        ]
        self.state.secrets_found += 1
        self.current_discovery = found
        log_discovery(found.name, active_player.name)
        self._record_discovery(active_player, found)
        return found

    def acknowledge_discovery(self) -> None:
        self.current_discovery = None

    def reset_progress(self) -> None:
        self.state.discoveries = [replace(item, discovered=False) for item in self.state.discoveries]
        self.state.players = [replace(player, discoveries=0) for player in self.state.players]
        self.state.secrets_found = 0
        self.current_discovery = None
        logger.info("[GAME] Progress reset")

    def save_state(self, path: Path | None = None) -> Path:
        state_path = Path(path or self.settings.state_file).expanduser()
        state_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "players": [asdict(player) for player in self.state.players],
            "discoveries": [asdict(item) for item in self.state.discoveries],
            "secrets_found": self.state.secrets_found,
            "preferences": asdict(self.state.preferences),
        }
        state_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return state_path

    def load_state(self, path: Path | None = None) -> bool:
        state_path = Path(path or self.settings.state_file).expanduser()
        if not state_path.is_file():
            return False
        try:
            payload: dict[str, Any] = json.loads(state_path.read_text(encoding="utf-8"))
            state = GameState()
            if payload.get("players"):
                state.players = [PlayerState(**item) for item in payload["players"]]
            if payload.get("discoveries"):
                state.discoveries = [DiscoveryState(**item) for item in payload["discoveries"]]
            state.secrets_found = int(payload.get("secrets_found", 0))
            prefs = dict(payload.get("preferences") or {})
            state.preferences = PlayerPreferences(
                sensitivity=clamp_sensitivity_level(prefs.get("sensitivity", 7)),
                sound_effects_enabled=bool(prefs.get("sound_effects_enabled", True)),
                particle_effects_enabled=bool(prefs.get("particle_effects_enabled", True)),
                tutorial_completed=bool(prefs.get("tutorial_completed", False)),
            )
        except (OSError, ValueError, TypeError) as exc:
            logger.warning("[GAME] Failed to load game state from %s: %s", state_path, exc)
            return False
        self.state = state
        return True

    def _record_discovery(self, player: PlayerState, discovery: DiscoveryState) -> None:
        if self._store is None:
            return
        try:
            stored = self._store.get_or_create_player(player.player_id, name=player.name)
            self._store.record_discovery(stored.player_id, discovery.discovery_id)
        except (ValueError, sqlite3.Error) as exc:
            logger.warning("[GAME] Failed to record discovery %s: %s", discovery.name, exc)
