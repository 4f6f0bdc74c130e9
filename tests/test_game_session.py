"""Tests for the discovery game session."""

from __future__ import annotations

from pathlib import Path

from services.game_session import GameSession, GameSettings
from storage.discoveries import DiscoveryStore


class _FixedRandom:
    def __init__(self, roll: float, pick: int = 0) -> None:
        self.roll = roll
        self.pick = pick

    def random(self) -> float:
        return self.roll

    def randrange(self, stop: int) -> int:
        return min(self.pick, stop - 1)


def test_defaults_match_forest_setup() -> None:
    game = GameSession()

    assert game.location == "Mystic Forest"
    assert game.total_secrets == 7
    assert game.secrets_found == 0
    assert game.get_active_player().name == "Player 1"
    assert [item.name for item in game.discoveries] == ["Blue Wisp Flame", "Ancient Ember", "Golden Flame"]
    assert game.preferences.sensitivity == 7


def test_lucky_roll_unlocks_discovery_for_active_player() -> None:
    game = GameSession(rng=_FixedRandom(roll=0.1, pick=1))

    found = game.check_for_new_discoveries()

    assert found is not None
    assert found.name == "Ancient Ember"
    assert found.discovered is True
    assert game.current_discovery == found
    assert game.secrets_found == 1
    assert game.get_active_player().discoveries == 1

    game.acknowledge_discovery()
    assert game.current_discovery is None


def test_unlucky_roll_finds_nothing() -> None:
    game = GameSession(rng=_FixedRandom(roll=0.25))

    assert game.check_for_new_discoveries() is None
    assert game.secrets_found == 0


def test_nothing_left_to_discover() -> None:
    game = GameSession(rng=_FixedRandom(roll=0.0))
    for _ in range(3):
        assert game.check_for_new_discoveries() is not None

    assert game.check_for_new_discoveries() is None
    assert game.secrets_found == 3
    assert all(item.discovered for item in game.discoveries)


def test_no_active_player_finds_nothing() -> None:
    game = GameSession(rng=_FixedRandom(roll=0.0))
    game.switch_active_player(99)

    assert game.get_active_player() is None
    assert game.check_for_new_discoveries() is None


def test_local_players_and_switching() -> None:
    game = GameSession(rng=_FixedRandom(roll=0.0))
    second = game.add_local_player()

    assert second.player_id == 2
    assert second.name == "Player 2"
    assert second.is_active is False

    game.switch_active_player(2)
    game.check_for_new_discoveries()

    players = {player.player_id: player for player in game.players}
    assert players[1].is_active is False
    assert players[2].is_active is True
    assert players[2].discoveries == 1
    assert players[1].discoveries == 0


def test_preferences_and_reset() -> None:
    game = GameSession(rng=_FixedRandom(roll=0.0))
    game.check_for_new_discoveries()

    assert game.update_sensitivity(12) == 10
    assert game.update_sensitivity(0) == 1
    assert game.toggle_sound_effects() is False
    assert game.toggle_particle_effects() is False
    game.complete_tutorial()
    assert game.preferences.tutorial_completed is True

    game.reset_progress()
    assert game.secrets_found == 0
    assert not any(item.discovered for item in game.discoveries)
    assert game.get_active_player().discoveries == 0


def test_state_survives_save_and_load(tmp_path: Path) -> None:
    state_file = tmp_path / "game_state.json"
    game = GameSession(GameSettings(state_file=str(state_file)), rng=_FixedRandom(roll=0.0))
    game.add_local_player()
    game.check_for_new_discoveries()
    game.update_sensitivity(4)
    game.save_state()

    restored = GameSession(GameSettings(state_file=str(state_file)))
    assert restored.load_state() is True
    assert restored.secrets_found == 1
    assert len(restored.players) == 2
    assert restored.discoveries[0].discovered is True
    assert restored.preferences.sensitivity == 4


def test_load_state_handles_missing_and_corrupt_files(tmp_path: Path) -> None:
    game = GameSession()
    assert game.load_state(tmp_path / "missing.json") is False

    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json", encoding="utf-8")
    assert game.load_state(corrupt) is False
    assert game.secrets_found == 0


def test_discovery_is_recorded_in_store(tmp_path: Path) -> None:
    store = DiscoveryStore(tmp_path / "discoveries.db")
    try:
        game = GameSession(store=store, rng=_FixedRandom(roll=0.0))
        found = game.check_for_new_discoveries()

        assert store.get_discovery(found.discovery_id).discovered is True
        player = store.get_player(1)
        assert player is not None
        assert player.discoveries == 1
    finally:
        store.close()
