"""SQLite-backed storage for players, discoveries and discovery records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
import sqlite3
import threading

from config import ConfigController
from core.logging import logger


DEFAULT_PLAYER_NAME = "AI Fire Geeter"


@dataclass(frozen=True)
class Player:
    player_id: int
    name: str
    is_active: bool
    discoveries: int


@dataclass(frozen=True)
class Discovery:
    discovery_id: int
    name: str
    description: str
    hint: str
    discovered: bool


@dataclass(frozen=True)
class PlayerDiscovery:
    record_id: int
    player_id: int
    discovery_id: int
    discovered_at: str


DEFAULT_DISCOVERIES: tuple[tuple[str, str, str], ...] = (
    ("Blue Wisp Flame", "Grants ability to see hidden paths", "Find in the enchanted forest"),
    ("Ancient Ember", "Reveals ancient secrets of the forest", "Find in the deepest part of the forest"),
    ("Golden Flame", "Allows passage through magical barriers", "Hidden in plain sight"),
)


class DiscoveryStore:
    """Persist players and the flames they have discovered."""

    def __init__(self, db_path: Path | None = None, seed_defaults: bool = True) -> None:
        if db_path is None:
            config = ConfigController.get_instance().get_config()
            var_dir = Path(config.get("var_dir", "./var/")).expanduser()
            db_path = var_dir / "discoveries.db"
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self._db_path = db_path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._initialize_db()
        if seed_defaults:
            self._seed_default_discoveries()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        self._conn.close()

    def _initialize_db(self) -> None:
        cursor = self._conn.cursor()
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS players (
                player_id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 0,
                discoveries INTEGER NOT NULL DEFAULT 0
            )
            """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS discoveries (
                discovery_id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                description TEXT NOT NULL,
                hint TEXT NOT NULL,
                discovered INTEGER NOT NULL DEFAULT 0
            )
            """
        )
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS player_discoveries (
                record_id INTEGER PRIMARY KEY AUTOINCREMENT,
                player_id INTEGER NOT NULL,
                discovery_id INTEGER NOT NULL,
                discovered_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def _seed_default_discoveries(self) -> None:
        if self.get_all_discoveries():
            return
        for name, description, hint in DEFAULT_DISCOVERIES:
            self.create_discovery(name=name, description=description, hint=hint)
        logger.info("[STORE] Created %d default discoveries", len(DEFAULT_DISCOVERIES))

    def create_player(self, *, name: str, is_active: bool = False, discoveries: int = 0) -> Player:
        with self._lock:
            cursor = self._conn.execute(
                "INSERT INTO players (name, is_active, discoveries) VALUES (?, ?, ?)",
                (name, int(is_active), discoveries),
            )
            self._conn.commit()
            player_id = int(cursor.lastrowid)
        return Player(player_id=player_id, name=name, is_active=is_active, discoveries=discoveries)

    def get_player(self, player_id: int) -> Player | None:
        cursor = self._conn.execute(
            "SELECT player_id, name, is_active, discoveries FROM players WHERE player_id = ?",
            (player_id,),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return Player(player_id=int(row[0]), name=row[1], is_active=bool(row[2]), discoveries=int(row[3]))

    def get_or_create_player(self, player_id: int, name: str = DEFAULT_PLAYER_NAME) -> Player:
        player = self.get_player(player_id)
        if player is not None:
            return player
        player = self.create_player(name=name, is_active=True)
        logger.info("[STORE] Created player %s (id=%d)", player.name, player.player_id)
        return player

    def create_discovery(
        self,
        *,
        name: str,
        description: str,
        hint: str,
        discovered: bool = False,
    ) -> Discovery:
        with self._lock:
            cursor = self._conn.execute(
                "INSERT INTO discoveries (name, description, hint, discovered) VALUES (?, ?, ?, ?)",
                (name, description, hint, int(discovered)),
            )
            self._conn.commit()
            discovery_id = int(cursor.lastrowid)
        return Discovery(
            discovery_id=discovery_id,
            name=name,
            description=description,
            hint=hint,
            discovered=discovered,
        )

    def get_discovery(self, discovery_id: int) -> Discovery | None:
        cursor = self._conn.execute(
            "SELECT discovery_id, name, description, hint, discovered FROM discoveries WHERE discovery_id = ?",
            (discovery_id,),
        )
        row = cursor.fetchone()
        return self._row_to_discovery(row) if row is not None else None

    def get_all_discoveries(self) -> list[Discovery]:
        cursor = self._conn.execute(
            "SELECT discovery_id, name, description, hint, discovered FROM discoveries ORDER BY discovery_id"
        )
        return [self._row_to_discovery(row) for row in cursor.fetchall()]

    def record_discovery(self, player_id: int, discovery_id: int) -> PlayerDiscovery:
        """Record that a player found a discovery and update both counters."""

        player = self.get_player(player_id)
        if player is None:
            raise ValueError(f"Player with ID {player_id} not found")
        if self.get_discovery(discovery_id) is None:
            raise ValueError(f"Discovery with ID {discovery_id} not found")

        discovered_at = datetime.now(timezone.utc).isoformat()
        with self._lock:
            with self._conn:
                cursor = self._conn.execute(
                    """
                    INSERT INTO player_discoveries (player_id, discovery_id, discovered_at)
                    VALUES (?, ?, ?)
                    """,
                    (player_id, discovery_id, discovered_at),
                )
                record_id = int(cursor.lastrowid)
                self._conn.execute(
                    "UPDATE players SET discoveries = discoveries + 1 WHERE player_id = ?",
                    (player_id,),
                )
                self._conn.execute(
                    "UPDATE discoveries SET discovered = 1 WHERE discovery_id = ?",
                    (discovery_id,),
                )
        return PlayerDiscovery(
            record_id=record_id,
            player_id=player_id,
            discovery_id=discovery_id,
            discovered_at=discovered_at,
        )

    def get_player_discoveries(self, player_id: int) -> list[Discovery]:
        cursor = self._conn.execute(
            """
            SELECT d.discovery_id, d.name, d.description, d.hint, d.discovered
            FROM player_discoveries pd
            INNER JOIN discoveries d ON pd.discovery_id = d.discovery_id
            WHERE pd.player_id = ?
            ORDER BY pd.record_id
            """,
            (player_id,),
        )
        return [self._row_to_discovery(row) for row in cursor.fetchall()]

    def _row_to_discovery(self, row: tuple) -> Discovery:
        discovery_id, name, description, hint, discovered = row
        return Discovery(
            discovery_id=int(discovery_id),
            name=name,
            description=description,
            hint=hint,
            discovered=bool(discovered),
        )
