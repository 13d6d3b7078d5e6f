"""Core domain models used by game logic."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum, StrEnum

import numpy as np

GRID_SIZE = 12


class CellState(IntEnum):
    """Per-cell state stored in numpy grids."""

    EMPTY = 0
    SHIP = 1
    HIT = 2
    MISS = 3
    SUNK = 4
    DECOY = 5
    RADAR_CONTACT = 6


class GamePhase(StrEnum):
    """Game lifecycle phase."""

    SETUP = "SETUP"
    PLAYING = "PLAYING"
    GAME_OVER = "GAME_OVER"
    TURN_TRANSITION = "TURN_TRANSITION"


class GameMode(StrEnum):
    """Ruleset variant."""

    CLASSIC = "CLASSIC"
    TACTICAL = "TACTICAL"


class ShipType(StrEnum):
    """Tactical ship roles and classic plain ship types."""

    MOTHERSHIP = "Mothership"
    RADARSHIP = "Radarship"
    REPAIRSHIP = "Repairship"
    COMMANDSHIP = "Commandship"
    DECOYSHIP = "Decoyship"
    JAMSHIP = "Jamship"

    CARRIER = "Carrier"
    BATTLESHIP = "Battleship"
    CRUISER = "Cruiser"
    SUBMARINE = "Submarine"
    DESTROYER = "Destroyer"


# Skill tuning.
RADAR_COOLDOWN = 3
JAM_COOLDOWN = 4
REPAIR_COOLDOWN = 3
RELOCATE_COOLDOWN = 4
DECOY_USES = 2
ESCAPE_USES = 1
JAM_DURATION = 1
RADAR_BLOCK = 2
JAM_RADIUS = 1

COOLDOWN_SKILLS: tuple[ShipType, ...] = (
    ShipType.RADARSHIP,
    ShipType.COMMANDSHIP,
    ShipType.REPAIRSHIP,
    ShipType.JAMSHIP,
)
LIMITED_USE_SKILLS: dict[ShipType, int] = {
    ShipType.DECOYSHIP: DECOY_USES,
    ShipType.MOTHERSHIP: ESCAPE_USES,
}


class LogResult(StrEnum):
    """Outcome recorded in a game log entry."""

    HIT = "HIT"
    MISS = "MISS"
    SUNK_SHIP = "SUNK_SHIP"
    SHOT_FIRED = "SHOT_FIRED"
    SKILL_USED = "SKILL_USED"


class ActionKind(StrEnum):
    """Kind of action armed by the active player."""

    ATTACK = "ATTACK"
    SKILL = "SKILL"


class ActionStage(StrEnum):
    """Sub-stage of a multi-step skill."""

    SELECT_SHIP = "SELECT_SHIP"
    PLACE_SHIP = "PLACE_SHIP"
    PLACE_DECOY = "PLACE_DECOY"


@dataclass(frozen=True, slots=True)
class Coord:
    """Grid coordinate; ``x`` is the column and ``y`` the row."""

    x: int
    y: int

    def neighbors(self) -> tuple[Coord, Coord, Coord, Coord]:
        """Return the four orthogonal neighbours (may be out of bounds)."""
        return (
            Coord(self.x, self.y - 1),
            Coord(self.x, self.y + 1),
            Coord(self.x - 1, self.y),
            Coord(self.x + 1, self.y),
        )


@dataclass(frozen=True, slots=True)
class GridDimensions:
    """Grid size."""

    rows: int = GRID_SIZE
    cols: int = GRID_SIZE

    def contains(self, coord: Coord) -> bool:
        """Return whether the coordinate is in bounds."""
        return 0 <= coord.x < self.cols and 0 <= coord.y < self.rows


@dataclass(frozen=True, slots=True)
class ShipSpec:
    """Configured roster entry."""

    name: str
    ship_type: ShipType
    length: int


@dataclass(frozen=True, slots=True)
class Ship:
    """A ship and its placement/damage flags."""

    name: str
    ship_type: ShipType
    length: int
    positions: tuple[Coord, ...] = ()
    is_sunk: bool = False
    is_damaged: bool = False
    has_been_repaired: bool = False
    has_been_relocated: bool = False

    @classmethod
    def from_spec(cls, spec: ShipSpec) -> Ship:
        return cls(name=spec.name, ship_type=spec.ship_type, length=spec.length)

    @property
    def is_placed(self) -> bool:
        return len(self.positions) == self.length

    def occupies(self, coord: Coord) -> bool:
        return coord in self.positions

    def with_positions(self, positions: tuple[Coord, ...]) -> Ship:
        return replace(self, positions=positions)


@dataclass(frozen=True, slots=True)
class Placement:
    """Anchor and orientation of a candidate ship placement."""

    x: int
    y: int
    horizontal: bool


@dataclass(frozen=True, slots=True)
class GameConfig:
    """Mode-specific grid size and ship roster."""

    dims: GridDimensions
    ships_config: tuple[ShipSpec, ...]


CLASSIC_FLEET: tuple[ShipSpec, ...] = (
    ShipSpec("Carrier", ShipType.CARRIER, 5),
    ShipSpec("Battleship", ShipType.BATTLESHIP, 4),
    ShipSpec("Cruiser", ShipType.CRUISER, 3),
    ShipSpec("Submarine", ShipType.SUBMARINE, 3),
    ShipSpec("Destroyer", ShipType.DESTROYER, 2),
)

TACTICAL_FLEET: tuple[ShipSpec, ...] = (
    ShipSpec("Commandship", ShipType.COMMANDSHIP, 5),
    ShipSpec("Decoyship", ShipType.DECOYSHIP, 4),
    ShipSpec("Radarship", ShipType.RADARSHIP, 3),
    ShipSpec("Repairship", ShipType.REPAIRSHIP, 3),
    ShipSpec("Jamship", ShipType.JAMSHIP, 3),
    ShipSpec("Mothership", ShipType.MOTHERSHIP, 2),
)


def game_config(mode: GameMode) -> GameConfig:
    """Return grid size and roster for a game mode."""
    if mode is GameMode.TACTICAL:
        return GameConfig(dims=GridDimensions(GRID_SIZE, GRID_SIZE), ships_config=TACTICAL_FLEET)
    return GameConfig(dims=GridDimensions(GRID_SIZE, GRID_SIZE), ships_config=CLASSIC_FLEET)


@dataclass(slots=True)
class Player:
    """Per-player state: own fleet, outgoing shots and skill bookkeeping."""

    player_id: str
    name: str
    is_ai: bool
    grid: np.ndarray
    ships: list[Ship] = field(default_factory=list)
    shots: dict[str, np.ndarray] = field(default_factory=dict)
    is_ready: bool = False
    is_eliminated: bool = False
    skill_cooldowns: dict[ShipType, int] = field(default_factory=dict)
    skill_uses: dict[ShipType, int] = field(default_factory=dict)
    decoy_positions: list[Coord] = field(default_factory=list)
    jammed_positions: list[Coord] = field(default_factory=list)
    jam_turns_remaining: int = 0
    escape_skill_unlocked: bool = False

    def fork(self) -> Player:
        """Return a copy safe to mutate without touching this player."""
        return Player(
            player_id=self.player_id,
            name=self.name,
            is_ai=self.is_ai,
            grid=self.grid.copy(),
            ships=list(self.ships),
            shots={key: grid.copy() for key, grid in self.shots.items()},
            is_ready=self.is_ready,
            is_eliminated=self.is_eliminated,
            skill_cooldowns=dict(self.skill_cooldowns),
            skill_uses=dict(self.skill_uses),
            decoy_positions=list(self.decoy_positions),
            jammed_positions=list(self.jammed_positions),
            jam_turns_remaining=self.jam_turns_remaining,
            escape_skill_unlocked=self.escape_skill_unlocked,
        )

    def cell(self, coord: Coord) -> CellState:
        return CellState(int(self.grid[coord.y, coord.x]))

    def ship_of_type(self, ship_type: ShipType) -> Ship | None:
        for ship in self.ships:
            if ship.ship_type is ship_type:
                return ship
        return None

    def ship_named(self, name: str) -> Ship | None:
        for ship in self.ships:
            if ship.name == name:
                return ship
        return None

    def ship_at(self, coord: Coord) -> Ship | None:
        for ship in self.ships:
            if ship.occupies(coord):
                return ship
        return None

    def replace_ship(self, ship: Ship) -> None:
        """Swap in an updated record for the ship with the same name."""
        for idx, existing in enumerate(self.ships):
            if existing.name == ship.name:
                self.ships[idx] = ship
                return
        raise KeyError(f"unknown ship: {ship.name}")

    def shots_against(self, opponent_id: str, dims: GridDimensions) -> np.ndarray:
        """Return the shot grid against an opponent, allocating it on first use."""
        grid = self.shots.get(opponent_id)
        if grid is None:
            grid = np.zeros((dims.rows, dims.cols), dtype=np.int8)
            self.shots[opponent_id] = grid
        return grid

    def is_jammed(self, ship: Ship) -> bool:
        if self.jam_turns_remaining <= 0:
            return False
        jammed = set(self.jammed_positions)
        return any(pos in jammed for pos in ship.positions)


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One game log line."""

    turn: int
    player_id: str
    player_name: str
    result: LogResult
    target_id: str | None = None
    target_name: str | None = None
    coords: Coord | None = None
    sunk_ship_name: str | None = None
    hit_ship_name: str | None = None
    message: str | None = None


@dataclass(frozen=True, slots=True)
class ActiveAction:
    """Action armed by the active player, with multi-step skill context."""

    player_id: str
    kind: ActionKind
    ship_type: ShipType | None = None
    stage: ActionStage | None = None
    ship_to_move: Ship | None = None
    is_horizontal: bool = True
    original_positions: tuple[tuple[Coord, CellState], ...] = ()


@dataclass(frozen=True, slots=True)
class RadarScan:
    """Transient radar observations for the next render."""

    player_id: str
    results: tuple[tuple[Coord, CellState], ...]


@dataclass(frozen=True, slots=True)
class JammedArea:
    """Jam overlay shown on a player's grid."""

    player_id: str
    coords: tuple[Coord, ...]


@dataclass(slots=True)
class GameState:
    """Whole game state passed through every rules function."""

    game_id: str
    players: list[Player]
    dims: GridDimensions
    ships_config: tuple[ShipSpec, ...]
    mode: GameMode
    phase: GamePhase = GamePhase.SETUP
    current_player_id: str | None = None
    winner: str | None = None
    turn: int = 1
    log: tuple[LogEntry, ...] = ()
    has_acted_this_turn: bool = False
    active_action: ActiveAction | None = None
    radar_scan_result: RadarScan | None = None
    jammed_area: JammedArea | None = None
    hit_log: dict[str, dict[Coord, int]] = field(default_factory=dict)

    def fork(self) -> GameState:
        """Return a copy whose mutable substructures are owned by the copy."""
        return GameState(
            game_id=self.game_id,
            players=[player.fork() for player in self.players],
            dims=self.dims,
            ships_config=self.ships_config,
            mode=self.mode,
            phase=self.phase,
            current_player_id=self.current_player_id,
            winner=self.winner,
            turn=self.turn,
            log=self.log,
            has_acted_this_turn=self.has_acted_this_turn,
            active_action=self.active_action,
            radar_scan_result=self.radar_scan_result,
            jammed_area=self.jammed_area,
            hit_log={key: dict(value) for key, value in self.hit_log.items()},
        )

    @property
    def is_tactical(self) -> bool:
        return self.mode is GameMode.TACTICAL

    def player(self, player_id: str) -> Player:
        for player in self.players:
            if player.player_id == player_id:
                return player
        raise ValueError(f"unknown player id: {player_id}")

    def current_player(self) -> Player | None:
        if self.current_player_id is None:
            return None
        return self.player(self.current_player_id)

    def opponent_of(self, player_id: str) -> Player:
        for player in self.players:
            if player.player_id != player_id:
                return player
        raise ValueError(f"no opponent for player id: {player_id}")

    def record(self, entry: LogEntry) -> None:
        """Prepend a log entry (newest first)."""
        self.log = (entry, *self.log)
