"""Player and game construction plus the setup-phase ready flow."""

from __future__ import annotations

import logging
import random
import uuid
from collections.abc import Callable, Sequence

from flotilla.core.grid import create_empty_grid, place_ships_for_ai
from flotilla.core.models import (
    COOLDOWN_SKILLS,
    LIMITED_USE_SKILLS,
    GameMode,
    GamePhase,
    GameState,
    GridDimensions,
    Player,
    Ship,
    ShipSpec,
    game_config,
)

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]


def new_id() -> str:
    """Default unique-id generator for games and players."""
    return uuid.uuid4().hex


def create_player(
    player_id: str,
    name: str,
    is_ai: bool,
    ships_config: Sequence[ShipSpec],
    dims: GridDimensions,
    mode: GameMode,
) -> Player:
    """Build a fresh player with an empty grid and unplaced ships."""
    player = Player(
        player_id=player_id,
        name=f"{name} (AI)" if is_ai else name,
        is_ai=is_ai,
        grid=create_empty_grid(dims.rows, dims.cols),
        ships=[Ship.from_spec(spec) for spec in ships_config],
    )
    if mode is GameMode.TACTICAL:
        player.skill_cooldowns = {skill: 0 for skill in COOLDOWN_SKILLS}
        player.skill_uses = dict(LIMITED_USE_SKILLS)
    return player


def create_game(players: Sequence[Player], mode: GameMode, *, game_id: str) -> GameState:
    """Build the initial game state in SETUP phase."""
    if len(players) != 2:
        raise ValueError("a game needs exactly two players")
    config = game_config(mode)
    owned = [player.fork() for player in players]
    for player in owned:
        for other in owned:
            if other.player_id != player.player_id:
                player.shots[other.player_id] = create_empty_grid(config.dims.rows, config.dims.cols)
    return GameState(
        game_id=game_id,
        players=owned,
        dims=config.dims,
        ships_config=config.ships_config,
        mode=mode,
    )


def new_game(
    mode: GameMode,
    player_name: str,
    *,
    opponent_name: str = "Admiral",
    against_ai: bool = True,
    ids: IdFactory = new_id,
) -> GameState:
    """Create a two-player game for ``mode`` with fresh identities."""
    config = game_config(mode)
    first = create_player(ids(), player_name, False, config.ships_config, config.dims, mode)
    second = create_player(ids(), opponent_name, against_ai, config.ships_config, config.dims, mode)
    state = create_game([first, second], mode, game_id=ids())
    logger.info(
        "game_created id=%s mode=%s against_ai=%s", state.game_id, mode.value, against_ai
    )
    return state


def fleet_is_complete(player: Player) -> bool:
    """Return whether every ship of the player has been placed."""
    return all(ship.is_placed for ship in player.ships)


def is_hot_seat(state: GameState) -> bool:
    """Return whether every participant is human."""
    return all(not player.is_ai for player in state.players)


def mark_ready(state: GameState, player_with_ships: Player, rng: random.Random) -> GameState:
    """Store a player's placed fleet and move setup forward.

    Against an AI the AI fleet is placed at random and play starts with the
    first player. In hot-seat games the first ready player hands the device
    over through TURN_TRANSITION; the second starts play.
    """
    if state.phase is not GamePhase.SETUP:
        raise ValueError(f"cannot mark ready during {state.phase.value}")
    if not fleet_is_complete(player_with_ships):
        raise ValueError(f"fleet of {player_with_ships.name} is not fully placed")

    new_state = state.fork()
    index = _player_index(new_state, player_with_ships.player_id)
    ready = player_with_ships.fork()
    ready.is_ready = True
    # Shot grids are owned by the game, not by the placement editor.
    ready.shots = new_state.players[index].shots
    new_state.players[index] = ready

    if is_hot_seat(new_state):
        if index == 0:
            new_state.phase = GamePhase.TURN_TRANSITION
            new_state.current_player_id = new_state.players[1].player_id
        else:
            new_state.phase = GamePhase.PLAYING
            new_state.current_player_id = new_state.players[0].player_id
        return new_state

    for idx, player in enumerate(new_state.players):
        if player.is_ai and not player.is_ready:
            new_state.players[idx] = place_ships_for_ai(
                player, new_state.ships_config, new_state.dims, rng
            )
    new_state.phase = GamePhase.PLAYING
    new_state.current_player_id = new_state.players[0].player_id
    logger.info("battle_started id=%s", new_state.game_id)
    return new_state


def _player_index(state: GameState, player_id: str) -> int:
    for idx, player in enumerate(state.players):
        if player.player_id == player_id:
            return idx
    raise ValueError(f"unknown player id: {player_id}")
