from __future__ import annotations

import random
from collections.abc import Callable

import pytest

from flotilla.core.grid import place_ship
from flotilla.core.initialization import create_game, create_player
from flotilla.core.models import GameMode, GamePhase, GameState, Player, game_config


def place_fleet_in_rows(player: Player) -> Player:
    """Lay each ship horizontally from column 0 on every other row."""
    placed = player.fork()
    for idx, ship in enumerate(list(placed.ships)):
        placed.grid, moved = place_ship(placed.grid, ship, 0, idx * 2, True)
        placed.replace_ship(moved)
    placed.is_ready = True
    return placed


def make_game(mode: GameMode, *, second_is_ai: bool = True) -> GameState:
    config = game_config(mode)
    players = [
        create_player("p1", "Alice", False, config.ships_config, config.dims, mode),
        create_player("p2", "Bob", second_is_ai, config.ships_config, config.dims, mode),
    ]
    state = create_game([place_fleet_in_rows(player) for player in players], mode, game_id="g1")
    state.phase = GamePhase.PLAYING
    state.current_player_id = "p1"
    return state


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1337)


@pytest.fixture
def fleet_placer() -> Callable[[Player], Player]:
    return place_fleet_in_rows


@pytest.fixture
def game_factory() -> Callable[..., GameState]:
    return make_game


@pytest.fixture
def tactical_game() -> GameState:
    return make_game(GameMode.TACTICAL)


@pytest.fixture
def classic_game() -> GameState:
    return make_game(GameMode.CLASSIC)
