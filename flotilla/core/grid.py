"""Grid creation and ship placement helpers."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence

import numpy as np

from flotilla.core.models import (
    CellState,
    Coord,
    GridDimensions,
    Placement,
    Player,
    Ship,
    ShipSpec,
)

logger = logging.getLogger(__name__)

RELOCATION_ATTEMPTS = 100
FLEET_SHIP_ATTEMPTS = 500


def create_empty_grid(rows: int, cols: int) -> np.ndarray:
    """Return a grid of EMPTY cells."""
    return np.full((rows, cols), CellState.EMPTY, dtype=np.int8)


def ship_footprint(length: int, x: int, y: int, horizontal: bool) -> tuple[Coord, ...]:
    """Cells a ship of ``length`` occupies when anchored at (x, y)."""
    if horizontal:
        return tuple(Coord(x + i, y) for i in range(length))
    return tuple(Coord(x, y + i) for i in range(length))


def is_horizontal(ship: Ship) -> bool:
    """Infer a placed ship's orientation; single cells count as horizontal."""
    if len(ship.positions) < 2:
        return True
    return ship.positions[0].y == ship.positions[1].y


def can_place_ship(
    grid: np.ndarray,
    ship_length: int,
    x: int,
    y: int,
    horizontal: bool,
    dims: GridDimensions,
) -> bool:
    """Return whether every cell the ship would occupy is in bounds and EMPTY."""
    for cell in ship_footprint(ship_length, x, y, horizontal):
        if not dims.contains(cell):
            return False
        if grid[cell.y, cell.x] != CellState.EMPTY:
            return False
    return True


def place_ship(
    grid: np.ndarray, ship: Ship, x: int, y: int, horizontal: bool
) -> tuple[np.ndarray, Ship]:
    """Return a new grid with the ship marked and the ship with its positions."""
    new_grid = grid.copy()
    positions = ship_footprint(ship.length, x, y, horizontal)
    for cell in positions:
        new_grid[cell.y, cell.x] = CellState.SHIP
    return new_grid, ship.with_positions(positions)


def clear_footprint(grid: np.ndarray, positions: Sequence[Coord]) -> np.ndarray:
    """Return a copy of ``grid`` with the given cells reset to EMPTY."""
    scratch = grid.copy()
    for pos in positions:
        scratch[pos.y, pos.x] = CellState.EMPTY
    return scratch


def find_random_valid_placement(
    player: Player, ship: Ship, dims: GridDimensions, rng: random.Random
) -> Placement | None:
    """Sample a placement for ``ship`` elsewhere on the player's grid.

    The ship's current footprint is treated as free. Returns ``None`` after
    exhausting the attempt budget.
    """
    if player.grid.size == 0:
        logger.error("find_random_valid_placement called with empty grid player=%s", player.player_id)
        return None
    scratch = clear_footprint(player.grid, ship.positions)
    for _ in range(RELOCATION_ATTEMPTS):
        horizontal = rng.random() < 0.5
        x = rng.randrange(dims.cols)
        y = rng.randrange(dims.rows)
        if can_place_ship(scratch, ship.length, x, y, horizontal, dims):
            return Placement(x=x, y=y, horizontal=horizontal)
    return None


def place_ships_randomly(
    ships_config: Sequence[ShipSpec], dims: GridDimensions, rng: random.Random
) -> tuple[np.ndarray, list[Ship]]:
    """Place a whole fleet at random without overlaps.

    A ship that cannot be placed within the attempt budget restarts the whole
    fleet from scratch.
    """
    while True:
        placed = _try_place_fleet(ships_config, dims, rng)
        if placed is not None:
            return placed
        logger.warning("fleet_placement_restart ships=%d", len(ships_config))


def place_ships_for_ai(
    player: Player, ships_config: Sequence[ShipSpec], dims: GridDimensions, rng: random.Random
) -> Player:
    """Return a copy of ``player`` with a random fleet placed and marked ready."""
    grid, ships = place_ships_randomly(ships_config, dims, rng)
    updated = player.fork()
    updated.grid = grid
    updated.ships = ships
    updated.is_ready = True
    return updated


def _try_place_fleet(
    ships_config: Sequence[ShipSpec], dims: GridDimensions, rng: random.Random
) -> tuple[np.ndarray, list[Ship]] | None:
    grid = create_empty_grid(dims.rows, dims.cols)
    placed_by_name: dict[str, Ship] = {}
    for spec in ships_config:
        for _ in range(FLEET_SHIP_ATTEMPTS):
            horizontal = rng.random() < 0.5
            x = rng.randrange(dims.cols)
            y = rng.randrange(dims.rows)
            if can_place_ship(grid, spec.length, x, y, horizontal, dims):
                grid, ship = place_ship(grid, Ship.from_spec(spec), x, y, horizontal)
                placed_by_name[spec.name] = ship
                break
        else:
            logger.debug("fleet_placement_ship_failed ship=%s", spec.name)
            return None
    ordered = [placed_by_name[spec.name] for spec in ships_config]
    return grid, ordered
