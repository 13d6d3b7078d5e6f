from __future__ import annotations

import random

from flotilla.ai.hunt_target import get_ai_move
from flotilla.core.grid import create_empty_grid
from flotilla.core.models import CellState, Coord, GridDimensions

DIMS = GridDimensions(12, 12)


def test_hunt_mode_uses_checkerboard_parity() -> None:
    grid = create_empty_grid(12, 12)
    rng = random.Random(1337)
    for _ in range(50):
        shot = get_ai_move(grid, DIMS, rng)
        assert (shot.x + shot.y) % 2 == 0


def test_target_mode_fires_next_to_a_hit() -> None:
    grid = create_empty_grid(12, 12)
    grid[5, 5] = CellState.HIT
    rng = random.Random(1337)
    for _ in range(20):
        shot = get_ai_move(grid, DIMS, rng)
        assert shot in {Coord(5, 4), Coord(5, 6), Coord(4, 5), Coord(6, 5)}


def test_target_mode_skips_resolved_and_out_of_bounds_neighbours() -> None:
    grid = create_empty_grid(12, 12)
    grid[0, 0] = CellState.HIT
    grid[0, 1] = CellState.MISS
    assert get_ai_move(grid, DIMS, random.Random(1)) == Coord(0, 1)


def test_falls_back_to_any_open_cell_then_origin() -> None:
    grid = create_empty_grid(12, 12)
    grid[:, :] = CellState.MISS
    grid[3, 4] = CellState.EMPTY
    assert get_ai_move(grid, DIMS, random.Random(1)) == Coord(4, 3)

    grid[3, 4] = CellState.MISS
    assert get_ai_move(grid, DIMS, random.Random(1)) == Coord(0, 0)
