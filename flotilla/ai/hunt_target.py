"""Hunt/target move selection for classic mode."""

from __future__ import annotations

import random

import numpy as np

from flotilla.core.models import CellState, Coord, GridDimensions


def get_ai_move(shots_grid: np.ndarray, dims: GridDimensions, rng: random.Random) -> Coord:
    """Pick the next classic-mode shot from the AI's record of shots.

    Target mode fires next to a known hit; hunt mode sweeps a checkerboard
    parity pattern, since every ship is at least two cells long.
    """
    hits: list[Coord] = []
    open_cells: list[Coord] = []
    hunt_cells: list[Coord] = []
    for y in range(dims.rows):
        for x in range(dims.cols):
            cell = shots_grid[y, x]
            if cell == CellState.HIT:
                hits.append(Coord(x, y))
            elif cell == CellState.EMPTY:
                open_cells.append(Coord(x, y))
                if (x + y) % 2 == 0:
                    hunt_cells.append(Coord(x, y))

    targets: list[Coord] = []
    for hit in hits:
        for cell in hit.neighbors():
            if not dims.contains(cell) or cell in targets:
                continue
            if shots_grid[cell.y, cell.x] == CellState.EMPTY:
                targets.append(cell)
    if targets:
        return rng.choice(targets)

    if hunt_cells:
        return rng.choice(hunt_cells)
    if open_cells:
        return rng.choice(open_cells)
    return Coord(0, 0)
