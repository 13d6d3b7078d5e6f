"""Probability heatmap of hidden ship locations and spot finders built on it."""

from __future__ import annotations

import random

import numpy as np

from flotilla.core.grid import create_empty_grid
from flotilla.core.models import (
    RADAR_BLOCK,
    CellState,
    Coord,
    GridDimensions,
    Player,
    Ship,
    ShipType,
)

ADJACENT_HIT_WEIGHT = 5
RELOCATION_THREAT_FACTOR = 2

RELOCATION_PRIORITY: tuple[ShipType, ...] = (
    ShipType.MOTHERSHIP,
    ShipType.REPAIRSHIP,
    ShipType.JAMSHIP,
    ShipType.RADARSHIP,
    ShipType.DECOYSHIP,
    ShipType.COMMANDSHIP,
)

_BLOCKING_CELLS = (int(CellState.MISS),)
_TARGETABLE_CELLS = (int(CellState.EMPTY), int(CellState.RADAR_CONTACT))


def build_probability_map(
    opponent: Player, shots_grid: np.ndarray, dims: GridDimensions
) -> np.ndarray:
    """Score each cell by how many unsunk-ship placements could cover it.

    A placement counts when its footprint stays in bounds and crosses no known
    miss cell. Unshot cells next to a known hit are then weighted up,
    once per neighbouring hit.
    """
    heat = np.zeros((dims.rows, dims.cols), dtype=np.int64)
    blocked = np.isin(shots_grid, _BLOCKING_CELLS)

    for ship in opponent.ships:
        if ship.is_sunk:
            continue
        length = ship.length
        for y in range(dims.rows):
            for x in range(dims.cols - length + 1):
                if not blocked[y, x : x + length].any():
                    heat[y, x : x + length] += 1
        for y in range(dims.rows - length + 1):
            for x in range(dims.cols):
                if not blocked[y : y + length, x].any():
                    heat[y : y + length, x] += 1

    for hit_y, hit_x in np.argwhere(shots_grid == CellState.HIT):
        for cell in Coord(int(hit_x), int(hit_y)).neighbors():
            if dims.contains(cell) and shots_grid[cell.y, cell.x] == CellState.EMPTY:
                heat[cell.y, cell.x] *= ADJACENT_HIT_WEIGHT
    return heat


def find_best_targets(heat: np.ndarray, shots_grid: np.ndarray) -> list[Coord]:
    """Return every still-targetable cell tied for the highest score."""
    open_cells = np.isin(shots_grid, _TARGETABLE_CELLS)
    if not open_cells.any():
        return []
    best = heat[open_cells].max()
    ys, xs = np.nonzero(open_cells & (heat == best))
    return [Coord(int(x), int(y)) for y, x in zip(ys, xs)]


def block_density(heat: np.ndarray) -> np.ndarray:
    """Sum of scores over every radar-sized block, indexed by its top-left anchor."""
    rows, cols = heat.shape
    shape = (max(rows - RADAR_BLOCK + 1, 0), max(cols - RADAR_BLOCK + 1, 0))
    density = np.zeros(shape, dtype=heat.dtype)
    for dy in range(RADAR_BLOCK):
        for dx in range(RADAR_BLOCK):
            density += heat[dy : dy + density.shape[0], dx : dx + density.shape[1]]
    return density


def find_best_radar_spot(heat: np.ndarray) -> Coord:
    """Top-left anchor of the densest block; the first one wins ties."""
    density = block_density(heat)
    if density.size == 0:
        return Coord(0, 0)
    y, x = np.unravel_index(int(np.argmax(density)), density.shape)
    return Coord(int(x), int(y))


def find_best_decoy_spot(
    heat: np.ndarray, own_grid: np.ndarray, rng: random.Random
) -> Coord | None:
    """Random empty anchor among the least dense blocks, or ``None``."""
    density = block_density(heat)
    anchor_rows, anchor_cols = density.shape
    free = own_grid[:anchor_rows, :anchor_cols] == CellState.EMPTY
    if not free.any():
        return None
    lowest = density[free].min()
    ys, xs = np.nonzero(free & (density == lowest))
    idx = rng.randrange(len(ys))
    return Coord(int(xs[idx]), int(ys[idx]))


def ship_threat(ship: Ship, heat: np.ndarray) -> int:
    """Sum of heat over the cells a ship occupies."""
    return int(sum(heat[pos.y, pos.x] for pos in ship.positions))


def find_ship_to_relocate(
    ai_player: Player, opponent: Player, dims: GridDimensions
) -> Ship | None:
    """Most valuable healthy ship sitting where the opponent is likely to shoot."""
    opponent_shots = opponent.shots.get(ai_player.player_id)
    if opponent_shots is None:
        opponent_shots = create_empty_grid(dims.rows, dims.cols)
    threat_map = build_probability_map(ai_player, opponent_shots, dims)

    for ship_type in RELOCATION_PRIORITY:
        ship = ai_player.ship_of_type(ship_type)
        if ship is None or ship.is_damaged or ship.is_sunk or ship.has_been_relocated:
            continue
        if ship_threat(ship, threat_map) > ship.length * RELOCATION_THREAT_FACTOR:
            return ship
    return None
