"""Shot resolution for classic and tactical rules."""

from __future__ import annotations

import logging
from dataclasses import replace

import numpy as np

from flotilla.core.models import (
    CellState,
    Coord,
    GamePhase,
    GameState,
    LogEntry,
    LogResult,
    Player,
    Ship,
    ShipType,
)

logger = logging.getLogger(__name__)

DECOY_HIT_NAME = "unidentified contact"
_OPEN_SHOT_CELLS = (CellState.EMPTY, CellState.RADAR_CONTACT)
_CLASSIC_HIT_CELLS = (CellState.SHIP, CellState.HIT, CellState.SUNK)


def process_shot(state: GameState, target_player_id: str, x: int, y: int) -> GameState:
    """Fire the active player's shot at (x, y) on the target and return the new state.

    Repeated shots at an already resolved cell, shots after the game ended and
    shots after the active player has finished acting return ``state``
    unchanged.
    """
    coord = Coord(x, y)
    if state.current_player_id is None:
        raise ValueError("no active player to fire a shot")
    if not state.dims.contains(coord):
        raise ValueError(f"shot out of bounds: ({x}, {y})")
    state.player(target_player_id)

    if state.phase is GamePhase.GAME_OVER or state.has_acted_this_turn:
        logger.debug("shot_ignored phase=%s acted=%s", state.phase.value, state.has_acted_this_turn)
        return state

    attacker = state.player(state.current_player_id)
    existing = attacker.shots.get(target_player_id)
    if existing is not None:
        previous = existing[y, x]
        if state.is_tactical and previous not in _OPEN_SHOT_CELLS:
            return state
        if not state.is_tactical and previous != CellState.EMPTY:
            return state

    new_state = state.fork()
    if new_state.is_tactical:
        _resolve_tactical(new_state, target_player_id, coord)
    else:
        _resolve_classic(new_state, target_player_id, coord)
    return new_state


def last_result(state: GameState) -> LogEntry | None:
    """Return the newest log entry, if any."""
    return state.log[0] if state.log else None


def _base_entry(state: GameState, attacker: Player, target: Player, coord: Coord) -> LogEntry:
    return LogEntry(
        turn=state.turn,
        player_id=attacker.player_id,
        player_name=attacker.name,
        result=LogResult.SHOT_FIRED,
        target_id=target.player_id,
        target_name=target.name,
        coords=coord,
    )


def _resolve_classic(state: GameState, target_id: str, coord: Coord) -> None:
    attacker = state.player(state.current_player_id)
    target = state.player(target_id)
    shots = attacker.shots_against(target_id, state.dims)
    entry = replace(_base_entry(state, attacker, target, coord), result=LogResult.MISS)

    if target.grid[coord.y, coord.x] in _CLASSIC_HIT_CELLS:
        shots[coord.y, coord.x] = CellState.HIT
        target.grid[coord.y, coord.x] = CellState.HIT
        entry = replace(entry, result=LogResult.HIT)
        state.has_acted_this_turn = False

        hit_ship = target.ship_at(coord)
        if hit_ship is not None:
            entry = replace(entry, hit_ship_name=hit_ship.name)
            if _all_cells_hit(target, hit_ship):
                _sink(target, shots, hit_ship)
                entry = replace(entry, result=LogResult.SUNK_SHIP, sunk_ship_name=hit_ship.name)
    else:
        shots[coord.y, coord.x] = CellState.MISS
        target.grid[coord.y, coord.x] = CellState.MISS
        state.has_acted_this_turn = True

    if all(ship.is_sunk for ship in target.ships):
        target.is_eliminated = True

    active = [player for player in state.players if not player.is_eliminated]
    if len(active) <= 1:
        state.phase = GamePhase.GAME_OVER
        state.winner = active[0].player_id if active else None
        state.has_acted_this_turn = True
        logger.info("game_over id=%s winner=%s", state.game_id, state.winner)
    state.record(entry)


def _resolve_tactical(state: GameState, target_id: str, coord: Coord) -> None:
    attacker = state.player(state.current_player_id)
    target = state.player(target_id)
    shots = attacker.shots_against(target_id, state.dims)
    base = _base_entry(state, attacker, target, coord)

    if coord in target.decoy_positions:
        # Indistinguishable from a real hit for the attacker.
        shots[coord.y, coord.x] = CellState.HIT
        target.decoy_positions.remove(coord)
        if target.grid[coord.y, coord.x] == CellState.DECOY:
            target.grid[coord.y, coord.x] = CellState.EMPTY
        state.record(replace(base, result=LogResult.HIT, hit_ship_name=DECOY_HIT_NAME))
        state.has_acted_this_turn = False
        logger.debug("decoy_hit target=%s coord=%s", target.player_id, coord)
        return

    if target.grid[coord.y, coord.x] != CellState.SHIP:
        shots[coord.y, coord.x] = CellState.MISS
        if target.grid[coord.y, coord.x] != CellState.DECOY:
            target.grid[coord.y, coord.x] = CellState.MISS
        state.record(replace(base, result=LogResult.MISS))
        state.has_acted_this_turn = True
        return

    hit_ship = target.ship_at(coord)
    if hit_ship is None:
        raise ValueError(f"ship cell without a ship at {coord}")
    shots[coord.y, coord.x] = CellState.HIT
    target.grid[coord.y, coord.x] = CellState.HIT
    hit_ship = replace(hit_ship, is_damaged=True)
    target.replace_ship(hit_ship)
    state.hit_log.setdefault(target.player_id, {})[coord] = state.turn

    if hit_ship.ship_type is ShipType.MOTHERSHIP:
        state.has_acted_this_turn = True
        target.escape_skill_unlocked = True
    else:
        state.has_acted_this_turn = False

    if not _all_cells_hit(target, hit_ship):
        state.record(replace(base, result=LogResult.HIT, hit_ship_name=hit_ship.name))
        return

    _sink(target, shots, hit_ship)
    state.record(replace(base, result=LogResult.SUNK_SHIP, sunk_ship_name=hit_ship.name))
    if hit_ship.ship_type is ShipType.MOTHERSHIP:
        target.is_eliminated = True
        state.phase = GamePhase.GAME_OVER
        state.winner = attacker.player_id
        logger.info("game_over id=%s winner=%s", state.game_id, state.winner)


def _all_cells_hit(owner: Player, ship: Ship) -> bool:
    return all(owner.grid[pos.y, pos.x] == CellState.HIT for pos in ship.positions)


def _sink(target: Player, shots: np.ndarray, ship: Ship) -> None:
    target.replace_ship(replace(ship, is_sunk=True))
    for pos in ship.positions:
        target.grid[pos.y, pos.x] = CellState.SUNK
        shots[pos.y, pos.x] = CellState.SUNK
