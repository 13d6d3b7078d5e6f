"""Tactical-mode AI decision tree."""

from __future__ import annotations

import logging
import math
import random

import numpy as np

from flotilla.ai.decisions import AttackDecision, Decision, SkillDecision
from flotilla.ai.heatmap import (
    build_probability_map,
    find_best_decoy_spot,
    find_best_radar_spot,
    find_best_targets,
    find_ship_to_relocate,
)
from flotilla.core.grid import create_empty_grid
from flotilla.core.models import CellState, Coord, GameState, Player, Ship, ShipType
from flotilla.core.skills import CellTarget, ShipSelection

logger = logging.getLogger(__name__)

CONFIDENT_ATTACK_THRESHOLD = 10


def get_ai_tactical_move(
    ai_player: Player, opponent: Player, state: GameState, rng: random.Random
) -> Decision:
    """Choose the AI's next tactical action without touching ``state``.

    Checks run in priority order: survive, finish the Mothership, confident
    attack, jam, relocate, repair, radar, decoy, then a plain attack.
    """
    dims = state.dims
    shots = ai_player.shots.get(opponent.player_id)
    if shots is None:
        shots = create_empty_grid(dims.rows, dims.cols)
    heat = build_probability_map(opponent, shots, dims)

    mothership = ai_player.ship_of_type(ShipType.MOTHERSHIP)
    if mothership is not None and mothership.is_damaged:
        if ai_player.escape_skill_unlocked and ai_player.skill_uses.get(ShipType.MOTHERSHIP, 0) > 0:
            return _chosen(SkillDecision(ShipType.MOTHERSHIP))
        if _cooldown(ai_player, ShipType.REPAIRSHIP) == 0 and not mothership.has_been_repaired:
            cell = _repairable_cell(ai_player, mothership, state)
            if cell is not None:
                return _chosen(SkillDecision(ShipType.REPAIRSHIP, CellTarget(cell)))

    finisher = _lethal_shot(opponent, shots)
    if finisher is not None:
        return _chosen(AttackDecision(finisher))

    best_targets = find_best_targets(heat, shots)
    best = rng.choice(best_targets) if best_targets else None
    if best is not None and heat[best.y, best.x] > CONFIDENT_ATTACK_THRESHOLD:
        return _chosen(AttackDecision(best))

    jam_center = _jam_center(ai_player, opponent, shots)
    if jam_center is not None:
        return _chosen(SkillDecision(ShipType.JAMSHIP, CellTarget(jam_center)))

    if _cooldown(ai_player, ShipType.COMMANDSHIP) == 0:
        endangered = find_ship_to_relocate(ai_player, opponent, dims)
        if endangered is not None:
            return _chosen(SkillDecision(ShipType.COMMANDSHIP, ShipSelection(endangered.ship_type)))

    if _cooldown(ai_player, ShipType.REPAIRSHIP) == 0:
        damaged = [
            ship
            for ship in ai_player.ships
            if ship.is_damaged
            and not ship.is_sunk
            and not ship.has_been_repaired
            and ship.ship_type is not ShipType.MOTHERSHIP
        ]
        if damaged:
            largest = max(damaged, key=lambda ship: ship.length)
            cell = _repairable_cell(ai_player, largest, state)
            if cell is not None:
                return _chosen(SkillDecision(ShipType.REPAIRSHIP, CellTarget(cell)))

    if _cooldown(ai_player, ShipType.RADARSHIP) == 0:
        return _chosen(SkillDecision(ShipType.RADARSHIP, CellTarget(find_best_radar_spot(heat))))

    if ai_player.skill_uses.get(ShipType.DECOYSHIP, 0) > 0:
        spot = find_best_decoy_spot(heat, ai_player.grid, rng)
        if spot is not None:
            return _chosen(SkillDecision(ShipType.DECOYSHIP, CellTarget(spot)))

    if best is not None:
        return _chosen(AttackDecision(best))

    ys, xs = np.nonzero(shots == CellState.EMPTY)
    if len(ys):
        idx = rng.randrange(len(ys))
        return _chosen(AttackDecision(Coord(int(xs[idx]), int(ys[idx]))))
    return _chosen(AttackDecision(Coord(0, 0)))


def _chosen(decision: Decision) -> Decision:
    logger.debug("ai_tactical_decision decision=%s", decision)
    return decision


def _cooldown(player: Player, skill: ShipType) -> int:
    return player.skill_cooldowns.get(skill, 0)


def _repairable_cell(player: Player, ship: Ship, state: GameState) -> Coord | None:
    damage_turns = state.hit_log.get(player.player_id, {})
    for pos in ship.positions:
        if player.grid[pos.y, pos.x] != CellState.HIT:
            continue
        if damage_turns.get(pos, state.turn) < state.turn:
            return pos
    return None


def _lethal_shot(opponent: Player, shots: np.ndarray) -> Coord | None:
    target = opponent.ship_of_type(ShipType.MOTHERSHIP)
    if target is None or not target.is_damaged:
        return None
    hits = [pos for pos in target.positions if shots[pos.y, pos.x] == CellState.HIT]
    if len(hits) != target.length - 1:
        return None
    for pos in target.positions:
        if shots[pos.y, pos.x] == CellState.EMPTY:
            return pos
    return None


def _jam_center(ai_player: Player, opponent: Player, shots: np.ndarray) -> Coord | None:
    if _cooldown(ai_player, ShipType.JAMSHIP) != 0:
        return None
    if not any(ship.is_damaged for ship in opponent.ships):
        return None
    repairer = opponent.ship_of_type(ShipType.REPAIRSHIP)
    if repairer is None or repairer.is_sunk or _cooldown(opponent, ShipType.REPAIRSHIP) != 0:
        return None
    hit_ys, hit_xs = np.nonzero(shots == CellState.HIT)
    if not len(hit_ys):
        return None
    # Halves round up.
    return Coord(
        math.floor(float(hit_xs.mean()) + 0.5),
        math.floor(float(hit_ys.mean()) + 0.5),
    )
