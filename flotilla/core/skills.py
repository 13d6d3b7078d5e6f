"""Tactical skill resolution and action arming."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, replace

from flotilla.core.grid import (
    can_place_ship,
    clear_footprint,
    find_random_valid_placement,
    is_horizontal,
    place_ship,
)
from flotilla.core.models import (
    JAM_COOLDOWN,
    JAM_DURATION,
    JAM_RADIUS,
    RADAR_BLOCK,
    RADAR_COOLDOWN,
    RELOCATE_COOLDOWN,
    REPAIR_COOLDOWN,
    ActionKind,
    ActionStage,
    ActiveAction,
    CellState,
    Coord,
    GamePhase,
    GameState,
    JammedArea,
    LogEntry,
    LogResult,
    Player,
    RadarScan,
    ShipType,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CellTarget:
    """Single-cell target for Radar, Jam, Repair and Decoy."""

    coord: Coord


@dataclass(frozen=True, slots=True)
class Destination:
    """Player-chosen anchor for Escape and Relocate."""

    coord: Coord
    horizontal: bool


@dataclass(frozen=True, slots=True)
class ShipSelection:
    """Ship chosen for an automatic relocation."""

    ship_type: ShipType


SkillOptions = CellTarget | Destination | ShipSelection | None


@dataclass(frozen=True, slots=True)
class SkillOutcome:
    """Result of a skill invocation."""

    success: bool
    state: GameState
    message: str = ""


class _SkillRejected(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def skill_block_reason(player: Player, skill: ShipType) -> str | None:
    """Return why ``player`` cannot use ``skill`` right now, or ``None``."""
    ship = player.ship_of_type(skill)
    if ship is None or ship.is_sunk:
        return f"{skill.value} is not available."
    cooldown = player.skill_cooldowns.get(skill, 0)
    if cooldown > 0:
        return f"{skill.value} is recharging ({cooldown} turns)."
    if skill in player.skill_uses and player.skill_uses[skill] <= 0:
        return f"{skill.value} has no uses left."
    if skill is ShipType.MOTHERSHIP and not player.escape_skill_unlocked:
        return "Escape unlocks once the Mothership is damaged."
    if player.is_jammed(ship):
        return f"{skill.value} is jammed."
    return None


def use_skill(
    skill: ShipType,
    options: SkillOptions,
    state: GameState,
    *,
    ai: bool = False,
    rng: random.Random | None = None,
) -> SkillOutcome:
    """Apply the active player's ``skill`` and return the outcome.

    On failure the returned state only differs from ``state`` by the cleared
    active action (a ship lifted for placement is put back). AI invocations get
    an empty message.
    """
    if state.current_player_id is None:
        raise ValueError("no active player to use a skill")
    caster = state.player(state.current_player_id)

    if not state.is_tactical:
        return _fail(state, "Skills are only available in tactical mode.", ai)
    if state.phase is not GamePhase.PLAYING or state.has_acted_this_turn:
        return _fail(state, "No action left this turn.", ai)
    reason = skill_block_reason(caster, skill)
    if reason is not None:
        return _fail(state, reason, ai)

    new_state = state.fork()
    attacker = new_state.player(new_state.current_player_id)
    try:
        match skill:
            case ShipType.MOTHERSHIP:
                message = _escape(new_state, attacker, options, ai, rng)
            case ShipType.RADARSHIP:
                message = _radar(new_state, attacker, _cell_target(options, skill))
            case ShipType.JAMSHIP:
                message = _jam(new_state, attacker, _cell_target(options, skill))
            case ShipType.REPAIRSHIP:
                message = _repair(new_state, attacker, _cell_target(options, skill))
            case ShipType.DECOYSHIP:
                message = _decoy(new_state, attacker, _cell_target(options, skill))
            case ShipType.COMMANDSHIP:
                message = _relocate(new_state, attacker, options, ai, rng)
            case _:
                return _fail(state, f"{skill.value} has no skill.", ai)
    except _SkillRejected as exc:
        return _fail(state, exc.message, ai)

    new_state.record(
        LogEntry(
            turn=new_state.turn,
            player_id=attacker.player_id,
            player_name=attacker.name,
            result=LogResult.SKILL_USED,
            message=message,
        )
    )
    new_state.has_acted_this_turn = True
    new_state.active_action = None
    logger.info("skill_used player=%s skill=%s ai=%s", attacker.player_id, skill.value, ai)
    return SkillOutcome(success=True, state=new_state, message=message)


def arm_attack(state: GameState) -> GameState:
    """Arm an attack for the active player; selecting it again disarms it."""
    if not _can_act(state):
        return state
    current = state.active_action
    if current is not None and current.kind is ActionKind.ATTACK:
        return clear_action(state)
    new_state = clear_action(state).fork()
    new_state.active_action = ActiveAction(
        player_id=new_state.current_player_id, kind=ActionKind.ATTACK
    )
    return new_state


def arm_skill(state: GameState, skill: ShipType) -> GameState:
    """Arm ``skill`` for the active player; selecting it again disarms it."""
    if not _can_act(state) or not state.is_tactical:
        return state
    current = state.active_action
    if current is not None and current.ship_type is skill:
        return clear_action(state)
    player = state.player(state.current_player_id)
    reason = skill_block_reason(player, skill)
    if reason is not None:
        logger.debug("skill_not_armed player=%s reason=%s", player.player_id, reason)
        return state
    if skill is ShipType.MOTHERSHIP:
        return begin_escape(state)

    new_state = clear_action(state).fork()
    stage = None
    if skill is ShipType.COMMANDSHIP:
        stage = ActionStage.SELECT_SHIP
    elif skill is ShipType.DECOYSHIP:
        stage = ActionStage.PLACE_DECOY
    new_state.active_action = ActiveAction(
        player_id=player.player_id, kind=ActionKind.SKILL, ship_type=skill, stage=stage
    )
    return new_state


def clear_action(state: GameState) -> GameState:
    """Cancel the armed action, putting back any ship lifted for placement."""
    action = state.active_action
    if action is None:
        return state
    new_state = state.fork()
    if action.ship_to_move is not None and action.original_positions:
        owner = new_state.player(action.player_id)
        for pos, cell in action.original_positions:
            owner.grid[pos.y, pos.x] = cell
        lifted = owner.ship_named(action.ship_to_move.name)
        if lifted is not None:
            owner.replace_ship(
                lifted.with_positions(tuple(pos for pos, _ in action.original_positions))
            )
    new_state.active_action = None
    return new_state


def begin_escape(state: GameState) -> GameState:
    """Lift the active player's Mothership off the grid for a manual escape."""
    if not _can_act(state) or not state.is_tactical:
        return state
    player = state.player(state.current_player_id)
    if skill_block_reason(player, ShipType.MOTHERSHIP) is not None:
        return state
    mothership = player.ship_of_type(ShipType.MOTHERSHIP)
    return _lift_ship(clear_action(state), mothership.name, ShipType.MOTHERSHIP)


def begin_relocation(state: GameState, ship_name: str) -> GameState:
    """Lift ``ship_name`` off the grid once the Commandship skill is armed."""
    action = state.active_action
    if action is None or action.ship_type is not ShipType.COMMANDSHIP:
        return state
    if action.stage is not ActionStage.SELECT_SHIP:
        return state
    player = state.player(state.current_player_id)
    ship = player.ship_named(ship_name)
    if ship is None or ship.is_sunk or ship.is_damaged or ship.has_been_relocated:
        return state
    return _lift_ship(state, ship_name, ShipType.COMMANDSHIP)


def _lift_ship(state: GameState, ship_name: str, skill: ShipType) -> GameState:
    new_state = state.fork()
    player = new_state.player(new_state.current_player_id)
    ship = player.ship_named(ship_name)
    original = tuple((pos, player.cell(pos)) for pos in ship.positions)
    for pos in ship.positions:
        player.grid[pos.y, pos.x] = CellState.EMPTY
    player.replace_ship(ship.with_positions(()))
    new_state.active_action = ActiveAction(
        player_id=player.player_id,
        kind=ActionKind.SKILL,
        ship_type=skill,
        stage=ActionStage.PLACE_SHIP,
        ship_to_move=ship,
        is_horizontal=is_horizontal(ship),
        original_positions=original,
    )
    return new_state


def _can_act(state: GameState) -> bool:
    return (
        state.phase is GamePhase.PLAYING
        and state.current_player_id is not None
        and not state.has_acted_this_turn
    )


def _fail(state: GameState, message: str, ai: bool) -> SkillOutcome:
    logger.info("skill_rejected reason=%r ai=%s", message, ai)
    return SkillOutcome(success=False, state=clear_action(state), message="" if ai else message)


def _cell_target(options: SkillOptions, skill: ShipType) -> Coord:
    if not isinstance(options, CellTarget):
        raise TypeError(f"{skill.value} expects a CellTarget, got {type(options).__name__}")
    return options.coord


def _armed_placement(state: GameState, skill: ShipType) -> ActiveAction:
    action = state.active_action
    if (
        action is None
        or action.ship_type is not skill
        or action.stage is not ActionStage.PLACE_SHIP
        or action.ship_to_move is None
    ):
        raise _SkillRejected("Pick up a ship before choosing its destination.")
    return action


def _clear_opponent_marks(state: GameState, owner: Player, cells: Sequence[Coord]) -> None:
    for player in state.players:
        if player.player_id == owner.player_id:
            continue
        shots = player.shots.get(owner.player_id)
        if shots is None:
            continue
        for pos in cells:
            shots[pos.y, pos.x] = CellState.EMPTY


def _escape(
    state: GameState,
    attacker: Player,
    options: SkillOptions,
    ai: bool,
    rng: random.Random | None,
) -> str:
    mothership = attacker.ship_of_type(ShipType.MOTHERSHIP)
    if ai:
        placement = find_random_valid_placement(attacker, mothership, state.dims, rng or random.Random())
        if placement is None:
            raise _SkillRejected("No room for an escape maneuver.")
        old_cells = mothership.positions
        grid = clear_footprint(attacker.grid, old_cells)
        new_grid, moved = place_ship(grid, mothership, placement.x, placement.y, placement.horizontal)
    else:
        if not isinstance(options, Destination):
            raise TypeError(f"human escape expects a Destination, got {type(options).__name__}")
        action = _armed_placement(state, ShipType.MOTHERSHIP)
        dest = options.coord
        if not can_place_ship(
            attacker.grid, mothership.length, dest.x, dest.y, options.horizontal, state.dims
        ):
            raise _SkillRejected("Invalid placement for escape maneuver.")
        old_cells = tuple(pos for pos, _ in action.original_positions)
        new_grid, moved = place_ship(attacker.grid, mothership, dest.x, dest.y, options.horizontal)

    # A spent decoy can leave a HIT mark under the new footprint.
    _clear_opponent_marks(state, attacker, (*old_cells, *moved.positions))
    attacker.grid = new_grid
    attacker.replace_ship(replace(moved, is_damaged=False))
    attacker.skill_uses[ShipType.MOTHERSHIP] = 0
    return f"{attacker.name} used Escape! The Mothership has been repaired and relocated!"


def _radar(state: GameState, attacker: Player, anchor: Coord) -> str:
    if not state.dims.contains(anchor):
        raise _SkillRejected("Radar target is off the grid.")
    opponent = state.opponent_of(attacker.player_id)
    shots = attacker.shots_against(opponent.player_id, state.dims)
    results: list[tuple[Coord, CellState]] = []
    for dy in range(RADAR_BLOCK):
        for dx in range(RADAR_BLOCK):
            cell = Coord(anchor.x + dx, anchor.y + dy)
            if not state.dims.contains(cell) or shots[cell.y, cell.x] != CellState.EMPTY:
                continue
            contact = opponent.grid[cell.y, cell.x] in (CellState.SHIP, CellState.DECOY)
            results.append((cell, CellState.RADAR_CONTACT if contact else CellState.MISS))
    attacker.skill_cooldowns[ShipType.RADARSHIP] = RADAR_COOLDOWN
    state.radar_scan_result = RadarScan(player_id=attacker.player_id, results=tuple(results))
    return f"Radar Scan used. Cooldown set to {RADAR_COOLDOWN} turns."


def _jam(state: GameState, attacker: Player, center: Coord) -> str:
    if not state.dims.contains(center):
        raise _SkillRejected("Jam target is off the grid.")
    opponent = state.opponent_of(attacker.player_id)
    cells: list[Coord] = []
    for dy in range(-JAM_RADIUS, JAM_RADIUS + 1):
        for dx in range(-JAM_RADIUS, JAM_RADIUS + 1):
            cell = Coord(center.x + dx, center.y + dy)
            if state.dims.contains(cell):
                cells.append(cell)
    jammed = tuple(cells)
    opponent.jammed_positions = list(jammed)
    opponent.jam_turns_remaining = JAM_DURATION
    state.jammed_area = JammedArea(player_id=opponent.player_id, coords=jammed)
    attacker.skill_cooldowns[ShipType.JAMSHIP] = JAM_COOLDOWN
    return f"{attacker.name} used Jam. Cooldown set to {JAM_COOLDOWN} turns."


def _repair(state: GameState, attacker: Player, coord: Coord) -> str:
    if not state.dims.contains(coord):
        raise _SkillRejected("Cannot repair this part.")
    ship = attacker.ship_at(coord)
    damaged_turn = state.hit_log.get(attacker.player_id, {}).get(coord)
    if (
        ship is None
        or ship.is_sunk
        or ship.has_been_repaired
        or attacker.grid[coord.y, coord.x] != CellState.HIT
        or damaged_turn is None
        or damaged_turn >= state.turn
    ):
        raise _SkillRejected("Cannot repair this part.")

    attacker.grid[coord.y, coord.x] = CellState.SHIP
    _clear_opponent_marks(state, attacker, (coord,))
    attacker.skill_cooldowns[ShipType.REPAIRSHIP] = REPAIR_COOLDOWN
    still_damaged = any(attacker.grid[pos.y, pos.x] == CellState.HIT for pos in ship.positions)
    attacker.replace_ship(replace(ship, has_been_repaired=True, is_damaged=still_damaged))
    message = f"{attacker.name} repaired their {ship.name}. Cooldown: {REPAIR_COOLDOWN} turns."
    if not still_damaged:
        message += " It's fully repaired and hidden!"
    return message


def _decoy(state: GameState, attacker: Player, coord: Coord) -> str:
    if not state.dims.contains(coord) or attacker.grid[coord.y, coord.x] != CellState.EMPTY:
        raise _SkillRejected("Cannot place decoy there.")
    attacker.grid[coord.y, coord.x] = CellState.DECOY
    attacker.decoy_positions.append(coord)
    attacker.skill_uses[ShipType.DECOYSHIP] -= 1
    return f"{attacker.name} deployed a decoy beacon."


def _relocate(
    state: GameState,
    attacker: Player,
    options: SkillOptions,
    ai: bool,
    rng: random.Random | None,
) -> str:
    if ai:
        if not isinstance(options, ShipSelection):
            raise TypeError(f"AI relocation expects a ShipSelection, got {type(options).__name__}")
        ship = attacker.ship_of_type(options.ship_type)
        if ship is None or ship.is_damaged or ship.is_sunk or ship.has_been_relocated:
            raise _SkillRejected("That ship cannot be relocated.")
        placement = find_random_valid_placement(attacker, ship, state.dims, rng or random.Random())
        if placement is None:
            raise _SkillRejected("No room to relocate that ship.")
        grid = clear_footprint(attacker.grid, ship.positions)
        new_grid, moved = place_ship(grid, ship, placement.x, placement.y, placement.horizontal)
    else:
        if not isinstance(options, Destination):
            raise TypeError(f"human relocation expects a Destination, got {type(options).__name__}")
        action = _armed_placement(state, ShipType.COMMANDSHIP)
        ship = attacker.ship_named(action.ship_to_move.name)
        dest = options.coord
        if not can_place_ship(attacker.grid, ship.length, dest.x, dest.y, options.horizontal, state.dims):
            raise _SkillRejected("Invalid placement for relocation.")
        new_grid, moved = place_ship(attacker.grid, ship, dest.x, dest.y, options.horizontal)

    attacker.grid = new_grid
    _clear_opponent_marks(state, attacker, moved.positions)
    attacker.replace_ship(replace(moved, has_been_relocated=True))
    attacker.skill_cooldowns[ShipType.COMMANDSHIP] = RELOCATE_COOLDOWN
    return f"{attacker.name} relocated their {ship.name}."
