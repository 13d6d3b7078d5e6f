from __future__ import annotations

import random
from dataclasses import replace

from flotilla.ai.decisions import AttackDecision, SkillDecision
from flotilla.ai.tactical import get_ai_tactical_move
from flotilla.core.models import CellState, Coord, GameState, ShipType
from flotilla.core.skills import CellTarget, ShipSelection


def _damage(state: GameState, player_id: str, coord: Coord, turn: int) -> None:
    owner = state.player(player_id)
    ship = owner.ship_at(coord)
    owner.grid[coord.y, coord.x] = CellState.HIT
    owner.replace_ship(replace(ship, is_damaged=True))
    state.opponent_of(player_id).shots[player_id][coord.y, coord.x] = CellState.HIT
    state.hit_log.setdefault(player_id, {})[coord] = turn


def _decide(state: GameState, seed: int = 5):
    ai = state.player("p2")
    return get_ai_tactical_move(ai, state.player("p1"), state, random.Random(seed))


def _blind(state: GameState) -> None:
    state.player("p2").shots["p1"][:, :] = CellState.MISS


def test_first_move_on_fresh_board_is_an_attack(tactical_game) -> None:
    for seed in range(5):
        decision = _decide(tactical_game, seed)
        assert isinstance(decision, AttackDecision)
        assert tactical_game.dims.contains(decision.coord)


def test_damaged_mothership_escapes_first(tactical_game) -> None:
    _damage(tactical_game, "p2", Coord(0, 10), turn=1)
    tactical_game.player("p2").escape_skill_unlocked = True
    assert _decide(tactical_game) == SkillDecision(ShipType.MOTHERSHIP)


def test_damaged_mothership_repaired_when_escape_spent(tactical_game) -> None:
    _damage(tactical_game, "p2", Coord(1, 10), turn=1)
    ai = tactical_game.player("p2")
    ai.escape_skill_unlocked = True
    ai.skill_uses[ShipType.MOTHERSHIP] = 0
    tactical_game.turn = 2

    expected = SkillDecision(ShipType.REPAIRSHIP, CellTarget(Coord(1, 10)))
    assert _decide(tactical_game) == expected


def test_mothership_damage_from_this_turn_is_not_repaired(tactical_game) -> None:
    _damage(tactical_game, "p2", Coord(1, 10), turn=2)
    tactical_game.player("p2").skill_uses[ShipType.MOTHERSHIP] = 0
    tactical_game.turn = 2

    decision = _decide(tactical_game)
    assert not (isinstance(decision, SkillDecision) and decision.skill is ShipType.REPAIRSHIP)


def test_lethal_shot_finishes_opponent_mothership(tactical_game) -> None:
    _damage(tactical_game, "p1", Coord(0, 10), turn=1)
    assert _decide(tactical_game) == AttackDecision(Coord(1, 10))


def test_jam_centres_on_rounded_mean_of_hits(tactical_game) -> None:
    _blind(tactical_game)
    shots = tactical_game.player("p2").shots["p1"]
    shots[5, 5] = CellState.HIT
    shots[5, 6] = CellState.HIT
    opponent = tactical_game.player("p1")
    commandship = opponent.ship_of_type(ShipType.COMMANDSHIP)
    opponent.replace_ship(replace(commandship, is_damaged=True))

    assert _decide(tactical_game) == SkillDecision(ShipType.JAMSHIP, CellTarget(Coord(6, 5)))


def test_no_jam_while_opponent_repair_recharges(tactical_game) -> None:
    _blind(tactical_game)
    tactical_game.player("p2").shots["p1"][5, 5] = CellState.HIT
    opponent = tactical_game.player("p1")
    commandship = opponent.ship_of_type(ShipType.COMMANDSHIP)
    opponent.replace_ship(replace(commandship, is_damaged=True))
    opponent.skill_cooldowns[ShipType.REPAIRSHIP] = 2

    decision = _decide(tactical_game)
    assert not (isinstance(decision, SkillDecision) and decision.skill is ShipType.JAMSHIP)


def test_exposed_ship_is_relocated_when_hunting_is_exhausted(tactical_game) -> None:
    _blind(tactical_game)
    decision = _decide(tactical_game)
    assert decision == SkillDecision(ShipType.COMMANDSHIP, ShipSelection(ShipType.MOTHERSHIP))


def test_largest_damaged_ship_is_repaired_proactively(tactical_game) -> None:
    _blind(tactical_game)
    tactical_game.player("p2").skill_cooldowns[ShipType.COMMANDSHIP] = 1
    _damage(tactical_game, "p2", Coord(2, 8), turn=1)
    _damage(tactical_game, "p2", Coord(3, 0), turn=1)
    tactical_game.turn = 3

    expected = SkillDecision(ShipType.REPAIRSHIP, CellTarget(Coord(3, 0)))
    assert _decide(tactical_game) == expected


def test_radar_then_decoy_then_plain_attack(tactical_game) -> None:
    _blind(tactical_game)
    ai = tactical_game.player("p2")
    ai.skill_cooldowns[ShipType.COMMANDSHIP] = 1
    assert _decide(tactical_game) == SkillDecision(ShipType.RADARSHIP, CellTarget(Coord(0, 0)))

    ai.skill_cooldowns[ShipType.RADARSHIP] = 1
    decoy = _decide(tactical_game)
    assert isinstance(decoy, SkillDecision)
    assert decoy.skill is ShipType.DECOYSHIP
    spot = decoy.options.coord
    assert ai.grid[spot.y, spot.x] == CellState.EMPTY

    ai.skill_uses[ShipType.DECOYSHIP] = 0
    assert _decide(tactical_game) == AttackDecision(Coord(0, 0))
