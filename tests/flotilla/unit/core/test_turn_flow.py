from __future__ import annotations

from flotilla.core.models import GameMode, GamePhase, LogResult, ShipType
from flotilla.core.skills import arm_skill, begin_relocation
from flotilla.core.turns import advance_turn, continue_from_transition, surrender


def test_advance_turn_decrements_cooldowns_but_never_below_zero(tactical_game) -> None:
    caster = tactical_game.player("p1")
    caster.skill_cooldowns[ShipType.RADARSHIP] = 3
    caster.skill_cooldowns[ShipType.JAMSHIP] = 0
    tactical_game.player("p2").skill_cooldowns[ShipType.RADARSHIP] = 3

    state = advance_turn(tactical_game)
    assert state.player("p1").skill_cooldowns[ShipType.RADARSHIP] == 2
    assert state.player("p1").skill_cooldowns[ShipType.JAMSHIP] == 0
    assert state.player("p2").skill_cooldowns[ShipType.RADARSHIP] == 3
    assert caster.skill_cooldowns[ShipType.RADARSHIP] == 3


def test_advance_turn_resets_turn_scoped_fields(tactical_game) -> None:
    tactical_game.has_acted_this_turn = True
    state = advance_turn(tactical_game)

    assert state.turn == 2
    assert state.current_player_id == "p2"
    assert state.phase is GamePhase.PLAYING
    assert not state.has_acted_this_turn
    assert state.active_action is None
    assert state.radar_scan_result is None


def test_hot_seat_turn_goes_through_transition(game_factory) -> None:
    state = game_factory(GameMode.CLASSIC, second_is_ai=False)
    handed_over = advance_turn(state)
    assert handed_over.phase is GamePhase.TURN_TRANSITION
    assert handed_over.current_player_id == "p2"

    resumed = continue_from_transition(handed_over)
    assert resumed.phase is GamePhase.PLAYING
    assert resumed.current_player_id == "p2"


def test_continue_from_transition_ignores_other_phases(tactical_game) -> None:
    assert continue_from_transition(tactical_game) is tactical_game


def test_advance_turn_skips_eliminated_players(tactical_game) -> None:
    tactical_game.player("p2").is_eliminated = True
    state = advance_turn(tactical_game)
    assert state.current_player_id == "p1"


def test_advance_turn_stops_when_every_player_is_eliminated(tactical_game) -> None:
    tactical_game.current_player_id = None
    for player in tactical_game.players:
        player.is_eliminated = True
    state = advance_turn(tactical_game)
    assert state.current_player_id == "p2"
    assert state.turn == 2


def test_advance_turn_after_game_over_is_a_no_op(tactical_game) -> None:
    tactical_game.phase = GamePhase.GAME_OVER
    assert advance_turn(tactical_game) is tactical_game


def test_advance_turn_puts_back_a_lifted_ship(tactical_game) -> None:
    lifted = begin_relocation(arm_skill(tactical_game, ShipType.COMMANDSHIP), "Radarship")
    state = advance_turn(lifted)
    assert state.player("p1").ship_named("Radarship").is_placed
    assert state.player("p1").grid[4, 1] == tactical_game.player("p1").grid[4, 1]


def test_surrender_hands_victory_to_opponent(tactical_game) -> None:
    state = surrender(tactical_game)
    assert state.phase is GamePhase.GAME_OVER
    assert state.winner == "p2"
    assert state.log[0].result is LogResult.SKILL_USED
    assert state.log[0].message == "Alice has surrendered."
    assert surrender(state) is state
