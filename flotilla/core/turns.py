"""Turn advancement, hand-off transitions and surrender."""

from __future__ import annotations

import logging

from flotilla.core.models import GamePhase, GameState, LogEntry, LogResult, Player
from flotilla.core.skills import clear_action

logger = logging.getLogger(__name__)


def advance_turn(state: GameState) -> GameState:
    """End the active player's turn and hand play to the next player."""
    if state.phase is GamePhase.GAME_OVER:
        return state
    new_state = clear_action(state).fork()

    current_index = -1
    if new_state.current_player_id is not None:
        current_index = _index_of(new_state, new_state.current_player_id)
        _tick_timers(new_state, new_state.players[current_index])

    count = len(new_state.players)
    next_index = (current_index + 1) % count
    # At most one full lap; with everyone eliminated the lap ends where it began.
    for _ in range(count - 1):
        if not new_state.players[next_index].is_eliminated:
            break
        next_index = (next_index + 1) % count
    next_player = new_state.players[next_index]

    humans = sum(1 for player in new_state.players if not player.is_ai)
    if not next_player.is_ai and humans > 1:
        new_state.phase = GamePhase.TURN_TRANSITION
    else:
        new_state.phase = GamePhase.PLAYING

    new_state.turn += 1
    new_state.has_acted_this_turn = False
    new_state.current_player_id = next_player.player_id
    new_state.active_action = None
    new_state.radar_scan_result = None
    logger.debug(
        "turn_advanced turn=%d next=%s phase=%s",
        new_state.turn,
        next_player.player_id,
        new_state.phase.value,
    )
    return new_state


def continue_from_transition(state: GameState) -> GameState:
    """Resume after a hot-seat hand-off screen."""
    if state.phase is not GamePhase.TURN_TRANSITION:
        return state
    new_state = state.fork()
    if all(player.is_ready for player in new_state.players):
        new_state.phase = GamePhase.PLAYING
    else:
        new_state.phase = GamePhase.SETUP
    return new_state


def surrender(state: GameState) -> GameState:
    """Concede the game on behalf of the active player."""
    if state.current_player_id is None or state.phase is GamePhase.GAME_OVER:
        return state
    new_state = clear_action(state).fork()
    loser = new_state.player(new_state.current_player_id)
    winner = new_state.opponent_of(loser.player_id)
    new_state.phase = GamePhase.GAME_OVER
    new_state.winner = winner.player_id
    new_state.record(
        LogEntry(
            turn=new_state.turn,
            player_id=loser.player_id,
            player_name=loser.name,
            result=LogResult.SKILL_USED,
            message=f"{loser.name} has surrendered.",
        )
    )
    logger.info("surrender id=%s loser=%s", new_state.game_id, loser.player_id)
    return new_state


def _tick_timers(state: GameState, player: Player) -> None:
    if state.is_tactical:
        for skill, remaining in player.skill_cooldowns.items():
            if remaining > 0:
                player.skill_cooldowns[skill] = remaining - 1

    if player.jam_turns_remaining > 0:
        player.jam_turns_remaining -= 1
        if player.jam_turns_remaining == 0:
            player.jammed_positions = []
            if state.jammed_area is not None and state.jammed_area.player_id == player.player_id:
                state.jammed_area = None


def _index_of(state: GameState, player_id: str) -> int:
    for idx, player in enumerate(state.players):
        if player.player_id == player_id:
            return idx
    raise ValueError(f"unknown player id: {player_id}")
