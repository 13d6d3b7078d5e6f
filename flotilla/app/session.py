"""Game session controller: owns the state and paces AI turns."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from flotilla.ai.decisions import AttackDecision, Decision, SkillDecision
from flotilla.ai.hunt_target import get_ai_move
from flotilla.ai.tactical import get_ai_tactical_move
from flotilla.app.pacing import PacingScheduler
from flotilla.core.grid import create_empty_grid
from flotilla.core.initialization import IdFactory, mark_ready, new_game, new_id
from flotilla.core.models import GameMode, GamePhase, GameState, Player, ShipType
from flotilla.core.shots import process_shot
from flotilla.core.skills import (
    SkillOptions,
    SkillOutcome,
    arm_attack,
    arm_skill,
    begin_escape,
    begin_relocation,
    clear_action,
    use_skill,
)
from flotilla.core.turns import advance_turn, continue_from_transition, surrender
from flotilla.infra.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TurnContext:
    """Snapshot a scheduled AI task must still match when it fires."""

    player_id: str | None
    phase: GamePhase
    turn: int

    @classmethod
    def of(cls, state: GameState) -> TurnContext:
        return cls(player_id=state.current_player_id, phase=state.phase, turn=state.turn)

    def matches(self, state: GameState) -> bool:
        return (
            state.current_player_id == self.player_id
            and state.phase is self.phase
            and state.turn == self.turn
        )


class GameSession:
    """Single game controller for human input and scheduled AI turns."""

    def __init__(
        self,
        state: GameState,
        *,
        rng: random.Random,
        settings: Settings | None = None,
        scheduler: PacingScheduler | None = None,
    ) -> None:
        self._state = state
        self._rng = rng
        self._settings = settings if settings is not None else Settings()
        self._scheduler = scheduler if scheduler is not None else PacingScheduler()
        self._pending_task: int | None = None
        self.status = ""
        self._schedule_ai()

    @classmethod
    def new(
        cls,
        mode: GameMode,
        player_name: str,
        *,
        opponent_name: str = "Admiral",
        against_ai: bool = True,
        rng: random.Random | None = None,
        ids: IdFactory = new_id,
        settings: Settings | None = None,
    ) -> GameSession:
        """Start a fresh game in SETUP phase."""
        resolved = settings if settings is not None else Settings()
        if rng is None:
            rng = random.Random(resolved.seed)
        state = new_game(
            mode, player_name, opponent_name=opponent_name, against_ai=against_ai, ids=ids
        )
        return cls(state, rng=rng, settings=resolved)

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def scheduler(self) -> PacingScheduler:
        return self._scheduler

    @property
    def is_over(self) -> bool:
        return self._state.phase is GamePhase.GAME_OVER

    def ready(self, player_with_ships: Player) -> GameState:
        """Submit a placed fleet for the setup phase."""
        self._apply(mark_ready(self._state, player_with_ships, self._rng))
        return self._state

    def continue_game(self) -> GameState:
        """Dismiss the hot-seat hand-off screen."""
        self._apply(continue_from_transition(self._state))
        return self._state

    def fire(self, x: int, y: int) -> GameState:
        """Fire the human player's shot at the opponent."""
        if not self._human_to_move():
            return self._state
        opponent = self._state.opponent_of(self._state.current_player_id)
        self._apply(process_shot(self._state, opponent.player_id, x, y))
        return self._state

    def use_skill(self, skill: ShipType, options: SkillOptions) -> SkillOutcome:
        """Use a skill on behalf of the human player."""
        if not self._human_to_move():
            return SkillOutcome(success=False, state=self._state, message="Not your turn.")
        outcome = use_skill(skill, options, self._state, rng=self._rng)
        self.status = outcome.message
        self._apply(outcome.state)
        return outcome

    def arm_attack(self) -> GameState:
        if self._human_to_move():
            self._apply(arm_attack(self._state))
        return self._state

    def arm_skill(self, skill: ShipType) -> GameState:
        if self._human_to_move():
            self._apply(arm_skill(self._state, skill))
        return self._state

    def begin_escape(self) -> GameState:
        if self._human_to_move():
            self._apply(begin_escape(self._state))
        return self._state

    def begin_relocation(self, ship_name: str) -> GameState:
        if self._human_to_move():
            self._apply(begin_relocation(self._state, ship_name))
        return self._state

    def cancel_action(self) -> GameState:
        self._apply(clear_action(self._state))
        return self._state

    def end_turn(self) -> GameState:
        """End the human player's turn."""
        if not self._human_to_move(require_action=False):
            return self._state
        self._apply(advance_turn(self._state))
        return self._state

    def surrender(self) -> GameState:
        """Concede on behalf of the active player."""
        self._apply(surrender(self._state))
        return self._state

    def tick(self, seconds: float) -> int:
        """Advance the pacing clock; return how many AI tasks ran."""
        return self._scheduler.advance(seconds)

    def step(self) -> bool:
        """Jump the clock to the next pending AI task and run it.

        Returns False when nothing is scheduled.
        """
        due = self._scheduler.next_due()
        if due is None:
            return False
        self._scheduler.run_due(max(due, self._scheduler.now_seconds))
        return True

    def _human_to_move(self, *, require_action: bool = True) -> bool:
        state = self._state
        if state.phase is not GamePhase.PLAYING or state.current_player_id is None:
            return False
        if state.player(state.current_player_id).is_ai:
            return False
        return not (require_action and state.has_acted_this_turn)

    def _apply(self, new_state: GameState) -> None:
        if new_state is self._state:
            return
        self._state = new_state
        self._schedule_ai()

    def _schedule_ai(self) -> None:
        if self._pending_task is not None:
            self._scheduler.cancel(self._pending_task)
            self._pending_task = None

        state = self._state
        if state.phase is not GamePhase.PLAYING or state.current_player_id is None:
            return
        if not state.player(state.current_player_id).is_ai:
            return

        context = TurnContext.of(state)
        if state.has_acted_this_turn:
            self._pending_task = self._scheduler.call_later(
                self._settings.ai_end_turn_delay,
                lambda: self._run_ai_end_turn(context),
                label="ai_end_turn",
            )
        else:
            self._pending_task = self._scheduler.call_later(
                self._settings.ai_think_delay,
                lambda: self._run_ai_think(context),
                label="ai_think",
            )

    def _run_ai_think(self, context: TurnContext) -> None:
        self._pending_task = None
        state = self._state
        if not context.matches(state) or state.has_acted_this_turn:
            logger.debug("ai_task_discarded kind=think player=%s", context.player_id)
            return

        ai_player = state.player(context.player_id)
        opponent = state.opponent_of(ai_player.player_id)
        if state.is_tactical:
            new_state = self._play_decision(
                state, opponent, get_ai_tactical_move(ai_player, opponent, state, self._rng)
            )
        else:
            new_state = self._fallback_attack(state, opponent)

        if new_state is state:
            logger.warning("ai_no_progress player=%s turn=%d", ai_player.player_id, state.turn)
            new_state = advance_turn(state)
        self._apply(new_state)

    def _run_ai_end_turn(self, context: TurnContext) -> None:
        self._pending_task = None
        state = self._state
        if not context.matches(state) or not state.has_acted_this_turn:
            logger.debug("ai_task_discarded kind=end_turn player=%s", context.player_id)
            return
        self._apply(advance_turn(state))

    def _play_decision(self, state: GameState, opponent: Player, decision: Decision) -> GameState:
        match decision:
            case AttackDecision(coord=coord):
                new_state = process_shot(state, opponent.player_id, coord.x, coord.y)
                if new_state is state:
                    return self._fallback_attack(state, opponent)
                return new_state
            case SkillDecision(skill=skill, options=options):
                outcome = use_skill(skill, options, state, ai=True, rng=self._rng)
                if outcome.success:
                    return outcome.state
                logger.info("ai_skill_fallback skill=%s", skill.value)
                return self._fallback_attack(outcome.state, opponent)
        raise TypeError(f"unknown AI decision: {decision!r}")

    def _fallback_attack(self, state: GameState, opponent: Player) -> GameState:
        ai_player = state.opponent_of(opponent.player_id)
        shots = ai_player.shots.get(opponent.player_id)
        if shots is None:
            shots = create_empty_grid(state.dims.rows, state.dims.cols)
        target = get_ai_move(shots, state.dims, self._rng)
        return process_shot(state, opponent.player_id, target.x, target.y)
