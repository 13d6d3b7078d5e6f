"""Headless entry point that plays an AI-versus-AI match."""

from __future__ import annotations

import argparse
import logging
import random
from collections.abc import Sequence

from flotilla.app.session import GameSession
from flotilla.core.grid import place_ships_for_ai
from flotilla.core.initialization import create_game, create_player, mark_ready, new_id
from flotilla.core.models import GameMode, GameState, game_config
from flotilla.infra.config import Settings, load_env_file, load_settings
from flotilla.infra.logging import setup_logging, stop_logging

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 1000


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flotilla", description=__doc__)
    parser.add_argument(
        "--mode",
        choices=[mode.value.lower() for mode in GameMode],
        default=GameMode.TACTICAL.value.lower(),
        help="rule set to play",
    )
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument(
        "--max-turns",
        type=int,
        default=DEFAULT_MAX_TURNS,
        help="stop the match after this many turns",
    )
    parser.add_argument("--env-file", default=".env", help="optional KEY=VALUE settings file")
    return parser


def start_ai_match(mode: GameMode, rng: random.Random, settings: Settings) -> GameSession:
    """Set up two AI fleets and return a session already in PLAYING phase."""
    config = game_config(mode)
    players = [
        create_player(new_id(), name, True, config.ships_config, config.dims, mode)
        for name in ("Alpha", "Bravo")
    ]
    state = create_game(players, mode, game_id=new_id())
    first = place_ships_for_ai(state.players[0], state.ships_config, state.dims, rng)
    state = mark_ready(state, first, rng)
    return GameSession(state, rng=rng, settings=settings)


def play_match(session: GameSession, max_turns: int) -> GameState:
    """Run scheduled AI tasks until the game ends or the turn cap is hit."""
    while not session.is_over and session.state.turn <= max_turns:
        if not session.step():
            break
    return session.state


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    env_keys = load_env_file(args.env_file, override_existing=False)
    settings = load_settings()
    setup_logging(settings)
    if env_keys:
        logger.debug("env_file_loaded path=%s keys=%s", args.env_file, ",".join(env_keys))

    seed = args.seed if args.seed is not None else settings.seed
    mode = GameMode(args.mode.upper())
    try:
        session = start_ai_match(mode, random.Random(seed), settings)
        logger.info("match_started id=%s mode=%s seed=%s", session.state.game_id, mode.value, seed)
        state = play_match(session, args.max_turns)
        if state.winner is None:
            logger.info("match_unfinished id=%s turns=%d", state.game_id, state.turn)
            return 1
        winner = state.player(state.winner)
        logger.info("match_finished id=%s winner=%s turns=%d", state.game_id, winner.name, state.turn)
        return 0
    finally:
        stop_logging()


if __name__ == "__main__":
    raise SystemExit(main())
