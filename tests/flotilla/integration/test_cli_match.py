from __future__ import annotations

import random

from flotilla.core.models import GameMode, GamePhase
from flotilla.infra.config import Settings
from flotilla.main import build_parser, main, play_match, start_ai_match


def test_parser_defaults() -> None:
    args = build_parser().parse_args([])
    assert args.mode == "tactical"
    assert args.seed is None
    assert args.max_turns == 1000


def test_classic_ai_match_runs_to_game_over() -> None:
    session = start_ai_match(GameMode.CLASSIC, random.Random(11), Settings())
    state = play_match(session, max_turns=1000)
    assert state.phase is GamePhase.GAME_OVER
    assert state.winner in {player.player_id for player in state.players}
    assert state.player(state.winner).name.endswith("(AI)")


def test_tactical_ai_match_runs_to_game_over() -> None:
    session = start_ai_match(GameMode.TACTICAL, random.Random(5), Settings())
    state = play_match(session, max_turns=2000)
    assert state.phase is GamePhase.GAME_OVER
    loser = state.opponent_of(state.winner)
    assert loser.is_eliminated


def test_turn_cap_stops_an_unfinished_match() -> None:
    session = start_ai_match(GameMode.CLASSIC, random.Random(11), Settings())
    state = play_match(session, max_turns=3)
    assert state.phase is GamePhase.PLAYING
    assert state.turn == 4


def test_main_plays_classic_match(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("FLOTILLA_LOG_DIR", raising=False)
    monkeypatch.setenv("LOG_FORMAT", "text")
    exit_code = main(
        ["--mode", "classic", "--seed", "3", "--env-file", str(tmp_path / ".env")]
    )
    assert exit_code == 0
