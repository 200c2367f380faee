from __future__ import annotations

import random

import pytest

from chesstutor.book.opening_book import OpeningBook
from chesstutor.engine.game import Game
from chesstutor.engine.move import parse_uci
from chesstutor.engine.terminal import TerminalKind
from chesstutor.errors import SearchExhausted
from chesstutor.search.opponent import ComputerOpponent
from chesstutor.search.service import DifficultyHints


MATE_IN_ONE = "6k1/5ppp/8/8/8/8/8/3R2K1 w - - 0 1"


def test_opening_move_comes_from_book() -> None:
    opponent = ComputerOpponent(book=OpeningBook.default(), rng=random.Random(7))
    res = opponent.choose(Game.new())
    assert res.source == "book"
    assert res.depth == 0
    assert res.best_move is not None
    assert res.best_move.to_uci() in {"e2e4", "d2d4", "g1f3", "c2c4"}


def test_book_choice_is_reproducible_with_seed() -> None:
    picks = []
    for _ in range(2):
        opponent = ComputerOpponent(book=OpeningBook.default(), rng=random.Random(1234))
        game = Game.new()
        for _ in range(4):
            opponent.play(game)
        picks.append(game.move_history_uci())
    assert picks[0] == picks[1]


def test_book_is_skipped_past_max_plies() -> None:
    game = Game.new()
    game.apply_move(parse_uci("e2e4"))
    opponent = ComputerOpponent(
        hints=DifficultyHints.from_level(1),
        book=OpeningBook.default(),
        book_max_plies=0,
    )
    res = opponent.choose(game)
    assert res.source == "search"


def test_search_used_without_book() -> None:
    game = Game.from_fen(MATE_IN_ONE)
    opponent = ComputerOpponent(hints=DifficultyHints.from_level(3))
    res = opponent.choose(game)
    assert res.source == "search"
    assert res.best_move is not None and res.best_move.to_uci() == "d1d8"
    # Choosing does not play the move
    assert game.ply == 0


def test_play_applies_move_and_reports_annotated_move() -> None:
    game = Game.from_fen(MATE_IN_ONE)
    res = ComputerOpponent(hints=DifficultyHints.from_level(3)).play(game)
    assert game.ply == 1
    assert res.best_move is game.move_stack[-1]
    assert res.pv[0] is res.best_move
    state = game.terminal()
    assert state.kind is TerminalKind.CHECKMATE


def test_finished_game_raises_search_exhausted() -> None:
    game = Game.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    with pytest.raises(SearchExhausted) as exc:
        ComputerOpponent().choose(game)
    assert exc.value.state.kind is TerminalKind.STALEMATE
    assert "stalemate" in str(exc.value)


HANGING_QUEEN = "rnb1kbnr/pppppppp/8/8/8/3q4/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


def test_book_ignored_for_game_loaded_from_fen() -> None:
    game = Game.from_fen(HANGING_QUEEN)
    opponent = ComputerOpponent(
        hints=DifficultyHints.from_level(1), book=OpeningBook.default(), rng=random.Random(7)
    )
    res = opponent.choose(game)
    assert res.source == "search"
    assert res.best_move is not None and res.best_move.to_uci() in {"c2d3", "e2d3"}


def test_book_follows_reset_to_a_custom_position() -> None:
    game = Game.new()
    opponent = ComputerOpponent(
        hints=DifficultyHints.from_level(1), book=OpeningBook.default(), rng=random.Random(7)
    )
    game.reset(HANGING_QUEEN)
    assert opponent.choose(game).source == "search"
    game.reset()
    assert opponent.choose(game).source == "book"


def test_play_on_finished_game_raises_and_leaves_game_alone() -> None:
    game = Game.from_fen("7k/6Q1/6K1/8/8/8/8/8 b - - 0 1")
    with pytest.raises(SearchExhausted) as exc:
        ComputerOpponent().play(game)
    assert exc.value.state.kind is TerminalKind.CHECKMATE
    assert game.ply == 0
