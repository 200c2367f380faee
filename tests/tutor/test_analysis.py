from __future__ import annotations

from chesstutor.engine.game import Game
from chesstutor.engine.legality import find_legal_move
from chesstutor.engine.move import Move, parse_uci, str_to_square
from chesstutor.tutor.analysis import analyze_move


def _move(game: Game, uci: str) -> Move:
    return find_legal_move(game.position, str_to_square(uci[:2]), str_to_square(uci[2:4]))


def _played(*ucis: str) -> Game:
    game = Game.new()
    for uci in ucis:
        game.apply_move(parse_uci(uci))
    return game


def test_central_pawn_push() -> None:
    game = Game.new()
    a = analyze_move(game, _move(game, "e2e4"))
    assert a.principles == ["center_control"]
    assert a.mistakes == []
    assert "Consider developing your knights and bishops before moving more pawns" in a.suggestions


def test_knight_development() -> None:
    game = Game.new()
    a = analyze_move(game, _move(game, "g1f3"))
    assert a.principles == ["good_development"]
    assert "knight_tactics" in a.themes
    assert "Good development! Try to control central squares" in a.suggestions


def test_early_queen_sortie() -> None:
    game = _played("e2e4", "e7e5")
    a = analyze_move(game, _move(game, "d1h5"))
    assert "early_queen_development" in a.principles
    assert "early_queen_development" in a.mistakes


def test_moving_the_same_piece_twice() -> None:
    game = _played("g1f3", "b8c6")
    a = analyze_move(game, _move(game, "f3g1"))
    assert "repeated_piece_moves" in a.mistakes

    fresh = _played("g1f3", "b8c6")
    assert "repeated_piece_moves" not in analyze_move(fresh, _move(fresh, "b1c3")).mistakes


def test_capture_themes() -> None:
    game = Game.from_fen("4k3/8/8/3q4/8/8/8/3QK3 w - - 0 1")
    a = analyze_move(game, _move(game, "d1d5"))
    assert a.themes[:2] == ["capture", "queen_capture"]
    assert a.quality.move_type == "capture"
    assert a.suggestions[0] == "Excellent move! You found the best continuation."


def test_castling_is_a_principle() -> None:
    game = Game.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    a = analyze_move(game, _move(game, "e1g1"))
    assert "castling" in a.principles


def test_middlegame_suggestions_and_no_opening_checks() -> None:
    game = Game.from_fen("4k3/8/8/8/8/8/4P3/4K3 w - - 0 15")
    a = analyze_move(game, _move(game, "e2e3"))
    assert a.principles == []
    assert "Look for tactical opportunities like pins, forks, and skewers" in a.suggestions
    assert "Consider improving your piece coordination" in a.suggestions


def test_analysis_leaves_game_unchanged() -> None:
    game = _played("e2e4")
    fen = game.to_fen()
    analyze_move(game, _move(game, "d7d5"))
    assert game.to_fen() == fen
    assert game.ply == 1
