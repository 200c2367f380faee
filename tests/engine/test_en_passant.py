from __future__ import annotations

from chesstutor.engine.game import Game
from chesstutor.engine.legality import find_legal_move, legal_moves
from chesstutor.engine.move import parse_uci, str_to_square
from chesstutor.engine.pieces import Piece
from chesstutor.engine.position import Position


def _ucis(p: Position) -> set[str]:
    return {m.to_uci() for m in legal_moves(p)}


def test_white_en_passant_generation_and_apply() -> None:
    # Black just played e7e5; white pawn on d5 can capture on e6
    p = Position.from_fen("4k3/8/8/3Pp3/8/8/8/4K3 w - e6 0 1")
    assert "d5e6" in _ucis(p)

    mv = find_legal_move(p, str_to_square("d5"), str_to_square("e6"))
    assert mv.is_en_passant and mv.captured is Piece.BP
    undo = p.make_move(mv)
    assert p.squares[str_to_square("e6")] is Piece.WP
    assert p.squares[str_to_square("d5")] is None
    assert p.squares[str_to_square("e5")] is None
    assert p.halfmove_clock == 0

    p.unmake_move(undo)
    assert p.to_fen() == "4k3/8/8/3Pp3/8/8/8/4K3 w - e6 0 1"


def test_black_en_passant_generation_and_apply() -> None:
    p = Position.from_fen("4k3/8/8/8/3pP3/8/8/4K3 b - e3 0 1")
    mv = find_legal_move(p, str_to_square("d4"), str_to_square("e3"))
    assert mv.is_en_passant
    p.make_move(mv)
    assert p.squares[str_to_square("e3")] is Piece.BP
    assert p.squares[str_to_square("e4")] is None


def test_en_passant_window_is_one_ply() -> None:
    game = Game.from_fen("4k3/8/8/8/3p4/8/4P3/4K3 w - - 0 1")
    game.apply_move(parse_uci("e2e4"))
    assert game.position.ep_square == str_to_square("e3")
    assert "d4e3" in _ucis(game.position)

    # Black declines, both kings shuffle, and the right is gone
    game.apply_move(parse_uci("e8d7"))
    game.apply_move(parse_uci("e1d1"))
    assert game.position.ep_square is None
    assert "d4e3" not in _ucis(game.position)


def test_en_passant_that_exposes_king_is_illegal() -> None:
    # Capturing b5xc6 removes both pawns from the fifth rank and opens the rook's line
    p = Position.from_fen("8/8/8/KPp4r/8/8/8/4k3 w - c6 0 1")
    assert "b5c6" not in _ucis(p)
