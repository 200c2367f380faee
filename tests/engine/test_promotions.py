from __future__ import annotations

import pytest

from chesstutor.engine.legality import find_legal_move, legal_moves
from chesstutor.engine.move import str_to_square
from chesstutor.engine.pieces import Piece, PieceType
from chesstutor.engine.position import Position
from chesstutor.errors import IllegalMoveRequested


def _uci_set(p: Position) -> set[str]:
    return {m.to_uci() for m in legal_moves(p)}


def test_white_pawn_push_promotions() -> None:
    p = Position.from_fen("4k3/P7/8/8/8/8/8/4K3 w - - 0 1")
    ms = _uci_set(p)
    assert ms >= {"a7a8q", "a7a8r", "a7a8b", "a7a8n"}
    assert "a7a8" not in ms


def test_white_pawn_capture_promotion() -> None:
    p = Position.from_fen("3rk3/4P3/8/8/8/8/8/4K3 w - - 0 1")
    assert _uci_set(p) >= {"e7d8q", "e7d8r", "e7d8b", "e7d8n"}


def test_black_pawn_push_promotions() -> None:
    p = Position.from_fen("4k3/8/8/8/8/8/3p4/K7 b - - 0 1")
    assert _uci_set(p) >= {"d2d1q", "d2d1r", "d2d1b", "d2d1n"}


def test_promotion_defaults_to_queen() -> None:
    p = Position.from_fen("4k3/P7/8/8/8/8/8/4K3 w - - 0 1")
    mv = find_legal_move(p, str_to_square("a7"), str_to_square("a8"))
    assert mv.promotion is PieceType.QUEEN
    p.make_move(mv)
    assert p.squares[str_to_square("a8")] is Piece.WQ


def test_underpromotion_is_honoured_and_unmade() -> None:
    p = Position.from_fen("4k3/P7/8/8/8/8/8/4K3 w - - 0 1")
    before = p.to_fen()
    mv = find_legal_move(p, str_to_square("a7"), str_to_square("a8"), PieceType.KNIGHT)
    undo = p.make_move(mv)
    assert p.squares[str_to_square("a8")] is Piece.WN
    p.unmake_move(undo)
    assert p.to_fen() == before
    assert p.squares[str_to_square("a7")] is Piece.WP


def test_promotion_to_king_is_rejected() -> None:
    p = Position.from_fen("4k3/P7/8/8/8/8/8/4K3 w - - 0 1")
    with pytest.raises(IllegalMoveRequested):
        find_legal_move(p, str_to_square("a7"), str_to_square("a8"), PieceType.KING)


def test_promotion_piece_on_ordinary_move_is_rejected() -> None:
    p = Position.startpos()
    with pytest.raises(IllegalMoveRequested):
        find_legal_move(p, str_to_square("e2"), str_to_square("e4"), PieceType.QUEEN)
