from __future__ import annotations

import pytest

from chesstutor.engine.legality import (
    apply_move,
    find_legal_move,
    has_legal_moves,
    legal_moves,
    legal_moves_from,
    unapply_move,
)
from chesstutor.engine.move import Move, str_to_square
from chesstutor.engine.movegen import attackers_to, mobility, square_attacked
from chesstutor.engine.pieces import Color, Piece
from chesstutor.engine.position import Position, STARTPOS_FEN
from chesstutor.errors import IllegalMoveRequested


def moves_set(p: Position) -> set[str]:
    return {m.to_uci() for m in legal_moves(p)}


def test_startpos_has_twenty_moves() -> None:
    p = Position.startpos()
    ms = moves_set(p)
    assert len(ms) == 20
    assert {"e2e4", "e2e3", "g1f3", "b1a3"} <= ms


def test_rook_bishop_queen_basic_moves() -> None:
    assert {"a1a2", "a1b1", "a1a8"} <= moves_set(Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 0 1"))
    assert {"c1b2", "c1d2", "c1h6"} <= moves_set(Position.from_fen("4k3/8/8/8/8/8/8/2B1K3 w - - 0 1"))
    assert {"d1d2", "d1c1", "d1c2"} <= moves_set(Position.from_fen("4k3/8/8/8/8/8/8/3QK3 w - - 0 1"))


def test_pinned_rook_move_filtered() -> None:
    # Black rook on e8 pins the e2 rook against the king on e1
    p = Position.from_fen("4r1k1/8/8/8/8/8/4R3/4K3 w - - 0 1")
    ms = moves_set(p)
    assert "e2d2" not in ms and "e2f2" not in ms
    assert {"e2e3", "e2e8"} <= ms


def test_king_cannot_step_into_attack() -> None:
    p = Position.from_fen("4k3/8/8/8/8/8/3r4/4K3 w - - 0 1")
    ms = moves_set(p)
    assert "e1d1" not in ms
    assert "e1e2" not in ms and "e1f2" not in ms
    assert "e1f1" in ms
    assert "e1d2" in ms  # capturing the unprotected rook


def test_check_must_be_answered() -> None:
    p = Position.from_fen("4k3/8/8/8/8/8/8/r3K2R w K - 0 1")
    ms = moves_set(p)
    # Castling out of check and staying on the first rank are both illegal
    assert "e1g1" not in ms
    assert ms == {"e1d2", "e1e2", "e1f2"}


def test_no_generated_move_leaves_king_attacked() -> None:
    p = Position.from_fen("r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1")
    for m in legal_moves(p):
        with p.trial(m):
            ksq = p.king_square(Color.WHITE)
            assert not square_attacked(p, ksq, Color.BLACK), m.to_uci()


def test_legal_moves_from_square() -> None:
    p = Position.startpos()
    assert {m.to_uci() for m in legal_moves_from(p, str_to_square("g1"))} == {"g1f3", "g1h3"}
    assert legal_moves_from(p, str_to_square("e4")) == []
    # Opponent's piece yields nothing
    assert legal_moves_from(p, str_to_square("e7")) == []


def test_has_legal_moves() -> None:
    assert has_legal_moves(Position.startpos())
    assert not has_legal_moves(Position.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"))


@pytest.mark.parametrize(
    ("from_sq", "to_sq"),
    [
        ("e3", "e4"),  # empty origin
        ("e7", "e5"),  # opponent's piece
        ("e2", "e5"),  # not a legal destination
        ("g1", "g3"),
    ],
)
def test_find_legal_move_rejects(from_sq: str, to_sq: str) -> None:
    p = Position.startpos()
    with pytest.raises(IllegalMoveRequested):
        find_legal_move(p, str_to_square(from_sq), str_to_square(to_sq))
    assert p.to_fen() == STARTPOS_FEN


def test_find_legal_move_rejects_off_board_square() -> None:
    with pytest.raises(IllegalMoveRequested):
        find_legal_move(Position.startpos(), 12, 64)


def test_find_legal_move_returns_annotated_move() -> None:
    p = Position.from_fen("4k3/8/8/3p4/4P3/8/8/4K3 w - - 0 1")
    mv = find_legal_move(p, str_to_square("e4"), str_to_square("d5"))
    assert mv.is_capture
    assert mv.piece is Piece.WP
    assert mv.captured is Piece.BP
    # Equality ignores the annotation
    assert mv == Move(str_to_square("e4"), str_to_square("d5"))


def test_apply_and_unapply_move() -> None:
    p = Position.startpos()
    same, undo = apply_move(p, Move(str_to_square("e2"), str_to_square("e4")))
    assert same is p
    assert p.to_fen() == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"
    unapply_move(p, undo)
    assert p.to_fen() == STARTPOS_FEN


def test_apply_move_rejects_illegal_and_leaves_position() -> None:
    p = Position.startpos()
    with pytest.raises(IllegalMoveRequested):
        apply_move(p, Move(str_to_square("e2"), str_to_square("e5")))
    assert p.to_fen() == STARTPOS_FEN


def test_attack_helpers() -> None:
    p = Position.from_fen("4k3/8/8/3p4/4P3/2N5/8/4K3 w - - 0 1")
    d5 = str_to_square("d5")
    assert square_attacked(p, d5, Color.WHITE)
    assert sorted(attackers_to(p, d5, Color.WHITE)) == [Piece.WP, Piece.WN]
    assert attackers_to(p, d5, Color.BLACK) == []
    assert mobility(p, str_to_square("c3")) == 7  # e4 is blocked by its own pawn
    assert mobility(p, str_to_square("h8")) == 0
