from __future__ import annotations

from typing import List, Optional, Tuple

from chesstutor.engine.move import Move, square_to_str
from chesstutor.engine.movegen import pseudo_legal_moves
from chesstutor.engine.pieces import PieceType
from chesstutor.engine.position import Position, Undo
from chesstutor.errors import IllegalMoveRequested


def is_legal(position: Position, move: Move) -> bool:
    """Return whether a pseudo-legal ``move`` keeps the mover's king safe.

    The move is made, the king tested, and the move unmade; the position is
    restored even if the attack test raises.
    """
    mover = position.side_to_move
    undo = position.make_move(move)
    try:
        return not position.in_check(mover)
    finally:
        position.unmake_move(undo)


def legal_moves(position: Position) -> List[Move]:
    """Return all strictly legal moves for the side to move."""
    return [m for m in pseudo_legal_moves(position) if is_legal(position, m)]


def has_legal_moves(position: Position) -> bool:
    return any(is_legal(position, m) for m in pseudo_legal_moves(position))


def legal_moves_from(position: Position, sq: int) -> List[Move]:
    """Return the legal moves of the piece standing on ``sq``.

    Empty for an empty square or an opponent's piece, which lets a UI highlight
    destinations after a square is selected.
    """
    piece = position.squares[sq]
    if piece is None or piece.color is not position.side_to_move:
        return []
    return [m for m in legal_moves(position) if m.from_sq == sq]


def find_legal_move(
    position: Position, from_sq: int, to_sq: int, promotion: Optional[PieceType] = None
) -> Move:
    """Resolve a ``(from, to, promotion)`` request to the generated legal move.

    A promotion request without a piece resolves to the queen promotion.

    Raises:
        IllegalMoveRequested: If a square is off the board, the origin holds no
            piece of the side to move, or no legal move matches.
    """
    if not (0 <= from_sq < 64 and 0 <= to_sq < 64):
        raise IllegalMoveRequested("square off the board")
    piece = position.squares[from_sq]
    if piece is None:
        raise IllegalMoveRequested(f"no piece on {square_to_str(from_sq)}")
    if piece.color is not position.side_to_move:
        raise IllegalMoveRequested(f"piece on {square_to_str(from_sq)} belongs to the opponent")
    candidates = [m for m in legal_moves(position) if m.from_sq == from_sq and m.to_sq == to_sq]
    if not candidates:
        raise IllegalMoveRequested(
            f"illegal move: {square_to_str(from_sq)}{square_to_str(to_sq)}"
        )
    if candidates[0].is_promotion:
        wanted = promotion or PieceType.QUEEN
        for m in candidates:
            if m.promotion is wanted:
                return m
        raise IllegalMoveRequested(f"invalid promotion piece: {wanted.char!r}")
    if promotion is not None:
        raise IllegalMoveRequested("promotion piece given for a non-promotion move")
    return candidates[0]


def apply_move(position: Position, move: Move) -> Tuple[Position, Undo]:
    """Validate and make ``move`` in place.

    Args:
        position (Position): Position to mutate.
        move (Move): Requested move; only ``from``, ``to`` and ``promotion``
            are consulted.

    Returns:
        Tuple[Position, Undo]: The same (now mutated) position and the record
            needed to take the move back.

    Raises:
        IllegalMoveRequested: If the move is not legal. The position is left
            unchanged.
    """
    resolved = find_legal_move(position, move.from_sq, move.to_sq, move.promotion)
    undo = position.make_move(resolved)
    return position, undo


def unapply_move(position: Position, undo: Undo) -> Position:
    position.unmake_move(undo)
    return position
