from __future__ import annotations

from chesstutor.engine.legality import has_legal_moves, legal_moves
from chesstutor.engine.move import Move, MoveFlag, square_to_str
from chesstutor.engine.pieces import PieceType
from chesstutor.engine.position import Position


def _disambiguation(position: Position, move: Move) -> str:
    rivals = [
        m.from_sq
        for m in legal_moves(position)
        if m.to_sq == move.to_sq and m.from_sq != move.from_sq and m.piece == move.piece
    ]
    if not rivals:
        return ""
    origin = square_to_str(move.from_sq)
    if all(sq % 8 != move.from_sq % 8 for sq in rivals):
        return origin[0]
    if all(sq // 8 != move.from_sq // 8 for sq in rivals):
        return origin[1]
    return origin


def san(position: Position, move: Move) -> str:
    """Standard algebraic notation for ``move`` played from ``position``.

    Args:
        position (Position): Position before the move; left unchanged.
        move (Move): A legal move carrying its generator annotation.

    Returns:
        str: Notation such as ``"Nf3"``, ``"exd5"``, ``"e8=Q+"`` or ``"O-O-O"``.
    """
    if move.is_castle:
        text = "O-O" if move.flags & MoveFlag.KINGSIDE_CASTLE else "O-O-O"
    else:
        piece = move.piece if move.piece is not None else position.piece_at(move.from_sq)
        if piece is None:
            raise ValueError(f"no piece on {square_to_str(move.from_sq)}")
        capture = "x" if move.captured is not None else ""
        target = square_to_str(move.to_sq)
        if piece.kind is PieceType.PAWN:
            text = (square_to_str(move.from_sq)[0] if capture else "") + capture + target
            if move.promotion is not None:
                text += "=" + move.promotion.char.upper()
        else:
            text = piece.kind.char.upper() + _disambiguation(position, move) + capture + target

    with position.trial(move):
        if position.in_check():
            text += "+" if has_legal_moves(position) else "#"
    return text
