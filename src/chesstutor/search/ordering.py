from __future__ import annotations

from typing import Iterable, List, Optional

from chesstutor.engine.move import Move
from chesstutor.engine.pieces import Color, PieceType
from chesstutor.eval import PIECE_VALUES


QUEEN_CAPTURE_BONUS = 500
ROOK_CAPTURE_BONUS = 200
CENTER_WEIGHT = 5
MINOR_DEVELOPMENT_BONUS = 30


def _center_distance(sq: int) -> int:
    # Manhattan distance to the centre point, 1 for d4/e4/d5/e5 and 7 for corners
    f, r = sq % 8, sq // 8
    return (abs(2 * f - 7) + abs(2 * r - 7)) // 2


def order_score(move: Move) -> int:
    """Heuristic ordering key; higher is searched first.

    Captures score the victim's value plus a bonus for queens and rooks, a
    promotion scores like capturing the promoted piece, destinations near the
    centre score ``(7 - distance) * 5`` and a knight or bishop leaving its back
    rank earns a development bonus.
    """
    score = 0
    captured = move.captured
    if captured is not None:
        score += PIECE_VALUES[captured.kind]
        if captured.kind is PieceType.QUEEN:
            score += QUEEN_CAPTURE_BONUS
        elif captured.kind is PieceType.ROOK:
            score += ROOK_CAPTURE_BONUS
    if move.promotion is not None:
        score += PIECE_VALUES[move.promotion]
        if move.promotion is PieceType.QUEEN:
            score += QUEEN_CAPTURE_BONUS
    score += (7 - _center_distance(move.to_sq)) * CENTER_WEIGHT
    piece = move.piece
    if piece is not None and piece.kind in (PieceType.KNIGHT, PieceType.BISHOP):
        back_rank = 0 if piece.color is Color.WHITE else 7
        if move.from_sq // 8 == back_rank:
            score += MINOR_DEVELOPMENT_BONUS
    return score


def order_moves(moves: Iterable[Move], cap: Optional[int] = None) -> List[Move]:
    """Sort ``moves`` best-first; ties keep generation order.

    Args:
        moves: Moves to order.
        cap: When given, keep only the first ``cap`` moves after sorting. This
            narrows the root for the weaker difficulty levels and can drop the
            objectively best move.
    """
    ordered = sorted(moves, key=order_score, reverse=True)
    if cap is not None:
        return ordered[:cap]
    return ordered
