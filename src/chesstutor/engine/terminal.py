from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from chesstutor.engine.legality import has_legal_moves
from chesstutor.engine.pieces import Color, PieceType
from chesstutor.engine.position import Position


class TerminalKind(str, Enum):
    ONGOING = "ongoing"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW_INSUFFICIENT_MATERIAL = "draw_insufficient_material"
    DRAW_REPETITION = "draw_repetition"
    DRAW_FIFTY_MOVE = "draw_fifty_move"


@dataclass(frozen=True)
class TerminalState:
    kind: TerminalKind
    winner: Optional[Color] = None

    @property
    def is_over(self) -> bool:
        return self.kind is not TerminalKind.ONGOING

    @property
    def is_draw(self) -> bool:
        return self.is_over and self.kind is not TerminalKind.CHECKMATE


ONGOING = TerminalState(TerminalKind.ONGOING)


def insufficient_material(position: Position) -> bool:
    """Return whether neither side can possibly deliver mate.

    Recognised cases: king against king, and king plus a single bishop or
    knight against a bare king.
    """
    minors = 0
    for _, piece in position.pieces():
        kind = piece.kind
        if kind is PieceType.KING:
            continue
        if kind in (PieceType.BISHOP, PieceType.KNIGHT):
            minors += 1
            if minors > 1:
                return False
            continue
        return False
    return True


def classify(position: Position, history: Optional[Mapping[int, int]] = None) -> TerminalState:
    """Classify ``position`` as ongoing or as one of the terminal kinds.

    Args:
        position (Position): Position to inspect. Not modified.
        history (Optional[Mapping[int, int]]): Occurrence count per Zobrist
            hash for the game so far, including the current position. When
            omitted, repetition is not checked.

    Returns:
        TerminalState: Checkmate and stalemate take precedence, then
            insufficient material, threefold repetition, and the fifty-move
            rule, in that order.
    """
    if not has_legal_moves(position):
        if position.in_check():
            return TerminalState(TerminalKind.CHECKMATE, winner=position.side_to_move.other)
        return TerminalState(TerminalKind.STALEMATE)
    if insufficient_material(position):
        return TerminalState(TerminalKind.DRAW_INSUFFICIENT_MATERIAL)
    if history is not None and history.get(position.zobrist_hash, 0) >= 3:
        return TerminalState(TerminalKind.DRAW_REPETITION)
    if position.halfmove_clock >= 100:
        return TerminalState(TerminalKind.DRAW_FIFTY_MOVE)
    return ONGOING
