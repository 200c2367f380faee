from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntFlag
from typing import Optional

from chesstutor.engine.pieces import Piece, PieceType
from chesstutor.errors import IllegalMoveRequested


PROMOTION_PIECES = (PieceType.QUEEN, PieceType.ROOK, PieceType.BISHOP, PieceType.KNIGHT)


class MoveFlag(IntFlag):
    NONE = 0
    CAPTURE = 1
    DOUBLE_PAWN_PUSH = 2
    EN_PASSANT = 4
    KINGSIDE_CASTLE = 8
    QUEENSIDE_CASTLE = 16
    PROMOTION = 32


@dataclass(frozen=True)
class Move:
    """Engine move representation.

    Only ``(from_sq, to_sq, promotion)`` take part in equality and hashing, so a
    move parsed from a UI request compares equal to the generated move that
    carries the full piece/capture/flag annotation.

    Attributes:
        from_sq (int): Origin square index (0-based).
        to_sq (int): Destination square index (0-based).
        promotion (Optional[PieceType]): Promotion piece type, if any.
        piece (Optional[Piece]): Moving piece, filled in by the generator.
        captured (Optional[Piece]): Captured piece, including en passant.
        flags (MoveFlag): Move classification bits.
    """

    from_sq: int
    to_sq: int
    promotion: Optional[PieceType] = None
    piece: Optional[Piece] = field(default=None, compare=False)
    captured: Optional[Piece] = field(default=None, compare=False)
    flags: MoveFlag = field(default=MoveFlag.NONE, compare=False)

    @property
    def is_capture(self) -> bool:
        return bool(self.flags & MoveFlag.CAPTURE)

    @property
    def is_en_passant(self) -> bool:
        return bool(self.flags & MoveFlag.EN_PASSANT)

    @property
    def is_castle(self) -> bool:
        return bool(self.flags & (MoveFlag.KINGSIDE_CASTLE | MoveFlag.QUEENSIDE_CASTLE))

    @property
    def is_promotion(self) -> bool:
        return self.promotion is not None

    def to_uci(self) -> str:
        """Serialize the move into long algebraic UCI form.

        Returns:
            str: Move encoded like ``"e2e4"`` or ``"e7e8q"``.
        """
        promo = self.promotion.char if self.promotion is not None else ""
        return square_to_str(self.from_sq) + square_to_str(self.to_sq) + promo

    def to_book_notation(self) -> str:
        """Serialize the move the way opening-book keys spell it (``"e2-e4"``)."""
        return square_to_str(self.from_sq) + "-" + square_to_str(self.to_sq)

    def __str__(self) -> str:
        return self.to_uci()


def parse_uci(uci: str) -> Move:
    """Parse a UCI move string.

    Args:
        uci (str): Move encoded in long algebraic notation (e.g. ``"e2e4"``).

    Returns:
        Move: Parsed move without piece or flag annotation.

    Raises:
        IllegalMoveRequested: If the string has an invalid length, squares, or
            promotion piece.
    """
    if not isinstance(uci, str) or len(uci) not in (4, 5):
        raise IllegalMoveRequested(f"invalid UCI move length: {uci!r}")
    from_sq = str_to_square(uci[0:2])
    to_sq = str_to_square(uci[2:4])
    promo: Optional[PieceType] = None
    if len(uci) == 5:
        promo = parse_promotion(uci[4])
    return Move(from_sq, to_sq, promo)


def parse_promotion(ch: str) -> PieceType:
    """Map ``q/r/b/n`` (either case) to the promotion piece type."""
    try:
        kind = PieceType.from_char(ch)
    except ValueError:
        kind = None
    if kind not in PROMOTION_PIECES:
        raise IllegalMoveRequested(f"invalid promotion piece: {ch!r}")
    return kind


def str_to_square(s: str) -> int:
    """Convert algebraic notation into a 0-based square index.

    Args:
        s (str): Square name such as ``"e4"``.

    Returns:
        int: Zero-based square index.

    Raises:
        IllegalMoveRequested: If ``s`` is not a valid square.
    """
    if not isinstance(s, str) or len(s) != 2 or s[0] < "a" or s[0] > "h" or s[1] < "1" or s[1] > "8":
        raise IllegalMoveRequested(f"invalid square: {s!r}")
    file = ord(s[0]) - ord("a")
    rank = int(s[1]) - 1
    return rank * 8 + file


def square_to_str(idx: int) -> str:
    """Convert a 0-based square index into algebraic notation.

    Raises:
        IllegalMoveRequested: If ``idx`` is outside the valid square range.
    """
    if idx < 0 or idx > 63:
        raise IllegalMoveRequested(f"invalid square index: {idx}")
    file = idx % 8
    rank = idx // 8
    return chr(ord("a") + file) + str(rank + 1)
