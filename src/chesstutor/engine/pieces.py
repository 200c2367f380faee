from __future__ import annotations

from enum import IntEnum, IntFlag
from typing import Dict, Final


class Color(IntEnum):
    WHITE = 0
    BLACK = 1

    @property
    def other(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def char(self) -> str:
        return "w" if self is Color.WHITE else "b"

    @classmethod
    def from_char(cls, ch: str) -> "Color":
        if ch == "w":
            return cls.WHITE
        if ch == "b":
            return cls.BLACK
        raise ValueError(f"invalid color: {ch!r}")


class PieceType(IntEnum):
    PAWN = 0
    KNIGHT = 1
    BISHOP = 2
    ROOK = 3
    QUEEN = 4
    KING = 5

    @property
    def char(self) -> str:
        return "pnbrqk"[self]

    @classmethod
    def from_char(cls, ch: str) -> "PieceType":
        idx = "pnbrqk".find(ch.lower())
        if idx < 0 or len(ch) != 1:
            raise ValueError(f"invalid piece type: {ch!r}")
        return cls(idx)


class Piece(IntEnum):
    """One of the twelve (PieceType, Color) combinations.

    Values follow the order white pawn..king, then black pawn..king, and double
    as indices into per-piece tables (e.g. Zobrist keys).
    """

    WP = 0
    WN = 1
    WB = 2
    WR = 3
    WQ = 4
    WK = 5
    BP = 6
    BN = 7
    BB = 8
    BR = 9
    BQ = 10
    BK = 11

    @property
    def kind(self) -> PieceType:
        return _KINDS[self]

    @property
    def color(self) -> Color:
        return Color.WHITE if self < 6 else Color.BLACK

    @property
    def char(self) -> str:
        return PIECE_TO_CHAR[self]

    @classmethod
    def make(cls, kind: PieceType, color: Color) -> "Piece":
        return _PIECES[color * 6 + kind]

    @classmethod
    def from_char(cls, ch: str) -> "Piece":
        try:
            return CHAR_TO_PIECE[ch]
        except KeyError:
            raise ValueError(f"invalid piece: {ch!r}") from None


class CastlingRights(IntFlag):
    NONE = 0
    WHITE_KINGSIDE = 1
    WHITE_QUEENSIDE = 2
    BLACK_KINGSIDE = 4
    BLACK_QUEENSIDE = 8
    ALL = 15

    @classmethod
    def kingside(cls, color: Color) -> "CastlingRights":
        return cls.WHITE_KINGSIDE if color is Color.WHITE else cls.BLACK_KINGSIDE

    @classmethod
    def queenside(cls, color: Color) -> "CastlingRights":
        return cls.WHITE_QUEENSIDE if color is Color.WHITE else cls.BLACK_QUEENSIDE


_KINDS: Final = tuple(PieceType(i % 6) for i in range(12))
_PIECES: Final = tuple(Piece(i) for i in range(12))

PIECE_TO_CHAR: Final[Dict[Piece, str]] = {p: "PNBRQKpnbrqk"[p] for p in Piece}
CHAR_TO_PIECE: Final[Dict[str, Piece]] = {v: k for k, v in PIECE_TO_CHAR.items()}
