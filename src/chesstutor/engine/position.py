from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from chesstutor.engine import movegen
from chesstutor.engine.move import Move, square_to_str, str_to_square
from chesstutor.engine.pieces import CHAR_TO_PIECE, CastlingRights, Color, Piece, PieceType
from chesstutor.engine.zobrist import KEYS, MASK64, hash_position
from chesstutor.errors import IllegalMoveRequested, MalformedPositionInput


STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


_CASTLING_CHARS: Dict[str, CastlingRights] = {
    "K": CastlingRights.WHITE_KINGSIDE,
    "Q": CastlingRights.WHITE_QUEENSIDE,
    "k": CastlingRights.BLACK_KINGSIDE,
    "q": CastlingRights.BLACK_QUEENSIDE,
}

# Rights that survive a move touching the square (as origin or destination).
_CASTLING_KEEP: Dict[int, CastlingRights] = {
    0: CastlingRights.ALL & ~CastlingRights.WHITE_QUEENSIDE,  # a1
    7: CastlingRights.ALL & ~CastlingRights.WHITE_KINGSIDE,  # h1
    4: CastlingRights.ALL & ~(CastlingRights.WHITE_KINGSIDE | CastlingRights.WHITE_QUEENSIDE),  # e1
    56: CastlingRights.ALL & ~CastlingRights.BLACK_QUEENSIDE,  # a8
    63: CastlingRights.ALL & ~CastlingRights.BLACK_KINGSIDE,  # h8
    60: CastlingRights.ALL & ~(CastlingRights.BLACK_KINGSIDE | CastlingRights.BLACK_QUEENSIDE),  # e8
}


@dataclass(frozen=True)
class Undo:
    """Everything ``unmake_move`` needs to restore the prior position."""

    move: Move
    moved: Piece
    captured: Optional[Piece]
    captured_sq: Optional[int]
    castling: CastlingRights
    ep_square: Optional[int]
    halfmove_clock: int
    fullmove_number: int
    zobrist_hash: int


@dataclass
class Position:
    """Mailbox position with FEN I/O and reversible make/unmake.

    Notes:
    - Squares are 0..63 (a1=0 .. h8=63), rank-major from white's perspective.
    - ``kings`` caches the king square per color (-1 when absent) and
      ``zobrist_hash`` is kept up to date incrementally by ``make_move``.
    """

    squares: List[Optional[Piece]]
    side_to_move: Color = Color.WHITE
    castling: CastlingRights = CastlingRights.NONE
    ep_square: Optional[int] = None
    halfmove_clock: int = 0
    fullmove_number: int = 1
    zobrist_hash: int = 0
    kings: List[int] = field(default_factory=lambda: [-1, -1], repr=False)

    def __post_init__(self) -> None:
        if len(self.squares) != 64:
            raise MalformedPositionInput("board must have 64 squares")
        self.kings = [-1, -1]
        for sq, piece in enumerate(self.squares):
            if piece is not None and piece.kind is PieceType.KING:
                self.kings[piece.color] = sq
        self.zobrist_hash = hash_position(self)

    @classmethod
    def startpos(cls) -> "Position":
        """Create a position initialized to the standard starting layout."""
        return cls.from_fen(STARTPOS_FEN)

    @classmethod
    def from_fen(cls, fen: str) -> "Position":
        """Create a position from a Forsyth–Edwards Notation (FEN) string.

        Args:
            fen (str): FEN string describing the position to load.

        Returns:
            Position: Position initialized with the state encoded in ``fen``.

        Raises:
            MalformedPositionInput: If ``fen`` is empty, has the wrong number of
                fields, contains invalid piece placement, castling rights, en
                passant square or move counters, or does not have exactly one
                king per side.
        """
        if not fen or not isinstance(fen, str):
            raise MalformedPositionInput("FEN must be a non-empty string")
        parts = fen.strip().split()
        if len(parts) != 6:
            raise MalformedPositionInput("FEN must have 6 fields")
        placement, stm, castling, ep, halfmove, fullmove = parts

        ranks = placement.split("/")
        if len(ranks) != 8:
            raise MalformedPositionInput("FEN board must have 8 ranks")
        squares: List[Optional[Piece]] = [None] * 64
        king_count = [0, 0]
        for rank_idx, rank in enumerate(ranks[::-1]):  # start from rank 1 (bottom)
            file_idx = 0
            for ch in rank:
                if ch.isdigit():
                    n = int(ch)
                    if n < 1 or n > 8:
                        raise MalformedPositionInput("invalid empty count in FEN rank")
                    file_idx += n
                else:
                    if ch not in CHAR_TO_PIECE:
                        raise MalformedPositionInput(f"invalid piece in FEN: {ch!r}")
                    if file_idx >= 8:
                        raise MalformedPositionInput("too many squares in FEN rank")
                    piece = CHAR_TO_PIECE[ch]
                    if piece.kind is PieceType.KING:
                        king_count[piece.color] += 1
                    elif piece.kind is PieceType.PAWN and rank_idx in (0, 7):
                        raise MalformedPositionInput("pawn on first or last rank in FEN")
                    squares[rank_idx * 8 + file_idx] = piece
                    file_idx += 1
            if file_idx != 8:
                raise MalformedPositionInput("rank does not sum to 8 squares in FEN")
        if king_count != [1, 1]:
            raise MalformedPositionInput("FEN must have exactly one king per side")

        if stm not in ("w", "b"):
            raise MalformedPositionInput("side to move must be 'w' or 'b'")
        side = Color.from_char(stm)

        rights = CastlingRights.NONE
        if castling != "-":
            for ch in castling:
                bit = _CASTLING_CHARS.get(ch)
                if bit is None:
                    raise MalformedPositionInput("invalid castling rights")
                rights |= bit

        ep_square: Optional[int]
        if ep == "-":
            ep_square = None
        else:
            try:
                ep_square = str_to_square(ep)
            except IllegalMoveRequested as e:
                raise MalformedPositionInput("invalid en passant square") from e
            # Target sits on rank 6 when White is to move, rank 3 otherwise.
            if ep_square // 8 != (5 if side is Color.WHITE else 2):
                raise MalformedPositionInput("invalid en passant square rank")

        try:
            halfmove_clock = int(halfmove)
            fullmove_number = int(fullmove)
        except ValueError as e:
            raise MalformedPositionInput("invalid move counters in FEN") from e
        if halfmove_clock < 0 or fullmove_number <= 0:
            raise MalformedPositionInput("invalid move counters in FEN")

        return cls(
            squares=squares,
            side_to_move=side,
            castling=rights,
            ep_square=ep_square,
            halfmove_clock=halfmove_clock,
            fullmove_number=fullmove_number,
        )

    def to_fen(self) -> str:
        """Serialize the current position into a normalized FEN string."""
        ranks_str: List[str] = []
        for rank_idx in range(7, -1, -1):
            run = 0
            row = []
            for file_idx in range(8):
                piece = self.squares[rank_idx * 8 + file_idx]
                if piece is None:
                    run += 1
                else:
                    if run > 0:
                        row.append(str(run))
                        run = 0
                    row.append(piece.char)
            if run > 0:
                row.append(str(run))
            ranks_str.append("".join(row))
        placement = "/".join(ranks_str)
        ep = square_to_str(self.ep_square) if self.ep_square is not None else "-"
        castling = "".join(ch for ch, bit in _CASTLING_CHARS.items() if self.castling & bit) or "-"
        return (
            f"{placement} {self.side_to_move.char} {castling} {ep} "
            f"{self.halfmove_clock} {self.fullmove_number}"
        )

    def copy(self) -> "Position":
        return Position(
            squares=list(self.squares),
            side_to_move=self.side_to_move,
            castling=self.castling,
            ep_square=self.ep_square,
            halfmove_clock=self.halfmove_clock,
            fullmove_number=self.fullmove_number,
        )

    def piece_at(self, sq: int) -> Optional[Piece]:
        return self.squares[sq]

    def pieces(self, color: Optional[Color] = None) -> Iterator[Tuple[int, Piece]]:
        """Yield ``(square, piece)`` for occupied squares, optionally of one color."""
        for sq, piece in enumerate(self.squares):
            if piece is not None and (color is None or piece.color is color):
                yield sq, piece

    def king_square(self, color: Color) -> int:
        return self.kings[color]

    def in_check(self, color: Optional[Color] = None) -> bool:
        """Return whether ``color`` (default: side to move) has its king attacked."""
        if color is None:
            color = self.side_to_move
        ksq = self.kings[color]
        if ksq < 0:
            return False
        return movegen.square_attacked(self, ksq, color.other)

    # --- make / unmake ---
    def make_move(self, move: Move) -> Undo:
        """Apply ``move`` in place and return the record that reverses it.

        The move is trusted to be at least pseudo-legal; only ownership of the
        moving piece is checked. A pawn reaching the last rank without an
        explicit promotion piece becomes a queen.

        Raises:
            IllegalMoveRequested: If the origin square is empty or holds a piece
                of the side not to move.
        """
        fr, to = move.from_sq, move.to_sq
        piece = self.squares[fr]
        if piece is None or piece.color is not self.side_to_move:
            raise IllegalMoveRequested(f"no piece of the side to move on {square_to_str(fr)}")
        us = self.side_to_move
        kind = piece.kind
        ps = KEYS.piece_square

        captured_sq: Optional[int] = to
        captured = self.squares[to]
        if kind is PieceType.PAWN and to == self.ep_square and captured is None and (fr - to) % 8 != 0:
            captured_sq = to - 8 if us is Color.WHITE else to + 8
            captured = self.squares[captured_sq]
        if captured is None:
            captured_sq = None

        undo = Undo(
            move=move,
            moved=piece,
            captured=captured,
            captured_sq=captured_sq,
            castling=self.castling,
            ep_square=self.ep_square,
            halfmove_clock=self.halfmove_clock,
            fullmove_number=self.fullmove_number,
            zobrist_hash=self.zobrist_hash,
        )

        h = self.zobrist_hash
        if captured is not None and captured_sq is not None:
            self.squares[captured_sq] = None
            h ^= ps[captured][captured_sq]
            if captured.kind is PieceType.KING:
                self.kings[captured.color] = -1

        placed = piece
        if kind is PieceType.PAWN and to // 8 in (0, 7):
            placed = Piece.make(move.promotion or PieceType.QUEEN, us)

        self.squares[fr] = None
        self.squares[to] = placed
        h ^= ps[piece][fr] ^ ps[placed][to]

        if kind is PieceType.KING:
            self.kings[us] = to
            if abs(to - fr) == 2:
                base = fr - fr % 8
                rook_fr, rook_to = (base + 7, base + 5) if to > fr else (base, base + 3)
                rook = self.squares[rook_fr]
                if rook is not None:
                    self.squares[rook_fr] = None
                    self.squares[rook_to] = rook
                    h ^= ps[rook][rook_fr] ^ ps[rook][rook_to]

        rights = self.castling & _CASTLING_KEEP.get(fr, CastlingRights.ALL) & _CASTLING_KEEP.get(
            to, CastlingRights.ALL
        )
        h ^= KEYS.castling[int(self.castling)] ^ KEYS.castling[int(rights)]
        self.castling = CastlingRights(rights)

        if self.ep_square is not None:
            h ^= KEYS.ep_file[self.ep_square % 8]
        if kind is PieceType.PAWN and abs(to - fr) == 16:
            self.ep_square = (fr + to) // 2
            h ^= KEYS.ep_file[self.ep_square % 8]
        else:
            self.ep_square = None

        if kind is PieceType.PAWN or captured is not None:
            self.halfmove_clock = 0
        else:
            self.halfmove_clock += 1
        if us is Color.BLACK:
            self.fullmove_number += 1

        self.side_to_move = us.other
        h ^= KEYS.side_to_move
        self.zobrist_hash = h & MASK64
        return undo

    def unmake_move(self, undo: Undo) -> None:
        """Reverse the move recorded in ``undo``, restoring every field exactly."""
        move = undo.move
        fr, to = move.from_sq, move.to_sq
        piece = undo.moved
        us = piece.color

        self.squares[to] = None
        self.squares[fr] = piece
        if piece.kind is PieceType.KING:
            self.kings[us] = fr
            if abs(to - fr) == 2:
                base = fr - fr % 8
                rook_fr, rook_to = (base + 7, base + 5) if to > fr else (base, base + 3)
                rook = self.squares[rook_to]
                self.squares[rook_to] = None
                self.squares[rook_fr] = rook
        if undo.captured is not None and undo.captured_sq is not None:
            self.squares[undo.captured_sq] = undo.captured
            if undo.captured.kind is PieceType.KING:
                self.kings[undo.captured.color] = undo.captured_sq

        self.side_to_move = us
        self.castling = undo.castling
        self.ep_square = undo.ep_square
        self.halfmove_clock = undo.halfmove_clock
        self.fullmove_number = undo.fullmove_number
        self.zobrist_hash = undo.zobrist_hash

    @contextmanager
    def trial(self, move: Move) -> Iterator["Position"]:
        """Make ``move`` for the duration of a ``with`` block, then unmake it.

        The unmake runs even if the body raises.
        """
        undo = self.make_move(move)
        try:
            yield self
        finally:
            self.unmake_move(undo)

    def apply(self, move: Move) -> "Position":
        """Return a new position with ``move`` made, leaving ``self`` untouched."""
        child = self.copy()
        child.make_move(move)
        return child
