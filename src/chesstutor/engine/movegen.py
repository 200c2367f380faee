from __future__ import annotations

from typing import Final, Iterator, List, Optional, Tuple, TYPE_CHECKING

from chesstutor.engine.move import PROMOTION_PIECES, Move, MoveFlag
from chesstutor.engine.pieces import CastlingRights, Color, Piece, PieceType

if TYPE_CHECKING:  # pragma: no cover
    from chesstutor.engine.position import Position


KNIGHT_OFFSETS: Final = ((1, 2), (2, 1), (2, -1), (1, -2), (-1, -2), (-2, -1), (-2, 1), (-1, 2))
KING_OFFSETS: Final = ((1, 0), (1, 1), (0, 1), (-1, 1), (-1, 0), (-1, -1), (0, -1), (1, -1))
ROOK_DIRS: Final = ((1, 0), (-1, 0), (0, 1), (0, -1))
BISHOP_DIRS: Final = ((1, 1), (-1, 1), (1, -1), (-1, -1))


def _leaper_table(offsets: Tuple[Tuple[int, int], ...]) -> Tuple[Tuple[int, ...], ...]:
    table = []
    for sq in range(64):
        f, r = sq % 8, sq // 8
        table.append(
            tuple(
                (r + dr) * 8 + (f + df)
                for df, dr in offsets
                if 0 <= f + df < 8 and 0 <= r + dr < 8
            )
        )
    return tuple(table)


def _ray_table(dirs: Tuple[Tuple[int, int], ...]) -> Tuple[Tuple[Tuple[int, ...], ...], ...]:
    table = []
    for sq in range(64):
        rays = []
        for df, dr in dirs:
            f, r = sq % 8 + df, sq // 8 + dr
            ray = []
            while 0 <= f < 8 and 0 <= r < 8:
                ray.append(r * 8 + f)
                f += df
                r += dr
            rays.append(tuple(ray))
        table.append(tuple(rays))
    return tuple(table)


KNIGHT_TARGETS: Final = _leaper_table(KNIGHT_OFFSETS)
KING_TARGETS: Final = _leaper_table(KING_OFFSETS)
ROOK_RAYS: Final = _ray_table(ROOK_DIRS)
BISHOP_RAYS: Final = _ray_table(BISHOP_DIRS)
QUEEN_RAYS: Final = tuple(r + b for r, b in zip(ROOK_RAYS, BISHOP_RAYS))

# (king from, king to, rook from, squares that must be empty, squares that must not be attacked)
_CASTLES: Final = {
    MoveFlag.KINGSIDE_CASTLE: {
        Color.WHITE: (4, 6, 7, (5, 6), (4, 5, 6)),
        Color.BLACK: (60, 62, 63, (61, 62), (60, 61, 62)),
    },
    MoveFlag.QUEENSIDE_CASTLE: {
        Color.WHITE: (4, 2, 0, (1, 2, 3), (4, 3, 2)),
        Color.BLACK: (60, 58, 56, (57, 58, 59), (60, 59, 58)),
    },
}


def pseudo_legal_moves(position: "Position") -> List[Move]:
    """Generate every pseudo-legal move for the side to move.

    Pseudo-legal moves obey piece movement rules but may leave the mover's own
    king attacked; the legality filter removes those. Castling is the exception:
    its start, transit and destination squares are checked for attacks here.

    Args:
        position (Position): Position to generate from. Not modified.

    Returns:
        List[Move]: Moves annotated with the moving piece, captured piece and
            flags. Each promotion expands into four moves (Q, R, B, N).
    """
    moves: List[Move] = []
    us = position.side_to_move
    for sq, piece in position.pieces(us):
        kind = piece.kind
        if kind is PieceType.PAWN:
            _pawn_moves(position, sq, piece, moves)
            continue
        for to in piece_targets(position, sq, piece):
            target = position.squares[to]
            if target is None:
                moves.append(Move(sq, to, piece=piece))
            else:
                moves.append(Move(sq, to, piece=piece, captured=target, flags=MoveFlag.CAPTURE))
        if kind is PieceType.KING:
            _castling_moves(position, piece, moves)
    return moves


def piece_targets(position: "Position", sq: int, piece: Piece) -> Iterator[int]:
    """Yield destination squares of a non-pawn piece: empty or enemy-occupied.

    Castling is not included.
    """
    squares = position.squares
    color = piece.color
    kind = piece.kind
    if kind is PieceType.KNIGHT or kind is PieceType.KING:
        table = KNIGHT_TARGETS if kind is PieceType.KNIGHT else KING_TARGETS
        for to in table[sq]:
            target = squares[to]
            if target is None or target.color is not color:
                yield to
        return
    if kind is PieceType.BISHOP:
        rays = BISHOP_RAYS[sq]
    elif kind is PieceType.ROOK:
        rays = ROOK_RAYS[sq]
    else:
        rays = QUEEN_RAYS[sq]
    for ray in rays:
        for to in ray:
            target = squares[to]
            if target is None:
                yield to
                continue
            if target.color is not color:
                yield to
            break


def _pawn_moves(position: "Position", sq: int, piece: Piece, moves: List[Move]) -> None:
    squares = position.squares
    us = piece.color
    fwd = 8 if us is Color.WHITE else -8
    start_rank = 1 if us is Color.WHITE else 6
    last_rank = 7 if us is Color.WHITE else 0
    file_idx = sq % 8

    to = sq + fwd
    if squares[to] is None:
        if to // 8 == last_rank:
            _add_promotions(sq, to, piece, None, moves)
        else:
            moves.append(Move(sq, to, piece=piece))
            to2 = to + fwd
            if sq // 8 == start_rank and squares[to2] is None:
                moves.append(Move(sq, to2, piece=piece, flags=MoveFlag.DOUBLE_PAWN_PUSH))

    for df in (-1, 1):
        if not 0 <= file_idx + df < 8:
            continue
        to = sq + fwd + df
        target = squares[to]
        if target is not None:
            if target.color is us:
                continue
            if to // 8 == last_rank:
                _add_promotions(sq, to, piece, target, moves)
            else:
                moves.append(Move(sq, to, piece=piece, captured=target, flags=MoveFlag.CAPTURE))
        elif to == position.ep_square:
            victim = squares[to - fwd]
            if victim is Piece.make(PieceType.PAWN, us.other):
                moves.append(
                    Move(
                        sq,
                        to,
                        piece=piece,
                        captured=victim,
                        flags=MoveFlag.CAPTURE | MoveFlag.EN_PASSANT,
                    )
                )


def _add_promotions(
    fr: int, to: int, piece: Piece, captured: Optional[Piece], moves: List[Move]
) -> None:
    flags = MoveFlag.PROMOTION
    if captured is not None:
        flags |= MoveFlag.CAPTURE
    for promo in PROMOTION_PIECES:
        moves.append(Move(fr, to, promo, piece=piece, captured=captured, flags=flags))


def _castling_moves(position: "Position", king: Piece, moves: List[Move]) -> None:
    us = king.color
    them = us.other
    rook = Piece.make(PieceType.ROOK, us)
    squares = position.squares
    for flag, per_color in _CASTLES.items():
        k_from, k_to, r_from, empty, safe = per_color[us]
        if flag is MoveFlag.KINGSIDE_CASTLE:
            right = CastlingRights.kingside(us)
        else:
            right = CastlingRights.queenside(us)
        if not position.castling & right:
            continue
        if squares[k_from] is not king or squares[r_from] is not rook:
            continue
        if any(squares[s] is not None for s in empty):
            continue
        if any(square_attacked(position, s, them) for s in safe):
            continue
        moves.append(Move(k_from, k_to, piece=king, flags=flag))


def square_attacked(position: "Position", sq: int, by: Color) -> bool:
    """Return whether any piece of color ``by`` attacks ``sq``."""
    squares = position.squares
    f = sq % 8
    pawn = Piece.make(PieceType.PAWN, by)
    if by is Color.WHITE:
        if f > 0 and sq >= 9 and squares[sq - 9] is pawn:
            return True
        if f < 7 and sq >= 7 and squares[sq - 7] is pawn:
            return True
    else:
        if f < 7 and sq <= 54 and squares[sq + 9] is pawn:
            return True
        if f > 0 and sq <= 56 and squares[sq + 7] is pawn:
            return True

    knight = Piece.make(PieceType.KNIGHT, by)
    for s in KNIGHT_TARGETS[sq]:
        if squares[s] is knight:
            return True
    king = Piece.make(PieceType.KING, by)
    for s in KING_TARGETS[sq]:
        if squares[s] is king:
            return True

    queen = Piece.make(PieceType.QUEEN, by)
    bishop = Piece.make(PieceType.BISHOP, by)
    for ray in BISHOP_RAYS[sq]:
        for s in ray:
            p = squares[s]
            if p is not None:
                if p is bishop or p is queen:
                    return True
                break
    rook = Piece.make(PieceType.ROOK, by)
    for ray in ROOK_RAYS[sq]:
        for s in ray:
            p = squares[s]
            if p is not None:
                if p is rook or p is queen:
                    return True
                break
    return False


# Alias used by the evaluator and tests.
attacks_square = square_attacked


def attackers_to(position: "Position", sq: int, by: Color) -> List[Piece]:
    """Return the pieces of color ``by`` that attack ``sq`` (x-rays excluded)."""
    squares = position.squares
    found: List[Piece] = []
    f = sq % 8
    pawn = Piece.make(PieceType.PAWN, by)
    if by is Color.WHITE:
        candidates = [sq - 9 if f > 0 else -1, sq - 7 if f < 7 else -1]
    else:
        candidates = [sq + 9 if f < 7 else -1, sq + 7 if f > 0 else -1]
    for s in candidates:
        if 0 <= s < 64 and squares[s] is pawn:
            found.append(pawn)

    for table, kind in ((KNIGHT_TARGETS, PieceType.KNIGHT), (KING_TARGETS, PieceType.KING)):
        piece = Piece.make(kind, by)
        found.extend(piece for s in table[sq] if squares[s] is piece)

    for rays, kinds in (
        (BISHOP_RAYS[sq], (PieceType.BISHOP, PieceType.QUEEN)),
        (ROOK_RAYS[sq], (PieceType.ROOK, PieceType.QUEEN)),
    ):
        for ray in rays:
            for s in ray:
                p = squares[s]
                if p is not None:
                    if p.color is by and p.kind in kinds:
                        found.append(p)
                    break
    return found


def mobility(position: "Position", sq: int) -> int:
    """Count pseudo-legal destinations of the piece on ``sq`` (0 when empty).

    Pawns count their pushes and captures; kings exclude castling.
    """
    piece = position.squares[sq]
    if piece is None:
        return 0
    if piece.kind is PieceType.PAWN:
        moves: List[Move] = []
        _pawn_moves(position, sq, piece, moves)
        return len({m.to_sq for m in moves})
    return sum(1 for _ in piece_targets(position, sq, piece))
