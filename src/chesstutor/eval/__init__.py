"""Evaluation heuristics and related utilities.

Pure, deterministic, and side-effect free. Every term is computed per side
from that side's own perspective and the White score is the difference, so a
color-mirrored position evaluates to exactly the negated score.
"""

from __future__ import annotations

from typing import Dict, Final, List

from chesstutor.engine.movegen import attackers_to, mobility
from chesstutor.engine.pieces import Color, PieceType
from chesstutor.engine.position import Position


# Material values in centipawns
P_VAL: Final = 100
N_VAL: Final = 320
B_VAL: Final = 330
R_VAL: Final = 500
Q_VAL: Final = 900
# Sentinel for a missing king; never counted as material
KING_VALUE: Final = 20000

PIECE_VALUES: Final[Dict[PieceType, int]] = {
    PieceType.PAWN: P_VAL,
    PieceType.KNIGHT: N_VAL,
    PieceType.BISHOP: B_VAL,
    PieceType.ROOK: R_VAL,
    PieceType.QUEEN: Q_VAL,
    PieceType.KING: 0,
}

# Non-pawn material of both sides in the starting position
PHASE_TOTAL: Final = 2 * (2 * N_VAL + 2 * B_VAL + 2 * R_VAL + Q_VAL)

# Heuristic weights (centipawns)
# Mobility weights (middlegame / endgame)
MOBILITY_WEIGHTS: Final[Dict[PieceType, tuple]] = {
    PieceType.KNIGHT: (2, 1),
    PieceType.BISHOP: (2, 3),
    PieceType.ROOK: (2, 2),
    PieceType.QUEEN: (1, 1),
}
CENTER_BONUS: Final = 10
HANGING_PENALTY_PCT: Final = 15
BISHOP_PAIR_MG: Final = 20
BISHOP_PAIR_EG: Final = 40
LONG_DIAGONAL_BONUS: Final = 10
ROOK_SEMIOPEN_BONUS: Final = 8
ROOK_OPEN_BONUS: Final = 14
ROOK_SEVENTH_BONUS: Final = 20
DOUBLED_PAWN_PENALTY: Final = 10
ISOLATED_PAWN_PENALTY: Final = 15
BACKWARD_PAWN_PENALTY: Final = 12
EARLY_QUEEN_PENALTY: Final = 30
KING_SHIELD_BONUS: Final = 6  # per pawn in king shield ring, middlegame only

CENTER_SQUARES: Final = frozenset((27, 28, 35, 36))  # d4, e4, d5, e5
QUEEN_HOME: Final = {Color.WHITE: 3, Color.BLACK: 59}
MINOR_HOMES: Final = {Color.WHITE: (1, 2, 5, 6), Color.BLACK: (57, 58, 61, 62)}


def _mirror_sq(sq: int) -> int:
    # Flip vertically (rank mirror)
    f = sq % 8
    r = sq // 8
    return (7 - r) * 8 + f


# Piece-square tables, a1 first, from White's perspective.
# fmt: off
PSQT_P: Final = [
     0,   0,   0,   0,   0,   0,   0,   0,
     5,  10,  10, -20, -20,  10,  10,   5,
     5,  -5, -10,   0,   0, -10,  -5,   5,
     0,   0,   0,  20,  20,   0,   0,   0,
     5,   5,  10,  25,  25,  10,   5,   5,
    10,  10,  20,  30,  30,  20,  10,  10,
    50,  50,  50,  50,  50,  50,  50,  50,
     0,   0,   0,   0,   0,   0,   0,   0,
]
PSQT_N: Final = [
   -50, -40, -30, -30, -30, -30, -40, -50,
   -40, -20,   0,   5,   5,   0, -20, -40,
   -30,   5,  10,  15,  15,  10,   5, -30,
   -30,   0,  15,  20,  20,  15,   0, -30,
   -30,   5,  15,  20,  20,  15,   5, -30,
   -30,   0,  10,  15,  15,  10,   0, -30,
   -40, -20,   0,   0,   0,   0, -20, -40,
   -50, -40, -30, -30, -30, -30, -40, -50,
]
PSQT_B: Final = [
   -20, -10, -10, -10, -10, -10, -10, -20,
   -10,   5,   0,   0,   0,   0,   5, -10,
   -10,  10,  10,  10,  10,  10,  10, -10,
   -10,   0,  10,  10,  10,  10,   0, -10,
   -10,   5,   5,  10,  10,   5,   5, -10,
   -10,   0,   5,  10,  10,   5,   0, -10,
   -10,   0,   0,   0,   0,   0,   0, -10,
   -20, -10, -10, -10, -10, -10, -10, -20,
]
PSQT_R: Final = [
     0,   0,   5,  10,  10,   5,   0,   0,
    -5,   0,   0,   0,   0,   0,   0,  -5,
    -5,   0,   0,   0,   0,   0,   0,  -5,
    -5,   0,   0,   0,   0,   0,   0,  -5,
    -5,   0,   0,   0,   0,   0,   0,  -5,
    -5,   0,   0,   0,   0,   0,   0,  -5,
     5,  10,  10,  10,  10,  10,  10,   5,
     0,   0,   0,   0,   0,   0,   0,   0,
]
PSQT_Q: Final = [
   -20, -10, -10,  -5,  -5, -10, -10, -20,
   -10,   0,   5,   0,   0,   0,   0, -10,
   -10,   5,   5,   5,   5,   5,   0, -10,
     0,   0,   5,   5,   5,   5,   0,  -5,
    -5,   0,   5,   5,   5,   5,   0,  -5,
   -10,   0,   5,   5,   5,   5,   0, -10,
   -10,   0,   0,   0,   0,   0,   0, -10,
   -20, -10, -10,  -5,  -5, -10, -10, -20,
]
PSQT_K: Final = [
    20,  30,  10,   0,   0,  10,  30,  20,
    20,  20,   0,   0,   0,   0,  20,  20,
   -10, -20, -20, -20, -20, -20, -20, -10,
   -20, -30, -30, -40, -40, -30, -30, -20,
   -30, -40, -40, -50, -50, -40, -40, -30,
   -30, -40, -40, -50, -50, -40, -40, -30,
   -30, -40, -40, -50, -50, -40, -40, -30,
   -30, -40, -40, -50, -50, -40, -40, -30,
]
PSQT_K_EG: Final = [
   -50, -30, -30, -30, -30, -30, -30, -50,
   -30, -30,   0,   0,   0,   0, -30, -30,
   -30, -10,  20,  30,  30,  20, -10, -30,
   -30, -10,  30,  40,  40,  30, -10, -30,
   -30, -10,  30,  40,  40,  30, -10, -30,
   -30, -10,  20,  30,  30,  20, -10, -30,
   -30, -20, -10,   0,   0, -10, -20, -30,
   -50, -40, -30, -20, -20, -30, -40, -50,
]
# fmt: on

PSQT: Final = {
    PieceType.PAWN: PSQT_P,
    PieceType.KNIGHT: PSQT_N,
    PieceType.BISHOP: PSQT_B,
    PieceType.ROOK: PSQT_R,
    PieceType.QUEEN: PSQT_Q,
}


def game_phase(position: Position) -> int:
    """Return the middlegame weight on a 0..128 scale.

    128 with all non-pawn material on the board, 0 with only kings and pawns.
    """
    npm = 0
    for _, piece in position.pieces():
        if piece.kind is not PieceType.PAWN:
            npm += PIECE_VALUES[piece.kind]
    return max(0, min(128, (npm * 128) // PHASE_TOTAL))


def material(position: Position, color: Color) -> int:
    return sum(PIECE_VALUES[p.kind] for _, p in position.pieces(color))


def _pawn_files(position: Position, color: Color) -> List[List[int]]:
    # Relative ranks of own pawns per file (0 = own back rank)
    files: List[List[int]] = [[] for _ in range(8)]
    for sq, piece in position.pieces(color):
        if piece.kind is PieceType.PAWN:
            r = sq // 8
            files[sq % 8].append(r if color is Color.WHITE else 7 - r)
    return files


def _king_shield_pawns(position: Position, color: Color) -> int:
    # Count friendly pawns in the two ranks in front of the king on files f-1..f+1
    ksq = position.kings[color]
    if ksq < 0:
        return 0
    kf, kr = ksq % 8, ksq // 8
    step = 1 if color is Color.WHITE else -1
    total = 0
    for ff in (kf - 1, kf, kf + 1):
        if not 0 <= ff < 8:
            continue
        for dr in (1, 2):
            rr = kr + dr * step
            if 0 <= rr < 8:
                p = position.squares[rr * 8 + ff]
                if p is not None and p.kind is PieceType.PAWN and p.color is color:
                    total += 1
    return total


def _pawn_structure(own: List[List[int]]) -> int:
    penalty = 0
    for f, ranks in enumerate(own):
        if not ranks:
            continue
        if len(ranks) > 1:
            penalty += DOUBLED_PAWN_PENALTY * (len(ranks) - 1)
        neighbours = [r for nf in (f - 1, f + 1) if 0 <= nf < 8 for r in own[nf]]
        for r in ranks:
            if not neighbours:
                penalty += ISOLATED_PAWN_PENALTY
            elif all(n > r for n in neighbours):
                penalty += BACKWARD_PAWN_PENALTY
    return penalty


def _side_score(
    position: Position, color: Color, mg: int, own_pawns: List[List[int]], opp_pawns: List[List[int]]
) -> int:
    eg = 128 - mg
    them = color.other
    score = 0
    psqt = 0
    bishops = 0
    for sq, piece in position.pieces(color):
        kind = piece.kind
        rel = sq if color is Color.WHITE else _mirror_sq(sq)
        if kind is PieceType.KING:
            score += (mg * PSQT_K[rel] + eg * PSQT_K_EG[rel]) // 128
            continue
        value = PIECE_VALUES[kind]
        score += value
        psqt += PSQT[kind][rel]
        if sq in CENTER_SQUARES:
            score += CENTER_BONUS

        if kind is not PieceType.PAWN:
            w_mg, w_eg = MOBILITY_WEIGHTS[kind]
            score += mobility(position, sq) * ((mg * w_mg + eg * w_eg) // 128)

        attackers = [a for a in attackers_to(position, sq, them) if a.kind is not PieceType.KING]
        if attackers and min(PIECE_VALUES[a.kind] for a in attackers) <= value:
            score -= value * HANGING_PENALTY_PCT // 100

        f, r = sq % 8, rel // 8
        if kind is PieceType.ROOK:
            if not own_pawns[f]:
                score += ROOK_SEMIOPEN_BONUS if opp_pawns[f] else ROOK_OPEN_BONUS
            if r == 6:
                score += ROOK_SEVENTH_BONUS
        elif kind is PieceType.BISHOP:
            bishops += 1
            if f == sq // 8 or f + sq // 8 == 7:
                score += LONG_DIAGONAL_BONUS
        elif kind is PieceType.QUEEN and sq != QUEEN_HOME[color]:
            undeveloped = 0
            for h in MINOR_HOMES[color]:
                p = position.squares[h]
                if p is not None and p.color is color and p.kind in (PieceType.KNIGHT, PieceType.BISHOP):
                    undeveloped += 1
            if len(MINOR_HOMES[color]) - undeveloped < 2:
                score -= EARLY_QUEEN_PENALTY

    # Positional weight fades to half towards the endgame
    score += psqt * (64 + mg // 2) // 128
    if bishops >= 2:
        score += (mg * BISHOP_PAIR_MG + eg * BISHOP_PAIR_EG) // 128
    score -= _pawn_structure(own_pawns)
    score += _king_shield_pawns(position, color) * KING_SHIELD_BONUS * mg // 128
    return score


def evaluate_white(position: Position) -> int:
    """Return the evaluation in centipawns, positive favouring White.

    A position without a king (never produced by legal play) returns
    ``-KING_VALUE`` when White's king is missing and ``KING_VALUE`` when
    Black's is.
    """
    wk, bk = position.kings
    if wk < 0:
        return -KING_VALUE
    if bk < 0:
        return KING_VALUE
    mg = game_phase(position)
    white_pawns = _pawn_files(position, Color.WHITE)
    black_pawns = _pawn_files(position, Color.BLACK)
    return _side_score(position, Color.WHITE, mg, white_pawns, black_pawns) - _side_score(
        position, Color.BLACK, mg, black_pawns, white_pawns
    )


def evaluate(position: Position) -> int:
    """Return the evaluation in centipawns from the side to move's view."""
    score = evaluate_white(position)
    return score if position.side_to_move is Color.WHITE else -score
