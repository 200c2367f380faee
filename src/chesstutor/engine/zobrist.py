from __future__ import annotations

from typing import List, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from chesstutor.engine.position import Position


MASK64 = 0xFFFFFFFFFFFFFFFF


class _SplitMix64:
    def __init__(self, seed: int) -> None:
        self.state = seed & MASK64

    def next(self) -> int:
        self.state = (self.state + 0x9E3779B97F4A7C15) & MASK64
        z = self.state
        z = (z ^ (z >> 30)) * 0xBF58476D1CE4E5B9 & MASK64
        z = (z ^ (z >> 27)) * 0x94D049BB133111EB & MASK64
        z = z ^ (z >> 31)
        return z & MASK64


class ZobristKeys:
    """Random keys for the repetition hash.

    Table layout:
    - piece_square[12][64]: indexed by ``Piece`` value and square
    - side_to_move: toggled when Black is to move
    - castling[16]: one key per castling-rights bit set, so a rights change is
      a single XOR pair
    - ep_file[8]: files a..h
    """

    piece_square: List[List[int]]
    side_to_move: int
    castling: List[int]
    ep_file: List[int]

    def __init__(self, seed: int = 0xC0FFEE_F00D_DEAD) -> None:
        prng = _SplitMix64(seed)
        self.piece_square = [[prng.next() for _ in range(64)] for _ in range(12)]
        self.side_to_move = prng.next()
        self.castling = [0] + [prng.next() for _ in range(15)]
        self.ep_file = [prng.next() for _ in range(8)]


# Deterministic table shared by all positions; read-only after import.
KEYS = ZobristKeys()


def hash_position(position: "Position") -> int:
    """Compute the 64-bit hash of ``position`` from scratch.

    Covers piece placement, side to move, castling rights and the en-passant
    file. Clocks are not hashed, so repeated positions share a key.
    """
    h = 0
    for sq, piece in enumerate(position.squares):
        if piece is not None:
            h ^= KEYS.piece_square[piece][sq]
    if position.side_to_move:
        h ^= KEYS.side_to_move
    h ^= KEYS.castling[int(position.castling)]
    if position.ep_square is not None:
        h ^= KEYS.ep_file[position.ep_square % 8]
    return h & MASK64
