from __future__ import annotations

from typing import Dict

from chesstutor.engine.legality import legal_moves
from chesstutor.engine.position import Position


def perft(position: Position, depth: int) -> int:
    """Compute perft node count for ``position`` at ``depth``.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all legal child positions' perft(depth-1).

    Children are visited with make/unmake, so ``position`` is unchanged on
    return.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1
    moves = legal_moves(position)
    if depth == 1:
        return len(moves)
    nodes = 0
    for m in moves:
        undo = position.make_move(m)
        try:
            nodes += perft(position, depth - 1)
        finally:
            position.unmake_move(undo)
    return nodes


def divide(position: Position, depth: int) -> Dict[str, int]:
    """Per-root-move perft breakdown, keyed by UCI move."""
    if depth < 1:
        raise ValueError("depth must be >= 1")
    out: Dict[str, int] = {}
    for m in legal_moves(position):
        with position.trial(m):
            out[m.to_uci()] = perft(position, depth - 1)
    return out
