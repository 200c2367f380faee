from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Final, List, Optional, Tuple

from chesstutor.engine.legality import has_legal_moves, legal_moves
from chesstutor.engine.move import Move
from chesstutor.engine.position import Position
from chesstutor.engine.terminal import ONGOING, TerminalState, classify
from chesstutor.eval import evaluate
from chesstutor.search.ordering import order_moves


logger = logging.getLogger(__name__)

INF: Final = 1_000_000
MATE_SCORE: Final = 100_000  # mate scores are within +/- MATE_SCORE window
MATE_WINDOW: Final = 1_000

# Difficulty level -> (depth, root move cap)
DIFFICULTY_TABLE: Final[Dict[int, Tuple[int, Optional[int]]]] = {
    1: (1, 10),
    2: (1, 10),
    3: (2, 15),
    4: (3, 15),
    5: (4, None),
}


@dataclass(frozen=True)
class DifficultyHints:
    """Search knobs derived from a tutor difficulty level.

    Attributes:
        level (int): Difficulty 1 (easiest) .. 5.
        depth (int): Nominal search depth in plies.
        root_move_cap (Optional[int]): Keep only the top-N ordered root moves;
            ``None`` searches every root move.
    """

    level: int = 3
    depth: int = 2
    root_move_cap: Optional[int] = 15

    @classmethod
    def from_level(cls, level: int) -> "DifficultyHints":
        if level not in DIFFICULTY_TABLE:
            raise ValueError(f"difficulty must be 1..5, got {level!r}")
        depth, cap = DIFFICULTY_TABLE[level]
        return cls(level=level, depth=depth, root_move_cap=cap)


@dataclass
class SearchResult:
    best_move: Optional[Move]
    score: int
    depth: int
    nodes: int = 0
    pv: List[Move] = field(default_factory=list)
    time_ms: int = 0
    mate_in: Optional[int] = None
    terminal: TerminalState = ONGOING
    source: str = "search"


def mate_distance(score: int) -> Optional[int]:
    """Convert a mate score to signed moves-to-mate, or ``None`` for normal scores."""
    if abs(score) < MATE_SCORE - MATE_WINDOW:
        return None
    plies = MATE_SCORE - abs(score)
    moves = (plies + 1) // 2
    return moves if score > 0 else -moves


class SearchService:
    """Depth-limited negamax with alpha-beta pruning.

    The service holds no position state of its own; each call searches the
    position it is given and restores it before returning.
    """

    def __init__(self, evaluator: Callable[[Position], int] = evaluate) -> None:
        self.evaluator = evaluator

    def search(
        self,
        position: Position,
        depth: Optional[int] = None,
        hints: Optional[DifficultyHints] = None,
    ) -> SearchResult:
        """Search ``position`` and return the best root move.

        Args:
            position (Position): Root position. Mutated during the search via
                make/unmake and restored on return, including on error.
            depth (Optional[int]): Depth in plies; defaults to ``hints.depth``.
            hints (Optional[DifficultyHints]): Difficulty knobs; defaults to
                level 3.

        Returns:
            SearchResult: ``best_move`` is ``None`` when the root has no legal
                moves, in which case ``terminal`` says why.

        Raises:
            ValueError: If ``depth`` is less than 1.
        """
        hints = hints or DifficultyHints()
        if depth is None:
            depth = hints.depth
        if depth < 1:
            raise ValueError("depth must be >= 1")

        start = time.perf_counter()
        evaluator = self.evaluator
        nodes = 0

        root_moves = legal_moves(position)
        if not root_moves:
            state = classify(position)
            score = -MATE_SCORE if position.in_check() else 0
            return SearchResult(best_move=None, score=score, depth=0, terminal=state)

        def negamax(d: int, alpha: int, beta: int, ply: int) -> Tuple[int, List[Move]]:
            nonlocal nodes
            nodes += 1
            if d == 0:
                if not has_legal_moves(position):
                    return (-(MATE_SCORE - ply) if position.in_check() else 0), []
                return evaluator(position), []

            moves = legal_moves(position)
            if not moves:
                return (-(MATE_SCORE - ply) if position.in_check() else 0), []

            best_pv: List[Move] = []
            for m in order_moves(moves):
                undo = position.make_move(m)
                try:
                    score, child_pv = negamax(d - 1, -beta, -alpha, ply + 1)
                finally:
                    position.unmake_move(undo)
                score = -score
                if score > alpha:
                    alpha = score
                    best_pv = [m] + child_pv
                if alpha >= beta:
                    break
            return alpha, best_pv

        alpha = -INF
        best: Optional[Move] = None
        pv: List[Move] = []
        for m in order_moves(root_moves, hints.root_move_cap):
            undo = position.make_move(m)
            try:
                score, child_pv = negamax(depth - 1, -INF, -alpha, 1)
            finally:
                position.unmake_move(undo)
            score = -score
            if best is None or score > alpha:
                alpha = score
                best = m
                pv = [m] + child_pv

        elapsed = int((time.perf_counter() - start) * 1000)
        logger.debug(
            "search done",
            extra={
                "depth": depth,
                "nodes": nodes,
                "score": alpha,
                "time_ms": elapsed,
                "best": best.to_uci() if best else None,
            },
        )
        return SearchResult(
            best_move=best,
            score=alpha,
            depth=depth,
            nodes=nodes,
            pv=pv,
            time_ms=elapsed,
            mate_in=mate_distance(alpha),
        )


def best_move(
    position: Position, depth: Optional[int] = None, hints: Optional[DifficultyHints] = None
) -> SearchResult:
    return SearchService().search(position, depth, hints)


def plain_negamax(
    position: Position, depth: int, evaluator: Callable[[Position], int] = evaluate, ply: int = 0
) -> int:
    """Unpruned negamax value of ``position``; the reference for alpha-beta."""
    moves = legal_moves(position)
    if not moves:
        return -(MATE_SCORE - ply) if position.in_check() else 0
    if depth == 0:
        return evaluator(position)
    best = -INF
    for m in moves:
        with position.trial(m):
            score = -plain_negamax(position, depth - 1, evaluator, ply + 1)
        if score > best:
            best = score
    return best
