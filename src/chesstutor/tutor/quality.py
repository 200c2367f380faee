"""Move-quality feedback shown to the player after each move.

This is a display heuristic over the static evaluator, not an engine
verdict: it compares the mover's evaluation before and after the move and
maps the change onto a 0..100 score with a label.
"""

from __future__ import annotations

from dataclasses import dataclass

from chesstutor.engine.move import Move
from chesstutor.engine.position import Position
from chesstutor.eval import PIECE_VALUES, evaluate


PROMOTION_BONUS = 0.8
CHECK_BONUS = 0.3
CASTLE_BONUS = 0.2
CAPTURE_BONUS_PER_PAWN = 0.1


@dataclass(frozen=True)
class MoveQuality:
    score: int
    rating: str
    move_type: str
    eval_change: float
    before_eval: int
    after_eval: int


def quality_rating(score: int) -> str:
    if score >= 90:
        return "excellent"
    if score >= 75:
        return "good"
    if score >= 55:
        return "okay"
    if score >= 30:
        return "questionable"
    return "poor"


def _quality_curve(change: float) -> float:
    # Piecewise scale in pawns; steep around zero, flat at the extremes
    if change >= 0.8:
        return min(98.0, 85 + change * 15)
    if change >= 0.4:
        return min(90.0, 70 + change * 25)
    if change >= 0.1:
        return min(80.0, 60 + change * 50)
    if change >= -0.1:
        return 50 + change * 200
    if change >= -0.4:
        return max(20.0, 35 + change * 50)
    return max(5.0, 20 + change * 25)


def rate_move(position: Position, move: Move) -> MoveQuality:
    """Rate ``move`` played from ``position`` (which is left unchanged).

    Args:
        position (Position): Position before the move, mover to play.
        move (Move): A legal move carrying its generator annotation.

    Returns:
        MoveQuality: Score 0..100, label and the evaluation figures used.
    """
    before = evaluate(position)
    with position.trial(move):
        after = -evaluate(position)
        gives_check = position.in_check()

    if move.is_promotion:
        move_type, bonus = "promotion", PROMOTION_BONUS
    elif move.captured is not None:
        move_type = "capture"
        bonus = PIECE_VALUES[move.captured.kind] / 100 * CAPTURE_BONUS_PER_PAWN
    elif gives_check:
        move_type, bonus = "check", CHECK_BONUS
    elif move.is_castle:
        move_type, bonus = "castling", CASTLE_BONUS
    else:
        move_type, bonus = "normal", 0.0

    change = (after - before) / 100
    score = round(max(0.0, min(100.0, _quality_curve(change + bonus))))
    return MoveQuality(
        score=score,
        rating=quality_rating(score),
        move_type=move_type,
        eval_change=round(change, 2),
        before_eval=before,
        after_eval=after,
    )
