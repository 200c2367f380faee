"""Coaching notes attached to a player's move.

Themes, opening principles, mistakes and suggestions are pattern checks on
the move itself plus the score from :func:`rate_move`; none of them consult
the search.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final, List

from chesstutor.engine.game import Game
from chesstutor.engine.move import Move
from chesstutor.engine.pieces import PieceType
from chesstutor.tutor.quality import MoveQuality, rate_move


OPENING_MOVES: Final[int] = 10
REPEAT_WINDOW: Final[int] = 8
EARLY_QUEEN_MOVES: Final[int] = 4
MIDDLEGAME_MOVES: Final[int] = 20

MINORS: Final = (PieceType.KNIGHT, PieceType.BISHOP)


@dataclass(frozen=True)
class MoveAnalysis:
    quality: MoveQuality
    themes: List[str] = field(default_factory=list)
    principles: List[str] = field(default_factory=list)
    mistakes: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


def _themes(game: Game, move: Move, kind: PieceType) -> List[str]:
    themes: List[str] = []
    if move.captured is not None:
        themes.append("capture")
        if kind is PieceType.QUEEN:
            themes.append("queen_capture")
    if kind is PieceType.KNIGHT:
        themes.append("knight_tactics")
    if move.is_promotion:
        themes.append("promotion")
    with game.position.trial(move):
        if game.position.in_check():
            themes.append("check")
    return themes


def _principles(move: Move, kind: PieceType, move_number: int) -> List[str]:
    if move_number > OPENING_MOVES:
        return []
    principles: List[str] = []
    if kind in MINORS:
        principles.append("good_development")
    # Pawn arriving on the fourth or fifth rank
    if kind is PieceType.PAWN and move.to_sq // 8 in (3, 4):
        principles.append("center_control")
    if kind is PieceType.QUEEN and move_number <= EARLY_QUEEN_MOVES:
        principles.append("early_queen_development")
    if move.is_castle:
        principles.append("castling")
    return principles


def _moved_before(game: Game, move: Move) -> bool:
    return any(m.piece == move.piece and m.to_sq == move.from_sq for m in game.move_stack)


def _mistakes(game: Game, move: Move, kind: PieceType, quality: MoveQuality) -> List[str]:
    move_number = game.position.fullmove_number
    mistakes: List[str] = []
    if quality.eval_change < -0.5:
        mistakes.append("significant_evaluation_loss")
    elif quality.eval_change < -0.2:
        mistakes.append("evaluation_loss")
    if kind is PieceType.QUEEN and move_number <= OPENING_MOVES:
        mistakes.append("early_queen_development")
    if move_number <= REPEAT_WINDOW and _moved_before(game, move):
        mistakes.append("repeated_piece_moves")
    return mistakes


def _suggestions(kind: PieceType, move_number: int, quality: MoveQuality) -> List[str]:
    suggestions: List[str] = []
    if quality.score >= 80:
        suggestions.append("Excellent move! You found the best continuation.")
    elif quality.score >= 60:
        suggestions.append("Good move. You're maintaining a solid position.")
    elif quality.score < 30:
        if quality.eval_change < -0.5:
            suggestions.append("This move loses significant advantage. Look for better alternatives.")
        else:
            suggestions.append("Consider calculating a few moves deeper before deciding.")

    if move_number <= OPENING_MOVES:
        if kind is PieceType.PAWN:
            suggestions.append(
                "Consider developing your knights and bishops before moving more pawns"
            )
        elif kind in MINORS:
            suggestions.append("Good development! Try to control central squares")
    elif move_number <= MIDDLEGAME_MOVES:
        suggestions.append("Look for tactical opportunities like pins, forks, and skewers")
        suggestions.append("Consider improving your piece coordination")

    if abs(quality.eval_change) > 0.3:
        suggestions.append(
            f"Position evaluation changed from {quality.before_eval / 100:+.2f} "
            f"to {quality.after_eval / 100:+.2f}."
        )
    return suggestions


def analyze_move(game: Game, move: Move) -> MoveAnalysis:
    """Coach ``move`` before it is played in ``game``.

    Args:
        game (Game): Game whose current position has ``move`` to play. The
            position is left unchanged.
        move (Move): A legal move carrying its generator annotation.

    Returns:
        MoveAnalysis: Quality score plus lists of theme, principle and
            mistake tags and human-readable suggestions.
    """
    piece = move.piece if move.piece is not None else game.position.piece_at(move.from_sq)
    if piece is None:
        raise ValueError("move has no piece to analyze")
    kind = piece.kind
    move_number = game.position.fullmove_number
    quality = rate_move(game.position, move)
    return MoveAnalysis(
        quality=quality,
        themes=_themes(game, move, kind),
        principles=_principles(move, kind, move_number),
        mistakes=_mistakes(game, move, kind, quality),
        suggestions=_suggestions(kind, move_number, quality),
    )
