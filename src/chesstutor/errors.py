from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from chesstutor.engine.terminal import TerminalState


class ChessTutorError(Exception):
    """Base class for errors surfaced by the rules engine and search."""


class IllegalMoveRequested(ChessTutorError, ValueError):
    """A requested move is not legal in the current position.

    Raised for moves that fail the legality filter, name a square outside the
    board, or pick up a piece that does not belong to the side to move. The
    position is left exactly as it was.
    """


class MalformedPositionInput(ChessTutorError, ValueError):
    """A serialized position failed structural validation at load time."""


class SearchExhausted(ChessTutorError):
    """The root position has no legal moves, so no move can be chosen.

    Not a failure: callers report ``state`` (checkmate, stalemate or a draw)
    to the player instead of a move.
    """

    def __init__(self, state: "TerminalState") -> None:
        super().__init__(f"no legal moves: {state.kind.value}")
        self.state = state
