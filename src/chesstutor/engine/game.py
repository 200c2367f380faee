from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from chesstutor.engine.legality import find_legal_move, legal_moves
from chesstutor.engine.move import Move
from chesstutor.engine.notation import san
from chesstutor.engine.pieces import Color, Piece, PieceType
from chesstutor.engine.position import STARTPOS_FEN, Position, Undo
from chesstutor.engine.terminal import TerminalState, classify
from chesstutor.errors import IllegalMoveRequested


logger = logging.getLogger(__name__)


@dataclass
class Game:
    """Game wrapper around a position with history and repetition tracking.

    Responsibility: validate and apply moves, take them back, and report the
    terminal state of the current position.
    """

    position: Position
    move_stack: List[Move] = field(default_factory=list)
    undo_stack: List[Undo] = field(default_factory=list, repr=False)
    repetition: Dict[int, int] = field(default_factory=dict)
    notation_stack: List[str] = field(default_factory=list)
    start_fen: str = ""

    @classmethod
    def new(cls) -> "Game":
        return cls(position=Position.startpos())

    @classmethod
    def from_fen(cls, fen: str) -> "Game":
        return cls(position=Position.from_fen(fen))

    def to_fen(self) -> str:
        return self.position.to_fen()

    def __post_init__(self) -> None:
        if not self.start_fen:
            self.start_fen = self.position.to_fen()
        # Seed repetition with the starting position
        h = self.position.zobrist_hash
        self.repetition[h] = self.repetition.get(h, 0) + 1

    def reset(self, fen: Optional[str] = None) -> None:
        """Start over from the standard layout or ``fen``, clearing history."""
        position = Position.startpos() if fen is None else Position.from_fen(fen)
        self.position = position
        self.start_fen = position.to_fen()
        self.move_stack.clear()
        self.undo_stack.clear()
        self.notation_stack.clear()
        self.repetition.clear()
        self.repetition[position.zobrist_hash] = 1

    def legal_moves(self) -> List[Move]:
        return legal_moves(self.position)

    def apply_move(self, move: Move) -> Move:
        """Validate ``move`` and play it.

        Returns:
            Move: The generated move that was played, with its piece, capture
                and flag annotation.

        Raises:
            IllegalMoveRequested: If the game is already over or the move is
                not legal. Nothing changes in that case.
        """
        state = self.terminal()
        if state.is_over:
            raise IllegalMoveRequested(f"game is over: {state.kind.value}")
        resolved = find_legal_move(self.position, move.from_sq, move.to_sq, move.promotion)
        notation = san(self.position, resolved)
        undo = self.position.make_move(resolved)
        self.move_stack.append(resolved)
        self.undo_stack.append(undo)
        self.notation_stack.append(notation)
        h = self.position.zobrist_hash
        self.repetition[h] = self.repetition.get(h, 0) + 1
        logger.debug("move applied", extra={"move": resolved.to_uci(), "ply": self.ply})
        return resolved

    def play(self, from_sq: int, to_sq: int, promotion: Optional[PieceType] = None) -> Move:
        return self.apply_move(Move(from_sq, to_sq, promotion))

    def undo_move(self) -> Move:
        if not self.move_stack:
            raise ValueError("no moves to undo")
        # Decrement count for current position
        curr = self.position.zobrist_hash
        if curr in self.repetition:
            self.repetition[curr] -= 1
            if self.repetition[curr] <= 0:
                del self.repetition[curr]
        self.position.unmake_move(self.undo_stack.pop())
        self.notation_stack.pop()
        return self.move_stack.pop()

    @property
    def ply(self) -> int:
        return len(self.move_stack)

    # --- State flags for protocol ---
    def terminal(self) -> TerminalState:
        return classify(self.position, self.repetition)

    def in_check(self) -> bool:
        return self.position.in_check()

    def is_over(self) -> bool:
        return self.terminal().is_over

    def move_history_uci(self) -> List[str]:
        return [m.to_uci() for m in self.move_stack]

    def book_key(self) -> str:
        """Comma-joined ``"e2-e4"`` history used to look up opening-book lines."""
        return ",".join(m.to_book_notation() for m in self.move_stack)

    def move_history_san(self) -> List[str]:
        return list(self.notation_stack)

    def captured_pieces(self) -> Dict[Color, List[Piece]]:
        """Pieces taken so far, keyed by the side that captured them."""
        taken: Dict[Color, List[Piece]] = {Color.WHITE: [], Color.BLACK: []}
        for m in self.move_stack:
            if m.captured is not None:
                taken[m.captured.color.other].append(m.captured)
        return taken

    @property
    def from_startpos(self) -> bool:
        """Whether the game began from the standard layout (clocks ignored)."""
        return self.start_fen.split()[:4] == STARTPOS_FEN.split()[:4]
