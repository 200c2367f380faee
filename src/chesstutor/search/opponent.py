from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Optional

from chesstutor.book.opening_book import OpeningBook
from chesstutor.engine.game import Game
from chesstutor.errors import SearchExhausted
from chesstutor.eval import evaluate
from chesstutor.search.service import DifficultyHints, SearchResult, SearchService


logger = logging.getLogger(__name__)


@dataclass
class ComputerOpponent:
    """Move chooser for the computer side: opening book first, then search.

    Attributes:
        hints (DifficultyHints): Search depth and root cap.
        book (Optional[OpeningBook]): Consulted while a game that began from
            the standard layout is within ``book_max_plies``; ``None``
            disables it.
        rng (random.Random): Source of randomness for book choices. Inject a
            seeded instance for reproducible games.
        service (SearchService): Search backend.
        book_max_plies (int): Last ply count at which the book is consulted.
    """

    hints: DifficultyHints = field(default_factory=DifficultyHints)
    book: Optional[OpeningBook] = None
    rng: random.Random = field(default_factory=random.Random)
    service: SearchService = field(default_factory=SearchService)
    book_max_plies: int = 10

    def choose(self, game: Game) -> SearchResult:
        """Pick a move for the side to move without playing it.

        Raises:
            SearchExhausted: If the game is already over.
        """
        state = game.terminal()
        if state.is_over:
            raise SearchExhausted(state)
        if self.book is not None and game.from_startpos and game.ply <= self.book_max_plies:
            move = self.book.choose(game, self.rng)
            if move is not None:
                logger.info("book move", extra={"move": move.to_uci(), "ply": game.ply})
                return SearchResult(
                    best_move=move,
                    score=evaluate(game.position),
                    depth=0,
                    pv=[move],
                    source="book",
                )
        result = self.service.search(game.position, hints=self.hints)
        if result.best_move is None:
            raise SearchExhausted(result.terminal)
        return result

    def play(self, game: Game) -> SearchResult:
        """Choose a move and apply it to ``game``."""
        result = self.choose(game)
        if result.best_move is None:
            raise SearchExhausted(result.terminal)
        played = game.apply_move(result.best_move)
        result.best_move = played
        if result.pv:
            result.pv[0] = played
        return result
