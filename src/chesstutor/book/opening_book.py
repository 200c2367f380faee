from __future__ import annotations

import json
import logging
import os
import random
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from chesstutor.engine.game import Game
from chesstutor.engine.move import Move, str_to_square
from chesstutor.errors import IllegalMoveRequested


logger = logging.getLogger(__name__)


# Keys are the comma-joined move history, "" for the initial position.
DEFAULT_LINES: Dict[str, List[str]] = {
    "": ["e2-e4", "d2-d4", "g1-f3", "c2-c4"],
    "e2-e4": ["e7-e5", "c7-c5", "e7-e6", "d7-d6"],
    "d2-d4": ["d7-d5", "g8-f6", "e7-e6", "c7-c5"],
    "g1-f3": ["d7-d5", "g8-f6", "e7-e6"],
    "c2-c4": ["e7-e5", "c7-c5", "g8-f6"],
    "e2-e4,e7-e5": ["g1-f3", "f1-c4", "d2-d3"],
    "e2-e4,c7-c5": ["g1-f3", "d2-d3", "f1-e2"],
    "d2-d4,d7-d5": ["c2-c4", "g1-f3", "c1-f4"],
    "d2-d4,g8-f6": ["c2-c4", "g1-f3", "c1-g5"],
    "e2-e4,e7-e5,g1-f3": ["b8-c6", "g8-f6", "f7-f5"],
    "e2-e4,e7-e5,f1-c4": ["g8-f6", "f7-f5", "b8-c6"],
    "d2-d4,d7-d5,c2-c4": ["e7-e6", "c7-c6", "g8-f6"],
    "d2-d4,g8-f6,c2-c4": ["e7-e6", "g7-g6", "c7-c5"],
}


def parse_book_move(notation: str) -> Tuple[int, int]:
    """Parse ``"e2-e4"`` into ``(from_sq, to_sq)``.

    Raises:
        IllegalMoveRequested: If either square is malformed.
    """
    parts = notation.strip().split("-")
    if len(parts) != 2:
        raise IllegalMoveRequested(f"invalid book move: {notation!r}")
    return str_to_square(parts[0]), str_to_square(parts[1])


class OpeningBook:
    """Static move-history -> candidate-moves dictionary.

    Format examples for ``from_json``:
    - Object mapping key -> list of moves: ``{"e2-e4": ["e7-e5", "c7-c5"]}``
    - Or ``{"lines": [{"key": "e2-e4", "moves": ["e7-e5"]}]}``

    Notes:
    - Every candidate is checked against the legal moves of the game before it
      is returned, so a stale or mistyped entry is skipped, never played.
    - Selection is uniform over the legal candidates using the injected RNG.
    """

    def __init__(self, entries: Mapping[str, Sequence[str]]) -> None:
        self._index: Dict[str, List[str]] = {
            str(key).strip(): [str(m) for m in moves] for key, moves in entries.items()
        }

    def __len__(self) -> int:
        return len(self._index)

    @classmethod
    def default(cls) -> "OpeningBook":
        return cls(DEFAULT_LINES)

    @classmethod
    def from_json(cls, path: str) -> "OpeningBook":
        if not os.path.exists(path):
            raise FileNotFoundError(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        entries: Dict[str, List[str]] = {}
        if isinstance(data, dict) and "lines" in data:
            for ent in data["lines"]:
                moves = ent.get("moves", [])
                if isinstance(moves, list):
                    entries[str(ent.get("key", "")).strip()] = [str(m) for m in moves]
        elif isinstance(data, dict):
            for key, moves in data.items():
                if isinstance(moves, list):
                    entries[str(key).strip()] = [str(m) for m in moves]
        else:
            raise ValueError("invalid book format")
        logger.info("opening book loaded", extra={"path": path, "entries": len(entries)})
        return cls(entries)

    def lookup(self, key: str) -> List[str]:
        return list(self._index.get(key, []))

    def choose(self, game: Game, rng: random.Random) -> Optional[Move]:
        """Return a legal book move for ``game`` or ``None``.

        The full history key is tried first, then the last two moves only.
        """
        key = game.book_key()
        candidates = self.lookup(key)
        if not candidates:
            partial = ",".join(key.split(",")[-2:])
            if partial != key:
                candidates = self.lookup(partial)
        if not candidates:
            return None

        legal: Dict[Tuple[int, int], Move] = {}
        for m in game.legal_moves():
            legal.setdefault((m.from_sq, m.to_sq), m)
        usable: List[Move] = []
        for notation in candidates:
            try:
                squares = parse_book_move(notation)
            except IllegalMoveRequested:
                logger.warning("skipping malformed book move", extra={"move": notation})
                continue
            if squares in legal:
                usable.append(legal[squares])
        if not usable:
            return None
        return rng.choice(usable)
