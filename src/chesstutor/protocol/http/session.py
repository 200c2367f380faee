from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from chesstutor.engine.game import Game
from chesstutor.engine.pieces import Color
from chesstutor.search.opponent import ComputerOpponent


@dataclass
class GameSession:
    """One tutor game: the game itself, its computer opponent and a lock.

    The lock serializes every read and mutation of ``game`` so that two
    requests never touch the same position at once.
    """

    game: Game
    opponent: ComputerOpponent
    ai_color: Optional[Color] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @property
    def difficulty(self) -> int:
        return self.opponent.hints.level


class InMemorySessionStore:
    """Thread-safe in-memory game session store.

    Responsibilities:
    - Create new sessions with unique `game_id`s
    - Retrieve existing sessions by `game_id`
    - Delete sessions
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sessions: Dict[str, GameSession] = {}

    def create(self, session: GameSession) -> str:
        """Store ``session`` and return its new `game_id`."""
        gid = str(uuid.uuid4())
        with self._lock:
            self._sessions[gid] = session
        return gid

    def get(self, game_id: str) -> Optional[GameSession]:
        with self._lock:
            return self._sessions.get(game_id)

    def delete(self, game_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(game_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
