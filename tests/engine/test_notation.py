from __future__ import annotations

import pytest

from chesstutor.engine.legality import find_legal_move
from chesstutor.engine.move import str_to_square
from chesstutor.engine.notation import san
from chesstutor.engine.position import Position


@pytest.mark.parametrize(
    ("fen", "uci", "expected"),
    [
        ("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1", "e1g1", "O-O"),
        ("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1", "e1c1", "O-O-O"),
        ("k7/8/8/8/8/8/4K3/R6R w - - 0 1", "a1d1", "Rad1"),
        ("7k/8/8/R7/8/8/4K3/R7 w - - 0 1", "a1a3", "R1a3"),
        ("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 1", "e5d6", "exd6"),
        ("4k3/P7/8/8/8/8/8/4K3 w - - 0 1", "a7a8", "a8=Q+"),
        ("6k1/5ppp/8/8/8/8/8/3R2K1 w - - 0 1", "d1d8", "Rd8#"),
        ("rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1", "g1f3", "Nf3"),
    ],
)
def test_san(fen: str, uci: str, expected: str) -> None:
    p = Position.from_fen(fen)
    move = find_legal_move(p, str_to_square(uci[:2]), str_to_square(uci[2:4]))
    assert san(p, move) == expected
    assert p.to_fen() == fen
